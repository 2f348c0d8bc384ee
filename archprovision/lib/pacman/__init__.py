import time
from pathlib import Path

from ..exceptions import PackageError, RequirementError, SysCallError
from ..general import SysCommand
from ..output import error, info, warn

PACMAN_DB_LOCK = Path('/var/lib/pacman/db.lck')

# The base system: kernel, firmware, the tools the chroot stage relies on and the bootloader
BASE_PACKAGES = [
	'base',
	'linux',
	'linux-firmware',
	'tzdata',
	'vim',
	'sudo',
	'fish',
	'curl',
	'networkmanager',
	'grub',
	'efibootmgr',
	'os-prober',
]

# Installed from inside the chroot, a failure only produces a warning
OPTIONAL_PACKAGES = ['autojump', 'neofetch']


class Pacman:
	def __init__(self, target: Path, lock_timeout: int = 60 * 10):
		self.target = target
		self.lock_timeout = lock_timeout

	def wait_for_lock(self) -> None:
		"""
		Protects us from colliding with other running pacman sessions.
		The grace period is set to 10 minutes before giving up.
		"""
		if PACMAN_DB_LOCK.exists():
			warn('Pacman is already running, waiting maximum 10 minutes for it to terminate.')

		started = time.time()
		while PACMAN_DB_LOCK.exists():
			time.sleep(0.25)

			if time.time() - started > self.lock_timeout:
				error('Pre-existing pacman lock never exited. Please clean up any existing pacman sessions before running again.')
				raise RequirementError(f'Pacman database is locked: {PACMAN_DB_LOCK}')

	def strap_command(self, packages: list[str]) -> list[str]:
		return ['pacstrap', '-K', str(self.target), *packages]

	def strap(self, packages: str | list[str]) -> None:
		if isinstance(packages, str):
			packages = [packages]

		if not packages:
			raise PackageError('No packages given to install')

		self.wait_for_lock()

		info(f'Installing packages: {packages}')

		try:
			SysCommand(self.strap_command(packages), peek_output=True)
		except SysCallError as err:
			raise RequirementError(f'Pacstrap failed. See the log file or above message for error details: {err.message}') from err


__all__ = [
	'BASE_PACKAGES',
	'OPTIONAL_PACKAGES',
	'Pacman',
]
