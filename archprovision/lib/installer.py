from __future__ import annotations

import shutil
from pathlib import Path
from types import TracebackType

from .args import ProvisionConfig
from .chroot import SCRIPT_PATH, ChrootScript
from .disk.device_handler import device_handler
from .disk.fstab import layout_entries, merge_genfstab, write_fstab
from .exceptions import ChrootScriptError, RequirementError, SysCallError
from .general import SysCommand
from .hardware import first_wired_interface
from .models.bootloader import BootMode
from .models.device import DiskLayout
from .models.network import Nic
from .output import debug, error, info, log, logger, warn
from .pacman import Pacman
from .provision import Step
from .storage import storage

_BASHRC_SNIPPET = """
# Start fish unless already in fish
if [[ $(ps --no-header --pid=$PPID --format=comm) != "fish" && -z ${BASH_EXECUTION_STRING} ]]; then
	exec fish
fi
"""

_AUTOJUMP_SNIPPET = '[ -f /usr/share/autojump/autojump.bash ] && source /usr/share/autojump/autojump.bash\n'

_SUDOERS_WHEEL = Path('/etc/sudoers.d/00_wheel')


class Installer:
	def __init__(
		self,
		target: Path,
		config: ProvisionConfig,
		skip_boot: bool = False,
	):
		"""
		`Installer()` carries out the individual steps of an installation onto
		`target`. Host stage steps run directly, chroot stage steps are compiled
		into a script that runs inside the installation.
		"""
		self.target: Path = target
		self._config = config
		self._skip_boot = skip_boot

		self.layout: DiskLayout = config.disk_layout()
		self.pacman = Pacman(self.target)

		self._helper_flags: dict[Step, bool] = {step: False for step in Step}
		self._base_strapped = False

		storage['installation_session'] = self

	def __enter__(self) -> Installer:
		return self

	def __exit__(self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None) -> bool | None:
		if exc_type is not None:
			error(str(exc_value))

			self.sync_log_to_install_medium()

			# We avoid printing /mnt/<log path> because that might confuse people if they note it down
			# and then reboot, and a identical log file will be found in the ISO medium anyway.
			print(f'[!] A log file has been created here: {logger.path}')

			# Return None to propagate the exception
			return None

		self.sync()

		if not (missing_steps := self.post_install_check()):
			msg = f'Installation completed without any errors.\nLog files temporarily available at {logger.directory}.\n'
			log(msg, fg='green')
			self.sync_log_to_install_medium()
			return True
		else:
			warn('Some required steps were not successfully installed/configured before leaving the installer:')

			for step in missing_steps:
				warn(f' - {step}')

			warn(f'Detailed error logs can be found at: {logger.directory}')

			self.sync_log_to_install_medium()
			return False

	@property
	def config(self) -> ProvisionConfig:
		return self._config

	@property
	def boot_mode(self) -> BootMode:
		return self.layout.boot_mode

	def expect(self, steps: list[Step]) -> None:
		"""
		Limits the post installation check to the steps of the current run
		"""
		self._helper_flags = {step: self._helper_flags.get(step, False) for step in steps}

	def mark_completed(self, step: Step) -> None:
		self._helper_flags[step] = True

	def post_install_check(self, *args: str, **kwargs: str) -> list[str]:
		return [step.value for step, flag in self._helper_flags.items() if flag is False]

	def sync(self) -> None:
		info('Syncing the system...')
		SysCommand('sync')

	def sync_log_to_install_medium(self) -> bool:
		# Copy over the install log (if there is one) to the install medium if
		# at least the base has been strapped in, otherwise we won't have a filesystem/structure to copy to.
		if self._base_strapped:
			absolute_logfile = logger.path
			target_logfile = self.target / absolute_logfile.relative_to('/')

			target_logfile.parent.mkdir(parents=True, exist_ok=True)

			if absolute_logfile.exists():
				shutil.copy2(absolute_logfile, target_logfile)

		return True

	def _mount_target(self, mountpoint: Path) -> Path:
		return self.target / mountpoint.relative_to('/')

	def prepare_disk(self) -> None:
		device_handler.verify_block_device(self.layout.disk)
		device_handler.swapoff_all()
		device_handler.umount_all_existing(self.layout.disk)

	def wipe(self) -> None:
		device_handler.wipe_dev(self.layout.disk)

	def partition(self) -> None:
		info(f'Boot mode: {self.boot_mode.value}')
		device_handler.partition(self.layout)

	def format(self) -> None:
		device_handler.format_layout(self.layout)

	def mount(self) -> None:
		device_handler.mount_layout(self.layout, self.target)

	def install_base(self) -> None:
		info('Installing base system...')
		self.pacman.strap(self._config.packages)
		self._base_strapped = True

	def genfstab(self, flags: str = '-U') -> str:
		try:
			return SysCommand(f'genfstab {flags} {self.target}').decode(strip=False)
		except SysCallError as err:
			raise RequirementError(f'Could not generate fstab, strapping in packages most likely failed (disk out of space?)\n Error: {err}')

	def write_fstab(self) -> None:
		"""
		Writes the three UUID based entries of the layout, followed by
		whatever genfstab finds beyond them.
		"""
		uuids = {part.role: device_handler.get_uuid(part, self.layout) for part in self.layout.partitions}
		entries = layout_entries(self.layout, uuids)

		fstab_path = write_fstab(self.target, merge_genfstab(entries, self.genfstab()))
		info(f'Updated {fstab_path}')

	def step_commands(self, step: Step) -> list[list[str]]:
		"""
		The commands a host stage step runs, as shown in the installation plan
		"""
		layout = self.layout

		match step:
			case Step.PrepareDisk:
				return [['swapoff', '-a']]
			case Step.Wipe:
				return [['wipefs', '--all', '--force', str(layout.disk)]]
			case Step.Partition:
				return [layout.parted_command(), ['partprobe', str(layout.disk)]]
			case Step.Format:
				return [part.fs_type.mkfs_command(layout.dev_path(part)) for part in layout.partitions]
			case Step.Mount:
				cmds = [
					['mount', str(layout.dev_path(part)), str(self._mount_target(part.mountpoint))]
					for part in layout.mount_order()
					if part.mountpoint
				]
				return cmds + [['swapon', str(layout.dev_path(layout.swap))]]
			case Step.InstallBase:
				return [self.pacman.strap_command(self._config.packages)]
			case Step.Fstab:
				return [['genfstab', '-U', str(self.target)]]
			case _:
				return []

	def _add_locale(self, script: ChrootScript) -> None:
		locale_config = self._config.locale_config
		hostname = self._config.hostname

		script.section(Step.Locale.value)
		script.write_file('/etc/vconsole.conf', f'KEYMAP={locale_config.kb_layout}')
		script.write_file('/etc/locale.gen', locale_config.locale_gen_entry, append=True)
		script.run(['locale-gen'])
		script.write_file('/etc/locale.conf', f'LANG={locale_config.sys_lang}')

		script.run(['ln', '-sf', f'/usr/share/zoneinfo/{self._config.timezone}', '/etc/localtime'])
		script.run(['hwclock', '--systohc'])

		if self._config.ntp:
			script.run(['systemctl', 'enable', 'systemd-timesyncd'])

		script.write_file('/etc/hostname', hostname)
		script.write_file(
			'/etc/hosts',
			f'127.0.0.1   localhost\n::1         localhost\n127.0.1.1   {hostname}.localdomain {hostname}\n',
		)

	def _add_users(self, script: ChrootScript) -> None:
		root_password = self._config.root_enc_password
		user = self._config.user

		if root_password is None or user is None:
			raise RequirementError('A root password and a user are required to set up accounts')

		script.section(Step.Users.value)
		script.run(['chpasswd', '--encrypted'], stdin=f'root:{root_password.enc_password}')

		useradd = ['useradd', '-m']
		if user.groups:
			useradd += ['-G', ','.join(user.groups)]
		script.run(useradd + [user.username])
		script.run(['chpasswd', '--encrypted'], stdin=f'{user.username}:{user.password.enc_password}')

		script.write_file(_SUDOERS_WHEEL, '%wheel ALL=(ALL) NOPASSWD: ALL', mode=0o440)

	def _add_packages(self, script: ChrootScript) -> None:
		script.section(Step.Packages.value)
		script.run(['pacman-key', '--init'])
		script.run(['pacman-key', '--populate', 'archlinux'])

		if packages := self._config.optional_packages:
			script.run_optional(
				['pacman', '-Sy', '--noconfirm', *packages],
				'Some packages not found, skipping',
			)

	def _static_nic(self) -> Nic | None:
		network_config = self._config.network_config

		if network_config is None or not network_config.is_static():
			return None

		nic = network_config.nic
		assert nic is not None

		if not nic.iface:
			nic.iface = first_wired_interface()

		if not nic.iface:
			raise RequirementError('No wired network interface found for the static network configuration')

		return nic

	def _add_network(self, script: ChrootScript) -> None:
		script.section(Step.Network.value)

		for service in self._config.services:
			script.run(['systemctl', 'enable', service])

		if nic := self._static_nic():
			info(f'Configuring a static IPv4 address on {nic.iface}')
			script.write_file(nic.connection_file, nic.as_nmconnection(), mode=0o600, make_parents=True)

	def _add_shell(self, script: ChrootScript) -> None:
		script.section(Step.Shell.value)

		if not self._config.shell_integration:
			script.echo('Shell integration disabled')
			return

		snippet = _BASHRC_SNIPPET
		if 'autojump' in self._config.optional_packages:
			snippet += _AUTOJUMP_SNIPPET

		script.write_file('/root/.bashrc', snippet, append=True)

		if user := self._config.user:
			script.write_file(f'{user.home}/.bashrc', snippet, append=True, owner=user.username)

	def _add_bootloader(self, script: ChrootScript) -> None:
		script.section(Step.Bootloader.value)

		if self._skip_boot:
			script.echo('Skipping the boot loader installation')
			return

		script.run(self.boot_mode.grub_install_command(self.layout.disk))
		script.run(['grub-mkconfig', '-o', '/boot/grub/grub.cfg'])

	def build_chroot_script(self, steps: list[Step]) -> ChrootScript:
		script = ChrootScript()

		for step in steps:
			match step:
				case Step.Locale:
					self._add_locale(script)
				case Step.Users:
					self._add_users(script)
				case Step.Packages:
					self._add_packages(script)
				case Step.Network:
					self._add_network(script)
				case Step.Shell:
					self._add_shell(script)
				case Step.Bootloader:
					self._add_bootloader(script)
				case _:
					raise ChrootScriptError(f'{step.value} can not run inside the chroot')

		if script.sections:
			if 'neofetch' in self._config.optional_packages:
				script.run_optional(['neofetch'], 'neofetch missing')
			script.echo('Installation complete. You can now reboot.')

		return script

	def emit_chroot_script(self, steps: list[Step]) -> None:
		script = self.build_chroot_script(steps)

		if not script.sections:
			debug('No chroot stage steps requested, no script written')
			return

		script.install(self.target)

	def run_chroot_script(self) -> None:
		host_path = self.target / SCRIPT_PATH.relative_to('/')

		if not host_path.exists():
			raise ChrootScriptError(f'No chroot script found at {host_path}')

		info('Entering chroot...')

		try:
			SysCommand(['arch-chroot', str(self.target), str(SCRIPT_PATH)], peek_output=True)
		except SysCallError as err:
			raise ChrootScriptError(f'The chroot script did not complete: {err.message}') from err
		finally:
			# the script holds password hashes and removes itself when it succeeds
			if host_path.exists():
				debug(f'Removing leftover chroot script {host_path}')
				host_path.unlink()
