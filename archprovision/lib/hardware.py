import os
from pathlib import Path

from .exceptions import SysCallError
from .general import SysCommand
from .output import debug

_EFIVARS = Path('/sys/firmware/efi/efivars')
_NET_CLASS = Path('/sys/class/net')


class SysInfo:
	@staticmethod
	def has_uefi() -> bool:
		return _EFIVARS.is_dir()

	@staticmethod
	def sys_vendor() -> str:
		try:
			return Path('/sys/devices/virtual/dmi/id/sys_vendor').read_text().strip()
		except OSError:
			return 'unknown'

	@staticmethod
	def product_name() -> str:
		try:
			return Path('/sys/devices/virtual/dmi/id/product_name').read_text().strip()
		except OSError:
			return 'unknown'

	@staticmethod
	def virtualization() -> str | None:
		try:
			return str(SysCommand('systemd-detect-virt')).strip('\r\n')
		except SysCallError as err:
			debug(f'Could not detect virtual system: {err}')

		return None

	@staticmethod
	def is_root() -> bool:
		return os.getuid() == 0


def list_interfaces(skip_loopback: bool = True) -> list[str]:
	if not _NET_CLASS.is_dir():
		return []

	interfaces = []
	for iface in sorted(_NET_CLASS.iterdir()):
		if skip_loopback and iface.name == 'lo':
			continue
		interfaces.append(iface.name)

	return interfaces


def is_wireless(iface: str) -> bool:
	return iface.startswith('wl') or (_NET_CLASS / iface / 'wireless').is_dir()


def first_wired_interface() -> str | None:
	for iface in list_interfaces():
		if not is_wireless(iface):
			return iface

	debug('No wired network interface found')
	return None
