from __future__ import annotations

from enum import Enum
from pathlib import Path

from ..hardware import SysInfo
from ..output import debug


class PartitionTable(Enum):
	GPT = 'gpt'
	MBR = 'msdos'


class BootMode(Enum):
	UEFI = 'UEFI'
	BIOS = 'BIOS'

	@classmethod
	def detect(cls) -> BootMode:
		mode = cls.UEFI if SysInfo.has_uefi() else cls.BIOS
		debug(f'Boot mode detected: {mode.value}')
		return mode

	@classmethod
	def from_arg(cls, arg: str) -> BootMode:
		try:
			return cls(arg.upper())
		except ValueError:
			values = ', '.join(m.value for m in cls)
			raise ValueError(f'Invalid boot mode "{arg}". Allowed values: {values}')

	def json(self) -> str:
		return self.value

	@property
	def partition_table(self) -> PartitionTable:
		match self:
			case BootMode.UEFI:
				return PartitionTable.GPT
			case BootMode.BIOS:
				return PartitionTable.MBR

	@property
	def boot_flag(self) -> str:
		match self:
			case BootMode.UEFI:
				return 'esp'
			case BootMode.BIOS:
				return 'boot'

	@property
	def boot_mountpoint(self) -> Path:
		match self:
			case BootMode.UEFI:
				return Path('/boot/efi')
			case BootMode.BIOS:
				return Path('/boot')

	def grub_install_command(self, disk: Path) -> list[str]:
		"""
		The grub-install invocation for this boot mode, as run inside the chroot.
		In BIOS mode GRUB is embedded in the MBR of the disk itself.
		"""
		match self:
			case BootMode.UEFI:
				return [
					'grub-install',
					'--target=x86_64-efi',
					f'--efi-directory={self.boot_mountpoint}',
					'--bootloader-id=GRUB',
				]
			case BootMode.BIOS:
				return [
					'grub-install',
					'--target=i386-pc',
					str(disk),
				]
