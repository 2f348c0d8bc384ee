from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import NotRequired, TypedDict, override

from pydantic import BaseModel, Field, field_validator

from .bootloader import BootMode, PartitionTable


class Unit(Enum):
	B = 1  # byte
	kB = 1000**1  # kilobyte
	MB = 1000**2  # megabyte
	GB = 1000**3  # gigabyte
	TB = 1000**4  # terabyte

	KiB = 1024**1  # kibibyte
	MiB = 1024**2  # mebibyte
	GiB = 1024**3  # gibibyte
	TiB = 1024**4  # tebibyte

	@staticmethod
	def get_binary_units() -> list[Unit]:
		return [u for u in Unit if 'i' in u.name or u.name == 'B']


_SIZE_REGEX = re.compile(r'^\s*(\d+)\s*([kKmMgGtT]?)(i?B)?\s*$')


@dataclass
class Size:
	value: int
	unit: Unit

	@classmethod
	def parse(cls, text: str) -> Size:
		"""
		Parses sizes the way they are typed at a prompt: 2G, 2048M, 512MiB, 4GB.
		A bare letter or a letter followed by iB is a binary unit,
		a letter followed by B is a decimal one. A bare number is in MiB.
		"""
		match = _SIZE_REGEX.match(text)

		if not match:
			raise ValueError(f'Invalid size "{text}", expected a value such as 2G or 2048M')

		value, prefix, suffix = match.groups()
		prefix = prefix.upper()

		if not prefix:
			if suffix and suffix != 'B':
				raise ValueError(f'Invalid size "{text}", expected a value such as 2G or 2048M')
			unit = Unit.B if suffix == 'B' else Unit.MiB
		elif suffix == 'B':
			unit = Unit[f'{prefix.lower() if prefix == "K" else prefix}B']
		else:
			unit = Unit[f'{prefix}iB']

		size = Size(int(value), unit)

		if size.value <= 0:
			raise ValueError(f'Size must be larger than zero: "{text}"')

		return size

	def json(self) -> str:
		return f'{self.value}{self.unit.name}'

	def convert(self, target_unit: Unit) -> Size:
		if self.unit == target_unit:
			return self

		value = math.ceil(self._normalize() / target_unit.value)
		return Size(value, target_unit)

	def format_size(self, target_unit: Unit, include_unit: bool = True) -> str:
		target_size = self.convert(target_unit)

		if include_unit:
			return f'{target_size.value}{target_unit.name}'
		return f'{target_size.value}'

	def binary_unit_highest(self, include_unit: bool = True) -> str:
		binary_units = Unit.get_binary_units()

		size = float(self._normalize())
		unit = Unit.KiB
		base_value = unit.value

		for binary_unit in binary_units:
			unit = binary_unit
			if size < base_value:
				break
			size /= base_value

		formatted_size = f'{size:.1f}'

		if formatted_size.endswith('.0'):
			formatted_size = formatted_size[:-2]

		if not include_unit:
			return formatted_size

		return f'{formatted_size} {unit.name}'

	def _normalize(self) -> int:
		"""
		will normalize the value of the unit to Byte
		"""
		return int(self.value * self.unit.value)

	def __add__(self, other: Size) -> Size:
		return Size(self._normalize() + other._normalize(), Unit.B)

	def __lt__(self, other: Size) -> bool:
		return self._normalize() < other._normalize()

	def __le__(self, other: Size) -> bool:
		return self._normalize() <= other._normalize()

	@override
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, Size):
			return NotImplemented

		return self._normalize() == other._normalize()

	def __gt__(self, other: Size) -> bool:
		return self._normalize() > other._normalize()

	def __ge__(self, other: Size) -> bool:
		return self._normalize() >= other._normalize()


class FilesystemType(Enum):
	Ext4 = 'ext4'
	Fat32 = 'fat32'
	LinuxSwap = 'linux-swap'

	@property
	def fs_type_mount(self) -> str:
		match self:
			case FilesystemType.Fat32:
				return 'vfat'
			case FilesystemType.LinuxSwap:
				return 'swap'
			case _:
				return self.value

	@property
	def parted_value(self) -> str:
		return self.value

	def mkfs_command(self, path: Path) -> list[str]:
		match self:
			case FilesystemType.Ext4:
				# Force create
				return ['mkfs.ext4', '-F', str(path)]
			case FilesystemType.Fat32:
				return ['mkfs.fat', '-F32', str(path)]
			case FilesystemType.LinuxSwap:
				return ['mkswap', str(path)]


class PartitionRole(Enum):
	Boot = 'boot'
	Swap = 'swap'
	Root = 'root'


def partition_path(disk: Path, number: int) -> Path:
	"""
	NVMe, MMC and loop devices end in a digit and separate
	the partition number with a "p": /dev/nvme0n1p1, /dev/sda1
	"""
	if disk.name[-1:].isdigit():
		return Path(f'{disk}p{number}')
	return Path(f'{disk}{number}')


@dataclass
class PartitionSpec:
	number: int
	role: PartitionRole
	fs_type: FilesystemType
	start: Size
	# None means the partition runs to the end of the disk
	end: Size | None
	mountpoint: Path | None = None
	flag: str | None = None

	def dev_path(self, disk: Path) -> Path:
		return partition_path(disk, self.number)

	def parted_args(self) -> list[str]:
		end = self.end.format_size(Unit.MiB) if self.end else '100%'

		args = [
			'mkpart',
			'primary',
			self.fs_type.parted_value,
			self.start.format_size(Unit.MiB),
			end,
		]

		if self.flag:
			args += ['set', str(self.number), self.flag, 'on']

		return args

	def table_data(self) -> dict[str, str]:
		return {
			'number': str(self.number),
			'role': self.role.value,
			'filesystem': self.fs_type.value,
			'start': self.start.format_size(Unit.MiB),
			'end': self.end.format_size(Unit.MiB) if self.end else '100%',
			'mountpoint': str(self.mountpoint) if self.mountpoint else '',
			'flag': self.flag or '',
		}


# The boot partition (ESP in UEFI mode) always spans 1MiB to 513MiB
BOOT_START = Size(1, Unit.MiB)
BOOT_END = Size(513, Unit.MiB)


class _DiskLayoutSerialization(TypedDict):
	disk: str
	boot_mode: str
	swap_size: str
	partitions: NotRequired[list[dict[str, str]]]


@dataclass
class DiskLayout:
	"""
	The fixed three partition layout: boot (or ESP), swap and root.
	"""

	disk: Path
	boot_mode: BootMode
	swap_size: Size
	partitions: list[PartitionSpec] = field(init=False)

	def __post_init__(self) -> None:
		swap_end = BOOT_END + self.swap_size

		match self.boot_mode:
			case BootMode.UEFI:
				boot_fs = FilesystemType.Fat32
			case BootMode.BIOS:
				boot_fs = FilesystemType.Ext4

		self.partitions = [
			PartitionSpec(
				1,
				PartitionRole.Boot,
				boot_fs,
				BOOT_START,
				BOOT_END,
				mountpoint=self.boot_mode.boot_mountpoint,
				flag=self.boot_mode.boot_flag,
			),
			PartitionSpec(2, PartitionRole.Swap, FilesystemType.LinuxSwap, BOOT_END, swap_end),
			PartitionSpec(3, PartitionRole.Root, FilesystemType.Ext4, swap_end, None, mountpoint=Path('/')),
		]

	@property
	def partition_table(self) -> PartitionTable:
		return self.boot_mode.partition_table

	def _by_role(self, role: PartitionRole) -> PartitionSpec:
		return next(p for p in self.partitions if p.role == role)

	@property
	def boot(self) -> PartitionSpec:
		return self._by_role(PartitionRole.Boot)

	@property
	def swap(self) -> PartitionSpec:
		return self._by_role(PartitionRole.Swap)

	@property
	def root(self) -> PartitionSpec:
		return self._by_role(PartitionRole.Root)

	def dev_path(self, part: PartitionSpec) -> Path:
		return part.dev_path(self.disk)

	def mount_order(self) -> list[PartitionSpec]:
		"""
		Root has to be mounted before anything that lives beneath it
		"""
		mountable = [p for p in self.partitions if p.mountpoint]
		return sorted(mountable, key=lambda p: len(p.mountpoint.parts) if p.mountpoint else 0)

	def parted_command(self) -> list[str]:
		cmd = ['parted', '-s', str(self.disk), 'mklabel', self.partition_table.value]

		for part in self.partitions:
			cmd += part.parted_args()

		return cmd

	def json(self) -> _DiskLayoutSerialization:
		return {
			'disk': str(self.disk),
			'boot_mode': self.boot_mode.value,
			'swap_size': self.swap_size.json(),
			'partitions': [p.table_data() for p in self.partitions],
		}


class LsblkInfo(BaseModel):
	name: str
	path: Path
	size: int
	model: str | None = None
	type: str | None = None
	fstype: str | None = None
	uuid: str | None = None
	mountpoints: list[Path] = Field(default_factory=list)
	children: list[LsblkInfo] = Field(default_factory=list)

	@field_validator('mountpoints', mode='before')
	@classmethod
	def remove_none(cls, v: list[Path | None] | None) -> list[Path]:
		if v is None:
			return []
		return [item for item in v if item is not None]

	@field_validator('model', mode='before')
	@classmethod
	def strip_model(cls, v: str | None) -> str | None:
		return v.strip() if v else v

	@classmethod
	def fields(cls) -> list[str]:
		return [name for name in cls.model_fields if name != 'children']

	def is_disk(self) -> bool:
		# loop devices and optical drives are never installation targets
		return self.type == 'disk'

	def table_data(self) -> dict[str, str]:
		return {
			'name': self.name,
			'size': Size(self.size, Unit.B).binary_unit_highest(),
			'model': self.model or '',
		}
