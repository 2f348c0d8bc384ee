from .bootloader import BootMode, PartitionTable
from .device import (
	DiskLayout,
	FilesystemType,
	LsblkInfo,
	PartitionRole,
	PartitionSpec,
	Size,
	Unit,
)
from .locale import LocaleConfiguration
from .network import NetworkConfiguration, Nic, NicType
from .users import Password, User

__all__ = [
	'BootMode',
	'DiskLayout',
	'FilesystemType',
	'LocaleConfiguration',
	'LsblkInfo',
	'NetworkConfiguration',
	'Nic',
	'NicType',
	'PartitionRole',
	'PartitionSpec',
	'PartitionTable',
	'Password',
	'Size',
	'Unit',
	'User',
]
