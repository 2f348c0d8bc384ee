from .device_handler import DeviceHandler, device_handler
from .fstab import FstabEntry, layout_entries, merge_genfstab, write_fstab
from .utils import disk_layouts, get_lsblk_info, get_uuid, list_disks

__all__ = [
	'DeviceHandler',
	'FstabEntry',
	'device_handler',
	'disk_layouts',
	'get_lsblk_info',
	'get_uuid',
	'layout_entries',
	'list_disks',
	'merge_genfstab',
	'write_fstab',
]
