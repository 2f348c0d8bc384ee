from __future__ import annotations

import logging
from pathlib import Path

from ..exceptions import DiskError, SysCallError
from ..general import SysCommand
from ..models.device import DiskLayout, FilesystemType, PartitionSpec
from ..output import debug, error, info, log
from .utils import get_lsblk_info, get_uuid, mounted_children

_SWAP_MOUNTPOINT = Path('[SWAP]')


class DeviceHandler:
	"""
	Destructive operations on the target block device.
	Every method blocks until the underlying tool has finished.
	"""

	@staticmethod
	def verify_block_device(path: Path) -> None:
		if not path.is_block_device():
			raise DiskError(f'{path} not found.')

	@staticmethod
	def swapoff_all() -> None:
		debug('Disabling all swap')

		try:
			SysCommand(['swapoff', '-a'])
		except SysCallError as err:
			raise DiskError(f'Could not disable swap: {err.message}') from err

	def umount_all_existing(self, device_path: Path) -> None:
		info(f'Unmounting any partitions on {device_path}...')

		lsblk_info = get_lsblk_info(device_path)

		for partition in mounted_children(lsblk_info):
			mountpoints = [m for m in partition.mountpoints if m != _SWAP_MOUNTPOINT]

			if not mountpoints:
				continue

			info(f' -> umount {partition.path} ({", ".join(str(m) for m in mountpoints)})')

			try:
				SysCommand(['umount', str(partition.path)])
			except SysCallError as err:
				raise DiskError(f'Could not unmount {partition.path}: {err.message}') from err

	@staticmethod
	def wipe_dev(device_path: Path) -> None:
		"""
		Wipe the block device of partition table and filesystem signatures.
		This is not intended to be secure, but rather to ensure that
		auto-discovery tools don't recognize anything here.
		"""
		info(f'Wiping {device_path}...')

		try:
			SysCommand(['wipefs', '--all', '--force', str(device_path)])
		except SysCallError as err:
			raise DiskError(f'Could not wipe {device_path}: {err.message}') from err

	def partition(self, layout: DiskLayout) -> None:
		"""
		Create a partition table on the block device and create all partitions.
		"""
		info(f'Partitioning {layout.disk}...')

		command = layout.parted_command()
		debug(f'Creating partitions: {" ".join(command)}')

		try:
			SysCommand(command)
		except SysCallError as err:
			raise DiskError(f'Unable to partition {layout.disk}: {err.message}') from err

		self.partprobe(layout.disk)
		self.udev_sync()

	def format(self, fs_type: FilesystemType, path: Path) -> None:
		cmd = fs_type.mkfs_command(path)

		debug('Formatting filesystem:', ' '.join(cmd))

		try:
			SysCommand(cmd)
		except SysCallError as err:
			msg = f'Could not format {path} with {fs_type.value}: {err.message}'
			error(msg)
			raise DiskError(msg) from err

	def format_layout(self, layout: DiskLayout) -> None:
		info('Formatting...')

		for part in layout.partitions:
			self.format(part.fs_type, layout.dev_path(part))

	def mount(
		self,
		dev_path: Path,
		target_mountpoint: Path,
		create_target_mountpoint: bool = True,
	) -> None:
		if create_target_mountpoint and not target_mountpoint.exists():
			target_mountpoint.mkdir(parents=True, exist_ok=True)

		if not target_mountpoint.exists():
			raise ValueError('Target mountpoint does not exist')

		lsblk_info = get_lsblk_info(dev_path)
		if target_mountpoint in lsblk_info.mountpoints:
			info(f'Device already mounted at {target_mountpoint}')
			return

		cmd = ['mount', str(dev_path), str(target_mountpoint)]

		debug(f'Mounting {dev_path}: {" ".join(cmd)}')

		try:
			SysCommand(cmd)
		except SysCallError as err:
			raise DiskError(f'Could not mount {dev_path}: {" ".join(cmd)}\n{err.message}') from err

	def mount_layout(self, layout: DiskLayout, target: Path) -> None:
		info('Mounting...')

		for part in layout.mount_order():
			assert part.mountpoint is not None
			self.mount(layout.dev_path(part), target / part.mountpoint.relative_to('/'))

		self.swapon(layout.dev_path(layout.swap))

	@staticmethod
	def swapon(path: Path) -> None:
		try:
			SysCommand(['swapon', str(path)])
		except SysCallError as err:
			raise DiskError(f'Could not enable swap {path}:\n{err.message}') from err

	@staticmethod
	def get_uuid(part: PartitionSpec, layout: DiskLayout) -> str:
		return get_uuid(layout.dev_path(part))

	@staticmethod
	def partprobe(path: Path | None = None) -> None:
		if path is not None:
			command = ['partprobe', str(path)]
		else:
			command = ['partprobe']

		try:
			debug(f'Calling partprobe: {" ".join(command)}')
			SysCommand(command)
		except SysCallError as err:
			if 'have been written, but we have been unable to inform the kernel of the change' in str(err):
				log(f'Partprobe was not able to inform the kernel of the new disk state (ignoring error): {err}', fg='gray', level=logging.INFO)
			else:
				error(f'"{" ".join(command)}" failed to run (continuing anyway): {err}')

	@staticmethod
	def udev_sync() -> None:
		try:
			SysCommand('udevadm settle')
		except SysCallError as err:
			debug(f'Failed to synchronize with udev: {err}')


device_handler = DeviceHandler()
