from pathlib import Path

import pytest

from archprovision.lib.models.bootloader import BootMode
from archprovision.lib.models.device import (
	DiskLayout,
	FilesystemType,
	PartitionRole,
	Size,
	Unit,
	partition_path,
)


@pytest.mark.parametrize(
	'text, expected',
	[
		('2G', Size(2, Unit.GiB)),
		('2048M', Size(2048, Unit.MiB)),
		('512MiB', Size(512, Unit.MiB)),
		('4GB', Size(4, Unit.GB)),
		('1kB', Size(1, Unit.kB)),
		('100', Size(100, Unit.MiB)),
		(' 8g ', Size(8, Unit.GiB)),
	],
)
def test_parse_size(text: str, expected: Size) -> None:
	size = Size.parse(text)
	assert size.unit == expected.unit
	assert size.value == expected.value


@pytest.mark.parametrize('text', ['', 'abc', '0G', '-1G', '2X', '2.5G', 'G'])
def test_parse_invalid_size(text: str) -> None:
	with pytest.raises(ValueError):
		Size.parse(text)


def test_size_comparison() -> None:
	assert Size.parse('2G') == Size(2048, Unit.MiB)
	assert Size.parse('2GB') < Size.parse('2GiB')
	assert Size(513, Unit.MiB).format_size(Unit.MiB) == '513MiB'
	assert Size(1536, Unit.MiB).binary_unit_highest() == '1.5 GiB'


@pytest.mark.parametrize(
	'disk, expected',
	[
		('/dev/sda', '/dev/sda2'),
		('/dev/vdb', '/dev/vdb2'),
		('/dev/nvme0n1', '/dev/nvme0n1p2'),
		('/dev/mmcblk0', '/dev/mmcblk0p2'),
		('/dev/loop0', '/dev/loop0p2'),
	],
)
def test_partition_path(disk: str, expected: str) -> None:
	assert partition_path(Path(disk), 2) == Path(expected)


def test_uefi_layout() -> None:
	layout = DiskLayout(Path('/dev/sda'), BootMode.UEFI, Size.parse('2G'))

	boot, swap, root = layout.partitions

	assert [p.number for p in layout.partitions] == [1, 2, 3]
	assert [p.role for p in layout.partitions] == [PartitionRole.Boot, PartitionRole.Swap, PartitionRole.Root]

	assert boot.fs_type == FilesystemType.Fat32
	assert boot.start == Size(1, Unit.MiB)
	assert boot.end == Size(513, Unit.MiB)
	assert boot.mountpoint == Path('/boot/efi')
	assert boot.flag == 'esp'

	# swap size is the length of the partition, not its end
	assert swap.start == Size(513, Unit.MiB)
	assert swap.end == Size(513 + 2048, Unit.MiB)
	assert swap.mountpoint is None

	assert root.start == swap.end
	assert root.end is None
	assert root.mountpoint == Path('/')

	assert layout.dev_path(layout.root) == Path('/dev/sda3')


def test_uefi_parted_command() -> None:
	layout = DiskLayout(Path('/dev/sda'), BootMode.UEFI, Size.parse('2G'))

	assert layout.parted_command() == [
		'parted', '-s', '/dev/sda',
		'mklabel', 'gpt',
		'mkpart', 'primary', 'fat32', '1MiB', '513MiB',
		'set', '1', 'esp', 'on',
		'mkpart', 'primary', 'linux-swap', '513MiB', '2561MiB',
		'mkpart', 'primary', 'ext4', '2561MiB', '100%',
	]  # fmt: skip


def test_bios_parted_command() -> None:
	layout = DiskLayout(Path('/dev/nvme0n1'), BootMode.BIOS, Size.parse('512M'))

	assert layout.boot.fs_type == FilesystemType.Ext4
	assert layout.boot.mountpoint == Path('/boot')
	assert layout.dev_path(layout.swap) == Path('/dev/nvme0n1p2')

	assert layout.parted_command() == [
		'parted', '-s', '/dev/nvme0n1',
		'mklabel', 'msdos',
		'mkpart', 'primary', 'ext4', '1MiB', '513MiB',
		'set', '1', 'boot', 'on',
		'mkpart', 'primary', 'linux-swap', '513MiB', '1025MiB',
		'mkpart', 'primary', 'ext4', '1025MiB', '100%',
	]  # fmt: skip


def test_decimal_swap_size_rounds_up() -> None:
	layout = DiskLayout(Path('/dev/sda'), BootMode.UEFI, Size.parse('1GB'))

	# 513MiB + 1GB ends inside the 1467th MiB
	assert layout.swap.parted_args()[4] == '1467MiB'


def test_mount_order() -> None:
	layout = DiskLayout(Path('/dev/sda'), BootMode.UEFI, Size.parse('2G'))

	assert [p.role for p in layout.mount_order()] == [PartitionRole.Root, PartitionRole.Boot]


def test_mkfs_commands() -> None:
	layout = DiskLayout(Path('/dev/sda'), BootMode.UEFI, Size.parse('2G'))

	assert [p.fs_type.mkfs_command(layout.dev_path(p)) for p in layout.partitions] == [
		['mkfs.fat', '-F32', '/dev/sda1'],
		['mkswap', '/dev/sda2'],
		['mkfs.ext4', '-F', '/dev/sda3'],
	]


def test_layout_json() -> None:
	layout = DiskLayout(Path('/dev/sda'), BootMode.BIOS, Size.parse('2G'))
	data = layout.json()

	assert data['disk'] == '/dev/sda'
	assert data['boot_mode'] == 'BIOS'
	assert data['swap_size'] == '2GiB'
	assert [p['role'] for p in data['partitions']] == ['boot', 'swap', 'root']
