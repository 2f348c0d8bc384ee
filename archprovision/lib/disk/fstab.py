from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from ..models.device import DiskLayout, PartitionRole

_UUID_REGEX = re.compile(r'^\s*UUID=(\S+)\s')


@dataclass
class FstabEntry:
	uuid: str
	mountpoint: str
	fs_type: str
	options: str = 'defaults'
	dump: int = 0
	fsck_pass: int = 0

	def render(self) -> str:
		return f'UUID={self.uuid} {self.mountpoint} {self.fs_type} {self.options} {self.dump} {self.fsck_pass}'


def layout_entries(layout: DiskLayout, uuids: dict[PartitionRole, str]) -> list[FstabEntry]:
	"""
	The three base entries: root is checked first, the boot
	partition second and swap is never checked.
	"""
	root = layout.root
	boot = layout.boot
	swap = layout.swap

	return [
		FstabEntry(uuids[PartitionRole.Root], str(root.mountpoint), root.fs_type.fs_type_mount, fsck_pass=1),
		FstabEntry(uuids[PartitionRole.Boot], str(boot.mountpoint), boot.fs_type.fs_type_mount, fsck_pass=2),
		FstabEntry(uuids[PartitionRole.Swap], 'none', swap.fs_type.fs_type_mount, options='sw'),
	]


def entry_uuid(line: str) -> str | None:
	if match := _UUID_REGEX.match(line):
		return match.group(1)
	return None


def merge_genfstab(entries: list[FstabEntry], genfstab_output: str) -> str:
	"""
	Appends the genfstab output to the base entries, leaving out every
	genfstab line that describes a UUID the base entries already cover.
	Comments and entries for other filesystems are kept as they are.
	"""
	known = {entry.uuid for entry in entries}
	lines = [entry.render() for entry in entries]

	for line in genfstab_output.splitlines():
		if (uuid := entry_uuid(line)) and uuid in known:
			continue
		lines.append(line)

	# genfstab separates entries with blank lines, collapse the leftovers
	content = re.sub(r'\n{3,}', '\n\n', '\n'.join(lines).strip('\n'))
	return content + '\n'


def write_fstab(target: Path, content: str) -> Path:
	fstab_path = target / 'etc' / 'fstab'
	fstab_path.parent.mkdir(parents=True, exist_ok=True)
	fstab_path.write_text(content)
	return fstab_path
