from pathlib import Path

from pydantic import BaseModel

from ..exceptions import DiskError, SysCallError
from ..general import SysCommand
from ..models.device import LsblkInfo
from ..output import debug, warn


class LsblkOutput(BaseModel):
	blockdevices: list[LsblkInfo]


def _fetch_lsblk_info(
	dev_path: Path | str | None = None,
	no_dependencies: bool = False,
) -> LsblkOutput:
	cmd = ['lsblk', '--json', '--bytes', '--paths', '--output', ','.join(f.upper() for f in LsblkInfo.fields())]

	if no_dependencies:
		cmd.append('--nodeps')

	if dev_path:
		cmd.append(str(dev_path))

	try:
		worker = SysCommand(cmd)
	except SysCallError as err:
		# Get the output minus the message/info from lsblk if it returns a non-zero exit code.
		if err.worker_log:
			debug(f'Error calling lsblk: {err.worker_log.decode()}')

		if dev_path:
			raise DiskError(f'Failed to read disk "{dev_path}" with lsblk')

		raise err

	output = worker.output(remove_cr=False)
	return parse_lsblk_output(output)


def parse_lsblk_output(output: bytes | str) -> LsblkOutput:
	return LsblkOutput.model_validate_json(output)


def get_lsblk_info(dev_path: Path | str) -> LsblkInfo:
	infos = _fetch_lsblk_info(dev_path)

	if infos.blockdevices:
		return infos.blockdevices[0]

	raise DiskError(f'lsblk failed to retrieve information for "{dev_path}"')


def list_disks() -> list[LsblkInfo]:
	"""
	All whole disks that can be installed to, loop and optical devices excluded
	"""
	return [info for info in _fetch_lsblk_info(no_dependencies=True).blockdevices if info.is_disk()]


def mounted_children(info: LsblkInfo) -> list[LsblkInfo]:
	"""
	Partitions (and their children) of a device that are currently mounted,
	ordered so that the deepest mounts come first.
	"""
	mounted = []

	for child in info.children:
		mounted += mounted_children(child)
		if child.mountpoints:
			mounted.append(child)

	return sorted(mounted, key=lambda i: max(len(m.parts) for m in i.mountpoints), reverse=True)


def disk_layouts() -> str:
	try:
		lsblk_output = _fetch_lsblk_info()
	except SysCallError as err:
		warn(f'Could not return disk layouts: {err}')
		return ''

	return lsblk_output.model_dump_json(indent=4)


def get_uuid(dev_path: Path) -> str:
	try:
		uuid = SysCommand(['blkid', '-s', 'UUID', '-o', 'value', str(dev_path)]).decode()
	except SysCallError as err:
		raise DiskError(f'Could not read the UUID of {dev_path}: {err.message}') from err

	if not uuid:
		raise DiskError(f'No UUID found for {dev_path}')

	return uuid
