"""Arch Linux provisioner - partitions a disk, installs the base system and configures it from a chroot"""

import importlib
import sys
import traceback

from .lib.args import config_handler
from .lib.disk.utils import disk_layouts
from .lib.hardware import SysInfo
from .lib.output import FormattedOutput, debug, error, info, log, logger, warn
from .lib.pacman import Pacman


def _log_sys_info() -> None:
	# Log various information about hardware before starting the installation. This might assist in troubleshooting
	debug(f'Hardware model detected: {SysInfo.sys_vendor()} {SysInfo.product_name()}; UEFI mode: {SysInfo.has_uefi()}')
	debug(f'Virtualization detected: {SysInfo.virtualization()}')

	# For support reasons, we'll log the disk layout pre installation to match against post-installation layout
	debug(f'Disk states before installing:\n{disk_layouts()}')


def main() -> int:
	"""
	This can either be run as the installed application: archprovision
	OR straight as a module: python -m archprovision
	In any case we will be attempting to load the provided script to be run from the scripts/ folder
	"""
	if '--help' in sys.argv or '-h' in sys.argv:
		config_handler().print_help()
		return 0

	handler = config_handler()

	if not SysInfo.is_root() and not handler.args.dry_run:
		print('archprovision requires root privileges to run. See --help for more.')
		return 1

	if handler.args.dry_run:
		debug('Dry run, no device will be modified')
	else:
		_log_sys_info()

	script = handler.get_script()

	mod_name = f'archprovision.scripts.{script}'
	# by loading the module we'll automatically run the script
	importlib.import_module(mod_name)

	return 0


def run_as_a_module() -> None:
	rc = 0
	exc = None

	try:
		rc = main()
	except Exception as e:
		exc = e
	finally:
		if exc:
			err = ''.join(traceback.format_exception(exc))
			error(err)

			text = f'archprovision experienced the above error. The full log is available in "{logger.path}".\n'

			warn(text)
			rc = 1

		exit(rc)


__all__ = [
	'FormattedOutput',
	'Pacman',
	'SysInfo',
	'config_handler',
	'debug',
	'disk_layouts',
	'error',
	'info',
	'log',
	'warn',
]
