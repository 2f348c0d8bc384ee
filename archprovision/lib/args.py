import argparse
import json
from argparse import ArgumentParser
from dataclasses import dataclass, field
from importlib.metadata import version
from pathlib import Path
from typing import Any

from pydantic.dataclasses import dataclass as p_dataclass

from .models.bootloader import BootMode
from .models.device import DiskLayout, Size
from .models.locale import ZONEINFO, LocaleConfiguration, is_valid_timezone
from .models.network import NetworkConfiguration, is_valid_hostname
from .models.users import Password, User
from .output import debug, error, logger, warn
from .pacman import BASE_PACKAGES, OPTIONAL_PACKAGES
from .storage import storage


@p_dataclass
class Arguments:
	config: Path | None = None
	creds: Path | None = None
	silent: bool = False
	dry_run: bool = False
	script: str | None = None
	mountpoint: Path = Path('/mnt')
	skip_boot: bool = False
	debug: bool = False


@dataclass
class ProvisionConfig:
	version: str | None = None
	script: str | None = None
	disk: Path | None = None
	boot_mode: BootMode | None = None
	swap_size: Size | None = None
	hostname: str = 'archlinux'
	timezone: str = 'UTC'
	ntp: bool = True
	locale_config: LocaleConfiguration = field(default_factory=LocaleConfiguration.default)
	packages: list[str] = field(default_factory=lambda: BASE_PACKAGES.copy())
	optional_packages: list[str] = field(default_factory=lambda: OPTIONAL_PACKAGES.copy())
	services: list[str] = field(default_factory=lambda: ['NetworkManager'])
	network_config: NetworkConfiguration | None = None
	shell_integration: bool = True
	root_enc_password: Password | None = None
	user: User | None = None

	def unsafe_json(self) -> dict[str, Any]:
		config: dict[str, Any] = {}

		if self.root_enc_password:
			config['root_enc_password'] = self.root_enc_password.enc_password

		if self.user:
			config['user'] = self.user.json()

		return config

	def safe_json(self) -> dict[str, Any]:
		return {
			'version': self.version,
			'script': self.script,
			'disk': str(self.disk) if self.disk else None,
			'boot_mode': self.boot_mode.json() if self.boot_mode else None,
			'swap_size': self.swap_size.json() if self.swap_size else None,
			'hostname': self.hostname,
			'timezone': self.timezone,
			'ntp': self.ntp,
			'locale_config': self.locale_config.json(),
			'packages': self.packages,
			'optional_packages': self.optional_packages,
			'services': self.services,
			'network_config': self.network_config.json() if self.network_config else None,
			'shell_integration': self.shell_integration,
		}

	def missing(self) -> list[str]:
		"""
		Settings without a default that have to be known before installing
		"""
		required = {
			'disk': self.disk,
			'swap_size': self.swap_size,
			'root_enc_password': self.root_enc_password,
			'user': self.user,
		}
		return [name for name, value in required.items() if value is None]

	def disk_layout(self) -> DiskLayout:
		if self.disk is None or self.swap_size is None:
			raise ValueError('A disk and a swap size are required to plan the disk layout')

		boot_mode = self.boot_mode or BootMode.detect()
		return DiskLayout(self.disk, boot_mode, self.swap_size)

	@classmethod
	def from_config(cls, args_config: dict[str, Any], args: Arguments) -> 'ProvisionConfig':
		config = ProvisionConfig()

		config.locale_config = LocaleConfiguration.parse_arg(args_config)

		if script := args_config.get('script', None):
			config.script = script

		if disk := args_config.get('disk', None):
			config.disk = Path(disk)

		if boot_mode := args_config.get('boot_mode', None):
			config.boot_mode = BootMode.from_arg(boot_mode)

		if swap_size := args_config.get('swap_size', None):
			config.swap_size = Size.parse(str(swap_size))

		if hostname := args_config.get('hostname', ''):
			if not is_valid_hostname(hostname):
				raise ValueError(f'Invalid hostname: "{hostname}"')
			config.hostname = hostname

		if timezone := args_config.get('timezone', ''):
			if not is_valid_timezone(timezone):
				raise ValueError(f'Unknown timezone "{timezone}", no such file under {ZONEINFO}')
			config.timezone = timezone

		config.ntp = args_config.get('ntp', True)

		if packages := args_config.get('packages', []):
			config.packages = packages

		if 'optional_packages' in args_config:
			config.optional_packages = args_config['optional_packages']

		if 'services' in args_config:
			config.services = args_config['services']

		if net_config := args_config.get('network_config', None):
			config.network_config = NetworkConfiguration.parse_arg(net_config)

		config.shell_integration = args_config.get('shell_integration', True)

		root_password = None
		if plaintext := args_config.get('!root-password', None):
			root_password = Password(plaintext=plaintext)

		if enc_password := args_config.get('root_enc_password', None):
			root_password = Password(enc_password=enc_password)

		config.root_enc_password = root_password

		if user := args_config.get('user', None):
			config.user = User.parse_arg(user)

		return config


class ConfigHandler:
	def __init__(self) -> None:
		self._parser: ArgumentParser = self._define_arguments()
		args: Arguments = self._parse_args()
		self._args = args

		config = self._parse_config()

		try:
			self._config = ProvisionConfig.from_config(config, args)
			self._config.version = self._get_version()
		except ValueError as err:
			warn(str(err))
			exit(1)

	@property
	def config(self) -> ProvisionConfig:
		return self._config

	@property
	def args(self) -> Arguments:
		return self._args

	def get_script(self) -> str:
		if script := self.args.script:
			return script

		if script := self.config.script:
			return script

		return 'guided'

	def print_help(self) -> None:
		self._parser.print_help()

	def _get_version(self) -> str:
		try:
			return version('archprovision')
		except Exception:
			return 'archprovision version not found'

	def _define_arguments(self) -> ArgumentParser:
		parser = ArgumentParser(formatter_class=argparse.ArgumentDefaultsHelpFormatter)
		parser.add_argument(
			'-v',
			'--version',
			action='version',
			default=False,
			version='%(prog)s ' + self._get_version(),
		)
		parser.add_argument(
			'--config',
			type=Path,
			nargs='?',
			default=None,
			help='JSON configuration file',
		)
		parser.add_argument(
			'--creds',
			type=Path,
			nargs='?',
			default=None,
			help='JSON credentials configuration file',
		)
		parser.add_argument(
			'--silent',
			action='store_true',
			default=False,
			help='WARNING: Disables all prompts for input and confirmation. If no configuration is provided, this is ignored',
		)
		parser.add_argument(
			'--dry-run',
			'--dry_run',
			action='store_true',
			default=False,
			help='Prints the installation plan and the chroot script, then exits without touching any disk',
		)
		parser.add_argument(
			'--script',
			nargs='?',
			help='Script to run for installation',
			type=str,
		)
		parser.add_argument(
			'--mountpoint',
			type=Path,
			nargs='?',
			default=Path('/mnt'),
			help='Define an alternate mount point for installation',
		)
		parser.add_argument(
			'--skip-boot',
			action='store_true',
			help='Disables installation of a boot loader (note: only use this when problems arise with the boot loader step).',
			default=False,
		)
		parser.add_argument(
			'--debug',
			action='store_true',
			default=False,
			help='Adds debug info into the log',
		)

		return parser

	def _parse_args(self) -> Arguments:
		argparse_args = vars(self._parser.parse_args())
		args: Arguments = Arguments(**argparse_args)

		# Installation can't be silent if config is not passed
		if args.config is None:
			args.silent = False

		if args.debug:
			warn(f'Warning: --debug mode will write certain credentials to {logger.path}!')

		return args

	def _parse_config(self) -> dict[str, Any]:
		config: dict[str, Any] = {}

		if self._args.config is not None:
			config.update(self._read_json(self._args.config))

		if self._args.creds is not None:
			config.update(self._read_json(self._args.creds))

		config = self._cleanup_config(config)
		debug(f'Configuration keys: {sorted(config)}')

		return config

	def _read_json(self, path: Path) -> dict[str, Any]:
		if not path.exists():
			error(f'Could not find file {path}')
			exit(1)

		try:
			return json.loads(path.read_text())
		except json.JSONDecodeError as err:
			error(f'Could not parse {path}: {err}')
			exit(1)

	def _cleanup_config(self, config: dict[str, Any]) -> dict[str, Any]:
		clean_args = {}
		for key, val in config.items():
			if isinstance(val, dict):
				val = self._cleanup_config(val)

			if val is not None:
				clean_args[key] = val

		return clean_args


def config_handler() -> ConfigHandler:
	"""
	The command line is parsed on first use, not on import
	"""
	if 'config_handler' not in storage:
		storage['config_handler'] = ConfigHandler()

	return storage['config_handler']
