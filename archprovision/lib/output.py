import logging
import os
import sys
from dataclasses import asdict, is_dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class FormattedOutput:
	@classmethod
	def _get_values(cls, o: Any) -> dict[str, Any]:
		if hasattr(o, 'table_data'):
			return o.table_data()
		elif hasattr(o, 'json'):
			return o.json()
		elif is_dataclass(o) and not isinstance(o, type):
			return asdict(o)
		else:
			return o.__dict__

	@classmethod
	def as_table(cls, obj: list[Any]) -> str:
		"""
		Formats a list of objects as a table, one record per line.
		"""
		raw_data = [cls._get_values(o) for o in obj]

		# determine the maximum column size
		column_width: dict[str, int] = {}
		for o in raw_data:
			for k, v in o.items():
				column_width.setdefault(k, 0)
				column_width[k] = max([column_width[k], len(str(v)), len(k)])

		# create the header lines
		output = ''
		key_list = []
		for key, width in column_width.items():
			key_list.append(key.replace('_', ' ').ljust(width))

		output += ' | '.join(key_list) + '\n'
		output += '-' * len(output) + '\n'

		# create the data lines
		for record in raw_data:
			obj_data = []
			for key, width in column_width.items():
				value = record.get(key, '')

				if isinstance(value, int | float) or (isinstance(value, str) and value.isnumeric()):
					obj_data.append(str(value).rjust(width))
				else:
					obj_data.append(str(value).ljust(width))

			output += ' | '.join(obj_data) + '\n'

		return output


class Journald:
	@staticmethod
	def log(message: str, level: int = logging.DEBUG) -> None:
		try:
			import systemd.journal  # type: ignore[import-not-found]
		except ModuleNotFoundError:
			return None

		log_adapter = logging.getLogger('archprovision')
		log_fmt = logging.Formatter('[%(levelname)s]: %(message)s')
		log_ch = systemd.journal.JournalHandler()
		log_ch.setFormatter(log_fmt)
		log_adapter.addHandler(log_ch)
		log_adapter.setLevel(logging.DEBUG)

		log_adapter.log(level, message)


class Logger:
	def __init__(self, path: Path = Path('/var/log/archprovision')) -> None:
		self._path = path

	@property
	def path(self) -> Path:
		return self._path / 'install.log'

	@property
	def directory(self) -> Path:
		return self._path

	def _check_permissions(self) -> None:
		log_file = self.path

		try:
			self._path.mkdir(exist_ok=True, parents=True)
			log_file.touch(exist_ok=True)

			with log_file.open('a') as f:
				f.write('')
		except PermissionError:
			# Fallback to creating the log file in the current folder
			self._path = Path('./').absolute()

			warn(f'Not enough permission to place log file at {log_file}, creating it in {self.path} instead')

	def log(self, level: int, content: str) -> None:
		self._check_permissions()

		with self.path.open('a') as f:
			ts = _timestamp()
			level_name = logging.getLevelName(level)
			f.write(f'[{ts}] - {level_name} - {content}\n')


logger = Logger()


def _supports_color() -> bool:
	"""
	Return True if the running system's terminal supports color,
	and False otherwise.
	"""
	supported_platform = sys.platform != 'win32' or 'ANSICON' in os.environ

	# isatty is not always implemented
	is_a_tty = hasattr(sys.stdout, 'isatty') and sys.stdout.isatty()
	return supported_platform and is_a_tty


def _stylize_output(text: str, fg: str) -> str:
	"""
	Adds styling to a text given a foreground color.
	"""
	colors = {
		'black': '0',
		'red': '1',
		'green': '2',
		'yellow': '3',
		'blue': '4',
		'magenta': '5',
		'cyan': '6',
		'white': '7',
		'teal': '8;5;109',  # Extended 256-bit colors (not always supported)
		'orange': '8;5;208',
		'gray': '8;5;246',
		'grey': '8;5;246',
		'darkgray': '8;5;240',
	}

	return f'\033[3{colors[fg]}m{text}\033[0m'


def _timestamp() -> str:
	now = datetime.now(tz=UTC)
	return now.strftime('%Y-%m-%d %H:%M:%S')


def info(*msgs: str, level: int = logging.INFO, fg: str = 'white') -> None:
	log(*msgs, level=level, fg=fg)


def debug(*msgs: str, level: int = logging.DEBUG, fg: str = 'white') -> None:
	log(*msgs, level=level, fg=fg)


def error(*msgs: str, level: int = logging.ERROR, fg: str = 'red') -> None:
	log(*msgs, level=level, fg=fg)


def warn(*msgs: str, level: int = logging.WARNING, fg: str = 'yellow') -> None:
	log(*msgs, level=level, fg=fg)


def log(*msgs: str, level: int = logging.INFO, fg: str = 'white') -> None:
	text = ' '.join([str(x) for x in msgs])

	logger.log(level, text)

	# Attempt to colorize the output if supported
	if _supports_color():
		text = _stylize_output(text, fg)

	Journald.log(text, level=level)

	# debug output only ends up in the log file
	if level != logging.DEBUG:
		print(text)
		sys.stdout.flush()
