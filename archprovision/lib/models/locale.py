from dataclasses import dataclass
from pathlib import Path
from typing import Any

ZONEINFO = Path('/usr/share/zoneinfo')


def is_valid_timezone(timezone: str) -> bool:
	if not timezone or timezone.startswith('/') or '..' in Path(timezone).parts:
		return False

	return (ZONEINFO / timezone).is_file()


@dataclass
class LocaleConfiguration:
	kb_layout: str = 'us'
	sys_lang: str = 'en_US.UTF-8'
	sys_enc: str = 'UTF-8'

	@staticmethod
	def default() -> 'LocaleConfiguration':
		return LocaleConfiguration()

	def json(self) -> dict[str, str]:
		return {
			'kb_layout': self.kb_layout,
			'sys_lang': self.sys_lang,
			'sys_enc': self.sys_enc,
		}

	@property
	def locale_gen_entry(self) -> str:
		"""
		The line as it appears (commented out) in /etc/locale.gen
		"""
		return f'{self.sys_lang} {self.sys_enc}'

	@classmethod
	def parse_arg(cls, args: dict[str, Any]) -> 'LocaleConfiguration':
		config = cls.default()
		locale_args = args.get('locale_config', {})

		if 'sys_lang' in locale_args:
			config.sys_lang = locale_args['sys_lang']
		if 'sys_enc' in locale_args:
			config.sys_enc = locale_args['sys_enc']
		if 'kb_layout' in locale_args:
			config.kb_layout = locale_args['kb_layout']

		return config
