import re
from dataclasses import dataclass, field
from typing import NotRequired, TypedDict, override

from ..crypt import crypt_yescrypt

_USERNAME_REGEX = re.compile(r'^[a-z_][a-z0-9_-]*\$?$')


def is_valid_username(username: str) -> bool:
	return bool(_USERNAME_REGEX.match(username)) and len(username) <= 32


UserSerialization = TypedDict(
	'UserSerialization',
	{
		'username': str,
		'!password': NotRequired[str],
		'groups': list[str],
		'enc_password': str | None,
	},
)


class Password:
	def __init__(
		self,
		plaintext: str = '',
		enc_password: str | None = None,
	):
		if plaintext:
			enc_password = crypt_yescrypt(plaintext)

		if not plaintext and not enc_password:
			raise ValueError('Either plaintext or enc_password must be provided')

		self._plaintext = plaintext
		self.enc_password = enc_password

	@property
	def plaintext(self) -> str:
		return self._plaintext

	@override
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, Password):
			return NotImplemented

		if self._plaintext and other._plaintext:
			return self._plaintext == other._plaintext

		return self.enc_password == other.enc_password

	@override
	def __repr__(self) -> str:
		return f'Password({self.hidden()})'

	def hidden(self) -> str:
		if self._plaintext:
			return '*' * len(self._plaintext)
		else:
			return '*' * 8


@dataclass
class User:
	username: str
	password: Password
	groups: list[str] = field(default_factory=lambda: ['wheel'])

	def __post_init__(self) -> None:
		if not is_valid_username(self.username):
			raise ValueError(f'Invalid username: "{self.username}"')

	@override
	def __str__(self) -> str:
		# safety overwrite to make sure password is not leaked
		return f'User({self.username=}, {self.groups=})'

	@property
	def home(self) -> str:
		return f'/home/{self.username}'

	def table_data(self) -> dict[str, str | list[str]]:
		return {
			'username': self.username,
			'password': self.password.hidden(),
			'groups': self.groups,
		}

	def json(self) -> UserSerialization:
		return {
			'username': self.username,
			'enc_password': self.password.enc_password,
			'groups': self.groups,
		}

	@classmethod
	def parse_arg(cls, arg: UserSerialization) -> 'User':
		username = arg.get('username')
		plaintext = arg.get('!password')
		enc_password = arg.get('enc_password')

		if not username:
			raise ValueError('A user entry requires a username')

		if plaintext:
			password = Password(plaintext=plaintext)
		elif enc_password:
			password = Password(enc_password=enc_password)
		else:
			raise ValueError(f'No password given for user "{username}"')

		return User(username, password, arg.get('groups', ['wheel']))
