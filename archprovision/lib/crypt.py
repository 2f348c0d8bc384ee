import ctypes
import ctypes.util
from functools import cache
from pathlib import Path

from .exceptions import RequirementError
from .output import debug

LOGIN_DEFS = Path('/etc/login.defs')


@cache
def _libcrypt() -> ctypes.CDLL:
	name = ctypes.util.find_library('crypt') or 'libcrypt.so'

	try:
		libcrypt = ctypes.CDLL(name)
	except OSError as err:
		raise RequirementError(f'Could not load libcrypt to hash passwords: {err}') from err

	libcrypt.crypt.argtypes = [ctypes.c_char_p, ctypes.c_char_p]
	libcrypt.crypt.restype = ctypes.c_char_p

	libcrypt.crypt_gensalt.argtypes = [ctypes.c_char_p, ctypes.c_ulong, ctypes.c_char_p, ctypes.c_int]
	libcrypt.crypt_gensalt.restype = ctypes.c_char_p

	return libcrypt


def _search_login_defs(key: str) -> str | None:
	if not LOGIN_DEFS.exists():
		return None

	defs = LOGIN_DEFS.read_text()
	for line in defs.split('\n'):
		line = line.strip()

		if line.startswith('#'):
			continue

		if line.startswith(key):
			value = line.split()[1]
			return value

	return None


def crypt_gen_salt(prefix: str | bytes, rounds: int) -> bytes:
	if isinstance(prefix, str):
		prefix = prefix.encode('utf-8')

	setting = _libcrypt().crypt_gensalt(prefix, rounds, None, 0)

	if setting is None:
		raise ValueError(f'crypt_gensalt() returned NULL for prefix {prefix!r} and rounds {rounds}')

	return setting


def yescrypt_rounds() -> int:
	"""
	chpasswd in Arch hashes with yescrypt through PAM, which takes the
	hashing rounds from YESCRYPT_COST_FACTOR in /etc/login.defs.
	If no value was specified (or commented out) a default of 5 is chosen
	"""
	value = _search_login_defs('YESCRYPT_COST_FACTOR')

	if value is None:
		return 5

	return min(max(int(value), 3), 11)


def crypt_yescrypt(plaintext: str) -> str:
	rounds = yescrypt_rounds()

	debug(f'Creating yescrypt hash with rounds {rounds}')

	enc_plaintext = plaintext.encode('utf-8')
	salt = crypt_gen_salt('$y$', rounds)

	crypt_hash = _libcrypt().crypt(enc_plaintext, salt)

	if crypt_hash is None:
		raise ValueError('crypt() returned NULL')

	return crypt_hash.decode('utf-8')
