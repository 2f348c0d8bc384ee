import pytest

from archprovision.lib.models.users import Password, User, is_valid_username

ENC_PASSWORD = '$y$j9T$usersalt$ZGVmYXVsdHVzZXJoYXNoZm9ydGVzdGluZw'


@pytest.mark.parametrize('username', ['archuser', 'user_1', '_svc', 'a-b', 'x' * 32])
def test_valid_usernames(username: str) -> None:
	assert is_valid_username(username)


@pytest.mark.parametrize('username', ['', 'Root', '1user', 'user name', 'x' * 33, 'user;rm'])
def test_invalid_usernames(username: str) -> None:
	assert not is_valid_username(username)


def test_password_requires_a_value() -> None:
	with pytest.raises(ValueError):
		Password()


def test_password_is_hidden() -> None:
	password = Password(enc_password=ENC_PASSWORD)

	assert password.hidden() == '********'
	assert ENC_PASSWORD not in repr(password)
	assert password == Password(enc_password=ENC_PASSWORD)


def test_user_does_not_leak_password() -> None:
	user = User('archuser', Password(enc_password=ENC_PASSWORD))

	assert ENC_PASSWORD not in str(user)
	assert user.home == '/home/archuser'
	assert user.groups == ['wheel']
	assert user.json() == {'username': 'archuser', 'enc_password': ENC_PASSWORD, 'groups': ['wheel']}


def test_invalid_user() -> None:
	with pytest.raises(ValueError):
		User('Not Valid', Password(enc_password=ENC_PASSWORD))


def test_parse_user() -> None:
	user = User.parse_arg({'username': 'archuser', 'enc_password': ENC_PASSWORD, 'groups': ['wheel', 'video']})

	assert user.username == 'archuser'
	assert user.password.enc_password == ENC_PASSWORD
	assert user.groups == ['wheel', 'video']


def test_parse_user_without_password() -> None:
	with pytest.raises(ValueError):
		User.parse_arg({'username': 'archuser', 'enc_password': None, 'groups': []})

	with pytest.raises(ValueError):
		User.parse_arg({'username': '', 'enc_password': ENC_PASSWORD, 'groups': []})
