from pathlib import Path

import pytest
from pytest import MonkeyPatch

from archprovision.lib.args import ProvisionConfig
from archprovision.lib.models import locale
from archprovision.lib.models.bootloader import BootMode
from archprovision.lib.models.device import Size, Unit
from archprovision.lib.models.network import NetworkConfiguration, Nic, NicType
from archprovision.lib.models.users import Password, User
from archprovision.lib.output import logger
from archprovision.lib.storage import storage

ROOT_HASH = '$y$j9T$rootsalt$ZGVmYXVsdHJvb3RoYXNoZm9ydGVzdGluZw'
USER_HASH = '$y$j9T$usersalt$ZGVmYXVsdHVzZXJoYXNoZm9ydGVzdGluZw'


@pytest.fixture(scope='session')
def config_fixture() -> Path:
	return Path(__file__).parent / 'data' / 'test_config.json'


@pytest.fixture(scope='session')
def creds_fixture() -> Path:
	return Path(__file__).parent / 'data' / 'test_creds.json'


@pytest.fixture(scope='session')
def lsblk_fixture() -> Path:
	return Path(__file__).parent / 'data' / 'test_lsblk.json'


@pytest.fixture(scope='session')
def genfstab_fixture() -> Path:
	return Path(__file__).parent / 'data' / 'test_genfstab.txt'


@pytest.fixture(autouse=True)
def log_directory(tmp_path: Path, monkeypatch: MonkeyPatch) -> Path:
	log_dir = tmp_path / 'log'
	log_dir.mkdir()
	monkeypatch.setattr(logger, '_path', log_dir)
	return log_dir


@pytest.fixture(autouse=True)
def zoneinfo(tmp_path: Path, monkeypatch: MonkeyPatch) -> Path:
	zones = tmp_path / 'zoneinfo'

	for timezone in ['UTC', 'Europe/Warsaw', 'US/Eastern']:
		(zones / timezone).parent.mkdir(parents=True, exist_ok=True)
		(zones / timezone).touch()

	monkeypatch.setattr(locale, 'ZONEINFO', zones)
	return zones


@pytest.fixture(autouse=True)
def clean_storage() -> None:
	storage.clear()


@pytest.fixture
def provision_config() -> ProvisionConfig:
	return ProvisionConfig(
		disk=Path('/dev/sda'),
		boot_mode=BootMode.UEFI,
		swap_size=Size(2, Unit.GiB),
		hostname='archbox',
		timezone='Europe/Warsaw',
		network_config=NetworkConfiguration(
			NicType.MANUAL,
			Nic('enp1s0', '192.168.1.10/24', '192.168.1.1', ['8.8.8.8']),
		),
		root_enc_password=Password(enc_password=ROOT_HASH),
		user=User('archuser', Password(enc_password=USER_HASH)),
	)
