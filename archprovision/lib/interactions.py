import getpass
import ipaddress
import logging
from pathlib import Path

from .args import ProvisionConfig
from .disk.utils import list_disks
from .hardware import first_wired_interface
from .models.device import Size
from .models.locale import ZONEINFO, is_valid_timezone
from .models.network import NetworkConfiguration, Nic, NicType, is_valid_hostname
from .models.users import Password, User, is_valid_username
from .output import FormattedOutput, info, log


def _warn_input(message: str) -> None:
	log(message, level=logging.WARNING, fg='red')


def get_password(prompt: str = 'Enter a password: ') -> str | None:
	while passwd := getpass.getpass(prompt):
		passwd_verification = getpass.getpass(prompt='And one more time for verification: ')
		if passwd != passwd_verification:
			log(' * Passwords did not match * ', fg='red')
			continue

		if len(passwd.strip()) <= 0:
			break

		return passwd
	return None


def ask_for_password(prompt: str) -> Password:
	while True:
		if plaintext := get_password(prompt):
			return Password(plaintext=plaintext)

		_warn_input('An empty password is not allowed.')


def select_disk() -> Path:
	disks = list_disks()

	if not disks:
		raise ValueError('No disks available to install to')

	info('Available disks:')
	info(FormattedOutput.as_table(disks))

	names = {disk.name: disk.path for disk in disks}
	names.update({disk.path.name: disk.path for disk in disks})

	while True:
		choice = input('Enter target disk (e.g. sda): ').strip()

		if choice in names:
			return names[choice]

		_warn_input(f'{choice} not found.')


def confirm_wipe(disk: Path) -> bool:
	log(f'!!! All partitions on {disk} will be ERASED !!!', fg='red')
	return input("Type 'yes' to continue: ").strip() == 'yes'


def confirm_config() -> bool:
	return input('Would you like to continue with this configuration? [y/N] ').strip().lower() in ['y', 'yes']


def ask_for_swap_size() -> Size:
	while True:
		try:
			return Size.parse(input('Swap size (e.g. 2G or 2048M): '))
		except ValueError as err:
			_warn_input(str(err))


def ask_for_a_timezone(preset: str = 'UTC') -> str:
	info(f'Timezones under {ZONEINFO}')

	while True:
		timezone = input(f'Enter a valid timezone (examples: Europe/Warsaw, US/Eastern) or press enter to use {preset}: ').strip().strip('*.')
		if timezone == '':
			timezone = preset
		if is_valid_timezone(timezone):
			return timezone

		_warn_input(f'Specified timezone {timezone} does not exist.')


def ask_for_hostname(preset: str = 'archlinux') -> str:
	while True:
		hostname = input(f'Enter hostname (leave blank for {preset}): ').strip() or preset

		if is_valid_hostname(hostname):
			return hostname

		_warn_input(f'{hostname} is not a valid hostname.')


def ask_for_username() -> str:
	while True:
		username = input('Enter new username: ').strip()

		if is_valid_username(username):
			return username

		_warn_input('The username you entered is invalid. Try again')


def ask_for_static_network() -> NetworkConfiguration:
	if input('Configure static IPv4? (y/N): ').strip().lower() != 'y':
		return NetworkConfiguration(NicType.NM)

	iface = first_wired_interface()
	info(f'Interface: {iface}')

	while True:
		ip = input('Enter IP (e.g. 192.168.1.10/24): ').strip()
		try:
			if ipaddress.ip_interface(ip).version == 4:
				break
		except ValueError:
			pass

		_warn_input('You need to enter a valid IPv4 address with its prefix.')

	while True:
		gateway: str | None = input('Enter gateway (e.g. 192.168.1.1) or leave blank for none: ').strip()
		try:
			if not gateway:
				gateway = None
			else:
				ipaddress.ip_address(gateway)
			break
		except ValueError:
			_warn_input('You need to enter a valid gateway (router) IP address.')

	while True:
		dns = input('Enter DNS servers (space separated, blank for none): ').split()
		try:
			for address in dns:
				ipaddress.ip_address(address)
			break
		except ValueError:
			_warn_input('You need to enter valid DNS server addresses.')

	return NetworkConfiguration(NicType.MANUAL, Nic(iface, ip, gateway, dns))


def ask_user_questions(config: ProvisionConfig) -> None:
	"""
	Prompts for every setting the configuration does not define yet
	"""
	if config.disk is None:
		config.disk = select_disk()

	if config.swap_size is None:
		config.swap_size = ask_for_swap_size()

	config.timezone = ask_for_a_timezone(config.timezone)
	config.hostname = ask_for_hostname(config.hostname)

	if config.root_enc_password is None:
		config.root_enc_password = ask_for_password('New root password: ')

	if config.user is None:
		username = ask_for_username()
		config.user = User(username, ask_for_password(f'Password for {username}: '))

	if config.network_config is None:
		config.network_config = ask_for_static_network()
