from __future__ import annotations

import ipaddress
import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import NotRequired, TypedDict

NM_CONNECTIONS_DIR = Path('/etc/NetworkManager/system-connections')

_HOSTNAME_LABEL_REGEX = re.compile(r'^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$')


def is_valid_hostname(hostname: str) -> bool:
	if not hostname or len(hostname) > 253:
		return False

	return all(_HOSTNAME_LABEL_REGEX.match(label) for label in hostname.split('.'))


class NicType(Enum):
	NM = 'nm'
	MANUAL = 'manual'


class _NicSerialization(TypedDict):
	iface: str | None
	ip: str | None
	gateway: str | None
	dns: list[str]


@dataclass
class Nic:
	iface: str | None = None
	ip: str | None = None
	gateway: str | None = None
	dns: list[str] = field(default_factory=list)

	def validate(self) -> None:
		if not self.ip:
			raise ValueError('A static network configuration requires an IP address')

		try:
			interface = ipaddress.ip_interface(self.ip)
		except ValueError:
			raise ValueError(f'Invalid IP address and prefix: "{self.ip}"')

		if interface.version != 4:
			raise ValueError(f'Only IPv4 addresses can be configured statically: "{self.ip}"')

		for address in [self.gateway, *self.dns]:
			if address:
				ipaddress.ip_address(address)

	def table_data(self) -> dict[str, str | list[str]]:
		return {
			'iface': self.iface if self.iface else '',
			'ip': self.ip if self.ip else '',
			'gateway': self.gateway if self.gateway else '',
			'dns': self.dns,
		}

	def json(self) -> _NicSerialization:
		return {
			'iface': self.iface,
			'ip': self.ip,
			'gateway': self.gateway,
			'dns': self.dns,
		}

	@staticmethod
	def parse_arg(arg: _NicSerialization) -> Nic:
		nic = Nic(
			iface=arg.get('iface', None),
			ip=arg.get('ip', None),
			gateway=arg.get('gateway', None),
			dns=arg.get('dns', []),
		)
		nic.validate()
		return nic

	@property
	def connection_file(self) -> Path:
		return NM_CONNECTIONS_DIR / f'{self.iface}-static.nmconnection'

	def as_nmconnection(self, connection_uuid: str | None = None) -> str:
		if not self.iface:
			raise ValueError('A static network configuration requires an interface')

		address = self.ip or ''
		if self.gateway:
			address += f',{self.gateway}'

		ipv4: list[tuple[str, str]] = [('address1', address)]
		if self.dns:
			ipv4.append(('dns', ''.join(f'{dns};' for dns in self.dns)))
		ipv4.append(('method', 'manual'))

		config = {
			'connection': [
				('id', f'static-{self.iface}'),
				('uuid', connection_uuid or str(uuid.uuid4())),
				('type', 'ethernet'),
				('interface-name', self.iface),
				('autoconnect', 'true'),
			],
			'ipv4': ipv4,
			'ipv6': [('method', 'ignore')],
		}

		config_str = ''
		for top, entries in config.items():
			config_str += f'[{top}]\n'
			config_str += '\n'.join([f'{k}={v}' for k, v in entries])
			config_str += '\n\n'

		return config_str.rstrip('\n') + '\n'


class _NetworkConfigurationSerialization(TypedDict):
	type: str
	nic: NotRequired[_NicSerialization]


@dataclass
class NetworkConfiguration:
	type: NicType
	nic: Nic | None = None

	def json(self) -> _NetworkConfigurationSerialization:
		config: _NetworkConfigurationSerialization = {'type': self.type.value}
		if self.nic:
			config['nic'] = self.nic.json()

		return config

	@staticmethod
	def parse_arg(config: _NetworkConfigurationSerialization) -> NetworkConfiguration | None:
		nic_type = config.get('type', None)
		if not nic_type:
			return None

		match NicType(nic_type):
			case NicType.NM:
				return NetworkConfiguration(NicType.NM)
			case NicType.MANUAL:
				if nic_arg := config.get('nic', None):
					return NetworkConfiguration(NicType.MANUAL, Nic.parse_arg(nic_arg))

		return None

	def is_static(self) -> bool:
		return self.type == NicType.MANUAL and self.nic is not None
