# Keeping this in a dict ensures that variables are shared across imports.
from typing import TYPE_CHECKING, NotRequired, TypedDict

if TYPE_CHECKING:
	from archprovision.lib.args import ConfigHandler
	from archprovision.lib.installer import Installer


class _StorageDict(TypedDict):
	config_handler: NotRequired['ConfigHandler']
	installation_session: NotRequired['Installer']


storage: _StorageDict = {}
