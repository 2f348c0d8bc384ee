from pathlib import Path

from archprovision.lib.args import config_handler
from archprovision.lib.configuration import ConfigurationOutput
from archprovision.lib.disk.utils import disk_layouts
from archprovision.lib.installer import Installer
from archprovision.lib.interactions import ask_for_swap_size, confirm_config, confirm_wipe, select_disk
from archprovision.lib.output import debug, error
from archprovision.lib.provision import Provisioner, Step


def ask_user_questions() -> None:
	config = config_handler().config

	if config.disk is None:
		config.disk = select_disk()

	if config.swap_size is None:
		config.swap_size = ask_for_swap_size()


def perform_installation(mountpoint: Path) -> None:
	"""
	Partitions, formats and mounts the target disk without installing anything onto it.
	"""
	handler = config_handler()

	with Installer(mountpoint, handler.config) as installation:
		Provisioner(installation).run(stop_after=Step.Mount)

	# For support reasons, we'll log the disk layout post installation (crash or no crash)
	debug(f'Disk states after installing:\n{disk_layouts()}')


def _only_hd() -> None:
	handler = config_handler()
	config = handler.config

	if not handler.args.silent:
		ask_user_questions()
	elif config.disk is None or config.swap_size is None:
		error('A disk and a swap size are required')
		exit(1)

	output = ConfigurationOutput(config)
	output.write_debug()
	output.save()

	if handler.args.dry_run:
		installer = Installer(handler.args.mountpoint, config)
		Provisioner(installer, dry_run=True).run(stop_after=Step.Mount)
		exit(0)

	if not handler.args.silent:
		output.show()

		if not confirm_config():
			debug('Installation aborted')
			return

		assert config.disk is not None
		if not confirm_wipe(config.disk):
			error('Aborted.')
			exit(1)

	perform_installation(handler.args.mountpoint)


_only_hd()
