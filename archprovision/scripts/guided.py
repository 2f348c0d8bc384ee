from pathlib import Path

from archprovision.lib.args import config_handler
from archprovision.lib.configuration import ConfigurationOutput
from archprovision.lib.disk.utils import disk_layouts
from archprovision.lib.installer import Installer
from archprovision.lib.interactions import ask_user_questions, confirm_config, confirm_wipe
from archprovision.lib.output import debug, error, info
from archprovision.lib.provision import Provisioner


def perform_installation(mountpoint: Path) -> None:
	"""
	Performs the installation steps on a block device.
	Only requirement is that the configuration is complete.
	"""
	handler = config_handler()

	with Installer(
		mountpoint,
		handler.config,
		skip_boot=handler.args.skip_boot,
	) as installation:
		Provisioner(installation).run()

	info('Installation finished. You can now reboot.')

	# For support reasons, we'll log the disk layout post installation (crash or no crash)
	debug(f'Disk states after installing:\n{disk_layouts()}')


def _guided() -> None:
	handler = config_handler()
	config = handler.config

	if not handler.args.silent:
		ask_user_questions(config)
	elif missing := config.missing():
		error(f'The configuration is missing required settings: {", ".join(missing)}')
		exit(1)

	output = ConfigurationOutput(config)
	output.write_debug()
	# a dry run leaves no password hashes behind
	output.save(creds=not handler.args.dry_run)

	if handler.args.dry_run:
		installer = Installer(handler.args.mountpoint, config, skip_boot=handler.args.skip_boot)
		Provisioner(installer, dry_run=True).run()
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


_guided()
