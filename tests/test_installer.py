from pathlib import Path
from typing import Any

import pytest
from pytest import MonkeyPatch

from archprovision.lib import installer as installer_module
from archprovision.lib.args import ProvisionConfig
from archprovision.lib.disk.device_handler import device_handler
from archprovision.lib.exceptions import ChrootScriptError, RequirementError, SysCallError
from archprovision.lib.installer import Installer
from archprovision.lib.models.bootloader import BootMode
from archprovision.lib.models.device import PartitionRole
from archprovision.lib.models.network import NetworkConfiguration, Nic, NicType
from archprovision.lib.provision import Step
from archprovision.lib.storage import storage


def _render(installation: Installer) -> str:
	return installation.build_chroot_script(Step.chroot_steps()).render()


def test_installer_is_stored(provision_config: ProvisionConfig) -> None:
	installation = Installer(Path('/mnt'), provision_config)

	assert storage['installation_session'] is installation
	assert installation.boot_mode == BootMode.UEFI


def test_chroot_sections(provision_config: ProvisionConfig) -> None:
	script = Installer(Path('/mnt'), provision_config).build_chroot_script(Step.chroot_steps())

	assert [section.name for section in script.sections] == ['locale', 'users', 'packages', 'network', 'shell', 'bootloader']


def test_locale_section(provision_config: ProvisionConfig) -> None:
	rendered = _render(Installer(Path('/mnt'), provision_config))

	assert "cat > /etc/vconsole.conf << 'ARCHPROVISION_EOF'\nKEYMAP=us\n" in rendered
	assert "cat >> /etc/locale.gen << 'ARCHPROVISION_EOF'\nen_US.UTF-8 UTF-8\n" in rendered
	assert '\nlocale-gen\n' in rendered
	assert 'LANG=en_US.UTF-8\n' in rendered
	assert 'ln -sf /usr/share/zoneinfo/Europe/Warsaw /etc/localtime\n' in rendered
	assert 'hwclock --systohc\n' in rendered
	assert 'systemctl enable systemd-timesyncd\n' in rendered
	assert "cat > /etc/hostname << 'ARCHPROVISION_EOF'\narchbox\n" in rendered
	assert '127.0.1.1   archbox.localdomain archbox\n' in rendered


def test_ntp_can_be_disabled(provision_config: ProvisionConfig) -> None:
	provision_config.ntp = False

	assert 'systemd-timesyncd' not in _render(Installer(Path('/mnt'), provision_config))


def test_users_section(provision_config: ProvisionConfig) -> None:
	rendered = _render(Installer(Path('/mnt'), provision_config))

	root_hash = provision_config.root_enc_password.enc_password  # type: ignore[union-attr]

	assert f"printf '%s\\n' 'root:{root_hash}' | chpasswd --encrypted\n" in rendered
	assert 'useradd -m -G wheel archuser\n' in rendered
	assert "'archuser:$y$" in rendered
	assert '%wheel ALL=(ALL) NOPASSWD: ALL\n' in rendered
	assert 'chmod 440 /etc/sudoers.d/00_wheel\n' in rendered


def test_users_section_requires_credentials(provision_config: ProvisionConfig) -> None:
	provision_config.user = None

	with pytest.raises(RequirementError):
		_render(Installer(Path('/mnt'), provision_config))


def test_packages_section(provision_config: ProvisionConfig) -> None:
	rendered = _render(Installer(Path('/mnt'), provision_config))

	assert 'pacman-key --init\npacman-key --populate archlinux\n' in rendered
	assert "pacman -Sy --noconfirm autojump neofetch || echo 'Some packages not found, skipping' >&2\n" in rendered


def test_no_optional_packages(provision_config: ProvisionConfig) -> None:
	provision_config.optional_packages = []
	rendered = _render(Installer(Path('/mnt'), provision_config))

	assert 'pacman -Sy' not in rendered
	assert 'autojump.bash' not in rendered
	assert 'neofetch' not in rendered


def test_static_network_section(provision_config: ProvisionConfig) -> None:
	rendered = _render(Installer(Path('/mnt'), provision_config))
	profile = '/etc/NetworkManager/system-connections/enp1s0-static.nmconnection'

	assert 'systemctl enable NetworkManager\n' in rendered
	assert f"cat > {profile} << 'ARCHPROVISION_EOF'\n[connection]\nid=static-enp1s0\n" in rendered
	assert 'address1=192.168.1.10/24,192.168.1.1\ndns=8.8.8.8;\nmethod=manual\n' in rendered
	assert f'chmod 600 {profile}\n' in rendered


def test_static_network_detects_interface(provision_config: ProvisionConfig, monkeypatch: MonkeyPatch) -> None:
	monkeypatch.setattr(installer_module, 'first_wired_interface', lambda: 'ens3')
	provision_config.network_config = NetworkConfiguration(NicType.MANUAL, Nic(None, '10.0.0.5/24'))

	assert 'interface-name=ens3\n' in _render(Installer(Path('/mnt'), provision_config))


def test_static_network_without_interface(provision_config: ProvisionConfig, monkeypatch: MonkeyPatch) -> None:
	monkeypatch.setattr(installer_module, 'first_wired_interface', lambda: None)
	provision_config.network_config = NetworkConfiguration(NicType.MANUAL, Nic(None, '10.0.0.5/24'))

	with pytest.raises(RequirementError):
		_render(Installer(Path('/mnt'), provision_config))


def test_dhcp_network_section(provision_config: ProvisionConfig) -> None:
	provision_config.network_config = NetworkConfiguration(NicType.NM)
	rendered = _render(Installer(Path('/mnt'), provision_config))

	assert 'systemctl enable NetworkManager\n' in rendered
	assert 'nmconnection' not in rendered


def test_shell_section(provision_config: ProvisionConfig) -> None:
	rendered = _render(Installer(Path('/mnt'), provision_config))

	assert "cat >> /root/.bashrc << 'ARCHPROVISION_EOF'\n" in rendered
	assert "cat >> /home/archuser/.bashrc << 'ARCHPROVISION_EOF'\n" in rendered
	assert 'chown archuser:archuser /home/archuser/.bashrc\n' in rendered
	assert 'exec fish\n' in rendered
	assert 'source /usr/share/autojump/autojump.bash\n' in rendered


def test_shell_integration_disabled(provision_config: ProvisionConfig) -> None:
	provision_config.shell_integration = False

	assert 'exec fish' not in _render(Installer(Path('/mnt'), provision_config))


def test_uefi_bootloader(provision_config: ProvisionConfig) -> None:
	rendered = _render(Installer(Path('/mnt'), provision_config))

	assert 'grub-install --target=x86_64-efi --efi-directory=/boot/efi --bootloader-id=GRUB\n' in rendered
	assert 'grub-mkconfig -o /boot/grub/grub.cfg\n' in rendered


def test_bios_bootloader(provision_config: ProvisionConfig) -> None:
	provision_config.boot_mode = BootMode.BIOS
	rendered = _render(Installer(Path('/mnt'), provision_config))

	assert 'grub-install --target=i386-pc /dev/sda\n' in rendered
	assert '--efi-directory' not in rendered


def test_skip_boot(provision_config: ProvisionConfig) -> None:
	rendered = _render(Installer(Path('/mnt'), provision_config, skip_boot=True))

	assert 'grub-install' not in rendered
	assert 'grub-mkconfig' not in rendered


def test_partial_chroot_script(provision_config: ProvisionConfig) -> None:
	provision_config.user = None
	script = Installer(Path('/mnt'), provision_config).build_chroot_script([Step.Locale])

	assert [section.name for section in script.sections] == ['locale']


def test_host_step_in_chroot_script(provision_config: ProvisionConfig) -> None:
	with pytest.raises(ChrootScriptError):
		Installer(Path('/mnt'), provision_config).build_chroot_script([Step.Wipe])


def test_step_commands(provision_config: ProvisionConfig) -> None:
	installation = Installer(Path('/mnt'), provision_config)

	assert installation.step_commands(Step.Wipe) == [['wipefs', '--all', '--force', '/dev/sda']]
	assert installation.step_commands(Step.Mount) == [
		['mount', '/dev/sda3', '/mnt'],
		['mount', '/dev/sda1', '/mnt/boot/efi'],
		['swapon', '/dev/sda2'],
	]
	assert installation.step_commands(Step.InstallBase) == [['pacstrap', '-K', '/mnt', *provision_config.packages]]
	assert installation.step_commands(Step.Fstab) == [['genfstab', '-U', '/mnt']]
	assert installation.step_commands(Step.Locale) == []


def test_write_fstab(
	provision_config: ProvisionConfig,
	monkeypatch: MonkeyPatch,
	tmp_path: Path,
	genfstab_fixture: Path,
) -> None:
	uuids = {
		PartitionRole.Root: '3e6f1a2b-8c9d-4e5f-a1b2-c3d4e5f6a7b8',
		PartitionRole.Boot: '5A1B-2C3D',
		PartitionRole.Swap: '0f5c4b2e-6a43-4c4f-9d7e-2b1d5a8e9f10',
	}

	installation = Installer(tmp_path, provision_config)

	monkeypatch.setattr(device_handler, 'get_uuid', lambda part, layout: uuids[part.role])
	monkeypatch.setattr(installation, 'genfstab', lambda flags='-U': genfstab_fixture.read_text())

	installation.write_fstab()

	fstab = (tmp_path / 'etc' / 'fstab').read_text()
	uuid_lines = [line for line in fstab.splitlines() if line.startswith('UUID=')]

	assert uuid_lines == [
		'UUID=3e6f1a2b-8c9d-4e5f-a1b2-c3d4e5f6a7b8 / ext4 defaults 0 1',
		'UUID=5A1B-2C3D /boot/efi vfat defaults 0 2',
		'UUID=0f5c4b2e-6a43-4c4f-9d7e-2b1d5a8e9f10 none swap sw 0 0',
	]


def test_emit_and_run_chroot_script(
	provision_config: ProvisionConfig,
	monkeypatch: MonkeyPatch,
	tmp_path: Path,
) -> None:
	calls: list[list[str]] = []

	def _arch_chroot(cmd: list[str], *args: Any, **kwargs: Any) -> None:
		calls.append(cmd)
		# a successful script removes itself
		(tmp_path / 'root' / 'setup.sh').unlink()

	monkeypatch.setattr(installer_module, 'SysCommand', _arch_chroot)

	installation = Installer(tmp_path, provision_config)
	installation.emit_chroot_script(Step.chroot_steps())

	assert (tmp_path / 'root' / 'setup.sh').exists()

	installation.run_chroot_script()

	assert calls == [['arch-chroot', str(tmp_path), '/root/setup.sh']]
	assert not (tmp_path / 'root' / 'setup.sh').exists()


def test_failed_chroot_script_is_removed(
	provision_config: ProvisionConfig,
	monkeypatch: MonkeyPatch,
	tmp_path: Path,
) -> None:
	def _arch_chroot(cmd: list[str], *args: Any, **kwargs: Any) -> None:
		raise SysCallError(f'{cmd} exited with abnormal exit code [1]', 1)

	monkeypatch.setattr(installer_module, 'SysCommand', _arch_chroot)

	installation = Installer(tmp_path, provision_config)
	installation.emit_chroot_script(Step.chroot_steps())

	with pytest.raises(ChrootScriptError):
		installation.run_chroot_script()

	assert not (tmp_path / 'root' / 'setup.sh').exists()


def test_run_without_chroot_script(provision_config: ProvisionConfig, tmp_path: Path) -> None:
	with pytest.raises(ChrootScriptError):
		Installer(tmp_path, provision_config).run_chroot_script()


def test_post_install_check(provision_config: ProvisionConfig) -> None:
	installation = Installer(Path('/mnt'), provision_config)
	installation.expect(Step.until(Step.Mount))

	installation.mark_completed(Step.PrepareDisk)
	installation.mark_completed(Step.Wipe)

	assert installation.post_install_check() == ['partition', 'format', 'mount']
