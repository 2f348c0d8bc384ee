from __future__ import annotations

import shlex
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import ProvisionError
from .output import FormattedOutput, debug, error, info, log

if TYPE_CHECKING:
	from .installer import Installer


class Stage(Enum):
	Host = 'host'
	Chroot = 'chroot'


class Step(Enum):
	PrepareDisk = 'prepare_disk'
	Wipe = 'wipe'
	Partition = 'partition'
	Format = 'format'
	Mount = 'mount'
	InstallBase = 'install_base'
	Fstab = 'fstab'
	EmitChrootScript = 'emit_chroot_script'

	Locale = 'locale'
	Users = 'users'
	Packages = 'packages'
	Network = 'network'
	Shell = 'shell'
	Bootloader = 'bootloader'

	@property
	def stage(self) -> Stage:
		if self in _CHROOT_STEPS:
			return Stage.Chroot
		return Stage.Host

	@property
	def index(self) -> int:
		return list(Step).index(self)

	@classmethod
	def host_steps(cls) -> list[Step]:
		return [step for step in cls if step.stage == Stage.Host]

	@classmethod
	def chroot_steps(cls) -> list[Step]:
		return [step for step in cls if step.stage == Stage.Chroot]

	@classmethod
	def until(cls, stop_after: Step | None = None) -> list[Step]:
		"""
		All steps in execution order, up to and including stop_after
		"""
		steps = list(cls)

		if stop_after is None:
			return steps

		return steps[: stop_after.index + 1]


_CHROOT_STEPS = {
	Step.Locale,
	Step.Users,
	Step.Packages,
	Step.Network,
	Step.Shell,
	Step.Bootloader,
}


class Provisioner:
	"""
	Drives an installation through its steps in a fixed order.

	Host stage steps are executed one by one on the live system. The chroot
	stage steps are compiled into the chroot script by the emit_chroot_script
	step and are carried out together by a single arch-chroot handoff, so
	they are completed, or not, as a whole. The first failing step aborts
	the run and no later step is attempted.
	"""

	def __init__(self, installer: Installer, dry_run: bool = False):
		self._installer = installer
		self._dry_run = dry_run
		self._stage: Stage | None = None
		self._completed: dict[Step, bool] = {step: False for step in Step}

	@property
	def stage(self) -> Stage | None:
		return self._stage

	def is_completed(self, step: Step) -> bool:
		return self._completed[step]

	def completed_steps(self) -> list[Step]:
		return [step for step in Step if self._completed[step]]

	def incomplete_steps(self, stop_after: Step | None = None) -> list[Step]:
		return [step for step in Step.until(stop_after) if not self._completed[step]]

	def _enter_stage(self, stage: Stage) -> None:
		if self._stage == stage:
			return

		if self._stage is not None:
			info(f'Leaving the {self._stage.value} stage')

		log(f'Entering the {stage.value} stage', fg='green')
		self._stage = stage

	def _mark(self, step: Step) -> None:
		debug(f'Step {step.value} completed')
		self._completed[step] = True
		self._installer.mark_completed(step)

	def _run_host_step(self, step: Step, chroot_steps: list[Step]) -> None:
		match step:
			case Step.PrepareDisk:
				self._installer.prepare_disk()
			case Step.Wipe:
				self._installer.wipe()
			case Step.Partition:
				self._installer.partition()
			case Step.Format:
				self._installer.format()
			case Step.Mount:
				self._installer.mount()
			case Step.InstallBase:
				self._installer.install_base()
			case Step.Fstab:
				self._installer.write_fstab()
			case Step.EmitChrootScript:
				self._installer.emit_chroot_script(chroot_steps)
			case _:
				raise ProvisionError(f'{step.value} is not a host stage step')

	def run(self, stop_after: Step | None = None) -> list[Step]:
		"""
		Executes every step up to and including stop_after and returns
		the steps that did not complete. Exceptions raised by a step are
		logged and propagated after the step has been recorded as failed.
		"""
		steps = Step.until(stop_after)
		self._installer.expect(steps)

		if self._dry_run:
			info(self.plan(stop_after))
			return self.incomplete_steps(stop_after)

		chroot_steps = [step for step in steps if step.stage == Stage.Chroot and not self._completed[step]]

		for step in steps:
			if step.stage == Stage.Chroot:
				break

			# the script is consumed by every handoff, pending chroot steps need a fresh one
			if self._completed[step] and not (step == Step.EmitChrootScript and chroot_steps):
				continue

			self._enter_stage(step.stage)
			info(f'Running step {step.value}')

			try:
				self._run_host_step(step, chroot_steps)
			except Exception as err:
				error(f'Step {step.value} failed: {err}')
				raise

			self._mark(step)

		if chroot_steps:
			self._enter_stage(Stage.Chroot)

			try:
				self._installer.run_chroot_script()
			except Exception as err:
				error(f'Chroot stage failed: {err}')
				raise

			for step in chroot_steps:
				self._mark(step)

		return self.incomplete_steps(stop_after)

	def plan(self, stop_after: Step | None = None) -> str:
		"""
		A readable description of everything a run would do,
		produced without touching any device.
		"""
		installer = self._installer
		layout = installer.layout
		steps = Step.until(stop_after)

		lines = [
			f'Boot mode: {layout.boot_mode.value}',
			f'Target disk: {layout.disk}',
			f'Partition table: {layout.partition_table.value}',
			'',
			FormattedOutput.as_table(layout.partitions),
			'',
			'Steps:',
		]
		lines += [f' {step.index + 1:>2}. [{step.stage.value}] {step.value}' for step in steps]

		lines += ['', 'Commands:']

		for step in steps:
			if step.stage == Stage.Chroot:
				break

			for cmd in installer.step_commands(step):
				lines.append(f'  {shlex.join(cmd)}')

		chroot_steps = [step for step in steps if step.stage == Stage.Chroot]

		if chroot_steps:
			script = installer.build_chroot_script(chroot_steps)
			lines += ['', 'Chroot script:', script.render()]

		return '\n'.join(lines)
