from __future__ import annotations

import shlex
import stat
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import ChrootScriptError
from .output import debug

# Location of the script inside the installation
SCRIPT_PATH = Path('/root/setup.sh')

_HEREDOC_DELIMITER = 'ARCHPROVISION_EOF'


@dataclass
class ScriptSection:
	name: str
	lines: list[str] = field(default_factory=list)


class ChrootScript:
	"""
	A bash script that carries out the second stage of the installation
	from inside arch-chroot. It runs in strict mode, so the first failing
	command aborts it, and it removes itself as its very last action.
	"""

	def __init__(self) -> None:
		self._sections: list[ScriptSection] = []

	@property
	def sections(self) -> list[ScriptSection]:
		return self._sections

	def section(self, name: str) -> ScriptSection:
		section = ScriptSection(name)
		self._sections.append(section)
		return section

	def _current(self) -> ScriptSection:
		if not self._sections:
			raise ChrootScriptError('No section started, call section() first')
		return self._sections[-1]

	def run(self, cmd: list[str], stdin: str | None = None) -> None:
		line = shlex.join(cmd)

		if stdin is not None:
			line = f"printf '%s\\n' {shlex.quote(stdin)} | {line}"

		self._current().lines.append(line)

	def run_optional(self, cmd: list[str], warning: str) -> None:
		self._current().lines.append(f'{shlex.join(cmd)} || echo {shlex.quote(warning)} >&2')

	def echo(self, message: str) -> None:
		self._current().lines.append(f'echo {shlex.quote(message)}')

	def write_file(
		self,
		path: Path | str,
		content: str,
		append: bool = False,
		mode: int | None = None,
		owner: str | None = None,
		make_parents: bool = False,
	) -> None:
		path = Path(path)

		if not content.endswith('\n'):
			content += '\n'

		if _HEREDOC_DELIMITER in content.splitlines():
			raise ChrootScriptError(f'Content for {path} contains the heredoc delimiter')

		section = self._current()
		quoted = shlex.quote(str(path))

		if make_parents:
			section.lines.append(f'mkdir -p {shlex.quote(str(path.parent))}')

		redirect = '>>' if append else '>'
		section.lines.append(f"cat {redirect} {quoted} << '{_HEREDOC_DELIMITER}'\n{content}{_HEREDOC_DELIMITER}")

		if mode is not None:
			section.lines.append(f'chmod {mode:o} {quoted}')

		if owner is not None:
			section.lines.append(f'chown {shlex.quote(f"{owner}:{owner}")} {quoted}')

	def render(self) -> str:
		script = '#!/bin/bash\nset -euo pipefail\n'

		for section in self._sections:
			script += f'\n# {section.name}\n'
			script += f'echo {shlex.quote(f":: {section.name}")}\n'
			script += ''.join(f'{line}\n' for line in section.lines)

		script += '\n# Delete this script after running\nrm -- "$0"\n'
		return script

	def install(self, target: Path) -> Path:
		"""
		Writes the script into the installation, readable and
		executable by root only, and returns its path on the host.
		"""
		host_path = target / SCRIPT_PATH.relative_to('/')
		host_path.parent.mkdir(parents=True, exist_ok=True)

		host_path.write_text(self.render())
		host_path.chmod(stat.S_IRWXU)

		debug(f'Chroot script written to {host_path}')
		return host_path
