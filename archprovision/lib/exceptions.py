class RequirementError(Exception):
	pass


class DiskError(Exception):
	pass


class SysCallError(Exception):
	def __init__(self, message: str, exit_code: int | None = None, worker_log: bytes = b'') -> None:
		super().__init__(message)
		self.message = message
		self.exit_code = exit_code
		self.worker_log = worker_log


class PackageError(Exception):
	pass


class ChrootScriptError(Exception):
	"""
	Raised when the chroot script can not be rendered or did not run to completion.
	"""


class ProvisionError(Exception):
	pass
