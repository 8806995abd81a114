"""Exceptions raised by the provisioning pipeline."""


class SetupError(Exception):
    """Base class for every failure that aborts a run."""

    exit_code = 1


class PreflightError(SetupError):
    """A precondition (privilege, package manager, home directory) failed."""


class PortInUseError(PreflightError):
    """The delivery port is already bound by a listening process."""

    def __init__(self, port: int):
        self.port = port
        super().__init__(
            f"Port {port} is already in use. Please free the port and re-run."
        )


class CommandError(SetupError):
    """An external tool exited with a non-zero status."""

    def __init__(self, command, returncode: int, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command failed ({returncode}): {' '.join(self.command)}"
        if stderr:
            message += f"\n{stderr.strip()}"
        super().__init__(message)


class CertificateError(SetupError):
    """Issued certificate material is missing after easy-rsa ran."""


class UnsupportedArchitectureError(SetupError):
    """No published frp artifact exists for this CPU architecture."""

    def __init__(self, machine: str):
        self.machine = machine
        super().__init__(f"Unsupported architecture: {machine}")


class DownloadError(SetupError):
    """The frp release could not be downloaded."""


class ExtractionError(SetupError):
    """The frp release archive could not be extracted."""


class BinaryNotFoundError(SetupError):
    """The frpc binary is missing from the extracted release."""
