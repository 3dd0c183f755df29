"""Exception types raised by chef-apply"""

from typing import Any, Optional


class ChefApplyError(Exception):
    """Base class for all chef-apply errors"""


class ActionNotImplemented(ChefApplyError, NotImplementedError):
    """An abstract action hook was called without being overridden"""

    def __init__(self, action_class: str, method: str):
        self.action_class = action_class
        self.method = method
        super().__init__(f"{action_class} must implement {method}()")


class RemoteCommandError(ChefApplyError):
    """A command executed on a target host returned a non-zero exit code"""

    def __init__(self, host: str, command: str, return_code: int, stdout: str = "", stderr: str = ""):
        self.host = host
        self.command = command
        self.return_code = return_code
        self.stdout = stdout
        self.stderr = stderr
        detail = stderr.strip() or stdout.strip()
        message = f"Command on {host} exited with {return_code}: {command}"
        if detail:
            message = f"{message}\n  {detail}"
        super().__init__(message)


class FileTransferError(ChefApplyError):
    """A file could not be uploaded to a target host"""

    def __init__(self, host: str, local_path: str, remote_path: str):
        self.host = host
        self.local_path = local_path
        self.remote_path = remote_path
        super().__init__(f"Failed to upload {local_path} to {host}:{remote_path}")


class UnsupportedInstallerPackage(ChefApplyError):
    """The staged installer package has an extension no installer handles"""

    def __init__(self, package_path: str, supported):
        self.package_path = package_path
        self.supported = tuple(supported)
        super().__init__(
            f"Cannot install {package_path}: expected one of {', '.join(self.supported)}"
        )


class ChefConvergeError(ChefApplyError):
    """chef-client finished with a non-zero exit code"""

    def __init__(self, host: str, return_code: int, report: Optional[Any] = None):
        self.host = host
        self.return_code = return_code
        self.report = report
        super().__init__(f"chef-client failed on {host} with exit code {return_code}")
