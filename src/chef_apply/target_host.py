"""Hosts that actions are applied to"""

import base64
import logging
import os
import platform
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from chef_apply.errors import ChefApplyError, FileTransferError, RemoteCommandError
from chef_apply.transport.base import BaseTransport, RemoteHost

logger = logging.getLogger(__name__)

WINDOWS = "windows"


def powershell_command(command: str) -> str:
    """Wrap ``command`` so it runs under PowerShell whatever the login shell is"""
    encoded = base64.b64encode(command.encode("utf-16-le")).decode("ascii")
    return f"powershell -NoProfile -NonInteractive -EncodedCommand {encoded}"


class TargetHost(ABC):
    """A machine that commands can be executed on"""

    hostname: str = ""

    @abstractmethod
    def platform_family(self) -> str:
        """Platform family reported by the host ("windows", "linux", ...)"""
        pass

    @abstractmethod
    def run_command(self, command: str) -> Tuple[int, str, str]:
        """Execute a command on the host

        Returns:
            Tuple of (return_code, stdout, stderr)
        """
        pass

    @abstractmethod
    def mkdir(self, path: str) -> None:
        """Create ``path`` and any missing parents"""
        pass

    @abstractmethod
    def upload_file(self, local_path: str, remote_path: str) -> None:
        """Copy a local file onto the host"""
        pass

    def close(self) -> None:
        """Release connections held for the host"""

    def run_command_checked(self, command: str) -> Tuple[int, str, str]:
        """Execute a command and raise if it exits non-zero

        Raises:
            RemoteCommandError: the command returned a non-zero exit code
        """
        return_code, stdout, stderr = self.run_command(command)
        if return_code != 0:
            raise RemoteCommandError(self.hostname, command, return_code, stdout, stderr)
        return return_code, stdout, stderr

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.hostname})"


class SSHTargetHost(TargetHost):
    """Target reached through an SSH transport"""

    def __init__(self, remote_host: RemoteHost, transport: BaseTransport):
        self.remote_host = remote_host
        self.transport = transport
        self.hostname = remote_host.host
        self._platform_family: Optional[str] = remote_host.platform_family

    def platform_family(self) -> str:
        if self._platform_family is None:
            self._platform_family = self._detect_platform_family()
        return self._platform_family

    def _detect_platform_family(self) -> str:
        return_code, stdout, _ = self.transport.execute_remote(self.remote_host, "uname -s")
        if return_code == 0 and stdout.strip():
            family = stdout.strip().lower()
            logger.debug(f"Detected platform family {family} on {self.hostname}")
            return family

        return_code, stdout, stderr = self.transport.execute_remote(self.remote_host, "cmd /c ver")
        if return_code == 0 and WINDOWS in stdout.lower():
            logger.debug(f"Detected platform family {WINDOWS} on {self.hostname}")
            return WINDOWS

        raise ChefApplyError(f"Unable to determine the platform of {self.hostname}: {stderr.strip()}")

    def run_command(self, command: str) -> Tuple[int, str, str]:
        if self.platform_family() == WINDOWS:
            command = powershell_command(command)
        return self.transport.execute_remote(self.remote_host, command)

    def mkdir(self, path: str) -> None:
        if not self.transport.make_dirs(self.remote_host, path):
            raise ChefApplyError(f"Failed to create directory {self.hostname}:{path}")

    def upload_file(self, local_path: str, remote_path: str) -> None:
        if not self.transport.transfer_file(local_path, self.remote_host, remote_path):
            raise FileTransferError(self.hostname, local_path, remote_path)

    def close(self) -> None:
        self.transport.close()


class LocalTargetHost(TargetHost):
    """The machine chef-apply itself runs on"""

    def __init__(self, command_timeout: Optional[float] = None):
        self.hostname = "localhost"
        self.command_timeout = command_timeout

    def platform_family(self) -> str:
        return platform.system().lower()

    def run_command(self, command: str) -> Tuple[int, str, str]:
        logger.debug(f"Executing locally: {command}")
        if self.platform_family() == WINDOWS:
            args = ["powershell", "-NoProfile", "-NonInteractive", "-Command", command]
            proc = subprocess.run(args, capture_output=True, text=True, timeout=self.command_timeout)
        else:
            proc = subprocess.run(command, shell=True, capture_output=True, text=True,
                                  timeout=self.command_timeout)
        return proc.returncode, proc.stdout, proc.stderr

    def mkdir(self, path: str) -> None:
        os.makedirs(path, exist_ok=True)

    def upload_file(self, local_path: str, remote_path: str) -> None:
        try:
            parent = os.path.dirname(remote_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            shutil.copyfile(local_path, remote_path)
        except OSError as e:
            logger.error(f"Failed to copy {local_path} to {remote_path}: {e}")
            raise FileTransferError(self.hostname, local_path, remote_path) from e
