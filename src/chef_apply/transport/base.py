"""Abstract base class for transport protocols"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple


class RemoteHost:
    """Connection details for one target"""

    def __init__(self, host: str, user: str, port: int = 22, ssh_options: Optional[dict] = None,
                 platform_family: Optional[str] = None):
        """Initialize remote host

        Args:
            host: Hostname or IP address (can be SSH config alias)
            user: Username for authentication
            port: SSH port (default: 22)
            ssh_options: Optional per-target SSH options (key_file, password, port, user)
            platform_family: Known platform family; detected on first use when None
        """
        self.host = host
        self.user = user
        self.port = port
        self.ssh_options = ssh_options or {}
        self.platform_family = platform_family

    def __repr__(self) -> str:
        return f"RemoteHost({self.user}@{self.host}:{self.port})"


class BaseTransport(ABC):
    """Abstract base for transport protocol implementations"""

    @abstractmethod
    def transfer_file(self, local_path: str, remote_host: RemoteHost, remote_path: str) -> bool:
        """Copy a local file to a remote host

        Args:
            local_path: Path to local file
            remote_host: Remote host configuration
            remote_path: Destination path on remote host

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    def execute_remote(self, remote_host: RemoteHost, command: str) -> Tuple[int, str, str]:
        """Execute a command on remote host

        Args:
            remote_host: Remote host configuration
            command: Command to execute

        Returns:
            Tuple of (return_code, stdout, stderr)
        """
        pass

    @abstractmethod
    def make_dirs(self, remote_host: RemoteHost, remote_path: str) -> bool:
        """Create a directory (and parents) on remote host

        Returns:
            True if the directory exists afterwards
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close transport connections"""
        pass
