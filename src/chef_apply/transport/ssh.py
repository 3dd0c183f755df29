"""SSH/SFTP transport implementation"""

import logging
import os
import posixpath
import threading
from typing import Tuple, Optional, Dict, Any

import paramiko
from paramiko import SSHClient, AutoAddPolicy, WarningPolicy

from .base import BaseTransport, RemoteHost

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 1800


class SSHTransport(BaseTransport):
    """Runs commands and copies files over SSH"""

    def __init__(self, key_file: Optional[str] = None, password: Optional[str] = None,
                 ssh_config: Optional[str] = None, skip_host_verification: bool = False,
                 command_timeout: int = DEFAULT_COMMAND_TIMEOUT):
        """Initialize SSH transport

        Args:
            key_file: Path to SSH private key (defaults to ~/.ssh/id_rsa if it exists)
            password: SSH password
            ssh_config: Path to SSH config file (~/.ssh/config when None)
            skip_host_verification: Warn instead of recording unknown host keys
            command_timeout: Seconds to wait on a single remote command
        """
        self.key_file = self._resolve_key_file(key_file)
        self.password = password
        self.skip_host_verification = skip_host_verification
        self.command_timeout = command_timeout
        self.clients: Dict[str, SSHClient] = {}
        self.clients_lock = threading.Lock()
        self.ssh_config_parser = self._load_ssh_config(ssh_config)

        if skip_host_verification:
            logger.warning("SSH host key verification is DISABLED - only use for testing!")

    @staticmethod
    def _resolve_key_file(key_file: Optional[str]) -> Optional[str]:
        candidate = os.path.expanduser(key_file or "~/.ssh/id_rsa")
        if os.path.exists(candidate):
            return candidate
        if key_file:
            logger.warning(f"SSH key file not found: {candidate}, falling back to password/agent auth")
        return None

    @staticmethod
    def _load_ssh_config(ssh_config_path: Optional[str]) -> Optional[paramiko.SSHConfig]:
        path = os.path.expanduser(ssh_config_path or "~/.ssh/config")
        if not os.path.exists(path):
            logger.debug(f"SSH config not found at {path}")
            return None
        try:
            parser = paramiko.SSHConfig.from_path(path)
            logger.info(f"Loaded SSH config from {path}")
            return parser
        except Exception as e:
            logger.warning(f"Failed to load SSH config from {path}: {e}")
            return None

    def _connect_params(self, remote_host: RemoteHost) -> Dict[str, Any]:
        """Build paramiko connect() kwargs

        Precedence: per-target ssh_options > transport options > SSH config > RemoteHost
        """
        params: Dict[str, Any] = {
            "hostname": remote_host.host,
            "port": remote_host.port,
            "username": remote_host.user,
        }

        if self.ssh_config_parser:
            entry = self.ssh_config_parser.lookup(remote_host.host)
            params["hostname"] = entry.get("hostname", remote_host.host)
            if "port" in entry:
                params["port"] = int(entry["port"])
            if "user" in entry:
                params["username"] = entry["user"]
            if entry.get("identityfile"):
                params["key_filename"] = entry["identityfile"]
            if "proxycommand" in entry:
                params["sock"] = paramiko.ProxyCommand(entry["proxycommand"])

        if self.key_file:
            params["key_filename"] = self.key_file
        if self.password:
            params["password"] = self.password

        overrides = remote_host.ssh_options
        if "key_file" in overrides:
            key_file = os.path.expanduser(overrides["key_file"])
            if os.path.exists(key_file):
                params["key_filename"] = key_file
            else:
                logger.warning(f"Per-target SSH key file not found: {key_file}")
        if "password" in overrides:
            params["password"] = overrides["password"]
        if "port" in overrides:
            params["port"] = int(overrides["port"])
        if "user" in overrides:
            params["username"] = overrides["user"]

        params.setdefault("timeout", 10)
        return params

    def _get_client(self, remote_host: RemoteHost) -> SSHClient:
        """Return a connected client for ``remote_host``, reusing open connections"""
        params = self._connect_params(remote_host)
        cache_key = f"{params['username']}@{params['hostname']}:{params['port']}"

        with self.clients_lock:
            client = self.clients.get(cache_key)
            if client is not None:
                return client

            client = SSHClient()
            if self.skip_host_verification:
                client.set_missing_host_key_policy(WarningPolicy())
            else:
                client.set_missing_host_key_policy(AutoAddPolicy())

            logger.debug(f"Connecting to {remote_host.host} (resolved: {params['hostname']})")
            try:
                client.connect(**params)
            except Exception as e:
                logger.error(f"Failed to connect to {remote_host.host}: {e}")
                raise

            logger.info(f"Connected to {remote_host.host}")
            self.clients[cache_key] = client
            return client

    def make_dirs(self, remote_host: RemoteHost, remote_path: str) -> bool:
        """Create ``remote_path`` and missing parents through SFTP"""
        try:
            sftp = self._get_client(remote_host).open_sftp()
            try:
                self._sftp_makedirs(sftp, remote_path)
            finally:
                sftp.close()
            return True
        except Exception as e:
            logger.error(f"Failed to create {remote_host.host}:{remote_path}: {e}")
            return False

    @staticmethod
    def _sftp_makedirs(sftp, remote_path: str) -> None:
        missing = []
        current = remote_path.rstrip("/") or "/"
        while current not in ("", "/") and not current.endswith(":"):
            try:
                sftp.stat(current)
                break
            except IOError:
                missing.append(current)
                current = posixpath.dirname(current)
        for directory in reversed(missing):
            logger.debug(f"Creating remote directory: {directory}")
            sftp.mkdir(directory)

    def transfer_file(self, local_path: str, remote_host: RemoteHost, remote_path: str) -> bool:
        """Upload a file through SFTP, creating the parent directory if needed"""
        try:
            sftp = self._get_client(remote_host).open_sftp()
            try:
                remote_dir = posixpath.dirname(remote_path)
                if remote_dir:
                    self._sftp_makedirs(sftp, remote_dir)
                logger.info(f"Uploading {local_path} to {remote_host.host}:{remote_path}")
                sftp.put(local_path, remote_path)
            finally:
                sftp.close()
            return True
        except Exception as e:
            logger.error(f"Failed to upload {local_path} to {remote_host.host}: {e}")
            return False

    def execute_remote(self, remote_host: RemoteHost, command: str) -> Tuple[int, str, str]:
        """Execute a command on remote host

        Connection failures are reported as return code 255 (as ssh(1) does)
        with the error text on stderr.
        """
        try:
            client = self._get_client(remote_host)
        except Exception as e:
            return 255, "", str(e)

        logger.debug(f"Executing on {remote_host.host}: {command}")
        try:
            _, stdout, stderr = client.exec_command(command, timeout=self.command_timeout)
            # Drain both streams first, a full channel window stalls the remote command
            stdout_str = stdout.read().decode("utf-8", errors="replace")
            stderr_str = stderr.read().decode("utf-8", errors="replace")
            return_code = stdout.channel.recv_exit_status()
        except Exception as e:
            logger.error(f"Failed to execute remote command on {remote_host.host}: {e}")
            return 1, "", str(e)

        logger.debug(f"Command completed with return code: {return_code}")
        return return_code, stdout_str, stderr_str

    def close(self) -> None:
        """Close all SSH connections"""
        with self.clients_lock:
            for client in self.clients.values():
                try:
                    client.close()
                except Exception as e:
                    logger.warning(f"Error closing SSH connection: {e}")
            self.clients.clear()
        logger.info("Closed SSH connections")
