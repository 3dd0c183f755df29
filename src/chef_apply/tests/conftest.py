"""Pytest configuration and shared fixtures"""

import os
import tempfile
from typing import Dict, List, Tuple
from unittest.mock import MagicMock

import pytest

from chef_apply.target_host import TargetHost
from chef_apply.telemeter import Telemeter


class RecordingTargetHost(TargetHost):
    """TargetHost that records calls and answers commands from a script

    ``responses`` maps a command prefix to ``(return_code, stdout, stderr)``.
    Unmatched commands succeed with empty output.
    """

    def __init__(self, family: str = "linux", hostname: str = "node1.example.com",
                 responses: Dict[str, Tuple[int, str, str]] = None):
        self.family = family
        self.hostname = hostname
        self.responses = dict(responses or {})
        self.commands: List[str] = []
        self.dirs: List[str] = []
        self.uploads: List[Tuple[str, str]] = []
        self.family_queries = 0

    def platform_family(self) -> str:
        self.family_queries += 1
        return self.family

    def run_command(self, command: str) -> Tuple[int, str, str]:
        self.commands.append(command)
        for prefix, response in self.responses.items():
            if command.startswith(prefix):
                return response
        return 0, "", ""

    def mkdir(self, path: str) -> None:
        self.dirs.append(path)

    def upload_file(self, local_path: str, remote_path: str) -> None:
        self.uploads.append((local_path, remote_path))


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def linux_host():
    """Linux target where chef-client is not installed yet"""
    return RecordingTargetHost(
        family="linux",
        responses={"/opt/chef/bin/chef-client --version": (127, "", "not found")},
    )


@pytest.fixture
def windows_host():
    """Windows target where chef-client is not installed yet"""
    return RecordingTargetHost(
        family="windows",
        hostname="win1.example.com",
        responses={
            "cmd /c C:/opscode/chef/bin/chef-client --version": (1, "", "not recognized"),
            "cmd /c echo %TEMP%": (0, "C:\\Users\\admin\\AppData\\Local\\Temp\r\n", ""),
        },
    )


@pytest.fixture
def telemeter():
    """Fresh telemeter so tests never touch the process-wide one"""
    return Telemeter()


@pytest.fixture
def events():
    """Notification handler that records (event, args) pairs"""
    recorded = []

    def handler(event, args):
        recorded.append((event, args))

    handler.recorded = recorded
    return handler


@pytest.fixture
def local_files(temp_dir):
    """Installer package, client config and policy archive on disk"""
    paths = {}
    for name in ("chef-18.2.7-1.el8.x86_64.rpm", "chef-18.2.7-1_amd64.deb", "chef-client-18.2.7-1-x64.msi",
                 "client.rb", "policy.tgz"):
        path = os.path.join(temp_dir, name)
        with open(path, "w") as f:
            f.write(name)
        paths[name] = path
    return paths


@pytest.fixture
def mock_ssh_client():
    """Mock SSH client for transport tests"""
    client = MagicMock()
    sftp = MagicMock()

    client.open_sftp.return_value = sftp
    sftp.stat.return_value = None
    sftp.put.return_value = None
    sftp.mkdir.return_value = None
    sftp.close.return_value = None

    return client, sftp


@pytest.fixture
def sample_config_data(local_files):
    """Sample configuration data for testing"""
    return {
        "transport": {
            "options": {
                "password": "test_password",
                "user": "deploy",
            }
        },
        "targets": [
            {"host": "192.168.1.100", "port": 22, "user": "ubuntu"},
            {"host": "192.168.1.101", "platform_family": "windows", "ssh_options": {"user": "Administrator"}},
        ],
        "install": {
            "local_package": local_files["chef-18.2.7-1.el8.x86_64.rpm"],
        },
        "converge": {
            "local_config": local_files["client.rb"],
            "local_policy": local_files["policy.tgz"],
        },
        "telemetry": {"enabled": False},
    }


@pytest.fixture
def make_host():
    """Factory for RecordingTargetHost instances"""
    return RecordingTargetHost
