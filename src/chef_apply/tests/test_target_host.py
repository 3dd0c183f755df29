"""Tests for SSH and local target hosts"""

import base64
import os
from unittest.mock import MagicMock, patch

import pytest

from chef_apply.errors import ChefApplyError, FileTransferError, RemoteCommandError
from chef_apply.target_host import LocalTargetHost, SSHTargetHost, powershell_command
from chef_apply.transport.base import RemoteHost


@pytest.fixture
def mock_transport():
    transport = MagicMock()
    transport.execute_remote.return_value = (0, "", "")
    transport.transfer_file.return_value = True
    transport.make_dirs.return_value = True
    return transport


class TestSSHTargetHostPlatform:
    def test_configured_family_skips_detection(self, mock_transport):
        host = SSHTargetHost(RemoteHost("win1", "admin", platform_family="windows"), mock_transport)
        assert host.platform_family() == "windows"
        mock_transport.execute_remote.assert_not_called()

    def test_detects_posix(self, mock_transport):
        mock_transport.execute_remote.return_value = (0, "Linux\n", "")
        host = SSHTargetHost(RemoteHost("node1", "ubuntu"), mock_transport)

        assert host.platform_family() == "linux"
        assert host.platform_family() == "linux"
        mock_transport.execute_remote.assert_called_once_with(host.remote_host, "uname -s")

    def test_detects_windows(self, mock_transport):
        mock_transport.execute_remote.side_effect = [
            (1, "", "'uname' is not recognized"),
            (0, "\r\nMicrosoft Windows [Version 10.0.20348.1]\r\n", ""),
        ]
        host = SSHTargetHost(RemoteHost("win1", "admin"), mock_transport)
        assert host.platform_family() == "windows"

    def test_detection_failure(self, mock_transport):
        mock_transport.execute_remote.return_value = (255, "", "Connection refused")
        host = SSHTargetHost(RemoteHost("node1", "ubuntu"), mock_transport)

        with pytest.raises(ChefApplyError) as exc_info:
            host.platform_family()
        assert "Connection refused" in str(exc_info.value)


class TestSSHTargetHostCommands:
    def test_posix_command_passed_through(self, mock_transport):
        remote_host = RemoteHost("node1", "ubuntu", platform_family="linux")
        host = SSHTargetHost(remote_host, mock_transport)

        host.run_command("rm -rf /tmp/x")
        mock_transport.execute_remote.assert_called_once_with(remote_host, "rm -rf /tmp/x")

    def test_windows_command_wrapped_in_powershell(self, mock_transport):
        remote_host = RemoteHost("win1", "admin", platform_family="windows")
        host = SSHTargetHost(remote_host, mock_transport)

        host.run_command("Set-Location C:/")
        sent = mock_transport.execute_remote.call_args[0][1]
        assert sent.startswith("powershell -NoProfile -NonInteractive -EncodedCommand ")
        encoded = sent.rsplit(" ", 1)[1]
        assert base64.b64decode(encoded).decode("utf-16-le") == "Set-Location C:/"

    def test_checked_command_raises(self, mock_transport):
        mock_transport.execute_remote.return_value = (3, "out", "err")
        host = SSHTargetHost(RemoteHost("node1", "ubuntu", platform_family="linux"), mock_transport)

        with pytest.raises(RemoteCommandError) as exc_info:
            host.run_command_checked("false")
        error = exc_info.value
        assert (error.host, error.command, error.return_code) == ("node1", "false", 3)
        assert error.stderr == "err"

    def test_checked_command_returns_output(self, mock_transport):
        mock_transport.execute_remote.return_value = (0, "ok", "")
        host = SSHTargetHost(RemoteHost("node1", "ubuntu", platform_family="linux"), mock_transport)
        assert host.run_command_checked("true") == (0, "ok", "")

    def test_upload_failure_raises(self, mock_transport):
        mock_transport.transfer_file.return_value = False
        host = SSHTargetHost(RemoteHost("node1", "ubuntu"), mock_transport)

        with pytest.raises(FileTransferError):
            host.upload_file("/local/chef.rpm", "/tmp/chef-installer/chef.rpm")

    def test_mkdir_failure_raises(self, mock_transport):
        mock_transport.make_dirs.return_value = False
        host = SSHTargetHost(RemoteHost("node1", "ubuntu"), mock_transport)

        with pytest.raises(ChefApplyError):
            host.mkdir("/tmp/chef-installer")

    def test_close_closes_transport(self, mock_transport):
        SSHTargetHost(RemoteHost("node1", "ubuntu"), mock_transport).close()
        mock_transport.close.assert_called_once()


def test_powershell_command_round_trip():
    wrapped = powershell_command("exit $LASTEXITCODE")
    encoded = wrapped.split()[-1]
    assert base64.b64decode(encoded).decode("utf-16-le") == "exit $LASTEXITCODE"


class TestLocalTargetHost:
    def test_platform_family(self):
        with patch("chef_apply.target_host.platform.system", return_value="Linux"):
            assert LocalTargetHost().platform_family() == "linux"

    def test_run_command_uses_shell_on_posix(self):
        completed = MagicMock(returncode=0, stdout="hi\n", stderr="")
        with patch("chef_apply.target_host.platform.system", return_value="Linux"), \
                patch("chef_apply.target_host.subprocess.run", return_value=completed) as run:
            result = LocalTargetHost().run_command("echo hi")

        assert result == (0, "hi\n", "")
        assert run.call_args[0][0] == "echo hi"
        assert run.call_args[1]["shell"] is True

    def test_run_command_uses_powershell_on_windows(self):
        completed = MagicMock(returncode=0, stdout="", stderr="")
        with patch("chef_apply.target_host.platform.system", return_value="Windows"), \
                patch("chef_apply.target_host.subprocess.run", return_value=completed) as run:
            LocalTargetHost().run_command("Set-Location C:/")

        assert run.call_args[0][0][:1] == ["powershell"]
        assert run.call_args[0][0][-1] == "Set-Location C:/"

    def test_mkdir_and_upload(self, temp_dir, local_files):
        host = LocalTargetHost()
        staging = os.path.join(temp_dir, "staging", "inner")
        host.mkdir(staging)
        assert os.path.isdir(staging)

        destination = os.path.join(temp_dir, "copied", "client.rb")
        host.upload_file(local_files["client.rb"], destination)
        with open(destination) as f:
            assert f.read() == "client.rb"

    def test_upload_missing_file(self, temp_dir):
        with pytest.raises(FileTransferError):
            LocalTargetHost().upload_file(os.path.join(temp_dir, "absent"), os.path.join(temp_dir, "dest"))
