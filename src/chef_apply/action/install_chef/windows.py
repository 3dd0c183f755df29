"""chef-client installation for Windows targets"""

import posixpath

from chef_apply.action.install_chef.base import InstallChef
from chef_apply.errors import UnsupportedInstallerPackage


class Windows(InstallChef):
    def install_chef_to_target(self, remote_path: str) -> None:
        remote_path = self.escape_windows_path(remote_path)
        if posixpath.splitext(remote_path)[1].lower() != ".msi":
            raise UnsupportedInstallerPackage(remote_path, [".msi"])
        self.target_host.run_command_checked(f"cmd /c msiexec /package {remote_path} /quiet")

    def setup_remote_temp_path(self) -> str:
        installer_dir = f"{self.remote_tempdir()}/chef-installer"
        self.target_host.mkdir(installer_dir)
        return installer_dir
