"""chef-client installation for Linux targets"""

import posixpath

from chef_apply.action.install_chef.base import InstallChef
from chef_apply.errors import UnsupportedInstallerPackage

INSTALLER_DIR = "/tmp/chef-installer"

INSTALL_COMMANDS = {
    ".rpm": "rpm -Uvh {path}",
    ".deb": "dpkg -i {path}",
}


class Linux(InstallChef):
    def install_chef_to_target(self, remote_path: str) -> None:
        _, extension = posixpath.splitext(remote_path)
        template = INSTALL_COMMANDS.get(extension)
        if template is None:
            raise UnsupportedInstallerPackage(remote_path, INSTALL_COMMANDS)
        self.target_host.run_command_checked(template.format(path=remote_path))

    def setup_remote_temp_path(self) -> str:
        self.target_host.mkdir(INSTALLER_DIR)
        return INSTALLER_DIR
