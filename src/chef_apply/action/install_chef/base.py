"""Shared flow for installing chef-client on a target"""

import logging
import os

from chef_apply.action.base import Action
from chef_apply.errors import ActionNotImplemented, ChefApplyError

logger = logging.getLogger(__name__)


class InstallChef(Action):
    """Stage a local installer package on the target and install it

    Config keys:
        local_package: Path of the installer package on this machine (required)
        force_install: Install even if chef-client already runs on the target

    Notifications: ``already_installed``, ``uploading``, ``installing``,
    ``install_complete``.
    """

    def perform_action(self) -> None:
        if not self.config.get("force_install") and self.chef_installed():
            self.notify("already_installed")
            return

        local_package = self.config.get("local_package")
        if not local_package:
            raise ChefApplyError("No installer package configured (local_package)")

        remote_path = self.upload_to_target(local_package)
        self.notify("installing")
        self.install_chef_to_target(remote_path)
        self.notify("install_complete")

    def chef_installed(self) -> bool:
        return_code, stdout, _ = self.target_host.run_command(f"{self.chef_client} --version")
        if return_code == 0:
            logger.info(f"chef-client already present on {self.target_host.hostname}: {stdout.strip()}")
            return True
        return False

    def upload_to_target(self, local_path: str) -> str:
        """Copy ``local_path`` into the remote staging directory

        Returns:
            Path of the staged package on the target
        """
        self.notify("uploading")
        remote_dir = self.setup_remote_temp_path()
        remote_path = f"{remote_dir.rstrip('/')}/{os.path.basename(local_path)}"
        self.target_host.upload_file(local_path, remote_path)
        return remote_path

    def setup_remote_temp_path(self) -> str:
        raise ActionNotImplemented(self.name(), "setup_remote_temp_path")

    def install_chef_to_target(self, remote_path: str) -> None:
        raise ActionNotImplemented(self.name(), "install_chef_to_target")
