"""Converge a target by running chef-client against an uploaded policy"""

import json
import logging
import os
import uuid
from typing import Any

from chef_apply.action.base import Action
from chef_apply.errors import ChefApplyError, ChefConvergeError

logger = logging.getLogger(__name__)


class ConvergeTarget(Action):
    """Upload a client config and policy archive, then run chef-client in local mode

    Config keys:
        local_config: Path of the chef-client config file on this machine
        local_policy: Path of the exported policy archive on this machine

    Notifications: ``creating_remote_workdir``, ``uploading_files``,
    ``converging``, ``success``, ``converge_failed``.
    """

    def perform_action(self) -> None:
        local_config = self.config.get("local_config")
        local_policy = self.config.get("local_policy")
        if not local_config or not local_policy:
            raise ChefApplyError("Converging requires local_config and local_policy")

        self.notify("creating_remote_workdir")
        working_dir = self.create_remote_working_dir()
        try:
            self.notify("uploading_files")
            config_file = self.upload(local_config, working_dir)
            policy = self.upload(local_policy, working_dir)

            self.target_host.run_command(self.delete_chef_report)
            self.notify("converging")
            return_code, _, stderr = self.target_host.run_command(
                self.run_chef(working_dir, config_file, policy)
            )
        finally:
            self.remove_remote_working_dir(working_dir)

        if return_code == 0:
            self.notify("success")
            return

        logger.error(f"chef-client exited with {return_code} on {self.target_host.hostname}: {stderr.strip()}")
        report = self.fetch_run_report()
        self.notify("converge_failed", return_code, report)
        raise ChefConvergeError(self.target_host.hostname, return_code, report)

    def create_remote_working_dir(self) -> str:
        working_dir = f"{self.remote_tempdir()}/chef-apply-{uuid.uuid4().hex[:12]}"
        self.target_host.mkdir(working_dir)
        return working_dir

    def remove_remote_working_dir(self, working_dir: str) -> None:
        """Delete ``working_dir`` on the target, logging instead of raising on failure"""
        try:
            return_code, _, stderr = self.target_host.run_command(f"{self.delete_folder} {working_dir}")
        except Exception as e:
            logger.warning(f"Failed to remove {working_dir} on {self.target_host.hostname}: {e}")
            return
        if return_code != 0:
            logger.warning(f"Failed to remove {working_dir} on {self.target_host.hostname}: {stderr.strip()}")

    def upload(self, local_path: str, working_dir: str) -> str:
        """Upload ``local_path`` into ``working_dir`` and return its file name"""
        name = os.path.basename(local_path)
        self.target_host.upload_file(local_path, f"{working_dir}/{name}")
        return name

    def fetch_run_report(self) -> Any:
        """Read and remove chef-client's run report

        Returns:
            Decoded report, the raw text if it is not JSON, or None if absent
        """
        return_code, stdout, _ = self.target_host.run_command(self.read_chef_report)
        if return_code != 0 or not stdout.strip():
            logger.debug(f"No run report found on {self.target_host.hostname}")
            return None

        self.target_host.run_command(self.delete_chef_report)
        try:
            return json.loads(stdout)
        except ValueError:
            logger.warning(f"Run report on {self.target_host.hostname} is not valid JSON")
            return stdout
