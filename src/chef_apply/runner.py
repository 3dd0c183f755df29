"""Runs an action against every configured target"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, List, Optional, Tuple

from chef_apply.action import Action, ConvergeTarget, install_chef_for
from chef_apply.config import Config
from chef_apply.target_host import LocalTargetHost, SSHTargetHost, TargetHost
from chef_apply.telemeter import Telemeter, get_telemeter
from chef_apply.transport.ssh import SSHTransport

logger = logging.getLogger(__name__)

Reporter = Callable[[str, str, Tuple[Any, ...]], None]
ActionFactory = Callable[[TargetHost], Action]


class ActionRunner:
    """Applies one action per target, several targets at a time"""

    def __init__(self, config: Config, local: bool = False, skip_host_verification: bool = False,
                 max_concurrent: int = 3, telemeter: Optional[Telemeter] = None,
                 reporter: Optional[Reporter] = None):
        """Initialize runner

        Args:
            config: Configuration instance
            local: Apply actions to this machine instead of the configured targets
            skip_host_verification: Skip SSH host key verification (insecure)
            max_concurrent: Maximum number of targets worked on at once
            telemeter: Telemeter recording action timings (process-wide default when None)
            reporter: Called with (hostname, event, args) for every action notification
        """
        self.config = config
        self.local = local
        self.skip_host_verification = skip_host_verification
        self.max_concurrent = max(1, max_concurrent)
        self.telemeter = telemeter or get_telemeter()
        self.reporter = reporter
        self.transport: Optional[SSHTransport] = None

    def _init_transport(self) -> SSHTransport:
        options = self.config.transport_options
        self.transport = SSHTransport(
            key_file=options.get("key_file"),
            password=options.get("password"),
            ssh_config=options.get("ssh_config"),
            skip_host_verification=self.skip_host_verification,
        )
        logger.info("Initialized SSH transport")
        return self.transport

    def target_hosts(self) -> List[TargetHost]:
        if self.local:
            return [LocalTargetHost()]
        transport = self.transport or self._init_transport()
        return [SSHTargetHost(remote_host, transport) for remote_host in self.config.targets]

    def _run_one(self, target_host: TargetHost, build_action: ActionFactory) -> bool:
        hostname = target_host.hostname

        def handler(event: str, args: Tuple[Any, ...]) -> None:
            if self.reporter:
                self.reporter(hostname, event, args)

        try:
            action = build_action(target_host)
            action.telemeter = self.telemeter
            logger.info(f"Running {action.name()} on {hostname}")
            action.run(handler)
        except Exception as e:
            logger.error(f"Action failed on {hostname}: {e}")
            return False

        logger.info(f"Completed on {hostname}")
        return True

    def run(self, build_action: ActionFactory) -> bool:
        """Apply the action built by ``build_action`` to every target

        Returns:
            True if the action succeeded on all targets
        """
        try:
            target_hosts = self.target_hosts()
            if not target_hosts:
                logger.error("No targets to run against")
                return False

            if len(target_hosts) == 1:
                return self._run_one(target_hosts[0], build_action)

            logger.info(f"Running on {len(target_hosts)} target(s), at most {self.max_concurrent} at a time")
            results: List[Tuple[TargetHost, bool]] = []
            with ThreadPoolExecutor(max_workers=self.max_concurrent) as executor:
                future_to_host = {
                    executor.submit(self._run_one, target_host, build_action): target_host
                    for target_host in target_hosts
                }
                for future in as_completed(future_to_host):
                    target_host = future_to_host[future]
                    try:
                        results.append((target_host, future.result()))
                    except Exception as e:
                        logger.error(f"Unexpected error for {target_host.hostname}: {e}")
                        results.append((target_host, False))

            failed = [target_host for target_host, ok in results if not ok]
            if failed:
                logger.error(f"Failed on: {', '.join(sorted(h.hostname for h in failed))}")
            return not failed

        finally:
            if self.transport:
                self.transport.close()

    def install(self, force: bool = False) -> bool:
        """Install chef-client on every target"""
        options = dict(self.config.install_options)
        if force:
            options["force_install"] = True
        return self.run(lambda target_host: install_chef_for(target_host, **options))

    def converge(self) -> bool:
        """Run chef-client with the configured policy on every target"""
        options = self.config.converge_options
        return self.run(lambda target_host: ConvergeTarget(dict(options, target_host=target_host)))
