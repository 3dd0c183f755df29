"""Base class for actions applied to a target host"""

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from chef_apply.action.commands import OSFamily, Operation, command_for
from chef_apply.errors import ActionNotImplemented
from chef_apply.telemeter import Telemeter, get_telemeter

logger = logging.getLogger(__name__)

NotificationHandler = Callable[[str, Tuple[Any, ...]], None]


class ActionOutcome:
    """Result of running an action body: success, or failure with its error"""

    __slots__ = ("error",)

    def __init__(self, error: Optional[Exception] = None):
        self.error = error

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls) -> "ActionOutcome":
        return cls()

    @classmethod
    def failure(cls, error: Exception) -> "ActionOutcome":
        return cls(error)


def _platform_command(operation: Operation) -> property:
    def getter(self) -> str:
        return command_for(operation, self.family)

    getter.__doc__ = f"``{operation.value}`` command for the target's OS family"
    return property(getter)


class Action:
    """Base for everything that is applied to a target host

    Subclasses implement ``perform_action``. ``config`` may hold a
    ``target_host`` entry (a TargetHost, or None for actions without a
    target); it is removed from the stored config and exposed as
    ``target_host``. Remaining keys are left for subclasses.

    Execution time is captured by the telemeter under the ``action`` category,
    keyed by the unqualified class name of the action. ``telemeter`` may be
    set per instance; the process-wide telemeter is used when it is None.
    """

    telemeter: Optional[Telemeter] = None

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        c = dict(config or {})
        self.target_host = c.pop("target_host", None)
        self.config = c
        self.notification_handler: Optional[NotificationHandler] = None
        self.error: Optional[Exception] = None
        self._family: Optional[OSFamily] = None

    chef_client = _platform_command(Operation.CHEF_CLIENT)
    cache_path = _platform_command(Operation.CACHE_PATH)
    read_chef_report = _platform_command(Operation.READ_CHEF_REPORT)
    delete_chef_report = _platform_command(Operation.DELETE_CHEF_REPORT)
    tempdir = _platform_command(Operation.TEMPDIR)
    delete_folder = _platform_command(Operation.DELETE_FOLDER)

    def run(self, notification_handler: Optional[NotificationHandler] = None) -> None:
        """Perform the action inside a timed capture

        A failure in ``perform_action`` is reported through ``notify("error", e)``
        and kept until the capture has finished recording, then raised here.

        Args:
            notification_handler: Optional callable receiving ``(event, args)``

        Raises:
            Exception: whatever ``perform_action`` raised
        """
        self.notification_handler = notification_handler
        telemeter = self.telemeter or get_telemeter()

        with telemeter.timed_action_capture(self) as capture:
            outcome = self._execute()
            if not outcome.succeeded:
                self.error = outcome.error
                capture.fail(outcome.error)

        if not outcome.succeeded:
            raise outcome.error

    def _execute(self) -> ActionOutcome:
        try:
            self.perform_action()
        except Exception as e:
            # The caller needs a chance to react before the capture is torn down
            self.notify("error", e)
            return ActionOutcome.failure(e)
        return ActionOutcome.success()

    def name(self) -> str:
        """Unqualified class name of the concrete action"""
        return type(self).__name__

    def perform_action(self) -> None:
        raise ActionNotImplemented(self.name(), "perform_action")

    def notify(self, event: str, *args: Any) -> None:
        """Send ``(event, args)`` to the registered notification handler"""
        if self.notification_handler is None:
            return
        logger.debug(f"[{type(self).__name__}] Action: {event}, Action Data: {list(args)}")
        self.notification_handler(event, args)

    @property
    def family(self) -> OSFamily:
        """OS family of the target host, resolved once per action

        Raises:
            AttributeError: the action has no target host
        """
        if self._family is None:
            self._family = OSFamily.from_platform(self.target_host.platform_family())
        return self._family

    def escape_windows_path(self, path: str) -> str:
        """Convert ``\\`` separators to ``/`` on Windows targets

        Path handling in Python and in chef-client copes with forward slashes
        on Windows, while mixed separators break joins.
        """
        if self.family is OSFamily.WINDOWS:
            return path.replace("\\", "/")
        return path

    def remote_tempdir(self) -> str:
        """Expand the target's temp directory reference into a concrete path

        Falls back to /tmp on hosts where $TMPDIR is unset.
        """
        if self.family is OSFamily.WINDOWS:
            command = f"cmd /c echo {self.tempdir}"
        else:
            command = f"echo {self.tempdir}"
        _, stdout, _ = self.target_host.run_command_checked(command)
        path = self.escape_windows_path(stdout.strip())
        return path or "/tmp"

    def run_chef(self, working_dir: str, config_file: str, policy: str) -> str:
        """Build the command that runs chef-client in local mode from ``working_dir``

        chef-client only treats the policy as a local file when given a path
        inside the working directory, otherwise it tries to download it.

        Args:
            working_dir: Remote directory holding the config and policy
            config_file: Config file name relative to ``working_dir``
            policy: Policy archive name relative to ``working_dir``

        Returns:
            A single command string for one remote round trip
        """
        config_path = _join(working_dir, config_file)
        policy_path = _join(working_dir, policy)
        client = f"chef-client -z --config {config_path} --recipe-url {policy_path}"

        if self.family is OSFamily.WINDOWS:
            # Out-Null blocks until chef-client exits; leaving working_dir
            # releases the lock so it can be deleted afterwards.
            return (
                f"Set-Location -Path {working_dir}; "
                f"{client} | Out-Null; "
                "Set-Location C:/; "
                "exit $LASTEXITCODE"
            )
        # cd is a shell builtin
        return f"bash -c 'cd {working_dir}; {client}'"


def _join(directory: str, name: str) -> str:
    return f"{directory.rstrip('/')}/{name}"
