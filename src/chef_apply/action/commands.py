"""Platform-specific command strings used by actions

Every operation resolves to one literal string per OS family. Windows targets
are driven through PowerShell, everything else through a POSIX shell.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping


class OSFamily(Enum):
    """Coarse platform classification that drives command selection"""

    WINDOWS = "windows"
    OTHER = "other"

    @classmethod
    def from_platform(cls, platform_family: str) -> "OSFamily":
        """Map a host's reported platform family to an OSFamily

        Only the exact string "windows" selects WINDOWS.
        """
        if platform_family == cls.WINDOWS.value:
            return cls.WINDOWS
        return cls.OTHER


class Operation(Enum):
    """Logical operations that have a platform-specific command"""

    CHEF_CLIENT = "chef_client"
    CACHE_PATH = "cache_path"
    READ_CHEF_REPORT = "read_chef_report"
    DELETE_CHEF_REPORT = "delete_chef_report"
    TEMPDIR = "tempdir"
    DELETE_FOLDER = "delete_folder"


WINDOWS_RUN_REPORT = "$env:APPDATA/chef-workstation/cache/run-report.json"
OTHER_RUN_REPORT = "/var/chef-workstation/cache/run-report.json"

PLATFORM_COMMANDS: Mapping[Operation, Mapping[OSFamily, str]] = MappingProxyType({
    Operation.CHEF_CLIENT: MappingProxyType({
        OSFamily.WINDOWS: "cmd /c C:/opscode/chef/bin/chef-client",
        OSFamily.OTHER: "/opt/chef/bin/chef-client",
    }),
    Operation.CACHE_PATH: MappingProxyType({
        OSFamily.WINDOWS: "$env:APPDATA/chef-workstation",
        OSFamily.OTHER: "/var/chef-workstation",
    }),
    Operation.READ_CHEF_REPORT: MappingProxyType({
        OSFamily.WINDOWS: f"type {WINDOWS_RUN_REPORT}",
        OSFamily.OTHER: f"cat {OTHER_RUN_REPORT}",
    }),
    Operation.DELETE_CHEF_REPORT: MappingProxyType({
        OSFamily.WINDOWS: (
            f"If (Test-Path {WINDOWS_RUN_REPORT}){{ Remove-Item -Force -Path {WINDOWS_RUN_REPORT} }}"
        ),
        OSFamily.OTHER: f"rm -f {OTHER_RUN_REPORT}",
    }),
    Operation.TEMPDIR: MappingProxyType({
        OSFamily.WINDOWS: "%TEMP%",
        OSFamily.OTHER: "$TMPDIR",
    }),
    Operation.DELETE_FOLDER: MappingProxyType({
        OSFamily.WINDOWS: "Remove-Item -Recurse -Force -Path",
        OSFamily.OTHER: "rm -rf",
    }),
})


def command_for(operation: Operation, family: OSFamily) -> str:
    """Return the command string for ``operation`` on ``family``

    Args:
        operation: Logical operation
        family: Target OS family

    Returns:
        Literal command or path expression

    Raises:
        KeyError: operation is not an Operation member
    """
    return PLATFORM_COMMANDS[operation][family]
