"""Actions applied to target hosts"""

from .base import Action, ActionOutcome
from .commands import OSFamily, Operation, command_for
from .converge_target import ConvergeTarget
from .install_chef import InstallChef, install_chef_for

__all__ = [
    "Action",
    "ActionOutcome",
    "OSFamily",
    "Operation",
    "command_for",
    "ConvergeTarget",
    "InstallChef",
    "install_chef_for",
]
