"""chef-apply: apply chef actions to remote or local hosts"""

from .action import Action, ConvergeTarget, InstallChef, install_chef_for
from .config import Config
from .runner import ActionRunner

__all__ = ["Action", "ConvergeTarget", "InstallChef", "install_chef_for", "Config", "ActionRunner"]
