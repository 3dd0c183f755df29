"""Actions that install chef-client on a target"""

from chef_apply.action.commands import OSFamily
from .base import InstallChef
from .linux import Linux
from .windows import Windows


def install_chef_for(target_host, **config) -> InstallChef:
    """Build the installer action matching ``target_host``'s platform"""
    if OSFamily.from_platform(target_host.platform_family()) is OSFamily.WINDOWS:
        return Windows(dict(config, target_host=target_host))
    return Linux(dict(config, target_host=target_host))


__all__ = ["InstallChef", "Linux", "Windows", "install_chef_for"]
