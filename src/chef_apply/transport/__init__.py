"""Transports used to reach target hosts"""

from .base import BaseTransport, RemoteHost
from .ssh import SSHTransport

__all__ = ["BaseTransport", "RemoteHost", "SSHTransport"]
