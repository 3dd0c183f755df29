"""Configuration management"""

import logging
import os
import re
from typing import List, Dict, Any, Optional

import yaml

from chef_apply.transport.base import RemoteHost

logger = logging.getLogger(__name__)

DEFAULT_SESSION_FILE = "~/.chef-apply/telemetry.yml"

_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


class Config:
    """Configuration loaded from a chef-apply YAML file"""

    def __init__(self, config_file: str):
        """Load configuration from YAML file

        Args:
            config_file: Path to configuration YAML file
        """
        self.config_file = config_file
        self.data: Dict[str, Any] = {}
        self.env: Dict[str, str] = {}
        self.load()

    def load(self) -> None:
        """Load configuration from file and expand ${VAR} references"""
        try:
            with open(self.config_file, "r") as f:
                self.data = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {self.config_file}")
        except FileNotFoundError:
            logger.error(f"Configuration file not found: {self.config_file}")
            raise
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse configuration file: {e}")
            raise

        self.env = dict(os.environ)
        self.env.update({str(k): str(v) for k, v in (self.data.get("env") or {}).items()})
        try:
            self.data = self._expand(self.data)
        except ValueError as e:
            logger.error(f"Environment variable expansion failed: {e}")
            raise
        logger.debug("Applied environment variable expansion to configuration")

    def _expand(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: self._expand(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._expand(v) for v in value]
        if isinstance(value, str):
            return _VAR_PATTERN.sub(self._substitute, value)
        return value

    def _substitute(self, match: "re.Match") -> str:
        name = match.group(1) or match.group(2)
        if name not in self.env:
            raise ValueError(f"Undefined environment variable: {name}")
        return self.env[name]

    @property
    def transport_options(self) -> Dict[str, Any]:
        """Global SSH transport options"""
        return (self.data.get("transport") or {}).get("options") or {}

    @property
    def targets(self) -> List[RemoteHost]:
        """Remote targets in configuration order"""
        defaults = self.transport_options
        targets = []

        for target in self.data.get("targets") or []:
            if "host" not in target:
                logger.warning("Target missing 'host' field, skipping")
                continue

            ssh_options = dict(target.get("ssh_options") or {})
            user = target.get("user") or ssh_options.get("user") or defaults.get("user", "root")

            targets.append(RemoteHost(
                host=target["host"],
                user=user,
                port=target.get("port", 22),
                ssh_options=ssh_options,
                platform_family=target.get("platform_family"),
            ))

        return targets

    @property
    def install_options(self) -> Dict[str, Any]:
        """Options for installing chef-client"""
        options = self.data.get("install") or {}
        return {
            "local_package": options.get("local_package"),
            "force_install": bool(options.get("force", False)),
        }

    @property
    def converge_options(self) -> Dict[str, Any]:
        """Options for converging targets"""
        options = self.data.get("converge") or {}
        return {
            "local_config": options.get("local_config"),
            "local_policy": options.get("local_policy"),
        }

    @property
    def telemetry_enabled(self) -> bool:
        return bool((self.data.get("telemetry") or {}).get("enabled", True))

    @property
    def telemetry_session_file(self) -> str:
        return (self.data.get("telemetry") or {}).get("session_file", DEFAULT_SESSION_FILE)

    def validate(self, action: Optional[str] = None) -> bool:
        """Validate configuration

        Args:
            action: "install" or "converge" to also check that action's options

        Returns:
            True if configuration is valid
        """
        if not self.targets:
            logger.error("No targets specified")
            return False

        if action == "install":
            package = self.install_options["local_package"]
            if not package:
                logger.error("install.local_package is required")
                return False
            if not os.path.exists(package):
                logger.error(f"Installer package not found: {package}")
                return False

        if action == "converge":
            for key, path in self.converge_options.items():
                if not path:
                    logger.error(f"converge.{key} is required")
                    return False
                if not os.path.exists(path):
                    logger.error(f"converge.{key} not found: {path}")
                    return False

        return True
