"""Configuration management"""

import getpass
import logging
import os
from typing import Any, Dict, List, Optional

import yaml

from farmout.errors import ConfigError
from farmout.transport.base import RemoteHost

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.remote_test"

# Keys understood in the configuration file; anything else is ignored
KNOWN_KEYS = ("user", "host", "root", "local", "perl", "ssh", "ssh_args", "master",
              "lib_env", "rsync")

TRUE_STRINGS = {"1", "true", "yes", "on"}


def default_config() -> Dict[str, Any]:
    """Configuration written on first use when no file exists

    Returns:
        Default config dict
    """
    user = getpass.getuser()
    return {
        "user": "tester",
        "host": "smoke-int",
        "root": f"/home/tester/remote-test/{user}/",
        "perl": "/usr/bin/python3",
        "local": os.path.expanduser("~/remote-test/"),
        "ssh": "/usr/bin/ssh",
        "ssh_args": ["-x", "-S", "~/.ssh/master-%r@%h:%p"],
        "master": True,
    }


def _with_slash(path: Optional[str]) -> str:
    if not path:
        return ""
    path = str(path)
    return path if path.endswith("/") else path + "/"


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


class Config:
    """Remote testing configuration, loaded from a YAML file"""

    def __init__(self, config_file: Optional[str] = None):
        """Create a configuration store

        The file is not read until load() or get() is called.

        Args:
            config_file: Path to configuration YAML file (default: ~/.remote_test)
        """
        self.config_file = os.path.expanduser(config_file or DEFAULT_CONFIG_PATH)
        self.data: Optional[Dict[str, Any]] = None

    def _write_default(self) -> None:
        """Write the default configuration to config_file"""
        logger.info(f"No configuration at {self.config_file}, writing defaults")
        try:
            with open(self.config_file, "w") as f:
                yaml.safe_dump(default_config(), f, default_flow_style=False)
        except OSError as e:
            raise ConfigError(f"Cannot write default configuration to {self.config_file}: {e}")

    def load(self) -> "Config":
        """Load and canonicalize the configuration file

        Writes and uses the default configuration if the file does not exist.

        Returns:
            self, for chaining

        Raises:
            ConfigError: File is unreadable, not valid YAML, or not a mapping
        """
        if not os.path.exists(self.config_file):
            self._write_default()

        try:
            with open(self.config_file, "r") as f:
                raw = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read configuration file {self.config_file}: {e}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse configuration file {self.config_file}: {e}")

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Configuration file {self.config_file} must contain a mapping")

        self.data = self._normalize(raw)
        logger.info(f"Loaded configuration from {self.config_file}")
        return self

    @staticmethod
    def _normalize(raw: Dict[str, Any]) -> Dict[str, Any]:
        """Bring a raw config mapping into canonical shape"""
        data = {key: raw.get(key) for key in KNOWN_KEYS}

        # Paths must end with slashes, for rsync
        data["root"] = _with_slash(data["root"])
        data["local"] = _with_slash(os.path.expanduser(str(data["local"])) if data["local"] else None)

        host = data["host"]
        if host is None:
            data["host"] = []
        elif isinstance(host, (list, tuple)):
            data["host"] = [str(h) for h in host]
        else:
            data["host"] = [str(host)]

        ssh_args = data["ssh_args"]
        if ssh_args is None:
            data["ssh_args"] = []
        elif isinstance(ssh_args, (list, tuple)):
            data["ssh_args"] = [str(arg) for arg in ssh_args]
        else:
            data["ssh_args"] = str(ssh_args).split()

        data["perl"] = data["perl"] or "python3"
        data["ssh"] = os.path.expanduser(str(data["ssh"] or "ssh"))
        data["master"] = _as_bool(data["master"])
        data["lib_env"] = data["lib_env"] or "PYTHONPATH"
        data["rsync"] = data["rsync"] or "rsync"
        return data

    def get(self, key: str) -> Any:
        """Return the normalized value for key, loading the file if needed

        Args:
            key: Configuration key (e.g. "host", "root")

        Returns:
            Value, or None for unknown keys
        """
        if self.data is None:
            self.load()
        return self.data.get(key)

    def userhost(self, host: Optional[str] = None) -> str:
        """Return a user@host string

        Args:
            host: Host name (default: first configured host)

        Returns:
            "user@host", or just "host" when no user is configured
        """
        if host is None:
            host = self.hosts[0]
        return RemoteHost(host, self.user).userhost

    @property
    def user(self) -> Optional[str]:
        return self.get("user")

    @property
    def hosts(self) -> List[str]:
        return self.get("host")

    @property
    def remote_root(self) -> str:
        return self.get("root")

    @property
    def local_root(self) -> str:
        return self.get("local")

    @property
    def remote_executable(self) -> str:
        """Interpreter run on the remote host (the `perl` key)"""
        return self.get("perl")

    @property
    def ssh(self) -> str:
        return self.get("ssh")

    @property
    def ssh_args(self) -> List[str]:
        return self.get("ssh_args")

    @property
    def master(self) -> bool:
        """Whether OpenSSH master connections are used"""
        return self.get("master")

    @property
    def lib_env(self) -> str:
        """Name of the library search path variable rewritten for remote runs"""
        return self.get("lib_env")

    @property
    def rsync(self) -> str:
        return self.get("rsync")

    @property
    def targets(self) -> List[RemoteHost]:
        """Configured hosts as RemoteHost instances, in configuration order"""
        return [RemoteHost(host, self.user) for host in self.hosts]

    def as_dict(self) -> Dict[str, Any]:
        """Return a copy of the normalized configuration"""
        if self.data is None:
            self.load()
        return dict(self.data)
