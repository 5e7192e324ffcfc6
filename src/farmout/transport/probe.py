"""Reachability checks for remote testing hosts, using paramiko"""

import logging
import os
import shlex
from typing import Any, Dict, Optional, Tuple

import paramiko
from paramiko import SSHClient, AutoAddPolicy

from .base import RemoteHost

logger = logging.getLogger(__name__)


class HostProbe:
    """Logs in to a host and checks the remote root and interpreter"""

    def __init__(self, ssh_config: Optional[str] = None, timeout: float = 10):
        """Initialize probe

        Args:
            ssh_config: Path to SSH config file (default: ~/.ssh/config if present)
            timeout: Connection timeout in seconds
        """
        self.timeout = timeout
        self.ssh_config_parser = None
        self._load_ssh_config(ssh_config)

    def _load_ssh_config(self, ssh_config_path: Optional[str] = None) -> None:
        """Load SSH config file so host aliases resolve like they do for ssh"""
        ssh_config_path = os.path.expanduser(ssh_config_path or "~/.ssh/config")
        if not os.path.exists(ssh_config_path):
            logger.debug(f"SSH config not found at {ssh_config_path}")
            return
        try:
            self.ssh_config_parser = paramiko.SSHConfig.from_path(ssh_config_path)
            logger.debug(f"Loaded SSH config from {ssh_config_path}")
        except Exception as e:
            logger.warning(f"Failed to load SSH config from {ssh_config_path}: {e}")
            self.ssh_config_parser = None

    def connect_config(self, remote_host: RemoteHost) -> Dict[str, Any]:
        """Merge SSH config with the configured user

        Args:
            remote_host: Host to connect to

        Returns:
            Keyword arguments for paramiko SSHClient.connect()
        """
        config: Dict[str, Any] = {
            "hostname": remote_host.host,
            "port": remote_host.port,
        }
        if self.ssh_config_parser:
            ssh_config = self.ssh_config_parser.lookup(remote_host.host)
            config["hostname"] = ssh_config.get("hostname", remote_host.host)
            config["port"] = int(ssh_config.get("port", remote_host.port))
            if ssh_config.get("user"):
                config["username"] = ssh_config["user"]
            if ssh_config.get("identityfile"):
                config["key_filename"] = ssh_config["identityfile"]

        # The user from the remote test configuration wins over SSH config
        if remote_host.user:
            config["username"] = remote_host.user

        config["timeout"] = self.timeout
        config["allow_agent"] = True
        config["look_for_keys"] = True
        return config

    def probe(self, remote_host: RemoteHost, remote_root: str, interpreter: str) -> Tuple[bool, str]:
        """Check that the host accepts a login and has the root and interpreter

        Args:
            remote_host: Host to check
            remote_root: Remote testing root (must exist)
            interpreter: Remote interpreter (must run `--version`)

        Returns:
            Tuple of (ok, message)
        """
        command = f"test -d {shlex.quote(remote_root)} && {shlex.quote(interpreter)} --version"
        client = SSHClient()
        client.set_missing_host_key_policy(AutoAddPolicy())
        try:
            client.connect(**self.connect_config(remote_host))
            logger.debug(f"Executing on {remote_host.host}: {command}")
            stdin, stdout, stderr = client.exec_command(command, timeout=self.timeout)
            return_code = stdout.channel.recv_exit_status()
            stdout_str = stdout.read().decode("utf-8", errors="replace").strip()
            stderr_str = stderr.read().decode("utf-8", errors="replace").strip()
        except Exception as e:
            logger.error(f"Failed to reach {remote_host.userhost}: {e}")
            return False, str(e)
        finally:
            client.close()

        if return_code != 0:
            message = stderr_str or f"{remote_root} missing or {interpreter} not runnable"
            return False, message
        # Older Pythons print their version on stderr
        return True, stdout_str or stderr_str
