"""Round-robin dispatch of test invocations to remote hosts"""

import logging
import os
import shlex
import shutil
import threading
from typing import List, Optional, Sequence

from farmout.core.config import Config
from farmout.errors import ValidationError

logger = logging.getLogger(__name__)


def remote_quote(path: str) -> str:
    """Quote a word for the remote shell, leaving a leading ~/ expandable"""
    if path == "~":
        return path
    if path.startswith("~/"):
        rest = path[2:]
        return "~/" + shlex.quote(rest) if rest else "~/"
    return shlex.quote(path)


class Dispatcher:
    """Rewrites each test invocation to run on the next host over ssh"""

    def __init__(self, config: Config):
        """Initialize dispatcher

        Args:
            config: Loaded configuration
        """
        self.config = config
        self.remote_paths: Sequence[str] = ()
        self._counter = 0
        self._counter_lock = threading.Lock()

    def validate(self, cwd: Optional[str] = None) -> None:
        """Check that remote dispatch can work from cwd

        Args:
            cwd: Directory tests are run from (default: os.getcwd())

        Raises:
            ValidationError: Local root missing, cwd outside of it, no usable
                host, or ssh binary unusable
        """
        local = self.config.local_root
        if not local or not os.path.isdir(local):
            raise ValidationError(f"Local testing root ({local}) doesn't exist")

        change = os.path.relpath(cwd or os.getcwd(), local)
        if change == ".." or change.startswith(".." + os.sep):
            raise ValidationError(f"Current path isn't inside of local testing root ({local})")

        hosts = self.config.hosts
        if not hosts or not all(h.strip() for h in hosts):
            raise ValidationError("No usable remote host configured")

        if not self.config.remote_root:
            raise ValidationError("Remote testing root is not configured")

        ssh = self.config.ssh
        if shutil.which(ssh) is None:
            raise ValidationError(f"ssh binary ({ssh}) is missing or not executable")

        logger.debug(f"Validated local root {local} for {len(hosts)} host(s)")

    def relative_path(self, cwd: Optional[str] = None) -> str:
        """Path of cwd relative to the local root; empty at the root itself"""
        change = os.path.relpath(cwd or os.getcwd(), self.config.local_root)
        return "" if change == os.curdir else change

    def scale_jobs(self, jobs: int) -> int:
        """Return the job count to use when every host runs one job at a time"""
        return max(1, jobs) * len(self.config.hosts)

    def select_host(self) -> str:
        """Return the next host in round-robin order"""
        hosts = self.config.hosts
        with self._counter_lock:
            host = hosts[self._counter % len(hosts)]
            self._counter += 1
        return host

    def remote_arg(self, arg: str) -> str:
        """Move a path (or -I<path> switch) under the local root to the remote root"""
        local = self.config.local_root
        remote = self.config.remote_root
        if arg.startswith(local):
            return remote + arg[len(local):]
        if arg.startswith("-I") and arg[2:].startswith(local):
            return "-I" + remote + arg[2 + len(local):]
        return arg

    def remote_command(self, userhost: str, switches: List[str], cwd: Optional[str] = None) -> List[str]:
        """Build the ssh arguments that run the interpreter remotely

        The ssh binary itself is not included; the harness runs it as the
        interpreter. Every word is quoted for the remote shell since ssh joins
        its arguments with spaces.
        """
        lib_env = self.config.lib_env
        remote_dir = self.config.remote_root + self.relative_path(cwd)
        command = list(self.config.ssh_args) + [userhost, "cd", remote_quote(remote_dir), "&&"]
        if self.remote_paths:
            remote_lib = ":".join(remote_quote(path) for path in self.remote_paths)
            command.append(f"{lib_env}={remote_lib}:${lib_env}")
        command.append(remote_quote(self.config.remote_executable))
        command.extend(remote_quote(self.remote_arg(arg)) for arg in switches)
        return command

    def rewrite_invocation(self, invocation, cwd: Optional[str] = None) -> None:
        """Rewrite an invocation in place so it runs on the next host

        Args:
            invocation: Object with `switches` (list) and `test` attributes
            cwd: Directory the test is run from (default: os.getcwd())
        """
        host = self.select_host()
        userhost = self.config.userhost(host)
        invocation.switches = self.remote_command(userhost, invocation.switches, cwd)
        invocation.test = remote_quote(self.remote_arg(invocation.test))
        logger.debug(f"Dispatching {invocation.test} to {userhost}")
