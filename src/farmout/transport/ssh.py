"""OpenSSH master connection pool"""

import logging
import subprocess
import threading
import time
from typing import Dict, Iterable, List, Optional

from farmout.errors import RemoteConnectionError
from .base import RemoteHost

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = 2.0


class SSHMasterPool:
    """Long-lived `ssh -M` connections, one per remote host

    Later ssh and rsync invocations made with the same ssh_args (which should
    include a `-S` control path) reuse these connections instead of
    authenticating again.
    """

    def __init__(self, ssh: str, ssh_args: Optional[List[str]] = None, master: bool = True,
                 settle_delay: float = DEFAULT_SETTLE_DELAY):
        """Initialize the pool

        Args:
            ssh: Path to the local ssh binary
            ssh_args: Extra arguments passed to every ssh invocation
            master: Whether master connections are used at all
            settle_delay: Seconds to wait after spawning masters
        """
        self.ssh = ssh
        self.ssh_args = list(ssh_args or [])
        self.master = master
        self.settle_delay = settle_delay
        self.masters: Dict[str, subprocess.Popen] = {}
        self.masters_lock = threading.Lock()
        self._started = False
        self._closed = False

    def ssh_command(self) -> List[str]:
        """Return the ssh program followed by the configured arguments"""
        return [self.ssh] + self.ssh_args

    def rsh(self) -> str:
        """Return the remote shell string handed to `rsync --rsh`"""
        return " ".join(self.ssh_command())

    def start_all(self, hosts: Iterable[RemoteHost]) -> None:
        """Start master connections for every host, if enabled

        Authentication problems are not detected here; they show up when the
        first rsync or test runs over the connection.

        Args:
            hosts: Hosts to connect to

        Raises:
            RemoteConnectionError: An ssh process could not be spawned
        """
        if not self.master:
            logger.debug("Master connections disabled")
            return
        if self._started:
            return

        with self.masters_lock:
            for host in hosts:
                userhost = host.userhost
                if userhost in self.masters:
                    continue
                cmd = self.ssh_command() + ["-M", "-N", userhost]
                logger.debug(f"Starting master connection: {' '.join(cmd)}")
                try:
                    self.masters[userhost] = subprocess.Popen(cmd, stdin=subprocess.DEVNULL)
                except OSError as e:
                    raise RemoteConnectionError(f"Starting master SSH connection to {userhost} failed: {e}")
                logger.info(f"Started master connection to {userhost}")
            self._started = True

        if self.masters:
            time.sleep(self.settle_delay)

    def get(self, userhost: str) -> Optional[subprocess.Popen]:
        """Return the master process for userhost, if one was started"""
        with self.masters_lock:
            return self.masters.get(userhost)

    def remove(self, userhost: str) -> Optional[subprocess.Popen]:
        """Forget the master process for userhost without stopping it"""
        with self.masters_lock:
            return self.masters.pop(userhost, None)

    def close(self) -> None:
        """Ask every live master connection to exit

        Runs once; later calls do nothing. Failures are logged per host and
        never raised.
        """
        with self.masters_lock:
            if self._closed:
                return
            self._closed = True
            masters = list(self.masters.items())
            self.masters.clear()

        for userhost, proc in masters:
            try:
                if proc.poll() is not None:
                    logger.debug(f"Master connection to {userhost} already exited")
                    continue
                result = subprocess.run(
                    self.ssh_command() + ["-O", "exit", userhost],
                    capture_output=True,
                    text=True,
                    check=False,
                    timeout=30,
                )
                if result.returncode != 0:
                    logger.warning(f"Closing master connection to {userhost} failed: {result.stderr.strip()}")
                else:
                    logger.info(f"Closed master connection to {userhost}")
                proc.wait(timeout=10)
            except Exception as e:
                logger.warning(f"Error closing master connection to {userhost}: {e}")
