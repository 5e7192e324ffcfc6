"""Mirror the local testing root to every remote host"""

import logging
import os
import re
import subprocess
from typing import Mapping, Optional, Tuple

from farmout.core.config import Config
from farmout.errors import SyncError
from farmout.transport.ssh import SSHMasterPool

logger = logging.getLogger(__name__)

RSYNC_FLAGS = ["-avz", "--delete"]

# A search path starting with several relative "lib" entries keeps only one
LEADING_LIB = re.compile(r"^(lib:)+")


class SyncEngine:
    """rsyncs the local root to each host and computes the remote search path"""

    def __init__(self, config: Config, pool: SSHMasterPool):
        """Initialize the sync engine

        Args:
            config: Loaded configuration
            pool: Master connection pool shared with the dispatcher
        """
        self.config = config
        self.pool = pool

    def rsync_command(self, userhost: str):
        """Build the rsync command line mirroring local root to userhost"""
        return (
            [self.config.rsync]
            + RSYNC_FLAGS
            + ["--rsh", self.pool.rsh(), self.config.local_root, f"{userhost}:{self.config.remote_root}"]
        )

    def _mirror(self, userhost: str) -> None:
        cmd = self.rsync_command(userhost)
        logger.info(f"Syncing {self.config.local_root} to {userhost}:{self.config.remote_root}")
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise SyncError(f"rsync to {userhost} failed: {e}")

        if result.stdout:
            logger.debug(f"rsync output for {userhost}:\n{result.stdout}")
        if result.returncode != 0:
            logger.error(f"rsync to {userhost} exited with {result.returncode}: {result.stderr.strip()}")
            raise SyncError(f"rsync to {userhost} failed (exit code {result.returncode})")
        logger.info(f"Synced {userhost}")

    def remote_lib_path(self, value: Optional[str]) -> Tuple[str, ...]:
        """Rewrite a colon separated search path for use on the remote hosts

        Entries under the local root are moved under the remote root; all
        other entries pass through unchanged.

        Args:
            value: Local search path (may be None or empty)

        Returns:
            Rewritten entries, in order
        """
        if not value:
            return ()
        value = LEADING_LIB.sub("lib:", value)
        local = self.config.local_root
        remote = self.config.remote_root
        entries = []
        for entry in value.split(":"):
            if local and entry.startswith(local):
                entry = remote + entry[len(local):]
            entries.append(entry)
        return tuple(entries)

    def synchronize(self, environ: Optional[Mapping[str, str]] = None) -> Tuple[str, ...]:
        """Start master connections, mirror every host, rewrite the search path

        Hosts are synced in configuration order; the first failure stops the
        run and later hosts are not attempted.

        Args:
            environ: Environment to read the search path from (default: os.environ)

        Returns:
            Search path entries to export on the remote hosts

        Raises:
            RemoteConnectionError: A master connection could not be started
            SyncError: rsync failed for a host
        """
        targets = self.config.targets
        self.pool.start_all(targets)

        for target in targets:
            self._mirror(target.userhost)

        if environ is None:
            environ = os.environ
        paths = self.remote_lib_path(environ.get(self.config.lib_env))
        if paths:
            logger.debug(f"Remote {self.config.lib_env}: {':'.join(paths)}")
        return paths
