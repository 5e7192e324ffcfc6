"""Harness that runs every test on a remote host"""

import logging
from typing import List, Optional

from farmout.core.config import Config
from farmout.core.dispatcher import Dispatcher
from farmout.core.sync import SyncEngine
from farmout.transport.ssh import DEFAULT_SETTLE_DELAY, SSHMasterPool
from .base import Harness

logger = logging.getLogger(__name__)


class RemoteHarness(Harness):
    """Mirrors the local root to the configured hosts and runs tests there

    Use as a context manager so master connections are closed on every
    exit path:

        with RemoteHarness(Config()) as harness:
            harness.runtests(["t/test_basic.py"])
    """

    def __init__(self, config: Config, jobs: int = 1, cwd: Optional[str] = None,
                 settle_delay: float = DEFAULT_SETTLE_DELAY, **kwargs):
        """Load configuration, validate, and register the remote hooks

        Args:
            config: Configuration store (loaded here if needed)
            jobs: Jobs per host
            cwd: Directory tests are run from (default: os.getcwd())
            settle_delay: Seconds to wait after starting master connections

        Raises:
            ConfigError: Configuration could not be loaded
            ValidationError: Startup checks failed
        """
        super().__init__(jobs=jobs, **kwargs)
        if config.data is None:
            config.load()
        self.config = config
        self.cwd = cwd

        self.dispatcher = Dispatcher(config)
        self.dispatcher.validate(cwd)

        self.pool = SSHMasterPool(config.ssh, config.ssh_args, master=config.master,
                                  settle_delay=settle_delay)
        self.sync = SyncEngine(config, self.pool)

        # Tests are started through ssh; the remote interpreter comes from the rewrite
        self.interpreter = config.ssh
        self.jobs = self.dispatcher.scale_jobs(jobs)

        self.callback("before_runtests", self._before_runtests)
        self.callback("parser_args", self._parser_args)

    def _before_runtests(self, tests: List[str]) -> None:
        self.dispatcher.remote_paths = self.sync.synchronize()

    def _parser_args(self, invocation) -> None:
        self.dispatcher.rewrite_invocation(invocation, self.cwd)

    def close(self) -> None:
        """Tear down master connections"""
        self.pool.close()

    def __enter__(self) -> "RemoteHarness":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
