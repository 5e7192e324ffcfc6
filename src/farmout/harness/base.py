"""Minimal test harness with callback hooks"""

import logging
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

CALLBACKS = ("before_runtests", "parser_args")


class Invocation:
    """One test run: `interpreter switches... test`"""

    def __init__(self, test: str, interpreter: str, switches: Optional[List[str]] = None):
        self.test = test
        self.interpreter = interpreter
        self.switches = list(switches or [])

    @property
    def command(self) -> List[str]:
        return [self.interpreter] + self.switches + [self.test]


class TestResult:
    """Exit status and output of one test"""

    __test__ = False

    def __init__(self, test: str, returncode: int, output: str = ""):
        self.test = test
        self.returncode = returncode
        self.output = output

    @property
    def passed(self) -> bool:
        return self.returncode == 0


class Harness:
    """Runs test files as subprocesses, up to `jobs` at a time

    Two hooks can be registered with callback():

    - before_runtests(tests): called once before any test is spawned
    - parser_args(invocation): called for every test, from a worker thread,
      just before its process is spawned; may rewrite the invocation
    """

    def __init__(self, jobs: int = 1, interpreter: Optional[str] = None,
                 switches: Optional[List[str]] = None, timeout: Optional[float] = None):
        """Initialize harness

        Args:
            jobs: Number of tests run concurrently
            interpreter: Program used to run each test (default: this Python)
            switches: Arguments placed between interpreter and test path
            timeout: Per-test timeout in seconds (None waits forever)
        """
        self.jobs = jobs
        self.interpreter = interpreter or sys.executable
        self.switches = list(switches or [])
        self.timeout = timeout
        self.callbacks: Dict[str, List[Callable]] = {name: [] for name in CALLBACKS}

    def callback(self, name: str, fn: Callable) -> None:
        """Register fn to be called at hook `name`"""
        if name not in self.callbacks:
            raise ValueError(f"Unknown callback: {name}")
        self.callbacks[name].append(fn)

    def _fire(self, name: str, *args) -> None:
        for fn in self.callbacks[name]:
            fn(*args)

    def _run_one(self, test: str) -> TestResult:
        invocation = Invocation(test, self.interpreter, self.switches)
        self._fire("parser_args", invocation)
        logger.debug(f"Running: {' '.join(invocation.command)}")
        try:
            result = subprocess.run(
                invocation.command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"Test timed out: {test}")
            return TestResult(test, -1, "timed out")
        except OSError as e:
            logger.error(f"Could not start {test}: {e}")
            return TestResult(test, -1, str(e))
        return TestResult(test, result.returncode, result.stdout or "")

    def runtests(self, tests: List[str]) -> List[TestResult]:
        """Run every test and return results in input order"""
        self._fire("before_runtests", tests)
        if not tests:
            return []

        logger.info(f"Running {len(tests)} test(s) with {self.jobs} job(s)")
        with ThreadPoolExecutor(max_workers=max(1, self.jobs)) as executor:
            return list(executor.map(self._run_one, tests))
