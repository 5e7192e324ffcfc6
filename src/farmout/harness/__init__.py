"""Test harness adapters"""

from .base import Harness, Invocation, TestResult
from .remote import RemoteHarness

__all__ = ["Harness", "Invocation", "TestResult", "RemoteHarness"]
