"""Pytest configuration and shared fixtures"""

import os
import stat
import tempfile

import pytest
import yaml
from unittest.mock import MagicMock

from farmout.core.config import Config


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield os.path.realpath(tmpdir)


@pytest.fixture
def local_root(temp_dir):
    """Local testing root with a t/ directory inside"""
    root = os.path.join(temp_dir, "checkout")
    os.makedirs(os.path.join(root, "t"))
    return root


@pytest.fixture
def fake_ssh(temp_dir):
    """An executable standing in for the ssh binary"""
    path = os.path.join(temp_dir, "ssh")
    with open(path, "w") as f:
        f.write("#!/bin/sh\nexit 0\n")
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def sample_config_data(local_root, fake_ssh):
    """Sample configuration data for testing"""
    return {
        "user": "tester",
        "host": ["h1", "h2"],
        "root": "/srv/remote-test",
        "local": local_root,
        "perl": "/usr/bin/python3",
        "ssh": fake_ssh,
        "ssh_args": "-x -S ~/.ssh/master-%r@%h:%p",
        "master": 1,
    }


@pytest.fixture
def write_config(temp_dir):
    """Write config data as YAML and return a Config for it"""
    def _write(data, name="remote_test.yaml"):
        path = os.path.join(temp_dir, name)
        with open(path, "w") as f:
            yaml.dump(data, f)
        return Config(path)

    return _write


@pytest.fixture
def config(write_config, sample_config_data):
    """Loaded Config built from sample_config_data"""
    return write_config(sample_config_data).load()


@pytest.fixture
def mock_pool():
    """Mock SSH master pool"""
    pool = MagicMock()
    pool.rsh.return_value = "/usr/bin/ssh -x -S ~/.ssh/master-%r@%h:%p"
    return pool


@pytest.fixture
def completed():
    """Factory for subprocess.run results"""
    def _completed(returncode=0, stdout="", stderr=""):
        result = MagicMock()
        result.returncode = returncode
        result.stdout = stdout
        result.stderr = stderr
        return result

    return _completed
