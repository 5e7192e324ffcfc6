"""Exceptions raised by farmout"""


class FarmoutError(Exception):
    """Base class for all farmout errors"""


class ConfigError(FarmoutError):
    """Configuration file is unreadable or malformed"""


class ValidationError(FarmoutError):
    """Startup checks failed (local root, current directory, hosts, ssh binary)"""


class RemoteConnectionError(FarmoutError):
    """A background master connection could not be started"""


class SyncError(FarmoutError):
    """Mirroring the local root to a host failed"""
