"""Core configuration, synchronization and dispatch"""

from .config import Config
from .dispatcher import Dispatcher
from .sync import SyncEngine

__all__ = ["Config", "Dispatcher", "SyncEngine"]
