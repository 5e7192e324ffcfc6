"""farmout - run a test suite on remote hosts"""

__version__ = "0.1.0"
