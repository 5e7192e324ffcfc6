"""Remote host description shared by the transport modules"""

from typing import Optional


class RemoteHost:
    """Represents one remote testing host"""

    def __init__(self, host: str, user: Optional[str] = None, port: int = 22):
        """Initialize remote host

        Args:
            host: Hostname or IP address (can be SSH config alias)
            user: Username for the remote login (None leaves it to ssh)
            port: SSH port (default: 22), only used by the paramiko probe
        """
        self.host = host
        self.user = user
        self.port = port

    @property
    def userhost(self) -> str:
        """The `user@host` string passed to ssh and rsync"""
        return f"{self.user}@{self.host}" if self.user else self.host

    def __repr__(self) -> str:
        return f"RemoteHost({self.userhost!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, RemoteHost):
            return NotImplemented
        return (self.host, self.user, self.port) == (other.host, other.user, other.port)

    def __hash__(self) -> int:
        return hash((self.host, self.user, self.port))
