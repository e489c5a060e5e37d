"""Remote persistence services."""

from optikan.remote.base import RemoteService, make_loader
from optikan.remote.memory import MemoryRemote

__all__ = ["MemoryRemote", "RemoteService", "make_loader"]
