"""Optimistic sync engine for ordered kanban collections."""

from optikan.session import Session
from optikan.transaction import Failure, Success, Transaction

__version__ = "0.1.0"

__all__ = ["Failure", "Session", "Success", "Transaction", "__version__"]
