"""Clients for remote services."""
from __future__ import annotations

from .dip import DIPClient, DIPClientError
from .transport import ResilientTransport

__all__ = ["DIPClient", "DIPClientError", "ResilientTransport"]
