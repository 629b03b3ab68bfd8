#!/usr/bin/env python3
"""
Error types for the IMAP copy system.

Every failure is fatal for the run. Errors carry the source uid and the
pipeline stage they were raised in, when those are known.
"""

from typing import Any, Optional


class SyncError(Exception):
    """Base class for all IMAP copy failures."""

    def __init__(self, message: str, uid: Any = None, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.uid = uid
        self.stage = stage

    def annotate(self, uid: Any, stage: str) -> "SyncError":
        """Fill in uid and stage unless a lower layer already set them."""
        if self.uid is None:
            self.uid = uid
        if self.stage is None:
            self.stage = stage
        return self

    def __str__(self) -> str:
        context = []
        if self.stage:
            context.append(f"stage={self.stage}")
        if self.uid is not None:
            context.append(f"uid={self.uid}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class ConfigError(SyncError):
    """Malformed or missing configuration, or an unresolved required option."""


class ChannelConnectionError(SyncError):
    """The IMAP server could not be reached."""


class AuthError(ChannelConnectionError):
    """The IMAP server refused the credentials."""


class NotFoundError(SyncError):
    """A mailbox or message uid does not exist."""


class WriteError(SyncError):
    """A destination append failed."""


class LedgerError(WriteError):
    """The uid ledger could not be read or appended to."""
