#!/usr/bin/env python3
"""
Message records and search criteria for the IMAP copy system.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, FrozenSet, List, Optional


@dataclass(frozen=True)
class MessageHeaders:
    """The headers the duplicate check needs. Absent headers are None."""

    date: Optional[str] = None
    subject: Optional[str] = None


@dataclass(frozen=True)
class Message:
    """A message fetched from the source mailbox."""

    identifier: Any
    headers: MessageHeaders
    internal_date: Optional[datetime]
    body: bytes
    flags: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class SyncCriteria:
    """Selects the candidate messages in the source mailbox."""

    since: Optional[date] = None

    def to_imap(self) -> List[Any]:
        if self.since is None:
            return ['ALL']
        return ['SINCE', self.since]

    def describe(self) -> str:
        if self.since is None:
            return "all messages"
        return f"messages since {self.since.isoformat()}"
