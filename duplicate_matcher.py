#!/usr/bin/env python3
"""
Destination-side duplicate detection for IMAP copy.

Two messages are treated as the same when they share the internal date
(by day), the exact Date header and the exact Subject. Different messages
with identical date and subject are an accepted false positive.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional

from mail_message import Message


@dataclass(frozen=True)
class DuplicateQuery:
    """Search terms identifying an equivalent message at the destination."""

    on_date: Optional[date]
    header_date: Optional[str]
    subject: Optional[str]

    def to_criteria(self) -> List[Any]:
        criteria: List[Any] = []
        if self.on_date is not None:
            criteria += ['ON', self.on_date]

        if self.header_date is not None:
            criteria += ['HEADER', 'Date', self.header_date]
        else:
            criteria += ['NOT', 'HEADER', 'Date', '']

        if self.subject is not None:
            criteria += ['SUBJECT', self.subject]
        else:
            # HEADER Subject "" matches any message that has the header at all
            criteria += ['NOT', 'HEADER', 'Subject', '']
        return criteria

    @classmethod
    def for_message(cls, message: Message) -> "DuplicateQuery":
        on_date = message.internal_date.date() if message.internal_date else None
        return cls(
            on_date=on_date,
            header_date=message.headers.date,
            subject=message.headers.subject,
        )


class DuplicateMatcher:
    """Counts destination messages equivalent to a source message."""

    def __init__(self, channel, enabled: bool = True, logger: Optional[logging.Logger] = None):
        self.channel = channel
        self.enabled = enabled
        self.logger = logger or logging.getLogger(__name__)

    def matches(self, message: Message) -> int:
        """Return the number of destination hits. Always 0 when disabled."""
        if not self.enabled:
            return 0

        query = DuplicateQuery.for_message(message)
        hits = self.channel.search(query.to_criteria())
        self.logger.debug(f"Found {len(hits)} matches on dest for uid {message.identifier}")
        return len(hits)
