#!/usr/bin/env python3
"""
Append-only ledger of source uids already processed by IMAP copy.

The file holds a comma-terminated list of uids, e.g. ``101,102,105,``.
It is never rewritten; a run only appends to it.
"""

import os
import logging
from typing import Any, List, Optional

from errors import LedgerError


def _parse_token(token: str) -> Any:
    if token.isdigit():
        return int(token)
    return token


class UidLedger:
    """Persisted record of processed source uids."""

    def __init__(self, ledger_file: str = "uidsync.log", logger: Optional[logging.Logger] = None):
        self.ledger_file = ledger_file
        self.logger = logger or logging.getLogger(__name__)
        self._known: List[Any] = []
        self._index = set()

    def load(self) -> List[Any]:
        """Load the known uids. A missing file is an empty ledger."""
        self.logger.info(f"Opening uid file '{self.ledger_file}'")
        try:
            with open(self.ledger_file, 'r', encoding='utf-8') as file:
                content = file.read()
        except FileNotFoundError:
            self.logger.info("No uid file yet, first time sync")
            self._known = []
            self._index = set()
            return []
        except OSError as e:
            raise LedgerError(f"Could not read uid file '{self.ledger_file}': {e}", stage="ledger")

        known = []
        index = set()
        for token in content.split(','):
            token = token.strip()
            if not token:
                continue
            uid = _parse_token(token)
            if uid not in index:
                index.add(uid)
                known.append(uid)

        self._known = known
        self._index = index
        self.logger.info(f"I already know {len(known)} messages")
        return list(known)

    def append(self, uid: Any) -> None:
        """Durably record uid. Once this returns the entry is final."""
        try:
            with open(self.ledger_file, 'a', encoding='utf-8') as file:
                file.write(f"{uid},")
                file.flush()
                os.fsync(file.fileno())
        except OSError as e:
            raise LedgerError(f"Failed to append to uid file '{self.ledger_file}': {e}", uid=uid, stage="ledger")

        if uid not in self._index:
            self._index.add(uid)
            self._known.append(uid)

    @property
    def known(self) -> List[Any]:
        return list(self._known)

    def __contains__(self, uid: Any) -> bool:
        return uid in self._index

    def __len__(self) -> int:
        return len(self._known)
