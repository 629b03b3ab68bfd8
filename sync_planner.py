#!/usr/bin/env python3
"""
Pending set computation for IMAP copy.
"""

from typing import Any, Iterable, List


def plan(candidate_ids: Iterable[Any], ledger_ids: Iterable[Any]) -> List[Any]:
    """Return the candidates not yet in the ledger, in source order.

    Each uid is emitted once even if the source listed it twice.
    """
    seen = set(ledger_ids)
    pending = []
    for uid in candidate_ids:
        if uid in seen:
            continue
        seen.add(uid)
        pending.append(uid)
    return pending
