#!/usr/bin/env python3
"""
Per-message transfer loop for IMAP copy.

Each pending uid goes through FETCHED -> DUPLICATE_CHECKED and ends as
SKIPPED or TRANSFERRED. The uid is written to the ledger once it has been
evaluated, whether or not anything was appended to the destination.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

# Progress bar
from tqdm import tqdm

from errors import SyncError


class MessageState(enum.Enum):
    FETCHED = "fetched"
    DUPLICATE_CHECKED = "duplicate-checked"
    SKIPPED = "skipped"
    TRANSFERRED = "transferred"


@dataclass
class TransferOptions:
    dest_mailbox: str
    execute: bool = False
    show_progress: bool = True


@dataclass
class MessageOutcome:
    uid: Any
    state: MessageState
    matches: int = 0
    dest_uid: Any = None
    written: bool = False


@dataclass
class TransferReport:
    outcomes: List[MessageOutcome] = field(default_factory=list)

    @property
    def evaluated(self) -> int:
        return len(self.outcomes)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.state is MessageState.SKIPPED)

    @property
    def transferred(self) -> int:
        return sum(1 for o in self.outcomes if o.written)

    @property
    def dry_run(self) -> int:
        return sum(1 for o in self.outcomes
                   if o.state is MessageState.TRANSFERRED and not o.written)


class TransferExecutor:
    """Evaluates pending messages one at a time, in order."""

    def __init__(self, source, dest, ledger, matcher, options: TransferOptions,
                 logger: Optional[logging.Logger] = None):
        self.source = source
        self.dest = dest
        self.ledger = ledger
        self.matcher = matcher
        self.options = options
        self.logger = logger or logging.getLogger(__name__)

    def process(self, uid: Any) -> MessageOutcome:
        """Run one uid through the pipeline and checkpoint it in the ledger."""
        stage = "fetch"
        try:
            message = self.source.fetch(uid)
            outcome = MessageOutcome(uid=uid, state=MessageState.FETCHED)
            self.logger.debug(f"{message.headers.date} {message.headers.subject}")

            stage = "duplicate-check"
            outcome.matches = self.matcher.matches(message)
            outcome.state = MessageState.DUPLICATE_CHECKED

            if outcome.matches > 0:
                outcome.state = MessageState.SKIPPED
                self.logger.info(f"Skipping uid {uid}: {outcome.matches} matching message(s) on dest")
            else:
                outcome.state = MessageState.TRANSFERRED
                if self.options.execute:
                    stage = "append"
                    self.logger.debug(f"Saving uid {uid} to '{self.options.dest_mailbox}'")
                    outcome.dest_uid = self.dest.append(
                        message.body,
                        mailbox=self.options.dest_mailbox,
                        flags=sorted(message.flags),
                        date=message.internal_date,
                    )
                    outcome.written = True
                    self.logger.debug(f"Saved uid {uid} as dest uid {outcome.dest_uid}")
                else:
                    self.logger.info(f"Would save uid {uid} to '{self.options.dest_mailbox}' (dry run)")

            stage = "ledger"
            self.ledger.append(uid)
        except SyncError as e:
            raise e.annotate(uid, stage)

        return outcome

    def run(self, pending: Iterable[Any]) -> TransferReport:
        """Process every pending uid in order. The first error aborts the run."""
        pending = list(pending)
        report = TransferReport()

        with tqdm(total=len(pending), desc="📤 IMAP Copy", unit="msg",
                  disable=not self.options.show_progress) as pbar:
            for position, uid in enumerate(pending, start=1):
                self.logger.debug(f"Retrieving message {position} of {len(pending)} ({uid})")
                report.outcomes.append(self.process(uid))
                pbar.update(1)

        return report
