"""
Shared pytest fixtures and utilities for IMAP copy tests.
"""

import json
import os
import sys
from datetime import datetime

import pytest

# Ensure the top-level modules are importable without installing
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from errors import NotFoundError
from mail_message import Message, MessageHeaders


def make_message(uid, subject="Hello", date_header="Wed, 01 Jan 2020 12:00:00 +0000",
                 internal_date=datetime(2020, 1, 1, 12, 0, 0), flags=("\\Seen",)):
    """Build a Message the way the IMAP adapter would return it."""
    lines = []
    if date_header is not None:
        lines.append(f"Date: {date_header}")
    if subject is not None:
        lines.append(f"Subject: {subject}")
    body = ("\r\n".join(lines) + f"\r\n\r\nBody of message {uid}").encode("utf-8")
    return Message(
        identifier=uid,
        headers=MessageHeaders(date=date_header, subject=subject),
        internal_date=internal_date,
        body=body,
        flags=frozenset(flags),
    )


def _matches(message, criteria):
    """Evaluate ON / HEADER / SUBJECT / NOT terms the way an IMAP server would."""
    i = 0
    while i < len(criteria):
        negate = criteria[i] == "NOT"
        if negate:
            i += 1
        term = criteria[i]
        if term == "ON":
            hit = message.internal_date is not None and message.internal_date.date() == criteria[i + 1]
            i += 2
        elif term == "HEADER":
            value = getattr(message.headers, criteria[i + 1].lower())
            hit = value is not None and criteria[i + 2] in value
            i += 3
        elif term == "SUBJECT":
            hit = message.headers.subject is not None and criteria[i + 1] in message.headers.subject
            i += 2
        else:
            raise ValueError(f"unsupported search term {term!r}")
        if hit == negate:
            return False
    return True


class FakeMailChannel:
    """In-memory MailChannel that records every call made on it."""

    def __init__(self, host="fake.example", messages=None, mailboxes=None,
                 fail_fetch=()):
        self.host = host
        self.messages = {m.identifier: m for m in (messages or [])}
        self.mailboxes = set(mailboxes) if mailboxes is not None else None
        self.fail_fetch = set(fail_fetch)
        self.calls = []
        self.searches = []
        self.appended = []
        self.opened = []
        self.connected = False
        self.disconnected = False
        self._next_uid = 1000

    def connect(self):
        self.calls.append(("connect",))
        self.connected = True

    def open_box(self, name):
        self.calls.append(("open_box", name))
        if self.mailboxes is not None and name not in self.mailboxes:
            raise NotFoundError(f"{self.host}: mailbox '{name}' does not exist", stage="open")
        self.opened.append(name)

    def search(self, criteria):
        self.calls.append(("search", list(criteria)))
        self.searches.append(list(criteria))
        if criteria == ["ALL"]:
            return list(self.messages)
        if criteria[0] == "SINCE":
            since = criteria[1]
            return [uid for uid, m in self.messages.items() if m.internal_date.date() >= since]
        return [uid for uid, m in self.messages.items() if _matches(m, criteria)]

    def fetch(self, uid):
        self.calls.append(("fetch", uid))
        if uid in self.fail_fetch or uid not in self.messages:
            raise NotFoundError(f"{self.host}: message uid {uid} not found", uid=uid)
        return self.messages[uid]

    def append(self, body, mailbox, flags=(), date=None):
        self.calls.append(("append", mailbox))
        self._next_uid += 1
        self.appended.append({"body": body, "mailbox": mailbox, "flags": list(flags),
                              "date": date, "dest_uid": self._next_uid})
        return self._next_uid

    def disconnect(self):
        self.calls.append(("disconnect",))
        self.disconnected = True


@pytest.fixture
def fake_channel_factory():
    """
    Returns (factory, channels). The factory hands out the FakeMailChannel
    registered for an account's host, mimicking IMAPClient.from_account.
    """
    channels = {}
    created = []

    def factory(account, logger=None):
        created.append(account.host)
        return channels[account.host]

    factory.created = created
    return factory, channels


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "source": {"host": "src.example", "user": "src_user", "password": "p"},
        "dest": {"host": "dest.example", "user": "dest_user", "password": "p"},
    }))
    return path


__all__ = ["FakeMailChannel", "make_message"]
