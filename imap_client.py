#!/usr/bin/env python3
"""
IMAP session adapter for the IMAP copy system.

``MailChannel`` is the contract the transfer engine talks to; ``IMAPClient``
implements it on top of the imapclient library and translates its errors
into the ``errors`` hierarchy.
"""

import re
import time
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterable, List, Optional, Protocol

# IMAP imports
import imapclient
from imapclient import exceptions

from errors import (AuthError, ChannelConnectionError, NotFoundError,
                    SyncError, WriteError)
from mail_message import Message, MessageHeaders
from utils import decode_header_value, parse_appenduid, parse_headers

# Flags a client may not set through APPEND
DENIED_FLAGS = {'\\recent'}

FETCH_ITEMS = ['FLAGS', 'INTERNALDATE', 'BODY.PEEK[]']


class MailChannel(Protocol):
    """One protocol session on one mail account. Not safe for concurrent use."""

    def connect(self) -> None: ...

    def open_box(self, name: str) -> None: ...

    def search(self, criteria: List[Any]) -> List[Any]: ...

    def fetch(self, uid: Any) -> Message: ...

    def append(self, body: bytes, mailbox: str, flags: Iterable[str] = (),
               date: Optional[datetime] = None) -> Optional[Any]: ...

    def disconnect(self) -> None: ...


def _unfold(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return re.sub(r'\r?\n', '', value)


def _decode_flag(flag) -> str:
    if isinstance(flag, bytes):
        return flag.decode('utf-8', errors='replace')
    return str(flag)


def _needs_utf8(criteria: List[Any]) -> bool:
    for item in criteria:
        if isinstance(item, str) and not item.isascii():
            return True
    return False


class IMAPClient:
    """MailChannel backed by an imapclient session."""

    def __init__(self, host: str, username: str, password: str, port: Optional[int] = None,
                 use_ssl: bool = True, timeout: Optional[float] = None,
                 logger: Optional[logging.Logger] = None):
        self.host = host
        self.username = username
        self.password = password
        self.use_ssl = use_ssl
        self.port = port or (993 if use_ssl else 143)
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self.client = None
        self.selected_box = None
        self.connection_start_time = None

    @classmethod
    def from_account(cls, account, logger: Optional[logging.Logger] = None) -> "IMAPClient":
        return cls(
            host=account.host,
            username=account.user,
            password=account.password,
            port=account.port,
            use_ssl=account.use_ssl,
            timeout=account.timeout,
            logger=logger,
        )

    def connect(self) -> None:
        """Connect and log in."""
        self.connection_start_time = time.time()
        self.logger.info(f"🔌 Connecting to channel '{self.host}:{self.port}'")

        try:
            self.client = imapclient.IMAPClient(self.host, port=self.port, ssl=self.use_ssl,
                                                timeout=self.timeout)
        except (OSError, exceptions.IMAPClientError) as e:
            raise ChannelConnectionError(f"Could not connect to {self.host}:{self.port}: {e}",
                                         stage="connect") from e

        try:
            self.client.login(self.username, self.password)
        except exceptions.LoginError as e:
            raise AuthError(f"Login to {self.host} as {self.username} refused: {e}",
                            stage="connect") from e
        except (OSError, exceptions.IMAPClientError) as e:
            raise ChannelConnectionError(f"Login to {self.host} failed: {e}", stage="connect") from e

        elapsed = time.time() - self.connection_start_time
        self.logger.info(f"✅ Connected to IMAP server {self.host} in {elapsed:.2f}s")

    @contextmanager
    def _imap_errors(self, error_cls, action: str, uid: Any = None):
        if self.client is None:
            raise ChannelConnectionError(f"{self.host}: not connected", uid=uid)
        try:
            yield
        except exceptions.IMAPClientAbortError as e:
            raise ChannelConnectionError(f"{self.host}: connection aborted during {action}: {e}",
                                         uid=uid) from e
        except exceptions.IMAPClientError as e:
            raise error_cls(f"{self.host}: {action} failed: {e}", uid=uid) from e
        except OSError as e:
            raise ChannelConnectionError(f"{self.host}: connection lost during {action}: {e}",
                                         uid=uid) from e

    def open_box(self, name: str) -> None:
        """Select a mailbox read-only."""
        with self._imap_errors(NotFoundError, f"select '{name}'"):
            if not self.client.folder_exists(name):
                raise NotFoundError(f"{self.host}: mailbox '{name}' does not exist", stage="open")
            self.client.select_folder(name, readonly=True)
        self.selected_box = name
        self.logger.info(f"{self.host}: opened mailbox '{name}'")

    def search(self, criteria: List[Any]) -> List[Any]:
        charset = 'UTF-8' if _needs_utf8(criteria) else None
        with self._imap_errors(SyncError, "search"):
            return list(self.client.search(criteria, charset=charset))

    def fetch(self, uid: Any) -> Message:
        """Fetch body, flags and internal date without marking the message seen."""
        with self._imap_errors(NotFoundError, "fetch", uid=uid):
            response = self.client.fetch([uid], FETCH_ITEMS)

        data = response.get(uid)
        if not data or b'BODY[]' not in data:
            raise NotFoundError(f"{self.host}: message uid {uid} not found in '{self.selected_box}'",
                                uid=uid)

        body = data[b'BODY[]']
        parsed = parse_headers(body)
        headers = MessageHeaders(
            date=_unfold(parsed.get('Date')),
            subject=_unfold(decode_header_value(parsed.get('Subject'))),
        )
        return Message(
            identifier=uid,
            headers=headers,
            internal_date=data.get(b'INTERNALDATE'),
            body=body,
            flags=frozenset(_decode_flag(flag) for flag in data.get(b'FLAGS', ())),
        )

    def append(self, body: bytes, mailbox: str, flags: Iterable[str] = (),
               date: Optional[datetime] = None) -> Optional[Any]:
        """Append a message and return its destination uid when the server reports one."""
        flags = [flag for flag in flags if flag.lower() not in DENIED_FLAGS]

        start_time = time.time()
        with self._imap_errors(WriteError, f"append to '{mailbox}'"):
            response = self.client.append(mailbox, body, flags, date)

        upload_time = time.time() - start_time
        if upload_time > 5.0:
            self.logger.warning(f"⚠️ Slow IMAP upload: {upload_time:.2f}s for message to {mailbox}")
        return parse_appenduid(response)

    def disconnect(self) -> None:
        """Log out. Failures here are logged, the run result stands."""
        if not self.client:
            return
        try:
            self.client.logout()
            if self.connection_start_time:
                total_duration = time.time() - self.connection_start_time
                self.logger.info(f"✅ Disconnected from {self.host} (duration: {total_duration:.1f}s)")
            else:
                self.logger.info(f"✅ Disconnected from {self.host}")
        except (OSError, exceptions.IMAPClientError) as e:
            self.logger.error(f"❌ Error disconnecting from {self.host}: {e}")
        finally:
            self.client = None
