#!/usr/bin/env python3
"""
Utility functions for the IMAP copy system.
"""

import re
from datetime import date, datetime
from email.header import decode_header, make_header
from email.message import Message
from email.parser import HeaderParser
from typing import Optional

from errors import ConfigError

SINCE_FORMATS = ('%Y-%m-%d', '%d-%b-%Y')

APPENDUID_RE = re.compile(rb'APPENDUID\s+\d+\s+(\d+)', re.IGNORECASE)

HEADER_END_RE = re.compile(rb'\r?\n\r?\n')


def parse_since_date(value: Optional[str]) -> Optional[date]:
    """Parse a --since value given as YYYY-MM-DD or DD-Mon-YYYY."""
    if not value:
        return None
    for fmt in SINCE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    raise ConfigError(f"Invalid --since date '{value}', expected YYYY-MM-DD or DD-Mon-YYYY")


def decode_header_value(value: Optional[str]) -> Optional[str]:
    """Decode RFC 2047 encoded words. Undecodable values are returned as-is."""
    if value is None:
        return None
    try:
        return str(make_header(decode_header(value)))
    except (LookupError, UnicodeDecodeError, ValueError):
        return value


def parse_appenduid(response) -> Optional[int]:
    """Extract the destination uid from an APPEND response, if the server sent one."""
    if not response:
        return None
    if isinstance(response, str):
        response = response.encode('utf-8', errors='ignore')
    match = APPENDUID_RE.search(response)
    if match:
        return int(match.group(1))
    return None


def parse_headers(raw: bytes) -> Message:
    """Parse the header block of a raw message.

    Raw 8-bit header bytes are read as UTF-8, falling back to latin-1, so
    unencoded non-ASCII subjects survive intact.
    """
    end = HEADER_END_RE.search(raw)
    block = raw[:end.start()] if end else raw
    try:
        text = block.decode('utf-8')
    except UnicodeDecodeError:
        text = block.decode('latin-1')
    return HeaderParser().parsestr(text)
