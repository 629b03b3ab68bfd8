#!/usr/bin/env python3
"""
Setup script for IMAP Copy.

    pip install -e .            # install the imap-copy command
    pip install -e .[test]      # plus the test requirements
"""

from setuptools import setup

setup(
    name="imap-copy",
    version="1.0.0",
    description="Copy messages between IMAP mailboxes without transferring them twice",
    python_requires=">=3.8",
    py_modules=[
        "config_manager",
        "duplicate_matcher",
        "errors",
        "imap_client",
        "imap_copy",
        "mail_message",
        "sync_planner",
        "transfer_executor",
        "uid_ledger",
        "utils",
    ],
    install_requires=[
        "imapclient>=2.3",
        "PyYAML>=5.4",
        "tqdm>=4.60",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "imap-copy=imap_copy:main",
        ],
    },
)
