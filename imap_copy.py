#!/usr/bin/env python3
"""
IMAP Copy

Copies messages from a mailbox on one IMAP server to a mailbox on another.
Source uids already handled by an earlier run are kept in a ledger file and
not looked at again. Messages that already exist at the destination (same
date and subject) are skipped unless matching is turned off.

Nothing is written to the destination unless --execute is given.

Usage:
    python imap_copy.py -s INBOX -d "Archive/Old INBOX" -e
    python imap_copy.py -c config.json -s "[Gmail]/All Mail" -d INBOX --since 2020-01-01 -p
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from config_manager import AccountConfig, ConfigManager
from duplicate_matcher import DuplicateMatcher
from errors import ConfigError, SyncError
from imap_client import IMAPClient
from mail_message import SyncCriteria
from sync_planner import plan
from transfer_executor import TransferExecutor, TransferOptions, TransferReport
from uid_ledger import UidLedger
from utils import parse_since_date


@dataclass
class RunOptions:
    """Everything a run needs besides the account settings."""

    source_mailbox: str
    dest_mailbox: str
    find_mailbox: Optional[str] = None
    since: Optional[date] = None
    execute: bool = False
    match: bool = True
    ledger_file: str = "uidsync.log"
    show_progress: bool = True

    def __post_init__(self):
        if not self.source_mailbox or not self.dest_mailbox:
            raise ConfigError("Must specify dest and source mailboxes")
        if not self.find_mailbox:
            self.find_mailbox = self.dest_mailbox


class ImapCopy:
    """Wires the channels, ledger, planner and executor together for one run."""

    def __init__(self, source_account: AccountConfig, dest_account: AccountConfig,
                 options: RunOptions, channel_factory: Callable = IMAPClient.from_account,
                 logger: Optional[logging.Logger] = None):
        self.source_account = source_account
        self.dest_account = dest_account
        self.options = options
        self.channel_factory = channel_factory
        self.logger = logger or logging.getLogger(__name__)
        self.ledger = UidLedger(options.ledger_file, logger=self.logger)
        self.source = None
        self.dest = None

    def setup_channels(self) -> None:
        """Connect both sessions and select their mailboxes."""
        self.source = self.channel_factory(self.source_account, logger=self.logger)
        self.source.connect()

        self.dest = self.channel_factory(self.dest_account, logger=self.logger)
        self.dest.connect()

        self.source.open_box(self.options.source_mailbox)
        # Searches for duplicates run against the find mailbox; appends name the dest mailbox
        self.dest.open_box(self.options.find_mailbox)

    def run(self) -> TransferReport:
        """Run the complete copy."""
        try:
            self.logger.info("Running import")
            if not self.options.execute:
                self.logger.info("=== DRY RUN MODE ===")

            known_uids = self.ledger.load()

            self.setup_channels()

            criteria = SyncCriteria(since=self.options.since)
            candidates = self.source.search(criteria.to_imap())
            self.logger.info(f"{self.source_account.host}: found {len(candidates)} messages "
                             f"({criteria.describe()})")

            pending = plan(candidates, known_uids)
            self.logger.info(f"{self.source_account.host}: {len(pending)} unknown messages")

            matcher = DuplicateMatcher(self.dest, enabled=self.options.match, logger=self.logger)
            executor = TransferExecutor(
                self.source, self.dest, self.ledger, matcher,
                TransferOptions(
                    dest_mailbox=self.options.dest_mailbox,
                    execute=self.options.execute,
                    show_progress=self.options.show_progress,
                ),
                logger=self.logger,
            )
            report = executor.run(pending)

            self.report_statistics(report)
            self.logger.info("Copy completed successfully")
            return report

        except SyncError as e:
            self.logger.error(f"Copy failed: {e}")
            raise
        finally:
            for channel in (self.source, self.dest):
                if channel is not None:
                    channel.disconnect()

    def report_statistics(self, report: TransferReport) -> None:
        self.logger.info("=== TRANSFER SUMMARY ===")
        self.logger.info(f"Messages evaluated: {report.evaluated}")
        self.logger.info(f"Copied to '{self.options.dest_mailbox}': {report.transferred}")
        self.logger.info(f"Skipped as duplicates: {report.skipped}")
        if not self.options.execute:
            self.logger.info(f"Would copy (dry run): {report.dry_run}")
        self.logger.info(f"Ledger now holds {len(self.ledger)} uids")


def setup_logging(log_file: str, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Copy messages between IMAP mailboxes')
    parser.add_argument('-c', '--config', default='config.json',
                        help='The path to the config file containing log in info')
    parser.add_argument('-u', '--uids', default='uidsync.log',
                        help='The path to store known email identifiers')
    parser.add_argument('-s', '--source', help='The source mailbox name')
    parser.add_argument('-d', '--dest', help='The dest mailbox name')
    parser.add_argument('-f', '--find', help='Look in the specified mailbox when matching existing mail')
    parser.add_argument('-n', '--no-match', dest='match', action='store_false',
                        help="Don't try to match existing mail")
    parser.add_argument('--since', help='The first date to look for messages from (YYYY-MM-DD)')
    parser.add_argument('-e', '--execute', action='store_true',
                        help='Actually transfer the mail (instead of just pretending)')
    parser.add_argument('-p', '--password', action='store_true',
                        help='Prompt for passwords not specified in config on the commandline '
                             '(always done when a password is missing)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose logging')
    parser.add_argument('--log-file', default='imap_copy.log', help='Log file path')
    parser.add_argument('--no-progress', dest='progress', action='store_false',
                        help='Hide the progress bar')
    return parser


def main(argv=None, channel_factory: Callable = IMAPClient.from_account,
         prompt: Optional[Callable[[str], str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    try:
        setup_logging(args.log_file, args.verbose)
    except OSError as e:
        print(f"Error: cannot open log file '{args.log_file}': {e}", file=sys.stderr)
        return 1
    logging.debug(f"Parsed command line options: {vars(args)}")

    try:
        options = RunOptions(
            source_mailbox=args.source,
            dest_mailbox=args.dest,
            find_mailbox=args.find,
            since=parse_since_date(args.since),
            execute=args.execute,
            match=args.match,
            ledger_file=args.uids,
            show_progress=args.progress,
        )
        config_kwargs = {'prompt': prompt} if prompt else {}
        config_manager = ConfigManager(args.config, **config_kwargs)
        config_manager.resolve_passwords()
    except ConfigError as e:
        logging.error(str(e))
        return 1

    try:
        transfer = ImapCopy(config_manager.account('source'), config_manager.account('dest'),
                            options, channel_factory=channel_factory)
        transfer.run()
    except KeyboardInterrupt:
        logging.info("Copy interrupted by user")
        return 130
    except SyncError:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
