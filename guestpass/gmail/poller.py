"""Mailbox poller - feeds unread visitor-request emails to the intake processor.

Each cycle lists up to GMAIL_POLL_MAX_RESULTS unread messages matching
GMAIL_POLL_QUERY, skips ids already in the processed-message cache, runs the
processor in-process and, on success, marks the id processed and removes the
UNREAD label. A failure on one message is logged and the batch continues;
unsuccessful messages stay unread and are retried next cycle.

Run with:
    python -m guestpass.gmail.poller [--once] [--interval SECONDS]
"""

from __future__ import annotations

import argparse
import os
import threading
from dataclasses import dataclass
from typing import Any

from googleapiclient.errors import HttpError

from guestpass.config import (
    GMAIL_POLL_INTERVAL_SECONDS,
    GMAIL_POLL_MAX_RESULTS,
    GMAIL_POLL_QUERY,
    GMAIL_TOKEN_URI,
)
from guestpass.gmail.parser import GmailParsingError, parse_gmail_message
from guestpass.infrastructure.idempotency import ProcessedMessageCache
from guestpass.intake.processor import EmailIntakeProcessor
from guestpass.intake.types import ProcessingResult
from guestpass.observability.logging import get_logger
from guestpass.observability.telemetry import counter, log_event, time_block
from guestpass.utils.redaction import redact

logger = get_logger(__name__)

GMAIL_SCOPES = [
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.modify",
]


@dataclass
class PollSummary:
    listed: int = 0
    skipped: int = 0
    succeeded: int = 0
    failed: int = 0


def build_gmail_service() -> Any:
    """
    Gmail API service from the GMAIL_* refresh-token credentials.

    Raises:
        ValueError: If client id, client secret or refresh token is missing
    """
    from google.oauth2.credentials import Credentials
    from googleapiclient.discovery import build

    client_id = os.getenv("GMAIL_CLIENT_ID")
    client_secret = os.getenv("GMAIL_CLIENT_SECRET")
    refresh_token = os.getenv("GMAIL_REFRESH_TOKEN")

    if not (client_id and client_secret and refresh_token):
        raise ValueError(
            "Gmail credentials missing: set GMAIL_CLIENT_ID, GMAIL_CLIENT_SECRET "
            "and GMAIL_REFRESH_TOKEN"
        )

    credentials = Credentials(
        token=os.getenv("GMAIL_ACCESS_TOKEN"),
        refresh_token=refresh_token,
        token_uri=os.getenv("GMAIL_TOKEN_URI", GMAIL_TOKEN_URI),
        client_id=client_id,
        client_secret=client_secret,
        scopes=GMAIL_SCOPES,
    )
    return build("gmail", "v1", credentials=credentials, cache_discovery=False)


class MailboxPoller:
    def __init__(
        self,
        service: Any,
        processor: EmailIntakeProcessor,
        cache: ProcessedMessageCache | None = None,
        query: str = GMAIL_POLL_QUERY,
        max_results: int = GMAIL_POLL_MAX_RESULTS,
    ):
        self.service = service
        self.processor = processor
        self.cache = cache or ProcessedMessageCache()
        self.query = query
        self.max_results = max_results

    def list_message_ids(self) -> list[str]:
        response = (
            self.service.users()
            .messages()
            .list(userId="me", q=self.query, maxResults=self.max_results)
            .execute()
        )
        return [message["id"] for message in response.get("messages", [])]

    def _mark_read(self, message_id: str) -> None:
        self.service.users().messages().modify(
            userId="me", id=message_id, body={"removeLabelIds": ["UNREAD"]}
        ).execute()

    def process_message(self, message_id: str) -> ProcessingResult | None:
        """
        Fetch, parse and process one message.

        Returns:
            The processor's result, or None if the message was skipped
            (already processed, or it has no usable From/body)
        """
        if self.cache.is_duplicate(message_id):
            return None

        message = (
            self.service.users().messages().get(userId="me", id=message_id, format="full").execute()
        )
        try:
            email = parse_gmail_message(message)
        except GmailParsingError as e:
            logger.warning("Skipping unparseable message: %s", e)
            return None

        result = self.processor.process(email.from_address, email.subject, email.content)

        if result.success:
            self.cache.mark_processed(message_id)
            self._mark_read(message_id)
            logger.info("Processed message from %s: %s", redact(email.from_address), result.message)
        else:
            logger.info(
                "Message from %s not processed: %s", redact(email.from_address), result.message
            )
        return result

    def poll_once(self) -> PollSummary:
        """One poll cycle. Errors listing the mailbox propagate to the caller."""
        summary = PollSummary()

        with time_block("gmail.poll.latency"):
            message_ids = self.list_message_ids()
            summary.listed = len(message_ids)

            for message_id in message_ids:
                try:
                    result = self.process_message(message_id)
                except HttpError as e:
                    summary.failed += 1
                    counter("gmail.poll.message_error")
                    logger.error("Gmail API error on message: %s", e)
                    continue
                except Exception as e:
                    summary.failed += 1
                    counter("gmail.poll.message_error")
                    logger.exception("Unexpected error on message: %s", e)
                    continue

                if result is None:
                    summary.skipped += 1
                elif result.success:
                    summary.succeeded += 1
                else:
                    summary.failed += 1

        log_event(
            "gmail.poll.completed",
            listed=summary.listed,
            skipped=summary.skipped,
            succeeded=summary.succeeded,
            failed=summary.failed,
        )
        return summary

    def run_forever(
        self,
        interval: float = GMAIL_POLL_INTERVAL_SECONDS,
        stop_event: threading.Event | None = None,
    ) -> None:
        """Poll every interval seconds until stop_event is set."""
        stop_event = stop_event or threading.Event()
        logger.info("Mailbox poller started (interval=%ss, query=%r)", interval, self.query)

        while not stop_event.is_set():
            try:
                self.poll_once()
            except HttpError as e:
                counter("gmail.poll.list_error")
                logger.error("Gmail API error listing messages: %s", e)
            except Exception as e:
                counter("gmail.poll.list_error")
                logger.exception("Poll cycle failed: %s", e)
            stop_event.wait(interval)

        logger.info("Mailbox poller stopped")


def main() -> None:
    """Entry point for the guestpass-poller command."""
    from dotenv import load_dotenv

    load_dotenv()

    from guestpass.infrastructure.database import init_database
    from guestpass.intake.processor import build_default_processor

    parser = argparse.ArgumentParser(description="Poll Gmail for visitor-request emails")
    parser.add_argument("--once", action="store_true", help="Run a single poll cycle and exit")
    parser.add_argument(
        "--interval",
        type=float,
        default=GMAIL_POLL_INTERVAL_SECONDS,
        help="Seconds between poll cycles",
    )
    args = parser.parse_args()

    init_database()
    poller = MailboxPoller(build_gmail_service(), build_default_processor())

    if args.once:
        summary = poller.poll_once()
        print(
            f"listed={summary.listed} succeeded={summary.succeeded} "
            f"skipped={summary.skipped} failed={summary.failed}"
        )
        return

    try:
        poller.run_forever(interval=args.interval)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
