"""Outbound delivery of finished reports."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Protocol


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportMessage:
    recipients: List[str]
    subject: str
    body: str
    attachment_name: str
    attachment: bytes = field(repr=False)


class Notifier(Protocol):
    def send(self, message: ReportMessage) -> bool:
        ...


class OutboxNotifier:
    """Write each message into a directory for a mailer or operator to pick up."""

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def send(self, message: ReportMessage) -> bool:
        self.directory.mkdir(parents=True, exist_ok=True)
        attachment_path = self.directory / message.attachment_name
        attachment_path.write_bytes(message.attachment)
        body_path = attachment_path.with_suffix(".txt")
        header = [
            f"To: {', '.join(message.recipients)}",
            f"Subject: {message.subject}",
            "",
        ]
        body_path.write_text("\n".join(header) + message.body, encoding="utf-8")
        logger.info(
            "Queued report %s for %d recipient(s) in %s",
            message.attachment_name,
            len(message.recipients),
            self.directory,
        )
        return True


class MemoryNotifier:
    """Collect messages in memory."""

    def __init__(self) -> None:
        self.sent: List[ReportMessage] = []

    def send(self, message: ReportMessage) -> bool:
        self.sent.append(message)
        return True
