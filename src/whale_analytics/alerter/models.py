"""Data models for the alerter module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class AlertType(str, Enum):
    """Kind of pattern an alert reports."""

    ACCUMULATION = "ACCUMULATION"
    CONFLUENCE = "CONFLUENCE"


@dataclass(frozen=True)
class FormattedAlert:
    """An alert rendered for every supported delivery channel.

    Attributes:
        alert_type: Kind of pattern being reported.
        title: Short headline.
        body: Channel-neutral message text.
        discord_embed: Discord embed payload.
        telegram_markdown: Telegram MarkdownV2 text.
        plain_text: Plain text for generic channels and logs.
        created_at: When the alert was formatted.
    """

    alert_type: AlertType
    title: str
    body: str
    discord_embed: dict[str, object]
    telegram_markdown: str
    plain_text: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
