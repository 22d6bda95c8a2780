"""Alert message formatter for multi-channel delivery.

This module turns accumulation and confluence events into human-readable
alert messages for Discord, Telegram, and plain text.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Literal

from whale_analytics.alerter.models import AlertType, FormattedAlert
from whale_analytics.detector.models import ConfidenceLevel
from whale_analytics.ingestor.models import WalletSummary

# Discord embed colors (decimal values)
COLOR_HIGH_CONFIDENCE = 15158332  # Red (#E74C3C)
COLOR_MODERATE_CONFIDENCE = 15105570  # Orange (#E67E22)
COLOR_ACCUMULATION = 3447003  # Blue (#3498DB)

CONFLUENCE_WINDOW_LABEL = "4-hour window"

_TELEGRAM_SPECIAL_CHARS = "_*[]()~`>#+-=|{}.!"


def truncate_address(address: str, chars: int = 4) -> str:
    """Truncate an address to 0x1234...5678 format."""
    if len(address) < chars * 2 + 4:
        return address
    return f"{address[: chars + 2]}...{address[-chars:]}"


def format_score(score: Decimal | None) -> str:
    """Format a wallet score with 2 decimal places."""
    if score is None:
        return "n/a"
    return f"{score:.2f}"


def get_confidence_label(level: ConfidenceLevel) -> str:
    """Get human-readable label for a confluence confidence level."""
    if level == ConfidenceLevel.HIGH:
        return "High-confidence"
    return "Moderate"


def get_confidence_color(level: ConfidenceLevel) -> int:
    """Get Discord embed color for a confluence confidence level."""
    if level == ConfidenceLevel.HIGH:
        return COLOR_HIGH_CONFIDENCE
    return COLOR_MODERATE_CONFIDENCE


def escape_telegram_markdown(text: str) -> str:
    """Escape special Telegram MarkdownV2 characters."""
    for char in _TELEGRAM_SPECIAL_CHARS:
        text = text.replace(char, f"\\{char}")
    return text


class AlertFormatter:
    """Formats pattern events into multi-channel alert messages.

    Supports two verbosity levels:
    - compact: The alert sentence only
    - detailed: Adds the wallets involved and their scores
    """

    def __init__(
        self,
        verbosity: Literal["compact", "detailed"] = "detailed",
    ) -> None:
        self.verbosity = verbosity

    def format_accumulation(
        self,
        wallet_id: str,
        token_identifier: str,
        purchase_count: int,
    ) -> FormattedAlert:
        """Format a silent accumulation event.

        Args:
            wallet_id: Wallet that is accumulating.
            token_identifier: Token symbol, or address when unknown.
            purchase_count: Number of qualifying purchases.

        Returns:
            FormattedAlert with all channel formats.
        """
        heading = "Possible Silent Accumulation"
        title = f"🐋 {heading}"
        sentence = (
            f"Possible silent accumulation: {purchase_count} purchases of "
            f"{token_identifier} detected"
        )

        body = sentence
        if self.verbosity == "detailed":
            body = "\n".join([sentence, f"Wallet: {truncate_address(wallet_id)}"])

        discord_embed: dict[str, object] = {
            "title": title,
            "description": sentence,
            "color": COLOR_ACCUMULATION,
            "fields": [
                {"name": "Wallet", "value": f"`{truncate_address(wallet_id)}`", "inline": True},
                {"name": "Token", "value": token_identifier, "inline": True},
                {"name": "Purchases", "value": str(purchase_count), "inline": True},
            ],
            "footer": {"text": "Whale Analytics"},
        }

        telegram_lines = [
            f"🐋 *{escape_telegram_markdown(heading)}*",
            "",
            f"*Wallet:* `{truncate_address(wallet_id)}`",
            f"*Token:* {escape_telegram_markdown(token_identifier)}",
            f"*Purchases:* {purchase_count}",
        ]

        plain_lines = [
            "POSSIBLE SILENT ACCUMULATION",
            "=" * 30,
            "",
            sentence,
            f"Wallet: {wallet_id}",
        ]

        return FormattedAlert(
            alert_type=AlertType.ACCUMULATION,
            title=title,
            body=body,
            discord_embed=discord_embed,
            telegram_markdown="\n".join(telegram_lines),
            plain_text="\n".join(plain_lines),
        )

    def format_confluence(
        self,
        token_identifier: str,
        wallets: Sequence[WalletSummary],
        confidence_level: ConfidenceLevel,
    ) -> FormattedAlert:
        """Format a multi-wallet confluence event.

        Args:
            token_identifier: Token symbol, or address when unknown.
            wallets: The distinct wallets that bought the token.
            confidence_level: Confidence derived from the wallets' scores.

        Returns:
            FormattedAlert with all channel formats.
        """
        label = get_confidence_label(confidence_level)
        count = len(wallets)
        heading = f"{label} Whale Confluence"
        title = f"🐋 {heading}"
        sentence = (
            f"{label} confluence: {count} whales bought {token_identifier} "
            f"within the {CONFLUENCE_WINDOW_LABEL}"
        )

        wallet_lines = [
            f"{truncate_address(w.address)} (score {format_score(w.current_score)})" for w in wallets
        ]

        body = sentence
        if self.verbosity == "detailed":
            body = "\n".join([sentence, *(f"- {line}" for line in wallet_lines)])

        fields: list[dict[str, object]] = [
            {"name": "Token", "value": token_identifier, "inline": True},
            {"name": "Whales", "value": str(count), "inline": True},
            {"name": "Confidence", "value": label, "inline": True},
        ]
        if self.verbosity == "detailed" and wallet_lines:
            fields.append({"name": "Wallets", "value": "\n".join(wallet_lines), "inline": False})

        discord_embed: dict[str, object] = {
            "title": title,
            "description": sentence,
            "color": get_confidence_color(confidence_level),
            "fields": fields,
            "footer": {"text": "Whale Analytics"},
        }

        telegram_lines = [
            f"🐋 *{escape_telegram_markdown(heading)}*",
            "",
            f"*Token:* {escape_telegram_markdown(token_identifier)}",
            f"*Whales:* {count}",
        ]
        if self.verbosity == "detailed":
            telegram_lines.extend(
                f"• `{truncate_address(w.address)}` {escape_telegram_markdown(format_score(w.current_score))}"
                for w in wallets
            )

        plain_lines = [
            f"{label.upper()} WHALE CONFLUENCE",
            "=" * 30,
            "",
            sentence,
            *(f"Wallet: {w.address} (score {format_score(w.current_score)})" for w in wallets),
        ]

        return FormattedAlert(
            alert_type=AlertType.CONFLUENCE,
            title=title,
            body=body,
            discord_embed=discord_embed,
            telegram_markdown="\n".join(telegram_lines),
            plain_text="\n".join(plain_lines),
        )
