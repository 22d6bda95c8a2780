"""Alerting layer - Notifier capability and multi-channel message formatting."""

from whale_analytics.alerter.formatter import AlertFormatter
from whale_analytics.alerter.models import AlertType, FormattedAlert
from whale_analytics.alerter.notifier import AlertNotifier, LoggingAlertNotifier

__all__ = [
    "AlertFormatter",
    "AlertNotifier",
    "AlertType",
    "FormattedAlert",
    "LoggingAlertNotifier",
]
