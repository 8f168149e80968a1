"""Outbound notifications."""

from .slack_service import SlackServiceError, SlackWebhookClient

__all__ = ["SlackServiceError", "SlackWebhookClient"]
