"""Services module - inbox business logic, operator alerts and the message codec."""

from . import inbox_service, message_codec, operator_alerts

__all__ = ["inbox_service", "message_codec", "operator_alerts"]
