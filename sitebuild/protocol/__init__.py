"""
protocol/ - Change notification channel

Wire model for the raw change notifications that drive incremental rebuilds.
"""

from .messages import (
    ChangeNotification,
    parse_message,
)

__all__ = [
    "ChangeNotification",
    "parse_message",
]
