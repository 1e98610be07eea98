"""
Console event publisher adapter - Implements EventPublisher protocol.

This module provides a console-based implementation of the domain's
event publisher port, logging events to stdout for demo purposes.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)


class ConsoleEventPublisher:
    """
    Implements EventPublisher protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - a real deployment would hand events
    to a message bus that feeds the notification service.
    """

    def publish(self, event: str, payload: Mapping[str, Any]) -> None:
        """
        Log an event at INFO level (simulates publication).

        Args:
            event: Event name, e.g. "customer.password_reset"
            payload: JSON-serializable event data
        """
        logger.info("[EVENT] %s %s", event, json.dumps(dict(payload), sort_keys=True))
