"""In-memory deadline sink — keeps confirmed deadlines in a list."""

from __future__ import annotations

import logging

from deadline_intake.data.models import ConfirmedDeadline

logger = logging.getLogger(__name__)


class InMemoryDeadlineSink:
    """DeadlineSinkPort that records deadlines for the current process."""

    def __init__(self) -> None:
        self.deadlines: list[ConfirmedDeadline] = []

    async def create_deadline(self, deadline: ConfirmedDeadline) -> None:
        self.deadlines.append(deadline)
        logger.info("Recorded deadline '%s' for %s", deadline.title, deadline.course)
