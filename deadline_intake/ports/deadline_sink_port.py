"""Deadline sink port — where confirmed deadlines are recorded."""

from __future__ import annotations

from typing import Protocol

from deadline_intake.data.models import ConfirmedDeadline


class DeadlineSinkPort(Protocol):
    """Abstract sink for canonical deadline records."""

    async def create_deadline(self, deadline: ConfirmedDeadline) -> None: ...
