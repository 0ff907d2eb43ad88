"""Task assignment notifiers."""

from __future__ import annotations

import logging

__all__ = ["LoggingNotifier"]

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Notifier that records every assignment in the log.

    Useful as a default until a real delivery channel (email, chat, push) is
    wired in.
    """

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    async def notify_task_assigned(self, principal_id: str, instance_id: str, step_id: str) -> None:
        logger.log(
            self.level,
            "Task for step %s of instance %s assigned to %s",
            step_id,
            instance_id,
            principal_id,
            extra={"principal_id": principal_id, "instance_id": instance_id, "step_id": step_id},
        )
