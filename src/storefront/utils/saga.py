"""Compensation log for multi-step writes that have no shared transaction.

Each forward step that succeeds records the action that undoes it. When a
later step fails, ``rollback()`` runs the recorded undo actions in reverse
order. Every undo action is attempted even if an earlier one failed, and the
outcome is reported back so the caller can tell a clean rollback from a
partial one.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class RollbackReport:
    compensated: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed

    def as_dict(self) -> dict:
        return {"compensated": list(self.compensated), "failed": list(self.failed)}


class CompensationLog:
    def __init__(self, name: str, **context) -> None:
        self.name = name
        self.context = context
        self._undo: list[tuple[str, Callable[[], object]]] = []

    def __len__(self) -> int:
        return len(self._undo)

    def record(self, description: str, undo: Callable[[], object]) -> None:
        """Register the undo action for a forward step that just succeeded."""
        self._undo.append((description, undo))

    def rollback(self) -> RollbackReport:
        report = RollbackReport()
        while self._undo:
            description, undo = self._undo.pop()
            try:
                undo()
            except Exception as exc:
                logger.error(
                    "Compensation step failed",
                    saga=self.name,
                    step=description,
                    error=str(exc),
                    **self.context,
                )
                report.failed.append(description)
            else:
                report.compensated.append(description)

        if report.failed:
            logger.error("Rollback incomplete", saga=self.name, **report.as_dict(), **self.context)
        else:
            logger.info("Rollback complete", saga=self.name, steps=len(report.compensated), **self.context)
        return report

    def discard(self) -> None:
        """Forget recorded undo actions once the whole operation succeeded."""
        self._undo.clear()
