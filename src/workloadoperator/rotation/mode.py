"""Graded severity of a rotation decision."""

from __future__ import annotations

__all__ = ("Mode",)

import enum


class Mode(enum.IntEnum):
    """How disruptive the remediation of a template difference is.

    Members are ordered by severity, so the more severe of two modes is
    simply their maximum.
    """

    SKIPPED = 0
    """Nothing to do, or rotation is not possible right now."""

    SILENT = 1
    """The difference is adopted into the status without touching the pod."""

    IN_PLACE = 2
    """The running pod is updated by the actions of the plan."""

    GRACEFUL = 3
    """The pod is restarted with a graceful shutdown."""

    ENFORCED = 4
    """The pod is restarted unconditionally."""

    def combine(self, other: Mode) -> Mode:
        """Return the more severe of the two modes."""
        return Mode(max(self, other))

    @classmethod
    def most_severe(cls, *modes: Mode) -> Mode:
        result = cls.SKIPPED
        for mode in modes:
            result = result.combine(mode)
        return result

    def is_rotation(self) -> bool:
        """Return `True` if the pod has to be restarted."""
        return self >= Mode.GRACEFUL
