"""
Error taxonomy and tagged dispatch outcomes.

Validation rejections never reach this module: they degrade to a NONE
classification inside the recognizer. Everything the dispatcher can return
is a DispatchOutcome, so callers branch on ``outcome.kind``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.types import ActionResult, CameraAction


class GestureControlError(Exception):
    """Base class for errors surfaced by the gesture control core."""


class RecordingBlockedError(GestureControlError):
    """A gesture other than the stop gesture was shown while recording."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ActionFailedError(GestureControlError):
    """The camera executor reported failure or raised."""

    def __init__(self, action: CameraAction, message: str,
                 cause: Optional[BaseException] = None):
        super().__init__(message)
        self.action = action
        self.message = message
        self.cause = cause


class OutcomeKind(Enum):
    EXECUTED = "executed"   # executor ran the action successfully
    NO_OP = "no_op"         # NONE gesture, nothing to do
    COOLDOWN = "cooldown"   # soft rejection, re-evaluated on next gesture
    INFO = "info"           # soft informational result, nothing dispatched
    BLOCKED = "blocked"     # hard business-rule violation
    FAILED = "failed"       # executor failure


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of dispatching one gesture."""
    kind: OutcomeKind
    message: str
    action: Optional[CameraAction] = None
    result: Optional[ActionResult] = None
    error: Optional[GestureControlError] = None

    @property
    def is_error(self) -> bool:
        return self.kind in (OutcomeKind.BLOCKED, OutcomeKind.FAILED)

    @property
    def executed(self) -> bool:
        return self.kind == OutcomeKind.EXECUTED

    # -- constructors ---------------------------------------------------------

    @classmethod
    def executed_with(cls, result: ActionResult) -> 'DispatchOutcome':
        return cls(OutcomeKind.EXECUTED, result.message, result.action, result)

    @classmethod
    def no_op(cls, message: str) -> 'DispatchOutcome':
        return cls(OutcomeKind.NO_OP, message)

    @classmethod
    def cooldown(cls, action: Optional[CameraAction], message: str) -> 'DispatchOutcome':
        return cls(OutcomeKind.COOLDOWN, message, action)

    @classmethod
    def info(cls, action: CameraAction, message: str) -> 'DispatchOutcome':
        return cls(OutcomeKind.INFO, message, action)

    @classmethod
    def blocked(cls, message: str) -> 'DispatchOutcome':
        return cls(OutcomeKind.BLOCKED, message, error=RecordingBlockedError(message))

    @classmethod
    def failed(cls, action: CameraAction, message: str,
               result: Optional[ActionResult] = None,
               cause: Optional[BaseException] = None) -> 'DispatchOutcome':
        return cls(OutcomeKind.FAILED, message, action, result,
                   ActionFailedError(action, message, cause))
