from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from ..contracts.canonical import DataWarning
from ..core.errors import UserFacingError
from ..notify.base import DeliveryResult

T = TypeVar("T")


class Stage(str, Enum):
    FETCHING = "Fetching"
    MAPPING = "Mapping"
    RENDERING = "Rendering"
    CONVERTING = "Converting"
    STORING = "Storing"
    NOTIFYING = "Notifying"
    DONE = "Done"
    FAILED = "Failed"


# ----------------------------
# Tagged stage results
# ----------------------------

@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Skipped:
    reason: str


@dataclass(frozen=True)
class Failed:
    stage: Stage
    error: BaseException


StageResult = Union[Ok[Any], Skipped, Failed]


@dataclass(frozen=True)
class StageOutcome:
    stage: Stage
    status: str  # "ok" | "skipped" | "failed"
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"stage": self.stage.value, "status": self.status}
        if self.reason:
            out["reason"] = self.reason
        return out


@dataclass
class RunResult:
    """
    Outcome of one pipeline invocation.

    stage_reached is Done or Failed; failed_stage names where a failed run stopped.
    """

    record_id: str
    stage_reached: Stage = Stage.FETCHING
    failed_stage: Optional[Stage] = None
    artifact_bytes: Optional[bytes] = None
    artifact_content_type: Optional[str] = None
    artifact_filename: Optional[str] = None
    locator: Optional[str] = None
    delivery_result: Optional[DeliveryResult] = None
    warnings: List[DataWarning] = field(default_factory=list)
    error: Optional[UserFacingError] = None
    stages: List[StageOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.stage_reached is Stage.DONE

    def warn(self, code: str, message: str, **context: Any) -> None:
        self.warnings.append(DataWarning(code=code, message=message, context=context))

    def summary(self) -> Dict[str, Any]:
        """JSON-safe view without the artifact bytes."""
        delivery = None
        if self.delivery_result is not None:
            delivery = {
                "success": self.delivery_result.success,
                "channel": self.delivery_result.channel,
                "messageId": self.delivery_result.message_id,
                "attempts": [
                    {"channel": a.channel, "success": a.success, "skipped": a.skipped, "error": a.error}
                    for a in self.delivery_result.attempts
                ],
            }
        return {
            "recordId": self.record_id,
            "stageReached": self.stage_reached.value,
            "failedStage": self.failed_stage.value if self.failed_stage else None,
            "artifact": {
                "contentType": self.artifact_content_type,
                "filename": self.artifact_filename,
                "size": len(self.artifact_bytes),
            } if self.artifact_bytes is not None else None,
            "locator": self.locator,
            "delivery": delivery,
            "warnings": [w.model_dump() for w in self.warnings],
            "stages": [s.to_dict() for s in self.stages],
            "error": self.error.to_dict() if self.error else None,
        }
