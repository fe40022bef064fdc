from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence


@dataclass
class UserFacingError(Exception):
    """
    An error that is safe and useful to show directly to the caller.
    """
    code: str
    message: str
    details: Optional[dict[str, Any]] = None
    stage: Optional[str] = None

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.stage:
            out["stage"] = self.stage
        if self.details:
            out["details"] = self.details
        return out


class DocGenError(Exception):
    """Base error for the document generation pipeline."""

    code = "internal_error"
    user_message = "Document generation failed."


# ----------------------------
# Fetching
# ----------------------------

class NotFound(DocGenError):
    code = "record_not_found"
    user_message = "Record not found in the case-management store."


class TransportError(DocGenError):
    code = "source_unavailable"
    user_message = "The case-management store could not be reached."

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


# ----------------------------
# Mapping
# ----------------------------

class MalformedSourceRecord(DocGenError):
    code = "malformed_record"
    user_message = "The source record is malformed."


class FlagEvaluationError(DocGenError):
    """Absorbed: the flag defaults to False and a warning is recorded."""

    code = "flag_evaluation_error"

    def __init__(self, flag_name: str, reason: str) -> None:
        super().__init__(f"{flag_name}: {reason}")
        self.flag_name = flag_name
        self.reason = reason


class AssemblyError(DocGenError):
    code = "assembly_failed"
    user_message = "The source record could not be mapped to a document."


# ----------------------------
# Rendering / conversion
# ----------------------------

class TemplateNotFound(DocGenError):
    code = "template_not_found"
    user_message = "Document template not found."


class TemplateSyntaxError(DocGenError):
    code = "template_syntax_error"
    user_message = "Document template does not match the document data."

    def __init__(self, message: str, *, unmatched: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.unmatched = list(unmatched)


class ConversionError(DocGenError):
    code = "conversion_failed"
    user_message = "PDF conversion failed."


class ConverterNotConfigured(DocGenError):
    """Not an error: the converter is disabled, the stage is skipped."""

    code = "converter_not_configured"


# ----------------------------
# Persistence / notification
# ----------------------------

class StorageError(DocGenError):
    code = "storage_failed"


class NotificationChannelError(DocGenError):
    code = "notification_channel_failed"

    def __init__(self, channel: str, message: str) -> None:
        super().__init__(f"{channel}: {message}")
        self.channel = channel


class AllNotificationChannelsExhausted(DocGenError):
    code = "notification_failed"
    user_message = "The document could not be delivered by any notification channel."

    def __init__(self, errors: Sequence[tuple[str, str]], *, delivery: Any = None) -> None:
        listed = "; ".join(f"{k}: {v}" for k, v in errors) or "no channels"
        super().__init__(f"All notification channels failed ({listed})")
        self.errors = list(errors)
        self.delivery = delivery


def to_user_facing(e: BaseException, *, stage: Optional[str] = None) -> UserFacingError:
    """
    Normalize exception to a sanitized user-facing error.
    Internal collaborator detail stays in logs.
    """
    if isinstance(e, UserFacingError):
        if stage and not e.stage:
            e.stage = stage
        return e
    if isinstance(e, TemplateSyntaxError):
        return UserFacingError(
            code=e.code,
            message=e.user_message,
            details={"unmatched": e.unmatched} if e.unmatched else None,
            stage=stage,
        )
    if isinstance(e, DocGenError):
        return UserFacingError(code=e.code, message=e.user_message, stage=stage)
    return UserFacingError(
        code=DocGenError.code, message=DocGenError.user_message, stage=stage
    )
