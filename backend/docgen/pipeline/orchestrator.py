from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from ..contracts.canonical import CanonicalDocument
from ..convert.libreoffice import PDF_CONTENT_TYPE
from ..core.errors import (
    AllNotificationChannelsExhausted,
    ConverterNotConfigured,
    DocGenError,
    to_user_facing,
)
from ..mapping.assembler import AssemblyResult, CanonicalAssembler
from ..notify.base import DeliveryResult, EmailPayload
from ..notify.router import NotificationRouter
from ..render.xlsx_template import TemplateHandle
from ..storage.base import FAILED_LOCATOR, NOT_CONFIGURED_LOCATOR, KeyParts, Store, is_sentinel
from .results import Failed, Ok, RunResult, Skipped, Stage, StageOutcome, StageResult

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    async def fetch(self, record_id: str) -> Dict[str, Any]: ...


class Renderer(Protocol):
    content_type: str
    extension: str

    def render(self, template: TemplateHandle, document: CanonicalDocument) -> bytes: ...


class Converter(Protocol):
    """convert may be sync (run in a worker thread) or a coroutine function."""

    def convert(self, data: bytes) -> Any: ...


class PipelineOrchestrator:
    """
    Fetching -> Mapping -> Rendering -> Converting -> Storing -> Notifying -> Done.

    Each stage yields Ok / Skipped / Failed; the run advances strictly forward,
    each stage at most once. Fetch, map, render and convert failures end the
    run in Failed. A storage failure leaves a sentinel locator and a warning,
    exhausting every notification channel records Notifying as failed and
    leaves delivery_result.success=False and a warning; both still reach Done.
    """

    def __init__(
        self,
        *,
        fetcher: Fetcher,
        assembler: CanonicalAssembler,
        renderer: Renderer,
        load_template: Callable[[], TemplateHandle],
        converter: Converter,
        store: Optional[Store] = None,
        router: Optional[NotificationRouter] = None,
        document_type: str = "AuthorisedIndividual",
        template_version: str = "1.0",
    ) -> None:
        self._fetcher = fetcher
        self._assembler = assembler
        self._renderer = renderer
        self._load_template = load_template
        self._converter = converter
        self._store = store
        self._router = router
        self.document_type = document_type
        self.template_version = template_version

    # -----------------------------
    # Stage plumbing
    # -----------------------------
    async def _step(self, stage: Stage, fn: Callable[[], Awaitable[Any]]) -> StageResult:
        logger.info("[%s] started", stage.value)
        try:
            value = await fn()
        except DocGenError as e:
            logger.warning("[%s] failed: %s", stage.value, e)
            return Failed(stage=stage, error=e)
        except Exception as e:  # noqa: BLE001
            logger.exception("[%s] unexpected error", stage.value)
            return Failed(stage=stage, error=e)
        if isinstance(value, Skipped):
            logger.info("[%s] skipped: %s", stage.value, value.reason)
            return value
        return Ok(value)

    @staticmethod
    def _record(result: RunResult, outcome: StageResult, stage: Stage) -> None:
        result.stage_reached = stage
        if isinstance(outcome, Ok):
            result.stages.append(StageOutcome(stage, "ok"))
        elif isinstance(outcome, Skipped):
            result.stages.append(StageOutcome(stage, "skipped", outcome.reason))
        else:
            result.stages.append(StageOutcome(stage, "failed", type(outcome.error).__name__))

    @staticmethod
    def _fail(result: RunResult, failed: Failed) -> RunResult:
        result.stage_reached = Stage.FAILED
        result.failed_stage = failed.stage
        result.error = to_user_facing(failed.error, stage=failed.stage.value)
        result.artifact_bytes = None
        result.artifact_content_type = None
        result.artifact_filename = None
        logger.error("Pipeline failed for %s at %s: %s", result.record_id, failed.stage.value, result.error.code)
        return result

    # -----------------------------
    # Stages
    # -----------------------------
    async def _fetch(self, record_id: str) -> Dict[str, Any]:
        return await self._fetcher.fetch(record_id)

    async def _map(self, raw: Dict[str, Any]) -> AssemblyResult:
        return self._assembler.assemble(raw)

    async def _render(self, document: CanonicalDocument) -> bytes:
        template = await asyncio.to_thread(self._load_template)
        return await asyncio.to_thread(self._renderer.render, template, document)

    async def _convert(self, rendered: bytes) -> Any:
        try:
            if inspect.iscoroutinefunction(self._converter.convert):
                return await self._converter.convert(rendered)
            return await asyncio.to_thread(self._converter.convert, rendered)
        except ConverterNotConfigured as e:
            return Skipped(reason=str(e) or "converter not configured")

    async def _persist(self, data: bytes, key_parts: KeyParts) -> Any:
        if self._store is None:
            return Skipped(reason="no store configured")
        return await asyncio.to_thread(self._store.put, data, key_parts)

    async def _notify(self, payload: Optional[EmailPayload]) -> Any:
        if payload is None:
            return Skipped(reason="no recipient e-mail on the record")
        if self._router is None or len(self._router) == 0:
            return Skipped(reason="no notification channel configured")
        delivery = await self._router.send(payload)
        delivery.raise_for_exhaustion()
        return delivery

    # -----------------------------
    # Public API
    # -----------------------------
    async def run(self, record_id: str, *, return_artifact: bool = True) -> RunResult:
        result = RunResult(record_id=record_id)
        logger.info("Pipeline started for %s", record_id)

        # Fetching
        fetched = await self._step(Stage.FETCHING, lambda: self._fetch(record_id))
        self._record(result, fetched, Stage.FETCHING)
        if isinstance(fetched, Failed):
            return self._fail(result, fetched)
        raw = fetched.value  # type: ignore[union-attr]

        # Mapping
        mapped = await self._step(Stage.MAPPING, lambda: self._map(raw))
        self._record(result, mapped, Stage.MAPPING)
        if isinstance(mapped, Failed):
            return self._fail(result, mapped)
        assembly: AssemblyResult = mapped.value  # type: ignore[union-attr]
        result.warnings.extend(assembly.warnings)
        document = assembly.document

        # Rendering
        rendered = await self._step(Stage.RENDERING, lambda: self._render(document))
        self._record(result, rendered, Stage.RENDERING)
        if isinstance(rendered, Failed):
            return self._fail(result, rendered)
        artifact: bytes = rendered.value  # type: ignore[union-attr]
        content_type = self._renderer.content_type
        extension = self._renderer.extension

        # Converting
        converted = await self._step(Stage.CONVERTING, lambda: self._convert(artifact))
        self._record(result, converted, Stage.CONVERTING)
        if isinstance(converted, Failed):
            return self._fail(result, converted)
        if isinstance(converted, Ok):
            artifact = converted.value
            content_type = PDF_CONTENT_TYPE
            extension = "pdf"
        else:
            result.warn(
                "conversion_skipped",
                f"PDF conversion skipped, returning the {extension.upper()} document",
                reason=converted.reason,
            )

        # Storing (best effort)
        key_parts = KeyParts(
            id=record_id, kind=self.document_type, version=self.template_version, extension=extension
        )
        stored = await self._step(Stage.STORING, lambda: self._persist(artifact, key_parts))
        self._record(result, stored, Stage.STORING)
        if isinstance(stored, Ok):
            result.locator = stored.value
        elif isinstance(stored, Skipped):
            result.locator = NOT_CONFIGURED_LOCATOR
        else:
            result.locator = FAILED_LOCATOR
            result.warn(
                "storage_failed",
                "Document could not be stored; it is returned directly",
                error=to_user_facing(stored.error).code,
            )

        # Notifying
        payload = self._email_payload(document, record_id, artifact, content_type, extension, result.locator)
        notified = await self._step(Stage.NOTIFYING, lambda: self._notify(payload))
        self._record(result, notified, Stage.NOTIFYING)
        if isinstance(notified, Ok):
            result.delivery_result = notified.value
        elif isinstance(notified, Failed) and isinstance(notified.error, AllNotificationChannelsExhausted):
            delivery: DeliveryResult = notified.error.delivery
            result.delivery_result = delivery
            result.warn(
                "notification_failed",
                "Document could not be delivered by any notification channel",
                channels=[a.channel for a in delivery.attempts if not a.success],
            )
        elif isinstance(notified, Failed):
            result.warn("notification_failed", "Notification stage failed", error=type(notified.error).__name__)

        result.stage_reached = Stage.DONE
        result.artifact_content_type = content_type
        result.artifact_filename = f"{self.document_type}_{record_id}.{extension}"
        result.artifact_bytes = artifact if return_artifact else None
        logger.info(
            "Pipeline finished for %s: locator=%s warnings=%d", record_id, result.locator, len(result.warnings)
        )
        return result

    @staticmethod
    def _email_payload(
        document: CanonicalDocument,
        record_id: str,
        artifact: bytes,
        content_type: str,
        extension: str,
        locator: Optional[str],
    ) -> Optional[EmailPayload]:
        application = document.scalar_sections.application
        recipient = application.requestor.email.strip()
        if not recipient:
            return None
        return EmailPayload(
            recipient_email=recipient,
            applicant_name=application.candidate_name or application.requestor.name or "Applicant",
            application_id=record_id,
            attachment=artifact,
            attachment_filename=f"DFSA_Application_{record_id}.{extension}",
            attachment_content_type=content_type,
            document_url=None if is_sentinel(locator) else locator,
        )
