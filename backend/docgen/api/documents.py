from __future__ import annotations

import logging
import re
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import AssemblyError, DocGenError, NotFound, UserFacingError, to_user_facing
from ..pipeline.results import RunResult, Stage
from ..services.generation_service import GenerationService, get_generation_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])

GUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")

# UserFacingError.code -> HTTP status
_STATUS_BY_CODE = {
    "record_not_found": 404,
    "source_unavailable": 502,
    "malformed_record": 422,
    "assembly_failed": 422,
    "template_not_found": 500,
    "template_syntax_error": 500,
    "conversion_failed": 502,
}


class GenerateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    record_id: str = Field(..., alias="recordId", min_length=1)


def _require_guid(record_id: str) -> str:
    record_id = record_id.strip().strip("{}")
    if not GUID_RE.match(record_id):
        raise HTTPException(
            status_code=422,
            detail=UserFacingError(
                code="invalid_record_id", message="recordId must be a GUID"
            ).to_dict(),
        )
    return record_id.lower()


def _status_for(error: UserFacingError) -> int:
    return _STATUS_BY_CODE.get(error.code, 500)


def _failure(result: RunResult) -> HTTPException:
    error = result.error or UserFacingError(code="internal_error", message="Document generation failed.")
    return HTTPException(status_code=_status_for(error), detail=error.to_dict())


@router.post("/generate")
async def generate_document(
    body: GenerateRequest, svc: GenerationService = Depends(get_generation_service)
) -> JSONResponse:
    record_id = _require_guid(body.record_id)
    result = await svc.generate(record_id, return_artifact=False)
    if result.ok:
        return JSONResponse(status_code=200, content=result.summary())
    return JSONResponse(status_code=_failure(result).status_code, content=result.summary())


@router.post("/download")
async def download_document(
    body: GenerateRequest, svc: GenerationService = Depends(get_generation_service)
) -> Response:
    record_id = _require_guid(body.record_id)
    result = await svc.generate(record_id, return_artifact=True)
    if not result.ok or result.artifact_bytes is None:
        raise _failure(result)

    headers = {
        "Content-Disposition": f'attachment; filename="{result.artifact_filename}"',
        "X-Stage-Reached": result.stage_reached.value,
    }
    if result.locator:
        headers["X-Document-Locator"] = result.locator
    if result.warnings:
        headers["X-Warning-Count"] = str(len(result.warnings))
    return Response(
        content=result.artifact_bytes,
        media_type=result.artifact_content_type or "application/octet-stream",
        headers=headers,
    )


@router.get("/{record_id}/data")
async def document_data(
    record_id: str, svc: GenerationService = Depends(get_generation_service)
) -> dict[str, Any]:
    """Canonical document preview: fetch + map only."""
    record_id = _require_guid(record_id)
    try:
        assembly = await svc.preview(record_id)
    except DocGenError as e:
        stage = Stage.MAPPING if isinstance(e, AssemblyError) else Stage.FETCHING
        if not isinstance(e, NotFound):
            logger.warning("Preview failed for %s: %s", record_id, e)
        error = to_user_facing(e, stage=stage.value)
        raise HTTPException(status_code=_status_for(error), detail=error.to_dict())

    return {
        "recordId": record_id,
        "document": assembly.document.template_data(),
        "warnings": [w.model_dump() for w in assembly.warnings],
    }
