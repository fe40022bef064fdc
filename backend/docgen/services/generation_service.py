from __future__ import annotations

import logging
from functools import lru_cache, partial
from typing import Any, Dict, Optional

from ..convert.factory import build_converter
from ..core.config import Settings
from ..core.errors import TransportError
from ..fetch.dataverse import build_fetcher
from ..mapping.assembler import AssemblyResult, CanonicalAssembler
from ..notify.factory import build_router
from ..notify.router import NotificationRouter
from ..pipeline.orchestrator import Converter, Fetcher, PipelineOrchestrator
from ..pipeline.results import RunResult
from ..render.xlsx_template import XlsxTemplateRenderer, load_template
from ..storage import build_store
from ..storage.base import Store

logger = logging.getLogger(__name__)

_DEFAULT = object()


class UnconfiguredFetcher:
    """Stands in when DATAVERSE_* / AZURE_* are missing; every fetch fails as a transport error."""

    async def fetch(self, record_id: str) -> Dict[str, Any]:
        raise TransportError("Dataverse connection is not configured")


class GenerationService:
    """
    Facade wiring the pipeline from Settings:
      - generate: full run (fetch -> ... -> notify)
      - preview: fetch + map only, no side effects

    Collaborators can be injected; anything not given is built from settings.
    One instance is shared per process so the Dataverse token cache is shared.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        fetcher: Optional[Fetcher] = None,
        converter: Optional[Converter] = None,
        store: Any = _DEFAULT,
        router: Optional[NotificationRouter] = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        s = self.settings

        self.fetcher: Fetcher = fetcher or build_fetcher(s) or UnconfiguredFetcher()
        self.assembler = CanonicalAssembler(template_version=s.template_version)
        self.store: Optional[Store] = build_store(s) if store is _DEFAULT else store
        self.router = router if router is not None else build_router(s)

        self.orchestrator = PipelineOrchestrator(
            fetcher=self.fetcher,
            assembler=self.assembler,
            renderer=XlsxTemplateRenderer(),
            load_template=partial(load_template, s.templates_path, s.document_type),
            converter=converter or build_converter(
                s.pdf_conversion_engine, timeout_seconds=s.conversion_timeout_seconds, settings=s
            ),
            store=self.store,
            router=self.router,
            document_type=s.document_type,
            template_version=s.template_version,
        )

        if isinstance(self.fetcher, UnconfiguredFetcher):
            logger.warning("Dataverse is not configured; generation requests will fail at Fetching")

    async def generate(self, record_id: str, *, return_artifact: bool = True) -> RunResult:
        return await self.orchestrator.run(record_id, return_artifact=return_artifact)

    async def preview(self, record_id: str) -> AssemblyResult:
        """Canonical document for a record. Raises NotFound / TransportError / AssemblyError."""
        raw = await self.fetcher.fetch(record_id)
        return self.assembler.assemble(raw)


@lru_cache(maxsize=1)
def get_generation_service() -> GenerationService:
    return GenerationService()
