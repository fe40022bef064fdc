"""
Tests for GenerationService wiring.
"""

from dataclasses import replace

import pytest

from builders import RECORD_ID, make_record
from docgen.convert import DisabledConverter
from docgen.core.config import Settings
from docgen.core.errors import NotFound
from docgen.notify import NotificationRouter
from docgen.pipeline import Stage
from docgen.services.generation_service import GenerationService, UnconfiguredFetcher
from docgen.storage import LocalStore


class FakeFetcher:
    def __init__(self, record=None, error=None):
        self.record = record if record is not None else make_record()
        self.error = error

    async def fetch(self, record_id):
        if self.error:
            raise self.error
        return self.record


@pytest.fixture
def settings(tmp_path, temp_output_dir):
    return replace(
        Settings(),
        templates_path=tmp_path / "templates",
        template_version="3.0",
        pdf_conversion_engine="none",
        storage_type="local",
        storage_local_path=temp_output_dir,
        notify_channels=[],
    )


class TestGenerationService:
    """Test suite for GenerationService."""

    def test_builds_collaborators_from_settings(self, settings):
        service = GenerationService(settings)

        assert isinstance(service.fetcher, UnconfiguredFetcher)
        assert isinstance(service.store, LocalStore)
        assert len(service.router) == 0
        assert service.orchestrator.template_version == "3.0"

    @pytest.mark.asyncio
    async def test_unconfigured_dataverse_fails_at_fetching(self, settings):
        result = await GenerationService(settings).generate(RECORD_ID)

        assert result.stage_reached is Stage.FAILED
        assert result.failed_stage is Stage.FETCHING
        assert result.error.code == "source_unavailable"

    @pytest.mark.asyncio
    async def test_generate_with_injected_fetcher(self, settings, temp_output_dir):
        service = GenerationService(settings, fetcher=FakeFetcher())

        result = await service.generate(RECORD_ID)

        assert result.ok
        assert result.artifact_filename == f"AuthorisedIndividual_{RECORD_ID}.xlsx"
        assert result.locator.startswith("file://")
        assert "-v3.0.xlsx" in result.locator
        assert any(temp_output_dir.rglob("*.xlsx"))

    @pytest.mark.asyncio
    async def test_injected_store_and_router_win(self, settings):
        service = GenerationService(
            settings,
            fetcher=FakeFetcher(),
            converter=DisabledConverter(),
            store=None,
            router=NotificationRouter([]),
        )

        result = await service.generate(RECORD_ID, return_artifact=False)

        assert result.ok
        assert result.locator == "storage://not-configured"
        assert result.artifact_bytes is None

    @pytest.mark.asyncio
    async def test_preview(self, settings):
        service = GenerationService(settings, fetcher=FakeFetcher())

        assembly = await service.preview(RECORD_ID)

        assert assembly.document.template_version == "3.0"
        assert assembly.document.scalar_sections.application.record_id == RECORD_ID

    @pytest.mark.asyncio
    async def test_preview_propagates_fetch_errors(self, settings):
        service = GenerationService(settings, fetcher=FakeFetcher(error=NotFound("gone")))

        with pytest.raises(NotFound):
            await service.preview(RECORD_ID)
