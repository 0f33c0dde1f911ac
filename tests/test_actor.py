"""
Unit tests for content actors.

Tests initialization, search reports, refresh outcomes and hydration from the blob store.
"""

from datetime import datetime, timezone

import httpx
import pytest

from textindex.core.exceptions import StateStoreError, ValidationError
from textindex.models.content import ContentMetadata, SearchResult, SourceType
from textindex.services.actor import (
    NOT_AVAILABLE_TEXT,
    NOT_INITIALIZED_TEXT,
    NO_RESULTS_TEXT,
    format_elapsed,
    format_results,
)
from textindex.services.blob_store import content_key
from textindex.services.registry import ActorRegistry
from textindex.services.state_store import InMemoryStateStore

SOURCE_URL = "https://example.com/notes.txt"


class BrokenStateStore(InMemoryStateStore):
    """State store whose reads always fail."""

    async def load(self, actor_id):
        raise StateStoreError("connection refused")


class TestFormatting:
    """Test suite for report formatting."""

    def test_format_elapsed_units(self):
        assert format_elapsed(0.0000005) == "0μs"
        assert format_elapsed(0.00025) == "250μs"
        assert format_elapsed(0.012) == "12ms"
        assert format_elapsed(1.5) == "1.50s"

    def test_no_results_report(self):
        report = format_results(SearchResult(count=0), "xyz", "doc.txt", 0.002)

        assert report.startswith("**Search Results**")
        assert 'Found 0 results for "xyz" in "doc.txt" (2ms)' in report
        assert report.endswith(NO_RESULTS_TEXT)


class TestContentActor:
    """Test suite for ContentActor."""

    @pytest.mark.asyncio
    async def test_search_before_initialize(self, registry):
        report = await registry.get("missing").search("anything")
        assert report == NOT_INITIALIZED_TEXT

    @pytest.mark.asyncio
    async def test_search_after_initialize(self, registry):
        actor = registry.get("doc1")
        await actor.initialize("The service is running smoothly.", "notes.txt", SourceType.UPLOAD)

        report = await actor.search("run")

        assert 'Found 1 result for "run" in "notes.txt"' in report
        assert "Showing top 1 result:" in report
        assert "**Chunk 1**" in report
        assert "The service is running smoothly." in report

    @pytest.mark.asyncio
    async def test_query_is_trimmed(self, registry):
        actor = registry.get("doc1")
        await actor.initialize("Alpha beta gamma.", "greek.txt", SourceType.UPLOAD)

        report = await actor.search("   beta  ")

        assert 'for "beta"' in report

    @pytest.mark.asyncio
    async def test_reinitialize_replaces_content(self, registry):
        actor = registry.get("doc1")
        await actor.initialize("old words about apples", "a.txt", SourceType.UPLOAD)
        await actor.initialize("new words about pears", "b.txt", SourceType.UPLOAD)

        assert "Found 0 results" in await actor.search("apples")
        assert 'Found 1 result for "pears" in "b.txt"' in await actor.search("pears")

    @pytest.mark.asyncio
    async def test_remote_initialize_requires_url(self, registry):
        with pytest.raises(ValidationError):
            await registry.get("doc1").initialize("body", "remote", SourceType.REMOTE)

    @pytest.mark.asyncio
    async def test_remote_initialize_arms_single_wake(self, registry, scheduler):
        actor = registry.get("doc1")
        await actor.initialize("body", SOURCE_URL, SourceType.REMOTE, source_url=SOURCE_URL)
        await actor.initialize("body", SOURCE_URL, SourceType.REMOTE, source_url=SOURCE_URL)

        assert scheduler.pending("doc1") is not None
        assert len(scheduler.fire_times) == 1

    @pytest.mark.asyncio
    async def test_upload_initialize_cancels_wake(self, registry, scheduler):
        actor = registry.get("doc1")
        await actor.initialize("body", SOURCE_URL, SourceType.REMOTE, source_url=SOURCE_URL)
        await actor.initialize("body", "upload.txt", SourceType.UPLOAD)

        assert scheduler.pending("doc1") is None

    @pytest.mark.asyncio
    async def test_state_is_persisted(self, registry, state_store):
        await registry.get("doc1").initialize("body", "a.txt", SourceType.UPLOAD)

        state = await state_store.load("doc1")

        assert state.content == "body"
        assert state.type == SourceType.UPLOAD
        assert state.source_url is None

    @pytest.mark.asyncio
    async def test_refresh_success(self, registry, scheduler, blob_store, state_store, remote_source):
        remote_source.body = "Fresh remote text about turbines."
        actor = registry.get("doc1")
        await actor.initialize("stale text", SOURCE_URL, SourceType.REMOTE, source_url=SOURCE_URL)
        before = await state_store.load("doc1")

        await actor.refresh()

        state = await state_store.load("doc1")
        assert state.content == "Fresh remote text about turbines."
        assert state.last_updated >= before.last_updated
        assert blob_store.objects[content_key("doc1")] == "Fresh remote text about turbines."
        assert scheduler.arms_for("doc1") == 2
        assert remote_source.requests == [SOURCE_URL]
        assert "turbines" in await actor.search("turbine")

    @pytest.mark.asyncio
    async def test_failed_refreshes_keep_content_and_rearm(self, registry, scheduler, state_store, remote_source):
        remote_source.status_code = 503
        actor = registry.get("doc1")
        await actor.initialize("original text", SOURCE_URL, SourceType.REMOTE, source_url=SOURCE_URL)
        arms_before = scheduler.arms_for("doc1")

        await actor.refresh()
        await actor.refresh()

        state = await state_store.load("doc1")
        assert state.content == "original text"
        assert scheduler.arms_for("doc1") == arms_before + 2
        assert scheduler.pending("doc1") is not None

    @pytest.mark.asyncio
    async def test_network_error_on_refresh(self, registry, scheduler, state_store, remote_source):
        remote_source.error = httpx.ConnectError("connection refused")
        actor = registry.get("doc1")
        await actor.initialize("original text", SOURCE_URL, SourceType.REMOTE, source_url=SOURCE_URL)

        await actor.refresh()

        assert (await state_store.load("doc1")).content == "original text"
        assert scheduler.arms_for("doc1") == 2

    @pytest.mark.asyncio
    async def test_refresh_of_upload_does_nothing(self, registry, scheduler, remote_source):
        actor = registry.get("doc1")
        await actor.initialize("upload text", "a.txt", SourceType.UPLOAD)

        await actor.refresh()

        assert remote_source.requests == []
        assert scheduler.armed == []

    @pytest.mark.asyncio
    async def test_hydrates_from_mixed_case_key(self, registry, blob_store):
        await blob_store.put_content("AbC123", "Legacy document about gardening.")
        await blob_store.put_metadata("AbC123", ContentMetadata(
            name="garden.txt",
            type=SourceType.UPLOAD,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        ))

        report = await registry.get("abc123").search("garden")

        assert 'Found 1 result for "garden" in "garden.txt"' in report

    @pytest.mark.asyncio
    async def test_hydrated_remote_state_is_scheduled(self, registry, blob_store, scheduler):
        await blob_store.put_content("rem1", "remote copy")
        await blob_store.put_metadata("rem1", ContentMetadata(
            name=SOURCE_URL,
            type=SourceType.REMOTE,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            source_url=SOURCE_URL,
        ))

        assert await registry.get("rem1").load_content() == ("remote copy", SOURCE_URL)
        assert scheduler.pending("rem1") is not None

    @pytest.mark.asyncio
    async def test_storage_failure_reports_unavailable(self, blob_store, scheduler, fetcher):
        registry = ActorRegistry(
            blob_store=blob_store,
            state_store=BrokenStateStore(),
            scheduler=scheduler,
            fetcher=fetcher,
        )

        assert await registry.get("doc1").search("anything") == NOT_AVAILABLE_TEXT
