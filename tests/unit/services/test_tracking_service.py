"""Tests for the tracking read service."""

from unittest.mock import AsyncMock, Mock

import pytest

from duri_tracking.core.exceptions import APIClientError, ConfigurationError, NotFoundError
from duri_tracking.services.cache import TTLCache
from duri_tracking.services.tracking_service import TrackingFilters, TrackingService


@pytest.fixture
def source(sample_raw_tasks) -> Mock:
    source = Mock()
    source.fetch_tasks = AsyncMock(return_value=sample_raw_tasks)
    return source


@pytest.fixture
def cache() -> TTLCache:
    return TTLCache(ttl_seconds=300)


@pytest.fixture
def service(source, cache, assembler) -> TrackingService:
    return TrackingService(source, cache, assembler)


class TestListTrackings:
    @pytest.mark.asyncio
    async def test_unified_lists_every_company(self, service) -> None:
        response = await service.list_trackings("unified")

        assert response.success is True
        assert [t.company_name for t in response.data] == ["WCB", "AMZ", "EXPOFRUT"]
        assert response.metrics.total_operations == 3
        assert response.meta.total_tasks == 5
        assert response.meta.kept == 3
        assert response.meta.unmatched == 1
        assert response.meta.skipped == 1
        assert response.meta.cached is False

    @pytest.mark.asyncio
    async def test_company_scope_is_case_insensitive(self, service) -> None:
        response = await service.list_trackings("trackings", company=" wcb ")

        assert [t.source_id for t in response.data] == ["1001"]
        assert response.meta.company == "WCB"

    @pytest.mark.asyncio
    async def test_filters(self, service) -> None:
        by_exporter = await service.list_trackings(
            "unified", filters=TrackingFilters(exporter="green")
        )
        by_agency = await service.list_trackings("unified", filters=TrackingFilters(agency="anvisa"))
        by_search = await service.list_trackings(
            "unified", filters=TrackingFilters(search="MSCU7654321")
        )

        assert [t.source_id for t in by_exporter.data] == ["1001"]
        assert [t.source_id for t in by_agency.data] == ["1003"]
        assert [t.source_id for t in by_search.data] == ["1001"]

    @pytest.mark.asyncio
    async def test_status_filter(self, service) -> None:
        response = await service.list_trackings("unified", filters=TrackingFilters(status="concluído"))

        assert [t.source_id for t in response.data] == ["1002"]

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self, service, source) -> None:
        await service.list_trackings("unified", company="WCB")
        response = await service.list_trackings("unified", company="WCB")

        assert response.meta.cached is True
        source.fetch_tasks.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_variants_share_one_snapshot(self, service, source) -> None:
        await service.list_trackings("unified")
        response = await service.list_trackings("trackings", company="AMZ")

        assert response.meta.cached is True
        source.fetch_tasks.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refresh_bypasses_cache(self, service, source) -> None:
        await service.list_trackings("unified")
        response = await service.list_trackings("unified", refresh=True)

        assert response.meta.cached is False
        assert source.fetch_tasks.await_count == 2

    @pytest.mark.asyncio
    async def test_unmatched_variant(self, service) -> None:
        response = await service.list_trackings("unmatched")

        assert response.data == []
        assert [u.source_id for u in response.unmatched] == ["1004"]

    @pytest.mark.asyncio
    async def test_enhanced_variant_analyzes_custom_fields(self, service) -> None:
        response = await service.list_trackings("enhanced", company="WCB")

        assert response.custom_fields_analysis is not None

    @pytest.mark.asyncio
    async def test_unknown_variant(self, service) -> None:
        with pytest.raises(NotFoundError):
            await service.list_trackings("everything")

    @pytest.mark.asyncio
    async def test_source_failure_is_soft(self, service, source, cache) -> None:
        source.fetch_tasks.side_effect = APIClientError("Falha na fonte")

        response = await service.list_trackings("unified")

        assert response.success is False
        assert response.data == []
        assert response.details == "Falha na fonte"
        assert response.metrics.total_operations == 0
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self, service, source) -> None:
        source.fetch_tasks.side_effect = ConfigurationError("Token ausente")

        with pytest.raises(ConfigurationError):
            await service.list_trackings("unified")


class TestGetTracking:
    @pytest.mark.asyncio
    async def test_by_id_or_source_id(self, service) -> None:
        assert (await service.get_tracking("122-wcb")).source_id == "1001"
        assert (await service.get_tracking("1002")).company_name == "AMZ"

    @pytest.mark.asyncio
    async def test_out_of_scope_is_not_found(self, service) -> None:
        with pytest.raises(NotFoundError):
            await service.get_tracking("1001", company="AMZ")

    @pytest.mark.asyncio
    async def test_trackings_for_company(self, service) -> None:
        assert [t.source_id for t in await service.trackings_for_company("expofrut")] == ["1003"]
        assert len(await service.trackings_for_company(None)) == 3


class TestTaskExtras:
    @pytest.mark.asyncio
    async def test_attachments_come_from_source(self, service, source) -> None:
        source.fetch_attachments = AsyncMock(return_value=["attachment"])

        assert await service.get_attachments("1001") == ["attachment"]
        source.fetch_attachments.assert_awaited_once_with("1001")
