"""Admission tests: dedup window, toggle gate, capacity, malformed input."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from conftest import NOW, FailingBackend

from lifelog.admission import AdmissionUnit, is_recent_duplicate
from lifelog.backends import MemoryBackend
from lifelog.schemas import AdmissionResult
from lifelog.state import LoggingState
from lifelog.store import BoundedLogStore


@pytest.fixture
def state(backend: FailingBackend) -> LoggingState:
    return LoggingState(backend, key="test:state")


@pytest.fixture
def unit(store: BoundedLogStore, state: LoggingState) -> AdmissionUnit:
    return AdmissionUnit(store, state)


def _event(url: str = "https://a.com/", source: str = "history", title: str | None = "A") -> dict:
    return {"url": url, "title": title, "source": source}


class TestDedupWindow:
    """Same-URL events within five minutes are counted once."""

    @pytest.mark.asyncio
    async def test_window_example(self, unit: AdmissionUnit, store: BoundedLogStore):
        assert await unit.admit(_event("a.com"), now=NOW) == AdmissionResult.ACCEPTED
        assert await unit.admit(_event("a.com"), now=NOW + timedelta(minutes=4)) == AdmissionResult.SKIPPED_DUPLICATE
        assert await unit.admit(_event("a.com"), now=NOW + timedelta(minutes=6)) == AdmissionResult.ACCEPTED
        entries = await store.load_all()
        assert [e.url for e in entries] == ["a.com", "a.com"]

    @pytest.mark.asyncio
    async def test_exactly_five_minutes_is_not_duplicate(self, unit: AdmissionUnit):
        await unit.admit(_event(), now=NOW)
        assert await unit.admit(_event(), now=NOW + timedelta(minutes=5)) == AdmissionResult.ACCEPTED

    @pytest.mark.asyncio
    async def test_history_then_tab_for_same_navigation(self, unit: AdmissionUnit, store: BoundedLogStore):
        await unit.admit(_event(source="history"), now=NOW)
        result = await unit.admit(_event(source="tab"), now=NOW + timedelta(seconds=1))
        assert result == AdmissionResult.SKIPPED_DUPLICATE
        assert len(await store.load_all()) == 1

    @pytest.mark.asyncio
    async def test_different_urls_not_deduplicated(self, unit: AdmissionUnit, store: BoundedLogStore):
        await unit.admit(_event("https://a.com/"), now=NOW)
        assert await unit.admit(_event("https://b.com/"), now=NOW) == AdmissionResult.ACCEPTED
        assert len(await store.load_all()) == 2

    def test_is_recent_duplicate_is_strict(self):
        from conftest import make_record

        entries = [make_record(url="u", timestamp=NOW)]
        assert is_recent_duplicate(entries, "u", NOW - timedelta(seconds=1))
        assert not is_recent_duplicate(entries, "u", NOW)
        assert not is_recent_duplicate(entries, "v", NOW - timedelta(seconds=1))


class TestToggleGate:
    @pytest.mark.asyncio
    async def test_disabled_does_not_touch_log(self, unit: AdmissionUnit, state: LoggingState, backend: FailingBackend):
        await state.set_enabled(False)
        backend.fail_reads = True  # any log read would fail
        assert await unit.admit(_event(), now=NOW) == AdmissionResult.DISABLED
        assert "test:entries" not in backend

    @pytest.mark.asyncio
    async def test_reenabled_accepts_again(self, unit: AdmissionUnit, state: LoggingState):
        await state.set_enabled(False)
        await state.set_enabled(True)
        assert await unit.admit(_event(), now=NOW) == AdmissionResult.ACCEPTED


class TestCapacity:
    @pytest.mark.asyncio
    async def test_1001_admissions_keep_1000_most_recent(self, unit: AdmissionUnit, store: BoundedLogStore):
        for i in range(1001):
            result = await unit.admit(_event(f"https://site{i}.com/"), now=NOW + timedelta(seconds=i))
            assert result == AdmissionResult.ACCEPTED
        entries = await store.load_all()
        assert len(entries) == 1000
        assert entries[0].url == "https://site1000.com/"
        assert entries[-1].url == "https://site1.com/"
        assert "https://site0.com/" not in {e.url for e in entries}

    @pytest.mark.asyncio
    async def test_ids_unique_across_log(self, unit: AdmissionUnit, store: BoundedLogStore):
        for i in range(50):
            await unit.admit(_event(f"https://site{i}.com/"), now=NOW)
        entries = await store.load_all()
        assert len({e.id for e in entries}) == 50


class TestMalformedInput:
    @pytest.mark.asyncio
    async def test_missing_url_rejected(self, unit: AdmissionUnit, store: BoundedLogStore):
        assert await unit.admit({"title": "x", "source": "tab"}, now=NOW) == AdmissionResult.REJECTED
        assert await store.load_all() == []

    @pytest.mark.asyncio
    async def test_unknown_source_rejected(self, unit: AdmissionUnit):
        assert await unit.admit(_event(source="bookmark"), now=NOW) == AdmissionResult.REJECTED

    @pytest.mark.asyncio
    async def test_empty_url_stored_with_unknown_domain(self, unit: AdmissionUnit, store: BoundedLogStore):
        assert await unit.admit(_event(url=""), now=NOW) == AdmissionResult.ACCEPTED
        entries = await store.load_all()
        assert entries[0].domain == "unknown"

    @pytest.mark.asyncio
    async def test_lone_surrogate_url_rejected(self, unit: AdmissionUnit, store: BoundedLogStore):
        result = await unit.admit({"url": "https://a.com/\ud800", "source": "tab"}, now=NOW)
        assert result == AdmissionResult.REJECTED
        assert await store.load_all() == []

    @pytest.mark.asyncio
    async def test_lone_surrogate_title_rejected(self, unit: AdmissionUnit, store: BoundedLogStore):
        result = await unit.admit(_event(title="broken \udfff title"), now=NOW)
        assert result == AdmissionResult.REJECTED
        assert await store.load_all() == []


class TestStorageFailure:
    @pytest.mark.asyncio
    async def test_failed_write_reports_failed(self, unit: AdmissionUnit, store: BoundedLogStore, backend: FailingBackend):
        await unit.admit(_event("https://a.com/"), now=NOW)
        backend.fail_writes = True
        assert await unit.admit(_event("https://b.com/"), now=NOW) == AdmissionResult.FAILED
        backend.fail_writes = False
        assert [e.url for e in await store.load_all()] == ["https://a.com/"]

    @pytest.mark.asyncio
    async def test_failed_read_reports_failed(self, unit: AdmissionUnit, backend: FailingBackend):
        backend.fail_reads = True
        assert await unit.admit(_event(), now=NOW) == AdmissionResult.FAILED


class TestOrdering:
    @pytest.mark.asyncio
    async def test_newest_first_after_mixed_admissions(self):
        backend = MemoryBackend()
        unit = AdmissionUnit(BoundedLogStore(backend), LoggingState(backend))
        for minute in (0, 1, 2, 7, 9):
            await unit.admit(_event("https://same.com/"), now=NOW + timedelta(minutes=minute))
        entries = await unit.store.load_all()
        stamps = [e.timestamp for e in entries]
        assert stamps == sorted(stamps, reverse=True)
        assert len(entries) == 2


class TestConcurrentAdmission:
    """Duplicate check and append share one locked cycle."""

    @pytest.mark.asyncio
    async def test_simultaneous_same_url_stored_once(self, unit: AdmissionUnit, store: BoundedLogStore):
        results = await asyncio.gather(
            *(unit.admit(_event("https://a.com/", source=src), now=NOW) for src in ("history", "tab", "tab", "history"))
        )
        assert results.count(AdmissionResult.ACCEPTED) == 1
        assert results.count(AdmissionResult.SKIPPED_DUPLICATE) == 3
        assert len(await store.load_all()) == 1

    @pytest.mark.asyncio
    async def test_simultaneous_distinct_urls_all_stored(self, unit: AdmissionUnit, store: BoundedLogStore):
        results = await asyncio.gather(
            *(unit.admit(_event(f"https://site{i}.com/"), now=NOW) for i in range(10))
        )
        assert results == [AdmissionResult.ACCEPTED] * 10
        assert len(await store.load_all()) == 10
