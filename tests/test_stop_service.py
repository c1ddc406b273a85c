"""Tests for stop listing and name search."""

import pytest

from mnr_mcp.data.store import ScheduleStore
from mnr_mcp.services.stop_service import (
    get_stop_by_id,
    list_stops,
    normalize_name,
    score_stop_name,
    search_stops,
)


def test_normalize_name():
    assert normalize_name("  Harlem-125 St. ") == "harlem 125 st"


def test_exact_match_scores_100():
    assert score_stop_name("grand central", "Grand Central") == 100.0


def test_prefix_scores_above_threshold():
    assert score_stop_name("stam", "Stamford") >= 60


def test_empty_query_scores_zero():
    assert score_stop_name("  ", "Stamford") == 0.0


async def test_list_stops_ordered_by_name(store: ScheduleStore):
    response = await list_stops(store=store)

    assert response.count == 4
    assert [s.stop_id for s in response.stops] == ["A", "B", "D", "C"]
    assert all(s.score is None for s in response.stops)


async def test_search_by_prefix(store: ScheduleStore):
    response = await search_stops("stam", store=store)

    assert response.stops[0].stop_id == "C"
    assert response.stops[0].stop_code == "STM"


async def test_search_best_match_first(store: ScheduleStore):
    response = await search_stops("Grand Central", store=store)

    assert response.stops[0].stop_id == "A"
    assert response.stops[0].score == 100.0
    scores = [s.score for s in response.stops]
    assert scores == sorted(scores, reverse=True)


async def test_search_punctuation_insensitive(store: ScheduleStore):
    response = await search_stops("harlem 125", store=store)
    assert response.stops[0].stop_id == "B"


async def test_search_no_match(store: ScheduleStore):
    response = await search_stops("zzzzqqq", store=store)
    assert response.count == 0


async def test_search_limit(store: ScheduleStore):
    response = await search_stops("n", limit=1, store=store)
    assert response.count <= 1


async def test_search_empty_query_raises(store: ScheduleStore):
    with pytest.raises(ValueError):
        await search_stops("   ", store=store)


async def test_get_stop_by_id(store: ScheduleStore):
    stop = await get_stop_by_id("D", store=store)
    assert stop is not None
    assert stop.stop_name == "New Haven"


async def test_get_stop_by_id_not_found(store: ScheduleStore):
    assert await get_stop_by_id("ZZZ", store=store) is None
