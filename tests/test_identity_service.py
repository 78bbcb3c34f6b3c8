# tests/test_identity_service.py

"""Tests for the stable id -> display name mapping."""

import pytest
from dontdrop.exceptions import InvalidIdentityError
from dontdrop.services.identity_service import IdentityResolver
from dontdrop.store.base import RankingStore


@pytest.mark.asyncio
async def test_latest_display_name_wins(store: RankingStore):
    """A rename relabels the player without touching their id."""
    resolver = IdentityResolver(store)

    await resolver.record_identity("t2_abc", "OldName")
    await resolver.record_identity("t2_abc", "NewName")

    assert await resolver.resolve_display_names(["t2_abc"]) == ["NewName"]


@pytest.mark.asyncio
async def test_record_identity_is_idempotent(store: RankingStore):
    resolver = IdentityResolver(store)

    await resolver.record_identity("t2_abc", "Name")
    await resolver.record_identity("t2_abc", "Name")

    assert await resolver.resolve_display_names(["t2_abc"]) == ["Name"]


@pytest.mark.asyncio
async def test_resolve_keeps_order_and_marks_unknown_ids(store: RankingStore):
    resolver = IdentityResolver(store)
    await resolver.record_identity("t2_a", "A")
    await resolver.record_identity("t2_c", "C")

    names = await resolver.resolve_display_names(["t2_c", "t2_b", "t2_a"])

    assert names == ["C", None, "A"]


@pytest.mark.asyncio
async def test_resolve_empty_list_skips_the_store(store: RankingStore):
    resolver = IdentityResolver(store)

    assert await resolver.resolve_display_names([]) == []


@pytest.mark.asyncio
async def test_resolve_uses_one_batched_lookup(memory_store):
    """Names for a whole leaderboard come from a single store call."""
    calls = []
    original = memory_store.get_display_names

    async def counting(ids):
        calls.append(list(ids))
        return await original(ids)

    memory_store.get_display_names = counting
    resolver = IdentityResolver(memory_store)

    await resolver.resolve_display_names(["a", "b", "c"])

    assert calls == [["a", "b", "c"]]


@pytest.mark.asyncio
@pytest.mark.parametrize("stable_id, name", [("", "Name"), ("  ", "Name"), ("t2_abc", "")])
async def test_blank_identity_is_rejected(memory_store, stable_id, name):
    resolver = IdentityResolver(memory_store)

    with pytest.raises(InvalidIdentityError):
        await resolver.record_identity(stable_id, name)
