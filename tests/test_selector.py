from datetime import timedelta

import pytest

from conftest import NOW, FakeChatStore
from nudges.models import Character, Session
from nudges.selector import EligibilitySelector, dedupe_by_user


def _selector(store: FakeChatStore) -> EligibilitySelector:
    return EligibilitySelector(store, clock=lambda: NOW)


def test_dedupe_keeps_first_session_per_user() -> None:
    sessions = [
        Session("s1", "alice", "c1", NOW - timedelta(hours=90)),
        Session("s2", "bob", "c1", NOW - timedelta(hours=80)),
        Session("s3", "alice", "c2", NOW - timedelta(hours=50)),
    ]

    assert [s.session_id for s in dedupe_by_user(sessions)] == ["s1", "s2"]


def test_one_candidate_per_user_using_oldest_session() -> None:
    store = FakeChatStore()
    store.add_session("recent", "alice", "c1", NOW - timedelta(hours=30))
    store.add_session("oldest", "alice", "c2", NOW - timedelta(hours=100))
    store.add_session("bob-1", "bob", "c1", NOW - timedelta(hours=48))
    store.add_session("fresh", "carol", "c1", NOW - timedelta(hours=2))
    store.characters["c1"] = Character("c1", name="Aria")
    store.characters["c2"] = Character("c2", name="Milo")

    candidates = _selector(store).find_candidates(inactive_hours=24, limit=50)

    assert [(c.user_id, c.session_id) for c in candidates] == [("alice", "oldest"), ("bob", "bob-1")]
    assert candidates[0].character_name == "Milo"
    assert candidates[1].character_name == "Aria"


def test_characters_resolved_in_one_batch() -> None:
    store = FakeChatStore()
    store.add_session("s1", "u1", "c1", NOW - timedelta(hours=40))
    store.add_session("s2", "u2", "c1", NOW - timedelta(hours=39))
    store.add_session("s3", "u3", "c2", NOW - timedelta(hours=38))
    store.add_session("s4", "u4", None, NOW - timedelta(hours=37))
    store.characters["c1"] = Character("c1", name="Aria")

    candidates = _selector(store).find_candidates(inactive_hours=24, limit=10)

    assert store.character_lookups == [["c1", "c2"]]
    assert candidates[2].character is None
    assert candidates[3].character is None and candidates[3].character_id is None


def test_limit_caps_rows_before_dedupe() -> None:
    store = FakeChatStore()
    for hours in (90, 80, 70):
        store.add_session(f"s{hours}", "same-user", None, NOW - timedelta(hours=hours))
    store.add_session("other", "other-user", None, NOW - timedelta(hours=60))

    candidates = _selector(store).find_candidates(inactive_hours=24, limit=3)

    assert [c.session_id for c in candidates] == ["s90"]


def test_nothing_stale_returns_empty_without_character_lookup() -> None:
    store = FakeChatStore()
    store.add_session("s1", "u1", "c1", NOW - timedelta(hours=1))

    assert _selector(store).find_candidates(inactive_hours=24, limit=10) == []
    assert store.character_lookups == []


def test_store_failure_returns_empty() -> None:
    store = FakeChatStore()
    store.fail_sessions = True

    assert _selector(store).find_candidates(inactive_hours=24, limit=10) == []


@pytest.mark.parametrize(("hours", "limit"), [(0, 10), (-1, 10), (24, 0)])
def test_rejects_non_positive_arguments(hours: int, limit: int) -> None:
    with pytest.raises(ValueError):
        _selector(FakeChatStore()).find_candidates(inactive_hours=hours, limit=limit)
