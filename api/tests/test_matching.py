from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from roommatch.errors import InvalidPairError, NotFoundError
from roommatch.profiles import make_profile
from roommatch.services.matching import MatchCoordinator
from roommatch.services.state_machine import MatchStatus
from roommatch.stores import InMemoryMatchStore, InMemoryProfileStore

BASE_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self):
        self.now = BASE_TIME

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


def _profile(user_id: str, index: int = 0, prefs=None, **fields):
    return make_profile(user_id, prefs or {}, created_at=BASE_TIME + timedelta(minutes=index), **fields)


class _CountingProfileStore(InMemoryProfileStore):
    def __init__(self, profiles):
        super().__init__(profiles)
        self.single_lookups = []
        self.batch_lookups = 0

    def get_profile(self, user_id):
        self.single_lookups.append(user_id)
        return super().get_profile(user_id)

    def get_profiles(self, user_ids):
        self.batch_lookups += 1
        return super().get_profiles(user_ids)


def _coordinator(*profiles, **kwargs) -> MatchCoordinator:
    store = InMemoryProfileStore(profiles)
    return MatchCoordinator(store, InMemoryMatchStore(store), clock=_Clock(), **kwargs)


@pytest.fixture
def trio():
    return _coordinator(
        _profile("x", 0, {"budget": 10000, "cleanliness": "high", "smoking": "no", "sleep": "normal", "interests": ["books", "gym"]}),
        _profile("y", 1, {"budget": 11000, "cleanliness": "high", "smoking": "no", "sleep": "normal", "interests": ["books", "music"]}),
        _profile("z", 2),
    )


class TestLike:
    def test_first_like_creates_liked_record_with_score(self, trio):
        record = trio.like("x", "y")
        assert record.status == MatchStatus.LIKED
        assert record.compatibility_score == Decimal("77.14")
        assert record.pair == ("x", "y")
        assert record.initiated_by == "x"
        assert record.has_liked("x") and not record.has_liked("y")
        assert record.matched_at is None

    def test_reciprocal_like_matches_both_sides(self, trio):
        trio.like("x", "y")
        record = trio.like("y", "x")

        assert record.status == MatchStatus.MATCHED
        assert record.matched_at is not None
        seen_by_x = trio.matched_pairs_for("x")
        seen_by_y = trio.matched_pairs_for("y")
        assert len(seen_by_x) == len(seen_by_y) == 1
        assert seen_by_x[0].matched_at == seen_by_y[0].matched_at == record.matched_at

    def test_like_after_match_is_a_noop(self, trio):
        trio.like("x", "y")
        matched = trio.like("y", "x")
        again = trio.like("x", "y")
        assert again.status == MatchStatus.MATCHED
        assert again.version == matched.version
        assert again.matched_at == matched.matched_at
        assert matched.became_matched
        assert not again.became_matched
        assert matched.applied
        assert not again.applied

    def test_repeated_like_is_idempotent(self, trio):
        first = trio.like("x", "y")
        second = trio.like("x", "y")
        assert second.status == MatchStatus.LIKED
        assert second.version == first.version

    def test_reversed_initiator_still_one_record(self, trio):
        trio.like("y", "x")
        trio.like("x", "y")
        assert len(trio.matches_for("x")) == 1
        assert trio.matches_for("x")[0].initiated_by == "y"


class TestPass:
    def test_pass_creates_rejected_record_with_zero_score(self, trio):
        record = trio.pass_("x", "y")
        assert record.status == MatchStatus.REJECTED
        assert record.compatibility_score == Decimal("0.00")
        assert record.has_passed("x")

    def test_pass_then_like_stays_rejected(self, trio):
        trio.pass_("x", "y")
        assert trio.like("x", "y").status == MatchStatus.REJECTED
        assert trio.like("y", "x").status == MatchStatus.REJECTED
        assert trio.matched_pairs_for("x") == []

    def test_pass_overrides_existing_like(self, trio):
        trio.like("x", "y")
        record = trio.pass_("y", "x")
        assert record.status == MatchStatus.REJECTED
        assert record.has_liked("x")
        assert record.has_passed("y")

    def test_pass_after_match_rejects(self, trio):
        trio.like("x", "y")
        trio.like("y", "x")
        assert trio.pass_("x", "y").status == MatchStatus.REJECTED
        assert trio.matched_pairs_for("y") == []

    def test_repeated_pass_is_a_noop(self, trio):
        first = trio.pass_("x", "y")
        second = trio.pass_("x", "y")
        assert second.status == MatchStatus.REJECTED
        assert second.version == first.version


class TestFailures:
    def test_unknown_target_raises_and_writes_nothing(self, trio):
        with pytest.raises(NotFoundError) as exc_info:
            trio.like("x", "ghost")
        assert exc_info.value.user_id == "ghost"
        assert trio.matches_for("x") == []

    def test_unknown_initiator_is_named(self, trio):
        with pytest.raises(NotFoundError) as exc_info:
            trio.pass_("ghost", "x")
        assert exc_info.value.user_id == "ghost"
        assert trio.matches_for("x") == []

    def test_self_like_is_rejected(self, trio):
        with pytest.raises(InvalidPairError):
            trio.like("x", "x")

    def test_candidates_for_unknown_user(self, trio):
        with pytest.raises(NotFoundError):
            trio.candidates("ghost")


class TestCandidates:
    def test_excludes_self_and_evaluated_pairs_both_ways(self, trio):
        assert [p.user_id for p in trio.candidates("x")] == ["y", "z"]
        trio.like("x", "y")
        assert [p.user_id for p in trio.candidates("x")] == ["z"]
        assert [p.user_id for p in trio.candidates("y")] == ["z"]

    def test_pass_excludes_too(self, trio):
        trio.pass_("z", "x")
        assert "z" not in [p.user_id for p in trio.candidates("x")]
        assert "x" not in [p.user_id for p in trio.candidates("z")]

    def test_ranked_descending_by_score(self, monkeypatch):
        coordinator = _coordinator(_profile("me", 0), _profile("low", 1), _profile("high", 2), _profile("mid", 3))
        known = {"high": Decimal("90"), "mid": Decimal("50"), "low": Decimal("10")}
        monkeypatch.setattr(coordinator, "compute_score", lambda a, b: known[b.user_id])

        ranked = coordinator.ranked_candidates("me")
        assert [c.score for c in ranked] == [Decimal("90"), Decimal("50"), Decimal("10")]
        assert [c.profile.user_id for c in ranked] == ["high", "mid", "low"]

    def test_ties_keep_newest_profile_first_and_limit_applies(self):
        profiles = [_profile("me", 0)] + [_profile(f"c{i:02d}", i + 1) for i in range(25)]
        coordinator = _coordinator(*profiles)

        out = [p.user_id for p in coordinator.candidates("me")]
        assert len(out) == 20
        assert out == [f"c{i:02d}" for i in range(24, 4, -1)]

    def test_inactive_and_non_student_users_are_skipped(self):
        coordinator = _coordinator(
            _profile("me", 0),
            _profile("gone", 1, is_active=False),
            _profile("landlord", 2, role="landlord"),
            _profile("ok", 3),
        )
        assert [p.user_id for p in coordinator.candidates("me")] == ["ok"]

    def test_custom_limit(self, trio):
        small = MatchCoordinator(trio.profiles, trio.matches, candidate_limit=1)
        assert len(small.candidates("x")) == 1

    def test_candidate_profiles_are_loaded_in_one_batch(self):
        store = _CountingProfileStore([_profile("me", 0)] + [_profile(f"c{i}", i + 1) for i in range(5)])
        coordinator = MatchCoordinator(store, InMemoryMatchStore(store), clock=_Clock())

        assert len(coordinator.candidates("me")) == 5
        assert store.single_lookups == ["me"]
        assert store.batch_lookups == 1


def test_stats_count_own_actions():
    coordinator = _coordinator(_profile("x", 0), _profile("y", 1), _profile("z", 2), _profile("w", 3))
    coordinator.like("x", "y")
    coordinator.pass_("x", "z")
    coordinator.like("w", "x")
    coordinator.like("x", "w")

    stats = coordinator.stats_for("x")
    assert stats.total_matches == 3
    assert stats.matched_pairs == 1
    assert stats.likes_given == 2
    assert stats.passes_given == 1

    assert coordinator.stats_for("w").likes_given == 1
    assert coordinator.stats_for("z").passes_given == 0
