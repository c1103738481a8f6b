import random

from roommatch.profiles import Preferences, parse_preferences
from roommatch.services.seeding import random_preferences, seed_demo_users


class FakeProfileStore:
    def __init__(self):
        self.by_email = {}

    def create_user(self, **fields):
        if fields["email"] in self.by_email:
            return None
        self.by_email[fields["email"]] = fields
        return fields


def test_random_preferences_always_parse():
    rng = random.Random(7)
    for _ in range(200):
        prefs = parse_preferences(random_preferences(rng, completeness=0.5))
        assert isinstance(prefs, Preferences)


def test_full_completeness_fills_every_field():
    prefs = random_preferences(random.Random(1), completeness=1.0)
    assert set(prefs) == {"budget", "cleanliness", "smoking", "sleep", "interests"}


def test_seed_is_deterministic_and_rerun_skips_existing():
    first, second = FakeProfileStore(), FakeProfileStore()
    summary = seed_demo_users(first, n_users=10, seed=3)
    seed_demo_users(second, n_users=10, seed=3)

    assert summary == {"requested": 10, "created": 10, "skipped_existing": 0, "seed": 3}
    assert [u["preferences"] for u in first.by_email.values()] == [u["preferences"] for u in second.by_email.values()]

    again = seed_demo_users(first, n_users=10, seed=3)
    assert again["created"] == 0
    assert again["skipped_existing"] == 10


def test_seeded_users_are_spaced_oldest_first():
    store = FakeProfileStore()
    seed_demo_users(store, n_users=4, seed=5)
    stamps = [u["created_at"] for u in store.by_email.values()]
    assert stamps == sorted(stamps)
