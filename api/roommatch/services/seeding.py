import random
from datetime import datetime, timedelta, timezone
from typing import Any

from ..profiles import Cleanliness, SleepSchedule, Smoking

INTEREST_POOL = [
    "books",
    "gym",
    "music",
    "cooking",
    "gaming",
    "hiking",
    "movies",
    "travel",
    "art",
    "football",
    "coding",
    "yoga",
]

FIRST_NAMES = ["Aarav", "Bea", "Chidi", "Dana", "Elif", "Farid", "Grace", "Hiro", "Isla", "Jonas", "Kemi", "Luca"]

# Budgets cluster around typical shared-flat rents, in whole currency units.
BUDGET_BANDS = [(6000, 9000), (9000, 13000), (13000, 20000)]


def random_preferences(rng: random.Random, completeness: float = 0.85) -> dict[str, Any]:
    """Preference document as a user would store it; fields may be missing."""
    prefs: dict[str, Any] = {}
    if rng.random() < completeness:
        low, high = rng.choice(BUDGET_BANDS)
        prefs["budget"] = rng.randrange(low, high, 500)
    if rng.random() < completeness:
        prefs["cleanliness"] = rng.choice(list(Cleanliness)).value
    if rng.random() < completeness:
        prefs["smoking"] = rng.choices([Smoking.NO.value, Smoking.YES.value], weights=[0.8, 0.2], k=1)[0]
    if rng.random() < completeness:
        prefs["sleep"] = rng.choice(list(SleepSchedule)).value
    if rng.random() < completeness:
        prefs["interests"] = rng.sample(INTEREST_POOL, k=rng.randint(1, 4))
    return prefs


def seed_demo_users(profile_store, n_users: int = 50, seed: int = 42, completeness: float = 0.85) -> dict[str, Any]:
    rng = random.Random(seed)
    start = datetime.now(timezone.utc) - timedelta(days=n_users)
    created = 0
    skipped = 0
    for i in range(n_users):
        name = f"{rng.choice(FIRST_NAMES)} {i:03d}"
        profile = profile_store.create_user(
            display_name=name,
            email=f"student{seed}-{i:04d}@example.edu",
            preferences=random_preferences(rng, completeness),
            created_at=start + timedelta(days=i),
        )
        if profile is None:
            skipped += 1
        else:
            created += 1
    return {"requested": n_users, "created": created, "skipped_existing": skipped, "seed": seed}
