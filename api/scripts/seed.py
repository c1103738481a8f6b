import argparse
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from roommatch.database import init_db
from roommatch.repo import SqlProfileStore
from roommatch.services.seeding import seed_demo_users


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo roommate profiles")
    parser.add_argument("--n-users", type=int, default=50)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--completeness", type=float, default=0.85, help="chance each preference field is filled")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    init_db()
    summary = seed_demo_users(SqlProfileStore(), n_users=args.n_users, seed=args.seed, completeness=args.completeness)

    print("Seed completed")
    for k, v in summary.items():
        print(f"- {k}: {v}")


if __name__ == "__main__":
    main()
