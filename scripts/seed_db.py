"""
Seed script for the FeedFind in-memory store or Firestore.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Use another seed file: python scripts/seed_db.py --apply --seed path/to/seed.json

Behavior:
  - Loads `db_seed.json` from the repo root.
  - Gets the store via `app.config.firebase.get_store()`, which is the
    in-memory store or real Firestore depending on USE_MOCK_DB.
  - Writes each top-level collection/document with DocumentStore.set.

NOTE: The in-memory store lives only as long as this process; seeding it is
only useful as a check that the seed file is well formed.
"""

import argparse
import json
import os

from app.config.firebase import get_store
from app.core.exceptions import FeedFindError
from app.db.base import DocumentStore


def load_seed(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_to_store(store: DocumentStore, seed: dict, apply: bool = False) -> int:
    """Returns the number of documents that failed to write."""
    failures = 0
    for collection, docs in seed.items():
        for doc_id, data in docs.items():
            print(f"Preparing: {collection}/{doc_id}")
            if not apply:
                continue
            try:
                store.set(collection, doc_id, data)
                print(f"Wrote: {collection}/{doc_id}")
            except FeedFindError as e:
                failures += 1
                print(f"Failed to write {collection}/{doc_id}: {e.code} {e.message}")
    return failures


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--seed", default=os.path.join(os.getcwd(), "db_seed.json"), help="Seed file path")
    args = parser.parse_args()

    if not os.path.exists(args.seed):
        print(f"Seed file not found: {args.seed}")
        return

    seed = load_seed(args.seed)
    store = get_store()

    failures = write_to_store(store, seed, apply=args.apply)

    if not args.apply:
        print("Dry run complete. Re-run with --apply to write to DB.")
    elif failures:
        print(f"Seeding finished with {failures} failed document(s).")
    else:
        print("Seeding completed.")


if __name__ == "__main__":
    main()
