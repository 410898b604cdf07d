#!/usr/bin/env python3
"""
Load the sample decision tree ("Which plan suits you?") into the database.
Idempotent: safe to run multiple times.

Usage (from project root):
  python scripts/seed_sample_tree.py
"""
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def main() -> int:
    from decisiontree.database import Base, SessionLocal, engine
    from decisiontree.services.sample_tree import seed_sample_tree

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        element = seed_sample_tree(db)
        first = element.first_step
        print(f"Seeded tree: {element.title} (element id={element.id}, first step id={first.id if first else None})")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
