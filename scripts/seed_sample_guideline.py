#!/usr/bin/env python3
"""
Load the sample guidelines from models/*.json into the database.
Idempotent: safe to run multiple times (upserts).

Usage (from project root):
  python scripts/seed_sample_guideline.py
"""
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

SAMPLE_PATHS = [
    ROOT / "models" / "sample_hypertension_v1.json",
    ROOT / "models" / "sample_hypertension_nice.json",
]


def main() -> int:
    from guidewalk.database import SessionLocal, init_db
    from guidewalk.services.guideline_service import load_guideline_file, save_guideline
    from guidewalk.utils.exceptions import GuidelineFormatError

    init_db()
    db = SessionLocal()
    try:
        for path in SAMPLE_PATHS:
            try:
                doc = save_guideline(db, load_guideline_file(path))
            except (FileNotFoundError, GuidelineFormatError) as e:
                print(f"Skipped {path.name}: {e}", file=sys.stderr)
                return 1
            print(f"Seeded {doc.format} guideline: {doc.name} (id={doc.guideline_id}, version={doc.version})")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
