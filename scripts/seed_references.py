#!/usr/bin/env python3
"""
Reference seeding script for the watch reference library.

Loads reference watches from reference_seed.json and inserts them through
the reference repository, so the mirrored physical columns are filled the
same way the API fills them.

Each entry needs brand, model_name and reference_number. Entries that
already exist (same brand, model and reference number) are skipped.
"""

import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import delete, select

from watchauth.db.models import Base, ReferenceWatch
from watchauth.db.repository import ReferenceRepository
from watchauth.db.session import AsyncSessionLocal, engine
from watchauth.errors import ValidationError, WatchAuthError

SEED_FILE = Path(__file__).parent / "reference_seed.json"


async def seed_references(seed_file: Path = SEED_FILE):
    """Seed reference watches from a JSON file."""
    if not seed_file.exists():
        print(f"Error: {seed_file} not found")
        sys.exit(1)

    try:
        with open(seed_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in {seed_file}: {e}")
        sys.exit(1)

    references = data.get("references", [])
    if not references:
        print("No references found in seed file")
        return

    print(f"Found {len(references)} references to seed...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    added = skipped = errors = 0
    async with AsyncSessionLocal() as db:
        repo = ReferenceRepository(db)
        for idx, record in enumerate(references, 1):
            label = f"{record.get('brand')} {record.get('model_name')} ({record.get('reference_number')})"

            missing = [f for f in ("brand", "model_name", "reference_number") if not record.get(f)]
            if missing:
                print(f"  [ERROR] Reference {idx}: Missing required fields: {', '.join(missing)}")
                errors += 1
                continue

            try:
                reference = await repo.create(record)
            except ValidationError as e:
                print(f"  [SKIP] {label}: {e.message}")
                skipped += 1
                continue
            except WatchAuthError as e:
                print(f"  [ERROR] {label}: {e.message}")
                errors += 1
                continue

            print(f"  [ADD] {label} -> {reference.id}")
            added += 1

    print("\nSeeding complete!")
    print(f"  - Added: {added}")
    print(f"  - Skipped: {skipped}")
    if errors > 0:
        print(f"  - Errors: {errors}")


async def list_references():
    """List all stored references grouped by brand."""
    async with AsyncSessionLocal() as db:
        query = select(ReferenceWatch).order_by(ReferenceWatch.brand, ReferenceWatch.model_name)
        result = await db.execute(query)
        references = result.scalars().all()

    if not references:
        print("No references found.")
        return

    print(f"\nStored References ({len(references)} total):\n")
    current_brand = None
    for ref in references:
        if ref.brand != current_brand:
            current_brand = ref.brand
            print(f"\n{current_brand.upper()}")
            print("-" * 40)
        print(f"  [{ref.verification_status}] {ref.model_name} {ref.reference_number}")


async def clear_references():
    """Delete every reference watch."""
    async with AsyncSessionLocal() as db:
        await db.execute(delete(ReferenceWatch))
        await db.commit()
    print("All references cleared.")


if __name__ == "__main__":
    if len(sys.argv) > 1:
        if sys.argv[1] == "--list":
            asyncio.run(list_references())
        elif sys.argv[1] == "--clear":
            asyncio.run(clear_references())
        elif sys.argv[1] == "--help":
            print("Usage: python seed_references.py [OPTIONS]")
            print("")
            print("Options:")
            print("  --list      List all stored references")
            print("  --clear     Clear all references")
            print("  --help      Show this help message")
            print("")
            print("With no options, seeds references from reference_seed.json")
        else:
            print(f"Unknown option: {sys.argv[1]}")
    else:
        asyncio.run(seed_references())
