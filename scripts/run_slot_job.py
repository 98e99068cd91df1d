#!/usr/bin/env python3
"""
Run the slot generation job once against the configured store (no scheduler, no HTTP).

Usage:
  python3 scripts/run_slot_job.py --seed events.json --horizon 14

--seed loads booking events from a JSON list (camelCase, as stored) before running.
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from availability_engine.application.dto.schedule import BookingEventDTO
from availability_engine.core.config import settings
from availability_engine.core.logging import configure_logging
from availability_engine.wiring.dependencies import get_slot_generation_job, get_stores


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the slot generation job once")
    parser.add_argument("--seed", type=Path, help="JSON file with a list of booking events")
    parser.add_argument("--horizon", type=int, default=None, help="Days to generate")
    parser.add_argument("--batch-size", type=int, default=None)
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)

    if args.seed:
        events, _, _ = get_stores()
        for item in json.loads(args.seed.read_text(encoding="utf-8")):
            events.save(BookingEventDTO.model_validate(item).to_entity())

    result = get_slot_generation_job().run(horizon_days=args.horizon, batch_size=args.batch_size)
    print(f"Events:     {result.total_events}")
    print(f"Generated:  {result.total_generated}")
    print(f"Created:    {result.total_created}")
    print(f"Duplicates: {result.total_duplicates}")
    print(f"Errors:     {result.total_errors}")
    print(f"Purged:     {result.purged}")
    for message in result.errors:
        print(f"  - {message}")
    if result.failed_events:
        sys.exit(1)


if __name__ == "__main__":
    main()
