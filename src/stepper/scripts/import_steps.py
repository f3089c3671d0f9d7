"""
Import step samples from a CSV export into the local StepSample table.

Usage:
    python -m stepper import-steps steps.csv
    python -m stepper.scripts.import_steps steps.csv --source watch

Expected columns: timestamp (ISO 8601, local time) and steps. A header row
is optional. Rows that don't parse are skipped and counted.
"""
import argparse
import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Tuple

logger = logging.getLogger(__name__)


def parse_step_rows(rows: Iterable[List[str]]) -> Tuple[List[Tuple[datetime, int]], int]:
    """
    Parse CSV rows into (recorded_at, steps) samples.

    Returns:
        (samples, skipped) where skipped counts malformed or negative rows.
    """
    samples: List[Tuple[datetime, int]] = []
    skipped = 0
    for row in rows:
        if len(row) < 2 or not row[0].strip():
            skipped += 1
            continue
        if row[0].strip().lower() == "timestamp":
            continue  # header
        try:
            recorded_at = datetime.fromisoformat(row[0].strip())
            steps = int(float(row[1]))
        except ValueError:
            skipped += 1
            continue
        if steps < 0:
            skipped += 1
            continue
        if recorded_at.tzinfo is not None:
            recorded_at = recorded_at.astimezone().replace(tzinfo=None)
        samples.append((recorded_at, steps))
    return samples, skipped


def run_import(path: Path, source: str = "csv", engine=None) -> int:
    """Read `path` and insert its samples. Returns the number imported."""
    from stepper.db.engine import get_engine
    from stepper.health.source import StepSampleSource

    with Path(path).open(newline="") as f:
        samples, skipped = parse_step_rows(csv.reader(f))

    imported = StepSampleSource(engine or get_engine()).add_samples(samples, source=source)
    logger.info("Imported %d samples from %s (%d rows skipped)", imported, path, skipped)
    return imported


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Import step samples from CSV")
    parser.add_argument("path", type=Path, help="CSV file with timestamp,steps rows")
    parser.add_argument("--source", default="csv", help="label stored with each sample")
    args = parser.parse_args(argv)
    run_import(args.path, source=args.source)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    main()
