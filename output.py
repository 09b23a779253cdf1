"""Step 4 – Write the combined topology and the normalized revenue table.

The two writes are independent and run concurrently.

Module: from output import write_outputs
"""

from __future__ import annotations

import csv
import json
import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from pathlib import Path

from normalize import RevenueRecord

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration constants
# ---------------------------------------------------------------------------

TOPOLOGY_FILENAME = "us-topology.json"
REVENUES_FILENAME = "county-revenues.tsv"

# (column header, RevenueRecord attribute)
REVENUE_COLUMNS: list[tuple[str, str]] = [
    ("year", "year"),
    ("commodity", "commodity"),
    ("type", "revenue_type"),
    ("revenue", "revenue"),
    ("state", "state"),
    ("county", "county"),
    ("FIPS", "FIPS"),
]


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _format_revenue(value: float) -> str:
    """1234.5 → '1234.5', 1000.0 → '1000'."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _revenue_row(record: RevenueRecord) -> dict[str, str]:
    row = {header: getattr(record, attr) for header, attr in REVENUE_COLUMNS}
    row["revenue"] = _format_revenue(record.revenue)
    return row


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------


def write_topology(filepath: str | Path, topology: dict) -> None:
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)
    logger.info("output: writing topology to %s", filepath)
    Path(filepath).write_text(json.dumps(topology, separators=(",", ":")), encoding="utf-8")


def write_revenues(filepath: str | Path, records: list[RevenueRecord]) -> None:
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)
    logger.info("output: writing county revenues to %s", filepath)
    with open(filepath, "w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(
            fh,
            fieldnames=[header for header, _ in REVENUE_COLUMNS],
            delimiter="\t",
            lineterminator="\n",
        )
        writer.writeheader()
        writer.writerows(_revenue_row(r) for r in records)
    logger.info("output: wrote %s (%d rows)", filepath, len(records))


# ---------------------------------------------------------------------------
# Public entry-point
# ---------------------------------------------------------------------------


def write_outputs(
    topology: dict,
    records: list[RevenueRecord],
    output_dir: str | Path = ".",
) -> tuple[Path, Path]:
    """Write both outputs concurrently; re-raise the first failure.

    Returns (topology_path, revenues_path).
    """
    topology_path = Path(output_dir) / TOPOLOGY_FILENAME
    revenues_path = Path(output_dir) / REVENUES_FILENAME

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [
            pool.submit(write_topology, topology_path, topology),
            pool.submit(write_revenues, revenues_path, records),
        ]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        for future in done:
            future.result()

    return topology_path, revenues_path
