"""Step 0 – Read the revenue ledger, state metadata and county topology.

The three reads are independent and run concurrently; the first failure
cancels the rest and aborts the run.

Module: from ingest import ingest_all
"""

from __future__ import annotations

import csv
import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path

import geopandas as gpd
from pydantic import ValidationError

from errors import IngestionError
from normalize import RawRevenueRow
from states import StateMetadata, load_states

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration constants (paths relative to the input directory)
# ---------------------------------------------------------------------------

REVENUES_PATH = Path("input") / "county-revenues.tsv"
STATES_PATH = Path("input") / "states.csv"
COUNTIES_PATH = Path("geo") / "us-counties.json"
COUNTIES_LAYER = "counties"

_REQUIRED_COUNTY_COLUMNS = ("state", "FIPS")


@dataclass(frozen=True)
class IngestedData:
    revenues: list[RawRevenueRow]
    states: list[StateMetadata]
    counties: gpd.GeoDataFrame


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------


def read_revenues(path: str | Path) -> list[RawRevenueRow]:
    """Read the tab-separated revenue ledger.  Extra columns are ignored."""
    rows: list[RawRevenueRow] = []
    with open(path, newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh, delimiter="\t")
        for i, record in enumerate(reader, start=2):  # row 1 is header
            try:
                rows.append(RawRevenueRow.model_validate(record))
            except ValidationError as e:
                raise IngestionError(f"{path}: row {i}: {e}") from e
    logger.info("ingest: %d revenue rows read from %s", len(rows), path)
    return rows


def read_states(path: str | Path) -> list[StateMetadata]:
    return load_states(path)


def read_counties(path: str | Path, layer: str = COUNTIES_LAYER) -> gpd.GeoDataFrame:
    """Decode the county object of a TopoJSON document into polygons."""
    counties = gpd.read_file(path, layer=layer)
    missing = [c for c in _REQUIRED_COUNTY_COLUMNS if c not in counties.columns]
    if missing:
        raise IngestionError(f"{path}: county geometries lack properties {missing}")
    logger.info("ingest: %d county geometries read from %s", len(counties), path)
    return counties


# ---------------------------------------------------------------------------
# Public entry-point
# ---------------------------------------------------------------------------


def ingest_all(input_dir: str | Path = ".") -> IngestedData:
    """Read all three inputs concurrently.  Raises IngestionError on the first failure."""
    base = Path(input_dir)
    tasks = {
        "revenues": (read_revenues, base / REVENUES_PATH),
        "states": (read_states, base / STATES_PATH),
        "counties": (read_counties, base / COUNTIES_PATH),
    }

    with ThreadPoolExecutor(max_workers=len(tasks)) as pool:
        futures = {pool.submit(fn, path): name for name, (fn, path) in tasks.items()}
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)

        for future in done:
            exc = future.exception()
            if exc is None:
                continue
            for p in pending:
                p.cancel()
            name = futures[future]
            logger.error("ingest: failed to read %s (%s)", name, tasks[name][1])
            if isinstance(exc, IngestionError):
                raise exc
            raise IngestionError(f"failed to read {name} from {tasks[name][1]}: {exc}") from exc

        results = {futures[f]: f.result() for f in done}

    return IngestedData(**results)
