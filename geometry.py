"""Step 3 – County ids, state aggregation, revenue filtering and TopoJSON encoding.

Module: from geometry import aggregate_states, filter_counties, encode_topology
"""

from __future__ import annotations

import json
import logging

import geopandas as gpd
import pandas as pd
import topojson as tp
from shapely.ops import unary_union

from errors import GeometryTypeError, ReferentialIntegrityError, StateCountError
from revenue_index import RevenueIndex, has_key
from states import EXPECTED_STATE_COUNT, TERRITORIES, StateMetadata

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration constants
# ---------------------------------------------------------------------------

QUANTIZATION: int = 10_000
STATE_COLUMNS = ["id", "abbr", "name", "FIPS", "geometry"]


# ---------------------------------------------------------------------------
# County ids
# ---------------------------------------------------------------------------


def assign_county_ids(counties: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Copy of counties with id = FIPS, zero-padded to 5 characters.

    Some source ids were stored as numbers and lost their leading zero.
    """
    fips = counties["FIPS"]
    if pd.api.types.is_numeric_dtype(fips):
        fips = fips.astype("int64")
    out = counties.copy()
    out["FIPS"] = fips.astype(str).str.strip().str.zfill(5)
    out["id"] = out["FIPS"]
    return out


# ---------------------------------------------------------------------------
# Geometry aggregator
# ---------------------------------------------------------------------------


def aggregate_states(
    counties: gpd.GeoDataFrame,
    states_by_abbr: dict[str, StateMetadata],
    territories: frozenset[str] = TERRITORIES,
    expected_count: int = EXPECTED_STATE_COUNT,
) -> gpd.GeoDataFrame:
    """Merge county polygons into one feature per state.

    Groups are taken in first-seen order; territory groups are skipped.
    Raises StateCountError unless exactly `expected_count` states result.
    """
    missing_state = counties["state"].isna() | (counties["state"].astype(str).str.strip() == "")
    if missing_state.any():
        fips = list(counties.loc[missing_state, "FIPS"])
        raise ReferentialIntegrityError(f"{len(fips)} county geometries have no state: {fips}")

    rows: list[dict] = []
    for abbr, group in counties.groupby("state", sort=False):
        if abbr in territories:
            logger.info("aggregate: skipping territory %s (%d counties)", abbr, len(group))
            continue
        meta = states_by_abbr.get(abbr)
        if meta is None:
            raise ReferentialIntegrityError(f"county geometries reference unknown state {abbr!r}")
        rows.append({
            "id": abbr,
            **meta.model_dump(),
            "geometry": unary_union(list(group.geometry)),
        })

    if len(rows) != expected_count:
        abbrs = [r["id"] for r in rows]
        logger.error("aggregate: %d states merged, expected %d", len(rows), expected_count)
        raise StateCountError(expected_count, len(rows), abbrs)

    logger.info("aggregate: merged %d counties into %d states", len(counties), len(rows))
    return gpd.GeoDataFrame(rows, columns=STATE_COLUMNS, geometry="geometry", crs=counties.crs)


# ---------------------------------------------------------------------------
# Referential filter
# ---------------------------------------------------------------------------


def filter_counties(counties: gpd.GeoDataFrame, index: RevenueIndex) -> gpd.GeoDataFrame:
    """Keep only counties whose id is a FIPS key of the revenue index."""
    keep = counties["id"].map(lambda fips: has_key(index, fips)).astype(bool)
    kept = counties.loc[keep].reset_index(drop=True)
    logger.info("filter: kept %d of %d counties with revenue", len(kept), len(counties))
    return kept


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def encode_topology(
    counties: gpd.GeoDataFrame,
    states: gpd.GeoDataFrame,
    quantization: int = QUANTIZATION,
) -> dict:
    """Encode both layers into one TopoJSON dict with shared arcs.

    Every non-geometry column is kept as a feature property; each frame's
    `id` column becomes the geometry id. Coordinates are encoded planar
    (no spherical mode or pole stitching).
    """
    layers = [frame.set_index("id", drop=False).rename_axis(None) for frame in (counties, states)]
    topology = tp.Topology(
        layers,
        object_name=["counties", "states"],
        prequantize=quantization,
    )
    encoded = json.loads(topology.to_json())
    logger.info("encode: %d arcs across %d objects", len(encoded.get("arcs", [])), len(encoded.get("objects", {})))
    return encoded


def check_geometry_types(topology: dict) -> None:
    """Raise GeometryTypeError if the first county geometry has no type."""
    counties = topology.get("objects", {}).get("counties", {})
    geometries = counties.get("geometries") or []
    if not geometries:
        raise GeometryTypeError("no county geometries in encoded topology")
    first = geometries[0]
    if not first.get("type"):
        raise GeometryTypeError(f"no type for county geometry {json.dumps(first)}")
