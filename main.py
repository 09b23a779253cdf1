"""Pipeline orchestrator – ingest → normalize → index → aggregate → filter → encode → output.

Usage: python main.py
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import geometry as geometry_module
import ingest as ingest_module
import normalize as normalize_module
import output as output_module
import revenue_index as index_module
import states as states_module
from errors import ConsistencyError, PipelineError
from normalize import RevenueRecord

logger = logging.getLogger(__name__)

PIPELINE_STATE_DIR = ".pipeline_state"


@dataclass(frozen=True)
class PipelineResult:
    topology: dict
    revenues: list[RevenueRecord]
    topology_path: Path
    revenues_path: Path


def _write_manifest(data: dict, pipeline_state_dir: str = PIPELINE_STATE_DIR) -> None:
    Path(pipeline_state_dir).mkdir(parents=True, exist_ok=True)
    path = Path(pipeline_state_dir) / "run_manifest.json"
    path.write_text(json.dumps(data, indent=2))


def run(
    input_dir: str | Path = ".",
    output_dir: str | Path = ".",
    manifest: dict | None = None,
) -> PipelineResult:
    """Run every step once.  Any PipelineError aborts before outputs are written.

    If `manifest` is given, step names and counts are recorded in it.
    """
    if manifest is None:
        manifest = {"steps_completed": []}
    steps = manifest.setdefault("steps_completed", [])

    # -----------------------------------------------------------------------
    # Step 0 – ingest
    # -----------------------------------------------------------------------
    data = ingest_module.ingest_all(input_dir)
    states_by_abbr = states_module.index_by_abbr(data.states)
    steps.append("ingest")
    manifest["rows_ingested"] = len(data.revenues)
    manifest["counties_ingested"] = len(data.counties)

    # -----------------------------------------------------------------------
    # Step 1 – normalize
    # -----------------------------------------------------------------------
    records = normalize_module.normalize_all(data.revenues, states_by_abbr)
    steps.append("normalize")

    # -----------------------------------------------------------------------
    # Step 2 – index
    # -----------------------------------------------------------------------
    index = index_module.build_index(records)
    steps.append("index")
    manifest["fips_with_revenue"] = len(index)

    # -----------------------------------------------------------------------
    # Step 3 – aggregate states, filter counties, encode
    # -----------------------------------------------------------------------
    counties = geometry_module.assign_county_ids(data.counties)
    state_features = geometry_module.aggregate_states(counties, states_by_abbr)
    steps.append("aggregate")

    counties = geometry_module.filter_counties(counties, index)
    if counties.empty:
        raise ConsistencyError("no county geometry matches a revenue FIPS code")
    steps.append("filter")
    manifest["counties_written"] = len(counties)
    manifest["states_written"] = len(state_features)

    topology = geometry_module.encode_topology(counties, state_features)
    geometry_module.check_geometry_types(topology)
    steps.append("encode")

    # -----------------------------------------------------------------------
    # Step 4 – output
    # -----------------------------------------------------------------------
    topology_path, revenues_path = output_module.write_outputs(topology, records, output_dir)
    steps.append("output")

    return PipelineResult(
        topology=topology,
        revenues=records,
        topology_path=topology_path,
        revenues_path=revenues_path,
    )


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    logger.info("=== pipeline start  run_id=%s ===", run_id)

    manifest: dict = {
        "run_id": run_id,
        "started_at": datetime.now().isoformat(),
        "status": "started",
        "steps_completed": [],
        "rows_ingested": None,
        "counties_ingested": None,
        "fips_with_revenue": None,
        "counties_written": None,
        "states_written": None,
        "abort_reason": None,
    }
    _write_manifest(manifest)

    try:
        run(manifest=manifest)
    except PipelineError as e:
        manifest["status"] = "ABORTED"
        manifest["abort_reason"] = f"{type(e).__name__}: {e}"
        _write_manifest(manifest)
        logger.error("=== pipeline ABORTED: %s ===", manifest["abort_reason"])
        sys.exit(1)

    manifest["status"] = "completed"
    _write_manifest(manifest)
    logger.info("=== pipeline complete  run_id=%s ===", run_id)


if __name__ == "__main__":
    main()
