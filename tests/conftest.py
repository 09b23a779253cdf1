"""Shared fixtures for pipeline tests."""

import csv
import json
import sys
from pathlib import Path

import geopandas as gpd
import pytest
from shapely.geometry import box

# Ensure repo root is on sys.path so imports like `import states` work
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from states import StateMetadata, index_by_abbr  # noqa: E402

# (abbr, name, FIPS) – 50 states, DC, then the four territories
STATE_ROWS: list[tuple[str, str, str]] = [
    ("AL", "Alabama", "01"), ("AK", "Alaska", "02"), ("AZ", "Arizona", "04"),
    ("AR", "Arkansas", "05"), ("CA", "California", "06"), ("CO", "Colorado", "08"),
    ("CT", "Connecticut", "09"), ("DE", "Delaware", "10"), ("DC", "District of Columbia", "11"),
    ("FL", "Florida", "12"), ("GA", "Georgia", "13"), ("HI", "Hawaii", "15"),
    ("ID", "Idaho", "16"), ("IL", "Illinois", "17"), ("IN", "Indiana", "18"),
    ("IA", "Iowa", "19"), ("KS", "Kansas", "20"), ("KY", "Kentucky", "21"),
    ("LA", "Louisiana", "22"), ("ME", "Maine", "23"), ("MD", "Maryland", "24"),
    ("MA", "Massachusetts", "25"), ("MI", "Michigan", "26"), ("MN", "Minnesota", "27"),
    ("MS", "Mississippi", "28"), ("MO", "Missouri", "29"), ("MT", "Montana", "30"),
    ("NE", "Nebraska", "31"), ("NV", "Nevada", "32"), ("NH", "New Hampshire", "33"),
    ("NJ", "New Jersey", "34"), ("NM", "New Mexico", "35"), ("NY", "New York", "36"),
    ("NC", "North Carolina", "37"), ("ND", "North Dakota", "38"), ("OH", "Ohio", "39"),
    ("OK", "Oklahoma", "40"), ("OR", "Oregon", "41"), ("PA", "Pennsylvania", "42"),
    ("RI", "Rhode Island", "44"), ("SC", "South Carolina", "45"), ("SD", "South Dakota", "46"),
    ("TN", "Tennessee", "47"), ("TX", "Texas", "48"), ("UT", "Utah", "49"),
    ("VT", "Vermont", "50"), ("VA", "Virginia", "51"), ("WA", "Washington", "53"),
    ("WV", "West Virginia", "54"), ("WI", "Wisconsin", "55"), ("WY", "Wyoming", "56"),
    ("AS", "American Samoa", "60"), ("GU", "Guam", "66"),
    ("PR", "Puerto Rico", "72"), ("VI", "Virgin Islands", "78"),
]

REVENUE_HEADER = ["St", "County Code", "County", "CY", "Commodity", "Revenue Type", "Royalty/Revenue"]


@pytest.fixture
def state_metadata() -> list[StateMetadata]:
    return [StateMetadata(abbr=a, name=n, FIPS=f) for a, n, f in STATE_ROWS]


@pytest.fixture
def states_by_abbr(state_metadata: list[StateMetadata]) -> dict[str, StateMetadata]:
    return index_by_abbr(state_metadata)


def county_boxes(abbrs: list[str] | None = None) -> list[dict]:
    """Two adjacent unit squares per state, sharing an edge; one row of states per 3 degrees."""
    rows = STATE_ROWS if abbrs is None else [r for r in STATE_ROWS if r[0] in abbrs]
    counties: list[dict] = []
    for i, (abbr, _, fips) in enumerate(rows):
        x = -170 + i * 3
        counties.append({"state": abbr, "FIPS": f"{fips}001", "geometry": box(x, 0, x + 1, 1)})
        counties.append({"state": abbr, "FIPS": f"{fips}003", "geometry": box(x + 1, 0, x + 2, 1)})
    return counties


@pytest.fixture
def county_gdf() -> gpd.GeoDataFrame:
    """County geometries for every state, DC and territory, ids assigned."""
    gdf = gpd.GeoDataFrame(county_boxes(), geometry="geometry", crs="EPSG:4326")
    gdf["id"] = gdf["FIPS"]
    return gdf


# ---------------------------------------------------------------------------
# On-disk inputs
# ---------------------------------------------------------------------------


def write_states_csv(path: Path, rows: list[tuple[str, str, str]] = STATE_ROWS) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="") as fh:
        writer = csv.writer(fh)
        writer.writerow(["abbr", "name", "FIPS"])
        writer.writerows(rows)


def write_revenues_tsv(path: Path, rows: list[list[str]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="") as fh:
        writer = csv.writer(fh, delimiter="\t", lineterminator="\n")
        writer.writerow(REVENUE_HEADER)
        writer.writerows(rows)


def write_counties_topojson(path: Path, counties: list[dict]) -> None:
    """Hand-built TopoJSON: one closed arc per county ring, no transform."""
    arcs: list[list[list[float]]] = []
    geometries: list[dict] = []
    for i, county in enumerate(counties):
        arcs.append([list(c) for c in county["geometry"].exterior.coords])
        geometries.append({
            "type": "Polygon",
            "arcs": [[i]],
            "id": int(county["FIPS"]),
            "properties": {"state": county["state"], "FIPS": county["FIPS"]},
        })
    topology = {
        "type": "Topology",
        "objects": {"counties": {"type": "GeometryCollection", "geometries": geometries}},
        "arcs": arcs,
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(topology))


@pytest.fixture
def input_dir(tmp_path: Path) -> Path:
    """A complete input layout: every state has counties; CA, TX and PR have revenue."""
    base = tmp_path / "in"
    write_states_csv(base / "input" / "states.csv")
    write_counties_topojson(base / "geo" / "us-counties.json", county_boxes())
    write_revenues_tsv(base / "input" / "county-revenues.tsv", [
        ["CA", "06001", "Alameda", "2013", "Oil & Gas", "Royalties", "$1,234.56"],
        ["TX", "48003", "Andrews", "2013", "Oil & Gas", "Royalties", "$10,000.00"],
        ["CA", "06001", "Alameda", "2014", "Oil & Gas", "Royalties", "$200.00"],
        ["PR", "72001", "Adjuntas", "2013", "Other", "Bonus", "$5.00"],
        ["AK", "02999", "Nowhere", "2013", "Coal", "Rents", "$1.00"],
    ])
    return base
