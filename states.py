"""State reference data loaded from input/states.csv.

The file has one row per state, DC and territory:
    abbr  – 2-letter USPS postal code
    name  – canonical full name
    FIPS  – 2-digit zero-padded FIPS state code
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors import IngestionError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration constants
# ---------------------------------------------------------------------------

# American Samoa, Puerto Rico, Guam and Virgin Islands
TERRITORIES: frozenset[str] = frozenset({"AS", "PR", "GU", "VI"})

# 50 states + District of Columbia
EXPECTED_STATE_COUNT: int = 51

# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class StateMetadata(BaseModel):
    """One row of states.csv."""
    model_config = ConfigDict(frozen=True)

    abbr: str = Field(pattern=r"^[A-Z]{2}$")
    name: str
    FIPS: str = Field(pattern=r"^\d{2}$")

    @field_validator("abbr", mode="before")
    @classmethod
    def _upper_abbr(cls, v: str) -> str:
        return str(v).strip().upper()

    @field_validator("FIPS", mode="before")
    @classmethod
    def _pad_fips(cls, v: str | int) -> str:
        # spreadsheet round-trips drop the leading zero ("6" for California)
        return str(v).strip().zfill(2)


# ---------------------------------------------------------------------------
# Loading / lookup helpers
# ---------------------------------------------------------------------------


def load_states(path: str | Path) -> list[StateMetadata]:
    """Read states.csv into StateMetadata rows, in file order."""
    states: list[StateMetadata] = []
    with open(path, newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        for i, row in enumerate(reader, start=2):  # row 1 is header
            try:
                states.append(StateMetadata(**{k.strip(): v for k, v in row.items() if k}))
            except ValidationError as e:
                raise IngestionError(f"{path}: row {i}: invalid state metadata: {e}") from e
    logger.info("states: %d rows read from %s", len(states), path)
    return states


def index_by_abbr(states: list[StateMetadata]) -> dict[str, StateMetadata]:
    """Key state metadata by abbreviation.  Duplicate abbreviations are fatal."""
    by_abbr: dict[str, StateMetadata] = {}
    for state in states:
        if state.abbr in by_abbr:
            raise IngestionError(f"duplicate state abbreviation in metadata: {state.abbr}")
        by_abbr[state.abbr] = state
    return by_abbr
