"""Step 1 – Rewrite raw revenue rows into FIPS-keyed RevenueRecords.

Module: from normalize import normalize_all
"""

from __future__ import annotations

import logging
import math
import re

from pydantic import BaseModel, ConfigDict, Field

from errors import MalformedAmountError, MalformedCountyCodeError, ReferentialIntegrityError
from states import StateMetadata

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class RawRevenueRow(BaseModel):
    """One line of county-revenues.tsv, keyed by the ledger's own headers."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, frozen=True)

    state_abbr: str = Field(alias="St")
    county_code: str = Field(alias="County Code")
    county_name: str = Field(alias="County")
    year: str = Field(alias="CY")
    commodity: str = Field(alias="Commodity")
    revenue_type: str = Field(alias="Revenue Type")
    amount: str = Field(alias="Royalty/Revenue")


class RevenueRecord(BaseModel):
    """Normalized revenue row; FIPS matches the county geometry ids."""
    model_config = ConfigDict(frozen=True)

    year: str
    commodity: str
    revenue_type: str
    revenue: float
    state: str                                    # full state name
    county: str
    FIPS: str                                     # 5-digit county FIPS


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_FIPS_PATTERN = re.compile(r"^\d{5}$")
_AMOUNT_FORMATTING = re.compile(r"[$,\s]")


def parse_dollars(text: str) -> float:
    """'$1,234.56' → 1234.56.  '(1,234.56)' and '-$1,234.56' are negative.

    Raises MalformedAmountError instead of defaulting to zero.
    """
    raw = text.strip()
    negative = False
    if raw.startswith("(") and raw.endswith(")"):
        negative = True
        raw = raw[1:-1]
    cleaned = _AMOUNT_FORMATTING.sub("", raw)
    if cleaned.startswith("-"):
        negative = not negative
        cleaned = cleaned[1:]
    if not cleaned or cleaned.startswith("-"):
        raise MalformedAmountError(f"unparseable amount: {text!r}")
    try:
        value = float(cleaned)
    except ValueError as e:
        raise MalformedAmountError(f"unparseable amount: {text!r}") from e
    if not math.isfinite(value):
        raise MalformedAmountError(f"non-finite amount: {text!r}")
    return -value if negative else value


def derive_fips(state: StateMetadata, county_code: str) -> str:
    """State prefix + county code tail: ('06', '06001') → '06001'.

    The first two characters of the ledger's county code are not used.
    """
    fips = state.FIPS + county_code[2:]
    if not _FIPS_PATTERN.match(fips):
        raise MalformedCountyCodeError(
            f"county code {county_code!r} in {state.abbr} yields FIPS {fips!r}, expected 5 digits"
        )
    return fips


# ---------------------------------------------------------------------------
# Core logic
# ---------------------------------------------------------------------------


def normalize_record(raw: RawRevenueRow, states_by_abbr: dict[str, StateMetadata]) -> RevenueRecord:
    """Resolve the state, derive FIPS, parse the amount.  Returns a new record."""
    state = states_by_abbr.get(raw.state_abbr)
    if state is None:
        raise ReferentialIntegrityError(f"unknown state abbreviation: {raw.state_abbr!r}")

    return RevenueRecord(
        year=raw.year,
        commodity=raw.commodity,
        revenue_type=raw.revenue_type,
        revenue=parse_dollars(raw.amount),
        state=state.name,
        county=raw.county_name,
        FIPS=derive_fips(state, raw.county_code),
    )


def normalize_all(
    raw_rows: list[RawRevenueRow],
    states_by_abbr: dict[str, StateMetadata],
) -> list[RevenueRecord]:
    """Normalize every row, grouped by state in order of first appearance.

    The first bad row aborts; the error message names its data row number.
    """
    by_state: dict[str, list[tuple[int, RawRevenueRow]]] = {}
    for i, row in enumerate(raw_rows, start=2):  # row 1 is header
        by_state.setdefault(row.state_abbr, []).append((i, row))

    records: list[RevenueRecord] = []
    for abbr, rows in by_state.items():
        for i, row in rows:
            try:
                records.append(normalize_record(row, states_by_abbr))
            except (ReferentialIntegrityError, MalformedAmountError, MalformedCountyCodeError) as e:
                raise type(e)(f"row {i}: {e}") from e
        logger.debug("normalize: %s → %d records", abbr, len(rows))

    logger.info("normalize: %d records across %d states", len(records), len(by_state))
    return records
