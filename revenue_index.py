"""Step 2 – Three-level lookup of normalized revenue: FIPS → year → commodity.

Module: from revenue_index import build_index, has_key
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType

from normalize import RevenueRecord

logger = logging.getLogger(__name__)

# FIPS → year → commodity → records
RevenueIndex = Mapping[str, dict[str, dict[str, list[RevenueRecord]]]]


def build_index(records: list[RevenueRecord]) -> RevenueIndex:
    """Group records by FIPS, then year, then commodity.

    Every record is kept; amounts are not summed here.
    """
    nested: dict[str, dict[str, dict[str, list[RevenueRecord]]]] = {}
    for record in records:
        by_year = nested.setdefault(record.FIPS, {})
        by_commodity = by_year.setdefault(record.year, {})
        by_commodity.setdefault(record.commodity, []).append(record)

    logger.info("index: %d records under %d FIPS codes", len(records), len(nested))
    return MappingProxyType(nested)


def has_key(index: RevenueIndex, fips: str) -> bool:
    return fips in index


def lookup(
    index: RevenueIndex,
    fips: str,
    year: str | None = None,
    commodity: str | None = None,
) -> dict | list[RevenueRecord]:
    """Return the sub-mapping (or record list) under the given key path.

    Missing keys yield an empty dict, or an empty list when commodity is given.
    """
    by_year = index.get(fips, {})
    if year is None:
        return by_year
    by_commodity = by_year.get(year, {})
    if commodity is None:
        return by_commodity
    return by_commodity.get(commodity, [])
