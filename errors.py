"""Fatal error types raised by the pipeline steps.

Every error aborts the run; main.py records the message in the run manifest.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for every fatal pipeline error."""


class IngestionError(PipelineError):
    """An input file could not be read or parsed."""


class ReferentialIntegrityError(PipelineError):
    """A record references a state abbreviation with no metadata."""


class MalformedAmountError(PipelineError):
    """A currency string could not be parsed into a number."""


class MalformedCountyCodeError(PipelineError):
    """A county code does not yield a 5-digit county FIPS code."""


class ConsistencyError(PipelineError):
    """Derived data disagrees with a known invariant of the inputs."""


class StateCountError(ConsistencyError):
    """County aggregation produced the wrong number of states."""

    def __init__(self, expected: int, actual: int, abbrs: list[str]) -> None:
        self.expected = expected
        self.actual = actual
        self.abbrs = abbrs
        super().__init__(f"expected {expected} state features, got {actual}: {abbrs}")


class GeometryTypeError(ConsistencyError):
    """An encoded topology geometry has no type."""
