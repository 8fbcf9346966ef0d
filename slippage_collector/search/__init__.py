from .engine import (
    NoCrossingFoundError,
    SearchNotConvergedError,
    SearchResult,
    SearchState,
    SlippageSearch,
    SlippageSearchError,
)
from .ratio import TARGET_RATIO, format_ether, parse_ether, tolerance_from_digits, within_tolerance
from .spot import SlippageResult, Spot, SpotAnchor

__all__ = [
    "NoCrossingFoundError",
    "SearchNotConvergedError",
    "SearchResult",
    "SearchState",
    "SlippageResult",
    "SlippageSearch",
    "SlippageSearchError",
    "Spot",
    "SpotAnchor",
    "TARGET_RATIO",
    "format_ether",
    "parse_ether",
    "tolerance_from_digits",
    "within_tolerance",
]
