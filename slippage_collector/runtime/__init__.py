from .collector import Datapoint, SlippageCollector, build_search, run_collection
from .logging import setup_logger
from .settings import AppSettings, parse_settings

__all__ = [
    "AppSettings",
    "Datapoint",
    "SlippageCollector",
    "build_search",
    "parse_settings",
    "run_collection",
    "setup_logger",
]
