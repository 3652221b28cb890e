"""
FeedFlux - Feed to Time-Series Collector
========================================

Polls Atom and RSS feeds and records every entry as an InfluxDB point.

Main Components:
- Ingestion: HTTP fetch, root-element schema detection, timestamp parsing,
  normalization into canonical events
- Storage: point building and single-point writes with last-write-wins identity
- Scheduler: sequential fixed-interval collection loop
- Configuration: environment variables + CLI overrides with Pydantic validation
"""

__version__ = "1.0.0"
__author__ = "FeedFlux Development Team"
__description__ = "Syndication feed to time-series collector"

from .config.settings import get_settings, load_settings
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import FeedFluxError

__all__ = [
    "get_settings",
    "load_settings",
    "configure_application_logging",
    "get_logger_for_component",
    "FeedFluxError",
]
