"""
SectionSource: retrieve, filter, sort, paginate, group and render the
entries of a section, and publish named parameters for chained datasources.

This loads a .env file (SECTIONSOURCE_DATABASE_URL, SECTIONSOURCE_DATA_DIR)
before the database module reads the environment, and re-exports the
commonly used classes.

date: 2026-10-19
version: 0.1.0
"""

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

# Re-export commonly used components
from .config import DatasourceConfig, load_configs
from .datasource import Outcome, OutcomeKind, SectionDatasource
from .errors import (
    ConfigurationError,
    NotFoundError,
    PageNotFoundError,
    SectionSourceError,
)
from .query import QueryService

__all__ = [
    # Config
    "DatasourceConfig",
    "load_configs",
    # Datasource
    "Outcome",
    "OutcomeKind",
    "SectionDatasource",
    # Services
    "QueryService",
    # Errors
    "SectionSourceError",
    "ConfigurationError",
    "NotFoundError",
    "PageNotFoundError",
]
