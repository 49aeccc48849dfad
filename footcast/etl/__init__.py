"""ETL module: sports-data providers."""

from footcast.etl.apifootball import APIFootballError, APIFootballProvider
from footcast.etl.base import DataProvider

__all__ = [
    "DataProvider",
    "APIFootballProvider",
    "APIFootballError",
]
