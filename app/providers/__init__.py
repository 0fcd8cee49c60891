"""Data providers mapping generic resource operations onto backend REST shapes."""

from .base import (
    DataProvider,
    Filter,
    ListParams,
    ListResult,
    Pagination,
    SimpleRestProvider,
    Sorter,
    UnsupportedOperation,
)
from .router import RoutedDataProvider, create_data_provider

__all__ = [
    "DataProvider",
    "Filter",
    "ListParams",
    "ListResult",
    "Pagination",
    "RoutedDataProvider",
    "SimpleRestProvider",
    "Sorter",
    "UnsupportedOperation",
    "create_data_provider",
]
