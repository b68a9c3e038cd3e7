"""
CRC-SAS API Client

Client library for the CRC-SAS meteorological and drought-monitoring web API:
- Pentad calendar arithmetic (6 pentads per month, 72 per year)
- Authenticated requests with tabular (JSON) and spatial (NetCDF) decoding
- Layered configuration and a small command line interface
"""

__version__ = "1.0.0"
__author__ = "CRC-SAS Development Team"

from .api_client import ApiAccessor, ApiCredentials, build_url, format_request_datetime
from .endpoints import CRCSASClient
from .logging_utils import (
    ApiError,
    AuthenticationError,
    CRCSASError,
    ConfigurationError,
    DecodingError,
    InvalidDateError,
    NetworkError,
    NotFoundError,
    ServerError,
)
from .pentads import (
    end_date_of_pentad,
    pentad_of_month,
    pentad_of_year,
    start_date_of_pentad,
    start_date_of_year_pentad,
)
from .spatial import SpatialGrid

__all__ = [
    'ApiAccessor', 'ApiCredentials', 'build_url', 'format_request_datetime',
    'CRCSASClient', 'SpatialGrid',
    'pentad_of_month', 'pentad_of_year', 'start_date_of_year_pentad',
    'start_date_of_pentad', 'end_date_of_pentad',
    'CRCSASError', 'ApiError', 'AuthenticationError', 'NotFoundError', 'ServerError',
    'NetworkError', 'DecodingError', 'InvalidDateError', 'ConfigurationError',
]
