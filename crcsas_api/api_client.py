"""
Authenticated Access to the CRC-SAS API

This module performs single authenticated HTTP calls against the CRC-SAS web
API and decodes the responses into one of two shapes:

1. Tabular: JSON array of records -> pandas DataFrame (field and row order kept)
2. Spatial: NetCDF stream -> SpatialGrid (grid layers, CRS, per-layer dates)

Every request uses HTTP Basic Authentication. HTTP and transport failures are
mapped onto the typed errors in ``logging_utils`` and surfaced unmodified; no
retries are performed.

Usage:
    accessor = ApiAccessor(timeout=60)
    credentials = ApiCredentials('user', 'secret')
    url = build_url(BASE_URL, 'registros_diarios', 87585, date(2020, 1, 1), date(2020, 1, 31))
    records = accessor.fetch_table(url, credentials, parse_dates=['fecha'])
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import pandas as pd
import requests

from .logging_utils import (
    ApiError,
    AuthenticationError,
    DecodingError,
    NetworkError,
    NotFoundError,
    ServerError,
)
from .spatial import SpatialGrid, decode_netcdf_bytes

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60
GEOJSON_BODY_FIELD = 'zona.geojson'


@dataclass(frozen=True)
class ApiCredentials:
    """HTTP Basic Authentication credentials for the CRC-SAS API."""
    username: str
    password: str = field(repr=False)

    def as_auth(self) -> tuple:
        return (self.username, self.password)


def format_request_datetime(value: Union[date, datetime]) -> str:
    """
    Serialize a date for use in request paths and query strings.

    Args:
        value: Date or datetime. Naive datetimes are taken as UTC, aware
            datetimes are converted to UTC, plain dates mean midnight UTC.

    Returns:
        str: ISO-8601 ``YYYY-MM-DDTHH:MM:SS`` in UTC

    Example:
        >>> format_request_datetime(date(2020, 1, 31))
        '2020-01-31T00:00:00'
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        # isoformat pads years below 1000, strftime('%Y') does not on every platform
        return value.isoformat(timespec='seconds')
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).isoformat(timespec='seconds')
    raise TypeError(f"Expected date or datetime. Got: {type(value).__name__}")


def build_url(base_url: str, *parts: Any) -> str:
    """
    Build an absolute resource URL from a base address and path parts.

    Dates and datetimes are serialized with ``format_request_datetime``; every
    part is percent-encoded so embedded parameters cannot break the path.

    Args:
        base_url: Service base address (e.g. 'https://api.crc-sas.org/ws-api')
        *parts: Path segments and positional parameters

    Returns:
        str: Absolute URL
    """
    segments = [base_url.rstrip('/')]
    for part in parts:
        if isinstance(part, (date, datetime)):
            part = format_request_datetime(part)
        segments.append(quote(str(part).strip('/'), safe='/:'))
    return '/'.join(segments)


def _records_to_frame(payload: Any) -> pd.DataFrame:
    """Convert decoded JSON into a DataFrame of uniformly shaped records."""
    if isinstance(payload, dict):
        payload = [payload]

    if not isinstance(payload, list):
        raise DecodingError(
            f"Expected a JSON array of objects. Got: {type(payload).__name__}"
        )

    if not all(isinstance(record, dict) for record in payload):
        raise DecodingError("Expected a JSON array of objects. Found non-object elements")

    if not payload:
        return pd.DataFrame()

    columns: List[str] = []
    for record in payload:
        for key in record:
            if key not in columns:
                columns.append(key)

    return pd.DataFrame.from_records(payload, columns=columns)


class ApiAccessor:
    """
    Execute authenticated requests against the CRC-SAS API and decode them.

    The accessor holds no cross-call state besides the HTTP session; every
    call is an independent request/decode/cleanup sequence.

    Attributes:
        timeout (float): Seconds to wait for the server before NetworkError
        session (requests.Session): HTTP session used for requests
        temp_directory (Optional[Path]): Directory for spatial temp files
    """

    def __init__(
        self,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        temp_directory: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize the API accessor.

        Args:
            timeout (Optional[float]): Request timeout in seconds. None waits
                indefinitely. Default: 60
            session (Optional[requests.Session]): Session to reuse. Default:
                a new session
            temp_directory (Optional[str]): Directory for temporary NetCDF
                files. Default: system temp directory
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.temp_directory = Path(temp_directory) if temp_directory else None

    def _request(self, method: str, url: str, credentials: ApiCredentials,
                 **kwargs) -> requests.Response:
        """
        Issue one HTTP request and map failures to typed errors.

        Raises:
            NetworkError: On transport failure
            AuthenticationError: On HTTP 401
            NotFoundError: On HTTP 404
            ServerError: On HTTP 5xx
            ApiError: On any other unsuccessful status
        """
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(
                method, url, auth=credentials.as_auth(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise NetworkError(
                f"Failed to reach {url}: {e}", context={'method': method, 'url': url}
            ) from e

        status = response.status_code
        logger.info(f"{method} {url} -> HTTP {status}")
        if status < 400:
            return response

        context = {'method': method, 'url': url, 'status_code': status}
        if status == 401:
            raise AuthenticationError(f"Credentials rejected for {url}", status, context)
        if status == 404:
            raise NotFoundError(f"Resource not found: {url}", status, context)
        if status >= 500:
            raise ServerError(f"Server error (HTTP {status}) for {url}", status, context)
        raise ApiError(f"Request failed (HTTP {status}) for {url}", status, context)

    def fetch_text(self, url: str, credentials: ApiCredentials) -> str:
        """
        GET a resource and return the raw body as text.

        Args:
            url (str): Absolute resource URL
            credentials (ApiCredentials): Basic auth credentials

        Returns:
            str: Response body
        """
        return self._request('GET', url, credentials).text

    def fetch_table(self, url: str, credentials: ApiCredentials,
                    parse_dates: Optional[List[str]] = None) -> pd.DataFrame:
        """
        GET a tabular resource and decode its JSON body.

        A single top-level JSON object is treated as a one-row table.

        Args:
            url (str): Absolute resource URL
            credentials (ApiCredentials): Basic auth credentials
            parse_dates (Optional[List[str]]): Columns to convert to dates

        Returns:
            pd.DataFrame: One row per record, columns in the server's field order

        Raises:
            DecodingError: If the body is not JSON or not an array of objects
        """
        body = self.fetch_text(url, credentials)

        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise DecodingError(f"Response from {url} is not valid JSON: {e}",
                                context={'url': url}) from e

        table = _records_to_frame(payload)

        for column in parse_dates or []:
            if column not in table.columns:
                raise DecodingError(f"Date column '{column}' not present in response from {url}")
            try:
                table[column] = pd.to_datetime(table[column]).dt.date
            except (ValueError, TypeError) as e:
                raise DecodingError(f"Column '{column}' holds invalid dates: {e}") from e

        logger.debug(f"Decoded {len(table)} records with columns {list(table.columns)}")
        return table

    def fetch_spatial(self, url: str, credentials: ApiCredentials,
                      geojson: Union[str, Dict[str, Any]]) -> SpatialGrid:
        """
        POST an area of interest and decode the NetCDF response.

        Args:
            url (str): Absolute resource URL
            credentials (ApiCredentials): Basic auth credentials
            geojson (Union[str, dict]): GeoJSON area of interest; dicts are
                serialized to text

        Returns:
            SpatialGrid: Grid layers with CRS and per-layer dates

        Raises:
            DecodingError: If the payload is not a usable NetCDF container
        """
        if not isinstance(geojson, str):
            geojson = json.dumps(geojson)

        response = self._request('POST', url, credentials, json={GEOJSON_BODY_FIELD: geojson})
        return decode_netcdf_bytes(response.content, directory=self.temp_directory)
