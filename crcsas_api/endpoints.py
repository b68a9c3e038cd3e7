"""
CRC-SAS Resource Client

Named wrappers around the resources exposed by the CRC-SAS web API. Each
method builds the resource URL from the configured base address and delegates
the request and decoding to an ApiAccessor.

The resource paths are owned by the remote service and kept here as module
constants; positional parameters (station ids, configuration ids, dates) are
appended as path segments, dates serialized as UTC ``YYYY-MM-DDTHH:MM:SS``.

Usage:
    client = CRCSASClient.from_config(CrcSasConfig())
    stations = client.stations()
    records = client.station_daily_records(87585, date(2020, 1, 1), date(2020, 12, 31))
"""

import logging
from datetime import date
from typing import Any, Dict, Optional, Union

import pandas as pd

from .api_client import ApiAccessor, ApiCredentials, build_url
from .config_manager import CrcSasConfig
from .spatial import SpatialGrid

logger = logging.getLogger(__name__)

STATIONS_PATH = 'estaciones'
DAILY_RECORDS_PATH = 'registros_diarios'
DROUGHT_CONFIGURATIONS_PATH = 'indices_sequia_configuracion'
DROUGHT_VALUES_PATH = 'indices_sequia_valores'
DROUGHT_RASTER_PATH = 'indices_sequia_raster'


class CRCSASClient:
    """
    Client for the CRC-SAS resources.

    Attributes:
        base_url (str): Service base address
        credentials (ApiCredentials): Credentials sent with every request
        accessor (ApiAccessor): Request executor and decoder
    """

    def __init__(
        self,
        base_url: str,
        credentials: ApiCredentials,
        accessor: Optional[ApiAccessor] = None,
    ):
        self.base_url = base_url
        self.credentials = credentials
        self.accessor = accessor or ApiAccessor()
        logger.info(f"CRC-SAS client initialized for {self.base_url}")

    @classmethod
    def from_config(cls, config: CrcSasConfig) -> 'CRCSASClient':
        """
        Create a client from configuration.

        Args:
            config (CrcSasConfig): Loaded configuration with credentials

        Returns:
            CRCSASClient: Configured client
        """
        api_config = config.get_api_config()
        accessor = ApiAccessor(
            timeout=api_config.get('timeout'),
            temp_directory=api_config.get('temp_directory'),
        )
        return cls(api_config['base_url'], config.get_credentials(), accessor)

    def url(self, *parts: Any) -> str:
        return build_url(self.base_url, *parts)

    def table(self, *parts: Any, parse_dates=None) -> pd.DataFrame:
        """GET any tabular resource given its path parts."""
        return self.accessor.fetch_table(self.url(*parts), self.credentials, parse_dates=parse_dates)

    def spatial(self, geojson: Union[str, Dict[str, Any]], *parts: Any) -> SpatialGrid:
        """POST an area of interest to any spatial resource given its path parts."""
        return self.accessor.fetch_spatial(self.url(*parts), self.credentials, geojson)

    def stations(self) -> pd.DataFrame:
        """List the meteorological stations known to the service."""
        return self.table(STATIONS_PATH)

    def station_daily_records(self, station_id: int, start: date, end: date) -> pd.DataFrame:
        """
        Daily observations of one station.

        Args:
            station_id (int): WMO station identifier
            start (date): First date (inclusive)
            end (date): Last date (inclusive)

        Returns:
            pd.DataFrame: One row per station, date and variable
        """
        return self.table(DAILY_RECORDS_PATH, station_id, start, end, parse_dates=['fecha'])

    def drought_index_configurations(self) -> pd.DataFrame:
        """Drought index configurations (index, scale, distribution, method)."""
        return self.table(DROUGHT_CONFIGURATIONS_PATH)

    def drought_index_values(self, station_id: int, configuration_id: int,
                             start: date, end: date) -> pd.DataFrame:
        """
        Drought index values of one station for one index configuration.

        Each row describes one pentad; ``pentad_fecha_inicio`` is the first
        day of the aggregation period.
        """
        return self.table(
            DROUGHT_VALUES_PATH, station_id, configuration_id, start, end,
            parse_dates=['pentad_fecha_inicio']
        )

    def spatial_drought_index(self, configuration_id: int, start: date, end: date,
                              geojson: Union[str, Dict[str, Any]]) -> SpatialGrid:
        """
        Gridded drought index over an area of interest.

        Args:
            configuration_id (int): Drought index configuration identifier
            start (date): First pentad start date
            end (date): Last pentad start date
            geojson: Area of interest as GeoJSON text or mapping

        Returns:
            SpatialGrid: One layer per pentad
        """
        return self.spatial(geojson, DROUGHT_RASTER_PATH, configuration_id, start, end)
