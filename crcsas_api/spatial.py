"""
Spatial Response Decoding for CRC-SAS Rasters

The spatial endpoints of the CRC-SAS API answer with a NetCDF container. This
module persists the payload to a scoped temporary file, opens it with xarray
(netCDF4 engine), loads every layer into memory and returns a SpatialGrid with
the coordinate reference system and one date per layer.

NetCDF layout consumed:
- global attribute ``crs``: PROJ4 string (required)
- variable ``time``: integer days since 1970-01-01 (multi-layer files)
- global attribute ``start_date``: date of the single layer when ``time``
  is absent
- one or more 2-D data variables
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterator, List, Optional, Union

import numpy as np
import xarray as xr

from .logging_utils import DecodingError

logger = logging.getLogger(__name__)

NETCDF_ENGINE = 'netcdf4'
TIME_EPOCH = date(1970, 1, 1)
CRS_ATTRIBUTE = 'crs'
TIME_VARIABLE = 'time'
START_DATE_ATTRIBUTE = 'start_date'


@dataclass
class SpatialGrid:
    """
    Decoded spatial response.

    Attributes:
        data (xr.Dataset): In-memory dataset with all grid layers
        crs (str): Coordinate reference system (PROJ4 string)
        dates (List[date]): Start date of each layer's aggregation period
    """
    data: xr.Dataset
    crs: str
    dates: List[date] = field(default_factory=list)

    @property
    def layer_count(self) -> int:
        return len(self.dates)

    @property
    def variables(self) -> List[str]:
        return [name for name in self.data.data_vars]

    def layer(self, variable: str, index: int = 0) -> xr.DataArray:
        """
        Get a single 2-D layer of a variable.

        Args:
            variable: Data variable name
            index: Layer index along the time axis (ignored for 2-D variables)

        Returns:
            xr.DataArray: 2-D layer
        """
        if variable not in self.data.data_vars:
            raise KeyError(f"Variable '{variable}' not in grid. Available: {self.variables}")
        array = self.data[variable]
        if TIME_VARIABLE in array.dims:
            return array.isel({TIME_VARIABLE: index})
        if index != 0:
            raise IndexError(f"Variable '{variable}' has a single layer. Got index: {index}")
        return array


@contextmanager
def scoped_temporary_file(content: bytes,
                          directory: Optional[Union[str, Path]] = None,
                          suffix: str = '.nc') -> Iterator[Path]:
    """
    Write bytes to a uniquely named temporary file and delete it on exit.

    The file is removed on every exit path: normal return, decoding errors
    raised inside the ``with`` block, and KeyboardInterrupt.

    Args:
        content: Bytes to persist
        directory: Directory for the file. Default: system temp directory
        suffix: File name suffix

    Yields:
        Path: Path of the temporary file
    """
    fd, name = tempfile.mkstemp(suffix=suffix, prefix='crcsas_', dir=directory)
    path = Path(name)
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(content)
        logger.debug(f"Wrote {len(content)} bytes to temporary file {path}")
        yield path
    finally:
        try:
            path.unlink()
            logger.debug(f"Deleted temporary file: {path}")
        except FileNotFoundError:
            logger.warning(f"Temporary file already removed: {path}")


def _layer_dates(dataset: xr.Dataset) -> Optional[List[date]]:
    """
    Resolve layer dates: ``time`` variable first, then ``start_date``.

    Returns:
        Optional[List[date]]: Dates, or None when neither source is present
    """
    if TIME_VARIABLE in dataset.variables:
        offsets = np.atleast_1d(dataset[TIME_VARIABLE].values)
        return [TIME_EPOCH + timedelta(days=int(offset)) for offset in offsets]

    start_date = dataset.attrs.get(START_DATE_ATTRIBUTE)
    if start_date is not None:
        try:
            return [datetime.fromisoformat(str(start_date).strip()).date()]
        except ValueError as e:
            raise DecodingError(
                f"Invalid '{START_DATE_ATTRIBUTE}' attribute: {start_date!r}"
            ) from e

    return None


def decode_netcdf_bytes(content: bytes,
                        directory: Optional[Union[str, Path]] = None) -> SpatialGrid:
    """
    Decode a NetCDF payload into a SpatialGrid.

    Args:
        content: Raw NetCDF bytes as returned by the service
        directory: Directory for the scoped temporary file

    Returns:
        SpatialGrid: Loaded layers with CRS and per-layer dates

    Raises:
        DecodingError: If the payload is not a valid NetCDF container, lacks
            the ``crs`` attribute, or has neither ``time`` nor ``start_date``
    """
    with scoped_temporary_file(content, directory=directory) as path:
        try:
            # Loaded and closed before the temporary file is removed
            with xr.open_dataset(path, engine=NETCDF_ENGINE, decode_times=False) as dataset:
                dataset = dataset.load()
        except (OSError, ValueError, RuntimeError) as e:
            raise DecodingError(
                f"Response is not a valid NetCDF container: {e}",
                context={'size_bytes': len(content)}
            ) from e

    crs = dataset.attrs.get(CRS_ATTRIBUTE)
    if crs is None:
        raise DecodingError(f"NetCDF response is missing the '{CRS_ATTRIBUTE}' attribute")

    dates = _layer_dates(dataset)
    if dates is None:
        raise DecodingError(
            f"NetCDF response has neither a '{TIME_VARIABLE}' variable "
            f"nor a '{START_DATE_ATTRIBUTE}' attribute"
        )

    logger.info(f"Decoded spatial grid with {len(dates)} layer(s), variables: {list(dataset.data_vars)}")
    return SpatialGrid(data=dataset, crs=str(crs), dates=dates)
