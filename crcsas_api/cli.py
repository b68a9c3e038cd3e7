"""
CRC-SAS API Client Command Line Interface

Usage:
    # Pentad of a date
    crcsas pentad 2021-02-27

    # Download a tabular resource to CSV
    crcsas table registros_diarios 87585 2020-01-01 2020-01-31 \
        --parse-dates fecha --output records.csv

    # Download a gridded drought index over an area of interest
    crcsas spatial indices_sequia_raster 1 2020-01-01 2020-03-31 \
        --geojson area.geojson --output spi.nc

Credentials are read from --username/--password, the configuration file, or
the CRCSAS_USERNAME and CRCSAS_PASSWORD environment variables.
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, List

from .config_manager import CrcSasConfig
from .endpoints import CRCSASClient
from .logging_utils import CRCSASError, setup_crcsas_logging
from .pentads import (
    end_date_of_pentad,
    pentad_of_month,
    pentad_of_year,
    start_date_of_pentad,
)

logger = logging.getLogger(__name__)


def parse_column_list(columns_str: str) -> List[str]:
    """Parse comma-separated column list."""
    return [c.strip() for c in columns_str.split(',') if c.strip()]


def parse_path_part(part: str) -> Any:
    """Turn ISO date arguments into dates so they are serialized as UTC datetimes."""
    try:
        return date.fromisoformat(part)
    except ValueError:
        return part


def add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    """Options shared by the commands that call the service."""

    parser.add_argument('--config', type=str, help='YAML or JSON configuration file')
    parser.add_argument('--base-url', type=str, help='API base URL')
    parser.add_argument('--username', type=str, help='API username')
    parser.add_argument('--password', type=str, help='API password')
    parser.add_argument('--timeout', type=float, help='Request timeout in seconds')


def create_pentad_parser(subparsers) -> None:
    """Create pentad lookup subcommand."""

    parser = subparsers.add_parser('pentad', help='Show the pentad containing a date')
    parser.add_argument('date', type=str, help='Date (YYYY-MM-DD)')
    parser.set_defaults(func=handle_pentad)


def create_table_parser(subparsers) -> None:
    """Create tabular download subcommand."""

    parser = subparsers.add_parser('table', help='Download a tabular resource')
    parser.add_argument('path', nargs='+', help='Resource path segments and parameters')
    parser.add_argument('--parse-dates', type=str, default='',
                        help='Comma-separated list of date columns')
    parser.add_argument('--output', type=str, help='CSV output file (default: print to stdout)')
    add_connection_arguments(parser)
    parser.set_defaults(func=handle_table)


def create_spatial_parser(subparsers) -> None:
    """Create spatial download subcommand."""

    parser = subparsers.add_parser('spatial', help='Download a gridded resource for an area')
    parser.add_argument('path', nargs='+', help='Resource path segments and parameters')
    parser.add_argument('--geojson', type=str, required=True, help='GeoJSON area of interest file')
    parser.add_argument('--output', type=str, required=True, help='NetCDF output file')
    add_connection_arguments(parser)
    parser.set_defaults(func=handle_spatial)


def build_client(args) -> CRCSASClient:
    """Create a client from configuration layered with command-line options."""
    cli_args: Dict[str, Any] = {'api': {}}
    for option, key in [('base_url', 'base_url'), ('username', 'username'),
                        ('password', 'password'), ('timeout', 'timeout')]:
        value = getattr(args, option, None)
        if value is not None:
            cli_args['api'][key] = value

    config = CrcSasConfig(config_file=args.config, cli_args=cli_args)
    if not args.verbose:
        logging_config = config.get_logging_config()
        setup_crcsas_logging(logging_config['log_level'], logging_config.get('log_file'))
    return CRCSASClient.from_config(config)


def handle_pentad(args) -> int:
    """Print pentad information for a date."""
    try:
        print(f"Date:             {args.date}")
        print(f"Pentad of month:  {pentad_of_month(args.date)}")
        print(f"Pentad of year:   {pentad_of_year(args.date)}")
        print(f"Start date:       {start_date_of_pentad(args.date)}")
        print(f"End date:         {end_date_of_pentad(args.date)}")
        return 0
    except CRCSASError as e:
        logger.error(f"✗ {e}")
        return 1


def handle_table(args) -> int:
    """Download a tabular resource."""
    try:
        client = build_client(args)
        parts = [parse_path_part(p) for p in args.path]
        table = client.table(*parts, parse_dates=parse_column_list(args.parse_dates))

        if args.output:
            output = Path(args.output)
            output.parent.mkdir(parents=True, exist_ok=True)
            table.to_csv(output, index=False)
            logger.info(f"✓ Wrote {len(table)} records to {output}")
        else:
            print(table.to_csv(index=False), end='')
        return 0

    except (CRCSASError, OSError) as e:
        logger.error(f"✗ Table download failed: {e}", exc_info=args.verbose)
        return 1


def handle_spatial(args) -> int:
    """Download a gridded resource and save it as NetCDF."""
    try:
        geojson = Path(args.geojson).read_text()
    except OSError as e:
        logger.error(f"✗ Could not read GeoJSON file: {e}")
        return 1

    try:
        client = build_client(args)
        parts = [parse_path_part(p) for p in args.path]
        grid = client.spatial(geojson, *parts)

        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        grid.data.to_netcdf(output, engine='netcdf4')

        logger.info(f"✓ Wrote {grid.layer_count} layer(s) to {output}")
        logger.info(f"  CRS: {grid.crs}")
        logger.info(f"  Dates: {', '.join(d.isoformat() for d in grid.dates)}")
        return 0

    except (CRCSASError, OSError) as e:
        logger.error(f"✗ Spatial download failed: {e}", exc_info=args.verbose)
        return 1


def main(argv: List[str] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments. If None, uses sys.argv[1:]

    Returns:
        int: Exit code (0 for success, 1 for failure)
    """

    parser = argparse.ArgumentParser(
        description='CRC-SAS API client',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  %(prog)s pentad 2021-02-27
  %(prog)s table estaciones --output stations.csv
  %(prog)s spatial indices_sequia_raster 1 2020-01-01 2020-03-31 \\
    --geojson area.geojson --output spi.nc
        '''
    )
    parser.add_argument('--verbose', action='store_true', help='Print debug information')

    subparsers = parser.add_subparsers(
        title='commands',
        description='Available commands',
        dest='command',
        help='Command to execute'
    )

    create_pentad_parser(subparsers)
    create_table_parser(subparsers)
    create_spatial_parser(subparsers)

    args = parser.parse_args(argv)

    setup_crcsas_logging('DEBUG' if args.verbose else 'INFO')

    if hasattr(args, 'func'):
        return args.func(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
