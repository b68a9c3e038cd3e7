"""
Error Handling and Logging Infrastructure for the CRC-SAS API client

This module provides standardized logging setup and the typed error hierarchy
raised by the client. Errors carry a context dictionary so callers can tell
"could not reach or authenticate to the service" apart from "service reached
but payload unintelligible" and decide whether to retry, re-authenticate or
abandon.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

PACKAGE_LOGGER_NAME = 'crcsas_api'


def setup_crcsas_logging(log_level: str = "INFO",
                         log_file: Optional[str] = None,
                         console_output: bool = True) -> logging.Logger:
    """
    Setup standardized logging for the CRC-SAS client.

    Args:
        log_level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
        log_file: Optional path to log file
        console_output: Whether to output logs to console

    Returns:
        Configured package logger instance
    """
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Clear any existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, log_level.upper()))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)  # File logs capture everything
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


class CRCSASError(Exception):
    """Base exception class for CRC-SAS client errors"""

    def __init__(self, message: str, context: Optional[Dict] = None):
        """
        Initialize CRC-SAS error.

        Args:
            message: Error message
            context: Optional context dictionary with additional information
        """
        super().__init__(message)
        self.context = context or {}
        self.timestamp = datetime.now()

    def get_full_error_info(self) -> Dict[str, Any]:
        """Get complete error information including context"""
        return {
            'error_type': self.__class__.__name__,
            'message': str(self),
            'timestamp': self.timestamp.isoformat(),
            'context': self.context
        }


class ConfigurationError(CRCSASError):
    """Error in configuration or setup"""
    pass


class NetworkError(CRCSASError):
    """Transport-level failure (DNS, timeout, connection reset)"""
    pass


class ApiError(CRCSASError):
    """The service answered with an unsuccessful HTTP status"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 context: Optional[Dict] = None):
        super().__init__(message, context)
        self.status_code = status_code


class AuthenticationError(ApiError):
    """Credentials rejected by the service (HTTP 401)"""
    pass


class NotFoundError(ApiError):
    """Unknown resource, route or parameter combination (HTTP 404)"""
    pass


class ServerError(ApiError):
    """Remote-side failure (HTTP 5xx)"""
    pass


class DecodingError(CRCSASError):
    """Response payload could not be decoded (malformed JSON or NetCDF)"""
    pass


class InvalidDateError(CRCSASError, ValueError):
    """Calendar arithmetic was given an impossible date"""
    pass
