"""
Tests for logging setup and the error hierarchy.
"""

import logging

import pytest

from crcsas_api.logging_utils import (
    ApiError,
    AuthenticationError,
    CRCSASError,
    DecodingError,
    InvalidDateError,
    NetworkError,
    NotFoundError,
    ServerError,
    setup_crcsas_logging,
)


def test_setup_logging_with_file(tmp_path):
    log_file = tmp_path / 'logs' / 'crcsas.log'

    logger = setup_crcsas_logging('DEBUG', log_file=str(log_file), console_output=False)
    logger.info('pentad lookup')
    for handler in logger.handlers:
        handler.flush()

    assert logger.name == 'crcsas_api'
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert 'pentad lookup' in log_file.read_text()

    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)


def test_setup_logging_replaces_handlers():
    setup_crcsas_logging('INFO')
    logger = setup_crcsas_logging('WARNING')

    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)


@pytest.mark.parametrize("error_class", [AuthenticationError, NotFoundError, ServerError])
def test_http_errors_are_api_errors(error_class):
    error = error_class('failed', 418, {'url': 'https://example.org'})

    assert isinstance(error, ApiError)
    assert isinstance(error, CRCSASError)
    assert error.status_code == 418


def test_error_info_includes_context():
    error = DecodingError('bad payload', {'size_bytes': 12})

    info = error.get_full_error_info()

    assert info['error_type'] == 'DecodingError'
    assert info['message'] == 'bad payload'
    assert info['context'] == {'size_bytes': 12}


def test_network_and_date_errors():
    assert not isinstance(NetworkError('down'), ApiError)
    assert isinstance(InvalidDateError('bad'), ValueError)
