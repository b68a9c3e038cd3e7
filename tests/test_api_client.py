"""
Tests for authenticated API access and tabular decoding.

HTTP traffic is replaced by a mocked requests session; no network access is
needed.
"""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import Mock

import pandas as pd
import pytest
import requests

from crcsas_api.api_client import (
    ApiAccessor,
    ApiCredentials,
    build_url,
    format_request_datetime,
)
from crcsas_api.logging_utils import (
    ApiError,
    AuthenticationError,
    DecodingError,
    NetworkError,
    NotFoundError,
    ServerError,
)

CREDENTIALS = ApiCredentials('usuario', 'clave-secreta')
URL = 'https://api.example.org/ws-api/estaciones'


def make_accessor(status_code=200, text='', content=b'', side_effect=None):
    """Create an accessor whose session returns a canned response."""
    session = Mock()
    if side_effect is not None:
        session.request.side_effect = side_effect
    else:
        session.request.return_value = Mock(status_code=status_code, text=text, content=content)
    return ApiAccessor(timeout=5, session=session), session


class TestFetchText:
    """HTTP request execution and error mapping"""

    def test_returns_body_and_sends_basic_auth(self):
        accessor, session = make_accessor(text='hola')

        assert accessor.fetch_text(URL, CREDENTIALS) == 'hola'

        session.request.assert_called_once_with(
            'GET', URL, auth=('usuario', 'clave-secreta'), timeout=5
        )

    @pytest.mark.parametrize("status_code, error_class", [
        (401, AuthenticationError),
        (404, NotFoundError),
        (500, ServerError),
        (503, ServerError),
        (400, ApiError),
        (403, ApiError),
    ])
    def test_http_errors_are_typed(self, status_code, error_class):
        accessor, _ = make_accessor(status_code=status_code)

        with pytest.raises(error_class) as excinfo:
            accessor.fetch_text(URL, CREDENTIALS)

        assert excinfo.value.status_code == status_code
        assert excinfo.value.context['url'] == URL

    def test_connection_refused_is_network_error(self):
        accessor, _ = make_accessor(side_effect=requests.ConnectionError('Connection refused'))

        with pytest.raises(NetworkError) as excinfo:
            accessor.fetch_text(URL, CREDENTIALS)

        assert isinstance(excinfo.value.__cause__, requests.ConnectionError)

    def test_timeout_is_network_error(self):
        accessor, _ = make_accessor(side_effect=requests.Timeout('timed out'))

        with pytest.raises(NetworkError):
            accessor.fetch_text(URL, CREDENTIALS)

    def test_password_not_in_error_message(self):
        accessor, _ = make_accessor(status_code=401)

        with pytest.raises(AuthenticationError) as excinfo:
            accessor.fetch_text(URL, CREDENTIALS)

        assert 'clave-secreta' not in str(excinfo.value)
        assert 'clave-secreta' not in str(excinfo.value.get_full_error_info())


class TestFetchTable:
    """JSON decoding into tables"""

    def test_single_record_keeps_field_order(self):
        accessor, _ = make_accessor(text='[{"a": 1, "b": "x"}]')

        table = accessor.fetch_table(URL, CREDENTIALS)

        assert list(table.columns) == ['a', 'b']
        assert len(table) == 1
        assert table.iloc[0]['a'] == 1
        assert table.iloc[0]['b'] == 'x'

    def test_row_order_preserved(self):
        accessor, _ = make_accessor(
            text='[{"omm_id": 87585, "valor": 2.5}, {"omm_id": 87155, "valor": 0.1}, '
                 '{"omm_id": 87270, "valor": 7.0}]'
        )

        table = accessor.fetch_table(URL, CREDENTIALS)

        assert list(table['omm_id']) == [87585, 87155, 87270]
        assert list(table['valor']) == [2.5, 0.1, 7.0]

    def test_single_object_is_one_row_table(self):
        accessor, _ = make_accessor(text='{"omm_id": 87585, "nombre": "Buenos Aires"}')

        table = accessor.fetch_table(URL, CREDENTIALS)

        assert len(table) == 1
        assert list(table.columns) == ['omm_id', 'nombre']

    def test_empty_array_is_empty_table(self):
        accessor, _ = make_accessor(text='[]')

        table = accessor.fetch_table(URL, CREDENTIALS)

        assert isinstance(table, pd.DataFrame)
        assert table.empty

    def test_parse_dates(self):
        accessor, _ = make_accessor(
            text='[{"fecha": "2021-01-01", "prcp": 1.5}, {"fecha": "2021-01-02", "prcp": 0.0}]'
        )

        table = accessor.fetch_table(URL, CREDENTIALS, parse_dates=['fecha'])

        assert list(table['fecha']) == [date(2021, 1, 1), date(2021, 1, 2)]

    def test_missing_date_column_raises(self):
        accessor, _ = make_accessor(text='[{"a": 1}]')

        with pytest.raises(DecodingError):
            accessor.fetch_table(URL, CREDENTIALS, parse_dates=['fecha'])

    @pytest.mark.parametrize("body", [
        'not json',
        '[{"a": 1',
        '42',
        '"text"',
        '[1, 2, 3]',
        '[{"a": 1}, [2]]',
    ])
    def test_invalid_payloads_raise_decoding_error(self, body):
        accessor, _ = make_accessor(text=body)

        with pytest.raises(DecodingError):
            accessor.fetch_table(URL, CREDENTIALS)

    def test_http_error_propagates_before_decoding(self):
        accessor, _ = make_accessor(status_code=404, text='not json')

        with pytest.raises(NotFoundError):
            accessor.fetch_table(URL, CREDENTIALS)


class TestRequestHelpers:
    """URL building and date serialization"""

    def test_format_date(self):
        assert format_request_datetime(date(2020, 1, 31)) == '2020-01-31T00:00:00'

    def test_format_naive_datetime_taken_as_utc(self):
        assert format_request_datetime(datetime(2020, 1, 31, 15, 4, 5)) == '2020-01-31T15:04:05'

    def test_format_aware_datetime_converted_to_utc(self):
        buenos_aires = timezone(timedelta(hours=-3))
        value = datetime(2020, 1, 31, 22, 0, 0, tzinfo=buenos_aires)
        assert format_request_datetime(value) == '2020-02-01T01:00:00'

    def test_format_pads_years_below_1000(self):
        assert format_request_datetime(date(999, 1, 1)) == '0999-01-01T00:00:00'
        assert format_request_datetime(datetime(45, 3, 2, 7, 8, 9)) == '0045-03-02T07:08:09'

    def test_format_drops_microseconds(self):
        assert format_request_datetime(datetime(2020, 1, 31, 15, 4, 5, 123456)) == '2020-01-31T15:04:05'

    def test_format_rejects_strings(self):
        with pytest.raises(TypeError):
            format_request_datetime('2020-01-31')

    def test_build_url(self):
        url = build_url('https://api.example.org/ws-api/', 'registros_diarios', 87585,
                        date(2020, 1, 1), date(2020, 1, 31))
        assert url == ('https://api.example.org/ws-api/registros_diarios/87585/'
                       '2020-01-01T00:00:00/2020-01-31T00:00:00')

    def test_build_url_encodes_parts(self):
        url = build_url('https://api.example.org', 'estaciones', 'San Martín')
        assert url == 'https://api.example.org/estaciones/San%20Mart%C3%ADn'


def test_credentials_repr_hides_password():
    assert 'clave-secreta' not in repr(CREDENTIALS)
    assert CREDENTIALS.as_auth() == ('usuario', 'clave-secreta')


def test_credentials_are_immutable():
    with pytest.raises(AttributeError):
        CREDENTIALS.password = 'otra'
