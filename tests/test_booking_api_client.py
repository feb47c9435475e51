"""
BookingApiClient tests with a patched requests.Session: no network.
"""

import json

import pytest
import requests

from booking_sync.adapters.booking_api_client import BookingApiClient
from booking_sync.adapters.simulator_booking_source import make_sample_booking
from booking_sync.domain.errors import FetchFailure, NoData


def _response(status: int, body: object = None, raw: bytes | None = None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.url = "https://api.example.test/booking"
    if raw is not None:
        resp._content = raw
    else:
        resp._content = json.dumps(body).encode("utf-8")
    return resp


@pytest.fixture
def client():
    return BookingApiClient(base_url="https://api.example.test/", api_key="secret")


def _serve(client, monkeypatch, response=None, error=None):
    calls = []

    def fake_get(url, timeout=None):
        calls.append((url, timeout))
        if error is not None:
            raise error
        return response

    monkeypatch.setattr(client.session, "get", fake_get)
    return calls


def test_headers_carry_api_key(client):
    assert client.session.headers["Api-Key"] == "secret"
    assert client.session.headers["Accept"] == "application/json"


def test_no_api_key_header_without_key():
    client = BookingApiClient(base_url="https://api.example.test")
    assert "Api-Key" not in client.session.headers


@pytest.mark.asyncio
async def test_fetch_parses_booking(client, monkeypatch):
    booking = make_sample_booking("API-1")
    calls = _serve(client, monkeypatch, _response(200, booking.to_dict()))

    result = await client.fetch()

    assert result == booking
    assert calls == [("https://api.example.test/booking", 10.0)]


@pytest.mark.asyncio
async def test_404_is_no_data(client, monkeypatch):
    _serve(client, monkeypatch, _response(404, {"error": "not found"}))
    with pytest.raises(NoData):
        await client.fetch()


@pytest.mark.asyncio
async def test_server_error_is_fetch_failure(client, monkeypatch):
    _serve(client, monkeypatch, _response(503, {}))
    with pytest.raises(FetchFailure) as excinfo:
        await client.fetch()
    assert not isinstance(excinfo.value, NoData)
    assert isinstance(excinfo.value.__cause__, requests.HTTPError)


@pytest.mark.asyncio
async def test_connection_error_is_fetch_failure(client, monkeypatch):
    _serve(client, monkeypatch, error=requests.ConnectionError("refused"))
    with pytest.raises(FetchFailure, match="unreachable"):
        await client.fetch()


@pytest.mark.asyncio
async def test_timeout_is_fetch_failure(client, monkeypatch):
    _serve(client, monkeypatch, error=requests.Timeout("too slow"))
    with pytest.raises(FetchFailure):
        await client.fetch()


@pytest.mark.asyncio
async def test_non_json_body_is_fetch_failure(client, monkeypatch):
    _serve(client, monkeypatch, _response(200, raw=b"<html>maintenance</html>"))
    with pytest.raises(FetchFailure, match="invalid payload"):
        await client.fetch()


@pytest.mark.asyncio
async def test_wrong_shape_is_fetch_failure(client, monkeypatch):
    _serve(client, monkeypatch, _response(200, {"shipReference": "only"}))
    with pytest.raises(FetchFailure, match="invalid payload"):
        await client.fetch()


@pytest.mark.asyncio
async def test_unrepresentable_number_is_fetch_failure(client, monkeypatch):
    body = json.dumps(make_sample_booking("API-1").to_dict())
    body = body.replace('"duration": 120', '"duration": 1e400')
    _serve(client, monkeypatch, _response(200, raw=body.encode("utf-8")))
    with pytest.raises(FetchFailure, match="invalid payload"):
        await client.fetch()
