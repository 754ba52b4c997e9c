import httpx
import pytest

from openmeteo_weather_mcp.errors import InvalidInputError, MalformedResponseError, NetworkError, RemoteError
from openmeteo_weather_mcp.location import (
    CURRENT_LOCATION_LABEL,
    CUSTOM_COORDINATES_LABEL,
    GeocodingClient,
    candidate_from_coordinates,
    parse_coordinates,
)
from openmeteo_weather_mcp.models import Coordinates, LocationCandidate

from conftest import json_transport


@pytest.mark.parametrize(
    "text,latitude,longitude",
    [
        ("37.5, 127.0", 37.5, 127.0),
        ("-12.3,45", -12.3, 45.0),
        ("37.5665, 126.9780", 37.5665, 126.978),
        ("  0,0  ", 0.0, 0.0),
        ("-90, -180", -90.0, -180.0),
    ],
)
def test_parse_coordinates_matches(text, latitude, longitude):
    candidate = parse_coordinates(text)
    assert candidate is not None
    assert candidate.name == CUSTOM_COORDINATES_LABEL
    assert candidate.region == ""
    assert candidate.latitude == latitude
    assert candidate.longitude == longitude


@pytest.mark.parametrize(
    "text",
    [
        "Seoul",
        "37.5, 127.0 km",
        "lat 37.5, 127.0",
        "37.5 127.0",
        "37.5,,127.0",
        "37., 127.0",
        ".5, 127.0",
        "37.5, 127.0, 3",
        "+37.5, 127.0",
        "37.5 , 127.0",
        "1e5, 2",
        "",
    ],
)
def test_parse_coordinates_rejects(text):
    assert parse_coordinates(text) is None


def test_parse_coordinates_out_of_range():
    with pytest.raises(InvalidInputError):
        parse_coordinates("95.0, 127.0")
    with pytest.raises(InvalidInputError):
        parse_coordinates("37.0, 181")


def test_candidate_display_name():
    assert LocationCandidate(name="Seoul", region="Seoul, South Korea", latitude=1, longitude=2).display_name == (
        "Seoul - Seoul, South Korea"
    )
    assert LocationCandidate(name="Seoul", region="   ", latitude=1, longitude=2).display_name == "Seoul"


def test_candidate_is_immutable():
    candidate = LocationCandidate(name="Seoul", latitude=1, longitude=2)
    with pytest.raises(Exception):
        candidate.name = "Busan"


def test_candidate_from_coordinates():
    candidate = candidate_from_coordinates(Coordinates(latitude=52.1, longitude=5.18))
    assert candidate.name == CURRENT_LOCATION_LABEL
    assert (candidate.latitude, candidate.longitude) == (52.1, 5.18)


@pytest.mark.asyncio
async def test_search_returns_candidates_in_order(geocoding_payload):
    client = GeocodingClient(transport=json_transport(geocoding_payload))
    candidates = await client.search("Seoul")

    assert [c.name for c in candidates] == ["Seoul", "Springfield", "Null Island"]
    assert candidates[0].region == "Seoul, South Korea"
    assert candidates[1].region == "Illinois, Sangamon, United States"
    assert candidates[2].region == ""
    assert candidates[1].latitude == 39.80172
    assert candidates[1].longitude == -89.64371


@pytest.mark.asyncio
async def test_search_request_parameters(geocoding_payload):
    requests = []
    transport = json_transport(geocoding_payload, requests=requests)
    client = GeocodingClient(base_url="https://geo.test/v1/search", transport=transport)
    await client.search("São Paulo", language="pt", limit=3)

    request = requests[0]
    assert request.method == "GET"
    assert request.url.host == "geo.test"
    assert request.url.params["name"] == "São Paulo"
    assert "S%C3%A3o" in str(request.url)
    assert request.url.params["count"] == "3"
    assert request.url.params["language"] == "pt"
    assert request.url.params["format"] == "json"


@pytest.mark.asyncio
async def test_search_blank_language_defaults_to_english(geocoding_payload):
    requests = []
    client = GeocodingClient(transport=json_transport(geocoding_payload, requests=requests))
    await client.search("Seoul", language="  ")
    assert requests[0].url.params["language"] == "en"
    assert requests[0].url.params["count"] == "6"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"generationtime_ms": 0.3}, {"results": []}])
async def test_search_without_results_is_empty(payload):
    client = GeocodingClient(transport=json_transport(payload))
    assert await client.search("Atlantis") == []


@pytest.mark.asyncio
async def test_search_record_missing_coordinates():
    client = GeocodingClient(transport=json_transport({"results": [{"name": "Seoul", "latitude": 37.5}]}))
    with pytest.raises(MalformedResponseError):
        await client.search("Seoul")


@pytest.mark.asyncio
async def test_search_error_status_with_reason():
    payload = {"error": True, "reason": "Parameter count must be between 1 and 100"}
    client = GeocodingClient(transport=json_transport(payload, 400))
    with pytest.raises(RemoteError) as exc_info:
        await client.search("Seoul", limit=500)
    assert exc_info.value.status_code == 400
    assert exc_info.value.reason == "Parameter count must be between 1 and 100"


@pytest.mark.asyncio
async def test_search_error_status_without_payload():
    transport = httpx.MockTransport(lambda request: httpx.Response(503, text="Service Unavailable"))
    client = GeocodingClient(transport=transport)
    with pytest.raises(RemoteError) as exc_info:
        await client.search("Seoul")
    assert exc_info.value.status_code == 503
    assert exc_info.value.reason is None


@pytest.mark.asyncio
async def test_search_invalid_json():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
    client = GeocodingClient(transport=transport)
    with pytest.raises(MalformedResponseError):
        await client.search("Seoul")


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [httpx.ConnectError, httpx.ReadTimeout])
async def test_search_network_failure(error):
    def handler(request):
        raise error("boom", request=request)

    client = GeocodingClient(transport=httpx.MockTransport(handler))
    with pytest.raises(NetworkError):
        await client.search("Seoul")


@pytest.mark.asyncio
async def test_search_keeps_explicit_zero_limit(geocoding_payload):
    requests = []
    client = GeocodingClient(transport=json_transport(geocoding_payload, requests=requests))
    await client.search("Seoul", limit=0)
    assert requests[0].url.params["count"] == "0"
