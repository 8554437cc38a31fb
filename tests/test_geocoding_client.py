import httpx

from agriconnect.config.settings import Settings
from agriconnect.core.cache import FileCache
from agriconnect.core.rate_limit import TokenBucketRateLimiter
from agriconnect.ingestion.geocoding_client import GeocodingClient, place_name


def _client(tmp_path, settings: Settings | None = None) -> GeocodingClient:
    settings = settings or Settings()
    cache = FileCache(tmp_path, enabled=True, default_ttl_seconds=60)
    return GeocodingClient(settings, cache, TokenBucketRateLimiter(max_per_minute=6000, burst=100))


def test_place_name_prefers_most_specific_component():
    payload = {"address": {"city": "Bengaluru", "village": "Hebbal", "state_district": "Bangalore Urban"}}
    assert place_name(payload) == "Hebbal"
    assert place_name({"address": {"county": "Anekal"}}) == "Anekal"
    assert place_name({"address": {}}) is None
    assert place_name("not a dict") is None


def test_reverse_uses_nominatim_and_caches(monkeypatch, tmp_path):
    calls: list[tuple[str, dict]] = []

    def fake_get_json(url, *, params=None, headers=None, timeout_seconds=10):
        calls.append((url, params))
        return {"address": {"town": "Doddaballapura"}}

    monkeypatch.setattr("agriconnect.ingestion.geocoding_client.get_json", fake_get_json)
    client = _client(tmp_path)

    assert client.reverse(13.29, 77.54) == "Doddaballapura"
    assert client.reverse(13.29, 77.54) == "Doddaballapura"
    assert len(calls) == 1
    url, params = calls[0]
    assert url.endswith("/reverse")
    assert params["lat"] == 13.29 and params["lon"] == 77.54 and params["format"] == "json"


def test_reverse_falls_back_to_coordinate_label_on_error(monkeypatch, tmp_path):
    def boom(*_args, **_kwargs):
        raise httpx.ConnectError("offline")

    monkeypatch.setattr("agriconnect.ingestion.geocoding_client.get_json", boom)
    assert _client(tmp_path).reverse(12.9716, 77.5946) == "12.97, 77.59"


def test_reverse_falls_back_when_response_has_no_place(monkeypatch, tmp_path):
    monkeypatch.setattr("agriconnect.ingestion.geocoding_client.get_json", lambda *_a, **_k: {"address": {}})
    assert _client(tmp_path).reverse(0.0, 0.0) == "0.00, 0.00"


def test_forward_parses_first_result(monkeypatch, tmp_path):
    monkeypatch.setattr(
        "agriconnect.ingestion.geocoding_client.get_json",
        lambda *_a, **_k: [{"lat": "13.0358", "lon": "77.5970", "display_name": "Hebbal"}],
    )
    point = _client(tmp_path).forward("Hebbal")
    assert point is not None
    assert (point.lat, point.lng) == (13.0358, 77.5970)


def test_forward_returns_none_for_empty_or_malformed_results(monkeypatch, tmp_path):
    monkeypatch.setattr("agriconnect.ingestion.geocoding_client.get_json", lambda *_a, **_k: [{"lat": "999", "lon": "0"}])
    client = _client(tmp_path)
    assert client.forward("Nowhere") is None
    assert client.forward("   ") is None


def test_disabled_geocoding_never_calls_out(monkeypatch, tmp_path):
    def unexpected(*_args, **_kwargs):
        raise AssertionError("network call while disabled")

    monkeypatch.setattr("agriconnect.ingestion.geocoding_client.get_json", unexpected)
    settings = Settings()
    settings = settings.model_copy(update={"geocoding": settings.geocoding.model_copy(update={"enabled": False})})
    client = _client(tmp_path, settings)
    assert client.reverse(20.5937, 78.9629) == "20.59, 78.96"
    assert client.forward("Pune") is None
