import httpx

from agriconnect.config.settings import Settings
from agriconnect.ingestion.content_client import (
    DESCRIPTION_EMPTY,
    DESCRIPTION_FALLBACK,
    TIPS_FALLBACK,
    ContentClient,
)


def _settings(api_key: str | None = "test-key") -> Settings:
    settings = Settings()
    return settings.model_copy(update={"content": settings.content.model_copy(update={"api_key": api_key})})


def _text_response(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_job_description_posts_prompt_with_api_key(monkeypatch):
    seen: dict = {}

    def fake_post_json(url, *, payload, headers=None, timeout_seconds=10):
        seen.update(url=url, payload=payload, headers=headers)
        return _text_response("  Help harvest ripe paddy near Mandya.  ")

    monkeypatch.setattr("agriconnect.ingestion.content_client.post_json", fake_post_json)
    text = ContentClient(_settings()).job_description("Harvesting", "Mandya")

    assert text == "Help harvest ripe paddy near Mandya."
    assert seen["url"].endswith("/models/gemini-3-flash-preview:generateContent")
    assert seen["headers"] == {"x-goog-api-key": "test-key"}
    prompt = seen["payload"]["contents"][0]["parts"][0]["text"]
    assert "Work Type: Harvesting." in prompt
    assert "Location: Mandya." in prompt


def test_missing_api_key_returns_placeholders_without_calling_out(monkeypatch):
    def unexpected(*_args, **_kwargs):
        raise AssertionError("network call without API key")

    monkeypatch.setattr("agriconnect.ingestion.content_client.post_json", unexpected)
    client = ContentClient(_settings(api_key=None))

    assert client.configured is False
    assert client.job_description("Sowing", "Pune") == DESCRIPTION_FALLBACK
    assert client.maintenance_tips("Tractor") == TIPS_FALLBACK
    assert client.equipment_image("Tractor", "Swaraj 744") == Settings().content.fallback_image_uri


def test_http_errors_and_odd_payloads_fall_back(monkeypatch):
    def boom(*_args, **_kwargs):
        raise httpx.ReadTimeout("slow")

    monkeypatch.setattr("agriconnect.ingestion.content_client.post_json", boom)
    assert ContentClient(_settings()).maintenance_tips("Harvester") == TIPS_FALLBACK

    monkeypatch.setattr("agriconnect.ingestion.content_client.post_json", lambda *_a, **_k: {"candidates": []})
    assert ContentClient(_settings()).job_description("Sowing", "Pune") == DESCRIPTION_FALLBACK

    monkeypatch.setattr("agriconnect.ingestion.content_client.post_json", lambda *_a, **_k: _text_response("   "))
    assert ContentClient(_settings()).job_description("Sowing", "Pune") == DESCRIPTION_EMPTY


def test_equipment_image_returns_data_uri(monkeypatch):
    seen: dict = {}

    def fake_post_json(url, *, payload, headers=None, timeout_seconds=10):
        seen.update(url=url, payload=payload)
        return {
            "candidates": [
                {"content": {"parts": [{"text": "here you go"}, {"inlineData": {"mimeType": "image/jpeg", "data": "QUJD"}}]}}
            ]
        }

    monkeypatch.setattr("agriconnect.ingestion.content_client.post_json", fake_post_json)
    image = ContentClient(_settings()).equipment_image("Tractor", "Swaraj 744")

    assert image == "data:image/jpeg;base64,QUJD"
    assert seen["url"].endswith("/models/gemini-2.5-flash-image:generateContent")
    assert seen["payload"]["generationConfig"]["imageConfig"] == {"aspectRatio": "1:1"}


def test_equipment_image_without_inline_data_uses_stock_image(monkeypatch):
    monkeypatch.setattr("agriconnect.ingestion.content_client.post_json", lambda *_a, **_k: _text_response("no image"))
    assert ContentClient(_settings()).equipment_image("Drone", "DJI Agras") == Settings().content.fallback_image_uri
