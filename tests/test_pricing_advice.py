import json

import requests

import utils.pricing_advice as pa


class FakeResponse:
    def __init__(self, body, status=200):
        self.body = body
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.body


def _gemini_body(advice):
    return {"candidates": [{"content": {"parts": [{"text": json.dumps(advice)}]}}]}


def test_advice_parsed_from_response(monkeypatch):
    calls = []

    def fake_post(url, params=None, json=None, timeout=None):
        calls.append((url, params, json, timeout))
        return FakeResponse(_gemini_body({
            "suggestedPrice": 28000,
            "marginPercentage": 57,
            "reasoning": "Bahan premium",
            "competitorAnalysis": "Sedikit di atas rata-rata",
        }))

    monkeypatch.setattr(pa.requests, "post", fake_post)
    advice = pa.get_pricing_recommendation("Nasi Goreng Kampung", "", 12000, api_key="k", timeout=5)
    assert advice.suggested_price == 28000
    assert advice.margin_percentage == 57
    url, params, payload, timeout = calls[0]
    assert url.endswith("gemini-2.5-flash:generateContent")
    assert params == {"key": "k"}
    assert timeout == 5
    assert "Standard ingredients" in payload["contents"][0]["parts"][0]["text"]
    assert payload["generationConfig"]["responseMimeType"] == "application/json"


def test_transport_error_falls_back(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(pa.requests, "post", boom)
    advice = pa.get_pricing_recommendation("Es Teh", "teh, gula", 2000, api_key="k")
    assert advice.suggested_price == 4000
    assert advice.margin_percentage == 50
    assert advice.competitor_analysis == "N/A"


def test_bad_payload_and_status_fall_back(monkeypatch):
    monkeypatch.setattr(pa.requests, "post", lambda *a, **k: FakeResponse({"candidates": []}))
    assert pa.get_pricing_recommendation("X", "", 1000, api_key="k").suggested_price == 2000

    monkeypatch.setattr(pa.requests, "post", lambda *a, **k: FakeResponse(_gemini_body("nope"), status=500))
    assert pa.get_pricing_recommendation("X", "", 1000, api_key="k").suggested_price == 2000


def test_missing_api_key_falls_back_without_calling(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    def never(*args, **kwargs):
        raise AssertionError("should not be called")

    monkeypatch.setattr(pa.requests, "post", never)
    advice = pa.get_pricing_recommendation("X", "", 1500)
    assert advice.to_dict()["suggestedPrice"] == 3000
