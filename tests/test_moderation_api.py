"""End-to-end tests for the modifier endpoints."""

import openai
import httpx

from conftest import StubOracle, install, threshold_settings
from telex_sentiment.api.schemas.sentiment import DetailedSentiment

WARNING_PREFIX = "⚠️ Potentially harmful message detected (sentiment: "


def _payload(message, **extra):
    body = {
        "message": message,
        "channel_id": "channel-1",
        "settings": threshold_settings(),
    }
    body.update(extra)
    return body


def test_positive_message_passes_through(client):
    install(StubOracle(0.9))
    message = "I absolutely love this product! It's amazing!"

    resp = client.post("/format-message", json=_payload(message))

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == message
    assert body["metadata"]["processed"] is True
    assert body["metadata"]["sentiment_score"] == 0.9
    assert body["metadata"]["flagged"] is False
    assert body["metadata"]["channel_id"] == "channel-1"
    assert isinstance(body["metadata"]["processing_time"], int)
    assert body["metadata"]["timestamp"]


def test_negative_message_is_prefixed(client):
    install(StubOracle(-0.8))
    message = "This is terrible! I hate everything about it!"

    resp = client.post("/format-message", json=_payload(message))

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == f"{WARNING_PREFIX}-0.80): {message}"
    assert body["metadata"]["flagged"] is True
    assert body["metadata"]["sentiment_score"] == -0.8


def test_score_equal_to_threshold_is_not_flagged(client):
    install(StubOracle(-0.5))

    resp = client.post("/format-message", json=_payload("Meh."))

    assert resp.json()["message"] == "Meh."
    assert resp.json()["metadata"]["flagged"] is False


def test_threshold_given_as_string(client):
    install(StubOracle(-0.3))

    resp = client.post(
        "/format-message",
        json=_payload("Not great.", settings=threshold_settings("-0.2")),
    )

    assert resp.json()["message"].startswith(f"{WARNING_PREFIX}-0.30): ")


def test_default_settings_used_when_none_supplied(client):
    install(StubOracle(-0.6))

    resp = client.post("/format-message", json={"message": "Awful", "channel_id": "c"})

    assert resp.status_code == 200
    assert resp.json()["message"] == f"{WARNING_PREFIX}-0.60): Awful"
    assert resp.json()["metadata"]["sensitivity_level"] == "Medium"


def test_missing_message_is_rejected(client):
    oracle = StubOracle(0.5)
    install(oracle)

    for body in ({"channel_id": "c"}, {"message": "", "channel_id": "c"}, {"message": "   ", "channel_id": "c"}):
        resp = client.post("/format-message", json=body)
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_MESSAGE"
        assert resp.json()["timestamp"]
    assert oracle.calls == 0


def test_non_string_message_is_rejected(client):
    install(StubOracle(0.5))

    resp = client.post("/format-message", json={"message": 42, "channel_id": "c"})

    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_MESSAGE"


def test_missing_channel_is_rejected_when_required(client):
    oracle = StubOracle(0.5)
    install(oracle, require_channel_id=True)

    resp = client.post("/format-message", json={"message": "hello"})

    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_CHANNEL"
    assert oracle.calls == 0


def test_missing_channel_allowed_when_optional(client):
    install(StubOracle(0.5), require_channel_id=False)

    resp = client.post("/format-message", json={"message": "hello"})

    assert resp.status_code == 200
    assert resp.json()["metadata"]["channel_id"] is None


def test_missing_target_url_is_rejected_when_required(client):
    install(StubOracle(0.5), require_target_url=True)

    resp = client.post("/format-message", json=_payload("hello"))

    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_TARGET_URL"


def test_malformed_target_url_is_rejected(client):
    install(StubOracle(0.5))

    resp = client.post("/format-message", json=_payload("hello", target_url="not a url"))

    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_TARGET_URL"


def test_target_url_is_echoed(client):
    install(StubOracle(0.5))
    url = "https://ping.telex.im/v1/webhooks/abc"

    resp = client.post("/format-message", json=_payload("hello", target_url=url))

    assert resp.status_code == 200
    assert resp.json()["metadata"]["target_url"] == url


def test_legacy_target_url_route(client):
    install(StubOracle(-0.9))

    resp = client.post("/target_url", json=_payload("Horrible"))

    assert resp.status_code == 200
    assert resp.json()["message"].startswith(WARNING_PREFIX)


def test_transport_error_under_lenient_policy_is_neutral(client):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    install(StubOracle(exc=openai.APIConnectionError(request=request)))
    message = "The weather is cloudy today."

    resp = client.post("/format-message", json=_payload(message))

    assert resp.status_code == 200
    assert resp.json()["message"] == message
    assert resp.json()["metadata"]["sentiment_score"] == 0


def test_provider_error_under_strict_policy_is_reported(client):
    install(StubOracle(exc=RuntimeError("rate limited"), policy="strict"))

    resp = client.post("/format-message", json=_payload("hello"))

    assert resp.status_code == 500
    body = resp.json()
    assert body["code"] == "API_ERROR"
    assert "rate limited" in body["details"]


def test_unexpected_error_is_processing_error(client):
    moderator = install(StubOracle(0.1))

    async def boom(*args, **kwargs):
        raise ValueError("kaboom")

    moderator.oracle.analyze = boom

    resp = client.post("/format-message", json=_payload("hello"))

    assert resp.status_code == 500
    assert resp.json()["code"] == "PROCESSING_ERROR"
    assert resp.json()["details"] == "kaboom"


def test_timeout_returns_original_message_by_default(client):
    install(StubOracle(-0.9, delay=0.3), budget_ms=50)

    resp = client.post("/format-message", json=_payload("Horrible"))

    assert resp.status_code == 200
    assert resp.json()["message"] == "Horrible"
    assert resp.json()["metadata"]["processed"] is False
    assert resp.json()["metadata"]["sentiment_score"] is None


def test_timeout_error_policy(client):
    install(StubOracle(-0.9, delay=0.3), budget_ms=50, timeout_policy="error")

    resp = client.post("/format-message", json=_payload("Horrible"))

    assert resp.status_code == 408
    assert resp.json()["code"] == "TIMEOUT_ERROR"


def test_detailed_sentiment_included_when_enabled(client):
    details = DetailedSentiment(sentiment="NEGATIVE", positive=0.05, negative=0.9, neutral=0.04, mixed=0.01)
    install(StubOracle(-0.9, details=details), include_detailed=True)

    resp = client.post("/format-message", json=_payload("Awful"))

    detailed = resp.json()["metadata"]["detailed_sentiment"]
    assert detailed["sentiment"] == "NEGATIVE"
    assert detailed["negative"] == 0.9


def test_identical_requests_give_identical_messages(client):
    install(StubOracle(-0.75))
    body = _payload("You are the worst.")

    first = client.post("/format-message", json=body).json()
    second = client.post("/format-message", json=body).json()

    assert first["message"] == second["message"]


def test_moderator_unavailable(client):
    resp = client.post("/format-message", json=_payload("hello"))

    assert resp.status_code == 503
    assert resp.json()["code"] == "PROCESSING_ERROR"


def test_analyze_sentiment_endpoint(client):
    install(StubOracle(0.4))

    resp = client.post("/analyze-sentiment", json={"message": "Nice day"})

    assert resp.status_code == 200
    assert resp.json()["sentiment_score"] == 0.4
    assert resp.json()["message"] == "Nice day"


def test_analyze_sentiment_requires_message(client):
    install(StubOracle(0.4))

    resp = client.post("/analyze-sentiment", json={})

    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_MESSAGE"


def test_unknown_setting_type_is_accepted(client):
    install(StubOracle(0.9))
    settings = threshold_settings() + [{"label": "Tone", "type": "radio", "default": "calm"}]

    resp = client.post("/format-message", json=_payload("Lovely day", settings=settings))

    assert resp.status_code == 200
    assert resp.json()["message"] == "Lovely day"


def test_multi_select_setting_with_list_default(client):
    install(StubOracle(0.9))
    settings = threshold_settings() + [
        {"label": "Channels", "type": "multi-select", "default": ["general", "random"]}
    ]

    resp = client.post("/format-message", json=_payload("Lovely day", settings=settings))

    assert resp.status_code == 200
    assert resp.json()["metadata"]["processed"] is True


def test_non_string_metadata_fields_are_accepted(client):
    install(StubOracle(0.9))
    metadata = {"user_id": 42, "request_id": 7, "trace": {"span": 1}}

    resp = client.post("/format-message", json=_payload("Lovely day", metadata=metadata))

    assert resp.status_code == 200
    assert resp.json()["message"] == "Lovely day"
