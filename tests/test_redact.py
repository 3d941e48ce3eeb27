from __future__ import annotations

from pyhasync._redact import redact_for_log


def test_redact_for_log_hides_auth_frame_token() -> None:
    redacted = redact_for_log({"type": "auth", "access_token": "eyJhbGciOi"})

    assert redacted == {"type": "auth", "access_token": "<redacted>"}


def test_redact_for_log_recurses_into_nested_payloads() -> None:
    payload = {
        "id": 4,
        "type": "call_service",
        "service_data": {"Authorization": "Bearer abc", "brightness": 10},
        "items": [{"password": "pw"}, b"\x00\x01"],
    }

    redacted = redact_for_log(payload)
    assert redacted["service_data"] == {"Authorization": "<redacted>", "brightness": 10}
    assert redacted["items"] == [{"password": "<redacted>"}, "<bytes:2b>"]
    assert redacted["id"] == 4


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_masks_bearer_tokens_in_text() -> None:
    redacted = redact_for_log({"service_data": {"message": "use Bearer abc.def to log in"}, "error": {"code": "x"}})

    assert redacted["service_data"]["message"] == "use Bearer <redacted> to log in"
    assert redacted["error"] == {"code": "x"}
