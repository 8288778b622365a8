import io
import json
from typing import Any
from urllib.error import HTTPError, URLError

import pytest

from config import AppConfig
from notifications.push import PushDeliveryError, PushNotification, PushNotificationService


class _Response(io.BytesIO):
    def __enter__(self) -> "_Response":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class _Opener:
    def __init__(self, body: dict[str, Any] | None = None, error: Exception | None = None) -> None:
        self.body = body or {"data": []}
        self.error = error
        self.requests: list[Any] = []
        self.timeouts: list[float] = []

    def __call__(self, request: Any, timeout: float) -> _Response:
        self.requests.append(request)
        self.timeouts.append(timeout)
        if self.error is not None:
            raise self.error
        return _Response(json.dumps(self.body).encode("utf-8"))


def _config(**overrides: Any) -> AppConfig:
    values = {"push_gateway_url": "https://push.example/send", "push_access_token": "secret", "push_timeout_seconds": 8}
    values.update(overrides)
    return AppConfig(**values)


NOTIFICATION = PushNotification(title="Aria", body="hi", data={"type": "nudge"})


def test_posts_one_message_per_device() -> None:
    opener = _Opener({"data": [{"status": "ok"}, {"status": "ok"}]})
    service = PushNotificationService(_config(), token_lookup=lambda user: ["tok-a", "tok-b"], opener=opener)

    assert service.send_to_user("u1", NOTIFICATION) == 2

    request = opener.requests[0]
    payload = json.loads(request.data.decode("utf-8"))
    assert request.full_url == "https://push.example/send"
    assert request.get_header("Authorization") == "Bearer secret"
    assert [item["to"] for item in payload] == ["tok-a", "tok-b"]
    assert payload[0]["title"] == "Aria" and payload[0]["data"] == {"type": "nudge"}
    assert opener.timeouts == [8]


def test_no_tokens_means_no_request() -> None:
    opener = _Opener()
    service = PushNotificationService(_config(), token_lookup=lambda user: [], opener=opener)

    assert service.send_to_user("u1", NOTIFICATION) == 0
    assert opener.requests == []


def test_unregistered_devices_are_revoked() -> None:
    revoked: list[str] = []
    opener = _Opener(
        {
            "data": [
                {"status": "ok"},
                {"status": "error", "message": "gone", "details": {"error": "DeviceNotRegistered"}},
            ]
        }
    )
    service = PushNotificationService(
        _config(push_access_token=None),
        token_lookup=lambda user: ["tok-a", "tok-b"],
        token_revoker=revoked.append,
        opener=opener,
    )

    assert service.send_to_user("u1", NOTIFICATION) == 1
    assert revoked == ["tok-b"]
    assert opener.requests[0].get_header("Authorization") is None


@pytest.mark.parametrize(
    "error",
    [
        HTTPError("https://push.example/send", 503, "unavailable", {}, None),  # type: ignore[arg-type]
        URLError("connection refused"),
    ],
)
def test_transport_errors_raise_delivery_error(error: Exception) -> None:
    service = PushNotificationService(_config(), token_lookup=lambda user: ["tok"], opener=_Opener(error=error))

    with pytest.raises(PushDeliveryError):
        service.send_to_user("u1", NOTIFICATION)
