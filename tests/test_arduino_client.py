import pytest
import requests

from conftest import TOKEN_OK, StubResponse, StubSession
from core.icealert.arduino_client import ArduinoCloudClient
from core.icealert.exceptions import (
    AuthenticationError,
    CloudAPIError,
    CloudConnectionError,
    ConfigurationError,
)
from core.icealert.models import ConnectionStatus
from core.icealert.settings import CloudSettings


def test_requires_credentials():
    with pytest.raises(ConfigurationError):
        ArduinoCloudClient(CloudSettings())


def test_token_exchange_uses_client_credentials(settings, stub_session):
    client = ArduinoCloudClient(settings, session=stub_session)

    assert client.refresh_if_needed() == "tok-123"

    method, url, kwargs = stub_session.calls[0]
    assert (method, url) == ("POST", "https://cloud.test/iot/v1/clients/token")
    assert kwargs["data"] == {
        "grant_type": "client_credentials",
        "client_id": "id-abc",
        "client_secret": "secret-xyz",
        "audience": "https://api2.arduino.cc/iot",
    }
    assert kwargs["timeout"] == settings.request_timeout


def test_token_is_cached_until_invalidated(settings, stub_session):
    client = ArduinoCloudClient(settings, session=stub_session)

    client.refresh_if_needed()
    client.refresh_if_needed()
    assert len(stub_session.calls) == 1

    client.invalidate_token()
    client.refresh_if_needed()
    assert len(stub_session.calls) == 2


def test_token_near_expiry_is_refreshed(settings):
    session = StubSession({("POST", "/v1/clients/token"): StubResponse(200, {"access_token": "t", "expires_in": 10})})
    client = ArduinoCloudClient(settings, session=session)

    client.refresh_if_needed()
    # expires_in is within the refresh margin
    assert not client.token_valid
    client.refresh_if_needed()
    assert len(session.calls) == 2


def test_rejected_credentials(settings):
    session = StubSession({("POST", "/v1/clients/token"): StubResponse(401, {"error": "invalid_client"})})
    client = ArduinoCloudClient(settings, session=session)

    with pytest.raises(AuthenticationError) as exc_info:
        client.refresh_if_needed()
    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "invalid_client"


def test_token_response_without_token(settings):
    session = StubSession({("POST", "/v1/clients/token"): StubResponse(200, {"token_type": "Bearer"})})
    with pytest.raises(AuthenticationError) as exc_info:
        ArduinoCloudClient(settings, session=session).refresh_if_needed()
    assert exc_info.value.status_code == 500


def test_connection_failure(settings):
    session = StubSession({("POST", "/v1/clients/token"): requests.exceptions.ConnectionError("down")})
    with pytest.raises(CloudConnectionError):
        ArduinoCloudClient(settings, session=session).refresh_if_needed()


def test_list_devices(settings, stub_session):
    stub_session.routes[("GET", "/v2/things")] = StubResponse(200, [
        {"id": "t-1", "name": "Freezer A", "device_status": "ONLINE"},
        {"id": "t-2", "name": "Freezer B"},
    ])
    client = ArduinoCloudClient(settings, session=stub_session)

    devices = client.list_devices()

    assert [d.id for d in devices] == ["t-1", "t-2"]
    assert devices[0].connection_status == ConnectionStatus.ONLINE
    assert devices[1].connection_status == ConnectionStatus.OFFLINE
    method, url, kwargs = stub_session.calls[-1]
    assert kwargs["headers"]["Authorization"] == "Bearer tok-123"


def test_get_device_not_found_relays_status(settings, stub_session):
    stub_session.routes[("GET", "/v2/things/missing")] = StubResponse(404, {"detail": "thing not found"})
    client = ArduinoCloudClient(settings, session=stub_session)

    with pytest.raises(CloudAPIError) as exc_info:
        client.get_device("missing")
    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "thing not found"


def test_get_device_properties(settings, stub_session):
    records = [{"id": "p-1", "name": "cloudtemp", "last_value": -19}]
    stub_session.routes[("GET", "/v2/things/t-1/properties")] = StubResponse(200, records)

    assert ArduinoCloudClient(settings, session=stub_session).get_device_properties("t-1") == records


def test_update_property_publishes_value(settings, stub_session):
    stub_session.routes[("PUT", "/v2/things/t-1/properties/p-2/publish")] = StubResponse(200, text="")
    client = ArduinoCloudClient(settings, session=stub_session)

    client.update_property("t-1", "p-2", -22.0)

    method, url, kwargs = stub_session.calls[-1]
    assert method == "PUT"
    assert kwargs["json"] == {"value": -22.0}


def test_forward_token_endpoint_uses_stored_credentials(settings, stub_session):
    client = ArduinoCloudClient(settings, session=stub_session)
    stub_session.routes[("POST", "/v1/clients/token")] = TOKEN_OK

    status, payload = client.forward("POST", "clients/token", body=b"client_id=&client_secret=")

    assert status == 200
    assert payload["access_token"] == "tok-123"
    method, url, kwargs = stub_session.calls[-1]
    assert url == "https://cloud.test/iot/v1/clients/token"
    assert kwargs["data"]["client_secret"] == "secret-xyz"


def test_forward_keeps_caller_authorization(settings, stub_session):
    stub_session.routes[("GET", "/v2/things")] = StubResponse(200, [])
    client = ArduinoCloudClient(settings, session=stub_session)

    status, payload = client.forward("GET", "/things", authorization="Bearer browser-token")

    assert (status, payload) == (200, [])
    method, url, kwargs = stub_session.calls[-1]
    assert url == "https://cloud.test/iot/v2/things"
    assert kwargs["headers"]["Authorization"] == "Bearer browser-token"
    # No token exchange needed
    assert len(stub_session.calls) == 1


def test_forward_relays_error_status(settings, stub_session):
    stub_session.routes[("PUT", "/v2/things/t-1")] = StubResponse(400, {"detail": "bad body"})
    client = ArduinoCloudClient(settings, session=stub_session)

    status, payload = client.forward("PUT", "things/t-1", body=b'{"name": 1}')

    assert status == 400
    assert payload == {"detail": "bad body"}
    method, url, kwargs = stub_session.calls[-1]
    assert kwargs["data"] == b'{"name": 1}'
    assert kwargs["headers"]["Content-Type"] == "application/json"


def test_forward_non_json_error_keeps_vendor_status(settings, stub_session):
    stub_session.routes[("GET", "/v2/things")] = StubResponse(503, text="Service Unavailable")
    client = ArduinoCloudClient(settings, session=stub_session)

    assert client.forward("GET", "things") == (503, {"error": "Service Unavailable"})


def test_forward_non_json_success_returns_text(settings, stub_session):
    stub_session.routes[("GET", "/v2/things")] = StubResponse(200, text="pong")
    client = ArduinoCloudClient(settings, session=stub_session)

    assert client.forward("GET", "things") == (200, "pong")


def test_token_response_with_bad_expiry(settings):
    session = StubSession({
        ("POST", "/v1/clients/token"): StubResponse(200, {"access_token": "t", "expires_in": "soon"}),
    })
    client = ArduinoCloudClient(settings, session=session)

    with pytest.raises(AuthenticationError, match="Invalid token response") as exc_info:
        client.refresh_if_needed()
    assert exc_info.value.status_code == 500
    assert not client.token_valid
