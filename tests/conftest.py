import json

import pytest

from core.icealert.settings import CloudSettings


class StubResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text
        self.content = text.encode()

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return json.loads(self.text)


class StubSession:
    """Answers requests from a table of (method, url suffix) -> response."""

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.calls = []
        self.closed = False

    def _answer(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        for (route_method, suffix), response in self.routes.items():
            if route_method == method and url.endswith(suffix):
                if isinstance(response, Exception):
                    raise response
                return response
        return StubResponse(404, {"detail": f"no route for {method} {url}"})

    def post(self, url, **kwargs):
        return self._answer("POST", url, kwargs)

    def request(self, method, url, **kwargs):
        return self._answer(method, url, kwargs)

    def close(self):
        self.closed = True


TOKEN_OK = StubResponse(200, {"access_token": "tok-123", "expires_in": 300, "token_type": "Bearer"})


@pytest.fixture
def settings():
    return CloudSettings(client_id="id-abc", client_secret="secret-xyz", api_base_url="https://cloud.test/iot")


@pytest.fixture
def stub_session():
    return StubSession({("POST", "/v1/clients/token"): TOKEN_OK})
