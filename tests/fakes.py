"""Fake identity provider shared by the test suite."""

from __future__ import annotations

import json
from typing import Any, Callable
from urllib.parse import parse_qs

import httpx

PROVIDER = "https://idp.example.com"

DISCOVERY_DOCUMENT = {
    "issuer": PROVIDER,
    "authorization_endpoint": f"{PROVIDER}/oauth/authorize",
    "token_endpoint": f"{PROVIDER}/oauth/token",
    "userinfo_endpoint": f"{PROVIDER}/oauth/userinfo",
    "end_session_endpoint": f"{PROVIDER}/logout",
    "revocation_endpoint": f"{PROVIDER}/oauth/revoke",
    "claims_supported": ["sub", "email", "first_name", "last_name"],
}


class FakeIdentityProvider:
    """In-process stand-in for the provider, served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.discovery_calls = 0
        self.token_responses: list[httpx.Response] = []
        self.profiles: dict[str, dict[str, Any]] = {}
        self.webhook_userinfo = httpx.Response(200, json={})
        self.handlers: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def issue_tokens(self, access_token: str, refresh_token: str) -> None:
        self.token_responses.append(
            httpx.Response(
                200,
                json={
                    "access_token": access_token,
                    "refresh_token": refresh_token,
                    "token_type": "Bearer",
                    "expires_in": 7200,
                },
            )
        )

    def reject_grant(self) -> None:
        self.token_responses.append(
            httpx.Response(
                400,
                json={
                    "error": "invalid_grant",
                    "error_description": "The provided authorization grant is invalid.",
                },
            )
        )

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key in self.handlers:
            return self.handlers[key](request)

        if key == ("GET", "/.well-known/openid-configuration"):
            self.discovery_calls += 1
            return httpx.Response(200, json=DISCOVERY_DOCUMENT)
        if key == ("POST", "/oauth/token"):
            if not self.token_responses:
                return httpx.Response(400, json={"error": "invalid_grant"})
            return self.token_responses.pop(0)
        if key == ("GET", "/oauth/userinfo"):
            token = request.headers.get("Authorization", "").removeprefix("Bearer ")
            if token in self.profiles:
                return httpx.Response(200, json=self.profiles[token])
            return httpx.Response(401, json={"error": "invalid_token"})
        if key == ("POST", "/oauth/revoke"):
            return httpx.Response(200, json={})
        if key == ("DELETE", "/api/sign_out"):
            return httpx.Response(204)
        if key == ("GET", "/api/userinfo"):
            return self.webhook_userinfo
        return httpx.Response(404, json={"error": "not_found"})


def form_of(request: httpx.Request) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


def json_of(request: httpx.Request) -> Any:
    return json.loads(request.content)
