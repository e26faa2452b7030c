"""End-to-end tests for the HTTP API.

Run the FastAPI app in-process over httpx.ASGITransport against a
throwaway SQLite database.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta

import httpx
import pytest

from colater_mcp.config import Settings
from colater_mcp.errors import UpstreamRateLimitedError, UpstreamUnavailableError
from colater_mcp.main import create_app, retry_after_headers
from colater_mcp.services.key_codec import generate_key
from tests.fakes import (
    FakeIdentityVerifier,
    FakeVoiceModel,
    HangingSessionFactory,
    add_records,
    make_brand,
    make_logo,
)

OWNER = {"Authorization": "Bearer owner-token"}
OTHER = {"Authorization": "Bearer other-token"}
DOCS = "https://docs.example.com/errors"


@pytest.fixture
async def app(session_factory):
    app = create_app(
        Settings(docs_base_url=DOCS),
        session_factory=session_factory,
        voice_model=FakeVoiceModel(),
        identity_verifier=FakeIdentityVerifier(
            {"owner-token": "user-1", "other-token": "user-2"}
        ),
    )
    await add_records(
        session_factory,
        make_brand("brand-1"),
        make_brand("brand-2", latest_name="Globex"),
        make_logo("logo-1", palette=["#112233"]),
    )
    yield app
    await app.state.authenticator.wait_for_usage_updates()


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def _create_key(client, brand_id="brand-1", **body) -> dict:
    body = {"name": "CI", **body}
    response = await client.post(f"/v1/brands/{brand_id}/api-keys", json=body, headers=OWNER)
    assert response.status_code == 201, response.text
    return response.json()


async def _call(client, key, name, arguments=None):
    return await client.post(
        "/v1/mcp/tools/call",
        json={"name": name, "arguments": arguments or {}},
        headers={"Authorization": f"Bearer {key}"},
    )


def _payload(response):
    assert response.status_code == 200, response.text
    return json.loads(response.json()["content"][0]["text"])


class TestPublicEndpoints:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_tools_list_needs_no_auth(self, client):
        response = await client.get("/v1/mcp/tools/list")

        assert response.status_code == 200
        tools = response.json()["tools"]
        assert [t["name"] for t in tools] == [
            "get_brand_context",
            "validate_brand_voice",
            "get_brand_assets",
            "list_brands",
        ]
        assert "inputSchema" in tools[0]


class TestToolAuthentication:
    @pytest.mark.asyncio
    async def test_missing_credential(self, client):
        response = await client.post("/v1/mcp/tools/call", json={"name": "list_brands"})

        assert response.status_code == 401
        error = response.json()["error"]
        assert error["code"] == "credential_missing"
        assert "documentation" not in error

    @pytest.mark.asyncio
    async def test_malformed_brand_key(self, client):
        response = await _call(client, "colater_sk_brand_brand-1_short", "list_brands")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "credential_malformed"

    @pytest.mark.asyncio
    async def test_unknown_key(self, client):
        response = await _call(client, "colater_sk_brand_brand-1_" + "f" * 32, "list_brands")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "credential_not_found"

    @pytest.mark.asyncio
    async def test_bad_legacy_token(self, client):
        response = await _call(client, "not-a-real-token", "list_brands")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid API key or token"


class TestBrandKeyToolCalls:
    @pytest.mark.asyncio
    async def test_team_key_reads_own_brand(self, client):
        created = await _create_key(client, permissionType="team")

        payload = _payload(await _call(client, created["key"], "get_brand_context"))

        assert payload["brand"]["id"] == "brand-1"
        assert payload["visual"]["colors"]["palette"][0]["hex"] == "#112233"

    @pytest.mark.asyncio
    async def test_team_key_validates_voice(self, client):
        created = await _create_key(client, permissionType="team")

        payload = _payload(
            await _call(client, created["key"], "validate_brand_voice", {"text": "Hello"})
        )

        assert payload["onBrand"] is True
        assert payload["analysis"]["toneMatch"] == 0.9

    @pytest.mark.asyncio
    async def test_developer_key_cannot_validate(self, client):
        created = await _create_key(client, permissionType="developer")

        payload = _payload(
            await _call(client, created["key"], "validate_brand_voice", {"text": "Hello"})
        )

        assert payload["error"]["code"] == "insufficient_permissions"

    @pytest.mark.asyncio
    async def test_key_is_confined_to_its_brand(self, client):
        created = await _create_key(client)

        payload = _payload(
            await _call(client, created["key"], "get_brand_context", {"brandId": "brand-2"})
        )

        assert payload["error"]["code"] == "insufficient_permissions"

    @pytest.mark.asyncio
    async def test_assets(self, client):
        created = await _create_key(client)

        payload = _payload(
            await _call(
                client,
                created["key"],
                "get_brand_assets",
                {"assetTypes": ["colors", "fonts"], "format": {"colors": "tailwind"}},
            )
        )

        assert payload["colors"]["tailwind"] == {"brand-primary": "#112233"}
        assert payload["fonts"]["primary"]["name"] == "Open Sans"

    @pytest.mark.asyncio
    async def test_validation_failure_is_an_envelope(self, client):
        created = await _create_key(client)

        response = await _call(client, created["key"], "get_brand_assets", {"assetTypes": []})

        assert response.json()["isError"] is True
        assert _payload(response)["error"]["code"] == "validation_failed"

    @pytest.mark.asyncio
    async def test_usage_is_recorded(self, app, client):
        created = await _create_key(client)

        await _call(client, created["key"], "get_brand_context")
        await _call(client, created["key"], "get_brand_context")
        await app.state.authenticator.wait_for_usage_updates()

        keys = (await client.get("/v1/brands/brand-1/api-keys", headers=OWNER)).json()["apiKeys"]
        assert keys[0]["usageCount"] == 2
        assert keys[0]["lastUsedAt"] is not None


class TestLegacyToolCalls:
    @pytest.mark.asyncio
    async def test_list_brands_paginates(self, client, session_factory):
        base = datetime(2025, 1, 1)
        await add_records(
            session_factory,
            *[
                make_brand(f"bulk-{i:02d}", updated_at=base + timedelta(days=i))
                for i in range(53)
            ],
        )

        payload = _payload(await _call(client, "owner-token", "list_brands"))

        assert len(payload["brands"]) == 50
        assert payload["pagination"] == {"total": 55, "limit": 50, "offset": 0, "hasMore": True}

    @pytest.mark.asyncio
    async def test_other_users_brand_is_not_found(self, client):
        payload = _payload(
            await _call(client, "other-token", "get_brand_context", {"brandId": "brand-1"})
        )

        assert payload["error"]["code"] == "brand_not_found"

    @pytest.mark.asyncio
    async def test_legacy_caller_must_name_a_brand(self, client):
        payload = _payload(await _call(client, "owner-token", "get_brand_context"))

        assert payload["error"]["code"] == "brand_not_specified"


class TestKeyManagement:
    @pytest.mark.asyncio
    async def test_create_returns_plaintext_once(self, client):
        created = await _create_key(client, name="Figma plugin", expiresInDays=30)

        assert created["key"].startswith("colater_sk_brand_brand-1_")
        assert created["keyPrefix"] == created["key"][:20] + "..."
        assert created["permissions"] == {
            "read": True,
            "validate": True,
            "generate": False,
            "modify": False,
        }
        assert created["expiresAt"] is not None
        assert "keyHash" not in created

        listed = (await client.get("/v1/brands/brand-1/api-keys", headers=OWNER)).json()
        assert listed["apiKeys"][0]["id"] == created["id"]
        assert "key" not in listed["apiKeys"][0]

    @pytest.mark.asyncio
    async def test_create_rejects_bad_body(self, client):
        response = await client.post(
            "/v1/brands/brand-1/api-keys",
            json={"name": "", "expiresInDays": 400},
            headers=OWNER,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_failed"

    @pytest.mark.asyncio
    async def test_revoke_blocks_the_key(self, client):
        created = await _create_key(client)

        response = await client.delete(
            f"/v1/brands/brand-1/api-keys/{created['id']}", headers=OWNER
        )
        assert response.json() == {"success": True, "message": "API key revoked successfully"}

        denied = await _call(client, created["key"], "get_brand_context")
        assert denied.status_code == 401
        assert denied.json()["error"]["code"] == "credential_revoked"

        active = (await client.get("/v1/brands/brand-1/api-keys", headers=OWNER)).json()
        assert active["apiKeys"] == []
        everything = (
            await client.get(
                "/v1/brands/brand-1/api-keys", params={"includeRevoked": "true"}, headers=OWNER
            )
        ).json()
        assert everything["apiKeys"][0]["revokedAt"] is not None

    @pytest.mark.asyncio
    async def test_revoke_twice_succeeds(self, client):
        created = await _create_key(client)
        url = f"/v1/brands/brand-1/api-keys/{created['id']}"

        assert (await client.delete(url, headers=OWNER)).status_code == 200
        assert (await client.delete(url, headers=OWNER)).status_code == 200

    @pytest.mark.asyncio
    async def test_permanent_delete(self, client):
        created = await _create_key(client)

        response = await client.delete(
            f"/v1/brands/brand-1/api-keys/{created['id']}",
            params={"permanent": "true"},
            headers=OWNER,
        )
        assert response.json()["message"] == "API key deleted successfully"

        denied = await _call(client, created["key"], "get_brand_context")
        assert denied.json()["error"]["code"] == "credential_not_found"

    @pytest.mark.asyncio
    async def test_unknown_key_id(self, client):
        response = await client.delete("/v1/brands/brand-1/api-keys/missing", headers=OWNER)

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "credential_not_found"
        assert error["documentation"] == f"{DOCS}#credential_not_found"

    @pytest.mark.asyncio
    async def test_requires_credential(self, client):
        response = await client.get("/v1/brands/brand-1/api-keys")

        assert response.status_code == 401
        assert response.json()["error"]["documentation"] == f"{DOCS}#credential_missing"

    @pytest.mark.asyncio
    async def test_api_key_cannot_manage_keys(self, client):
        created = await _create_key(client)

        response = await client.get(
            "/v1/brands/brand-1/api-keys",
            headers={"Authorization": f"Bearer {created['key']}"},
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "insufficient_permissions"

    @pytest.mark.asyncio
    async def test_other_users_brand(self, client):
        response = await client.post(
            "/v1/brands/brand-1/api-keys", json={"name": "CI"}, headers=OTHER
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "brand_not_found"


class TestStoreTimeouts:
    """A data store that never answers yields 503 instead of a hung request."""

    @pytest.fixture
    async def hanging_client(self):
        app = create_app(
            Settings(docs_base_url=DOCS, upstream_timeout=0.05),
            session_factory=HangingSessionFactory(),
            voice_model=FakeVoiceModel(),
            identity_verifier=FakeIdentityVerifier({"owner-token": "user-1"}),
        )
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield client

    @pytest.mark.asyncio
    async def test_tool_call_with_brand_key(self, hanging_client):
        response = await asyncio.wait_for(
            _call(hanging_client, generate_key("brand-1"), "list_brands"), 2
        )

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "upstream_unavailable"
        assert error["retryable"] is True

    @pytest.mark.asyncio
    async def test_key_listing(self, hanging_client):
        response = await asyncio.wait_for(
            hanging_client.get("/v1/brands/brand-1/api-keys", headers=OWNER), 2
        )

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "upstream_unavailable"


class TestRetryAfter:
    @pytest.mark.parametrize(
        "retry_after, expected",
        [(0.5, "1"), (1, "1"), (1.2, "2"), (30.0, "30")],
    )
    def test_rounds_up(self, retry_after, expected):
        error = UpstreamRateLimitedError(retry_after=retry_after)

        assert retry_after_headers(error) == {"Retry-After": expected}

    def test_absent_without_retry_after(self):
        assert retry_after_headers(UpstreamRateLimitedError()) is None
        assert retry_after_headers(UpstreamUnavailableError()) is None

    @pytest.mark.asyncio
    async def test_sub_second_wait_is_not_advertised_as_zero(self, app, client):
        @app.get("/limited")
        async def limited():
            raise UpstreamRateLimitedError(retry_after=0.5)

        response = await client.get("/limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "1"
