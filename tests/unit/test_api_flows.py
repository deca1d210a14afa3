"""End-to-end API tests: accounts, delegation and data through HTTP.

Every test runs against both storage engines via the ``client`` fixture.
"""

import base64
from urllib.parse import parse_qs, urlsplit

from httpx import AsyncClient

from tests.conftest import TEST_PASSWORD, TEST_REDIRECT_URI, login, register_and_login

_TOKEN_PARAM = "omh_auth_token"


async def _register_app(client: AsyncClient, developer_token: str) -> dict:
    response = await client.post(
        "/v1/third_parties",
        params={_TOKEN_PARAM: developer_token},
        json={
            "name": "app1",
            "description": "Charts your weight",
            "redirect_uri": TEST_REDIRECT_URI,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def _request_code(client: AsyncClient, client_id: str, scope: str = "weight") -> str:
    response = await client.get(
        "/v1/oauth/authorize",
        params={
            "client_id": client_id,
            "scope": scope,
            "response_type": "code",
            "state": "xyz",
        },
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]["code"]


async def _decide(client: AsyncClient, owner_token: str, code: str, granted: bool):
    return await client.post(
        "/v1/oauth/authorization",
        data={_TOKEN_PARAM: owner_token, "code": code, "granted": str(granted).lower()},
    )


async def _exchange(client: AsyncClient, app: dict, code: str):
    return await client.post(
        "/v1/oauth/token",
        data={
            "grant_type": "authorization_code",
            "code": code,
            "client_id": app["client_id"],
            "client_secret": app["client_secret"],
        },
    )


class TestAccountFlow:
    """Registration, login and activation over HTTP."""

    async def test_login_sets_cookie_and_returns_token(self, client):
        await register_and_login(client, "alice")
        response = await client.post(
            "/v1/auth", data={"username": "alice", "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        token = response.json()[_TOKEN_PARAM]
        assert response.cookies.get(_TOKEN_PARAM) == token
        assert "httponly" in response.headers["set-cookie"].lower()

    async def test_wrong_password_is_401(self, client):
        await register_and_login(client, "alice")
        response = await client.post(
            "/v1/auth", data={"username": "alice", "password": "wrong"}
        )
        assert response.status_code == 401
        assert response.json()["error"]["message"] == (
            "The username and/or password is incorrect."
        )

    async def test_duplicate_registration_is_409(self, client):
        await register_and_login(client, "alice")
        response = await client.post(
            "/v1/users",
            json={"username": "alice", "password": "x", "email": "a@example.com"},
        )
        assert response.status_code == 409

    async def test_invalid_registration_is_400(self, client):
        response = await client.post(
            "/v1/users",
            json={"username": "alice", "password": "x", "email": "not-an-email"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_activation(self, client, seeded_storage):
        await register_and_login(client, "alice")
        user = await seeded_storage.users.get_user("alice")

        response = await client.get(
            "/v1/users/activation", params={"registration_id": user.registration_key}
        )
        assert response.status_code == 200
        assert response.json()["data"]["username"] == "alice"

        again = await client.get(
            "/v1/users/activation", params={"registration_id": user.registration_key}
        )
        assert again.status_code == 409

    async def test_unknown_activation_key_is_404(self, client):
        response = await client.get(
            "/v1/users/activation", params={"registration_id": "missing"}
        )
        assert response.status_code == 404

    async def test_conflicting_tokens_are_401(self, client):
        alice = await register_and_login(client, "alice")
        bob = await register_and_login(client, "bob")
        response = await client.get(
            "/v1/weight/1/data",
            params={_TOKEN_PARAM: alice},
            headers={"Cookie": f"{_TOKEN_PARAM}={bob}"},
        )
        assert response.status_code == 401

    async def test_cookie_authenticates(self, client):
        await register_and_login(client, "alice")
        await client.post("/v1/auth", data={"username": "alice", "password": TEST_PASSWORD})
        response = await client.get("/v1/weight/1/data")
        assert response.status_code == 200


class TestDataFlow:
    """Writing and reading data points over HTTP."""

    async def test_alice_writes_and_reads_back(self, client):
        """alice writes one empty weight point and reads it back with owner omitted."""
        token = await register_and_login(client, "alice")

        write = await client.post(
            "/v1/weight/1/data", params={_TOKEN_PARAM: token}, json=[{"data": {}}]
        )
        assert write.status_code == 204
        assert write.content == b""

        read = await client.get("/v1/weight/1/data", params={_TOKEN_PARAM: token})
        assert read.status_code == 200
        body = read.json()
        assert body["metadata"]["count"] == 1
        assert len(body["data"]) == 1
        assert body["data"][0]["owner"] == "alice"
        assert body["data"][0]["data"] == {}

    async def test_write_requires_authentication(self, client):
        response = await client.post("/v1/weight/1/data", json=[{"data": {}}])
        assert response.status_code == 401

    async def test_write_unknown_schema_is_404(self, client):
        token = await register_and_login(client, "alice")
        response = await client.post(
            "/v1/weight/7/data", params={_TOKEN_PARAM: token}, json=[{"data": {}}]
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NO_SUCH_SCHEMA"

    async def test_invalid_point_is_400_and_nothing_stored(self, client):
        token = await register_and_login(client, "alice")
        response = await client.post(
            "/v1/weight/1/data",
            params={_TOKEN_PARAM: token},
            json=[{"data": {"unit": "kg"}}, {"data": {"unit": "stone"}}],
        )
        assert response.status_code == 400
        assert {"index": 1} in response.json()["error"]["details"]

        read = await client.get("/v1/weight/1/data", params={_TOKEN_PARAM: token})
        assert read.json()["metadata"]["count"] == 0

    async def test_paging_links(self, client):
        token = await register_and_login(client, "alice")
        await client.post(
            "/v1/weight/1/data",
            params={_TOKEN_PARAM: token},
            json=[{"data": {"value": value}} for value in range(3)],
        )
        response = await client.get(
            "/v1/weight/1/data",
            params={_TOKEN_PARAM: token, "num_to_skip": 0, "num_to_return": 2},
        )
        metadata = response.json()["metadata"]
        assert metadata["count"] == 3
        assert metadata["previous"] is None
        assert "num_to_skip=2" in metadata["next"]
        assert _TOKEN_PARAM not in metadata["next"]

    async def test_page_size_above_cap_is_400(self, client):
        token = await register_and_login(client, "alice")
        response = await client.get(
            "/v1/weight/1/data", params={_TOKEN_PARAM: token, "num_to_return": 101}
        )
        assert response.status_code == 400

    async def test_column_list(self, client):
        token = await register_and_login(client, "alice")
        await client.post(
            "/v1/weight/1/data",
            params={_TOKEN_PARAM: token},
            json=[{"data": {"value": 70, "unit": "kg"}}],
        )
        response = await client.get(
            "/v1/weight/1/data", params={_TOKEN_PARAM: token, "column_list": "unit"}
        )
        assert response.json()["data"][0]["data"] == {"unit": "kg"}

    async def test_repeated_and_comma_separated_columns(self, client):
        token = await register_and_login(client, "alice")
        await client.post(
            "/v1/weight/1/data",
            params={_TOKEN_PARAM: token},
            json=[{"data": {"value": 70, "unit": "kg", "note": "am"}}],
        )
        repeated = await client.get(
            "/v1/weight/1/data",
            params=[
                (_TOKEN_PARAM, token),
                ("column_list", "value"),
                ("column_list", "unit"),
            ],
        )
        assert repeated.json()["data"][0]["data"] == {"value": 70, "unit": "kg"}

        mixed = await client.get(
            "/v1/weight/1/data",
            params=[
                (_TOKEN_PARAM, token),
                ("column_list", "value,note"),
                ("column_list", "unit"),
            ],
        )
        assert mixed.json()["data"][0]["data"] == {
            "value": 70,
            "unit": "kg",
            "note": "am",
        }

    async def test_operator_column_segment_is_400(self, client):
        token = await register_and_login(client, "alice")
        response = await client.get(
            "/v1/weight/1/data",
            params={_TOKEN_PARAM: token, "column_list": "value.$where"},
        )
        assert response.status_code == 400


class TestDelegationFlow:
    """Third-party authorization over HTTP."""

    async def test_denied_code_cannot_be_exchanged(self, client):
        """app1 asks for weight; alice denies; minting a token fails."""
        developer = await register_and_login(client, "developer")
        alice = await register_and_login(client, "alice")
        app = await _register_app(client, developer)
        code = await _request_code(client, app["client_id"])

        decision = await _decide(client, alice, code, granted=False)
        assert decision.status_code == 200
        redirect = urlsplit(decision.json()["data"]["redirect_uri"])
        assert parse_qs(redirect.query) == {"error": ["access_denied"], "state": ["xyz"]}

        response = await _exchange(client, app, code)
        assert response.status_code == 400
        assert response.json()["error"] == "access_denied"

    async def test_granted_code_gives_scoped_read_access(self, client):
        developer = await register_and_login(client, "developer")
        alice = await register_and_login(client, "alice")
        await client.post(
            "/v1/weight/1/data", params={_TOKEN_PARAM: alice}, json=[{"data": {"value": 70}}]
        )
        app = await _register_app(client, developer)
        code = await _request_code(client, app["client_id"])
        decision = await _decide(client, alice, code, granted=True)
        assert parse_qs(urlsplit(decision.json()["data"]["redirect_uri"]).query) == {
            "code": [code],
            "state": ["xyz"],
        }

        exchange = await _exchange(client, app, code)
        assert exchange.status_code == 200
        token = exchange.json()
        assert token["token_type"] == "Bearer"
        assert 0 < token["expires_in"] <= 3600
        assert exchange.headers["cache-control"] == "no-store"

        bearer = {"Authorization": f"Bearer {token['access_token']}"}
        read = await client.get("/v1/weight/1/data", headers=bearer)
        assert read.status_code == 200
        assert read.json()["metadata"]["count"] == 1

        out_of_scope = await client.get("/v1/mood/1/data", headers=bearer)
        assert out_of_scope.status_code == 403

        wrong_owner = await client.get(
            "/v1/weight/1/data", params={"owner": "developer"}, headers=bearer
        )
        assert wrong_owner.status_code == 403

    async def test_second_decision_is_409(self, client):
        developer = await register_and_login(client, "developer")
        alice = await register_and_login(client, "alice")
        app = await _register_app(client, developer)
        code = await _request_code(client, app["client_id"])
        await _decide(client, alice, code, granted=True)
        response = await _decide(client, alice, code, granted=False)
        assert response.status_code == 409

    async def test_refresh_with_basic_client_auth(self, client):
        developer = await register_and_login(client, "developer")
        alice = await register_and_login(client, "alice")
        app = await _register_app(client, developer)
        code = await _request_code(client, app["client_id"])
        await _decide(client, alice, code, granted=True)
        original = (await _exchange(client, app, code)).json()

        credentials = base64.b64encode(
            f"{app['client_id']}:{app['client_secret']}".encode()
        ).decode()
        response = await client.post(
            "/v1/oauth/token",
            data={"grant_type": "refresh_token", "refresh_token": original["refresh_token"]},
            headers={"Authorization": f"Basic {credentials}"},
        )
        assert response.status_code == 200
        assert response.json()["access_token"] != original["access_token"]

    async def test_bad_client_secret_is_401(self, client):
        developer = await register_and_login(client, "developer")
        app = await _register_app(client, developer)
        response = await client.post(
            "/v1/oauth/token",
            data={
                "grant_type": "authorization_code",
                "code": "whatever",
                "client_id": app["client_id"],
                "client_secret": "wrong",
            },
        )
        assert response.status_code == 401
        assert response.json()["error"] == "invalid_client"

    async def test_unsupported_grant_type(self, client):
        response = await client.post("/v1/oauth/token", data={"grant_type": "password"})
        assert response.status_code == 400
        assert response.json()["error"] == "unsupported_grant_type"

    async def test_authorize_unknown_scope_is_400(self, client):
        developer = await register_and_login(client, "developer")
        app = await _register_app(client, developer)
        response = await client.get(
            "/v1/oauth/authorize",
            params={"client_id": app["client_id"], "scope": "weight nope", "response_type": "code"},
        )
        assert response.status_code == 400

    async def test_authorize_unknown_client_is_404(self, client):
        response = await client.get(
            "/v1/oauth/authorize",
            params={"client_id": "missing", "scope": "weight", "response_type": "code"},
        )
        assert response.status_code == 404

    async def test_describe_authorization_requires_login(self, client):
        developer = await register_and_login(client, "developer")
        app = await _register_app(client, developer)
        code = await _request_code(client, app["client_id"])

        anonymous = await client.get("/v1/oauth/authorization", params={"code": code})
        assert anonymous.status_code == 401

        alice = await register_and_login(client, "alice")
        response = await client.get(
            "/v1/oauth/authorization", params={"code": code, _TOKEN_PARAM: alice}
        )
        assert response.status_code == 200
        assert response.json()["data"]["scopes"] == ["weight"]
        assert response.json()["data"]["name"] == "app1"

    async def test_malformed_bearer_header_is_403(self, client):
        response = await client.get(
            "/v1/weight/1/data", headers={"Authorization": "Token abc"}
        )
        assert response.status_code == 403

    async def test_unknown_bearer_token_is_403(self, client):
        response = await client.get(
            "/v1/weight/1/data", headers={"Authorization": "Bearer missing"}
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "INVALID_AUTHORIZATION"

    async def test_third_party_registration_requires_login(self, client):
        response = await client.post(
            "/v1/third_parties",
            json={"name": "app1", "description": "d", "redirect_uri": TEST_REDIRECT_URI},
        )
        assert response.status_code == 401


class TestLoginRateLimit:
    """The login endpoint is rate limited per client address."""

    async def test_login_rate_limited(self, client, monkeypatch):
        from dsu.core.config import settings
        from dsu.core.rate_limiting import limiter

        monkeypatch.setattr(settings, "rate_limit_auth", "2/minute")
        limiter.reset()
        limiter.enabled = True

        statuses = []
        for _ in range(3):
            response = await client.post(
                "/v1/auth", data={"username": "nobody", "password": "x"}
            )
            statuses.append(response.status_code)
        limiter.reset()

        assert statuses == [401, 401, 429]
        assert response.json()["error"]["code"] == "RATE_LIMITED"
        assert response.headers["retry-after"] == "60"


async def test_login_helper_clears_cookie(client):
    await register_and_login(client, "alice")
    await login(client, "alice")
    assert not client.cookies


class TestSchemaRegistry:
    """Public registry reads."""

    async def test_list_schema_ids(self, client):
        response = await client.get("/v1")
        assert response.status_code == 200
        body = response.json()
        assert body["data"] == ["blood_pressure", "mood", "weight"]
        assert body["metadata"]["count"] == 3

    async def test_list_schema_ids_paged(self, client):
        response = await client.get("/v1", params={"num_to_skip": 1, "num_to_return": 1})
        body = response.json()
        assert body["data"] == ["mood"]
        assert "num_to_skip=0" in body["metadata"]["previous"]
        assert "num_to_skip=2" in body["metadata"]["next"]

    async def test_list_versions(self, client):
        response = await client.get("/v1/weight")
        assert response.status_code == 200
        assert response.json()["data"] == [1]

    async def test_unknown_schema_id_is_404(self, client):
        response = await client.get("/v1/no_such_schema")
        assert response.status_code == 404

    async def test_get_schema(self, client):
        response = await client.get("/v1/weight/1")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["schema_id"] == "weight"
        assert data["schema_version"] == 1
        assert isinstance(data["schema"], dict)

    async def test_unknown_version_is_404(self, client):
        response = await client.get("/v1/weight/9")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NO_SUCH_SCHEMA"
