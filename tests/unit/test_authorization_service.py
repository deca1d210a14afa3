"""Tests for the delegated-authorization protocol.

Runs against both storage engines through the ``services`` fixture.
"""

from urllib.parse import parse_qs, urlsplit

import pytest

from dsu.core.clock import now_millis
from dsu.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    OAuthError,
    ValidationError,
)
from dsu.domain import AuthorizationCode

_REDIRECT_URI = "https://app1.example.com/callback"


@pytest.fixture
async def third_party(services):
    """A registered client owned by a developer account."""
    return await services.third_parties.register(
        "developer", "App One", "Charts your weight", _REDIRECT_URI
    )


async def _granted_code(services, third_party, scopes=("weight",), owner="alice"):
    code, _ = await services.authorization.request_code(
        third_party.id, list(scopes), state="s1"
    )
    await services.authorization.verify(owner, code.code, True)
    return code


class TestRequestCode:
    """Tests for the Requested state."""

    async def test_issues_code_for_known_scopes(self, services, third_party):
        code, described = await services.authorization.request_code(
            third_party.id, ["weight", "mood"], state="abc"
        )
        assert described.id == third_party.id
        assert code.scopes == frozenset({"weight", "mood"})
        assert code.expiration_time - code.creation_time == 5 * 60 * 1000

    async def test_empty_scopes_rejected(self, services, third_party):
        with pytest.raises(ValidationError):
            await services.authorization.request_code(third_party.id, [])

    async def test_unknown_scope_rejected(self, services, third_party):
        with pytest.raises(ValidationError):
            await services.authorization.request_code(third_party.id, ["no_such_schema"])

    async def test_unknown_third_party_not_found(self, services):
        with pytest.raises(NotFoundError):
            await services.authorization.request_code("missing", ["weight"])

    async def test_response_type_must_be_code(self, services, third_party):
        with pytest.raises(ValidationError):
            await services.authorization.request_code(
                third_party.id, ["weight"], response_type="token"
            )

    async def test_caller_redirect_uri_rejected(self, services, third_party):
        with pytest.raises(ValidationError):
            await services.authorization.request_code(
                third_party.id, ["weight"], redirect_uri="https://evil.example.com"
            )


class TestVerify:
    """Tests for the Verified/Denied state."""

    async def test_grant_redirects_with_code_and_state(self, services, third_party):
        code, _ = await services.authorization.request_code(
            third_party.id, ["weight"], state="s1"
        )
        verification, url = await services.authorization.verify("alice", code.code, True)
        assert verification.granted
        query = parse_qs(urlsplit(url).query)
        assert url.startswith(_REDIRECT_URI)
        assert query == {"code": [code.code], "state": ["s1"]}

    async def test_deny_redirects_with_access_denied(self, services, third_party):
        code, _ = await services.authorization.request_code(
            third_party.id, ["weight"], state="s1"
        )
        _, url = await services.authorization.verify("alice", code.code, False)
        query = parse_qs(urlsplit(url).query)
        assert query == {"error": ["access_denied"], "state": ["s1"]}

    @pytest.mark.parametrize("first", [True, False])
    @pytest.mark.parametrize("second", [True, False])
    async def test_second_decision_always_conflicts(
        self, services, third_party, first, second
    ):
        code, _ = await services.authorization.request_code(third_party.id, ["weight"])
        await services.authorization.verify("alice", code.code, first)
        with pytest.raises(ConflictError):
            await services.authorization.verify("alice", code.code, second)

    async def test_second_decision_after_expiry_still_conflicts(
        self, services, third_party
    ):
        code, _ = await services.authorization.request_code(third_party.id, ["weight"])
        await services.authorization.verify("alice", code.code, True)
        later = code.expiration_time + 1
        with pytest.raises(ConflictError):
            await services.authorization.verify("alice", code.code, False, now=later)

    async def test_unknown_code_not_found(self, services):
        with pytest.raises(NotFoundError):
            await services.authorization.verify("alice", "missing", True)

    async def test_expired_code_cannot_be_verified(
        self, services, seeded_storage, third_party
    ):
        past = now_millis() - 10 * 60 * 1000
        code = AuthorizationCode.issue(third_party.id, ["weight"], None, 1_000, now=past)
        await seeded_storage.authorization_codes.store_code(code)
        with pytest.raises(ValidationError):
            await services.authorization.verify("alice", code.code, True)


class TestTokenIssue:
    """Tests for the Token-Issued state."""

    async def test_mint_requires_granted_verification(self, services, third_party):
        code = await _granted_code(services, third_party)
        token = await services.authorization.mint_token(code.code)
        assert token.authorization_code == code.code
        assert token.expiration_time - token.creation_time == 60 * 60 * 1000

    async def test_mint_without_verification_fails(self, services, third_party):
        code, _ = await services.authorization.request_code(third_party.id, ["weight"])
        with pytest.raises(OAuthError) as exc_info:
            await services.authorization.mint_token(code.code)
        assert exc_info.value.error == "invalid_grant"

    async def test_mint_after_denial_fails(self, services, third_party):
        code, _ = await services.authorization.request_code(third_party.id, ["weight"])
        await services.authorization.verify("alice", code.code, False)
        with pytest.raises(OAuthError) as exc_info:
            await services.authorization.mint_token(code.code)
        assert exc_info.value.error == "access_denied"

    async def test_mint_unknown_code_fails(self, services):
        with pytest.raises(OAuthError):
            await services.authorization.mint_token("missing")

    async def test_exchange_requires_matching_secret(self, services, third_party):
        code = await _granted_code(services, third_party)
        with pytest.raises(OAuthError) as exc_info:
            await services.authorization.exchange_code(third_party.id, "wrong", code.code)
        assert exc_info.value.error == "invalid_client"
        assert exc_info.value.status_code == 401

    async def test_exchange_rejects_code_of_other_client(self, services, third_party):
        other = await services.third_parties.register(
            "developer", "App Two", "Other", "https://app2.example.com/cb"
        )
        code = await _granted_code(services, third_party)
        with pytest.raises(OAuthError) as exc_info:
            await services.authorization.exchange_code(
                other.id, other.shared_secret, code.code
            )
        assert exc_info.value.error == "invalid_grant"


class TestRefresh:
    """Tests for the Refreshed state."""

    async def test_refresh_issues_new_pair_for_same_code(self, services, third_party):
        code = await _granted_code(services, third_party)
        original = await services.authorization.exchange_code(
            third_party.id, third_party.shared_secret, code.code
        )
        refreshed = await services.authorization.refresh(
            third_party.id, third_party.shared_secret, original.refresh_token
        )
        assert refreshed.authorization_code == original.authorization_code
        assert refreshed.access_token != original.access_token

    async def test_refresh_keeps_previous_token_valid(self, services, third_party):
        code = await _granted_code(services, third_party)
        original = await services.authorization.exchange_code(
            third_party.id, third_party.shared_secret, code.code
        )
        await services.authorization.refresh(
            third_party.id, third_party.shared_secret, original.refresh_token
        )
        owner = await services.authorization.check_access(
            original.access_token, "weight", "alice"
        )
        assert owner == "alice"

    async def test_unknown_refresh_token_rejected(self, services, third_party):
        with pytest.raises(OAuthError):
            await services.authorization.refresh(
                third_party.id, third_party.shared_secret, "missing"
            )


class TestCheckAccess:
    """Tests for the third-party read check."""

    async def _access_token(self, services, third_party, scopes=("weight",)):
        code = await _granted_code(services, third_party, scopes)
        token = await services.authorization.exchange_code(
            third_party.id, third_party.shared_secret, code.code
        )
        return token.access_token

    async def test_in_scope_owner_allowed(self, services, third_party):
        access = await self._access_token(services, third_party)
        assert await services.authorization.check_access(access, "weight", "alice") == "alice"

    async def test_owner_defaults_to_grantor(self, services, third_party):
        access = await self._access_token(services, third_party)
        assert await services.authorization.check_access(access, "weight", None) == "alice"

    async def test_out_of_scope_schema_forbidden(self, services, third_party):
        access = await self._access_token(services, third_party)
        with pytest.raises(AuthorizationError):
            await services.authorization.check_access(access, "mood", "alice")

    async def test_other_owner_forbidden(self, services, third_party):
        access = await self._access_token(services, third_party)
        with pytest.raises(AuthorizationError):
            await services.authorization.check_access(access, "weight", "bob")

    async def test_expired_token_forbidden(self, services, third_party):
        access = await self._access_token(services, third_party)
        later = now_millis() + 2 * 60 * 60 * 1000
        with pytest.raises(AuthorizationError):
            await services.authorization.check_access(access, "weight", "alice", now=later)

    async def test_unknown_token_forbidden(self, services):
        with pytest.raises(AuthorizationError) as exc_info:
            await services.authorization.check_access("missing", "weight", "alice")
        assert exc_info.value.status_code == 403
