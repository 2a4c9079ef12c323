"""
Tests for the OAuth token store.

Covers grant flows, local expiry validation, single-flight refresh and
revocation against a routed fake session.
"""

import asyncio
import base64
import json

import pytest

from payfirma.auth import Credentials, TokenStore, TokenValidation
from payfirma.errors import AuthenticationError, NetworkError, ValidationError
from payfirma.http_client import HttpTransport
from tests.conftest import START_TIME, make_failing_response, make_response, token_body

TOKEN = "/oauth/token"
REVOKE = "/oauth/revoke_token"


def jwt(payload):
    encoded = base64.urlsafe_b64encode(json.dumps(payload).encode()).decode().rstrip("=")
    return f"header.{encoded}.signature"


# ============================================================================
# Grants
# ============================================================================


class TestGrants:
    """Tests for token grant requests."""

    @pytest.mark.asyncio
    async def test_client_credentials(self, token_store, routed_session):
        """Test the client credentials grant stores the issued token."""
        routed_session.add("POST", TOKEN, make_response(200, token_body()))

        credentials = await token_store.client_credentials_grant()

        assert credentials.access_token == "access-1"
        assert credentials.refresh_token == "refresh-1"
        assert credentials.expires_at == START_TIME + 3600
        assert credentials.merchant_id == "merchant-42"
        assert credentials.scope == ["ecom", "invoice"]
        assert token_store.get_credentials() is credentials

    @pytest.mark.asyncio
    async def test_grant_request_shape(self, token_store, routed_session):
        """Test the grant is a form post with basic auth and client fields."""
        routed_session.add("POST", TOKEN, make_response(200, token_body()))

        await token_store.client_credentials_grant()

        call = routed_session.calls[0]
        assert call.url == "https://sandbox-auth.payfirma.com/oauth/token"
        assert call.headers["Content-Type"] == "application/x-www-form-urlencoded"
        expected = base64.b64encode(b"test-client:test-secret").decode()
        assert call.headers["Authorization"] == f"Basic {expected}"
        assert call.data == {
            "grant_type": "client_credentials",
            "client_id": "test-client",
            "client_secret": "test-secret",
        }

    @pytest.mark.asyncio
    async def test_authorization_code(self, token_store, routed_session):
        """Test the authorization code grant sends code and redirect."""
        routed_session.add("POST", TOKEN, make_response(200, token_body(access_token="merchant")))

        credentials = await token_store.authorization_code_grant(
            "auth-code", "https://app.example/callback", state="xyz"
        )

        assert credentials.access_token == "merchant"
        data = routed_session.calls[0].data
        assert data["grant_type"] == "authorization_code"
        assert data["code"] == "auth-code"
        assert data["redirect_uri"] == "https://app.example/callback"
        assert data["state"] == "xyz"

    @pytest.mark.asyncio
    async def test_authorization_code_without_state(self, token_store, routed_session):
        """Test an absent state is not sent."""
        routed_session.add("POST", TOKEN, make_response(200, token_body()))

        await token_store.authorization_code_grant("c", "https://app.example/cb")

        assert "state" not in routed_session.calls[0].data

    @pytest.mark.asyncio
    async def test_rejected_grant(self, token_store, routed_session):
        """Test a rejected grant raises AuthenticationError and stores nothing."""
        routed_session.add(
            "POST",
            TOKEN,
            make_response(401, {"error_description": "Bad client credentials"}, reason="Unauthorized"),
        )

        with pytest.raises(AuthenticationError) as exc_info:
            await token_store.client_credentials_grant()

        assert exc_info.value.message == "Bad client credentials"
        assert exc_info.value.status_code == 401
        assert token_store.get_credentials() is None

    @pytest.mark.asyncio
    async def test_coded_rejection_uses_code(self, token_store, routed_session):
        """Test an API code in the rejection selects the error class."""
        routed_session.add(
            "POST", TOKEN, make_response(400, {"error": "VALIDATION_ERROR", "message": "bad grant"})
        )

        with pytest.raises(ValidationError):
            await token_store.client_credentials_grant()

    @pytest.mark.asyncio
    async def test_network_failure(self, token_store, routed_session):
        """Test connection failures surface as NetworkError."""
        routed_session.add("POST", TOKEN, make_failing_response(OSError("unreachable")))

        with pytest.raises(NetworkError):
            await token_store.client_credentials_grant()

    @pytest.mark.asyncio
    async def test_response_without_token(self, token_store, routed_session):
        """Test a 2xx response lacking an access token is an auth failure."""
        routed_session.add("POST", TOKEN, make_response(200, {"token_type": "Bearer"}))

        with pytest.raises(AuthenticationError):
            await token_store.client_credentials_grant()


# ============================================================================
# Validation
# ============================================================================


class TestValidateToken:
    """Tests for local expiry checks."""

    def test_no_credentials(self, token_store):
        """Test validation without credentials."""
        result = token_store.validate_token()

        assert result == TokenValidation(valid=False, reason="No credentials available")

    def test_valid(self, token_store, clock):
        """Test a token well before expiry is valid."""
        token_store.set_credentials(Credentials(access_token="t", expires_at=clock() + 3600))

        result = token_store.validate_token()

        assert result.valid is True
        assert result.expires_at == clock() + 3600

    def test_inside_buffer_with_refresh_token(self, token_store, clock):
        """Test a token inside the buffer needs a refresh."""
        token_store.set_credentials(
            Credentials(access_token="t", expires_at=clock() + 120, refresh_token="r")
        )

        result = token_store.validate_token()

        assert result.valid is False
        assert result.needs_refresh is True
        assert result.reason == "Token expired or expiring soon"

    def test_expired_without_refresh_token(self, token_store, clock):
        """Test an expired token without refresh token cannot be refreshed."""
        token_store.set_credentials(Credentials(access_token="t", expires_at=clock() - 10))

        result = token_store.validate_token()

        assert result.valid is False
        assert result.needs_refresh is False

    def test_buffer_boundary(self, token_store, clock):
        """Test exactly the buffer remaining counts as expiring."""
        token_store.set_credentials(Credentials(access_token="t", expires_at=clock() + 300))
        assert token_store.validate_token().valid is False

        clock.advance(-1)
        assert token_store.validate_token().valid is True

    def test_to_dict_omits_none(self, token_store):
        """Test validation results serialize without empty fields."""
        assert token_store.validate_token().to_dict() == {
            "valid": False,
            "reason": "No credentials available",
        }


class TestGetValidToken:
    """Tests for token retrieval with transparent refresh."""

    @pytest.mark.asyncio
    async def test_returns_valid_token(self, token_store, routed_session, clock):
        """Test a valid token is returned without network calls."""
        token_store.set_credentials(Credentials(access_token="t", expires_at=clock() + 3600))

        assert await token_store.get_valid_token() == "t"
        assert await token_store.get_auth_header() == {"Authorization": "Bearer t"}
        assert routed_session.calls == []

    @pytest.mark.asyncio
    async def test_refreshes_expiring_token(self, token_store, routed_session, clock):
        """Test an expiring token is refreshed first."""
        token_store.set_credentials(
            Credentials(access_token="old", expires_at=clock() + 10, refresh_token="r-old")
        )
        routed_session.add("POST", TOKEN, make_response(200, token_body(access_token="new")))

        assert await token_store.get_valid_token() == "new"
        data = routed_session.calls[0].data
        assert data["grant_type"] == "refresh_token"
        assert data["refresh_token"] == "r-old"

    @pytest.mark.asyncio
    async def test_no_credentials(self, token_store):
        """Test missing credentials raise."""
        with pytest.raises(AuthenticationError, match="No valid token available"):
            await token_store.get_valid_token()

    @pytest.mark.asyncio
    async def test_expired_without_refresh_token(self, token_store, clock):
        """Test an expired token without refresh token raises."""
        token_store.set_credentials(Credentials(access_token="t", expires_at=clock() - 1))

        with pytest.raises(AuthenticationError) as exc_info:
            await token_store.get_valid_token()
        assert exc_info.value.details["reason"] == "Token expired or expiring soon"


# ============================================================================
# Refresh coordination
# ============================================================================


class TestSingleFlightRefresh:
    """Tests for refresh deduplication."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self, token_store, routed_session, clock):
        """Test five concurrent callers trigger exactly one refresh request."""
        token_store.set_credentials(
            Credentials(access_token="old", expires_at=clock() + 10, refresh_token="r")
        )
        routed_session.add(
            "POST", TOKEN, make_response(200, token_body(access_token="fresh"), delay=0.05)
        )

        tokens = await asyncio.gather(*(token_store.get_valid_token() for _ in range(5)))

        assert tokens == ["fresh"] * 5
        assert len(routed_session.calls_to("POST", TOKEN)) == 1
        assert token_store.refresh_in_progress is False

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_failure(self, token_store, routed_session, clock):
        """Test every waiter sees the failure of the shared refresh."""
        token_store.set_credentials(
            Credentials(access_token="old", expires_at=clock() + 10, refresh_token="r")
        )
        routed_session.add(
            "POST", TOKEN, make_response(401, {"error": "TOKEN_EXPIRED", "message": "gone"}, delay=0.05)
        )

        results = await asyncio.gather(
            *(token_store.get_valid_token() for _ in range(3)), return_exceptions=True
        )

        assert all(isinstance(r, AuthenticationError) for r in results)
        assert len(routed_session.calls_to("POST", TOKEN)) == 1

    @pytest.mark.asyncio
    async def test_failed_refresh_releases_slot(self, token_store, routed_session, clock):
        """Test a later refresh starts a new request after a failure."""
        token_store.set_credentials(
            Credentials(access_token="old", expires_at=clock() + 10, refresh_token="r")
        )
        routed_session.add(
            "POST",
            TOKEN,
            make_response(500, {"message": "try again"}),
            make_response(200, token_body(access_token="second")),
        )

        with pytest.raises(AuthenticationError):
            await token_store.refresh_token()
        assert token_store.refresh_in_progress is False

        credentials = await token_store.refresh_token()

        assert credentials.access_token == "second"
        assert len(routed_session.calls_to("POST", TOKEN)) == 2

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_refresh(self, token_store, routed_session, clock):
        """Test cancelling one caller leaves the shared refresh running."""
        token_store.set_credentials(
            Credentials(access_token="old", expires_at=clock() + 10, refresh_token="r")
        )
        routed_session.add(
            "POST", TOKEN, make_response(200, token_body(access_token="fresh"), delay=0.05)
        )

        first = asyncio.ensure_future(token_store.get_valid_token())
        second = asyncio.ensure_future(token_store.get_valid_token())
        await asyncio.sleep(0)
        first.cancel()

        assert await second == "fresh"
        assert first.cancelled()

    @pytest.mark.asyncio
    async def test_explicit_refresh_token_argument(self, token_store, routed_session):
        """Test a caller-provided refresh token is used without stored credentials."""
        routed_session.add("POST", TOKEN, make_response(200, token_body()))

        await token_store.refresh_token("given")

        assert routed_session.calls[0].data["refresh_token"] == "given"

    @pytest.mark.asyncio
    async def test_no_refresh_token(self, token_store, routed_session):
        """Test refreshing without any refresh token fails locally."""
        with pytest.raises(AuthenticationError, match="No refresh token available"):
            await token_store.refresh_token()
        assert routed_session.calls == []


# ============================================================================
# Revocation and helpers
# ============================================================================


class TestRevoke:
    """Tests for token revocation."""

    @pytest.mark.asyncio
    async def test_revoke(self, token_store, routed_session, clock):
        """Test revocation sends the bearer token and clears credentials."""
        token_store.set_credentials(Credentials(access_token="t", expires_at=clock() + 3600))
        routed_session.add("DELETE", REVOKE, make_response(200, None))

        await token_store.revoke_token()

        call = routed_session.calls[0]
        assert call.method == "DELETE"
        assert call.headers["Authorization"] == "Bearer t"
        assert token_store.get_credentials() is None

    @pytest.mark.asyncio
    async def test_remote_failure_still_clears(self, token_store, routed_session, clock):
        """Test remote failures are swallowed and credentials still cleared."""
        token_store.set_credentials(Credentials(access_token="t", expires_at=clock() + 3600))
        routed_session.add("DELETE", REVOKE, make_response(500, {"message": "nope"}))

        await token_store.revoke_token()

        assert token_store.get_credentials() is None

    @pytest.mark.asyncio
    async def test_without_credentials(self, token_store, routed_session):
        """Test revoking with nothing stored is a no-op."""
        await token_store.revoke_token()
        assert routed_session.calls == []


class TestHelpers:
    """Tests for URL building, payload parsing and configuration swaps."""

    def test_authorization_url(self, token_store):
        """Test the authorization URL carries the OAuth parameters."""
        url = token_store.get_authorization_url(
            "https://app.example/cb", state="s1", scopes=["ecom", "invoice"]
        )

        assert url.startswith("https://sandbox-auth.payfirma.com/oauth/authorize?")
        assert "response_type=code" in url
        assert "client_id=test-client" in url
        assert "redirect_uri=https%3A%2F%2Fapp.example%2Fcb" in url
        assert "state=s1" in url
        assert "scope=ecom+invoice" in url

    def test_authorization_url_minimal(self, token_store):
        """Test optional parameters are omitted."""
        url = token_store.get_authorization_url("https://app.example/cb")
        assert "state=" not in url
        assert "scope=" not in url

    def test_parse_token_payload(self):
        """Test claims are decoded from the middle segment."""
        token = jwt({"merchant_id": "m1", "exp": 1700003600})
        assert TokenStore.parse_token_payload(token) == {"merchant_id": "m1", "exp": 1700003600}

    @pytest.mark.parametrize("token", ["", "abc", "a.b", "a..c", "a.bm90LWpzb24.c", "a.b.c.d"])
    def test_parse_malformed_token(self, token):
        """Test malformed tokens raise AuthenticationError."""
        with pytest.raises(AuthenticationError, match="Invalid token format") as exc_info:
            TokenStore.parse_token_payload(token)
        assert "original_error" in exc_info.value.details

    def test_parse_non_object_payload(self):
        """Test payloads that are not JSON objects are rejected."""
        with pytest.raises(AuthenticationError):
            TokenStore.parse_token_payload(jwt([1, 2, 3]))

    def test_configure_rebases_transport(self, token_store, config):
        """Test a new configuration points the store at new hosts."""
        token_store.configure(config.with_overrides(sandbox=False))

        assert token_store.environment.auth_url == "https://auth.payfirma.com"
        assert token_store.get_authorization_url("https://x").startswith(
            "https://auth.payfirma.com/oauth/authorize"
        )

    def test_default_transport_from_config(self, config):
        """Test a store without a transport builds one for the auth host."""
        store = TokenStore(config)
        assert isinstance(store._transport, HttpTransport)
        assert store._transport.base_url == "https://sandbox-auth.payfirma.com"


class TestCredentials:
    """Tests for the Credentials dataclass."""

    def test_repr_hides_tokens(self):
        """Test tokens never appear in repr."""
        creds = Credentials(access_token="secret-a", expires_at=1.0, refresh_token="secret-r")
        assert "secret" not in repr(creds)

    def test_dict_round_trip(self):
        """Test credentials survive persistence through a dict."""
        creds = Credentials(
            access_token="a",
            expires_at=1700000000.0,
            refresh_token="r",
            merchant_id="m",
            scope=["ecom"],
        )

        assert Credentials.from_dict(creds.to_dict()) == creds

    def test_from_token_response_without_optional_fields(self):
        """Test minimal token responses."""
        creds = Credentials.from_token_response({"access_token": "a", "expires_in": 60}, now=100.0)

        assert creds.expires_at == 160.0
        assert creds.refresh_token is None
        assert creds.scope is None
        assert creds.token_type == "Bearer"
