"""Unit tests for credential handling."""
import asyncio
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from contentforge.auth import (
    AuthClient,
    AuthRefreshError,
    Credential,
    CredentialStore,
    GoTrueAuthClient,
)
from contentforge.errors import ErrorKind, UnauthenticatedError

from .conftest import NOW, FakeAuthClient, make_credential


class TestCredential:
    """Tests for the Credential model."""

    def test_fresh_until_skew_before_expiry(self):
        """Test that a credential stops being fresh `skew` before it expires."""
        credential = make_credential(expires_in=timedelta(seconds=90))
        skew = timedelta(seconds=60)

        assert credential.is_fresh(NOW, skew)
        assert not credential.is_fresh(NOW + timedelta(seconds=30), skew)
        assert not credential.is_fresh(NOW + timedelta(hours=1), skew)

    def test_authorization_header(self):
        """Test the bearer header value."""
        assert make_credential("abc").authorization == "Bearer abc"

    def test_from_payload_with_expires_at(self):
        """Test that an absolute expires_at wins over expires_in."""
        credential = Credential.from_token_payload(
            {"access_token": "a", "refresh_token": "r", "expires_at": 1_800_000_000, "expires_in": 5},
            NOW,
        )
        assert credential.expires_at == datetime.fromtimestamp(1_800_000_000, tz=timezone.utc)

    def test_from_payload_with_expires_in(self):
        """Test that expires_in is relative to the given time."""
        credential = Credential.from_token_payload(
            {"access_token": "a", "refresh_token": "r", "expires_in": 120}, NOW
        )
        assert credential.expires_at == NOW + timedelta(seconds=120)

    def test_credential_is_immutable(self):
        """Test that credentials are frozen."""
        credential = make_credential()
        with pytest.raises(Exception):
            credential.access_token = "other"  # type: ignore


class TestAuthClientInterface:
    """Tests for the abstract AuthClient interface."""

    def test_auth_client_is_abstract(self):
        """Test that AuthClient cannot be instantiated directly."""
        with pytest.raises(TypeError):
            AuthClient()  # type: ignore


class TestCredentialStore:
    """Tests for CredentialStore."""

    @pytest.mark.asyncio
    async def test_fresh_credential_is_returned_without_refresh(self, auth_client, clock):
        """Test that a fresh session is used as-is."""
        store = CredentialStore(auth_client, clock=clock)

        credential = await store.get_valid_credential()

        assert credential.access_token == "token-0"
        assert auth_client.refresh_calls == 0

    @pytest.mark.asyncio
    async def test_expiring_credential_is_refreshed(self, clock):
        """Test that a credential inside the skew is refreshed before use."""
        auth = FakeAuthClient(session=make_credential("token-0", expires_in=timedelta(seconds=30)))
        store = CredentialStore(auth, clock=clock)

        credential = await store.get_valid_credential()

        assert credential.access_token == "token-1"
        assert auth.refresh_calls == 1
        assert store.credential == credential

    @pytest.mark.asyncio
    async def test_refresh_after_clock_moves_past_expiry(self, auth_client, clock):
        """Test that the cached credential is refreshed once it goes stale."""
        store = CredentialStore(auth_client, clock=clock)
        await store.get_valid_credential()

        clock.advance(timedelta(hours=2))
        credential = await store.get_valid_credential()

        assert credential.access_token == "token-1"
        assert auth_client.refresh_calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self, clock):
        """Test that concurrent callers with a stale credential trigger one refresh."""
        auth = FakeAuthClient(
            session=make_credential("token-0", expires_in=timedelta(seconds=-1)), delay=0.01
        )
        store = CredentialStore(auth, clock=clock)

        credentials = await asyncio.gather(*(store.get_valid_credential() for _ in range(5)))

        assert auth.refresh_calls == 1
        assert {c.access_token for c in credentials} == {"token-1"}

    @pytest.mark.asyncio
    async def test_concurrent_force_refresh_coalesces(self, auth_client, clock):
        """Test that concurrent rejections of the same token refresh once."""
        auth_client.delay = 0.01
        store = CredentialStore(auth_client, clock=clock)
        stale = await store.get_valid_credential()

        credentials = await asyncio.gather(*(store.force_refresh(stale) for _ in range(5)))

        assert auth_client.refresh_calls == 1
        assert {c.access_token for c in credentials} == {"token-1"}

    @pytest.mark.asyncio
    async def test_force_refresh_with_outdated_token_skips_refresh(self, auth_client, clock):
        """Test that a rejection of an already-replaced token does not refresh again."""
        store = CredentialStore(auth_client, clock=clock)
        stale = await store.get_valid_credential()
        await store.force_refresh(stale)

        credential = await store.force_refresh(stale)

        assert credential.access_token == "token-1"
        assert auth_client.refresh_calls == 1

    @pytest.mark.asyncio
    async def test_rejected_refresh_clears_credential(self, clock):
        """Test that a rejected refresh raises Unauthenticated and forgets the token."""
        auth = FakeAuthClient(
            session=make_credential("token-0", expires_in=timedelta(seconds=-1)), reject=True
        )
        store = CredentialStore(auth, clock=clock)

        with pytest.raises(UnauthenticatedError) as exc_info:
            await store.get_valid_credential()

        assert exc_info.value.kind is ErrorKind.UNAUTHENTICATED
        assert store.credential is None

    @pytest.mark.asyncio
    async def test_rejected_refresh_requires_sign_in(self, clock):
        """Test that a dead refresh token is not sent again until a new sign-in."""
        auth = FakeAuthClient(
            session=make_credential("token-0", expires_in=timedelta(seconds=-1)), reject=True
        )
        store = CredentialStore(auth, clock=clock)
        with pytest.raises(UnauthenticatedError):
            await store.get_valid_credential()

        auth.reject = False
        for _ in range(3):
            with pytest.raises(UnauthenticatedError):
                await store.get_valid_credential()
        with pytest.raises(UnauthenticatedError):
            await store.force_refresh()

        assert auth.refresh_calls == 1
        assert store.signed_out

        auth.emit("SIGNED_IN", make_credential("token-new"))
        credential = await store.get_valid_credential()

        assert credential.access_token == "token-new"
        assert not store.signed_out
        assert auth.refresh_calls == 1

    @pytest.mark.asyncio
    async def test_unreachable_auth_service_can_be_retried(self, clock):
        """Test that a refresh that never reached the service is attempted again."""
        auth = FakeAuthClient(
            session=make_credential("token-0", expires_in=timedelta(seconds=-1)), unreachable=True
        )
        store = CredentialStore(auth, clock=clock)
        with pytest.raises(UnauthenticatedError):
            await store.get_valid_credential()
        assert not store.signed_out

        auth.unreachable = False
        credential = await store.get_valid_credential()

        assert credential.access_token == "token-2"
        assert auth.refresh_calls == 2

    @pytest.mark.asyncio
    async def test_sign_out_stops_session_lookups(self, auth_client, clock):
        """Test that after sign-out the store neither reads the session nor refreshes."""
        store = CredentialStore(auth_client, clock=clock)
        await store.get_valid_credential()

        auth_client.emit("SIGNED_OUT", None)
        auth_client.session = make_credential("token-leftover")

        with pytest.raises(UnauthenticatedError):
            await store.get_valid_credential()
        assert auth_client.refresh_calls == 0

    @pytest.mark.asyncio
    async def test_tracks_auth_state_changes(self, auth_client, clock):
        """Test that sign-in and sign-out events replace the cached credential."""
        store = CredentialStore(auth_client, clock=clock)
        await store.get_valid_credential()

        auth_client.emit("SIGNED_IN", make_credential("token-new"))
        assert store.credential.access_token == "token-new"

        auth_client.emit("SIGNED_OUT", None)
        assert store.credential is None

    @pytest.mark.asyncio
    async def test_close_unsubscribes(self, auth_client, clock):
        """Test that a closed store stops listening."""
        store = CredentialStore(auth_client, clock=clock)
        store.close()

        assert auth_client.listeners == []


def _token_payload(token: str) -> dict:
    return {"access_token": token, "refresh_token": f"refresh-{token}", "expires_in": 3600}


class TestGoTrueAuthClient:
    """Tests for GoTrueAuthClient against a mocked /token endpoint."""

    @pytest.mark.asyncio
    async def test_refresh_session_posts_refresh_grant(self):
        """Test the refresh request shape and the emitted event."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_token_payload("fresh"))

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://auth.test/auth/v1")
        client = GoTrueAuthClient("https://auth.test/auth/v1", "anon", session=make_credential("old"), client=http)
        events = []
        client.on_auth_state_change(lambda event, session: events.append((event, session)))

        credential = await client.refresh_session()

        request = seen[0]
        assert request.url.path == "/auth/v1/token"
        assert request.url.params["grant_type"] == "refresh_token"
        assert request.headers["apikey"] == "anon"
        assert json.loads(request.content) == {"refresh_token": "refresh-old"}
        assert credential.access_token == "fresh"
        assert events == [("TOKEN_REFRESHED", credential)]
        assert await client.get_session() == credential
        await http.aclose()

    @pytest.mark.asyncio
    async def test_rejected_refresh_raises(self):
        """Test that a non-200 token response raises AuthRefreshError."""
        http = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(400, json={"error": "invalid_grant"})),
            base_url="https://auth.test/auth/v1",
        )
        client = GoTrueAuthClient("https://auth.test/auth/v1", "anon", session=make_credential("old"), client=http)

        events = []
        client.on_auth_state_change(lambda event, session: events.append((event, session)))

        with pytest.raises(AuthRefreshError, match="400") as exc_info:
            await client.refresh_session()

        assert exc_info.value.rejected
        assert events == [("SIGNED_OUT", None)]
        assert await client.get_session() is None
        await http.aclose()

    @pytest.mark.asyncio
    async def test_invalid_grant_is_sent_once(self, clock):
        """Test that a store over a rejecting /token endpoint asks for the grant only once."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, json={"error": "invalid_grant"})

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://auth.test/auth/v1")
        expired = make_credential("old", expires_in=timedelta(seconds=-1))
        client = GoTrueAuthClient("https://auth.test/auth/v1", "anon", session=expired, client=http)
        store = CredentialStore(client, clock=clock)

        for _ in range(3):
            with pytest.raises(UnauthenticatedError):
                await store.get_valid_credential()

        assert len(calls) == 1
        store.close()
        await http.aclose()

    @pytest.mark.asyncio
    async def test_server_error_keeps_session(self):
        """Test that a 5xx from the auth service is not treated as a revoked token."""
        http = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(503, text="unavailable")),
            base_url="https://auth.test/auth/v1",
        )
        session = make_credential("old")
        client = GoTrueAuthClient("https://auth.test/auth/v1", "anon", session=session, client=http)

        with pytest.raises(AuthRefreshError) as exc_info:
            await client.refresh_session()

        assert not exc_info.value.rejected
        assert await client.get_session() == session
        await http.aclose()

    @pytest.mark.asyncio
    async def test_refresh_without_session_raises(self):
        """Test that refreshing with no session fails without a request."""
        client = GoTrueAuthClient("https://auth.test/auth/v1", "anon")

        with pytest.raises(AuthRefreshError, match="No refresh token"):
            await client.refresh_session()
        await client.close()

    @pytest.mark.asyncio
    async def test_sign_in_and_out_feed_credential_store(self, clock):
        """Test that sign-in and sign-out reach a subscribed CredentialStore."""
        http = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=_token_payload("signed-in"))),
            base_url="https://auth.test/auth/v1",
        )
        async with GoTrueAuthClient("https://auth.test/auth/v1", "anon", client=http) as client:
            store = CredentialStore(client, clock=clock)

            await client.sign_in_with_password("ada@example.com", "secret")
            assert store.credential.access_token == "signed-in"

            await client.sign_out()
            assert store.credential is None
            store.close()
        await http.aclose()
