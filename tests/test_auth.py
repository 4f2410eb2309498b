"""Tests for GitHub authentication resolution."""

import asyncio

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

from reasonet.exceptions import AuthenticationUnavailable, GitHubAPIError
from reasonet.github.auth import (
    GitHubAuthConfig,
    create_installation_client,
    generate_app_jwt,
    load_private_key,
    request_installation_token,
    resolve_client,
)


@pytest.fixture(scope="module")
def rsa_keys() -> tuple[str, str]:
    """A throwaway RSA key pair as PEM strings."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = (
        key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )
    return private_pem, public_pem


class TestPrivateKey:
    def test_escaped_newlines(self, rsa_keys):
        private_pem, _ = rsa_keys
        escaped = private_pem.replace("\n", "\\n")

        assert load_private_key(escaped) == private_pem

    def test_file_path(self, rsa_keys, tmp_path):
        private_pem, _ = rsa_keys
        key_file = tmp_path / "app.pem"
        key_file.write_text(private_pem)

        assert load_private_key(str(key_file)) == private_pem

    def test_invalid(self, tmp_path):
        with pytest.raises(ValueError):
            load_private_key(str(tmp_path / "missing.pem"))


class TestAppJwt:
    def test_claims(self, rsa_keys):
        private_pem, public_pem = rsa_keys
        token = generate_app_jwt("12345", private_pem, now=1_700_000_000)

        claims = jwt.decode(
            token,
            public_pem,
            algorithms=["RS256"],
            options={"verify_exp": False, "verify_iat": False},
        )

        assert claims == {
            "iat": 1_700_000_000 - 60,
            "exp": 1_700_000_000 + 600,
            "iss": "12345",
        }
        assert jwt.get_unverified_header(token)["alg"] == "RS256"


class TestInstallationToken:
    def test_exchange(self, rsa_keys):
        private_pem, public_pem = rsa_keys
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["method"] = request.method
            app_jwt = request.headers["Authorization"].removeprefix("Bearer ")
            seen["iss"] = jwt.get_unverified_claims(app_jwt)["iss"]
            return httpx.Response(201, json={"token": "ghs_installation"})

        config = GitHubAuthConfig(
            app_id="12345",
            private_key=private_pem,
            api_url="https://github.test",
            transport=httpx.MockTransport(handler),
        )

        token = asyncio.run(request_installation_token("42", config))

        assert token == "ghs_installation"
        assert seen == {
            "path": "/app/installations/42/access_tokens",
            "method": "POST",
            "iss": "12345",
        }

    def test_installation_client_uses_token(self, rsa_keys):
        private_pem, _ = rsa_keys
        auth_headers = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.startswith("/app/installations"):
                return httpx.Response(201, json={"token": "ghs_installation"})
            auth_headers.append(request.headers["Authorization"])
            return httpx.Response(200, text="diff")

        config = GitHubAuthConfig(
            app_id="12345",
            private_key=private_pem,
            api_url="https://github.test",
            transport=httpx.MockTransport(handler),
        )

        async def scenario():
            client = await create_installation_client("42", config)
            async with client:
                await client.get_pull_request_diff("acme", "widgets", 1)
            return client

        client = asyncio.run(scenario())

        assert client.auth_method == "installation"
        assert client.installation_id == "42"
        assert auth_headers == ["Bearer ghs_installation"]

    def test_rejected_exchange(self, rsa_keys):
        private_pem, _ = rsa_keys

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "Bad credentials"})

        config = GitHubAuthConfig(
            app_id="12345",
            private_key=private_pem,
            api_url="https://github.test",
            transport=httpx.MockTransport(handler),
        )

        with pytest.raises(GitHubAPIError) as exc_info:
            asyncio.run(request_installation_token("42", config))

        assert exc_info.value.status_code == 401


class FakeFactories:
    """Records which credential path the resolver took."""

    def __init__(self, app_error: Exception = None):
        self.app_error = app_error
        self.app_calls = []
        self.token_calls = 0

    async def app(self, installation_id, config):
        self.app_calls.append(installation_id)
        if self.app_error:
            raise self.app_error
        return "app-client"

    def token(self, config):
        self.token_calls += 1
        return "token-client"


def _resolve(installation_id, config, factories):
    return asyncio.run(
        resolve_client(
            installation_id,
            config,
            app_client_factory=factories.app,
            token_client_factory=factories.token,
        )
    )


class TestResolveClient:
    """Ordered fallback: installation app auth, then static token, then error."""

    def test_prefers_app_auth(self):
        factories = FakeFactories()
        config = GitHubAuthConfig(app_id="1", private_key="pem", token="pat")

        assert _resolve("42", config, factories) == "app-client"
        assert factories.app_calls == ["42"]
        assert factories.token_calls == 0

    def test_app_failure_falls_back_to_token(self, caplog):
        factories = FakeFactories(app_error=GitHubAPIError("rejected", 401))
        config = GitHubAuthConfig(app_id="1", private_key="pem", token="pat")

        with caplog.at_level("ERROR"):
            assert _resolve("42", config, factories) == "token-client"

        assert "falling back" in caplog.text

    def test_installation_without_app_config_uses_token(self, caplog):
        factories = FakeFactories()
        config = GitHubAuthConfig(token="pat")

        with caplog.at_level("ERROR"):
            assert _resolve("42", config, factories) == "token-client"

        assert factories.app_calls == []
        assert "not configured" in caplog.text

    def test_no_installation_uses_token(self):
        factories = FakeFactories()
        config = GitHubAuthConfig(app_id="1", private_key="pem", token="pat")

        assert _resolve(None, config, factories) == "token-client"
        assert factories.app_calls == []

    def test_app_failure_without_token(self):
        factories = FakeFactories(app_error=GitHubAPIError("rejected", 401))
        config = GitHubAuthConfig(app_id="1", private_key="pem")

        with pytest.raises(AuthenticationUnavailable):
            _resolve("42", config, factories)

    def test_nothing_configured(self):
        with pytest.raises(AuthenticationUnavailable):
            _resolve(None, GitHubAuthConfig(), FakeFactories())
