"""Unit tests for the model catalog and provider router."""
import pytest

from contentforge.errors import ErrorKind, SafetyBlockedError, UnavailableError, UpstreamError
from contentforge.routing import DEFAULT_PROVIDERS, ModelCatalog, ProviderDescriptor, ProviderRouter

from .conftest import FakeProvider


class TestModelCatalog:
    """Tests for ModelCatalog."""

    def test_provider_lookup(self):
        """Test model to provider resolution."""
        catalog = ModelCatalog()
        assert catalog.provider_for_model("gemini-pro").name == "google"
        assert catalog.provider_for_model("llama-3.1-sonar-large-128k-online").name == "groq"
        assert catalog.provider_for_model("claude-3-opus").name == "anthropic"
        assert catalog.provider_for_model("nope") is None

    def test_availability_depends_on_user_keys(self):
        """Test that keyed providers are available only with a key."""
        catalog = ModelCatalog()
        assert catalog.is_model_available("gemini-pro")
        assert not catalog.is_model_available("gpt-4")
        assert catalog.is_model_available("gpt-4", ["OpenAI"])
        assert not catalog.is_model_available("unknown-model", ["openai"])

    def test_available_providers(self):
        """Test the provider list shown to a caller."""
        catalog = ModelCatalog()
        names = [d.name for d in catalog.available_providers(["deepseek"])]
        assert names == ["google", "groq", "deepseek"]

    def test_resolve_model_falls_back_to_default(self):
        """Test that an unavailable selection is swapped for gemini-pro."""
        catalog = ModelCatalog()
        assert catalog.resolve_model("gpt-4") == "gemini-pro"
        assert catalog.resolve_model("gpt-4", ["openai"]) == "gpt-4"
        assert catalog.resolve_model("llama-3.1-sonar-small-128k-online") == "llama-3.1-sonar-small-128k-online"

    def test_models_belong_to_one_provider(self):
        """Test that a model listed twice is rejected."""
        duplicate = ProviderDescriptor(
            name="other", label="Other", supported_models=frozenset({"gemini-pro"}), requires_user_key=True
        )
        with pytest.raises(ValueError, match="more than one provider"):
            ModelCatalog([*DEFAULT_PROVIDERS, duplicate])


def _router(google=None, groq=None, factory=None) -> ProviderRouter:
    providers = {}
    if google is not None:
        providers["google"] = google
    if groq is not None:
        providers["groq"] = groq
    kwargs = {"provider_factory": factory} if factory is not None else {}
    return ProviderRouter(ModelCatalog(), providers, **kwargs)


class TestProviderRouter:
    """Tests for ProviderRouter."""

    @pytest.mark.asyncio
    async def test_default_model_served_by_server_provider(self):
        """Test that gemini-pro goes to the server-keyed Google provider."""
        google = FakeProvider("google", ["Cats are great."])
        router = _router(google, FakeProvider("groq"))

        result = await router.generate("write a blog post about cats", "gemini-pro")

        assert result.content == "Cats are great."
        assert result.model_used == "gemini-pro"
        assert not result.fallback_used
        assert google.calls[0]["model"] == "gemini-pro"
        assert google.calls[0]["messages"][0].content == "write a blog post about cats"
        assert not google.closed

    @pytest.mark.asyncio
    async def test_safety_block_falls_back_to_groq(self):
        """Test that a Gemini safety block is answered by the fallback model."""
        google = FakeProvider("google", [SafetyBlockedError("blocked", provider="google")])
        groq = FakeProvider("groq", ["A safe post about cats."])
        router = _router(google, groq)

        result = await router.generate("write a blog post about cats", "gemini-pro")

        assert result.content == "A safe post about cats."
        assert result.model_used == "llama-3.1-sonar-large-128k-online"
        assert result.model_used != "gemini-pro"
        assert result.fallback_used
        assert groq.calls[0]["model"] == "llama-3.1-sonar-large-128k-online"

    @pytest.mark.asyncio
    async def test_fallback_also_blocked(self):
        """Test that a blocked fallback surfaces as a non-retryable upstream error."""
        router = _router(
            FakeProvider("google", [SafetyBlockedError("blocked")]),
            FakeProvider("groq", [SafetyBlockedError("blocked too")]),
        )

        with pytest.raises(UpstreamError) as exc_info:
            await router.generate("prompt", "gemini-pro")

        assert exc_info.value.status == 422
        assert not exc_info.value.is_retryable()

    @pytest.mark.asyncio
    async def test_safety_block_without_fallback_provider(self):
        """Test that a block with no fallback configured is an upstream error."""
        router = _router(FakeProvider("google", [SafetyBlockedError("blocked")]))

        with pytest.raises(UpstreamError, match="no fallback"):
            await router.generate("prompt", "gemini-pro")

    @pytest.mark.asyncio
    async def test_non_safety_failure_does_not_fall_back(self):
        """Test that ordinary provider errors propagate without fallback."""
        groq = FakeProvider("groq")
        router = _router(FakeProvider("google", [UpstreamError("quota", status=429)]), groq)

        with pytest.raises(UpstreamError, match="quota"):
            await router.generate("prompt", "gemini-pro")

        assert groq.calls == []

    @pytest.mark.asyncio
    async def test_keyed_model_without_key_is_unavailable(self):
        """Test that gpt-4 without a user key fails before any upstream call."""
        created = []
        google = FakeProvider("google")
        router = _router(google, FakeProvider("groq"), factory=lambda *a, **kw: created.append(a))

        with pytest.raises(UnavailableError) as exc_info:
            await router.generate("prompt", "gpt-4")

        assert exc_info.value.kind is ErrorKind.UNAVAILABLE
        assert "add your API key" in str(exc_info.value)
        assert created == []
        assert google.calls == []

    @pytest.mark.asyncio
    async def test_unknown_model_is_unavailable(self):
        """Test that a model outside the catalog is rejected."""
        router = _router(FakeProvider("google"))

        with pytest.raises(UnavailableError, match="Unknown model"):
            await router.generate("prompt", "gpt-7")

    @pytest.mark.asyncio
    async def test_user_key_builds_and_closes_provider(self):
        """Test that a caller key builds a per-request provider that is closed afterwards."""
        built = []

        def factory(name, **config):
            provider = FakeProvider(name, ["From Claude."])
            built.append((name, config, provider))
            return provider

        router = _router(FakeProvider("google"), factory=factory)

        result = await router.generate("prompt", "claude-3-haiku", {"Anthropic": "sk-ant"})

        name, config, provider = built[0]
        assert name == "anthropic"
        assert config == {"api_key": "sk-ant", "model": "claude-3-haiku"}
        assert provider.closed
        assert result.model_used == "claude-3-haiku"

    @pytest.mark.asyncio
    async def test_safety_block_on_keyed_provider_does_not_fall_back(self):
        """Test that only the default provider's blocks trigger fallback."""
        groq = FakeProvider("groq")
        router = _router(
            FakeProvider("google"), groq,
            factory=lambda name, **config: FakeProvider(name, [SafetyBlockedError("no")]),
        )

        with pytest.raises(UpstreamError) as exc_info:
            await router.generate("prompt", "gpt-4", {"openai": "sk"})

        assert exc_info.value.status == 422
        assert groq.calls == []

    @pytest.mark.asyncio
    async def test_server_provider_missing_needs_user_key(self):
        """Test that a free provider without a server key accepts a user key."""
        router = _router(
            FakeProvider("google"),
            factory=lambda name, **config: FakeProvider(name, ["llama says hi"]),
        )

        with pytest.raises(UnavailableError):
            await router.generate("prompt", "llama-3.1-sonar-small-128k-online")

        result = await router.generate("prompt", "llama-3.1-sonar-small-128k-online", {"groq": "gsk"})
        assert result.content == "llama says hi"

    @pytest.mark.asyncio
    async def test_empty_content_is_upstream_error(self):
        """Test that an empty completion is treated as a failure."""
        router = _router(FakeProvider("google", [""]))

        with pytest.raises(UpstreamError, match="No content was returned"):
            await router.generate("prompt", "gemini-pro")

    @pytest.mark.asyncio
    async def test_close_closes_server_providers(self):
        """Test router cleanup."""
        google, groq = FakeProvider("google"), FakeProvider("groq")

        async with _router(google, groq) as router:
            assert router.server_key_providers() == {"google", "groq"}

        assert google.closed and groq.closed
