import httpx
import pytest

from gemini_proxy.auth import AuthManager
from gemini_proxy.services.gemini_client import GeminiApiClient
from gemini_proxy.services.thinking import FakeThinkingGenerator

from .support import make_settings


@pytest.fixture
def make_client():
    def factory(handler, **overrides):
        client_settings = make_settings(**overrides)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        auth = AuthManager(client_settings, http_client=http_client)
        return GeminiApiClient(
            settings=client_settings,
            auth=auth,
            http_client=http_client,
            fake_thinking=FakeThinkingGenerator(reasoning_delay=0, content_chunk_delay=0),
        )

    return factory
