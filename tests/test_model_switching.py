import httpx

from gemini_proxy.errors import UpstreamError, UpstreamRateLimitError
from gemini_proxy.schemas import CompletionResult
from gemini_proxy.services.model_switching import AutoModelSwitchingHelper

from .support import make_settings


def test_fallback_map():
    helper = AutoModelSwitchingHelper(make_settings())

    assert helper.get_fallback_model("gemini-2.5-pro") == "gemini-2.5-flash"
    assert helper.get_fallback_model("gemini-3-pro-preview") == "gemini-3-flash-preview"
    assert helper.get_fallback_model("gemini-2.5-flash") is None
    assert helper.get_fallback_model(None) is None


def test_rate_limit_detection():
    helper = AutoModelSwitchingHelper(make_settings())

    assert helper.is_rate_limit_error(UpstreamRateLimitError(429))
    assert helper.is_rate_limit_error(UpstreamError(503))
    assert helper.is_rate_limit_error(httpx.ReadError("Quota exceeded for project"))
    assert not helper.is_rate_limit_error(UpstreamError(500))


def test_switch_notification_names_both_models():
    notice = AutoModelSwitchingHelper(make_settings()).create_switch_notification("a-pro", "a-flash")

    assert notice == "[Auto-switched from a-pro to a-flash because a-pro is rate limited]\n\n"


async def test_non_streaming_fallback_prefixes_notice():
    helper = AutoModelSwitchingHelper(make_settings(ENABLE_AUTO_MODEL_SWITCHING=True))
    requested = []

    async def complete(model_id):
        requested.append(model_id)
        return CompletionResult(content="answer")

    result = await helper.handle_non_streaming_fallback("gemini-2.5-pro", complete)

    assert requested == ["gemini-2.5-flash"]
    assert result.content.startswith("[Auto-switched from gemini-2.5-pro to gemini-2.5-flash")
    assert result.content.endswith("answer")


async def test_non_streaming_fallback_disabled():
    helper = AutoModelSwitchingHelper(make_settings())

    async def complete(model_id):
        raise AssertionError("should not be called")

    assert await helper.handle_non_streaming_fallback("gemini-2.5-pro", complete) is None
