import json
import time

import httpx

from gemini_proxy.config import Settings

STREAM_PATH = "/v1internal:streamGenerateContent"
TOKEN_URL = "https://oauth2.googleapis.com/token"


def credentials_json(expires_in: int = 3600) -> str:
    return json.dumps(
        {
            "access_token": "stored-token",
            "refresh_token": "refresh-token",
            "expiry_date": int((time.time() + expires_in) * 1000),
        }
    )


BASE_SETTINGS = {
    "GCP_SERVICE_ACCOUNT": credentials_json(),
    "GEMINI_PROJECT_ID": "test-project",
    "OAUTH_CLIENT_ID": "client-id",
    "OAUTH_CLIENT_SECRET": "client-secret",
    "OPENAI_API_KEY": None,
    "ENABLE_FAKE_THINKING": False,
    "ENABLE_REAL_THINKING": False,
    "STREAM_THINKING_AS_CONTENT": False,
    "ENABLE_AUTO_MODEL_SWITCHING": False,
    "ENABLE_GEMINI_NATIVE_TOOLS": False,
    "ENABLE_GOOGLE_SEARCH": False,
    "ENABLE_URL_CONTEXT": False,
    "ENABLE_INLINE_CITATIONS": False,
    "GEMINI_TOOLS_PRIORITY": "native_first",
    "DEFAULT_TO_NATIVE_TOOLS": True,
    "ALLOW_REQUEST_TOOL_CONTROL": True,
    "GEMINI_MODERATION_HARASSMENT_THRESHOLD": None,
    "GEMINI_MODERATION_HATE_SPEECH_THRESHOLD": None,
    "GEMINI_MODERATION_SEXUALLY_EXPLICIT_THRESHOLD": None,
    "GEMINI_MODERATION_DANGEROUS_CONTENT_THRESHOLD": None,
    "HTTPS_PROXY": None,
}


def make_settings(**overrides) -> Settings:
    return Settings(**{**BASE_SETTINGS, **overrides})


def sse_body(*frames) -> bytes:
    return b"".join(f"data: {json.dumps(frame)}\n\n".encode("utf-8") for frame in frames)


def text_frame(text, thought=False, usage=None):
    part = {"text": text}
    if thought:
        part["thought"] = True
    response = {"candidates": [{"content": {"role": "model", "parts": [part]}}]}
    if usage:
        response["usageMetadata"] = usage
    return {"response": response}


class UpstreamRecorder:
    """MockTransport handler replaying queued stream responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.stream_requests = []
        self.token_requests = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == TOKEN_URL:
            self.token_requests += 1
            return httpx.Response(200, json={"access_token": f"refreshed-{self.token_requests}", "expires_in": 3600})
        if request.url.path == STREAM_PATH:
            self.stream_requests.append(
                {
                    "body": json.loads(request.content),
                    "authorization": request.headers.get("authorization"),
                    "query": dict(request.url.params),
                }
            )
            status, content = self.responses.pop(0)
            return httpx.Response(status, content=content)
        return httpx.Response(404, json={"error": "unexpected"})


async def collect(stream):
    return [chunk async for chunk in stream]
