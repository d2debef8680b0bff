"""Client for the Code Assist streamGenerateContent endpoint."""

from __future__ import annotations

import time
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..auth import AuthManager, auth_manager
from ..citations import CitationsProcessor
from ..config import Settings, settings as default_settings
from ..constants import (
    AUTH_ERROR_STATUS,
    CODE_ASSIST_METADATA,
    RATE_LIMIT_STATUS_CODES,
    THINKING_CLOSE_TAG,
)
from ..errors import (
    AuthenticationError,
    UpstreamAuthError,
    UpstreamError,
    UpstreamRateLimitError,
)
from ..generation_config import (
    create_final_tool_configuration,
    create_safety_settings,
    create_validated_config,
    resolve_reasoning,
)
from ..helpers import debug_log, error_log, info_log, perf_timer, request_stage_log
from ..message_processor import message_processor
from ..models import is_thinking_model
from ..native_tools import NativeToolsManager, NativeToolsParams
from ..schemas import ChunkType, CompletionOptions, CompletionResult, StreamChunk
from .aggregator import aggregate_chunks
from .model_switching import AutoModelSwitchingHelper
from .network_manager import network_manager
from .response_parser import ResponseParser
from .sse_parser import parse_sse_stream
from .thinking import FakeThinkingGenerator


class GeminiApiClient:
    """Builds Code Assist requests and streams normalized chunks back."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        auth: Optional[AuthManager] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        switch_helper: Optional[AutoModelSwitchingHelper] = None,
        fake_thinking: Optional[FakeThinkingGenerator] = None,
    ) -> None:
        self.settings = settings or default_settings
        self.auth = auth or auth_manager
        self._http_client = http_client
        self.switch_helper = switch_helper or AutoModelSwitchingHelper(self.settings)
        self.fake_thinking = fake_thinking or FakeThinkingGenerator()
        self.native_tools = NativeToolsManager(self.settings)
        self._project_id: Optional[str] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return await network_manager.get_or_create_client(self.settings.HTTPS_PROXY)

    async def discover_project_id(self) -> str:
        """
        Resolve the Cloud AI Companion project once per client.

        Concurrent first calls may both run discovery; they resolve the same
        value and only the first assignment is kept.
        """
        if self._project_id:
            return self._project_id

        if self.settings.GEMINI_PROJECT_ID:
            self._project_id = self.settings.GEMINI_PROJECT_ID
            return self._project_id

        try:
            with perf_timer("load_code_assist"):
                data = await self.auth.call_endpoint(
                    "loadCodeAssist",
                    {
                        "cloudaicompanionProject": "default-project",
                        "metadata": CODE_ASSIST_METADATA,
                    },
                )
        except (UpstreamError, httpx.HTTPError) as exc:
            error_log("[PROJECT] loadCodeAssist failed", error=str(exc))
            raise AuthenticationError(f"Could not discover project ID: {exc}") from exc

        project = data.get("cloudaicompanionProject")
        if isinstance(project, dict):
            project = project.get("id")
        if not project:
            raise AuthenticationError(
                "Could not discover project ID. Make sure you're authenticated and consider setting GEMINI_PROJECT_ID."
            )

        if self._project_id is None:
            self._project_id = project
            info_log("[PROJECT] Discovered project", project_id=project)
        return self._project_id

    def build_stream_request(
        self,
        model_id: str,
        project_id: str,
        contents: List[Dict[str, Any]],
        options: CompletionOptions,
        include_reasoning: bool,
    ):
        """
        Returns:
            (envelope, tool_configuration)
        """
        generation_config = create_validated_config(
            model_id,
            options,
            self.settings.ENABLE_REAL_THINKING,
            include_reasoning,
        )

        tool_configuration = self.native_tools.determine_tool_configuration(
            options.tools,
            NativeToolsParams(
                enable_search=options.enable_search,
                enable_url_context=options.enable_url_context,
                enable_native_tools=options.enable_native_tools,
                native_tools_priority=options.native_tools_priority,
            ),
            model_id,
        )
        tools, tool_config = create_final_tool_configuration(tool_configuration, options)

        request: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": generation_config,
        }
        if tools:
            request["tools"] = tools
        if tool_config:
            request["toolConfig"] = tool_config

        safety_settings = create_safety_settings(self.settings)
        if safety_settings:
            request["safetySettings"] = safety_settings

        envelope = {"model": model_id, "project": project_id, "request": request}
        return envelope, tool_configuration

    async def stream_content(
        self,
        model_id: str,
        system_prompt: str,
        messages: List[Dict[str, Any]],
        options: Optional[CompletionOptions] = None,
    ) -> AsyncIterator[StreamChunk]:
        options = options or CompletionOptions()

        # malformed content fails here, before any upstream traffic
        contents = message_processor.to_gemini_contents(messages, system_prompt)
        include_reasoning, _ = resolve_reasoning(
            model_id,
            options.include_reasoning,
            options.thinking_budget,
            options.reasoning_effort,
        )

        await self.auth.initialize_auth()
        project_id = await self.discover_project_id()

        envelope, tool_configuration = self.build_stream_request(
            model_id, project_id, contents, options, include_reasoning
        )

        stream_as_content = self.settings.STREAM_THINKING_AS_CONTENT
        needs_thinking_close = False
        if is_thinking_model(model_id) and self.settings.ENABLE_FAKE_THINKING and not include_reasoning:
            async for chunk in self.fake_thinking.generate(messages, stream_as_content):
                yield chunk
            needs_thinking_close = stream_as_content

        async for chunk in self._perform_stream_request(
            envelope,
            needs_thinking_close=needs_thinking_close,
            real_thinking_as_content=include_reasoning and stream_as_content,
            original_model=model_id,
            annotate_citations=tool_configuration.use_native_tools,
        ):
            yield chunk

    async def _perform_stream_request(
        self,
        envelope: Dict[str, Any],
        needs_thinking_close: bool,
        real_thinking_as_content: bool,
        original_model: str,
        annotate_citations: bool,
    ) -> AsyncIterator[StreamChunk]:
        """
        Issue the streaming call with at most one recovery attempt.

        A 401 refreshes credentials and replays the request; a 429/503 swaps
        in the fallback model when auto switching allows it. Any failure after
        the single retry is raised.
        """
        client = await self._get_client()
        url = self.auth.endpoint_url("streamGenerateContent")
        remaining_attempts = 1

        while True:
            is_retry = remaining_attempts == 0
            request_stage_log(
                "upstream_request",
                "Sending streaming request to Code Assist",
                model=envelope["model"],
                retry=is_retry,
            )
            request_start_time = time.perf_counter()
            try:
                async with client.stream(
                    "POST",
                    url,
                    params={"alt": "sse"},
                    json=envelope,
                    headers=self.auth.auth_headers(),
                ) as response:
                    ttfb = (time.perf_counter() - request_start_time) * 1000
                    debug_log("⏱️ Upstream TTFB", ttfb_ms=f"{ttfb:.2f}ms")

                    if not response.is_success:
                        status_code = response.status_code
                        error_text = (await response.aread()).decode("utf-8", errors="ignore")
                        error_log(
                            "[UPSTREAM] Stream request rejected",
                            status_code=status_code,
                            error_detail=error_text[:200],
                            retry=is_retry,
                        )

                        if status_code == AUTH_ERROR_STATUS and not is_retry:
                            remaining_attempts -= 1
                            info_log("[AUTH] Upstream returned 401, refreshing credentials")
                            await self.auth.clear_token_cache()
                            await self.auth.initialize_auth()
                            continue

                        if self.switch_helper.is_rate_limit_status(status_code) and not is_retry:
                            fallback_model = self.switch_helper.get_fallback_model(original_model)
                            if fallback_model and self.switch_helper.is_enabled():
                                remaining_attempts -= 1
                                info_log(
                                    "[MODEL_SWITCH] Rate limited, switching model",
                                    original_model=original_model,
                                    fallback_model=fallback_model,
                                    status_code=status_code,
                                )
                                if needs_thinking_close:
                                    # the notice is content, so the preamble ends here
                                    yield StreamChunk(ChunkType.THINKING_CONTENT, THINKING_CLOSE_TAG)
                                    needs_thinking_close = False
                                yield StreamChunk(
                                    ChunkType.TEXT,
                                    self.switch_helper.create_switch_notification(original_model, fallback_model),
                                )
                                envelope = {**envelope, "model": fallback_model}
                                continue

                        raise self._upstream_error(status_code, error_text, envelope["model"])

                    request_stage_log("upstream_stream_ready", "Upstream stream opened", status=response.status_code)
                    parser = ResponseParser(
                        real_thinking_as_content=real_thinking_as_content,
                        needs_thinking_close=needs_thinking_close,
                        citations=CitationsProcessor(self.settings) if annotate_citations else None,
                    )
                    received = {"bytes": 0}

                    async def body_bytes():
                        async for raw in response.aiter_bytes():
                            received["bytes"] += len(raw)
                            yield raw

                    async for chunk in parser.parse(parse_sse_stream(body_bytes())):
                        yield chunk

                    if not received["bytes"]:
                        raise UpstreamError(response.status_code, "Response has no body", model=envelope["model"])
                    parser.log_summary()
                    return
            except httpx.TransportError as exc:
                error_log("[UPSTREAM] Transport failure", error=str(exc))
                raise UpstreamError(None, f"Stream request failed: {exc}", model=envelope["model"]) from exc

    @staticmethod
    def _upstream_error(status_code: int, body: str, model: str) -> UpstreamError:
        if status_code == AUTH_ERROR_STATUS:
            return UpstreamAuthError(status_code, body=body, model=model)
        if status_code in RATE_LIMIT_STATUS_CODES:
            return UpstreamRateLimitError(status_code, body=body, model=model)
        return UpstreamError(status_code, body=body, model=model)

    async def get_completion(
        self,
        model_id: str,
        system_prompt: str,
        messages: List[Dict[str, Any]],
        options: Optional[CompletionOptions] = None,
    ) -> CompletionResult:
        try:
            return await aggregate_chunks(self.stream_content(model_id, system_prompt, messages, options))
        except (UpstreamError, httpx.HTTPError) as exc:
            # a failure on the already-switched model ends the single hop
            failed_model = getattr(exc, "model", None) or model_id
            if failed_model == model_id and self.switch_helper.is_rate_limit_error(exc):
                fallback_result = await self.switch_helper.handle_non_streaming_fallback(
                    model_id,
                    lambda fallback_model: aggregate_chunks(
                        self.stream_content(fallback_model, system_prompt, messages, options)
                    ),
                )
                if fallback_result is not None:
                    return fallback_result
            raise


gemini_client = GeminiApiClient()
