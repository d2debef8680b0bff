"""
OpenAI API endpoints
"""

import time
from typing import Optional

from fastapi import APIRouter, File, Form, Header, HTTPException, UploadFile
from fastapi.responses import StreamingResponse

from .constants import DEFAULT_TRANSCRIPTION_PROMPT, OPENAI_MODEL_OWNER
from .errors import AuthenticationError, ContentValidationError, UpstreamError
from .helpers import (
    debug_log,
    error_log,
    json_lib,
    request_stage_log,
    reset_request_context,
)
from .models import DEFAULT_MODEL, get_all_model_ids
from .schemas import Model, ModelsResponse, OpenAIRequest
from .services.openai_service import chat_completion_service

router = APIRouter()

service = chat_completion_service


@router.get("/v1/models")
async def list_models():
    """List available models"""
    current_time = int(time.time())
    return ModelsResponse(
        data=[
            Model(id=model_id, created=current_time, owned_by=OPENAI_MODEL_OWNER)
            for model_id in get_all_model_ids()
        ]
    )


@router.post("/v1/chat/completions")
async def chat_completions(request: OpenAIRequest, authorization: Optional[str] = Header(None)):
    """Chat completions, streaming by default"""
    request_stage_log(
        "received",
        "Client request received",
        model=request.model,
        stream=request.stream,
        message_count=len(request.messages),
        tools_count=len(request.tools) if request.tools else 0,
    )
    debug_log("Client request body", request_body=json_lib.dumps(request.model_dump(exclude_none=True)))

    try:
        await service.ensure_authorization(authorization)
        prepared = service.prepare_request(request)

        try:
            await service.authenticate()
        except AuthenticationError as exc:
            error_log("[AUTH] Authentication failed", error=str(exc))
            raise HTTPException(status_code=401, detail=f"Authentication failed: {exc}")

        if not prepared.stream:
            try:
                return await service.handle_non_stream_request(prepared)
            except UpstreamError as exc:
                status_code = exc.status_code if exc.status_code and exc.status_code >= 400 else 500
                raise HTTPException(status_code=status_code, detail=str(exc))
            except AuthenticationError as exc:
                raise HTTPException(status_code=401, detail=f"Authentication failed: {exc}")

        async def stream_response():
            try:
                async for chunk in service.stream_response(prepared):
                    yield chunk
                request_stage_log("stream_finished", "Stream generator finished")
            finally:
                reset_request_context()

        return StreamingResponse(
            stream_response(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
            },
        )

    except ContentValidationError as exc:
        reset_request_context()
        raise HTTPException(status_code=400, detail=str(exc))
    except HTTPException:
        reset_request_context()
        raise
    except Exception as e:
        reset_request_context()
        error_log("Unhandled error while processing request", error=str(e))
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@router.post("/v1/audio/transcriptions")
async def audio_transcriptions(
    file: Optional[UploadFile] = File(None),
    model: Optional[str] = Form(None),
    prompt: Optional[str] = Form(None),
    authorization: Optional[str] = Header(None),
):
    """Transcribe an uploaded audio or video file"""
    model = model or DEFAULT_MODEL
    request_stage_log(
        "received",
        "Transcription request received",
        model=model,
        filename=file.filename if file else None,
    )

    try:
        await service.ensure_authorization(authorization)
        if file is None:
            raise ContentValidationError("File is required")

        messages = service.prepare_transcription(
            model,
            prompt or DEFAULT_TRANSCRIPTION_PROMPT,
            file.filename,
            file.content_type,
            await file.read(),
        )

        try:
            await service.authenticate()
            return await service.handle_transcription(model, messages)
        except AuthenticationError as exc:
            error_log("[AUTH] Authentication failed", error=str(exc))
            raise HTTPException(status_code=401, detail=f"Authentication failed: {exc}")
        except UpstreamError as exc:
            status_code = exc.status_code if exc.status_code and exc.status_code >= 400 else 500
            raise HTTPException(status_code=status_code, detail=str(exc))

    except ContentValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except HTTPException:
        raise
    except Exception as e:
        error_log("Unhandled error while transcribing", error=str(e))
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")
    finally:
        reset_request_context()
