#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Media and request validators
"""

import base64
import binascii
import mimetypes
import re
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

from .constants import GENERIC_UPLOAD_MIME_TYPE, MIME_TYPE_MAP, PDF_DATA_URI_PREFIX
from .helpers import debug_log
from .models import GEMINI_MODELS, get_all_model_ids, get_model_info

_DATA_URI_PATTERN = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>[A-Za-z0-9+/=\s]+)$",
    re.DOTALL,
)

_BASE64_WHITESPACE = re.compile(r"[\t\n\f\r ]+")

# registry attribute checked for each OpenAI media part type, with a readable name
MEDIA_SUPPORT_CHECKS = (
    ("image_url", "supports_images", "image inputs"),
    ("input_audio", "supports_audios", "audio inputs"),
    ("input_video", "supports_videos", "video inputs"),
    ("input_pdf", "supports_pdfs", "PDF inputs"),
)


def is_data_uri(url: str) -> bool:
    return url.startswith("data:")


def parse_data_uri(url: str) -> Optional[Tuple[str, str]]:
    """
    Split a base64 data URI.

    Returns:
        (mime_type, base64_payload), or None when the URI is malformed
    """
    match = _DATA_URI_PATTERN.match(url)
    if not match:
        return None
    return match.group("mime"), match.group("data")


def validate_image_url(url: str) -> Tuple[bool, Optional[str]]:
    """
    Check an image reference.

    Data URIs must carry both a MIME type and a base64 payload. Remote URLs
    must be http(s) with a host; their MIME type is guessed from the path.

    Returns:
        (is_valid, mime_type); mime_type may be None for remote URLs
    """
    if not url:
        return False, None

    if is_data_uri(url):
        parsed = parse_data_uri(url)
        if parsed is None:
            debug_log("[VALIDATION] Malformed image data URI", prefix=url[:40])
            return False, None
        return True, parsed[0]

    parts = urlparse(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return False, None

    mime_type, _ = mimetypes.guess_type(parts.path)
    if mime_type and not mime_type.startswith("image/"):
        mime_type = None
    return True, mime_type


def strip_pdf_prefix(data: str) -> str:
    if data.startswith(PDF_DATA_URI_PREFIX):
        return data[len(PDF_DATA_URI_PREFIX):]
    return data


def validate_pdf_base64(data: str) -> bool:
    """
    True when the payload decodes to bytes starting with the %PDF- signature.

    Line-wrapped and unpadded payloads are accepted; characters outside the
    base64 alphabet are not.
    """
    payload = _BASE64_WHITESPACE.sub("", strip_pdf_prefix(data))
    payload += "=" * (-len(payload) % 4)
    try:
        decoded = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return False
    return decoded[:5] == b"%PDF-"


def validate_model(model_id: str) -> Tuple[bool, Optional[str]]:
    if model_id not in GEMINI_MODELS:
        return False, f"Model '{model_id}' not found. Available models: {', '.join(get_all_model_ids())}"
    return True, None


def is_media_type_supported(model_id: str, support_key: str) -> bool:
    info = get_model_info(model_id)
    return bool(info and getattr(info, support_key, False))


def validate_content(content_type: str, part: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate one OpenAI content part of the given type.

    Returns:
        (is_valid, error_message)
    """
    if content_type == "image_url":
        image_url = (part.get("image_url") or {}).get("url")
        if not image_url:
            return False, "Missing image URL."
        is_valid, _ = validate_image_url(image_url)
        if not is_valid:
            return False, "Invalid image URL or format."
        return True, None

    if content_type == "input_pdf":
        pdf_data = (part.get("input_pdf") or {}).get("data")
        if not pdf_data:
            return False, "Missing PDF data."
        if not validate_pdf_base64(pdf_data):
            return False, "Invalid PDF data. Please ensure the content is a valid base64 encoded PDF."
        return True, None

    return True, None


def resolve_upload_mime_type(filename: Optional[str], content_type: Optional[str]) -> str:
    """Content type of an uploaded file, guessed from its extension when the client sent a generic one."""
    mime_type = content_type or GENERIC_UPLOAD_MIME_TYPE
    if mime_type == GENERIC_UPLOAD_MIME_TYPE and filename and "." in filename:
        extension = filename.rsplit(".", 1)[-1].lower()
        if extension in MIME_TYPE_MAP:
            mime_type = MIME_TYPE_MAP[extension]
            debug_log("[VALIDATION] Upload MIME type taken from extension", extension=extension, mime_type=mime_type)
    return mime_type
