import base64

import pytest

from gemini_proxy.errors import ContentValidationError
from gemini_proxy.message_processor import message_processor

PDF_DATA = base64.b64encode(b"%PDF-1.4\n%minimal\n").decode("ascii")
PNG_DATA_URI = "data:image/png;base64,iVBORw0KGgo="


def test_roles_are_remapped_and_system_prompt_leads():
    messages = [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello"},
    ]

    system_prompt, others = message_processor.extract_system_prompt(messages)
    contents = message_processor.to_gemini_contents(others, system_prompt)

    assert contents == [
        {"role": "user", "parts": [{"text": "Be brief."}]},
        {"role": "user", "parts": [{"text": "Hi"}]},
        {"role": "model", "parts": [{"text": "Hello"}]},
    ]


def test_last_system_message_wins_and_list_content_is_joined():
    messages = [
        {"role": "system", "content": "first"},
        {"role": "system", "content": [{"type": "text", "text": "second"}, {"type": "text", "text": "part"}]},
        {"role": "user", "content": "Hi"},
    ]

    system_prompt, others = message_processor.extract_system_prompt(messages)

    assert system_prompt == "second part"
    assert others == [{"role": "user", "content": "Hi"}]


def test_input_messages_are_not_mutated():
    messages = [{"role": "system", "content": "s"}, {"role": "user", "content": "u"}]
    snapshot = [dict(message) for message in messages]

    system_prompt, others = message_processor.extract_system_prompt(messages)
    message_processor.to_gemini_contents(others, system_prompt)

    assert messages == snapshot


def test_tool_result_becomes_function_response():
    converted = message_processor.message_to_gemini_format(
        {"role": "tool", "tool_call_id": "get_weather", "content": "sunny"}
    )

    assert converted == {
        "role": "user",
        "parts": [{"functionResponse": {"name": "get_weather", "response": {"result": "sunny"}}}],
    }


def test_assistant_tool_calls_become_function_calls_after_text():
    converted = message_processor.message_to_gemini_format(
        {
            "role": "assistant",
            "content": "Checking.",
            "tool_calls": [
                {
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": "get_weather", "arguments": '{"city": "Paris"}'},
                }
            ],
        }
    )

    assert converted == {
        "role": "model",
        "parts": [
            {"text": "Checking."},
            {"functionCall": {"name": "get_weather", "args": {"city": "Paris"}}},
        ],
    }


def test_malformed_tool_call_arguments_are_rejected():
    message = {
        "role": "assistant",
        "tool_calls": [{"type": "function", "function": {"name": "f", "arguments": "{broken"}}],
    }

    with pytest.raises(ContentValidationError, match="Invalid arguments for tool call 'f'"):
        message_processor.message_to_gemini_format(message)


def test_multimodal_parts_keep_their_order():
    converted = message_processor.message_to_gemini_format(
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "Look:"},
                {"type": "image_url", "image_url": {"url": PNG_DATA_URI}},
                {"type": "image_url", "image_url": {"url": "https://example.com/cat.png"}},
                {"type": "input_audio", "input_audio": {"data": "AAAA", "format": "audio/wav"}},
                {"type": "input_pdf", "input_pdf": {"data": f"data:application/pdf;base64,{PDF_DATA}"}},
            ],
        }
    )

    assert converted["parts"] == [
        {"text": "Look:"},
        {"inlineData": {"mimeType": "image/png", "data": "iVBORw0KGgo="}},
        {"fileData": {"mimeType": "image/png", "fileUri": "https://example.com/cat.png"}},
        {"inlineData": {"mimeType": "audio/wav", "data": "AAAA"}},
        {"inlineData": {"mimeType": "application/pdf", "data": PDF_DATA}},
    ]


def test_remote_image_without_extension_defaults_to_jpeg():
    part = message_processor.message_to_gemini_format(
        {"role": "user", "content": [{"type": "image_url", "image_url": {"url": "https://example.com/img"}}]}
    )["parts"][0]

    assert part == {"fileData": {"mimeType": "image/jpeg", "fileUri": "https://example.com/img"}}


def test_invalid_image_is_rejected():
    with pytest.raises(ContentValidationError, match="^Invalid image:"):
        message_processor.message_to_gemini_format(
            {"role": "user", "content": [{"type": "image_url", "image_url": {"url": "ftp://example.com/a.png"}}]}
        )


def test_invalid_pdf_is_rejected():
    bogus = base64.b64encode(b"not a pdf").decode("ascii")

    with pytest.raises(ContentValidationError, match="^Invalid PDF:"):
        message_processor.message_to_gemini_format(
            {"role": "user", "content": [{"type": "input_pdf", "input_pdf": {"data": bogus}}]}
        )


def test_video_inline_and_remote_with_metadata():
    inline = message_processor.message_to_gemini_format(
        {
            "role": "user",
            "content": [
                {
                    "type": "input_video",
                    "input_video": {
                        "data": "AAAA",
                        "format": "video/mp4",
                        "videoMetadata": {"startOffset": "1s", "endOffset": "5s", "fps": None},
                    },
                },
                {"type": "input_video", "input_video": {"url": "https://example.com/clip.webm", "format": "video/webm"}},
            ],
        }
    )["parts"]

    assert inline == [
        {
            "inlineData": {"mimeType": "video/mp4", "data": "AAAA"},
            "videoMetadata": {"startOffset": "1s", "endOffset": "5s"},
        },
        {"fileData": {"mimeType": "video/webm", "fileUri": "https://example.com/clip.webm"}},
    ]


def test_video_without_source_is_rejected():
    with pytest.raises(ContentValidationError, match="Invalid video"):
        message_processor.message_to_gemini_format(
            {"role": "user", "content": [{"type": "input_video", "input_video": {"format": "video/mp4"}}]}
        )


def test_unknown_parts_and_missing_content_fall_back_to_text():
    unknown = {"type": "hologram", "payload": 1}

    listed = message_processor.message_to_gemini_format({"role": "user", "content": [unknown]})
    empty = message_processor.message_to_gemini_format({"role": "assistant"})

    assert listed["parts"] == [{"text": str(unknown)}]
    assert empty == {"role": "model", "parts": [{"text": ""}]}


def test_extract_last_user_content():
    messages = [
        {"role": "user", "content": "old"},
        {"role": "assistant", "content": "reply"},
        {"role": "user", "content": [{"type": "text", "text": "new"}, {"type": "image_url"}, {"type": "text", "text": "one"}]},
    ]

    assert message_processor.extract_last_user_content(messages) == "new one"
    assert message_processor.extract_last_user_content([{"role": "assistant", "content": "x"}]) == ""
