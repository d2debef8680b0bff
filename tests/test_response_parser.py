from gemini_proxy.citations import CitationsProcessor
from gemini_proxy.constants import THINKING_CLOSE_TAG, THINKING_OPEN_TAG
from gemini_proxy.schemas import ChunkType, FunctionCallData, UsageData
from gemini_proxy.services.response_parser import ResponseParser, ThinkingState

from .support import make_settings, text_frame


def _frame(*parts, usage=None, grounding=None):
    candidate = {"content": {"role": "model", "parts": list(parts)}}
    if grounding:
        candidate["groundingMetadata"] = grounding
    response = {"candidates": [candidate]}
    if usage:
        response["usageMetadata"] = usage
    return {"response": response}


def _types(chunks):
    return [chunk.type for chunk in chunks]


def test_plain_text_and_usage():
    parser = ResponseParser()

    chunks = parser.parse_frame(text_frame("Hi", usage={"promptTokenCount": 4, "candidatesTokenCount": 2}))

    assert _types(chunks) == [ChunkType.TEXT, ChunkType.USAGE]
    assert chunks[0].data == "Hi"
    assert chunks[1].data == UsageData(input_tokens=4, output_tokens=2)


def test_missing_token_counts_default_to_zero():
    chunks = ResponseParser().parse_frame(_frame(usage={"totalTokenCount": 9}))

    assert [chunk.data for chunk in chunks] == [UsageData(0, 0)]


def test_thoughts_become_real_thinking_by_default():
    chunks = ResponseParser().parse_frame(text_frame("pondering", thought=True))

    assert _types(chunks) == [ChunkType.REAL_THINKING]
    assert chunks[0].data == "pondering"


def test_thoughts_as_content_open_and_close_exactly_once():
    parser = ResponseParser(real_thinking_as_content=True)

    chunks = []
    for frame in (
        text_frame("step one", thought=True),
        text_frame("step two", thought=True),
        text_frame("Answer"),
        text_frame(" continues"),
    ):
        chunks.extend(parser.parse_frame(frame))

    assert [chunk.data for chunk in chunks] == [
        THINKING_OPEN_TAG,
        "step one",
        "step two",
        THINKING_CLOSE_TAG,
        "Answer",
        " continues",
    ]
    assert parser.state.thinking is ThinkingState.CLOSED


def test_preamble_close_precedes_first_text():
    parser = ResponseParser(needs_thinking_close=True)

    chunks = parser.parse_frame(text_frame("Hello")) + parser.parse_frame(text_frame("again"))

    assert [chunk.data for chunk in chunks] == [THINKING_CLOSE_TAG, "Hello", "again"]
    assert chunks[0].type == ChunkType.THINKING_CONTENT


def test_function_call_closes_thinking_first():
    parser = ResponseParser(needs_thinking_close=True)

    chunks = parser.parse_frame(_frame({"functionCall": {"name": "lookup", "args": {"q": "x"}}}))

    assert _types(chunks) == [ChunkType.THINKING_CONTENT, ChunkType.TOOL_CODE]
    assert chunks[1].data == FunctionCallData(name="lookup", args={"q": "x"})


def test_function_call_without_args():
    chunks = ResponseParser().parse_frame(_frame({"functionCall": {"name": "ping"}}))

    assert chunks[0].data == FunctionCallData(name="ping", args={})


def test_inline_think_delimiters_are_split_out():
    parser = ResponseParser(real_thinking_as_content=True)

    chunks = parser.parse_frame(text_frame("<think>plan</think>  The answer"))

    assert [chunk.data for chunk in chunks] == [THINKING_OPEN_TAG, "plan", THINKING_CLOSE_TAG, "The answer"]


def test_inline_think_delimiters_without_content_mode():
    chunks = ResponseParser().parse_frame(text_frame("<think>a</think>x<think>b</think>"))

    assert [(chunk.type, chunk.data) for chunk in chunks] == [
        (ChunkType.REAL_THINKING, "a"),
        (ChunkType.REAL_THINKING, "b"),
        (ChunkType.TEXT, "x"),
    ]


def test_unterminated_think_tag_is_plain_text():
    chunks = ResponseParser().parse_frame(text_frame("<think>never closed"))

    assert [(chunk.type, chunk.data) for chunk in chunks] == [(ChunkType.TEXT, "<think>never closed")]


def test_frames_without_candidates_yield_nothing():
    assert ResponseParser().parse_frame({"response": {}}) == []
    assert ResponseParser().parse_frame({}) == []


def test_citations_are_applied_to_text():
    grounding = {
        "groundingChunks": [{"web": {"uri": "https://example.com/a"}}],
        "groundingSupports": [{"segment": {"text": "Paris"}, "groundingChunkIndices": [0]}],
    }
    parser = ResponseParser(citations=CitationsProcessor(make_settings(ENABLE_INLINE_CITATIONS=True)))

    chunks = parser.parse_frame(_frame({"text": "Paris is the capital."}, grounding=grounding))

    assert chunks[0].data == "Paris [1] is the capital."


async def test_parse_consumes_frame_stream():
    async def frames():
        yield text_frame("a")
        yield text_frame("b")

    parser = ResponseParser()
    chunks = [chunk async for chunk in parser.parse(frames())]

    assert [chunk.data for chunk in chunks] == ["a", "b"]
    assert parser.state.frames == 2
