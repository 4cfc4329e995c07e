"""Local Methods — tests for the in-process demo handlers and param validation."""

import pytest

from mcp_relay.core.domain_types import ContentChunk, ContentKind, ContentResult
from mcp_relay.core.errors import InvalidParamsError
from mcp_relay.services.local_methods import (
    DemoHandlers, deepwiki_params, format_number,
)


@pytest.fixture
def demo():
    return DemoHandlers("http://flowgram.ai/")


@pytest.mark.parametrize("value,expected", [
    (3, "3"), (3.0, "3"), (3.5, "3.5"), (-2, "-2"),
])
def test_format_number(value, expected):
    assert format_number(value) == expected


async def test_add_integers(demo):
    assert await demo.add({"a": 2, "b": 3}) == ContentResult.of_text("5")


async def test_add_floats(demo):
    assert await demo.add({"a": 0.5, "b": 1}) == ContentResult.of_text("1.5")


async def test_add_rejects_missing_operand(demo):
    with pytest.raises(InvalidParamsError) as exc:
        await demo.add({"a": 1})
    assert exc.value.code == "INVALID_PARAMS"
    assert exc.value.http_status == 400
    assert "b:" in exc.value.message


async def test_flowgram_encodes_query_and_strips_trailing_slash(demo):
    result = await demo.flowgram({"query": "a/b c?"})
    assert result == ContentResult.of_text(
        "Flowgram link: http://flowgram.ai?q=a%2Fb%20c%3F",
    )


async def test_review_code_prompt(demo):
    result = await demo.review_code({"code": "x = 1"})
    assert result == ContentResult.of_text("Please review this code:\n\nx = 1")


async def test_filename_is_a_resource_chunk(demo):
    result = await demo.filename({"uri": "file:///demo"})
    assert result.content == (
        ContentChunk(ContentKind.RESOURCE, "content of filename", uri="file:///demo"),
    )


def test_deepwiki_params_keeps_only_query():
    assert deepwiki_params({"query": "httpx", "other": 1}) == {"query": "httpx"}


def test_deepwiki_params_requires_query():
    with pytest.raises(InvalidParamsError):
        deepwiki_params({})
