"""Tests for rule-set loading from files and URLs."""

import httpx
import pytest

from phishrules.errors import RuleSetLoadError
from phishrules.rules.loader import USER_AGENT, RuleSetLoader, is_remote


def test_is_remote():
    assert is_remote("https://example.com/rules.json")
    assert is_remote("HTTP://example.com/rules.json")
    assert not is_remote("./config/detection-rules.json")


@pytest.mark.asyncio
async def test_load_local_file(tmp_path):
    path = tmp_path / "rules.json"
    path.write_bytes(b'\xef\xbb\xbf{"rules": []}')
    text = await RuleSetLoader().load_text(path)
    assert text == '{"rules": []}'


@pytest.mark.asyncio
async def test_missing_local_file(tmp_path):
    with pytest.raises(RuleSetLoadError) as exc_info:
        await RuleSetLoader().load_text(tmp_path / "missing.json")
    assert "missing.json" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fetch_url():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["ua"] = request.headers.get("User-Agent")
        return httpx.Response(200, text='{"phishing_indicators": []}')

    loader = RuleSetLoader(transport=httpx.MockTransport(handler))
    text = await loader.load_text("https://rules.example.com/detection-rules.json")
    assert text == '{"phishing_indicators": []}'
    assert seen["ua"] == USER_AGENT


@pytest.mark.asyncio
async def test_fetch_http_error_status():
    loader = RuleSetLoader(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    with pytest.raises(RuleSetLoadError) as exc_info:
        await loader.load_text("https://rules.example.com/missing.json")
    assert "404" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fetch_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    loader = RuleSetLoader(transport=httpx.MockTransport(handler))
    with pytest.raises(RuleSetLoadError):
        await loader.load_text("https://rules.example.com/rules.json")


@pytest.mark.asyncio
async def test_fetch_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    loader = RuleSetLoader(transport=httpx.MockTransport(handler))
    with pytest.raises(RuleSetLoadError) as exc_info:
        await loader.load_text("https://rules.example.com/rules.json")
    assert exc_info.value.message == "request timed out"
