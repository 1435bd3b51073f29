"""
Tests for analyzer output normalization and the HTTP analyzer
"""
import httpx
import pytest

from creditline.ai.analyzer import HttpAnalyzer
from creditline.schemas.analysis import normalize_analysis
from creditline.utils.errors import AnalyzerError

URL = "https://analyzer.test/structure"


def test_normalize_bare_row_list():
    result = normalize_analysis([{"what": "a"}, "noise"], "3W1H")

    assert result.rows == [{"what": "a"}]
    assert result.detected_language == "en"
    assert result.confidence_score == 95


def test_normalize_object_with_metadata():
    raw = {"rows": [{"who": "b"}], "detectedLanguage": "hi", "wasTranslated": True, "translatedText": "hello"}

    result = normalize_analysis(raw, "SWOT")

    assert result.framework == "SWOT"
    assert result.detected_language == "hi"
    assert result.was_translated is True
    assert result.translated_text == "hello"


def test_normalize_garbage_yields_no_rows():
    result = normalize_analysis("I could not do it", "3W1H")

    assert result.rows == []
    assert result.confidence_score == 40


@pytest.mark.asyncio
async def test_http_analyzer_posts_text():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"what": "ship"}])

    analyzer = HttpAnalyzer(URL, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    result = await analyzer.analyze("ship it", "3W1H")
    await analyzer.aclose()

    assert result.rows == [{"what": "ship"}]


@pytest.mark.asyncio
async def test_http_analyzer_errors():
    def failing(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    def slow(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(AnalyzerError) as failed:
        await HttpAnalyzer(URL, client=httpx.AsyncClient(transport=httpx.MockTransport(failing))).analyze("x", "3W1H")
    with pytest.raises(AnalyzerError) as timed_out:
        await HttpAnalyzer(URL, client=httpx.AsyncClient(transport=httpx.MockTransport(slow))).analyze("x", "3W1H")

    assert failed.value.status_code == 502
    assert timed_out.value.status_code == 504
