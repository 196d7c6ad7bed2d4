from __future__ import annotations

import httpx
import pytest

from adapters.download import RULES, DownloadModule
from adapters.download.sankakucomplex import SankakuComplexRule, parse_post_page
from adapters.http_client import FetchAdapter
from conftest import SleepRecorder
from core.config import DownloadSettings, SiteRule
from core.errors import ConfigurationError, ProtocolError

POST_HTML = """
<html>
<head>
  <title>Post 123</title>
  <meta name="description" content="Post 123 on Sankaku Complex">
</head>
<body>
  <ul id="tag-sidebar">
    <li class="tag-type-artist"><a href="/?tags=some_artist" itemprop="keywords" title="ある作者">some artist</a> <span class="post-count">12</span></li>
    <li class="tag-type-copyright"><a href="/?tags=original" itemprop="keywords">original</a></li>
    <li class="tag-type-general"><a href="/?tags=long_hair" itemprop="keywords" title="long hair">long hair</a></li>
    <li class="tag-type-general"></li>
  </ul>
  <div class="status-notice" id="pool12">
    Pool: <a href="/pool/show/12">Sketchbook</a>
    <a href="/pool/show/12">Sketchbook</a>
  </div>
  <div id="parent-preview"><a href="/post/show/100"><img></a></div>
  <div id="child-preview">
    <a href="/post/show/124"><img></a>
    <a href="/post/show/123"><img></a>
    <a href="/post/show/125"><img></a>
  </div>
</body>
</html>
"""


def sites(**mapping: str) -> DownloadSettings:
    return DownloadSettings(available_sites=[SiteRule(site=s, rule=r) for s, r in mapping.items()])


def make_module(handler, settings: DownloadSettings) -> tuple[DownloadModule, FetchAdapter]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    adapter = FetchAdapter(settings, client=client, sleep=SleepRecorder())
    return DownloadModule(settings, adapter), adapter


def test_parse_post_page() -> None:
    result = parse_post_page(POST_HTML, 123)

    assert [(t.code, t.name, t.other_name, t.tag_type) for t in result.tags or []] == [
        ("some_artist", "some artist", "ある作者", "artist"),
        ("original", "original", None, "copyright"),
        ("long_hair", "long hair", None, "general"),
    ]
    assert [(b.code, b.title) for b in result.books or []] == [("12", "Sketchbook")]
    assert result.relations == [100, 124, 125]
    assert result.description == "Post 123 on Sankaku Complex"
    assert result.title is None


def test_update_form_uses_wire_names() -> None:
    body = parse_post_page(POST_HTML, 123).to_update_form().to_body()

    assert body["tags"][0] == {"code": "some_artist", "name": "some artist", "otherName": "ある作者", "type": "artist"}
    assert body["books"] == [{"code": "12", "title": "Sketchbook"}]
    assert body["relations"] == [100, 124, 125]
    assert "status" not in body


@pytest.mark.asyncio
async def test_download_retries_connection_refused() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        if len(calls) <= 2:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, text=POST_HTML)

    module, _ = make_module(handler, sites(sankakucomplex="sankakucomplex"))

    outcome = await module.download("sankakucomplex", 123)

    assert outcome.retry_count == 2
    assert outcome.elapsed_ms >= 0
    assert outcome.result.relations == [100, 124, 125]
    assert calls == ["https://chan.sankakucomplex.com/post/show/123"] * 3


@pytest.mark.asyncio
async def test_unknown_site_fails_before_any_request() -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(200, text=POST_HTML)

    module, adapter = make_module(handler, sites(sankakucomplex="sankakucomplex"))

    with pytest.raises(ConfigurationError):
        await module.download("unknownsite", 1)

    assert adapter.calls == 0
    assert calls == []


@pytest.mark.asyncio
async def test_unknown_rule_fails_before_any_request() -> None:
    module, adapter = make_module(lambda request: httpx.Response(200), sites(pixiv="pixiv"))

    with pytest.raises(ConfigurationError):
        await module.download("pixiv", 1)

    assert adapter.calls == 0


@pytest.mark.asyncio
async def test_site_can_alias_a_rule() -> None:
    module, _ = make_module(lambda request: httpx.Response(200, text=POST_HTML), sites(chan="sankakucomplex"))

    outcome = await module.download("chan", 123)

    assert outcome.retry_count == 0
    assert len(outcome.result.tags or []) == 3


@pytest.mark.asyncio
async def test_non_200_page_is_protocol_error() -> None:
    module, _ = make_module(lambda request: httpx.Response(404), sites(sankakucomplex="sankakucomplex"))

    with pytest.raises(ProtocolError) as info:
        await module.download("sankakucomplex", 9)

    assert info.value.code == "HTTP_404"


def test_rule_registry() -> None:
    assert isinstance(RULES["sankakucomplex"], SankakuComplexRule)
