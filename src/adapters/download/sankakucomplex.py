"""Regla de scraping: Sankaku Complex (chan).

Lee la página pública del post:
- tags desde `#tag-sidebar` (un `li.tag-type-<type>` por tag)
- pools a los que pertenece el post, como books
- posts padre/hijo, como relaciones
"""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

from adapters.http_client import FetchAdapter
from core.domain.models import DownloadBook, DownloadResult, DownloadTag
from core.errors import ProtocolError

_POST_ID = re.compile(r"/post/show/(\d+)")
_POOL_ID = re.compile(r"/pool/show/(\d+)")


def _tag_code(href: str | None, fallback: str) -> str:
    if href:
        values = parse_qs(urlparse(href).query).get("tags")
        if values and values[0].strip():
            return values[0].strip()
    return fallback.strip().replace(" ", "_")


def parse_post_page(html: str, source_id: int) -> DownloadResult:
    soup = BeautifulSoup(html, "html.parser")

    tags: list[DownloadTag] = []
    for li in soup.select("#tag-sidebar > li"):
        link = li.find("a", attrs={"itemprop": "keywords"}) or li.find("a")
        if link is None:
            continue
        name = link.get_text().strip()
        if not name:
            continue
        tag_type = None
        for cls in li.get("class") or []:
            if cls.startswith("tag-type-"):
                tag_type = cls.removeprefix("tag-type-")
                break
        other_name = link.get("title")
        if isinstance(other_name, str):
            other_name = other_name.strip() or None
            if other_name == name:
                other_name = None
        tags.append(
            DownloadTag(
                code=_tag_code(link.get("href"), name),
                name=name,
                other_name=other_name,
                tag_type=tag_type,
            )
        )

    books: list[DownloadBook] = []
    seen_pools: set[str] = set()
    for link in soup.find_all("a", href=_POOL_ID):
        match = _POOL_ID.search(str(link.get("href")))
        if match is None or match.group(1) in seen_pools:
            continue
        seen_pools.add(match.group(1))
        title = link.get_text().strip() or None
        books.append(DownloadBook(code=match.group(1), title=title))

    relations: list[int] = []
    for container_id in ("parent-preview", "child-preview"):
        container = soup.find(id=container_id)
        if container is None:
            continue
        for link in container.find_all("a", href=_POST_ID):
            match = _POST_ID.search(str(link.get("href")))
            if match is None:
                continue
            post_id = int(match.group(1))
            if post_id != source_id and post_id not in relations:
                relations.append(post_id)

    description = None
    meta = soup.find("meta", attrs={"name": "description"})
    if meta and meta.get("content"):
        description = str(meta.get("content")).strip() or None

    return DownloadResult(
        description=description,
        tags=tags,
        books=books,
        relations=relations,
    )


class SankakuComplexRule:
    name = "sankakucomplex"
    base_url = "https://chan.sankakucomplex.com"

    async def fetch(self, adapter: FetchAdapter, source_id: int) -> tuple[DownloadResult, int]:
        url = f"{self.base_url}/post/show/{source_id}"
        fetched = await adapter.fetch_with_retry("GET", url)
        response = fetched.response
        if response.status_code != 200:
            raise ProtocolError(f"HTTP_{response.status_code}", f"GET {url} returned {response.status_code}.")
        return parse_post_page(response.text, source_id), fetched.retry_count
