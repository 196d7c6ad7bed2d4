"""Contrato de las reglas de scraping.

Las reglas desacoplan el módulo de descargas de cada sitio: cada regla conoce
las páginas de un sitio y devuelve el `DownloadResult` normalizado.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from core.domain.models import DownloadResult

if TYPE_CHECKING:
    from adapters.http_client import FetchAdapter


@runtime_checkable
class ScrapeRule(Protocol):
    """Contrato mínimo para una regla.

    Reglas de diseño:
    - `fetch` is async because it performs one or more resilient fetches.
    - Returns the result and the number of retries spent across all fetches.
    """

    name: str

    async def fetch(self, adapter: "FetchAdapter", source_id: int) -> tuple[DownloadResult, int]:
        ...
