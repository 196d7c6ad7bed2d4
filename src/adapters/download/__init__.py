"""Descarga de metadata desde sitios externos.

Dos tablas explícitas:
- `RULES`: el conjunto cerrado de reglas, por identificador.
- el registro configurado `site -> rule` (`DownloadSettings.available_sites`).

Agregar un sitio es un módulo de regla nuevo más una entrada en `RULES`.
"""

from __future__ import annotations

import logging
import time

from adapters.download.sankakucomplex import SankakuComplexRule
from adapters.http_client import FetchAdapter
from core.config import DownloadSettings
from core.domain.models import DownloadOutcome
from core.errors import ConfigurationError
from core.interfaces.rules import ScrapeRule

logger = logging.getLogger(__name__)

RULES: dict[str, ScrapeRule] = {
    rule.name: rule
    for rule in (SankakuComplexRule(),)
}


class DownloadModule:
    def __init__(
        self,
        settings: DownloadSettings,
        adapter: FetchAdapter,
        *,
        rules: dict[str, ScrapeRule] | None = None,
    ) -> None:
        self._adapter = adapter
        self._available_sites = settings.site_rules()
        self._rules = RULES if rules is None else rules

    def resolve(self, site: str) -> ScrapeRule:
        rule_name = self._available_sites.get(site)
        if rule_name is None:
            raise ConfigurationError(f"Site {site} not configured in available sites.")
        rule = self._rules.get(rule_name)
        if rule is None:
            raise ConfigurationError(f"Unsupported rule type {rule_name}.")
        return rule

    async def download(self, site: str, source_id: int) -> DownloadOutcome:
        # Resolved before any request goes out.
        rule = self.resolve(site)
        started = time.monotonic()
        result, retry_count = await rule.fetch(self._adapter, source_id)
        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.debug("%s/%s downloaded in %dms (%d retries)", site, source_id, elapsed_ms, retry_count)
        return DownloadOutcome(result=result, retry_count=retry_count, elapsed_ms=elapsed_ms)


__all__ = ["DownloadModule", "RULES", "SankakuComplexRule"]
