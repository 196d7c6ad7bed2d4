"""Barrido de descargas sobre una lista de source data.

Por cada item: descarga su metadata, la convierte en formulario de
actualización y la envía al servidor. Un item que falla se cuenta y el
barrido continúa; el pacer espacia items consecutivos (no después del último).

Las capas de UI observan el progreso mediante `SweepHooks`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Sequence

from adapters.server_client import describe_error
from core.domain.models import DownloadOutcome, SourceDataItem, SourceDataUpdateForm
from core.errors import HedgeError
from core.services.pacer import Pacer

logger = logging.getLogger(__name__)

Downloader = Callable[[str, int], Awaitable[DownloadOutcome]]
Updater = Callable[[str, int, SourceDataUpdateForm], Awaitable[None]]


@dataclass
class ItemReport:
    index: int
    item: SourceDataItem
    outcome: DownloadOutcome | None = None
    error: str | None = None
    update_error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.update_error is None


@dataclass
class SweepHooks:
    """Optional callbacks for UI layers."""

    item_done: Callable[[ItemReport, int], None] | None = None


@dataclass
class SweepResult:
    success: int = 0
    failed: int = 0
    reports: list[ItemReport] = field(default_factory=list)


async def run_download_sweep(
    *,
    items: Sequence[SourceDataItem],
    download: Downloader,
    update: Updater,
    pacer: Pacer,
    hooks: SweepHooks | None = None,
) -> SweepResult:
    hooks = hooks or SweepHooks()
    result = SweepResult()
    total = len(items)

    for index, item in enumerate(items, start=1):
        report = ItemReport(index=index, item=item)
        cost_ms = 0
        try:
            report.outcome = await download(item.site, item.source_id)
            cost_ms = report.outcome.elapsed_ms
        except HedgeError as exc:
            report.error = describe_error(exc)
            logger.info("Download of %s/%s failed: %s", item.site, item.source_id, report.error)

        if report.outcome is not None:
            try:
                await update(item.site, item.source_id, report.outcome.result.to_update_form())
            except HedgeError as exc:
                report.update_error = describe_error(exc)

        if report.ok:
            result.success += 1
        else:
            result.failed += 1
        result.reports.append(report)
        if hooks.item_done:
            hooks.item_done(report, total)

        if index < total:
            await pacer.wait(cost_ms)

    return result
