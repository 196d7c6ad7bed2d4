from __future__ import annotations

import pytest

from conftest import SleepRecorder
from core.domain.models import DownloadOutcome, DownloadResult, SourceDataItem, SourceDataUpdateForm
from core.errors import ProtocolError, TransportError
from core.services.download_sweep import SweepHooks, run_download_sweep
from core.services.pacer import Pacer


def items(count: int) -> list[SourceDataItem]:
    return [SourceDataItem(site="sankakucomplex", source_id=i) for i in range(1, count + 1)]


@pytest.mark.asyncio
async def test_failed_item_does_not_abort_the_batch() -> None:
    updated: list[tuple[str, int, SourceDataUpdateForm]] = []
    reported: list[tuple[int, bool]] = []

    async def download(site: str, source_id: int) -> DownloadOutcome:
        if source_id == 3:
            raise TransportError("connection refused")
        return DownloadOutcome(result=DownloadResult(title=f"post {source_id}"), retry_count=0, elapsed_ms=2_000)

    async def update(site: str, source_id: int, form: SourceDataUpdateForm) -> None:
        updated.append((site, source_id, form))

    sleeper = SleepRecorder()
    result = await run_download_sweep(
        items=items(5),
        download=download,
        update=update,
        pacer=Pacer(8, sleep=sleeper),
        hooks=SweepHooks(item_done=lambda report, total: reported.append((report.index, report.ok))),
    )

    assert (result.success, result.failed) == (4, 1)
    assert [source_id for _, source_id, _ in updated] == [1, 2, 4, 5]
    assert updated[0][2].title == "post 1"
    assert reported == [(1, True), (2, True), (3, False), (4, True), (5, True)]
    assert result.reports[2].error == "connection refused"
    # Four gaps for five items; the failed download costs nothing.
    assert sleeper.calls == [6, 6, 8, 6]


@pytest.mark.asyncio
async def test_update_failure_counts_as_failed() -> None:
    async def download(site: str, source_id: int) -> DownloadOutcome:
        return DownloadOutcome(result=DownloadResult())

    async def update(site: str, source_id: int, form: SourceDataUpdateForm) -> None:
        raise ProtocolError("NOT_FOUND", "source data not found")

    result = await run_download_sweep(
        items=items(2),
        download=download,
        update=update,
        pacer=Pacer(2, sleep=SleepRecorder()),
    )

    assert (result.success, result.failed) == (0, 2)
    assert result.reports[0].outcome is not None
    assert result.reports[0].update_error == "NOT_FOUND: source data not found"


@pytest.mark.asyncio
async def test_single_item_is_not_paced() -> None:
    async def download(site: str, source_id: int) -> DownloadOutcome:
        return DownloadOutcome(result=DownloadResult())

    async def update(site: str, source_id: int, form: SourceDataUpdateForm) -> None:
        return None

    sleeper = SleepRecorder()
    result = await run_download_sweep(items=items(1), download=download, update=update, pacer=Pacer(8, sleep=sleeper))

    assert result.success == 1
    assert sleeper.calls == []
