"""Endpoints de source data (`/api/source-data`)."""

from __future__ import annotations

from typing import Sequence

from adapters.server_client import AuthenticatedClient
from core.domain.models import ListResult, SourceDataItem, SourceDataUpdateForm


class SourceDataModule:
    def __init__(self, client: AuthenticatedClient) -> None:
        self._client = client

    async def query(
        self,
        *,
        hql: str | None = None,
        status: Sequence[str] | None = None,
        site: Sequence[str] | None = None,
        offset: int | None = None,
        limit: int | None = None,
    ) -> ListResult[SourceDataItem]:
        query: list[tuple[str, str]] = []
        if hql:
            query.append(("query", hql))
        if status:
            query.append(("status", ",".join(status)))
        if site:
            query.append(("site", ",".join(site)))
        if offset is not None:
            query.append(("offset", str(offset)))
        if limit is not None:
            query.append(("limit", str(limit)))
        return await self._client.call(
            "GET",
            "/api/source-data",
            query=query,
            response_model=ListResult[SourceDataItem],
        )

    async def update(self, site: str, source_id: int, form: SourceDataUpdateForm) -> None:
        await self._client.call(
            "PATCH",
            f"/api/source-data/{site}/{source_id}",
            body=form.to_body(),
        )
