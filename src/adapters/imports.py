"""Endpoints de importación (`/api/imports`).

Llamadas finas sobre `AuthenticatedClient`; las formas de los payloads son
del servidor y se pasan tal cual.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from pathlib import Path

from adapters.server_client import AuthenticatedClient
from core.domain.models import IdWithWarning, ImportImage, ImportSaveResult, ListResult


class OrderTimeType(str, Enum):
    CREATE_TIME = "CREATE_TIME"
    UPDATE_TIME = "UPDATE_TIME"
    IMPORT_TIME = "IMPORT_TIME"


class ImportModule:
    def __init__(self, client: AuthenticatedClient) -> None:
        self._client = client

    async def list(self) -> ListResult[ImportImage]:
        return await self._client.call("GET", "/api/imports", response_model=ListResult[ImportImage])

    async def add(self, file: Path, remove: bool) -> IdWithWarning:
        body = {"filepath": str(file), "mobileImport": remove}
        return await self._client.call("POST", "/api/imports/import", body=body, response_model=IdWithWarning)

    async def batch(
        self,
        *,
        partition_time: date | None = None,
        create_time: OrderTimeType | None = None,
        order_time: OrderTimeType | None = None,
        analyse_source: bool = False,
    ) -> list[IdWithWarning]:
        body = {
            "setCreateTimeBy": create_time.value if create_time else None,
            "setOrderTimeBy": order_time.value if order_time else None,
            "analyseSource": analyse_source,
            "partitionTime": partition_time.isoformat() if partition_time else None,
        }
        return await self._client.call(
            "POST",
            "/api/imports/batch-update",
            body=body,
            response_model=list[IdWithWarning],
        )

    async def save(self) -> ImportSaveResult:
        return await self._client.call(
            "POST",
            "/api/imports/save",
            body={"target": None},
            response_model=ImportSaveResult,
        )
