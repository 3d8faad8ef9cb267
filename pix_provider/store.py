"""Durable store adapters.

The whole payment collection is persisted as one opaque JSON blob and is
rewritten wholesale on every save. There is no per-record API.
"""
import asyncio
import json
import logging
import os
import tempfile
from typing import List, Protocol
from sqlalchemy import select
from pix_provider.database import get_session
from pix_provider.errors import StorageError
from pix_provider.models import PaymentStoreBlob

logger = logging.getLogger("pix_provider")

BLOB_ROW_ID = 1


class PaymentStore(Protocol):
    async def load(self) -> List[dict]: ...

    async def save(self, records: List[dict]) -> None: ...


def _decode(raw: str) -> List[dict]:
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("payment store must hold a JSON array")
    return data


class JsonFileStore:
    def __init__(self, path: str):
        self.path = path

    async def load(self) -> List[dict]:
        try:
            return await asyncio.to_thread(self._read)
        except (OSError, ValueError) as e:
            raise StorageError(f"Read data error: {e}") from e

    async def save(self, records: List[dict]) -> None:
        body = json.dumps(records, indent=2, ensure_ascii=False)
        try:
            await asyncio.to_thread(self._write, body)
        except OSError as e:
            raise StorageError(f"Write data error: {e}") from e

    def _read(self) -> List[dict]:
        if not os.path.exists(self.path):
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return _decode(f.read())

    def _write(self, body: str) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".payments-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(body)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class SqlBlobStore:
    """Keeps the serialized collection in a single row of ``payment_store``."""

    async def load(self) -> List[dict]:
        records = []
        try:
            async for session in get_session():
                result = await session.execute(
                    select(PaymentStoreBlob).where(PaymentStoreBlob.id == BLOB_ROW_ID)
                )
                blob = result.scalar_one_or_none()
                if blob is not None:
                    records = _decode(blob.data)
        except Exception as e:
            raise StorageError(f"Read data error: {e}") from e
        return records

    async def save(self, records: List[dict]) -> None:
        body = json.dumps(records, ensure_ascii=False)
        try:
            async for session in get_session():
                blob = await session.get(PaymentStoreBlob, BLOB_ROW_ID)
                if blob is None:
                    blob = PaymentStoreBlob(id=BLOB_ROW_ID, data=body)
                else:
                    blob.data = body
                session.add(blob)
                await session.commit()
        except Exception as e:
            raise StorageError(f"Write data error: {e}") from e

