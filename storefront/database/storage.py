"""Cart storage backends for guest carts"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from ..core.exceptions import CartPersistenceError
from ..models.cart import CartSnapshot

logger = logging.getLogger(__name__)


class CartStorage(Protocol):
    """Durable home of one shopper's cart"""

    async def load(self) -> CartSnapshot: ...

    async def save(self, snapshot: CartSnapshot) -> None: ...


class MemoryCartStorage:
    """In-process cart storage, lost on restart"""

    def __init__(self, snapshot: CartSnapshot | None = None):
        self._data = snapshot.model_dump_json() if snapshot else None

    async def load(self) -> CartSnapshot:
        if self._data is None:
            return CartSnapshot()
        return CartSnapshot.model_validate_json(self._data)

    async def save(self, snapshot: CartSnapshot) -> None:
        self._data = snapshot.model_dump_json()


class JsonFileCartStorage:
    """
    Cart stored as a JSON document on local disk.

    Writes go to a temporary file that then replaces the target, so a crash
    mid-write never leaves a truncated cart behind. A corrupt document is
    logged and discarded rather than blocking the shopper.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def load(self) -> CartSnapshot:
        return await asyncio.to_thread(self._read)

    async def save(self, snapshot: CartSnapshot) -> None:
        await asyncio.to_thread(self._write, snapshot.model_dump_json(indent=2))

    def _read(self) -> CartSnapshot:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return CartSnapshot()
        except OSError as e:
            raise CartPersistenceError("load", str(e)) from e

        try:
            return CartSnapshot.model_validate(json.loads(raw))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Discarding unreadable cart at {self.path}: {e}")
            self.path.unlink(missing_ok=True)
            return CartSnapshot()

    def _write(self, payload: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CartPersistenceError("save", str(e)) from e
