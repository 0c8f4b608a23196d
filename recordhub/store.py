# recordhub/store.py
"""
Local document store with the same interface as FirestoreStore.

Used for development (STORE_BACKEND=local) and in tests. Optionally persists
every collection to one JSON file.
"""
import asyncio
import json
import logging
import os
import threading
import uuid
from copy import deepcopy
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class LocalStore:
    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._lock = threading.Lock()
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        if path and os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                self._data = json.load(f)

    def _write_unlocked(self):
        if not self.path:
            return
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._data, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self.path)

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._data.setdefault(name, {})

    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        await self.set(collection, doc_id, data)
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        def _set():
            with self._lock:
                self._collection(collection)[doc_id] = deepcopy(data)
                self._write_unlocked()
        await asyncio.to_thread(_set)
        logger.debug("Set %s/%s", collection, doc_id)

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        def _get():
            with self._lock:
                doc = self._collection(collection).get(doc_id)
                return deepcopy(doc) if doc is not None else None
        return await asyncio.to_thread(_get)

    async def delete(self, collection: str, doc_id: str) -> None:
        def _delete():
            with self._lock:
                self._collection(collection).pop(doc_id, None)
                self._write_unlocked()
        await asyncio.to_thread(_delete)
        logger.debug("Deleted %s/%s", collection, doc_id)

    async def query(self, collection: str,
                    where: Optional[Tuple[str, Any]] = None,
                    order_by: Optional[Tuple[str, str]] = None) -> List[Tuple[str, Dict[str, Any]]]:
        def _snapshot():
            with self._lock:
                return [(k, deepcopy(v)) for k, v in self._collection(collection).items()]
        rows = await asyncio.to_thread(_snapshot)
        if where is not None:
            field, value = where
            rows = [r for r in rows if r[1].get(field) == value]
        if order_by is not None:
            field, direction = order_by
            # documents missing the sort key are left out, as Firestore does
            rows = [r for r in rows if r[1].get(field) is not None]
            rows.sort(key=lambda r: r[1][field], reverse=(direction == "desc"))
        return rows
