# recordhub/firebase_client.py
import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as gexc
from google.cloud.firestore_v1.base_query import FieldFilter
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from . import settings
from .errors import PersistenceError

logger = logging.getLogger(__name__)

# errors worth another attempt when STORE_RETRY_ATTEMPTS > 1
TRANSIENT_ERRORS = (gexc.ServiceUnavailable, gexc.DeadlineExceeded, gexc.InternalServerError)


class FirestoreStore:
    """
    Async facade over Cloud Firestore (Admin SDK).
    Use the module-level `firebase_client` instance (created at bottom).

    Documents are plain dicts; every method takes the collection name.
    """
    def __init__(self):
        self._initialized = False
        self._app = None
        self._db = None

    def init_app(self, service_account_path: Optional[str] = None,
                 service_account_json: Optional[str] = None,
                 project_id: Optional[str] = None) -> None:
        """
        Initialize the firebase admin SDK. Can pass either a path to a
        service account JSON file or the raw JSON string.
        This method is synchronous and should be called at app startup.
        """
        if self._initialized:
            logger.debug("Firebase already initialized.")
            return

        if service_account_json:
            cred = credentials.Certificate(json.loads(service_account_json))
        elif service_account_path:
            cred = credentials.Certificate(service_account_path)
        else:
            raise PersistenceError("Provide service_account_path or service_account_json")

        options = {"projectId": project_id} if project_id else None
        try:
            try:
                self._app = firebase_admin.get_app()
            except ValueError:
                self._app = firebase_admin.initialize_app(cred, options)
            self._db = firestore.client(app=self._app)
            self._initialized = True
            logger.info("Firebase Admin SDK initialized (Firestore).")
        except Exception as e:
            logger.exception("Failed to initialize Firebase Admin SDK")
            raise PersistenceError(str(e)) from e

    @property
    def app(self):
        return self._app

    def _ensure_initialized(self):
        if not self._initialized or self._db is None:
            raise PersistenceError("Firebase client not initialized. Call init_app() first.")

    # ---- Helpers to run blocking SDK calls in threadpool ----
    async def _run_blocking(self, func: Callable, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: func(*args, **kwargs))

    @retry(wait=wait_exponential(multiplier=0.5, max=10),
           stop=stop_after_attempt(settings.STORE_RETRY_ATTEMPTS),
           retry=retry_if_exception_type(TRANSIENT_ERRORS), reraise=True)
    async def _attempt(self, func: Callable):
        return await self._run_blocking(func)

    async def _call(self, op: str, path: str, func: Callable):
        self._ensure_initialized()
        try:
            return await self._attempt(func)
        except Exception as e:
            logger.exception("Firestore %s failed for %s", op, path)
            raise PersistenceError(f"{op} {path} failed: {e}") from e

    # ---- Document operations ----
    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Create a document with a generated id. Returns the id."""
        def _add():
            _, ref = self._db.collection(collection).add(data)
            return ref.id
        doc_id = await self._call("add", collection, _add)
        logger.debug("Added to %s -> id=%s", collection, doc_id)
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Overwrite the whole document."""
        def _set():
            self._db.collection(collection).document(doc_id).set(data)
        await self._call("set", f"{collection}/{doc_id}", _set)
        logger.debug("Set %s/%s", collection, doc_id)

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the document data or None."""
        def _get():
            snap = self._db.collection(collection).document(doc_id).get()
            return snap.to_dict() if snap.exists else None
        return await self._call("get", f"{collection}/{doc_id}", _get)

    async def delete(self, collection: str, doc_id: str) -> None:
        def _delete():
            self._db.collection(collection).document(doc_id).delete()
        await self._call("delete", f"{collection}/{doc_id}", _delete)
        logger.debug("Deleted %s/%s", collection, doc_id)

    async def query(self, collection: str,
                    where: Optional[Tuple[str, Any]] = None,
                    order_by: Optional[Tuple[str, str]] = None) -> List[Tuple[str, Dict[str, Any]]]:
        """
        One equality predicate plus one sort key, mirroring what the
        screens need. Returns (id, data) pairs.
        """
        def _query():
            q = self._db.collection(collection)
            if where is not None:
                q = q.where(filter=FieldFilter(where[0], "==", where[1]))
            if order_by is not None:
                field, direction = order_by
                q = q.order_by(field, direction=firestore.Query.DESCENDING
                               if direction == "desc" else firestore.Query.ASCENDING)
            return [(snap.id, snap.to_dict() or {}) for snap in q.stream()]
        rows = await self._call("query", collection, _query)
        logger.debug("Queried %s (where=%s order_by=%s): %d docs", collection, where, order_by, len(rows))
        return rows


# Module-level singleton to import from anywhere
firebase_client = FirestoreStore()
