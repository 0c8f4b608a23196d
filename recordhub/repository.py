# recordhub/repository.py
import logging
import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_snake

from . import settings
from .classifier import sort_by_priority
from .errors import NotFoundError, ValidationError
from .pricing import apply_payment, apply_pricing
from .schemas import (
    Dissertation, Employee, Invoice, ListQuery, NormalOrder, OrderBase, Page, PaymentUpdate, Project,
)

logger = logging.getLogger(__name__)

M = TypeVar("M")


def _errors(e: PydanticValidationError) -> List[Dict[str, Any]]:
    return [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
        for err in e.errors()
    ]


# -------------------------
# Client-side list helpers
# -------------------------
def _field_value(record: Any, column: str) -> Any:
    value = getattr(record, to_snake(column), None)
    if isinstance(value, Enum):
        value = value.value
    return value


def matches_search(record: Any, fields: Sequence[str], term: str) -> bool:
    term = (term or "").strip().lower()
    if not term:
        return True
    for f in fields:
        v = _field_value(record, f)
        if v is not None and term in str(v).lower():
            return True
    return False


def in_date_range(value: Optional[date], start: Optional[date], end: Optional[date]) -> bool:
    if start is None and end is None:
        return True
    if value is None:
        return False
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


def sort_records(records: List[M], column: str, direction: str = "asc") -> List[M]:
    """Sort by a camelCase column; empty values always go last."""
    if records and not hasattr(records[0], to_snake(column)):
        raise ValidationError(f"Cannot sort by unknown column '{column}'")

    def _key(r):
        v = _field_value(r, column)
        if isinstance(v, str):
            v = v.lower()
        return v

    present = [r for r in records if _field_value(r, column) is not None]
    missing = [r for r in records if _field_value(r, column) is None]
    present.sort(key=_key, reverse=(direction == "desc"))
    return present + missing


def sort_rows(rows: List[Tuple[str, Dict[str, Any]]],
              order_by: Optional[Tuple[str, str]]) -> List[Tuple[str, Dict[str, Any]]]:
    """Order raw (id, data) rows by one stored key, as the store would."""
    if order_by is None:
        return rows
    field, direction = order_by
    present = [r for r in rows if r[1].get(field) is not None]
    present.sort(key=lambda r: r[1][field], reverse=(direction == "desc"))
    return present + [r for r in rows if r[1].get(field) is None]


def paginate(records: Sequence[M], page: int, per_page: int) -> Page:
    total = len(records)
    total_pages = math.ceil(total / per_page) if per_page else 0
    start = (page - 1) * per_page
    return Page(items=list(records[start:start + per_page]), page=page, per_page=per_page,
                total=total, total_pages=total_pages)


# -------------------------
# Generic repository
# -------------------------
class Repository(Generic[M]):
    """
    CRUD + list over one collection, parameterized by its record type.

    Writes are full overwrites. List queries push one equality filter and one
    sort key to the store; search, date range, column sort and pagination
    run client-side.
    """
    def __init__(self, store, collection: str, model: Type[M], *,
                 default_order: Optional[Tuple[str, str]] = None,
                 search_fields: Sequence[str] = (),
                 date_field: Optional[str] = None,
                 strict: bool = False):
        self.store = store
        self.collection = collection
        self.model = model
        self.default_order = default_order
        self.search_fields = tuple(search_fields)
        self.date_field = date_field
        self.strict = strict

    # ---- boundary validation ----
    def validate(self, data: Dict[str, Any], doc_id: Optional[str] = None) -> M:
        try:
            return self.model.from_document(doc_id, data)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {self.model.__name__} record" + (f" '{doc_id}'" if doc_id else ""),
                details={"errors": _errors(e)},
            ) from e

    def prepare(self, record: M) -> M:
        """Hook run on every write path before the record is stored."""
        return record

    # ---- reads ----
    async def all(self, where: Optional[Tuple[str, Any]] = None) -> List[M]:
        """
        Filtered reads send the equality filter alone and sort here: a filter
        plus an order on another field would need a Firestore composite index.
        """
        if where is None:
            rows = await self.store.query(self.collection, order_by=self.default_order)
        else:
            rows = sort_rows(await self.store.query(self.collection, where=where), self.default_order)
        out: List[M] = []
        for doc_id, data in rows:
            try:
                out.append(self.validate(data, doc_id))
            except ValidationError as e:
                if self.strict:
                    raise
                logger.warning("Skipping invalid %s/%s: %s", self.collection, doc_id, e.details)
        return out

    async def get(self, doc_id: str) -> M:
        data = await self.store.get(self.collection, doc_id)
        if data is None:
            raise NotFoundError(f"{self.collection}/{doc_id} not found")
        return self.validate(data, doc_id)

    def filter(self, records: Iterable[M], query: ListQuery) -> List[M]:
        out = []
        for r in records:
            if not matches_search(r, self.search_fields, query.search):
                continue
            if self.date_field and not in_date_range(_field_value(r, self.date_field), query.start, query.end):
                continue
            out.append(r)
        return out

    def order(self, records: List[M], query: ListQuery, today: date) -> List[M]:
        if query.sort:
            return sort_records(records, query.sort, query.direction)
        return records

    async def list(self, query: ListQuery, today: Optional[date] = None) -> Page:
        today = today or date.today()
        where = ("status", query.status) if query.status else None
        records = self.filter(await self.all(where=where), query)
        return paginate(self.order(records, query, today), query.page, query.per_page)

    # ---- writes ----
    async def create(self, record: M) -> M:
        record = self.prepare(record)
        doc_id = await self.store.add(self.collection, record.to_document())
        logger.info("Created %s/%s", self.collection, doc_id)
        return record.model_copy(update={"id": doc_id})

    async def update(self, doc_id: str, record: M) -> M:
        if await self.store.get(self.collection, doc_id) is None:
            raise NotFoundError(f"{self.collection}/{doc_id} not found")
        record = self.prepare(record)
        await self.store.set(self.collection, doc_id, record.to_document())
        logger.info("Updated %s/%s", self.collection, doc_id)
        return record.model_copy(update={"id": doc_id})

    async def delete(self, doc_id: str) -> None:
        if await self.store.get(self.collection, doc_id) is None:
            raise NotFoundError(f"{self.collection}/{doc_id} not found")
        await self.store.delete(self.collection, doc_id)
        logger.info("Deleted %s/%s", self.collection, doc_id)


class OrderRepository(Repository[M]):
    """Order-like collections: derived fields are recomputed on every write."""

    def prepare(self, record: M) -> M:
        record = apply_pricing(record)
        return record.model_copy(update={"updated_at": datetime.now(timezone.utc)})

    def order(self, records: List[M], query: ListQuery, today: date) -> List[M]:
        if query.sort:
            return sort_records(records, query.sort, query.direction)
        return sort_by_priority(records, today)

    async def update_payment(self, doc_id: str, payment: PaymentUpdate) -> Dissertation:
        """Payment fields only; budget and descriptive fields are left as stored."""
        current = await self.get(doc_id)
        if not isinstance(current, Dissertation):
            raise ValidationError(f"{self.collection} records do not track payments")
        updated = apply_payment(current, payment)
        await self.store.set(self.collection, doc_id, updated.to_document())
        logger.info("Payment updated on %s/%s (paid=%.2f, balance=%.2f, fully_paid=%s)",
                    self.collection, doc_id, updated.total_paid, updated.remaining_balance,
                    updated.is_fully_paid)
        return updated


ORDER_SEARCH_FIELDS = ("projectName", "supervisorName", "status", "season")


class Repositories:
    """All collections bound to one store."""

    def __init__(self, store):
        self.store = store
        self.employees: Repository[Employee] = Repository(
            store, settings.EMPLOYEES, Employee,
            default_order=("hireDate", "desc"),
            search_fields=("employeeName", "department", "position", "status", "phoneNumber"),
            date_field="hireDate",
        )
        self.normal_orders: OrderRepository[NormalOrder] = OrderRepository(
            store, settings.NORMAL_ORDERS, NormalOrder,
            default_order=("orderDate", "desc"),
            search_fields=ORDER_SEARCH_FIELDS,
            date_field="orderDate",
        )
        self.dissertations: OrderRepository[Dissertation] = OrderRepository(
            store, settings.DISSERTATIONS, Dissertation,
            default_order=("submissionDate", "desc"),
            search_fields=ORDER_SEARCH_FIELDS,
            date_field="orderDate",
        )
        self.projects: OrderRepository[Project] = OrderRepository(
            store, settings.PROJECTS, Project,
            default_order=("submissionDate", "desc"),
            search_fields=ORDER_SEARCH_FIELDS + ("type",),
            date_field="orderDate",
        )
        self.invoices: Repository[Invoice] = Repository(
            store, settings.INVOICES, Invoice,
            default_order=("createdAt", "desc"),
            search_fields=("supervisorName", "season", "projectType"),
        )

    @property
    def order_repos(self) -> List[OrderRepository]:
        return [self.normal_orders, self.dissertations, self.projects]

    def orders_by_kind(self, kind: str) -> OrderRepository:
        repos = {
            "normal-orders": self.normal_orders,
            "dissertations": self.dissertations,
            "projects": self.projects,
        }
        try:
            return repos[kind]
        except KeyError:
            raise NotFoundError(f"Unknown order collection '{kind}'") from None

    async def all_orders(self, where: Optional[Tuple[str, Any]] = None) -> List[OrderBase]:
        out: List[OrderBase] = []
        for repo in self.order_repos:
            out.extend(await repo.all(where=where))
        return out
