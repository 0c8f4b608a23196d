# recordhub/invoicing.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import EmptyCohortError
from .schemas import Invoice, OrderBase, OrderType

logger = logging.getLogger(__name__)


def select_cohort(orders: Iterable[OrderBase], supervisor_name: str, season: str,
                  order_type: Optional[OrderType] = None) -> List[OrderBase]:
    """Orders for one writer and season, optionally narrowed to one order type."""
    return [
        o for o in orders
        if o.supervisor_name == supervisor_name
        and o.season == season
        and (order_type is None or o.type is order_type)
    ]


def build_invoice(cohort: List[OrderBase], supervisor_name: str, season: str,
                  order_type: Optional[OrderType] = None,
                  now: Optional[datetime] = None) -> Invoice:
    """
    Snapshot the cohort into an invoice record. The invoice keeps no link to
    the orders: later edits to them do not change its total.
    """
    if not cohort:
        label = f"{supervisor_name}/{season}" + (f"/{order_type.value}" if order_type else "")
        raise EmptyCohortError(f"No projects found for {label}",
                               details={"supervisorName": supervisor_name, "season": season})
    return Invoice(
        supervisor_name=supervisor_name,
        season=season,
        project_type=order_type,
        total_amount=sum(float(o.budget or 0.0) for o in cohort),
        project_count=len(cohort),
        is_paid=False,
        created_at=now or datetime.now(timezone.utc),
    )


def invoice_filters(orders: Iterable[OrderBase]) -> Dict[str, List[str]]:
    """Distinct writers and seasons for the invoice selectors."""
    supervisors, seasons = set(), set()
    for o in orders:
        supervisors.add(o.supervisor_name)
        seasons.add(o.season)
    return {"supervisors": sorted(supervisors), "seasons": sorted(seasons)}


class InvoiceService:
    def __init__(self, repos):
        self.repos = repos

    async def preview(self, supervisor_name: str, season: str,
                      order_type: Optional[OrderType] = None) -> List[OrderBase]:
        """The cohort an invoice would be built from; empty is not an error here."""
        orders = await self.repos.all_orders(where=("supervisorName", supervisor_name))
        return select_cohort(orders, supervisor_name, season, order_type)

    async def generate(self, supervisor_name: str, season: str,
                       order_type: Optional[OrderType] = None,
                       now: Optional[datetime] = None) -> Tuple[Invoice, List[OrderBase]]:
        cohort = await self.preview(supervisor_name, season, order_type)
        invoice = build_invoice(cohort, supervisor_name, season, order_type, now)
        saved = await self.repos.invoices.create(invoice)
        logger.info("Invoice %s generated for %s/%s: %d projects, total %.2f",
                    saved.id, supervisor_name, season, saved.project_count, saved.total_amount)
        return saved, cohort

    async def set_paid(self, invoice_id: str, is_paid: bool) -> Invoice:
        invoice = await self.repos.invoices.get(invoice_id)
        updated = invoice.model_copy(update={"is_paid": is_paid})
        return await self.repos.invoices.update(invoice_id, updated)

    async def toggle_paid(self, invoice_id: str) -> Invoice:
        invoice = await self.repos.invoices.get(invoice_id)
        return await self.set_paid(invoice_id, not invoice.is_paid)

    async def delete(self, invoice_id: str) -> None:
        await self.repos.invoices.delete(invoice_id)

    async def filters(self) -> Dict[str, Any]:
        return invoice_filters(await self.repos.all_orders())
