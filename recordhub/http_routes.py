# recordhub/http_routes.py
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, File, Header, Query, Request, UploadFile
from fastapi.responses import Response
from pydantic import ValidationError as PydanticValidationError

from . import settings
from . import pdf_report
from . import reporting
from . import spreadsheets
from .auth import AuthProvider
from .classifier import badge_for, is_overdue, priority_score
from .errors import AuthenticationError, ValidationError
from .invoicing import InvoiceService
from .pricing import price_summary
from .repository import OrderRepository, Repositories
from .schemas import (
    AuthUser, Credentials, Dissertation, InvoiceRequest, ListQuery, OrderBase, OrderType,
    PasswordChangeRequest, PasswordResetRequest, PaymentUpdate, Project, SignUpRequest,
)

logger = logging.getLogger(__name__)

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# -------------------------
# Dependencies
# -------------------------
def get_repos(request: Request) -> Repositories:
    return request.app.state.repos


def get_invoices(request: Request) -> InvoiceService:
    return request.app.state.invoices


def get_auth(request: Request) -> AuthProvider:
    return request.app.state.auth


def now(request: Request) -> datetime:
    return request.app.state.clock()


def today(request: Request) -> date:
    return request.app.state.clock().date()


def require_user(request: Request, authorization: Optional[str] = Header(None)) -> Optional[AuthUser]:
    if not settings.AUTH_REQUIRED:
        return None
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Missing bearer token")
    return get_auth(request).current_user(token.strip())


def list_query(
    search: str = "",
    start: Optional[date] = None,
    end: Optional[date] = None,
    sort: Optional[str] = None,
    direction: str = Query("asc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, alias="perPage"),
    status: Optional[str] = None,
) -> ListQuery:
    return ListQuery(search=search, start=start, end=end, sort=sort, direction=direction,
                     page=page, per_page=per_page, status=status)


def _out(record) -> Dict[str, Any]:
    return {"id": record.id, **record.to_document()}


def _order_out(order: OrderBase, on: date) -> Dict[str, Any]:
    out = _out(order)
    out["isOverdue"] = is_overdue(order.status, order.submission_date, on)
    out["badge"] = badge_for(order, on)
    out["priority"] = priority_score(order, on)
    return out


def _page_out(page, convert) -> Dict[str, Any]:
    return {
        "items": [convert(r) for r in page.items],
        "page": page.page,
        "perPage": page.per_page,
        "total": page.total,
        "totalPages": page.total_pages,
    }


def _xlsx(content: bytes, filename: str) -> Response:
    return Response(content=content, media_type=XLSX,
                    headers={"Content-Disposition": f'attachment; filename="{filename}"'})


public_router = APIRouter()
http_router = APIRouter(dependencies=[Depends(require_user)])


@public_router.get("/health")
def health():
    return {"ok": True, "store": settings.STORE_BACKEND}


# -------------------------
# Auth
# -------------------------
@public_router.post("/auth/sign-in")
def sign_in(body: Credentials, auth: AuthProvider = Depends(get_auth)):
    return auth.sign_in(body.email, body.password).model_dump(by_alias=True)


@public_router.post("/auth/sign-up")
def sign_up(body: SignUpRequest, auth: AuthProvider = Depends(get_auth)):
    return auth.sign_up(body.email, body.password, body.confirm_password).model_dump(by_alias=True)


@public_router.post("/auth/password-reset")
def password_reset(body: PasswordResetRequest, auth: AuthProvider = Depends(get_auth)):
    auth.send_password_reset(body.email)
    return {"ok": True}


@http_router.get("/auth/me")
def me(user: Optional[AuthUser] = Depends(require_user)):
    if user is None:
        return {"uid": None, "email": None}
    return user.model_dump(by_alias=True, exclude={"id_token", "refresh_token"})


@http_router.post("/auth/password")
def change_password(body: PasswordChangeRequest,
                    user: Optional[AuthUser] = Depends(require_user),
                    auth: AuthProvider = Depends(get_auth)):
    if user is None or not user.email:
        raise AuthenticationError("Sign in to change your password")
    auth.change_password(user.email, body.current_password, body.new_password, body.confirm_password)
    return {"ok": True}


# -------------------------
# Employees
# -------------------------
@http_router.get("/employees")
async def list_employees(q: ListQuery = Depends(list_query), repos: Repositories = Depends(get_repos)):
    page = await repos.employees.list(q)
    return _page_out(page, _out)


@http_router.post("/employees", status_code=201)
async def create_employee(body: Dict[str, Any] = Body(...), repos: Repositories = Depends(get_repos)):
    employee = await repos.employees.create(repos.employees.validate(body))
    return _out(employee)


@http_router.get("/employees/{employee_id}")
async def get_employee(employee_id: str, repos: Repositories = Depends(get_repos)):
    return _out(await repos.employees.get(employee_id))


@http_router.put("/employees/{employee_id}")
async def update_employee(employee_id: str, body: Dict[str, Any] = Body(...),
                          repos: Repositories = Depends(get_repos)):
    employee = repos.employees.validate(body, employee_id)
    return _out(await repos.employees.update(employee_id, employee))


@http_router.delete("/employees/{employee_id}")
async def delete_employee(employee_id: str, repos: Repositories = Depends(get_repos)):
    await repos.employees.delete(employee_id)
    return {"ok": True}


# -------------------------
# Orders (normal-orders | dissertations | projects)
# -------------------------
@http_router.post("/pricing/quote")
def quote(body: Dict[str, Any] = Body(...)):
    """Live budget for the order form; nothing is stored."""
    model = Dissertation if body.get("type") == OrderType.DISSERTATION.value else Project
    data = {"projectName": "-", "orderDate": "2000-01-01", "submissionDate": "2000-01-01",
            "supervisorName": "-", "season": "-", **body}
    try:
        order = model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError("Invalid pricing input",
                              details={"errors": [err.get("msg") for err in e.errors()]}) from e
    total_paid = getattr(order, "total_paid", None)
    return price_summary(order, total_paid)


@http_router.get("/orders/{kind}")
async def list_orders(kind: str, request: Request, q: ListQuery = Depends(list_query),
                      repos: Repositories = Depends(get_repos)):
    on = today(request)
    page = await repos.orders_by_kind(kind).list(q, today=on)
    return _page_out(page, lambda o: _order_out(o, on))


@http_router.post("/orders/{kind}", status_code=201)
async def create_order(kind: str, request: Request, body: Dict[str, Any] = Body(...),
                       repos: Repositories = Depends(get_repos)):
    repo = repos.orders_by_kind(kind)
    order = await repo.create(repo.validate(body))
    return _order_out(order, today(request))


@http_router.get("/orders/{kind}/gantt")
async def order_gantt(kind: str, q: ListQuery = Depends(list_query), repos: Repositories = Depends(get_repos)):
    repo = repos.orders_by_kind(kind)
    return {"rows": reporting.gantt_rows(repo.filter(await repo.all(), q))}


@http_router.get("/orders/{kind}/{order_id}")
async def get_order(kind: str, order_id: str, request: Request, repos: Repositories = Depends(get_repos)):
    return _order_out(await repos.orders_by_kind(kind).get(order_id), today(request))


@http_router.put("/orders/{kind}/{order_id}")
async def update_order(kind: str, order_id: str, request: Request, body: Dict[str, Any] = Body(...),
                       repos: Repositories = Depends(get_repos)):
    repo: OrderRepository = repos.orders_by_kind(kind)
    order = await repo.update(order_id, repo.validate(body, order_id))
    return _order_out(order, today(request))


@http_router.delete("/orders/{kind}/{order_id}")
async def delete_order(kind: str, order_id: str, repos: Repositories = Depends(get_repos)):
    await repos.orders_by_kind(kind).delete(order_id)
    return {"ok": True}


@http_router.post("/orders/dissertations/{order_id}/payment")
async def update_payment(order_id: str, request: Request, body: PaymentUpdate,
                         repos: Repositories = Depends(get_repos)):
    order = await repos.dissertations.update_payment(order_id, body)
    return _order_out(order, today(request))


# -------------------------
# Spreadsheets
# -------------------------
async def _records_for(kind: str, repos: Repositories, q: ListQuery) -> List[Any]:
    repo = repos.employees if kind == "employees" else repos.orders_by_kind(kind)
    return repo.filter(await repo.all(), q)


@http_router.get("/export/{kind}")
async def export_sheet(kind: str, request: Request,
                       columns: Optional[str] = Query(None, description="Comma separated column keys"),
                       q: ListQuery = Depends(list_query), repos: Repositories = Depends(get_repos)):
    if kind not in spreadsheets.KINDS:
        raise ValidationError(f"Unknown export kind '{kind}'")
    _, labels, sheet = spreadsheets.KINDS[kind]
    selected = [c.strip() for c in columns.split(",") if c.strip()] if columns else None
    records = await _records_for(kind, repos, q)
    on = today(request)
    rows = spreadsheets.export_rows(records, labels, selected, today=on)
    total = sum(r.budget for r in records) if kind == "dissertations" else None
    content = spreadsheets.write_workbook(rows, sheet, total_amount=total)
    return _xlsx(content, spreadsheets.export_filename(kind, on))


@http_router.post("/import/{kind}")
async def import_sheet(kind: str, file: UploadFile = File(...), repos: Repositories = Depends(get_repos)):
    rows = spreadsheets.read_rows(await file.read())
    records = spreadsheets.rows_to_records(rows, kind)
    repo = repos.employees if kind == "employees" else repos.orders_by_kind(kind)
    for record in records:
        await repo.create(record)
    logger.info("Imported %d %s from %s", len(records), kind, file.filename)
    return {"ok": True, "imported": len(records)}


# -------------------------
# Invoices
# -------------------------
@http_router.get("/invoices")
async def list_invoices(q: ListQuery = Depends(list_query), repos: Repositories = Depends(get_repos)):
    return _page_out(await repos.invoices.list(q), _out)


@http_router.get("/invoices/filters")
async def invoice_filters(service: InvoiceService = Depends(get_invoices)):
    return await service.filters()


@http_router.post("/invoices/preview")
async def preview_invoice(body: InvoiceRequest, request: Request,
                          service: InvoiceService = Depends(get_invoices)):
    cohort = await service.preview(body.supervisor_name, body.season, body.project_type)
    on = today(request)
    return {
        "projects": [_order_out(o, on) for o in cohort],
        "totalAmount": sum(o.budget for o in cohort),
        "projectCount": len(cohort),
    }


@http_router.post("/invoices", status_code=201)
async def generate_invoice(body: InvoiceRequest, request: Request,
                           service: InvoiceService = Depends(get_invoices)):
    invoice, cohort = await service.generate(body.supervisor_name, body.season, body.project_type,
                                             now=now(request))
    return {
        "invoice": _out(invoice),
        "rows": spreadsheets.export_rows(cohort, spreadsheets.INVOICE_COLUMNS, today=today(request)),
        "filename": spreadsheets.invoice_filename(body.supervisor_name, body.season),
    }


@http_router.get("/invoices/workbook")
async def invoice_workbook(request: Request,
                           supervisor_name: str = Query(..., alias="supervisorName"),
                           season: str = Query(...),
                           project_type: Optional[OrderType] = Query(None, alias="projectType"),
                           service: InvoiceService = Depends(get_invoices)):
    cohort = await service.preview(supervisor_name, season, project_type)
    content = spreadsheets.invoice_workbook(cohort, today=today(request))
    return _xlsx(content, spreadsheets.invoice_filename(supervisor_name, season))


@http_router.post("/invoices/{invoice_id}/toggle-paid")
async def toggle_invoice_paid(invoice_id: str, service: InvoiceService = Depends(get_invoices)):
    return _out(await service.toggle_paid(invoice_id))


@http_router.put("/invoices/{invoice_id}/paid")
async def set_invoice_paid(invoice_id: str, is_paid: bool = Body(..., embed=True, alias="isPaid"),
                           service: InvoiceService = Depends(get_invoices)):
    return _out(await service.set_paid(invoice_id, is_paid))


@http_router.delete("/invoices/{invoice_id}")
async def delete_invoice(invoice_id: str, service: InvoiceService = Depends(get_invoices)):
    await service.delete(invoice_id)
    return {"ok": True}


# -------------------------
# Dashboard & reports
# -------------------------
@http_router.get("/dashboard")
async def dashboard(request: Request, repos: Repositories = Depends(get_repos)):
    orders = await repos.all_orders()
    employees = await repos.employees.all()
    return reporting.dashboard(orders, employees, today(request))


@http_router.get("/dashboard/activity")
async def activity(request: Request, heartbeat: bool = False, repos: Repositories = Depends(get_repos)):
    feed = reporting.activity_feed(await repos.all_orders(), await repos.employees.all())
    if heartbeat:
        feed = reporting.with_heartbeat(feed, now(request))
    return {
        "entries": [e.to_dict() for e in feed],
        "refreshSeconds": settings.HEARTBEAT_INTERVAL_SECONDS,
    }


@http_router.get("/reports")
async def report_seasons(repos: Repositories = Depends(get_repos)):
    return {"seasons": reporting.available_seasons(await repos.all_orders())}


@http_router.get("/reports/{season}")
async def season_report(season: str, request: Request, repos: Repositories = Depends(get_repos)):
    orders = await repos.all_orders(where=("season", season))
    return reporting.season_report(orders, season, today(request))


@http_router.get("/reports/{season}/pdf")
async def season_report_pdf(season: str, request: Request, repos: Repositories = Depends(get_repos)):
    orders = await repos.all_orders(where=("season", season))
    report = reporting.season_report(orders, season, today(request))
    content = pdf_report.render_summary_pdf(f"Project report - {season}", report["summary"])
    return Response(content=content, media_type="application/pdf",
                    headers={"Content-Disposition": f'attachment; filename="report_{season}.pdf"'})
