# recordhub/spreadsheets.py
"""
Spreadsheet import/export.

Rows are keyed by the human-readable column labels shown on each screen
("Project Name", "CPP", "Has Code", ...). Workbooks are written with pandas
and the openpyxl engine.
"""
import io
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from . import settings
from .classifier import is_overdue
from .errors import ValidationError
from .pricing import apply_pricing
from .schemas import Dissertation, Employee, NormalOrder, OrderBase, Project

logger = logging.getLogger(__name__)

# column key -> label, in sheet order
ORDER_COLUMNS: Dict[str, str] = {
    "projectName": "Project Name",
    "orderDate": "Order Date",
    "submissionDate": "Submission Date",
    "supervisorName": "Writer",
    "season": "Season",
    "status": "Status",
    "type": "Type",
    "budget": "Total Amount",
    "wordCount": "Word Count",
    "hasCode": "Has Code",
    "costPerPage": "CPP",
    "codePrice": "Code Price",
    "progress": "Progress",
    "isOverdue": "Overdue",
}

DISSERTATION_COLUMNS: Dict[str, str] = {
    **{k: v for k, v in ORDER_COLUMNS.items() if k not in ("isOverdue", "type")},
    "projectName": "Dissertation Title",
    "wordsPaid": "Words Paid",
    "totalPaid": "Amount Paid",
    "remainingBalance": "Balance",
    "isFullyPaid": "Fully Paid",
    "datePaid": "Date Paid",
}

EMPLOYEE_COLUMNS: Dict[str, str] = {
    "employeeName": "Employee Name",
    "hireDate": "Hire Date",
    "department": "Department",
    "position": "Position",
    "status": "Status",
    "phoneNumber": "Phone Number",
    "performanceScore": "Performance Score",
}

INVOICE_COLUMNS: Dict[str, str] = {
    "projectName": "Project Name",
    "submissionDate": "Submission Date",
    "supervisorName": "Supervisor",
    "season": "Season",
    "status": "Status",
    "type": "Type",
    "budget": "Total Amount",
    "wordCount": "Word Count",
    "costPerPage": "CPP",
    "codePrice": "Code Price",
    "hasCode": "Has Code",
}

_MONEY = {"budget", "costPerPage", "codePrice", "totalPaid", "remainingBalance"}
_FLAGS = {"hasCode", "isFullyPaid", "isOverdue"}

KINDS: Dict[str, Tuple[Type, Dict[str, str], str]] = {
    "normal-orders": (NormalOrder, ORDER_COLUMNS, "Normal Orders"),
    "dissertations": (Dissertation, DISSERTATION_COLUMNS, "Dissertations"),
    "projects": (Project, ORDER_COLUMNS, "Projects"),
    "employees": (Employee, EMPLOYEE_COLUMNS, "Employees"),
}


def money(value: Any) -> str:
    try:
        n = float(value or 0)
    except (TypeError, ValueError):
        n = 0.0
    if n.is_integer():
        return f"{settings.CURRENCY_PREFIX}{int(n):,}"
    return f"{settings.CURRENCY_PREFIX}{n:,.2f}"


def _cell(key: str, record: Any, doc: Dict[str, Any], today: date) -> Any:
    if key == "isOverdue":
        return "Yes" if is_overdue(record.status, record.submission_date, today) else "No"
    value = doc.get(key)
    if key in _MONEY:
        return money(value)
    if key in _FLAGS:
        return "Yes" if value else "No"
    if key == "progress":
        return f"{value or 0}%"
    if key == "datePaid":
        return value or "Not Paid"
    if key == "wordCount":
        return f"{int(value or 0):,}"
    return value


# -------------------------
# Export
# -------------------------
def export_rows(records: Iterable[Any], columns: Dict[str, str],
                selected: Optional[Sequence[str]] = None,
                today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Format records as label-keyed rows; `selected` picks a column subset."""
    today = today or date.today()
    keys = [k for k in columns if selected is None or k in selected]
    rows = []
    for r in records:
        doc = r.to_document()
        rows.append({columns[k]: _cell(k, r, doc, today) for k in keys})
    return rows


def write_workbook(rows: List[Dict[str, Any]], sheet_name: str,
                   total_amount: Optional[float] = None) -> bytes:
    """
    Write rows to an xlsx workbook and return its bytes. A total line is added
    two rows below the table, right of the last column, when given.
    """
    df = pd.DataFrame(rows)
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        if total_amount is not None:
            ws = writer.sheets[sheet_name]
            ws.cell(row=len(rows) + 3, column=max(len(df.columns), 1) + 2,
                    value=f"Total Amount: {money(total_amount)}")
    return buf.getvalue()


def export_filename(kind: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{kind.replace('-', '_')}_{today.isoformat()}.xlsx"


def invoice_filename(supervisor_name: str, season: str) -> str:
    return f"Invoice_{supervisor_name}_{season}.xlsx"


def invoice_workbook(cohort: Sequence[OrderBase], today: Optional[date] = None) -> bytes:
    return write_workbook(export_rows(cohort, INVOICE_COLUMNS, today=today), "Invoice")


# -------------------------
# Import
# -------------------------
def read_rows(content: bytes) -> List[Dict[str, Any]]:
    """First sheet of an xlsx/xls workbook (or CSV text) as a list of dicts."""
    try:
        df = pd.read_excel(io.BytesIO(content), sheet_name=0)
    except ValueError:
        df = pd.read_csv(io.BytesIO(content))
    # headerless columns hold the exported total line
    df = df.loc[:, ~df.columns.astype(str).str.startswith("Unnamed")]
    df = df.dropna(how="all")
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")


def _unlabel(row: Dict[str, Any], columns: Dict[str, str]) -> Dict[str, Any]:
    by_label = {label: key for key, label in columns.items()}
    # normal orders and projects share labels; accept either title label too
    by_label.setdefault("Project Name", "projectName")
    by_label.setdefault("Dissertation Title", "projectName")
    by_label.setdefault("Supervisor", "supervisorName")
    out: Dict[str, Any] = {}
    for label, value in row.items():
        key = by_label.get(str(label).strip())
        if key is None or key in ("budget", "remainingBalance", "isOverdue"):
            continue
        if isinstance(value, str) and value.startswith(settings.CURRENCY_PREFIX):
            value = value[len(settings.CURRENCY_PREFIX):]
        if isinstance(value, str) and key == "progress":
            value = value.rstrip("%")
        if key == "datePaid" and value == "Not Paid":
            value = None
        if hasattr(value, "isoformat"):
            value = value.isoformat()
        elif hasattr(value, "item") and not isinstance(value, str):
            value = value.item()  # numpy scalar
        out[key] = value
    return out


def rows_to_records(rows: Iterable[Dict[str, Any]], kind: str) -> List[Any]:
    """
    Map imported rows to validated records. Derived fields are recomputed,
    never read from the sheet. Raises ValidationError listing every bad row.
    """
    if kind not in KINDS:
        raise ValidationError(f"Unknown import kind '{kind}'")
    model, columns, _ = KINDS[kind]
    records, problems = [], []
    for n, row in enumerate(rows, start=2):  # row 1 is the header
        data = _unlabel(row, columns)
        if model is Dissertation and data.get("codePrice") in (None, "", 0):
            data["codePrice"] = settings.PRICING_DEFAULTS["Dissertation"]["codePrice"]
        elif issubclass(model, OrderBase) and data.get("codePrice") in (None, ""):
            data["codePrice"] = 0
        try:
            record = model.model_validate(data)
        except PydanticValidationError as e:
            problems.append({"row": n, "errors": [err.get("msg") for err in e.errors()]})
            continue
        if isinstance(record, OrderBase):
            record = apply_pricing(record)
        records.append(record)
    if problems:
        logger.warning("Import of %s rejected %d row(s)", kind, len(problems))
        raise ValidationError(f"{len(problems)} row(s) could not be imported",
                              details={"rows": problems})
    return records
