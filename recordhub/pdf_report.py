# recordhub/pdf_report.py
"""One-page PDF summary of the report aggregates (single Courier page, A4)."""
from typing import Any, Dict, List, Sequence, Tuple

from .spreadsheets import money

PAGE_W, PAGE_H = 595, 842
MAX_LINES = 45


def _sanitize(val: Any) -> str:
    out = []
    for ch in str(val if val is not None else ""):
        code = ord(ch)
        if ch in {"\n", "\r", "\t"}:
            out.append(" ")
            continue
        if 32 <= code <= 126:
            if ch in {"(", ")", "\\"}:
                out.append("\\" + ch)
            else:
                out.append(ch)
    return "".join(out).strip()


def _table_lines(title: str, rows: Sequence[Tuple[str, Any]]) -> List[str]:
    width = max([len(str(label)) for label, _ in rows] + [10])
    lines = [title, "-" * min(len(title), 80)]
    for label, value in rows:
        lines.append(f"{str(label).ljust(width)}  {value}")
    return lines


def pdf_from_lines(lines: Sequence[str]) -> bytes:
    safe = [(_sanitize(line) or "-")[:160] for line in (lines or [])] or ["-"]

    content_lines = ["BT", "/F1 11 Tf", f"50 {PAGE_H - 50} Td"]
    for i, line in enumerate(safe[:MAX_LINES]):
        if i:
            content_lines.append("0 -16 Td")
        content_lines.append(f"({line}) Tj")
    content_lines.append("ET")
    content = "\n".join(content_lines).encode("ascii", "ignore")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        (f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {PAGE_W} {PAGE_H}] "
         f"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>").encode("ascii"),
        # Courier keeps the label column aligned
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Courier >>",
        b"<< /Length %d >>\nstream\n%s\nendstream" % (len(content), content),
    ]

    parts = [b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n"]
    offsets = []
    for i, obj in enumerate(objects, start=1):
        offsets.append(sum(len(p) for p in parts))
        parts.append(f"{i} 0 obj\n".encode("ascii"))
        parts.append(obj)
        parts.append(b"\nendobj\n")

    xref_start = sum(len(p) for p in parts)
    xref = ["xref", f"0 {len(objects) + 1}", "0000000000 65535 f "]
    xref += [f"{off:010d} 00000 n " for off in offsets]
    parts.append(("\n".join(xref) + "\n").encode("ascii"))
    parts.append(
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_start}\n%%EOF\n".encode("ascii")
    )
    return b"".join(parts)


def summary_rows(summary: Dict[str, Any]) -> List[Tuple[str, Any]]:
    """Rows of the summary table, from an OrderSummary dict."""
    rows: List[Tuple[str, Any]] = [
        ("Total projects", summary.get("total", 0)),
        ("Completed", summary.get("completed", 0)),
        ("In progress", summary.get("in_progress", 0)),
        ("Pending", summary.get("pending", 0)),
        ("Overdue", summary.get("overdue", 0)),
    ]
    for label, count in (summary.get("by_type") or {}).items():
        rows.append((f"{label} projects", count))
    rate = float(summary.get("completion_rate", 0.0))
    rows.append(("Completion rate", f"{rate * 100:.1f}% ({summary.get('completion_category', '')})"))
    rows.append(("Total budget", money(summary.get("total_budget", 0))))
    for label, amount in (summary.get("budget_by_status") or {}).items():
        rows.append((f"Budget {label}", money(amount)))
    return rows


def render_summary_pdf(title: str, summary: Dict[str, Any]) -> bytes:
    return pdf_from_lines(_table_lines(title, summary_rows(summary)))
