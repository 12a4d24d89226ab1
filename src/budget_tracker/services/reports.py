import csv
import io
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Literal, get_args

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from budget_tracker.core import settings
from budget_tracker.domain.aggregation import total_amount
from budget_tracker.domain.periods import month_interval
from budget_tracker.errors import ExportError, ValidationError
from budget_tracker.integration.store import StoreClient
from budget_tracker.logger import get_logger
from budget_tracker.models import UNCATEGORIZED, Earning, Expense, Transaction
from budget_tracker.services.queries import TransactionQuery, fetch_earnings, fetch_expenses
from budget_tracker.services.tasks import join

logger = get_logger(__name__)

ReportType = Literal["expenses", "earnings", "all"]
ReportFormat = Literal["html", "csv"]

REPORT_TYPES: tuple[str, ...] = get_args(ReportType)
REPORT_FORMATS: tuple[str, ...] = get_args(ReportFormat)

CSV_HEADER = ("Date", "Type", "Category", "Amount", "Notes")

MEDIA_TYPES = {
    "html": "text/html",
    "csv": "text/csv",
}

templates_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "templates"))


def format_amount(amount: float) -> str:
    """Plain number for exports: 12.5 stays 12.5, 40.0 becomes 40."""
    value = float(amount)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_money(amount: float, symbol: str | None = None) -> str:
    symbol = settings.currency_symbol() if symbol is None else symbol
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):.2f}"


def format_long_date(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}, {day.year}"


def _build_environment(symbol: str | None) -> Environment:
    env = Environment(
        loader=FileSystemLoader(templates_dir),
        autoescape=select_autoescape(["html"]),
    )
    env.filters["money"] = lambda amount: format_money(amount, symbol)
    env.filters["long_date"] = format_long_date
    return env


def parse_report_options(report_type: str | None, report_format: str | None) -> tuple[ReportType, ReportFormat]:
    type_value = (report_type or "all").lower()
    format_value = (report_format or "csv").lower()
    if type_value not in REPORT_TYPES:
        raise ValidationError(f"Unknown report type '{report_type}'. Use one of: {', '.join(REPORT_TYPES)}.")
    if format_value not in REPORT_FORMATS:
        raise ValidationError(f"Unknown report format '{report_format}'. Use one of: {', '.join(REPORT_FORMATS)}.")
    return type_value, format_value  # type: ignore[return-value]


def report_filename(month: date, report_format: ReportFormat) -> str:
    return f"Budget_Report_{month.strftime('%B_%Y')}.{report_format}"


async def fetch_report_rows(
    store: StoreClient,
    report_type: ReportType,
    month: date,
) -> tuple[list[Expense], list[Earning]]:
    interval = month_interval(month)

    async def no_rows() -> list:
        return []

    expenses, earnings = await join(
        fetch_expenses(store, TransactionQuery("expense", interval=interval, descending=False))
        if report_type in ("expenses", "all") else no_rows(),
        fetch_earnings(store, TransactionQuery("earning", interval=interval, descending=False))
        if report_type in ("earnings", "all") else no_rows(),
    )
    return expenses, earnings


def render_html_report(
    expenses: list[Expense],
    earnings: list[Earning],
    month: date,
    *,
    report_type: ReportType = "all",
    currency_symbol: str | None = None,
) -> str:
    total_expenses = total_amount(expenses)
    total_earnings = total_amount(earnings)

    sections: list[dict[str, object]] = []
    if report_type in ("expenses", "all"):
        sections.append({"title": "Expenses", "rows": expenses})
    if report_type in ("earnings", "all"):
        sections.append({"title": "Earnings", "rows": earnings})

    try:
        template = _build_environment(currency_symbol).get_template("report.html")
        return template.render(
            month_label=month.strftime("%B %Y"),
            sections=sections,
            total_expenses=total_expenses,
            total_earnings=total_earnings,
            net_amount=total_earnings - total_expenses,
        )
    except TemplateError as exc:
        logger.error("[REPORT] Failed to render HTML report: %s", exc)
        raise ExportError("Could not build the report document.") from exc


def _csv_row(kind: str, record: Transaction) -> list[str]:
    return [
        record.date.isoformat(),
        kind,
        record.category_name or UNCATEGORIZED,
        format_amount(record.amount),
        record.notes or "",
    ]


def render_csv_report(expenses: list[Expense], earnings: list[Earning]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerows(_csv_row("Expense", expense) for expense in expenses)
    writer.writerows(_csv_row("Earning", earning) for earning in earnings)
    return buffer.getvalue()


def write_report(content: str, filename: str, reports_dir: str | None = None) -> Path:
    directory = Path(reports_dir or settings.REPORTS_DIR)
    try:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / filename
        # Readers only ever see a complete file
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=directory, suffix=".tmp", delete=False
        ) as handle:
            handle.write(content)
        os.replace(handle.name, path)
    except OSError as exc:
        logger.error("[REPORT] Failed to write %s: %s", filename, exc)
        raise ExportError(f"Could not save the report: {exc.strerror or exc}") from exc
    logger.info("[REPORT] Wrote %s (%d bytes).", path, len(content.encode("utf-8")))
    return path


async def build_report(
    store: StoreClient,
    report_type: ReportType,
    report_format: ReportFormat,
    month: date,
) -> tuple[str, str]:
    """Render a month's report in memory and return ``(content, filename)``."""
    expenses, earnings = await fetch_report_rows(store, report_type, month)
    logger.info(
        "[REPORT] %s %s report for %s: %d expenses, %d earnings.",
        report_format.upper(),
        report_type,
        month.strftime("%Y-%m"),
        len(expenses),
        len(earnings),
    )
    if report_format == "html":
        content = render_html_report(expenses, earnings, month, report_type=report_type)
    else:
        content = render_csv_report(expenses, earnings)
    return content, report_filename(month, report_format)

