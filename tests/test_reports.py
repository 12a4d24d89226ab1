from datetime import date
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from budget_tracker.errors import ExportError, ValidationError
from budget_tracker.models import CategoryRef, Earning, Expense
from budget_tracker.services.reports import (
    build_report,
    format_amount,
    format_money,
    parse_report_options,
    render_csv_report,
    render_html_report,
    report_filename,
    write_report,
)

MARCH = date(2024, 3, 1)


def _lunch() -> Expense:
    return Expense(
        id="e1",
        amount=12.5,
        category_id="c1",
        date=MARCH,
        notes="lunch",
        category=CategoryRef(name="Food"),
    )


def test_csv_report_matches_export_format() -> None:
    assert render_csv_report([_lunch()], []) == (
        "Date,Type,Category,Amount,Notes\n"
        "2024-03-01,Expense,Food,12.5,lunch\n"
    )


def test_csv_report_quotes_and_fills_missing_values() -> None:
    earning = Earning(amount=40.0, date=date(2024, 3, 2), notes="bonus, march")

    content = render_csv_report([], [earning])

    assert content.splitlines()[1] == '2024-03-02,Earning,Uncategorized,40,"bonus, march"'


def test_format_helpers() -> None:
    assert format_amount(12.5) == "12.5"
    assert format_amount(40.0) == "40"
    assert format_money(-5, "$") == "-$5.00"
    assert format_money(1234.5, "EUR ") == "EUR 1234.50"


def test_html_report_renders_sections_and_totals() -> None:
    earning = Earning(amount=100, date=date(2024, 3, 5), source="ACME", category=CategoryRef(name="Salary"))

    html = render_html_report([_lunch()], [earning], MARCH, currency_symbol="$")

    assert "March 2024" in html
    assert "Mar 1, 2024" in html
    assert "$12.50" in html
    assert "$100.00" in html
    assert "$87.50" in html
    assert "Salary" in html


def test_html_report_escapes_notes() -> None:
    expense = _lunch().model_copy(update={"notes": "<b>lunch</b>"})

    html = render_html_report([expense], [], MARCH, report_type="expenses", currency_symbol="$")

    assert "&lt;b&gt;lunch&lt;/b&gt;" in html
    assert "<h3>Earnings</h3>" not in html


def test_parse_report_options() -> None:
    assert parse_report_options(None, None) == ("all", "csv")
    assert parse_report_options("Expenses", "HTML") == ("expenses", "html")
    with pytest.raises(ValidationError, match="Unknown report format"):
        parse_report_options("all", "pdf")
    with pytest.raises(ValidationError, match="Unknown report type"):
        parse_report_options("taxes", "csv")


def test_report_filename() -> None:
    assert report_filename(MARCH, "csv") == "Budget_Report_March_2024.csv"


def test_write_report_creates_directory(tmp_path: Path) -> None:
    path = write_report("content", "report.csv", str(tmp_path / "nested"))

    assert path == tmp_path / "nested" / "report.csv"
    assert path.read_text(encoding="utf-8") == "content"


def test_write_report_wraps_os_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(ExportError, match="Could not save the report"):
        write_report("content", "report.csv", str(blocker))


def test_write_report_replaces_previous_file(tmp_path: Path) -> None:
    write_report("first version, longer", "report.csv", str(tmp_path))
    path = write_report("second", "report.csv", str(tmp_path))

    assert path.read_text(encoding="utf-8") == "second"
    assert [item.name for item in tmp_path.iterdir()] == ["report.csv"]


@pytest.mark.anyio
async def test_build_report_fetches_month_in_date_order() -> None:
    store = AsyncMock()

    async def select(collection: str, **kwargs: Any) -> list[dict[str, Any]]:
        if collection == "expenses":
            return [{
                "id": "e1",
                "amount": 12.5,
                "date": "2024-03-01",
                "notes": "lunch",
                "category": {"name": "Food"},
            }]
        return []

    store.select.side_effect = select

    content, filename = await build_report(store, "expenses", "csv", date(2024, 3, 15))

    assert filename == "Budget_Report_March_2024.csv"
    assert content == (
        "Date,Type,Category,Amount,Notes\n"
        "2024-03-01,Expense,Food,12.5,lunch\n"
    )
    store.select.assert_awaited_once()
    kwargs = store.select.call_args.kwargs
    assert [item.as_param() for item in kwargs["filters"]] == [
        ("date", "gte.2024-03-01"),
        ("date", "lte.2024-03-31"),
    ]
    assert [item.as_param() for item in kwargs["order"]] == ["date.asc"]
