from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response

from budget_tracker.api.dependencies import get_store
from budget_tracker.domain.validation import parse_date
from budget_tracker.integration.store import StoreClient
from budget_tracker.services.reports import MEDIA_TYPES, build_report, parse_report_options, write_report

router = APIRouter(prefix="/api/reports")


@router.get("")
async def download_report(
    store: Annotated[StoreClient, Depends(get_store)],
    report_type: Annotated[str | None, Query(alias="type")] = None,
    report_format: Annotated[str | None, Query(alias="format")] = None,
    month: str | None = None,
    save: bool = False,
) -> Response:
    type_value, format_value = parse_report_options(report_type, report_format)
    content, filename = await build_report(store, type_value, format_value, parse_date(month))
    if save:
        write_report(content, filename)
    return Response(
        content,
        media_type=MEDIA_TYPES[format_value],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
