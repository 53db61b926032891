import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ips_api.catalogs import get_form_catalog
from ips_api.db import ERM_PROCEDURE, ProcedureClient, fetch_erm_result, get_procedure_client
from ips_api.ingest import find_heterogeneous_rows, normalize_rows
from ips_api.models import ApiResponse, ErmResult
from ips_api.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_required_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO date or datetime; anything else is sent to the procedure as NULL."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        logger.warning("Ignoring unparsable RequiredDate %r", value)
        return None


def build_erm_result(
    client: ProcedureClient,
    form_id: int,
    obj_type_list: str = "",
    required_date: Optional[datetime] = None,
    *,
    debug_row_checks: bool = False,
) -> ErmResult:
    rows = fetch_erm_result(client, form_id, obj_type_list, required_date)
    normalized = normalize_rows(rows)

    if debug_row_checks:
        mismatched = find_heterogeneous_rows(normalized["rows"], normalized["columns"])
        if mismatched:
            logger.warning(
                "%s FormID=%s returned %d rows whose columns differ from the first row (indexes %s)",
                ERM_PROCEDURE,
                form_id,
                len(mismatched),
                mismatched[:10],
            )

    return ErmResult(**normalized, formId=form_id, procedureName=ERM_PROCEDURE)


@router.get("/api/erm/forms")
async def list_erm_forms() -> ApiResponse:
    catalog = get_form_catalog()
    return ApiResponse.ok([form.model_dump() for form in catalog.forms])


@router.get("/api/erm")
def get_erm(
    request: Request,
    form_id: int = Query(..., alias="formId"),
    obj_type_list: str = Query("", alias="objTypeList"),
    required_date: Optional[str] = Query(None, alias="requiredDate"),
    client: ProcedureClient = Depends(get_procedure_client),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    request.state.procedure_name = ERM_PROCEDURE
    result = build_erm_result(
        client,
        form_id,
        obj_type_list,
        parse_required_date(required_date),
        debug_row_checks=settings.debug_row_checks,
    )
    return ApiResponse.ok(result.model_dump())
