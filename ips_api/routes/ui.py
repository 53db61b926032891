import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from ips_api.catalogs import get_form_catalog
from ips_api.db import ProcedureClient, ProcedureError, get_procedure_client
from ips_api.models import ErmResult
from ips_api.navigation import NavigationService, get_navigation_service
from ips_api.navigation.tree import FORM_ID, OBJ_NO
from ips_api.pagination import paginate
from ips_api.routes.erm import build_erm_result
from ips_api.settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter()
TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def _sidebar_sections(navigation: NavigationService) -> List[Dict[str, Any]]:
    sections = []
    for module in navigation.active_modules():
        children = [
            child for child in navigation.children_of(module.get(OBJ_NO)) if child.get(FORM_ID) is not None
        ]
        sections.append({"module": module, "children": children})
    return sections


@router.get("/ui")
async def ui_root(settings: Settings = Depends(get_settings)) -> RedirectResponse:
    return RedirectResponse(f"/ui/forms/{settings.default_form_id}", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/ui/forms/{form_id}", response_class=HTMLResponse)
def ui_form_view(
    request: Request,
    form_id: int,
    page: int = Query(1),
    client: ProcedureClient = Depends(get_procedure_client),
    navigation: NavigationService = Depends(get_navigation_service),
    settings: Settings = Depends(get_settings),
) -> HTMLResponse:
    navigation.load()
    catalog = get_form_catalog()

    result: Optional[ErmResult] = None
    error: Optional[str] = None
    try:
        result = build_erm_result(client, form_id, debug_row_checks=settings.debug_row_checks)
    except ProcedureError as exc:
        logger.error("Failed to load form %s: %s", form_id, exc)
        error = f"Database error: {exc}"

    rows = result.rows if result else []
    page_view = paginate(rows, page, settings.page_size)

    return templates.TemplateResponse(
        request,
        "form_view.html",
        {
            "form_id": form_id,
            "form": catalog.get(form_id),
            "forms": catalog.forms,
            "sections": _sidebar_sections(navigation),
            "columns": result.columns if result else [],
            "page": page_view,
            "error": error,
            "known_failing": form_id in catalog.known_failing,
            "known_empty": form_id in catalog.known_empty,
        },
    )
