from fastapi import APIRouter, Depends, Request

from ips_api.db import NAVIGATION_PROCEDURE, ProcedureClient, fetch_navigation, get_procedure_client
from ips_api.models import ApiResponse, NavigationData
from ips_api.navigation import NavigationService, get_navigation_service

router = APIRouter()


@router.get("/api/navigation")
def get_navigation(
    request: Request,
    client: ProcedureClient = Depends(get_procedure_client),
) -> ApiResponse:
    """Return the raw ReadNavigation result sets: modules first, children second."""
    request.state.procedure_name = NAVIGATION_PROCEDURE
    modules, children = fetch_navigation(client)
    return ApiResponse.ok(NavigationData(modules=modules, children=children).model_dump())


@router.get("/api/navigation/tree")
def get_navigation_tree(
    request: Request,
    service: NavigationService = Depends(get_navigation_service),
) -> ApiResponse:
    request.state.procedure_name = NAVIGATION_PROCEDURE
    service.load()
    payload = service.tree.to_dict()
    payload.update(
        {
            "state": service.state.value,
            "loaded": service.loaded,
            "error": service.error,
        }
    )
    return ApiResponse.ok(payload)
