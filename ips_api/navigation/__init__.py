from .service import LoadState, NavigationService, get_navigation_service
from .tree import NavigationTree, as_int, id_key, synthesize

__all__ = [
    "LoadState",
    "NavigationService",
    "NavigationTree",
    "as_int",
    "get_navigation_service",
    "id_key",
    "synthesize",
]
