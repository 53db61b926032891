"""Process-wide navigation cache with a single-fetch load guard."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Iterable, List, Optional, Tuple

from ips_api.catalogs import FormIdOverrides, get_form_id_overrides
from ips_api.db import fetch_navigation, get_procedure_client
from ips_api.navigation.tree import NavigationTree, NavRow, synthesize
from ips_api.settings import get_settings

logger = logging.getLogger(__name__)

NavigationFetcher = Callable[[], Tuple[Iterable[NavRow], Iterable[NavRow]]]
Subscriber = Callable[["NavigationService"], None]


class LoadState(str, Enum):
    EMPTY = "empty"
    LOADING = "loading"
    LOADED = "loaded"


class NavigationService:
    """Loads the navigation tree once and serves it for the life of the instance.

    ``load()`` fetches and synthesizes only on the first call; later calls,
    including ones that arrive while the first is still running, return
    without doing anything. A failed fetch still ends in ``LOADED`` with an
    empty tree and the failure message kept in :attr:`error`. There is no
    way back to ``EMPTY``; build a new service to reload.
    """

    def __init__(
        self,
        fetcher: NavigationFetcher,
        *,
        erm_parent_id: int,
        overrides: FormIdOverrides,
    ):
        self._fetcher = fetcher
        self._erm_parent_id = erm_parent_id
        self._overrides = overrides
        self._lock = threading.Lock()
        self._state = LoadState.EMPTY
        self._tree = NavigationTree.empty(erm_parent_id)
        self._error: Optional[str] = None
        self._subscribers: List[Subscriber] = []

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state is LoadState.LOADING

    @property
    def loaded(self) -> bool:
        return self._state is LoadState.LOADED

    @property
    def tree(self) -> NavigationTree:
        return self._tree

    @property
    def error(self) -> Optional[str]:
        return self._error

    def load(self) -> bool:
        """Trigger the one-time load. Returns True only for the call that fetched."""
        with self._lock:
            if self._state is not LoadState.EMPTY:
                return False
            self._state = LoadState.LOADING

        tree = NavigationTree.empty(self._erm_parent_id)
        error: Optional[str] = None
        try:
            modules, children = self._fetcher()
            tree = synthesize(
                modules,
                children,
                erm_parent_id=self._erm_parent_id,
                overrides=self._overrides,
            )
            logger.info(
                "Navigation loaded: %d modules, %d parent groups",
                len(tree.all_modules()),
                len(tree.children_by_parent),
            )
        except Exception as exc:  # any fetch failure ends the load with an empty tree
            logger.exception("Navigation load failed: %s", exc)
            error = str(exc) or exc.__class__.__name__

        with self._lock:
            self._tree = tree
            self._error = error
            self._state = LoadState.LOADED
            subscribers = list(self._subscribers)
            self._subscribers.clear()

        self._notify(subscribers)
        return True

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback`` once the service is loaded (right away if it already is).

        Returns a function that cancels a pending subscription.
        """
        with self._lock:
            pending = self._state is not LoadState.LOADED
            if pending:
                self._subscribers.append(callback)

        if not pending:
            self._notify([callback])

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, subscribers: List[Subscriber]) -> None:
        for callback in subscribers:
            try:
                callback(self)
            except Exception:  # a failing subscriber must not block the others
                logger.exception("Navigation subscriber %r raised", callback)

    def active_modules(self) -> List[NavRow]:
        return self._tree.active_modules()

    def children_of(self, parent_id: Any) -> List[NavRow]:
        return self._tree.children_of(parent_id)


def _fetch_from_database() -> Tuple[List[NavRow], List[NavRow]]:
    return fetch_navigation(get_procedure_client())


@lru_cache
def get_navigation_service() -> NavigationService:
    """Return the process-wide navigation service."""
    settings = get_settings()
    return NavigationService(
        _fetch_from_database,
        erm_parent_id=settings.erm_parent_id,
        overrides=get_form_id_overrides(),
    )
