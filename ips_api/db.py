"""MySQL stored procedure access.

Every database call in the service goes through :class:`ProcedureClient`.
Results are returned as lists of dictionaries keyed by column name, which lets
procedures such as ``ReadNewERM`` define their own column set per call.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date
from functools import lru_cache
from typing import Any, Dict, Generator, List, Optional, Sequence, Tuple

import mysql.connector
from mysql.connector import pooling

from ips_api.settings import Settings, get_settings

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

ERM_PROCEDURE = "ReadNewERM"
NAVIGATION_PROCEDURE = "ReadNavigation"


class ProcedureError(Exception):
    """Raised when a stored procedure call fails at the driver or server."""

    def __init__(self, procedure_name: str, message: str):
        self.procedure_name = procedure_name
        super().__init__(message)


def _rows_from_cursor(cursor: Any) -> List[Row]:
    columns: Sequence[str] = cursor.column_names or ()
    rows: List[Row] = []
    for record in cursor.fetchall():
        if isinstance(record, dict):
            rows.append(dict(record))
        else:
            rows.append(dict(zip(columns, record)))
    return rows


class ProcedureClient:
    """Calls stored procedures through a lazily created connection pool."""

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        *,
        pool_size: int = 5,
    ):
        self._config = {
            "host": host,
            "port": port,
            "database": database,
            "user": user,
            "password": password,
        }
        self._pool_size = pool_size
        self._pool: Optional[pooling.MySQLConnectionPool] = None
        self._pool_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProcedureClient":
        return cls(
            settings.db_host,
            settings.db_port,
            settings.db_name,
            settings.db_user,
            settings.db_password,
            pool_size=settings.db_pool_size,
        )

    def _get_pool(self) -> pooling.MySQLConnectionPool:
        if self._pool is None:
            with self._pool_lock:
                if self._pool is None:
                    self._pool = pooling.MySQLConnectionPool(
                        pool_name="ips_api_pool",
                        pool_size=self._pool_size,
                        charset="utf8mb4",
                        **self._config,
                    )
        return self._pool

    @contextmanager
    def _connect(self, procedure_name: str) -> Generator[Any, None, None]:
        try:
            conn = self._get_pool().get_connection()
        except mysql.connector.Error as exc:
            raise ProcedureError(procedure_name, f"Unable to connect to database: {exc}") from exc
        try:
            yield conn
        finally:
            conn.close()

    def call_procedure_multi(
        self,
        procedure_name: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[List[Row]]:
        """Call ``procedure_name`` and return every result set it produces, in order.

        ``params`` is ordered to match the procedure signature; ``None`` values
        are sent as SQL NULL.
        """
        args = tuple((params or {}).values())
        with self._connect(procedure_name) as conn:
            cursor = conn.cursor()
            try:
                cursor.callproc(procedure_name, args)
                result_sets = [_rows_from_cursor(result) for result in cursor.stored_results()]
            except mysql.connector.Error as exc:
                raise ProcedureError(procedure_name, str(exc)) from exc
            finally:
                cursor.close()

        logger.debug(
            "Procedure %s returned %d result sets (%s rows)",
            procedure_name,
            len(result_sets),
            [len(result) for result in result_sets],
        )
        return result_sets

    def call_procedure(self, procedure_name: str, params: Optional[Dict[str, Any]] = None) -> List[Row]:
        """Call ``procedure_name`` and return its first result set."""
        result_sets = self.call_procedure_multi(procedure_name, params)
        return result_sets[0] if result_sets else []


@lru_cache
def get_procedure_client() -> ProcedureClient:
    """Return the process-wide procedure client."""
    return ProcedureClient.from_settings(get_settings())


def fetch_erm_result(
    client: ProcedureClient,
    form_id: int,
    obj_type_list: str = "",
    required_date: Optional[date] = None,
) -> List[Row]:
    logger.info(
        "Calling %s with FormID=%s, ObjTypeList=%s, RequiredDate=%s",
        ERM_PROCEDURE,
        form_id,
        obj_type_list,
        required_date,
    )
    params = {
        "FormID": form_id,
        "ObjTypeList": obj_type_list or "",
        "RequiredDate": required_date,
    }
    return client.call_procedure(ERM_PROCEDURE, params)


def fetch_navigation(client: ProcedureClient) -> Tuple[List[Row], List[Row]]:
    """Return ``(modules, children)`` from the two navigation result sets."""
    logger.info("Calling %s", NAVIGATION_PROCEDURE)
    result_sets = client.call_procedure_multi(NAVIGATION_PROCEDURE)
    modules = result_sets[0] if len(result_sets) > 0 else []
    children = result_sets[1] if len(result_sets) > 1 else []
    return modules, children
