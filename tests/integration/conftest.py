import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient


ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ips_api.catalogs import get_form_id_overrides
from ips_api.db import ProcedureError, get_procedure_client
from ips_api.navigation import NavigationService, get_navigation_service
from ips_api.settings import get_settings


class FakeProcedureClient:
    """Serves canned result sets keyed by procedure name."""

    def __init__(self):
        self.result_sets = {}
        self.errors = {}
        self.calls = []

    def call_procedure_multi(self, procedure_name, params=None):
        self.calls.append((procedure_name, params))
        if procedure_name in self.errors:
            raise ProcedureError(procedure_name, self.errors[procedure_name])
        return self.result_sets.get(procedure_name, [])

    def call_procedure(self, procedure_name, params=None):
        result_sets = self.call_procedure_multi(procedure_name, params)
        return result_sets[0] if result_sets else []


@pytest.fixture(autouse=True)
def integration_env(monkeypatch):
    monkeypatch.setenv("ERM_PARENT_ID", "3003721")
    monkeypatch.setenv("PAGE_SIZE", "2")
    monkeypatch.setenv("DEBUG_ROW_CHECKS", "1")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def procedures():
    return FakeProcedureClient()


@pytest.fixture
def navigation_service(procedures):
    def fetcher():
        result_sets = procedures.call_procedure_multi("ReadNavigation")
        modules = result_sets[0] if len(result_sets) > 0 else []
        children = result_sets[1] if len(result_sets) > 1 else []
        return modules, children

    return NavigationService(
        fetcher,
        erm_parent_id=get_settings().erm_parent_id,
        overrides=get_form_id_overrides(),
    )


@pytest.fixture
def client(procedures, navigation_service):
    from ips_api.main import app

    app.dependency_overrides[get_procedure_client] = lambda: procedures
    app.dependency_overrides[get_navigation_service] = lambda: navigation_service

    test_client = TestClient(app)
    try:
        yield test_client
    finally:
        app.dependency_overrides.clear()
