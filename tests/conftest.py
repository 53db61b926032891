import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ips_api.store import init_db


@pytest.fixture(autouse=True)
def configure_test_env(monkeypatch, tmp_path):
    db_path = tmp_path / "test_ips_logs.db"
    monkeypatch.setenv("LOG_DATABASE_URL", f"sqlite:///{db_path}")
    init_db(f"sqlite:///{db_path}")
    yield
    if db_path.exists():
        db_path.unlink()


@pytest.fixture
def nav_builder():
    def _builder(modules=None, children=None):
        module_rows = [
            {
                "ObjNo": obj_no,
                "Code": code,
                "Name": code,
                "Description": "",
                "Icon": "",
                "SortOrder": index,
                "StatusNo": 1,
                "IsActive": is_active,
            }
            for index, (obj_no, code, is_active) in enumerate(modules or [])
        ]
        child_rows = [
            {
                "ObjNo": obj_no,
                "Code": code,
                "Name": code,
                "ParentObjNo": parent,
                "ObjTypeNo": 826,
                "SortOrder": index,
                "StatusNo": 1,
                "FormID": form_id,
            }
            for index, (obj_no, code, parent, form_id) in enumerate(children or [])
        ]
        return module_rows, child_rows

    return _builder
