from datetime import datetime

import pytest

ERM = 3003721

NAV_MODULES = [
    {"ObjNo": 3003720, "Code": "Strategy", "Name": "Strategy", "Description": "", "Icon": "S", "SortOrder": 1, "StatusNo": 1, "IsActive": 1},
    {"ObjNo": ERM, "Code": "ERM", "Name": "ERM", "Description": "", "Icon": "E", "SortOrder": 2, "StatusNo": 1, "IsActive": "1"},
    {"ObjNo": 3003722, "Code": "Archive", "Name": "Archive", "Description": "", "Icon": "A", "SortOrder": 3, "StatusNo": 1, "IsActive": 0},
]

NAV_CHILDREN = [
    {"ObjNo": 1, "Code": "Stakeholder", "Name": "Stakeholder", "ParentObjNo": ERM, "ObjTypeNo": 826, "SortOrder": 1, "StatusNo": 1, "FormID": 999},
    {"ObjNo": 1, "Code": "Stakeholder", "Name": "Stakeholder", "ParentObjNo": ERM, "ObjTypeNo": 826, "SortOrder": 1, "StatusNo": 1, "FormID": 998},
    {"ObjNo": 2, "Code": "Reports", "Name": "Reports", "ParentObjNo": ERM, "ObjTypeNo": 826, "SortOrder": 2, "StatusNo": 1, "FormID": 997},
    {"ObjNo": 3, "Code": "Goals", "Name": "Goals", "ParentObjNo": 3003720, "ObjTypeNo": 826, "SortOrder": 1, "StatusNo": 1, "FormID": 555},
]

ERM_ROWS = [
    {"ObjNo": 10, "Name": "Acme", "Created": datetime(2024, 1, 31, 9, 30)},
    {"ObjNo": 11, "Name": "Globex", "Created": None},
    {"ObjNo": 12, "Name": "Initech", "Created": None},
]


@pytest.fixture
def seeded(procedures):
    procedures.result_sets["ReadNavigation"] = [NAV_MODULES, NAV_CHILDREN]
    procedures.result_sets["ReadNewERM"] = [ERM_ROWS]
    return procedures


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {"status": "healthy"}
    assert body["error"] is None
    assert body["timestamp"]


def test_erm_returns_normalized_result(client, seeded):
    response = client.get("/api/erm", params={"formId": 3002443, "requiredDate": "2024-01-31"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["columns"] == ["ObjNo", "Name", "Created"]
    assert data["totalRows"] == 3
    assert data["formId"] == 3002443
    assert data["procedureName"] == "ReadNewERM"
    assert data["rows"][0]["Name"] == "Acme"
    assert data["rows"][0]["Created"].startswith("2024-01-31T09:30")

    name, params = seeded.calls[-1]
    assert name == "ReadNewERM"
    assert params == {"FormID": 3002443, "ObjTypeList": "", "RequiredDate": datetime(2024, 1, 31)}


def test_erm_ignores_unparsable_required_date(client, seeded):
    response = client.get("/api/erm", params={"formId": 1, "objTypeList": "826,827", "requiredDate": "not-a-date"})

    assert response.status_code == 200
    _, params = seeded.calls[-1]
    assert params == {"FormID": 1, "ObjTypeList": "826,827", "RequiredDate": None}


def test_erm_empty_result(client, procedures):
    response = client.get("/api/erm", params={"formId": 3003751})

    data = response.json()["data"]
    assert data["columns"] == []
    assert data["rows"] == []
    assert data["totalRows"] == 0


def test_erm_database_error_uses_envelope(client, procedures):
    procedures.errors["ReadNewERM"] = "Table 'obj' doesn't exist"

    response = client.get("/api/erm", params={"formId": 3000825})

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None
    assert body["error"] == "Database error: Table 'obj' doesn't exist"


def test_erm_requires_form_id(client):
    response = client.get("/api/erm")

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None
    assert body["error"].startswith("Invalid request")
    assert "formId" in body["error"]


def test_erm_rejects_non_numeric_form_id(client, procedures):
    response = client.get("/api/erm", params={"formId": "abc"})

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["error"].startswith("Invalid request")
    assert procedures.calls == []


def test_unwritable_request_log_keeps_response(client, seeded, monkeypatch, tmp_path):
    from ips_api import store

    monkeypatch.setattr(store, "_DB_PATH", tmp_path / "missing" / "logs.db")

    response = client.get("/api/erm", params={"formId": 3002443})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["totalRows"] == 3


def test_erm_forms_catalog(client):
    response = client.get("/api/erm/forms")

    forms = response.json()["data"]
    assert len(forms) == 20
    assert forms[0] == {"id": 3002443, "name": "Stakeholder", "code": "Stakeholder", "icon": "👥"}


def test_navigation_returns_raw_result_sets(client, seeded):
    response = client.get("/api/navigation")

    data = response.json()["data"]
    assert len(data["modules"]) == 3
    assert len(data["children"]) == 4
    assert data["children"][0]["FormID"] == 999


def test_navigation_database_error(client, procedures):
    procedures.errors["ReadNavigation"] = "connection lost"

    response = client.get("/api/navigation")

    assert response.status_code == 500
    assert response.json()["error"] == "Database error: connection lost"


def test_navigation_tree_is_synthesized_once(client, seeded):
    first = client.get("/api/navigation/tree").json()["data"]
    second = client.get("/api/navigation/tree").json()["data"]

    assert first == second
    assert [name for name, _ in seeded.calls].count("ReadNavigation") == 1
    assert first["state"] == "loaded"
    assert first["loaded"] is True
    assert first["error"] is None
    assert [module["Code"] for module in first["activeModules"]] == ["Strategy", "ERM"]

    erm_children = first["childrenByParent"][str(ERM)]
    assert [child["ObjNo"] for child in erm_children] == [1, 2]
    assert erm_children[0]["FormID"] == "3002443"
    assert erm_children[1]["FormID"] is None
    assert first["childrenByParent"]["3003720"][0]["FormID"] == 555


def test_navigation_tree_failure_is_terminal(client, procedures):
    procedures.errors["ReadNavigation"] = "connection lost"

    data = client.get("/api/navigation/tree").json()["data"]
    procedures.errors.clear()
    again = client.get("/api/navigation/tree").json()["data"]

    assert data["loaded"] is True
    assert data["modules"] == []
    assert data["error"] == "connection lost"
    assert again["modules"] == []
    assert [name for name, _ in procedures.calls].count("ReadNavigation") == 1


def test_api_calls_are_logged(client, seeded):
    client.delete("/api/logs")
    client.get("/api/erm", params={"formId": 3002443})
    seeded.errors["ReadNavigation"] = "connection lost"
    client.get("/api/navigation")

    logs = client.get("/api/logs").json()["data"]

    assert [log["method"] for log in logs] == ["GET", "GET"]
    assert "/api/navigation" in logs[0]["url"]
    assert logs[0]["status_code"] == 500
    assert logs[0]["procedure_name"] == "ReadNavigation"
    assert logs[0]["error"] == "connection lost"
    assert "formId=3002443" in logs[1]["url"]
    assert logs[1]["status_code"] == 200
    assert logs[1]["procedure_name"] == "ReadNewERM"
    assert logs[1]["duration_ms"] >= 0


def test_unknown_api_route_uses_envelope(client):
    response = client.get("/api/unknown")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_root_banner(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "IPS API" in response.json()["message"]
