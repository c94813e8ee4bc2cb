from __future__ import annotations

from io import BytesIO

from openpyxl import load_workbook

from conftest import xlsx_bytes
from cargodock.core.config import settings
from cargodock.models.access import Role, User

LOCATION_ROWS = [
    ["Location Code", "Name", "Location Type"],
    ["ONT8", "Ontario 8", "amazon"],
]


def _post(client, key, payload, *, headers=None, filename="upload.xlsx"):
    return client.post(
        f"/imports/{key}?filename={filename}",
        headers={"Content-Type": "application/octet-stream", **(headers or {})},
        content=payload,
    )


def _add_user(db_session, email, *role_names):
    user = User(email=email, full_name=email.split("@")[0])
    for name in role_names:
        user.roles.append(Role(name=name))
    db_session.add(user)
    db_session.commit()
    return user


def test_health(client):
    assert client.get("/health").json() == {"status": "up"}


def test_list_imports(client):
    response = client.get("/imports", headers={"X-User-Email": "ops@example.com"})
    assert response.status_code == 200
    imports = {row["import_key"]: row for row in response.json()["imports"]}
    assert set(imports) == {
        "location",
        "customer",
        "driver",
        "trailer",
        "fee",
        "order",
        "appointment",
        "container_update",
    }
    assert imports["container_update"]["mode"] == "update"
    assert imports["container_update"]["sheets"] == ["Containers", "Pickup"]
    assert imports["appointment"]["required_roles"] == ["admin", "tms_manager"]


def test_imports_can_be_switched_off(client, monkeypatch):
    monkeypatch.setattr(settings, "IMPORTS_ENABLED", False)
    assert client.get("/imports").status_code == 404
    assert _post(client, "location", xlsx_bytes({"Locations": LOCATION_ROWS}), headers={"X-User-Roles": "admin"}).status_code == 404


def test_unknown_import_key_is_404(client):
    response = _post(client, "invoice", b"x", headers={"X-User-Roles": "admin"})
    assert response.status_code == 404


def test_template_lists_headers_and_marks_required_columns(client):
    response = client.get("/imports/appointment/template.xlsx")
    assert response.status_code == 200
    assert "appointment_import_template.xlsx" in response.headers["content-disposition"]

    workbook = load_workbook(BytesIO(response.content))
    assert workbook.sheetnames == ["Appointments", "README"]
    header = [cell.value for cell in workbook["Appointments"][1]]
    assert header[:3] == ["Reference Number", "Order Number", "Delivery Method"]
    assert workbook["Appointments"]["A1"].font.bold is True
    assert workbook["Appointments"]["D1"].font.bold is not True


def test_two_sheet_template(client):
    response = client.get("/imports/container_update/template.xlsx")
    workbook = load_workbook(BytesIO(response.content))
    assert workbook.sheetnames == ["Containers", "Pickup", "README"]


def test_caller_without_required_role_is_forbidden(client, db_session):
    _add_user(db_session, "clerk@example.com", "viewer")
    response = _post(
        client,
        "location",
        xlsx_bytes({"Locations": LOCATION_ROWS}),
        headers={"X-User-Email": "clerk@example.com"},
    )
    assert response.status_code == 403
    assert "admin, oms_manager" in response.json()["detail"]


def test_database_roles_authorize_case_insensitively(client, db_session):
    _add_user(db_session, "lead@example.com", "OMS_Manager")
    response = _post(
        client,
        "location",
        xlsx_bytes({"Locations": LOCATION_ROWS}),
        headers={"X-User-Email": "Lead@Example.com"},
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "imported": 1, "total": 1}


def test_role_header_authorizes_service_callers(client):
    response = _post(
        client,
        "location",
        xlsx_bytes({"Locations": LOCATION_ROWS}),
        headers={"X-User-Email": "robot@example.com", "X-User-Roles": "reporting, ADMIN"},
    )
    assert response.status_code == 200
    assert response.json()["success"] is True


def test_non_xlsx_filename_is_rejected(client):
    response = _post(
        client,
        "location",
        xlsx_bytes({"Locations": LOCATION_ROWS}),
        headers={"X-User-Roles": "admin"},
        filename="locations.csv",
    )
    assert response.status_code == 400


def test_rejected_file_is_a_200_with_capped_errors(client, monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_MAX_REPORTED_ERRORS", 3)
    rows = [["Location Code", "Name", "Location Type"]]
    rows.extend([f"BAD{i}", "x", "moon"] for i in range(6))
    response = _post(client, "location", xlsx_bytes({"Locations": rows}), headers={"X-User-Roles": "admin"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["total"] == 6
    assert len(body["errors"]) == 3
    assert body["errors"][0] == {
        "row": 2,
        "field": "Location Type",
        "message": "Location Type: must be one of port, amazon, warehouse",
    }


def test_unreadable_upload_reports_file_error(client):
    response = _post(client, "customer", b"plain text", headers={"X-User-Roles": "admin"})
    assert response.status_code == 200
    body = response.json()
    assert body == {
        "success": False,
        "errors": [{"row": 0, "field": "file", "message": "Uploaded file is not a readable .xlsx workbook."}],
    }


def test_sheet_without_data_rows(client):
    response = _post(
        client,
        "location",
        xlsx_bytes({"Locations": [["Location Code", "Name", "Location Type"]]}),
        headers={"X-User-Roles": "admin"},
    )
    body = response.json()
    assert body["success"] is False
    assert "total" not in body
    assert body["errors"][0]["message"] == "The file has no data rows."
