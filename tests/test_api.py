import json

import pytest
from fastapi.testclient import TestClient

from report_import.api.main import create_app
from report_import.config import settings
from report_import.data.storage import Database
from report_import.importers.catalog import default_specs


SWITCH_SLUG = "low-voltage-switch-multi-device-test"


@pytest.fixture
def api(tmp_path, registry):
    db_path = tmp_path / "api.db"
    db = Database(db_path)
    db.provision_report_table(registry.get(SWITCH_SLUG).spec)
    db.provision_report_table(registry.get("switchgear-report").spec, layout="partitioned")
    client = TestClient(create_app(db_path=db_path))
    return client, db


def test_health(api):
    client, _ = api
    resp = client.get("/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["backend"] == "sqlite"
    assert body["importers"] == len(default_specs())
    assert resp.headers["x-request-id"]


def test_request_id_is_echoed(api):
    client, _ = api
    resp = client.get("/health", headers={"X-Request-ID": "trace-42"})
    assert resp.headers["x-request-id"] == "trace-42"


def test_import_report_json(api, switch_payload):
    client, db = api
    resp = client.post(
        "/imports/reports",
        json={"payload": switch_payload, "job_id": "job-1", "user_id": "user-1", "filename": "bay1.json"},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["report_type"] == SWITCH_SLUG
    stored = db.fetch_report(body["table"], body["report_id"])
    assert stored["data"]["reportInfo"]["customer"] == "Acme"
    assert db.job_assets("job-1")[0]["name"] == f"Imported {SWITCH_SLUG} - bay1"


def test_import_failure_is_unprocessable(api):
    client, _ = api
    resp = client.post("/imports/reports", json={"payload": {"reportType": "mystery"}, "job_id": "j", "user_id": "u"})

    assert resp.status_code == 422
    assert resp.json()["error_code"] == "no_matching_importer"
    assert resp.json()["success"] is False


def test_missing_table_is_reported(api):
    client, _ = api
    resp = client.post(
        "/imports/reports",
        json={"payload": {"reportType": "oil-inspection"}, "job_id": "j", "user_id": "u"},
    )
    assert resp.status_code == 422
    assert resp.json()["error_code"] == "validation_error"


def test_body_validation(api):
    client, _ = api
    resp = client.post("/imports/reports", json={"payload": {"reportType": "switchgear-report"}})
    assert resp.status_code == 422
    assert "detail" in resp.json()


def test_upload_file(api, switch_payload):
    client, db = api
    resp = client.post(
        "/imports/reports/file",
        files={"file": ("switch-bay.amp-report.json", json.dumps(switch_payload).encode("utf-8"), "application/json")},
        data={"job_id": "job-2", "user_id": "user-2"},
    )

    assert resp.status_code == 201
    assert db.job_assets("job-2")[0]["name"] == f"Imported {SWITCH_SLUG} - switch-bay"


@pytest.mark.parametrize("content", [b"{not json", b"[1, 2, 3]", b"\xff\xfe"])
def test_upload_rejects_non_reports(api, content):
    client, _ = api
    resp = client.post(
        "/imports/reports/file",
        files={"file": ("x.json", content, "application/json")},
        data={"job_id": "j", "user_id": "u"},
    )
    assert resp.status_code == 400


def test_oversized_upload(api, monkeypatch, switch_payload):
    client, _ = api
    monkeypatch.setattr(settings.security, "max_upload_mb", 1)
    padded = dict(switch_payload, padding="x" * (1024 * 1024 + 10))
    resp = client.post("/imports/reports", json={"payload": padded, "job_id": "j", "user_id": "u"})

    assert resp.status_code == 413
    assert resp.json()["error"] == "request_too_large"


def test_batch(api, switch_payload):
    client, _ = api
    body = {
        "job_id": "job-3",
        "user_id": "user-3",
        "items": [
            {"source": "a.json", "payload": switch_payload},
            {"source": "b.json", "payload": {"reportType": "switchgear-report"}},
            {"source": "c.json", "payload": {"reportType": "mystery"}},
        ],
    }
    resp = client.post("/imports/batch", json=body)

    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 3
    assert [item["source"] for item in data["successful"]] == ["a.json", "b.json"]
    assert data["failed"][0]["result"]["error_code"] == "no_matching_importer"


def test_list_importers_in_dispatch_order(api):
    client, _ = api
    resp = client.get("/imports/importers")

    assert resp.status_code == 200
    importers = resp.json()
    assert [i["slug"] for i in importers] == [s.slug for s in default_specs()]
    vlf = next(i for i in importers if i["slug"] == "medium-voltage-vlf")
    assert vlf["aliases"] == ["MediumVoltageCableVLFATSTest"]
    assert vlf["table"] == "medium_voltage_vlf_reports"


def test_token_auth(api, monkeypatch):
    client, _ = api
    monkeypatch.setattr(settings.security, "api_token", "secret")

    assert client.get("/imports/importers").status_code == 401
    assert client.get("/imports/importers", headers={"Authorization": "Bearer secret"}).status_code == 200
    assert client.get("/imports/importers", headers={"X-API-Key": "secret"}).status_code == 200
    assert client.get("/imports/importers", headers={"Authorization": "Bearer wrong"}).status_code == 401
    # health stays open
    assert client.get("/health").status_code == 200


def test_misconfigured_backend(api, monkeypatch, switch_payload):
    client, _ = api
    monkeypatch.setattr(settings.storage, "backend", "rest")
    monkeypatch.setattr(settings.storage, "rest_url", None)
    resp = client.post("/imports/reports", json={"payload": switch_payload, "job_id": "j", "user_id": "u"})

    assert resp.status_code == 422
    assert resp.json()["error"] == "config_error"
    assert resp.json()["request_id"]
