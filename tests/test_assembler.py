import pytest

from report_import.data.assembler import DEFAULT_COLUMN_MAP, RecordAssembler
from report_import.domain.models import TargetSchema
from report_import.exceptions import SchemaMismatch
from report_import.importers.specs import ReportSpec


RECORD = {
    "reportInfo": {"customer": "Acme", "jobNumber": "J-1"},
    "temperature": {"fahrenheit": 68, "celsius": 20, "tcf": 1.0, "humidity": 50},
    "nameplate": {"manufacturer": "Square D"},
    "visualInspection": {"items": [{"id": "7.1.A.1", "result": "Satisfactory"}]},
    "insulationResistance": {"testVoltage": "1000V", "tests": []},
    "testEquipment": {"megohmmeter": {"name": "Megger"}},
    "comments": "all good",
    "status": "PASS",
}


def _schema(plain=(), json=()):
    return TargetSchema(columns=[*plain, *json], jsonb_columns=list(json))


def test_blob_layout_stores_whole_record():
    spec = ReportSpec(slug="s", table="t", blob_columns=["report_data", "data"])
    schema = _schema(plain=["id", "job_id", "user_id"], json=["report_data"])
    row = RecordAssembler().assemble(RECORD, schema, spec, job_id="job-1", user_id="user-1")

    assert row == {"job_id": "job-1", "user_id": "user-1", "report_data": RECORD}
    assert row["report_data"] is not RECORD


def test_blob_preference_follows_spec_order():
    schema = _schema(json=["data", "report_data"])
    first = RecordAssembler().assemble(RECORD, schema, ReportSpec(slug="s", table="t", blob_columns=["report_data", "data"]))
    second = RecordAssembler().assemble(RECORD, schema, ReportSpec(slug="s", table="t", blob_columns=["data", "report_data"]))

    assert list(first) == ["report_data"]
    assert list(second) == ["data"]


def test_plain_text_blob_column_is_not_a_blob():
    schema = _schema(plain=["data"], json=["report_info"])
    row = RecordAssembler().assemble(RECORD, schema)
    assert "data" not in row
    assert row["report_info"]["customer"] == "Acme"


def test_partitioned_layout_uses_default_map():
    schema = _schema(
        plain=["job_id", "user_id", "status"],
        json=["report_info", "visual_inspection", "insulation_resistance", "test_equipment", "comments"],
    )
    row = RecordAssembler().assemble(RECORD, schema, job_id="job-1", user_id="user-1")

    assert row["report_info"]["customer"] == "Acme"
    assert row["report_info"]["temperature"]["celsius"] == 20
    assert row["report_info"]["nameplate"]["manufacturer"] == "Square D"
    assert row["visual_inspection"] == RECORD["visualInspection"]
    assert row["insulation_resistance"] == RECORD["insulationResistance"]
    assert row["test_equipment"] == RECORD["testEquipment"]
    assert row["comments"] == "all good"
    assert row["status"] == "PASS"
    # no source for contact_resistance and the table has no such column
    assert "contact_resistance" not in row
    assert "temperature" not in RECORD["reportInfo"]


def test_partitioned_layout_honors_spec_columns():
    spec = ReportSpec(
        slug="s",
        table="t",
        columns={"report_info": ["reportInfo", "temperature"], "visual_mechanical": ["visualInspection"]},
    )
    schema = _schema(json=["report_info", "visual_mechanical", "visual_inspection"])
    row = RecordAssembler().assemble(RECORD, schema, spec)

    assert set(row) == {"report_info", "visual_mechanical"}
    assert "nameplate" not in row["report_info"]


def test_plain_columns_only_take_scalars():
    spec = ReportSpec(slug="s", table="t", columns={"report_info": ["reportInfo"], "nameplate": ["nameplate"],
                                                    "status": ["status"]})
    schema = _schema(plain=["nameplate", "status"], json=["report_info"])
    row = RecordAssembler().assemble(RECORD, schema, spec)

    assert "nameplate" not in row
    assert row["status"] == "PASS"


def test_identifiers_only_when_columns_exist():
    schema = _schema(json=["data"])
    row = RecordAssembler().assemble(RECORD, schema, job_id="job-1", user_id="user-1")
    assert "job_id" not in row and "user_id" not in row


@pytest.mark.parametrize("schema", [
    _schema(plain=["id", "job_id", "user_id", "report_info", "status"]),
    _schema(plain=["job_id"], json=["unrelated_json"]),
    _schema(),
])
def test_schema_mismatch(schema):
    with pytest.raises(SchemaMismatch) as exc:
        RecordAssembler().assemble(RECORD, schema, job_id="job-1", user_id="user-1")
    assert exc.value.code == "schema_mismatch"


def test_same_record_both_layouts_carry_same_content():
    blob = RecordAssembler().assemble(RECORD, _schema(json=["data"]))["data"]
    parts = RecordAssembler().assemble(RECORD, _schema(json=list(DEFAULT_COLUMN_MAP)))

    assert parts["report_info"]["customer"] == blob["reportInfo"]["customer"]
    assert parts["visual_inspection"] == blob["visualInspection"]
    assert parts["status"] == blob["status"]
