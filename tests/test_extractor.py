import copy
import json

import pytest

from report_import.data.assembler import RecordAssembler
from report_import.domain.models import ReportPayload, ScalarValue, StructValue, TableValue, TargetSchema, classify_value
from report_import.importers.extractor import coerce, lookup, normalize


def _extract(registry, raw):
    payload = ReportPayload.from_raw(raw)
    return registry.dispatch(payload).extract(payload)


def _flat(registry, slug, fields):
    return registry.get(slug).extract({"reportType": slug, "data": {"fields": fields}})


def _at(value, path):
    for part in path.split("."):
        value = value[int(part)] if isinstance(value, list) else value[part]
    return value


@pytest.mark.parametrize("text,expected", [
    ("Job Information", "job information"),
    ("  Temp. (°F)  ", "temp f"),
    ("Insulation_Resistance", "insulation resistance"),
    ("Café Réport", "cafe report"),
    (None, ""),
])
def test_normalize(text, expected):
    assert normalize(text) == expected


def test_lookup_walks_dotted_keys():
    fields = {"mvTanDelta": {"values": [1]}, "a.b": "literal", "grid": [{"aG": "1"}, {"aG": "2"}]}
    assert lookup(fields, "mvTanDelta.values") == [1]
    assert lookup(fields, "a.b") == "literal"
    assert lookup(fields, "grid.1.aG") == "2"
    assert lookup(fields, "grid.5.aG") is None
    assert lookup(fields, "missing.key") is None


def test_lookup_row_selectors():
    fields = {
        "mvWithstand": {"rows": [{"way": "S1-S2", "ag": "1"}, {"way": "S1-T1", "ag": "2"}]},
        "contactorInsulation": {"rows": [{"id": "Pole to Frame (Closed)", "p1": "9"}]},
    }
    assert lookup(fields, "mvWithstand.rows[way=S1-T1].ag") == "2"
    assert lookup(fields, "mvWithstand.rows[way=S1-T3].ag") is None
    assert lookup(fields, "contactorInsulation.rows[id~pole to frame].p1") == "9"
    assert lookup(fields, "contactorInsulation.rows[id~line to load].p1") is None


@pytest.mark.parametrize("value,kind,default,expected", [
    ("12", "number", 0, 12),
    ("oops", "number", 0, 0),
    ("", "text", "MΩ", "MΩ"),
    (True, "text", "", "Yes"),
    (["a", "", "b"], "text", "", "a, b"),
    (4.0, "text", "", "4"),
    ("x", "bool", False, True),
    ("no", "bool", False, False),
    ("7", "int", 1, 7),
    ("seven", "int", 1, 1),
    ({"k": 1}, "text", "", ""),
    ("flat", "struct", {}, {}),
])
def test_coerce_never_raises(value, kind, default, expected):
    assert coerce(value, kind, default) == expected


def test_classify_value_shapes():
    assert isinstance(classify_value({"rows": [{"a": 1}], "unit": "MΩ"}), TableValue)
    assert classify_value({"rows": [{"a": 1}], "unit": "MΩ"}).meta == {"unit": "MΩ"}
    assert isinstance(classify_value([{"a": 1}]), TableValue)
    assert isinstance(classify_value({"volts": "480"}), StructValue)
    assert isinstance(classify_value("480"), ScalarValue)
    assert classify_value(None, "table") == TableValue()


def test_flat_scenario_switch_multi_device(registry, switch_payload):
    record = _extract(registry, switch_payload)
    info = record["reportInfo"]

    assert info["temperature"]["fahrenheit"] == 68
    assert info["temperature"]["celsius"] == 20
    assert info["temperature"]["tcf"] == 1.0
    assert info["temperature"]["correctionFactor"] == 1.0
    assert info["customer"] == "Acme"
    assert "temperature" not in record


def test_sections_take_precedence_over_flat_fields(registry, sections_payload):
    record = _extract(registry, sections_payload)
    info = record["reportInfo"]

    assert info["customer"] == "Sections Customer"
    assert info["address"] == "1 Main St"
    assert info["jobNumber"] == "J-42"
    # only in the flat map
    assert info["date"] == "2024-05-01"
    assert info["technicians"] == "R. Diaz"


def test_section_temperature_drives_correction(registry, sections_payload):
    record = _extract(registry, sections_payload)

    assert record["reportInfo"]["temperature"] == {
        "fahrenheit": 95, "celsius": 35, "tcf": 2.0, "humidity": 50, "correctionFactor": 2.0,
    }
    ir = record["irTests"]
    assert ir["testVoltage"] == "500V"
    assert ir["units"] == "MΩ"
    assert ir["rows"][0]["p1p2"] == "100"
    assert ir["correctedRows"][0]["p1p2"] == "200.00"
    assert ir["correctedRows"][0]["p2p3"] == ""
    assert ir["correctedRows"][0]["position"] == "1"


def test_multi_device_shapes(registry):
    raw = {
        "reportType": "low-voltage-switch-multi-device-test",
        "data": {
            "fields": {
                "user": "tech-1",
                "switchRows": [{"position": "1", "manufacturer": "Eaton"}],
                "fuseRows": [{"position": "1", "class": "RK5", "amperage": "200"}],
                "vm-matrix": [{"identifier": "SW-1", "values": {"7.5.1.1.A.1": "Satisfactory"}}],
            }
        },
    }
    record = _extract(registry, raw)

    assert record["switches"] == [{
        "position": "1", "manufacturer": "Eaton", "catalogNo": "", "serialNo": "",
        "type": "", "ratedAmperage": "", "ratedVoltage": "",
    }]
    assert record["fuses"][0]["fuseClass"] == "RK5"
    assert record["fuses"][0]["amperage"] == "200"
    assert record["visualInspection"]["items"] == [
        {"identifier": "SW-1", "values": {"7.5.1.1.A.1": "Satisfactory"}}
    ]
    assert record["reportInfo"]["userName"] == "tech-1"
    assert "user" not in record["reportInfo"]


def test_multi_device_device_lists_default_empty(registry, switch_payload):
    record = _extract(registry, switch_payload)

    assert record["switches"] == []
    assert record["fuses"] == []
    assert record["visualInspection"] == {"items": []}
    assert record["reportType"] == "low-voltage-switch-multi-device-test"


@pytest.mark.parametrize("supplied,expected", [(5, 5), (3, 3), (1, 3), (0, 3)])
def test_fixed_length_tables_are_padded_never_truncated(registry, supplied, expected):
    grid = [{"id": str(i), "aG": str(100 * i)} for i in range(1, supplied + 1)]
    record = _flat(registry, "low-voltage-cable-test-3sets", {"electricalGrid": grid} if grid else {})
    rows = record["testSets"]

    assert len(rows) == expected
    assert [r["id"] for r in rows] == [str(i) for i in range(1, expected + 1)]
    if supplied:
        assert rows[supplied - 1]["readings"]["aToGround"] == str(100 * supplied)


def test_padded_rows_are_independent(registry):
    record = _flat(registry, "low-voltage-cable-test-3sets", {"electricalGrid": [{"aG": "100"}]})
    rows = record["testSets"]
    rows[1]["readings"]["aToGround"] = "changed"
    assert rows[2]["readings"]["aToGround"] == ""

    again = _flat(registry, "low-voltage-cable-test-3sets", {"electricalGrid": [{"aG": "100"}]})
    assert again["testSets"][1]["readings"]["aToGround"] == ""


def test_extraction_is_pure(registry, sections_payload):
    original = copy.deepcopy(sections_payload)
    first = _extract(registry, sections_payload)
    second = _extract(registry, sections_payload)

    assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)
    assert sections_payload == original


def test_expected_containers_always_present(registry):
    record = _extract(registry, {"reportType": "switchgear-report"})
    info = record["report_info"]

    assert info["temperature"] == {"fahrenheit": 68, "celsius": 20, "tcf": 1.0, "humidity": 50}
    assert info["manufacturer"] == ""
    assert info["testEquipment"]["megohmmeter"] == {"name": "", "serialNumber": "", "ampId": ""}
    assert record["visual_mechanical"] == {"items": []}
    assert record["insulation_resistance"]["testVoltage"] == "1000V"
    assert record["insulation_resistance"]["unit"] == "MΩ"
    assert record["insulation_resistance"]["tests"] == []
    assert record["contact_resistance"] == {"tests": [], "dielectricTests": []}
    assert record["comments"] == ""
    assert record["status"] == "PASS"


def test_vlf_blocks_are_mirrored_into_columns(registry):
    raw = {
        "reportType": "MediumVoltageCableVLFATSTest",
        "data": {
            "fields": {
                "temperatureF": 95,
                "conductorSize": "1/0",
                "mvIrPrePost": {"testVoltage": "2500", "pre": {"ag": "100", "bg": "N/A"}},
                "vm-table": [{"id": "7.3.3.A.1", "result": "Satisfactory"}],
            }
        },
    }
    payload = ReportPayload.from_raw(raw)
    importer = registry.dispatch(payload)
    record = importer.extract(payload)
    info = record["report_info"]

    assert importer.slug == "medium-voltage-vlf"
    assert info["insulationTest"]["testVoltage"] == "2500"
    assert info["insulationTest"]["preTest"] == {"ag": "100", "bg": "N/A", "cg": ""}
    assert info["insulationTest"]["preTestCorrected"] == {"ag": "200.00", "bg": "", "cg": ""}
    assert record["insulation_test"] == info["insulationTest"]
    assert record["insulation_test"] is not info["insulationTest"]
    assert record["cable_info"]["size"] == "1/0"
    assert info["visualInspection"]["compareData"] == "Satisfactory"
    assert info["visualInspection"]["inspectJacket"] == "select one"
    assert record["visual_inspection"] == info["visualInspection"]
    assert record["temperature"]["fahrenheit"] == 95
    assert info["temperature"]["tcf"] == 2.0


def test_switchgear_mts_visual_skeleton(registry):
    record = _extract(registry, {"reportType": "switchgear-panelboard-mts-report"})
    items = record["visualInspectionItems"]

    assert len(items) == 15
    assert items[0]["id"] == "7.1.A.1"
    assert items[7]["id"] == "7.1.A.8.1"
    assert items[14]["id"] == "7.1.A.15"
    assert items[3]["description"] == "Clean the unit."
    assert all(item["result"] == "Select One" for item in items)
    measured = record["measuredInsulationResistance"]
    assert [r["busSection"] for r in measured] == [f"Bus {i}" for i in range(1, 7)]
    assert len(record["tempCorrectedInsulationResistance"]) == 6
    assert record["insulationResistanceTestVoltage"] == "500V"
    assert record["customerLocation"] == "Address not specified"


def test_tan_delta_default_points(registry):
    record = _extract(registry, {"reportType": "medium-voltage-vlf-tan-delta"})
    points = record["test_data"]["points"]

    assert [p["voltageLabel"] for p in points] == ["0.5 Uo", "1.0 Uo", "1.5 Uo", "2.0 Uo"]
    assert [p["kV"] for p in points] == [7.2, 14.4, 21.6, 28.8]
    assert points[0]["phaseA"] == 0
    assert points[0]["phaseAStdDev"] is None
    assert record["test_data"]["systemVoltageL2G"] == "14.4"
    assert record["report_info"]["cableType"] == "Cable Type Not Specified"


def test_tan_delta_points_from_flat_values(registry):
    raw = {
        "reportType": "tan-delta-ats",
        "data": {
            "fields": {
                "mvTanDelta": {
                    "systemVoltageL2G": "7.2",
                    "values": [{"voltageStep": "0.5 Uo", "kV": "3.6", "phaseA": {"td": "1.2", "stdDev": "0.01"}}],
                }
            }
        },
    }
    record = _extract(registry, raw)
    point = record["test_data"]["points"][0]

    assert record["test_data"]["systemVoltageL2G"] == "7.2"
    assert record["report_info"]["operatingVoltage"] == "7.2"
    assert point["kV"] == 3.6
    assert point["phaseA"] == 1.2
    assert point["phaseAStdDev"] == 0.01
    assert point["phaseB"] == 0


def test_keyed_table_rows(registry):
    raw = {
        "reportType": "automatic-transfer-switch-ats-report",
        "data": {
            "fields": {
                "temperatureF": "68",
                "atsInsulation": {
                    "rows": [{"id": "Pole to Pole (Normal Closed)", "p1": "100"}],
                    "testVoltage": "500V",
                },
            }
        },
    }
    record = _extract(registry, raw)
    tests = record["insulationResistance"]

    assert record["insulationTestVoltage"] == "500V"
    assert tests["poleToPoleNormalClosed"]["p1Reading"] == "100"
    assert tests["poleToPoleNormalClosed"]["p1Corrected"] == "100.00"
    assert tests["lineToLoadEmergencyOpen"]["p1Reading"] == ""
    assert tests["lineToLoadEmergencyOpen"]["units"] == "MΩ"
    assert set(tests) == {
        "poleToPoleNormalClosed", "poleToPoleEmergencyClosed",
        "poleToNeutralNormalClosed", "poleToNeutralEmergencyClosed",
        "poleToGroundNormalClosed", "poleToGroundEmergencyClosed",
        "lineToLoadNormalOpen", "lineToLoadEmergencyOpen",
    }


def test_map_table_visual_results(registry):
    raw = {
        "reportType": "low-voltage-panelboard-small-breaker-report",
        "data": {"fields": {"vm-table": [{"id": "7.6.1.1.A.1", "result": "Satisfactory"}, {"id": "", "result": "x"}]}},
    }
    record = _extract(registry, raw)
    assert record["visualInspection"] == {"7.6.1.1.A.1": "Satisfactory"}


def test_struct_fields_from_sections(registry):
    raw = {
        "reportType": "dry-type-transformer",
        "sections": [
            {
                "title": "Nameplate",
                "fields": [
                    {"label": "Manufacturer", "type": "text", "value": "Square D"},
                    {"label": "Primary", "type": "text", "value": {"volts": "480", "connection": "Delta"}},
                ],
            }
        ],
    }
    record = _extract(registry, raw)
    nameplate = record["report_info"]["nameplateData"]

    assert nameplate["manufacturer"] == "Square D"
    assert nameplate["primary"] == {"volts": "480", "connection": "Delta"}
    assert nameplate["secondary"] == {}
    assert nameplate["tapConfiguration"]["currentPosition"] == 1
    assert nameplate["tapConfiguration"]["positions"] == [1, 2, 3, 4, 5, 6, 7]


@pytest.mark.parametrize("raw_count,expected", [("abc", 0), ("5", 5), (None, 0)])
def test_numeric_attribute_parse_or_default(registry, raw_count, expected):
    raw = {"reportType": "low-voltage-cable-test-3sets", "data": {"fields": {"numberOfCables": raw_count}}}
    record = _extract(registry, raw)

    assert record["numberOfCables"] == expected
    assert len(record["testSets"]) == 3


def test_malformed_payload_degrades_to_defaults(registry):
    raw = {
        "reportType": "switchgear-report",
        "sections": [
            "not a section",
            {"title": None, "fields": [None, 3, {"label": None, "value": {"rows": "x"}}]},
            {"title": "Job Information", "fields": "nope"},
        ],
        "data": {"fields": [1, 2, 3]},
    }
    record = _extract(registry, raw)

    assert record["report_info"]["customer"] == ""
    assert record["status"] == "PASS"


def test_breaker_insulation_rows_selected_by_id(registry):
    raw = {
        "reportType": "medium-voltage-circuit-breaker-report",
        "data": {
            "fields": {
                "temperatureF": "95",
                "vm-table": {"rows": [{"id": "7.6.3.A.1", "result": "Satisfactory"}]},
                "contactorInsulation": {
                    "testVoltage": "5000V",
                    "rows": [
                        {"id": "Pole to Frame", "p1": "300"},
                        {"id": "Pole to Pole", "p1": "100", "p2": "N/A"},
                    ],
                },
            }
        },
    }
    record = _extract(registry, raw)
    measured = record["insulationResistanceMeasured"]
    corrected = record["insulationResistanceCorrected"]

    assert measured["testVoltage"] == "5000V"
    assert measured["poleToPoleClosedP1P2"] == "100"
    assert measured["poleToPoleClosedP2P3"] == "N/A"
    assert measured["poleToFrameClosedP1"] == "300"
    assert measured["lineToLoadOpenP1"] == ""
    assert corrected["poleToPoleClosedP1P2"] == "200.00"
    assert corrected["poleToPoleClosedP2P3"] == ""
    assert corrected["poleToFrameClosedP1"] == "600.00"
    visual = record["visualMechanicalInspection"]
    assert visual["7.6.3.A.1"] == "Satisfactory"
    assert visual["7.6.3.A.11"] == "Select One"
    assert record["visual_mechanical_inspection"] == visual
    assert record["visualInspection"] == visual


def test_switch_oil_withstand_ways_and_vfi_rows(registry):
    fields = {
        "mvWithstand": {
            "testVoltage": "25kV",
            "rows": [
                {"way": "S1-S2", "ag": "1", "bg": "2", "cg": "3"},
                {"way": "S1-T1", "ag": "4", "units": "µA"},
            ],
        },
        "dielectricOpen": [{"vfi": "1", "serialNumber": "V-1", "asFound": "ok", "a": "5"}],
        "mvSwitchIr": {"testVoltage": "2500V", "rows": [{"way": "S1-S2", "ag": "100"}]},
    }
    record = _flat(registry, "medium-voltage-switch-oil-report", fields)

    assert record["dielectric_s1s2"] == {"testVoltage": "25kV", "units": "mA", "ag": "1", "bg": "2", "cg": "3"}
    assert record["dielectric_s1t1"]["ag"] == "4"
    assert record["dielectric_s1t1"]["units"] == "µA"
    assert record["dielectric_s1t2"]["ag"] == ""
    assert record["dielectric_s1t3"] == {"testVoltage": "25kV", "units": "mA", "ag": "", "bg": "", "cg": ""}
    assert record["vfi_test_rows"] == [{
        "vfi": "1", "serialNumber": "V-1", "asFound": "ok", "asLeft": "",
        "a": "5", "b": "", "c": "", "units": "mA",
    }]
    measured = record["insulation_resistance_measured"]
    assert measured["testVoltage"] == "2500V"
    assert measured["rows"] == [{"way": "S1-S2", "units": "MΩ", "ag": "100", "bg": "", "cg": ""}]


def test_switch_oil_columns(registry):
    spec = registry.get("medium-voltage-switch-oil-report").spec
    record = _flat(registry, spec.slug, {"mvWithstand": {"rows": [{"way": "S1-T3", "cg": "9"}]}})
    schema = TargetSchema(columns=["id", "job_id", "user_id", "data", *spec.columns], jsonb_columns=["data", *spec.columns])

    row = RecordAssembler().assemble(record, schema, spec, job_id="job-1", user_id="user-1")

    assert "data" not in row
    assert {"dielectric_s1s2", "dielectric_s1t1", "dielectric_s1t2", "dielectric_s1t3", "vfi_test_rows"} <= set(row)
    assert row["dielectric_s1t3"]["cg"] == "9"
    assert row["vfi_test_rows"] == []
    assert row["report_info"]["fahrenheit"] == 68


def test_motor_starter_struct_readings(registry):
    fields = {
        "customer": "Acme",
        "motorStarterIr": {
            "testVoltage": "5000V",
            "poleToPole": {"results": "100", "p2": "200", "p3": "300", "state": "Closed"},
            "poleToFrame": {"p1": "400"},
        },
    }
    record = _flat(registry, "23-medium-voltage-motor-starter-mts-report", fields)
    ir = record["electricalTests"]["insulationResistance"]

    assert record["customerName"] == "Acme"
    assert ir["testVoltage"] == "5000V"
    assert ir["readings"][0] == {"test": "Pole to Pole", "state": "Closed", "p1_mq": "100", "p2_mq": "200", "p3_mq": "300"}
    assert ir["readings"][1]["p1_mq"] == "400"
    assert ir["readings"][2] == {"test": "Line to Load", "state": "", "p1_mq": "", "p2_mq": "", "p3_mq": ""}


def test_current_transformer_correction_is_text(registry):
    fields = {"primaryInsulation": {"readingPhase1": "150", "testVoltage": "500V"}, "temperatureF": "95"}
    record = _flat(registry, "current-transformer-test-ats-report", fields)
    primary = record["electrical_tests"]["primaryWinding"]

    assert primary["reading"] == "150"
    assert primary["tempCorrection20C"] == "300.00"
    assert record["electrical_tests"]["secondaryWinding"]["tempCorrection20C"] == ""


@pytest.mark.parametrize("slug,fields,path,expected", [
    pytest.param("low-voltage-panelboard-small-breaker-report",
                 {"panelboardTypeCat": "NQ", "panelboardTypeCatalog": "older"},
                 "nameplateData.panelboardTypeCatalog", "NQ", id="panelboard-type"),
    pytest.param("automatic-transfer-switch-ats-report",
                 {"manufacturer": "ASCO", "nameplateManufacturer": "older"},
                 "nameplateManufacturer", "ASCO", id="ats-nameplate"),
    pytest.param("medium-voltage-switch-oil-report",
                 {"catalogNumber": "C-1", "catalogNo": "older"},
                 "report_info.nameplate_catalogNo", "C-1", id="switch-oil-catalog"),
    pytest.param("current-transformer-test-ats-report",
                 {"class": "C200", "deviceClass": "older"},
                 "nameplate_data.deviceClass", "C200", id="ct-class"),
    pytest.param("medium-voltage-vlf",
                 {"customer": "Acme", "customerName": "older"},
                 "report_info.customerName", "Acme", id="vlf-customer"),
])
def test_form_keys_win_over_older_spellings(registry, slug, fields, path, expected):
    assert _at(_flat(registry, slug, fields), path) == expected


def test_extract_wraps_raw_payloads(registry, switch_payload):
    importer = registry.get("low-voltage-switch-multi-device-test")

    from_dict = importer.extract(switch_payload)

    assert from_dict == importer.extract(ReportPayload.from_raw(switch_payload))
    assert from_dict["reportInfo"]["customer"] == "Acme"
    assert importer.extract("not a payload")["status"] == "PASS"
