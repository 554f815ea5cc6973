import json
from pathlib import Path

import pytest

from report_import.data.import_service import ImportOrchestrator
from report_import.data.introspect import SchemaIntrospector
from report_import.data.storage import Database
from report_import.importers.catalog import default_specs
from report_import.importers.registry import build_default_registry


SWITCH_SCENARIO = {
    "reportType": "lowVoltageSwitchMultiDeviceTest",
    "data": {"fields": {"temperatureF": "68", "customer": "Acme"}},
}


@pytest.fixture
def registry():
    return build_default_registry(specs=default_specs())


@pytest.fixture
def db(tmp_path):
    return Database(tmp_path / "reports.db")


@pytest.fixture
def provision(db, registry):
    """Create the table for an importer slug in the requested layout."""

    def _provision(slug: str, layout: str = "blob") -> str:
        return db.provision_report_table(registry.get(slug).spec, layout=layout)

    return _provision


@pytest.fixture
def orchestrator(db, registry):
    return ImportOrchestrator(
        store=db,
        registry=registry,
        introspector=SchemaIntrospector(db),
        link_assets=True,
        augment_job_info=True,
    )


@pytest.fixture
def switch_payload():
    return json.loads(json.dumps(SWITCH_SCENARIO))


@pytest.fixture
def sections_payload():
    """Switch multi-device export in the sections shape, hot enough that correction matters."""
    return {
        "reportType": "low-voltage-switch-multi-device-test",
        "sections": [
            {
                "title": "Job Information",
                "fields": [
                    {"label": "Customer", "type": "text", "value": "Sections Customer"},
                    {"label": "Customer Address", "type": "text", "value": "1 Main St"},
                    {"label": "Job #", "type": "text", "value": "J-42"},
                    {"label": "Temperature", "type": "number", "value": "95"},
                ],
            },
            {
                "title": "Insulation Resistance",
                "fields": [
                    {
                        "label": "Switch Insulation Resistance",
                        "type": "table",
                        "value": {
                            "rows": [{"position": "1", "p1p2": "100", "p2p3": "N/A"}],
                            "testVoltage": "500V",
                        },
                    }
                ],
            },
        ],
        "data": {
            "fields": {
                "customer": "Flat Customer",
                "date": "2024-05-01",
                "technicians": "R. Diaz",
            }
        },
    }


@pytest.fixture
def write_payload(tmp_path):
    def _write(name: str, payload) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write
