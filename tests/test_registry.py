import pytest

from report_import.domain.models import ReportPayload
from report_import.exceptions import ConfigError, NoMatchingImporter
from report_import.importers.catalog import default_specs
from report_import.importers.registry import Importer, ImporterRegistry, has_tan_delta_content
from report_import.importers.specs import MatchRule, ReportSpec, load_importer_specs


def _slug(registry, raw):
    return registry.dispatch(raw).slug


@pytest.mark.parametrize("report_type,expected", [
    # more specific type strings must win over their substrings
    ("low-voltage-circuit-breaker-electronic-trip-ats-secondary-injection-report",
     "low-voltage-circuit-breaker-electronic-trip-ats-secondary-injection-report"),
    ("low-voltage-circuit-breaker-electronic-trip-ats-report", "low-voltage-circuit-breaker-electronic-trip-ats-report"),
    ("LowVoltageCircuitBreakerElectronicTripMTS", "low-voltage-circuit-breaker-electronic-trip-mts-report"),
    ("TwoSmallDryTypeTransformer", "two-small-dry-type-transformer"),
    ("DryTypeTransformer", "dry-type-transformer"),
    ("largeDryTypeTransformerMTS", "large-dry-type-transformer-mts-report"),
    ("large-dry-type-transformer", "large-dry-type-transformer"),
    ("switchgear-panelboard-mts-report", "switchgear-panelboard-mts-report"),
    ("SwitchgearReport", "switchgear-report"),
    ("LowVoltageSwitchMultiDeviceTest", "low-voltage-switch-multi-device-test"),
    ("low-voltage-switch-report", "low-voltage-switch-report"),
    ("LowVoltageCableTest3Sets", "low-voltage-cable-test-3sets"),
    ("LowVoltageCableTest13Sets", "low-voltage-cable-test-12sets"),
    ("MediumVoltageCircuitBreakerMTS", "medium-voltage-circuit-breaker-mts-report"),
    ("MediumVoltageCircuitBreaker", "medium-voltage-circuit-breaker-report"),
    ("CurrentTransformerTestATS", "current-transformer-test-ats-report"),
    ("CurrentTransformerTestMTS", "current-transformer-test-mts-report"),
    ("metal enclosed busway", "metal-enclosed-busway"),
    ("AutomaticTransferSwitchATS", "automatic-transfer-switch-ats-report"),
    ("MediumVoltageSwitchOilReport", "medium-voltage-switch-oil-report"),
    ("OilInspection", "oil-inspection"),
    # catch-all for generic acceptance test sheets
    ("some-ats-report", "low-voltage-cable-test-12sets"),
])
def test_dispatch_precedence(registry, report_type, expected):
    assert _slug(registry, {"reportType": report_type}) == expected


def test_every_builtin_slug_dispatches_to_itself(registry):
    for importer in registry.importers:
        assert _slug(registry, {"reportType": importer.slug}) == importer.slug


def test_builtin_slugs_are_unique():
    slugs = [spec.slug for spec in default_specs()]
    assert len(slugs) == len(set(slugs))


def test_candidates_keep_registration_order(registry):
    payload = ReportPayload.from_raw(
        {"reportType": "low-voltage-circuit-breaker-electronic-trip-ats-secondary-injection-report"}
    )
    assert [i.slug for i in registry.candidates(payload)] == [
        "low-voltage-circuit-breaker-electronic-trip-ats-secondary-injection-report",
        "low-voltage-circuit-breaker-electronic-trip-ats-report",
        "low-voltage-circuit-breaker-ats-report",
        "low-voltage-cable-test-12sets",
    ]


@pytest.mark.parametrize("raw", [
    {"reportType": "not-a-report"},
    {"reportType": ""},
    {},
    "garbage",
])
def test_no_matching_importer(registry, raw):
    with pytest.raises(NoMatchingImporter) as exc:
        registry.dispatch(raw)
    assert exc.value.code == "no_matching_importer"
    assert "No importer found for report type" in str(exc.value)


@pytest.mark.parametrize("report_type", [
    "MediumVoltageCableVLFATSTest",
    "MediumVoltageCableVLFATSTest.tsx",
    "mediumvoltagecablevlfatstest.TSX",
])
def test_exact_alias(registry, report_type):
    assert _slug(registry, {"reportType": report_type}) == "medium-voltage-vlf"


def test_alias_for_motor_starter(registry):
    assert _slug(registry, {"reportType": "23-MediumVoltageMotorStarterMTSReport"}) == "23-medium-voltage-motor-starter-mts-report"


@pytest.mark.parametrize("raw,expected", [
    ({"reportType": "medium voltage cable vlf test with tan delta mts"}, "medium-voltage-vlf-mts-report"),
    ({"reportType": "tandeltatestmtsform"}, "medium-voltage-vlf-mts-report"),
    ({"reportType": "tan-delta-ats"}, "medium-voltage-vlf-tan-delta"),
    ({"reportType": "cable-report", "data": {"fields": {"mvTanDelta": {}}}}, "medium-voltage-vlf-tan-delta"),
    ({"sections": [{"title": "Tan Delta Results", "fields": []}]}, "medium-voltage-vlf-tan-delta"),
])
def test_content_overrides(registry, raw, expected):
    assert _slug(registry, raw) == expected


def test_tan_delta_content_detection():
    assert has_tan_delta_content(ReportPayload.from_raw({"reportType": "TanDeltaChart"}))
    assert has_tan_delta_content(ReportPayload.from_raw({"data": {"fields": {"tanDelta": []}}}))
    assert not has_tan_delta_content(ReportPayload.from_raw({"reportType": "switchgear-report"}))


def test_report_type_falls_back_to_data(registry):
    assert _slug(registry, {"data": {"reportType": "oil-inspection", "fields": {}}}) == "oil-inspection"


def test_top_level_type_wins_over_data(registry):
    raw = {"reportType": "switchgear-report", "data": {"reportType": "oil-inspection"}}
    assert _slug(registry, raw) == "switchgear-report"


@pytest.mark.parametrize("report_type,slug,route", [
    ("12-current-transformer-test-ats-report", "current-transformer-test-ats-report",
     "12-current-transformer-test-ats-report"),
    ("current-transformer-test-ats-report", "current-transformer-test-ats-report",
     "current-transformer-test-ats-report"),
    ("lowVoltageCircuitBreakerThermalMagneticATS", "low-voltage-circuit-breaker-ats-report",
     "low-voltage-circuit-breaker-thermal-magnetic-ats-report"),
    ("low-voltage-circuit-breaker-thermal-magnetic-ats", "low-voltage-circuit-breaker-ats-report",
     "low-voltage-circuit-breaker-thermal-magnetic-ats-report"),
    ("medium-voltage-vlf-tan-delta-mts", "medium-voltage-vlf-tan-delta", "medium-voltage-vlf-tan-delta-mts"),
    ("MediumVoltageVLFMTS", "medium-voltage-vlf", "medium-voltage-vlf-mts-report"),
])
def test_route_slugs(registry, report_type, slug, route):
    payload = ReportPayload.from_raw({"reportType": report_type})
    importer = registry.dispatch(payload)
    assert importer.slug == slug
    assert importer.route_slug(payload) == route


def test_custom_registry_first_match_wins():
    general = Importer(ReportSpec(slug="general", table="general_reports", match=MatchRule(any_of=["relay"])))
    specific = Importer(ReportSpec(slug="specific", table="relay_reports", match=MatchRule(any_of=["relay"], all_of=["mts"])))

    registry = ImporterRegistry([specific, general])
    assert _slug(registry, {"reportType": "RelayMTS"}) == "specific"
    assert _slug(registry, {"reportType": "RelayATS"}) == "general"

    reversed_registry = ImporterRegistry([general, specific])
    assert _slug(reversed_registry, {"reportType": "RelayMTS"}) == "general"


def test_get_unknown_slug(registry):
    assert registry.get("nope") is None
    assert registry.get("oil-inspection").table


@pytest.mark.parametrize("rule,type_string,expected", [
    (MatchRule(any_of=["a"]), "", False),
    (MatchRule(), "anything", False),
    (MatchRule(any_of=["Switch"]), "LOW-VOLTAGE-SWITCH", True),
    (MatchRule(all_of=["tan", "mts"]), "tan delta ats", False),
    (MatchRule(any_of=["3sets"], none_of=["13sets"]), "cable13sets", False),
])
def test_match_rule(rule, type_string, expected):
    assert rule.matches(type_string) is expected


def test_yaml_overrides_and_insertions(tmp_path):
    config = tmp_path / "importers.yaml"
    config.write_text(
        "importers:\n"
        "  oil-inspection:\n"
        "    table: oil_reports_v2\n"
        "  grounding-resistance:\n"
        "    table: grounding_reports\n"
        "    before: switchgear-report\n"
        "    match:\n"
        "      any_of: [grounding]\n",
        encoding="utf-8",
    )
    specs = load_importer_specs(config, defaults=default_specs())
    by_slug = {spec.slug: spec for spec in specs}

    assert by_slug["oil-inspection"].table == "oil_reports_v2"
    assert by_slug["oil-inspection"].groups
    slugs = [spec.slug for spec in specs]
    assert slugs.index("grounding-resistance") == slugs.index("switchgear-report") - 1
    assert len(specs) == len(default_specs()) + 1


def test_missing_config_returns_defaults(tmp_path):
    specs = load_importer_specs(tmp_path / "absent.yaml", defaults=default_specs())
    assert [s.slug for s in specs] == [s.slug for s in default_specs()]


@pytest.mark.parametrize("body", [
    "importers: [1, 2]\n",
    "importers:\n  broken:\n    match: 12\n",
    "importers: {\n",
])
def test_invalid_config_raises_config_error(tmp_path, body):
    config = tmp_path / "importers.yaml"
    config.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_importer_specs(config, defaults=default_specs())
