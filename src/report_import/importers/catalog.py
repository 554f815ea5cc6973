"""
Built-in mapping specs for every supported report type, in registration order.

Order is significant: dispatch takes the first spec whose rule matches, so a spec whose
type string is a superstring of another's (``...-electronic-trip-ats-secondary`` vs
``...-electronic-trip``, ``twosmalldrytypetransformer`` vs ``drytypetransformer``) must
come first. ``config/importers.yaml`` can override or extend these without code changes.

Every flat key list starts with the key the report forms export; later keys are older
spellings still accepted. Blob reports keep the whole record in one JSON column; for
partitioned reports the record's top-level keys are the column names.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from report_import.importers.specs import (
    AttributeSpec,
    ColumnSpec,
    CorrectionSpec,
    GroupSpec,
    MatchRule,
    ReportSpec,
    SlugVariant,
    TableSpec,
    TemperatureSpec,
)

SELECT_ONE = "Select One"
MEGOHMS = "MΩ"
GIGOHMS = "GΩ"
OHMS = "Ω"
MICRO_OHMS = "µΩ"
MICRO_AMPS = "µA"
MU_OHMS = "μΩ"
MU_AMPS = "μA"
MILLIAMPS = "mA"

JOB_SECTIONS = ["job information", "job info", "report information"]
NAMEPLATE_SECTIONS = ["nameplate", "device data", "breaker data", "enclosure"]
VISUAL_SECTIONS = ["visual", "mechanical inspection"]
EQUIPMENT_SECTIONS = ["test equipment"]
INSULATION_SECTIONS = ["insulation resistance", "electrical tests"]

AMBIENT = {"ambient": "fahrenheit", "correctionFactor": "tcf"}


def attr(
    name: str,
    *labels: str,
    flat: Optional[Sequence[str]] = None,
    kind: str = "text",
    default: Any = "",
    corrects: Optional[str] = None,
) -> AttributeSpec:
    return AttributeSpec(
        name=name,
        labels=list(labels),
        flat_keys=list(flat) if flat is not None else [name],
        kind=kind,
        default=default,
        corrects=corrects,
    )


def struct(name: str, *labels: str, flat: Optional[Sequence[str]] = None) -> AttributeSpec:
    return attr(name, *labels, flat=flat, kind="struct", default={})


def const(name: str, value: Any) -> AttributeSpec:
    """A value no payload supplies."""
    return AttributeSpec(name=name, flat_keys=[], default=value)


def col(name: str, *keys: str, kind: str = "text", default: Any = "", corrects: Optional[str] = None) -> ColumnSpec:
    return ColumnSpec(name=name, keys=list(keys), kind=kind, default=default, corrects=corrects)


def identity(*names: str) -> Dict[str, List[str]]:
    return {name: [name] for name in names}


def temp(path: str = "temperature", *mirrors: str, **aliases: str) -> TemperatureSpec:
    return TemperatureSpec(path=path, mirrors=list(mirrors), aliases=aliases)


def group(
    path: str,
    *attributes: AttributeSpec,
    titles: Sequence[str] = (),
    tables: Sequence[TableSpec] = (),
    correct: Sequence[str] = (),
    corrected_path: Optional[str] = None,
    mirrors: Sequence[str] = (),
) -> GroupSpec:
    return GroupSpec(
        path=path,
        section_titles=list(titles),
        attributes=list(attributes),
        tables=list(tables),
        correct=list(correct),
        corrected_path=corrected_path,
        mirrors=list(mirrors),
    )


def closing(*extra: AttributeSpec, status: Optional[str] = "PASS") -> List[AttributeSpec]:
    out = [attr("comments", "comment", flat=["comments", "comment"])]
    if status is not None:
        out.append(attr("status", "status", default=status))
    return out + list(extra)


# ------------------------------------------------------------------------- job information

_JOB_FIELDS: List[Tuple[str, Tuple[str, ...], Tuple[str, ...]]] = [
    ("address", ("address",), ("address", "customerAddress")),
    ("customer", ("customer",), ("customer", "customerName")),
    ("user", ("user",), ("user", "userName")),
    ("date", ("date",), ("date",)),
    ("identifier", ("identifier",), ("identifier",)),
    ("jobNumber", ("job",), ("jobNumber", "job#")),
    ("technicians", ("technician",), ("technicians",)),
    ("substation", ("substation",), ("substation",)),
    ("eqptLocation", ("eqpt", "location"), ("eqptLocation", "location")),
]


def job_attrs(*, omit: Sequence[str] = (), **names: str) -> List[AttributeSpec]:
    """The job block every report carries; keyword arguments rename a field in the output."""
    return [
        attr(names.get(key, key), *labels, flat=flat)
        for key, labels, flat in _JOB_FIELDS
        if key not in omit
    ]


def job_info(*extra: AttributeSpec, path: str = "reportInfo", omit: Sequence[str] = (), **names: str) -> GroupSpec:
    return group(path, *job_attrs(omit=omit, **names), *extra, titles=JOB_SECTIONS)


def nameplate(path: str, *attributes: AttributeSpec, titles: Sequence[str] = NAMEPLATE_SECTIONS) -> GroupSpec:
    return group(path, *attributes, titles=titles)


# --------------------------------------------------------------------------------- visual

def visual_rows(
    path: str = "",
    name: str = "items",
    *,
    id_key: str = "id",
    result_default: Any = SELECT_ONE,
    comments: bool = False,
    ids: Sequence[str] = (),
    descriptions: Sequence[str] = (),
    flat: Sequence[str] = ("vm-table",),
    labels: Sequence[str] = (),
    mirrors: Sequence[str] = (),
) -> GroupSpec:
    """Visual and mechanical items as a list of ``{id, description, result}`` rows."""
    columns = [
        col(id_key, "id", "netaSection", "section"),
        col("description", "description", "item"),
        col("result", "result", "value", default=result_default),
    ]
    if comments:
        columns.append(col("comments", "comments", "notes"))
    table = TableSpec(
        name=name,
        labels=list(labels),
        flat_keys=list(flat),
        columns=columns,
        row_count=len(ids) or None,
        row_ids=list(ids),
        id_column=id_key,
        row_defaults=[{"description": d} for d in descriptions],
        mirrors=list(mirrors),
    )
    return group(path, tables=[table], titles=VISUAL_SECTIONS)


def visual_map(
    path: str = "",
    name: str = "visualInspection",
    *,
    ids: Sequence[str] = (),
    default: Any = "",
    keyed: Optional[Dict[str, List[str]]] = None,
    flat: Sequence[str] = ("vm-table",),
    mirrors: Sequence[str] = (),
) -> GroupSpec:
    """Visual inspection stored as an id -> result object."""
    table = TableSpec(
        name=name,
        flat_keys=list(flat),
        layout="map",
        row_ids=list(ids),
        keyed_rows=keyed or {},
        value_default=default,
        mirrors=list(mirrors),
    )
    return group(path, tables=[table], titles=VISUAL_SECTIONS)


# ------------------------------------------------------------------------- test equipment

KIT_NAMES = ("name", "serialNumber", "ampId")
Prefix = Union[str, Tuple[str, str, str], None]


def kit(
    path: str,
    *labels: str,
    source: Optional[str] = None,
    prefix: Prefix = None,
    names: Tuple[str, str, str] = KIT_NAMES,
    nested_first: bool = True,
) -> GroupSpec:
    """
    One instrument: name, serial number and AMP id.
    ``source`` is the nested object the forms export (``testEquipment3.megohmmeter``);
    ``prefix`` is the flat trio, either a stem (``lro`` -> ``lro``, ``lroSerial``,
    ``lroAmpId``) or the three keys spelled out.
    """
    nested: List[List[str]] = [[], [], []]
    if source:
        stems = [source]
        if "." in source:
            stems.append(source.split(".", 1)[1])
        for stem in stems:
            nested[0] += [f"{stem}.name", f"{stem}.makeModel"]
            nested[1].append(f"{stem}.serialNumber")
            nested[2].append(f"{stem}.ampId")
    if prefix is None:
        trio: List[List[str]] = [[], [], []]
    elif isinstance(prefix, str):
        trio = [[prefix], [f"{prefix}Serial"], [f"{prefix}AmpId"]]
    else:
        trio = [[key] if key else [] for key in prefix]
    keys = [n + t if nested_first else t + n for n, t in zip(nested, trio)]
    label_sets = (labels, ("serial",), ("amp id", "amp"))
    return group(
        path,
        *[attr(name, *ls, flat=k) for name, ls, k in zip(names, label_sets, keys)],
        titles=EQUIPMENT_SECTIONS,
    )


def te3(name: str) -> str:
    return f"testEquipment3.{name}"


# ----------------------------------------------------------------------------- switchgear

SWGR_MTS_VISUAL_IDS = [
    "7.1.A.1", "7.1.A.2", "7.1.A.3", "7.1.A.4", "7.1.A.5", "7.1.A.6", "7.1.A.7", "7.1.A.8.1",
    "7.1.A.9", "7.1.A.10", "7.1.A.11", "7.1.A.12", "7.1.A.13", "7.1.A.14", "7.1.A.15",
]
SWGR_MTS_VISUAL_DESCRIPTIONS = [
    "Inspect physical, electrical, and mechanical condition.",
    "Inspect anchorage, alignment, grounding, and required area clearances.",
    "Prior to cleaning the unit, perform as-found tests.",
    "Clean the unit.",
    "Verify that fuse and/or circuit breaker sizes and types correspond to drawings and coordination study "
    "as well as to the circuit breaker address for microprocessorcommunication packages.",
    "Verify that current and voltage transformer ratios correspond to drawings.",
    "Verify that wiring connections are tight and that wiring is secure to prevent damage during routine operation of moving parts.",
    "Use of a low-resistance ohmmeter in accordance with Section 7.1.B.1.",
    "Confirm correct operation and sequencing of electrical and mechanical interlock systems.",
    "Use appropriate lubrication on moving current-carrying parts and on moving and sliding surfaces.",
    "Inspect insulators for evidence of physical damage or contaminated surfaces.",
    "Verify that barrier and shutter installation and operation.",
    "Exercise all active components.",
    "Inspect mechanical indicating devices for correct operation.",
    "Verify that filters are in place, filters are clean and free from debris, and vents are clear",
]
BUS_IDS = [f"Bus {i}" for i in range(1, 7)]
IR_MATRIX = ["ag", "bg", "cg", "ab", "bc", "ca", "an", "bn", "cn"]

SWITCHGEAR_NAMEPLATE = [
    attr("manufacturer", "manufacturer"),
    attr("catalogNumber", "catalog"),
    attr("serialNumber", "serial"),
    attr("series", "series"),
    attr("type", "type"),
    attr("systemVoltage", "system voltage"),
    attr("ratedVoltage", "rated voltage"),
    attr("ratedCurrent", "rated current"),
    attr("aicRating", "aic"),
    attr("phaseConfiguration", "phase"),
]


def _bus_table(name: str, flat: Sequence[str], cells: Sequence[Tuple[str, Sequence[str]]], **extra: Any) -> TableSpec:
    return TableSpec(
        name=name,
        flat_keys=list(flat),
        columns=[col("busSection", "bus", "busSection", "id"), *[col(cell, *keys) for cell, keys in cells]],
        row_count=6,
        row_ids=BUS_IDS,
        id_column="busSection",
        **extra,
    )


def _same(*names: str) -> List[Tuple[str, Sequence[str]]]:
    return [(name, (name,)) for name in names]


SWGR_CONTACT_CELLS = [
    ("aPhase", ("a", "aPhase")), ("bPhase", ("b", "bPhase")), ("cPhase", ("c", "cPhase")),
    ("neutral", ("neutral",)), ("ground", ("ground",)),
]


def switchgear_panelboard_mts() -> ReportSpec:
    return ReportSpec(
        slug="switchgear-panelboard-mts-report",
        table="switchgear_panelboard_mts_reports",
        title="Switchgear, Switchboard and Panelboard MTS",
        match=MatchRule(any_of=["switchgearpanelboardmts", "switchgear-panelboard-mts", "switchgear_panelboard_mts"]),
        required_columns=["job_id", "user_id", "report_data"],
        blob_columns=["report_data", "data"],
        groups=[
            job_info(
                attr("customerLocation", flat=["customerLocation"], default="Address not specified"),
                path="",
                omit=("address",),
                customer="customerName",
                user="userName",
            ),
            nameplate("nameplate", *SWITCHGEAR_NAMEPLATE),
            visual_rows(
                "", "visualInspectionItems",
                ids=SWGR_MTS_VISUAL_IDS,
                descriptions=SWGR_MTS_VISUAL_DESCRIPTIONS,
                flat=("vm-table", "visualInspectionItems"),
            ),
            group(
                "",
                attr("insulationResistanceUnit", flat=["insulationMeasured.rows.0.unit", "insulationMeasured.unit"],
                     default=MEGOHMS),
                attr("insulationResistanceTestVoltage", "test voltage",
                     flat=["insulationMeasured.testVoltage", "insulationResistanceTestVoltage"], default="500V"),
                titles=INSULATION_SECTIONS + ["temperature corrected"],
                tables=[
                    _bus_table(
                        "measuredInsulationResistance", ["insulationMeasured", "measuredInsulationResistance"],
                        _same(*IR_MATRIX),
                        labels=["measured", "insulation resistance"],
                        correction=CorrectionSpec(columns=IR_MATRIX, into="tempCorrectedInsulationResistance"),
                    ),
                ],
            ),
            group(
                "",
                attr("contactResistanceUnit", flat=["switchgearContact.rows.0.unit", "switchgearContact.unit"],
                     default=MICRO_OHMS),
                titles=["contact resistance"],
                tables=[_bus_table("contactResistanceTests", ["switchgearContact", "contactResistanceTests"],
                                   SWGR_CONTACT_CELLS)],
            ),
            group(
                "",
                attr("dielectricWithstandUnit", flat=["switchgearDielectric.rows.0.unit", "switchgearDielectric.unit"],
                     default=MICRO_AMPS),
                attr("dielectricWithstandTestVoltage", "test voltage",
                     flat=["switchgearDielectric.testVoltage", "dielectricWithstandTestVoltage"], default="2.2 kVAC"),
                titles=["dielectric withstand"],
                tables=[_bus_table("dielectricWithstandTests", ["switchgearDielectric", "dielectricWithstandTests"],
                                   _same("ag", "bg", "cg"))],
            ),
            kit("testEquipment.megohmmeter", "megohmmeter", "megger", source=te3("megohmmeter"), prefix="megohmmeter"),
            kit("testEquipment.lowResistanceOhmmeter", "low resistance", "ohmmeter",
                source=te3("lowResistanceOhmmeter"), prefix="lro"),
            kit("testEquipment.hipot", "hipot", source=te3("primaryInjectionTestSet"), prefix="hipot"),
        ],
        attributes=closing(),
        job_paths={
            "customer_name": "customerName",
            "customer_address": "customerLocation",
            "job_number": "jobNumber",
        },
    )


SWITCHGEAR_COLUMNS = (
    "report_info", "visual_mechanical", "insulation_resistance", "contact_resistance",
    "dielectric_withstand", "comments", "status",
)


def switchgear() -> ReportSpec:
    """The payload's own field names survive; readings are nested under their test columns."""
    return ReportSpec(
        slug="switchgear-report",
        table="switchgear_reports",
        title="Switchgear",
        match=MatchRule(any_of=["switchgear"]),
        required_columns=["job_id", "user_id", "report_info"],
        temperature=temp("report_info.temperature"),
        groups=[
            job_info(path="report_info", omit=("jobNumber",)),
            nameplate("report_info", *SWITCHGEAR_NAMEPLATE),
            kit("report_info.testEquipment.megohmmeter", "megohmmeter", "megger",
                source=te3("megohmmeter"), prefix="megohmmeter"),
            kit("report_info.testEquipment.lowResistanceOhmmeter", "low resistance", "ohmmeter",
                source=te3("lowResistanceOhmmeter"), prefix="lro"),
            kit("report_info.testEquipment.primaryInjectionTestSet", "primary injection",
                source=te3("primaryInjectionTestSet"), prefix="piSet"),
            group(
                "visual_mechanical",
                titles=VISUAL_SECTIONS,
                tables=[TableSpec(name="items", flat_keys=["visualInspectionItems", "vm-table"])],
            ),
            group(
                "insulation_resistance",
                attr("testVoltage", "test voltage", flat=["insulationMeasured.testVoltage"], default="1000V"),
                attr("unit", "unit", flat=["insulationMeasured.unit", "insulationMeasured.rows.0.unit"], default=MEGOHMS),
                titles=["insulation resistance"],
                tables=[
                    TableSpec(
                        name="tests",
                        flat_keys=["insulationResistanceTests", "insulationMeasured"],
                        columns=[col("busSection", "bus", "busSection", "id"), *[col(c) for c in IR_MATRIX]],
                        correction=CorrectionSpec(columns=IR_MATRIX, into="correctedTests"),
                    )
                ],
            ),
            group(
                "contact_resistance",
                titles=["contact resistance"],
                tables=[
                    TableSpec(name="tests", flat_keys=["contactResistanceTests", "switchgearContact"]),
                    TableSpec(name="dielectricTests", labels=["dielectric"],
                              flat_keys=["dielectricWithstandTests", "switchgearDielectric"]),
                ],
            ),
            group(
                "dielectric_withstand",
                titles=["dielectric withstand"],
                tables=[TableSpec(name="tests", flat_keys=["dielectricWithstandTests", "switchgearDielectric"])],
            ),
        ],
        attributes=closing(),
        columns=identity(*SWITCHGEAR_COLUMNS),
        job_paths={
            "customer_name": "report_info.customer",
            "customer_address": "report_info.address",
        },
    )


# ---------------------------------------------------------------- flat field reports

def _flat_report(
    slug: str,
    table: str,
    title: str,
    match: MatchRule,
    *device: AttributeSpec,
    results: bool = True,
    inspection: Optional[GroupSpec] = None,
    tests: Sequence[GroupSpec] = (),
) -> ReportSpec:
    """Reports whose record is the flat field map itself, copied key for key."""
    root = [*job_attrs(), *device]
    if results:
        root.append(attr("testResults", "test results", kind="list", default=[]))
    groups = [group("", *root, titles=JOB_SECTIONS)]
    if inspection is not None:
        groups.append(inspection)
    else:
        groups.append(group("", struct("inspectionResults", "inspection"), titles=VISUAL_SECTIONS))
    groups.append(
        group(
            "testEquipment",
            attr("megohmmeter", "megohmmeter", "megger"),
            attr("serialNumber", "serial"),
            attr("ampId", "amp id", "amp"),
            attr("comments", "comment"),
            titles=EQUIPMENT_SECTIONS,
        )
    )
    groups.extend(tests)
    return ReportSpec(
        slug=slug,
        table=table,
        title=title,
        match=match,
        required_columns=["job_id", "user_id", "data"],
        temperature=temp("", temperature="fahrenheit"),
        groups=groups,
        job_paths={"customer_name": "customer", "customer_address": "address", "job_number": "jobNumber"},
    )


def panelboard() -> ReportSpec:
    return _flat_report(
        "panelboard",
        "panelboard_reports",
        "Panelboard",
        MatchRule(any_of=["panelboard", "panelboardreport"]),
        attr("manufacturer", "manufacturer"),
        attr("model", "model"),
        attr("serialNumber", "serial"),
        attr("voltage", "voltage"),
    )


def lv_panelboard_small_breaker() -> ReportSpec:
    breaker_columns = [
        col("circuitNumber"),
        col("result"),
        col("poles"),
        col("manuf"),
        col("type"),
        col("frameA"),
        col("tripA"),
        col("ratedCurrentA"),
        col("testCurrentA"),
        col("tripToleranceMin"),
        col("tripToleranceMax"),
        col("tripTime"),
        col("insulationLL"),
        col("insulationLP"),
        col("insulationPP"),
    ]
    return ReportSpec(
        slug="low-voltage-panelboard-small-breaker-report",
        table="low_voltage_cable_test_3sets",
        title="Low Voltage Panelboard Small Breaker Test ATS",
        match=MatchRule(any_of=[
            "lowvoltagepanelboardsmallbreakertestats",
            "low-voltage-panelboard-small-breaker",
            "panelboardsmallbreaker",
        ]),
        temperature=temp("reportInfo.temperature", **AMBIENT),
        groups=[
            job_info(
                attr("humidity", "humidity", flat=["humidity"]),
                attr("comments", "comment", flat=["comments"]),
                user="userName",
            ),
            nameplate(
                "nameplateData",
                attr("panelboardManufacturer", "panelboard manufacturer"),
                attr("panelboardTypeCatalog", "panelboard type", flat=["panelboardTypeCat", "panelboardTypeCatalog"]),
                attr("panelboardSizeA", "panelboard size"),
                attr("panelboardVoltageV", "panelboard voltage"),
                attr("panelboardSCCRkA", "sccr"),
                attr("mainBreakerManufacturer", "main breaker manufacturer"),
                attr("mainBreakerType", "main breaker type"),
                attr("mainBreakerFrameSizeA", "frame size"),
                attr("mainBreakerRatingPlugA", "rating plug"),
                attr("mainBreakerICRatingkA", "ic rating"),
            ),
            visual_map(),
            group(
                "electricalTests",
                attr("numberOfCircuitSpaces", "circuit spaces",
                     flat=["numberOfCircuitSpaces", "panelboardBreakers.numberOfSpaces"]),
                attr("ordering", "ordering", flat=["electricalTestOrdering", "ordering"]),
                attr("tripCurveNumbers", "trip curve", flat=["tripCurveNumbers"]),
                titles=["electrical tests", "breaker"],
                tables=[
                    TableSpec(
                        name="breakers",
                        labels=["breaker"],
                        flat_keys=["panelboardBreakers.breakers", "panelboardBreakers"],
                        columns=breaker_columns,
                    )
                ],
            ),
            kit("testEquipment.megohmmeter", "megohmmeter", "megger", source=te3("megohmmeter"), prefix="megohmmeter"),
            kit("testEquipment.lowResistanceOhmmeter", "low resistance", "ohmmeter",
                source=te3("lowResistanceOhmmeter"), prefix="lro"),
            kit("testEquipment.primaryInjectionTestSet", "primary injection",
                source=te3("primaryInjectionTestSet"), prefix="piSet"),
        ],
        attributes=[
            attr("status", "status", default="PASS"),
            const("reportType", "low-voltage-panelboard-small-breaker-report"),
        ],
    )


# ---------------------------------------------------------------------------- transformers

IR_WINDINGS = [
    ("primaryToGround", "primary"),
    ("secondaryToGround", "secondary"),
    ("primaryToSecondary", "primaryToSecondary"),
]
IR_READINGS = ["halfMinute", "oneMinute", "tenMinute"]


def _dry_key(name: str) -> List[str]:
    return [f"dry-nameplate.{name}", name]


def _dry_nameplate(path: str, *, secondary_kva: bool) -> List[GroupSpec]:
    attributes = [
        attr("manufacturer", "manufacturer", flat=_dry_key("manufacturer")),
        attr("catalogNumber", "catalog", flat=_dry_key("catalogNumber")),
        attr("serialNumber", "serial", flat=_dry_key("serialNumber")),
    ]
    if secondary_kva:
        attributes.append(attr("kvaSecondary", "kva secondary", flat=_dry_key("kvaSecondary")))
    attributes += [
        attr("kva", "kva", flat=_dry_key("kva")),
        attr("tempRise", "temp rise", flat=_dry_key("tempRise")),
        attr("impedance", "impedance", flat=_dry_key("impedance")),
        struct("primary", "primary", flat=_dry_key("primary")),
        struct("secondary", "secondary", flat=_dry_key("secondary")),
    ]
    return [
        nameplate(path, *attributes),
        nameplate(
            f"{path}.tapConfiguration",
            const("positions", [1, 2, 3, 4, 5, 6, 7]),
            attr("voltages", "tap voltages", flat=_dry_key("tapVoltages"), kind="list", default=[]),
            attr("currentPositionSecondary", "tap position secondary", flat=_dry_key("tapPositionSecondary")),
            attr("currentPosition", "tap position", flat=_dry_key("tapPositionCurrent"), kind="int", default=1),
            attr("tapVoltsSpecific", "tap volts", flat=_dry_key("tapSpecificVolts")),
            attr("tapPercentSpecific", "tap percent", flat=_dry_key("tapSpecificPercent")),
        ),
    ]


def winding_insulation(path: str, source: str = "dryTypeIr", *, unit: Any = MEGOHMS) -> List[GroupSpec]:
    """
    Half, one and ten minute readings per winding pair with their 20 °C corrections,
    plus the dielectric absorption and polarization index ratios from the ratio rows.
    """
    groups: List[GroupSpec] = []
    for name, ratio_key in IR_WINDINGS:
        base = f"{source}.{name}"
        groups.append(
            group(
                f"{path}.{name}",
                attr("testVoltage", flat=[f"{base}.testVoltage"]),
                attr("unit", flat=[f"{base}.unit", f"{base}.units"], default=unit),
                attr("dielectricAbsorption", flat=[f"{source}.rows[id~dielectric].{ratio_key}"]),
                attr("polarizationIndex", flat=[f"{source}.rows[id~polarization].{ratio_key}"]),
                titles=INSULATION_SECTIONS,
            )
        )
        groups.append(
            group(
                f"{path}.{name}.readings",
                attr("halfMinute", flat=[f"{base}.r05", f"{base}.halfMinute"]),
                attr("oneMinute", flat=[f"{base}.r1", f"{base}.oneMinute"]),
                attr("tenMinute", flat=[f"{base}.r10", f"{base}.tenMinute"]),
                titles=INSULATION_SECTIONS,
                correct=IR_READINGS,
                corrected_path=f"{path}.{name}.corrected",
            )
        )
    groups.append(
        group(
            path,
            attr("dielectricAbsorptionAcceptable", flat=[f"{source}.rows[id~dielectric].acceptable"]),
            attr("polarizationIndexAcceptable", flat=[f"{source}.rows[id~polarization].acceptable"]),
            titles=INSULATION_SECTIONS,
        )
    )
    return groups


def _report_info_job(path: str = "report_info") -> GroupSpec:
    return job_info(path=path, user="userName")


def dry_type() -> ReportSpec:
    return ReportSpec(
        slug="dry-type-transformer",
        table="transformer_reports",
        title="Dry Type Transformer",
        match=MatchRule(any_of=["drytypetransformer", "dry-type-transformer"]),
        temperature=temp("report_info.temperature", **AMBIENT),
        groups=[
            _report_info_job(),
            *_dry_nameplate("report_info.nameplateData", secondary_kva=True),
            group(
                "report_info",
                attr("status", "status", default="PASS"),
                attr("comments", "comment", flat=["comments", "comment"]),
                titles=["comments"],
            ),
            visual_rows("visual_inspection", comments=True),
            *winding_insulation("insulation_resistance.tests"),
            kit("test_equipment.megohmmeter", "megohmmeter", "megger",
                prefix=("megohmmeter", "serialNumber", "ampId")),
        ],
        columns=identity("report_info", "visual_inspection", "insulation_resistance", "test_equipment"),
        job_paths={
            "customer_name": "report_info.customer",
            "customer_address": "report_info.address",
            "job_number": "report_info.jobNumber",
        },
    )


def _large_dry(slug: str, table: str, title: str, match: MatchRule, *, turns: bool, **extra: Any) -> ReportSpec:
    groups = [
        _report_info_job(),
        *_dry_nameplate("report_info.nameplateData", secondary_kva=False),
        visual_map("visual_inspection", "items"),
        group(
            "insulation_resistance.tests",
            attr("temperature", flat=["temperatureF", "temperature"]),
            titles=INSULATION_SECTIONS,
        ),
        *winding_insulation("insulation_resistance.tests"),
        kit("test_equipment.megohmmeter", "megohmmeter", "megger",
            prefix=("megohmmeter", "serialNumber", "ampId")),
    ]
    columns = ["report_info", "visual_inspection", "insulation_resistance", "test_equipment"]
    if turns:
        groups.append(
            group(
                "turns_ratio",
                attr("secondaryWindingVoltage", "secondary winding voltage", flat=["secondaryVoltageTap"]),
                titles=["turns ratio"],
                tables=[
                    TableSpec(
                        name="taps",
                        flat_keys=["turnsRatio"],
                        columns=[
                            col(name) for name in (
                                "tap", "nameplateVoltage", "calculatedRatio", "phaseA_TTR", "phaseA_Dev",
                                "phaseB_TTR", "phaseB_Dev", "phaseC_TTR", "phaseC_Dev", "assessment",
                            )
                        ],
                    )
                ],
            )
        )
        columns.insert(3, "turns_ratio")
    return ReportSpec(
        slug=slug,
        table=table,
        title=title,
        match=match,
        temperature=temp("report_info.temperature", **AMBIENT),
        groups=groups,
        attributes=closing(status=None),
        columns=identity(*columns, "comments"),
        job_paths={
            "customer_name": "report_info.customer",
            "customer_address": "report_info.address",
            "job_number": "report_info.jobNumber",
        },
        **extra,
    )


def large_dry_type_mts() -> ReportSpec:
    return _large_dry(
        "large-dry-type-transformer-mts-report",
        "large_dry_type_transformer_mts_reports",
        "Large Dry Type Transformer MTS",
        MatchRule(any_of=["largedrytype", "large-dry-type"], all_of=["mts"]),
        turns=True,
        required_columns=["job_id", "user_id", "report_info", "visual_inspection", "insulation_resistance",
                          "turns_ratio", "test_equipment", "comments"],
    )


def large_dry_type_ats() -> ReportSpec:
    return _large_dry(
        "large-dry-type-transformer",
        "large_transformer_reports",
        "Large Dry Type Transformer ATS",
        MatchRule(any_of=["largedrytype", "large-dry-type"], none_of=["mts"]),
        turns=False,
    )


SMALL_DRY_IR_COLUMNS = [
    col("winding", "winding", "id"),
    col("testVoltage"),
    col("measured0_5Min", "r05", "r5", "measured0_5Min"),
    col("measured1Min", "r1", "r01", "measured1Min"),
    col("units", "units", "unit", default=GIGOHMS),
    col("corrected0_5Min", corrects="measured0_5Min"),
    col("corrected1Min", corrects="measured1Min"),
    col("correctedUnits", "correctedUnits", "units", default=GIGOHMS),
    col("tableMinimum", "table100Value", "std05", "tableMinimum"),
    col("tableMinimumUnits", "tableMinimumUnits", "units", default=GIGOHMS),
]

SMALL_DRY_TURNS_COLUMNS = [
    col(name) for name in (
        "tap", "nameplateVoltage", "calculatedRatio",
        "measuredH1H2", "devH1H2", "passFailH1H2",
        "measuredH2H3", "devH2H3", "passFailH2H3",
        "measuredH3H1", "devH3H1", "passFailH3H1",
    )
]


def _two_small(slug: str, table: str, title: str, match: MatchRule, *, mts: bool) -> ReportSpec:
    """Two small dry type units; the record is the form's own ``report_data`` object."""
    plate = [
        attr("manufacturer", "manufacturer", flat=_dry_key("manufacturer")),
        attr("kvaCooling", "kva cooling", flat=_dry_key("kvaSecondary")),
        attr("kvaBase", "kva", flat=_dry_key("kva")),
        attr("voltsPrimary", "primary volts", flat=["dry-nameplate.primary.volts", "voltsPrimary"]),
        attr("voltsSecondary", "secondary volts", flat=["dry-nameplate.secondary.volts", "voltsSecondary"]),
    ]
    if mts:
        plate += [
            attr("voltsPrimarySecondary", flat=["dry-nameplate.primary.voltsSecondary"]),
            attr("voltsSecondarySecondary", flat=["dry-nameplate.secondary.voltsSecondary"]),
        ]
    plate += [
        attr("connectionsPrimary", "primary connection", flat=["dry-nameplate.primary.connection"],
             default="Delta" if mts else ""),
        attr("connectionsSecondary", "secondary connection", flat=["dry-nameplate.secondary.connection"],
             default="Wye" if mts else ""),
        attr("windingMaterialPrimary", "primary material", flat=["dry-nameplate.primary.material"],
             default="Aluminum" if mts else ""),
        attr("windingMaterialSecondary", "secondary material", flat=["dry-nameplate.secondary.material"],
             default="Copper" if mts else ""),
        attr("catalogNumber", "catalog", flat=_dry_key("catalogNumber")),
        attr("tempRise", "temp rise", flat=_dry_key("tempRise")),
        attr("serialNumber", "serial", flat=_dry_key("serialNumber")),
        attr("impedance", "impedance", flat=_dry_key("impedance")),
        attr("tapVoltages", "tap voltages", flat=_dry_key("tapVoltages"), kind="list", default=[""] * 7),
        attr("tapPosition", "tap position", flat=_dry_key("tapPositionCurrent"), default="1" if mts else ""),
        attr("tapPositionLeftVolts", "tap volts", flat=_dry_key("tapSpecificVolts")),
        attr("tapPositionLeftPercent", "tap percent", flat=_dry_key("tapSpecificPercent")),
    ]
    ir_extra: List[GroupSpec] = []
    if mts:
        ir_extra.append(group("insulationResistance", const("dielectricAbsorptionAcceptable", "Yes")))
    else:
        ir_extra.append(
            group(
                "insulationResistance.dielectricAbsorptionRatio",
                const("calculatedAs", "1 Min. / 0.5 Min. Values"),
                attr("priToGnd", flat=["dryTypeIr.rows[id~dielectric].primary"]),
                attr("secToGnd", flat=["dryTypeIr.rows[id~dielectric].secondary"]),
                attr("priToSec", flat=["dryTypeIr.rows[id~dielectric].primaryToSecondary"]),
                attr("passFail", flat=["dryTypeIr.rows[id~dielectric].acceptable"]),
                attr("minimumDAR", flat=[], default="1.0"),
                titles=INSULATION_SECTIONS,
            )
        )
    return ReportSpec(
        slug=slug,
        table=table,
        title=title,
        match=match,
        required_columns=["job_id", "user_id", "report_data"],
        blob_columns=["report_data", "data"],
        temperature=temp(correctionFactor="tcf"),
        groups=[
            job_info(path="", omit=("address", "customer")),
            nameplate("nameplate", *plate),
            visual_rows("", "visualInspectionItems", id_key="netaSection", result_default=""),
            group("", attr("visualInspectionComments", flat=["visualInspectionComments", "vmComments"])),
            group(
                "insulationResistance",
                titles=INSULATION_SECTIONS,
                tables=[
                    TableSpec(
                        name="tests",
                        flat_keys=["dryTypeIr", "dryTypeIrSmall"],
                        columns=SMALL_DRY_IR_COLUMNS,
                        struct_rows=[name for name, _ in IR_WINDINGS],
                        row_defaults=[
                            {"winding": "Primary to Ground"},
                            {"winding": "Secondary to Ground"},
                            {"winding": "Primary to Secondary"},
                        ],
                    )
                ],
            ),
            *ir_extra,
            group(
                "turnsRatio",
                attr("secondaryWindingVoltage", "secondary winding voltage", flat=["secondaryVoltageTap"]),
                titles=["turns ratio"],
                tables=[TableSpec(name="tests", flat_keys=["turnsRatioSmallDry", "turnsRatio"],
                                  columns=SMALL_DRY_TURNS_COLUMNS)],
            ),
            group(
                "testEquipment",
                attr("megohmmeter", "megohmmeter", "megger", flat=["megohmmeter", te3("megohmmeter.name")]),
                attr("ttrTestSet", "ttr", flat=["primaryInjectionTestSet", te3("primaryInjectionTestSet.name")]),
                titles=EQUIPMENT_SECTIONS,
            ),
        ],
        attributes=closing(),
        job_paths={"job_number": "jobNumber"},
    )


def two_small_dry_type_ats() -> ReportSpec:
    return _two_small(
        "two-small-dry-typer-xfmr-ats-report",
        "two_small_dry_type_xfmr_ats_reports",
        "2-Small Dry Type Transformer ATS",
        MatchRule(any_of=["twosmalldrytypexfmrats", "two-small-dry-type-xfmr-ats", "two-small-dry-typer-xfmr-ats"]),
        mts=False,
    )


def two_small_dry_type_mts() -> ReportSpec:
    return _two_small(
        "two-small-dry-typer-xfmr-mts-report",
        "two_small_dry_type_xfmr_mts_reports",
        "2-Small Dry Type Transformer MTS",
        MatchRule(any_of=["twosmalldrytypexfmrmts", "two-small-dry-type-xfmr-mts", "two-small-dry-typer-xfmr-mts"]),
        mts=True,
    )


def two_small_dry_type() -> ReportSpec:
    return _flat_report(
        "two-small-dry-type-transformer",
        "two_small_dry_type_transformer_reports",
        "Two Small Dry Type Transformer",
        MatchRule(any_of=["twosmalldrytypetransformer", "two-small-dry-type-transformer"]),
        attr("manufacturer", "manufacturer"),
        attr("model", "model"),
        attr("serialNumber", "serial"),
        attr("kva", "kva"),
        attr("primaryVoltage", "primary voltage"),
        attr("secondaryVoltage", "secondary voltage"),
        results=False,
        inspection=visual_map("", "inspectionResults"),
    )


LIQUID_VISUAL_FLAT = ("vm-table", "liquidVisual", "visualInspection")


def liquid_filled() -> ReportSpec:
    return ReportSpec(
        slug="liquid-filled-transformer",
        table="low_voltage_cable_test_3sets",
        title="Liquid Filled Transformer",
        match=MatchRule(any_of=["liquidfilledtransformer", "liquid-filled-transformer"]),
        temperature=temp("reportInfo.temperature", **AMBIENT),
        groups=[
            job_info(user="userName"),
            *_dry_nameplate("reportInfo.nameplateData", secondary_kva=False),
            group(
                "reportInfo",
                attr("oilLevel", "oil level"),
                attr("tankPressure", "pressure"),
                attr("oilTemperature", "oil temp"),
                attr("windingTemperature", "winding temp"),
                attr("oilTempRange", "oil temp range"),
                attr("windingTempRange", "winding temp range"),
                titles=["indicator", "gauge"],
            ),
            visual_map(flat=LIQUID_VISUAL_FLAT),
            *winding_insulation("insulationResistance"),
            kit("testEquipment.megohmmeter", "megohmmeter", "megger",
                prefix=("megohmmeter", "serialNumber", "ampId")),
        ],
        attributes=closing(
            const("isLiquidType", True),
            const("reportType", "liquid_filled_transformer_ats"),
        ),
    )


def liquid_xfmr_visual_mts() -> ReportSpec:
    return ReportSpec(
        slug="liquid-xfmr-visual-mts-report",
        table="low_voltage_cable_test_3sets",
        title="Liquid Filled Transformer Visual MTS",
        match=MatchRule(any_of=["liquidxfmrvisualmts", "liquid-xfmr-visual-mts"]),
        temperature=temp("reportInfo.temperature", **AMBIENT),
        groups=[
            job_info(user="userName"),
            *_dry_nameplate("reportInfo.nameplateData", secondary_kva=False),
            *winding_insulation("reportInfo.insulationResistance"),
            visual_map(flat=LIQUID_VISUAL_FLAT),
            kit("testEquipment.megohmmeter", "megohmmeter", "megger",
                prefix=("megohmmeter", "serialNumber", "ampId")),
        ],
        attributes=closing(
            const("isLiquidType", True),
            const("reportType", "liquid-xfmr-visual-mts-report"),
        ),
    )


# ---------------------------------------------------------------- instrument transformers

CT_VISUAL_IDS = ["7.10.1.A.1", "7.10.1.A.2", "7.10.1.A.3", "7.10.1.A.4", "7.10.1.A.5", "7.10.1.A.6.1",
                 "7.10.1.A.7", "7.10.1.A.8"]
CT_VISUAL_DESCRIPTIONS = [
    "Compare equipment nameplate data with drawings and specifications.",
    "Inspect physical and mechanical condition.",
    "Verify correct connection of transformers with system requirements.",
    "Verify that adequate clearances exist between primary and secondary circuit wiring.",
    "Verify the unit is clean.",
    "Use of a low-resistance ohmmeter in accordance with Section 7.10.1.B.1.",
    "Verify that all required grounding and shorting connections provide contact.",
    "Verify appropriate lubrication on moving current-carrying parts and on moving and sliding surfaces.",
]
CT_PHASES = ["Phase1", "Phase2", "Phase3", "Neutral"]


def _ct_job(path: str) -> GroupSpec:
    return job_info(path=path, customer="customerName", address="customerAddress", user="userName")


def current_transformer_ats() -> ReportSpec:
    def winding(name: str, source: str) -> GroupSpec:
        return group(
            f"electrical_tests.{name}",
            attr("testVoltage", "test voltage", flat=[f"{source}.testVoltage"], default="1000V"),
            const("results", ""),
            const("units", MEGOHMS),
            attr("reading", "reading", flat=[f"{source}.readingPhase1"]),
            attr("tempCorrection20C", flat=[f"{source}.tempCorrection20CPhase1"], corrects="reading"),
            titles=[name.replace("Winding", " winding").lower(), "insulation"],
        )

    return ReportSpec(
        slug="current-transformer-test-ats-report",
        table="current_transformer_test_ats_reports",
        title="Current Transformer Test ATS",
        match=MatchRule(any_of=["currenttransformer", "current-transformer"], all_of=["ats"]),
        slug_variants=[SlugVariant(pattern=r"^12-.*current.*transformer.*ats", slug="12-current-transformer-test-ats-report")],
        required_columns=["job_id", "user_id", "report_info", "nameplate_data", "visual_mechanical_inspection",
                          "electrical_tests", "test_equipment", "comments"],
        temperature=temp("report_info.temperature"),
        groups=[
            _ct_job("report_info"),
            nameplate(
                "nameplate_data",
                attr("manufacturer", "manufacturer"),
                attr("deviceClass", "class", flat=["class", "deviceClass"]),
                attr("ctRatio", "ratio"),
                attr("serialNumber", "serial"),
                attr("catalogNumber", "catalog"),
                attr("voltageRating", "voltage rating"),
                attr("polarityFacing", "polarity"),
                attr("deviceType", "type", flat=["type", "deviceType"]),
                attr("frequency", "frequency"),
            ),
            visual_rows("visual_mechanical_inspection", id_key="netaSection"),
            winding("primaryWinding", "primaryInsulation"),
            winding("secondaryWinding", "secondaryInsulation"),
            group(
                "test_equipment",
                attr("megohmmeter", "megohmmeter", "megger"),
                attr("megohmmeterSerial", "serial"),
                attr("megohmmeterAmpId", "amp id", "amp", flat=["megohmmeterAmpId", "ampId"]),
                titles=EQUIPMENT_SECTIONS,
            ),
        ],
        attributes=closing(status=None),
        columns=identity(
            "report_info", "nameplate_data", "visual_mechanical_inspection", "electrical_tests",
            "test_equipment", "comments",
        ),
        job_paths={
            "customer_name": "report_info.customerName",
            "customer_address": "report_info.customerAddress",
            "job_number": "report_info.jobNumber",
        },
    )


def _winding_insulation(path: str, source: str) -> GroupSpec:
    readings = [attr(f"reading{p}", flat=[f"{source}.reading{p}"]) for p in CT_PHASES]
    corrected = [
        attr(f"tempCorrection20C{p}", flat=[f"{source}.tempCorrection20C{p}"], corrects=f"reading{p}")
        for p in CT_PHASES
    ]
    return group(
        path,
        attr("testVoltage", "test voltage", flat=[f"{source}.testVoltage"], default="1000V"),
        *readings,
        attr("units", flat=[f"{source}.units"], default=MEGOHMS),
        *corrected,
        titles=[path.rsplit(".", 1)[-1].replace("WindingInsulation", " winding").lower()],
    )


def current_transformer_mts() -> ReportSpec:
    ct_id = []
    for index, name in enumerate(["phase1", "phase2", "phase3", "neutral"]):
        ct_id += [
            attr(name, flat=[f"ctId.rows.{index}.phase", name]),
            attr(f"{name}Serial", flat=[f"ctId.rows.{index}.serial", f"{name}Serial"]),
        ]
    return ReportSpec(
        slug="current-transformer-test-mts-report",
        table="current_transformer_test_mts_reports",
        title="Current Transformer Test MTS",
        match=MatchRule(any_of=["currenttransformer", "current-transformer"], all_of=["mts"]),
        required_columns=["job_id", "user_id", "report_data"],
        blob_columns=["report_data", "data"],
        groups=[
            _ct_job(""),
            nameplate(
                "deviceData",
                attr("manufacturer", "manufacturer"),
                attr("class", "class"),
                attr("ctRatio", "ratio"),
                attr("catalogNumber", "catalog"),
                attr("voltageRating", "voltage rating"),
                attr("polarityFacing", "polarity"),
                attr("type", "type"),
                attr("frequency", "frequency"),
            ),
            visual_rows(
                "", "visualMechanicalInspection",
                id_key="netaSection", ids=CT_VISUAL_IDS, descriptions=CT_VISUAL_DESCRIPTIONS,
            ),
            group("ctIdentification", *ct_id, titles=["identification"]),
            group(
                "electricalTests",
                titles=["ratio", "polarity"],
                tables=[
                    TableSpec(
                        name="ratioPolarity",
                        flat_keys=["ratioPolarity"],
                        columns=[
                            col("id"),
                            col("identifier"),
                            col("ratio"),
                            col("testType", "testType", default="voltage"),
                            col("testValue"),
                            col("pri"),
                            col("sec"),
                            col("measuredRatio"),
                            col("ratioDev"),
                            col("polarity", default=SELECT_ONE),
                        ],
                        row_count=4,
                        row_ids=["1", "2", "3", "4"],
                    )
                ],
            ),
            _winding_insulation("electricalTests.primaryWindingInsulation", "primaryInsulation"),
            _winding_insulation("electricalTests.secondaryWindingInsulation", "secondaryInsulation"),
            group(
                "testEquipmentUsed",
                attr("megohmmeterName", "megohmmeter", flat=["megohmmeterName", "megohmmeter"]),
                attr("megohmmeterSerial", "serial", flat=["megohmmeterSerial", "serialNumber"]),
                attr("megohmmeterAmpId", "amp id", flat=["megohmmeterAmpId", "ampId"]),
                attr("ctRatioTestSetName", "ratio test set"),
                attr("ctRatioTestSetSerial"),
                attr("ctRatioTestSetAmpId"),
                titles=EQUIPMENT_SECTIONS,
            ),
        ],
        attributes=closing(),
        job_paths={
            "customer_name": "customerName",
            "customer_address": "customerAddress",
            "job_number": "jobNumber",
        },
    )


def voltage_potential_transformer() -> ReportSpec:
    return ReportSpec(
        slug="13-voltage-potential-transformer-test-mts-report",
        table="voltage_potential_transformer_mts_reports",
        title="Voltage Potential Transformer Test MTS",
        match=MatchRule(any_of=["voltagepotentialtransformer", "voltage-potential-transformer"]),
        groups=[
            _ct_job(""),
            nameplate(
                "deviceData",
                attr("manufacturer", "manufacturer"),
                attr("catalogNumber", "catalog"),
                attr("serialNumber", "serial"),
                attr("accuracyClass", "accuracy"),
                attr("manufacturedYear", "year"),
                attr("voltageRating", "voltage rating"),
                attr("insulationClass", "insulation class"),
                attr("frequency", "frequency"),
            ),
            visual_rows("", "visualMechanicalInspection", id_key="netaSection"),
            nameplate(
                "fuseData",
                attr("manufacturer", "manufacturer", flat=["fuseManufacturer"]),
                attr("catalogNumber", "catalog", flat=["fuseCatalogNumber"]),
                attr("class", "class", flat=["fuseClass"]),
                attr("voltageRatingKv", "voltage", flat=["fuseVoltageRatingKv"]),
                attr("ampacityA", "ampacity", flat=["fuseAmpacityA"]),
                attr("icRatingKa", "ic rating", flat=["fuseIcRatingKa"]),
                titles=["fuse data"],
            ),
            group(
                "fuseResistanceTest",
                attr("asFound", "as found", flat=["fuseResistance.asFound"]),
                attr("asLeft", "as left", flat=["fuseResistance.asLeft"]),
                const("units", MICRO_OHMS),
                titles=["fuse resistance"],
            ),
            group(
                "",
                attr("secondaryVoltageAsFoundTap", "secondary voltage", flat=["secondaryVoltageTap"]),
                titles=["turns ratio"],
                tables=[
                    TableSpec(
                        name="insulationResistance",
                        labels=["insulation"],
                        flat_keys=["vtInsulation"],
                        columns=[
                            col("id"),
                            col("windingTested", "id", "windingTested"),
                            col("testVoltage"),
                            col("results"),
                            col("units", default=MEGOHMS),
                            col("correctedResults", "corrected", corrects="results"),
                        ],
                    ),
                    TableSpec(
                        name="turnsRatioTest",
                        labels=["turns ratio", "ttr"],
                        flat_keys=["turnsRatio"],
                        columns=[col(name) for name in (
                            "id", "tap", "primaryVoltage", "calculatedRatio", "measuredH1H2", "percentDeviation", "passFail",
                        )],
                        struct_row=True,
                        row_count=1,
                        row_ids=["tr-0"],
                    ),
                ],
            ),
            kit("testEquipmentUsed.megohmmeter", "megohmmeter", "megger", prefix="megohmmeter"),
            kit("testEquipmentUsed.lowResistanceOhmmeter", "low resistance", "ohmmeter", prefix="lro"),
            kit("testEquipmentUsed.ttrTestSet", "ttr", prefix="ttr"),
        ],
        attributes=closing(status=None),
        job_paths={
            "customer_name": "customerName",
            "customer_address": "customerAddress",
            "job_number": "jobNumber",
        },
    )


# -------------------------------------------------------------------- cables and tan delta

TAN_DELTA_DEFAULT_POINTS = [
    {"voltageLabel": "0.5 Uo", "kV": 7.2},
    {"voltageLabel": "1.0 Uo", "kV": 14.4},
    {"voltageLabel": "1.5 Uo", "kV": 21.6},
    {"voltageLabel": "2.0 Uo", "kV": 28.8},
]
TAN_DELTA_SOURCES = ("mvTanDelta", "tanDelta", "tandelta")


def tan_delta_points(name: str = "points") -> TableSpec:
    return TableSpec(
        name=name,
        labels=["tan delta"],
        flat_keys=[f"{source}.values" for source in TAN_DELTA_SOURCES],
        columns=[
            col("voltageLabel", "voltageStep", "voltageLabel"),
            col("kV", "kV", kind="number", default=0),
            col("phaseA", "phaseA.td", "phaseA", kind="number", default=0),
            col("phaseAStdDev", "phaseA.stdDev", "phaseAStdDev", kind="number", default=None),
            col("phaseB", "phaseB.td", "phaseB", kind="number", default=0),
            col("phaseBStdDev", "phaseB.stdDev", "phaseBStdDev", kind="number", default=None),
            col("phaseC", "phaseC.td", "phaseC", kind="number", default=0),
            col("phaseCStdDev", "phaseC.stdDev", "phaseCStdDev", kind="number", default=None),
        ],
        row_defaults=TAN_DELTA_DEFAULT_POINTS,
    )


def system_voltage(name: str = "systemVoltageL2G", default: str = "14.4") -> AttributeSpec:
    return attr(
        name, "system voltage",
        flat=[f"{source}.systemVoltageL2G" for source in TAN_DELTA_SOURCES] + ["systemVoltageL2G"],
        default=default,
    )


VLF_VISUAL_ATS = {
    "compareData": ["7.3.3.A.1"],
    "inspectDamage": ["7.3.3.A.2"],
    "useOhmmeter": ["7.3.3.A.3.1"],
    "inspectConnectors": ["7.3.3.A.4"],
    "inspectGrounding": ["7.3.3.A.5"],
    "verifyBends": ["7.3.3.A.6"],
    "inspectCurrentTransformers": ["7.3.3.A.8"],
    "inspectIdentification": ["7.3.3.A.9"],
    "inspectJacket": ["7.3.3.A.10"],
}
VLF_VISUAL_MTS = {
    "inspectCablesAndConnectors": ["7.3.3.A.1"],
    "inspectTerminationsAndSplices": ["7.3.3.A.2"],
    "useOhmmeter": ["7.3.3.A.3.1"],
    "inspectShieldGrounding": ["7.3.3.A.4"],
    "verifyBendRadius": ["7.3.3.A.5"],
    "inspectCurrentTransformers": ["7.3.3.A.7", "7.3.3.A.8"],
}
VLF_SELECT_ONE = "select one"
PHASES = ("phaseA", "phaseB", "phaseC")


def _vlf_blocks(prefix: str, *, mirrored: bool, capacitance: bool) -> List[GroupSpec]:
    """
    Cable, termination, shield, insulation, withstand and equipment blocks. With
    ``mirrored`` each block is also copied to its own snake_case column.
    """

    def block(name: str, column: str, *attributes: AttributeSpec, **kwargs: Any) -> GroupSpec:
        return group(f"{prefix}{name}", *attributes, mirrors=[column] if mirrored else [], **kwargs)

    cells = [col("timeMinutes"), col("kVAC")]
    for phase in PHASES:
        cells += [col(f"{phase}.currentUnit", default=MILLIAMPS), col(f"{phase}.mA")]
        if capacitance:
            cells.append(col(f"{phase}.nF"))

    irs = []
    for stage in ("pre", "post"):
        irs.append(
            group(
                f"{prefix}insulationTest.{stage}Test",
                *[attr(cell, flat=[f"mvIrPrePost.{stage}.{cell}"]) for cell in ("ag", "bg", "cg")],
                titles=["insulation"],
                correct=["ag", "bg", "cg"],
                corrected_path=f"{prefix}insulationTest.{stage}TestCorrected",
            )
        )

    equipment = [
        ("ohmmeter", "lowResistanceOhmmeter", "name"),
        ("ohmSerialNumber", "lowResistanceOhmmeter", "serialNumber"),
        ("megohmmeter", "megohmmeter", "name"),
        ("megohmSerialNumber", "megohmmeter", "serialNumber"),
        ("vlfHipot", "primaryInjectionTestSet", "name"),
        ("vlfSerialNumber", "primaryInjectionTestSet", "serialNumber"),
        ("ampId", "primaryInjectionTestSet", "ampId"),
        ("vlfTestSet", "primaryInjectionTestSet", "name"),
    ]

    def instrument_keys(source: str, member: str) -> List[str]:
        keys = [te3(f"{source}.{member}")]
        if member == "name":
            keys.insert(0, te3(f"{source}.makeModel"))
        return keys

    return [
        # ``from`` and ``to`` are read by key only; as labels they would match most titles.
        block(
            "cableInfo", "cable_info",
            const("description", ""),
            attr("size", "conductor size", flat=["conductorSize"]),
            attr("length", "length", flat=["lengthFt"]),
            attr("voltageRating", "cable rated voltage", flat=["cableRatedVoltage"]),
            attr("insulation", "insulation type", flat=["insulationType"]),
            const("yearInstalled", ""),
            attr("testedFrom", "tested from"),
            const("testedTo", ""),
            attr("from"),
            attr("to"),
            attr("manufacturer", "manufacturer"),
            attr("insulationThickness", "insulation thickness"),
            attr("conductorMaterial", "conductor material"),
            titles=["cable"],
        ),
        block(
            "terminationData", "termination_data",
            attr("terminationData", "termination data", flat=["terminationData1"]),
            attr("ratedVoltage", "termination rated voltage", flat=["terminationRatedVoltage1"]),
            attr("terminationData2", flat=["terminationData2"]),
            attr("ratedVoltage2", flat=["terminationRatedVoltage2"]),
            attr("from"),
            attr("to"),
            titles=["termination"],
        ),
        block(
            "shieldContinuity", "shield_continuity",
            *[
                attr(phase, f"phase {phase[-1].lower()}",
                     flat=[f"mvShieldContinuity.{phase}", f"mvShieldContinuity.{phase[-1].lower()}"])
                for phase in PHASES
            ],
            attr("unit", flat=["mvShieldContinuity.unit"], default=OHMS),
            titles=["shield"],
        ),
        block(
            "insulationTest", "insulation_test",
            attr("testVoltage", "test voltage", flat=["mvIrPrePost.testVoltage"], default="1000"),
            attr("unit", flat=["mvIrPrePost.unit"], default=GIGOHMS),
            titles=["insulation"],
        ),
        *irs,
        block(
            "withstandTest", "withstand_test",
            titles=["withstand"],
            tables=[TableSpec(name="readings", labels=["withstand"], flat_keys=["vlfWithstand.readings"], columns=cells)],
        ),
        block(
            "equipment", "equipment",
            *[attr(name, flat=instrument_keys(source, member)) for name, source, member in equipment],
            titles=EQUIPMENT_SECTIONS,
        ),
    ]


def _vlf_header(*attributes: AttributeSpec) -> List[AttributeSpec]:
    return [
        attr("customerName", "customer", flat=["customer", "customerName"]),
        attr("siteAddress", "address", flat=["address"]),
        attr("jobNumber", "job", flat=["jobNumber"]),
        attr("identifier", "identifier"),
        attr("testedBy", flat=["technicians"]),
        attr("testDate", "date", flat=["date"]),
        attr("location", "substation", flat=["substation"]),
        attr("equipmentLocation", "eqpt", "location", flat=["eqptLocation"]),
        attr("cableType", "cable type"),
        attr("operatingVoltage", "operating voltage", flat=["cableRatedVoltage"]),
        attr("cableLength", flat=["lengthFt"]),
        *attributes,
    ]


CONTACTS = [const("customerContactName", ""), const("customerContactEmail", ""), const("customerContactPhone", "")]

VLF_ATS_COLUMNS = (
    "report_info", "cable_info", "termination_data", "visual_inspection", "shield_continuity", "insulation_test",
    "equipment", "temperature", "withstand_test", "comments", "status",
)


def medium_voltage_vlf() -> ReportSpec:
    """Everything lives in ``report_info`` and each block is repeated in its own column."""
    return ReportSpec(
        slug="medium-voltage-vlf",
        table="medium_voltage_vlf_reports",
        title="Medium Voltage Cable VLF ATS",
        match=MatchRule(any_of=["mediumvoltagevlf", "medium-voltage-vlf"]),
        aliases=["MediumVoltageCableVLFATSTest"],
        slug_variants=[SlugVariant(pattern="mts", slug="medium-voltage-vlf-mts-report")],
        temperature=temp("report_info.temperature", "temperature"),
        groups=[
            group(
                "report_info",
                const("title", ""),
                attr("date", "date"),
                const("reportNumber", ""),
                attr("technicians", "technician"),
                *CONTACTS,
                *_vlf_header(attr("status", "status", default="PASS"), attr("comments", "comment")),
                titles=JOB_SECTIONS,
            ),
            visual_map("", "report_info.visualInspection", keyed=VLF_VISUAL_ATS, default=VLF_SELECT_ONE,
                       mirrors=["visual_inspection"]),
            *_vlf_blocks("report_info.", mirrored=True, capacitance=False),
        ],
        attributes=closing(),
        columns=identity(*VLF_ATS_COLUMNS),
        job_paths={
            "customer_name": "report_info.customerName",
            "customer_address": "report_info.siteAddress",
            "job_number": "report_info.jobNumber",
        },
    )


def medium_voltage_vlf_mts() -> ReportSpec:
    return ReportSpec(
        slug="medium-voltage-vlf-mts-report",
        table="medium_voltage_vlf_mts_reports",
        title="Medium Voltage Cable VLF Test With Tan Delta MTS",
        match=MatchRule(any_of=[
            "mediumvoltagecablevlfmts",
            "medium-voltage-cable-vlfmts",
            "medium-voltage-cable-vlf-mts",
            "medium-voltage-vlf-mts",
            "medium voltage cable vlf test with tan delta mts",
            "medium_voltage_cable_vlf_test_with_tan_delta_mts",
            "tandeltatestmtsform",
        ]),
        groups=[
            group(
                "reportInfo",
                const("title", "MEDIUM VOLTAGE CABLE VLF TEST REPORT MTS"),
                attr("date", "date"),
                attr("location", "substation", flat=["substation"]),
                attr("technicians", "technician"),
                const("reportNumber", ""),
                attr("customerName", "customer", flat=["customer", "customerName"]),
                *CONTACTS,
                titles=JOB_SECTIONS,
            ),
            group("", *_vlf_header(), titles=JOB_SECTIONS),
            visual_map("", "visualInspection", keyed=VLF_VISUAL_MTS, default=VLF_SELECT_ONE),
            group("visualInspection", const("comments", "")),
            *_vlf_blocks("", mirrored=False, capacitance=True),
            group(
                "tanDeltaTest",
                system_voltage(),
                attr("values", flat=[f"{source}.values" for source in TAN_DELTA_SOURCES], kind="list", default=[]),
                attr("result", "result", flat=["tanDeltaResult"], default="PASS"),
                titles=["tan delta"],
            ),
        ],
        attributes=closing(),
        job_paths={"customer_name": "customerName", "customer_address": "siteAddress", "job_number": "jobNumber"},
    )


def tan_delta_chart() -> ReportSpec:
    return ReportSpec(
        slug="medium-voltage-vlf-tan-delta",
        table="tandelta_reports",
        title="Medium Voltage Cable VLF Tan Delta",
        match=MatchRule(any_of=[
            "tandeltaats", "tan-delta-ats", "tandelta-ats",
            "tandeltachartmts", "tan-delta-chart-mts", "tandelta-mts", "tan-delta-mts",
        ]),
        slug_variants=[SlugVariant(pattern="mts", slug="medium-voltage-vlf-tan-delta-mts")],
        required_columns=["job_id", "user_id", "report_info", "test_data"],
        temperature=None,
        groups=[
            group(
                "report_info",
                const("title", "4-Medium Voltage Cable VLF Tan Delta Test MTS"),
                attr("date", "date"),
                attr("location", "substation", flat=["substation"], default="Location Not Specified"),
                attr("technicians", "technician", default="Technician Not Specified"),
                const("reportNumber", ""),
                attr("customerName", "customer", flat=["customer"], default="Customer Not Specified"),
                *CONTACTS,
                const("status", "PASS"),
                attr("identifier", "identifier", default="UNSET"),
                attr("cableType", "cable type", default="Cable Type Not Specified"),
                system_voltage("operatingVoltage"),
                system_voltage("systemVoltage"),
                attr("comments", "comment"),
                titles=JOB_SECTIONS + ["comments"],
            ),
            group(
                "report_info.testEquipment",
                attr("megohmeterSerial", "megohmmeter", flat=[te3("megohmmeter.name")]),
                attr("megohmmeterAmpId", flat=[te3("megohmmeter.ampId")]),
                attr("vlfHipotSerial", "primary injection", flat=[te3("primaryInjectionTestSet.name")]),
                attr("vlfHipotAmpId", flat=[te3("primaryInjectionTestSet.ampId")]),
                titles=EQUIPMENT_SECTIONS,
            ),
            group(
                "test_data",
                system_voltage(),
                const("frequency", "0.1"),
                titles=["tan delta"],
                tables=[tan_delta_points()],
            ),
        ],
        columns=identity("report_info", "test_data"),
        job_paths={"customer_name": "report_info.customerName"},
    )


def tan_delta_test_mts() -> ReportSpec:
    return ReportSpec(
        slug="electrical-tan-delta-test-mts-form",
        table="tan_delta_test_mts",
        title="Electrical Tan Delta Test MTS",
        match=MatchRule(all_of=["tan", "delta", "mts"]),
        required_columns=["job_id", "user_id", "data"],
        temperature=None,
        groups=[
            group("", system_voltage("systemVoltage", default="14.400"), titles=["tan delta"],
                  tables=[tan_delta_points()]),
            group(
                "testEquipment",
                attr("megohmmeterMakeModel", "megohmmeter", flat=[te3("megohmmeter.name")]),
                attr("megohmeterSerial", flat=[te3("megohmmeter.serialNumber")]),
                attr("megohmmeterAmpId", flat=[te3("megohmmeter.ampId")]),
                attr("vlfHipotMakeModel", "primary injection", flat=[te3("primaryInjectionTestSet.name")]),
                attr("vlfHipotSerial", flat=[te3("primaryInjectionTestSet.serialNumber")]),
                attr("vlfHipotAmpId", flat=[te3("primaryInjectionTestSet.ampId")]),
                titles=EQUIPMENT_SECTIONS,
            ),
        ],
        attributes=[
            attr("status", "result", flat=["tanDeltaResult"], default="PASS"),
            attr("comments", "comment"),
        ],
        job_paths={},
    )


def medium_voltage_cable_vlf() -> ReportSpec:
    return _flat_report(
        "medium-voltage-cable-vlf",
        "medium_voltage_cable_vlf_reports",
        "Medium Voltage Cable VLF",
        MatchRule(any_of=["mediumvoltagecablevlf", "medium-voltage-cable-vlf"]),
        attr("cableType", "cable type"),
        attr("voltage", "voltage"),
    )


CABLE_READINGS = [
    ("aToGround", "aG"), ("bToGround", "bG"), ("cToGround", "cG"), ("nToGround", None),
    ("aToB", "aB"), ("bToC", None), ("cToA", None), ("aToN", None), ("bToN", None), ("cToN", None),
]


def _cable_grid(sets: int) -> TableSpec:
    columns = [col("id"), *[col(name) for name in ("from", "to", "size", "config", "result")]]
    for name, short in CABLE_READINGS:
        columns.append(col(f"readings.{name}", *([short] if short else []), f"readings.{name}"))
    columns.append(col("readings.continuity", "cont", "readings.continuity"))
    for name, short in CABLE_READINGS:
        keys = [f"c_{short}"] if short else []
        columns.append(
            col(f"correctedReadings.{name}", *keys, f"correctedReadings.{name}", corrects=f"readings.{name}")
        )
    columns.append(col("correctedReadings.continuity", "cont", "readings.continuity"))
    return TableSpec(
        name="testSets",
        labels=["test sets", "electrical grid", "readings"],
        flat_keys=["electricalGrid", "testSets"],
        columns=columns,
        row_count=sets,
        row_ids=[str(i) for i in range(1, sets + 1)],
    )


def _lv_cable(slug: str, table: str, title: str, match: MatchRule, sets: int) -> ReportSpec:
    return _flat_report(
        slug,
        table,
        title,
        match,
        attr("testedFrom", "tested from"),
        attr("manufacturer", "manufacturer"),
        attr("conductorMaterial", "conductor material"),
        attr("insulationType", "insulation type"),
        attr("systemVoltage", "system voltage"),
        attr("ratedVoltage", "rated voltage"),
        attr("length", "length"),
        attr("numberOfCables", "number of cables", kind="int", default=0),
        attr("testVoltage", "test voltage"),
        results=False,
        inspection=visual_map("", "inspectionResults"),
        tests=[group("", titles=["electrical tests", "insulation resistance", "readings"], tables=[_cable_grid(sets)])],
    )


def lv_cable_20sets() -> ReportSpec:
    return _lv_cable("low-voltage-cable-test-20sets", "low_voltage_cable_test_20sets", "Low Voltage Cable Test 20 Sets",
                     MatchRule(any_of=["20sets", "20-sets"]), 20)


def lv_cable_3sets() -> ReportSpec:
    return _lv_cable("low-voltage-cable-test-3sets", "low_voltage_cable_test_3sets", "Low Voltage Cable Test 3 Sets",
                     MatchRule(any_of=["3sets", "3-sets"], none_of=["13sets"]), 3)


def lv_cable_12sets() -> ReportSpec:
    return _lv_cable("low-voltage-cable-test-12sets", "low_voltage_cable_test_12sets", "Low Voltage Cable Test 12 Sets",
                     MatchRule(any_of=["lowvoltagecable", "low-voltage-cable", "12sets", "ats"]), 12)


# ---------------------------------------------------------------------------- breakers

MVCB_VISUAL_IDS = [
    "7.6.3.A.1", "7.6.3.A.2", "7.6.3.A.3", "7.6.3.A.4", "7.6.3.A.5", "7.6.3.A.6", "7.6.3.A.7",
    "7.6.3.A.8.1", "7.6.3.A.9", "7.6.3.A.10", "7.6.3.A.11",
]
POLE_IR_ROWS = [
    ("poleToPoleClosed", "pole to pole", ("P1P2", "P2P3", "P3P1")),
    ("poleToFrameClosed", "pole to frame", ("P1", "P2", "P3")),
    ("lineToLoadOpen", "line to load", ("P1", "P2", "P3")),
]
POLE_IR = [f"{stem}{suffix}" for stem, _, suffixes in POLE_IR_ROWS for suffix in suffixes]


def _pole_readings(source: str) -> List[AttributeSpec]:
    """One attribute per pole cell of the ``pole to pole``, ``pole to frame`` and ``line to load`` rows."""
    out = []
    for stem, needle, suffixes in POLE_IR_ROWS:
        for index, suffix in enumerate(suffixes, start=1):
            out.append(attr(f"{stem}{suffix}", flat=[f"{source}.rows[id~{needle}].p{index}", f"{source}.{stem}{suffix}"]))
    return out


def _dielectric_block(path: str, source: str, cells: Sequence[str], titles: Sequence[str]) -> GroupSpec:
    return group(
        path,
        *[attr(cell, cell, flat=[f"{source}.{cell}"]) for cell in cells],
        attr("units", "unit", flat=[f"{source}.units", f"{source}.unit"], default=MU_AMPS),
        const("result", ""),
        attr("testVoltage", "test voltage", flat=[f"{source}.testVoltage"]),
        const("testDuration", "1 Min."),
        titles=titles,
    )


def _tester(path: str, *labels: str, model: Sequence[str], serial: str, ident: str) -> GroupSpec:
    return group(
        path,
        attr("model", *labels, flat=model),
        attr("serial", "serial", flat=[serial]),
        attr("id", "amp id", flat=[ident]),
        titles=EQUIPMENT_SECTIONS,
    )


def _mv_breaker(slug: str, table: str, title: str, match: MatchRule, **extra: Any) -> ReportSpec:
    """The record is one flat object; visual results are an id -> result map stored under three names."""
    return ReportSpec(
        slug=slug,
        table=table,
        title=title,
        match=match,
        groups=[
            group(
                "",
                *job_attrs(),
                attr("humidity", "humidity", kind="number", default=0),
                titles=JOB_SECTIONS,
            ),
            nameplate(
                "",
                attr("manufacturer", "manufacturer"),
                attr("catalogNumber", "catalog"),
                attr("serialNumber", "serial"),
                attr("type", "type"),
                attr("manufacturingDate", "manufacturing date"),
                attr("icRating", "ic rating"),
                attr("ratedVoltage", "rated voltage"),
                attr("operatingVoltage", "operating voltage"),
                attr("ampacity", "ampacity"),
                attr("mvaRating", "mva"),
            ),
            visual_map("", "visualMechanicalInspection", ids=MVCB_VISUAL_IDS, default=SELECT_ONE,
                       mirrors=["visual_mechanical_inspection", "visualInspection"]),
            group(
                "",
                attr("counterReadingAsFound", "counter as found", flat=["counterReadingAsFound"]),
                attr("counterReadingAsLeft", "counter as left", flat=["counterReadingAsLeft"]),
                titles=["counter"],
            ),
            group(
                "eGapMeasurements",
                *[
                    attr(name, label, flat=[f"eGap.{name}", f"eGapMeasurements.{name}"])
                    for name, label in (
                        ("unitMeasurement", "unit"), ("tolerance", "tolerance"),
                        ("aPhase", "a phase"), ("bPhase", "b phase"), ("cPhase", "c phase"),
                    )
                ],
                titles=["e gap", "egap"],
            ),
            group(
                "contactResistance",
                *[attr(pole, pole, flat=[f"breakerCrFound.{pole}"]) for pole in ("p1", "p2", "p3")],
                const("units", MU_OHMS),
                titles=["contact resistance"],
            ),
            group(
                "insulationResistanceMeasured",
                attr("testVoltage", "test voltage", flat=["contactorInsulation.testVoltage"], default="1000V"),
                *_pole_readings("contactorInsulation"),
                titles=["insulation resistance"],
                correct=POLE_IR,
                corrected_path="insulationResistanceCorrected",
            ),
            _dielectric_block(
                "dielectricWithstandClosed", "dielectricClosed",
                ["p1Ground", "p2Ground", "p3Ground"],
                ["dielectric withstand"],
            ),
            _dielectric_block(
                "vacuumIntegrityOpen", "dielectricOpen",
                ["p1", "p2", "p3"],
                ["vacuum"],
            ),
            _tester("testEquipment.insulationResistanceTester", "megohmmeter", "insulation",
                    model=["megohmmeter"], serial="megohmmeterSerial", ident="megohmmeterAmpId"),
            _tester("testEquipment.microOhmmeter", "low resistance", "ohmmeter",
                    model=["lro", "lowResistanceOhmmeter"], serial="lroSerial", ident="lroAmpId"),
            _tester("testEquipment.hiPotTester", "hipot",
                    model=["hipot"], serial="hipotSerial", ident="hipotAmpId"),
        ],
        attributes=closing(),
        job_paths={"customer_name": "customer", "customer_address": "address", "job_number": "jobNumber"},
        **extra,
    )


def medium_voltage_breaker_mts() -> ReportSpec:
    return _mv_breaker(
        "medium-voltage-circuit-breaker-mts-report",
        "medium_voltage_circuit_breaker_mts_reports",
        "Medium Voltage Circuit Breaker MTS",
        MatchRule(any_of=["mediumvoltagecircuitbreaker", "medium-voltage-circuit-breaker"], all_of=["mts"]),
    )


def medium_voltage_breaker() -> ReportSpec:
    return _mv_breaker(
        "medium-voltage-circuit-breaker-report",
        "medium_voltage_circuit_breaker_reports",
        "Medium Voltage Circuit Breaker",
        MatchRule(any_of=["mediumvoltagecircuitbreaker", "medium-voltage-circuit-breaker"], none_of=["mts"]),
        blob_columns=["report_data", "data"],
    )


LVCB_NAMEPLATE = [
    attr("manufacturer", "manufacturer"),
    attr("catalogNumber", "catalog"),
    attr("serialNumber", "serial"),
    attr("type", "type"),
    attr("frameSize", "frame size"),
    attr("icRating", "ic rating", flat=["icRating", "ic"]),
    attr("tripUnitType", "trip unit"),
    attr("ratingPlug", "rating plug"),
    attr("curveNo", "curve"),
    attr("chargeMotorVoltage", "charge motor"),
    attr("operation", "operation"),
    attr("mounting", "mounting"),
    attr("zoneInterlock", "zone interlock"),
    attr("thermalMemory", "thermal memory"),
]
ELECTRONIC_ONLY = ("tripUnitType", "chargeMotorVoltage", "zoneInterlock")


def _lv_breaker(
    slug: str,
    title: str,
    match: MatchRule,
    *,
    injection: str = "primaryInjection",
    injection_keys: Sequence[str] = ("primaryInjection",),
    settings_keys: Sequence[str] = ("deviceSettings",),
    injection_set: str = "primaryInjectionTestSet",
    thermal_magnetic: bool = False,
    **extra: Any,
) -> ReportSpec:
    """Test blocks are kept exactly as the form exports them, under the form's own names."""
    plate = [a for a in LVCB_NAMEPLATE if not (thermal_magnetic and a.name in ELECTRONIC_ONLY)]
    return ReportSpec(
        slug=slug,
        table="low_voltage_cable_test_3sets",
        title=title,
        match=match,
        temperature=temp("reportInfo.temperature", **AMBIENT),
        groups=[
            job_info(attr("humidity", "humidity"), attr("comments", "comment", flat=["comments"]), user="userName"),
            nameplate("nameplateData", *plate),
            visual_map(),
            group(
                "",
                struct("deviceSettings", "device settings", flat=settings_keys),
                struct("breakerContactResistance", "contact resistance"),
                struct("contactorInsulation", "insulation resistance", flat=["contactorInsulation"]),
                struct(injection, injection.replace("Injection", " injection").lower(), flat=injection_keys),
            ),
            kit("testEquipment.megohmmeter", "megohmmeter", "megger", source=te3("megohmmeter"),
                prefix=("megohmmeter", "serialNumber", "ampId")),
            kit("testEquipment.lowResistanceOhmmeter", "low resistance", "ohmmeter",
                source=te3("lowResistanceOhmmeter")),
            kit(f"testEquipment.{injection_set}", "injection", source=te3("primaryInjectionTestSet")),
        ],
        attributes=[attr("status", "status", default="PASS"), const("reportType", slug)],
        **extra,
    )


def lvcb_electronic_trip_ats_secondary() -> ReportSpec:
    return _lv_breaker(
        "low-voltage-circuit-breaker-electronic-trip-ats-secondary-injection-report",
        "Low Voltage Circuit Breaker Electronic Trip ATS Secondary Injection",
        MatchRule(any_of=[
            "lowvoltagecircuitbreakerelectronictripatssecondary",
            "low-voltage-circuit-breaker-electronic-trip-ats-secondary",
        ]),
        injection="secondaryInjection",
        injection_keys=("secondaryInjection",),
        injection_set="secondaryInjectionTestSet",
    )


def lvcb_electronic_trip_mts() -> ReportSpec:
    return _lv_breaker(
        "low-voltage-circuit-breaker-electronic-trip-mts-report",
        "Low Voltage Circuit Breaker Electronic Trip MTS",
        MatchRule(
            any_of=["lowvoltagecircuitbreakerelectronictrip", "low-voltage-circuit-breaker-electronic-trip"],
            all_of=["mts"],
        ),
    )


def lvcb_electronic_trip() -> ReportSpec:
    return _lv_breaker(
        "low-voltage-circuit-breaker-electronic-trip-ats-report",
        "Low Voltage Circuit Breaker Electronic Trip ATS",
        MatchRule(any_of=["lowvoltagecircuitbreakerelectronictrip", "low-voltage-circuit-breaker-electronic-trip"]),
    )


def lv_circuit_breaker() -> ReportSpec:
    return _lv_breaker(
        "low-voltage-circuit-breaker-ats-report",
        "Low Voltage Circuit Breaker",
        MatchRule(any_of=["lowvoltagecircuitbreaker", "low-voltage-circuit-breaker"]),
        injection_keys=("tmPrimaryInjection", "primaryInjection"),
        settings_keys=("tmDeviceSettings", "deviceSettings"),
        thermal_magnetic=True,
        slug_variants=[
            SlugVariant(pattern="thermal-?magnetic", slug="low-voltage-circuit-breaker-thermal-magnetic-ats-report"),
        ],
    )


# ------------------------------------------------------------------------------ switches

SWITCH_CELLS = ["position", "manufacturer", "catalogNo", "serialNo", "type", "ratedAmperage", "ratedVoltage"]
SWITCH_IR_CELLS = ["p1p2", "p2p3", "p3p1", "p1_frame", "p2_frame", "p3_frame", "p1_line", "p2_line", "p3_line"]
ENCLOSURE_FIELDS = [
    ("manufacturer", "manufacturer", "Manufacturer"),
    ("systemVoltage", "system voltage", "System Voltage (V)"),
    ("catalogNo", "catalog", "Catalog No."),
    ("ratedVoltage", "rated voltage", "Rated Voltage (V)"),
    ("serialNumber", "serial", "Serial Number"),
    ("ratedCurrent", "rated current", "Rated Current (A)"),
    ("series", "series", "Series"),
    ("aicRating", "aic", "AIC Rating (kA)"),
    ("type", "type", "Type"),
    ("phaseConfiguration", "phase", "Phase Configuration"),
]


def _switch_rows(name: str) -> TableSpec:
    return TableSpec(name=name, labels=["switch"], flat_keys=["switchRows"], columns=[col(c) for c in SWITCH_CELLS])


def _fuse_rows(name: str, class_name: str) -> TableSpec:
    return TableSpec(
        name=name,
        labels=["fuse"],
        flat_keys=["fuseRows"],
        columns=[
            col("position"), col("manufacturer"), col("catalogNo"),
            col(class_name, "class", "fuseClass"),
            col("amperage"), col("aic"), col("voltage"),
        ],
    )


def lv_switch_multi_device() -> ReportSpec:
    return ReportSpec(
        slug="low-voltage-switch-multi-device-test",
        table="low_voltage_cable_test_3sets",
        title="Low Voltage Switch Multi-Device Test",
        match=MatchRule(any_of=["lowvoltageswitchmultidevice", "low-voltage-switch-multi-device"]),
        temperature=temp("reportInfo.temperature", correctionFactor="tcf"),
        groups=[
            job_info(attr("humidity", "humidity"), attr("comments", "comment", flat=["comments"]), user="userName"),
            group(
                "visualInspection",
                titles=VISUAL_SECTIONS,
                tables=[
                    TableSpec(
                        name="items",
                        labels=["visual and mechanical"],
                        flat_keys=["vm-matrix"],
                        columns=[col("identifier", "identifier", "id"), col("values", kind="struct", default={})],
                    )
                ],
            ),
            nameplate(
                "enclosure",
                *[attr(name, label, flat=[name, form_label]) for name, label, form_label in ENCLOSURE_FIELDS],
                titles=["enclosure"],
            ),
            group("", titles=["switch data"], tables=[_switch_rows("switches")]),
            group("", titles=["fuse data"], tables=[_fuse_rows("fuses", "fuseClass")]),
            group(
                "irTests",
                attr("testVoltage", "test voltage", flat=["switchIrTables.testVoltage"], default="1000V"),
                attr("units", "unit", flat=["switchIrTables.rows.0.units", "switchIrTables.units"], default=MEGOHMS),
                titles=["insulation resistance"],
                tables=[
                    TableSpec(
                        name="rows",
                        labels=["insulation"],
                        flat_keys=["switchIrTables"],
                        columns=[col("units", default=MEGOHMS), *[col(c) for c in ["position", *SWITCH_IR_CELLS]]],
                        correction=CorrectionSpec(columns=SWITCH_IR_CELLS, into="correctedRows"),
                    )
                ],
            ),
            group(
                "contactResistance",
                titles=["contact resistance"],
                tables=[
                    TableSpec(
                        name="rows",
                        labels=["contact"],
                        flat_keys=["switchContact"],
                        columns=[col("units", default=MICRO_OHMS),
                                 *[col(c) for c in ("position", "switchOnly", "fuseOnly", "switchPlusFuse")]],
                    )
                ],
            ),
            group(
                "equipment",
                attr("megger", "megohmmeter", "megger", flat=["megohmmeter"]),
                attr("meggerSerial", flat=["megohmmeterSerial"]),
                attr("meggerAmpId", flat=["megohmmeterAmpId"]),
                attr("lowRes", "low resistance", flat=["lro", "lowResistanceOhmmeter"]),
                attr("lowResSerial", flat=["lroSerial"]),
                attr("lowResAmpId", flat=["lroAmpId"]),
                titles=EQUIPMENT_SECTIONS,
            ),
        ],
        attributes=[
            attr("status", "status", default="PASS"),
            const("reportType", "low-voltage-switch-multi-device-test"),
        ],
    )


def _pole_map(path: str, source: str, cells: Sequence[Tuple[str, Sequence[str]]], titles: Sequence[str]) -> GroupSpec:
    """Fixed pole keys (``P1-P2``, ``P1``, ...) each read from the first key present."""
    return group(
        path,
        *[attr(name, flat=[f"{source}.{key}" for key in keys]) for name, keys in cells],
        titles=titles,
    )


def lv_switch() -> ReportSpec:
    """Column per block; insulation and contact readings are keyed by pole pair."""
    ir = "switchIrTables.rows.0"
    cr = "switchContactLV"
    return ReportSpec(
        slug="low-voltage-switch-report",
        table="low_voltage_switch_reports",
        title="Low Voltage Switch",
        match=MatchRule(any_of=["lowvoltageswitch", "low-voltage-switch"]),
        temperature=temp("report_info", temperature="fahrenheit"),
        groups=[
            job_info(path="report_info"),
            nameplate("report_info", *[attr(name, label) for name, label, _ in ENCLOSURE_FIELDS]),
            group("", titles=["switch data"], tables=[_switch_rows("switch_data")]),
            group("", titles=["fuse data"], tables=[_fuse_rows("fuse_data", "class")]),
            visual_map("", "visual_inspection"),
            group(
                "insulation_resistance",
                attr("testVoltage", "test voltage", flat=["switchIrTables.testVoltage"], default="1000V"),
                attr("units", "unit", flat=[f"{ir}.units"], default=MEGOHMS),
                titles=["insulation resistance"],
            ),
            _pole_map("insulation_resistance.poleToPole", ir,
                      [("P1-P2", ["p1p2"]), ("P2-P3", ["p2p3"]), ("P3-P1", ["p3p1"])], ["insulation resistance"]),
            _pole_map("insulation_resistance.poleToFrame", ir,
                      [(f"P{i}", [f"p{i}_frame"]) for i in (1, 2, 3)], ["insulation resistance"]),
            _pole_map("insulation_resistance.lineToLoad", ir,
                      [(f"P{i}", [f"p{i}_line_to_load", f"p{i}_line"]) for i in (1, 2, 3)], ["insulation resistance"]),
            group(
                "contact_resistance",
                attr("units", "unit", flat=[f"{cr}.units", f"{cr}.rows.0.units"], default=MICRO_OHMS),
                struct("raw", flat=[cr]),
                titles=["contact resistance"],
            ),
            _pole_map("contact_resistance.poleToPole", cr,
                      [(f"P{a}-P{b}", [f"poleToPole.p{a}p{b}", f"rows.0.p{a}p{b}"]) for a, b in ((1, 2), (2, 3), (3, 1))],
                      ["contact resistance"]),
            _pole_map("contact_resistance.poleToFrame", cr,
                      [(f"P{i}", [f"poleToFrame.p{i}", f"rows.0.p{i}", f"rows.0.fu_p{i}"]) for i in (1, 2, 3)],
                      ["contact resistance"]),
            _pole_map("contact_resistance.lineToLoad", cr,
                      [(f"P{i}", [f"lineToLoad.p{i}", f"rows.0.l{i}", f"rows.0.sw_p{i}"]) for i in (1, 2, 3)],
                      ["contact resistance"]),
            kit("test_equipment.megohmmeter", "megohmmeter", prefix="megohmmeter",
                names=("model", "serialNumber", "ampId")),
            kit("test_equipment.lowResistance", "low resistance", prefix="lro",
                names=("model", "serialNumber", "ampId")),
        ],
        attributes=closing(),
        columns=identity(
            "report_info", "switch_data", "fuse_data", "visual_inspection", "insulation_resistance",
            "contact_resistance", "test_equipment", "comments", "status",
        ),
        job_paths={
            "customer_name": "report_info.customer",
            "customer_address": "report_info.address",
            "job_number": "report_info.jobNumber",
        },
    )


ATS_IR_ROWS = {
    "poleToPoleNormalClosed": ["pole to pole normal closed"],
    "poleToPoleEmergencyClosed": ["pole to pole emergency closed"],
    "poleToNeutralNormalClosed": ["pole to neutral normal closed"],
    "poleToNeutralEmergencyClosed": ["pole to neutral emergency closed"],
    "poleToGroundNormalClosed": ["pole to ground normal closed"],
    "poleToGroundEmergencyClosed": ["pole to ground emergency closed"],
    "lineToLoadNormalOpen": ["line to load normal open"],
    "lineToLoadEmergencyOpen": ["line to load emergency open"],
}
ATS_IR_COLUMNS = [
    cell
    for pole in ("p1", "p2", "p3", "neutral")
    for cell in (
        col(f"{pole}Reading", pole, f"{pole}Reading"),
        col(f"{pole}Corrected", f"{pole}c", f"{pole}Corrected", corrects=f"{pole}Reading"),
    )
] + [col("units", default=MEGOHMS)]


ATS_NAMEPLATE = [
    ("nameplateManufacturer", ("manufacturer",), "manufacturer"),
    ("nameplateModelType", ("model", "type"), "modelType"),
    ("nameplateCatalogNo", ("catalog",), "catalogNo"),
    ("nameplateSerialNumber", ("serial",), "serialNumber"),
    ("nameplateSystemVoltage", ("system voltage",), "systemVoltage"),
    ("nameplateRatedVoltage", ("rated voltage",), "ratedVoltage"),
    ("nameplateRatedCurrent", ("rated current",), "ratedCurrent"),
    ("nameplateSCCR", ("sccr",), "sccr"),
]
ATS_INFO = [
    "customerName", "customerLocation", "userName", "date", "identifier", "jobNumber", "technicians",
    "temperature", "substation", "eqptLocation", "status", "insulationTestVoltage",
    *[name for name, _, _ in ATS_NAMEPLATE], "testEquipmentUsed",
]


def automatic_transfer_switch() -> ReportSpec:
    """
    Flat record. Without a ``data`` column the job, nameplate and equipment values are
    gathered into ``report_info`` and each test block gets its own column.
    """
    return ReportSpec(
        slug="automatic-transfer-switch-ats-report",
        table="automatic_transfer_switch_ats_reports",
        title="Automatic Transfer Switch ATS",
        match=MatchRule(any_of=["automatictransferswitch", "automatic-transfer-switch"]),
        blob_columns=["data"],
        temperature=temp(),
        groups=[
            job_info(
                const("customerLocation", ""),
                path="",
                omit=("address",),
                customer="customerName",
                user="userName",
            ),
            nameplate("", *[attr(name, *labels, flat=[key, name]) for name, labels, key in ATS_NAMEPLATE]),
            group(
                "",
                attr("insulationTestVoltage", "test voltage", flat=["atsInsulation.testVoltage"], default="1000V"),
                titles=["insulation resistance"],
                tables=[
                    TableSpec(
                        name="insulationResistance",
                        labels=["insulation resistance"],
                        flat_keys=["atsInsulation"],
                        layout="keyed",
                        keyed_rows=ATS_IR_ROWS,
                        columns=ATS_IR_COLUMNS,
                    )
                ],
            ),
            visual_rows("", "visualInspectionItems", id_key="netaSection"),
            group(
                "",
                titles=["contact", "pole resistance"],
                tables=[
                    TableSpec(
                        name="contactResistance",
                        labels=["contact", "pole resistance"],
                        flat_keys=["atsContactResistance"],
                        layout="keyed",
                        keyed_rows={"normal": ["normal"], "emergency": ["emergency"]},
                        key_column="state",
                        columns=[col("p1"), col("p2"), col("p3"), col("neutral"), col("units", default=MICRO_OHMS)],
                    )
                ],
            ),
            kit("testEquipmentUsed.megohmmeter", "megohmmeter", prefix="megohmmeter"),
            kit("testEquipmentUsed.lowResistanceOhmmeter", "low resistance ohmmeter", prefix="lro"),
        ],
        attributes=closing(),
        columns={
            "report_info": ["", *ATS_INFO],
            "visual_inspection_items": ["visualInspectionItems"],
            "insulation_resistance": ["insulationResistance"],
            "contact_resistance": ["contactResistance"],
            "comments": ["comments"],
        },
        job_paths={"customer_name": "customerName", "job_number": "jobNumber"},
    )


# ------------------------------------------------------------------------------- busway

BUSWAY_READINGS = {
    "aToB": "A-B", "bToC": "B-C", "cToA": "C-A",
    "aToN": "A-N", "bToN": "B-N", "cToN": "C-N",
    "aToG": "A-G", "bToG": "B-G", "cToG": "C-G", "nToG": "N-G",
}


def metal_enclosed_busway() -> ReportSpec:
    """Always partitioned; readings arrive keyed by phase pair (``A-B``) and are renamed."""
    return ReportSpec(
        slug="metal-enclosed-busway",
        table="metal_enclosed_busway_reports",
        title="Metal Enclosed Busway",
        match=MatchRule(any_of=["metalenclosedbusway", "metal-enclosed-busway", "metal_enclosed_busway",
                                "metal enclosed busway"]),
        blob_columns=[],
        temperature=temp("report_info", "insulation_resistance", temperature="fahrenheit"),
        groups=[
            job_info(attr("humidity", "humidity"), path="report_info"),
            nameplate(
                "report_info",
                attr("manufacturer", "manufacturer"),
                attr("catalogNumber", "catalog"),
                attr("serialNumber", "serial"),
                attr("fedFrom", "fed from"),
                attr("conductorMaterial", "conductor"),
                attr("ratedVoltage", "rated voltage"),
                attr("operatingVoltage", "operating voltage"),
                attr("ampacity", "ampacity"),
            ),
            visual_rows("", "visual_mechanical_inspection", mirrors=["visual_mechanical"]),
            group(
                "insulation_resistance",
                attr("testVoltage", "test voltage", flat=["buswayIr.testVoltage"], default="500V"),
                attr("units", "unit", flat=["buswayIr.units"], default=MEGOHMS),
                titles=["insulation resistance"],
            ),
            group(
                "insulation_resistance.readings",
                *[attr(name, flat=[f"buswayIr.readings.{pair}"]) for name, pair in BUSWAY_READINGS.items()],
                titles=["insulation resistance"],
                correct=list(BUSWAY_READINGS),
                corrected_path="insulation_resistance.correctedReadings",
            ),
            group(
                "bus_resistance",
                attr("p1", "p1", flat=["busResistance.p1"]),
                attr("p2", "p2", flat=["busResistance.p2"]),
                attr("p3", "p3", flat=["busResistance.p3"]),
                attr("neutral", "neutral", flat=["busResistance.neutral"]),
                const("units", MICRO_OHMS),
                titles=["bus resistance", "contact"],
            ),
            kit("test_equipment.megohmmeter", "megohmmeter", source=te3("megohmmeter")),
            kit("test_equipment.lowResistanceOhmmeter", "low resistance", source=te3("lowResistanceOhmmeter")),
            kit("test_equipment.primaryInjectionTestSet", "primary injection", source=te3("primaryInjectionTestSet")),
        ],
        attributes=closing(),
        columns=identity(
            "report_info", "visual_mechanical", "insulation_resistance", "visual_mechanical_inspection",
            "bus_resistance", "test_equipment", "comments", "status",
        ),
        job_paths={
            "customer_name": "report_info.customer",
            "customer_address": "report_info.address",
            "job_number": "report_info.jobNumber",
        },
    )


# ---------------------------------------------------------------------------------- oil

def oil_inspection() -> ReportSpec:
    return _flat_report(
        "oil-inspection",
        "oil_inspection_reports",
        "Oil Inspection",
        MatchRule(any_of=["oilinspection", "oil-inspection"]),
        attr("oilType", "oil type"),
        attr("oilVolume", "oil volume", "volume"),
    )


# ------------------------------------------------------------------- medium voltage switch oil

MVSO_WAYS = {"s1s2": "S1-S2", "s1t1": "S1-T1", "s1t2": "S1-T2", "s1t3": "S1-T3"}


def _withstand_way(suffix: str, way: str) -> GroupSpec:
    """One dielectric withstand way, picked out of the ``mvWithstand`` rows by its ``way`` cell."""
    row = f"mvWithstand.rows[way={way}]"
    return group(
        f"dielectric_{suffix}",
        attr("testVoltage", "test voltage", flat=["mvWithstand.testVoltage"]),
        attr("units", flat=[f"{row}.units"], default=MILLIAMPS),
        attr("ag", flat=[f"{row}.ag"]),
        attr("bg", flat=[f"{row}.bg"]),
        attr("cg", flat=[f"{row}.cg"]),
        titles=["dielectric", "withstand"],
    )


def medium_voltage_switch_oil() -> ReportSpec:
    return ReportSpec(
        slug="medium-voltage-switch-oil-report",
        table="medium_voltage_switch_oil_reports",
        title="Medium Voltage Switch Oil",
        match=MatchRule(any_of=["mediumvoltageswitchoil", "medium-voltage-switch-oil"]),
        blob_columns=[],
        temperature=temp("report_info", temperature="fahrenheit"),
        groups=[
            job_info(attr("humidity", "humidity"), path="report_info"),
            nameplate(
                "report_info",
                attr("nameplate_manufacturer", "manufacturer", flat=["manufacturer"]),
                attr("nameplate_systemVoltage", "system voltage", flat=["systemVoltage"]),
                attr("nameplate_catalogNo", "catalog", flat=["catalogNumber", "catalogNo"]),
                attr("nameplate_ratedVoltage", "rated voltage", flat=["ratedVoltage"]),
                attr("nameplate_serialNumber", "serial", flat=["serialNumber"]),
                attr("nameplate_ratedCurrent", "rated current", flat=["ratedCurrent"]),
                attr("nameplate_dateOfMfg", "date of mfg", "manufactur", flat=["dateOfMfg"]),
                attr("nameplate_aicRating", "aic", flat=["aicRating"]),
                attr("nameplate_type", "type", flat=["type"]),
                attr("nameplate_impulseLevelBIL", "impulse", "bil", flat=["impulseLevelBIL"]),
            ),
            group(
                "report_info.vfiData",
                attr("manufacturer", "manufacturer", flat=["vfiManufacturer"]),
                attr("ratedVoltage", "rated voltage", flat=["vfiRatedVoltage"]),
                attr("catalogNo", "catalog", flat=["vfiCatalogNo"]),
                attr("ratedCurrent", "rated current", flat=["vfiRatedCurrent"]),
                attr("type", "type", flat=["vfiType"]),
                attr("aicRating", "aic", flat=["vfiAicRating"]),
                titles=["vfi data"],
            ),
            group(
                "insulation_resistance_measured",
                attr("testVoltage", "test voltage", flat=["mvSwitchIr.testVoltage"], default="5000V"),
                titles=["insulation resistance"],
                tables=[
                    TableSpec(
                        name="rows",
                        labels=["insulation"],
                        flat_keys=["mvSwitchIr"],
                        columns=[col("way"), col("units", default=MEGOHMS), col("ag"), col("bg"), col("cg")],
                    )
                ],
            ),
            group(
                "contact_resistance",
                titles=["contact resistance"],
                tables=[
                    TableSpec(
                        name="rows",
                        labels=["contact"],
                        flat_keys=["mvSwitchCr"],
                        columns=[
                            col("way"), col("units", default=MICRO_OHMS),
                            *[col(c) for c in ("aPhase", "bPhase", "cPhase", "aGround", "bGround", "cGround")],
                        ],
                    )
                ],
            ),
            *[_withstand_way(suffix, way) for suffix, way in MVSO_WAYS.items()],
            group(
                "",
                titles=["vfi", "vacuum"],
                tables=[
                    TableSpec(
                        name="vfi_test_rows",
                        labels=["vfi", "vacuum"],
                        flat_keys=["dielectricOpen"],
                        columns=[
                            *[col(c) for c in ("vfi", "serialNumber", "asFound", "asLeft", "a", "b", "c")],
                            col("units", default=MILLIAMPS),
                        ],
                    )
                ],
            ),
            kit("test_equipment.megohmmeter", "megohmmeter", source=te3("megohmmeter")),
            kit("test_equipment.lowResistanceOhmmeter", "low resistance", source=te3("lowResistanceOhmmeter")),
            kit("test_equipment.primaryInjectionTestSet", "primary injection", source=te3("primaryInjectionTestSet")),
        ],
        attributes=closing(),
        columns=identity(
            "report_info", "insulation_resistance_measured", "contact_resistance",
            *[f"dielectric_{suffix}" for suffix in MVSO_WAYS],
            "vfi_test_rows", "test_equipment", "comments", "status",
        ),
        job_paths={
            "customer_name": "report_info.customer",
            "customer_address": "report_info.address",
            "job_number": "report_info.jobNumber",
        },
    )


# -------------------------------------------------------------------- medium voltage motor starter

def _mq_readings(name: str, flat: Sequence[str], *, test: Sequence[str], cells: Sequence[Sequence[str]],
                 struct_rows: Sequence[str] = ()) -> TableSpec:
    """``{test, state, p1_mq, p2_mq, p3_mq}`` rows; ``cells`` are the source keys per phase."""
    return TableSpec(
        name=name,
        labels=["insulation resistance"],
        flat_keys=list(flat),
        columns=[
            col("test", *test),
            col("state"),
            *[col(f"p{i}_mq", f"p{i}_mq", *keys) for i, keys in enumerate(cells, start=1)],
        ],
        struct_rows=list(struct_rows),
        row_defaults=[{"test": t} for t in ("Pole to Pole", "Pole to Frame", "Line to Load")] if struct_rows else [],
    )


def _phase_trio(path: str, source: str, *, units: str, titles: Sequence[str]) -> GroupSpec:
    return group(
        path,
        attr("aPhase", flat=[f"{source}.aPhase", f"{source}.p1"]),
        attr("bPhase", flat=[f"{source}.bPhase", f"{source}.p2"]),
        attr("cPhase", flat=[f"{source}.cPhase", f"{source}.p3"]),
        attr("units", flat=[f"{source}.units"], default=units),
        titles=titles,
    )


def _cr_rows(name: str, label: str, flat: Sequence[str]) -> TableSpec:
    return TableSpec(
        name=name,
        labels=[label],
        flat_keys=list(flat),
        columns=[col("test"), col("p1"), col("p2"), col("p3"), col("units", default=MICRO_OHMS)],
    )


def medium_voltage_motor_starter() -> ReportSpec:
    """
    Blob report grouped by assembly: the starter itself, its contactor and its starting
    reactor, each with a nameplate and electrical test block.
    """
    starter_tests = ["electrical tests"]
    contactor_tests = ["electrical test contactor"]
    reactor_tests = ["electrical test reactor"]
    return ReportSpec(
        slug="23-medium-voltage-motor-starter-mts-report",
        table="medium_voltage_motor_starter_mts_reports",
        title="Medium Voltage Motor Starter MTS",
        match=MatchRule(any_of=["mediumvoltagemotorstarter", "medium-voltage-motor-starter"]),
        aliases=["MediumVoltageMotorStarterMTSReport", "23-MediumVoltageMotorStarterMTSReport"],
        temperature=temp(),
        groups=[
            job_info(path="", customer="customerName", address="customerAddress", user="userName"),
            nameplate(
                "nameplateData",
                attr("manufacturer", "manufacturer"),
                attr("catalogNumber", "catalog"),
                attr("serialNumber", "serial"),
                attr("type", "type"),
                attr("manufacturingDate", "manufacturing"),
                attr("icRating", "i.c. rating", "ic rating"),
                attr("ratedVoltageKV", "rated voltage"),
                attr("operatingVoltageKV", "operating voltage"),
                attr("ampacity", "ampacity"),
                attr("impulseRatingBIL", "impulse"),
                titles=["nameplate"],
            ),
            visual_rows("visualMechanicalInspection", "items", id_key="netaSection"),
            group(
                "visualMechanicalInspection.eGap",
                *[attr(name, flat=[f"eGap.{name}"]) for name in ("unitMeasurement", "tolerance", "aPhase", "bPhase",
                                                                  "cPhase")],
                titles=["nameplate", "e-gap"],
            ),
            group(
                "fuseData",
                attr("manufacturer", "manufacturer", flat=["fuseManufacturer"]),
                attr("catalogNumber", "catalog", flat=["fuseCatalogNumber"]),
                attr("class", "class", flat=["fuseClass"]),
                attr("ratedVoltageKV", "rated voltage", flat=["fuseRatedVoltageKV"]),
                attr("ampacity", "ampacity", flat=["fuseAmpacityA"]),
                attr("icRatingKA", "i.c. rating", "ic rating", flat=["fuseIcRatingKA"]),
                titles=["fuse data"],
            ),
            group(
                "electricalTests",
                titles=starter_tests,
                tables=[
                    _cr_rows("contactResistanceAsFound", "as found",
                             ["crAsFound", "switchCrFound", "contactResistanceAsFound"]),
                    _cr_rows("contactResistanceAsLeft", "as left",
                             ["crAsLeft", "switchCrLeft", "contactResistanceAsLeft"]),
                ],
            ),
            group(
                "electricalTests.insulationResistance",
                attr("testVoltage", "test voltage", flat=["motorStarterIr.testVoltage", "mvInsulation.testVoltage"],
                     default="1000V"),
                titles=starter_tests,
                tables=[
                    _mq_readings("readings", ["mvInsulation", "motorStarterIr"], test=("test", "id"),
                                 cells=(("results", "p1"), ("p2",), ("p3",)),
                                 struct_rows=("poleToPole", "poleToFrame", "lineToLoad")),
                ],
            ),
            group(
                "electricalTests.temperatureCorrected",
                attr("testVoltage", flat=["mvTempCorrected.testVoltage", "motorStarterIr.testVoltage"],
                     default="1000V"),
                tables=[_mq_readings("readings", ["mvTempCorrected"], test=("test", "id"),
                                 cells=(("corrected",), (), ()))],
            ),
            group(
                "contactorData",
                attr("manufacturer", "manufacturer", flat=["contactorManufacturer"]),
                attr("catalogNumber", "catalog", flat=["contactorCatalogNumber"]),
                attr("serialNumber", "serial", flat=["contactorSerialNumber"]),
                attr("type", "type", flat=["contactorType"]),
                attr("manufacturingDate", "manufacturing", flat=["contactorManufacturingDate"]),
                attr("icRatingKA", "i.c. rating", "ic rating", flat=["contactorIcRatingKA"]),
                attr("ratedVoltageKV", "rated voltage", flat=["contactorRatedVoltageKV"]),
                attr("operatingVoltageKV", "operating voltage", flat=["contactorOperatingVoltageKV"]),
                attr("ampacity", "ampacity", flat=["contactorAmpacity"]),
                attr("controlVoltageV", "control voltage", flat=["contactorControlVoltageV"]),
                titles=["contactor data"],
            ),
            group(
                "electricalTestContactor.insulationResistance",
                attr("testVoltage", "test voltage", flat=["contactorInsulation.testVoltage"], default="1000V"),
                titles=contactor_tests,
                tables=[_mq_readings("readings", ["contactorInsulation"], test=("id", "test"),
                                 cells=(("p1",), ("p2",), ("p3",)))],
            ),
            group(
                "electricalTestContactor.temperatureCorrected",
                attr("testVoltage", flat=["contactorInsulation.testVoltage"], default="1000V"),
                tables=[_mq_readings("readings", ["contactorInsulation"], test=("id", "test"),
                                 cells=(("p1c",), ("p2c",), ("p3c",)))],
            ),
            group(
                "electricalTestContactor.vacuumBottleIntegrity",
                attr("testVoltage", flat=["vacuumBottleIntegrity.testVoltage"]),
                attr("testDuration", flat=["vacuumBottleIntegrity.testDuration"], default="1 Min."),
                attr("p1", flat=["vacuumBottleIntegrity.p1"]),
                attr("p2", flat=["vacuumBottleIntegrity.p2"]),
                attr("p3", flat=["vacuumBottleIntegrity.p3"]),
                attr("units", flat=["vacuumBottleIntegrity.units"]),
                titles=contactor_tests,
            ),
            group(
                "startingReactorData",
                attr("manufacturer", "manufacturer", flat=["srManufacturer"]),
                attr("catalogNumber", "catalog", flat=["srCatalogNumber"]),
                attr("serialNumber", "serial", flat=["srSerialNumber"]),
                attr("ratedCurrentA", "rated current", flat=["srRatedCurrentA"]),
                attr("ratedVoltageKV", "rated voltage", flat=["srRatedVoltageKV"]),
                attr("operatingVoltageKV", "operating voltage", flat=["srOperatingVoltageKV"]),
                titles=["starting reactor"],
            ),
            group(
                "electricalTestReactor.insulationResistance",
                attr("testVoltage", "test voltage", flat=["reactorInsulation.testVoltage"], default="1000V"),
                titles=reactor_tests,
            ),
            _phase_trio("electricalTestReactor.insulationResistance.windingToGround",
                        "reactorInsulation.windingToGround", units=MEGOHMS, titles=reactor_tests),
            group(
                "electricalTestReactor.temperatureCorrected",
                attr("testVoltage", flat=["reactorInsulation.testVoltage"], default="1000V"),
            ),
            group(
                "electricalTestReactor.temperatureCorrected.windingToGround",
                attr("aPhase", flat=["reactorInsulation.corrected.aPhase"]),
                attr("bPhase", flat=["reactorInsulation.corrected.bPhase"]),
                attr("cPhase", flat=["reactorInsulation.corrected.cPhase"]),
                attr("units", flat=["reactorInsulation.windingToGround.units"], default=MEGOHMS),
            ),
            _phase_trio("electricalTestReactor.contactResistanceAsFound", "reactorCrFound.rows.0",
                        units=MICRO_OHMS, titles=reactor_tests),
            _phase_trio("electricalTestReactor.contactResistanceAsLeft", "reactorCrLeft.rows.0",
                        units=MICRO_OHMS, titles=reactor_tests),
            kit("testEquipmentUsed.megohmmeter", "megohmmeter", prefix="megohmmeter"),
            kit("testEquipmentUsed.lowResistanceOhmmeter", "low resistance ohmmeter", prefix="lro"),
            kit("testEquipmentUsed.hipot", "hipot", prefix="hipot"),
        ],
        attributes=closing(),
        job_paths={
            "customer_name": "customerName",
            "customer_address": "customerAddress",
            "job_number": "jobNumber",
        },
    )


def default_specs() -> List[ReportSpec]:
    """Every built-in spec, in dispatch order."""
    return [
        switchgear_panelboard_mts(),
        switchgear(),
        lv_panelboard_small_breaker(),
        panelboard(),
        large_dry_type_mts(),
        large_dry_type_ats(),
        two_small_dry_type_ats(),
        two_small_dry_type_mts(),
        two_small_dry_type(),
        dry_type(),
        liquid_xfmr_visual_mts(),
        liquid_filled(),
        current_transformer_mts(),
        current_transformer_ats(),
        voltage_potential_transformer(),
        medium_voltage_vlf_mts(),
        tan_delta_chart(),
        tan_delta_test_mts(),
        medium_voltage_vlf(),
        medium_voltage_cable_vlf(),
        lv_cable_20sets(),
        lv_cable_3sets(),
        medium_voltage_breaker_mts(),
        medium_voltage_breaker(),
        lvcb_electronic_trip_ats_secondary(),
        lvcb_electronic_trip_mts(),
        lvcb_electronic_trip(),
        lv_circuit_breaker(),
        lv_switch_multi_device(),
        lv_switch(),
        automatic_transfer_switch(),
        metal_enclosed_busway(),
        oil_inspection(),
        medium_voltage_switch_oil(),
        medium_voltage_motor_starter(),
        lv_cable_12sets(),
    ]
