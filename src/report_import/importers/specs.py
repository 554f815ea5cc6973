"""
Declarative mapping specs. One ``ReportSpec`` describes how a single report type is
recognized, where each logical value is found in either payload shape, what the
default skeleton looks like, and how the canonical record is split into named columns.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from report_import.exceptions import ConfigError

logger = logging.getLogger(__name__)

ValueKind = Literal["text", "number", "int", "bool", "struct", "list"]


class MatchRule(BaseModel):
    """
    Case-insensitive substring rule over the payload's report type string.
    ``any_of`` needs one hit, ``all_of`` needs every hit, ``none_of`` vetoes.
    """

    model_config = ConfigDict(extra="ignore")
    any_of: List[str] = Field(default_factory=list)
    all_of: List[str] = Field(default_factory=list)
    none_of: List[str] = Field(default_factory=list)

    def matches(self, type_string: str) -> bool:
        text = (type_string or "").lower()
        if not text or not (self.any_of or self.all_of):
            return False
        if self.any_of and not any(s.lower() in text for s in self.any_of):
            return False
        if not all(s.lower() in text for s in self.all_of):
            return False
        return not any(s.lower() in text for s in self.none_of)


class SlugVariant(BaseModel):
    pattern: str
    slug: str

    def matches(self, type_string: str) -> bool:
        return re.search(self.pattern, type_string or "", flags=re.IGNORECASE) is not None


class AttributeSpec(BaseModel):
    """
    One value of a group. ``corrects`` names a sibling reading; the value becomes its
    temperature-corrected text whenever that reading is numeric.
    """

    model_config = ConfigDict(extra="ignore")
    name: str
    labels: List[str] = Field(default_factory=list)
    flat_keys: List[str] = Field(default_factory=list)
    kind: ValueKind = "text"
    default: Any = ""
    corrects: Optional[str] = None


class ColumnSpec(BaseModel):
    """A row cell. A dotted ``name`` nests the cell, e.g. ``readings.aToGround``."""

    model_config = ConfigDict(extra="ignore")
    name: str
    keys: List[str] = Field(default_factory=list)
    kind: ValueKind = "text"
    default: Any = ""
    corrects: Optional[str] = None

    def source_keys(self) -> List[str]:
        return self.keys or [self.name]


class CorrectionSpec(BaseModel):
    """
    Temperature-correct the listed cells. With ``into`` the corrected copy becomes a
    sibling table of that name. Otherwise each cell gets an inline twin, written to
    ``<target>.<leaf>`` when ``target`` is set and to ``<name><suffix>`` when it is not.
    """

    columns: List[str]
    into: Optional[str] = None
    suffix: str = "Corrected"
    target: Optional[str] = None


class TableSpec(BaseModel):
    """
    A list (or keyed object) of rows. A dotted ``name`` nests the table in its group.
    An object value becomes one row with ``struct_row``, or one row per named member,
    in order, with ``struct_rows``.
    ``mirrors`` are extra paths in the group that receive a copy of the built table.
    """

    model_config = ConfigDict(extra="ignore")
    name: str
    labels: List[str] = Field(default_factory=list)
    flat_keys: List[str] = Field(default_factory=list)
    layout: Literal["rows", "keyed", "map"] = "rows"
    columns: List[ColumnSpec] = Field(default_factory=list)
    row_count: Optional[int] = None
    row_ids: List[str] = Field(default_factory=list)
    row_defaults: List[Dict[str, Any]] = Field(default_factory=list)
    id_column: str = "id"
    keyed_rows: Dict[str, List[str]] = Field(default_factory=dict)
    key_column: str = "id"
    value_column: str = "result"
    value_default: Any = ""
    correction: Optional[CorrectionSpec] = None
    struct_row: bool = False
    struct_rows: List[str] = Field(default_factory=list)
    shared_columns: List[str] = Field(default_factory=list)
    mirrors: List[str] = Field(default_factory=list)


class GroupSpec(BaseModel):
    """
    A nested container of the canonical record. ``section_titles`` limits which
    sections feed it; an empty list accepts scalar fields from any section.
    ``mirrors`` are record paths that receive a copy of the finished container.
    """

    model_config = ConfigDict(extra="ignore")
    path: str
    section_titles: List[str] = Field(default_factory=list)
    attributes: List[AttributeSpec] = Field(default_factory=list)
    tables: List[TableSpec] = Field(default_factory=list)
    correct: List[str] = Field(default_factory=list)
    corrected_path: Optional[str] = None
    mirrors: List[str] = Field(default_factory=list)


class TemperatureSpec(BaseModel):
    """
    Where the temperature reading lands. ``mirrors`` are extra copies; ``aliases`` add keys
    holding an existing reading value under another name (``correctionFactor`` -> ``tcf``).
    """

    path: str = "temperature"
    mirrors: List[str] = Field(default_factory=list)
    aliases: Dict[str, str] = Field(default_factory=dict)
    fahrenheit: AttributeSpec = Field(
        default_factory=lambda: AttributeSpec(
            name="fahrenheit",
            labels=["temperature f", "temp f", "temperature", "temp"],
            flat_keys=["temperatureF", "temperature.fahrenheit", "temperature", "ambientTemperature"],
            kind="number",
            default=None,
        )
    )
    celsius: AttributeSpec = Field(
        default_factory=lambda: AttributeSpec(
            name="celsius",
            labels=["celsius", "temperature c", "temp c"],
            flat_keys=["temperatureC", "temperature.celsius", "celsius"],
            kind="number",
            default=None,
        )
    )
    humidity: AttributeSpec = Field(
        default_factory=lambda: AttributeSpec(
            name="humidity",
            labels=["humidity"],
            flat_keys=["humidity", "temperature.humidity"],
            kind="number",
            default=None,
        )
    )


class ReportSpec(BaseModel):
    model_config = ConfigDict(extra="ignore")
    slug: str
    table: str
    title: str = ""
    match: MatchRule = Field(default_factory=MatchRule)
    aliases: List[str] = Field(default_factory=list)
    slug_variants: List[SlugVariant] = Field(default_factory=list)
    required_columns: List[str] = Field(default_factory=lambda: ["job_id", "user_id"])
    blob_columns: List[str] = Field(default_factory=lambda: ["data", "report_data"])
    temperature: Optional[TemperatureSpec] = Field(default_factory=TemperatureSpec)
    groups: List[GroupSpec] = Field(default_factory=list)
    attributes: List[AttributeSpec] = Field(default_factory=list)
    columns: Dict[str, List[str]] = Field(default_factory=dict)
    job_paths: Dict[str, str] = Field(
        default_factory=lambda: {
            "customer_name": "reportInfo.customer",
            "customer_address": "reportInfo.address",
            "job_number": "reportInfo.jobNumber",
        }
    )

    def route_slug(self, type_string: str) -> str:
        for variant in self.slug_variants:
            if variant.matches(type_string):
                return variant.slug
        return self.slug


def load_importer_specs(path: Optional[Path] = None, defaults: Optional[List[ReportSpec]] = None) -> List[ReportSpec]:
    """
    Built-in specs merged with YAML overrides keyed by slug. Overrides replace
    top-level keys of a built-in spec; unknown slugs are appended, or inserted ahead
    of the slug named by their ``before`` key.
    """
    if defaults is None:
        from report_import.importers.catalog import default_specs

        defaults = default_specs()
    specs = list(defaults)
    file_path = path or Path("config/importers.yaml")
    if not file_path.exists():
        return specs

    try:
        with open(file_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid importer config {file_path}: {exc}") from exc

    overrides = data.get("importers") or {}
    if not isinstance(overrides, dict):
        raise ConfigError(f"'importers' in {file_path} must be a mapping of slug -> spec")

    index = {spec.slug: i for i, spec in enumerate(specs)}
    for slug, override in overrides.items():
        override = dict(override or {})
        before = override.pop("before", None)
        try:
            if slug in index:
                merged = specs[index[slug]].model_dump()
                merged.update(override)
                specs[index[slug]] = ReportSpec.model_validate(merged)
                continue
            spec = ReportSpec.model_validate({"slug": slug, **override})
        except ValidationError as exc:
            raise ConfigError(f"Invalid importer spec '{slug}': {exc}") from exc

        position = index.get(before, len(specs)) if before else len(specs)
        specs.insert(position, spec)
        index = {s.slug: i for i, s in enumerate(specs)}
        logger.info("Registered importer from config", extra={"report_type": slug, "table": spec.table})
    return specs
