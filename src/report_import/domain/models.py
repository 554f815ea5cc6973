from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


@dataclass(frozen=True)
class ScalarValue:
    value: Any


@dataclass(frozen=True)
class TableValue:
    rows: list[dict[str, Any]] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StructValue:
    items: dict[str, Any] = field(default_factory=dict)


FieldValue = Union[ScalarValue, TableValue, StructValue]


def classify_value(raw: Any, declared_type: str | None = None) -> FieldValue:
    """
    Tag a raw field value so extraction can dispatch on its shape.
    Objects with a ``rows`` list are tables (other keys become shared metadata),
    lists of objects are tables, any other object is a struct, the rest are scalars.
    """
    if isinstance(raw, dict):
        rows = raw.get("rows")
        if isinstance(rows, list):
            return TableValue(
                rows=[r for r in rows if isinstance(r, dict)],
                meta={k: v for k, v in raw.items() if k != "rows"},
            )
        return StructValue(items=dict(raw))
    if isinstance(raw, list) and (declared_type == "table" or (raw and all(isinstance(r, dict) for r in raw))):
        return TableValue(rows=[r for r in raw if isinstance(r, dict)])
    if declared_type == "table" and raw is None:
        return TableValue()
    return ScalarValue(value=raw)


class ReportField(BaseModel):
    model_config = ConfigDict(extra="ignore")
    label: str = ""
    type: str = "text"
    value: Any = None

    @field_validator("label", "type", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @property
    def field_value(self) -> FieldValue:
        return classify_value(self.value, self.type.lower())


class Section(BaseModel):
    model_config = ConfigDict(extra="ignore")
    title: str = ""
    fields: list[ReportField] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("fields", mode="before")
    @classmethod
    def _only_objects(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]


class FlatData(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    fields: dict[str, Any] = Field(default_factory=dict)
    report_type: Optional[str] = Field(default=None, alias="reportType")

    @field_validator("fields", mode="before")
    @classmethod
    def _fields_mapping(cls, value: Any) -> dict:
        return value if isinstance(value, dict) else {}

    @field_validator("report_type", mode="before")
    @classmethod
    def _type_text(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class ReportPayload(BaseModel):
    """
    One exported report. Either ``sections`` (titled groups of labeled fields) or
    ``data.fields`` (flat machine keys) carries the content; often both do.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)
    report_type: str = Field(default="", alias="reportType")
    sections: list[Section] = Field(default_factory=list)
    data: Optional[FlatData] = None

    @field_validator("report_type", mode="before")
    @classmethod
    def _type_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("sections", mode="before")
    @classmethod
    def _sections_list(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @field_validator("data", mode="before")
    @classmethod
    def _data_object(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None

    @classmethod
    def from_raw(cls, raw: Any) -> "ReportPayload":
        if isinstance(raw, ReportPayload):
            return raw
        if not isinstance(raw, dict):
            return cls()
        return cls.model_validate(raw)

    @property
    def type_string(self) -> str:
        if self.report_type:
            return self.report_type
        if self.data and self.data.report_type:
            return self.data.report_type
        return ""

    @property
    def flat_fields(self) -> dict[str, Any]:
        """``data.fields`` over any other keys stored directly under ``data``."""
        if not self.data:
            return {}
        extras = self.data.model_extra or {}
        if not extras:
            return self.data.fields
        return {**extras, **self.data.fields}


class TargetSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    columns: list[str] = Field(default_factory=list)
    jsonb_columns: list[str] = Field(default_factory=list, alias="jsonbColumns")

    def has(self, column: str) -> bool:
        return column in self.columns

    def is_json(self, column: str) -> bool:
        return column in self.jsonb_columns


class TemperatureReading(BaseModel):
    fahrenheit: int | float
    celsius: int
    tcf: float
    humidity: int | float


class JobContext(BaseModel):
    job_number: str = ""
    customer_name: str = ""
    customer_address: str = ""


class ImportResult(BaseModel):
    success: bool
    report_id: Optional[str] = None
    report_type: Optional[str] = None
    table: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)


class BatchItem(BaseModel):
    source: str
    result: ImportResult


class BatchImportReport(BaseModel):
    successful: list[BatchItem] = Field(default_factory=list)
    failed: list[BatchItem] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.successful) + len(self.failed)
