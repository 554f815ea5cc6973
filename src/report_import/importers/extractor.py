from __future__ import annotations

import copy
import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from report_import.domain.models import (
    FieldValue,
    ReportPayload,
    ScalarValue,
    StructValue,
    TableValue,
    classify_value,
)
from report_import.importers.specs import (
    AttributeSpec,
    ColumnSpec,
    GroupSpec,
    ReportSpec,
    TableSpec,
)
from report_import.logic import derived

logger = logging.getLogger(__name__)

_TRUE_TOKENS = {"true", "yes", "y", "1", "on", "x", "checked"}


def normalize(text: Optional[str]) -> str:
    """Lowercase, strip diacritics and punctuation, collapse whitespace."""
    if text is None:
        return ""
    normalized = unicodedata.normalize("NFKD", str(text))
    normalized = "".join(ch for ch in normalized if unicodedata.category(ch) != "Mn")
    normalized = normalized.lower()
    normalized = re.sub(r"[^\w\s]", " ", normalized, flags=re.UNICODE)
    normalized = normalized.replace("_", " ")
    normalized = re.sub(r"\s+", " ", normalized)
    return normalized.strip()


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


_KEY_TOKEN = re.compile(r"\[[^\]]*\]|[^.\[\]]+")


def lookup(fields: dict[str, Any], key: str) -> Any:
    """
    Flat key lookup. When no literal key exists, a dotted key walks nested objects:
    numeric parts index lists, ``[col=value]`` picks the row whose cell equals the value
    and ``[col~text]`` the first row whose cell contains the text (both normalized).
    """
    if key in fields:
        return fields[key]
    if "." not in key and "[" not in key:
        return None
    current: Any = fields
    for part in _KEY_TOKEN.findall(key):
        if part.startswith("["):
            current = _select_row(current, part[1:-1])
        elif isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def _select_row(rows: Any, selector: str) -> Optional[dict]:
    if not isinstance(rows, list):
        return None
    exact = "~" not in selector
    column, _, wanted = selector.partition("=" if exact else "~")
    wanted = normalize(wanted)
    for row in rows:
        if not isinstance(row, dict):
            continue
        cell = normalize(row.get(column.strip()))
        if cell and (cell == wanted if exact else wanted in cell):
            return row
    return None


def coerce(value: Any, kind: str, default: Any) -> Any:
    """Parse-or-default coercion; never raises."""
    if isinstance(value, ScalarValue):
        value = value.value
    elif isinstance(value, StructValue):
        value = value.items
    elif isinstance(value, TableValue):
        value = None
    if is_blank(value):
        return copy.deepcopy(default)

    if kind == "struct":
        return copy.deepcopy(value) if isinstance(value, dict) else copy.deepcopy(default)
    if kind == "list":
        return copy.deepcopy(value) if isinstance(value, list) else copy.deepcopy(default)
    if isinstance(value, dict):
        return copy.deepcopy(default)
    if kind == "number":
        return derived.parse_number(value, default=default)
    if kind == "int":
        number = derived.parse_number(value, default=None)
        return int(number) if number is not None else copy.deepcopy(default)
    if kind == "bool":
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in _TRUE_TOKENS
    if isinstance(value, list):
        return ", ".join(str(v) for v in value if not is_blank(v))
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass
class _Slot:
    key: tuple[str, str]
    group: Optional[GroupSpec]
    spec: Any  # AttributeSpec | TableSpec
    labels: tuple[str, ...]
    accepts_any_label: bool = False

    @property
    def is_table(self) -> bool:
        return isinstance(self.spec, TableSpec)

    def label_matches(self, label: str) -> bool:
        if self.accepts_any_label:
            return True
        return any(needle in label for needle in self.labels)


class FieldExtractor:
    """
    Generic interpreter over a ``ReportSpec``.
    Sections are read first; the flat field map only fills what sections left unset.
    The payload is never mutated and the output shares no objects with it.
    """

    TEMPERATURE_GROUP = "@temperature"
    TOP_LEVEL = "@record"

    def __init__(self, spec: ReportSpec):
        self.spec = spec
        self._group_titles: dict[str, tuple[str, ...]] = {}
        self._scalar_slots: dict[str, list[_Slot]] = {}
        self._table_slots: dict[str, list[_Slot]] = {}
        self._all_slots: list[_Slot] = []
        self._build_slots()

    def _build_slots(self) -> None:
        for index, group in enumerate(self.spec.groups):
            group_id = f"{index}:{group.path}"
            self._group_titles[group_id] = tuple(normalize(t) for t in group.section_titles)
            scalars = [self._slot(group_id, group, attr) for attr in group.attributes]
            tables = [
                self._slot(group_id, group, table, accepts_any=bool(group.section_titles) and not table.labels)
                for table in group.tables
            ]
            self._scalar_slots[group_id] = scalars
            self._table_slots[group_id] = tables
            self._all_slots.extend(scalars + tables)

        if self.spec.temperature:
            temp = self.spec.temperature
            slots = [
                self._slot(self.TEMPERATURE_GROUP, None, attr)
                for attr in (temp.celsius, temp.humidity, temp.fahrenheit)
            ]
            self._group_titles[self.TEMPERATURE_GROUP] = ()
            self._scalar_slots[self.TEMPERATURE_GROUP] = slots
            self._table_slots[self.TEMPERATURE_GROUP] = []
            self._all_slots.extend(slots)

        top = [self._slot(self.TOP_LEVEL, None, attr) for attr in self.spec.attributes]
        self._group_titles[self.TOP_LEVEL] = ()
        self._scalar_slots[self.TOP_LEVEL] = top
        self._table_slots[self.TOP_LEVEL] = []
        self._all_slots.extend(top)

    @staticmethod
    def _slot(group_id: str, group: Optional[GroupSpec], spec: Any, accepts_any: bool = False) -> _Slot:
        return _Slot(
            key=(group_id, spec.name),
            group=group,
            spec=spec,
            labels=tuple(n for n in (normalize(label) for label in spec.labels) if n),
            accepts_any_label=accepts_any,
        )

    # ------------------------------------------------------------------ collect
    def _accepting_groups(self, title: str) -> list[str]:
        specific = [
            gid for gid, titles in self._group_titles.items()
            if titles and any(t in title for t in titles)
        ]
        generic = [gid for gid, titles in self._group_titles.items() if not titles]
        return specific + generic

    def _collect_sections(self, payload: ReportPayload, found: dict[tuple[str, str], Any]) -> None:
        for section in payload.sections:
            group_ids = self._accepting_groups(normalize(section.title))
            for fld in section.fields:
                label = normalize(fld.label)
                value = fld.field_value
                if isinstance(value, TableValue):
                    slot = self._first_unset(
                        (s for gid in group_ids for s in self._table_slots[gid]), label, found
                    )
                    whole = {**value.meta, "rows": value.rows}
                    if slot is not None:
                        found[slot.key] = _as_table(slot.spec, whole) or value
                        self._offer_meta(slot.key[0], whole, found)
                    for gid in group_ids:
                        if self._group_titles[gid]:
                            self._offer_meta(gid, whole, found)
                elif isinstance(value, StructValue):
                    slot = self._first_unset(
                        (s for gid in group_ids for s in self._scalar_slots[gid] if s.spec.kind == "struct"),
                        label,
                        found,
                    )
                    if slot is not None:
                        found[slot.key] = value
                        continue
                    slot = self._first_unset(
                        (
                            s for gid in group_ids for s in self._table_slots[gid]
                            if s.spec.struct_row or s.spec.struct_rows
                        ),
                        label,
                        found,
                    )
                    if slot is not None:
                        found[slot.key] = _struct_table(slot.spec, value.items)
                        continue
                    for gid in group_ids:
                        if self._group_titles[gid]:
                            self._offer_meta(gid, value.items, found)
                else:
                    if is_blank(value.value):
                        continue
                    slot = self._first_unset(
                        (s for gid in group_ids for s in self._scalar_slots[gid] if s.spec.kind != "struct"),
                        label,
                        found,
                    )
                    if slot is not None:
                        found[slot.key] = value

    @staticmethod
    def _first_unset(slots: Iterable[_Slot], label: str, found: dict) -> Optional[_Slot]:
        if not label:
            return None
        for slot in slots:
            if slot.key not in found and slot.label_matches(label):
                return slot
        return None

    @staticmethod
    def _meta_keys(spec: Any) -> list[str]:
        """Name, flat keys, then each dotted flat key without its first segment."""
        tails = [key.split(".", 1)[1] for key in spec.flat_keys if "." in key]
        return list(dict.fromkeys([spec.name, *spec.flat_keys, *tails]))

    def _offer_meta(self, group_id: str, meta: dict[str, Any], found: dict) -> None:
        """Shared table metadata (testVoltage, units, ...) fills the group's unset attributes and tables."""
        for slot in self._scalar_slots.get(group_id, []):
            if slot.key in found:
                continue
            for key in self._meta_keys(slot.spec):
                candidate = lookup(meta, key)
                if is_blank(candidate):
                    continue
                if slot.spec.kind == "struct":
                    if isinstance(candidate, dict):
                        found[slot.key] = StructValue(dict(candidate))
                        break
                    continue
                if isinstance(candidate, dict) or (isinstance(candidate, list) and slot.spec.kind != "list"):
                    continue
                found[slot.key] = ScalarValue(candidate)
                break
        for slot in self._table_slots.get(group_id, []):
            if slot.key in found:
                continue
            for key in self._meta_keys(slot.spec):
                if key == "rows":
                    continue
                candidate = lookup(meta, key)
                if not isinstance(candidate, (list, dict)) or is_blank(candidate):
                    continue
                value = _as_table(slot.spec, candidate)
                if value is not None:
                    found[slot.key] = value
                    break

    def _collect_flat(self, payload: ReportPayload, found: dict[tuple[str, str], Any]) -> None:
        fields = payload.flat_fields
        if not fields:
            return
        for slot in self._all_slots:
            if slot.key in found:
                continue
            for key in slot.spec.flat_keys:
                raw = lookup(fields, key)
                if is_blank(raw):
                    continue
                if slot.is_table:
                    value = _as_table(slot.spec, raw)
                    if value is None:
                        continue
                    found[slot.key] = value
                    self._offer_meta(slot.key[0], {**value.meta, "rows": value.rows}, found)
                    break
                if slot.spec.kind == "struct":
                    if isinstance(raw, dict):
                        found[slot.key] = StructValue(dict(raw))
                        break
                    continue
                if isinstance(raw, dict):
                    continue
                found[slot.key] = ScalarValue(raw)
                break

    # -------------------------------------------------------------------- build
    def extract(self, payload: ReportPayload) -> dict[str, Any]:
        found: dict[tuple[str, str], FieldValue] = {}
        self._collect_sections(payload, found)
        self._collect_flat(payload, found)

        record: dict[str, Any] = {}
        celsius = 20
        if self.spec.temperature:
            temp = self.spec.temperature
            reading = self._temperature(found)
            celsius = reading["celsius"]
            for alias, source in temp.aliases.items():
                reading[alias] = reading.get(source)
            for path in [temp.path, *temp.mirrors]:
                _ensure_path(record, path).update(copy.deepcopy(reading))

        for index, group in enumerate(self.spec.groups):
            group_id = f"{index}:{group.path}"
            container = _ensure_path(record, group.path)
            for attr in group.attributes:
                container[attr.name] = coerce(found.get((group_id, attr.name)), attr.kind, attr.default)
            for attr in group.attributes:
                if attr.corrects:
                    computed = derived.corrected_text(container.get(attr.corrects), celsius)
                    if computed:
                        container[attr.name] = computed
            for table in group.tables:
                self._build_table(container, table, found.get((group_id, table.name)), celsius)
            if group.correct and group.corrected_path:
                corrected = _ensure_path(record, group.corrected_path)
                for name in group.correct:
                    corrected[name] = derived.corrected_text(container.get(name), celsius)

        for attr in self.spec.attributes:
            record[attr.name] = coerce(found.get((self.TOP_LEVEL, attr.name)), attr.kind, attr.default)
        for group in self.spec.groups:
            for mirror in group.mirrors:
                _put(record, mirror, copy.deepcopy(_ensure_path(record, group.path)))
        return record

    def _temperature(self, found: dict) -> dict[str, Any]:
        temp = self.spec.temperature

        def _raw(attr: AttributeSpec) -> Any:
            return coerce(found.get((self.TEMPERATURE_GROUP, attr.name)), "number", None)

        reading = derived.temperature_reading(
            fahrenheit_value=_raw(temp.fahrenheit),
            celsius_value=_raw(temp.celsius),
            humidity=_raw(temp.humidity),
        )
        return reading.model_dump()

    def _build_table(self, container: dict, table: TableSpec, value: Any, celsius: int) -> None:
        rows = value.rows if isinstance(value, TableValue) else []
        meta = value.meta if isinstance(value, TableValue) else {}
        shared = {k: v for k, v in meta.items() if k in table.shared_columns}
        if table.layout == "map":
            self._place(container, table, self._map_table(table, rows))
            return
        if table.layout == "keyed":
            built: Any = {
                name: self._row(table, self._find_row(rows, table.key_column, needles), celsius, {}, shared)
                for name, needles in table.keyed_rows.items()
            }
        else:
            seeds = table.row_defaults
            if table.row_count is not None:
                count = max(table.row_count, len(rows))
            else:
                count = len(rows) or max(len(seeds), len(table.row_ids))
            built = []
            for i in range(count):
                seed = dict(seeds[i]) if i < len(seeds) else {}
                if i < len(table.row_ids):
                    seed.setdefault(table.id_column, table.row_ids[i])
                built.append(self._row(table, rows[i] if i < len(rows) else {}, celsius, seed, shared))
        self._place(container, table, built)

        correction = table.correction
        if correction and correction.into:
            if isinstance(built, dict):
                corrected: Any = {
                    name: self._corrected_copy(row, correction.columns, celsius) for name, row in built.items()
                }
            else:
                corrected = [self._corrected_copy(row, correction.columns, celsius) for row in built]
            _put(container, correction.into, corrected)

    @staticmethod
    def _place(container: dict, table: TableSpec, built: Any) -> None:
        _put(container, table.name, built)
        for mirror in table.mirrors:
            _put(container, mirror, copy.deepcopy(built))

    @staticmethod
    def _find_row(rows: list[dict], key_column: str, needles: list[str]) -> dict:
        wanted = [normalize(n) for n in needles]
        for row in rows:
            key = normalize(row.get(key_column))
            if key and any(w in key for w in wanted):
                return row
        return {}

    def _row(
        self, table: TableSpec, source: dict, celsius: int, seed: dict[str, Any], shared: dict[str, Any]
    ) -> dict[str, Any]:
        if not table.columns:
            row = copy.deepcopy(seed)
            row.update(copy.deepcopy(source))
            return row
        row: dict[str, Any] = {}
        for col in table.columns:
            _put(row, col.name, self._cell(source, col, seed, shared))
        for col in table.columns:
            if col.corrects:
                computed = derived.corrected_text(_dig(row, col.corrects), celsius)
                if computed:
                    _put(row, col.name, computed)
        correction = table.correction
        if correction and not correction.into:
            for name in correction.columns:
                if correction.target:
                    target = f"{correction.target}.{name.rsplit('.', 1)[-1]}"
                else:
                    target = f"{name}{correction.suffix}"
                computed = derived.corrected_text(_dig(row, name), celsius)
                if computed:
                    _put(row, target, computed)
                elif _dig(row, target) is None:
                    _put(row, target, "")
        return row

    @staticmethod
    def _cell(source: dict, col: ColumnSpec, seed: dict[str, Any], shared: dict[str, Any]) -> Any:
        default = seed.get(col.name, col.default)
        for key in col.source_keys():
            raw = lookup(source, key)
            if is_blank(raw):
                raw = lookup(shared, key)
            if not is_blank(raw):
                return coerce(raw, col.kind, default)
        return copy.deepcopy(default)

    @staticmethod
    def _corrected_copy(row: dict, columns: list[str], celsius: int) -> dict[str, Any]:
        out = copy.deepcopy(row)
        for name in columns:
            current = _dig(out, name)
            if current is not None:
                _put(out, name, derived.corrected_text(current, celsius))
        return out

    @staticmethod
    def _map_table(table: TableSpec, rows: list[dict]) -> dict[str, Any]:
        """id -> value; with ``keyed_rows`` the ids are renamed to fixed keys and others dropped."""
        if table.keyed_rows:
            result = {name: copy.deepcopy(table.value_default) for name in table.keyed_rows}
            for row in rows:
                key = normalize(row.get(table.key_column))
                for name, ids in table.keyed_rows.items():
                    if key and key in (normalize(i) for i in ids):
                        result[name] = coerce(row.get(table.value_column), "text", table.value_default)
            return result
        result = {rid: copy.deepcopy(table.value_default) for rid in table.row_ids}
        for row in rows:
            key = row.get(table.key_column)
            if is_blank(key):
                continue
            result[str(key).strip()] = coerce(row.get(table.value_column), "text", table.value_default)
        return result


def _as_table(table: TableSpec, raw: Any) -> Optional[TableValue]:
    """A raw value read for a table slot; named struct members win over a ``rows`` list."""
    if isinstance(raw, dict) and any(isinstance(raw.get(name), dict) for name in table.struct_rows):
        return _struct_table(table, raw)
    value = classify_value(raw, "table")
    if isinstance(value, StructValue) and (table.struct_row or table.struct_rows):
        return _struct_table(table, value.items)
    return value if isinstance(value, TableValue) else None


def _struct_table(table: TableSpec, items: dict[str, Any]) -> TableValue:
    if table.struct_rows:
        return TableValue(
            rows=[dict(items[k]) if isinstance(items.get(k), dict) else {} for k in table.struct_rows]
        )
    return TableValue(rows=[dict(items)])


def _ensure_path(record: dict, path: str) -> dict:
    current = record
    if not path:
        return current
    for part in path.split("."):
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    return current


def _dig(row: dict, dotted: str) -> Any:
    current: Any = row
    for part in dotted.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _put(row: dict, dotted: str, value: Any) -> None:
    parent, _, leaf = dotted.rpartition(".")
    _ensure_path(row, parent)[leaf] = value
