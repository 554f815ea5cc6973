import copy
import logging
from typing import Any, Dict, List, Optional

from report_import.domain.models import TargetSchema
from report_import.exceptions import SchemaMismatch
from report_import.importers.specs import ReportSpec

logger = logging.getLogger(__name__)

# Column -> record paths. The first path supplies the column's base object; later paths are
# attached to it under their last segment (report_info carries temperature and nameplate).
DEFAULT_COLUMN_MAP: Dict[str, List[str]] = {
    "report_info": ["reportInfo", "temperature", "nameplate"],
    "visual_inspection": ["visualInspection"],
    "insulation_resistance": ["insulationResistance"],
    "contact_resistance": ["contactResistance"],
    "test_equipment": ["testEquipment"],
    "comments": ["comments"],
    "status": ["status"],
}

_MISSING = object()


def _get_path(record: Dict[str, Any], path: str) -> Any:
    current: Any = record
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


class RecordAssembler:
    """Maps a canonical record onto a discovered table layout."""

    def assemble(
        self,
        record: Dict[str, Any],
        schema: TargetSchema,
        spec: Optional[ReportSpec] = None,
        job_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        row = self._identifiers(schema, job_id, user_id)

        blob = self._blob_column(schema, spec)
        if blob:
            row[blob] = copy.deepcopy(record)
            return row

        column_map = (spec.columns if spec and spec.columns else None) or DEFAULT_COLUMN_MAP
        json_filled = 0
        for column, paths in column_map.items():
            if not schema.has(column):
                continue
            value = self._column_value(record, paths)
            if value is _MISSING:
                continue
            if schema.is_json(column):
                row[column] = value
                json_filled += 1
            elif _is_scalar(value):
                row[column] = value
        if not json_filled:
            raise SchemaMismatch(
                f"Table has neither a blob column nor any mapped JSON column "
                f"(json columns: {', '.join(schema.jsonb_columns) or 'none'})"
            )
        return row

    @staticmethod
    def _identifiers(schema: TargetSchema, job_id: Optional[str], user_id: Optional[str]) -> Dict[str, Any]:
        row: Dict[str, Any] = {}
        if job_id is not None and schema.has("job_id"):
            row["job_id"] = job_id
        if user_id is not None and schema.has("user_id"):
            row["user_id"] = user_id
        return row

    @staticmethod
    def _blob_column(schema: TargetSchema, spec: Optional[ReportSpec]) -> Optional[str]:
        candidates = spec.blob_columns if spec else ["data", "report_data"]
        for column in candidates:
            if schema.is_json(column) and schema.has(column):
                return column
        return None

    @staticmethod
    def _column_value(record: Dict[str, Any], paths: List[str]) -> Any:
        # An empty first path is the whole record, or a fresh object when more paths follow.
        if not paths[0]:
            base = record if len(paths) == 1 else {}
        else:
            base = _get_path(record, paths[0])
        if base is _MISSING:
            return _MISSING
        value = copy.deepcopy(base)
        if len(paths) == 1 or not isinstance(value, dict):
            return value
        for path in paths[1:]:
            extra = _get_path(record, path)
            if extra is not _MISSING:
                value[path.rsplit(".", 1)[-1]] = copy.deepcopy(extra)
        return value
