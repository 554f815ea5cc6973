import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from report_import.domain.models import ReportPayload
from report_import.exceptions import NoMatchingImporter
from report_import.importers.extractor import FieldExtractor, normalize
from report_import.importers.specs import ReportSpec, load_importer_specs

logger = logging.getLogger(__name__)

VLF_TAN_DELTA_MTS_SLUG = "medium-voltage-vlf-mts-report"
TAN_DELTA_ATS_SLUG = "medium-voltage-vlf-tan-delta"

_VLF_TAN_DELTA_MTS_TYPES = (
    "medium voltage cable vlf test with tan delta mts",
    "medium_voltage_cable_vlf_test_with_tan_delta_mts",
    "tandeltatestmtsform",
)
_TAN_DELTA_FLAT_KEYS = ("mvTanDelta", "tanDelta", "tandelta")
_TAN_DELTA_TYPE_TOKENS = ("tandelta", "tan-delta", "tan_delta")


class Importer:
    """A mapping spec bound to its extractor."""

    def __init__(self, spec: ReportSpec):
        self.spec = spec
        self.extractor = FieldExtractor(spec)

    @property
    def slug(self) -> str:
        return self.spec.slug

    @property
    def table(self) -> str:
        return self.spec.table

    def can_import(self, payload: ReportPayload) -> bool:
        return self.spec.match.matches(payload.type_string)

    def extract(self, payload: Any) -> Dict[str, Any]:
        return self.extractor.extract(ReportPayload.from_raw(payload))

    def route_slug(self, payload: ReportPayload) -> str:
        return self.spec.route_slug(payload.type_string)

    def __repr__(self) -> str:
        return f"Importer({self.slug!r} -> {self.table!r})"


def _alias_key(report_type: str) -> str:
    key = (report_type or "").strip()
    if key.lower().endswith(".tsx"):
        key = key[:-4]
    return key.lower()


def has_tan_delta_content(payload: ReportPayload) -> bool:
    if any("tan delta" in normalize(section.title) for section in payload.sections):
        return True
    fields = payload.flat_fields
    if any(key in fields for key in _TAN_DELTA_FLAT_KEYS):
        return True
    text = payload.type_string.lower()
    return any(token in text for token in _TAN_DELTA_TYPE_TOKENS) or ("tan" in text and "delta" in text)


class ImporterRegistry:
    """
    Ordered importers. Dispatch order: content overrides, exact aliases, then the first
    importer whose predicate matches in registration order.
    """

    def __init__(self, importers: Optional[List[Importer]] = None):
        self._importers: List[Importer] = []
        self._aliases: Dict[str, Importer] = {}
        for importer in importers or []:
            self.register(importer)

    def register(self, importer: Importer) -> None:
        self._importers.append(importer)
        for alias in importer.spec.aliases:
            self._aliases[_alias_key(alias)] = importer
        logger.debug("Registered importer", extra={"report_type": importer.slug, "table": importer.table})

    @property
    def importers(self) -> List[Importer]:
        return list(self._importers)

    def get(self, slug: str) -> Optional[Importer]:
        for importer in self._importers:
            if importer.slug == slug:
                return importer
        return None

    def candidates(self, payload: ReportPayload) -> List[Importer]:
        """Every importer whose predicate matches, in registration order."""
        return [importer for importer in self._importers if importer.can_import(payload)]

    def _content_override(self, payload: ReportPayload) -> Optional[Importer]:
        text = payload.type_string.lower()
        if any(token in text for token in _VLF_TAN_DELTA_MTS_TYPES):
            return self.get(VLF_TAN_DELTA_MTS_SLUG)
        if "mts" not in text and has_tan_delta_content(payload):
            return self.get(TAN_DELTA_ATS_SLUG)
        return None

    def dispatch(self, payload: Any) -> Importer:
        payload = ReportPayload.from_raw(payload)
        importer = self._content_override(payload)
        if importer is None:
            importer = self._aliases.get(_alias_key(payload.type_string))
        if importer is None:
            for candidate in self._importers:
                if candidate.can_import(payload):
                    importer = candidate
                    break
        if importer is None:
            raise NoMatchingImporter(f"No importer found for report type: {payload.type_string or '<empty>'}")
        return importer


def build_default_registry(specs: Optional[List[ReportSpec]] = None, config_path: Optional[Path] = None) -> ImporterRegistry:
    if specs is None:
        specs = load_importer_specs(config_path)
    return ImporterRegistry([Importer(spec) for spec in specs])
