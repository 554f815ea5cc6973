import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from report_import.config import settings
from report_import.data.assembler import RecordAssembler
from report_import.data.introspect import SchemaIntrospector
from report_import.domain.models import BatchImportReport, BatchItem, ImportResult, JobContext, ReportPayload
from report_import.exceptions import ImportValidationError, ReportImportError, SecondaryLinkWarning
from report_import.importers.registry import Importer, ImporterRegistry

logger = logging.getLogger(__name__)

_STEM_SUFFIXES = (".json", ".amp-report")


class ReportStore(Protocol):
    def get_table_columns(self, table: str) -> Any: ...

    def insert_report(self, table: str, row: Dict[str, Any]) -> str: ...

    def create_asset(self, name: str, file_url: str, user_id: Optional[str]) -> str: ...

    def link_job_asset(self, job_id: str, asset_id: str, user_id: Optional[str]) -> None: ...

    def fetch_job_context(self, job_id: str) -> Optional[JobContext]: ...


def filename_stem(filename: Optional[str]) -> str:
    name = Path(filename or "").name
    for suffix in _STEM_SUFFIXES:
        if name.lower().endswith(suffix):
            name = name[: -len(suffix)]
    return name or "report"


class ImportOrchestrator:
    """
    One import: dispatch -> extract -> describe -> validate -> assemble -> insert -> link.
    Linear, no retries. Terminal errors come back as a failed ``ImportResult``; asset
    linking is best-effort and only ever adds warnings.
    """

    def __init__(
        self,
        store: ReportStore,
        registry: ImporterRegistry,
        introspector: Optional[SchemaIntrospector] = None,
        assembler: Optional[RecordAssembler] = None,
        link_assets: Optional[bool] = None,
        augment_job_info: Optional[bool] = None,
        asset_name_prefix: Optional[str] = None,
    ):
        self.store = store
        self.registry = registry
        self.introspector = introspector or SchemaIntrospector(store)
        self.assembler = assembler or RecordAssembler()
        self.link_assets = settings.imports.link_assets if link_assets is None else link_assets
        self.augment_job_info = settings.imports.augment_job_info if augment_job_info is None else augment_job_info
        self.asset_name_prefix = asset_name_prefix or settings.imports.asset_name_prefix

    def import_report(
        self,
        raw: Any,
        job_id: str,
        user_id: str,
        filename: Optional[str] = None,
    ) -> ImportResult:
        importer: Optional[Importer] = None
        report_type: Optional[str] = None
        payload = ReportPayload.from_raw(raw)
        try:
            importer = self.registry.dispatch(payload)
            report_type = importer.route_slug(payload)
            record = importer.extract(payload)
            if self.augment_job_info:
                self._augment_job_info(record, job_id, importer.spec.job_paths)

            schema = self.introspector.describe(importer.table)
            missing = [c for c in importer.spec.required_columns if not schema.has(c)]
            if missing:
                raise ImportValidationError(
                    f"Table {importer.table} is missing required columns: {', '.join(missing)}",
                    missing_columns=missing,
                )
            row = self.assembler.assemble(record, schema, importer.spec, job_id=job_id, user_id=user_id)
            report_id = self.store.insert_report(importer.table, row)
        except ReportImportError as exc:
            logger.error(
                "Report import failed: %s",
                exc,
                extra={
                    "report_type": report_type or payload.type_string,
                    "table": importer.table if importer else None,
                    "job_id": job_id,
                    "error_code": exc.code,
                },
            )
            return ImportResult(
                success=False,
                report_type=report_type,
                table=importer.table if importer else None,
                error=str(exc),
                error_code=exc.code,
            )
        except Exception as exc:
            logger.exception("Unexpected import failure", extra={"report_type": report_type, "job_id": job_id})
            return ImportResult(
                success=False,
                report_type=report_type,
                table=importer.table if importer else None,
                error=str(exc) or exc.__class__.__name__,
                error_code="internal_error",
            )

        logger.info(
            "Imported report",
            extra={"report_type": report_type, "table": importer.table, "report_id": report_id, "job_id": job_id},
        )
        warnings: List[str] = []
        if self.link_assets:
            warning = self._link_asset(report_type, report_id, job_id, user_id, filename)
            if warning:
                warnings.append(warning)
        return ImportResult(
            success=True,
            report_id=report_id,
            report_type=report_type,
            table=importer.table,
            warnings=warnings,
        )

    def import_file(self, path: Path, job_id: str, user_id: str) -> ImportResult:
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("Unreadable report file", extra={"path": str(path), "job_id": job_id})
            return ImportResult(success=False, error=f"Could not read {path.name}: {exc}", error_code="invalid_payload")
        return self.import_report(raw, job_id, user_id, filename=path.name)

    def batch_import(
        self,
        items: Iterable[Tuple[str, Any]],
        job_id: str,
        user_id: str,
    ) -> BatchImportReport:
        """Import ``(source, payload)`` pairs; schema lookups are cached for the batch."""
        report = BatchImportReport()
        with self.introspector.batch():
            for source, raw in items:
                if isinstance(raw, Path):
                    result = self.import_file(raw, job_id, user_id)
                else:
                    result = self.import_report(raw, job_id, user_id, filename=source)
                item = BatchItem(source=source, result=result)
                (report.successful if result.success else report.failed).append(item)
        logger.info(
            "Batch import finished",
            extra={"job_id": job_id, "successful": len(report.successful), "failed": len(report.failed)},
        )
        return report

    def _augment_job_info(self, record: Dict[str, Any], job_id: str, paths: Dict[str, str]) -> None:
        """
        Authoritative job/customer values replace whatever the export carried. ``paths`` maps a
        job context attribute to its record location; a location whose container is absent is skipped.
        """
        try:
            context = self.store.fetch_job_context(job_id)
        except Exception as exc:
            logger.warning("Job info lookup failed: %s", exc, extra={"job_id": job_id})
            return
        if context is None:
            return
        for attribute, path in paths.items():
            value = getattr(context, attribute, "")
            if not value:
                continue
            parent, _, leaf = path.rpartition(".")
            container = record
            for part in parent.split(".") if parent else []:
                container = container.get(part) if isinstance(container, dict) else None
            if isinstance(container, dict):
                container[leaf] = value

    def _link_asset(
        self,
        slug: str,
        report_id: str,
        job_id: str,
        user_id: str,
        filename: Optional[str],
    ) -> Optional[str]:
        name = f"{self.asset_name_prefix} {slug} - {filename_stem(filename)}"
        file_url = f"report:/jobs/{job_id}/{slug}/{report_id}"
        try:
            asset_id = self.store.create_asset(name, file_url, user_id)
            self.store.link_job_asset(job_id, asset_id, user_id)
        except SecondaryLinkWarning as exc:
            logger.warning("Asset link skipped: %s", exc, extra={"report_id": report_id, "job_id": job_id})
            return str(exc)
        except Exception as exc:
            logger.warning("Asset link failed: %s", exc, extra={"report_id": report_id, "job_id": job_id})
            return f"Asset link failed: {exc}"
        return None
