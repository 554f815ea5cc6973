class ReportImportError(Exception):
    """Base exception for report import errors."""
    code = "import_error"


class ConfigError(ReportImportError):
    """Configuration loading specific errors."""
    code = "config_error"


class SchemaUnavailable(ReportImportError):
    """The target table layout could not be discovered."""
    code = "schema_unavailable"


class SchemaMismatch(ReportImportError):
    """The discovered layout has neither a blob column nor any named JSON column we can fill."""
    code = "schema_mismatch"


class NoMatchingImporter(ReportImportError):
    code = "no_matching_importer"


class ImportValidationError(ReportImportError):
    """Required relational columns are missing from the target table."""
    code = "validation_error"

    def __init__(self, message: str, *, missing_columns: list[str] | None = None):
        super().__init__(message)
        self.missing_columns = missing_columns or []


class InsertError(ReportImportError):
    code = "insert_error"


class SecondaryLinkWarning(ReportImportError):
    """Asset or job-asset link could not be written. Never fails the import."""
    code = "secondary_link_warning"
