"""
Typed errors raised by the question import pipeline.

Each error carries an HTTP status and a stable code; main.py maps them to
JSON responses at the boundary.
"""


class ImportPipelineError(Exception):
    """Base class for import pipeline failures."""

    status_code = 500
    code = "IMPORT_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ImportPipelineError):
    """Malformed or missing input: bad subject, wrong file type, empty file, unknown model."""

    status_code = 400
    code = "VALIDATION_ERROR"


class ParseError(ImportPipelineError):
    """The chosen reader could not read the file."""

    status_code = 400
    code = "PARSE_ERROR"


class ExtractionError(ImportPipelineError):
    """AI provider unavailable, malformed model output, or timeout."""

    status_code = 502
    code = "EXTRACTION_ERROR"


class ConflictError(ImportPipelineError):
    """The batch is not in an editable state for this actor."""

    status_code = 409
    code = "CONFLICT"


class BatchOwnershipError(ConflictError):
    status_code = 403
    code = "FORBIDDEN"


class BatchNotFoundError(ImportPipelineError):
    status_code = 404
    code = "NOT_FOUND"
