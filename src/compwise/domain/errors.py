"""Error taxonomy for the acquisition pipeline.

Terminal fetch errors are never retried. Parse errors reject a whole document,
whereas row problems are reported as :class:`~compwise.domain.parsing.RowError`
values and never raised.
"""

from __future__ import annotations

from collections.abc import Sequence


class CatalogPipelineError(RuntimeError):
    """Base class for every error raised by the pipeline."""


class TerminalFetchError(CatalogPipelineError):
    """A fetch failure that retrying cannot fix."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class SourceNotFoundError(TerminalFetchError):
    pass


class AccessDeniedError(TerminalFetchError):
    pass


class DeadlineExceededError(TerminalFetchError):
    """Raised when a caller-imposed deadline expires; aborts the retry sequence."""


class HttpStatusError(CatalogPipelineError):
    """Unexpected non-success status that may go away on a later attempt."""

    def __init__(self, message: str, *, path: str, status_code: int) -> None:
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class ServerError(HttpStatusError):
    pass


class AttemptTimeoutError(CatalogPipelineError):
    """A single attempt exceeded the per-attempt timeout."""


class RetryExhaustedError(CatalogPipelineError):
    def __init__(
        self, operation: str, *, attempts: int, last_error: BaseException | None
    ) -> None:
        super().__init__(f"{operation} failed after {attempts} attempt(s): {last_error}")
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


class DocumentParseError(CatalogPipelineError):
    """Fatal problem with a whole source document."""


class InsufficientContentError(DocumentParseError):
    pass


class MissingColumnsError(DocumentParseError):
    def __init__(self, missing: Sequence[str]) -> None:
        super().__init__(f"Document missing required columns: {', '.join(missing)}")
        self.missing = tuple(missing)


class InvalidEntityNameError(CatalogPipelineError, ValueError):
    pass


class NoSourcesError(CatalogPipelineError):
    def __init__(self, entity: str) -> None:
        super().__init__(f"No source documents found for entity: {entity}")
        self.entity = entity


class EntityLoadError(CatalogPipelineError):
    """Every source of an entity failed or none produced a valid record."""

    def __init__(self, entity: str, errors: Sequence[str]) -> None:
        detail = "; ".join(errors) if errors else "no valid records"
        super().__init__(f"No records could be loaded for {entity}: {detail}")
        self.entity = entity
        self.errors = tuple(errors)


class CatalogFormatError(CatalogPipelineError):
    pass


class CatalogUnavailableError(CatalogPipelineError):
    pass
