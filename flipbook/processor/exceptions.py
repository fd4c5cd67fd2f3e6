class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class DocumentNotFoundError(ProcessorError):
    """Raised when a document cannot be found in the database."""


class JobNotFoundError(ProcessorError):
    """Raised when a processing job cannot be found in the database."""


class AccessDeniedError(ProcessorError):
    """Raised when a user may not read or modify a document."""


class PageOutOfRangeError(ProcessorError):
    """Raised when a requested page number is outside the document."""
