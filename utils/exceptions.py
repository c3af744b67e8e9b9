"""
Custom exception hierarchy for the library curator.

Classification outcomes (empty folders, missing audio, bad naming) are data,
not exceptions. These classes cover invocation misuse and the failures of the
filesystem and tag collaborators.
"""


class CuratorError(Exception):
    """Base class for all application-specific errors."""
    pass


class ConfigurationError(CuratorError):
    """Raised when there are configuration-related issues."""
    pass


class FileProcessingError(CuratorError):
    """Base class for errors while reading or writing a single audio file."""
    pass


class MetadataExtractionError(FileProcessingError):
    """Raised when an audio file cannot be opened by the tag library."""

    def __init__(self, file_path: str, reason: str = None):
        self.file_path = file_path
        self.reason = reason

        message = f"Failed to open audio file: {file_path}"
        if reason:
            message += f" - {reason}"

        super().__init__(message)


class MetadataWriteError(FileProcessingError):
    """Raised when tags cannot be written back to an audio file."""

    def __init__(self, file_path: str, reason: str = None):
        self.file_path = file_path
        self.reason = reason

        message = f"Failed to write tags to file: {file_path}"
        if reason:
            message += f" - {reason}"

        super().__init__(message)


class NamingError(FileProcessingError):
    """Raised when a file path does not follow the Artist/YYYY - Album/NN - Title layout."""

    def __init__(self, file_path: str, reason: str = None):
        self.file_path = file_path
        self.reason = reason

        message = f"Cannot infer naming from path: {file_path}"
        if reason:
            message += f" ({reason})"

        super().__init__(message)


class FilesystemError(CuratorError):
    """Raised when filesystem operations fail."""

    def __init__(self, path: str, operation: str, reason: str = None):
        self.path = path
        self.operation = operation
        self.reason = reason

        message = f"Filesystem error during {operation} on {path}"
        if reason:
            message += f": {reason}"

        super().__init__(message)


class OrganizationError(CuratorError):
    """Raised when a folder move or merge fails."""

    def __init__(self, source_path: str, dest_path: str, reason: str = None):
        self.source_path = source_path
        self.dest_path = dest_path
        self.reason = reason

        message = f"Failed to relocate '{source_path}' to '{dest_path}'"
        if reason:
            message += f": {reason}"

        super().__init__(message)
