class ServiceError(Exception):
    """Base exception class for errors reported to HTTP callers.

    Args:
        message (str): Human-readable error message
    """
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class UploadError(ServiceError):
    """Exception raised when an upload batch is rejected during intake.

    Args:
        filename (str): Name of the file that caused the error, if any
        message (str): Detailed error message
    """
    status_code = 400

    def __init__(self, filename: str | None, message: str):
        self.filename = filename
        super().__init__(message)


class NoFilesError(UploadError):
    """Exception raised when a conversion request carries no files."""

    def __init__(self):
        super().__init__(None, "No files uploaded")


class TooManyFilesError(UploadError):
    """Exception raised when a batch holds more files than allowed."""
    pass


class FileTypeError(UploadError):
    """Exception raised when an uploaded file has an invalid or unsupported file type."""
    pass


class FileSizeError(UploadError):
    """Exception raised when an uploaded file exceeds the maximum allowed size."""
    status_code = 413


class DpiRangeError(ServiceError):
    """Exception raised when the requested DPI is outside the supported range."""
    status_code = 400


class ConversionError(ServiceError):
    """Exception raised when a file of the batch could not be converted.

    Args:
        filename (str): Original name of the file whose conversion failed
        message (str): Detailed error message
    """

    def __init__(self, filename: str, message: str):
        self.filename = filename
        super().__init__(message)


class EngineError(Exception):
    """Exception raised when the external engine fails to produce an output.

    Args:
        message (str): Detailed error message
        returncode (int | None): Exit status, None when the process never ran to completion
        stderr (str): Diagnostic output captured from the engine
    """

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        self.message = message
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(self.message)


class EngineTimeoutError(EngineError):
    """Exception raised when the engine exceeds its time budget and is killed."""
    pass
