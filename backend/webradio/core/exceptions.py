from fastapi import HTTPException


class AppError(HTTPException):
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class BadRequestError(AppError):
    status_code = 400
    default_detail = "Bad request"


class NotFoundError(AppError):
    status_code = 404
    default_detail = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_detail = "Conflict"


class EmptyExportError(BadRequestError):
    """Raised before any file is written when a profile selects no stations."""

    default_detail = "This export profile does not include any active stations to export."


# Transfer failures happen below the HTTP layer and are not HTTP errors themselves.


class TransferError(Exception):
    """The transfer tool could not be started or exited with an error.

    ``uploaded`` names the files delivered before the failure.
    """

    def __init__(self, message: str = "", uploaded: list[str] | None = None):
        super().__init__(message)
        self.uploaded = list(uploaded or [])


class TransferConfigError(TransferError):
    """Transfer settings are unusable; raised before any network activity."""


class TransferToolNotFoundError(TransferError):
    def __init__(self, tool: str = "curl"):
        self.tool = tool
        super().__init__(f'The "{tool}" binary is required to perform FTP transfers.')
