"""
Request-terminal failures.

Each exception carries the HTTP status it is rendered with; the handlers
registered in main.py turn them into {"error": message} responses.
"""


class ContextCompareError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BudgetExceeded(ContextCompareError):
    """Raised by the budget gate before any model call is attempted."""
    status_code = 429

    def __init__(self, spent: float, limit: float):
        super().__init__(f"Budget limit reached: ${spent:.2f}")
        self.spent = spent
        self.limit = limit


class UploadRejected(ContextCompareError):
    """Uploaded file has an extension outside the allowed set."""
    status_code = 400


class FileTooLarge(ContextCompareError):
    status_code = 413


class UploadFailed(ContextCompareError):
    status_code = 500


class ExternalCallFailure(ContextCompareError):
    """Model call or document access failed; message is passed through."""
    status_code = 500
