from typing import Optional


class HttpOutError(Exception):
    """
    Base error for httpout.

    Args:
        message (str): The error message.
    """
    def __init__(self, message: str = "An error occurred while delivering records."):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(HttpOutError):
    """
    Error raised when the output configuration is invalid.

    Raised while building the configuration or a request, never retried.

    Args:
        reason (Optional[str]): What is wrong with the configuration.
        message (str): The error message template.
    """
    def __init__(self, reason: Optional[str] = None,
                 message: str = "Invalid httpout configuration."):
        self.reason = reason
        self.message = message
        if reason:
            self.message += f"\nDetails: {reason}"
        super().__init__(self.message)


class TransportError(HttpOutError):
    """
    Error raised when the request could not be completed on the wire.

    Covers connection failures, DNS failures, TLS failures and timeouts.

    Args:
        cause (Exception): The underlying transport exception.
        method (str): The HTTP method of the failed request.
        url (str): The target URL of the failed request.
    """
    def __init__(self, cause: Exception, method: str = "", url: str = ""):
        self.cause = cause
        self.method = method
        self.url = url
        message = f"{method} {url} raised exception: {cause.__class__.__name__}, '{cause}'"
        super().__init__(message.strip())


class RecoverableResponseError(HttpOutError):
    """
    Error raised when the server answers with a recoverable status code.

    Always raised to the caller so the host pipeline re-delivers the records.

    Args:
        summary (str): The response summary, "<code> <reason> <body>".
        status_code (Optional[int]): The HTTP status code.
    """
    def __init__(self, summary: str, status_code: Optional[int] = None):
        self.summary = summary
        self.status_code = status_code
        super().__init__(summary)
