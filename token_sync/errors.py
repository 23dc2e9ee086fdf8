class TokenSyncError(Exception):
    pass


class UpstreamHTTPError(TokenSyncError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, status: int, body: str = "", reason: str = "") -> None:
        self.status = status
        self.body = body
        self.reason = reason
        super().__init__(f"HTTP {status}: {body or reason}")


class UpstreamRejectedError(TokenSyncError):
    """Upstream answered 2xx but flagged the request as failed in its payload."""

    def __init__(self, message: str, result: str = "") -> None:
        self.message = message
        self.result = result
        super().__init__(f"{message}: {result}" if result else message)


class MalformedResponseError(TokenSyncError):
    pass


class ChecksumError(TokenSyncError, ValueError):
    pass


class OutcomeLoadingError(TokenSyncError, RuntimeError):
    pass


class OutcomeFailure(TokenSyncError):
    """Raised by get_or_throw() on an Error that carries no underlying exception."""

    def __init__(self, message: str, code: int | None = None) -> None:
        self.code = code
        super().__init__(message)
