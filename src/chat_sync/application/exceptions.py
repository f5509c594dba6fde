from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class TransientNetworkError(AppError):
    """A snapshot fetch failed; prior state stays intact."""

    def __init__(self, detail: str = "", status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(detail)


class ChannelUnavailableError(AppError):
    pass


class ValidationError(AppError):
    pass
