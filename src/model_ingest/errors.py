from __future__ import annotations

from http import HTTPStatus


class AppError(Exception):
    """Base error carrying an HTTP-style status classification."""

    default_status: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None, is_operational: bool = True) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code if status_code is not None else self.default_status)
        self.is_operational = is_operational

    def __str__(self) -> str:
        return self.message


class NotFoundError(AppError):
    default_status = HTTPStatus.NOT_FOUND


class ProviderError(AppError):
    default_status = HTTPStatus.INTERNAL_SERVER_ERROR


class IntegrityError(AppError):
    default_status = HTTPStatus.NO_CONTENT


class SpoolIOError(AppError):
    default_status = HTTPStatus.INTERNAL_SERVER_ERROR


class DownstreamError(AppError):
    default_status = HTTPStatus.BAD_GATEWAY
