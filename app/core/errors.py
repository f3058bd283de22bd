from __future__ import annotations


class AppError(Exception):
    status_code = 500
    code = "E_INTERNAL"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.code
        super().__init__(self.message)

    def to_detail(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class ValidationError(AppError):
    status_code = 400
    code = "E_VALIDATION"


class NotFoundError(AppError):
    status_code = 404
    code = "E_NOT_FOUND"


class AuthError(AppError):
    status_code = 401
    code = "E_UNAUTHORIZED"


class ConflictError(AppError):
    status_code = 409
    code = "E_CONFLICT"


class ConfigurationError(AppError):
    status_code = 500
    code = "E_CONFIGURATION"


class UpstreamError(AppError):
    code = "E_UPSTREAM"

    def __init__(self, message: str | None = None, *, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status

    @property
    def status_code(self) -> int:  # type: ignore[override]
        # Client errors reported by the upstream are passed through as-is.
        if self.upstream_status is not None and 400 <= self.upstream_status < 500:
            return self.upstream_status
        return 500
