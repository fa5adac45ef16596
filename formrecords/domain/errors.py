from __future__ import annotations


class DomainError(Exception):
    pass


class ConfigurationError(DomainError):
    pass


class DomainInvariantError(DomainError):
    pass


class DomainDependencyError(DomainError):
    pass


class UpstreamFetchError(DomainDependencyError):
    def __init__(self, message: str, *, status_code: int | None = None, detail: object | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class StoreWriteError(DomainDependencyError):
    pass
