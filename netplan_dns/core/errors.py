from typing import Optional


class DNSConfigError(Exception):
    """Base class for every failure the updater reports to its callers."""

    exit_code = 1
    status_code = 500

    @property
    def category(self) -> str:
        return type(self).__name__


class AmbiguousConfiguration(DNSConfigError):
    exit_code = 2
    status_code = 409


class InvalidAddress(DNSConfigError):
    exit_code = 3
    status_code = 422


class UnknownProvider(InvalidAddress):
    pass


class NoInterfaceFound(DNSConfigError):
    exit_code = 4
    status_code = 404


class ValidationFailed(DNSConfigError):
    exit_code = 5
    status_code = 400


class ApplyFailed(DNSConfigError):
    """Raised after a failed apply; ``rolled_back`` tells whether the previous
    document was put back and applied again."""

    exit_code = 6
    status_code = 500

    def __init__(self, message: str, rolled_back: bool = False, backup_id: Optional[str] = None):
        super().__init__(message)
        self.rolled_back = rolled_back
        self.backup_id = backup_id


class BackupNotFound(DNSConfigError):
    exit_code = 7
    status_code = 404


class AmbiguousInterface(DNSConfigError):
    exit_code = 8
    status_code = 409
