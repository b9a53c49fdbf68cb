# core/errors.py


class CatalogError(Exception):
    """Base class for expected failures of a catalog run."""


class ConfigError(CatalogError):
    """Configuration file missing or invalid."""


class DiscogsAPIError(CatalogError):
    """A Discogs request failed (transport error or non-2xx status)."""

    def __init__(self, message: str, url: str = "", status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class PaginationError(CatalogError):
    """Folder listing pagination did not terminate as expected."""


class FolderNotFoundError(CatalogError):
    def __init__(self, folder_name: str, available: list[str]):
        names = ", ".join(repr(n) for n in available) or "<none>"
        super().__init__(
            f"No collection folder named {folder_name!r} (available: {names})"
        )
        self.folder_name = folder_name
        self.available = available
