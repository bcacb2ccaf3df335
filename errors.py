# Exceptions raised by the export pipeline.
# Fetch and parse failures are not exceptions here: the fetchers and the
# HTML processor log them and return None, and the caller skips the item.


class ExportError(Exception):
    """Base class for export failures."""


class SetupError(ExportError):
    """The temporary export directory or archive location could not be prepared."""


class UnsafePathError(ExportError):
    """A computed save path would land outside the export directory."""


class PackagingError(ExportError):
    """The archive could not be opened, written or finalized."""
