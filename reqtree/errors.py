class ReqtreeError(Exception):
    """Base class for every error raised by reqtree."""


class NotFound(ReqtreeError, LookupError):
    pass


class InvalidStructure(ReqtreeError, ValueError):
    pass


class NotACollection(InvalidStructure):
    """Raised when a parent/target id points at a request node."""


class DuplicateName(ReqtreeError, ValueError):
    pass


class CyclicMove(ReqtreeError, ValueError):
    pass


class MalformedDocument(ReqtreeError):
    """A persisted document could not be parsed. Recovered by the loaders, never surfaced."""

    def __init__(self, message: str, recovered: dict | None = None):
        super().__init__(message)
        # top-level scalar fields that were still readable, keyed by document name
        self.recovered = recovered or {}
