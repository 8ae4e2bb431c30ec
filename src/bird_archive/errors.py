"""Exception hierarchy for bird-archive.

    BirdArchiveError (RuntimeError)
    ├── ExternalToolError - the bird CLI failed, timed out, or is missing
    ├── StoreError - persistence failure
    │   ├── RecordRejected - one record violated a store constraint
    │   └── BookmarkNotFound - operation against a missing bookmark

Malformed export entries and duplicate ids are not errors: the parser drops
the former and the store reports the latter by returning False.
"""


class BirdArchiveError(RuntimeError):
    """Base class for all bird-archive errors."""


class ExternalToolError(BirdArchiveError):
    """The external bird command could not produce output.

    Attributes:
        reason: "missing", "timeout" or "exit".
        stderr: Diagnostic output captured from the command (may be empty).
    """

    def __init__(self, message: str, reason: str, stderr: str = ""):
        self.reason = reason
        self.stderr = stderr
        if stderr:
            message = f"{message}\n{stderr.strip()}"
        super().__init__(message)


class StoreError(BirdArchiveError):
    """A persistence operation failed."""


class RecordRejected(StoreError):
    """A single record violated a constraint other than the duplicate id."""

    def __init__(self, bookmark_id: str, reason: str):
        self.bookmark_id = bookmark_id
        self.reason = reason
        super().__init__(f"Bookmark {bookmark_id} rejected: {reason}")


class BookmarkNotFound(StoreError):
    def __init__(self, bookmark_id: str):
        self.bookmark_id = bookmark_id
        super().__init__(f"Bookmark not found: {bookmark_id}")
