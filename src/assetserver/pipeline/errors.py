"""
=============================================================================
PIPELINE ERRORS
=============================================================================

Typed failures of the request-resolution pipeline.

=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure the pipeline can produce is one of five kinds. Each kind is
terminal (no retries) and maps to exactly one HTTP status:

    ┌──────────────────────┬────────┬─────────────────────────────────────┐
    │  ErrorKind           │ Status │ Cause                               │
    ├──────────────────────┼────────┼─────────────────────────────────────┤
    │  BAD_METHOD          │  400   │ Anything other than GET             │
    │  MIXED_FILE_TYPES    │  400   │ Bundle mixes .js and .css           │
    │  NOT_FOUND           │  404   │ No such file                        │
    │  NOT_REGULAR_FILE    │  403   │ Directory, device, outside the root │
    │  STAT_FAILURE        │  500   │ Any other filesystem error          │
    └──────────────────────┴────────┴─────────────────────────────────────┘

"Not found" is kept apart from every other I/O error because it is the only
routine one. A missing file is the client's problem (404); a permission or
disk fault is ours (500).

=============================================================================
WORST ERROR WINS
=============================================================================

A bundle stats several files at once. When more than one of them fails we
wait for all lookups and report the most specific denial:

    NOT_REGULAR_FILE  >  NOT_FOUND  >  STAT_FAILURE

so the reported status never depends on which stat() call returned first.

=============================================================================
"""

from enum import Enum, auto
from typing import Iterable, Optional

from ..http.status_codes import HTTPStatus


class ErrorKind(Enum):
    """Classification of a pipeline failure, with its HTTP status."""

    BAD_METHOD = auto()
    MIXED_FILE_TYPES = auto()
    NOT_FOUND = auto()
    NOT_REGULAR_FILE = auto()
    STAT_FAILURE = auto()

    @property
    def status(self) -> HTTPStatus:
        """HTTP status this failure is reported with."""
        return _STATUS[self]


_STATUS = {
    ErrorKind.BAD_METHOD: HTTPStatus.BAD_REQUEST,
    ErrorKind.MIXED_FILE_TYPES: HTTPStatus.BAD_REQUEST,
    ErrorKind.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorKind.NOT_REGULAR_FILE: HTTPStatus.FORBIDDEN,
    ErrorKind.STAT_FAILURE: HTTPStatus.INTERNAL_SERVER_ERROR,
}


# Higher number = reported in preference to lower ones.
# Only lookup failures take part in multi-file resolution.
_PRIORITY = {
    ErrorKind.NOT_REGULAR_FILE: 3,
    ErrorKind.NOT_FOUND: 2,
    ErrorKind.STAT_FAILURE: 1,
}


class AssetError(Exception):
    """
    Raised when a request cannot be resolved to servable files.

    Carries the ErrorKind so the handler can pick the status code without
    inspecting messages, the same way HTTPParseError carries status_code.
    """

    def __init__(self, kind: ErrorKind, detail: str = ""):
        super().__init__(detail or kind.name)
        self.kind = kind
        self.detail = detail

    @property
    def status(self) -> HTTPStatus:
        return self.kind.status


def worst_error(errors: Iterable[AssetError]) -> Optional[AssetError]:
    """
    Pick the error to report for a multi-file request.

    Ties keep the earliest error in request order, so the detail message is
    stable too.

    Returns:
        The highest-priority error, or None if there were no errors.
    """
    worst: Optional[AssetError] = None
    for error in errors:
        if worst is None or _PRIORITY.get(error.kind, 0) > _PRIORITY.get(worst.kind, 0):
            worst = error
    return worst
