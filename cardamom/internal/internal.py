"""Low-level helpers for the WebDAV client."""

from __future__ import annotations

from enum import IntEnum
from http import HTTPStatus


class Depth(IntEnum):
    """Depth indicates whether a request applies to the resource's members.

    Defined in RFC 4918 section 10.2.
    """

    ZERO = 0  # Request applies only to the resource
    ONE = 1  # Request applies to resource and its internal members only
    INFINITY = -1  # Request applies to resource and all of its members


def depth_to_string(d: Depth) -> str:
    """Format the depth."""
    if d == Depth.ZERO:
        return "0"
    elif d == Depth.ONE:
        return "1"
    elif d == Depth.INFINITY:
        return "infinity"
    else:
        raise ValueError("webdav: invalid Depth value")


class HTTPError(Exception):
    """HTTP error with status code."""

    def __init__(self, code: int, err: Exception | None = None):
        self.code = code
        self.err = err
        super().__init__(str(self))

    def __str__(self) -> str:
        try:
            text = HTTPStatus(self.code).phrase
        except ValueError:
            text = "Unknown"

        s = f"{self.code} {text}"
        if self.err:
            return f"{s}: {self.err}"
        return s


def is_unauthorized(err: Exception | None) -> bool:
    """Check if an error is a 401 Unauthorized or 403 Forbidden."""
    if isinstance(err, HTTPError):
        return err.code in (401, 403)
    return False
