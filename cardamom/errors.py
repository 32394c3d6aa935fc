"""Error types raised by cardamom.

Every error is a ``CardamomError``. Lower-level exceptions are kept as the
``__cause__`` of the error that wraps them, so a failure can be reported as a
chain of increasingly specific causes.
"""

from __future__ import annotations

from collections.abc import Iterator


class CardamomError(Exception):
    """Base class for all cardamom errors."""


class ConfigError(CardamomError):
    """Configuration file could not be located, read or validated."""


class AuthError(CardamomError):
    """The secret needed for authentication could not be retrieved."""


class TransportError(CardamomError):
    """A request could not be sent or its response could not be received."""


class MalformedResponseError(CardamomError):
    """A response does not have the expected multi-status shape."""


class LocalError(CardamomError):
    """The local contact store could not be read."""


class CacheError(CardamomError):
    """The cache file could not be read or written."""


class CacheParseError(CacheError):
    """A cache file or cache line could not be parsed."""


class CacheItemFieldMissingError(CacheParseError):
    """A cache line has fewer fields than expected."""

    field_name = ""

    def __init__(self, line: str = ""):
        self.line = line
        super().__init__(f"Could not find cache item {self.field_name}")


class CacheItemNameMissingError(CacheItemFieldMissingError):
    field_name = "name"


class CacheItemEtagMissingError(CacheItemFieldMissingError):
    field_name = "etag"


class CacheItemLocalDateMissingError(CacheItemFieldMissingError):
    field_name = "local date"


class CacheItemRemoteDateMissingError(CacheItemFieldMissingError):
    field_name = "remote date"


def error_chain(err: BaseException) -> Iterator[BaseException]:
    """Iterate over an error and its causes, outermost first.

    Args:
        err: Top-level error

    Yields:
        The error, then each ``__cause__`` (or ``__context__`` when no
        explicit cause was set) down to the root
    """
    seen: set[int] = set()
    current: BaseException | None = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None
