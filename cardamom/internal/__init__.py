"""Internal WebDAV utilities."""

from .client import Client
from .elements import (
    Href,
    MultiStatus,
    Prop,
    PropFind,
    PropStat,
    ResourceType,
    Response,
    Status,
)
from .internal import Depth, HTTPError, depth_to_string

__all__ = [
    "Client",
    "Depth",
    "HTTPError",
    "Href",
    "MultiStatus",
    "Prop",
    "PropFind",
    "PropStat",
    "ResourceType",
    "Response",
    "Status",
    "depth_to_string",
]
