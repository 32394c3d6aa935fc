"""Logging utilities for cardamom."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from lxml import etree

logger = logging.getLogger("cardamom")
http_logger = logging.getLogger("cardamom.http")


def format_xml(xml_bytes: bytes | str) -> str:
    """Format XML with proper indentation.

    Args:
        xml_bytes: XML content as bytes or string

    Returns:
        Pretty-formatted XML string, or the content unchanged if it is not XML
    """
    if isinstance(xml_bytes, str):
        xml_bytes = xml_bytes.encode("utf-8")

    try:
        parser = etree.XMLParser(remove_blank_text=True)
        root = etree.fromstring(xml_bytes, parser)
    except etree.XMLSyntaxError:
        return xml_bytes.decode("utf-8", errors="replace")
    return etree.tostring(root, pretty_print=True, encoding="unicode")


def is_xml_content(content_type: str | None) -> bool:
    """Check if content type is XML."""
    if not content_type:
        return False
    return "xml" in content_type.lower()


def _log_body(headers: Mapping[str, Any], body: bytes | None) -> None:
    if not body:
        return

    content_type = headers.get("content-type", headers.get("Content-Type", ""))
    http_logger.debug("-" * 80)

    if is_xml_content(content_type):
        for line in format_xml(body).split("\n"):
            if line.strip():
                http_logger.debug(f"  {line}")
    else:
        body_preview = body[:200].decode("utf-8", errors="replace")
        http_logger.debug(f"  [{len(body)} bytes] {body_preview}")
        if len(body) > 200:
            http_logger.debug(f"  ... ({len(body) - 200} more bytes)")


def log_request(method: str, url: str, headers: Mapping[str, Any], body: bytes | None) -> None:
    """Log an outgoing HTTP request.

    Args:
        method: HTTP method
        url: Request URL
        headers: Request headers
        body: Request body (if any)
    """
    if not http_logger.isEnabledFor(logging.DEBUG):
        return

    http_logger.debug("=" * 80)
    http_logger.debug(f">>> REQUEST: {method} {url}")
    for header in ("Content-Type", "Depth"):
        value = headers.get(header)
        if value:
            http_logger.debug(f"  {header}: {value}")
    _log_body(headers, body)


def log_response(status_code: int, headers: Mapping[str, Any], body: bytes | None) -> None:
    """Log an incoming HTTP response.

    Args:
        status_code: HTTP status code
        headers: Response headers
        body: Response body (if any)
    """
    if not http_logger.isEnabledFor(logging.DEBUG):
        return

    http_logger.debug(f"<<< RESPONSE: {status_code}")
    for header in ("content-type", "etag"):
        value = headers.get(header)
        if value:
            http_logger.debug(f"  {header}: {value}")
    _log_body(headers, body)
    http_logger.debug("=" * 80)


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging for the command-line tool.

    Args:
        verbose: Log progress at INFO level
        debug: Log everything, including HTTP requests and responses
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logger.setLevel(level)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    logger.addHandler(handler)

    # Prevent propagation to avoid duplicate logs
    logger.propagate = False
