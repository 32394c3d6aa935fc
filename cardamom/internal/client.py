"""Internal client utilities for WebDAV."""

from __future__ import annotations

import logging
from urllib.parse import urljoin, urlparse, urlunparse

import httpx
from lxml import etree

from ..debug import log_request, log_response
from ..errors import TransportError
from .elements import MultiStatus, PropFind
from .internal import Depth, HTTPError, depth_to_string, is_unauthorized

logger = logging.getLogger(__name__)


class Client:
    """WebDAV HTTP client."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        endpoint: str = "",
        auth: httpx.Auth | tuple[str, str] | None = None,
    ):
        """Initialize client.

        Args:
            http_client: HTTP client to use (creates default if None)
            endpoint: Base endpoint URL
            auth: Credentials sent with every request
        """
        self.http_client = http_client or httpx.AsyncClient()
        self.auth = auth
        self.endpoint = urlparse(endpoint)

        # Ensure path ends with /
        if not self.endpoint.path:
            self.endpoint = self.endpoint._replace(path="/")

    def resolve_href(self, path: str) -> str:
        """Resolve a path relative to the endpoint.

        Args:
            path: Path to resolve

        Returns:
            Full URL
        """
        if path.startswith("/"):
            return urlunparse((self.endpoint.scheme, self.endpoint.netloc, path, "", "", ""))
        return urljoin(self.endpoint.geturl(), path)

    async def request(
        self,
        method: str,
        path: str,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make an HTTP request.

        Args:
            method: HTTP method
            path: Request path
            content: Request body
            headers: Request headers

        Returns:
            HTTP response

        Raises:
            TransportError: If the request fails or the server replies with
                a non-2xx status
        """
        url = self.resolve_href(path)
        log_request(method, url, headers or {}, content)

        try:
            if self.auth is None:
                resp = await self.http_client.request(
                    method, url, content=content, headers=headers or {}
                )
            else:
                resp = await self.http_client.request(
                    method, url, content=content, headers=headers or {}, auth=self.auth
                )
        except httpx.HTTPError as e:
            raise TransportError(f"Could not send {method} request to {url}") from e

        log_response(resp.status_code, dict(resp.headers), resp.content)

        if resp.status_code // 100 != 2:
            content_type = resp.headers.get("content-type", "text/plain")

            wrapped_err: Exception | None = None
            if content_type.startswith("text/") or "xml" in content_type:
                text = resp.text[:1024].strip()
                if text:
                    if len(resp.text) > 1024:
                        text += " […]"
                    wrapped_err = Exception(text)

            http_err = HTTPError(resp.status_code, wrapped_err)
            if is_unauthorized(http_err):
                raise TransportError(f"{method} {url} was rejected, check login and password") from http_err
            raise TransportError(f"{method} {url} failed") from http_err

        return resp

    async def xml_request(
        self,
        method: str,
        path: str,
        xml_obj: etree._Element,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make an XML HTTP request.

        Args:
            method: HTTP method
            path: Request path
            xml_obj: XML object to send
            headers: Additional request headers

        Returns:
            HTTP response
        """
        xml_bytes = etree.tostring(
            xml_obj, encoding="utf-8", xml_declaration=True, pretty_print=False
        )

        req_headers = dict(headers or {})
        req_headers["Content-Type"] = "text/xml; charset=utf-8"

        return await self.request(method, path, content=xml_bytes, headers=req_headers)

    async def do_multistatus(
        self,
        method: str,
        path: str,
        xml_obj: etree._Element,
        depth: Depth,
    ) -> MultiStatus:
        """Perform a request expecting a multistatus response.

        Args:
            method: HTTP method
            path: Request path
            xml_obj: XML request body
            depth: Depth header value

        Returns:
            Parsed multistatus response

        Raises:
            TransportError: If the request fails
            MalformedResponseError: If the body is not a multistatus document
        """
        headers = {"Depth": depth_to_string(depth)}
        resp = await self.xml_request(method, path, xml_obj, headers=headers)

        if resp.status_code != 207:
            logger.debug("%s %s answered %d instead of 207", method, path, resp.status_code)

        return MultiStatus.from_bytes(resp.content)

    async def propfind(self, path: str, depth: Depth, propfind: PropFind) -> MultiStatus:
        """Perform a PROPFIND request.

        Args:
            path: Resource path
            depth: Depth header value
            propfind: PROPFIND request

        Returns:
            Multistatus response
        """
        return await self.do_multistatus("PROPFIND", path, propfind.to_xml(), depth)

    async def report(self, path: str, depth: Depth, query: etree._Element) -> MultiStatus:
        """Perform a REPORT request.

        Args:
            path: Collection path
            depth: Depth header value
            query: REPORT request body

        Returns:
            Multistatus response
        """
        return await self.do_multistatus("REPORT", path, query, depth)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.http_client.aclose()
