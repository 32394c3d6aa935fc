"""WebDAV XML elements."""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import ParseResult as URL, urlparse

from lxml import etree

from ..errors import MalformedResponseError

# WebDAV namespace
NAMESPACE = "DAV:"
CARDDAV_NAMESPACE = "urn:ietf:params:xml:ns:carddav"
CALENDARSERVER_NAMESPACE = "http://calendarserver.org/ns/"
NSMAP = {"D": NAMESPACE, "C": CARDDAV_NAMESPACE, "CS": CALENDARSERVER_NAMESPACE}

# Common XML names
RESOURCE_TYPE = "{DAV:}resourcetype"
GET_LAST_MODIFIED = "{DAV:}getlastmodified"
GET_ETAG = "{DAV:}getetag"
COLLECTION = "{DAV:}collection"
CURRENT_USER_PRINCIPAL = "{DAV:}current-user-principal"
SYNC_TOKEN = "{DAV:}sync-token"
ADDRESSBOOK = f"{{{CARDDAV_NAMESPACE}}}addressbook"
ADDRESSBOOK_HOME_SET = f"{{{CARDDAV_NAMESPACE}}}addressbook-home-set"
ADDRESSBOOK_QUERY = f"{{{CARDDAV_NAMESPACE}}}addressbook-query"
ADDRESS_DATA = f"{{{CARDDAV_NAMESPACE}}}address-data"
GET_CTAG = f"{{{CALENDARSERVER_NAMESPACE}}}getctag"


@dataclass
class Status:
    """HTTP status line carried by a WebDAV response or propstat."""

    raw: str
    code: int = 0

    @staticmethod
    def from_string(s: str) -> Status:
        """Unmarshal status from text.

        An unparsable code is left at 0; the raw text is always kept.
        """
        s = s.strip()
        parts = s.split(" ", 2)
        code = 0
        if len(parts) >= 2 and parts[1].isdigit():
            code = int(parts[1])
        return Status(raw=s, code=code)

    def is_ok(self) -> bool:
        """Check whether the status line reports ``200 OK``."""
        return self.raw.endswith("200 OK")


@dataclass
class Href:
    """WebDAV href element."""

    url: URL

    def __str__(self) -> str:
        return self.url.geturl()

    @property
    def path(self) -> str:
        return self.url.path

    @staticmethod
    def from_string(s: str) -> Href:
        """Parse href from string."""
        return Href(url=urlparse(s.strip()))


@dataclass
class Prop:
    """WebDAV prop element."""

    raw: list[etree._Element] = field(default_factory=list)

    def to_xml(self) -> etree._Element:
        """Convert to XML element."""
        prop = etree.Element(f"{{{NAMESPACE}}}prop", nsmap=NSMAP)
        for elem in self.raw:
            prop.append(elem)
        return prop

    @staticmethod
    def from_xml(element: etree._Element) -> Prop:
        """Parse from XML element."""
        return Prop(raw=list(element))

    @staticmethod
    def named(*tags: str) -> Prop:
        """Build a prop element requesting the given properties."""
        return Prop(raw=[etree.Element(tag, nsmap=NSMAP) for tag in tags])

    def get(self, tag: str) -> etree._Element | None:
        """Get a property by tag name."""
        for elem in self.raw:
            if elem.tag == tag:
                return elem
        return None


@dataclass
class PropStat:
    """WebDAV propstat element."""

    prop: Prop
    status: Status | None = None

    @staticmethod
    def from_xml(element: etree._Element) -> PropStat:
        """Parse from XML element."""
        prop_el = element.find(f"{{{NAMESPACE}}}prop")
        prop = Prop.from_xml(prop_el) if prop_el is not None else Prop()

        status_el = element.find(f"{{{NAMESPACE}}}status")
        status = None
        if status_el is not None and status_el.text:
            status = Status.from_string(status_el.text)

        return PropStat(prop=prop, status=status)

    def is_success(self) -> bool:
        """Check whether the properties in this propstat were found.

        A propstat without a status line is treated as successful.
        """
        return self.status is None or self.status.code // 100 == 2


@dataclass
class Response:
    """WebDAV response element."""

    hrefs: list[Href] = field(default_factory=list)
    propstats: list[PropStat] = field(default_factory=list)
    status: Status | None = None

    @staticmethod
    def from_xml(element: etree._Element) -> Response:
        """Parse from XML element."""
        hrefs = []
        for href_el in element.findall(f"{{{NAMESPACE}}}href"):
            if href_el.text and href_el.text.strip():
                hrefs.append(Href.from_string(href_el.text))

        propstats = []
        for ps_el in element.findall(f"{{{NAMESPACE}}}propstat"):
            propstats.append(PropStat.from_xml(ps_el))

        status_el = element.find(f"{{{NAMESPACE}}}status")
        status = None
        if status_el is not None and status_el.text:
            status = Status.from_string(status_el.text)

        return Response(hrefs=hrefs, propstats=propstats, status=status)

    @property
    def href(self) -> Href:
        """The single resource reference of this response.

        Raises:
            MalformedResponseError: If the response has no href
        """
        if not self.hrefs:
            raise MalformedResponseError("webdav: malformed response: missing href element")
        return self.hrefs[0]

    def first_status(self) -> Status | None:
        """Status of the first propstat, falling back to the response status."""
        for propstat in self.propstats:
            if propstat.status is not None:
                return propstat.status
        return self.status

    def find_prop(self, tag: str) -> etree._Element | None:
        """Find a property among the successful propstats of this response."""
        for propstat in self.propstats:
            if not propstat.is_success():
                continue
            elem = propstat.prop.get(tag)
            if elem is not None:
                return elem
        return None


@dataclass
class MultiStatus:
    """WebDAV multistatus response."""

    responses: list[Response] = field(default_factory=list)
    sync_token: str = ""

    @staticmethod
    def from_xml(element: etree._Element) -> MultiStatus:
        """Parse from XML element.

        Raises:
            MalformedResponseError: If the element is not a multistatus
        """
        if element.tag != f"{{{NAMESPACE}}}multistatus":
            raise MalformedResponseError(
                f"webdav: expected multistatus element, got {element.tag}"
            )

        responses = []
        for resp_el in element.findall(f"{{{NAMESPACE}}}response"):
            responses.append(Response.from_xml(resp_el))

        sync_token_el = element.find(f"{{{NAMESPACE}}}sync-token")
        sync_token = (sync_token_el.text or "") if sync_token_el is not None else ""

        return MultiStatus(responses=responses, sync_token=sync_token)

    @staticmethod
    def from_bytes(content: bytes) -> MultiStatus:
        """Parse a multistatus document.

        Raises:
            MalformedResponseError: If the content is not well-formed XML
                or not a multistatus document
        """
        try:
            root = etree.fromstring(content)
        except (etree.XMLSyntaxError, ValueError) as e:
            raise MalformedResponseError("webdav: could not parse multistatus body") from e
        return MultiStatus.from_xml(root)


@dataclass
class PropFind:
    """WebDAV PROPFIND request."""

    prop: Prop

    def to_xml(self) -> etree._Element:
        """Convert to XML element."""
        pf = etree.Element(f"{{{NAMESPACE}}}propfind", nsmap=NSMAP)
        pf.append(self.prop.to_xml())
        return pf


@dataclass
class ResourceType:
    """WebDAV resourcetype property."""

    types: list[str] = field(default_factory=list)

    def is_type(self, tag: str) -> bool:
        """Check if resource has a specific type."""
        return tag in self.types

    @staticmethod
    def from_xml(element: etree._Element) -> ResourceType:
        """Parse from XML element."""
        types = [child.tag for child in element if isinstance(child.tag, str)]
        return ResourceType(types=types)


def href_child(element: etree._Element) -> Href | None:
    """Return the ``D:href`` child of a property element, if any."""
    href_el = element.find(f"{{{NAMESPACE}}}href")
    if href_el is None or not href_el.text or not href_el.text.strip():
        return None
    return Href.from_string(href_el.text)
