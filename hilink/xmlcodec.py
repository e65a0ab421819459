"""XML request bodies and responses of the HiLink web API.

Requests are flat ``<request>`` documents::

    <?xml version="1.0" encoding="utf-8"?><request><username>admin</username></request>

Responses are either a ``<response>`` document carrying the result fields or
an ``<error>`` document carrying ``<code>`` and, for login lockouts,
``<waittime>``.
"""

from __future__ import annotations

from collections.abc import Iterable

from lxml import etree

from .exceptions import ProtocolError

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'

_PARSER = etree.XMLParser(
    resolve_entities=False, no_network=True, remove_blank_text=True
)


def build_request(fields: Iterable[tuple[str, str]]) -> str:
    """Build a request body from (name, value) pairs, keeping their order."""
    root = etree.Element("request")
    for name, value in fields:
        try:
            etree.SubElement(root, name).text = value
        except ValueError as ex:
            raise ProtocolError(f"Cannot encode request field {name}: {ex}") from ex
    return XML_DECLARATION + etree.tostring(root, encoding="unicode")


class XmlResponse:
    """A parsed response document with dotted path access to its fields.

    >>> doc = XmlResponse.from_bytes(b"<response><salt>aabb</salt></response>")
    >>> doc.get("response.salt")
    'aabb'
    >>> doc.get("error.waittime") is None
    True
    """

    def __init__(self, root: etree._Element) -> None:
        self._root = root

    @classmethod
    def from_bytes(cls, data: bytes | str) -> XmlResponse:
        """Parse a response body."""
        if isinstance(data, str):
            data = data.encode()
        if not data or not data.strip():
            raise ProtocolError("Device returned an empty response body")
        try:
            root = etree.fromstring(data, parser=_PARSER)
        except etree.XMLSyntaxError as ex:
            raise ProtocolError(f"Device returned malformed XML: {ex}") from ex
        return cls(root)

    @property
    def root_tag(self) -> str:
        """Name of the document element, ``response`` or ``error``."""
        return self._root.tag

    @property
    def is_error(self) -> bool:
        """Return True for an ``<error>`` document."""
        return self.root_tag == "error"

    def get(self, path: str) -> str | None:
        """Return the text at ``root.field``, None if it is absent.

        Surrounding whitespace is stripped.
        """
        root_tag, _, field = path.partition(".")
        if root_tag != self.root_tag or not field:
            return None
        text = self._root.findtext(field.replace(".", "/"))
        if text is None:
            return None
        return text.strip()

    def require(self, path: str) -> str:
        """Return the text at ``path``, raising ProtocolError if absent or empty."""
        if not (value := self.get(path)):
            raise ProtocolError(f"Device response is missing {path}")
        return value

    def to_dict(self) -> dict[str, str | None]:
        """Return the direct children of the document element as a dict."""
        return {
            child.tag: (child.text.strip() if child.text else None)
            for child in self._root
            if isinstance(child.tag, str)
        }

    def __repr__(self) -> str:
        return f"<XmlResponse {self.root_tag} {self.to_dict()}>"
