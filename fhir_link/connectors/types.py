"""
Record types and data models for the connectors module.

Defines the Record/Link shapes produced by record sources and the
MergePair value extracted from them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def _text(value: Any) -> str:
    """Coerce a JSON scalar to str; missing values become ""."""
    if value is None:
        return ""
    return str(value)


class LinkType(str, Enum):
    """Patient.link types (FHIR link-type value set)."""

    REPLACED_BY = "replaced-by"
    REPLACES = "replaces"
    REFER = "refer"
    SEEALSO = "seealso"


@dataclass(frozen=True)
class Link:
    """
    Typed relationship from one record to another.

    ``type`` keeps the raw string from the server so unknown values never
    fail parsing; compare against ``LinkType`` members.
    """

    type: str
    target_reference: str = ""

    @property
    def target_id(self) -> str:
        """Last path segment of the reference ("Patient/B" -> "B")."""
        return self.target_reference.split("/")[-1]

    @classmethod
    def from_fhir(cls, data: dict[str, Any]) -> "Link":
        other = data.get("other")
        if not isinstance(other, dict):
            other = {}
        return cls(
            type=_text(data.get("type")),
            target_reference=_text(other.get("reference")),
        )


@dataclass(frozen=True)
class Record:
    """A patient-like record: an opaque id plus its ordered links."""

    id: str
    links: tuple[Link, ...] = field(default_factory=tuple)

    @classmethod
    def from_fhir(cls, resource: dict[str, Any]) -> "Record":
        """Build a Record from a FHIR Patient resource (full or _elements-subsetted)."""
        links = resource.get("link")
        if not isinstance(links, list):
            links = []
        return cls(
            id=_text(resource.get("id")),
            links=tuple(Link.from_fhir(link) for link in links if isinstance(link, dict)),
        )


@dataclass(frozen=True, order=True)
class MergePair:
    """``source_id`` was replaced by ``target_id``."""

    source_id: str
    target_id: str
