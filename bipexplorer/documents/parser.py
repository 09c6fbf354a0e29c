"""
Parse raw BIP source files into Documents.

Two dialects are supported, chosen by file extension:

- ``.mediawiki``: preamble inside ``<pre>`` (or before the first ``=`` heading),
  abstract under ``==Abstract==``.
- ``.md``: ``---`` front matter (or a leading fenced block), abstract under
  ``## Abstract``.

Parsing is best-effort. The only fatal condition is a filename without a
``-<digits>.<ext>`` suffix, which raises ParseFailure; every other missing field
is defaulted by PartialMetadata.resolve().
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from bipexplorer.config import GITHUB_BLOB_BASE
from bipexplorer.documents.models import BipStatus, BipType, Document
from bipexplorer.observability.logging import get_logger

logger = get_logger(__name__)

_NUMBER_RE = re.compile(r"-(\d+)\.[A-Za-z0-9]+$")
_KEY_VALUE_RE = re.compile(r"^\s*([A-Za-z][A-Za-z0-9_-]*)\s*:\s?(.*)$")
_EMAIL_RE = re.compile(r"<[^>]*>")
_AUTHOR_SPLIT_RE = re.compile(r"\s*(?:,|&|\band\b)\s*")
_INT_RE = re.compile(r"\d+")

_PRE_BLOCK_RE = re.compile(r"<pre>(.*?)</pre>", re.DOTALL)
_WIKI_HEADING_SPLIT_RE = re.compile(r"^=", re.MULTILINE)
_WIKI_ABSTRACT_RE = re.compile(
    r"^==\s*Abstract\s*==[ \t]*\n(.*?)(?=^=|\Z)", re.DOTALL | re.MULTILINE | re.IGNORECASE
)
_FRONT_MATTER_RE = re.compile(r"\A\s*---[ \t]*\n(.*?)\n---[ \t]*(?:\n|\Z)", re.DOTALL)
_FENCED_PREAMBLE_RE = re.compile(r"\A\s*```[^\n]*\n(.*?)\n```", re.DOTALL)
_MD_ABSTRACT_RE = re.compile(
    r"^##\s*Abstract[ \t]*\n(.*?)(?=^#|\Z)", re.DOTALL | re.MULTILINE | re.IGNORECASE
)

# Order matters: the first word contained in the raw status wins.
STATUS_PRIORITY: tuple[BipStatus, ...] = (
    BipStatus.DRAFT,
    BipStatus.FINAL,
    BipStatus.ACTIVE,
    BipStatus.PROPOSED,
    BipStatus.OBSOLETE,
    BipStatus.REJECTED,
    BipStatus.WITHDRAWN,
    BipStatus.REPLACED,
    BipStatus.DEFERRED,
)

_AUTHOR_KEYS = ("author", "authors")
_REPLACED_BY_KEYS = ("replaced-by", "superseded-by")


class ParseFailure(ValueError):
    """Raised when a document number cannot be derived from the filename."""


@dataclass
class PartialMetadata:
    """Preamble fields as found in the source; None means absent."""

    title: str | None = None
    authors: list[str] = field(default_factory=list)
    status: str | None = None
    type: str | None = None
    created: str | None = None
    layer: str | None = None
    comments: str | None = None
    replaces: list[int] | None = None
    replaced_by: list[int] | None = None
    abstract: str | None = None

    def resolve(self, number: int, filename: str, content: str) -> Document:
        """Apply the defaulting policy and build the Document."""
        return Document(
            number=number,
            title=self.title or f"BIP {number}",
            authors=self.authors or ["Unknown"],
            status=normalize_status(self.status),
            type=normalize_type(self.type),
            created=self.created or "",
            abstract=self.abstract or "",
            content=content,
            source_filename=filename,
            source_url=f"{GITHUB_BLOB_BASE}/{filename}",
            layer=self.layer or None,
            comments=self.comments or None,
            replaces=self.replaces or None,
            replaced_by=self.replaced_by or None,
        )


def extract_number(filename: str) -> int | None:
    """Return the digits of ``*-<digits>.<ext>``, or None."""
    match = _NUMBER_RE.search(filename)
    if not match:
        return None
    number = int(match.group(1))
    return number if number > 0 else None


def split_authors(raw: str) -> list[str]:
    """
    Split an author field into names.

    Splits on comma, ``&`` and the word ``and``; strips ``<email>`` parts and
    drops empty segments.
    """
    without_emails = _EMAIL_RE.sub("", raw)
    names = []
    for part in _AUTHOR_SPLIT_RE.split(without_emails):
        name = part.strip().strip("\"'").strip()
        if name:
            names.append(name)
    return names


def normalize_status(raw: str | None) -> BipStatus:
    if not raw:
        return BipStatus.DRAFT
    lowered = raw.lower()
    for status in STATUS_PRIORITY:
        if status.value.lower() in lowered:
            return status
    return BipStatus.DRAFT


def normalize_type(raw: str | None) -> BipType:
    if not raw:
        return BipType.STANDARDS_TRACK
    lowered = raw.lower()
    if "standard" in lowered:
        return BipType.STANDARDS_TRACK
    if "informational" in lowered:
        return BipType.INFORMATIONAL
    if "process" in lowered:
        return BipType.PROCESS
    return BipType.STANDARDS_TRACK


def _parse_numbers(raw: str) -> list[int]:
    return [int(n) for n in _INT_RE.findall(raw)]


def _read_preamble(block: str, strip_quotes: bool = False) -> dict[str, str]:
    """
    Read ``Key: value`` lines into a dict keyed by lowercased key.

    Indented lines that do not start a new key continue the previous value,
    which is how the upstream preamble lists additional authors.
    """
    fields: dict[str, str] = {}
    last_key: str | None = None
    for line in block.splitlines():
        if not line.strip():
            continue
        match = _KEY_VALUE_RE.match(line)
        if match and not match.group(2).startswith("//"):
            last_key = match.group(1).lower()
            value = match.group(2).strip()
            if strip_quotes:
                value = value.strip("\"'")
            fields[last_key] = value
        elif last_key is not None and line[:1].isspace():
            separator = ", " if last_key in _AUTHOR_KEYS else " "
            previous = fields.get(last_key, "")
            fields[last_key] = f"{previous}{separator}{line.strip()}" if previous else line.strip()
    return fields


def _metadata_from_fields(fields: dict[str, str]) -> PartialMetadata:
    meta = PartialMetadata()
    meta.title = fields.get("title") or None
    for key in _AUTHOR_KEYS:
        if fields.get(key):
            meta.authors = split_authors(fields[key])
            break
    meta.status = fields.get("status") or None
    meta.type = fields.get("type") or None
    meta.created = fields.get("created") or None
    meta.layer = fields.get("layer") or None
    meta.comments = fields.get("comments-summary") or fields.get("comments") or None
    if fields.get("replaces"):
        meta.replaces = _parse_numbers(fields["replaces"])
    for key in _REPLACED_BY_KEYS:
        if fields.get(key):
            meta.replaced_by = _parse_numbers(fields[key])
            break
    return meta


def parse_mediawiki(content: str) -> PartialMetadata:
    """Extract metadata from the legacy wiki dialect."""
    pre = _PRE_BLOCK_RE.search(content)
    if pre:
        preamble = pre.group(1)
    else:
        preamble = _WIKI_HEADING_SPLIT_RE.split(content, maxsplit=1)[0]

    meta = _metadata_from_fields(_read_preamble(preamble))

    abstract = _WIKI_ABSTRACT_RE.search(content)
    if abstract:
        meta.abstract = abstract.group(1).strip()
    return meta


def parse_markdown(content: str) -> PartialMetadata:
    """Extract metadata from the markdown dialect."""
    block = _FRONT_MATTER_RE.search(content) or _FENCED_PREAMBLE_RE.search(content)
    fields = _read_preamble(block.group(1), strip_quotes=True) if block else {}
    meta = _metadata_from_fields(fields)

    abstract = _MD_ABSTRACT_RE.search(content)
    if abstract:
        meta.abstract = abstract.group(1).strip()
    return meta


def parse_document(raw_text: str, filename: str) -> Document:
    """
    Parse one source file into a Document.

    Args:
        raw_text: Full file contents
        filename: Upstream filename, e.g. ``bip-0141.mediawiki``

    Returns:
        Document with defaults applied for any missing preamble field

    Raises:
        ParseFailure: If the number cannot be derived from the filename
    """
    number = extract_number(filename)
    if number is None:
        raise ParseFailure(f"Cannot derive BIP number from filename: {filename}")

    text = raw_text.replace("\r\n", "\n")
    if filename.lower().endswith(".md"):
        meta = parse_markdown(text)
    else:
        meta = parse_mediawiki(text)

    return meta.resolve(number, filename, raw_text)
