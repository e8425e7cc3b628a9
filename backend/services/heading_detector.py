"""Line-level heading heuristics used while chunking plain text."""
import re
from typing import Dict, List, Optional

from config import MAX_HEADING_LENGTH, MAX_CONTENT_HEADING_LENGTH

MARKDOWN_HEADING = re.compile(r"^#{1,6}\s+\S.*$")
NUMBERED_HEADING = re.compile(r"^(\d+[.)]|[A-Z][.)])\s+\S.*$")
BULLET_HEADING = re.compile(r"^[-*•]\s+\S.*$")
UPPERCASE_HEADING = re.compile(r"^[A-ZÁÉÍÓÚÜÑ0-9][A-ZÁÉÍÓÚÜÑ0-9\s,:;()'\"-]{3,}$")

# Structural markers anywhere in a document
_MARKDOWN_ANYWHERE = re.compile(r"^#{1,6}\s+\S", re.MULTILINE)
_NUMBERED_ANYWHERE = re.compile(r"^(\d+[.)]|[A-Z][.)])\s+\S", re.MULTILINE)

_MARKER_PREFIXES = (
    re.compile(r"^#{1,6}\s*"),
    re.compile(r"^\d+[.)]\s*"),
    re.compile(r"^[A-Z][.)]\s+"),
    re.compile(r"^[-*•]\s*"),
)


def is_heading_candidate(line: Optional[str]) -> bool:
    """
    Decide whether a single line looks like a section heading.

    Any of markdown (`## Title`), numbered (`3. Title`, `B) Title`),
    bulleted (`- Title`) or all-caps lines qualify. Lines longer than
    MAX_HEADING_LENGTH never do.
    """
    if not line:
        return False
    if len(line) > MAX_HEADING_LENGTH:
        return False

    trimmed = line.strip()
    return bool(
        MARKDOWN_HEADING.match(trimmed)
        or NUMBERED_HEADING.match(trimmed)
        or BULLET_HEADING.match(trimmed)
        or UPPERCASE_HEADING.fullmatch(trimmed)
    )


def normalize_heading(raw_heading: Optional[str]) -> Optional[str]:
    """Strip leading heading markers and surrounding whitespace; None if nothing remains."""
    if not raw_heading:
        return None

    heading = raw_heading.strip()
    # Markers stack, as in "## 1. Introduction"
    for prefix in _MARKER_PREFIXES:
        heading = prefix.sub("", heading, count=1)

    return heading.strip() or None


def collect_headings(lines: List[str]) -> Dict[int, str]:
    """Build the heading index: zero-based line number -> normalized heading text."""
    headings: Dict[int, str] = {}
    for index, line in enumerate(lines):
        if is_heading_candidate(line):
            normalized = normalize_heading(line)
            if normalized:
                headings[index] = normalized
    return headings


def has_structural_markers(text: str) -> bool:
    """True when any line of the text is a markdown or numbered heading."""
    return bool(_MARKDOWN_ANYWHERE.search(text) or _NUMBERED_ANYWHERE.search(text))


def find_nearest_heading(start_line: Optional[int], headings: Dict[int, str]) -> Optional[str]:
    """Return the closest heading at or before start_line."""
    if start_line is None:
        return None
    for index in range(start_line, -1, -1):
        if index in headings:
            return headings[index]
    return None


def infer_heading_from_content(content: str) -> Optional[str]:
    """
    Fall back to the chunk's own text for a heading.

    Prefers the first heading-like line; otherwise the first line short
    enough to read as a title.
    """
    lines = [line.strip() for line in content.split("\n") if line.strip()]

    for line in lines:
        if is_heading_candidate(line):
            normalized = normalize_heading(line)
            if normalized:
                return normalized

    for line in lines:
        if len(line) <= MAX_CONTENT_HEADING_LENGTH:
            return line

    return None
