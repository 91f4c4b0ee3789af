"""Attachment references embedded in Markdown documents.

Two reference forms are recognised::

    ![[diagram.png]]          ![[diagram.png|300]]   ![[page#section]]
    ![alt text](img/photo.jpg)

Extraction is a pure function of the document text; resolution maps a
reference name to a vault file the way wiki-style links resolve.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Iterable

from gitpush.storage import LocalStorage

logger = logging.getLogger(__name__)

ATTACHMENT_RE = re.compile(r"!\[\[(.*?)\]\]|!\[.*?\]\((.*?)\)")


def extract_attachment_refs(text: str) -> list[str]:
    """Return attachment names referenced by *text*, in first-seen order.

    ``|alias`` and ``#anchor`` suffixes are stripped; empty names are
    dropped and duplicates kept once.
    """
    names: list[str] = []
    seen: set[str] = set()
    for match in ATTACHMENT_RE.finditer(text):
        raw = match.group(1) if match.group(1) is not None else match.group(2)
        name = raw.split("|")[0].split("#")[0].strip()
        if name and name not in seen:
            seen.add(name)
            names.append(name)
    return names


def is_image(path: str, extensions: Iterable[str]) -> bool:
    """True when *path* has one of *extensions* (case-insensitive)."""
    ext = posixpath.splitext(path)[1].lstrip(".").lower()
    return ext in {e.lower().lstrip(".") for e in extensions}


def resolve_attachment(
    name: str,
    document_path: str,
    storage: LocalStorage,
    candidates: Iterable[str] = (),
) -> str | None:
    """Resolve an attachment reference to a vault-relative file path.

    Lookup order:

    1. Relative to the folder of *document_path*.
    2. Relative to the vault root.
    3. By file name among *candidates*; the shortest path wins.

    Returns ``None`` when nothing matches.
    """
    name = name.lstrip("/")
    folder = posixpath.dirname(document_path)
    for candidate in (posixpath.join(folder, name), name):
        candidate = posixpath.normpath(candidate)
        if candidate.startswith(".."):
            continue
        try:
            if storage.is_file(candidate):
                return candidate
        except ValueError:
            continue

    base = posixpath.basename(name)
    matches = sorted(
        (c for c in candidates if posixpath.basename(c) == base),
        key=lambda c: (len(c), c),
    )
    if matches:
        return matches[0]
    logger.debug("Unresolved attachment '%s' in %s", name, document_path)
    return None
