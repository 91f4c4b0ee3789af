"""Local storage: the vault directory seen through vault-relative paths.

All paths handed to and returned by ``LocalStorage`` are POSIX-style and
relative to the vault root (``"notes/todo.md"``). Resolution refuses paths
that escape the root.

Text reads use charset-normalizer so documents in legacy encodings still
yield usable text for attachment scanning.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterator
from pathlib import Path

from charset_normalizer import from_bytes

logger = logging.getLogger(__name__)


class LocalStorage:
    """File operations rooted at a vault directory.

    Args:
        root: Absolute or relative path of the vault directory.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    # =========================================================================
    # Path handling
    # =========================================================================

    def resolve(self, rel_path: str) -> Path:
        """Return the absolute path for *rel_path*.

        Raises:
            ValueError: If the path is absolute or escapes the vault root.
        """
        if Path(rel_path).is_absolute():
            raise ValueError(f"Path must be vault-relative: {rel_path}")
        resolved = (self.root / rel_path).resolve()
        if not resolved.is_relative_to(self.root):
            raise ValueError(
                f"Path is outside the vault: {rel_path}"
            )
        return resolved

    def relative(self, path: Path) -> str:
        """Return the vault-relative POSIX path of an absolute *path*."""
        return path.resolve().relative_to(self.root).as_posix()

    # =========================================================================
    # Queries
    # =========================================================================

    def exists(self, rel_path: str) -> bool:
        return self.resolve(rel_path).exists()

    def is_file(self, rel_path: str) -> bool:
        return self.resolve(rel_path).is_file()

    def list_files(self, folder: str = "") -> Iterator[str]:
        """Yield every file below *folder*, depth first, sorted per level."""
        base = self.resolve(folder) if folder else self.root
        if not base.is_dir():
            return
        for child in sorted(base.iterdir(), key=lambda p: p.name):
            if child.is_symlink():
                continue
            if child.is_dir():
                yield from self.list_files(self.relative(child))
            elif child.is_file():
                yield self.relative(child)

    # =========================================================================
    # Read/Write
    # =========================================================================

    def read_bytes(self, rel_path: str) -> bytes:
        return self.resolve(rel_path).read_bytes()

    def read_text(self, rel_path: str) -> str:
        """Read a text file with automatic encoding detection.

        Defaults to UTF-8 for empty files or when detection fails.
        """
        raw = self.read_bytes(rel_path)
        if not raw:
            return ""
        result = from_bytes(raw).best()
        if result is None:
            return raw.decode("utf-8", errors="replace")
        return str(result)

    def write_bytes(self, rel_path: str, data: bytes) -> int:
        """Create or overwrite a file. The parent folder must exist."""
        path = self.resolve(rel_path)
        path.write_bytes(data)
        return len(data)

    def create_folder(self, rel_path: str) -> None:
        """Create *rel_path* and any missing parents."""
        self.resolve(rel_path).mkdir(parents=True, exist_ok=True)

    def delete(self, rel_path: str) -> None:
        """Delete a file or a folder tree."""
        path = self.resolve(rel_path)
        if path.is_dir():
            shutil.rmtree(path)
        else:
            path.unlink()
        logger.debug("Deleted %s", rel_path)
