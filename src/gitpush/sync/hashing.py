"""Git-compatible content addressing.

GitHub reports blob SHAs in its tree listings, so hashing local bytes with
the same salted scheme lets a file be compared to its remote copy without
downloading it.
"""

from __future__ import annotations

import hashlib


def git_blob_hash(data: bytes) -> str:
    """Return the git blob SHA-1 of *data* as 40 lowercase hex chars.

    The digest covers ``b"blob <size>\\0"`` followed by the raw bytes,
    which is exactly what ``git hash-object`` computes.
    """
    header = f"blob {len(data)}\0".encode("ascii")
    return hashlib.sha1(header + data).hexdigest()
