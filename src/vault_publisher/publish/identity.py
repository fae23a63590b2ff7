"""Content addressing compatible with git blob object IDs."""

from __future__ import annotations

import hashlib


def content_identity(data: bytes) -> str:
    """Return the git blob object ID of *data*.

    Git blob OID = SHA-1(``blob <size>\\0`` + content).  The result is the
    same 40-character hex string the remote store reports for a blob with
    identical content, so the two can be compared without any network
    round trip.
    """
    hasher = hashlib.sha1(f"blob {len(data)}\0".encode("ascii"))
    hasher.update(data)
    return hasher.hexdigest()
