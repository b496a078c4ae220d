from __future__ import annotations

import base64


def encode_cursor(prefix: str, anchor_id: int) -> str:
    raw = f"{prefix}:{anchor_id}".encode("ascii")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(prefix: str, cursor: str) -> int:
    """Return the row id carried by ``cursor``; raises ``ValueError`` for anything else."""
    token = cursor.strip()
    if not token:
        raise ValueError(f"Invalid {prefix} cursor")
    padded = token + ("=" * (-len(token) % 4))
    try:
        decoded = base64.urlsafe_b64decode(padded.encode("ascii")).decode("ascii")
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValueError(f"Invalid {prefix} cursor") from exc

    marker, _, raw_id = decoded.partition(":")
    if marker != prefix:
        raise ValueError(f"Invalid {prefix} cursor")
    try:
        anchor = int(raw_id)
    except ValueError as exc:
        raise ValueError(f"Invalid {prefix} cursor") from exc
    if anchor < 1:
        raise ValueError(f"Invalid {prefix} cursor")
    return anchor
