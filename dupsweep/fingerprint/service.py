from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any

import blake3

from dupsweep.db.models import HashAlgorithm
from dupsweep.fingerprint.types import Fingerprint

DEFAULT_CHUNK_BYTES = 1024 * 1024


class FingerprintError(OSError):
    pass


def _new_hasher(algorithm: HashAlgorithm) -> Any:
    if algorithm == HashAlgorithm.BLAKE3:
        return blake3.blake3()
    if algorithm == HashAlgorithm.SHA256:
        return hashlib.sha256()
    raise ValueError(f"Unsupported hash algorithm: {algorithm}")


def fingerprint_file(
    path: str | Path,
    algorithm: HashAlgorithm | str = HashAlgorithm.SHA256,
    chunk_bytes: int = DEFAULT_CHUNK_BYTES,
) -> Fingerprint:
    """Hash the whole file in ``chunk_bytes`` pieces.

    The returned size is the number of bytes that went through the hash, so it always
    agrees with the digest even if the file is being written to concurrently.
    """
    normalized = HashAlgorithm(algorithm)
    if chunk_bytes <= 0:
        raise ValueError("chunk_bytes must be greater than zero")

    hasher = _new_hasher(normalized)
    size = 0
    try:
        with open(path, "rb") as handle:
            while chunk := handle.read(chunk_bytes):
                hasher.update(chunk)
                size += len(chunk)
    except OSError as exc:
        raise FingerprintError(exc.errno, f"Cannot fingerprint {path}: {exc.strerror or exc}") from exc

    return Fingerprint(algorithm=normalized, digest=hasher.hexdigest(), size=size)
