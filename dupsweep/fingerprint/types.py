from __future__ import annotations

from dataclasses import dataclass

from dupsweep.db.models import HashAlgorithm


@dataclass(frozen=True, slots=True)
class Fingerprint:
    algorithm: HashAlgorithm
    digest: str
    size: int

    @property
    def key(self) -> str:
        return f"{self.algorithm.value}:{self.size}:{self.digest}"
