from dupsweep.fingerprint.service import FingerprintError, fingerprint_file
from dupsweep.fingerprint.types import Fingerprint

__all__ = [
    "Fingerprint",
    "FingerprintError",
    "fingerprint_file",
]
