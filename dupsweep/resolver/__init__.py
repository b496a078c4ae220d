from dupsweep.resolver.service import DuplicateResolver, FilesystemMoveError, move_to_quarantine
from dupsweep.resolver.types import Resolution, ResolutionOutcome

__all__ = [
    "DuplicateResolver",
    "FilesystemMoveError",
    "Resolution",
    "ResolutionOutcome",
    "move_to_quarantine",
]
