from dupsweep.scanner.walker import iter_candidate_paths

__all__ = ["iter_candidate_paths"]
