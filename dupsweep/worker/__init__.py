from dupsweep.worker.dispatcher import DispatchSummary, WorkDispatcher
from dupsweep.worker.pipeline import RunContext, process_path, run_deduplication

__all__ = [
    "DispatchSummary",
    "RunContext",
    "WorkDispatcher",
    "process_path",
    "run_deduplication",
]
