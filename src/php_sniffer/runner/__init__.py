from .process_runner import ProcessRunner, RunOptions
from .run_handle import CancellationToken, RunHandle

__all__ = ["ProcessRunner", "RunOptions", "CancellationToken", "RunHandle"]
