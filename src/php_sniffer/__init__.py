from .diagnostics_store import DiagnosticStore
from .report import Diagnostic, DiagnosticSeverity, parse
from .validator import Validator

__version__ = "0.1.0"

__all__ = [
    "DiagnosticStore",
    "Diagnostic",
    "DiagnosticSeverity",
    "parse",
    "Validator",
]
