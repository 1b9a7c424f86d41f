"""Validation of generated files before delivery.

Key classes:
    Validator        - Staging, per-stack syntax checks, cleanup
    SecurityScanner  - Pattern-based heuristic scan with per-rule severity
"""

from .security import DEFAULT_RULES, ScanFinding, SecurityRule, SecurityScanner, Severity
from .validator import Validator

__all__ = [
    "Validator",
    # Security scan
    "SecurityScanner",
    "SecurityRule",
    "ScanFinding",
    "Severity",
    "DEFAULT_RULES",
]
