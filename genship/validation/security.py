"""Heuristic security scan over generated source files.

Pattern matching only: each rule is a regex with a declared severity. A rule
fires at most once per file. ``SECURITY`` findings go to
``ValidationResult.security_issues`` and ``WARNING`` findings to
``ValidationResult.warnings``; neither affects validity.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from genship.models import ValidationResult


class Severity(str, Enum):
    SECURITY = "security"
    WARNING = "warning"


@dataclass(frozen=True)
class SecurityRule:
    """A named pattern, its severity and the message template (``{file}``)."""

    name: str
    pattern: re.Pattern[str]
    severity: Severity
    message: str


@dataclass(frozen=True)
class ScanFinding:
    rule: str
    severity: Severity
    file: str
    message: str


DEFAULT_RULES: tuple[SecurityRule, ...] = (
    SecurityRule(
        name="eval",
        pattern=re.compile(r"\beval\s*\("),
        severity=Severity.SECURITY,
        message="{file}: Use of eval() detected - security risk",
    ),
    SecurityRule(
        name="innerHTML",
        pattern=re.compile(r"\binnerHTML\b"),
        severity=Severity.WARNING,
        message="{file}: Use of innerHTML detected - consider using textContent or createElement",
    ),
    SecurityRule(
        name="document.write",
        pattern=re.compile(r"\bdocument\.write(?:ln)?\b"),
        severity=Severity.SECURITY,
        message="{file}: Use of document.write detected - security risk",
    ),
    SecurityRule(
        name="hardcoded password",
        pattern=re.compile(r"password\s*[:=]\s*['\"][^'\"]*['\"]", re.IGNORECASE),
        severity=Severity.SECURITY,
        message="{file}: Potential hardcoded secret detected (password)",
    ),
    SecurityRule(
        name="hardcoded api key",
        pattern=re.compile(r"api[_-]?key\s*[:=]\s*['\"][^'\"]*['\"]", re.IGNORECASE),
        severity=Severity.SECURITY,
        message="{file}: Potential hardcoded secret detected (api key)",
    ),
    SecurityRule(
        name="hardcoded secret",
        pattern=re.compile(r"secret\s*[:=]\s*['\"][^'\"]*['\"]", re.IGNORECASE),
        severity=Severity.SECURITY,
        message="{file}: Potential hardcoded secret detected (secret)",
    ),
)

SCANNABLE_EXTENSIONS = frozenset({
    ".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".vue", ".py", ".html",
})


class SecurityScanner:
    """Applies ``SecurityRule`` patterns to files."""

    def __init__(
        self,
        rules: tuple[SecurityRule, ...] = DEFAULT_RULES,
        extensions: frozenset[str] = SCANNABLE_EXTENSIONS,
    ) -> None:
        self.rules = rules
        self.extensions = extensions

    def is_scannable(self, filename: str) -> bool:
        return Path(filename).suffix.lower() in self.extensions

    def scan_text(self, filename: str, content: str) -> list[ScanFinding]:
        """Return the findings for one file, in rule order."""
        findings: list[ScanFinding] = []
        for rule in self.rules:
            if rule.pattern.search(content):
                findings.append(
                    ScanFinding(
                        rule=rule.name,
                        severity=rule.severity,
                        file=filename,
                        message=rule.message.format(file=filename),
                    )
                )
        return findings

    def scan_directory(self, root: Path) -> list[ScanFinding]:
        """Scan every scannable file under *root*, in sorted path order.

        File names in findings are POSIX paths relative to *root*.
        """
        findings: list[ScanFinding] = []
        for path in sorted(p for p in root.rglob("*") if p.is_file()):
            rel = path.relative_to(root).as_posix()
            if not self.is_scannable(rel):
                continue
            content = path.read_text(encoding="utf-8", errors="replace")
            findings.extend(self.scan_text(rel, content))
        return findings

    @staticmethod
    def apply(findings: list[ScanFinding], result: ValidationResult) -> None:
        """Append *findings* to the list matching each finding's severity."""
        for finding in findings:
            if finding.severity is Severity.SECURITY:
                result.security_issues.append(finding.message)
            else:
                result.warnings.append(finding.message)
