import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Pattern, Tuple


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class PatternRule:
    pattern: Pattern[str]
    category: str

    @classmethod
    def compile(cls, pattern: str, category: str) -> "PatternRule":
        return cls(pattern=re.compile(pattern), category=category)


@dataclass(frozen=True)
class Diagnostic:
    category: str
    message: str
    line_number: int
    context: Tuple[str, ...]
    severity: Severity


PatternSet = Dict[Severity, Tuple[PatternRule, ...]]


@dataclass(frozen=True)
class ReportingConfig:
    report_errors: bool = True
    report_warnings: bool = True
    error_patterns: Tuple[PatternRule, ...] = field(default_factory=tuple)
    warning_patterns: Tuple[PatternRule, ...] = field(default_factory=tuple)

    def enabled(self, severity: Severity) -> bool:
        if severity is Severity.ERROR:
            return self.report_errors
        return self.report_warnings

    def user_patterns(self, severity: Severity) -> Tuple[PatternRule, ...]:
        if severity is Severity.ERROR:
            return self.error_patterns
        return self.warning_patterns
