from pathlib import Path
from typing import List, Optional, Union

from ..rules import build_pattern_set
from ..types.diagnostic import Diagnostic, PatternSet, ReportingConfig, Severity

CONTEXT_BEFORE = 2
CONTEXT_AFTER = 2


def _message(match) -> str:
    # First capture group when the rule defines one, otherwise the whole match.
    if match.re.groups and match.group(1) is not None:
        return match.group(1)
    return match.group(0)


class DiagnosticClassifier:
    """Turns raw build log text into Diagnostics, one severity per pass.

    Each line is tried against that severity's rules in order and the first
    rule that matches wins. Unmatched lines are skipped, so odd or binary
    content never stops a scan. Errors and warnings are scanned
    independently: the same line may show up once in each.
    """

    def __init__(self, config: ReportingConfig, pattern_set: Optional[PatternSet] = None):
        self._config = config
        self._patterns = pattern_set if pattern_set is not None else build_pattern_set(config)

    def parse(self, log_text: str, severity: Severity) -> List[Diagnostic]:
        if not self._config.enabled(severity):
            return []

        rules = self._patterns.get(severity, ())
        lines = log_text.splitlines()
        found: List[Diagnostic] = []

        for index, line in enumerate(lines):
            for rule in rules:
                match = rule.pattern.search(line)
                if not match:
                    continue
                found.append(
                    Diagnostic(
                        category=rule.category,
                        message=_message(match),
                        line_number=index + 1,
                        context=tuple(lines[max(0, index - CONTEXT_BEFORE): index + CONTEXT_AFTER + 1]),
                        severity=severity,
                    )
                )
                break

        print(f"[classifier] {len(found)} {severity.value}(s) in {len(lines)} lines")
        return found


def read_log(path: Union[str, Path]) -> Optional[str]:
    """Return the log text, or None when the build never wrote it."""
    path = Path(path)
    if not path.is_file():
        print(f"[classifier] log at {path} does not exist")
        return None
    return path.read_bytes().decode("utf-8", errors="replace")
