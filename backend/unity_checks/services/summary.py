import re
from typing import Dict, List, Sequence

from ..types.diagnostic import Diagnostic, Severity

_BACKTICKS_RE = re.compile(r"`{3,}")


def _fence(context: Sequence[str]) -> str:
    # Longer than any backtick run in the context so the block can't close early.
    longest = max((len(m.group(0)) for line in context for m in _BACKTICKS_RE.finditer(line)), default=2)
    return "`" * max(3, longest + 1)


def group_by_category(diagnostics: Sequence[Diagnostic]) -> Dict[str, List[Diagnostic]]:
    groups: Dict[str, List[Diagnostic]] = {}
    for diag in diagnostics:
        groups.setdefault(diag.category, []).append(diag)
    return groups


def render(diagnostics: Sequence[Diagnostic], severity: Severity) -> str:
    if not diagnostics:
        return f"No {severity.value}s to report.\n"

    out = [f"## Unity Build {severity.label} Summary\n\n"]
    for category, items in group_by_category(diagnostics).items():
        out.append(f"### {category} ({len(items)} occurrences)\n\n")
        for diag in items:
            fence = _fence(diag.context)
            out.append(f"- **Line {diag.line_number}**: {diag.message}\n")
            out.append(f"  {fence}\n")
            for line in diag.context:
                out.append(f"  {line}\n")
            out.append(f"  {fence}\n\n")
    return "".join(out)
