from pathlib import Path
from typing import Union

from ..check_runs import CheckReporter
from ..types.diagnostic import Severity
from .classifier import DiagnosticClassifier, read_log

# Errors first: a delivery failure stops the remaining reports.
REPORT_ORDER = (Severity.ERROR, Severity.WARNING)

async def run_diagnostics(
    log_path: Union[str, Path],
    exit_code: int,
    head_sha: str,
    classifier: DiagnosticClassifier,
    reporter: CheckReporter,
) -> int:
    """Parse the finished build log and report it; returns the job exit code.

    A missing log never masks the build's own result. A report that cannot
    be delivered turns a passing build into a failing one.
    """
    log_text = read_log(log_path)
    if log_text is None:
        print(f"[pipeline] no build log at {log_path}; skipping diagnostics reporting")
        return exit_code

    Path(log_path).unlink(missing_ok=True)

    for severity in REPORT_ORDER:
        diagnostics = classifier.parse(log_text, severity)
        delivered = await reporter.report(diagnostics, severity, head_sha)
        if not delivered:
            print(f"[pipeline] {severity.value} report not delivered; aborting reporting")
            return exit_code or 1

    return exit_code
