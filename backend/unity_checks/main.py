import asyncio
import sys
from pathlib import Path
from typing import Optional

import httpx

from .check_runs import CheckReporter
from .config import Settings, load_reporting_config, settings
from .errors import AllocationExhausted, ConfigurationError, DeliveryError
from .github import GitHubClient
from .output import JobOutputs
from .services.build_runner import BuildRunner, ShellBuildRunner
from .services.classifier import DiagnosticClassifier
from .services.diagnostics_pipeline import run_diagnostics
from .services.log_paths import LogPathAllocator
from .transport import select_transport, trigger_workflows_on_complete
from .types.check_run import COMPLETED, FAILURE, SUCCESS, CheckRunState


async def _start_lifecycle_check(reporter: CheckReporter, s: Settings) -> Optional[CheckRunState]:
    if not s.GITHUB_CHECKS:
        return None
    name = f"Unity Build ({s.BUILD_GUID or s.JOB_KEY})"
    if s.GITHUB_CHECK_ID:
        # Created earlier by the context that owns the run.
        return CheckRunState(check_run_id=int(s.GITHUB_CHECK_ID), name=name, head_sha=s.GITHUB_SHA)
    if s.ASYNC_ENVIRONMENT:
        raise ConfigurationError("GITHUB_CHECK_ID is required when running in an async environment")
    state = await reporter.create_check("Build queued", s.GITHUB_SHA, name, external_id=s.BUILD_GUID)
    return await reporter.update_check(state, "Build started", "Building")


async def _finish_lifecycle_check(
    reporter: CheckReporter, state: CheckRunState, exit_code: int, outputs: JobOutputs
) -> CheckRunState:
    verdict = SUCCESS if exit_code == 0 else FAILURE
    state = await reporter.update_check(
        state, f"Build finished with exit code {exit_code}", f"Build {verdict}", verdict, COMPLETED
    )
    outputs.set_exit_summary(state.long_description.strip())
    return state


async def run_job(
    command: str,
    s: Settings = settings,
    runner: Optional[BuildRunner] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    config = load_reporting_config(s)
    outputs = JobOutputs(s.GITHUB_STEP_SUMMARY or None, s.GITHUB_OUTPUT or None)
    transport = select_transport(s, http_transport)
    reporter = CheckReporter(
        config,
        transport,
        s.GITHUB_OWNER,
        s.GITHUB_REPO,
        outputs=outputs,
        max_attempts=s.CHECK_MAX_ATTEMPTS,
        retry_delay=s.CHECK_RETRY_DELAY_SECONDS,
    )
    classifier = DiagnosticClassifier(config)
    runner = runner or ShellBuildRunner(command)

    log_path: Optional[Path] = None
    try:
        reporter.check_reporting_supported()
        state = await _start_lifecycle_check(reporter, s)

        try:
            log_path = LogPathAllocator(s.PROJECT_ROOT).allocate(s.JOB_KEY)
            print(f"[pipeline] build log: {log_path}")
            build_exit = await runner.run(log_path)
            outputs.set_engine_exit_code(build_exit)
            exit_code = await run_diagnostics(log_path, build_exit, s.GITHUB_SHA, classifier, reporter)
        except Exception:
            if state is not None:
                try:
                    await _finish_lifecycle_check(reporter, state, 1, outputs)
                except (ConfigurationError, DeliveryError) as e:
                    print(f"[checks] could not complete check {state.check_run_id}: {e}")
            raise
        finally:
            if log_path is not None:
                log_path.unlink(missing_ok=True)

        if state is not None:
            await _finish_lifecycle_check(reporter, state, exit_code, outputs)
    finally:
        await transport.close()

    if s.TRIGGER_WORKFLOW_ON_COMPLETE and not s.ASYNC_ENVIRONMENT:
        gh = GitHubClient(s.GIT_PRIVATE_TOKEN, base_url=s.GITHUB_API_URL, transport=http_transport)
        try:
            await trigger_workflows_on_complete(
                gh, s.GITHUB_OWNER, s.GITHUB_REPO, s.BRANCH, s.TRIGGER_WORKFLOW_ON_COMPLETE, s.BUILD_GUID
            )
        finally:
            await gh.close()

    return exit_code


def main() -> None:
    command = " ".join(sys.argv[1:]) or settings.BUILD_COMMAND
    if not command:
        print("usage: unity-checks <build command>  (or set BUILD_COMMAND)")
        sys.exit(2)
    try:
        exit_code = asyncio.run(run_job(command))
    except (ConfigurationError, AllocationExhausted, DeliveryError) as e:
        print(f"[pipeline] {type(e).__name__}: {e}")
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
