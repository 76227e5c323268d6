import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

import httpx

from .errors import ConfigurationError, DeliveryError
from .output import JobOutputs
from .services.summary import render
from .transport import CREATE, UPDATE, CheckTransport
from .types.check_run import (
    COMPLETED,
    FAILURE,
    IN_PROGRESS,
    NEUTRAL,
    QUEUED,
    STATUS_ORDER,
    SUCCESS,
    TERMINAL_CONCLUSIONS,
    CheckRun,
    CheckRunState,
    DeliveryResult,
)
from .types.diagnostic import Diagnostic, ReportingConfig, Severity

MAX_ATTEMPTS = 5

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def validation_check_name(severity: Severity) -> str:
    return f"Unity Build {severity.label} Validation"

def diagnostics_to_check_run(
    diagnostics: Sequence[Diagnostic],
    severity: Severity,
    head_sha: str,
    owner: str,
    repo: str,
    text: str,
    started_at: Optional[str] = None,
) -> CheckRun:
    found = len(diagnostics)
    return CheckRun(
        owner=owner,
        repo=repo,
        name=validation_check_name(severity),
        head_sha=head_sha,
        status=COMPLETED,
        conclusion=FAILURE if found else SUCCESS,
        title=f"Unity Build {severity.label}s Detected" if found else "Unity Build Succeeded",
        summary=f"Found {found} {severity.value}s during the build.",
        text=text,
        started_at=started_at,
    )


class CheckReporter:
    """Publishes build diagnostics and lifecycle updates as GitHub check runs.

    Every request goes through one transport picked at job start. A request
    that does not come back successful is re-sent as a whole, one attempt at
    a time, until `max_attempts` is spent. Configuration problems raised by
    the transport are never retried.
    """

    def __init__(
        self,
        config: ReportingConfig,
        transport: CheckTransport,
        owner: str,
        repo: str,
        outputs: Optional[JobOutputs] = None,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = 0.0,
    ):
        self._config = config
        self._transport = transport
        self._owner = owner
        self._repo = repo
        self._outputs = outputs or JobOutputs()
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay

    async def _deliver(self, mode: str, payload: Dict[str, Any]) -> DeliveryResult:
        result = DeliveryResult(ok=False)
        for attempt in range(1, self._max_attempts + 1):
            try:
                result = await self._transport.send(mode, payload)
            except httpx.HTTPError as e:
                print(f"[checks] {mode} '{payload.get('name')}' attempt {attempt} error: {type(e).__name__}: {e}")
                result = DeliveryResult(ok=False)
            else:
                if result.ok:
                    return result
                print(f"[checks] {mode} '{payload.get('name')}' attempt {attempt} status={result.status_code}")

            if attempt < self._max_attempts:
                print("[checks] trying again...")
                if self._retry_delay:
                    await asyncio.sleep(self._retry_delay)

        print(f"[checks] {mode} '{payload.get('name')}' failed after {self._max_attempts} attempts")
        return result

    def check_reporting_supported(self) -> None:
        """Fail before the build if an enabled report could never be delivered."""
        enabled = [s.value for s in Severity if self._config.enabled(s)]
        if enabled and not self._transport.can_create:
            raise ConfigurationError(
                f"{self._transport.name} transport cannot create check runs; "
                f"disable reporting for: {', '.join(enabled)}"
            )

    async def report(self, diagnostics: Sequence[Diagnostic], severity: Severity, head_sha: str) -> bool:
        if not self._config.enabled(severity):
            return True

        text = render(diagnostics, severity)
        if severity is Severity.ERROR:
            self._outputs.write_step_summary(text)

        run = diagnostics_to_check_run(
            diagnostics, severity, head_sha, self._owner, self._repo, text, started_at=now_iso()
        )
        result = await self._deliver(CREATE, run.to_payload())
        if not result.ok:
            print("[checks] failing this build: check run could not be reported")
            return False

        print(f"[checks] '{run.name}' -> {run.conclusion} (id={result.check_run_id})")
        return True

    async def create_check(self, summary: str, head_sha: str, name: str, external_id: str = "") -> CheckRunState:
        started_at = now_iso()
        run = CheckRun(
            owner=self._owner,
            repo=self._repo,
            name=name,
            head_sha=head_sha,
            status=QUEUED,
            title=name,
            summary=summary,
            text="",
            external_id=external_id or None,
            started_at=started_at,
        )
        print(f"[checks] creating check '{name}'")
        result = await self._deliver(CREATE, run.to_payload())
        if not result.ok:
            raise DeliveryError(f"could not create check run '{name}' (status={result.status_code})")
        print(f"[checks] created check {result.check_run_id} status={result.status_code}")
        return CheckRunState(
            check_run_id=result.check_run_id,
            name=name,
            head_sha=head_sha,
            status=QUEUED,
            started_at=started_at,
        )

    async def update_check(
        self,
        state: CheckRunState,
        long_description: str,
        summary: str,
        conclusion: str = NEUTRAL,
        status: str = IN_PROGRESS,
    ) -> CheckRunState:
        """Send one update and return the state the next update builds on.

        Text accumulates across calls. Once the run has a success or failure
        conclusion it keeps it, and the status never moves backwards.
        """
        if state.conclusion in TERMINAL_CONCLUSIONS:
            conclusion = state.conclusion
        if STATUS_ORDER.get(status, 0) < STATUS_ORDER.get(state.status, 0):
            status = state.status

        completed_at = state.completed_at
        if status == COMPLETED and not completed_at:
            completed_at = now_iso()

        new_state = replace(
            state,
            status=status,
            conclusion=conclusion,
            long_description=f"{state.long_description}\n{long_description}",
            completed_at=completed_at,
        )
        run = CheckRun(
            owner=self._owner,
            repo=self._repo,
            name=state.name,
            head_sha=state.head_sha,
            status=status,
            conclusion=conclusion,
            title=state.name,
            summary=summary,
            text=new_state.long_description,
            check_run_id=state.check_run_id,
            started_at=state.started_at,
            completed_at=completed_at or state.started_at,
        )
        print(
            f"[checks] update check_run_id={state.check_run_id} sha={state.head_sha} "
            f"status={status} transport={self._transport.name}"
        )
        result = await self._deliver(UPDATE, run.to_payload())
        if not result.ok:
            raise DeliveryError(f"could not update check run {state.check_run_id} (status={result.status_code})")
        return new_state
