import importlib.util
import json
from pathlib import Path
from types import SimpleNamespace

import httpx
import pytest

from unity_checks.errors import ConfigurationError
from unity_checks.main import run_job

def _settings(tmp_path, **overrides):
    values = dict(
        GITHUB_TOKEN="token",
        GIT_PRIVATE_TOKEN="pat",
        GITHUB_API_URL="https://api.github.com",
        GITHUB_OWNER="org",
        GITHUB_REPO="repo",
        GITHUB_SHA="abc123",
        BRANCH="main",
        PROJECT_ROOT=str(tmp_path),
        JOB_KEY="job-1",
        GITHUB_STEP_SUMMARY=str(tmp_path / "summary.md"),
        GITHUB_OUTPUT=str(tmp_path / "output"),
        REPORT_ERRORS=True,
        REPORT_WARNINGS=True,
        ERROR_PATTERNS="",
        WARNING_PATTERNS="",
        ASYNC_ENVIRONMENT=False,
        ASYNC_CHECKS_WORKFLOW_NAME="Async Checks API",
        CHECK_MAX_ATTEMPTS=5,
        CHECK_RETRY_DELAY_SECONDS=0,
        GITHUB_CHECKS=False,
        GITHUB_CHECK_ID="",
        BUILD_GUID="",
        TRIGGER_WORKFLOW_ON_COMPLETE=[],
        BUILD_COMMAND="",
    )
    values.update(overrides)
    return SimpleNamespace(**values)

class FakeRunner:
    def __init__(self, log_text="", exit_code=0, error=None, write=True):
        self.log_text = log_text
        self.exit_code = exit_code
        self.error = error
        self.write = write
        self.calls = []

    async def run(self, log_path):
        self.calls.append(Path(log_path))
        if self.error:
            raise self.error
        if self.write:
            Path(log_path).write_text(self.log_text)
        else:
            Path(log_path).unlink()
        return self.exit_code

class FakeGitHub:
    def __init__(self):
        self.requests = []

    def __call__(self, request):
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))
        path = request.url.path
        if request.method == "POST" and path == "/repos/org/repo/check-runs":
            return httpx.Response(201, json={"id": 42})
        if request.method == "PATCH" and path.startswith("/repos/org/repo/check-runs/"):
            return httpx.Response(200, json={"id": int(path.rsplit("/", 1)[1])})
        if request.method == "GET" and path == "/repos/org/repo/actions/workflows":
            workflows = [{"id": 3, "name": "Deploy"}, {"id": 7, "name": "Async Checks API"}]
            return httpx.Response(200, json={"total_count": 2, "workflows": workflows})
        if request.method == "POST" and path.endswith("/dispatches"):
            return httpx.Response(204)
        return httpx.Response(404, json={"message": "Not Found"})

    def check_runs(self):
        return [(m, body) for m, path, body in self.requests if "/check-runs" in path]

    def dispatches(self):
        return [(path, body) for m, path, body in self.requests if path.endswith("/dispatches")]

def _leftover_logs(tmp_path):
    return sorted(p.name for p in tmp_path.glob("unity-build.*"))

@pytest.mark.asyncio
async def test_direct_job_runs_full_lifecycle(tmp_path):
    api = FakeGitHub()
    s = _settings(tmp_path, GITHUB_CHECKS=True, TRIGGER_WORKFLOW_ON_COMPLETE=["Deploy"])
    runner = FakeRunner("foo\nerror CS1061: bar\nbaz\n", exit_code=0)

    exit_code = await run_job("unused", s, runner=runner, http_transport=httpx.MockTransport(api))

    assert exit_code == 0
    assert len(runner.calls) == 1
    checks = api.check_runs()
    assert [m for m, _ in checks] == ["POST", "PATCH", "POST", "POST", "PATCH"]
    assert [b["status"] for _, b in checks] == ["queued", "in_progress", "completed", "completed", "completed"]
    assert checks[0][1]["name"] == "Unity Build (job-1)"
    assert checks[2][1]["name"] == "Unity Build Error Validation"
    assert checks[2][1]["conclusion"] == "failure"
    assert checks[3][1]["conclusion"] == "success"
    assert checks[4][1]["conclusion"] == "success"
    assert checks[4][1]["output"]["text"] == "\nBuild started\nBuild finished with exit code 0"

    assert api.dispatches() == [
        ("/repos/org/repo/actions/workflows/3/dispatches", {"ref": "main", "inputs": {"buildGuid": ""}})
    ]

    output = (tmp_path / "output").read_text()
    assert "engineExitCode=0\n" in output
    assert "exitSummary<<" in output
    assert "Build started\nBuild finished with exit code 0\n" in output
    assert "Compilation Error" in (tmp_path / "summary.md").read_text()
    assert _leftover_logs(tmp_path) == []

@pytest.mark.asyncio
async def test_async_job_with_reporting_enabled_fails_before_build(tmp_path):
    api = FakeGitHub()
    s = _settings(tmp_path, ASYNC_ENVIRONMENT=True, GITHUB_CHECKS=True, GITHUB_CHECK_ID="99")
    runner = FakeRunner("error CS1061: bar\n")

    with pytest.raises(ConfigurationError):
        await run_job("unused", s, runner=runner, http_transport=httpx.MockTransport(api))

    assert runner.calls == []
    assert api.requests == []
    assert _leftover_logs(tmp_path) == []

@pytest.mark.asyncio
async def test_async_job_updates_through_dispatch_and_skips_hooks(tmp_path):
    api = FakeGitHub()
    s = _settings(
        tmp_path,
        ASYNC_ENVIRONMENT=True,
        REPORT_ERRORS=False,
        REPORT_WARNINGS=False,
        GITHUB_CHECKS=True,
        GITHUB_CHECK_ID="99",
        TRIGGER_WORKFLOW_ON_COMPLETE=["Deploy"],
    )

    exit_code = await run_job("unused", s, runner=FakeRunner("", exit_code=2), http_transport=httpx.MockTransport(api))

    assert exit_code == 2
    assert api.check_runs() == []
    dispatches = api.dispatches()
    assert [path for path, _ in dispatches] == ["/repos/org/repo/actions/workflows/7/dispatches"]
    checks = json.loads(dispatches[0][1]["inputs"]["checksObject"])
    assert checks["mode"] == "update"
    assert checks["data"]["check_run_id"] == 99
    assert checks["data"]["status"] == "completed"
    assert checks["data"]["conclusion"] == "failure"

@pytest.mark.asyncio
async def test_async_job_requires_existing_check_id(tmp_path):
    api = FakeGitHub()
    s = _settings(
        tmp_path, ASYNC_ENVIRONMENT=True, REPORT_ERRORS=False, REPORT_WARNINGS=False, GITHUB_CHECKS=True
    )
    runner = FakeRunner()

    with pytest.raises(ConfigurationError):
        await run_job("unused", s, runner=runner, http_transport=httpx.MockTransport(api))

    assert runner.calls == []
    assert api.requests == []

@pytest.mark.asyncio
async def test_crashed_runner_completes_check_and_removes_log(tmp_path):
    api = FakeGitHub()
    s = _settings(tmp_path, GITHUB_CHECKS=True)
    runner = FakeRunner(error=OSError("docker daemon went away"))

    with pytest.raises(OSError):
        await run_job("unused", s, runner=runner, http_transport=httpx.MockTransport(api))

    assert len(runner.calls) == 1
    assert _leftover_logs(tmp_path) == []
    method, body = api.check_runs()[-1]
    assert method == "PATCH"
    assert body["status"] == "completed"
    assert body["conclusion"] == "failure"

@pytest.mark.asyncio
async def test_missing_log_keeps_build_exit_code(tmp_path):
    api = FakeGitHub()
    s = _settings(tmp_path)

    exit_code = await run_job(
        "unused", s, runner=FakeRunner(exit_code=4, write=False), http_transport=httpx.MockTransport(api)
    )

    assert exit_code == 4
    assert api.requests == []
    assert "engineExitCode=4\n" in (tmp_path / "output").read_text()

def test_package_runs_as_module():
    assert importlib.util.find_spec("unity_checks.__main__") is not None
