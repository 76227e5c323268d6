import json

import httpx
from typing import Any, Dict, List, Optional, Protocol

from .config import Settings
from .errors import ConfigurationError
from .github import GitHubClient
from .types.check_run import DeliveryResult

CREATE = "create"
UPDATE = "update"

_ADDRESS_KEYS = ("owner", "repo", "check_run_id")


class CheckTransport(Protocol):
    name: str
    can_create: bool

    async def send(self, mode: str, payload: Dict[str, Any]) -> DeliveryResult:
        ...

    async def close(self) -> None:
        ...


class DirectTransport:
    """Talks to the check-runs API with the job's own token."""

    name = "direct"
    can_create = True

    def __init__(self, gh: GitHubClient):
        self._gh = gh

    async def close(self) -> None:
        await self._gh.close()

    async def send(self, mode: str, payload: Dict[str, Any]) -> DeliveryResult:
        owner, repo = payload["owner"], payload["repo"]
        body = {k: v for k, v in payload.items() if k not in _ADDRESS_KEYS}

        if mode == CREATE:
            resp = await self._gh.create_check_run(owner, repo, body)
            if resp.status_code != 201:
                return DeliveryResult(ok=False, status_code=resp.status_code)
            try:
                check_run_id = int(resp.json()["id"])
            except (KeyError, TypeError, ValueError):
                print("[checks] created response carried no check run id")
                return DeliveryResult(ok=False, status_code=201)
            return DeliveryResult(ok=True, status_code=201, check_run_id=check_run_id)

        if mode == UPDATE:
            check_run_id = payload.get("check_run_id")
            if check_run_id is None:
                raise ConfigurationError("check run update needs a check_run_id")
            resp = await self._gh.update_check_run(owner, repo, int(check_run_id), body)
            return DeliveryResult(ok=resp.status_code == 200, status_code=resp.status_code, check_run_id=int(check_run_id))

        raise ConfigurationError(f"unknown check mode {mode!r}")


async def find_workflow_id(gh: GitHubClient, owner: str, repo: str, name: str, attempts: int = 8) -> int:
    workflows: List[Dict[str, Any]] = await gh.list_workflows(owner, repo, attempts=attempts)
    print(f"[dispatch] got {len(workflows)} workflows")
    selected: Optional[int] = None
    for wf in workflows:
        if wf.get("name") == name:
            selected = int(wf["id"])
    if selected is None:
        print(f"[dispatch] workflows: {json.dumps([wf.get('name') for wf in workflows])}")
        raise ConfigurationError(f'no workflow with name "{name}"')
    return selected


class WorkflowDispatchTransport:
    """Hands check updates to a companion workflow that holds API access.

    Used from sandboxed runners. Only updates go this way: a check run is
    always created by the context that owns its lifecycle.
    """

    name = "workflow_dispatch"
    can_create = False

    def __init__(self, gh: GitHubClient, owner: str, repo: str, ref: str, workflow_name: str):
        self._gh = gh
        self._owner = owner
        self._repo = repo
        self._ref = ref
        self._workflow_name = workflow_name
        self._workflow_id: Optional[int] = None

    async def close(self) -> None:
        await self._gh.close()

    async def send(self, mode: str, payload: Dict[str, Any]) -> DeliveryResult:
        if mode != UPDATE:
            raise ConfigurationError(f"{mode!r} is not supported through workflow dispatch: only use update")

        # looked up once, with a single GET
        if self._workflow_id is None:
            self._workflow_id = await find_workflow_id(
                self._gh, self._owner, self._repo, self._workflow_name, attempts=1
            )
        resp = await self._gh.dispatch_workflow(
            self._owner,
            self._repo,
            self._workflow_id,
            ref=self._ref,
            inputs={"checksObject": json.dumps({"data": payload, "mode": mode})},
        )
        return DeliveryResult(ok=resp.status_code == 204, status_code=resp.status_code, check_run_id=payload.get("check_run_id"))


def select_transport(s: Settings, http_transport: Optional[httpx.AsyncBaseTransport] = None) -> CheckTransport:
    if s.ASYNC_ENVIRONMENT:
        gh = GitHubClient(s.GIT_PRIVATE_TOKEN, base_url=s.GITHUB_API_URL, transport=http_transport)
        return WorkflowDispatchTransport(gh, s.GITHUB_OWNER, s.GITHUB_REPO, s.BRANCH, s.ASYNC_CHECKS_WORKFLOW_NAME)
    return DirectTransport(GitHubClient(s.GITHUB_TOKEN, base_url=s.GITHUB_API_URL, transport=http_transport))


async def trigger_workflows_on_complete(
    gh: GitHubClient, owner: str, repo: str, ref: str, names: List[str], build_guid: str
) -> int:
    """Fire the named follow-up workflows. A missing one is logged, not fatal."""
    triggered = 0
    for name in names:
        try:
            workflow_id = await find_workflow_id(gh, owner, repo, name)
            resp = await gh.dispatch_workflow(owner, repo, workflow_id, ref=ref, inputs={"buildGuid": build_guid})
        except (ConfigurationError, httpx.HTTPError) as e:
            print(f"[dispatch] completion hook '{name}' not triggered: {e}")
            continue
        if resp.status_code == 204:
            triggered += 1
        else:
            print(f"[dispatch] completion hook '{name}' status={resp.status_code}")
    return triggered
