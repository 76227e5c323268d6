import asyncio
import random
import httpx
from typing import Any, Dict, List, Optional, Tuple

GITHUB_API = "https://api.github.com"

class GitHubClient:
    def __init__(
        self,
        token: str,
        base_url: str = GITHUB_API,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(15.0),
            transport=transport,
        )

    async def close(self):
        await self._client.aclose()

    async def get_json(
        self, url: str, params: Optional[Dict[str, Any]] = None, attempts: int = 8
    ) -> Tuple[Any, httpx.Headers]:
        delay = 1.0
        for attempt in range(attempts):
            resp = await self._client.get(url, params=params)

            if resp.status_code == 200:
                return resp.json(), resp.headers

            # backoff on rate limit / transient errors
            if attempt + 1 < attempts and (resp.status_code in (403, 429) or 500 <= resp.status_code < 600):
                ra = resp.headers.get("Retry-After")
                if ra:
                    sleep_s = float(ra)
                else:
                    sleep_s = delay + random.uniform(0, delay * 0.25)
                await asyncio.sleep(sleep_s)
                delay *= 2
                continue

            resp.raise_for_status()

        resp.raise_for_status()

    # Check run writes are not retried here: callers own the attempt budget.
    async def create_check_run(self, owner: str, repo: str, body: Dict[str, Any]) -> httpx.Response:
        return await self._client.post(f"/repos/{owner}/{repo}/check-runs", json=body)

    async def update_check_run(self, owner: str, repo: str, check_run_id: int, body: Dict[str, Any]) -> httpx.Response:
        return await self._client.patch(f"/repos/{owner}/{repo}/check-runs/{check_run_id}", json=body)

    async def list_workflows(self, owner: str, repo: str, attempts: int = 8) -> List[Dict[str, Any]]:
        data, _headers = await self.get_json(
            f"/repos/{owner}/{repo}/actions/workflows",
            params={"per_page": 100},
            attempts=attempts,
        )
        return data.get("workflows", []) or []

    async def dispatch_workflow(
        self, owner: str, repo: str, workflow_id: int, ref: str, inputs: Dict[str, Any]
    ) -> httpx.Response:
        return await self._client.post(
            f"/repos/{owner}/{repo}/actions/workflows/{workflow_id}/dispatches",
            json={"ref": ref, "inputs": inputs},
        )
