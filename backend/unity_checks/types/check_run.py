from dataclasses import dataclass
from typing import Any, Dict, Optional

QUEUED = "queued"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"

SUCCESS = "success"
FAILURE = "failure"
NEUTRAL = "neutral"

STATUS_ORDER = {QUEUED: 0, IN_PROGRESS: 1, COMPLETED: 2}
TERMINAL_CONCLUSIONS = {SUCCESS, FAILURE}


@dataclass(frozen=True)
class CheckRun:
    owner: str
    repo: str
    name: str
    head_sha: str
    status: str
    title: str
    summary: str
    text: str
    conclusion: Optional[str] = None
    check_run_id: Optional[int] = None
    external_id: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "owner": self.owner,
            "repo": self.repo,
            "name": self.name,
            "head_sha": self.head_sha,
            "status": self.status,
            "output": {
                "title": self.title,
                "summary": self.summary,
                "text": self.text,
                "annotations": [],
            },
        }
        if self.check_run_id is not None:
            payload["check_run_id"] = self.check_run_id
        if self.external_id:
            payload["external_id"] = self.external_id
        if self.started_at:
            payload["started_at"] = self.started_at
        # GitHub rejects a conclusion on a run that is not completed
        if self.status == COMPLETED:
            payload["conclusion"] = self.conclusion or NEUTRAL
            if self.completed_at:
                payload["completed_at"] = self.completed_at
        return payload


@dataclass(frozen=True)
class CheckRunState:
    """Everything a job remembers about its lifecycle check run between updates."""

    check_run_id: Optional[int]
    name: str
    head_sha: str
    status: str = QUEUED
    conclusion: str = NEUTRAL
    long_description: str = ""
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    status_code: Optional[int] = None
    check_run_id: Optional[int] = None
