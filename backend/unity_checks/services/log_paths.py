import re
import uuid
from pathlib import Path
from typing import Callable, Union

from ..errors import AllocationExhausted

MAX_ATTEMPTS = 5
_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_.-]+")


def _random_suffix() -> str:
    return uuid.uuid4().hex[:12]


class LogPathAllocator:
    """Hands out a build log path no other job on this filesystem is using.

    Each attempt builds `unity-build.<jobKey>.<suffix>.log` under the project
    root with a fresh suffix and claims it with an exclusive create, so two
    jobs sharing a workspace can never end up writing the same file.
    """

    def __init__(
        self,
        project_root: Union[str, Path],
        suffix_fn: Callable[[], str] = _random_suffix,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self._root = Path(project_root)
        self._suffix_fn = suffix_fn
        self._max_attempts = max_attempts

    def candidate(self, job_key: str, suffix: str) -> Path:
        key = _UNSAFE_RE.sub("-", job_key).strip("-") or "job"
        return self._root / f"unity-build.{key}.{suffix}.log"

    def allocate(self, job_key: str) -> Path:
        self._root.mkdir(parents=True, exist_ok=True)
        for attempt in range(1, self._max_attempts + 1):
            path = self.candidate(job_key, self._suffix_fn())
            try:
                with open(path, "x", encoding="utf-8"):
                    pass
            except FileExistsError:
                print(f"[logs] {path.name} already exists (attempt {attempt}/{self._max_attempts})")
                continue
            return path

        raise AllocationExhausted(
            f"no free log path for job {job_key!r} after {self._max_attempts} attempts"
        )
