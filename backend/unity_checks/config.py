import os
from dotenv import load_dotenv

from .rules import parse_rules
from .types.diagnostic import ReportingConfig

if not os.getenv("GITHUB_ACTIONS"):
    load_dotenv(override=False)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


_REPOSITORY = os.getenv("GITHUB_REPOSITORY", "")
_OWNER, _, _REPO = _REPOSITORY.partition("/")


class Settings:
    GITHUB_TOKEN = os.getenv("GITHUB_TOKEN", "")
    GIT_PRIVATE_TOKEN = os.getenv("GIT_PRIVATE_TOKEN", "") or GITHUB_TOKEN
    GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")
    GITHUB_OWNER = os.getenv("GITHUB_OWNER", _OWNER)
    GITHUB_REPO = os.getenv("GITHUB_REPO_NAME", _REPO)
    GITHUB_SHA = os.getenv("GITHUB_SHA", "")
    BRANCH = os.getenv("GITHUB_REF_NAME", "main")
    PROJECT_ROOT = os.path.join(os.getenv("GITHUB_WORKSPACE", "."), os.getenv("PROJECT_PATH", ""))
    JOB_KEY = "-".join(x for x in (os.getenv("GITHUB_RUN_ID", "local"), os.getenv("GITHUB_RUN_ATTEMPT", "")) if x)
    GITHUB_STEP_SUMMARY = os.getenv("GITHUB_STEP_SUMMARY", "")
    GITHUB_OUTPUT = os.getenv("GITHUB_OUTPUT", "")
    REPORT_ERRORS = _flag("REPORT_ERRORS", "true")
    REPORT_WARNINGS = _flag("REPORT_WARNINGS", "true")
    ERROR_PATTERNS = os.getenv("ERROR_PATTERNS", "")
    WARNING_PATTERNS = os.getenv("WARNING_PATTERNS", "")
    ASYNC_ENVIRONMENT = _flag("ASYNC_ENVIRONMENT", "false")
    ASYNC_CHECKS_WORKFLOW_NAME = os.getenv("ASYNC_CHECKS_WORKFLOW_NAME", "Async Checks API")
    CHECK_MAX_ATTEMPTS = int(os.getenv("CHECK_MAX_ATTEMPTS", "5"))
    CHECK_RETRY_DELAY_SECONDS = float(os.getenv("CHECK_RETRY_DELAY_SECONDS", "1"))
    GITHUB_CHECKS = _flag("GITHUB_CHECKS", "false")
    GITHUB_CHECK_ID = os.getenv("GITHUB_CHECK_ID", "")
    BUILD_GUID = os.getenv("BUILD_GUID", "")
    TRIGGER_WORKFLOW_ON_COMPLETE = [
        x.strip() for x in os.getenv("TRIGGER_WORKFLOW_ON_COMPLETE", "").split(",") if x.strip()
    ]
    BUILD_COMMAND = os.getenv("BUILD_COMMAND", "")


settings = Settings()


def load_reporting_config(s: Settings = settings) -> ReportingConfig:
    return ReportingConfig(
        report_errors=s.REPORT_ERRORS,
        report_warnings=s.REPORT_WARNINGS,
        error_patterns=parse_rules(s.ERROR_PATTERNS, "ERROR_PATTERNS"),
        warning_patterns=parse_rules(s.WARNING_PATTERNS, "WARNING_PATTERNS"),
    )
