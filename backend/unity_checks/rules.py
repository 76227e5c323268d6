import json
import re
from typing import Iterable, List, Tuple

from .errors import ConfigurationError
from .types.diagnostic import PatternRule, PatternSet, ReportingConfig, Severity

# Order matters: the first rule whose pattern matches a line decides its category.
BUILTIN_ERROR_RULES: Tuple[PatternRule, ...] = (
    PatternRule.compile(r"error CS\d+: (.*)", "Compilation Error"),
    PatternRule.compile(r"Scripts have compiler errors", "Compilation Error"),
    PatternRule.compile(r"Shader error in '([^']+)'", "Shader Error"),
    PatternRule.compile(r"Error building Player: (.*)", "Build Failure"),
    PatternRule.compile(r"BuildFailedException: (.*)", "Build Failure"),
    PatternRule.compile(r"Aborting batchmode due to failure", "Build Failure"),
    PatternRule.compile(r"(?:il2cpp|IL2CPP).*?error:? (.*)", "IL2CPP Error"),
    PatternRule.compile(r"FAILURE: Build failed with an exception", "Gradle Error"),
    PatternRule.compile(r"\*\* (?:BUILD|ARCHIVE) FAILED \*\*", "Xcode Error"),
    PatternRule.compile(r"No valid Unity (?:Editor )?license", "License Error"),
    PatternRule.compile(r"(?:OutOfMemoryException|Out of memory)", "Out Of Memory"),
    PatternRule.compile(r"\b(\w+Exception: .*)", "Runtime Exception"),
)

BUILTIN_WARNING_RULES: Tuple[PatternRule, ...] = (
    PatternRule.compile(r"warning CS\d+: (.*)", "Compilation Warning"),
    PatternRule.compile(r"Shader warning in '([^']+)'", "Shader Warning"),
    PatternRule.compile(r"The referenced script (.*) is missing", "Missing Script"),
    PatternRule.compile(r"(.*\bis (?:deprecated|obsolete)\b.*)", "Deprecation Warning"),
    PatternRule.compile(r"\bwarning: (.*)", "Native Build Warning"),
)


def build_pattern_set(config: ReportingConfig) -> PatternSet:
    """User rules first so operators can re-categorize known failure lines."""
    return {
        Severity.ERROR: tuple(config.user_patterns(Severity.ERROR)) + BUILTIN_ERROR_RULES,
        Severity.WARNING: tuple(config.user_patterns(Severity.WARNING)) + BUILTIN_WARNING_RULES,
    }


def parse_rules(raw: str, source: str = "patterns") -> Tuple[PatternRule, ...]:
    """Parse a JSON array of {"pattern", "category"} objects."""
    raw = (raw or "").strip()
    if not raw:
        return ()
    try:
        items = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{source}: invalid JSON ({e})") from e
    if not isinstance(items, list):
        raise ConfigurationError(f"{source}: expected a JSON array of rules")
    return _compile_items(items, source)


def _compile_items(items: Iterable, source: str) -> Tuple[PatternRule, ...]:
    rules: List[PatternRule] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ConfigurationError(f"{source}[{index}]: expected an object")
        pattern = item.get("pattern")
        category = item.get("category")
        if not pattern or not category:
            raise ConfigurationError(f"{source}[{index}]: 'pattern' and 'category' are required")
        try:
            rules.append(PatternRule.compile(pattern, str(category)))
        except re.error as e:
            raise ConfigurationError(f"{source}[{index}]: bad regex {pattern!r} ({e})") from e
    return tuple(rules)
