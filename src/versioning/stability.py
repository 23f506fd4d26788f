"""Version stability grading and scoring.

Pure functions of (version string, release flag, timestamp); ``now_ms`` may be
supplied to pin the clock.
"""
import re
import time
from typing import Optional

from versioning.models import SafetyIndicator, Severity, StabilityGrade

# Qualifier tokens marking a pre-release. Tokens must stand alone between
# separators or digits, so "1.0.RELEASE" is not caught by "ea".
PRE_RELEASE_PATTERN = re.compile(
    r"(?:^|[.\-_+\d])(alpha|beta|rc|cr|m\d|snapshot|preview|dev|incubating|ea)(?=$|[.\-_+\d])",
    re.IGNORECASE,
)

DAYS_RECENT = 90
DAYS_OUTDATED = 1825
BASELINE_SCORE = 50.0
PRE_RELEASE_PENALTY = 25.0
RELEASE_BONUS = 10.0
MS_PER_DAY = 86_400_000


def is_pre_release(version: str) -> bool:
    """True when the version carries a pre-release qualifier."""
    return bool(version) and PRE_RELEASE_PATTERN.search(version) is not None


def age_days(timestamp: Optional[int], now_ms: Optional[int] = None) -> Optional[int]:
    """Whole days since ``timestamp`` (epoch ms); None when unknown."""
    if not timestamp or timestamp <= 0:
        return None
    now = now_ms if now_ms is not None else int(time.time() * 1000)
    return (now - int(timestamp)) // MS_PER_DAY


def compute_stability_grade(version: str, timestamp: Optional[int], now_ms: Optional[int] = None) -> StabilityGrade:
    if is_pre_release(version):
        return StabilityGrade.PRE_RELEASE
    days = age_days(timestamp, now_ms)
    if days is None:
        return StabilityGrade.UNKNOWN
    if days < DAYS_RECENT:
        return StabilityGrade.RECENT
    if days > DAYS_OUTDATED:
        return StabilityGrade.OUTDATED
    return StabilityGrade.STABLE


def _age_bonus(days: int) -> float:
    if days < 7:
        return 0.0
    if days < DAYS_RECENT:
        return 10.0
    if days < 365:
        return 20.0
    if days < DAYS_OUTDATED:
        return 15.0
    return -15.0


def compute_stability_score(
    version: str,
    is_release: bool,
    timestamp: Optional[int],
    now_ms: Optional[int] = None,
) -> float:
    """Compute a 0-100 stability score.

    Baseline 50, minus 25 for a pre-release qualifier or plus 10 for a clean
    release, plus an age term when the timestamp is known; clamped to [0, 100].
    """
    score = BASELINE_SCORE
    if is_pre_release(version):
        score -= PRE_RELEASE_PENALTY
    elif is_release:
        score += RELEASE_BONUS

    days = age_days(timestamp, now_ms)
    if days is not None:
        score += _age_bonus(days)

    return max(0.0, min(100.0, score))


def compute_safety_indicator(counts, stability: StabilityGrade) -> SafetyIndicator:
    """Fuse per-severity advisory counts with the stability grade.

    Security takes priority; stability only decides when no advisory with a
    known severity band is present.
    """
    if counts.get(Severity.CRITICAL, 0) or counts.get(Severity.HIGH, 0):
        return SafetyIndicator.DANGER
    if counts.get(Severity.MEDIUM, 0):
        return SafetyIndicator.WARNING
    if counts.get(Severity.LOW, 0):
        return SafetyIndicator.CAUTION
    if stability == StabilityGrade.PRE_RELEASE:
        return SafetyIndicator.CAUTION
    if stability == StabilityGrade.OUTDATED:
        return SafetyIndicator.WARNING
    return SafetyIndicator.SAFE


def label_for_indicator(indicator: SafetyIndicator, vuln_count: int) -> str:
    if indicator == SafetyIndicator.SAFE:
        return "Safe to use"
    if indicator == SafetyIndicator.CAUTION:
        return "Use with caution"
    if indicator == SafetyIndicator.WARNING:
        if vuln_count > 0:
            noun = "vulnerability" if vuln_count == 1 else "vulnerabilities"
            return f"{vuln_count} known {noun}"
        return "Outdated, consider upgrading"
    noun = "issue" if vuln_count == 1 else "issues"
    return f"{vuln_count} security {noun} found"
