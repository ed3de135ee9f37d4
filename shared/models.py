"""
Wi-Fi Sentry Shared Models
==========================

Severity scale shared by the threat engine, the console renderer, the
report generators, and every sink.

Severity is a *total order* (LOW < MEDIUM < HIGH < CRITICAL) so that a
network's aggregate severity can be computed with :func:`max` and is
monotonic: adding another firing check can never lower it.

References:
    - FIRST. (2019). Common Vulnerability Scoring System v3.1.
      https://www.first.org/cvss/v3.1/specification-document
    - OWASP Risk Rating Methodology.
      https://owasp.org/www-community/OWASP_Risk_Rating_Methodology
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional


class Severity(str, Enum):
    """Finding severity level.

    Aligned with CVSS v3.1 qualitative severity ratings
    (FIRST.org, 2019), without the informational band.

    Attributes:
        LOW:      Minor exposure; worth knowing about.
        MEDIUM:   Suspicious pattern; plausible benign explanation exists.
        HIGH:     Strong rogue-AP indicator.
        CRITICAL: Impersonation signature; treat as an active attack.
    """

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        """Position in the total order, LOW = 0."""
        return _RANK[self]

    @property
    def label(self) -> str:
        """Human-readable capitalised label."""
        return self.value.capitalize()

    @property
    def css_class(self) -> str:
        """Return a CSS class name for severity-based styling."""
        return f"severity-{self.value.lower()}"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_RANK: dict[Severity, int] = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


def max_severity(severities: Iterable[Severity]) -> Optional[Severity]:
    """Highest severity under the total order, ``None`` for an empty input."""
    highest: Optional[Severity] = None
    for severity in severities:
        if highest is None or severity > highest:
            highest = severity
    return highest


def severity_counts(severities: Iterable[Severity]) -> dict[str, int]:
    """Count occurrences per severity, every level present (zero-filled).

    Returns:
        Dict ordered from CRITICAL down to LOW, e.g.
        ``{"CRITICAL": 1, "HIGH": 3, "MEDIUM": 0, "LOW": 2}``.
    """
    counts: dict[str, int] = {s.value: 0 for s in reversed(list(Severity))}
    for severity in severities:
        counts[severity.value] += 1
    return counts
