from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


BLOCKING_SEVERITIES = frozenset({Severity.CRITICAL, Severity.HIGH})

# Rule codes persisted with each finding and counted in the error report summary.
RULE_DANGLING_REFERENCE = "DANGLING_REFERENCE"
RULE_DUPLICATE_REFERENCE = "DUPLICATE_REFERENCE"
RULE_MISSING_REFERENCE = "MISSING_REFERENCE"
RULE_EXTRA_CHILD_ROW = "EXTRA_CHILD_ROW"
RULE_REQUIRED = "REQUIRED"
RULE_TYPE = "TYPE"
RULE_FORMAT = "FORMAT"
RULE_LENGTH = "LENGTH"
RULE_RANGE = "RANGE"
RULE_ENUM = "ENUM"
RULE_DATE_ORDER = "DATE_ORDER"
RULE_NUMERIC_IDENTIFIER = "NUMERIC_IDENTIFIER"
RULE_DUPLICATE_IN_BATCH = "DUPLICATE_IN_BATCH"
RULE_DUPLICATE_IN_STORE = "DUPLICATE_IN_STORE"
RULE_MASTER_DATA = "MASTER_DATA"
RULE_CONSISTENCY = "CONSISTENCY"
RULE_CREATION_FAILED = "CREATION_FAILED"


@dataclass(frozen=True)
class Finding:
    sheet: str
    row_number: int | None
    field: str | None
    message: str
    severity: Severity
    rule: str
    reference_id: str | None = None
    expected: str | None = None
    received: str | None = None

    @property
    def is_blocking(self) -> bool:
        return self.severity in BLOCKING_SEVERITIES


def has_blocking(findings) -> bool:
    return any(finding.is_blocking for finding in findings)
