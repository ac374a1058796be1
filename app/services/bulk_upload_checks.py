from __future__ import annotations

from app.services.bulk_upload_cells import display, flag_of
from app.services.bulk_upload_findings import RULE_CONSISTENCY, Finding, Severity


def consistency_finding(
    row,
    field: str | None,
    message: str,
    ref,
    severity: Severity = Severity.HIGH,
    **extra,
) -> Finding:
    return Finding(
        sheet=row.sheet,
        row_number=row.row_number,
        field=field,
        message=message,
        severity=severity,
        rule=RULE_CONSISTENCY,
        reference_id=ref,
        **extra,
    )


def text_key(row, field: str) -> str | None:
    value = display(row.cell(field))
    return value.strip().upper() if value and value.strip() else None


def is_flagged(row, field: str) -> bool:
    try:
        return bool(flag_of(row.cell(field)))
    except ValueError:
        return False


def primary_address_findings(draft, sheet_name: str, label: str, flag_field: str = "Is_Primary") -> list[Finding]:
    """
    At least one address row and exactly one flagged primary.

    Findings about a missing address sit on the basic row so the error
    report can point at a row the user can fix.
    """
    rows = draft.child_rows(sheet_name)
    ref = draft.reference_id
    if not rows:
        return [
            consistency_finding(
                draft.basic,
                None,
                f"{label} {ref} must have at least one row on {sheet_name}",
                ref,
            )
        ]
    primaries = [row for row in rows if is_flagged(row, flag_field)]
    if not primaries:
        return [
            consistency_finding(
                draft.basic,
                flag_field,
                f"{label} {ref} must have one primary address on {sheet_name}",
                ref,
                expected="Exactly one row with Y",
            )
        ]
    return [
        consistency_finding(
            row,
            flag_field,
            f"Only one primary address is allowed; row {primaries[0].row_number} is already primary",
            ref,
            expected="N",
            received=display(row.cell(flag_field)),
        )
        for row in primaries[1:]
    ]
