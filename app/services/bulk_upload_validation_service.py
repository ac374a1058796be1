from __future__ import annotations

import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

from app.core.flow_logging import flow_debug
from app.services.bulk_upload_cells import (
    Boolean,
    DateValue,
    Number,
    Text,
    date_of,
    display,
    flag_of,
    is_empty,
    number_of,
    try_date,
)
from app.services.bulk_upload_findings import (
    RULE_DANGLING_REFERENCE,
    RULE_DATE_ORDER,
    RULE_DUPLICATE_IN_BATCH,
    RULE_DUPLICATE_IN_STORE,
    RULE_DUPLICATE_REFERENCE,
    RULE_ENUM,
    RULE_EXTRA_CHILD_ROW,
    RULE_FORMAT,
    RULE_LENGTH,
    RULE_MASTER_DATA,
    RULE_MISSING_REFERENCE,
    RULE_NUMERIC_IDENTIFIER,
    RULE_RANGE,
    RULE_REQUIRED,
    RULE_TYPE,
    Finding,
    Severity,
    has_blocking,
)
from app.services.bulk_upload_master_data import MasterDataCache, master_label
from app.services.bulk_upload_parser import SheetRow
from app.services.bulk_upload_resolver import CompositeDraft, ResolvedBatch, reference_of
from app.services.bulk_upload_schema import (
    CARDINALITY_ONE,
    DATE,
    ENUM,
    FLAG,
    IDENTIFIER,
    INTEGER,
    NUMBER,
    EntitySchema,
    FieldSpec,
    SheetSpec,
)

logger = logging.getLogger(__name__)

# (model, column, candidate values) -> values already persisted
StoreLookup = Callable[[Any, str, set[str]], set[str]]
ProgressCallback = Callable[[int, int], None]


@dataclass
class DraftVerdict:
    draft: CompositeDraft
    findings: list[Finding]

    @property
    def creatable(self) -> bool:
        return not has_blocking(self.findings)


@dataclass
class ValidationResult:
    verdicts: list[DraftVerdict]
    # Findings on child rows that belong to no draft.
    unlinked_findings: list[Finding]

    @property
    def creatable_drafts(self) -> list[CompositeDraft]:
        return [v.draft for v in self.verdicts if v.creatable]

    @property
    def valid_count(self) -> int:
        return sum(1 for v in self.verdicts if v.creatable)

    @property
    def invalid_count(self) -> int:
        return len(self.verdicts) - self.valid_count

    def all_findings(self) -> list[Finding]:
        out = list(self.unlinked_findings)
        for verdict in self.verdicts:
            out.extend(verdict.findings)
        return out


@dataclass(frozen=True)
class _UniqueOwner:
    draft_index: int
    sheet: str
    row_number: int


def _finding(
    row: SheetRow,
    spec_name: str | None,
    message: str,
    severity: Severity,
    rule: str,
    *,
    reference_id: str | None,
    expected: str | None = None,
    received: str | None = None,
) -> Finding:
    return Finding(
        sheet=row.sheet,
        row_number=row.row_number,
        field=spec_name,
        message=message,
        severity=severity,
        rule=rule,
        reference_id=reference_id,
        expected=expected,
        received=received,
    )


def _unique_key(value: str) -> str:
    return value.strip().upper()


class ValidationEngine:
    """
    Runs the rule categories against every draft of one batch.

    Order: structural, field-level, intra-batch uniqueness, persisted-store
    uniqueness, master data, cross-field consistency. Store lookups only
    include values from drafts that passed the local rules, and each unique
    field costs one query regardless of row count.
    """

    def __init__(
        self,
        schema: EntitySchema,
        *,
        master_data: MasterDataCache,
        store_lookup: StoreLookup,
        workers: int = 4,
        on_progress: ProgressCallback | None = None,
    ):
        self.schema = schema
        self._master = master_data
        self._store_lookup = store_lookup
        self._workers = max(1, workers)
        self._on_progress = on_progress

    def validate(self, resolved: ResolvedBatch) -> ValidationResult:
        drafts = resolved.drafts
        unlinked = [self._unlinked_finding(row) for row in resolved.unlinked_rows]

        local = self._fan_out(self._local_findings, drafts)
        findings_by_index = {draft.index: found for draft, found in zip(drafts, local)}

        # Single sequential pass, read-only afterwards.
        unique_index = self._build_unique_index(drafts)
        store_hits = self._store_hits(drafts, findings_by_index)
        self._master.warm(spec.master for _, spec in self.schema.master_fields())

        total = len(drafts)
        done = {"count": 0}
        done_lock = threading.Lock()

        def _remote(draft: CompositeDraft) -> list[Finding]:
            found = self._batch_duplicates(draft, unique_index)
            if not has_blocking(findings_by_index[draft.index]):
                found.extend(self._store_duplicates(draft, store_hits))
            found.extend(self._master_findings(draft))
            found.extend(self._consistency_findings(draft))
            if self._on_progress is not None:
                with done_lock:
                    done["count"] += 1
                    current = done["count"]
                self._on_progress(current, total)
            return found

        remote = self._fan_out(_remote, drafts)

        verdicts: list[DraftVerdict] = []
        for draft, found in zip(drafts, remote):
            verdict = DraftVerdict(draft=draft, findings=findings_by_index[draft.index] + found)
            flow_debug(
                logger,
                "bulk_upload_draft_validated ref=%s findings=%s creatable=%s",
                draft.reference_id,
                len(verdict.findings),
                verdict.creatable,
                category="bulk_upload_rows",
            )
            verdicts.append(verdict)

        return ValidationResult(verdicts=verdicts, unlinked_findings=unlinked)

    def _fan_out(self, fn, drafts: list[CompositeDraft]) -> list:
        if self._workers == 1 or len(drafts) <= 1:
            return [fn(draft) for draft in drafts]
        with ThreadPoolExecutor(max_workers=self._workers, thread_name_prefix="bulk-validate") as pool:
            return list(pool.map(fn, drafts))

    # Structural

    def _unlinked_finding(self, row: SheetRow) -> Finding:
        ref_column = self.schema.reference_column
        ref = reference_of(row, ref_column)
        if ref is None:
            return _finding(
                row,
                ref_column,
                f"{ref_column} is required to link this row to {self.schema.basic_sheet.name}",
                Severity.CRITICAL,
                RULE_MISSING_REFERENCE,
                reference_id=None,
            )
        return _finding(
            row,
            ref_column,
            f'{row.sheet} references non-existent {self.schema.display_name.lower()} "{ref}"',
            Severity.CRITICAL,
            RULE_DANGLING_REFERENCE,
            reference_id=ref,
            expected=f"{ref_column} present in {self.schema.basic_sheet.name}",
            received=ref,
        )

    def _structural_findings(self, draft: CompositeDraft) -> list[Finding]:
        ref_column = self.schema.reference_column
        out: list[Finding] = []
        if draft.reference_id is None:
            out.append(
                _finding(
                    draft.basic,
                    ref_column,
                    f"{ref_column} is required",
                    Severity.CRITICAL,
                    RULE_MISSING_REFERENCE,
                    reference_id=None,
                )
            )
        elif draft.duplicate_of_row is not None:
            out.append(
                _finding(
                    draft.basic,
                    ref_column,
                    f'{ref_column} "{draft.reference_id}" already used in row {draft.duplicate_of_row}',
                    Severity.CRITICAL,
                    RULE_DUPLICATE_REFERENCE,
                    reference_id=draft.reference_id,
                    received=draft.reference_id,
                )
            )

        for sheet in self.schema.child_sheets:
            if sheet.cardinality != CARDINALITY_ONE:
                continue
            rows = draft.child_rows(sheet.name)
            for extra in rows[1:]:
                out.append(
                    _finding(
                        extra,
                        ref_column,
                        f'Only one {sheet.name} row is allowed per {self.schema.display_name.lower()}; '
                        f'"{draft.reference_id}" already has row {rows[0].row_number}',
                        Severity.HIGH,
                        RULE_EXTRA_CHILD_ROW,
                        reference_id=draft.reference_id,
                    )
                )
        return out

    # Field-level

    def _local_findings(self, draft: CompositeDraft) -> list[Finding]:
        out = self._structural_findings(draft)
        for row in draft.rows():
            sheet = self.schema.sheet(row.sheet)
            if sheet is None:
                continue
            for spec in sheet.fields:
                if spec.name == self.schema.reference_column:
                    continue
                out.extend(self._field_findings(row, spec, draft.reference_id))
            out.extend(self._date_order_findings(row, sheet, draft.reference_id))
        return out

    def _field_findings(self, row: SheetRow, spec: FieldSpec, ref: str | None) -> list[Finding]:
        cell = row.cell(spec.name)
        if is_empty(cell):
            if spec.required:
                return [
                    _finding(
                        row, spec.name, f"{spec.name} is required", Severity.HIGH, RULE_REQUIRED,
                        reference_id=ref, expected=spec.format_hint(),
                    )
                ]
            return []

        received = display(cell)

        def fail(message: str, rule: str, severity: Severity = Severity.HIGH) -> list[Finding]:
            return [
                _finding(
                    row, spec.name, message, severity, rule,
                    reference_id=ref, expected=spec.format_hint(), received=received,
                )
            ]

        if spec.kind in {NUMBER, INTEGER}:
            try:
                value = number_of(cell)
            except ValueError:
                return fail(f"{spec.name} must be a number", RULE_TYPE)
            if spec.kind == INTEGER and not float(value).is_integer():
                return fail(f"{spec.name} must be a whole number", RULE_TYPE)
            if spec.min_value is not None and value < spec.min_value:
                return fail(f"{spec.name} must be at least {spec.min_value:g}", RULE_RANGE)
            if spec.max_value is not None and value > spec.max_value:
                return fail(f"{spec.name} must be at most {spec.max_value:g}", RULE_RANGE)
            return []

        if spec.kind == DATE:
            try:
                date_of(cell)
            except ValueError:
                return fail(f"{spec.name} must be a valid date in YYYY-MM-DD format", RULE_FORMAT)
            return []

        if spec.kind == FLAG:
            try:
                flag_of(cell)
            except ValueError:
                return fail(f"{spec.name} must be Y or N", RULE_ENUM)
            return []

        if spec.kind == ENUM:
            if isinstance(cell, Text) and cell.value.strip().upper() in spec.choices:
                return []
            return fail(f"{spec.name} must be one of: {', '.join(spec.choices)}", RULE_ENUM)

        out: list[Finding] = []
        if isinstance(cell, Number) and spec.kind == IDENTIFIER:
            if not cell.is_integral:
                return fail(f"{spec.name} must be text, not a decimal number", RULE_TYPE)
            out.append(
                _finding(
                    row,
                    spec.name,
                    f"{spec.name} was entered as a number; check that leading zeros were not lost",
                    Severity.LOW,
                    RULE_NUMERIC_IDENTIFIER,
                    reference_id=ref,
                    received=received,
                )
            )
        elif isinstance(cell, (DateValue, Boolean)) and spec.kind == IDENTIFIER:
            return fail(f"{spec.name} must be text", RULE_TYPE)

        text = (received or "").strip()
        if spec.min_length is not None and len(text) < spec.min_length:
            out.extend(fail(f"{spec.name} must be at least {spec.min_length} characters", RULE_LENGTH))
        elif spec.max_length is not None and len(text) > spec.max_length:
            out.extend(fail(f"{spec.name} must be at most {spec.max_length} characters", RULE_LENGTH))
        elif spec.pattern and not re.fullmatch(spec.pattern, text):
            out.extend(fail(f"{spec.name} has an invalid format", RULE_FORMAT))
        return out

    def _date_order_findings(self, row: SheetRow, sheet: SheetSpec, ref: str | None) -> list[Finding]:
        out: list[Finding] = []
        for order in sheet.date_orders:
            start = try_date(row.cell(order.start))
            end = try_date(row.cell(order.end))
            if start is None or end is None:
                continue
            if start < end or (start == end and not order.strict):
                continue
            relation, bound = ("after", ">") if order.strict else ("on or after", ">=")
            out.append(
                _finding(
                    row,
                    order.end,
                    f"{order.end} must be {relation} {order.start}",
                    Severity.HIGH,
                    RULE_DATE_ORDER,
                    reference_id=ref,
                    expected=f"{bound} {start.isoformat()}",
                    received=end.isoformat(),
                )
            )
        return out

    # Uniqueness

    def _unique_values(self, draft: CompositeDraft):
        for sheet, spec in self.schema.unique_fields():
            rows = [draft.basic] if sheet is self.schema.basic_sheet else draft.child_rows(sheet.name)
            for row in rows:
                value = display(row.cell(spec.name))
                if value is None or not value.strip():
                    continue
                yield sheet, spec, row, value.strip()

    def _build_unique_index(self, drafts: list[CompositeDraft]) -> dict[tuple[str, str, str], _UniqueOwner]:
        index: dict[tuple[str, str, str], _UniqueOwner] = {}
        for draft in drafts:
            for sheet, spec, row, value in self._unique_values(draft):
                key = (sheet.name, spec.name, _unique_key(value))
                index.setdefault(key, _UniqueOwner(draft.index, row.sheet, row.row_number))
        return index

    def _batch_duplicates(self, draft: CompositeDraft, index) -> list[Finding]:
        out: list[Finding] = []
        for sheet, spec, row, value in self._unique_values(draft):
            owner = index.get((sheet.name, spec.name, _unique_key(value)))
            if owner is None or (owner.sheet == row.sheet and owner.row_number == row.row_number):
                continue
            out.append(
                _finding(
                    row,
                    spec.name,
                    f'{spec.name} "{value}" already exists in row {owner.row_number}',
                    Severity.HIGH,
                    RULE_DUPLICATE_IN_BATCH,
                    reference_id=draft.reference_id,
                    expected="Unique within the upload",
                    received=value,
                )
            )
        return out

    def _store_hits(self, drafts, findings_by_index) -> dict[tuple[str, str], set[str]]:
        candidates: dict[tuple[str, str], set[str]] = {}
        for draft in drafts:
            if has_blocking(findings_by_index[draft.index]):
                continue
            for sheet, spec, _row, value in self._unique_values(draft):
                candidates.setdefault((sheet.name, spec.name), set()).add(value)

        hits: dict[tuple[str, str], set[str]] = {}
        for sheet, spec in self.schema.unique_fields():
            values = candidates.get((sheet.name, spec.name))
            if not values or sheet.model is None or not spec.column:
                continue
            found = self._store_lookup(sheet.model, spec.column, values)
            hits[(sheet.name, spec.name)] = {_unique_key(v) for v in found}
        return hits

    def _store_duplicates(self, draft: CompositeDraft, hits) -> list[Finding]:
        out: list[Finding] = []
        for sheet, spec, row, value in self._unique_values(draft):
            if _unique_key(value) not in hits.get((sheet.name, spec.name), set()):
                continue
            out.append(
                _finding(
                    row,
                    spec.name,
                    f'{spec.name} "{value}" already exists in the system',
                    Severity.HIGH,
                    RULE_DUPLICATE_IN_STORE,
                    reference_id=draft.reference_id,
                    expected="Value not yet registered",
                    received=value,
                )
            )
        return out

    # Master data and consistency

    def _master_findings(self, draft: CompositeDraft) -> list[Finding]:
        out: list[Finding] = []
        for row in draft.rows():
            sheet = self.schema.sheet(row.sheet)
            if sheet is None:
                continue
            for spec in sheet.fields:
                if not spec.master:
                    continue
                code = display(row.cell(spec.name))
                if code is None or not code.strip():
                    continue
                if self._master.contains(spec.master, code):
                    continue
                label = master_label(spec.master)
                out.append(
                    _finding(
                        row,
                        spec.name,
                        f'{spec.name} "{code.strip()}" does not exist in {label} master data',
                        Severity.HIGH,
                        RULE_MASTER_DATA,
                        reference_id=draft.reference_id,
                        expected=f"Active {label} code",
                        received=code.strip(),
                    )
                )
        return out

    def _consistency_findings(self, draft: CompositeDraft) -> list[Finding]:
        out: list[Finding] = []
        for check in self.schema.consistency_checks:
            out.extend(check(draft))
        return out
