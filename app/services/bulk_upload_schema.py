"""
Declarative description of one bulk-uploadable entity type.

An EntitySchema lists the workbook sheets (basic info first, then child
sheets), their columns with validation constraints, the sample rows the
template ships with, and the writer that inserts one validated draft.
Parser, validation engine, template builder, creation engine and error
report all work off this single descriptor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from app.services.bulk_upload_cells import Cell, EMPTY, display, date_of, flag_of, number_of

TEXT = "text"
IDENTIFIER = "identifier"  # text that users often type as a number (IMEI, postal code)
NUMBER = "number"
INTEGER = "integer"
DATE = "date"
FLAG = "flag"
ENUM = "enum"

CARDINALITY_BASIC = "basic"
CARDINALITY_ONE = "one"
CARDINALITY_MANY = "many"

CASE_UPPER = "upper"
CASE_LOWER = "lower"


@dataclass(frozen=True, eq=False)
class FieldSpec:
    name: str
    kind: str = TEXT
    required: bool = False
    column: str | None = None
    description: str = ""
    pattern: str | None = None
    pattern_hint: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    min_value: float | None = None
    max_value: float | None = None
    choices: tuple[str, ...] = ()
    # Unique across the upload and against persisted records.
    unique: bool = False
    # Master-data lookup key, see bulk_upload_master_data.MASTER_LOOKUPS.
    master: str | None = None
    # "upper" or "lower": stored text is folded so unique constraints
    # compare the way the upload checks do.
    case: str | None = None

    def format_hint(self) -> str:
        if self.kind == DATE:
            return "YYYY-MM-DD"
        if self.kind == FLAG:
            return "Y or N"
        if self.choices:
            return " / ".join(self.choices)
        if self.pattern_hint:
            return self.pattern_hint
        if self.kind in {NUMBER, INTEGER}:
            low = "" if self.min_value is None else f">= {self.min_value:g}"
            high = "" if self.max_value is None else f"<= {self.max_value:g}"
            return " and ".join(p for p in (low, high) if p) or "Number"
        if self.max_length:
            return f"Text, max {self.max_length} chars"
        return "Text"


@dataclass(frozen=True, eq=False)
class DateOrder:
    start: str
    end: str
    # Strict orders reject equal dates too.
    strict: bool = False


@dataclass(frozen=True, eq=False)
class SheetSpec:
    name: str
    fields: tuple[FieldSpec, ...]
    cardinality: str = CARDINALITY_MANY
    # Missing required sheets are a parse error; optional ones parse as empty.
    required: bool = True
    header_color: str = "4472C4"
    samples: tuple[dict[str, Any], ...] = ()
    date_orders: tuple[DateOrder, ...] = ()
    # Target model for this sheet; unique fields are checked against it.
    model: Any = None

    @property
    def columns(self) -> list[str]:
        return [f.name for f in self.fields]

    def field(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None


@dataclass(frozen=True)
class WriteContext:
    batch_id: str
    created_by: str


@dataclass(frozen=True, eq=False)
class EntitySchema:
    key: str
    display_name: str
    reference_column: str
    sheets: tuple[SheetSpec, ...]
    writer: Callable[..., str]
    upload_steps: tuple[str, ...] = ()
    critical_rules: tuple[str, ...] = ()
    # Each check receives a CompositeDraft and returns a list of Findings.
    consistency_checks: tuple[Callable[..., list], ...] = ()
    instructions_sheet: str = "Instructions"

    @property
    def basic_sheet(self) -> SheetSpec:
        return self.sheets[0]

    @property
    def child_sheets(self) -> tuple[SheetSpec, ...]:
        return self.sheets[1:]

    @property
    def sheet_names(self) -> list[str]:
        return [s.name for s in self.sheets]

    def sheet(self, name: str) -> SheetSpec | None:
        for spec in self.sheets:
            if spec.name == name:
                return spec
        return None

    def unique_fields(self) -> list[tuple[SheetSpec, FieldSpec]]:
        return [(s, f) for s in self.sheets for f in s.fields if f.unique]

    def master_fields(self) -> list[tuple[SheetSpec, FieldSpec]]:
        return [(s, f) for s in self.sheets for f in s.fields if f.master]


def coerce_for_column(spec: FieldSpec, cell: Cell) -> Any:
    """Convert an already-validated cell into the value stored in spec.column."""
    if spec.kind in {NUMBER, INTEGER}:
        value = number_of(cell)
        if value is None:
            return None
        return int(value) if spec.kind == INTEGER else value
    if spec.kind == DATE:
        return date_of(cell)
    if spec.kind == FLAG:
        return flag_of(cell)
    text = display(cell)
    if text is None:
        return None
    if spec.kind == ENUM or spec.case == CASE_UPPER:
        return text.strip().upper()
    if spec.case == CASE_LOWER:
        return text.strip().lower()
    return text.strip()


def column_values(sheet: SheetSpec, values: dict[str, Cell]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for spec in sheet.fields:
        if not spec.column:
            continue
        value = coerce_for_column(spec, values.get(spec.name, EMPTY))
        # Omitted rather than NULL so model defaults apply.
        if value is not None:
            out[spec.column] = value
    return out


def insert_sheet_row(db, sheet: SheetSpec, values: dict[str, Cell], **extra: Any):
    """Add one model instance for a sheet row and flush it so its id is known."""
    obj = sheet.model(**column_values(sheet, values), **extra)
    db.add(obj)
    db.flush()
    return obj
