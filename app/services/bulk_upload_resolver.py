from __future__ import annotations

from dataclasses import dataclass, field

from app.services.bulk_upload_cells import display
from app.services.bulk_upload_parser import ParsedWorkbook, SheetRow
from app.services.bulk_upload_schema import EntitySchema


@dataclass
class CompositeDraft:
    """All rows sharing one reference ID. Lives only for one batch run."""

    index: int
    reference_id: str | None
    basic: SheetRow
    children: dict[str, list[SheetRow]] = field(default_factory=dict)
    # Row number of the first basic row that claimed this reference ID,
    # set only when this draft repeats an earlier reference ID.
    duplicate_of_row: int | None = None

    def child_rows(self, sheet_name: str) -> list[SheetRow]:
        return self.children.get(sheet_name, [])

    def rows(self) -> list[SheetRow]:
        out = [self.basic]
        for sheet_rows in self.children.values():
            out.extend(sheet_rows)
        return out


@dataclass
class ResolvedBatch:
    drafts: list[CompositeDraft]
    # Child rows whose reference ID is blank or not declared on the basic sheet.
    unlinked_rows: list[SheetRow]


def reference_of(row: SheetRow, reference_column: str) -> str | None:
    text = display(row.cell(reference_column))
    if text is None:
        return None
    text = text.strip()
    return text or None


def resolve_references(parsed: ParsedWorkbook, schema: EntitySchema) -> ResolvedBatch:
    """
    Group parsed rows into one draft per basic-info row.

    A repeated or blank reference ID on the basic sheet still yields its own
    draft (so it can be reported), but child rows only attach to the first
    draft that declared the reference ID.
    """
    ref_column = schema.reference_column
    drafts: list[CompositeDraft] = []
    owners: dict[str, CompositeDraft] = {}

    for row in parsed.rows(schema.basic_sheet.name):
        ref = reference_of(row, ref_column)
        draft = CompositeDraft(index=len(drafts), reference_id=ref, basic=row)
        for child in schema.child_sheets:
            draft.children[child.name] = []
        if ref is not None:
            first = owners.get(ref)
            if first is None:
                owners[ref] = draft
            else:
                draft.duplicate_of_row = first.basic.row_number
        drafts.append(draft)

    unlinked: list[SheetRow] = []
    for child in schema.child_sheets:
        for row in parsed.rows(child.name):
            ref = reference_of(row, ref_column)
            owner = owners.get(ref) if ref is not None else None
            if owner is None:
                unlinked.append(row)
                continue
            owner.children[child.name].append(row)

    return ResolvedBatch(drafts=drafts, unlinked_rows=unlinked)
