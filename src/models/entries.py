"""
Data models for imported PTO entries and reconciliation results.

Entries are frozen dataclasses: phases derive new entries with
`dataclasses.replace` rather than mutating, so a list handed to one phase
is never changed underneath the caller.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Literal

PtoType = Literal["PTO", "Sick", "Bereavement", "Jury Duty"]


class EntrySource(str, Enum):
    """Where an entry's type and hours came from."""

    COLOR_EXACT = "color_exact"
    COLOR_APPROX = "color_approx"
    NOTE = "note"
    WORKED_CREDIT = "worked_credit"
    OFF_LEGEND_COLOR = "off_legend_color"


@dataclass(frozen=True)
class ImportedPtoEntry:
    """One dated PTO ledger line."""

    date: str  # YYYY-MM-DD
    type: PtoType
    hours: float  # Negative hours are credits for work on an off day
    notes: str = ""
    is_partial_pto_color: bool = False
    is_note_derived: bool = False  # Pinned: hours came from an explicit cell note
    source: EntrySource = EntrySource.COLOR_EXACT
    cell_note: str = ""
    color: str | None = None

    @property
    def month(self) -> int:
        return int(self.date[5:7])

    def with_note(self, note: str, **changes) -> "ImportedPtoEntry":
        """Return a copy with `note` appended to the audit notes."""
        notes = f"{self.notes} {note}" if self.notes else note
        return replace(self, notes=notes, **changes)


@dataclass(frozen=True)
class PtoCalcRow:
    """Declared (column S) PTO hours for one month."""

    month: int
    used_hours: float


@dataclass(frozen=True)
class UnmatchedNotedCell:
    """Calendar cell with a note but no legend color match."""

    date: str
    note: str


@dataclass(frozen=True)
class WorkedCell:
    """Calendar cell noted as worked on an otherwise-off day."""

    date: str
    note: str


@dataclass(frozen=True)
class UnmatchedColoredCell:
    """Calendar cell filled with a color that is not in the legend."""

    date: str
    color: str
    note: str = ""


@dataclass
class PhaseResult:
    """Output of a single reconciliation phase."""

    entries: list[ImportedPtoEntry]
    warnings: list[str] = field(default_factory=list)
    resolved: list[str] = field(default_factory=list)
    worked_cells: list[WorkedCell] = field(default_factory=list)
    handled_worked_dates: set[str] = field(default_factory=set)
    sick_allowance_exhausted: bool = False


@dataclass
class CalendarParseResult:
    """Buckets produced by walking the 12-month calendar grid."""

    entries: list[ImportedPtoEntry] = field(default_factory=list)
    unmatched_noted_cells: list[UnmatchedNotedCell] = field(default_factory=list)
    worked_cells: list[WorkedCell] = field(default_factory=list)
    unmatched_colored_cells: list[UnmatchedColoredCell] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    resolved: list[str] = field(default_factory=list)


@dataclass
class SheetInputs:
    """Everything the reconciliation engine needs for one employee sheet."""

    sheet_name: str
    entries: list[ImportedPtoEntry]
    pto_calc_rows: list[PtoCalcRow]
    unmatched_noted_cells: list[UnmatchedNotedCell] = field(default_factory=list)
    unmatched_colored_cells: list[UnmatchedColoredCell] = field(default_factory=list)
    worked_cells: list[WorkedCell] = field(default_factory=list)


@dataclass
class ReconciliationResult:
    """Final entries and diagnostics of a full reconciliation run."""

    entries: list[ImportedPtoEntry]
    warnings: list[str] = field(default_factory=list)
    resolved: list[str] = field(default_factory=list)


@dataclass
class EmployeeImportInfo:
    """Employee metadata read from the sheet header and PTO Calc section."""

    name: str
    year: int
    hire_date: str | None = None  # YYYY-MM-DD
    carryover_hours: float = 0.0
    spreadsheet_pto_rate: float = 0.0  # 0 when column F is blank or not a number
    pto_rate: float | None = None  # Daily accrual rate in effect for the year


@dataclass(frozen=True)
class ImportedAcknowledgement:
    """Monthly sign-off by the employee or an admin."""

    month: str  # YYYY-MM
    type: Literal["employee", "admin"]
    status: Literal["warning"] | None = None
    note: str = ""


@dataclass
class SheetImportResult:
    """Parsed and reconciled data for one employee sheet."""

    employee: EmployeeImportInfo
    pto_entries: list[ImportedPtoEntry]
    pto_calc_rows: list[PtoCalcRow]
    acknowledgements: list[ImportedAcknowledgement] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    resolved: list[str] = field(default_factory=list)

    @property
    def total_hours(self) -> float:
        return round(sum(e.hours for e in self.pto_entries if e.type == "PTO"), 2)


@dataclass
class WorkbookImportResult:
    """Result of importing every employee sheet in a workbook."""

    sheets: list[SheetImportResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    resolved: list[str] = field(default_factory=list)
    skipped_sheets: list[str] = field(default_factory=list)
    failed_sheets: list[str] = field(default_factory=list)
