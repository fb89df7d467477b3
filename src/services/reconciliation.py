"""
Reconciliation phases.

Each phase is a pure function over the previous phase's entries that
returns a PhaseResult. Phases never mutate their inputs: changed entries
are rebuilt with `dataclasses.replace` into a fresh list.

Monthly totals only count COLUMN_S_TRACKED_TYPES, since that is what the
declared "PTO hours per Month" column (S) sums. Column S is authoritative:
phases close gaps against it when a bounded, explainable adjustment
exists, and warn otherwise.
"""

import re
from collections import defaultdict

from core.config import (
    AGREEMENT_TOLERANCE,
    ANNUAL_SICK_ALLOWANCE,
    ASSUMED_CREDIT_HOURS,
    ASSUMED_PARTIAL_HOURS,
    BEREAVEMENT_GAP_TOLERANCE,
    COLUMN_S_TRACKED_TYPES,
    DEFAULT_DAY_HOURS,
    FULL_DAY_GAP_HOURS,
    MAX_PARTIAL_HOURS,
    MIN_CREDIT_HOURS,
    MISMATCH_TOLERANCE,
    OVERCOLOR_NOTE_KEYWORDS,
)
from models.entries import (
    EntrySource,
    ImportedPtoEntry,
    PhaseResult,
    PtoCalcRow,
    UnmatchedColoredCell,
    UnmatchedNotedCell,
    WorkedCell,
)
from services.notes import flatten_note, parse_hours_from_note, parse_worked_hours_from_note

WORKED_WORD_RE = re.compile(r"\bworked\b", re.IGNORECASE)
PTO_WORD_RE = re.compile(r"\bPTO\b", re.IGNORECASE)
SICK_WORD_RE = re.compile(r"\bsick\b", re.IGNORECASE)


# =============================================================================
# HELPERS
# =============================================================================


def round2(value: float) -> float:
    return round(value, 2)


def fmt(hours: float) -> str:
    """Format hours without a trailing ".0" (8 -> "8", 4.5 -> "4.5")."""
    return f"{round2(hours):g}"


def month_of(date_str: str) -> int:
    return int(date_str[5:7])


def is_tracked(entry: ImportedPtoEntry) -> bool:
    return entry.type in COLUMN_S_TRACKED_TYPES


def tracked_total(entries: list[ImportedPtoEntry], month: int) -> float:
    """Sum of column-S-tracked hours for one month."""
    return round2(sum(e.hours for e in entries if e.month == month and is_tracked(e)))


def tracked_indices(entries: list[ImportedPtoEntry], month: int) -> list[int]:
    """Indices of a month's tracked entries, in date order."""
    indices = [i for i, e in enumerate(entries) if e.month == month and is_tracked(e)]
    return sorted(indices, key=lambda i: entries[i].date)


def group_by_month(cells) -> dict[int, list]:
    """Group dated cells by month, each group in date order."""
    grouped = defaultdict(list)
    for cell in sorted(cells, key=lambda c: c.date):
        grouped[month_of(cell.date)].append(cell)
    return dict(grouped)


# =============================================================================
# 3a. NOTE-TYPE OVERRIDE
# =============================================================================


def override_type_from_note(entries: list[ImportedPtoEntry], sheet_name: str = "") -> PhaseResult:
    """
    Reclassify approximate-color matches using keywords in their cell note.

    - "worked" -> the entry is dropped and returned as a WorkedCell
    - "PTO"    -> retyped PTO
    - "sick"   -> retyped Sick
    """
    phase = PhaseResult(entries=[])

    for entry in entries:
        if entry.source is not EntrySource.COLOR_APPROX or not entry.cell_note:
            phase.entries.append(entry)
            continue

        raw_note = flatten_note(entry.cell_note)

        if WORKED_WORD_RE.search(raw_note):
            phase.worked_cells.append(WorkedCell(date=entry.date, note=entry.cell_note))
            phase.warnings.append(
                f'"{sheet_name}" {entry.date}: approximate-matched {entry.type} '
                f'overridden to worked cell (note: "{raw_note[:60]}").'
            )
            continue

        if PTO_WORD_RE.search(raw_note):
            new_type = "PTO"
        elif SICK_WORD_RE.search(raw_note):
            new_type = "Sick"
        else:
            new_type = entry.type

        if new_type == entry.type:
            phase.entries.append(entry)
            continue

        phase.entries.append(
            entry.with_note(
                f"Type overridden from {entry.type} to {new_type} based on note keyword.",
                type=new_type,
            )
        )
        phase.resolved.append(
            f'"{sheet_name}" {entry.date}: approximate-matched {entry.type} '
            f'overridden to {new_type} (note: "{raw_note[:60]}").'
        )

    return phase


# =============================================================================
# 3b. PARTIAL-DAY ADJUSTMENT
# =============================================================================


def adjust_partial_days(
    entries: list[ImportedPtoEntry],
    pto_calc_rows: list[PtoCalcRow],
    sheet_name: str = "",
) -> PhaseResult:
    """
    Redistribute hours among Partial PTO entries so each month matches its
    declared total.

    Note-derived (pinned) partials keep their hours; the remainder is split
    evenly over the unpinned ones, and only applied when each share lands
    in (0, 8]. Without partials, an over-reporting month shrinks its last
    unpinned entry; an under-reporting month is only warned about.
    """
    result = list(entries)
    phase = PhaseResult(entries=result)

    for calc in pto_calc_rows:
        declared = calc.used_hours
        if declared <= 0:
            continue

        indices = tracked_indices(result, calc.month)
        if not indices:
            continue

        calendar_total = round2(sum(result[i].hours for i in indices))
        if calendar_total == round2(declared):
            continue

        prefix = f'"{sheet_name}" month {calc.month}'
        partials = [i for i in indices if result[i].is_partial_pto_color]

        if partials:
            pinned = [i for i in partials if result[i].is_note_derived]
            unpinned = [i for i in partials if not result[i].is_note_derived]
            full_total = round2(sum(result[i].hours for i in indices if not result[i].is_partial_pto_color))
            pinned_total = round2(sum(result[i].hours for i in pinned))

            if unpinned:
                remaining = round2(declared - full_total - pinned_total)
                hours_each = round2(remaining / len(unpinned))

                if 0 < hours_each <= MAX_PARTIAL_HOURS:
                    for i in unpinned:
                        original = result[i].hours
                        if original == hours_each:
                            continue
                        result[i] = result[i].with_note(
                            f"Adjusted from {fmt(original)}h to {fmt(hours_each)}h based on "
                            f"PTO Calc (declared {fmt(declared)}h for month {calc.month}).",
                            hours=hours_each,
                        )
                    phase.resolved.append(
                        f"{prefix}: distributed {fmt(remaining)}h over {len(unpinned)} partial "
                        f"PTO entr{'y' if len(unpinned) == 1 else 'ies'} ({fmt(hours_each)}h each). "
                        f"Declared={fmt(declared)}h, calendar={fmt(calendar_total)}h."
                    )
                else:
                    phase.warnings.append(
                        f"{prefix}: partial distribution produced {fmt(hours_each)}h per entry "
                        f"(out of 0-{fmt(MAX_PARTIAL_HOURS)} range). Declared={fmt(declared)}h, "
                        f"fullTotal={fmt(full_total)}h, pinnedTotal={fmt(pinned_total)}h, "
                        f"{len(unpinned)} unpinned partial entries. No adjustment applied."
                    )
            else:
                total_with_pinned = round2(full_total + pinned_total)
                if abs(total_with_pinned - declared) > MISMATCH_TOLERANCE:
                    phase.warnings.append(
                        f"{prefix}: all {len(pinned)} partial entries have note-derived hours "
                        f"(pinned). Declared={fmt(declared)}h, fullTotal={fmt(full_total)}h, "
                        f"pinnedTotal={fmt(pinned_total)}h, total={fmt(total_with_pinned)}h. "
                        f"Not overriding pinned values."
                    )

        elif calendar_total > declared:
            candidates = [i for i in indices if not result[i].is_note_derived]
            if not candidates:
                continue
            target = candidates[-1]
            original = result[target].hours
            partial_hours = round2(declared - (calendar_total - original))

            if 0 < partial_hours < original:
                result[target] = result[target].with_note(
                    f"Adjusted from {fmt(original)}h to {fmt(partial_hours)}h based on "
                    f"PTO Calc (declared {fmt(declared)}h for month {calc.month}).",
                    hours=partial_hours,
                )
                phase.resolved.append(
                    f"{prefix}: reduced {result[target].date} from {fmt(original)}h to "
                    f"{fmt(partial_hours)}h. Declared={fmt(declared)}h, calendar={fmt(calendar_total)}h."
                )

        else:
            phase.warnings.append(
                f"{prefix}: calendar total ({fmt(calendar_total)}h) < declared "
                f"({fmt(declared)}h) but no Partial PTO entries found. Cannot back-calculate."
            )

    return phase


# =============================================================================
# 3c. PARTIAL PTO FROM NOTES
# =============================================================================


def reconcile_partial_pto(
    entries: list[ImportedPtoEntry],
    unmatched_noted_cells: list[UnmatchedNotedCell],
    pto_calc_rows: list[PtoCalcRow],
    sheet_name: str = "",
) -> PhaseResult:
    """
    Recover PTO visible only as a cell note (no legend color) by closing
    each month's positive gap from its noted cells, in date order.
    """
    result = list(entries)
    phase = PhaseResult(entries=result)
    claimed = {e.date for e in result}
    noted_by_month = group_by_month(unmatched_noted_cells)

    for calc in pto_calc_rows:
        declared = calc.used_hours
        if declared <= 0:
            continue

        detected = tracked_total(result, calc.month)
        gap = round2(declared - detected)
        if gap <= 0:
            continue

        prefix = f'"{sheet_name}" month {calc.month}'
        month_noted = [c for c in noted_by_month.get(calc.month, []) if c.date not in claimed]

        if not month_noted:
            phase.warnings.append(
                f"{prefix}: PTO hours mismatch. Declared={fmt(declared)}h, "
                f"detected={fmt(detected)}h, gap={fmt(gap)}h. No cell notes found for reconciliation."
            )
            continue

        remaining = gap
        for noted in month_noted:
            if remaining <= 0:
                break

            note_hours = parse_hours_from_note(noted.note)
            assigned = round2(min(note_hours, remaining) if note_hours is not None else remaining)

            result.append(
                ImportedPtoEntry(
                    date=noted.date,
                    type="PTO",
                    hours=assigned,
                    notes=(
                        f'Inferred partial PTO from cell note "{flatten_note(noted.note)}". '
                        f"Calendar color not matched as Partial PTO. Reconciled against PTO Calc "
                        f"(declared={fmt(declared)}h, detected={fmt(detected)}h, gap={fmt(gap)}h)."
                    ),
                    source=EntrySource.NOTE,
                    cell_note=noted.note,
                )
            )
            claimed.add(noted.date)
            remaining = round2(remaining - assigned)

        if remaining > 0:
            phase.resolved.append(
                f"{prefix}: partially reconciled. Declared={fmt(declared)}h, "
                f"detected={fmt(detected)}h, assigned {fmt(gap - remaining)}h from notes, "
                f"{fmt(remaining)}h still unaccounted for."
            )
        else:
            phase.resolved.append(
                f"{prefix}: reconciled {fmt(gap)}h gap from cell notes. "
                f"Declared={fmt(declared)}h, detected={fmt(detected)}h."
            )

    return phase


# =============================================================================
# 3d. WEEKEND / WORKED-DAY CREDITS
# =============================================================================


def worked_credit_entry(cell: WorkedCell, hours: float, notes: str) -> ImportedPtoEntry:
    """Negative PTO entry crediting work done on an off day."""
    return ImportedPtoEntry(
        date=cell.date,
        type="PTO",
        hours=-round2(hours),
        notes=f'{notes} Cell note: "{flatten_note(cell.note)}"',
        source=EntrySource.WORKED_CREDIT,
        cell_note=cell.note,
    )


def process_worked_cells(
    worked_cells: list[WorkedCell],
    entries: list[ImportedPtoEntry],
    pto_calc_rows: list[PtoCalcRow],
    sheet_name: str = "",
) -> PhaseResult:
    """
    Turn "worked" notes into negative PTO credits.

    Credits with hours in the note are created directly. A single unparsed
    cell in a month takes the month's positive deficit; with several
    unparsed cells there is no tie-break, so each is warned about instead.
    """
    result = list(entries)
    phase = PhaseResult(entries=result)
    claimed = {e.date for e in entries}
    declared_by_month = {r.month: r.used_hours for r in pto_calc_rows}

    for month, cells in sorted(group_by_month(worked_cells).items()):
        declared = declared_by_month.get(month, 0.0)
        existing_total = tracked_total(entries, month)

        parsed = []
        unparsed = []
        for cell in cells:
            if cell.date in claimed:
                phase.warnings.append(
                    f'"{sheet_name}": worked day on {cell.date} already has an entry. '
                    f'Note: "{flatten_note(cell.note)}". Skipping credit.'
                )
                continue
            hours = parse_worked_hours_from_note(cell.note)
            if hours is not None:
                parsed.append((cell, hours))
            else:
                unparsed.append(cell)

        for cell, hours in parsed:
            result.append(worked_credit_entry(cell, hours, f"Weekend/off-day work credit ({fmt(hours)}h)."))
            claimed.add(cell.date)
            phase.resolved.append(
                f'"{sheet_name}": detected worked day on {cell.date}. '
                f'Note: "{flatten_note(cell.note)}". Assigned -{fmt(hours)}h PTO credit from note.'
            )

        if not unparsed:
            continue

        parsed_credit = sum(hours for _, hours in parsed)
        deficit = round2(existing_total - parsed_credit - declared)

        if deficit > 0 and len(unparsed) == 1:
            cell = unparsed[0]
            result.append(
                worked_credit_entry(
                    cell,
                    deficit,
                    f"Weekend/off-day work credit inferred from PTO Calc. "
                    f"Declared={fmt(declared)}h, detected={fmt(existing_total)}h, "
                    f"other credits={fmt(parsed_credit)}h, inferred={fmt(deficit)}h.",
                )
            )
            claimed.add(cell.date)
            phase.resolved.append(
                f'"{sheet_name}": detected worked day on {cell.date}. '
                f'Note: "{flatten_note(cell.note)}". '
                f"Inferred -{fmt(deficit)}h PTO credit from PTO Calc deficit."
            )
        elif deficit > 0:
            for cell in unparsed:
                phase.warnings.append(
                    f'"{sheet_name}": detected worked day on {cell.date}. '
                    f'Note: "{flatten_note(cell.note)}". Could not determine hours, '
                    f"{len(unparsed)} worked cells in month {month} with {fmt(deficit)}h "
                    f"total deficit. Skipping."
                )
        else:
            for cell in unparsed:
                phase.warnings.append(
                    f'"{sheet_name}": detected worked day on {cell.date}. '
                    f'Note: "{flatten_note(cell.note)}". '
                    f"Could not determine hours (no PTO Calc deficit). Skipping."
                )

    return phase


# =============================================================================
# 3e. JOINT WEEKEND + PARTIAL INFERENCE
# =============================================================================


def solve_partial_and_credit(
    target: float, partial_count: int, worked_count: int
) -> tuple[float, float, str] | None:
    """
    Solve target = u*p - w*c for per-partial hours p and per-cell credit c.

    Heuristics are tried in a fixed order and the first one that keeps the
    derived value in (0, 8] wins:
    1. c = 8 (a full day worked), solve for p
    2. p = 4 (half-day partials), solve for c
    3. midpoint c clamped to [0.5, 8], derive p

    Returns:
        Tuple of (p, c, method), or None when no heuristic fits
    """
    u, w = partial_count, worked_count

    p = round2((target + w * ASSUMED_CREDIT_HOURS) / u)
    if 0 < p <= MAX_PARTIAL_HOURS:
        return p, ASSUMED_CREDIT_HOURS, f"c assumed {fmt(ASSUMED_CREDIT_HOURS)}h"

    c = round2((u * ASSUMED_PARTIAL_HOURS - target) / w)
    if 0 < c <= DEFAULT_DAY_HOURS:
        return ASSUMED_PARTIAL_HOURS, c, f"p assumed {fmt(ASSUMED_PARTIAL_HOURS)}h"

    midpoint = (u * ASSUMED_PARTIAL_HOURS - target) / w
    c = round2(min(DEFAULT_DAY_HOURS, max(MIN_CREDIT_HOURS, midpoint)))
    p = round2((target + w * c) / u)
    if 0 < p <= MAX_PARTIAL_HOURS:
        return p, c, "constrained solve"

    return None


def infer_weekend_partial_hours(
    entries: list[ImportedPtoEntry],
    worked_cells: list[WorkedCell],
    pto_calc_rows: list[PtoCalcRow],
    sheet_name: str = "",
) -> PhaseResult:
    """
    Jointly infer partial-day hours and worked-day credits for months where
    both are unknown.

    Runs for months that still disagree with column S and have unpinned
    Partial PTO entries alongside worked cells without a credit yet.
    Handled worked dates are returned so the credit phase skips them.
    """
    result = list(entries)
    phase = PhaseResult(entries=result)
    claimed = {e.date for e in entries}
    worked_by_month = group_by_month([wc for wc in worked_cells if wc.date not in claimed])

    for calc in pto_calc_rows:
        declared = calc.used_hours
        indices = tracked_indices(result, calc.month)
        current_total = sum(result[i].hours for i in indices)
        if abs(current_total - declared) < AGREEMENT_TOLERANCE:
            continue

        partials = [i for i in indices if result[i].is_partial_pto_color]
        worked = worked_by_month.get(calc.month, [])
        if not partials or not worked:
            continue

        unpinned = [i for i in partials if not result[i].is_note_derived]
        if not unpinned:
            continue

        pinned_total = round2(sum(result[i].hours for i in partials if result[i].is_note_derived))
        full_total = round2(
            sum(
                result[i].hours
                for i in indices
                if not result[i].is_partial_pto_color and result[i].hours > 0
            )
        )
        existing_credits = round2(sum(result[i].hours for i in indices if result[i].hours < 0))
        u, w = len(unpinned), len(worked)
        target = declared - full_total - pinned_total - existing_credits
        prefix = f'"{sheet_name}" month {calc.month}'

        solution = solve_partial_and_credit(target, u, w)
        if solution is None:
            phase.warnings.append(
                f"{prefix}: joint weekend/partial inference failed. Could not find valid p and c "
                f"for declared({fmt(declared)}) = full({fmt(full_total)}) + "
                f"pinned({fmt(pinned_total)}) + credits({fmt(existing_credits)}) + "
                f"{u}×p − {w}×c. No adjustment applied."
            )
            continue

        p, c, method = solution
        for i in unpinned:
            result[i] = result[i].with_note(
                f"Inferred p={fmt(p)}h ({method}). Equation: declared({fmt(declared)}) = "
                f"full({fmt(full_total)}) + pinned({fmt(pinned_total)}) + {u}×p − {w}×{fmt(c)}",
                hours=p,
            )

        for wc in worked:
            result.append(
                worked_credit_entry(
                    wc,
                    c,
                    f"Inferred c={fmt(c)}h ({method}). Equation: declared({fmt(declared)}) = "
                    f"full({fmt(full_total)}) + pinned({fmt(pinned_total)}) + {u}×{fmt(p)} − {w}×c.",
                )
            )
            phase.handled_worked_dates.add(wc.date)

        new_total = full_total + pinned_total + existing_credits + u * p - w * c
        phase.resolved.append(
            f"{prefix}: joint weekend/partial inference applied. p={fmt(p)}h, c={fmt(c)}h "
            f"({method}). Declared={fmt(declared)}h, computed={fmt(new_total)}h."
        )

    return phase


# =============================================================================
# 3f. SICK -> PTO (ALLOWANCE EXHAUSTED)
# =============================================================================


def reclassify_sick_as_pto(entries: list[ImportedPtoEntry], sheet_name: str = "") -> PhaseResult:
    """
    Reclassify Sick entries as PTO once the annual sick allowance is used up.

    Walks Sick entries chronologically. The entry that crosses the
    allowance stays Sick; every later one becomes PTO.
    """
    result = list(entries)
    phase = PhaseResult(entries=result)

    sick_indices = sorted(
        (i for i, e in enumerate(result) if e.type == "Sick"),
        key=lambda i: result[i].date,
    )

    cumulative = 0.0
    for i in sick_indices:
        entry = result[i]
        hours = abs(entry.hours)

        if cumulative >= ANNUAL_SICK_ALLOWANCE:
            result[i] = entry.with_note(
                f"Cell colored as Sick but reclassified as PTO, employee had exhausted "
                f"{fmt(ANNUAL_SICK_ALLOWANCE)}h sick allowance (used {fmt(cumulative)}h "
                f"prior to this date).",
                type="PTO",
            )
            phase.resolved.append(
                f'"{sheet_name}" {entry.date}: Sick entry reclassified as PTO ({fmt(hours)}h). '
                f"Employee had used {fmt(cumulative)}h of {fmt(ANNUAL_SICK_ALLOWANCE)}h sick allowance."
            )
            phase.sick_allowance_exhausted = True

        cumulative += hours

    return phase


# =============================================================================
# 3g. COLUMN-S-GUIDED RECLASSIFICATION
# =============================================================================


def _close_gap_by_reclassifying(
    result: list[ImportedPtoEntry],
    candidates: list[int],
    month: int,
    declared: float,
    pto_total: float,
    gap_tolerance: float,
    label: str,
    sheet_name: str,
    phase: PhaseResult,
) -> None:
    gap = declared - pto_total
    for i in candidates:
        if gap < gap_tolerance:
            break
        hours = abs(result[i].hours)
        if hours > gap + MISMATCH_TOLERANCE:
            continue

        detail = f"Declared={fmt(declared)}h, PTO before reclassification={pto_total:.1f}h, gap={gap:.1f}h."
        result[i] = result[i].with_note(
            f"{label} entry reclassified as PTO based on column S gap. {detail}",
            type="PTO",
        )
        phase.resolved.append(
            f'"{sheet_name}" {result[i].date}: {label} reclassified as PTO ({fmt(hours)}h) '
            f"based on column S gap for month {month}. {detail}"
        )
        pto_total += hours
        gap -= hours


def reclassify_sick_by_column_s(
    entries: list[ImportedPtoEntry],
    pto_calc_rows: list[PtoCalcRow],
    sheet_name: str = "",
    sick_allowance_exhausted: bool = False,
) -> PhaseResult:
    """
    Close remaining column S gaps by flipping Sick entries to PTO.

    Only runs when the allowance-exhaustion phase actually reclassified
    something, since that is the evidence the employee was out of sick time.
    """
    result = list(entries)
    phase = PhaseResult(entries=result)
    if not sick_allowance_exhausted:
        return phase

    for calc in pto_calc_rows:
        month_entries = [i for i, e in enumerate(result) if e.month == calc.month]
        pto_total = sum(result[i].hours for i in month_entries if result[i].type == "PTO")
        sick = sorted(
            (i for i in month_entries if result[i].type == "Sick"),
            key=lambda i: result[i].date,
        )
        if not sick or calc.used_hours - pto_total < MISMATCH_TOLERANCE:
            continue
        _close_gap_by_reclassifying(
            result, sick, calc.month, calc.used_hours, pto_total,
            MISMATCH_TOLERANCE, "Sick", sheet_name, phase,
        )

    return phase


def reclassify_bereavement_by_column_s(
    entries: list[ImportedPtoEntry],
    pto_calc_rows: list[PtoCalcRow],
    sheet_name: str = "",
) -> PhaseResult:
    """
    Flip approximate-color Bereavement entries to PTO when column S
    declares more PTO than detected. Smallest entries are tried first.
    """
    result = list(entries)
    phase = PhaseResult(entries=result)

    for calc in pto_calc_rows:
        month_entries = [i for i, e in enumerate(result) if e.month == calc.month]
        pto_total = sum(result[i].hours for i in month_entries if result[i].type == "PTO")
        bereavement = sorted(
            (
                i
                for i in month_entries
                if result[i].type == "Bereavement" and result[i].source is EntrySource.COLOR_APPROX
            ),
            key=lambda i: (result[i].hours, result[i].date),
        )
        if not bereavement or calc.used_hours - pto_total < BEREAVEMENT_GAP_TOLERANCE:
            continue
        _close_gap_by_reclassifying(
            result, bereavement, calc.month, calc.used_hours, pto_total,
            BEREAVEMENT_GAP_TOLERANCE, "Bereavement", sheet_name, phase,
        )

    return phase


# =============================================================================
# 3h. NON-STANDARD COLOR RECOVERY
# =============================================================================


def off_legend_entry(cell: UnmatchedColoredCell, hours: float) -> ImportedPtoEntry:
    notes = (
        f"Non-standard color ({cell.color}) treated as PTO, cell color not in legend "
        f"but PTO Calc discrepancy suggests PTO."
    )
    if cell.note:
        notes += f' Cell note: "{flatten_note(cell.note)}"'
    return ImportedPtoEntry(
        date=cell.date,
        type="PTO",
        hours=round2(hours),
        notes=notes,
        source=EntrySource.OFF_LEGEND_COLOR,
        cell_note=cell.note,
        color=cell.color,
    )


def reconcile_unmatched_colored_cells(
    entries: list[ImportedPtoEntry],
    unmatched_colored_cells: list[UnmatchedColoredCell],
    pto_calc_rows: list[PtoCalcRow],
    sheet_name: str = "",
) -> PhaseResult:
    """
    Treat off-legend colored cells as PTO when a month is missing at least
    a full day against column S.

    Noted cells are used first (note hours, else up to 8h); any remaining
    gap is spread evenly over the note-less cells when each share lands
    in (0, 8].
    """
    result = list(entries)
    phase = PhaseResult(entries=result)
    if not unmatched_colored_cells:
        return phase

    claimed = {e.date for e in entries}
    cells_by_month = group_by_month(unmatched_colored_cells)

    for calc in pto_calc_rows:
        declared = calc.used_hours
        if declared <= 0:
            continue

        calendar_total = tracked_total(entries, calc.month)
        gap = round2(declared - calendar_total)
        if gap < FULL_DAY_GAP_HOURS:
            continue

        available = [c for c in cells_by_month.get(calc.month, []) if c.date not in claimed]
        if not available:
            continue

        prefix = f'"{sheet_name}" month {calc.month}'
        with_notes = [c for c in available if c.note]
        without_notes = [c for c in available if not c.note]
        created = 0

        for cell in with_notes:
            if gap <= MISMATCH_TOLERANCE:
                break
            note_hours = parse_hours_from_note(cell.note)
            assigned = min(note_hours, gap) if note_hours is not None else min(DEFAULT_DAY_HOURS, gap)
            result.append(off_legend_entry(cell, assigned))
            claimed.add(cell.date)
            created += 1
            gap = round2(gap - assigned)

        if gap > MISMATCH_TOLERANCE and without_notes:
            hours_each = round2(gap / len(without_notes))
            if 0 < hours_each <= MAX_PARTIAL_HOURS:
                for cell in without_notes:
                    if gap <= MISMATCH_TOLERANCE:
                        break
                    assigned = min(hours_each, gap)
                    result.append(off_legend_entry(cell, assigned))
                    claimed.add(cell.date)
                    created += 1
                    gap = round2(gap - assigned)
            else:
                phase.warnings.append(
                    f"{prefix}: {len(without_notes)} unmatched colored cells but distributing "
                    f"{fmt(gap)}h yields {fmt(hours_each)}h each (out of 0-{fmt(MAX_PARTIAL_HOURS)} "
                    f"range). No PTO entries created from unmatched cells."
                )

        if gap > MISMATCH_TOLERANCE:
            phase.resolved.append(
                f"{prefix}: partially reconciled via unmatched colored cells. "
                f"Declared={fmt(declared)}h, calendar={fmt(calendar_total)}h, assigned "
                f"{fmt(declared - calendar_total - gap)}h from unmatched cells, "
                f"{fmt(gap)}h still unaccounted for."
            )
        elif created:
            phase.resolved.append(
                f"{prefix}: reconciled {created} unmatched colored cell(s) as PTO. "
                f"Declared={fmt(declared)}h, original calendar={fmt(calendar_total)}h."
            )

    return phase


# =============================================================================
# 3i. OVER-COLORING DETECTION
# =============================================================================


def detect_over_coloring(
    entries: list[ImportedPtoEntry],
    pto_calc_rows: list[PtoCalcRow],
    sheet_name: str = "",
) -> PhaseResult:
    """
    Warn about months where the calendar reports more PTO than column S.

    Detection only: column S stays authoritative and calendar hours are
    never removed to force agreement.
    """
    phase = PhaseResult(entries=list(entries))

    for calc in pto_calc_rows:
        declared = calc.used_hours
        month_entries = [e for e in entries if e.month == calc.month and is_tracked(e)]
        calendar_total = round2(sum(e.hours for e in month_entries))
        delta = round2(calendar_total - declared)
        if delta <= MISMATCH_TOLERANCE:
            continue

        note_matches = [
            f"{e.date} note: '{flatten_note(e.notes)[:120]}'"
            for e in month_entries
            if e.notes and OVERCOLOR_NOTE_KEYWORDS.search(e.notes)
        ]

        warning = (
            f"Over-coloring detected for {sheet_name} month {calc.month}: "
            f"calendar={fmt(calendar_total)}h, declared={fmt(declared)}h (Δ=+{fmt(delta)}h)."
        )
        if note_matches:
            warning += f" Relevant notes: {'; '.join(note_matches)}."
        warning += f" Column S is authoritative; calendar over-reports by {fmt(delta)}h."
        phase.warnings.append(warning)

    return phase
