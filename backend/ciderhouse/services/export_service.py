"""
Export Service
CSV documents built from already-computed data
"""

from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Sequence
import logging
import csv
import io

from ciderhouse.core.units import liters_to_wine_gallons
from ciderhouse.schemas.ttb import ReconciliationSummary
from ciderhouse.services.reconciliation_view import status_label
from ciderhouse.services.ttb_calculations import is_drift_issue, is_identity_issue

logger = logging.getLogger(__name__)

CLAMPING_DISPLAY_THRESHOLD_GAL = 0.5

RECONCILIATION_DETAIL_HEADERS = [
    "Batch Name",
    "Batch Number",
    "Type",
    "Start Date",
    "Initial (L)",
    "Ending (L)",
    "Ending (gal)",
    "Vessel",
    "Drift (L)",
    "Identity",
    "Drift",
    "Initial Volume",
    "Vessel Capacity",
    "Status",
]


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def escape_csv_value(value: Any) -> str:
    """Quote a cell when it contains a delimiter, quote or newline; inner quotes are doubled"""
    text = _to_text(value)
    if any(ch in text for ch in (",", '"', "\n", "\r")):
        return '"' + text.replace('"', '""') + '"'
    return text


def _write_rows(rows: Iterable[Sequence[Any]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    for row in rows:
        writer.writerow([_to_text(v) for v in row])
    # drop the final terminator; callers join sections with newlines
    return output.getvalue()[:-1]


def csv_line(values: Iterable[Any]) -> str:
    """Single line of the header block"""
    return ",".join(escape_csv_value(v) for v in values)


def array_to_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Header line plus one line per row"""
    return _write_rows([headers, *rows])


def _fmt(value: Optional[float], decimals: int = 2) -> str:
    if value is None:
        return ""
    return f"{value:.{decimals}f}"


def reconciliation_csv(summary: ReconciliationSummary, generated: Optional[datetime] = None) -> str:
    """Batch reconciliation export: header block, TTB balance, loss breakdown, batch detail"""
    generated = generated or datetime.utcnow()
    totals = summary.totals
    losses = totals.loss_breakdown

    lines: List[str] = [
        csv_line([f"Batch Reconciliation - {summary.year}"]),
        csv_line(["Period", f"{summary.period_start} to {summary.period_end}"]),
        csv_line(["Generated", generated.date().isoformat()]),
        "",
        csv_line(["TTB Balance", "Gallons"]),
        csv_line(["Opening", _fmt(totals.opening, 3)]),
        csv_line(["Production", _fmt(totals.production, 3)]),
        csv_line(["Internal Movement (net)", _fmt(totals.net_internal, 3)]),
        csv_line(["Reconciliation Adj.", _fmt(totals.adjustments, 3)]),
        csv_line(["Distributed", _fmt(totals.sales, 3)]),
        csv_line(["Losses", _fmt(totals.losses, 3)]),
    ]
    if totals.clamped_offset > CLAMPING_DISPLAY_THRESHOLD_GAL:
        lines.append(csv_line(["Clamping offset", _fmt(totals.clamped_offset, 3)]))
    lines.extend([
        csv_line(["Distillation", _fmt(totals.distillation, 3)]),
        csv_line(["Ending (Bulk)", _fmt(totals.ending, 3)]),
        csv_line(["Variance", _fmt(totals.variance, 3)]),
        "",
        csv_line(["Loss Breakdown", "Gallons"]),
        csv_line(["Racking", _fmt(losses.racking, 3)]),
        csv_line(["Filter", _fmt(losses.filter, 3)]),
        csv_line(["Bottling", _fmt(losses.bottling, 3)]),
        csv_line(["Kegging", _fmt(losses.kegging, 3)]),
        csv_line(["Transfer", _fmt(losses.transfer, 3)]),
        csv_line(["Adjustments", _fmt(losses.adjustments, 3)]),
        "",
        csv_line(["Batch Detail"]),
    ])

    rows = []
    for batch in summary.batches:
        recon = summary.batch_recon.get(str(batch.id))
        ending_l = recon.ending_l if recon else batch.current_volume_l
        ending_gal = recon.ending_gal if recon else liters_to_wine_gallons(batch.current_volume_l)
        rows.append([
            batch.display_name,
            batch.batch_number,
            batch.product_type,
            batch.start_date,
            _fmt(batch.initial_volume_l, 1),
            _fmt(ending_l, 1),
            _fmt(ending_gal, 2),
            batch.vessel_name,
            _fmt(recon.drift_liters, 2) if recon else "",
            ("FAIL" if is_identity_issue(recon.identity_check) else "OK") if recon else "",
            ("FAIL" if is_drift_issue(recon.drift_liters) else "OK") if recon else "",
            ("ANOMALY" if recon.has_initial_volume_anomaly else "OK") if recon else "",
            ("OVER" if recon.exceeds_vessel_capacity else "OK") if recon else "",
            status_label(batch, recon),
        ])
    lines.append(array_to_csv(RECONCILIATION_DETAIL_HEADERS, rows))

    logger.info(f"Built reconciliation CSV for {summary.period_start}..{summary.period_end} ({len(rows)} batches)")
    return "\n".join(lines)


PURCHASE_HISTORY_HEADERS = [
    "Purchase Date",
    "Vendor",
    "Invoice",
    "Variety",
    "Quantity",
    "Unit",
    "Price/Unit",
    "Line Total",
    "Harvest Date",
]


def purchases_csv(purchases) -> str:
    """One row per purchase line"""
    rows = []
    for purchase in purchases:
        for line in purchase.lines:
            rows.append([
                purchase.purchase_date,
                purchase.vendor_name or "",
                purchase.invoice_number,
                line.variety_name or "",
                line.quantity,
                line.unit.value,
                _fmt(line.price_per_unit),
                _fmt(line.total_cost),
                line.harvest_date,
            ])
    return array_to_csv(PURCHASE_HISTORY_HEADERS, rows)
