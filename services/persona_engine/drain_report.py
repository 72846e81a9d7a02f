# services/persona_engine/drain_report.py
# Report model for the energy drain / adaptation panel.

from typing import List, Optional

from pydantic import BaseModel, Field

from .definitions import REPORT_PATH_DISPLAY_THRESHOLD
from .models import DriveFlowSummary, FlowPath


class DrainReportRow(BaseModel):
    drive: str
    rank: int
    surface_energy: float
    drain_total: float
    transfer_total: float
    significant_drain: bool
    significant_transfer: bool
    drain_paths: List[FlowPath] = Field(default_factory=list)
    transfer_paths: List[FlowPath] = Field(default_factory=list)
    diversion_ratio: float = 0.0
    drain_ratio: float = 0.0


class DrainBar(BaseModel):
    drive: str
    drained_pct: float
    significant: bool


class DrainingPair(BaseModel):
    td: str
    sd: str
    pct: float


class DrainSummary(BaseModel):
    total_drain: float
    significant_count: int
    top_drive: Optional[str] = None


class DrainReport(BaseModel):
    rows: List[DrainReportRow]
    bars: List[DrainBar]
    draining_pairs: List[DrainingPair]
    summary: DrainSummary


def _row(summary: DriveFlowSummary) -> DrainReportRow:
    ordered = sorted(summary.paths, key=lambda p: -(p.drained + p.transferred))
    drain_paths = [p for p in ordered if p.drained > REPORT_PATH_DISPLAY_THRESHOLD]
    transfer_paths = [p for p in ordered if p.transferred > REPORT_PATH_DISPLAY_THRESHOLD]

    diversion = sum(p.dr for p in summary.paths)
    shown_dr = sum(p.dr for p in drain_paths)
    drain_ratio = (
        sum(p.dr * p.lr for p in drain_paths) / shown_dr if shown_dr > 0 else 0.0
    )
    return DrainReportRow(
        drive=summary.drive,
        rank=summary.rank,
        surface_energy=summary.surface_energy,
        drain_total=summary.surface_drain_total,
        transfer_total=summary.surface_transfer_total,
        significant_drain=summary.significant_drain,
        significant_transfer=summary.significant_transfer,
        drain_paths=drain_paths,
        transfer_paths=transfer_paths,
        diversion_ratio=diversion,
        drain_ratio=drain_ratio,
    )


def build_drain_report(flow: List[DriveFlowSummary]) -> DrainReport:
    """
    Shapes the flow model for the drain panel.

    Rows follow surface-energy rank. Bars show the drained share of each
    drive's energy with significantly drained drives first. Draining pairs
    list dr * lr as a percentage for significantly drained drives only.
    """
    rows = [_row(s) for s in sorted(flow, key=lambda s: s.rank)]

    bars = [
        DrainBar(
            drive=s.drive,
            drained_pct=(s.surface_drain_total / s.surface_energy) if s.surface_energy > 0 else 0.0,
            significant=s.significant_drain,
        )
        for s in sorted(flow, key=lambda s: s.rank)
    ]
    bars.sort(key=lambda b: not b.significant)

    pairs = [
        DrainingPair(td=p.td, sd=p.sd, pct=p.dr * p.lr * 100)
        for s in flow
        if s.significant_drain
        for p in s.paths
        if p.lr > 0
    ]
    pairs.sort(key=lambda p: -p.pct)

    significant = [s for s in flow if s.significant_drain]
    top = max(significant, key=lambda s: s.surface_drain_total).drive if significant else None
    summary = DrainSummary(
        total_drain=sum(s.surface_drain_total for s in flow),
        significant_count=len(significant),
        top_drive=top,
    )
    return DrainReport(rows=rows, bars=bars, draining_pairs=pairs, summary=summary)
