#!/usr/bin/env python3
"""Generate a synthetic NSV survey workbook.

The layout matches what the decoder expects:
- Row 1: block titles (Lane L1 ... R4, Roughness BI, Rut Depth, Crack Area, Ravelling)
- Row 2: Start/End sub-headers
- Row 3+: one row per chainage segment, lane slots fanned out by column offset

Useful for demos, --inspect-data checks and load testing of the ingestion path.
Only lane slots whose cells do not collide are generated (L1, L2, R1, R2, R3):
the R4 GPS pair (columns 33-34) shares cells with the L3/L4 roughness values.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from nsv_ingest.excel.column_map import COLUMN_MAP, LANE_FIELDS, max_indexed_column
from nsv_ingest.models.lane_measurement import LANE_ORDER, LaneId

# (mean, spread) per distress field, in raw units
_DISTRESS_PROFILE = {
    "roughness": (2000.0, 600.0),
    "rut_depth": (3.8, 1.2),
    "crack_area": (2.0, 3.0),
    "ravelling": (0.3, 0.6),
}

# Slots whose columns are disjoint under COLUMN_MAP, in fill order
GENERATED_LANES = (LaneId.L1, LaneId.L2, LaneId.R1, LaneId.R2, LaneId.R3)


def _header_rows(width: int) -> list[list[Any]]:
    title: list[Any] = [None] * width
    sub: list[Any] = [None] * width
    title[0:3] = ["NH Number", "Start Chainage", "End Chainage"]
    for lane in LANE_ORDER:
        cols = COLUMN_MAP[lane]
        title[cols.latitude] = f"Lane {lane.value}"
        sub[cols.latitude] = "Start"
        sub[cols.latitude + 2] = "End"
    for lane in LANE_ORDER:
        cols = COLUMN_MAP[lane]
        title[cols.roughness] = f"{lane.value} Lane Roughness BI (in mm/km)"
        title[cols.rut_depth] = f"{lane.value} Rut Depth (in mm)"
        title[cols.crack_area] = f"{lane.value} Crack Area (in % area)"
        title[cols.ravelling] = f"{lane.value} Area (% area)"
    return [title, sub]


def generate_survey_rows(
    segments: int,
    *,
    highway: str = "NH148N",
    lanes: int = 4,
    start_km: float = 247.31,
    step_km: float = 0.1,
    seed: int = 42,
) -> list[list[Any]]:
    """Build header + data rows for `segments` consecutive chainage segments."""
    rng = np.random.default_rng(seed)
    width = max_indexed_column() + 1
    rows = _header_rows(width)
    lat, lng = 26.36114, 76.25048
    for i in range(segments):
        row: list[Any] = [None] * width
        start = round(start_km + i * step_km, 3)
        row[0:3] = [highway, start, round(start + step_km, 3)]
        for lane in GENERATED_LANES[:lanes]:
            cols = COLUMN_MAP[lane]
            offsets = cols.offsets()
            for name in LANE_FIELDS:
                if name == "latitude":
                    value = round(lat - i * 0.0008, 5)
                elif name == "longitude":
                    value = round(lng - i * 0.00015, 5)
                else:
                    mean, spread = _DISTRESS_PROFILE[name]
                    value = round(max(0.0, float(rng.normal(mean, spread))), 3)
                row[offsets[name]] = value
        rows.append(row)
    return rows


def write_survey_workbook(path: Path, rows: list[list[Any]], sheet_name: str = "NSV Data") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate a synthetic NSV survey workbook")
    parser.add_argument("output", type=Path, help="Output .xlsx path")
    parser.add_argument("--segments", type=int, default=50, help="Number of chainage segments")
    parser.add_argument(
        "--lanes",
        type=int,
        default=4,
        choices=range(1, len(GENERATED_LANES) + 1),
        help="Lanes per segment (1-5)",
    )
    parser.add_argument("--highway", default="NH148N", help="Highway code")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args(argv)

    if args.output.suffix.lower() != ".xlsx":
        print("output must be an .xlsx file", file=sys.stderr)
        return 1
    rows = generate_survey_rows(
        args.segments, highway=args.highway, lanes=args.lanes, seed=args.seed
    )
    write_survey_workbook(args.output, rows)
    print(f"wrote {args.output} ({args.segments} segments x {args.lanes} lanes)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
