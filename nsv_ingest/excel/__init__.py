from .decoder import DecodeOutcome, decode_rows, find_data_start, iter_lane_measurements, parse_number
from .inspect import TableInspection, inspect_table
from .reader import TableReadError, read_table

__all__ = [
    "DecodeOutcome",
    "TableInspection",
    "TableReadError",
    "decode_rows",
    "find_data_start",
    "inspect_table",
    "iter_lane_measurements",
    "parse_number",
    "read_table",
]
