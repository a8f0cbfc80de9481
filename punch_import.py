from datetime import datetime, time

import pandas as pd

from punch_calculator import format_time

DEFAULT_COLUMN = "Punch Time"


def cell_to_punch(value):
    """Render a time-typed cell as 'H:MM:SS AM'; text cells pass through"""
    if isinstance(value, (datetime, time)):
        return format_time(value)
    return str(value).strip()


def read_punch_log(file_path, column=DEFAULT_COLUMN):
    """
    Read punch times from one column of an .xlsx or .csv export.
    Empty cells are dropped. Returns newline-joined text for parse_punch_log.
    """
    if str(file_path).lower().endswith('.csv'):
        df = pd.read_csv(file_path, dtype=str)
    else:
        df = pd.read_excel(file_path, engine="openpyxl")

    if column not in df.columns:
        raise ValueError(f"Column '{column}' not found in {file_path}. Available: {', '.join(map(str, df.columns))}")

    punches = []
    for value in df[column].dropna():
        value = cell_to_punch(value)
        if value:
            punches.append(value)

    print(f"Read {len(punches)} punch entries from {file_path}")
    return '\n'.join(punches)
