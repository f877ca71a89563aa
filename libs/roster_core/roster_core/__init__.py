# libs/roster_core/roster_core/__init__.py

from .csv_codec import GROUP_CSV_COLUMNS, parse_group_rows, render_group_rows
from .numbering import default_group_name, next_group_number

__all__ = [
    "GROUP_CSV_COLUMNS",
    "parse_group_rows",
    "render_group_rows",
    "default_group_name",
    "next_group_number",
]
