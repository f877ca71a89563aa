import io
import logging
from typing import Any, Dict, Iterable, List

import pandas as pd

logger = logging.getLogger(__name__)

GROUP_CSV_COLUMNS = ("group_name", "group_number", "username", "tutorial")
REQUIRED_COLUMNS = ("group_name", "username")


def render_group_rows(rows: Iterable[Dict[str, Any]]) -> bytes:
    """
    Render group membership rows as CSV.

    Args:
        rows: Dictionaries keyed by the names in GROUP_CSV_COLUMNS.

    Returns:
        UTF-8 encoded CSV with a header row. An empty input still yields the
        header so the file can be filled in offline.
    """
    df = pd.DataFrame(list(rows), columns=list(GROUP_CSV_COLUMNS))
    return df.to_csv(index=False, lineterminator="\n").encode("utf-8")


def parse_group_rows(data: bytes) -> List[Dict[str, Any]]:
    """
    Parse an uploaded group CSV into row dictionaries.

    Header names are trimmed and lower-cased. Cell values are trimmed strings,
    with blanks as "". Usernames are lower-cased. Each row carries a 1-based
    "row" index counting data rows only.

    Raises:
        ValueError: if the data is not decodable CSV or a required column is
            missing.
    """
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ValueError(f"CSV is not valid UTF-8: {e}") from e

    if not text.strip():
        raise ValueError("CSV file is empty")

    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ValueError(f"Unable to parse CSV: {e}") from e

    df.columns = [str(c).strip().lower() for c in df.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"CSV is missing required columns: {', '.join(missing)}")

    rows = []
    for index, record in enumerate(df.to_dict(orient="records"), start=1):
        row = {column: str(record.get(column, "")).strip() for column in GROUP_CSV_COLUMNS}
        row["username"] = row["username"].lower()
        row["row"] = index
        rows.append(row)

    logger.debug(f"Parsed {len(rows)} group rows")
    return rows
