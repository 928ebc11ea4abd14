"""CSV loading for order exports with unknown headers."""

from __future__ import annotations

import io
import logging
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)

MAX_INPUT_BYTES = 50 * 1024 * 1024  # 50 MiB cap to avoid accidental OOM


def _frame_to_rows(frame: pd.DataFrame) -> list[dict[str, str]]:
    frame = frame.rename(columns=lambda header: str(header).strip()).fillna("")
    return frame.to_dict("records")


def _read(source: object, **kwargs: object) -> list[dict[str, str]]:
    try:
        frame = pd.read_csv(
            source,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            **kwargs,
        )
    except pd.errors.EmptyDataError:
        logger.warning("CSV input is empty")
        return []
    except pd.errors.ParserError as exc:
        logger.warning("CSV input could not be parsed: %s", exc)
        return []
    except UnicodeDecodeError as exc:
        logger.warning(
            "CSV input is not %s encoded (%s); pass --encoding, e.g. cp932",
            kwargs.get("encoding", "utf-8"),
            exc.reason,
        )
        return []
    rows = _frame_to_rows(frame)
    logger.debug("Read %d rows with columns %s", len(rows), list(frame.columns))
    return rows


def parse_csv_text(text: str) -> list[dict[str, str]]:
    """Parse CSV text into header → string value rows.

    Every cell is kept as a string (missing cells become ``""``) so that
    column detection and amount cleaning see exactly what the export holds.
    """

    if not text.strip():
        return []
    return _read(io.StringIO(text))


def read_csv_rows(path: str | Path, encoding: str = "utf-8") -> list[dict[str, str]]:
    """Read a CSV file into rows; see :func:`parse_csv_text`.

    Japanese shop exports are commonly Shift_JIS; pass ``encoding="cp932"``
    for those.
    """

    resolved = Path(path).resolve()
    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )
    logger.info("Loading order rows from %s", resolved)
    return _read(resolved, encoding=encoding)
