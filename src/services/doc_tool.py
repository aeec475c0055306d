"""Short excerpts from snapshot source files for model grounding."""

import zipfile
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from src.query.catalog import Tables
from src.utils.logger import get_logger

logger = get_logger(__name__)

CSV_PREVIEW_LINES = 16
SHEET_PREVIEW_ROWS = 25
TEXT_PREVIEW_CHARS = 6000

UNKNOWN_SOURCE = "Unknown source file reference."
EMPTY_WORKBOOK = "Workbook has no sheets."


def source_files_from_tables(tables: Tables) -> list[str]:
    """Every distinct ``source_file`` value across all tables, in first-seen order."""
    files: list[str] = []
    for rows in tables.values():
        for row in rows:
            value = row.get("source_file")
            if isinstance(value, str) and value.strip() and value not in files:
                files.append(value)
    return files


def normalize_path(value: str) -> str:
    return value.replace("\\", "/").lower()


def _basename(value: str) -> str:
    return PurePosixPath(value.replace("\\", "/")).name.lower()


def resolve_source_file(known_files: Iterable[str], requested: str) -> Optional[str]:
    """Match a requested file by normalized path first, then by basename."""
    if not requested:
        return None
    known = list(known_files)
    wanted = normalize_path(requested)
    for candidate in known:
        if normalize_path(candidate) == wanted:
            return candidate
    name = _basename(requested)
    for candidate in known:
        if _basename(candidate) == name:
            return candidate
    return None


def _cell_text(value: Any) -> str:
    return "" if value is None else str(value)


def _sheet_excerpt(path: Path, section: Optional[str]) -> dict[str, Any]:
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        names = workbook.sheetnames
        sheet_name = section if section and section in names else (names[0] if names else None)
        if sheet_name is None:
            return {"ok": False, "error": EMPTY_WORKBOOK}
        lines: list[str] = []
        for row in workbook[sheet_name].iter_rows(values_only=True):
            if all(value is None or str(value).strip() == "" for value in row):
                continue
            lines.append(" | ".join(_cell_text(value) for value in row))
            if len(lines) >= SHEET_PREVIEW_ROWS:
                break
    finally:
        workbook.close()
    return {"ok": True, "excerpt": f"Sheet: {sheet_name}\n" + "\n".join(lines)}


def _read_excerpt(path: Path, section: Optional[str]) -> dict[str, Any]:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        raw = path.read_text(encoding="utf-8")
        lines = [line for line in raw.splitlines() if line]
        return {"ok": True, "excerpt": "\n".join(lines[:CSV_PREVIEW_LINES])}
    if suffix == ".xlsx":
        return _sheet_excerpt(path, section)
    return {"ok": True, "excerpt": path.read_text(encoding="utf-8")[:TEXT_PREVIEW_CHARS]}


def get_source_excerpt(
    known_files: Iterable[str],
    source_file: str,
    section: Optional[str] = None,
    source_root: Optional[Path] = None,
) -> dict[str, Any]:
    """
    Read a short excerpt of a known source file.

    Args:
        known_files: Source files referenced by the loaded tables.
        source_file: Requested path or basename.
        section: Sheet name for workbooks; ignored for other files.
        source_root: Base directory for relative source paths.

    Returns:
        ``{"ok": True, "sourceFile", "excerpt"}`` or ``{"ok": False, "error"}``.
    """
    target = resolve_source_file(known_files, source_file)
    if target is None:
        return {"ok": False, "error": UNKNOWN_SOURCE}

    path = Path(target.replace("\\", "/"))
    if not path.is_absolute() and source_root is not None:
        path = Path(source_root) / path

    try:
        result = _read_excerpt(path, section)
    except (OSError, UnicodeDecodeError, InvalidFileException, zipfile.BadZipFile) as e:
        logger.warning("Source excerpt failed", source_file=target, error=str(e))
        return {"ok": False, "error": str(e) or "Failed to read source file."}

    if result.get("ok"):
        result["sourceFile"] = target
    return result


__all__ = [
    "UNKNOWN_SOURCE",
    "EMPTY_WORKBOOK",
    "source_files_from_tables",
    "normalize_path",
    "resolve_source_file",
    "get_source_excerpt",
]
