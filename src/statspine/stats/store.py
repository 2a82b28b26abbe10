"""
Flat-file time-series storage.

One self-describing file per product::

    # Daily Entity Stats
    #
    # Do not edit me! This file is generated.
    #
    # fields: DATE|NEW|ASSIGNED|RESOLVED|FIXED|WONTFIX
    # Product: Widgets
    # Created: Fri Aug 13 00:00:01 2004
    20040812|3|1|0|0|0
    20040813|2|1|1|1|0

Only the ``# fields:`` line is read back; every other comment is
informational. The header is the file's schema: when the category domain
changes, the file is rewritten under the new header and old rows are
re-emitted with blanks for categories they never tracked.

Manifesto:
    - **Append is one write:** a kill during append leaves at most a
      missing line, never a torn file
    - **Rewrite is write-then-replace:** the full content is assembled and
      written to a sibling temp file, then ``os.replace``d over the original
    - **World-readable:** chart rendering runs as a different user, so every
      write ends with mode 0644
    - **Best-effort parsing:** short or long data lines are padded or
      truncated and reported, never fatal

Tags:
    storage, flat-file, time-series, schema-drift, atomic-write, stat-spine
"""

from __future__ import annotations

import os
import re
import tempfile
from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path

from statspine.core.errors import StorageIOError
from statspine.core.logging import get_logger
from statspine.stats.models import (
    DailySnapshotRow,
    DataIntegrityWarning,
    TimeSeriesFile,
    WriteMode,
)

logger = get_logger(__name__)

DESCRIPTION = ("Daily Entity Stats", "", "Do not edit me! This file is generated.", "")
CREATED_FORMAT = "%a %b %d %H:%M:%S %Y"

_FIELDS_RE = re.compile(r"^# fields?:\s*(.+?)\s*$")
_PRODUCT_RE = re.compile(r"^# Product:\s*(.*?)\s*$")
_UNSAFE_RE = re.compile(r"[/\\\x00]")


def product_filename(product: str) -> str:
    """File name for a product: path separators and NUL become ``-``."""
    return _UNSAFE_RE.sub("-", product)


def _parse_count(token: str) -> int | None:
    token = token.strip()
    if not token:
        return None
    try:
        return int(token)
    except ValueError:
        logger.warning("non_numeric_count", token=token)
        return None


class TimeSeriesStore:
    """Reads and writes the per-product files under one directory."""

    def __init__(
        self,
        directory: Path | str,
        *,
        file_mode: int = 0o644,
        dir_mode: int = 0o755,
    ) -> None:
        self.directory = Path(directory)
        self.file_mode = file_mode
        self.dir_mode = dir_mode

    def ensure_directory(self) -> Path:
        """Create the data directory if needed."""
        if not self.directory.is_dir():
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                os.chmod(self.directory, self.dir_mode)
            except OSError as exc:
                raise StorageIOError(
                    f"Cannot create data directory {self.directory}", cause=exc
                ).with_context(path=str(self.directory))
        return self.directory

    def path_for(self, product: str) -> Path:
        return self.directory / product_filename(product)

    # -- Reading -----------------------------------------------------------

    def load(self, product: str) -> TimeSeriesFile | None:
        """Parse the product's file, or ``None`` if it does not exist yet."""
        path = self.path_for(product)
        if not path.is_file():
            return None
        return self.parse(path)

    def parse(self, path: Path | str) -> TimeSeriesFile:
        """Parse a time-series file into its declared columns and typed rows."""
        path = Path(path)
        result = TimeSeriesFile(path=path)
        try:
            with path.open("r", encoding="utf-8") as handle:
                for line_number, raw in enumerate(handle, start=1):
                    line = raw.rstrip("\r\n")
                    if not line:
                        continue
                    if line.startswith("#"):
                        if not result.columns:
                            match = _FIELDS_RE.match(line)
                            if match:
                                result.columns = tuple(match.group(1).split("|"))
                                continue
                        match = _PRODUCT_RE.match(line)
                        if match:
                            result.product = match.group(1)
                        continue
                    if not result.columns:
                        continue
                    result.rows.append(self._parse_row(line, line_number, result))
        except OSError as exc:
            raise StorageIOError(f"Cannot read {path}", cause=exc).with_context(path=str(path))
        except UnicodeDecodeError as exc:
            raise StorageIOError(f"{path} is not valid UTF-8", cause=exc).with_context(
                path=str(path)
            )
        return result

    def _parse_row(self, line: str, line_number: int, result: TimeSeriesFile) -> DailySnapshotRow:
        tokens = line.split("|")
        expected = len(result.columns)
        if len(tokens) != expected:
            warning = DataIntegrityWarning(
                line_number=line_number, expected=expected, actual=len(tokens)
            )
            result.warnings.append(warning)
            logger.warning("data_integrity_warning", path=str(result.path), detail=warning.message)
            tokens = (tokens + [""] * expected)[:expected]

        counts = {
            column: _parse_count(token)
            for column, token in zip(result.categories, tokens[1:], strict=True)
        }
        return DailySnapshotRow(date=tokens[0], counts=counts)

    # -- Writing -----------------------------------------------------------

    @staticmethod
    def render_header(columns: Sequence[str], product: str, created: datetime) -> list[str]:
        """Comment lines opening a freshly written file."""
        lines = [f"# {text}".rstrip() for text in DESCRIPTION]
        lines.append(f"# fields: {'|'.join(['DATE', *columns])}")
        lines.append(f"# Product: {product}")
        lines.append(f"# Created: {created.strftime(CREATED_FORMAT)}")
        return lines

    def write(
        self,
        path: Path | str,
        columns: Sequence[str],
        rows: Iterable[DailySnapshotRow],
        mode: WriteMode,
        *,
        product: str,
        created: datetime | None = None,
    ) -> Path:
        """Write rows under *columns*.

        ``APPEND`` writes exactly one data line to the end of the file.
        ``REWRITE`` replaces the file with header plus every row.
        """
        path = Path(path)
        rows = list(rows)
        try:
            if mode is WriteMode.APPEND:
                if len(rows) != 1:
                    raise ValueError(f"append writes exactly one row, got {len(rows)}")
                with path.open("a", encoding="utf-8") as handle:
                    handle.write(rows[0].to_line(columns) + "\n")
            else:
                lines = self.render_header(columns, product, created or datetime.now())
                lines.extend(row.to_line(columns) for row in rows)
                self._replace(path, "\n".join(lines) + "\n")
            os.chmod(path, self.file_mode)
        except OSError as exc:
            raise StorageIOError(
                f"Cannot write {path}", cause=exc
            ).with_context(path=str(path), product=product)
        return path

    def _replace(self, path: Path, content: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


__all__ = ["TimeSeriesStore", "product_filename", "DESCRIPTION", "CREATED_FORMAT"]
