"""
Append-only scan log: one JSON object (or one text line) per folder event.

Downstream tooling reads the JSON form back line by line, so malformed lines
are skipped rather than treated as fatal.
"""

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from pydantic import ValidationError

from models.schemas import LogEntry, LogFormat
from utils.exceptions import FilesystemError

logger = logging.getLogger(__name__)


class ScanLog:
    """Writes LogEntry records to a file in JSON-lines or plain-text form."""

    def __init__(self, path: Path, log_format: Union[LogFormat, str] = LogFormat.JSON):
        self.path = Path(path)
        self.log_format = log_format if isinstance(log_format, LogFormat) else LogFormat.parse(log_format)

    def initialize(self):
        """Start a fresh log file, truncating any previous content."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("", encoding='utf-8')
        except OSError as e:
            raise FilesystemError(str(self.path), "initialize log", str(e))
        logger.debug(f"Initialized scan log: {self.path} ({self.log_format.value})")

    def append(self, entry: LogEntry):
        if self.log_format is LogFormat.JSON:
            line = entry.to_json_line()
        else:
            line = entry.to_text_line()

        try:
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(line + "\n")
        except OSError as e:
            raise FilesystemError(str(self.path), "append log", str(e))


def read_log_entries(path: Path) -> Iterator[LogEntry]:
    """
    Yield the entries of a JSON-lines scan log, skipping lines that are
    blank, not JSON, or missing required fields.

    Raises:
        FilesystemError: If the log file cannot be opened
    """
    path = Path(path)
    try:
        handle = open(path, 'r', encoding='utf-8')
    except OSError as e:
        raise FilesystemError(str(path), "read log", str(e))

    with handle:
        for line_number, line in enumerate(handle, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield LogEntry.model_validate(json.loads(line))
            except (json.JSONDecodeError, ValidationError, TypeError) as e:
                logger.debug(f"{path.name}:{line_number}: skipping malformed entry ({e.__class__.__name__})")


@dataclass
class LogSummary:
    total: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    by_reason: Dict[str, int] = field(default_factory=dict)
    by_structure_type: Dict[str, int] = field(default_factory=dict)
    good_paths: List[str] = field(default_factory=list)
    bad_paths: List[str] = field(default_factory=list)

    def format(self) -> str:
        lines = [f"Entries: {self.total}"]
        for title, counts in (("Status", self.by_status),
                              ("Reason", self.by_reason),
                              ("Structure", self.by_structure_type)):
            if counts:
                lines.append(f"{title}:")
                lines.extend(f"  {name}: {count}" for name, count in sorted(counts.items()))
        return "\n".join(lines)


def summarize_log(path: Path, status: Optional[str] = None) -> LogSummary:
    """Count the entries of a scan log by status, reason and structure type."""
    statuses, reasons, structures = Counter(), Counter(), Counter()
    summary = LogSummary()

    for entry in read_log_entries(path):
        if status and entry.status.lower() != status.lower():
            continue
        summary.total += 1
        statuses[entry.status] += 1
        if entry.reason:
            reasons[entry.reason] += 1
        if entry.structure_type:
            structures[entry.structure_type] += 1
        if entry.status == "Good" and entry.path not in summary.good_paths:
            summary.good_paths.append(entry.path)
        elif entry.status == "Bad" and entry.path not in summary.bad_paths:
            summary.bad_paths.append(entry.path)

    summary.by_status = dict(statuses)
    summary.by_reason = dict(reasons)
    summary.by_structure_type = dict(structures)
    return summary
