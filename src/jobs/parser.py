"""
Line-oriented JSON (JSONL) parser for job feed files, optionally gzipped.
"""

import gzip
import json
from pathlib import Path

import structlog

from src.core.exceptions import DataValidationError

from .models import JobRecord

logger = structlog.get_logger(__name__)


def parse_jsonl_file(file_path: str | Path) -> list[JobRecord]:
    """Parse a JSONL file into job records

    Files whose name ends in '.gz' are decompressed on the fly. Blank lines
    are skipped.

    Args:
        file_path: Path to a .jsonl or .jsonl.gz file

    Returns:
        Records in file order

    Raises:
        DataValidationError: If a line is not a valid job document
        OSError: If the file cannot be read
    """
    path = Path(file_path)
    opener = gzip.open if path.name.endswith(".gz") else open

    jobs: list[JobRecord] = []
    with opener(path, "rt", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                document = json.loads(line)
            except json.JSONDecodeError as e:
                raise DataValidationError(f"{path.name}:{line_number}: invalid JSON ({e})") from e

            try:
                jobs.append(JobRecord.from_json(document))
            except DataValidationError as e:
                raise DataValidationError(f"{path.name}:{line_number}: {e}") from e

    logger.info("Parsed job file", file=str(path), records=len(jobs))
    return jobs
