"""
Job record store and feed ingestion.
"""

from .database import JobDatabase
from .models import JobRecord, Metric
from .parser import parse_jsonl_file

__all__ = ["JobDatabase", "JobRecord", "Metric", "parse_jsonl_file"]
