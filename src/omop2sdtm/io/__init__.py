"""Source extraction and result output."""

from omop2sdtm.io.extract import frame_to_records, iter_query_records, read_records_csv
from omop2sdtm.io.writers import load_run_report, write_domain_csv, write_run_report

__all__ = [
    "frame_to_records",
    "iter_query_records",
    "load_run_report",
    "read_records_csv",
    "write_domain_csv",
    "write_run_report",
]
