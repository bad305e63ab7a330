"""Out-of-band diagnostics for the pipeline itself.

- system_logger: stdlib logger on stderr (and optional JSONL file)
- emergency_log: last-resort JSONL file for entries the durable store dropped
"""

from linklog.telemetry.system.emergency_log import write_emergency_record
from linklog.telemetry.system.system_logger import get_system_logger

__all__ = [
    "get_system_logger",
    "write_emergency_record",
]
