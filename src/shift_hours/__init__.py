"""
Shift Assignment and Hours Computation Engine

Turns per-day, per-employee shift assignments into worked, overtime, leave and
day-off statistics, with midnight-aware time ranges, custom month windows,
pattern-based suggestions and an undo/redo history for editing sessions.

Applications configure log output with shift_hours.log_config.setup_logging.
"""

__version__ = "1.0.0"
__author__ = "Shift Hours Team"
