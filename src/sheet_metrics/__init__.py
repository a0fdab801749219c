"""sheet-metrics — KPI summaries and daily series from messy spreadsheet rows."""

__version__ = "0.1.0"

DEFAULT_TIMEZONE = "UTC"
DEFAULT_MAX_ROWS = 200
