"""tabular-report: Normalize loose tabular data into HTML and Excel reports."""

__version__ = "0.2.0"
