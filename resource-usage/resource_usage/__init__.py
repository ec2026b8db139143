"""Weekly resource usage reports from activity report exports."""

__version__ = "0.1.0"
