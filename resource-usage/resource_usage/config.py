"""Report format and calendar settings."""

from typing import Dict, List, Tuple

# Report layout
REPORT_HEADER_LINE: int = 11
EXPECTED_REPORT_HDR: List[str] = [
    "Event Number",
    "Event Name",
    "Event Start",
    "Event End",
    "Event Status",
    "Resource Name",
    "Resource Category",
    "Resource Quantity",
]
REPORT_EV_NAME_COL: int = 1
REPORT_RSC_NAME_COL: int = 5
REPORT_RSC_QUAN_COL: int = 7

# Resource name grammar: <type>-<yyyy>-Week<n>
RESOURCE_TYPES: Tuple[str, ...] = ("Planner", "Builder")
WEEK_PREFIX: str = "Week"
MIN_WEEK_NUMBER: int = 1
MAX_WEEK_NUMBER: int = 53

# Years with 53 weeks. Anything not listed has 52.
WEIRD_WEEK_COUNT_LOOKUP: Dict[int, int] = {
    2020: 53,
    2026: 53,
    2032: 53,
    2037: 53,
    2043: 53,
    2048: 53,
    2054: 53,
}
DEFAULT_WEEK_COUNT: int = 52
MAX_WEIRD_WEEK: int = 2054
WEEK_GENERATION_YEAR_LIMIT: int = 3000
WEEK_KEY_FACTOR: int = 100

# Output
GROUP_LABEL_HEADER: str = "Customer Group"
UNGROUPED_LABEL: str = ""
DEFAULT_OUTPUT_NAME: str = "report.csv"
UNRESOLVED_OUTPUT_NAME: str = "unresolved.csv"
MAPPINGS_ENV_VAR: str = "RESOURCE_USAGE_MAPPINGS"
