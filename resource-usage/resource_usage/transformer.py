"""Transform an activity report into weekly resource usage per resource group."""

import csv
import logging
import math
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypedDict

from .config import (
    EXPECTED_REPORT_HDR,
    GROUP_LABEL_HEADER,
    MAX_WEEK_NUMBER,
    MIN_WEEK_NUMBER,
    REPORT_EV_NAME_COL,
    REPORT_HEADER_LINE,
    REPORT_RSC_NAME_COL,
    REPORT_RSC_QUAN_COL,
    RESOURCE_TYPES,
    UNGROUPED_LABEL,
    UNRESOLVED_OUTPUT_NAME,
    WEEK_PREFIX,
)
from .exceptions import ReportFormatError
from .mappings import MappingSnapshot
from .quoted_csv import ParseWarning, ReportRow, build_csv, parse_quoted_csv
from .resolver import GroupResolver, UnresolvedEntry
from .weeks import (
    RangeWarning,
    decode_week_key,
    encode_week_key,
    find_resource_period,
    gen_all_weeks,
    is_encodable_week,
    is_valid_week,
)

logger = logging.getLogger(__name__)

GroupUsage = Dict[int, float]
PivotTable = Tuple[Tuple[Any, ...], ...]

_REQUIRED_COLUMNS = max(REPORT_EV_NAME_COL, REPORT_RSC_NAME_COL, REPORT_RSC_QUAN_COL) + 1


class ResourceName(TypedDict):
    """Parsed ``<type>-<year>-Week<n>`` resource name."""
    type: str
    year: int
    week: int


class QuantityWarning(TypedDict):
    """A resource quantity that could not be read as a number."""
    resource_name: str
    value: str
    message: str


def _is_digits(text: str) -> bool:
    return bool(text) and all('0' <= char <= '9' for char in text)


def parse_resource_name(name: str) -> Optional[ResourceName]:
    """
    Parse a resource name of the form ``Planner-2023-Week7``.

    Parameters
    ----------
    name : str
        Resource Name cell from the report

    Returns
    -------
    Optional[ResourceName]
        The type, year and week number, or None if the name does not
        describe weekly planner/builder usage
    """
    parts = name.split("-")
    if len(parts) != 3:
        return None

    resource_type, year, week = parts
    if resource_type not in RESOURCE_TYPES:
        return None
    if len(year) != 4 or not _is_digits(year):
        return None
    if not week.startswith(WEEK_PREFIX) or not _is_digits(week[len(WEEK_PREFIX):]):
        return None

    return ResourceName(
        type=resource_type,
        year=int(year),
        week=int(week[len(WEEK_PREFIX):])
    )


def format_quantity(value: Any) -> str:
    """Format a pivot cell, dropping the decimal part of whole numbers."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class UsageReport:
    """Everything one report run produced, including the problems it met."""

    def __init__(
        self,
        groups: List[Optional[str]],
        usages: Dict[Optional[str], GroupUsage],
        unresolved: List[UnresolvedEntry],
        range_warnings: List[RangeWarning],
        quantity_warnings: List[QuantityWarning]
    ):
        self.groups = groups
        self.usages = usages
        self.unresolved = unresolved
        self.range_warnings = range_warnings
        self.quantity_warnings = quantity_warnings
        self.parse_warnings: List[ParseWarning] = []
        self.week_keys: List[int] = []
        self.pivot_table: PivotTable = ()
        self.csv_text = ""

    @property
    def has_data(self) -> bool:
        """False when no row matched, so there is no time axis."""
        return bool(self.week_keys)


class UsageTransformer:
    """Transform activity report rows to a resource group by week pivot table."""

    def __init__(
        self,
        strict: bool = True,
        skip_invalid_weeks: bool = False,
        on_unknown_project: Optional[Callable[[str], None]] = None
    ):
        """
        Initialize the transformer.

        Parameters
        ----------
        strict : bool, optional
            Abort on malformed quoting instead of continuing with the rows
            that could be read, defaults to True
        skip_invalid_weeks : bool, optional
            Leave out rows whose week does not exist in their year instead
            of counting them, defaults to False
        on_unknown_project : Optional[Callable[[str], None]]
            Called once for each project that has no customer mapping
        """
        self.strict = strict
        self.skip_invalid_weeks = skip_invalid_weeks
        self.on_unknown_project = on_unknown_project

    def validate_header(self, report: Sequence[ReportRow]) -> List[str]:
        """
        Check the report header line.

        Returns
        -------
        List[str]
            Problems found, empty when the header is as expected
        """
        if len(report) <= REPORT_HEADER_LINE:
            return [f"Report has {len(report)} rows, header expected on row {REPORT_HEADER_LINE}"]

        header = report[REPORT_HEADER_LINE]
        if len(header) != len(EXPECTED_REPORT_HDR):
            return [
                f"Header was unexpected length: {len(header)} columns, "
                f"expected {len(EXPECTED_REPORT_HDR)}"
            ]

        return [
            f"Unexpected header entry in column {index}: {actual!r}, expected {expected!r}"
            for index, (actual, expected) in enumerate(zip(header, EXPECTED_REPORT_HDR))
            if actual != expected
        ]

    def extract_report_data(self, report: Sequence[ReportRow]) -> List[ReportRow]:
        """
        Validate the header and return the data rows following it.

        Raises
        ------
        ReportFormatError
            If the header row is missing or does not match
        """
        problems = self.validate_header(report)
        if problems:
            for problem in problems:
                logger.error(problem)
            raise ReportFormatError("Report header is not as expected", problems)

        report_data = list(report[REPORT_HEADER_LINE + 1:])
        logger.info("Report contains %d data rows", len(report_data))
        return report_data

    def _read_quantity(
        self,
        row: ReportRow,
        quantity_warnings: List[QuantityWarning]
    ) -> float:
        value = row[REPORT_RSC_QUAN_COL]
        if not value.strip():
            return 0.0
        try:
            quantity = float(value)
        except ValueError:
            quantity = None
        if quantity is not None and math.isfinite(quantity):
            return quantity

        message = f"Resource quantity {value!r} for {row[REPORT_RSC_NAME_COL]} is not a finite number"
        logger.warning(message)
        quantity_warnings.append(QuantityWarning(
            resource_name=row[REPORT_RSC_NAME_COL],
            value=value,
            message=message
        ))
        return 0.0

    def _check_week(
        self,
        resource: ResourceName,
        resource_name: str,
        range_warnings: List[RangeWarning]
    ) -> bool:
        """Report an impossible week; return whether the row should be counted."""
        year, week_no = resource['year'], resource['week']
        if not is_encodable_week(week_no):
            message = f"Week {week_no} from {resource_name} does not fit a week key, row skipped"
            logger.warning(message)
            range_warnings.append(RangeWarning(kind="unencodable-week", week_key=None, message=message))
            return False

        if is_valid_week(year, week_no):
            return True

        week_key = encode_week_key(year, week_no)
        if week_no < MIN_WEEK_NUMBER or week_no > MAX_WEEK_NUMBER:
            message = f"Invalid week seen: {week_no} from {resource_name}"
            range_warnings.append(RangeWarning(kind="invalid-week", week_key=week_key, message=message))
        else:
            message = f"Week {week_no} does not exist in {year} (from {resource_name})"
            range_warnings.append(RangeWarning(kind="week-beyond-year", week_key=week_key, message=message))
        logger.warning(message)
        return not self.skip_invalid_weeks

    def aggregate(
        self,
        report_data: Sequence[ReportRow],
        snapshot: MappingSnapshot
    ) -> UsageReport:
        """
        Sum resource quantities per resource group and week.

        Only rows whose resource name is weekly planner/builder usage count.
        Each row's event name is resolved to a resource group; rows that do
        not resolve count nowhere, unless there are no resource groups at
        all, in which case every row goes to a single ungrouped bucket.

        Parameters
        ----------
        report_data : Sequence[ReportRow]
            Report rows after the header
        snapshot : MappingSnapshot
            Lookup tables for this run

        Returns
        -------
        UsageReport
            Groups and their usage plus the problems found; the week axis
            and pivot table are not filled in yet
        """
        groups: List[Optional[str]] = list(snapshot.resource_groups())
        if not groups:
            logger.warning("No resource groups configured, counting all usage as ungrouped")
            groups = [None]
        ungrouped = groups == [None]

        resolver = GroupResolver(snapshot, self.on_unknown_project)
        range_warnings: List[RangeWarning] = []
        quantity_warnings: List[QuantityWarning] = []
        collected: Dict[Optional[str], Dict[int, List[float]]] = {
            group: defaultdict(list) for group in groups
        }
        matched_rows = 0

        for row in report_data:
            if len(row) < _REQUIRED_COLUMNS:
                logger.debug("Skipping short row: %s", row)
                continue

            resource_name = row[REPORT_RSC_NAME_COL]
            resource = parse_resource_name(resource_name)
            if resource is None:
                continue
            matched_rows += 1

            group = resolver.resolve_group(row[REPORT_EV_NAME_COL])
            if ungrouped:
                group = None
            elif group not in collected:
                continue

            logger.debug("%s %s %s -> %s", resource['year'], resource['week'], resource['type'], group)
            if not self._check_week(resource, resource_name, range_warnings):
                continue

            entry_key = encode_week_key(resource['year'], resource['week'])
            collected[group][entry_key].append(self._read_quantity(row, quantity_warnings))

        # fsum keeps totals independent of row order
        usages: Dict[Optional[str], GroupUsage] = {
            group: {key: math.fsum(values) for key, values in sorted(weeks.items())}
            for group, weeks in collected.items()
        }
        logger.info(
            "Matched %d usage rows across %d resource groups",
            matched_rows,
            len(groups)
        )

        return UsageReport(
            groups=groups,
            usages=usages,
            unresolved=resolver.unresolved,
            range_warnings=range_warnings,
            quantity_warnings=quantity_warnings
        )

    def normalize_weeks(
        self,
        usages: Dict[Optional[str], GroupUsage]
    ) -> Tuple[List[int], List[RangeWarning]]:
        """
        Build the week axis covering every week between the first and last seen.

        Returns
        -------
        Tuple[List[int], List[RangeWarning]]
            Tuple containing:
            - Ascending week keys, empty when no usage was recorded
            - Problems found while generating the weeks
        """
        period = find_resource_period(usages.values())
        if period is None:
            return [], []

        min_time, max_time = period
        week_keys, warnings = gen_all_weeks(min_time, max_time)

        # Counted weeks that are not on the calendar still get a column
        observed = {key for usage in usages.values() for key in usage}
        off_calendar = observed.difference(week_keys)
        if off_calendar:
            logger.debug("Adding off-calendar weeks to axis: %s", sorted(off_calendar))
            week_keys = sorted(observed.union(week_keys))

        logger.info(
            "Week axis runs from %d-W%02d to %d-W%02d (%d weeks)",
            *decode_week_key(min_time),
            *decode_week_key(max_time),
            len(week_keys)
        )
        return week_keys, warnings

    def build_pivot_table(
        self,
        groups: Sequence[Optional[str]],
        usages: Dict[Optional[str], GroupUsage],
        week_keys: Sequence[int]
    ) -> PivotTable:
        """
        Build the resource group by week table.

        The first row is the header; each following row is one resource
        group, in ``groups`` order, with 0 for weeks it has no usage in.
        """
        header_row = (GROUP_LABEL_HEADER, *week_keys)
        rows = [header_row]
        for group in groups:
            usage = usages.get(group, {})
            rows.append((group, *(usage.get(week_key, 0) for week_key in week_keys)))
        return tuple(rows)

    def to_csv(self, pivot_table: PivotTable) -> str:
        """Render the pivot table as quote-wrapped CSV text."""
        rendered = [
            [UNGROUPED_LABEL if row[0] is None else row[0]]
            + [format_quantity(cell) for cell in row[1:]]
            for row in pivot_table
        ]
        return build_csv(rendered)

    def transform(self, content: str, snapshot: MappingSnapshot) -> UsageReport:
        """
        Run the whole report pipeline on report text.

        Parameters
        ----------
        content : str
            Raw report text
        snapshot : MappingSnapshot
            Lookup tables for this run

        Returns
        -------
        UsageReport
            Usage, pivot table, CSV text and every problem found

        Raises
        ------
        ReportFormatError
            If the header does not match, or the quoting is malformed and
            the transformer is strict
        """
        report, parse_warnings = parse_quoted_csv(content)
        if parse_warnings and self.strict:
            raise ReportFormatError(
                f"Report is malformed ({len(parse_warnings)} problems)",
                [warning['message'] for warning in parse_warnings]
            )

        report_data = self.extract_report_data(report)
        usage_report = self.aggregate(report_data, snapshot)
        usage_report.parse_warnings = parse_warnings

        week_keys, warnings = self.normalize_weeks(usage_report.usages)
        usage_report.week_keys = week_keys
        usage_report.range_warnings.extend(warnings)
        if not usage_report.has_data:
            logger.warning("No matching usage rows found, report has no week columns")

        usage_report.pivot_table = self.build_pivot_table(
            usage_report.groups,
            usage_report.usages,
            week_keys
        )
        usage_report.csv_text = self.to_csv(usage_report.pivot_table)
        self.log_usage_summary(usage_report)
        return usage_report

    def log_usage_summary(self, usage_report: UsageReport) -> None:
        """Log total usage per resource group."""
        logger.info("\nResource Usage Summary:")
        logger.info("-" * 60)
        logger.info("%-30s %12s %15s", "Resource Group", "Weeks", "Total")
        logger.info("-" * 60)
        for group in usage_report.groups:
            usage = usage_report.usages.get(group, {})
            logger.info(
                "%-30s %12d %15.2f",
                (UNGROUPED_LABEL if group is None else group)[:30] or "(ungrouped)",
                len(usage),
                math.fsum(usage.values())
            )
        logger.info("-" * 60)
        if usage_report.unresolved:
            logger.info("%d unresolved projects/customers", len(usage_report.unresolved))

    def _read_report_text(self, report_path: Path) -> str:
        """Read the report, trying the encodings reports are exported in."""
        encodings = ['utf-8-sig', 'cp1252', 'latin1']
        for encoding in encodings:
            try:
                with report_path.open('r', newline='', encoding=encoding) as f:
                    content = f.read()
                logger.info("Read report %s with encoding: %s", report_path, encoding)
                return content
            except UnicodeDecodeError:
                logger.debug("Failed to read with encoding %s, trying next", encoding)
                continue
        raise ValueError(f"Failed to read report with any of the attempted encodings: {encodings}")

    def _write_unresolved(
        self,
        unresolved: List[UnresolvedEntry],
        result_file_path: Path
    ) -> Optional[Path]:
        """
        Write unresolved projects and customers next to the result file.

        A file left by an earlier run is removed when nothing is unresolved.
        """
        unresolved_file = result_file_path.with_name(UNRESOLVED_OUTPUT_NAME)
        if not unresolved:
            if unresolved_file.exists():
                unresolved_file.unlink()
                logger.info("Removed stale %s", unresolved_file)
            return None

        with unresolved_file.open('w', newline='', encoding='utf-8') as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=['kind', 'identifier', 'project', 'rows'])
            writer.writeheader()
            for entry in sorted(unresolved, key=lambda x: (x['kind'], x['identifier'])):
                writer.writerow(entry)
        logger.info("Wrote %d unresolved entries to %s", len(unresolved), unresolved_file)
        return unresolved_file

    def transform_to_report(
        self,
        report_path: Path,
        snapshot: MappingSnapshot,
        result_file_path: Path
    ) -> UsageReport:
        """
        Read a report file and write the weekly usage CSV.

        Nothing is written when the report is rejected.

        Parameters
        ----------
        report_path : Path
            Activity report export
        snapshot : MappingSnapshot
            Lookup tables for this run
        result_file_path : Path
            Where to write the pivot table CSV

        Returns
        -------
        UsageReport
            The run result
        """
        if not report_path.is_file():
            raise ValueError(f"Report file not found: {report_path}")

        content = self._read_report_text(report_path)
        usage_report = self.transform(content, snapshot)

        with result_file_path.open('w', newline='', encoding='utf-8') as f:
            f.write(usage_report.csv_text)
        logger.info("Wrote resource usage report to %s", result_file_path)

        self._write_unresolved(usage_report.unresolved, result_file_path)
        return usage_report
