"""Command line interface for the resource usage report."""

import logging
import sys
from pathlib import Path

import click

from .config import DEFAULT_OUTPUT_NAME, MAPPINGS_ENV_VAR
from .exceptions import MappingFormatError, ReportFormatError
from .mappings import load_mappings
from .transformer import UsageTransformer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

def configure_logging(verbose: bool) -> None:
    """Configure logging level based on verbosity."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled")

@click.group()
def cli():
    """Turn activity reports into weekly resource usage per resource group."""
    pass

mappings_option = click.option(
    '--mappings',
    required=True,
    envvar=MAPPINGS_ENV_VAR,
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    help=f'Path to the mapping JSON with proj_cust_map and cust_rsgp_map (or ${MAPPINGS_ENV_VAR})'
)

verbose_option = click.option(
    '-v', '--verbose',
    is_flag=True,
    help='Enable verbose logging'
)

@cli.command()
@click.option(
    '--report',
    required=True,
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    help='Path to the activity report export'
)
@mappings_option
@click.option(
    '--output-path',
    required=True,
    type=click.Path(file_okay=False, dir_okay=True, writable=True, path_type=Path),
    help='Directory where output files will be written'
)
@click.option(
    '--output-name',
    default=DEFAULT_OUTPUT_NAME,
    show_default=True,
    help='Name of the result file'
)
@click.option(
    '--lenient',
    is_flag=True,
    help='Continue with the readable rows when the report quoting is malformed'
)
@click.option(
    '--skip-invalid-weeks',
    is_flag=True,
    help='Leave out rows whose week does not exist in their year'
)
@verbose_option
def build_report(
    report: Path,
    mappings: Path,
    output_path: Path,
    output_name: str,
    lenient: bool,
    skip_invalid_weeks: bool,
    verbose: bool
) -> None:
    """Build the weekly resource usage CSV from an activity report."""
    configure_logging(verbose)

    output_path.mkdir(parents=True, exist_ok=True)
    result_file_path = output_path / output_name

    try:
        snapshot = load_mappings(mappings)
        transformer = UsageTransformer(
            strict=not lenient,
            skip_invalid_weeks=skip_invalid_weeks
        )
        usage_report = transformer.transform_to_report(report, snapshot, result_file_path)
    except (ReportFormatError, MappingFormatError) as e:
        logger.error("Failed to build report: %s", e.message)
        for problem in getattr(e, 'problems', []):
            logger.error("  %s", problem)
        sys.exit(1)

    for entry in usage_report.unresolved:
        logger.warning(
            "Unresolved %s '%s' (project %s, %d rows) - add it to the mappings and run again",
            entry['kind'],
            entry['identifier'],
            entry['project'],
            entry['rows']
        )
    if not usage_report.has_data:
        logger.warning("No usage rows matched; %s only lists the resource groups", result_file_path)

@cli.command()
@mappings_option
@verbose_option
def check_mappings(mappings: Path, verbose: bool) -> None:
    """List known projects, customers and resource groups, and customers with no group."""
    configure_logging(verbose)

    try:
        snapshot = load_mappings(mappings)
    except MappingFormatError as e:
        logger.error("Failed to read mappings: %s", e.message)
        sys.exit(1)

    logger.info("Projects: %s", ", ".join(snapshot.known_projects()) or "(none)")
    logger.info("Customers: %s", ", ".join(snapshot.known_customers()) or "(none)")
    logger.info("Resource groups: %s", ", ".join(snapshot.resource_groups()) or "(none)")

    missing = snapshot.customers_without_group()
    for customer in missing:
        logger.warning("No mapping for customer: %s", customer)
    if missing:
        sys.exit(1)

if __name__ == '__main__':
    cli()
