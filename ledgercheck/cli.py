#!/usr/bin/env python
"""
Command-line interface for ledgercheck.

This module provides the ``ledgercheck`` entry point, with commands for
scanning ledger exports and database tables for booking errors and for
listing the account rules used by the misclassification check.
"""

import sys
import logging
import argparse
import datetime
from logging.handlers import RotatingFileHandler
from typing import Dict, List, Any, Optional

from ledgercheck import __version__
from ledgercheck.config import get_config
from ledgercheck.models import ErrorDetectionResult, Severity
from ledgercheck.analysis.engine import ErrorDetectionEngine
from ledgercheck.analysis.rules import ACCOUNT_MAPPINGS, load_account_mappings
from ledgercheck.ingest.loader import (
    BookingSourceError, get_database_engine, load_bookings_from_file,
    load_bookings_from_table, load_previous_bookings_from_table
)
from ledgercheck.utils.common import format_currency, safe_json_dumps
from ledgercheck.utils.config import ConfigError, load_config_file, merge_configs

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

SEVERITY_RANK = {Severity.INFO: 0, Severity.WARNING: 1, Severity.CRITICAL: 2}


def configure_logging(config: Dict[str, Any], verbose: bool = False) -> None:
    """Set up logging from the ``logging`` config section.

    Args:
        config: Logging configuration section
        verbose: Log at DEBUG regardless of the configured level
    """
    level_name = 'DEBUG' if verbose else str(config.get('level', 'INFO')).upper()
    level = getattr(logging, level_name, logging.INFO)

    # Logs go to stderr so JSON output on stdout stays parseable
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger().setLevel(level)

    log_file = config.get('file')
    if log_file:
        handler = RotatingFileHandler(
            log_file,
            maxBytes=int(config.get('max_size', 10485760)),
            backupCount=int(config.get('backup_count', 5)),
            encoding='utf-8'
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)


def _add_output_arguments(parser):
    parser.add_argument('--as-of',
                        help='Reference date for missing accrual checks (YYYY-MM-DD, default: today)')
    parser.add_argument('--format',
                        choices=['text', 'json'],
                        default='text',
                        help='Output format')
    parser.add_argument('--min-severity',
                        choices=[s.value for s in Severity],
                        default=Severity.INFO.value,
                        help='Hide anomalies below this severity')
    parser.add_argument('--workers',
                        type=int,
                        help='Run the detectors on a thread pool of this size')
    parser.add_argument('--config',
                        help='Path to a JSON or YAML configuration file')


def setup_scan_commands(subparsers):
    """Set up the scan commands.

    Args:
        subparsers: argparse subparsers object
    """
    # Scan a ledger export
    scan_parser = subparsers.add_parser('scan', help='Scan a CSV or Excel ledger export')
    scan_parser.add_argument('current', help='Bookings of the period under review')
    scan_parser.add_argument('--previous',
                             help='Bookings of the prior period')
    scan_parser.add_argument('--sheet',
                             help='Excel sheet name (default: first sheet)')
    _add_output_arguments(scan_parser)

    # Scan database tables
    table_parser = subparsers.add_parser('scan-table', help='Scan booking tables in a database')
    table_parser.add_argument('--database-url',
                              help='SQLAlchemy database URL (default: sources.database_url)')
    table_parser.add_argument('--table',
                              help='Table of the period under review (default: sources.current_table)')
    table_parser.add_argument('--previous-table',
                              help='Table of the prior period (default: sources.previous_table)')
    table_parser.add_argument('--no-previous',
                              action='store_true',
                              help='Do not read a prior period table')
    _add_output_arguments(table_parser)


def setup_rules_commands(subparsers):
    """Set up the rules command.

    Args:
        subparsers: argparse subparsers object
    """
    rules_parser = subparsers.add_parser('rules', help='List the keyword to account range rules')
    rules_parser.add_argument('--config',
                              help='Path to a JSON or YAML configuration file')


def load_settings(args) -> Dict[str, Any]:
    """Build the effective configuration for a command.

    Args:
        args: Command-line arguments

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If the given config file cannot be loaded
    """
    config = get_config()
    if getattr(args, 'config', None):
        config = merge_configs(config, load_config_file(args.config))
    return config


def parse_as_of(value: Optional[str]) -> Optional[datetime.date]:
    """Parse the ``--as-of`` option.

    Raises:
        ConfigError: If the date is not in YYYY-MM-DD format
    """
    if not value:
        return None
    try:
        return datetime.datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise ConfigError(f"Invalid --as-of date: {value}. Expected YYYY-MM-DD.") from e


def run_detection(args, config: Dict[str, Any], current, previous) -> ErrorDetectionResult:
    """Run the detection engine with the command's settings."""
    workers = args.workers or config.get('runner', {}).get('max_workers') or 1
    engine = ErrorDetectionEngine(config.get('detection', {}), max_workers=workers)
    return engine.detect(current, previous, as_of=parse_as_of(args.as_of))


def print_result(result: ErrorDetectionResult, args, source: Dict[str, Any]) -> None:
    """Print a detection result as text or JSON.

    Args:
        result: Detection result
        args: Command-line arguments (``format`` and ``min_severity``)
        source: Description of where the bookings came from
    """
    min_rank = SEVERITY_RANK[Severity(args.min_severity)]
    shown = [a for a in result.by_severity() if SEVERITY_RANK[a.severity] >= min_rank]

    if args.format == 'json':
        data = result.to_dict()
        data['source'] = source
        print(safe_json_dumps(data, indent=2))
        return

    summary = result.summary
    print(f"Risk score: {result.risk_score}/100")
    print(f"Anomalies: {summary.total} "
          f"({summary.critical_count} critical, {summary.warning_count} warning, {summary.info_count} info)")
    print(f"Estimated financial impact: {format_currency(summary.estimated_financial_impact)}")

    if summary.top_categories:
        print("\nCategories:")
        for entry in summary.top_categories:
            print(f"  {entry.category.value}: {entry.count} ({format_currency(entry.impact)})")

    if shown:
        print("\nAnomalies:")
        for anomaly in shown:
            print(f"  [{anomaly.severity.value.upper()}] {anomaly.description}")
            print(f"    Confidence: {anomaly.confidence:.0%}, impact: {format_currency(anomaly.financial_impact)}")
            documents = [ref.document_no for ref in anomaly.affected_bookings if ref.document_no]
            if documents:
                print(f"    Documents: {', '.join(documents)}")
            print(f"    Fix: {anomaly.suggested_fix}")

        hidden = len(result.anomalies) - len(shown)
        if hidden:
            print(f"  ... {hidden} anomalies below {args.min_severity} not shown")

    print("\nRecommendations:")
    for recommendation in result.recommendations:
        print(f"  - {recommendation}")


def scan_files(args, config: Dict[str, Any]) -> None:
    """Scan ledger export files.

    Args:
        args: Command-line arguments
        config: Effective configuration
    """
    current = load_bookings_from_file(args.current, sheet_name=args.sheet)
    previous = load_bookings_from_file(args.previous, sheet_name=args.sheet) if args.previous else None

    result = run_detection(args, config, current, previous)
    print_result(result, args, {
        'current': args.current,
        'previous': args.previous,
        'current_count': len(current),
        'previous_count': len(previous) if previous is not None else 0,
    })


def scan_tables(args, config: Dict[str, Any]) -> None:
    """Scan booking tables in a database.

    Args:
        args: Command-line arguments
        config: Effective configuration
    """
    sources = config.get('sources', {})
    engine = get_database_engine(args.database_url or sources.get('database_url'))
    table = args.table or sources.get('current_table')
    previous_table = None if args.no_previous else (args.previous_table or sources.get('previous_table'))

    try:
        current = load_bookings_from_table(engine, table)
        previous = load_previous_bookings_from_table(engine, previous_table)
    finally:
        engine.dispose()

    result = run_detection(args, config, current, previous)
    print_result(result, args, {
        'table': table,
        'previous_table': previous_table if previous is not None else None,
        'current_count': len(current),
        'previous_count': len(previous) if previous is not None else 0,
    })


def list_rules(args, config: Dict[str, Any]) -> None:
    """List the keyword to account range rules.

    Args:
        args: Command-line arguments
        config: Effective configuration
    """
    mappings_file = config.get('detection', {}).get('account_mappings_file')
    mappings = load_account_mappings(mappings_file) if mappings_file else ACCOUNT_MAPPINGS

    for mapping in mappings:
        print(f"{mapping.label}: accounts {mapping.describe_ranges()}")
        print(f"  Keywords: {', '.join(mapping.keywords)}")


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all commands."""
    parser = argparse.ArgumentParser(description='ledgercheck: booking error detection')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Command')
    setup_scan_commands(subparsers)
    setup_rules_commands(subparsers)

    return parser


def parse_args(args: Optional[List[str]] = None):
    """Parse command-line arguments.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments
    """
    return build_parser().parse_args(args)


COMMANDS = {
    'scan': scan_files,
    'scan-table': scan_tables,
    'rules': list_rules,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the ledgercheck CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return 1

    try:
        config = load_settings(args)
        configure_logging(config.get('logging', {}), verbose=args.verbose)
        command(args, config)
    except BookingSourceError as e:
        logger.error(f"Could not read bookings: {e}")
        return 1
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
