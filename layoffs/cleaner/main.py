"""
Cleaner - Main Entry Point

This is the command-line interface for the layoffs cleaning pipeline.
It can be called directly from the terminal or from Airflow tasks.

Usage:
    python -m layoffs.cleaner.main [OPTIONS]

Options:
    --config TEXT         Path to cleaning.yml configuration file
    --source-table TEXT   Raw table to read (default from config: layoffs)
    --target-table TEXT   Cleaned table to replace (default from config: layoffs_staging)
    --input-csv PATH      Read raw rows from a CSV file instead of the database
    --output-csv PATH     Write cleaned rows to a CSV file instead of the database
    --dry-run            Run the pipeline without writing anything
    --verbose            Enable debug logging
    --help               Show this message and exit

Examples:
    # Clean the raw table into layoffs_staging:
    python -m layoffs.cleaner.main

    # Clean a CSV export without a database:
    python -m layoffs.cleaner.main --input-csv layoffs.csv --output-csv layoffs_clean.csv

    # Dry run to see what would change:
    python -m layoffs.cleaner.main --dry-run --verbose

Exit Codes:
    0: Success
    1: Data error (malformed dates, unloadable rows); nothing was written
    2: Fatal error (database connection, configuration, etc.)
"""

import argparse
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv

from .config_loader import CleaningConfig, load_cleaning_config
from .db_operations import DatabaseError, LayoffsDB
from .loader import LoadError, read_layoffs_csv, write_layoffs_csv
from .normalize import MalformedDateError
from .pipeline import run_pipeline

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description='Deduplicate, normalize and gap-fill the layoffs dataset',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to cleaning.yml configuration file (default: config/cleaning.yml)'
    )

    parser.add_argument(
        '--source-table',
        type=str,
        default=None,
        help='Raw table to read',
        dest='source_table'
    )

    parser.add_argument(
        '--target-table',
        type=str,
        default=None,
        help='Cleaned table to replace',
        dest='target_table'
    )

    parser.add_argument(
        '--input-csv',
        type=str,
        default=None,
        help='Read raw rows from this CSV file instead of the database',
        dest='input_csv'
    )

    parser.add_argument(
        '--output-csv',
        type=str,
        default=None,
        help='Write cleaned rows to this CSV file instead of the database',
        dest='output_csv'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Run the pipeline without writing anything',
        dest='dry_run'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    return parser.parse_args(argv)


def run_cleaner(
    config: CleaningConfig,
    db: Optional[LayoffsDB] = None,
    input_csv: Optional[str] = None,
    output_csv: Optional[str] = None,
    dry_run: bool = False
) -> dict[str, int]:
    """
    Main cleaner logic.

    Raw rows come from input_csv if given, otherwise from the database.
    Cleaned rows go to output_csv if given, otherwise to the database.
    The source is only read; the pipeline runs fully in memory before
    anything is written.

    Args:
        config: Cleaning configuration
        db: Database interface (required unless both CSV paths are given)
        input_csv: Raw CSV file to read
        output_csv: Cleaned CSV file to write
        dry_run: If True, don't write anything

    Returns:
        Pipeline statistics plus:
        - written: Number of cleaned rows written

    Raises:
        LoadError: If raw rows cannot be loaded
        MalformedDateError: If any date cannot be parsed (nothing is written)
        DatabaseError: If a database operation fails
    """
    start_time = datetime.now(timezone.utc)

    logger.info(
        "Starting layoffs cleaner",
        extra={
            'input_csv': input_csv,
            'output_csv': output_csv,
            'source_table': config.tables.source,
            'target_table': config.tables.target,
            'dry_run': dry_run,
        }
    )

    if db is None and (input_csv is None or (output_csv is None and not dry_run)):
        raise ValueError("A database connection is required unless CSV input and output are given")

    if input_csv is None and output_csv is None and config.tables.source == config.tables.target:
        raise ValueError("Source and target tables must differ; the raw table is never overwritten")

    # Load
    if input_csv:
        raw_rows = read_layoffs_csv(input_csv)
    else:
        try:
            raw_rows = db.fetch_raw_layoffs(config.tables.source)
        except DatabaseError as e:
            logger.error(f"Failed to fetch raw layoffs: {e}")
            raise

    # Transform (may raise MalformedDateError before any write)
    result = run_pipeline(raw_rows, config)
    stats = dict(result.stats)
    stats['written'] = 0

    for conflict in result.conflicts:
        logger.debug(
            f"Gap-fill conflict for {conflict.entity}: {conflict.values}",
            extra={'field': conflict.field, 'chosen': conflict.chosen}
        )

    # Write (unless dry run)
    if dry_run:
        logger.info(f"DRY RUN: Would write {len(result.records)} cleaned layoffs")
    elif output_csv:
        stats['written'] = write_layoffs_csv(result.records, output_csv)
    else:
        try:
            stats['written'] = db.replace_cleaned_layoffs(result.records, config.tables.target)
        except DatabaseError as e:
            logger.error(f"Failed to write cleaned layoffs: {e}")
            raise

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()

    logger.info(
        "Layoffs cleaner completed",
        extra={
            'duration_seconds': duration,
            'stats': stats,
        }
    )

    return stats


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the layoffs cleaner.

    Returns:
        Exit code (0 = success, 1 = data error, 2 = fatal error)
    """
    args = parse_args(argv)

    # Set logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled")

    try:
        # Load configuration
        logger.info("Loading cleaning configuration")
        config = load_cleaning_config(args.config)
        if args.source_table:
            config.tables.source = args.source_table
        if args.target_table:
            config.tables.target = args.target_table

        db = None
        needs_db = args.input_csv is None or (args.output_csv is None and not args.dry_run)
        if needs_db:
            # Get database connection string from environment
            database_url = os.getenv('DATABASE_URL')
            if not database_url:
                logger.error("DATABASE_URL environment variable must be set")
                return 2  # Fatal error - cannot proceed without database

            logger.info("Connecting to database")
            db = LayoffsDB(database_url)

        stats = run_cleaner(
            config=config,
            db=db,
            input_csv=args.input_csv,
            output_csv=args.output_csv,
            dry_run=args.dry_run
        )

        # Print summary
        print("\n" + "=" * 60)
        print("CLEANER SUMMARY")
        print("=" * 60)
        print(f"Loaded:              {stats['loaded']}")
        print(f"Duplicates removed:  {stats['duplicates_removed']}")
        print(f"Dates parsed:        {stats['dates_parsed']}")
        print(f"Gaps filled:         {stats['gaps_filled']}")
        print(f"Gap-fill conflicts:  {stats['conflicts']}")
        print(f"Pruned:              {stats['pruned']}")
        print(f"Written:             {stats['written']}")
        print("=" * 60)

        # Show cleaned table stats
        if db is not None and args.output_csv is None and not args.dry_run:
            table_stats = db.get_table_stats(config.tables.target)
            print(f"\nCleaned table {config.tables.target}:")
            print(f"  Rows:              {table_stats['total_rows']}")
            print(f"  Companies:         {table_stats['companies']}")
            print(f"  Missing industry:  {table_stats['missing_industry']}")
            print(f"  Date range:        {table_stats['earliest_date']} .. {table_stats['latest_date']}")

        if stats['conflicts'] > 0:
            logger.warning(
                f"Completed with {stats['conflicts']} gap-fill conflicts (last match used)"
            )

        logger.info("Cleaner completed successfully")
        return 0  # Success

    except MalformedDateError as e:
        logger.error(f"Date validation failed, nothing written: {e}")
        return 1

    except LoadError as e:
        logger.error(f"Failed to load raw layoffs, nothing written: {e}")
        return 1

    except DatabaseError as e:
        logger.error(f"Database error: {e}")
        return 2  # Fatal error

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130  # Standard Unix exit code for SIGINT

    except Exception as e:
        logger.error(
            "Unexpected fatal error",
            extra={
                'error': str(e),
                'error_type': type(e).__name__,
            },
            exc_info=True
        )
        return 2  # Fatal error


if __name__ == '__main__':
    sys.exit(main())
