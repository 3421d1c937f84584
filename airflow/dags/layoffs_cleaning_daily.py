"""
Layoffs Cleaning Daily DAG

This DAG runs the layoffs batch pipeline once a day:
1. Cleans the raw layoffs table into layoffs_staging (Python cleaner)
2. Prints the layoffs reports from the cleaned table

The cleaner replaces layoffs_staging in a single transaction; a malformed
date fails the task and leaves the previous cleaned table in place.

Schedule: Daily at 06:00 America/Toronto
"""
from datetime import datetime, timedelta

import pendulum
from airflow import DAG
from airflow.operators.bash import BashOperator
from airflow.operators.empty import EmptyOperator
from airflow.operators.python import PythonOperator


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

TZ = pendulum.timezone("America/Toronto")

PROJECT_ROOT = '/opt/airflow'

default_args = {
    "owner": "layoffs-etl",
    "depends_on_past": False,
    "email_on_failure": False,
    "email_on_retry": False,
    # Deterministic batch transform: a retry only helps with connection errors
    "retries": 1,
    "retry_delay": timedelta(minutes=5),
}


# -----------------------------------------------------------------------------
# Task Callable Functions
# -----------------------------------------------------------------------------

def _resolve_database_url() -> str:
    """Database URL from the Airflow connection, falling back to DATABASE_URL."""
    import os
    from airflow.hooks.base import BaseHook

    try:
        conn = BaseHook.get_connection('postgres_default')
        print("Using Airflow connection: postgres_default")
        return conn.get_uri().replace('postgres://', 'postgresql://')
    except Exception as e:
        print(f"Warning: Could not get Airflow connection, trying environment variables: {e}")

    database_url = os.getenv('DATABASE_URL')
    if not database_url:
        raise ValueError(
            "DATABASE_URL must be configured via Airflow connection 'postgres_default' "
            "or the DATABASE_URL environment variable"
        )
    return database_url


def clean_layoffs(**context):
    """
    Run the cleaner against the raw layoffs table.

    Returns the cleaner statistics for downstream tasks via XCom.
    """
    import sys

    if PROJECT_ROOT not in sys.path:
        sys.path.insert(0, PROJECT_ROOT)

    from layoffs.cleaner.config_loader import load_cleaning_config
    from layoffs.cleaner.db_operations import LayoffsDB
    from layoffs.cleaner.main import run_cleaner

    print("=" * 60)
    print("CLEAN TASK - Starting")
    print("=" * 60)

    config = load_cleaning_config(f"{PROJECT_ROOT}/config/cleaning.yml")
    db = LayoffsDB(_resolve_database_url())

    stats = run_cleaner(config=config, db=db)

    print("=" * 60)
    print("CLEAN TASK - Completed Successfully")
    print("=" * 60)
    for key, value in stats.items():
        print(f"  - {key}: {value}")
    print("=" * 60)

    return stats


with DAG(
    dag_id="layoffs_cleaning_daily",
    default_args=default_args,
    description="Daily cleaning of the layoffs dataset and reports",
    schedule="0 6 * * *",
    start_date=datetime(2025, 10, 1, tzinfo=TZ),
    catchup=False,
    max_active_runs=1,
    tags=["etl", "layoffs", "daily"],
) as dag:

    start = EmptyOperator(task_id="start")

    clean = PythonOperator(
        task_id="clean",
        python_callable=clean_layoffs,
        doc_md="""
        **Clean the layoffs table**

        - Removes exact duplicates
        - Trims company names, canonicalizes industries, parses dates
        - Fills blank industries from the same company
        - Replaces layoffs_staging in one transaction
        """
    )

    report = BashOperator(
        task_id="report",
        bash_command=f"cd {PROJECT_ROOT} && python -m layoffs.reporting.main --config {PROJECT_ROOT}/config/cleaning.yml",
        doc_md="""
        **Print layoffs reports**

        Totals by company, industry, country, stage and year, monthly
        rolling totals and the top companies per year.
        """
    )

    end = EmptyOperator(task_id="end")

    start >> clean >> report >> end
