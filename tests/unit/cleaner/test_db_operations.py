"""
Unit tests for LayoffsDB with psycopg2 mocked out.

These check transaction handling (commit on success, rollback on error)
and the statements issued, without a database.
"""

from datetime import date
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from layoffs.cleaner.db_operations import DatabaseError, LayoffsDB


@pytest.fixture
def mock_conn():
    """Patch psycopg2.connect and return the fake connection."""
    with patch("layoffs.cleaner.db_operations.psycopg2.connect") as mock_connect:
        conn = MagicMock()
        mock_connect.return_value = conn
        yield conn


def _cursor(conn):
    return conn.cursor.return_value.__enter__.return_value


def test_init_validates_connection(mock_conn):
    LayoffsDB("postgresql://test")

    _cursor(mock_conn).execute.assert_called_once_with("SELECT 1")
    mock_conn.commit.assert_called_once()
    mock_conn.close.assert_called_once()


def test_init_wraps_connection_failure():
    with patch(
        "layoffs.cleaner.db_operations.psycopg2.connect",
        side_effect=psycopg2.OperationalError("no route to host"),
    ):
        with pytest.raises(DatabaseError, match="Failed to connect"):
            LayoffsDB("postgresql://test")


def test_fetch_raw_layoffs_returns_dicts(mock_conn):
    db = LayoffsDB("postgresql://test")
    cursor = _cursor(mock_conn)
    cursor.fetchall.return_value = [{'company': 'Acme'}, {'company': 'Globex'}]

    rows = db.fetch_raw_layoffs('raw.layoffs')

    assert rows == [{'company': 'Acme'}, {'company': 'Globex'}]
    assert cursor.execute.call_count == 2  # SELECT 1, then the fetch


def test_fetch_raw_layoffs_wraps_errors(mock_conn):
    db = LayoffsDB("postgresql://test")
    _cursor(mock_conn).execute.side_effect = psycopg2.ProgrammingError("relation does not exist")

    with pytest.raises(DatabaseError, match="Failed to fetch raw layoffs"):
        db.fetch_raw_layoffs()

    mock_conn.rollback.assert_called_once()


@patch("layoffs.cleaner.db_operations.psycopg2.extras.execute_values")
def test_replace_cleaned_layoffs_single_transaction(mock_execute_values, mock_conn, make_record):
    db = LayoffsDB("postgresql://test")
    mock_conn.reset_mock()
    records = [
        make_record(event_date=date(2023, 3, 5)),
        make_record(company='Globex', event_date=None),
    ]

    written = db.replace_cleaned_layoffs(records, 'layoffs_staging')

    assert written == 2
    # DROP + CREATE on one connection, then one batch insert
    assert _cursor(mock_conn).execute.call_count == 2
    mock_execute_values.assert_called_once()
    inserted = mock_execute_values.call_args[0][2]
    assert inserted[0] == (
        'Acme', 'SF Bay Area', 'Retail', 100, '0.1',
        date(2023, 3, 5), 'Series B', 'United States', 50,
    )
    assert inserted[1][0] == 'Globex'
    assert inserted[1][5] is None
    mock_conn.commit.assert_called_once()
    mock_conn.rollback.assert_not_called()


@patch("layoffs.cleaner.db_operations.psycopg2.extras.execute_values")
def test_replace_cleaned_layoffs_empty_skips_insert(mock_execute_values, mock_conn):
    db = LayoffsDB("postgresql://test")

    assert db.replace_cleaned_layoffs([]) == 0
    mock_execute_values.assert_not_called()


@patch("layoffs.cleaner.db_operations.psycopg2.extras.execute_values")
def test_replace_cleaned_layoffs_rolls_back_on_error(mock_execute_values, mock_conn, make_record):
    db = LayoffsDB("postgresql://test")
    mock_conn.reset_mock()
    mock_execute_values.side_effect = psycopg2.DataError("date/time field value out of range")

    with pytest.raises(DatabaseError, match="Failed to write cleaned layoffs"):
        db.replace_cleaned_layoffs([make_record()])

    mock_conn.rollback.assert_called_once()
    mock_conn.commit.assert_not_called()
    mock_conn.close.assert_called_once()


def test_fetch_cleaned_layoffs_builds_records(mock_conn, make_record):
    db = LayoffsDB("postgresql://test")
    row = make_record(event_date=date(2023, 3, 5)).to_row()
    _cursor(mock_conn).fetchall.return_value = [row]

    [record] = db.fetch_cleaned_layoffs()

    assert record.company == 'Acme'
    assert record.event_date == date(2023, 3, 5)


def test_get_table_stats(mock_conn):
    db = LayoffsDB("postgresql://test")
    _cursor(mock_conn).fetchone.return_value = {
        'total_rows': 3, 'companies': 2, 'missing_industry': 1,
        'earliest_date': date(2020, 3, 11), 'latest_date': date(2023, 3, 6),
    }

    stats = db.get_table_stats()

    assert stats['total_rows'] == 3
    assert stats['missing_industry'] == 1
