"""
Unit tests for the cleaner entry point (run_cleaner and main).
"""

from datetime import date

import pytest

from layoffs.cleaner import main as cleaner_main
from layoffs.cleaner.config_loader import CleaningConfig
from layoffs.cleaner.db_operations import DatabaseError
from layoffs.cleaner.loader import read_layoffs_csv
from layoffs.cleaner.normalize import MalformedDateError
from layoffs.cleaner.main import run_cleaner
from layoffs.common.records import COLUMNS


class FakeDB:
    """In-memory stand-in for LayoffsDB."""

    def __init__(self, rows, fail_on_write=False):
        self._rows = rows
        self.fail_on_write = fail_on_write
        self.fetched_tables = []
        self.written = {}

    def fetch_raw_layoffs(self, table='layoffs'):
        self.fetched_tables.append(table)
        return [dict(row) for row in self._rows]

    def replace_cleaned_layoffs(self, records, table='layoffs_staging'):
        if self.fail_on_write:
            raise DatabaseError("disk full")
        self.written[table] = list(records)
        return len(self.written[table])

    def get_table_stats(self, table='layoffs_staging'):
        records = self.written.get(table, [])
        dates = [r.event_date for r in records if r.event_date is not None]
        return {
            'total_rows': len(records),
            'companies': len({r.company for r in records}),
            'missing_industry': sum(1 for r in records if r.industry is None),
            'earliest_date': min(dates, default=None),
            'latest_date': max(dates, default=None),
        }


def _write_csv(path, rows):
    lines = [','.join(COLUMNS)]
    for row in rows:
        lines.append(','.join(f'"{row[c]}"' for c in COLUMNS))
    path.write_text('\n'.join(lines) + '\n', encoding='utf-8')


def test_run_cleaner_with_fake_db(sample_raw_rows):
    db = FakeDB(sample_raw_rows)

    stats = run_cleaner(config=CleaningConfig(), db=db)  # type: ignore[arg-type]

    assert db.fetched_tables == ['layoffs']
    assert stats['loaded'] == 7
    assert stats['duplicates_removed'] == 1
    assert stats['written'] == 6
    written = db.written['layoffs_staging']
    assert all(isinstance(r.event_date, date) for r in written)


def test_run_cleaner_dry_run_writes_nothing(sample_raw_rows):
    db = FakeDB(sample_raw_rows)

    stats = run_cleaner(config=CleaningConfig(), db=db, dry_run=True)  # type: ignore[arg-type]

    assert stats['written'] == 0
    assert db.written == {}


def test_run_cleaner_bad_date_writes_nothing(sample_raw_rows):
    sample_raw_rows[0]['date'] = 'unknown'
    sample_raw_rows[1]['date'] = 'unknown'
    db = FakeDB(sample_raw_rows)

    with pytest.raises(MalformedDateError):
        run_cleaner(config=CleaningConfig(), db=db)  # type: ignore[arg-type]

    assert db.written == {}


def test_run_cleaner_propagates_database_errors(sample_raw_rows):
    db = FakeDB(sample_raw_rows, fail_on_write=True)

    with pytest.raises(DatabaseError):
        run_cleaner(config=CleaningConfig(), db=db)  # type: ignore[arg-type]


def test_run_cleaner_refuses_to_overwrite_source(sample_raw_rows):
    config = CleaningConfig()
    config.tables.target = config.tables.source

    with pytest.raises(ValueError, match='must differ'):
        run_cleaner(config=config, db=FakeDB(sample_raw_rows))  # type: ignore[arg-type]


def test_run_cleaner_requires_db_without_csv():
    with pytest.raises(ValueError, match='database connection is required'):
        run_cleaner(config=CleaningConfig())


def test_run_cleaner_csv_to_csv(tmp_path, sample_raw_rows):
    input_csv = tmp_path / 'layoffs.csv'
    output_csv = tmp_path / 'clean.csv'
    _write_csv(input_csv, sample_raw_rows)

    stats = run_cleaner(
        config=CleaningConfig(),
        input_csv=str(input_csv),
        output_csv=str(output_csv),
    )

    assert stats['written'] == 6
    rows = read_layoffs_csv(output_csv)
    airbnb = [r for r in rows if r['company'] == 'Airbnb']
    assert [r['industry'] for r in airbnb] == ['Travel', 'Travel']
    assert {r['date'] for r in airbnb} == {'2023-03-03', '2020-05-05'}


def test_main_csv_mode_success(tmp_path, monkeypatch, sample_raw_rows, capsys):
    monkeypatch.delenv('DATABASE_URL', raising=False)
    input_csv = tmp_path / 'layoffs.csv'
    output_csv = tmp_path / 'clean.csv'
    _write_csv(input_csv, sample_raw_rows)

    exit_code = cleaner_main.main(['--input-csv', str(input_csv), '--output-csv', str(output_csv)])

    assert exit_code == 0
    assert output_csv.exists()
    assert 'CLEANER SUMMARY' in capsys.readouterr().out


def test_main_malformed_date_exit_code(tmp_path, monkeypatch, sample_raw_rows):
    monkeypatch.delenv('DATABASE_URL', raising=False)
    sample_raw_rows[3]['date'] = 'unknown'
    input_csv = tmp_path / 'layoffs.csv'
    output_csv = tmp_path / 'clean.csv'
    _write_csv(input_csv, sample_raw_rows)

    exit_code = cleaner_main.main(['--input-csv', str(input_csv), '--output-csv', str(output_csv)])

    assert exit_code == 1
    assert not output_csv.exists()


def test_main_without_database_url(monkeypatch):
    monkeypatch.delenv('DATABASE_URL', raising=False)

    assert cleaner_main.main([]) == 2


def test_main_uses_database(monkeypatch, sample_raw_rows, capsys):
    fake_db = FakeDB(sample_raw_rows)
    monkeypatch.setenv('DATABASE_URL', 'postgresql://user:pw@localhost/layoffs')
    monkeypatch.setattr(cleaner_main, 'LayoffsDB', lambda url: fake_db)

    exit_code = cleaner_main.main(['--target-table', 'clean.layoffs'])

    assert exit_code == 0
    assert len(fake_db.written['clean.layoffs']) == 6
    out = capsys.readouterr().out
    assert 'Cleaned table clean.layoffs' in out
    assert 'Missing industry:  1' in out


def test_main_database_error_exit_code(monkeypatch):
    def _fail(url):
        raise DatabaseError("connection refused")

    monkeypatch.setenv('DATABASE_URL', 'postgresql://user:pw@localhost/layoffs')
    monkeypatch.setattr(cleaner_main, 'LayoffsDB', _fail)

    assert cleaner_main.main([]) == 2
