"""
Tests for the command line interface.
"""

import json

import pytest
from sqlalchemy import create_engine, text

from ledgercheck.cli import main, parse_args


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run commands in an empty directory without user configuration."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def ledger_csv(workdir):
    path = workdir / "current.csv"
    path.write_text(
        "posting_date,amount,account,vendor,document_no,text\n"
        "2024-03-04,1000.00,4930,Papier AG,RE-1001,Druckerpapier\n"
        "2024-03-11,1000.00,4930,Papier AG,RE-1002,Druckerpapier\n"
        "2024-03-01,1850.00,4930,Immo GmbH,RE-1003,Miete Maerz\n"
        "2024-03-05,250.00,8400,,AR-2001,Erloese\n"
        "2024-03-09,89.90,4900,,RE-1004,Porto\n",
        encoding="utf-8"
    )
    return path


def test_parse_args():
    args = parse_args(['scan', 'current.csv', '--previous', 'prev.csv', '--format', 'json', '--workers', '4'])

    assert args.command == 'scan'
    assert args.current == 'current.csv'
    assert args.previous == 'prev.csv'
    assert args.format == 'json'
    assert args.workers == 4
    assert args.min_severity == 'info'


def test_scan_text(ledger_csv, capsys):
    exit_code = main(['scan', str(ledger_csv), '--as-of', '2024-04-30'])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Risk score: 36/100" in out
    assert "Possible duplicate payment to Papier AG" in out
    assert "Reversed sign" in out
    assert "Recommendations:" in out


def test_scan_min_severity(ledger_csv, capsys):
    exit_code = main(['scan', str(ledger_csv), '--as-of', '2024-04-30', '--min-severity', 'warning'])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "[WARNING]" in out
    assert "[INFO]" not in out
    assert "3 anomalies below warning not shown" in out


def test_scan_json(ledger_csv, capsys):
    exit_code = main(['scan', str(ledger_csv), '--as-of', '2024-04-30', '--format', 'json', '--workers', '3'])

    data = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert data['risk_score'] == 36
    assert data['source']['current_count'] == 5
    assert data['source']['previous'] is None
    assert [a['type'] for a in data['anomalies']][0] == 'duplicate_payment'


def test_scan_with_previous_period(workdir, ledger_csv, capsys):
    previous = workdir / "previous.csv"
    previous.write_text(
        "posting_date,amount,account,vendor,document_no\n"
        "2024-01-03,1200.00,4210,Immo GmbH,P-1\n"
        "2024-02-03,1200.00,4210,Immo GmbH,P-2\n",
        encoding="utf-8"
    )

    exit_code = main(['scan', str(ledger_csv), '--previous', str(previous),
                      '--as-of', '2024-04-30', '--format', 'json'])

    data = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert 'missing_accrual' in [a['type'] for a in data['anomalies']]
    assert data['source']['previous_count'] == 2


def test_config_file_overrides_detection(ledger_csv, workdir, capsys):
    config = workdir / "strict.yaml"
    config.write_text("detection:\n  revenue_account_range: [9000, 9999]\n", encoding="utf-8")

    main(['scan', str(ledger_csv), '--as-of', '2024-04-30', '--format', 'json', '--config', str(config)])

    data = json.loads(capsys.readouterr().out)
    assert 'reversed_sign' not in [a['type'] for a in data['anomalies']]


def test_missing_file_exits_with_error(workdir):
    assert main(['scan', str(workdir / "missing.csv")]) == 1


def test_bad_as_of_exits_with_error(ledger_csv):
    assert main(['scan', str(ledger_csv), '--as-of', '30.04.2024']) == 1


def test_missing_config_file_exits_with_error(ledger_csv, workdir):
    assert main(['scan', str(ledger_csv), '--config', str(workdir / "missing.yaml")]) == 1


def test_scan_table(workdir, capsys):
    url = f"sqlite:///{workdir / 'bookings.db'}"
    engine = create_engine(url, future=True)
    with engine.begin() as connection:
        connection.execute(text(
            "CREATE TABLE bookings_curr (posting_date TEXT, amount NUMERIC, account INTEGER, document_no TEXT)"
        ))
        connection.execute(text("INSERT INTO bookings_curr VALUES ('2024-03-05', 250, 8400, 'AR-1')"))
    engine.dispose()

    exit_code = main(['scan-table', '--database-url', url, '--table', 'bookings_curr',
                      '--previous-table', 'bookings_prev', '--as-of', '2024-04-30', '--format', 'json'])

    data = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert [a['type'] for a in data['anomalies']] == ['reversed_sign']
    assert data['source']['previous_table'] is None


def test_scan_table_without_database_url(workdir):
    assert main(['scan-table', '--table', 'bookings_curr']) == 1


def test_rules(workdir, capsys):
    assert main(['rules']) == 0

    out = capsys.readouterr().out
    assert "Rent & Lease: accounts 4210-4219" in out
    assert "miete" in out


def test_no_command(workdir, capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out
