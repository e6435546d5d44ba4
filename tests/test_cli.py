import sys

import pytest

from smart_hisab import __version__
from smart_hisab.cli import main


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "smart_hisab_config.toml"
    path.write_text(
        "[database]\n"
        'path = "books.sqlite"\n'
        "[display]\n"
        'mode = "table"\n'
        'output_dir = "out"\n',
        encoding="utf-8",
    )
    return path


def run_cli(monkeypatch, config_path, *argv):
    """Run the CLI with sys.argv patched, as a user would from a shell."""
    monkeypatch.setattr(
        sys, "argv", ["smart-hisab", "--config", str(config_path), *argv]
    )
    main()


def test_version(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["smart-hisab", "--version"])
    main()
    assert __version__ in capsys.readouterr().out


def test_end_to_end_customer_flow(monkeypatch, capsys, config_path):
    run_cli(monkeypatch, config_path, "owners", "add", "--name", "Meera", "--email", "m@example.com")
    assert "Created owner #1" in capsys.readouterr().out

    run_cli(
        monkeypatch,
        config_path,
        "customers", "add", "--owner", "1", "--name", "Ravi", "--phone", "1", "--code", "C123456",
    )
    assert "C123456" in capsys.readouterr().out

    run_cli(
        monkeypatch,
        config_path,
        "tx", "add", "--owner", "1", "--customer", "1",
        "--type", "debit", "--amount", "1250", "--date", "2024-01-05",
    )
    run_cli(
        monkeypatch,
        config_path,
        "tx", "add", "--owner", "1", "--customer", "1",
        "--type", "credit", "--amount", "250", "--date", "2024-01-06",
    )
    capsys.readouterr()

    run_cli(monkeypatch, config_path, "customers", "list", "--owner", "1")
    out = capsys.readouterr().out
    assert "-₹1,000.00" in out
    assert "You will get" in out

    run_cli(monkeypatch, config_path, "portal", "--customer-code", "C123456")
    out = capsys.readouterr().out
    assert "Ravi" in out
    assert "-₹1,000.00" in out

    run_cli(monkeypatch, config_path, "dashboard", "--owner", "1")
    out = capsys.readouterr().out
    assert "Top customers: you will get" in out
    assert "Break-even" in out


def test_cashbook_summary_command(monkeypatch, capsys, config_path):
    run_cli(monkeypatch, config_path, "owners", "add", "--name", "Meera", "--email", "m@example.com")
    run_cli(
        monkeypatch,
        config_path,
        "cashbook", "add", "--owner", "1", "--type", "income",
        "--amount", "1000", "--date", "2024-01-01", "--description", "Sales",
    )
    run_cli(
        monkeypatch,
        config_path,
        "cashbook", "add", "--owner", "1", "--type", "expense",
        "--amount", "300", "--date", "2024-01-02", "--description", "Rent",
    )
    capsys.readouterr()

    run_cli(
        monkeypatch,
        config_path,
        "cashbook", "summary", "--owner", "1", "--from-date", "2024-01-01", "--to-date", "2024-01-31",
    )
    out = capsys.readouterr().out
    assert "₹700.00" in out
    assert "Net Profit" in out


def test_validation_error_exits_with_status_2(monkeypatch, capsys, config_path):
    run_cli(monkeypatch, config_path, "owners", "add", "--name", "Meera", "--email", "m@example.com")

    with pytest.raises(SystemExit) as excinfo:
        run_cli(
            monkeypatch,
            config_path,
            "cashbook", "add", "--owner", "1", "--type", "income",
            "--amount", "-5", "--date", "2024-01-01", "--description", "Sales",
        )
    assert excinfo.value.code == 2
    assert "greater than 0" in capsys.readouterr().err


def test_missing_record_exits_with_status_2(monkeypatch, capsys, config_path):
    with pytest.raises(SystemExit) as excinfo:
        run_cli(monkeypatch, config_path, "analytics", "--owner", "99")
    assert excinfo.value.code == 2


def test_csv_display_mode_writes_file(monkeypatch, capsys, config_path, tmp_path):
    run_cli(monkeypatch, config_path, "owners", "add", "--name", "Meera", "--email", "m@example.com")
    run_cli(monkeypatch, config_path, "--display-mode", "csv", "owners", "list")

    files = list((tmp_path / "out").glob("owners_*.csv"))
    assert len(files) == 1
    assert "m@example.com" in files[0].read_text(encoding="utf-8")


def test_dispute_and_support_message_flow(monkeypatch, capsys, config_path):
    run_cli(monkeypatch, config_path, "owners", "add", "--name", "Meera", "--email", "m@example.com")
    run_cli(
        monkeypatch,
        config_path,
        "customers", "add", "--owner", "1", "--name", "Ravi", "--phone", "1", "--code", "C123456",
    )
    run_cli(
        monkeypatch,
        config_path,
        "tx", "add", "--owner", "1", "--customer", "1",
        "--type", "debit", "--amount", "1250", "--date", "2024-01-05",
    )
    capsys.readouterr()

    run_cli(
        monkeypatch,
        config_path,
        "messages", "dispute", "--customer-code", "C123456", "--transaction", "1",
        "--subject", "Wrong amount", "--message", "It was 125",
    )
    assert "Sent dispute #1 (dispute, pending)" in capsys.readouterr().out

    run_cli(monkeypatch, config_path, "messages", "reply", "1", "--owner", "1", "--reply", "Checking")
    assert "in_progress" in capsys.readouterr().out

    run_cli(monkeypatch, config_path, "messages", "list", "--owner", "1")
    out = capsys.readouterr().out
    assert "Wrong amount" in out
    assert "Checking" in out

    run_cli(
        monkeypatch,
        config_path,
        "support", "send", "--owner", "1", "--topic", "Billing", "--description", "Invoice is wrong",
    )
    assert "Sent support message #1" in capsys.readouterr().out

    run_cli(monkeypatch, config_path, "admin", "overview")
    assert "Support messages: 1 (1 unread)" in capsys.readouterr().out

    run_cli(monkeypatch, config_path, "admin", "read", "1")
    assert "marked as read" in capsys.readouterr().out


def test_dispute_on_another_customers_transaction_exits_with_status_2(
    monkeypatch, capsys, config_path
):
    run_cli(monkeypatch, config_path, "owners", "add", "--name", "Meera", "--email", "m@example.com")
    for code in ("C111111", "C222222"):
        run_cli(
            monkeypatch,
            config_path,
            "customers", "add", "--owner", "1", "--name", "X", "--phone", "1", "--code", code,
        )
    run_cli(
        monkeypatch,
        config_path,
        "tx", "add", "--owner", "1", "--customer", "2",
        "--type", "debit", "--amount", "10", "--date", "2024-01-05",
    )
    capsys.readouterr()

    with pytest.raises(SystemExit) as excinfo:
        run_cli(
            monkeypatch,
            config_path,
            "messages", "dispute", "--customer-code", "C111111", "--transaction", "1",
            "--subject", "Not mine", "--message", "Never bought this",
        )
    assert excinfo.value.code == 2
    assert "Transaction #1 not found" in capsys.readouterr().err
