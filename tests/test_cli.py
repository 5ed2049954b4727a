import csv
import json

import pytest
from click.testing import CliRunner

from lendcalc.main import cli


@pytest.fixture
def runner():
    return CliRunner()


BASE = ["-p", "100000", "-r", "2", "-t", "12"]


def test_emi_flat_rate(runner):
    result = runner.invoke(cli, ["emi", *BASE])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "10333.33"


def test_emi_compound_with_suffix(runner):
    result = runner.invoke(cli, ["emi", "-p", "100k", "-r", "2%", "-t", "12", "-m", "compound"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "9455.96"


@pytest.mark.parametrize(
    "args",
    [
        ["-p", "100000", "-r", "2", "-t", "0"],
        ["-p", "100000", "-r", "2", "-t", "361"],
        ["-p", "100000", "-r", "-1", "-t", "12"],
        ["-p", "lots", "-r", "2", "-t", "12"],
        ["-p", "0.5", "-r", "2", "-t", "12"],
        [*BASE, "-m", "daily"],
    ],
)
def test_emi_rejects_bad_input(runner, args):
    result = runner.invoke(cli, ["emi", *args])
    assert result.exit_code == 2


def test_schedule_prints_summary_and_rows(runner):
    result = runner.invoke(cli, ["schedule", *BASE, "-s", "2024-01-31"])
    assert result.exit_code == 0, result.output
    assert "Summary" in result.output
    assert "Total interest     : 23999.96" in result.output
    assert "12\t2025-01-31\t10333.37\t8333.37\t2000.00\t0.00" in result.output


def test_schedule_truncates_long_output(runner):
    result = runner.invoke(cli, ["schedule", "-p", "1m", "-r", "1", "-t", "240", "-s", "2024-01-01"])
    assert result.exit_code == 0, result.output
    assert "Schedule has 240 rows; showing first 120 rows." in result.output
    assert "\n121\t" not in result.output


def test_schedule_with_manual_emi_reports_early_payoff(runner):
    result = runner.invoke(cli, ["schedule", *BASE, "-s", "2024-01-31", "--emi", "60000"])
    assert result.exit_code == 0, result.output
    assert "Paid off after     : 2 months" in result.output


def test_schedule_json_export(runner, tmp_path):
    path = tmp_path / "loan.json"
    result = runner.invoke(cli, ["schedule", *BASE, "-s", "2024-01-31", "-o", str(path)])
    assert result.exit_code == 0, result.output
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["monthly_emi"] == 10333.33
    assert data["end_date"] == "2025-01-31"
    assert len(data["schedule"]) == 12
    assert data["schedule"][-1]["balance"] == 0.0


def test_schedule_csv_export(runner, tmp_path):
    path = tmp_path / "loan.csv"
    result = runner.invoke(cli, ["schedule", *BASE, "-m", "compound", "-s", "2024-01-31", "-o", str(path)])
    assert result.exit_code == 0, result.output
    with path.open(newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["Month", "Due_Date", "EMI", "Principal", "Interest", "Balance"]
    assert rows[1] == ["1", "2024-02-29", "9455.96", "7455.96", "2000.00", "92544.04"]
    assert len(rows) == 13


def test_schedule_unsupported_export(runner, tmp_path):
    result = runner.invoke(cli, ["schedule", *BASE, "-o", str(tmp_path / "loan.xlsx")])
    assert result.exit_code == 2


def test_summary_json_export(runner, tmp_path):
    path = tmp_path / "summary.json"
    result = runner.invoke(cli, ["summary", *BASE, "-m", "compound", "-o", str(path)])
    assert result.exit_code == 0, result.output
    summary = json.loads(path.read_text(encoding="utf-8"))["summary"]
    assert summary["total_amount_payable"] == 113471.52
    assert "schedule" not in summary


def test_compare(runner):
    result = runner.invoke(cli, ["compare", *BASE])
    assert result.exit_code == 0, result.output
    assert "simple" in result.output and "compound" in result.output
    assert "monthly_emi" in result.output
    assert "-877.37" in result.output


def test_payoff(runner):
    result = runner.invoke(cli, ["payoff", *BASE, "-s", "2024-01-31", "--paid", "3", "--days", "30"])
    assert result.exit_code == 0, result.output
    assert "Installments paid  : 3 of 12" in result.output
    assert "Remaining balance  : 75000.01" in result.output
    assert "Closure amount     : 76500.01" in result.output


def test_solve_rate(runner):
    result = runner.invoke(cli, ["solve-rate", "-p", "100000", "-t", "12", "--emi", "9455.96"])
    assert result.exit_code == 0, result.output
    assert abs(float(result.output.strip()) - 2.0) < 0.001


def test_solve_rate_unreachable(runner):
    result = runner.invoke(cli, ["solve-rate", "-p", "120000", "-t", "12", "--emi", "9000"])
    assert result.exit_code == 1
    assert "below the interest-free installment" in result.output


def test_verbose_flag(runner):
    result = runner.invoke(cli, ["--verbose", "emi", *BASE])
    assert result.exit_code == 0
