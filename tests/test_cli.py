"""Tests for the command line entry points."""

import csv
import json

import pytest

from customer_intelligence.cli import export_customers_cli, summarize_customers_cli

AS_OF = "2024-06-01T00:00:00Z"


def write_inputs(tmp_path, customers=None, orders=None):
    customers_path = tmp_path / "customers.json"
    orders_path = tmp_path / "orders.json"
    if customers is None:
        customers = [
            {"id": "c1", "email": "ana@example.com", "full_name": "Ana", "is_vip": True},
            {"id": "c2", "email": "ben@example.com", "full_name": "Ben", "tags": ["regular"]},
            {"id": "c3", "full_name": "Cy"},
        ]
    if orders is None:
        orders = [
            {"id": "o1", "user_id": "c1", "order_total": 200, "created_at": "2024-05-25T00:00:00Z"},
            {"id": "o2", "user_id": "c2", "order_total": 40, "created_at": "2024-03-01T00:00:00Z"},
        ]
    customers_path.write_text(json.dumps(customers), encoding="utf-8")
    orders_path.write_text(json.dumps(orders), encoding="utf-8")
    return customers_path, orders_path


def test_summarize_writes_json(tmp_path):
    customers_path, orders_path = write_inputs(tmp_path)
    output = tmp_path / "out" / "summary.json"

    exit_code = summarize_customers_cli(
        [str(customers_path), str(orders_path), "--as-of", AS_OF, "--output", str(output)]
    )

    assert exit_code == 0
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["metrics"]["total"] == 3
    assert payload["metrics"]["vip_count"] == 1
    assert [c["id"] for c in payload["customers"]] == ["c1", "c2", "c3"]
    assert payload["customers"][1]["status"] == "at-risk"
    assert payload["cards"][0]["value"] == "3"
    assert payload["computed_at"] == "2024-06-01T00:00:00+00:00"


def test_summarize_to_stdout_with_filters(tmp_path, capsys):
    customers_path, orders_path = write_inputs(tmp_path)

    exit_code = summarize_customers_cli(
        [str(customers_path), str(orders_path), "--as-of", AS_OF, "--search", "regular"]
    )

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert [c["name"] for c in payload["customers"]] == ["Ben"]
    # Metrics describe the whole base, not the filtered view
    assert payload["metrics"]["total"] == 3


def test_summarize_writes_report(tmp_path):
    customers_path, orders_path = write_inputs(tmp_path)
    report = tmp_path / "report.md"

    exit_code = summarize_customers_cli(
        [str(customers_path), str(orders_path), "--as-of", AS_OF,
         "--output", str(tmp_path / "s.json"), "--report", str(report)]
    )

    assert exit_code == 0
    assert "## Segments" in report.read_text(encoding="utf-8")


def test_summarize_no_customers(tmp_path):
    customers_path, orders_path = write_inputs(tmp_path, customers=[], orders=[])
    assert summarize_customers_cli([str(customers_path), str(orders_path)]) == 1


def test_invalid_as_of_exits(tmp_path):
    customers_path, orders_path = write_inputs(tmp_path)
    with pytest.raises(SystemExit):
        summarize_customers_cli([str(customers_path), str(orders_path), "--as-of", "soon"])


def test_invalid_status_choice_exits(tmp_path):
    customers_path, orders_path = write_inputs(tmp_path)
    with pytest.raises(SystemExit):
        summarize_customers_cli([str(customers_path), str(orders_path), "--status", "gold"])


def test_non_list_input_rejected(tmp_path):
    customers_path, orders_path = write_inputs(tmp_path)
    customers_path.write_text(json.dumps({"id": "c1"}), encoding="utf-8")
    with pytest.raises(ValueError, match="Expected a list of rows"):
        summarize_customers_cli([str(customers_path), str(orders_path)])


def test_export_csv(tmp_path):
    customers_path, orders_path = write_inputs(tmp_path)
    output = tmp_path / "customers.csv"

    exit_code = export_customers_cli(
        [str(customers_path), str(orders_path), "--as-of", AS_OF,
         "--sort", "ltv", "--output", str(output)]
    )

    assert exit_code == 0
    with output.open(encoding="utf-8", newline="") as fh:
        rows = list(csv.reader(fh))
    assert rows[0][0] == "Name"
    assert [row[0] for row in rows[1:]] == ["Ana", "Ben", "Cy"]
    assert rows[1][2] == "vip"


def test_export_requires_output(tmp_path):
    customers_path, orders_path = write_inputs(tmp_path)
    with pytest.raises(SystemExit):
        export_customers_cli([str(customers_path), str(orders_path)])
