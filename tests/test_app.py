import json
from datetime import date

import pytest

from app import main


@pytest.fixture(autouse=True)
def isolated_db(tmp_path, monkeypatch):
    db_path = tmp_path / "billing.db"
    monkeypatch.setenv("JEWELLERY_DB_PATH", str(db_path))
    return db_path


def test_init_db_creates_database(isolated_db, capsys):
    assert main(["init-db"]) == 0
    assert isolated_db.exists()
    assert "initialised" in capsys.readouterr().out


def test_set_rate_rejects_unknown_category(capsys):
    assert main(["set-rate", "CAT-NOPE", "100"]) == 1
    assert "Unknown category" in capsys.readouterr().err


def test_price_uses_the_days_manual_rate(capsys):
    assert main(["set-rate", "cat-gold22k", "6000"]) == 0
    capsys.readouterr()

    exit_code = main(
        [
            "price",
            "--category", "CAT-GOLD22K",
            "--net-weight", "10",
            "--making-type", "percentage",
            "--making-value", "10",
            "--wastage-type", "per_gram",
            "--wastage-value", "50",
        ]
    )

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["gst_rate"] == 3.0
    assert payload["price_point"]["effective_date"] == date.today().isoformat()
    assert payload["price_point"]["source"] == "manual"
    assert payload["breakdown"]["final_price"] == 68495.0


def test_price_rejects_per_piece_making_charge(capsys):
    main(["set-rate", "CAT-GOLD22K", "6000"])
    capsys.readouterr()

    exit_code = main(
        ["price", "--category", "CAT-GOLD22K", "--net-weight", "5", "--making-type", "per_piece", "--making-value", "100"]
    )

    assert exit_code == 2
    assert "Invalid making charge" in capsys.readouterr().err


def test_invoice_renders_text(tmp_path, capsys):
    order_file = tmp_path / "order.json"
    order_file.write_text(
        json.dumps(
            {
                "invoiceNumber": "INV-20240309-042",
                "orderNumber": "PO-20240309-001",
                "customer": {"name": "Asha Rao", "phone": "9123456780"},
                "items": [
                    {
                        "productName": "Chain",
                        "purity": "22kt",
                        "quantity": 1,
                        "goldRatePerGram": 6000,
                        "netWeight": 10,
                        "grossWeight": 12,
                        "labourRatePerGram": 600,
                        "gstPercentage": 3,
                    }
                ],
            }
        ),
        encoding="utf-8",
    )

    assert main(["invoice", str(order_file), "--format", "text"]) == 0
    out = capsys.readouterr().out
    assert "TAX INVOICE" in out
    assert "INV-20240309-042" in out


def test_invoice_reports_validation_errors(tmp_path, capsys):
    order_file = tmp_path / "order.json"
    order_file.write_text(json.dumps({"items": []}), encoding="utf-8")

    assert main(["invoice", str(order_file)]) == 1
    assert "at least one item" in capsys.readouterr().err
