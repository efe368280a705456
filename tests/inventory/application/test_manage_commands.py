import manage
import pytest


@pytest.fixture
def database(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'shopstream.db'}")
    monkeypatch.setenv("LOW_STOCK_THRESHOLD", "5")
    manage.setup_database()


def test_set_stock_uses_default_threshold(database, capsys):
    manage.set_stock("prod-001", 25)

    assert capsys.readouterr().out.strip().endswith("prod-001: 25 available (low stock at 5)")


def test_low_stock_report(database, capsys):
    manage.set_stock("prod-001", 25)
    manage.set_stock("prod-002", 3)
    manage.set_stock("prod-003", 1, threshold=2)
    capsys.readouterr()

    manage.show_low_stock()

    lines = capsys.readouterr().out.splitlines()
    assert [line.split()[0] for line in lines] == ["prod-003", "prod-002"]


def test_low_stock_report_when_nothing_is_low(database, capsys):
    manage.set_stock("prod-001", 25)
    capsys.readouterr()

    manage.show_low_stock()

    assert "No products" in capsys.readouterr().out
