import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from sales_collector import __main__ as cli
from sales_collector.config import Config
from sales_collector.dashboard.history_store import HistoryStore
from sales_collector.dashboard.models import CollectionResult, StoreSalesRow


@pytest.fixture()
def config(tmp_path, monkeypatch):
    cfg = Config(history_file=tmp_path / "historico.json", session_file=tmp_path / "cookies.json")
    monkeypatch.setattr(cli.Config, "load_from_env", lambda environ=None: cfg)
    return cfg


def test_parser_accepts_collect_run_id():
    parsed = cli._build_parser().parse_args(["collect", "--run-id", "manual-1"])

    assert parsed.command == "collect"
    assert parsed.run_id == "manual-1"


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        cli._build_parser().parse_args([])


def test_latest_without_history_exits_with_failure(config, capsys):
    assert cli.main(["latest"]) == 1

    assert json.loads(capsys.readouterr().out)["status"] == "falha"


def test_history_prints_window(config, capsys):
    store = HistoryStore(config.history_file)
    store.append(
        CollectionResult(
            period="14/03/2024 ~ 14/03/2024",
            rows=(StoreSalesRow(store="Loja", valid_orders=2, valid_sales_value=Decimal("40")),),
        )
    )

    assert cli.main(["history", "--days", "abc"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "sucesso"
    assert payload["dias"] == 7
    assert payload["coletas"] == 1
    assert payload["media"] == pytest.approx(40.0)
