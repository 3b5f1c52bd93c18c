import json

import pytest

from sales_collector.common.files import atomic_write_json


def test_atomic_write_json_replaces_file(tmp_path):
    target = tmp_path / "out" / "data.json"

    atomic_write_json(target, {"coletas": []})
    atomic_write_json(target, {"coletas": [1]})

    assert json.loads(target.read_text(encoding="utf-8")) == {"coletas": [1]}
    assert list(target.parent.iterdir()) == [target]


def test_atomic_write_json_serialisation_failure_keeps_old_file_and_no_temp(tmp_path):
    target = tmp_path / "data.json"
    target.write_text('{"coletas": []}', encoding="utf-8")

    with pytest.raises(TypeError):
        atomic_write_json(target, {"coletas": [object()]})

    assert target.read_text(encoding="utf-8") == '{"coletas": []}'
    assert list(tmp_path.iterdir()) == [target]
