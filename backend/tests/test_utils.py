import pytest
import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import utils


def test_read_csv_norm_normalises_headers(tmp_path):
    fp = tmp_path / "pool.csv"
    fp.write_text(" ID ,Name\n p1 , Alice \n", encoding="utf-8")
    rows = utils.read_csv_norm(str(fp))
    assert rows == [{"id": "p1", "name": "Alice"}]


def test_read_csv_norm_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        utils.read_csv_norm(str(tmp_path / "missing.csv"))
    empty = tmp_path / "empty.csv"
    empty.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        utils.read_csv_norm(str(empty))


def test_get_any_skips_blank_values():
    row = {"full_name": "", "name": "Bob"}
    assert utils.get_any(row, ["full_name", "name"]) == "Bob"
    assert utils.get_any(row, ["missing"], "dflt") == "dflt"
    assert utils.get_any(None, ["x"], 1) == 1


def test_split_multi():
    assert utils.split_multi("Research; Design") == ["Research", "Design"]
    assert utils.split_multi("Research, Design") == ["Research", "Design"]
    assert utils.split_multi("Product/Tech") == ["Product/Tech"]
    assert utils.split_multi(["a", "b"]) == ["a", "b"]
    assert utils.split_multi("") == []
    assert utils.split_multi(None) == []


def test_percentage():
    assert utils.percentage(1, 3) == 33.33
    assert utils.percentage(5, 0) == 0.0
