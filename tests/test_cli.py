import json

import pytest

from bukedlist.scripts.backup import main


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


def test_seed_creates_defaults(db_url, capsys):
    assert main(["--db", db_url, "seed"]) == 0
    assert "categories=4 items=0" in capsys.readouterr().out


def test_export_to_stdout(db_url, capsys):
    assert main(["--db", db_url, "export"]) == 0
    doc = json.loads(capsys.readouterr().out)
    assert doc["version"] == "1.0"
    assert len(doc["categories"]) == 4


def test_export_import_files(db_url, tmp_path, capsys):
    target = tmp_path / "backup.json"
    assert main(["--db", db_url, "export", str(target)]) == 0
    doc = json.loads(target.read_text(encoding="utf-8"))
    doc["wishlistItems"].append({"id": "i1", "title": "Dune", "categoryId": "books", "imageBase64": "AQID"})
    target.write_text(json.dumps(doc), encoding="utf-8")

    assert main(["--db", db_url, "import", str(target)]) == 0
    assert "items=1" in capsys.readouterr().out


def test_import_bad_file_fails_cleanly(db_url, tmp_path, capsys):
    bad = tmp_path / "bad.json"
    bad.write_text("not json", encoding="utf-8")
    assert main(["--db", db_url, "import", str(bad)]) == 1
    assert "error" in capsys.readouterr().err


def test_import_missing_file(db_url, tmp_path):
    assert main(["--db", db_url, "import", str(tmp_path / "missing.json")]) == 1


def test_clear_requires_confirmation(db_url, monkeypatch, capsys):
    monkeypatch.setattr("builtins.input", lambda prompt="": "n")
    assert main(["--db", db_url, "clear"]) == 1
    assert main(["--db", db_url, "clear", "--yes"]) == 0
    assert "reset to defaults" in capsys.readouterr().out
