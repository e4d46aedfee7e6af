"""
tests/unit/test_cli.py
The livescene command: check and tree.
"""
import logging

import pytest

from livescene.base import config as config_module
from livescene.base.config import set_config
from livescene.cli.scene import main


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    saved = config_module._config
    monkeypatch.setenv("LIVESCENE_DOCUMENT_ROOT", str(tmp_path))
    monkeypatch.delenv("LIVESCENE_LOG_FILE", raising=False)
    set_config(None)
    yield
    set_config(saved)
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)
    logging.getLogger().setLevel(logging.WARNING)


def test_check_valid_document(tmp_path, capsys):
    path = tmp_path / "ui.html"
    path.write_text('<Entity id="title"><Entity Button>Start</Entity></Entity>', encoding="utf-8")
    assert main(["check", str(path)]) == 0
    out = capsys.readouterr().out
    assert "✓" in out
    assert "2 node(s)" in out


def test_check_invalid_document(tmp_path, capsys):
    path = tmp_path / "ui.html"
    path.write_text("<Entity><Row></Row></Entity>", encoding="utf-8")
    assert main(["check", str(path)]) == 1
    err = capsys.readouterr().err
    assert "✗" in err
    assert "Row" in err


def test_check_unreadable_document(tmp_path, capsys):
    assert main(["check", str(tmp_path / "missing.html")]) == 1
    assert "✗" in capsys.readouterr().err


def test_tree_lists_facets_names_and_text(tmp_path, capsys):
    path = tmp_path / "ui.html"
    path.write_text(
        '<Entity id="title"><Entity Button XFunction="start">Start</Entity></Entity>',
        encoding="utf-8",
    )
    assert main(["--debug", "tree", str(path)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].endswith("#title")
    assert "Handle<SceneDocument>" in lines[0]
    assert lines[1].startswith("  [")
    assert "Interaction, Text, XFunction" in lines[1]
    assert lines[1].endswith("'Start'")


def test_subcommand_required():
    with pytest.raises(SystemExit):
        main([])
