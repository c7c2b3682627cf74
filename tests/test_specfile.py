"""Tests for loading spec lists from YAML files and Python modules."""

import pytest

from dep.modules import specfile
from dep.modules.graph import SpecError


def test_load_yaml(tmp_path):
    path = tmp_path / "packages.yaml"
    path.write_text(
        "base_dir: /tmp/dep-packages\n"
        "sync: always\n"
        "packages:\n"
        "  - x/a\n"
        "  - id: x/b\n"
        "    requires: [x/a]\n"
        "    config: make\n"
    )
    data = specfile.load_yaml(str(path))
    options, specs = specfile.split_options(data)
    assert options == {"base_dir": "/tmp/dep-packages", "sync": "always"}
    assert specs["packages"][1] == {"id": "x/b", "requires": ["x/a"], "config": "make"}


def test_plain_list_is_normalized(tmp_path):
    path = tmp_path / "packages.yaml"
    path.write_text("- x/a\n- x/b\n")
    assert specfile.load_yaml(str(path)) == {"packages": ["x/a", "x/b"]}


def test_empty_file(tmp_path):
    path = tmp_path / "packages.yaml"
    path.write_text("")
    assert specfile.load_yaml(str(path)) == {}


def test_missing_file(tmp_path):
    with pytest.raises(SpecError, match="not found"):
        specfile.load_yaml(str(tmp_path / "nope.yaml"))


def test_invalid_yaml(tmp_path):
    path = tmp_path / "packages.yaml"
    path.write_text("packages: [x/a\n")
    with pytest.raises(SpecError, match="invalid YAML"):
        specfile.load_yaml(str(path))


def test_invalid_sync_option():
    with pytest.raises(SpecError, match="sync must be"):
        specfile.normalize({"sync": "sometimes"}, "test")


def test_load_module(tmp_path, monkeypatch):
    (tmp_path / "specfile_user_packages.py").write_text(
        "def configure():\n"
        "    pass\n"
        "\n"
        "specs = {'packages': [{'id': 'x/a', 'config': configure}]}\n"
    )
    monkeypatch.syspath_prepend(str(tmp_path))
    data = specfile.load_module("specfile_user_packages")
    assert callable(data["packages"][0]["config"])


def test_module_without_specs(tmp_path, monkeypatch):
    (tmp_path / "specfile_empty_module.py").write_text("x = 1\n")
    monkeypatch.syspath_prepend(str(tmp_path))
    with pytest.raises(SpecError, match="does not define"):
        specfile.load_module("specfile_empty_module")
