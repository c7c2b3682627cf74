"""Tests for the command line entry point."""

from dep.modules.cli import build_argparser, main


def write_specs(tmp_path, body):
    path = tmp_path / "packages.yaml"
    path.write_text(body)
    return str(path)


def test_list_renders_report(tmp_path, capsys):
    specs = write_specs(tmp_path, "packages:\n  - x/a\n  - id: x/b\n    requires: x/a\n")
    base = tmp_path / "packages"
    (base / "a").mkdir(parents=True)

    code = main(["--no-color", "--specs", specs, "--base-dir", str(base), "list"])

    out = capsys.readouterr().out
    assert code == 0
    assert "x/a" in out and "x/b" in out
    assert "*not installed" in out
    assert "Dependency graph" in out


def test_ls_alias(tmp_path):
    specs = write_specs(tmp_path, "- x/a\n")
    assert main(["--quiet", "--specs", specs, "--base-dir", str(tmp_path / "p"), "ls"]) == 0


def test_cycle_is_reported_with_exit_code(tmp_path, capsys):
    specs = write_specs(tmp_path, "packages:\n"
                                  "  - {id: x/a, requires: x/b}\n"
                                  "  - {id: x/b, requires: x/a}\n")
    code = main(["--no-color", "--specs", specs, "--base-dir", str(tmp_path / "p"), "list"])
    assert code == 1
    assert "circular dependency" in capsys.readouterr().out


def test_missing_spec_file(tmp_path, capsys):
    code = main(["--no-color", "--specs", str(tmp_path / "nope.yaml"), "reload"])
    assert code == 1
    assert "not found" in capsys.readouterr().out


def test_clean_command_removes_stale_entries(tmp_path, capsys):
    specs = write_specs(tmp_path, "- x/a\n")
    base = tmp_path / "packages"
    (base / "a").mkdir(parents=True)
    (base / "old").mkdir()

    code = main(["--no-color", "--specs", specs, "--base-dir", str(base), "clean"])

    assert code == 0
    assert "deleted old" in capsys.readouterr().out
    assert (base / "a").is_dir() and not (base / "old").exists()


def test_log_prints_log_file(capsys):
    assert main(["--no-color", "log"]) == 0
    assert capsys.readouterr().out.strip().endswith(".log")


def test_specs_and_module_are_exclusive(capsys):
    parser = build_argparser()
    try:
        parser.parse_args(["--specs", "a.yaml", "--module", "b", "list"])
    except SystemExit as e:
        assert e.code == 2
    else:
        raise AssertionError("expected argparse to reject --specs with --module")
