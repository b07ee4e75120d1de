"""CLI tests - CLI-001 through CLI-004.

Each command is driven through main() inside a temporary project directory.
"""

import json

import pytest

from zen.cli import main


def run_cli(*argv):
    with pytest.raises(SystemExit) as exc:
        main(list(argv))
    return exc.value.code


@pytest.fixture
def project(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestCLI001:
    """CLI-001: zen run prints the AST or the error."""

    def test_run_default_file(self, project, capsys):
        (project / "main.edn").write_text("(def foo 5)")
        assert run_cli("run") == 0
        out = json.loads(capsys.readouterr().out)
        assert out["filename"] == "main.edn"
        assert out["expressions"][0]["region"] == [1, 1, 1, 11]

    def test_run_explicit_file(self, project, capsys):
        (project / "other.edn").write_text("42")
        assert run_cli("run", "other.edn", "--pretty") == 0
        out = json.loads(capsys.readouterr().out)
        assert out["expressions"] == [{"type": "Number", "region": [1, 1, 1, 2], "value": 42.0}]

    def test_run_missing_file(self, project, capsys):
        assert run_cli("run") == 1
        assert "File not found" in capsys.readouterr().out

    def test_run_parse_error(self, project, capsys):
        (project / "main.edn").write_text("(foo")
        assert run_cli("run") == 1
        err = json.loads(capsys.readouterr().out)["error"]
        assert err["kind"] == "bad_end_of_input"
        assert err["location"]["line"] == 1
        assert err["location"]["column"] == 5


class TestCLI002:
    """CLI-002: zen compile writes the module only on success."""

    def test_compile_default_output(self, project, capsys):
        (project / "main.edn").write_text("(defn answer () 42)")
        assert run_cli("compile") == 0
        data = (project / "program.wasm").read_bytes()
        assert data.startswith(b"\x00asm\x01\x00\x00\x00")
        out = json.loads(capsys.readouterr().out)
        assert out["status"] == "compiled"
        assert out["exports"] == ["answer"]

    def test_compile_custom_output(self, project):
        (project / "src.edn").write_text("(defn f () (+ 1 2))")
        assert run_cli("compile", "src.edn", "-o", "f.wasm") == 0
        assert (project / "f.wasm").exists()
        assert not (project / "program.wasm").exists()

    def test_compile_failure_writes_nothing(self, project, capsys):
        (project / "main.edn").write_text("(defn f () (+))")
        assert run_cli("compile") == 1
        assert not (project / "program.wasm").exists()
        err = json.loads(capsys.readouterr().out)["error"]
        assert err["kind"] == "unsupported_form"

    def test_compile_parse_failure_writes_nothing(self, project):
        (project / "main.edn").write_text("(defn f () @)")
        assert run_cli("compile") == 1
        assert not (project / "program.wasm").exists()

    def test_config_sets_output(self, project):
        (project / ".zenrc.json").write_text(json.dumps({"output": "out.wasm", "source": "app.edn"}))
        (project / "app.edn").write_text("(defn f () 1)")
        assert run_cli("compile") == 0
        assert (project / "out.wasm").exists()


class TestCLI003:
    """CLI-003: zen check and zen ir."""

    def test_check_passes(self, project, capsys):
        (project / "main.edn").write_text("(defn f () (> 2 1))")
        assert run_cli("check") == 0
        assert json.loads(capsys.readouterr().out)["verified"] is True

    def test_check_reports_empty_body(self, project, capsys):
        (project / "main.edn").write_text("(defn f (x) x)")
        assert run_cli("check") == 1
        out = json.loads(capsys.readouterr().out)
        assert out["issues"][0]["kind"] == "result_mismatch"

    def test_ir(self, project, capsys):
        (project / "main.edn").write_text("(defn answer () 42)")
        assert run_cli("ir") == 0
        assert "define double" in capsys.readouterr().out

    def test_ir_reports_unbound_parameter(self, project, capsys):
        (project / "main.edn").write_text("(defn f (x) (+ x 1))")
        assert run_cli("ir") == 1
        err = json.loads(capsys.readouterr().out)["error"]
        assert "Stack underflow" in err
        assert "f64.add" in err


class TestCLI004:
    """CLI-004: Usage."""

    def test_no_command(self, project, capsys):
        assert run_cli() == 1

    def test_version(self, capsys):
        assert run_cli("--version") == 0
        assert "zen" in capsys.readouterr().out
