"""Tests for the defense-grader command line."""

import json
from datetime import date

import pytest
import yaml
from click.testing import CliRunner

from defense_grader.tools.scoring_form.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def session_file(tmp_path):
    return tmp_path / "session.json"


def invoke(runner, session_file, *args, **kwargs):
    return runner.invoke(main, ["--session", str(session_file), *args], **kwargs)


def read_session(path):
    return json.loads(path.read_text(encoding="utf-8"))


def fill_everything(runner, session_file, value="4"):
    for rater in ("1", "2", "3"):
        for sheet in ("1", "2"):
            result = invoke(runner, session_file, "fill", rater, sheet, value)
            assert result.exit_code == 0, result.output


class TestEditing:
    """Commands that change the session."""

    def test_score_creates_session_file(self, runner, session_file):
        result = invoke(runner, session_file, "score", "1", "1", "3", "4")
        assert result.exit_code == 0, result.output
        assert "Rater #1: 1/38 items" in result.output

        data = read_session(session_file)
        assert data["raters"][0]["sheet1"][2] == 4
        assert data["raters"][0]["sheet1"][0] == 0

    def test_score_blank_value_clears(self, runner, session_file):
        invoke(runner, session_file, "score", "2", "sheet2", "24", "5")
        result = invoke(runner, session_file, "score", "2", "sheet2", "24", "")
        assert result.exit_code == 0, result.output
        assert read_session(session_file)["raters"][1]["sheet2"][23] == 0

    def test_score_item_out_of_range(self, runner, session_file):
        result = invoke(runner, session_file, "score", "1", "1", "15", "3")
        assert result.exit_code == 1
        assert "out of range" in result.output

    def test_score_rejects_text(self, runner, session_file):
        result = invoke(runner, session_file, "score", "1", "1", "1", "abc")
        assert result.exit_code == 1
        assert "whole number" in result.output

    def test_rater_out_of_range(self, runner, session_file):
        result = invoke(runner, session_file, "score", "4", "1", "1", "3")
        assert result.exit_code == 2

    def test_fill_and_clear(self, runner, session_file):
        result = invoke(runner, session_file, "fill", "3", "sheet2", "5")
        assert result.exit_code == 0, result.output
        assert read_session(session_file)["raters"][2]["sheet2"] == [5] * 24

        result = invoke(runner, session_file, "clear", "3", "2")
        assert result.exit_code == 0, result.output
        assert read_session(session_file)["raters"][2]["sheet2"] == [0] * 24

    def test_student(self, runner, session_file):
        result = invoke(runner, session_file, "student", "--name", "Jane Doe", "--student-id", "S1")
        assert result.exit_code == 0, result.output
        student = read_session(session_file)["student"]
        assert student["name"] == "Jane Doe"
        assert student["studentId"] == "S1"

    def test_student_requires_a_field(self, runner, session_file):
        result = invoke(runner, session_file, "student")
        assert result.exit_code == 2

    def test_reset_with_confirmation(self, runner, session_file):
        invoke(runner, session_file, "fill", "1", "1", "5")
        result = invoke(runner, session_file, "reset", input="y\n")
        assert result.exit_code == 0, result.output
        assert read_session(session_file)["raters"][0]["sheet1"] == [0] * 14

    def test_reset_cancelled(self, runner, session_file):
        invoke(runner, session_file, "fill", "1", "1", "5")
        result = invoke(runner, session_file, "reset", input="n\n")
        assert result.exit_code == 0
        assert "cancelled" in result.output
        assert read_session(session_file)["raters"][0]["sheet1"] == [5] * 14

    def test_session_file_must_be_json(self, runner, tmp_path):
        result = runner.invoke(main, ["--session", str(tmp_path / "session.txt"), "show"])
        assert result.exit_code == 2

    def test_corrupt_session_file(self, runner, session_file):
        session_file.write_text("{oops", encoding="utf-8")
        result = invoke(runner, session_file, "show")
        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_undecodable_session_file(self, runner, session_file):
        session_file.write_bytes(b"\xff\xfe\x00garbage")
        result = invoke(runner, session_file, "show")
        assert result.exit_code == 1
        assert "not UTF-8" in result.output


class TestOutput:
    """Commands that show or export the session."""

    def test_show_incomplete(self, runner, session_file):
        invoke(runner, session_file, "fill", "1", "1", "4")
        result = invoke(runner, session_file, "show")
        assert result.exit_code == 0, result.output
        assert "Rater Comparison" in result.output
        assert "Raters complete: 0/3" in result.output

    def test_show_complete(self, runner, session_file):
        fill_everything(runner, session_file)
        result = invoke(runner, session_file, "show")
        assert result.exit_code == 0, result.output
        assert "80.00%" in result.output
        assert "B+" in result.output

    def test_custom_rater_names_from_config(self, runner, session_file, tmp_path):
        config_path = tmp_path / "override.yaml"
        config_path.write_text(yaml.safe_dump({"raters": {"name_template": "Judge {number}"}}))
        result = runner.invoke(main, ["--config", str(config_path), "--session", str(session_file),
                                      "fill", "2", "1", "3"])
        assert result.exit_code == 0, result.output
        assert "Judge 2" in result.output

    def test_export(self, runner, session_file, tmp_path):
        invoke(runner, session_file, "student", "--name", "Jane", "--department", "CS")
        out_dir = tmp_path / "exports"
        result = invoke(runner, session_file, "export", "--output-dir", str(out_dir))
        assert result.exit_code == 0, result.output

        exported = out_dir / f"Jane-CS-{date.today().isoformat()}.json"
        assert exported.exists()
        assert read_session(exported)["student"]["department"] == "CS"

    def test_import(self, runner, session_file, tmp_path):
        source = tmp_path / "source.json"
        source.write_text(json.dumps({
            "student": {"name": "Imported"},
            "raters": [{"sheet1": [5] * 14, "sheet2": [5] * 24}, {}, {}],
        }), encoding="utf-8")
        result = invoke(runner, session_file, "import", str(source))
        assert result.exit_code == 0, result.output

        data = read_session(session_file)
        assert data["student"]["name"] == "Imported"
        assert data["raters"][0]["sheet2"] == [5] * 24
        assert data["raters"][1]["sheet1"] == [0] * 14

    def test_import_invalid_file(self, runner, session_file, tmp_path):
        source = tmp_path / "bad.json"
        source.write_text('{"raters": []}', encoding="utf-8")
        result = invoke(runner, session_file, "import", str(source))
        assert result.exit_code == 1
        assert "Invalid JSON file" in result.output
        assert not session_file.exists()

    def test_report(self, runner, session_file, tmp_path):
        fill_everything(runner, session_file, "5")
        output = tmp_path / "report.yaml"
        result = invoke(runner, session_file, "report", "--output", str(output))
        assert result.exit_code == 0, result.output

        data = yaml.safe_load(output.read_text(encoding="utf-8"))
        assert data["final"]["letter_grade"] == "A"
        assert data["final"]["percent"] == 100


def test_auto_save_store(runner, tmp_path):
    """Without --session the auto-save directory from the config is used."""
    store_dir = tmp_path / "store"
    config_path = tmp_path / "override.yaml"
    config_path.write_text(yaml.safe_dump({"storage": {"directory": str(store_dir)}}))

    result = runner.invoke(main, ["--config", str(config_path), "score", "1", "1", "1", "5"])
    assert result.exit_code == 0, result.output
    saved = store_dir / "thesisDefenseData.json"
    assert json.loads(saved.read_text(encoding="utf-8"))["raters"][0]["sheet1"][0] == 5

    result = runner.invoke(main, ["--config", str(config_path), "show"])
    assert "Rater #1" in result.output

    result = runner.invoke(main, ["--config", str(config_path), "reset", "--yes"])
    assert result.exit_code == 0, result.output
    assert not saved.exists()
