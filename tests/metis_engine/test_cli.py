"""Tests for the metis-engine command line."""

import json
import logging

import pytest
import yaml

from metis_engine.cli.main import build_parser, main
from metis_engine.utils.logger import reset_logging

ACTION = {
    "forceKey": "f1",
    "nodeKey": "n2",
    "actionKey": "a3",
    "effects": [
        {
            "_id": "e1",
            "name": "Award resources",
            "targetId": "resource-pool",
            "environmentId": "metis",
            "targetEnvironmentVersion": "0.1.0",
            "trigger": "success",
            "order": 1,
            "args": {"modifier": 5, "forceMetadata": {"forceKey": "f1"}},
        },
        {
            "_id": "e2",
            "name": "Announce",
            "targetId": "output",
            "trigger": "execution-initiation",
            "order": 1,
            "args": {"message": "Infiltrating"},
        },
    ],
}


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    reset_logging()
    logging.getLogger("metis_engine").setLevel(logging.NOTSET)


@pytest.fixture
def project(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def action_file(project):
    path = project / "action.json"
    path.write_text(json.dumps(ACTION))
    return path


@pytest.fixture
def session_file(project, session_data):
    path = project / "session.yaml"
    path.write_text(yaml.safe_dump(session_data))
    return path


def run_cli(capsys, project, *argv):
    main(["-p", str(project), *argv])
    return json.loads(capsys.readouterr().out)


class TestParser:
    def test_verb_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_run_requires_session(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["run", "action.json"])


class TestTargets:
    def test_lists_builtin_environment(self, capsys, project):
        result = run_cli(capsys, project, "targets")
        [metis] = result["environments"]
        assert metis["_id"] == "metis"
        assert "resource-pool" in [t["_id"] for t in metis["targets"]]

    def test_single_environment(self, capsys, project):
        result = run_cli(capsys, project, "targets", "--environment", "metis")
        assert result["version"] == "1.0.0"

    def test_unknown_environment(self, capsys, project):
        with pytest.raises(SystemExit) as exc_info:
            main(["-p", str(project), "targets", "-e", "nope"])
        assert exc_info.value.code == 1
        assert "unknown environment" in capsys.readouterr().err


class TestMigrate:
    def test_shows_migrated_args(self, capsys, project, action_file):
        result = run_cli(capsys, project, "migrate", str(action_file))

        first, second = result["effects"]
        assert first["fromVersion"] == "0.1.0"
        assert first["toVersion"] == "1.0.0"
        assert first["applied"] == ["0.2.0"]
        assert first["args"]["amount"] == 5
        assert second["applied"] == []
        # Without --write the file is untouched.
        assert json.loads(action_file.read_text()) == ACTION

    def test_write(self, capsys, project, action_file):
        run_cli(capsys, project, "migrate", str(action_file), "--write")

        saved = json.loads(action_file.read_text())
        assert saved["effects"][0]["targetEnvironmentVersion"] == "1.0.0"
        assert "modifier" not in saved["effects"][0]["args"]
        assert saved["effects"][1]["targetEnvironmentVersion"] == "0.0.0"

    def test_missing_file(self, capsys, project):
        with pytest.raises(SystemExit):
            main(["-p", str(project), "migrate", str(project / "nope.json")])
        assert "action file not found" in capsys.readouterr().err


class TestRun:
    def test_full_lifecycle(self, capsys, project, action_file, session_file):
        result = run_cli(
            capsys, project, "run", str(action_file), "--session", str(session_file), "--seed", "7"
        )

        assert result["succeeded"] is True
        assert [o["effectId"] for o in result["outcomes"]] == ["e2", "e1"]
        friendly = result["session"]["forces"][0]
        assert friendly["resources"] == 15
        assert friendly["output"] == ["Global: Infiltrating"]

    def test_single_trigger(self, capsys, project, action_file, session_file):
        result = run_cli(
            capsys, project, "run", str(action_file), "-s", str(session_file), "--trigger", "immediate"
        )

        assert result["trigger"] == "immediate"
        assert [o["effectId"] for o in result["outcomes"]] == ["e2"]
        assert result["session"]["forces"][0]["resources"] == 10

    def test_persists_when_configured(self, capsys, project, action_file, session_file):
        config_dir = project / ".metis" / "config"
        config_dir.mkdir(parents=True)
        (config_dir / "engine.yaml").write_text("executor:\n  persist_migrations: true\n")

        run_cli(capsys, project, "run", str(action_file), "-s", str(session_file))

        saved = json.loads(action_file.read_text())
        assert saved["effects"][0]["targetEnvironmentVersion"] == "1.0.0"
        assert saved["effects"][0]["args"]["amount"] == 5

    def test_unknown_action(self, capsys, project, session_file):
        path = project / "ghost.json"
        path.write_text(json.dumps({**ACTION, "actionKey": "ghost"}))

        with pytest.raises(SystemExit):
            main(["-p", str(project), "run", str(path), "-s", str(session_file)])
        assert "ghost" in capsys.readouterr().err
