"""Tests for the restactions CLI commands."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from restactions.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    """A per-test SQLite database so records outlive each command."""
    for name in ("RESTACTIONS_DATABASE_URL", "DATABASE_URL", "RESTACTIONS_DB_PATH"):
        monkeypatch.delenv(name, raising=False)
    return f"sqlite:///{tmp_path / 'cli.db'}"


def invoke(runner, db_url, *args):
    return runner.invoke(cli, ["--database-url", db_url, *args])


def create(runner, db_url, body):
    result = invoke(runner, db_url, "create", "guardians", json.dumps(body))
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


class TestRecordCommands:
    def test_create_and_show(self, runner, db_url):
        created = create(runner, db_url, {"name": "Jane"})

        result = invoke(runner, db_url, "show", "guardians", created["_id"])

        assert result.exit_code == 0
        assert json.loads(result.output)["name"] == "Jane"

    def test_list(self, runner, db_url):
        for n in range(3):
            create(runner, db_url, {"name": f"g{n}", "n": n})

        result = invoke(
            runner, db_url, "list", "guardians", "--limit", "2", "--sort=-n"
        )

        body = json.loads(result.output)
        assert [g["n"] for g in body["data"]] == [2, 1]
        assert body["total"] == 3
        assert body["pages"] == 2

    def test_list_search_and_filter(self, runner, db_url):
        create(runner, db_url, {"name": "Jane", "team": "a"})
        create(runner, db_url, {"name": "John", "team": "a"})

        result = invoke(
            runner, db_url, "list", "guardians",
            "--q", "jan", "--search-in", "name", "--filter", '{"team": "a"}',
        )

        assert [g["name"] for g in json.loads(result.output)["data"]] == ["Jane"]

    def test_update_patch_and_replace(self, runner, db_url):
        created = create(runner, db_url, {"name": "Jane"})

        patched = invoke(runner, db_url, "update", "guardians", created["_id"], '{"age": 3}')
        replaced = invoke(
            runner, db_url, "update", "guardians", created["_id"], '{"age": 4}', "--replace"
        )

        assert json.loads(patched.output)["age"] == 3
        assert json.loads(replaced.output)["age"] == 4

    def test_soft_and_hard_delete(self, runner, db_url):
        created = create(runner, db_url, {"name": "Jane"})

        soft = invoke(runner, db_url, "delete", "guardians", created["_id"], "--soft")
        assert json.loads(soft.output)["deletedAt"]
        assert invoke(runner, db_url, "show", "guardians", created["_id"]).exit_code == 0

        hard = invoke(runner, db_url, "delete", "guardians", created["_id"])
        assert hard.exit_code == 0
        assert invoke(runner, db_url, "show", "guardians", created["_id"]).exit_code == 1


class TestErrors:
    def test_not_found(self, runner, db_url):
        result = invoke(runner, db_url, "delete", "guardians", "nonexistent-id")
        assert result.exit_code == 1
        assert "Error (400):" in result.output

    def test_invalid_json(self, runner, db_url):
        result = invoke(runner, db_url, "create", "guardians", "{nope")
        assert result.exit_code == 1
        assert "BODY is not valid JSON" in result.output

    def test_unsupported_database_url(self, runner):
        result = runner.invoke(cli, ["--database-url", "redis://x", "list", "guardians"])
        assert result.exit_code == 1
        assert "Unsupported database URL scheme" in result.output

    def test_memory_store_by_default(self, runner, db_url):
        result = runner.invoke(cli, ["list", "guardians"])
        assert result.exit_code == 0
        assert json.loads(result.output)["total"] == 0


class TestServe:
    def test_serve_runs_uvicorn(self, runner, db_url):
        with patch("restactions.cli.serve_cmd.uvicorn.run") as run:
            result = invoke(
                runner, db_url, "--log-level", "info", "serve", "guardians", "wards",
                "--port", "9000",
            )

        assert result.exit_code == 0, result.output
        app = run.call_args.args[0]
        paths = set(app.openapi()["paths"])
        assert {"/guardians", "/wards/{id}"} <= paths
        assert run.call_args.kwargs == {"host": "127.0.0.1", "port": 9000, "log_level": "info"}

    def test_serve_requires_collections(self, runner):
        result = runner.invoke(cli, ["serve"])
        assert result.exit_code != 0
