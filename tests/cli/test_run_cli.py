"""Tests for the ``bulkrun`` CLI commands."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from bulkrun import __version__
from bulkrun.cli import app
from bulkrun.store.records import SqliteRecordStore
from bulkrun.store.sqlite_conn import SqliteConnection

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("DATABASE", "CHUNK_SIZE", "QUEUE_NAME", "QUERY_ENGINE", "LOG_LEVEL", "JSON_LOGS"):
        monkeypatch.delenv(f"BULKRUN_{key}", raising=False)


def invoke(db_path, *args, input: str | None = None):
    return runner.invoke(app, [*args, "--database", str(db_path)], input=input)


def statuses(db_path, ids) -> list:
    conn = SqliteConnection(db_path)
    try:
        records = SqliteRecordStore(conn).load_records("node", ids)
        return [r.fields["status"] for r in records.values()]
    finally:
        conn.close()


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"bulkrun {__version__}" in result.output

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("run", "worker", "queue", "callbacks"):
            assert command in result.output


class TestRunInline:
    def test_yes_flag(self, db_path):
        result = invoke(db_path, "run", "node", "unpublish", "--ids", "12,56", "--yes")
        assert result.exit_code == 0, result.output
        assert "success_count: 2" in result.output
        assert statuses(db_path, [12, 56]) == [0, 0]

    def test_prompt_accepted(self, db_path):
        result = invoke(db_path, "run", "node", "unpublish", "--ids", "12", input="y\n")
        assert result.exit_code == 0, result.output
        assert "About to process" in result.output
        assert statuses(db_path, [12]) == [0]

    def test_prompt_declined(self, db_path):
        result = invoke(db_path, "run", "node", "unpublish", "--ids", "12", input="n\n")
        assert result.exit_code == 1
        assert "DECLINED" in result.output
        assert statuses(db_path, [12]) == [1]

    def test_no_answer_counts_as_decline(self, db_path):
        result = invoke(db_path, "run", "node", "unpublish", "--ids", "12")
        assert result.exit_code == 1
        assert statuses(db_path, [12]) == [1]

    def test_filters(self, db_path):
        result = invoke(
            db_path,
            "run", "node", "unpublish",
            "--bundles", "article",
            "--fields", "meta.lang|=|en",
            "--size", "1",
            "--yes",
        )
        assert result.exit_code == 0, result.output
        assert statuses(db_path, [12, 7, 90]) == [0, 0, 1]

    def test_fourth_field_part_is_the_query_operator(self, db_path):
        result = invoke(db_path, "run", "node", "noop", "--fields", "status|=|1|<>", "--yes", "--json")
        assert result.exit_code == 0, result.output
        assert '"success_count": 1' in result.output

    def test_record_failures_still_exit_zero(self, db_path):
        result = invoke(db_path, "run", "node", "fail", "--ids", "12,56", "--yes")
        assert result.exit_code == 0
        assert "error_count: 2" in result.output

    def test_json_output(self, db_path):
        result = invoke(db_path, "run", "node", "noop", "--ids", "12,56", "--yes", "--json")
        assert result.exit_code == 0
        assert '"success_count": 2' in result.output
        assert '"state": "completed"' in result.output


class TestRunSetupErrors:
    @pytest.mark.parametrize(
        ("args", "code"),
        [
            (["run", "nod", "save", "--yes"], "INVALID_TYPE"),
            (["run", "node", "save", "--bundles", "blog", "--yes"], "INVALID_BUNDLE"),
            (["run", "node", "save", "--efq-class", "Nope", "--yes"], "INVALID_QUERY_ENGINE"),
            (["run", "node", "save", "--fields", "status|=|42", "--yes"], "EMPTY_SELECTION"),
            (["run", "node", "save", "--fields", "status|=", "--yes"], "INVALID_FIELD_CONDITION"),
        ],
    )
    def test_exit_one_with_code(self, db_path, args, code):
        result = invoke(db_path, *args)
        assert result.exit_code == 1
        assert f"Error ({code})" in result.output

    def test_size_must_be_positive(self, db_path):
        result = invoke(db_path, "run", "node", "save", "--size", "0", "--yes")
        assert result.exit_code == 2


class TestQueueMode:
    def test_enqueue_status_and_drain(self, db_path):
        result = invoke(db_path, "run", "node", "unpublish", "--bundles", "article", "--queue")
        assert result.exit_code == 0, result.output
        assert "enqueued: 3" in result.output
        assert "About to process" not in result.output
        assert statuses(db_path, [12, 7, 90]) == [1, 0, 1]

        status = invoke(db_path, "queue", "status", "--json")
        assert '"items": 3' in status.output

        drained = invoke(db_path, "worker", "drain")
        assert drained.exit_code == 0, drained.output
        assert "success_count: 3" in drained.output
        assert statuses(db_path, [12, 7, 90]) == [0, 0, 0]

    def test_drain_limit(self, db_path):
        invoke(db_path, "run", "node", "noop", "--ids", "12,56", "--queue")
        result = invoke(db_path, "worker", "drain", "--limit", "1", "--json")
        assert '"success_count": 1' in result.output
        assert '"items": 1' in invoke(db_path, "queue", "status", "--json").output


class TestCallbacksCommand:
    def test_lists_builtins(self, db_path):
        result = invoke(db_path, "callbacks")
        assert result.exit_code == 0
        for name in ("noop", "save", "publish", "unpublish"):
            assert name in result.output
