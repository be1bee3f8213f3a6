"""
Tests for the command entry point.
"""
import sqlite3

from tasksync.__main__ import build_parser, list_commands, main


def test_commands_registered():
    build_parser()
    assert set(list_commands()) == {"server", "cli", "init"}


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "COMMAND" in capsys.readouterr().out


def test_init_creates_schema(temp_dir):
    db_path = f"{temp_dir}/init.db"
    assert main(["init", "--database-path", f"file://{db_path}"]) == 0

    conn = sqlite3.connect(db_path)
    try:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    finally:
        conn.close()
    assert {"tasks", "task_to_tag", "deleted_tasks"} <= tables


def test_init_validate_only_missing_database(temp_dir):
    assert main(["init", "--database-path", f"{temp_dir}/missing.db", "--validate-only"]) == 1


def test_cli_command_passes_arguments(temp_dir, monkeypatch):
    config_path = f"{temp_dir}/config.toml"
    with open(config_path, "w") as f:
        f.write(f'[backend]\nkind = "sqlite"\nuri = "file://{temp_dir}/cli.db"\n')

    monkeypatch.setenv("TASKSYNC_CONFIG_PATH", config_path)

    assert main(["cli", "add", "from", "main"]) == 0
    assert main(["cli", "do", "zzzz"]) == 1
