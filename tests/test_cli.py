"""Tests for the ``python -m sqlhub`` entrypoint."""

from __future__ import annotations

from pathlib import Path

import pytest

from sqlhub import manager as manager_module
from sqlhub.__main__ import main


@pytest.fixture(autouse=True)
def _restore_manager():
    previous = manager_module.set_manager(None)
    yield
    manager_module.set_manager(previous)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    database = tmp_path / "cli.db"
    path.write_text(
        f"""
[[connections]]
id = "lite"
name = "Local file"
database_type = "sqlite"
database = "{database.as_posix()}"

[[connections]]
id = "pg"
name = "Warehouse"
database_type = "postgresql"
host = "db.internal"
port = 5432
database = "sales"
"""
    )
    return path


def _write(path: Path, content: str) -> Path:
    path.write_text(content)
    return path


def _seed(config_file: Path, tmp_path: Path) -> None:
    script = _write(
        tmp_path / "seed.sql",
        "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT);\nINSERT INTO users VALUES (1, 'a'), (2, NULL);\n",
    )
    assert main(["--config", str(config_file), "exec", "lite", str(script)]) == 0


def test_lists_connections(config_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--config", str(config_file), "connections"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("lite\tLocal file\tsqlite\t")
    assert lines[1] == "pg\tWarehouse\tpostgresql\tdb.internal:5432/sales"


def test_exec_prints_each_statement(config_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _seed(config_file, tmp_path)
    output = capsys.readouterr().out
    assert "-- [1/2] CREATE TABLE users" in output
    assert "Inserted 2 row(s)" in output

    query = _write(tmp_path / "query.sql", "SELECT id, name FROM users ORDER BY id")
    assert main(["--config", str(config_file), "exec", "Local file", str(query)]) == 0

    output = capsys.readouterr().out
    assert "id\tname" in output
    assert "2\tNULL" in output
    assert "(2 row(s)," in output


def test_exec_returns_one_on_error(config_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    script = _write(tmp_path / "broken.sql", "SELECT * FROM nowhere; SELECT 1")

    assert main(["--config", str(config_file), "exec", "lite", str(script)]) == 1

    output = capsys.readouterr().out
    assert "ERROR:" in output
    assert "[2/2]" not in output


def test_unknown_connection(config_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    script = _write(tmp_path / "one.sql", "SELECT 1")

    assert main(["--config", str(config_file), "exec", "nope", str(script)]) == 2
    assert "Unknown connection 'nope'" in capsys.readouterr().err


def test_export_csv(config_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _seed(config_file, tmp_path)
    capsys.readouterr()

    code = main(["--config", str(config_file), "export", "lite", "--table", "users", "--format", "csv"])

    assert code == 0
    assert capsys.readouterr().out.startswith("id,name\n1,a\n2,\n")


def test_export_to_file(config_file: Path, tmp_path: Path) -> None:
    _seed(config_file, tmp_path)
    target = tmp_path / "users.sql"

    code = main(
        ["--config", str(config_file), "export", "lite", "--table", "users", "--no-schema", "--output", str(target)]
    )

    assert code == 0
    assert "INSERT INTO" in target.read_text()


def test_import_csv(config_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _seed(config_file, tmp_path)
    source = _write(tmp_path / "more.csv", "id,name\n3,c\n4,d\n")
    capsys.readouterr()

    code = main(["--config", str(config_file), "import", "lite", str(source), "--table", "users"])

    assert code == 0
    assert "Imported 2 row(s)" in capsys.readouterr().out


def test_import_needs_a_known_format(config_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = _write(tmp_path / "rows.txt", "id\n1\n")

    assert main(["--config", str(config_file), "import", "lite", str(source), "--table", "users"]) == 2
    assert "pass --format" in capsys.readouterr().err
