import json
from click.testing import CliRunner
from embedded_record_log.cli import cli

def run(db_path, *args, text_fields=("bio",)):
    opts = ["--db", str(db_path)]
    for f in text_fields:
        opts += ["-t", f]
    return CliRunner().invoke(cli, opts + list(args))

def test_insert_find_delete(tmp_path):
    db_path = tmp_path / "people.log"
    db_path.write_text("", encoding="utf-8")
    for rec in ({"id": 1, "name": "Ann", "bio": "likes Go"}, {"id": 2, "name": "Ben", "bio": "likes Rust"}):
        res = run(db_path, "insert", json.dumps(rec))
        assert res.exit_code == 0, res.output

    res = run(db_path, "find", '{"$text": "rust"}', "--json")
    assert res.exit_code == 0, res.output
    assert [json.loads(l) for l in res.output.splitlines()] == [{"id": 2, "name": "Ben", "bio": "likes Rust"}]

    res = run(db_path, "find", "--sort", '{"id": -1}', "--projection", '{"name": 1}', "--json")
    assert res.output.splitlines() == ['{"name":"Ben"}', '{"name":"Ann"}']

    res = run(db_path, "delete", '{"id": {"$eq": 1}}')
    assert res.exit_code == 0
    assert "deleted 1" in res.output

    res = run(db_path, "find")
    assert res.exit_code == 0
    assert "Ben" in res.output
    assert "Ann" not in res.output

def test_db_path_from_env(tmp_path):
    db_path = tmp_path / "env.log"
    db_path.write_text('E{"id":7}', encoding="utf-8")
    res = CliRunner().invoke(cli, ["find", "--json"], env={"RECORD_LOG_PATH": str(db_path)})
    assert res.exit_code == 0, res.output
    assert res.output.strip() == '{"id":7}'

def test_empty_result(tmp_path):
    db_path = tmp_path / "empty.log"
    db_path.write_text("", encoding="utf-8")
    res = run(db_path, "find")
    assert res.exit_code == 0
    assert "no records" in res.output

def test_bad_query_is_reported(tmp_path):
    db_path = tmp_path / "bad.log"
    db_path.write_text("", encoding="utf-8")
    res = run(db_path, "find", '{"id": {"$ne": 1}}')
    assert res.exit_code != 0
    assert "Unknown key-based filter" in res.output

    res = run(db_path, "find", "{not json")
    assert res.exit_code == 2

def test_subcommand_help_without_db():
    res = CliRunner().invoke(cli, ["find", "--help"], env={"RECORD_LOG_PATH": None})
    assert res.exit_code == 0
    assert "QUERY" in res.output

def test_missing_db_option():
    res = CliRunner().invoke(cli, ["find"], env={"RECORD_LOG_PATH": None})
    assert res.exit_code == 2
    assert "--db" in res.output

def test_io_errors_are_reported(tmp_path):
    res = run(tmp_path / "missing.log", "find")
    assert res.exit_code == 1
    assert "No such file" in res.output
    assert not isinstance(res.exception, FileNotFoundError)

    res = run(tmp_path / "no_dir" / "x.log", "insert", '{"id": 1}')
    assert res.exit_code == 1
    assert "No such file" in res.output
