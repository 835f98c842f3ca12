import asyncio
import json

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from typer.testing import CliRunner

from schematic_records import cli, create_schematic_client
from schematic_records.config import PostgresConfig, ServiceConfig, reset_settings

runner = CliRunner()


@pytest.fixture
def make_client(tmp_path, monkeypatch):
    """
    Подменяет фабрику в CLI: вместо PostgreSQL из окружения - файл SQLite,
    чтобы состояние переживало отдельные вызовы команд.
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'records.db'}"

    def _factory():
        return create_schematic_client(
            postgres=PostgresConfig(),
            service=ServiceConfig(prune=60_000, max_iterations=5),
            engine=create_async_engine(url),
        )

    monkeypatch.setattr(cli, "create_schematic_client", _factory)
    return _factory


def invoke(*args: str):
    return runner.invoke(cli.app, ["--log-level", "WARNING", *args])


def seed(make_client, file_name: str):
    async def _seed():
        client = make_client()
        try:
            return await client.register_upload(file_name, uploader="alex")
        finally:
            await client.aclose()
    return asyncio.run(_seed())


def test_init_and_check(make_client):
    result_init = invoke("init")
    assert result_init.exit_code == 0, result_init.output
    assert "Table 'accounting' is ready" in result_init.output

    result_check = invoke("check")
    assert result_check.exit_code == 0, result_check.output
    assert "Database connection: OK" in result_check.output


def test_keys_prints_two_hex_keys(make_client):
    invoke("init")

    result = invoke("keys", "--json")

    assert result.exit_code == 0, result.output
    keys = json.loads(result.stdout)
    assert len(keys["downloadKey"]) == 32
    assert len(keys["deleteKey"]) == 32
    int(keys["downloadKey"], 16)
    int(keys["deleteKey"], 16)


def test_list_show_and_expire(make_client):
    invoke("init")
    record = seed(make_client, "bridge.schem")

    listed = json.loads(invoke("list", "--json").stdout)
    assert [r["fileName"] for r in listed] == ["bridge.schem"]
    assert listed[0]["downloadKey"] == record.download_key
    assert listed[0]["expired"] is None

    shown = json.loads(invoke("show", "--delete-key", record.delete_key, "--json").stdout)
    assert shown[0]["id"] == record.id
    assert shown[0]["uploader"] == "alex"

    result_expire = invoke("expire", str(record.id))
    assert result_expire.exit_code == 0, result_expire.output

    assert json.loads(invoke("list", "--json").stdout) == []
    everything = json.loads(invoke("list", "--all", "--json").stdout)
    assert everything[0]["expired"] is not None


def test_list_renders_table(make_client):
    invoke("init")
    seed(make_client, "mill.schem")

    result = invoke("list")

    assert result.exit_code == 0, result.output
    assert "Schematic records" in result.output


def test_show_unknown_key_fails(make_client):
    invoke("init")

    result = invoke("show", "--download-key", "0" * 32)

    assert result.exit_code == 1
    assert "No data found" in result.output


def test_show_requires_exactly_one_key(make_client):
    result = invoke("show")

    assert result.exit_code != 0


def test_expire_unknown_id_fails(make_client):
    invoke("init")

    result = invoke("expire", "999")

    assert result.exit_code == 1
    assert "no schematic exists" in result.output


def test_prune_once(make_client):
    invoke("init")
    record = seed(make_client, "old.schem")

    nothing = json.loads(invoke("prune", "--json").stdout)
    assert nothing == []

    pruned = json.loads(invoke("prune", "--older-than", "0", "--json").stdout)
    assert [r["id"] for r in pruned] == [record.id]
    assert pruned[0]["expired"] is not None


@pytest.fixture
def default_log_level(monkeypatch):
    """LOG_LEVEL берется из окружения, как при обычном запуске без --log-level."""
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    reset_settings()
    yield
    reset_settings()


def test_prune_json_is_parseable_at_default_log_level(make_client, default_log_level):
    runner.invoke(cli.app, ["init"])
    record = seed(make_client, "noisy.schem")

    result = runner.invoke(cli.app, ["prune", "--older-than", "0", "--json"])

    assert result.exit_code == 0, result.output
    pruned = json.loads(result.stdout)
    assert [r["id"] for r in pruned] == [record.id]
    # логи уходят в stderr, не смешиваясь с JSON
    assert "Pruned 1 schematic record(s)" in result.stderr


def test_list_json_is_parseable_at_default_log_level(make_client, default_log_level):
    runner.invoke(cli.app, ["init"])
    seed(make_client, "quiet.schem")

    result = runner.invoke(cli.app, ["list", "--json"])

    assert result.exit_code == 0, result.output
    assert [r["fileName"] for r in json.loads(result.stdout)] == ["quiet.schem"]


def test_prune_rejects_negative_age(make_client):
    invoke("init")

    result = invoke("prune", "--older-than", "-5")

    assert result.exit_code == 2
    assert not isinstance(result.exception, ValueError)
    assert "--older-than" in result.output


def test_prune_watch_rejects_zero_interval(make_client):
    result = invoke("prune", "--watch", "--older-than", "0")

    assert result.exit_code == 2
    assert not isinstance(result.exception, ValueError)
