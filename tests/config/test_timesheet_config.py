"""
Tests for timesheet_config -- YAML loading, parsing and kernel bridges.
"""

import logging

import pytest
import yaml

from timesheet_config import (
    DATABASE_URL_ENV,
    DEFAULT_CONFIG_PATH,
    get_active_config,
)
from timesheet_config.bridges import (
    build_workflow_policy,
    configure_logging_from_config,
    init_engine_from_config,
)
from timesheet_config.loader import compute_checksum, load_yaml_file, parse_config
from timesheet_kernel.db.engine import get_engine, reset_engine
from timesheet_kernel.domain.policy import WorkflowPolicy


def _write(tmp_path, document, name="config.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(document))
    return path


MINIMAL = {
    "config_id": "test",
    "version": 2,
    "database": {"url": "sqlite://"},
}


@pytest.fixture(autouse=True)
def _no_env_override(monkeypatch):
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)


class TestGetActiveConfig:

    def test_packaged_defaults(self):
        config = get_active_config()

        assert DEFAULT_CONFIG_PATH.exists()
        assert config.config_id == "timesheet-default"
        assert config.database.url.startswith("postgresql://")
        assert config.workflow.default_contract_days == 365
        assert config.logging.level == "INFO"
        assert len(config.checksum) == 64

    def test_minimal_document_uses_defaults(self, tmp_path):
        config = get_active_config(_write(tmp_path, MINIMAL))

        assert config.version == 2
        assert config.database.pool_size == 20
        assert config.workflow.notify_manager_on_submission is True

    def test_env_overrides_database_url(self, tmp_path, monkeypatch):
        path = _write(tmp_path, MINIMAL)
        baseline = get_active_config(path)
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://prod/timesheets")

        config = get_active_config(path)

        assert config.database.url == "postgresql://prod/timesheets"
        assert config.checksum == baseline.checksum

    def test_trace_is_logged(self, tmp_path, captured_logs):
        config = get_active_config(_write(tmp_path, MINIMAL))

        traces = [r for r in captured_logs() if r["message"] == "TIMESHEET_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["trace_type"] == "TIMESHEET_CONFIG_TRACE"
        assert traces[0]["checksum"] == config.checksum
        assert traces[0]["database_url_from_env"] is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")


class TestParsing:

    @pytest.mark.parametrize("drop", ["config_id", "version", "database"])
    def test_missing_required_key(self, drop):
        document = {k: v for k, v in MINIMAL.items() if k != drop}
        with pytest.raises(KeyError):
            parse_config(document)

    @pytest.mark.parametrize("patch", [
        {"version": 0},
        {"version": "one"},
        {"database": {"url": "  "}},
        {"database": {"url": "sqlite://", "pool_size": -1}},
        {"database": {"url": "sqlite://", "echo": "yes"}},
        {"logging": {"level": "LOUD"}},
        {"workflow": {"default_contract_days": True}},
        {"workflow": "on"},
    ])
    def test_malformed_values(self, patch):
        with pytest.raises(ValueError):
            parse_config({**MINIMAL, **patch})

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_yaml_file(path)

    def test_empty_file_is_empty_mapping(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}

    def test_checksum_ignores_key_order(self):
        a = {"x": 1, "y": {"b": 2, "a": 1}}
        b = {"y": {"a": 1, "b": 2}, "x": 1}
        assert compute_checksum(a) == compute_checksum(b)
        assert compute_checksum(a) != compute_checksum({"x": 2, "y": {"a": 1, "b": 2}})


class TestBridges:

    def test_build_workflow_policy(self):
        config = parse_config({
            **MINIMAL,
            "workflow": {
                "notify_manager_on_submission": False,
                "notify_admin_on_manager_approval": False,
                "default_contract_days": 180,
            },
        })

        assert build_workflow_policy(config) == WorkflowPolicy(
            notify_manager_on_submission=False,
            notify_admin_on_manager_approval=False,
            default_contract_days=180,
        )

    def test_init_engine_from_config(self):
        config = parse_config(MINIMAL)
        try:
            engine = init_engine_from_config(config)
            assert engine is get_engine()
            assert engine.dialect.name == "sqlite"
        finally:
            reset_engine()

    def test_configure_logging_is_idempotent(self):
        config = parse_config({**MINIMAL, "logging": {"level": "warning"}})
        root = logging.getLogger("timesheet_kernel")
        handlers_before = list(root.handlers)

        # Session-scoped logging is already configured; the bridge must not stack handlers
        configure_logging_from_config(config)

        assert root.handlers == handlers_before
