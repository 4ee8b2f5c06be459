"""Tests for engine settings and workflow files."""

import pytest
import yaml

from tradeflow.config import EngineSettings, generate_sample_workflow, load_graph_file
from tradeflow.core.exceptions import ConfigurationError
from tradeflow.graph import validation_issues


class TestEngineSettings:
    def test_defaults(self):
        settings = EngineSettings()
        assert settings.log_level == "INFO"
        assert settings.status_channel == "workflow-status"
        assert settings.candle_cache_size == 32
        assert settings.backtest.initial_capital == 10_000.0
        assert settings.validate() == []

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "tradeflow.yaml"
        path.write_text(
            "log_level: debug\n"
            "candle_cache_size: 4\n"
            "backtest:\n"
            "  capital: 500\n"
            "  fee: 0.001\n"
            "  close_open_position: true\n"
        )
        settings = EngineSettings.from_yaml(path)
        assert settings.log_level == "DEBUG"
        assert settings.candle_cache_size == 4
        assert settings.backtest.initial_capital == 500.0
        assert settings.backtest.fee_rate == 0.001
        assert settings.backtest.close_open_position is True

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert EngineSettings.from_yaml(path) == EngineSettings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            EngineSettings.from_yaml(tmp_path / "nope.yaml")

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            EngineSettings.from_yaml(path)

    def test_validate_errors_and_warnings(self):
        settings = EngineSettings.from_dict(
            {"log_level": "loud", "candle_cache_size": 0, "backtest": {"initial_capital": -1, "fee_rate": 0.05}}
        )
        issues = settings.validate()
        errors = [i for i in issues if i.startswith("ERROR")]
        warnings = [i for i in issues if i.startswith("WARNING")]
        assert any("log_level" in e for e in errors)
        assert any("initial_capital" in e for e in errors)
        assert any("candle_cache_size" in w for w in warnings)
        assert any("fee_rate" in w for w in warnings)

    def test_fee_out_of_range(self):
        settings = EngineSettings.from_dict({"backtest": {"fee_rate": 1.5}})
        assert any(i.startswith("ERROR") and "fee_rate" in i for i in settings.validate())


class TestWorkflowFiles:
    def test_id_defaults_to_file_stem(self, tmp_path, scenario_doc):
        del scenario_doc["id"]
        path = tmp_path / "breakout.yaml"
        path.write_text(yaml.safe_dump(scenario_doc))
        graph = load_graph_file(path)
        assert graph.id == "breakout"
        assert len(graph) == 5

    def test_json_document(self, tmp_path):
        path = tmp_path / "wf.json"
        path.write_text('{"id": "j", "nodes": {"t": {"kind": "trigger"}}}')
        assert load_graph_file(path).id == "j"

    def test_sample_workflow_is_valid(self, tmp_path):
        path = tmp_path / "sample.yaml"
        path.write_text(generate_sample_workflow())
        graph = load_graph_file(path)
        assert graph.id == "sma_breakout"
        assert validation_issues(graph) == []

    def test_missing_workflow(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_graph_file(tmp_path / "missing.yaml")
