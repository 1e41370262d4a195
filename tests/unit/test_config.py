"""Tests for configuration loading."""

from practiceflow.config import PracticeflowConfig, load_config
from practiceflow.contracts import StepStatus
from practiceflow.persistence import InMemoryWorkflowRepository
from practiceflow.service import WorkflowService


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
engine:
  strict_cycle_detection: true
  skipped_satisfies_prerequisites: true
  workday_hours: 6
automation:
  api_timeout: 2.5
log_level: DEBUG
"""
    )
    monkeypatch.setenv("PRACTICEFLOW_CONFIG", str(config_path))
    monkeypatch.delenv("PRACTICEFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    config = load_config()
    assert config.engine.strict_cycle_detection is True
    assert config.engine.skipped_satisfies_prerequisites is True
    assert config.engine.workday_hours == 6
    assert config.engine.milestone_limit == 3
    assert config.automation.api_timeout == 2.5
    assert config.log_level == "DEBUG"
    assert config.database_url is None


def test_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.delenv("PRACTICEFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    config = load_config(str(tmp_path / "missing.yaml"))

    assert config == PracticeflowConfig()
    assert config.engine.strict_cycle_detection is False
    assert config.engine.skipped_satisfies_prerequisites is False
    assert config.engine.workday_hours == 8


def test_database_url_env_overrides_file(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("database_url: sqlite://from-file.db\n")
    monkeypatch.setenv("PRACTICEFLOW_DATABASE_URL", "sqlite://from-env.db")

    config = load_config(str(config_path))
    assert config.database_url == "sqlite://from-env.db"


def test_service_uses_engine_flags():
    config = PracticeflowConfig(
        engine={"strict_cycle_detection": True, "skipped_satisfies_prerequisites": True}
    )

    service = WorkflowService(repository=InMemoryWorkflowRepository(), config=config)

    assert service.engine.resolver.satisfying_statuses == {StepStatus.COMPLETED, StepStatus.SKIPPED}
