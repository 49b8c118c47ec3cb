"""
Tests for run configuration.
"""

import pytest

from sql_compat.config import DEFAULT_INCLUDES, DEFAULT_MAPPER_DIRECTORIES, DEFAULT_REPORT_PATH, RunConfig
from sql_compat.engine import DatabaseTarget
from sql_compat.errors import ConfigurationError


ENV = {
    "ORIGIN_DB_CONNECTION": "postgresql://origin-db/app",
    "ORIGIN_DB_USER": "app",
    "ORIGIN_DB_PASSWORD": "secret",
    "TARGET_DB_CONNECTION": "postgresql://target-db/app",
}


class TestFromEnv:
    def test_targets_from_env(self):
        config = RunConfig.from_env(ENV)

        assert config.origin == DatabaseTarget("origin", "postgresql://origin-db/app", "app", "secret")
        assert config.target == DatabaseTarget("target", "postgresql://target-db/app")

    def test_defaults(self):
        config = RunConfig.from_env({})

        assert config.origin is None
        assert config.target is None
        assert config.mapper_directories == DEFAULT_MAPPER_DIRECTORIES
        assert config.includes == DEFAULT_INCLUDES
        assert config.excludes == []
        assert config.statement_timeout_seconds == 8
        assert config.thread_count == 4
        assert config.execute_statements is False
        assert config.report_path == DEFAULT_REPORT_PATH

    def test_defaults_are_not_shared(self):
        first = RunConfig.from_env({})
        first.includes.append("**/*.xml")
        assert RunConfig.from_env({}).includes == DEFAULT_INCLUDES

    def test_overrides(self):
        config = RunConfig.from_env(ENV, includes=["**/*.xml"], thread_count=2, excludes=None)

        assert config.includes == ["**/*.xml"]
        assert config.thread_count == 2
        assert config.excludes == []

    def test_os_environ(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("ORIGIN_DB_CONNECTION", "postgresql://env-origin/app")
        monkeypatch.delenv("TARGET_DB_CONNECTION", raising=False)

        config = RunConfig.from_env()

        assert config.origin.dsn == "postgresql://env-origin/app"
        assert config.target is None


class TestValidate:
    def test_valid(self):
        config = RunConfig.from_env(ENV, thread_count=0).validate()
        assert config.thread_count == 1

    @pytest.mark.parametrize("missing,message", [
        ("ORIGIN_DB_CONNECTION", "Origin database connection not specified"),
        ("TARGET_DB_CONNECTION", "Target database connection not specified"),
    ])
    def test_missing_database(self, missing, message):
        env = {k: v for k, v in ENV.items() if k != missing}
        with pytest.raises(ConfigurationError, match=message):
            RunConfig.from_env(env).validate()

    def test_timeout_must_be_positive(self):
        with pytest.raises(ConfigurationError, match="timeout"):
            RunConfig.from_env(ENV, statement_timeout_seconds=0).validate()
