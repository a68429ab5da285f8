"""Tests for the configuration module."""

import pytest
import yaml

from wallbox_stats.config import ConfigurationError, Settings, load_settings, read_config_file


class TestSettingsDefaults:
    """Test that all settings have sensible defaults."""

    def test_general_defaults(self):
        settings = Settings()
        assert settings.LOG_LEVEL == "INFO"
        assert settings.LOG_FILE == "stderr"
        assert settings.COLLECTOR_MODE == "production"

    def test_meter_defaults(self):
        settings = Settings()
        assert settings.METER_URL == ""
        assert settings.DATA_COLLECTION_INTERVAL == 60

    def test_persistence_defaults(self):
        settings = Settings()
        assert settings.DATA_FILE == "wallbox_stats.yaml"
        assert settings.BACKUP_INTERVAL == 60

    def test_webserver_defaults(self):
        settings = Settings()
        assert settings.WEBSERVER_HOST == "0.0.0.0"
        assert settings.WEBSERVER_PORT == 4000
        assert settings.WEBSERVICE_VERSION is False
        assert settings.WEBSERVICE_CURRENTDATA is False
        assert settings.webserver_enabled is False


class TestSettingsValidation:
    @pytest.mark.parametrize("legacy, level", [("standard", "INFO"), ("debug", "DEBUG"), ("trace", "DEBUG")])
    def test_legacy_log_levels(self, legacy, level):
        assert Settings(LOG_LEVEL=legacy).LOG_LEVEL == level

    def test_log_level_is_uppercased(self):
        assert Settings(LOG_LEVEL="warning").LOG_LEVEL == "WARNING"

    def test_unknown_log_level(self):
        with pytest.raises(ValueError):
            Settings(LOG_LEVEL="chatty")

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            Settings(DATA_COLLECTION_INTERVAL=0)
        with pytest.raises(ValueError):
            Settings(BACKUP_INTERVAL=-5)

    def test_webserver_enabled(self):
        assert Settings(WEBSERVICE_VERSION=True).webserver_enabled is True
        assert Settings(WEBSERVICE_CURRENTDATA=True).webserver_enabled is True


class TestSettingsEnvironment:
    def test_environment_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv("METER_URL", "http://meter.local/currentdata")
        monkeypatch.setenv("DATA_COLLECTION_INTERVAL", "30")
        monkeypatch.setenv("WEBSERVICE_VERSION", "true")

        settings = Settings()

        assert settings.METER_URL == "http://meter.local/currentdata"
        assert settings.DATA_COLLECTION_INTERVAL == 30
        assert settings.WEBSERVICE_VERSION is True


class TestLoadSettings:
    @pytest.fixture
    def config_file(self, tmp_path):
        path = tmp_path / "wallbox.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "meter_url": "http://192.168.1.50:4000/currentdata",
                    "data_collection_interval": 15,
                    "LOG_LEVEL": "debug",
                    "webservice_currentdata": True,
                }
            )
        )
        return str(path)

    def test_without_file(self):
        settings = load_settings()
        assert settings.DATA_COLLECTION_INTERVAL == 60

    def test_reads_file_case_insensitive(self, config_file):
        settings = load_settings(config_file)

        assert settings.METER_URL == "http://192.168.1.50:4000/currentdata"
        assert settings.DATA_COLLECTION_INTERVAL == 15
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.WEBSERVICE_CURRENTDATA is True

    def test_file_overrides_environment(self, config_file, monkeypatch):
        monkeypatch.setenv("DATA_COLLECTION_INTERVAL", "30")

        assert load_settings(config_file).DATA_COLLECTION_INTERVAL == 15

    def test_overrides_win_over_file(self, config_file):
        settings = load_settings(config_file, LOG_LEVEL="error", LOG_FILE=None)

        assert settings.LOG_LEVEL == "ERROR"
        assert settings.LOG_FILE == "stderr"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_settings(str(tmp_path / "missing.yaml"))

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "wallbox.yaml"
        path.write_text("backup_interval: never\n")

        with pytest.raises(ConfigurationError):
            load_settings(str(path))

    def test_file_must_be_a_mapping(self, tmp_path):
        path = tmp_path / "wallbox.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            read_config_file(str(path))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "wallbox.yaml"
        path.write_text("")

        assert read_config_file(str(path)) == {}

    def test_reads_legacy_format(self, tmp_path):
        path = tmp_path / "wallbox.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "datacollectioninterval": 15,
                    "backupintervall": 30,
                    "meterurl": "http://192.168.1.50:4000/currentdata",
                    "datafile": "/var/lib/wallbox/state.yaml",
                    "debug": {"file": "stdout", "flag": "debug"},
                    "webserver": {"port": 4100, "webservices": {"version": True, "currentdata": False}},
                }
            )
        )

        settings = load_settings(str(path))

        assert settings.DATA_COLLECTION_INTERVAL == 15
        assert settings.BACKUP_INTERVAL == 30
        assert settings.METER_URL == "http://192.168.1.50:4000/currentdata"
        assert settings.DATA_FILE == "/var/lib/wallbox/state.yaml"
        assert settings.LOG_FILE == "stdout"
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.WEBSERVER_PORT == 4100
        assert settings.WEBSERVICE_VERSION is True
        assert settings.WEBSERVICE_CURRENTDATA is False

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "wallbox.yaml"
        path.write_text("meter_ulr: http://192.168.1.50:4000/currentdata\n")

        with pytest.raises(ConfigurationError, match="meter_ulr"):
            read_config_file(str(path))

    def test_unknown_nested_key(self, tmp_path):
        path = tmp_path / "wallbox.yaml"
        path.write_text("webserver:\n  prot: 4100\n")

        with pytest.raises(ConfigurationError, match="webserver.prot"):
            load_settings(str(path))
