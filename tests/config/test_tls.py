import logging
import ssl
from configparser import ConfigParser
from pathlib import Path
from typing import Dict, Optional
from unittest.mock import MagicMock, patch

import certifi
import pytest

from httpout.config.tls import TLSConfig, get_tls_config
from httpout.errors import ConfigurationError

ENV_CA_BUNDLE = "HTTPOUT_CA_BUNDLE"


@pytest.fixture
def config_file_factory(tmp_path: Path):
    """
    Factory fixture to create config.ini files with custom content.
    """

    def _create_config(tls_section: Optional[Dict[str, str]] = None) -> Path:
        config = ConfigParser()
        if tls_section is not None:
            config["tls"] = tls_section

        config_path = tmp_path / "config.ini"
        with open(config_path, "w") as f:
            config.write(f)
        return config_path

    return _create_config


@pytest.fixture
def missing_config(tmp_path: Path) -> Path:
    return tmp_path / "missing.ini"


@pytest.fixture
def mock_create_context():
    with patch("httpout.config.tls.ssl.create_default_context") as mock:
        mock.return_value = MagicMock(spec=ssl.SSLContext)
        yield mock


@pytest.mark.unit
class TestGetTLSConfig:
    def test_defaults_to_certifi(self, missing_config: Path, mock_create_context) -> None:
        config = get_tls_config(config_path=missing_config)

        mock_create_context.assert_called_once_with(cafile=certifi.where())
        assert config.verify is mock_create_context.return_value
        assert config.ca_bundle is None
        assert config.verifies_peer

    def test_ssl_no_verify(self, monkeypatch, ca_bundle: Path, caplog) -> None:
        monkeypatch.setenv(ENV_CA_BUNDLE, str(ca_bundle))

        with caplog.at_level(logging.WARNING, logger="httpout.config.tls"):
            config = get_tls_config(ssl_no_verify=True, ca_bundle=ca_bundle)

        assert config == TLSConfig(verify=False)
        assert not config.verifies_peer
        assert "config.tls.verify_disabled" in caplog.text

    def test_explicit_bundle(self, missing_config: Path, ca_bundle: Path) -> None:
        config = get_tls_config(ca_bundle=str(ca_bundle), config_path=missing_config)

        assert isinstance(config.verify, ssl.SSLContext)
        assert config.ca_bundle == ca_bundle

    def test_explicit_over_env(
        self, monkeypatch, missing_config: Path, ca_bundle: Path, tmp_path: Path
    ) -> None:
        monkeypatch.setenv(ENV_CA_BUNDLE, str(tmp_path / "nope.pem"))

        config = get_tls_config(ca_bundle=ca_bundle, config_path=missing_config)

        assert config.ca_bundle == ca_bundle

    def test_env_over_config_ini(
        self, monkeypatch, config_file_factory, ca_bundle: Path, tmp_path: Path
    ) -> None:
        path = config_file_factory({"ca_bundle": str(tmp_path / "nope.pem")})
        monkeypatch.setenv(ENV_CA_BUNDLE, str(ca_bundle))

        assert get_tls_config(config_path=path).ca_bundle == ca_bundle

    def test_config_ini(self, config_file_factory, ca_bundle: Path) -> None:
        path = config_file_factory({"ca_bundle": f"  {ca_bundle}  "})

        assert get_tls_config(config_path=path).ca_bundle == ca_bundle

    @pytest.mark.parametrize("section", [None, {}, {"ca_bundle": ""}])
    def test_config_ini_without_bundle(
        self, config_file_factory, mock_create_context, section
    ) -> None:
        config = get_tls_config(config_path=config_file_factory(section))

        assert config.ca_bundle is None
        mock_create_context.assert_called_once_with(cafile=certifi.where())

    def test_missing_bundle_raises(self, missing_config: Path, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not a file"):
            get_tls_config(ca_bundle=tmp_path / "nope.pem", config_path=missing_config)

    def test_directory_bundle_raises(self, missing_config: Path, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not a file"):
            get_tls_config(ca_bundle=tmp_path, config_path=missing_config)

    def test_unloadable_bundle_raises(self, missing_config: Path, tmp_path: Path) -> None:
        bundle = tmp_path / "garbage.pem"
        bundle.write_text("not a certificate\n")

        with pytest.raises(ConfigurationError, match="could not be loaded"):
            get_tls_config(ca_bundle=bundle, config_path=missing_config)

    def test_resolution_is_logged(
        self, config_file_factory, ca_bundle: Path, caplog
    ) -> None:
        path = config_file_factory({"ca_bundle": str(ca_bundle)})

        with caplog.at_level(logging.INFO, logger="httpout.config.tls"):
            get_tls_config(config_path=path)

        (record,) = [r for r in caplog.records if r.name == "httpout.config.tls"]
        assert record.getMessage() == "config.tls.resolved"
        assert record.ca_bundle == str(ca_bundle)
        assert record.config_path == str(path)
