"""
Tests for configuration and logging setup.
"""

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

import arload
from arload.config import ArloadConfig
from arload.core.crypto import Wallet
from arload.exceptions import ArloadError, MalformedInputError

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (
        "ARLOAD_MAX_CHUNK_SIZE",
        "ARLOAD_MIN_CHUNK_SIZE",
        "ARLOAD_KEYFILE",
        "ARLOAD_KEY_SIZE",
        "ARLOAD_MAX_WORKERS",
        "ARLOAD_LOG_LEVEL",
        "ARLOAD_LOG_FILE",
    ):
        monkeypatch.delenv(var, raising=False)


class TestArloadConfig:
    """Tests for ArloadConfig."""

    def test_defaults(self):
        config = ArloadConfig()
        assert config.max_chunk_size == 262144
        assert config.min_chunk_size == 32
        assert config.format == 2
        assert config.keyfile is None

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ARLOAD_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("ARLOAD_KEYFILE", "/tmp/key.json")
        monkeypatch.setenv("ARLOAD_MAX_WORKERS", "4")

        config = ArloadConfig()
        assert config.log_level == "DEBUG"
        assert config.keyfile == Path("/tmp/key.json")
        assert config.max_workers == 4

    def test_env_invalid_int(self, monkeypatch):
        monkeypatch.setenv("ARLOAD_MAX_WORKERS", "many")
        with pytest.raises(MalformedInputError):
            ArloadConfig()

    def test_env_inconsistent_chunk_sizes(self, monkeypatch):
        monkeypatch.setenv("ARLOAD_MIN_CHUNK_SIZE", "200000")
        with pytest.raises(MalformedInputError):
            ArloadConfig()

    def test_inconsistent_chunk_sizes(self):
        with pytest.raises(ValidationError):
            ArloadConfig(max_chunk_size=10, min_chunk_size=6)
        with pytest.raises(ValidationError):
            ArloadConfig(min_chunk_size=0)

    def test_save_and_load(self, tmp_path):
        config = ArloadConfig(keyfile=Path("wallet.json"), max_workers=2, log_level="WARNING")
        path = tmp_path / "config.json"
        config.save(path)

        loaded = ArloadConfig.load(path)
        assert loaded.to_dict() == config.to_dict()

    def test_log_file_persisted(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        ArloadConfig(log_file="arload.log").save(path)
        assert ArloadConfig.load(path).log_file == "arload.log"

        monkeypatch.setenv("ARLOAD_LOG_FILE", "env.log")
        assert ArloadConfig().log_file == "env.log"

    def test_development(self):
        config = ArloadConfig.development()
        assert config.key_size == 2048
        assert config.log_level == "DEBUG"


class TestWalletFromConfig:
    """Tests for Wallet.from_config."""

    def test_keyfile(self, fixed_wallet):
        config = ArloadConfig(keyfile=FIXTURES / "wallet.json")
        assert Wallet.from_config(config).owner == fixed_wallet.owner

    def test_keyfile_from_env(self, fixed_wallet, monkeypatch):
        monkeypatch.setenv("ARLOAD_KEYFILE", str(FIXTURES / "wallet.json"))
        assert Wallet.from_config(ArloadConfig()).address == fixed_wallet.address

    def test_generates_configured_size(self):
        wallet = Wallet.from_config(ArloadConfig(key_size=2048))
        assert wallet.key_size == 2048

    def test_invalid_key_size(self):
        with pytest.raises(arload.CryptoError):
            Wallet.from_config(ArloadConfig(key_size=1024))


class TestLogging:
    """Tests for configure_logging."""

    def test_configure_logging(self, monkeypatch):
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))

        arload.configure_logging(ArloadConfig(log_level="debug"))
        assert calls["level"] == logging.DEBUG


class TestExceptions:
    """Error taxonomy."""

    def test_codes(self):
        assert MalformedInputError("x").code == "MALFORMED_INPUT"
        assert arload.CryptoError("x").code == "CRYPTO_ERROR"
        assert arload.AlreadySignedError().code == "ALREADY_SIGNED"
        assert arload.EmptyTreeError().code == "EMPTY_TREE"
        assert arload.InvalidProofError(offset=3).offset == 3

    def test_hierarchy(self):
        assert issubclass(arload.AlreadySignedError, arload.ProtocolError)
        assert issubclass(arload.EmptyTreeError, arload.ProtocolError)
        assert issubclass(arload.InvalidProofError, arload.ProtocolError)
        assert issubclass(arload.ProtocolError, ArloadError)
        assert issubclass(arload.CryptoError, ArloadError)
