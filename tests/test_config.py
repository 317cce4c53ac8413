import json
import os

import pytest

from rpcxml import get_client
from rpcxml.config import ClientConfig, config_section, read_config


@pytest.fixture
def clean_environment(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.startswith("RPCXML_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


class TestClientConfig:
    def test_defaults(self):
        config = ClientConfig()
        assert config.timeout == (30.0, 90.0)
        assert config.max_idle_connections == 100
        assert config.adapters == {}

    def test_from_dict(self, caplog):
        config = ClientConfig.from_dict(
            {"url": "http://localhost/", "timeout": 5, "username": "u", "colour": "blue"}
        )
        assert config.read_timeout == 5
        assert config.username == "u"
        assert "colour" in caplog.text

    def test_read_timeout_wins_over_timeout(self):
        assert ClientConfig.from_dict({"timeout": 5, "read_timeout": 7}).read_timeout == 7


class TestConfigFile:
    def test_config_section_inherits(self):
        config = {
            "default": {"url": "http://a/", "read_timeout": 1},
            "other": {"inherits": "default", "url": "http://b/"},
        }
        section = config_section(config, "other")
        assert section["url"] == "http://b/"
        assert section["read_timeout"] == 1

    def test_missing_section(self):
        assert config_section({}, "nothing") == {}

    def test_read_json(self, tmp_path):
        fn = tmp_path / "client.conf"
        fn.write_text(json.dumps({"default": {"url": "http://a/"}}))
        assert read_config(str(fn)) == {"default": {"url": "http://a/"}}

    def test_read_yaml(self, tmp_path):
        pytest.importorskip("yaml")
        fn = tmp_path / "client.yaml"
        fn.write_text("default:\n  url: scgi://localhost:5000/\n")
        assert read_config(str(fn)) == {"default": {"url": "scgi://localhost:5000/"}}

    def test_read_missing_file(self, tmp_path):
        assert read_config(str(tmp_path / "nope.conf")) == {}

    def test_default_locations(self, clean_environment):
        cfgdir = clean_environment / ".config" / "rpcxml"
        cfgdir.mkdir(parents=True)
        (cfgdir / "client.json").write_text(json.dumps({"default": {"url": "http://c/"}}))
        assert read_config(None) == {"default": {"url": "http://c/"}}


class TestGetClient:
    def test_explicit_url(self, clean_environment):
        client = get_client("http://localhost/RPC2", read_timeout=3)
        assert client.url == "http://localhost/RPC2"
        assert client.config.read_timeout == 3
        client.close()

    def test_environment(self, clean_environment, monkeypatch):
        monkeypatch.setenv("RPCXML_URL", "scgi://localhost:5000/")
        monkeypatch.setenv("RPCXML_TIMEOUT", "2.5")
        client = get_client()
        assert client.url == "scgi://localhost:5000/"
        assert client.config.read_timeout == 2.5
        client.close()

    def test_config_file(self, clean_environment, monkeypatch):
        fn = clean_environment / "rpc.json"
        fn.write_text(
            json.dumps(
                {
                    "default": {"url": "http://default/"},
                    "work": {"inherits": "default", "url": "http://work/", "username": "me"},
                }
            )
        )
        monkeypatch.setenv("RPCXML_CONFIG_FILE", str(fn))
        client = get_client(config_section="work")
        assert client.url == "http://work/"
        assert client.config.username == "me"
        client.close()

    def test_nothing_configured(self, clean_environment):
        with pytest.raises(ValueError):
            get_client(check_config_file=False)
