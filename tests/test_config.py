import pytest

from api_easyportal.config import DEFAULT_BASE_URL, HeaderEntry, RequestConfig, load_config, parse_header
from api_easyportal.exceptions import ConfigError


class TestRequestConfig:
    def test_defaults(self):
        config = RequestConfig()
        assert config.base_url == DEFAULT_BASE_URL
        assert config.token == ""
        assert config.headers == ()
        assert config.timeout is None

    def test_headers_from_mapping(self):
        config = RequestConfig(headers={"X-A": "1", "X-B": 2})
        assert config.headers == (HeaderEntry(key="X-A", value="1"), HeaderEntry(key="X-B", value="2"))

    def test_with_overrides_skips_none(self):
        config = RequestConfig(base_url="http://a", token="t")
        changed = config.with_overrides(base_url="http://b", token=None)
        assert changed.base_url == "http://b"
        assert changed.token == "t"
        assert config.base_url == "http://a"


class TestParseHeader:
    def test_key_value(self):
        assert parse_header("X-Tenant:  acme ") == HeaderEntry(key="X-Tenant", value="acme")

    def test_value_may_contain_colon(self):
        assert parse_header("X-Url: http://x").value == "http://x"

    def test_invalid(self):
        with pytest.raises(ConfigError):
            parse_header("no separator")


class TestLoadConfig:
    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "portal.yaml"
        path.write_text(
            "base_url: http://file\n"
            "timeout: 2.5\n"
            "headers:\n"
            "  - key: X-A\n"
            "    value: one\n",
            encoding="utf-8",
        )
        config = load_config(path, env={})
        assert config.base_url == "http://file"
        assert config.timeout == 2.5
        assert config.headers == (HeaderEntry(key="X-A", value="one"),)

    def test_env_overrides_file(self, tmp_path):
        path = tmp_path / "portal.yaml"
        path.write_text("base_url: http://file\ntoken: filetoken\n", encoding="utf-8")
        config = load_config(path, env={"API_BASE_URL": "http://env", "API_TOKEN": "envtoken"})
        assert config.base_url == "http://env"
        assert config.token == "envtoken"

    def test_no_file(self):
        assert load_config(None, env={}) == RequestConfig()

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "portal.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path, env={})

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "portal.yaml"
        path.write_text("timeout: soon\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path, env={})
