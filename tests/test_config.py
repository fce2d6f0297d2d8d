"""
Tests for XMLHttpRequestOptions resolution.
"""

import sys

import pytest

from xmlhttprequest.config import (
    DEFAULT_USER_AGENT,
    ENV_DISABLE_HEADER_CHECK,
    ENV_PYTHON,
    ENV_REJECT_UNAUTHORIZED,
    ENV_USER_AGENT,
    XMLHttpRequestOptions,
    env_flag,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (ENV_USER_AGENT, ENV_DISABLE_HEADER_CHECK, ENV_REJECT_UNAUTHORIZED, ENV_PYTHON):
        monkeypatch.delenv(name, raising=False)


class TestEnvFlag:

    @pytest.mark.parametrize("value", ["true", "1", "yes", "on", "TRUE", "On"])
    def test_truthy(self, monkeypatch, value):
        monkeypatch.setenv("XHR_TEST_FLAG", value)
        assert env_flag("XHR_TEST_FLAG", False) is True

    @pytest.mark.parametrize("value", ["false", "0", "no", "off", "False"])
    def test_falsy(self, monkeypatch, value):
        monkeypatch.setenv("XHR_TEST_FLAG", value)
        assert env_flag("XHR_TEST_FLAG", True) is False

    def test_unset_uses_default(self):
        assert env_flag("XHR_TEST_FLAG_UNSET", True) is True

    def test_unrecognized_uses_default(self, monkeypatch):
        monkeypatch.setenv("XHR_TEST_FLAG", "maybe")
        assert env_flag("XHR_TEST_FLAG", False) is False


class TestOptions:

    def test_defaults(self):
        options = XMLHttpRequestOptions()

        assert options.user_agent == DEFAULT_USER_AGENT
        assert options.disable_header_check is False
        assert options.reject_unauthorized is True
        assert options.python_executable == sys.executable

    def test_environment_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv(ENV_USER_AGENT, "env-agent")
        monkeypatch.setenv(ENV_DISABLE_HEADER_CHECK, "yes")
        monkeypatch.setenv(ENV_REJECT_UNAUTHORIZED, "off")
        monkeypatch.setenv(ENV_PYTHON, "/usr/bin/python-custom")

        options = XMLHttpRequestOptions()

        assert options.user_agent == "env-agent"
        assert options.disable_header_check is True
        assert options.reject_unauthorized is False
        assert options.python_executable == "/usr/bin/python-custom"

    def test_explicit_arguments_win(self, monkeypatch):
        monkeypatch.setenv(ENV_USER_AGENT, "env-agent")
        monkeypatch.setenv(ENV_DISABLE_HEADER_CHECK, "true")

        options = XMLHttpRequestOptions(user_agent="explicit", disable_header_check=False)

        assert options.user_agent == "explicit"
        assert options.disable_header_check is False

    def test_tls_options(self):
        options = XMLHttpRequestOptions(ca="/ca.pem", cert="/c.pem", key="/k.pem",
                                        passphrase="secret", ciphers="HIGH",
                                        reject_unauthorized=False)
        tls = options.tls

        assert tls.ca == "/ca.pem"
        assert tls.cert == "/c.pem"
        assert tls.key == "/k.pem"
        assert tls.passphrase == "secret"
        assert tls.ciphers == "HIGH"
        assert tls.reject_unauthorized is False
