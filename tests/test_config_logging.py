"""
Settings and logging tests
"""

import io

import pytest
from pydantic import ValidationError

from protogram import Engine, EngineSettings, Grammar, enable_logging, disable_logging
from protogram.peg.build import rule, seq, token


class TestSettings:
    def test_defaults(self, monkeypatch):
        for var in ("PROTOGRAM_MAX_STEPS", "PROTOGRAM_WHITESPACE", "PROTOGRAM_TRACE"):
            monkeypatch.delenv(var, raising=False)
        s = EngineSettings(_env_file=None)

        assert s.max_steps is None
        assert s.whitespace == r"\s*"
        assert s.trace is False
        assert s.memoize_failures is True
        assert s.default_start == "TOP"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PROTOGRAM_MAX_STEPS", "250")
        monkeypatch.setenv("PROTOGRAM_TRACE", "true")
        s = EngineSettings(_env_file=None)

        assert s.max_steps == 250
        assert s.trace is True

    def test_invalid_whitespace_pattern(self):
        with pytest.raises(ValidationError):
            EngineSettings(_env_file=None, whitespace="[")

    def test_invalid_budget(self):
        with pytest.raises(ValidationError):
            EngineSettings(_env_file=None, max_steps=0)

    def test_engine_uses_settings(self, monkeypatch):
        from protogram import config
        monkeypatch.setattr(config.settings, "whitespace", r"[ ]*")
        monkeypatch.setattr(config.settings, "max_steps", 7)
        engine = Engine(Grammar([rule("TOP", seq("a", "b"))]))

        assert engine.max_steps == 7
        assert engine.match("TOP", "a b", anchored=True)
        assert not engine.match("TOP", "a\tb", anchored=True)


class TestLogging:
    def test_silent_until_enabled(self, rest):
        sink = io.StringIO()
        enable_logging("DEBUG", sink)
        try:
            rest.parse("/product/create")
            rest.parse("/product/unknown")
        finally:
            disable_logging()
        out = sink.getvalue()

        assert "'TOP' matched [0:15]" in out
        assert "'TOP' did not match" in out

        rest.parse("/product/create")
        assert sink.getvalue() == out

    def test_trace_rule_attempts(self):
        sink = io.StringIO()
        engine = Engine(Grammar([token("TOP", "a")]), trace=True)
        enable_logging("TRACE", sink)
        try:
            engine.match("TOP", "b")
        finally:
            disable_logging()

        assert "try TOP @ 0" in sink.getvalue()
        assert "fail TOP @ 0" in sink.getvalue()
