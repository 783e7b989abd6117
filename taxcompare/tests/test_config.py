"""Settings and logging setup."""
from __future__ import annotations

import json
import logging

from taxcompare.config import LOG_FORMAT, Settings, configure_logging, settings
from taxcompare.engine import rules


def test_settings_defaults(monkeypatch) -> None:
    for name in ("TAX_FISCAL_YEAR", "TAX_RULES_FILE", "DEBUG"):
        monkeypatch.delenv(name, raising=False)
    config = Settings(_env_file=None)
    assert config.tax_fiscal_year == "FY2024-25"
    assert config.tax_rules_file is None
    assert config.debug is False


def test_settings_read_environment(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TAX_FISCAL_YEAR", "FY2025-26")
    monkeypatch.setenv("tax_rules_file", str(tmp_path / "rules.json"))
    monkeypatch.setenv("DEBUG", "true")
    config = Settings(_env_file=None)
    assert config.tax_fiscal_year == "FY2025-26"
    assert config.tax_rules_file == tmp_path / "rules.json"
    assert config.debug is True


def test_default_registry_merges_rules_file(monkeypatch, tmp_path) -> None:
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({
        "FY2030-31": {
            "FLAT": {"brackets": [{"min": 0, "max": None, "rate_percent": 10}]},
        },
    }), encoding="utf-8")
    monkeypatch.setattr(settings, "tax_rules_file", path)
    rules.default_registry.cache_clear()
    try:
        registry = rules.default_registry()
        assert "FY2030-31" in registry.fiscal_years
        assert "FY2024-25" in registry.fiscal_years
    finally:
        rules.default_registry.cache_clear()


def test_configure_logging_levels(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    configure_logging(Settings(_env_file=None, debug=True))
    configure_logging(Settings(_env_file=None, debug=False))

    assert calls[0] == {"level": logging.DEBUG, "format": LOG_FORMAT}
    assert calls[1] == {"level": logging.INFO, "format": LOG_FORMAT}
