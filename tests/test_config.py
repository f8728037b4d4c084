import json
import logging

import pytest

from filterprobe.config import MAX_POOL_SIZE, ScanConfig, load_config, validate_values
from filterprobe.errors import ConfigError


def write_config(tmp_path, values):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(values), encoding="utf-8")
    return path


def test_defaults_are_valid():
    config = load_config()
    assert config.driver == "chrome"
    assert config.output_format == "text"
    assert config.max_attempts >= 1


def test_load_config_applies_values_and_skips_comments(tmp_path):
    path = write_config(tmp_path, {"_comment": "ignored", "timeout": 10, "https_only": True, "driver": "http"})
    config = load_config(path)
    assert config.timeout == 10
    assert config.https_only is True
    assert config.driver == "http"


def test_load_config_reports_every_problem(tmp_path):
    path = write_config(
        tmp_path,
        {"bogus": 1, "concurrency": 0, "timeout": "fast", "quiet": "yes", "output_format": "xml"},
    )
    with pytest.raises(ConfigError) as excinfo:
        load_config(path)
    problems = excinfo.value.problems
    assert "unknown key 'bogus'" in problems
    assert "'concurrency' must be between 1 and 50" in problems
    assert "'timeout' must be an integer" in problems
    assert "'quiet' must be true or false" in problems
    assert any("output_format" in p for p in problems)


def test_load_config_rejects_missing_and_malformed_files(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.json")
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(broken)
    listing = write_config(tmp_path, [1, 2])
    with pytest.raises(ConfigError):
        load_config(listing)


def test_invalid_exclude_pattern():
    problems = validate_values({"exclude_patterns": ["(unclosed"]})
    assert problems and "invalid exclude pattern" in problems[0]


def test_disabling_the_sandbox_warns(caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger("filterprobe"), "propagate", True)
    config = ScanConfig(disable_sandbox=True).validate()
    assert config.disable_sandbox
    assert "disable_sandbox is set" in caplog.text


def test_sandbox_flag_is_a_single_known_key(tmp_path):
    assert load_config(write_config(tmp_path, {"disable_sandbox": True})).disable_sandbox
    with pytest.raises(ConfigError) as excinfo:
        load_config(write_config(tmp_path, {"disable_sandbox_please": True}))
    assert "unknown key 'disable_sandbox_please'" in excinfo.value.problems


def test_low_force_abort_timeout_only_warns(caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger("filterprobe"), "propagate", True)
    config = ScanConfig(timeout=30, force_abort_timeout=10).validate()
    assert config.force_abort_timeout == 10
    assert "force_abort_timeout" in caplog.text


def test_merged_ignores_none():
    config = ScanConfig().merged(timeout=12, driver=None, quiet=True)
    assert config.timeout == 12
    assert config.driver == "chrome"
    assert config.quiet is True


def test_pool_size_is_capped():
    assert ScanConfig(concurrency=3).pool_size == 3
    assert ScanConfig(concurrency=40).pool_size == MAX_POOL_SIZE


def test_output_path(tmp_path):
    config = ScanConfig(output_dir=str(tmp_path))
    assert config.output_path("ca-dead-domains.txt") == tmp_path / "ca-dead-domains.txt"
