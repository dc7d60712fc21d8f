from pathlib import Path

import pytest
import yaml

from wikidist.utils.config import ConfigManager, load_config, validate_config


def write_config(tmp_path: Path, data) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


def test_load_config_with_defaults(tmp_path):
    path = write_config(tmp_path, {"crawler": {"workers": 4, "start_url": "Dog"}})

    config = load_config(path)

    assert config.crawler.workers == 4
    assert config.crawler.start_url == "Dog"
    assert config.crawler.site_prefix == "en"
    assert config.crawler.queue_multiplier == 100
    assert config.crawler.low_water_multiplier == 80
    assert config.crawler.batch_multiplier == 100
    assert config.crawler.refill_interval == 0.01
    assert config.seen.ttl == 120
    assert config.seen.sweep_interval == 300
    assert config.store.type == "memory"


def test_empty_file_is_all_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")

    config = load_config(str(path))

    assert config.crawler.workers == 10


def test_shipped_config_is_valid():
    config = load_config(str(Path(__file__).resolve().parents[1] / "config.yaml"))

    assert config.store.type == "redis"
    assert config.logging.max_file_size_mb == 50
    assert config.logging.error_file == "logs/errors.log"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "absent.yaml"))


def test_unknown_key_rejected(tmp_path):
    path = write_config(tmp_path, {"crawler": {"wokers": 3}})

    with pytest.raises(ValueError, match="wokers"):
        load_config(path)


@pytest.mark.parametrize(
    "section, values",
    [
        ("crawler", {"workers": 0}),
        ("crawler", {"start_url": ""}),
        ("crawler", {"site_prefix": ""}),
        ("crawler", {"low_water_multiplier": 101}),
        ("crawler", {"refill_interval": 0}),
        ("seen", {"ttl": 0}),
        ("store", {"type": "sqlite"}),
        ("logging", {"level": "LOUD"}),
        ("logging", {"library_level": "quiet"}),
        ("logging", {"max_file_size_mb": 0}),
        ("logging", {"error_backup_count": -1}),
    ],
)
def test_invalid_values(section, values):
    config = ConfigManager.from_dict({section: values})

    with pytest.raises(ValueError):
        validate_config(config)
