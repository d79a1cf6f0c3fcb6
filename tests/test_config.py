import pytest

from config import DEFAULTS, load_config


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(str(tmp_path / "nope.yaml"))
    assert config["listen_port"] == DEFAULTS["listen_port"]
    assert config["fingerprint"] is None
    assert config["handle"]


def test_yaml_overrides(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("handle: carol\nfingerprint: 4242\nlisten_port: 9000\n")
    config = load_config(str(path))
    assert config["handle"] == "carol"
    assert config["fingerprint"] == 4242
    assert config["listen_port"] == 9000
    assert config["listen_host"] == DEFAULTS["listen_host"]


def test_empty_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_config(str(path))["key_path"] == DEFAULTS["key_path"]


def test_non_mapping_is_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_unknown_option_is_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("colour: blue\n")
    with pytest.raises(ValueError, match="colour"):
        load_config(str(path))
