import configparser

import pytest

from hls_cli.exceptions import ConfigurationError
from hls_cli.models.config import DEFAULT_PROXY_TEMPLATE, DownloadConfig
from hls_cli.storage.config_manager import ConfigManager


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "hls-cli" / "config.ini"


def test_missing_file_yields_defaults(config_file):
    config = ConfigManager(config_file).load_config()

    assert config.batch_size == 5
    assert config.use_proxy is False
    assert config.proxy_template == DEFAULT_PROXY_TEMPLATE
    assert config.config_path == str(config_file.parent)
    assert not config_file.exists()


def test_save_then_load_roundtrip(config_file):
    manager = ConfigManager(config_file)
    manager.save_new_config({"batch_size": 8, "use_proxy": True, "keep_ts": True})

    parser = configparser.ConfigParser(interpolation=None)
    parser.read(config_file)
    assert parser["DEFAULT"]["use_proxy"] == "true"
    assert set(parser["DEFAULT"]) == DownloadConfig.get_ini_keys()

    config = ConfigManager(config_file).load_config()
    assert config.batch_size == 8
    assert config.use_proxy is True
    assert config.keep_ts is True


def test_cli_options_override_file(config_file):
    ConfigManager(config_file).save_new_config({"batch_size": 8})

    config = ConfigManager(config_file).load_config(
        {"batch_size": 3, "output_dir": "downloads"}
    )

    assert config.batch_size == 3
    assert config.output_dir == "downloads"


def test_missing_keys_are_migrated(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text("[DEFAULT]\nbatch_size = 2\n")

    config = ConfigManager(config_file).load_config()

    assert config.batch_size == 2
    text = config_file.read_text()
    assert "ffmpeg_path = ffmpeg" in text
    assert "batch_size = 2" in text


@pytest.mark.parametrize(
    "body",
    [
        "[DEFAULT]\nbatch_size = lots\n",
        "[DEFAULT]\nbatch_size = 100\n",
        "[DEFAULT]\nproxy_template = https://proxy.example.com/\n",
        "[DEFAULT]\nread_timeout = 0\n",
        "[DEFAULT]\nuse_proxy = maybe\n",
    ],
)
def test_invalid_values_raise_configuration_error(config_file, body):
    config_file.parent.mkdir(parents=True)
    config_file.write_text(body)
    with pytest.raises(ConfigurationError):
        ConfigManager(config_file).load_config()


def test_unparseable_file_raises_configuration_error(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text("this is not ini\n")
    with pytest.raises(ConfigurationError, match="Error parsing"):
        ConfigManager(config_file).load_config()


def test_display_dict_hides_internal_fields(config_file):
    shown = ConfigManager(config_file).as_display_dict()
    assert "config_path" not in shown
    assert shown["convert"] is True


def test_proxy_template_requires_placeholder():
    with pytest.raises(ValueError):
        DownloadConfig(proxy_template="https://proxy.example.com/?u=")
