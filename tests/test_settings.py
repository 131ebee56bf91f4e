from cyberasio.utils.config import ConfigManager


def test_defaults_without_file(tmp_path) -> None:
    settings = ConfigManager(str(tmp_path / "absent.yaml")).load_config()

    assert settings["server"] == {"host": "127.0.0.1", "port": 7788, "static_dir": "static"}
    assert settings["persistence"]["state_file"] == "config.txt"


def test_file_values_merge_per_section(tmp_path) -> None:
    path = tmp_path / "cyberasio.yaml"
    path.write_text("server:\n  port: 9000\nlogging:\n  level: DEBUG\n", encoding="utf-8")

    settings = ConfigManager(str(path)).load_config()

    assert settings["server"]["port"] == 9000
    assert settings["server"]["host"] == "127.0.0.1"
    assert settings["logging"]["level"] == "DEBUG"


def test_malformed_file_keeps_defaults(tmp_path) -> None:
    path = tmp_path / "cyberasio.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    settings = ConfigManager(str(path)).load_config()

    assert settings["server"]["port"] == 7788


def test_command_line_overrides(tmp_path) -> None:
    manager = ConfigManager(str(tmp_path / "absent.yaml"))
    manager.load_config()

    settings = manager.apply_overrides(port=8123, static_dir="web", state_file="state.txt")

    assert settings["server"]["port"] == 8123
    assert settings["server"]["static_dir"] == "web"
    assert settings["persistence"]["state_file"] == "state.txt"


def test_save_round_trip(tmp_path) -> None:
    path = tmp_path / "cyberasio.yaml"
    manager = ConfigManager(str(path))
    manager.apply_overrides(port=7000)
    manager.save_config()

    assert ConfigManager(str(path)).load_config()["server"]["port"] == 7000
