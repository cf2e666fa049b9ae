from src.config import CONFIG_PATH, Settings, app_config, load_app_config, settings
from src.report.engine import RULE_CATALOG


def test_settings_loads():
    assert settings.mariadb_host
    assert settings.database_url.startswith("mysql+aiomysql://")
    assert len(settings.default_base_currency) == 3


def test_app_config_has_every_rule():
    assert "rules" in app_config
    for rule_cls in RULE_CATALOG:
        assert rule_cls.key in app_config["rules"], f"{rule_cls.key} missing from config.yaml"


def test_config_thresholds_match_rule_defaults():
    for rule_cls in RULE_CATALOG:
        configured = app_config["rules"][rule_cls.key]
        for name, default in rule_cls.default_options.items():
            assert configured.get(name, default) == default, f"{rule_cls.key}.{name}"


def test_config_path_can_point_outside_the_checkout(tmp_path, monkeypatch):
    custom = tmp_path / "checkup.yaml"
    custom.write_text("rules:\n  fee_ratio_initial_investment:\n    threshold: 0.02\n")
    monkeypatch.setenv("CONFIG_PATH", str(custom))

    assert Settings().config_path == custom
    loaded = load_app_config(Settings().config_path)
    assert loaded["rules"]["fee_ratio_initial_investment"]["threshold"] == 0.02


def test_default_config_path_is_the_bundled_file():
    assert CONFIG_PATH.name == "config.yaml"
    assert CONFIG_PATH.is_file()
