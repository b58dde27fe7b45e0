import json

import pytest
import yaml

from cpmm_abm.utils.config_parser import DEFAULT_CONFIG, build_pool_config, load_config


def test_load_yaml_and_json(tmp_path):
    data = {"simulation": {"steps": 3, "seed": 1}}
    yaml_path = tmp_path / "cfg.yaml"
    yaml_path.write_text(yaml.safe_dump(data))
    json_path = tmp_path / "cfg.json"
    json_path.write_text(json.dumps(data))

    assert load_config(str(yaml_path)) == data
    assert load_config(str(json_path)) == data


def test_load_rejects_missing_unsupported_and_non_dict(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))

    toml_path = tmp_path / "cfg.toml"
    toml_path.write_text("a = 1")
    with pytest.raises(ValueError):
        load_config(str(toml_path))

    list_path = tmp_path / "cfg.yml"
    list_path.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_config(str(list_path))


def test_build_fills_defaults_and_merges():
    cfg = build_pool_config({"agents": {"traders": {"count": 1}}})
    assert cfg["agents"]["traders"]["count"] == 1
    assert cfg["agents"]["traders"]["max_trade_fraction"] == DEFAULT_CONFIG["agents"]["traders"]["max_trade_fraction"]
    assert cfg["pool"]["bootstrap"] == {"amount_a": 1_000_000, "amount_b": 4_000_000}
    # defaults are not mutated
    assert DEFAULT_CONFIG["agents"]["traders"]["count"] == 5


@pytest.mark.parametrize(
    "override",
    [
        {"simulation": {"steps": 0}},
        {"pool": {"bootstrap": {"amount_a": 0}}},
        {"tokens": {"b": {"symbol": "TKA"}}},
        {"agents": {"traders": {"count": -1}}},
        {"agents": {"traders": {"max_trade_fraction": 1.5}}},
        {"agents": {"liquidity_providers": {"deposit_fraction": 0}}},
        {"agents": {"liquidity_providers": {"withdraw_probability": 2}}},
        {"agents": {"liquidity_providers": {"balance_a": -5}}},
    ],
)
def test_build_rejects_invalid_values(override):
    with pytest.raises(ValueError):
        build_pool_config(override)
