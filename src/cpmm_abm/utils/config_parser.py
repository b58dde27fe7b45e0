import copy
import json
import os
import yaml

DEFAULT_CONFIG = {
    "simulation": {"steps": 100, "seed": None},
    "tokens": {
        "a": {"symbol": "TKA", "decimals": 18},
        "b": {"symbol": "TKB", "decimals": 18},
    },
    "pool": {
        "bootstrap": {"amount_a": 1_000_000, "amount_b": 4_000_000},
    },
    "agents": {
        "traders": {
            "count": 5,
            "balance_a": 100_000,
            "balance_b": 400_000,
            "max_trade_fraction": 0.02,
        },
        "liquidity_providers": {
            "count": 2,
            "balance_a": 100_000,
            "balance_b": 400_000,
            "deposit_fraction": 0.1,
            "withdraw_probability": 0.1,
        },
    },
}


def load_config(path: str) -> dict:
    """
    Load a configuration file (YAML or JSON) from the given path and return it as a Python dictionary.

    Parameters
    ----------
    path : str
        The path to the configuration file.

    Returns
    -------
    dict
        Parsed configuration data as a Python dictionary.

    Raises
    ------
    FileNotFoundError
        If the file does not exist at the given path.

    ValueError
        - If the file extension is unsupported.
        - If the file content is not a dictionary.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    _, ext = os.path.splitext(path.lower())

    if ext in (".yaml", ".yml"):
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    elif ext == ".json":
        with open(path, "r") as f:
            data = json.load(f)
    else:
        raise ValueError("Unsupported config extension. Use .yaml, .yml, or .json.")

    if not isinstance(data, dict):
        raise ValueError("Config file root must be a dictionary.")
    return data


def _merge(defaults: dict, overrides: dict) -> dict:
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(message)


def build_pool_config(config: dict) -> dict:
    """
    Fill in defaults for a pool simulation config and validate it.

    Missing sections fall back to ``DEFAULT_CONFIG``; nested dictionaries
    are merged key by key.

    Raises
    ------
    ValueError
        If a value is out of range or the two token symbols collide.
    """
    cfg = _merge(DEFAULT_CONFIG, config or {})

    sim = cfg["simulation"]
    _require(int(sim["steps"]) > 0, "simulation.steps must be positive")
    sim["steps"] = int(sim["steps"])

    tokens = cfg["tokens"]
    _require(tokens["a"]["symbol"] != tokens["b"]["symbol"], "tokens.a and tokens.b must have different symbols")

    boot = cfg["pool"]["bootstrap"]
    for key in ("amount_a", "amount_b"):
        boot[key] = int(boot[key])
        _require(boot[key] > 0, f"pool.bootstrap.{key} must be positive")

    traders = cfg["agents"]["traders"]
    lps = cfg["agents"]["liquidity_providers"]
    for name, section in (("traders", traders), ("liquidity_providers", lps)):
        section["count"] = int(section["count"])
        _require(section["count"] >= 0, f"agents.{name}.count cannot be negative")
        for key in ("balance_a", "balance_b"):
            section[key] = int(section[key])
            _require(section[key] >= 0, f"agents.{name}.{key} cannot be negative")

    _require(0 < float(traders["max_trade_fraction"]) <= 1, "agents.traders.max_trade_fraction must be in (0, 1]")
    _require(0 < float(lps["deposit_fraction"]) <= 1, "agents.liquidity_providers.deposit_fraction must be in (0, 1]")
    _require(
        0 <= float(lps["withdraw_probability"]) <= 1,
        "agents.liquidity_providers.withdraw_probability must be in [0, 1]",
    )
    return cfg
