import pytest

from cpmm_abm.agents.pool import PoolAgent
from cpmm_abm.agents.trader import LiquidityProviderAgent, TraderAgent
from cpmm_abm.models.pool_model import DEPLOYER, PoolModel


@pytest.fixture
def simple_config():
    return {
        "simulation": {"steps": 5, "seed": 123},
        "tokens": {"a": {"symbol": "ETH"}, "b": {"symbol": "DAI"}},
        "pool": {"bootstrap": {"amount_a": 1000, "amount_b": 4000}},
        "agents": {
            "traders": {"count": 3, "balance_a": 500, "balance_b": 2000, "max_trade_fraction": 0.05},
            "liquidity_providers": {
                "count": 2, "balance_a": 200, "balance_b": 800,
                "deposit_fraction": 0.25, "withdraw_probability": 0.3,
            },
        },
    }


def test_model_initialization_creates_expected_agents(simple_config):
    model = PoolModel(simple_config)
    names = [a.__class__.__name__ for a in model.agents]
    assert names.count("BlockchainAgent") == 1
    assert names.count("PoolAgent") == 1
    assert names.count("TraderAgent") == 3
    assert names.count("LiquidityProviderAgent") == 2

    pool = model.pool
    assert isinstance(pool, PoolAgent)
    assert pool.get_reserves() == (1000, 4000)
    assert pool.k_last == 4_000_000
    assert pool.lp_balance_of(DEPLOYER) == 2000
    assert model.metrics["deposits"][0]["liquidity"] == 2000


def test_model_funds_and_approves_actors(simple_config):
    model = PoolModel(simple_config)
    for agent in model.agents:
        if isinstance(agent, TraderAgent):
            assert agent.balances() == (500, 2000)
        elif isinstance(agent, LiquidityProviderAgent):
            assert agent.balances() == (200, 800)
            assert model.token_a.allowance(agent.address, model.pool.address) > 0


def test_model_run_collects_data(simple_config):
    model = PoolModel(simple_config)
    df = model.run()

    assert df.shape[0] == 5
    for column in ("Reserve_A", "Reserve_B", "Total_Supply", "K_Last", "K_Live",
                   "Invariant_Drift", "Price_A_in_B", "Rejections"):
        assert column in df.columns
    assert (df["K_Last"] == 4_000_000).all()
    assert (df["Invariant_Drift"] == df["K_Live"] - df["K_Last"]).all()
    assert model.blockchain.get_current_block() == 5


def test_model_keeps_pool_consistent_with_ledger(simple_config):
    model = PoolModel(simple_config)
    model.run(10)
    pool = model.pool

    assert pool.get_reserves() == (
        model.token_a.balance_of(pool.address),
        model.token_b.balance_of(pool.address),
    )
    holders = {DEPLOYER} | {getattr(a, "address", None) for a in model.agents}
    assert pool.total_supply == sum(pool.lp_balance_of(h) for h in holders)

    for token in (model.token_a, model.token_b):
        held = sum(token.balance_of(h) for h in holders)
        assert held == token.total_supply

    for swap in model.metrics["swaps"]:
        assert swap["amount_out"] > 0


def test_model_is_reproducible_with_seed(simple_config):
    df1 = PoolModel(simple_config).run()
    df2 = PoolModel(simple_config).run()
    assert df1.equals(df2)


def test_model_rejects_bad_config(simple_config):
    simple_config["simulation"]["steps"] = 0
    with pytest.raises(ValueError):
        PoolModel(simple_config)
