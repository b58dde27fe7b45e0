import sys
from pathlib import Path

import pytest
from mesa import Model

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from cpmm_abm.agents.blockchain import BlockchainAgent
from cpmm_abm.agents.pool import PoolAgent
from cpmm_abm.agents.token import ERC20Token


@pytest.fixture
def model():
    return Model()


@pytest.fixture
def chain(model):
    return BlockchainAgent(model=model)


@pytest.fixture
def token_a(chain):
    return ERC20Token(chain, address="TKA", symbol="TKA")


@pytest.fixture
def token_b(chain):
    return ERC20Token(chain, address="TKB", symbol="TKB")


@pytest.fixture
def pool(model, chain, token_a, token_b):
    return PoolAgent(model, chain, token_a.address, token_b.address, address="POOL")


@pytest.fixture
def fund(pool, token_a, token_b):
    """Mint both assets to a holder and approve the pool for all of it."""
    def _fund(holder, amount_a, amount_b, approve=True):
        token_a.mint(holder, amount_a)
        token_b.mint(holder, amount_b)
        if approve:
            token_a.approve(holder, pool.address, amount_a)
            token_b.approve(holder, pool.address, amount_b)
    return _fund


@pytest.fixture
def bootstrapped(pool, fund):
    """Pool seeded by "deployer" with (1000, 4000)."""
    fund("deployer", 1000, 4000)
    pool.add_liquidity("deployer", 1000, 4000)
    return pool
