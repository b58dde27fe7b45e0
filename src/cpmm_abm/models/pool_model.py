# src/cpmm_abm/models/pool_model.py

import logging
from typing import Optional

import numpy as np
import pandas as pd
from mesa import Model
from mesa.datacollection import DataCollector

from cpmm_abm.agents.blockchain import BlockchainAgent
from cpmm_abm.agents.pool import PoolAgent
from cpmm_abm.agents.token import ERC20Token
from cpmm_abm.agents.trader import LiquidityProviderAgent, TraderAgent
from cpmm_abm.utils.config_parser import build_pool_config

logger = logging.getLogger(__name__)

DEPLOYER = "DEPLOYER"


class PoolModel(Model):
    """
    Mesa model simulating a single constant-product pool.

    - Builds a ledger, two tokens and the pool, then seeds the pool with the
      configured bootstrap deposit from a deployer account.
    - Traders and liquidity providers are funded by minting and approve the
      pool once at creation.
    - Each step advances the ledger by one block, then activates all other
      agents in random order and collects data.
    """

    def __init__(self, config: Optional[dict] = None):
        cfg = build_pool_config(config or {})
        sim_cfg = cfg["simulation"]
        super().__init__(seed=sim_cfg["seed"])

        self.config = cfg
        self.num_steps = sim_cfg["steps"]

        # Metrics filled by pool hooks
        self.metrics = {
            "swaps": [],
            "deposits": [],
            "withdrawals": [],
        }

        self.blockchain = BlockchainAgent(self)
        self.token_a = self._init_token(cfg["tokens"]["a"])
        self.token_b = self._init_token(cfg["tokens"]["b"])
        self.pool = PoolAgent(
            self,
            self.blockchain,
            self.token_a.address,
            self.token_b.address,
            on_swap=self._record("swaps"),
            on_deposit=self._record("deposits"),
            on_withdraw=self._record("withdrawals"),
        )

        self._bootstrap(cfg["pool"]["bootstrap"])
        self._init_traders(cfg["agents"]["traders"])
        self._init_liquidity_providers(cfg["agents"]["liquidity_providers"])

        self.datacollector = DataCollector(
            model_reporters={
                "Reserve_A": lambda m: m.pool.get_reserves()[0],
                "Reserve_B": lambda m: m.pool.get_reserves()[1],
                "Total_Supply": lambda m: m.pool.total_supply,
                "K_Last": lambda m: m.pool.k_last,
                "K_Live": lambda m: m.pool.get_k(),
                "Invariant_Drift": lambda m: m.pool.invariant_drift(),
                "Price_A_in_B": lambda m: m.spot_price(),
                "Rejections": lambda m: m.count_rejections(),
            }
        )

    def _init_token(self, token_cfg: dict) -> ERC20Token:
        symbol = token_cfg["symbol"]
        return ERC20Token(
            self.blockchain,
            address=f"TOKEN-{symbol}",
            symbol=symbol,
            decimals=token_cfg.get("decimals", 18),
        )

    def _record(self, key: str):
        def hook(pool, payload):
            self.metrics[key].append({"step": self.steps, **payload})
        return hook

    def _bootstrap(self, boot_cfg: dict):
        """Mint the bootstrap amounts to the deployer and seed the pool."""
        self.blockchain.create_account(DEPLOYER)
        for token, amount in ((self.token_a, boot_cfg["amount_a"]), (self.token_b, boot_cfg["amount_b"])):
            token.mint(DEPLOYER, amount)
            token.approve(DEPLOYER, self.pool.address, amount)
        self.pool.add_liquidity(DEPLOYER, boot_cfg["amount_a"], boot_cfg["amount_b"])

    def _fund(self, agent, section: dict):
        self.token_a.mint(agent.address, section["balance_a"])
        self.token_b.mint(agent.address, section["balance_b"])

    def _init_traders(self, traders_cfg: dict):
        for _ in range(traders_cfg["count"]):
            trader = TraderAgent(self, self.pool, max_trade_fraction=traders_cfg["max_trade_fraction"])
            self._fund(trader, traders_cfg)

    def _init_liquidity_providers(self, lp_cfg: dict):
        for _ in range(lp_cfg["count"]):
            provider = LiquidityProviderAgent(
                self,
                self.pool,
                deposit_fraction=lp_cfg["deposit_fraction"],
                withdraw_probability=lp_cfg["withdraw_probability"],
            )
            self._fund(provider, lp_cfg)

    def spot_price(self) -> float:
        """Units of asset B per unit of asset A at the cached reserves."""
        reserve_a, reserve_b = self.pool.get_reserves()
        if reserve_a == 0:
            return np.nan
        return reserve_b / reserve_a

    def count_rejections(self) -> int:
        """Total pool operations rejected so far across all actors."""
        return sum(getattr(agent, "rejected", 0) for agent in self.agents)

    def step(self):
        """
        Advance the model one tick:
          1. Mine a new block.
          2. Activate every other agent in random order.
          3. Collect data.
        """
        self.blockchain.step()
        self.agents.select(lambda a: a is not self.blockchain).shuffle_do("step")
        self.datacollector.collect(self)

    def run(self, steps: Optional[int] = None) -> pd.DataFrame:
        """Run ``steps`` ticks (configured count by default) and return collected data."""
        steps = self.num_steps if steps is None else steps
        for _ in range(steps):
            self.step()
        logger.info(
            "Simulation finished after %d steps: %d swaps, %d deposits, %d withdrawals",
            self.steps,
            len(self.metrics["swaps"]),
            len(self.metrics["deposits"]),
            len(self.metrics["withdrawals"]),
        )
        return self.datacollector.get_model_vars_dataframe()
