from mesa import Agent
from typing import Any, Callable, Optional
import logging

import numpy as np

from cpmm_abm.exceptions import PoolError

logger = logging.getLogger(__name__)

MAX_APPROVAL = 2 ** 256 - 1


class _PoolUser(Agent):
    """Shared wiring for agents that hold both pool assets and trade against a pool."""

    prefix = "USER"

    def __init__(self, model, pool, address: Optional[Any] = None, seed: Optional[int] = None):
        super().__init__(model)
        self.pool = pool
        self.address = address if address is not None else f"{self.prefix}-{self.unique_id}"
        self.token_a = pool.blockchain.get_token(pool.token_a)
        self.token_b = pool.blockchain.get_token(pool.token_b)
        self.rejected = 0

        pool.blockchain.create_account(self.address)
        self.token_a.approve(self.address, pool.address, MAX_APPROVAL)
        self.token_b.approve(self.address, pool.address, MAX_APPROVAL)

        if seed is None:
            seed = self.model.random.getrandbits(32)
        self._rng = np.random.default_rng(seed)

    def balances(self):
        """Return this agent's (asset A, asset B) balances."""
        return self.token_a.balance_of(self.address), self.token_b.balance_of(self.address)

    def _reject(self, action: str, exc: PoolError) -> None:
        self.rejected += 1
        logger.debug("%s %s rejected: %s", self.address, action, exc)


class TraderAgent(_PoolUser):
    """
    Agent swapping a random amount in a random direction every step.

    Attributes:
        max_trade_fraction (float): Upper bound of a trade as a fraction of the input reserve.
        trades (int): Number of executed swaps.
        on_trade (Callable): Optional hook called with (agent, amount_in, amount_out).
    """

    prefix = "TRADER"

    def __init__(
        self,
        model,
        pool,
        address: Optional[Any] = None,
        max_trade_fraction: float = 0.02,
        seed: Optional[int] = None,
        on_trade: Optional[Callable] = None,
    ):
        super().__init__(model, pool, address=address, seed=seed)
        self.max_trade_fraction = float(max_trade_fraction)
        self.trades = 0
        self.on_trade = on_trade

    def _pick_amount(self, reserve_in: int, balance: int) -> int:
        cap = int(reserve_in * self.max_trade_fraction)
        if cap <= 0 or balance <= 0:
            return 0
        return min(balance, int(self._rng.integers(1, cap, endpoint=True)))

    def step(self):
        """Swap a random slice of the input reserve in a random direction."""
        reserve_a, reserve_b = self.pool.get_reserves()
        balance_a, balance_b = self.balances()
        if self._rng.random() < 0.5:
            token_in, token_out = self.pool.token_a, self.pool.token_b
            amount_in = self._pick_amount(reserve_a, balance_a)
        else:
            token_in, token_out = self.pool.token_b, self.pool.token_a
            amount_in = self._pick_amount(reserve_b, balance_b)

        if amount_in <= 0:
            logger.debug("%s has nothing to trade", self.address)
            return

        try:
            amount_out = self.pool.swap(self.address, token_in, token_out, amount_in)
        except PoolError as exc:
            self._reject("swap", exc)
            return

        self.trades += 1
        if self.on_trade:
            self.on_trade(self, amount_in, amount_out)


class LiquidityProviderAgent(_PoolUser):
    """
    Agent that deposits a slice of its holdings or withdraws all of its shares.

    Attributes:
        deposit_fraction (float): Fraction of each balance offered per deposit.
        withdraw_probability (float): Chance per step of redeeming every share held.
    """

    prefix = "LP"

    def __init__(
        self,
        model,
        pool,
        address: Optional[Any] = None,
        deposit_fraction: float = 0.1,
        withdraw_probability: float = 0.1,
        seed: Optional[int] = None,
    ):
        super().__init__(model, pool, address=address, seed=seed)
        self.deposit_fraction = float(deposit_fraction)
        self.withdraw_probability = float(withdraw_probability)

    def shares(self) -> int:
        """Return the liquidity shares this agent holds."""
        return self.pool.lp_balance_of(self.address)

    def deposit(self, amount_a: Optional[int] = None, amount_b: Optional[int] = None):
        """Offer ``deposit_fraction`` of both balances unless amounts are given."""
        balance_a, balance_b = self.balances()
        if amount_a is None:
            amount_a = int(balance_a * self.deposit_fraction)
        if amount_b is None:
            amount_b = int(balance_b * self.deposit_fraction)
        try:
            return self.pool.add_liquidity(self.address, amount_a, amount_b)
        except PoolError as exc:
            self._reject("deposit", exc)
            return None

    def withdraw(self, liquidity: Optional[int] = None):
        """Burn ``liquidity`` shares, all of them by default."""
        if liquidity is None:
            liquidity = self.shares()
        try:
            return self.pool.remove_liquidity(self.address, liquidity)
        except PoolError as exc:
            self._reject("withdraw", exc)
            return None

    def step(self):
        """Withdraw everything with ``withdraw_probability``, otherwise deposit."""
        if self.shares() > 0 and self._rng.random() < self.withdraw_probability:
            self.withdraw()
        else:
            self.deposit()
