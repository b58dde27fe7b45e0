from mesa import Agent
from typing import Any, Callable, Dict, Optional, Tuple
import logging

from cpmm_abm.agents.curves import BaseCurve, BaselineProductCurve
from cpmm_abm.exceptions import (
    InsufficientLiquidityError,
    InsufficientLiquidityMintedError,
    InsufficientOutputError,
    InvalidAssetError,
    InvariantViolationError,
    PoolConstructionError,
    TransferFailedError,
    ZeroAmountError,
)

logger = logging.getLogger(__name__)


class PoolAgent(Agent):
    """
    Two-asset constant-product liquidity pool.

    The pool holds its assets on a ``BlockchainAgent`` under its own address
    and is the only thing that moves them. Reserves are re-read from the
    ledger after every mutating operation; ``k_last`` is only seeded by a
    bootstrap deposit.

    Attributes:
        blockchain (BlockchainAgent): Ledger hosting both token contracts.
        address (Any): The pool's account on the ledger.
        curve (BaseCurve): Pricing curve used for swap and LP math.
        on_swap (Callable): Optional hook for swap events.
        on_deposit (Callable): Optional hook for deposit events.
        on_withdraw (Callable): Optional hook for withdraw events.
    """

    def __init__(
        self,
        model,
        blockchain,
        token_a: Any,
        token_b: Any,
        address: Optional[Any] = None,
        curve: Optional[BaseCurve] = None,
        on_swap: Optional[Callable] = None,
        on_deposit: Optional[Callable] = None,
        on_withdraw: Optional[Callable] = None,
    ):
        """Initialize a pool over two registered token contracts."""
        if token_a == token_b:
            raise PoolConstructionError(f"Pool assets must differ, got {token_a!r} twice")
        for token in (token_a, token_b):
            if not blockchain.is_token(token):
                raise PoolConstructionError(f"No token contract deployed at {token!r}")

        super().__init__(model)

        self.blockchain = blockchain
        self._token_a = token_a
        self._token_b = token_b
        self.address = address if address is not None else f"POOL-{self.unique_id}"
        self.curve = curve if curve is not None else BaselineProductCurve()
        blockchain.create_account(self.address)

        self._reserve_a = 0
        self._reserve_b = 0
        self._k_last = 0
        self._total_supply = 0
        self._lp_balances: Dict[Any, int] = {}

        self.on_swap = on_swap
        self.on_deposit = on_deposit
        self.on_withdraw = on_withdraw

    @property
    def token_a(self) -> Any:
        """Address of asset A."""
        return self._token_a

    @property
    def token_b(self) -> Any:
        """Address of asset B."""
        return self._token_b

    @property
    def k_last(self) -> int:
        """Reserve product recorded at the last bootstrap deposit."""
        return self._k_last

    @property
    def total_supply(self) -> int:
        """Total liquidity shares outstanding."""
        return self._total_supply

    def get_assets(self) -> Tuple[Any, Any]:
        """Return the (asset A, asset B) addresses."""
        return self._token_a, self._token_b

    def get_reserves(self) -> Tuple[int, int]:
        """Return the cached reserves of asset A and asset B."""
        return self._reserve_a, self._reserve_b

    def get_k(self) -> int:
        """Return the live product of the cached reserves."""
        return self._reserve_a * self._reserve_b

    def invariant_drift(self) -> int:
        """Return how far the live product has moved from ``k_last``."""
        return self.get_k() - self._k_last

    def lp_balance_of(self, holder: Any) -> int:
        """Return the liquidity shares owned by ``holder``."""
        return self._lp_balances.get(holder, 0)

    def _token(self, address: Any):
        return self.blockchain.get_token(address)

    def _live_balance(self, address: Any) -> int:
        return self._token(address).balance_of(self.address)

    def _sync(self) -> None:
        """Refresh cached reserves from the ledger."""
        self._reserve_a = self._live_balance(self._token_a)
        self._reserve_b = self._live_balance(self._token_b)

    def _pull(self, token: Any, frm: Any, amount: int) -> None:
        if not self._token(token).transfer_from(self.address, frm, self.address, amount):
            raise TransferFailedError(f"Could not pull {amount} of {token!r} from {frm!r}")

    def _push(self, token: Any, to: Any, amount: int) -> None:
        if not self._token(token).transfer(self.address, to, amount):
            raise TransferFailedError(f"Could not send {amount} of {token!r} to {to!r}")

    def _check_pair(self, token_in: Any, token_out: Any) -> None:
        assets = (self._token_a, self._token_b)
        for token in (token_in, token_out):
            if token not in assets:
                raise InvalidAssetError(f"{token!r} is not traded by this pool")
        if token_in == token_out:
            raise InvalidAssetError(f"Cannot swap {token_in!r} for itself")

    def get_amount_out(self, token_in: Any, token_out: Any, amount_in: int) -> int:
        """
        Quote a swap against live balances without executing it.

        Raises:
            InvalidAssetError: Unknown or identical assets.
            ZeroAmountError: ``amount_in`` is not positive.
        """
        self._check_pair(token_in, token_out)
        if amount_in <= 0:
            raise ZeroAmountError(f"Swap input must be positive, got {amount_in}")
        return self.curve.compute_swap(
            amount_in=amount_in,
            reserve_in=self._live_balance(token_in),
            reserve_out=self._live_balance(token_out),
            k_last=self._k_last,
        )

    def swap(self, sender: Any, token_in: Any, token_out: Any, amount_in: int) -> int:
        """
        Swap ``amount_in`` of ``token_in`` for ``token_out``.

        Pricing uses the pool's live balances taken once before the input is
        pulled, and the stored baseline ``k_last``. The trade is rejected if
        it would pay out nothing, or if the post-trade balance product ends
        up below ``k_last``; either way nothing moves.

        Args:
            sender (Any): Trader address; must have approved the pool for ``amount_in``.
            token_in (Any): Asset paid into the pool.
            token_out (Any): Asset paid out of the pool.
            amount_in (int): Input amount.

        Returns:
            int: Amount of ``token_out`` sent to ``sender``.
        """
        self._check_pair(token_in, token_out)
        if amount_in <= 0:
            raise ZeroAmountError(f"Swap input must be positive, got {amount_in}")

        reserve_in = self._live_balance(token_in)
        reserve_out = self._live_balance(token_out)
        amount_out = self.curve.compute_swap(
            amount_in=amount_in,
            reserve_in=reserve_in,
            reserve_out=reserve_out,
            k_last=self._k_last,
        )
        if amount_out <= 0:
            raise InsufficientOutputError(
                f"Swap of {amount_in} {token_in!r} yields no {token_out!r} "
                f"(reserves {reserve_in}/{reserve_out}, k_last {self._k_last})"
            )

        with self.blockchain.transaction("swap"):
            self._pull(token_in, sender, amount_in)
            self._push(token_out, sender, amount_out)
            balance_in = self._live_balance(token_in)
            balance_out = self._live_balance(token_out)
            if not self.curve.check_invariant(balance_in, balance_out, self._k_last):
                raise InvariantViolationError(
                    f"Post-swap product {balance_in * balance_out} below k_last {self._k_last}"
                )
            payload = {
                "sender": sender,
                "token_in": token_in,
                "token_out": token_out,
                "amount_in": amount_in,
                "amount_out": amount_out,
            }
            self.blockchain.log_event("Swap", payload)

        self._sync()
        logger.info("%s swapped %d %s for %d %s", sender, amount_in, token_in, amount_out, token_out)
        if self.on_swap:
            self.on_swap(self, payload)
        return amount_out

    def add_liquidity(self, sender: Any, amount_a_in: int, amount_b_in: int) -> Tuple[int, int, int]:
        """
        Deposit both assets and mint liquidity shares.

        The first deposit into a pool with no shares outstanding takes the
        full amounts, mints ``isqrt(a * b)`` and records ``a * b`` as
        ``k_last``. Later deposits mint the smaller of the two pro-rata
        ratios and only take the amounts those shares are worth.

        Args:
            sender (Any): Depositor address; must have approved both amounts.
            amount_a_in (int): Maximum amount of asset A to deposit.
            amount_b_in (int): Maximum amount of asset B to deposit.

        Returns:
            Tuple[int, int, int]: Amount of A taken, amount of B taken, shares minted.
        """
        if amount_a_in <= 0 or amount_b_in <= 0:
            raise ZeroAmountError(f"Deposit amounts must be positive, got ({amount_a_in}, {amount_b_in})")

        bootstrap = self._total_supply == 0
        amount_a, amount_b, liquidity = self.curve.compute_deposit_lp(
            reserve_a=self._reserve_a,
            reserve_b=self._reserve_b,
            total_supply=self._total_supply,
            amount_a=amount_a_in,
            amount_b=amount_b_in,
        )
        if liquidity <= 0:
            raise InsufficientLiquidityMintedError(
                f"Deposit of ({amount_a_in}, {amount_b_in}) mints no shares"
            )

        with self.blockchain.transaction("add_liquidity"):
            self._pull(self._token_a, sender, amount_a)
            self._pull(self._token_b, sender, amount_b)
            payload = {
                "sender": sender,
                "amount_a": amount_a,
                "amount_b": amount_b,
                "liquidity": liquidity,
            }
            self.blockchain.log_event("AddLiquidity", payload)

        if bootstrap:
            self._k_last = amount_a * amount_b
            logger.info("Pool %s bootstrapped with k_last=%d", self.address, self._k_last)
        self._sync()
        self._total_supply += liquidity
        self._lp_balances[sender] = self._lp_balances.get(sender, 0) + liquidity

        logger.info("%s deposited %d/%d for %d shares", sender, amount_a, amount_b, liquidity)
        if self.on_deposit:
            self.on_deposit(self, payload)
        return amount_a, amount_b, liquidity

    def remove_liquidity(self, sender: Any, liquidity: int) -> Tuple[int, int]:
        """
        Burn liquidity shares for a pro-rata slice of both reserves.

        ``k_last`` is left untouched, so after a withdrawal the live product
        is generally below the baseline and ``invariant_drift()`` goes negative.

        Args:
            sender (Any): Holder burning the shares.
            liquidity (int): Shares to burn.

        Returns:
            Tuple[int, int]: Amounts of asset A and asset B sent to ``sender``.
        """
        if liquidity <= 0:
            raise ZeroAmountError(f"Liquidity to burn must be positive, got {liquidity}")
        owned = self.lp_balance_of(sender)
        if liquidity > owned:
            raise InsufficientLiquidityError(f"{sender!r} owns {owned} shares, cannot burn {liquidity}")

        amount_a, amount_b = self.curve.compute_withdraw_lp(
            reserve_a=self._reserve_a,
            reserve_b=self._reserve_b,
            total_supply=self._total_supply,
            liquidity=liquidity,
        )

        with self.blockchain.transaction("remove_liquidity"):
            self._push(self._token_a, sender, amount_a)
            self._push(self._token_b, sender, amount_b)
            payload = {
                "sender": sender,
                "amount_a": amount_a,
                "amount_b": amount_b,
                "liquidity": liquidity,
            }
            self.blockchain.log_event("RemoveLiquidity", payload)

        self._lp_balances[sender] = owned - liquidity
        self._total_supply -= liquidity
        self._sync()

        logger.info("%s burned %d shares for %d/%d", sender, liquidity, amount_a, amount_b)
        if self.on_withdraw:
            self.on_withdraw(self, payload)
        return amount_a, amount_b

    def step(self):
        """Pools are reactive; no internal logic on each step."""
        pass
