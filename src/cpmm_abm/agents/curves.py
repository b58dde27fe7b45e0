from abc import ABC, abstractmethod
from typing import Tuple

from cpmm_abm.exceptions import PoolStateError
from cpmm_abm.utils.math_helpers import get_amount_out, integer_sqrt, mul_div


class BaseCurve(ABC):
    """
    Abstract base class for pool pricing curves.

    All amounts are integer base units. To implement a custom curve, subclass
    this and implement the four required methods:
    - compute_swap
    - check_invariant
    - compute_deposit_lp
    - compute_withdraw_lp
    """

    @abstractmethod
    def compute_swap(self, amount_in: int, reserve_in: int, reserve_out: int, k_last: int) -> int:
        """
        Calculate the output amount for a given input and reserves.

        Args:
            amount_in (int): Amount of input token provided.
            reserve_in (int): Current reserve of the input token.
            reserve_out (int): Current reserve of the output token.
            k_last (int): Stored invariant baseline.

        Returns:
            int: Output amount of the other token (0 if none).
        """
        pass

    @abstractmethod
    def check_invariant(self, reserve_in: int, reserve_out: int, k_last: int) -> bool:
        """Return True if post-trade reserves satisfy the curve invariant."""
        pass

    @abstractmethod
    def compute_deposit_lp(
        self,
        reserve_a: int,
        reserve_b: int,
        total_supply: int,
        amount_a: int,
        amount_b: int,
    ) -> Tuple[int, int, int]:
        """
        Determine liquidity to mint and the amounts actually taken.

        Args:
            reserve_a (int): Reserve of token A.
            reserve_b (int): Reserve of token B.
            total_supply (int): Outstanding liquidity shares.
            amount_a (int): Amount of token A offered.
            amount_b (int): Amount of token B offered.

        Returns:
            Tuple[int, int, int]: Amount of A taken, amount of B taken, shares minted.
        """
        pass

    @abstractmethod
    def compute_withdraw_lp(
        self,
        reserve_a: int,
        reserve_b: int,
        total_supply: int,
        liquidity: int,
    ) -> Tuple[int, int]:
        """
        Determine token amounts to return when shares are burned.

        Args:
            reserve_a (int): Reserve of token A.
            reserve_b (int): Reserve of token B.
            total_supply (int): Outstanding liquidity shares.
            liquidity (int): Shares to burn.

        Returns:
            Tuple[int, int]: Amounts of token A and B to return.
        """
        pass


class BaselineProductCurve(BaseCurve):
    """
    Constant product curve x * y >= k measured against a stored baseline.

    Swaps are priced so the post-trade product lands on ``k_last`` (the
    product recorded at the bootstrap deposit), not on the live pre-trade
    product. There is no swap fee.
    """

    def compute_swap(self, amount_in: int, reserve_in: int, reserve_out: int, k_last: int) -> int:
        """Output amount keeping ``(reserve_in + in) * (reserve_out - out) >= k_last``."""
        return get_amount_out(amount_in, reserve_in, reserve_out, k_last)

    def check_invariant(self, reserve_in: int, reserve_out: int, k_last: int) -> bool:
        return reserve_in * reserve_out >= k_last

    def compute_deposit_lp(
        self,
        reserve_a: int,
        reserve_b: int,
        total_supply: int,
        amount_a: int,
        amount_b: int,
    ) -> Tuple[int, int, int]:
        """
        Calculate shares to mint for a deposit.

        An empty pool (no shares outstanding) takes both amounts in full and
        mints ``isqrt(amount_a * amount_b)``. Otherwise the smaller of the two
        ratios decides the shares, and the amounts taken are derived back from
        those shares, so they never exceed what was offered.

        Raises:
            PoolStateError: Shares are outstanding but a reserve is empty.
        """
        if total_supply == 0:
            return amount_a, amount_b, integer_sqrt(amount_a * amount_b)

        if reserve_a == 0 or reserve_b == 0:
            raise PoolStateError(
                f"Empty reserve with {total_supply} shares outstanding: ({reserve_a}, {reserve_b})"
            )

        liquidity = min(
            mul_div(amount_a, total_supply, reserve_a),
            mul_div(amount_b, total_supply, reserve_b),
        )
        actual_a = mul_div(liquidity, reserve_a, total_supply)
        actual_b = mul_div(liquidity, reserve_b, total_supply)
        return actual_a, actual_b, liquidity

    def compute_withdraw_lp(
        self,
        reserve_a: int,
        reserve_b: int,
        total_supply: int,
        liquidity: int,
    ) -> Tuple[int, int]:
        """Pro-rata share of each reserve, rounded down."""
        if liquidity <= 0 or total_supply <= 0:
            return 0, 0

        amount_a = mul_div(liquidity, reserve_a, total_supply)
        amount_b = mul_div(liquidity, reserve_b, total_supply)
        return amount_a, amount_b
