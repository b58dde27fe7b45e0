import math


def integer_sqrt(value: int) -> int:
    """
    Return ``floor(sqrt(value))`` computed exactly on integers.

    Parameters
    ----------
    value : int
        A non-negative integer.

    Returns
    -------
    int
        The largest integer ``r`` with ``r * r <= value``.

    Raises
    ------
    ValueError
        If ``value`` is negative.
    """
    if value < 0:
        raise ValueError(f"Cannot take the square root of a negative number: {value}")
    return math.isqrt(value)


def mul_div(a: int, b: int, denominator: int) -> int:
    """
    Compute ``floor(a * b / denominator)`` without leaving integer arithmetic.

    Parameters
    ----------
    a, b : int
        Factors of the numerator.
    denominator : int
        Strictly positive divisor.

    Returns
    -------
    int
        The floored quotient.

    Raises
    ------
    ZeroDivisionError
        If ``denominator`` is zero.
    """
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return (a * b) // denominator


def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int, k_last: int) -> int:
    """
    Quote a swap against a stored invariant baseline.

    The output is what can leave the pool so that the post-trade product
    still equals ``k_last`` (rounded in the pool's favour):

    ``amount_out = (reserve_out * (reserve_in + amount_in) - k_last) // (reserve_in + amount_in)``

    Note this nets out the stored baseline, not the live product
    ``reserve_in * reserve_out``. The two only agree while the reserves
    still multiply to ``k_last``.

    Parameters
    ----------
    amount_in : int
        Units of the input asset sent to the pool.
    reserve_in : int
        Pool balance of the input asset before the trade.
    reserve_out : int
        Pool balance of the output asset before the trade.
    k_last : int
        Stored invariant baseline.

    Returns
    -------
    int
        The output amount, or 0 when the inputs cannot produce a positive one.
    """
    if amount_in <= 0 or reserve_in < 0 or reserve_out <= 0:
        return 0

    new_reserve_in = reserve_in + amount_in
    numerator = reserve_out * new_reserve_in - k_last
    if numerator <= 0:
        return 0
    return numerator // new_reserve_in
