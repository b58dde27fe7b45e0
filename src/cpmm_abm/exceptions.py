class PoolError(ValueError):
    """Base class for every rejection raised by a pool operation."""


class PoolConstructionError(PoolError):
    """Pool created with an unknown asset or the same asset twice."""


class InvalidAssetError(PoolError):
    """Operation references an asset that is not one of the pool's pair."""


class ZeroAmountError(PoolError):
    """An amount that must be strictly positive is zero or negative."""


class InsufficientOutputError(ZeroAmountError):
    """A swap would pay out nothing."""


class InsufficientLiquidityMintedError(ZeroAmountError):
    """A deposit is too small to mint a single liquidity share."""


class InsufficientLiquidityError(PoolError):
    """Holder tried to burn more liquidity shares than it owns."""


class InvariantViolationError(PoolError):
    """Post-swap reserve product fell below the stored baseline."""


class TransferFailedError(PoolError):
    """An asset contract refused a transfer."""


class PoolStateError(PoolError):
    """Pool counters are inconsistent (zero reserve with shares outstanding)."""
