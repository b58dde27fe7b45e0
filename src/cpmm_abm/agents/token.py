from typing import Any, Optional
import logging

logger = logging.getLogger(__name__)


class ERC20Token:
    """
    Minimal fungible token contract living on a ``BlockchainAgent``.

    Balances and allowances are stored on the ledger, keyed by this token's
    address. Transfers report failure by returning False rather than raising,
    leaving it to the caller to abort whatever it was doing.

    Attributes:
        blockchain (BlockchainAgent): Ledger holding balances and allowances.
        address (Any): Contract address, used as the asset handle by pools.
        symbol (str): Ticker symbol.
        decimals (int): Display decimals; amounts are always integer base units.
        total_supply (int): Sum of all minted units.
    """

    def __init__(
        self,
        blockchain,
        address: Any,
        symbol: str,
        decimals: int = 18,
        initial_supply: int = 0,
        owner: Optional[Any] = None,
    ):
        self.blockchain = blockchain
        self.address = address
        self.symbol = symbol
        self.decimals = int(decimals)
        self.total_supply = 0

        blockchain.register_token(address, self)
        if initial_supply:
            self.mint(owner if owner is not None else address, initial_supply)

    def __repr__(self) -> str:
        return f"ERC20Token({self.symbol!r}, address={self.address!r})"

    def balance_of(self, holder: Any) -> int:
        """Return the balance of ``holder``."""
        return self.blockchain.get_token_balance(self.address, holder)

    def allowance(self, owner: Any, spender: Any) -> int:
        """Return the amount ``spender`` may transfer on behalf of ``owner``."""
        return self.blockchain.get_allowance(self.address, owner, spender)

    def mint(self, to: Any, amount: int) -> None:
        """Create ``amount`` new units for ``to``."""
        amount = int(amount)
        self.blockchain.credit_token(self.address, to, amount)
        self.total_supply += amount
        self.blockchain.log_event("Transfer", {"token": self.address, "from": None, "to": to, "amount": amount})

    def approve(self, owner: Any, spender: Any, amount: int) -> bool:
        """Allow ``spender`` to move up to ``amount`` of ``owner``'s tokens."""
        self.blockchain.set_allowance(self.address, owner, spender, int(amount))
        self.blockchain.log_event(
            "Approval", {"token": self.address, "owner": owner, "spender": spender, "amount": int(amount)}
        )
        return True

    def transfer(self, sender: Any, to: Any, amount: int) -> bool:
        """Move ``amount`` from ``sender`` to ``to``."""
        if not self.blockchain.transfer_token(self.address, sender, to, amount):
            logger.debug("%s transfer of %d from %s refused", self.symbol, amount, sender)
            return False
        self.blockchain.log_event("Transfer", {"token": self.address, "from": sender, "to": to, "amount": amount})
        return True

    def transfer_from(self, spender: Any, frm: Any, to: Any, amount: int) -> bool:
        """Move ``amount`` from ``frm`` to ``to`` using ``spender``'s allowance."""
        allowed = self.allowance(frm, spender)
        if amount < 0 or allowed < amount:
            logger.debug("%s allowance of %s for %s too low (%d < %d)", self.symbol, frm, spender, allowed, amount)
            return False
        if not self.blockchain.transfer_token(self.address, frm, to, amount):
            logger.debug("%s balance of %s too low for %d", self.symbol, frm, amount)
            return False
        self.blockchain.set_allowance(self.address, frm, spender, allowed - amount)
        self.blockchain.log_event("Transfer", {"token": self.address, "from": frm, "to": to, "amount": amount})
        return True
