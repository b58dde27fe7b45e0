from contextlib import contextmanager
from mesa import Agent
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple, Union
import logging

logger = logging.getLogger(__name__)


class BlockchainAgent(Agent):
    """
    In-memory host ledger for the pool simulation.

    Holds every token balance and allowance, the registry of deployed token
    contracts and a per-block event log. Contracts never own their balances;
    they read and write them through this agent so that a single snapshot
    covers all state a pool operation can touch.

    Supports:
        - Block timing
        - Account and token contract registration
        - Token balances and allowances
        - All-or-nothing transactions via ``transaction()``
        - Event logging
    """

    def __init__(self, model, block_time: float = 1.0):
        """Initialize the blockchain agent."""
        super().__init__(model)
        self.current_block: int = 0
        self.timestamp: float = 0.0
        self.block_time: float = float(block_time)
        self.accounts: Set[Any] = set()
        self.token_balances: Dict[Tuple[Any, Any], int] = {}
        self.allowances: Dict[Tuple[Any, Any, Any], int] = {}
        self.contracts: Dict[Any, Any] = {}
        self.token_addresses: Set[Any] = set()
        self.event_logs: Dict[int, List[Tuple[str, Any]]] = {}
        self._tx_depth: int = 0
        self.metrics: Dict[str, Any] = {
            "tx_committed": 0,
            "tx_reverted": 0,
            "blocks": [],
        }

    def create_account(self, address: Any) -> None:
        """Register a new account address."""
        self.accounts.add(address)

    def register_contract(self, contract_address: Any, contract_instance: Any) -> None:
        """Register a contract under its address."""
        if contract_address in self.contracts:
            raise ValueError(f"Address already in use: {contract_address!r}")
        self.contracts[contract_address] = contract_instance
        self.accounts.add(contract_address)

    def register_token(self, token_address: Any, token_instance: Any) -> None:
        """Register a fungible token contract so pools can recognize it."""
        self.register_contract(token_address, token_instance)
        self.token_addresses.add(token_address)

    def is_token(self, address: Any) -> bool:
        """Return True if a fungible token contract is deployed at ``address``."""
        return address in self.token_addresses

    def get_token(self, address: Any) -> Any:
        """Return the token contract deployed at ``address``."""
        if not self.is_token(address):
            raise KeyError(f"No token contract at {address!r}")
        return self.contracts[address]

    def get_token_balance(self, contract_address: Any, holder: Any) -> int:
        """Return token balance of a holder for a given contract."""
        return self.token_balances.get((contract_address, holder), 0)

    def credit_token(self, contract_address: Any, holder: Any, amount: int) -> None:
        """Increase a holder's balance out of thin air (token minting)."""
        if amount < 0:
            raise ValueError("Cannot credit a negative amount")
        key = (contract_address, holder)
        self.token_balances[key] = self.token_balances.get(key, 0) + amount

    def transfer_token(self, contract_address: Any, frm: Any, to: Any, amount: int) -> bool:
        """Transfer tokens for a contract between two holders."""
        key_from = (contract_address, frm)
        key_to = (contract_address, to)
        if amount < 0 or self.token_balances.get(key_from, 0) < amount:
            return False
        self.token_balances[key_from] = self.token_balances.get(key_from, 0) - amount
        self.token_balances[key_to] = self.token_balances.get(key_to, 0) + amount
        return True

    def get_allowance(self, contract_address: Any, owner: Any, spender: Any) -> int:
        """Return how much ``spender`` may still move out of ``owner``'s balance."""
        return self.allowances.get((contract_address, owner, spender), 0)

    def set_allowance(self, contract_address: Any, owner: Any, spender: Any, amount: int) -> None:
        """Overwrite an allowance."""
        if amount < 0:
            raise ValueError("Allowance cannot be negative")
        self.allowances[(contract_address, owner, spender)] = amount

    def snapshot(self) -> Dict[str, Any]:
        """Capture all mutable ledger state."""
        return {
            "token_balances": self.token_balances.copy(),
            "allowances": self.allowances.copy(),
            "event_logs": {b: list(ev) for b, ev in self.event_logs.items()},
        }

    def restore(self, snap: Dict[str, Any]) -> None:
        """Restore ledger state from a ``snapshot()``."""
        self.token_balances = snap["token_balances"].copy()
        self.allowances = snap["allowances"].copy()
        self.event_logs = {b: list(ev) for b, ev in snap["event_logs"].items()}

    @contextmanager
    def transaction(self, name: str = "tx") -> Iterator["BlockchainAgent"]:
        """
        Run a block of ledger mutations atomically.

        If the block raises, balances, allowances and events written inside it
        are discarded and the exception propagates. Nested transactions join
        the outermost one.
        """
        if self._tx_depth > 0:
            self._tx_depth += 1
            try:
                yield self
            finally:
                self._tx_depth -= 1
            return

        snap = self.snapshot()
        self._tx_depth = 1
        try:
            yield self
        except BaseException:
            self.restore(snap)
            self.metrics["tx_reverted"] += 1
            logger.debug("Transaction %s reverted at block %d", name, self.current_block)
            raise
        else:
            self.metrics["tx_committed"] += 1
        finally:
            self._tx_depth = 0

    def log_event(self, event_name: str, payload: Any, block: Optional[int] = None) -> None:
        """Store an event in the event log, by default for the current block."""
        if block is None:
            block = self.current_block
        self.event_logs.setdefault(block, []).append((event_name, payload))

    def get_events(self, block: Optional[int] = None, name: Optional[str] = None) -> List[Tuple[str, Any]]:
        """Get events from a block or the full chain, optionally filtered by name."""
        if block is None:
            events = [ev for b in sorted(self.event_logs) for ev in self.event_logs[b]]
        else:
            events = list(self.event_logs.get(block, []))
        if name is not None:
            events = [ev for ev in events if ev[0] == name]
        return events

    def step(self) -> None:
        """Advance the chain one block forward."""
        self.current_block += 1
        self.timestamp += self.block_time
        self.metrics["blocks"].append({
            "block": self.current_block,
            "timestamp": self.timestamp,
        })

    def get_current_block(self) -> int:
        """Return current block height."""
        return self.current_block

    def get_metrics(self) -> Dict[str, Any]:
        """Return dictionary of chain metrics."""
        return self.metrics

    def get_account_state(self, address: Any) -> Dict[str, Union[bool, Dict]]:
        """Return a summary of an account's token balances."""
        tokens = {
            c: self.get_token_balance(c, address)
            for c in sorted(self.token_addresses, key=str)
        }
        return {"known": address in self.accounts, "tokens": tokens}
