import pytest

from cpmm_abm.agents.blockchain import BlockchainAgent


def test_blockchain_accounts_and_token_transfer(chain):
    chain.create_account("Alice")
    chain.credit_token("SIM", "Alice", 500)

    assert chain.get_token_balance("SIM", "Alice") == 500
    assert chain.transfer_token("SIM", "Alice", "Bob", 50) is True
    assert chain.get_token_balance("SIM", "Alice") == 450
    assert chain.get_token_balance("SIM", "Bob") == 50

    assert chain.transfer_token("SIM", "Alice", "Bob", 451) is False
    assert chain.transfer_token("SIM", "Alice", "Bob", -1) is False
    assert chain.get_token_balance("SIM", "Alice") == 450


def test_contract_registry_distinguishes_tokens(chain):
    token = object()
    chain.register_token("SIM", token)
    chain.register_contract("ROUTER", object())

    assert chain.is_token("SIM")
    assert not chain.is_token("ROUTER")
    assert not chain.is_token("NOWHERE")
    assert chain.get_token("SIM") is token
    with pytest.raises(KeyError):
        chain.get_token("ROUTER")
    with pytest.raises(ValueError):
        chain.register_token("SIM", object())


def test_allowances(chain):
    assert chain.get_allowance("SIM", "Alice", "Pool") == 0
    chain.set_allowance("SIM", "Alice", "Pool", 10)
    assert chain.get_allowance("SIM", "Alice", "Pool") == 10
    with pytest.raises(ValueError):
        chain.set_allowance("SIM", "Alice", "Pool", -1)


def test_transaction_commits(chain):
    chain.credit_token("SIM", "Alice", 100)
    with chain.transaction("move"):
        chain.transfer_token("SIM", "Alice", "Bob", 40)
        chain.log_event("Moved", {"amount": 40})

    assert chain.get_token_balance("SIM", "Bob") == 40
    assert chain.get_events(name="Moved") == [("Moved", {"amount": 40})]
    assert chain.metrics["tx_committed"] == 1


def test_transaction_rolls_back_on_error(chain):
    chain.credit_token("SIM", "Alice", 100)
    chain.set_allowance("SIM", "Alice", "Pool", 100)

    with pytest.raises(RuntimeError):
        with chain.transaction("move"):
            chain.transfer_token("SIM", "Alice", "Bob", 40)
            chain.set_allowance("SIM", "Alice", "Pool", 60)
            chain.log_event("Moved", {"amount": 40})
            raise RuntimeError("abort")

    assert chain.get_token_balance("SIM", "Alice") == 100
    assert chain.get_token_balance("SIM", "Bob") == 0
    assert chain.get_allowance("SIM", "Alice", "Pool") == 100
    assert chain.get_events() == []
    assert chain.metrics["tx_reverted"] == 1


def test_nested_transaction_joins_outer(chain):
    chain.credit_token("SIM", "Alice", 100)
    with pytest.raises(RuntimeError):
        with chain.transaction("outer"):
            with chain.transaction("inner"):
                chain.transfer_token("SIM", "Alice", "Bob", 10)
            raise RuntimeError("abort")

    assert chain.get_token_balance("SIM", "Bob") == 0
    assert chain.metrics["tx_committed"] == 0


def test_step_advances_block_and_scopes_events(model):
    chain = BlockchainAgent(model=model, block_time=2.0)
    chain.log_event("Genesis", None)
    chain.step()
    chain.step()
    chain.log_event("Later", {"n": 1})

    assert chain.get_current_block() == 2
    assert chain.timestamp == pytest.approx(4.0)
    assert chain.get_events(block=0) == [("Genesis", None)]
    assert chain.get_events(block=2) == [("Later", {"n": 1})]
    assert [name for name, _ in chain.get_events()] == ["Genesis", "Later"]
    assert len(chain.get_metrics()["blocks"]) == 2


def test_account_state(chain, token_a, token_b):
    token_a.mint("Alice", 7)
    state = chain.get_account_state("Alice")
    assert state["tokens"] == {"TKA": 7, "TKB": 0}
    assert state["known"] is False
    chain.create_account("Alice")
    assert chain.get_account_state("Alice")["known"] is True
