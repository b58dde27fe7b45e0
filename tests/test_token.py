from cpmm_abm.agents.token import ERC20Token


def test_initial_supply_goes_to_owner(chain):
    token = ERC20Token(chain, address="SIM", symbol="SIM", initial_supply=1000, owner="Alice")
    assert token.balance_of("Alice") == 1000
    assert token.total_supply == 1000
    assert chain.is_token("SIM")
    assert chain.get_token("SIM") is token


def test_transfer_success_and_failure(token_a):
    token_a.mint("Alice", 100)
    assert token_a.transfer("Alice", "Bob", 30) is True
    assert token_a.transfer("Alice", "Bob", 71) is False
    assert token_a.balance_of("Alice") == 70
    assert token_a.balance_of("Bob") == 30


def test_transfer_from_consumes_allowance(token_a):
    token_a.mint("Alice", 100)
    token_a.approve("Alice", "Pool", 60)

    assert token_a.transfer_from("Pool", "Alice", "Pool", 50) is True
    assert token_a.allowance("Alice", "Pool") == 10
    assert token_a.balance_of("Pool") == 50

    assert token_a.transfer_from("Pool", "Alice", "Pool", 11) is False
    assert token_a.balance_of("Alice") == 50


def test_transfer_from_fails_on_balance_keeps_allowance(token_a):
    token_a.mint("Alice", 5)
    token_a.approve("Alice", "Pool", 100)
    assert token_a.transfer_from("Pool", "Alice", "Pool", 6) is False
    assert token_a.allowance("Alice", "Pool") == 100


def test_transfers_are_logged(chain, token_a):
    token_a.mint("Alice", 10)
    token_a.transfer("Alice", "Bob", 4)
    transfers = chain.get_events(name="Transfer")
    assert transfers[-1] == ("Transfer", {"token": "TKA", "from": "Alice", "to": "Bob", "amount": 4})
    assert transfers[0][1]["from"] is None
