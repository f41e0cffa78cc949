"""
Integration tests for the token ledger HTTP API
Tests end-to-end flows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from token_ledger.api import create_app, LedgerSystem
from token_ledger.config import TokenLedgerConfig, NULL_ACCOUNT


OWNER = "0x1111111111111111111111111111111111111111"
ALICE = "0x2222222222222222222222222222222222222222"
MALLORY = "0x3333333333333333333333333333333333333333"


def make_client(**overrides):
    settings = dict(enable_journal=True, journal_backend="memory")
    settings.update(overrides)
    system = LedgerSystem(TokenLedgerConfig(_env_file=None, **settings))
    return TestClient(create_app(system)), system


@pytest.fixture
def client():
    test_client, _ = make_client()
    return test_client


class TestReads:

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"

    def test_empty_ledger(self, client):
        assert client.get("/supply").json()["total_supply"] == "0"
        assert client.get(f"/balances/{OWNER}").json() == {"account": OWNER, "balance": "0"}


class TestMutations:

    def test_mint_and_query(self, client):
        r = client.post("/mint", json={"account": ALICE, "amount": "1000000000000000000"})

        assert r.status_code == 201
        assert r.json() == {"event": "Mint", "account": ALICE, "amount": "1000000000000000000"}
        assert client.get("/supply").json()["total_supply"] == "1000000000000000000"
        assert client.get(f"/balances/{ALICE}").json()["balance"] == "1000000000000000000"

    def test_burn(self, client):
        client.post("/mint", json={"account": ALICE, "amount": "1000"})

        r = client.post("/burn", json={"account": ALICE, "amount": "20"})

        assert r.status_code == 200
        assert r.json()["event"] == "Burn"
        assert client.get(f"/balances/{ALICE}").json()["balance"] == "980"

    def test_transfer_from_caller(self, client):
        client.post("/mint", json={"account": OWNER, "amount": "100"})

        r = client.post("/transfer", json={"to": ALICE, "amount": "100"},
                        headers={"X-Caller-Id": OWNER})

        assert r.status_code == 200
        assert r.json() == {"event": "Transfer", "from": OWNER, "to": ALICE, "amount": "100"}
        assert client.get(f"/balances/{OWNER}").json()["balance"] == "0"
        assert client.get(f"/balances/{ALICE}").json()["balance"] == "100"

    def test_transfer_with_explicit_sender(self, client):
        client.post("/mint", json={"account": OWNER, "amount": "10"})

        r = client.post("/transfer", json={"from": OWNER, "to": ALICE, "amount": "4"})

        assert r.status_code == 200
        assert client.get(f"/balances/{ALICE}").json()["balance"] == "4"

    def test_transfer_from_other_account_rejected(self, client):
        client.post("/mint", json={"account": ALICE, "amount": "100"})

        r = client.post("/transfer", json={"from": ALICE, "to": MALLORY, "amount": "100"},
                        headers={"X-Caller-Id": MALLORY})

        assert r.status_code == 403
        assert r.json()["detail"]["error"] == "Unauthorized"
        assert client.get(f"/balances/{ALICE}").json()["balance"] == "100"
        assert client.get(f"/balances/{MALLORY}").json()["balance"] == "0"

    def test_transfer_sender_matching_caller(self, client):
        client.post("/mint", json={"account": OWNER, "amount": "10"})

        r = client.post("/transfer", json={"from": OWNER, "to": ALICE, "amount": "10"},
                        headers={"X-Caller-Id": OWNER})

        assert r.status_code == 200
        assert client.get(f"/balances/{ALICE}").json()["balance"] == "10"

    def test_transfer_without_sender(self, client):
        r = client.post("/transfer", json={"to": ALICE, "amount": "1"})
        assert r.status_code == 400


class TestErrors:

    def test_insufficient_balance(self, client):
        client.post("/mint", json={"account": OWNER, "amount": "100"})

        r = client.post("/transfer", json={"to": ALICE, "amount": "101"},
                        headers={"X-Caller-Id": OWNER})

        assert r.status_code == 409
        assert r.json()["detail"]["error"] == "InsufficientBalance"
        assert client.get(f"/balances/{OWNER}").json()["balance"] == "100"

    def test_null_recipient(self, client):
        client.post("/mint", json={"account": OWNER, "amount": "100"})

        r = client.post("/transfer", json={"to": NULL_ACCOUNT, "amount": "100"},
                        headers={"X-Caller-Id": OWNER})

        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "InvalidRecipient"

    def test_malformed_amount(self, client):
        r = client.post("/mint", json={"account": ALICE, "amount": "-5"})
        assert r.status_code == 422

    def test_amount_beyond_integer_digit_limit(self, client):
        r = client.post("/mint", json={"account": ALICE, "amount": "9" * 5000})

        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "InvalidAmount"
        assert client.get("/supply").json()["total_supply"] == "0"

    def test_overflow(self):
        client, _ = make_client(integer_bits=8)

        r = client.post("/mint", json={"account": ALICE, "amount": "256"})

        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "Overflow"

    def test_mint_authorities(self):
        client, _ = make_client(mint_authorities=OWNER)

        denied = client.post("/mint", json={"account": ALICE, "amount": "5"},
                             headers={"X-Caller-Id": ALICE})
        allowed = client.post("/mint", json={"account": ALICE, "amount": "5"},
                              headers={"X-Caller-Id": OWNER})

        assert denied.status_code == 403
        assert allowed.status_code == 201


class TestJournal:

    def test_verify_journal(self):
        client, system = make_client()
        client.post("/mint", json={"account": OWNER, "amount": "10"})
        client.post("/transfer", json={"to": ALICE, "amount": "3"}, headers={"X-Caller-Id": OWNER})

        r = client.get("/journal/verify")

        assert r.status_code == 200
        assert r.json()["valid"] is True
        assert r.json()["total_entries"] == 2
        assert system.journal.count_entries() == 2

    def test_journal_disabled(self):
        client, _ = make_client(enable_journal=False)
        assert client.get("/journal/verify").status_code == 404

    def test_sqlite_journal_restores_state(self, tmp_path):
        db_path = str(tmp_path / "ledger.db")
        client, system = make_client(journal_backend="sqlite", journal_path=db_path)
        client.post("/mint", json={"account": OWNER, "amount": "50"})
        client.post("/burn", json={"account": OWNER, "amount": "8"})
        system.storage.close()

        restarted, _ = make_client(journal_backend="sqlite", journal_path=db_path)

        assert restarted.get("/supply").json()["total_supply"] == "42"
        assert restarted.get(f"/balances/{OWNER}").json()["balance"] == "42"
