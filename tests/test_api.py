"""
Pytest tests for the StampID HTTP API (FastAPI TestClient).

Uses temporary SQLite DB, in-memory TTL store and a fake ledger via conftest fixtures.
"""

from __future__ import annotations

from datetime import datetime, timezone

from eth_abi import encode as abi_encode
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import to_hex

from backend_stampid.auth import create_challenge_message, generate_nonce
from backend_stampid.config import get_settings
from backend_stampid.core.exceptions import LedgerUnavailableError
from backend_stampid.stamp import STAMPED_TOPIC, LedgerLog

from conftest import CONTRACT, TX_REF

AUTHOR = "0x2222222222222222222222222222222222222222"
VOTER = "0x4444444444444444444444444444444444444444"


def create_entry(client, author: str = AUTHOR, **overrides):
    body = {
        "authorAddress": author,
        "title": "Out of bounds",
        "category": "Halo 3",
        "platform": "xbox",
        "description": "Grenade jump off the ramp.",
        "mediaUrl": "https://example.com/v/9",
    }
    body.update(overrides)
    return client.post("/api/entries", json=body)


def anchored(fingerprint: str) -> LedgerLog:
    return LedgerLog(
        address=CONTRACT,
        topics=(STAMPED_TOPIC, bytes.fromhex(fingerprint[2:]), bytes(12) + bytes.fromhex(AUTHOR[2:])),
        data=abi_encode(["uint256", "string"], [1_714_566_600, ""]),
    )


def signed_profile_request(account, domain="localhost:3000", **fields):
    message = create_challenge_message(
        domain=domain,
        address=account.address,
        statement="Update profile",
        uri="http://localhost:3000",
        chain_id=8453,
        nonce=generate_nonce(),
        now=datetime.now(timezone.utc),
    )
    signature = to_hex(account.sign_message(encode_defunct(text=message)).signature)
    return {"walletAddress": account.address, "message": message, "signature": signature, **fields}


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_auth_nonce(client):
    r = client.get("/api/auth/nonce")
    assert r.status_code == 200
    assert len(r.json()["nonce"]) == 32


def test_auth_callback_creates_account_once(client):
    r1 = client.post("/api/auth/callback", json={"walletAddress": AUTHOR})
    r2 = client.post("/api/auth/callback", json={"walletAddress": AUTHOR.upper().replace("0X", "0x")})
    assert r1.status_code == 200
    assert r1.json()["id"] == r2.json()["id"]
    assert r1.json()["displayName"] == "0x2222...2222"
    assert r1.json()["tier"] == "BRONZE"


def test_auth_callback_rejects_bad_address(client):
    r = client.post("/api/auth/callback", json={"walletAddress": "not-an-address"})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid wallet address", "code": "validation_error"}


def test_create_entry_returns_fingerprint_and_awards_points(client):
    r = create_entry(client)
    assert r.status_code == 201
    entry = r.json()
    assert entry["fingerprint"].startswith("0x")
    assert len(entry["fingerprint"]) == 66
    assert entry["authorAddress"] == AUTHOR

    profile = client.get(f"/api/users/{entry['authorId']}").json()
    assert profile["reputationPoints"] == 60
    assert profile["tierProgress"]["nextTier"] == "SILVER"


def test_create_entry_rejects_wrong_client_fingerprint(client):
    r = create_entry(client, fingerprint="0x" + "00" * 32)
    assert r.status_code == 400
    assert r.json()["error"] == "Fingerprint does not match content"


def test_create_entry_missing_field(client):
    r = create_entry(client, title="   ")
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"


def test_get_entry_and_vote(client):
    entry = create_entry(client).json()
    r = client.post(f"/api/entries/{entry['id']}/votes", json={"voterAddress": VOTER})
    assert r.status_code == 200
    assert r.json() == {"entryId": entry["id"], "votes": 1}

    again = client.post(f"/api/entries/{entry['id']}/votes", json={"voterAddress": VOTER})
    assert again.status_code == 400

    fetched = client.get(f"/api/entries/{entry['id']}").json()
    assert fetched["votes"] == 1
    assert client.get("/api/entries/999").status_code == 404


def test_stamp_confirm_verified(client, fake_ledger):
    entry = create_entry(client).json()
    fake_ledger.logs[TX_REF] = [anchored(entry["fingerprint"])]

    r = client.post("/api/stamp/confirm", json={"entryId": entry["id"], "txRef": TX_REF})

    assert r.status_code == 200
    assert r.json() == {"accepted": True, "verified": True, "status": "verified"}
    fetched = client.get(f"/api/entries/{entry['id']}").json()
    assert fetched["anchorTxRef"] == TX_REF
    assert fetched["anchorConfirmedAt"] is not None


def test_stamp_confirm_unknown_tx(client):
    entry = create_entry(client).json()
    r = client.post("/api/stamp/confirm", json={"entryId": entry["id"], "txRef": TX_REF})
    assert r.status_code == 200
    assert r.json() == {"accepted": True, "verified": False, "status": "unverified"}


def test_stamp_confirm_ledger_down(client, fake_ledger):
    entry = create_entry(client).json()
    fake_ledger.error = LedgerUnavailableError("timeout")
    r = client.post("/api/stamp/confirm", json={"entryId": entry["id"], "txRef": TX_REF})
    assert r.status_code == 200
    assert r.json()["status"] == "dependency_unavailable"
    assert r.json()["verified"] is False


def test_stamp_confirm_validation(client, fake_ledger):
    r = client.post("/api/stamp/confirm", json={"entryId": "x", "txRef": TX_REF})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid entryId", "code": "validation_error"}
    r = client.post("/api/stamp/confirm", json={"entryId": 1, "txRef": "0x12"})
    assert r.json()["error"] == "Invalid txRef"
    assert fake_ledger.calls == []


def test_stamp_confirm_missing_entry(client):
    r = client.post("/api/stamp/confirm", json={"entryId": 999, "txRef": TX_REF})
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"


def test_ids_beyond_integer_column_are_rejected(client, fake_ledger):
    huge = 2**70
    for r in (
        client.get(f"/api/entries/{huge}"),
        client.post(f"/api/entries/{huge}/votes", json={"voterAddress": VOTER}),
        client.get(f"/api/users/{huge}"),
        client.post(f"/api/reputation/{huge}/recalculate"),
    ):
        assert r.status_code == 400
        assert r.json()["code"] == "validation_error"

    r = client.post("/api/stamp/confirm", json={"entryId": huge, "txRef": TX_REF})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid entryId", "code": "validation_error"}
    assert fake_ledger.calls == []


def test_profile_update_requires_signature(client):
    r = client.patch("/api/users/me", json={"walletAddress": AUTHOR, "displayName": "x"})
    assert r.status_code == 401
    assert r.json()["error"] == "Signature required for profile updates"


def test_profile_update_with_signature(client):
    account = Account.create()
    r = client.patch("/api/users/me", json=signed_profile_request(account, displayName="Speedrunner", bio="hi"))
    assert r.status_code == 200
    body = r.json()
    assert body["displayName"] == "Speedrunner"
    assert body["bio"] == "hi"
    assert body["walletAddress"] == account.address.lower()


def test_profile_update_replay_rejected(client):
    account = Account.create()
    payload = signed_profile_request(account, displayName="Once")
    assert client.patch("/api/users/me", json=payload).status_code == 200
    replay = client.patch("/api/users/me", json=payload)
    assert replay.status_code == 401
    assert replay.json()["error"] == "Nonce already used"


def test_profile_update_rejects_foreign_domain(client):
    account = Account.create()
    r = client.patch("/api/users/me", json=signed_profile_request(account, domain="evil.example", displayName="x"))
    assert r.status_code == 401
    assert r.json()["error"] == "Domain mismatch"


def test_profile_update_only_touches_sent_fields(client):
    account = Account.create()
    client.patch("/api/users/me", json=signed_profile_request(account, displayName="Name", bio="Bio"))
    r = client.patch("/api/users/me", json=signed_profile_request(account, bio=None))
    assert r.json()["displayName"] == "Name"
    assert r.json()["bio"] is None


def test_leaderboard(client):
    create_entry(client, author=AUTHOR)
    create_entry(client, author=VOTER, category="Skyrim")
    create_entry(client, author=VOTER, category="Skyrim", title="Second")

    r = client.get("/api/leaderboard")
    assert r.status_code == 200
    entries = r.json()["entries"]
    assert [e["walletAddress"] for e in entries] == [VOTER, AUTHOR]
    assert entries[0]["reputationPoints"] == 70

    r = client.get("/api/leaderboard", params={"category": "skyrim"})
    assert r.json()["category"] == "skyrim"
    assert [e["entryCount"] for e in r.json()["entries"]] == [2]

    assert client.get("/api/leaderboard", params={"limit": 1000}).json()["limit"] == 100
    assert client.get("/api/leaderboard", params={"offset": -1}).status_code == 400
    assert client.get("/api/leaderboard", params={"limit": "many"}).status_code == 400


def test_recalculate(client):
    entry = create_entry(client).json()
    r = client.post(f"/api/reputation/{entry['authorId']}/recalculate")
    assert r.status_code == 200
    assert r.json() == {"accountId": entry["authorId"], "newPoints": 60, "newTier": "BRONZE", "tierChanged": False}
    assert client.post("/api/reputation/999/recalculate").status_code == 404


def test_recalculate_admin_token(client, monkeypatch):
    monkeypatch.setenv("STAMPID_ADMIN_TOKEN", "s3cret")
    get_settings.cache_clear()
    entry = create_entry(client).json()
    url = f"/api/reputation/{entry['authorId']}/recalculate"
    assert client.post(url).status_code == 401
    assert client.post(url, headers={"X-Admin-Token": "s3cret"}).status_code == 200


def test_rate_limited_entry_submission(client):
    limit = get_settings().rate_limit("entry_submit").limit
    for i in range(limit):
        assert create_entry(client, title=f"Glitch {i}").status_code == 201
    r = create_entry(client, title="One too many")
    assert r.status_code == 429
    assert r.json()["code"] == "rate_limited"
    assert r.headers["X-RateLimit-Remaining"] == "0"
    assert int(r.headers["Retry-After"]) > 0


def test_rate_limit_is_per_client(client):
    limit = get_settings().rate_limit("entry_submit").limit
    for i in range(limit):
        create_entry(client, title=f"Glitch {i}")
    r = client.post(
        "/api/entries",
        headers={"X-Forwarded-For": "198.51.100.4"},
        json={
            "authorAddress": VOTER,
            "title": "Other client",
            "category": "Skyrim",
            "platform": "pc",
            "description": "Different IP.",
        },
    )
    assert r.status_code == 201
