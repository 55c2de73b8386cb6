from decimal import Decimal


def _bank(**kw):
    body = {
        "accountName": "Cuenta sueldo",
        "bank": "galicia",
        "accountType": "checking",
        "accountNumber": "4455",
        "cbu": "0170123456789012345678",
        "alias": "Mi.Alias.Sueldo",
        "currency": "ARS",
        "balance": "1000",
        "ownerName": "Ana",
    }
    body.update(kw)
    return body


def test_register_and_login(client):
    r = client.post(
        "/auth/register",
        json={"email": "Carla@Example.com", "password": "supersecret", "confirm_password": "supersecret", "name": "Carla"},
    )
    assert r.status_code == 201, r.text
    token = r.json()["access_token"]
    assert client.get("/accounts", headers={"Authorization": f"Bearer {token}"}).status_code == 200

    r = client.post("/auth/login", json={"email": "carla@example.com", "password": "supersecret"})
    assert r.status_code == 200
    assert r.json()["name"] == "Carla"

    r = client.post("/auth/login", json={"email": "carla@example.com", "password": "wrong-password"})
    assert r.status_code == 401


def test_register_validation(client):
    base = {"email": "dan@example.com", "password": "supersecret", "confirm_password": "supersecret", "name": "Dan"}

    assert client.post("/auth/register", json={**base, "email": "nope"}).status_code == 400
    assert client.post("/auth/register", json={**base, "password": "short", "confirm_password": "short"}).status_code == 400
    assert client.post("/auth/register", json={**base, "confirm_password": "different1"}).status_code == 400
    assert client.post("/auth/register", json={**base, "name": "D"}).status_code == 400

    assert client.post("/auth/register", json=base).status_code == 201
    r = client.post("/auth/register", json=base)
    assert r.status_code == 409
    assert r.json() == {"error": "email already registered"}


def test_bank_account_creation_is_idempotent(client, auth_headers):
    r1 = client.post("/bank-accounts", json=_bank(), headers=auth_headers)
    r2 = client.post("/bank-accounts", json=_bank(), headers=auth_headers)
    assert r1.status_code == 201, r1.text
    assert r2.status_code == 200
    assert r1.json()["id"] == r2.json()["id"]
    assert r1.json()["alias"] == "mi.alias.sueldo"
    assert len(client.get("/bank-accounts", headers=auth_headers).json()) == 1


def test_bank_account_validation(client, auth_headers):
    r = client.post("/bank-accounts", json=_bank(cbu="123"), headers=auth_headers)
    assert r.status_code == 400
    assert "22 digits" in r.json()["error"]


def test_bank_account_lookup(client, auth_headers):
    acc = client.post("/bank-accounts", json=_bank(), headers=auth_headers).json()

    r = client.get("/bank-accounts/lookup", params={"alias": "MI.ALIAS.SUELDO"}, headers=auth_headers)
    assert r.json()["id"] == acc["id"]
    r = client.get("/bank-accounts/lookup", params={"cbu": "0170123456789012345678"}, headers=auth_headers)
    assert r.json()["id"] == acc["id"]
    assert client.get("/bank-accounts/lookup", params={"alias": "other"}, headers=auth_headers).status_code == 404
    assert client.get("/bank-accounts/lookup", headers=auth_headers).status_code == 400


def test_bank_account_used_as_source_cannot_be_deleted(client, auth_headers):
    acc = client.post("/bank-accounts", json=_bank(), headers=auth_headers).json()
    r = client.post(
        "/transactions/auto",
        json={"amount": 50, "description": "Kiosco", "fromBankAccountId": acc["id"], "paymentMethod": "debit_card"},
        headers=auth_headers,
    )
    assert r.status_code == 201, r.text

    r = client.delete(f"/bank-accounts/{acc['id']}", headers=auth_headers)
    assert r.status_code == 400
    assert Decimal(client.get("/bank-accounts", headers=auth_headers).json()[0]["balance"]) == Decimal("950")


def test_set_balance_and_delete_wallet(client, auth_headers):
    w = client.post(
        "/wallets", json={"walletName": "Mercado Pago", "provider": "mercadopago"}, headers=auth_headers
    ).json()
    r = client.put(f"/wallets/{w['id']}/balance", json={"balance": "75.5"}, headers=auth_headers)
    assert Decimal(r.json()["balance"]) == Decimal("75.5")

    assert client.delete(f"/wallets/{w['id']}", headers=auth_headers).json() == {"ok": True}
    assert client.get("/wallets", headers=auth_headers).json() == []


def test_accounts_are_scoped_to_owner(client, auth_headers, other_user, make_account):
    theirs = make_account(other_user, "10")
    assert client.get("/accounts", headers=auth_headers).json() == []
    r = client.patch(f"/accounts/{theirs.id}", json={"name": "mine now"}, headers=auth_headers)
    assert r.status_code == 404


def test_contacts_favorites_first_and_search(client, auth_headers):
    client.post("/contacts", json={"name": "Zoe", "isFavorite": True}, headers=auth_headers)
    client.post("/contacts", json={"name": "Abel", "alias": "abel.pagos"}, headers=auth_headers)

    names = [c["name"] for c in client.get("/contacts", headers=auth_headers).json()]
    assert names == ["Zoe", "Abel"]

    found = client.get("/contacts", params={"search": "PAGOS"}, headers=auth_headers).json()
    assert [c["name"] for c in found] == ["Abel"]

    r = client.get("/contacts/lookup", params={"alias": "abel.pagos"}, headers=auth_headers)
    assert r.json()["name"] == "Abel"


def test_contact_creation_is_idempotent(client, auth_headers):
    headers = {**auth_headers, "Idempotency-Key": "contact-1"}
    a = client.post("/contacts", json={"name": "Eva"}, headers=headers)
    b = client.post("/contacts", json={"name": "Eva"}, headers=headers)
    assert a.status_code == 201
    assert b.status_code == 200
    assert a.json()["id"] == b.json()["id"]


def test_contact_folders(client, auth_headers):
    c = client.post("/contacts", json={"name": "Flor"}, headers=auth_headers).json()
    f = client.post("/contact-folders", json={"name": "Familia"}, headers=auth_headers).json()

    assert client.post(f"/contact-folders/{f['id']}/contacts/{c['id']}", headers=auth_headers).json() == {"ok": True}
    folders = client.get("/contact-folders", headers=auth_headers).json()
    assert folders[0]["contactIds"] == [c["id"]]

    assert client.delete(f"/contact-folders/{f['id']}/contacts/{c['id']}", headers=auth_headers).status_code == 200
    assert client.delete(f"/contact-folders/{f['id']}/contacts/{c['id']}", headers=auth_headers).status_code == 404
    assert client.post(f"/contact-folders/{f['id']}/contacts/missing", headers=auth_headers).status_code == 404


def test_goals_progress_through_saving_transactions(client, auth_headers):
    g = client.post("/goals", json={"name": "Viaje", "targetAmount": 1000}, headers=auth_headers).json()
    r = client.post(
        "/transactions",
        json={"type": "saving", "category": "savings", "amount": 250, "description": "Ahorro", "goalId": g["id"]},
        headers={**auth_headers, "Idempotency-Key": "g1"},
    )
    assert r.status_code == 201

    goals = client.get("/goals", headers=auth_headers).json()
    assert Decimal(goals[0]["currentAmount"]) == Decimal("250")

    r = client.patch(f"/goals/{g['id']}/status", json={"status": "paused"}, headers=auth_headers)
    assert r.json()["status"] == "paused"
    assert client.get("/goals", headers=auth_headers).json() == []


def test_audit_lists_own_events(client, auth_headers):
    client.post("/accounts", json={"name": "Caja", "type": "cash"}, headers=auth_headers)
    rows = client.get("/audit", params={"entity_type": "account"}, headers=auth_headers).json()
    assert [r["action"] for r in rows] == ["account.create"]


def test_oversized_idempotency_keys_on_bank_accounts_and_contacts(client, auth_headers):
    r = client.post("/bank-accounts", json=_bank(idempotencyKey="b" * 129), headers=auth_headers)
    assert r.status_code == 400
    assert "128" in r.json()["error"]

    r = client.post("/contacts", json={"name": "Eva"}, headers={**auth_headers, "Idempotency-Key": "c" * 129})
    assert r.status_code == 400
    assert client.get("/contacts", headers=auth_headers).json() == []


def test_balances_are_limited_to_cents(client, auth_headers):
    r = client.post("/bank-accounts", json=_bank(balance="10.005"), headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "balance: balance must have at most 2 decimal places"

    w = client.post("/wallets", json={"walletName": "Uala", "provider": "uala"}, headers=auth_headers).json()
    r = client.put(f"/wallets/{w['id']}/balance", json={"balance": "0.004"}, headers=auth_headers)
    assert r.status_code == 400
    assert Decimal(client.get("/wallets", headers=auth_headers).json()[0]["balance"]) == Decimal("0")


def test_closed_goal_status_is_stored_as_completed(client, auth_headers):
    g = client.post("/goals", json={"name": "Auto", "targetAmount": "5000"}, headers=auth_headers).json()
    r = client.patch(f"/goals/{g['id']}/status", json={"status": "closed"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "completed"

    done = client.get("/goals", params={"status": "completed"}, headers=auth_headers).json()
    assert [x["id"] for x in done] == [g["id"]]

    r = client.patch(f"/goals/{g['id']}/status", json={"status": "archived"}, headers=auth_headers)
    assert r.status_code == 400
