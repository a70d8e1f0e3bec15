import pytest


@pytest.fixture()
def subscription(client, account):
    response = client.post("/api/subscriptions/", headers=account["headers"], json={
        "card_id": account["card"]["id"],
        "author_id": account["author_id"],
        "description": "Music",
        "amount": 120.0,
        "billing_day": 1,
        "billing_cycle": "annual",
        "next_billing_date": "2025-03-01",
    })
    assert response.status_code == 200, response.text
    return response.json()


class TestSubscriptionEndpoints:

    def test_create_reports_monthly_equivalent(self, subscription):
        assert subscription["monthly_equivalent"] == 10.0
        assert subscription["paused"] is False

    def test_default_next_billing_date(self, client, account):
        response = client.post("/api/subscriptions/", headers=account["headers"], json={
            "card_id": account["card"]["id"],
            "author_id": account["author_id"],
            "description": "Video",
            "amount": 30.0,
            "billing_day": 5,
        })
        assert response.json()["next_billing_date"] == "2025-04-05"

    def test_invalid_cycle(self, client, account):
        response = client.post("/api/subscriptions/", headers=account["headers"], json={
            "card_id": account["card"]["id"],
            "author_id": account["author_id"],
            "description": "Video",
            "amount": 30.0,
            "billing_day": 5,
            "billing_cycle": "weekly",
        })
        assert response.status_code == 422

    def test_run_bills_due_subscriptions(self, client, account, subscription):
        headers = account["headers"]
        created = client.post("/api/subscriptions/run", headers=headers).json()
        assert [(i["description"], i["amount"], i["purchase_date"]) for i in created] == [
            ("Music", 120.0, "2025-03-01")
        ]
        assert client.post("/api/subscriptions/run", headers=headers).json() == []

        updated = client.get("/api/subscriptions/", headers=headers).json()[0]
        assert updated["next_billing_date"] == "2026-03-01"

    def test_summary(self, client, account, subscription):
        summary = client.get("/api/subscriptions/summary", headers=account["headers"]).json()
        assert summary["active_count"] == 1
        assert summary["monthly_total"] == 10.0
        assert summary["next_renewal_id"] == subscription["id"]
        assert summary["days_until_renewal"] == -19

    def test_pause_and_resume_skips_missed_dates(self, client, account, subscription):
        headers = account["headers"]
        client.post(f"/api/subscriptions/{subscription['id']}/pause", headers=headers)
        assert client.post("/api/subscriptions/run", headers=headers).json() == []

        resumed = client.post(f"/api/subscriptions/{subscription['id']}/resume", headers=headers).json()
        assert resumed["paused"] is False
        assert resumed["next_billing_date"] == "2025-04-01"

    def test_update_amount_rejects_inconsistent_split(self, client, account):
        headers = account["headers"]
        bruno = client.post("/api/authors/", headers=headers, json={"name": "Bruno Lima"}).json()
        sub = client.post("/api/subscriptions/", headers=headers, json={
            "card_id": account["card"]["id"],
            "author_id": account["author_id"],
            "description": "Internet",
            "amount": 100.0,
            "billing_day": 10,
            "assignments": [
                {"author_id": account["author_id"], "amount": 50.0},
                {"author_id": bruno["id"], "amount": 50.0},
            ],
        }).json()
        response = client.put(f"/api/subscriptions/{sub['id']}", headers=headers, json={"amount": 120.0})
        assert response.status_code == 400

    def test_resplit_with_same_authors(self, client, account):
        headers = account["headers"]
        bruno = client.post("/api/authors/", headers=headers, json={"name": "Bruno Lima"}).json()
        sub = client.post("/api/subscriptions/", headers=headers, json={
            "card_id": account["card"]["id"],
            "author_id": account["author_id"],
            "description": "Internet",
            "amount": 100.0,
            "billing_day": 10,
            "assignments": [
                {"author_id": account["author_id"], "amount": 50.0},
                {"author_id": bruno["id"], "amount": 50.0},
            ],
        }).json()

        response = client.put(f"/api/subscriptions/{sub['id']}", headers=headers, json={
            "assignments": [
                {"author_id": account["author_id"], "amount": 70.0},
                {"author_id": bruno["id"], "amount": 30.0},
            ],
        })
        assert response.status_code == 200, response.text
        amounts = {a["author_id"]: a["amount"] for a in response.json()["assignments"]}
        assert amounts == {account["author_id"]: 70.0, bruno["id"]: 30.0}

        response = client.put(f"/api/subscriptions/{sub['id']}", headers=headers, json={
            "assignments": [{"author_id": account["author_id"], "amount": 100.0}],
        })
        assert [a["author_id"] for a in response.json()["assignments"]] == [account["author_id"]]

    def test_update_split_must_add_up(self, client, account, subscription):
        response = client.put(f"/api/subscriptions/{subscription['id']}", headers=account["headers"], json={
            "assignments": [{"author_id": account["author_id"], "amount": 100.0}],
        })
        assert response.status_code == 400

    def test_delete(self, client, account, subscription):
        headers = account["headers"]
        assert client.delete(f"/api/subscriptions/{subscription['id']}", headers=headers).status_code == 200
        assert client.get("/api/subscriptions/", headers=headers).json() == []


class TestCategories:

    def test_defaults_are_listed(self, client, account):
        names = [c["name"] for c in client.get("/api/categories/", headers=account["headers"]).json()]
        assert "Subscriptions" in names
        assert len(names) == 7

    def test_custom_category_lifecycle(self, client, account):
        headers = account["headers"]
        category = client.post("/api/categories/", headers=headers, json={"name": "Pets"}).json()
        item = client.post("/api/items/", headers=headers, json={
            "card_id": account["card"]["id"],
            "description": "Vet",
            "amount": 90.0,
            "author_id": account["author_id"],
            "category_id": category["id"],
            "purchase_date": "2025-03-01",
        }).json()

        assert client.delete(f"/api/categories/{category['id']}", headers=headers).status_code == 200
        assert client.get(f"/api/items/{item['id']}", headers=headers).json()["category_id"] is None

    def test_defaults_cannot_be_deleted(self, client, account):
        headers = account["headers"]
        default = client.get("/api/categories/", headers=headers).json()[0]
        assert client.delete(f"/api/categories/{default['id']}", headers=headers).status_code == 404
