from .conftest import create_card, register


class TestCardCrud:

    def test_new_card_has_full_balance(self, client, account):
        card = account["card"]
        assert card["current_debt"] == 0.0
        assert card["available_balance"] == 5000.0
        assert card["color"] == "#6366f1"
        assert card["is_shared"] is False
        assert card["sort_order"] == 1

    def test_rejects_invalid_days(self, client, account):
        response = client.post("/api/cards/", headers=account["headers"], json={
            "name": "Broken", "closing_day": 32, "due_day": 10,
        })
        assert response.status_code == 422

    def test_update(self, client, account):
        card_id = account["card"]["id"]
        response = client.put(f"/api/cards/{card_id}", headers=account["headers"], json={"card_limit": 8000})
        assert response.status_code == 200
        assert response.json()["available_balance"] == 8000.0

    def test_reorder(self, client, account):
        headers = account["headers"]
        second = create_card(client, headers, name="Inter")
        response = client.put("/api/cards/order", headers=headers, json={
            "card_ids": [second["id"], account["card"]["id"]],
        })
        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["Inter", "Nubank"]

    def test_deactivated_cards_sort_last(self, client, account):
        headers = account["headers"]
        create_card(client, headers, name="Inter")
        client.post(f"/api/cards/{account['card']['id']}/deactivate", headers=headers)

        cards = client.get("/api/cards/", headers=headers).json()
        assert [(c["name"], c["active"]) for c in cards] == [("Inter", True), ("Nubank", False)]
        active_only = client.get("/api/cards/?include_inactive=false", headers=headers).json()
        assert [c["name"] for c in active_only] == ["Inter"]

    def test_other_users_card_is_hidden(self, client, account):
        headers, _ = register(client, name="Eve", email="eve@example.com")
        assert client.get(f"/api/cards/{account['card']['id']}", headers=headers).status_code == 404


class TestCurrentInvoiceCycle:

    def test_after_closing_day(self, client, account):
        # Today is 2025-03-20 and the card closes on the 15th
        response = client.get(f"/api/cards/{account['card']['id']}/current-invoice", headers=account["headers"])
        assert response.json() == {
            "card_id": account["card"]["id"],
            "reference_month": 4,
            "reference_year": 2025,
            "closing_date": "2025-04-15",
            "due_date": "2025-05-10",
        }

    def test_explicit_date(self, client, account):
        response = client.get(
            f"/api/cards/{account['card']['id']}/current-invoice?on=2025-03-10", headers=account["headers"]
        )
        body = response.json()
        assert (body["reference_month"], body["reference_year"]) == (3, 2025)


class TestInvoiceView:

    def add_item(self, client, account, amount, **extra):
        payload = {
            "card_id": account["card"]["id"],
            "description": "Groceries",
            "amount": amount,
            "author_id": account["author_id"],
        }
        payload.update(extra)
        response = client.post("/api/items/", headers=account["headers"], json=payload)
        assert response.status_code == 200, response.text
        return response.json()

    def test_month_without_invoice_is_empty(self, client, account):
        response = client.get(f"/api/cards/{account['card']['id']}/invoices/2025/7", headers=account["headers"])
        body = response.json()
        assert body["invoice"] is None
        assert body["items"] == []
        assert body["totals"] == {"total": 0.0, "paid": 0.0, "unpaid": 0.0}
        assert body["closing_date"] == "2025-07-15"
        assert body["due_date"] == "2025-08-10"

    def test_items_land_on_purchase_cycle(self, client, account):
        self.add_item(client, account, 50.0, purchase_date="2025-03-01")
        self.add_item(client, account, 70.0, purchase_date="2025-03-18")
        self.add_item(client, account, 30.0)  # today, after closing

        card_id = account["card"]["id"]
        march = client.get(f"/api/cards/{card_id}/invoices/2025/3", headers=account["headers"]).json()
        april = client.get(f"/api/cards/{card_id}/invoices/current", headers=account["headers"]).json()

        assert [i["amount"] for i in march["items"]] == [50.0]
        assert march["is_current"] is False
        assert [i["amount"] for i in april["items"]] == [70.0, 30.0]
        assert april["is_current"] is True
        assert april["totals"]["total"] == 100.0

    def test_card_debt_follows_unpaid_items(self, client, account):
        item = self.add_item(client, account, 120.0, purchase_date="2025-03-01")
        card_id = account["card"]["id"]
        card = client.get(f"/api/cards/{card_id}", headers=account["headers"]).json()
        assert (card["current_debt"], card["available_balance"]) == (120.0, 4880.0)

        client.put(f"/api/items/{item['id']}/toggle-paid", headers=account["headers"], json={"is_paid": True})
        card = client.get(f"/api/cards/{card_id}", headers=account["headers"]).json()
        assert card["current_debt"] == 0.0

    def test_author_filter_and_breakdown(self, client, account):
        headers = account["headers"]
        bruno = client.post("/api/authors/", headers=headers, json={"name": "Bruno Lima"}).json()
        self.add_item(client, account, 100.0, purchase_date="2025-03-01", assignments=[
            {"author_id": account["author_id"], "amount": 60.0},
            {"author_id": bruno["id"], "amount": 40.0},
        ])
        self.add_item(client, account, 25.0, purchase_date="2025-03-02")
        card_id = account["card"]["id"]

        full = client.get(f"/api/cards/{card_id}/invoices/2025/3", headers=headers).json()
        assert full["totals"]["total"] == 125.0
        assert full["items"][0]["author_name"] == "Ana, Bruno"
        breakdown = {a["name"]: (a["total"], a["item_count"]) for a in full["author_totals"]}
        assert breakdown == {"Ana Souza": (85.0, 2), "Bruno Lima": (40.0, 1)}

        filtered = client.get(f"/api/cards/{card_id}/invoices/2025/3?author_id={bruno['id']}", headers=headers).json()
        assert filtered["totals"]["total"] == 40.0
        assert [i["display_amount"] for i in filtered["items"]] == [40.0]

    def test_invalid_month(self, client, account):
        response = client.get(f"/api/cards/{account['card']['id']}/invoices/2025/13", headers=account["headers"])
        assert response.status_code == 422
