"""
tests/integration/test_payments.py — Integration tests for the payment endpoints.

Endpoints covered:
  POST   /budget/:id/payments              → 201 (add)
  PUT    /budget/:id/payments              → 200 (replace all)
  PUT    /budget/:id/payments/:paymentId   → 200 (update one)
  DELETE /budget/:id/payments/:paymentId   → 200 (delete one)

Properties verified:
  - totalPaid is the sum of payment amounts; remainingAmount = cost - totalPaid,
    going negative on overpayment.
  - Rejected requests (bad amount, unknown payer, unknown ids) change nothing.
  - Payer names are snapshots taken when the payment is written.
"""

from __future__ import annotations

from decimal import Decimal

from .conftest import auth_headers, make_expense, make_member


def _amount(value) -> Decimal:
    return Decimal(str(value))


def _add(client, token, expense_id, **payload):
    return client.post(
        f"/api/budget/{expense_id}/payments",
        json=payload,
        headers=auth_headers(token),
    )


def _get(client, token, expense_id) -> dict:
    resp = client.get(f"/api/budget/{expense_id}", headers=auth_headers(token))
    assert resp.status_code == 200
    return resp.get_json()["data"]


# ═══════════════════════════════════════════════════════════════════════════
# POST /budget/:id/payments
# ═══════════════════════════════════════════════════════════════════════════

class TestAddPayment:

    def test_two_payers_accumulate(self, client, app, token):
        alice = make_member(app, "Alice", "Archer")
        bob = make_member(app, "Bob", "Baker")
        expense_id = make_expense(client, token, cost_amount="1000").get_json()["data"]["id"]

        first = _add(client, token, expense_id, amount="400", whoPaid=alice)
        assert first.status_code == 201
        data = first.get_json()["data"]
        assert _amount(data["totalPaid"]) == Decimal("400")
        assert _amount(data["remainingAmount"]) == Decimal("600")
        assert data["paymentStatus"] == "partial"

        second = _add(client, token, expense_id, amount="300", whoPaid=bob)
        data = second.get_json()["data"]
        assert _amount(data["totalPaid"]) == Decimal("700")
        assert _amount(data["remainingAmount"]) == Decimal("300")
        assert [p["whoPaidName"] for p in data["payments"]] == ["Alice Archer", "Bob Baker"]

    def test_defaults_for_optional_fields(self, client, app, token):
        payer = make_member(app)
        expense_id = make_expense(client, token).get_json()["data"]["id"]

        payment = _add(client, token, expense_id, amount="10", whoPaid=payer).get_json()["data"]["payments"][0]
        assert payment["moneyReturned"] is False
        assert payment["notes"] == ""
        assert payment["datePaid"] is not None
        assert payment["id"] is not None

    def test_overpayment_gives_negative_remaining(self, client, app, token):
        payer = make_member(app)
        expense_id = make_expense(client, token, cost_amount="100").get_json()["data"]["id"]

        data = _add(client, token, expense_id, amount="150", whoPaid=payer).get_json()["data"]
        assert _amount(data["remainingAmount"]) == Decimal("-50")
        assert data["paymentStatus"] == "paid"

    def test_non_positive_amount_rejected_without_change(self, client, app, token):
        payer = make_member(app)
        expense_id = make_expense(client, token).get_json()["data"]["id"]

        for bad in ("0", "-5"):
            resp = _add(client, token, expense_id, amount=bad, whoPaid=payer)
            assert resp.status_code == 400
            assert resp.get_json()["error"]["field"] == "amount"

        assert _get(client, token, expense_id)["payments"] == []

    def test_missing_who_paid_rejected(self, client, token):
        expense_id = make_expense(client, token).get_json()["data"]["id"]
        resp = _add(client, token, expense_id, amount="10")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "MISSING_FIELD"

    def test_unknown_payer_returns_404_without_change(self, client, token):
        expense_id = make_expense(client, token).get_json()["data"]["id"]
        resp = _add(client, token, expense_id, amount="10", whoPaid=987654)
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "MEMBER_NOT_FOUND"
        assert _get(client, token, expense_id)["payments"] == []

    def test_unknown_expense_returns_404(self, client, app, token):
        payer = make_member(app)
        resp = _add(client, token, 999999, amount="10", whoPaid=payer)
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "EXPENSE_NOT_FOUND"

    def test_legacy_payment_kept_when_adding(self, client, app, token):
        payer = make_member(app)
        expense = make_expense(
            client, token, cost_amount="60", alreadyPaid=True, whoPaid=payer,
        ).get_json()["data"]

        data = _add(client, token, expense["id"], amount="15", whoPaid=payer).get_json()["data"]
        assert len(data["payments"]) == 2
        assert _amount(data["totalPaid"]) == Decimal("75")

    def test_echoed_server_keys_are_ignored(self, client, app, token):
        payer = make_member(app, "Alice", "Archer")
        expense_id = make_expense(client, token).get_json()["data"]["id"]

        resp = _add(
            client, token, expense_id,
            id=424242, amount="10", whoPaid=payer, whoPaidName="Someone Else",
        )
        assert resp.status_code == 201
        payment = resp.get_json()["data"]["payments"][0]
        assert payment["id"] != 424242
        assert payment["whoPaidName"] == "Alice Archer"


# ═══════════════════════════════════════════════════════════════════════════
# PUT /budget/:id/payments/:paymentId
# ═══════════════════════════════════════════════════════════════════════════

class TestUpdatePayment:

    def _setup(self, client, app, token):
        alice = make_member(app, "Alice", "Archer")
        expense_id = make_expense(client, token, cost_amount="1000").get_json()["data"]["id"]
        data = _add(client, token, expense_id, amount="400", whoPaid=alice).get_json()["data"]
        return alice, expense_id, data["payments"][0]["id"]

    def test_partial_update_merges_fields(self, client, app, token):
        alice, expense_id, payment_id = self._setup(client, app, token)

        resp = client.put(
            f"/api/budget/{expense_id}/payments/{payment_id}",
            json={"moneyReturned": True},
            headers=auth_headers(token),
        )
        assert resp.status_code == 200
        payment = resp.get_json()["data"]["payments"][0]
        assert payment["moneyReturned"] is True
        assert _amount(payment["amount"]) == Decimal("400")
        assert payment["whoPaid"] == alice
        assert _amount(resp.get_json()["data"]["totalReturned"]) == Decimal("400")

    def test_amount_change_updates_totals(self, client, app, token):
        _, expense_id, payment_id = self._setup(client, app, token)

        data = client.put(
            f"/api/budget/{expense_id}/payments/{payment_id}",
            json={"amount": "250.50"},
            headers=auth_headers(token),
        ).get_json()["data"]
        assert _amount(data["totalPaid"]) == Decimal("250.50")
        assert _amount(data["remainingAmount"]) == Decimal("749.50")

    def test_changing_payer_refreshes_name(self, client, app, token):
        _, expense_id, payment_id = self._setup(client, app, token)
        bob = make_member(app, "Bob", "Baker")

        payment = client.put(
            f"/api/budget/{expense_id}/payments/{payment_id}",
            json={"whoPaid": bob, "whoPaidName": "Someone Else"},
            headers=auth_headers(token),
        ).get_json()["data"]["payments"][0]
        assert payment["whoPaid"] == bob
        assert payment["whoPaidName"] == "Bob Baker"

    def test_changing_to_unknown_payer_returns_404(self, client, app, token):
        alice, expense_id, payment_id = self._setup(client, app, token)

        resp = client.put(
            f"/api/budget/{expense_id}/payments/{payment_id}",
            json={"whoPaid": 987654},
            headers=auth_headers(token),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "MEMBER_NOT_FOUND"
        assert _get(client, token, expense_id)["payments"][0]["whoPaid"] == alice

    def test_unreturned_payments_reported(self, client, app, token):
        alice, expense_id, payment_id = self._setup(client, app, token)
        _add(client, token, expense_id, amount="250", whoPaid=alice)

        data = client.put(
            f"/api/budget/{expense_id}/payments/{payment_id}",
            json={"moneyReturned": True},
            headers=auth_headers(token),
        ).get_json()["data"]
        pending = data["unreturnedPayments"]
        assert pending["count"] == 1
        assert _amount(pending["total"]) == Decimal("250")

    def test_echoed_id_is_ignored(self, client, app, token):
        _, expense_id, payment_id = self._setup(client, app, token)

        resp = client.put(
            f"/api/budget/{expense_id}/payments/{payment_id}",
            json={"id": 424242, "notes": "receipt in folder"},
            headers=auth_headers(token),
        )
        assert resp.status_code == 200
        payment = resp.get_json()["data"]["payments"][0]
        assert payment["id"] == payment_id
        assert payment["notes"] == "receipt in folder"

    def test_invalid_amount_rejected(self, client, app, token):
        _, expense_id, payment_id = self._setup(client, app, token)

        resp = client.put(
            f"/api/budget/{expense_id}/payments/{payment_id}",
            json={"amount": "0"},
            headers=auth_headers(token),
        )
        assert resp.status_code == 400
        assert _amount(_get(client, token, expense_id)["totalPaid"]) == Decimal("400")

    def test_unknown_payment_returns_404(self, client, app, token):
        _, expense_id, _ = self._setup(client, app, token)

        resp = client.put(
            f"/api/budget/{expense_id}/payments/999999",
            json={"notes": "x"},
            headers=auth_headers(token),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "PAYMENT_NOT_FOUND"

    def test_payment_of_other_expense_returns_404(self, client, app, token):
        _, _, payment_id = self._setup(client, app, token)
        other_id = make_expense(client, token, item="Other").get_json()["data"]["id"]

        resp = client.put(
            f"/api/budget/{other_id}/payments/{payment_id}",
            json={"notes": "x"},
            headers=auth_headers(token),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "PAYMENT_NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════════════
# DELETE /budget/:id/payments/:paymentId
# ═══════════════════════════════════════════════════════════════════════════

class TestDeletePayment:

    def test_delete_then_delete_again(self, client, app, token):
        alice = make_member(app, "Alice", "Archer")
        bob = make_member(app, "Bob", "Baker")
        expense_id = make_expense(client, token, cost_amount="1000").get_json()["data"]["id"]
        _add(client, token, expense_id, amount="400", whoPaid=alice)
        data = _add(client, token, expense_id, amount="300", whoPaid=bob).get_json()["data"]
        first_id = data["payments"][0]["id"]

        resp = client.delete(
            f"/api/budget/{expense_id}/payments/{first_id}",
            headers=auth_headers(token),
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert _amount(data["totalPaid"]) == Decimal("300")
        assert _amount(data["remainingAmount"]) == Decimal("700")
        assert [p["whoPaid"] for p in data["payments"]] == [bob]

        again = client.delete(
            f"/api/budget/{expense_id}/payments/{first_id}",
            headers=auth_headers(token),
        )
        assert again.status_code == 404
        assert again.get_json()["error"]["code"] == "PAYMENT_NOT_FOUND"

    def test_deleting_legacy_payment_restores_it_on_save(self, client, app, token):
        payer = make_member(app, "Grace", "Hopper")
        expense = make_expense(
            client, token, cost_amount="100", alreadyPaid=True, whoPaid=payer,
        ).get_json()["data"]
        legacy_id = expense["payments"][0]["id"]

        resp = client.delete(
            f"/api/budget/{expense['id']}/payments/{legacy_id}",
            headers=auth_headers(token),
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert len(data["payments"]) == 1
        restored = data["payments"][0]
        assert restored["whoPaid"] == payer
        assert restored["whoPaidName"] == "Grace Hopper"
        assert _amount(restored["amount"]) == Decimal("100")
        assert data["paymentStatus"] == "paid"

    def test_unknown_expense_returns_404(self, client, token):
        resp = client.delete("/api/budget/999999/payments/1", headers=auth_headers(token))
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "EXPENSE_NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════════════
# PUT /budget/:id/payments
# ═══════════════════════════════════════════════════════════════════════════

class TestReplacePayments:

    def test_replace_swaps_whole_sequence(self, client, app, token):
        alice = make_member(app, "Alice", "Archer")
        bob = make_member(app, "Bob", "Baker")
        expense_id = make_expense(client, token, cost_amount="1000").get_json()["data"]["id"]
        old = _add(client, token, expense_id, amount="400", whoPaid=alice).get_json()["data"]
        old_id = old["payments"][0]["id"]

        resp = client.put(
            f"/api/budget/{expense_id}/payments",
            json={"payments": [
                {"id": old_id, "amount": "100", "whoPaid": alice, "whoPaidName": "A. Archer"},
                {"amount": "200", "whoPaid": bob, "moneyReturned": True},
            ]},
            headers=auth_headers(token),
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert [_amount(p["amount"]) for p in data["payments"]] == [Decimal("100"), Decimal("200")]
        assert [p["whoPaidName"] for p in data["payments"]] == ["A. Archer", "Bob Baker"]
        assert _amount(data["totalPaid"]) == Decimal("300")
        assert _amount(data["remainingAmount"]) == Decimal("700")
        assert _amount(data["totalReturned"]) == Decimal("200")

    def test_replace_with_empty_list_clears_payments(self, client, app, token):
        payer = make_member(app)
        expense_id = make_expense(client, token).get_json()["data"]["id"]
        _add(client, token, expense_id, amount="10", whoPaid=payer)

        data = client.put(
            f"/api/budget/{expense_id}/payments",
            json={"payments": []},
            headers=auth_headers(token),
        ).get_json()["data"]
        assert data["payments"] == []
        assert data["paymentStatus"] == "unpaid"

    def test_non_array_rejected(self, client, token):
        expense_id = make_expense(client, token).get_json()["data"]["id"]

        resp = client.put(
            f"/api/budget/{expense_id}/payments",
            json={"payments": {"amount": "10"}},
            headers=auth_headers(token),
        )
        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_PAYMENTS"
        assert error["field"] == "payments"

    def test_bad_element_rejected_without_change(self, client, app, token):
        payer = make_member(app)
        expense_id = make_expense(client, token).get_json()["data"]["id"]
        _add(client, token, expense_id, amount="10", whoPaid=payer)

        resp = client.put(
            f"/api/budget/{expense_id}/payments",
            json={"payments": [{"amount": "5", "whoPaid": payer}, {"amount": "-1", "whoPaid": payer}]},
            headers=auth_headers(token),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "payments.1.amount"
        assert len(_get(client, token, expense_id)["payments"]) == 1

    def test_unknown_payer_rejected_without_change(self, client, app, token):
        payer = make_member(app)
        expense_id = make_expense(client, token).get_json()["data"]["id"]
        _add(client, token, expense_id, amount="10", whoPaid=payer)

        resp = client.put(
            f"/api/budget/{expense_id}/payments",
            json={"payments": [{"amount": "5", "whoPaid": 987654}]},
            headers=auth_headers(token),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "MEMBER_NOT_FOUND"
        payments = _get(client, token, expense_id)["payments"]
        assert [_amount(p["amount"]) for p in payments] == [Decimal("10")]

    def test_payer_name_is_a_snapshot(self, client, app, token):
        from campledger.app.extensions import db
        from campledger.app.models.member import Member

        payer = make_member(app, "Alice", "Archer")
        expense_id = make_expense(client, token).get_json()["data"]["id"]
        _add(client, token, expense_id, amount="10", whoPaid=payer)

        with app.app_context():
            member = db.session.get(Member, payer)
            member.last_name = "Married"
            db.session.commit()

        payment = _get(client, token, expense_id)["payments"][0]
        assert payment["whoPaidName"] == "Alice Archer"
