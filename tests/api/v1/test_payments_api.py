from decimal import Decimal

import pytest
from bson import ObjectId


@pytest.fixture
def order_url(open_balance_order):
    return f"/api/v1/orders/{open_balance_order.id}"


@pytest.mark.asyncio
async def test_edit_payment_returns_rebuilt_order(api_client, order_url):
    await api_client.post(f"{order_url}/payments", json={"amount": "20"})
    payment = (await api_client.post(f"{order_url}/payments", json={"amount": "50"})).json()

    response = await api_client.patch(
        f"/api/v1/payments/{payment['id']}", json={"amount": "80"}, headers={"X-Actor-Id": "admin-9"}
    )

    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["balance"]) == Decimal("0")
    assert data["status"] == "paid"
    assert data["history"][-1]["kind"] == "payment_edited"
    assert data["history"][-1]["actor"] == "admin-9"

    stored = (await api_client.get(f"/api/v1/payments/{payment['id']}")).json()
    assert Decimal(stored["amount"]) == Decimal("80")


@pytest.mark.asyncio
async def test_edit_payment_rejects_zero_amount(api_client, order_url):
    payment = (await api_client.post(f"{order_url}/payments", json={"amount": "20"})).json()

    response = await api_client.patch(f"/api/v1/payments/{payment['id']}", json={"amount": "0"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_payment(api_client, order_url):
    payment = (await api_client.post(f"{order_url}/payments", json={"amount": "20"})).json()

    response = await api_client.delete(f"/api/v1/payments/{payment['id']}")

    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["amount_paid"]) == Decimal("0")
    assert data["status"] == "pending"
    assert data["history"][-1]["detail"] == "Payment deleted for $20.00"
    assert (await api_client.get(f"/api/v1/payments/{payment['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_unknown_payment(api_client):
    payment_id = ObjectId()

    assert (await api_client.get(f"/api/v1/payments/{payment_id}")).status_code == 404
    assert (await api_client.delete(f"/api/v1/payments/{payment_id}")).status_code == 404
    response = await api_client.patch(f"/api/v1/payments/{payment_id}", json={"note": "x"})
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_unconfirmed_payment_listed_but_not_applied(api_client, order_url):
    response = await api_client.post(f"{order_url}/payments", json={"amount": "30", "confirmed": False})
    assert response.status_code == 201

    order = (await api_client.get(order_url)).json()
    payments = (await api_client.get("/api/v1/payments")).json()

    assert Decimal(order["amount_paid"]) == Decimal("0")
    assert len(payments) == 1
    assert payments[0]["confirmed"] is False
    assert payments[0]["installment_number"] is None


@pytest.mark.asyncio
async def test_unstorable_amount_is_a_validation_error(api_client, order_url):
    response = await api_client.post(
        f"{order_url}/payments", json={"amount": "1.00000000000000000000000000000000001"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
    order = (await api_client.get(order_url)).json()
    assert Decimal(order["amount_paid"]) == Decimal("0")
    assert len(order["history"]) == 1
    assert (await api_client.get(f"{order_url}/payments")).json() == []


@pytest.mark.asyncio
async def test_edit_payment_clears_medium(api_client, order_url):
    payment = (await api_client.post(f"{order_url}/payments", json={"amount": "20", "medium": "cash"})).json()

    response = await api_client.patch(f"/api/v1/payments/{payment['id']}", json={"medium": None})

    assert response.status_code == 200
    stored = (await api_client.get(f"/api/v1/payments/{payment['id']}")).json()
    assert stored["medium"] is None
