"""REST API через httpx.ASGITransport, зависимости подменены на тестовые."""

from decimal import Decimal

import httpx
import pytest
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.app import create_app
from app.api.deps import get_auth_service, get_token_issuer
from app.bot.services.auth import AuthService, TokenIssuer
from conftest import PHONE, TEST_BCRYPT_ROUNDS, create_customer
from infrastructure.database.base import get_db_session
from infrastructure.database.models import UserRole, utcnow

API = "/api/v1"


@pytest.fixture
def tokens():
    return TokenIssuer(secret="api-test-secret")


@pytest.fixture
async def client(session_maker, seeded, attempts, sms, tokens):
    app = create_app(use_lifespan=False)

    async def override_session():
        async with session_maker() as session:
            yield session

    async def override_auth(session: AsyncSession = Depends(get_db_session)):
        return AuthService(session, attempts, sms_sender=sms, tokens=tokens, bcrypt_rounds=TEST_BCRYPT_ROUNDS)

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_token_issuer] = lambda: tokens
    app.dependency_overrides[get_auth_service] = override_auth

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def customer_headers(session, customer, tokens):
    return bearer(tokens.issue(customer).access_token)


@pytest.fixture
async def admin_headers(session, tokens):
    admin = await create_customer(session, chat_id=9000, phone="+998900000000", username="Admin")
    admin.role = UserRole.ADMIN
    await session.commit()
    return bearer(tokens.issue(admin).access_token)


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_otp_login_flow(client, sms):
    response = await client.post(f"{API}/auth/request-otp", json={"phone_number": PHONE})
    assert response.status_code == 200
    otp_id = response.json()["sms_code_id"]

    response = await client.post(
        f"{API}/auth/otp-login",
        json={"phone_number": PHONE, "code": sms.last_code, "otp_id": otp_id},
    )
    assert response.status_code == 200
    access = response.json()["access_token"]
    refresh_token = response.json()["refresh_token"]

    response = await client.get(f"{API}/categories", headers=bearer(access))
    assert response.status_code == 200
    assert [category["name"] for category in response.json()] == ["Burgers", "Drinks"]

    refreshed = await client.post(
        f"{API}/auth/refresh",
        json={"refresh_token": refresh_token},
    )
    assert refreshed.status_code == 200

    # код уже использован
    response = await client.post(
        f"{API}/auth/otp-login",
        json={"phone_number": PHONE, "code": sms.last_code, "otp_id": otp_id},
    )
    assert response.status_code == 400


async def test_invalid_phone_returns_error_body(client):
    response = await client.post(f"{API}/auth/request-otp", json={"phone_number": "+79001234567"})

    assert response.status_code == 400
    assert response.json()["code"] == -5


async def test_requires_token(client):
    response = await client.get(f"{API}/categories")

    assert response.status_code == 401


async def test_rejects_garbage_token(client):
    response = await client.get(f"{API}/categories", headers=bearer("not-a-jwt"))

    assert response.status_code == 401


async def test_catalog_reads(client, customer_headers):
    response = await client.get(f"{API}/categories/1/products", headers=customer_headers)
    assert [product["id"] for product in response.json()] == [1]

    response = await client.get(f"{API}/products/2", headers=customer_headers)
    assert response.json()["name"] == "Cola"

    response = await client.get(f"{API}/products/999", headers=customer_headers)
    assert response.status_code == 404
    assert response.json()["code"] == -7


async def test_only_admin_creates_catalog(client, customer_headers, admin_headers):
    payload = {"name": "Desserts", "name_uz": "Shirinliklar", "name_ru": "Десерты"}

    response = await client.post(f"{API}/categories", json=payload, headers=customer_headers)
    assert response.status_code == 403

    response = await client.post(f"{API}/categories", json=payload, headers=admin_headers)
    assert response.status_code == 201
    category_id = response.json()["id"]

    response = await client.post(f"{API}/categories", json=payload, headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["code"] == -3

    response = await client.post(
        f"{API}/products",
        json={"category_id": category_id, "name": "Cake", "price": "30000"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert Decimal(response.json()["price"]) == Decimal("30000")


async def test_addresses_and_orders(client, customer, customer_headers, admin_headers):
    response = await client.post(
        f"{API}/addresses",
        json={"address_line": "Navoi 5", "city": "Tashkent"},
        headers=customer_headers,
    )
    assert response.status_code == 201
    address_id = response.json()["id"]

    response = await client.get(f"{API}/addresses", headers=customer_headers)
    assert [address["id"] for address in response.json()] == [address_id]

    response = await client.post(
        f"{API}/orders",
        json={"restaurant_id": 1, "address_id": address_id, "items": [{"product_id": 1, "quantity": 2}]},
        headers=customer_headers,
    )
    assert response.status_code == 201
    order = response.json()
    assert Decimal(order["total_amount"]) == Decimal("114000")
    assert order["status"] == "pending"

    response = await client.get(f"{API}/orders/{order['id']}", headers=customer_headers)
    assert response.status_code == 200

    response = await client.get(f"{API}/orders/customer/{customer.id}", headers=customer_headers)
    assert [item["id"] for item in response.json()] == [order["id"]]

    # статус меняет только admin, и только по допустимому переходу
    status_url = f"{API}/orders/{order['id']}/status"
    response = await client.put(status_url, json={"status": "in_progress"}, headers=customer_headers)
    assert response.status_code == 403

    response = await client.put(status_url, json={"status": "in_progress"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "in_progress"

    response = await client.put(status_url, json={"status": "pending"}, headers=admin_headers)
    assert response.status_code == 422
    assert response.json()["code"] == -8


async def test_zero_quantity_order_is_rejected(client, customer_headers):
    response = await client.post(
        f"{API}/addresses",
        json={"address_line": "Navoi 5"},
        headers=customer_headers,
    )
    address_id = response.json()["id"]

    response = await client.post(
        f"{API}/orders",
        json={"restaurant_id": 1, "address_id": address_id, "items": [{"product_id": 1, "quantity": 0}]},
        headers=customer_headers,
    )

    assert response.status_code == 400
    assert response.json()["code"] == -5


async def test_cannot_read_someone_elses_orders(client, session, customer_headers):
    other = await create_customer(session, chat_id=2002, phone="+998907654321")

    response = await client.get(f"{API}/orders/customer/{other.id}", headers=customer_headers)

    assert response.status_code == 403


# ==========================================
# ПОИСК, ЗАКАЗЫ РЕСТОРАНА, ПРОДАЖИ
# ==========================================

async def place_order(client, headers, product_id=1, quantity=2) -> dict:
    response = await client.post(f"{API}/addresses", json={"address_line": "Navoi 5"}, headers=headers)
    response = await client.post(
        f"{API}/orders",
        json={
            "restaurant_id": 1,
            "address_id": response.json()["id"],
            "items": [{"product_id": product_id, "quantity": quantity}],
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


async def test_product_search(client, customer_headers):
    response = await client.get(f"{API}/products/search", params={"name": "cola"}, headers=customer_headers)
    assert [product["id"] for product in response.json()] == [2]

    response = await client.get(
        f"{API}/products/search",
        params={"min_price": "15000", "max_price": "60000"},
        headers=customer_headers,
    )
    assert [product["id"] for product in response.json()] == [1, 3]

    response = await client.get(
        f"{API}/products/search",
        params={"min_price": "60000", "max_price": "15000"},
        headers=customer_headers,
    )
    assert response.status_code == 400
    assert response.json()["code"] == -5


async def test_only_admin_deletes_products(client, customer_headers, admin_headers):
    response = await client.delete(f"{API}/products/2", headers=customer_headers)
    assert response.status_code == 403

    response = await client.delete(f"{API}/products/2", headers=admin_headers)
    assert response.status_code == 204

    response = await client.get(f"{API}/products/2", headers=customer_headers)
    assert response.status_code == 404

    response = await client.delete(f"{API}/categories/404", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["code"] == -7


async def test_restaurant_orders_and_search(client, customer, customer_headers, admin_headers):
    order = await place_order(client, customer_headers)

    response = await client.get(f"{API}/orders/restaurant/1", headers=customer_headers)
    assert response.status_code == 403

    response = await client.get(f"{API}/orders/restaurant/1", headers=admin_headers)
    assert [item["id"] for item in response.json()] == [order["id"]]

    response = await client.get(f"{API}/orders/restaurant/404", headers=admin_headers)
    assert response.status_code == 404

    response = await client.get(
        f"{API}/orders/search",
        params={"status": "pending", "customer_id": customer.id, "payment_option": "cash"},
        headers=admin_headers,
    )
    assert [item["id"] for item in response.json()] == [order["id"]]

    response = await client.get(f"{API}/orders/search", params={"status": "completed"}, headers=admin_headers)
    assert response.json() == []


async def test_sales_dashboard(client, customer_headers, admin_headers):
    response = await client.get(f"{API}/dashboard/sales/daily", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["code"] == -7

    await place_order(client, customer_headers)

    response = await client.get(f"{API}/dashboard/sales/monthly", headers=customer_headers)
    assert response.status_code == 403

    response = await client.get(f"{API}/dashboard/sales/monthly", headers=admin_headers)
    assert Decimal(response.json()["totalSales"]) == Decimal("114000")

    response = await client.get(f"{API}/dashboard/sales/daily", headers=admin_headers)
    assert Decimal(response.json()["totalSales"]) == Decimal("114000")

    today = utcnow().date().isoformat()
    response = await client.get(
        f"{API}/dashboard/sales/range",
        params={"start_date": today, "end_date": today},
        headers=admin_headers,
    )
    body = response.json()
    assert Decimal(body["totalSales"]) == Decimal("114000")
    assert Decimal(body["averageDailySales"]) == Decimal("114000")
