"""
Pytest 配置和 fixtures
"""
from decimal import Decimal
from typing import AsyncGenerator, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from cf_core.app import create_app
from cf_core.clients.types import Customer, Product, ShipmentRequest, ShipmentResponse
from cf_core.config import Settings
from cf_core.database import DatabaseManager
from cf_core.services import CreditService, PromoCodeService, PurchaseService, RefundService
from cf_core.utils.errors import NotFoundError, ServiceUnavailableError

CUSTOMER_ID = "550e8400-e29b-41d4-a716-446655440001"
OTHER_CUSTOMER_ID = "550e8400-e29b-41d4-a716-446655440002"
PRODUCT_ID = "660e8400-e29b-41d4-a716-446655440001"
CHEAP_PRODUCT_ID = "660e8400-e29b-41d4-a716-446655440002"
MISSING_ID = "00000000-0000-4000-8000-000000000000"


def make_customer(customer_id: str = CUSTOMER_ID, name: str = "John Doe") -> Customer:
    address = {
        "line1": "123 Main St",
        "line2": "Apt 4B",
        "city": "New York",
        "postalCode": "10001",
        "state": "NY",
        "country": "USA",
    }
    return Customer.model_validate({
        "id": customer_id,
        "name": name,
        "email": "john.doe@example.com",
        "shippingAddress": address,
        "billingAddress": address,
    })


def make_product(product_id: str = PRODUCT_ID, price: str = "20.00", sku: str = "WIDGET-001") -> Product:
    return Product(
        id=product_id,
        sku=sku,
        name="Widget",
        description="Test widget",
        price=Decimal(price),
    )


class FakeCustomerLookup:
    """内存客户服务"""

    def __init__(self, customers: Optional[List[Customer]] = None, unavailable: bool = False):
        self.customers: Dict[str, Customer] = {c.id: c for c in (customers or [])}
        self.unavailable = unavailable
        self.calls: List[str] = []

    async def get_customer(self, customer_id: str) -> Customer:
        self.calls.append(customer_id)
        if self.unavailable:
            raise ServiceUnavailableError(detail="Customer API unreachable")
        if customer_id not in self.customers:
            raise NotFoundError("Customer", customer_id)
        return self.customers[customer_id]


class FakeProductLookup:
    """内存商品服务"""

    def __init__(self, products: Optional[List[Product]] = None):
        self.products: Dict[str, Product] = {p.id: p for p in (products or [])}
        self.calls: List[str] = []

    async def get_product(self, product_id: str) -> Product:
        self.calls.append(product_id)
        if product_id not in self.products:
            raise NotFoundError("Product", product_id)
        return self.products[product_id]


class FakeShipmentGateway:
    """内存发货服务，可设置为失败"""

    def __init__(self):
        self.fail_with: Optional[Exception] = None
        self.requests: List[ShipmentRequest] = []
        self._counter = 0

    async def create_shipment(self, request: ShipmentRequest) -> ShipmentResponse:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        self._counter += 1
        return ShipmentResponse(id=f"SHIP-{self._counter:04d}")


@pytest.fixture
def settings(tmp_path) -> Settings:
    """测试配置：临时 SQLite 数据库文件"""
    return Settings(
        database_url_override=f"sqlite+aiosqlite:///{tmp_path / 'creditflow_test.db'}",
        log_level="WARNING",
        log_format="text",
    )


@pytest_asyncio.fixture
async def db_manager(settings) -> AsyncGenerator[DatabaseManager, None]:
    """数据库管理器 fixture"""
    manager = DatabaseManager(settings)
    await manager.create_tables()

    yield manager

    await manager.drop_tables()
    await manager.close()


@pytest_asyncio.fixture
async def db_session(db_manager) -> AsyncGenerator[AsyncSession, None]:
    """数据库会话 fixture"""
    async with db_manager.get_session() as session:
        yield session


@pytest.fixture
def customers() -> FakeCustomerLookup:
    return FakeCustomerLookup([
        make_customer(CUSTOMER_ID),
        make_customer(OTHER_CUSTOMER_ID, name="Jane Smith"),
    ])


@pytest.fixture
def products() -> FakeProductLookup:
    return FakeProductLookup([
        make_product(PRODUCT_ID, price="20.00", sku="WIDGET-001"),
        make_product(CHEAP_PRODUCT_ID, price="0.10", sku="PENNY-001"),
    ])


@pytest.fixture
def shipments() -> FakeShipmentGateway:
    return FakeShipmentGateway()


@pytest.fixture
def credit_service(db_manager) -> CreditService:
    return CreditService(db_manager)


@pytest.fixture
def purchase_service(db_manager, customers, products, shipments) -> PurchaseService:
    return PurchaseService(db_manager, customers=customers, products=products, shipments=shipments)


@pytest.fixture
def refund_service(db_manager) -> RefundService:
    return RefundService(db_manager)


@pytest.fixture
def promo_code_service(db_manager) -> PromoCodeService:
    return PromoCodeService(db_manager)


@pytest.fixture
def app(settings, db_manager, customers, products, shipments):
    return create_app(
        settings=settings,
        db_manager=db_manager,
        customer_client=customers,
        product_client=products,
        shipment_client=shipments,
        configure_logging=False,
    )


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    """通过 ASGI 直接调用应用的 HTTP 客户端"""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
