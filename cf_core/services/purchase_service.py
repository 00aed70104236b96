"""
采购服务 - 购买流程编排（Saga）与采购查询
遵循约束：扣费、采购单、发货在同一个本地事务中完成，发货失败整体回滚
"""
from dataclasses import dataclass
from typing import Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cf_core.clients.base import CustomerLookup, ProductLookup, ShipmentGateway
from cf_core.clients.types import Customer, Product, ShipmentProduct, ShipmentRequest
from cf_core.database import DatabaseManager
from cf_core.domain.credit import CreditDomainService, CreditTransactionType
from cf_core.domain.identifiers import CustomerId, ProductId
from cf_core.domain.money import Money
from cf_core.domain.purchase import Purchase, PurchaseStatus, Refund
from cf_core.repositories.credit_repository import CreditRepository
from cf_core.repositories.purchase_repository import PurchaseRepository
from cf_core.utils.errors import (
    InsufficientCreditError,
    NotFoundError,
    ShipmentFailedError,
    ValidationError,
)
from cf_core.utils.logger import LogContext
from .base import BaseService, parse_identifier, total_pages, validate_pagination


@dataclass(frozen=True)
class PurchasePage:
    items: List[Purchase]
    total: int
    limit: int
    offset: int
    total_pages: int


@dataclass(frozen=True)
class PurchaseDetail:
    purchase: Purchase
    refunds: List[Refund]


class PurchaseService(BaseService):
    """
    采购服务

    购买流程：
    1. 校验输入
    2. 依次查询客户、商品（外部服务）
    3. 计算总价
    4. 只读预检余额
    5. 单个事务内：扣费 + 流水 + 创建采购单 + 发货 + 完成采购单 + 关联流水
    6. 返回已完成的采购单
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        customers: CustomerLookup,
        products: ProductLookup,
        shipments: ShipmentGateway
    ):
        super().__init__(db_manager)
        self.customers = customers
        self.products = products
        self.shipments = shipments

    @staticmethod
    def _validate_create(customer_id: Any, product_id: Any, quantity: Any):
        errors: List[str] = []
        cid = parse_identifier(CustomerId, customer_id, "Customer ID", errors)
        pid = parse_identifier(ProductId, product_id, "Product ID", errors)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            errors.append("Quantity must be greater than 0")

        if errors:
            raise ValidationError("Invalid create purchase request", errors)
        return cid, pid

    async def create_purchase(
        self,
        customer_id: str,
        product_id: str,
        quantity: int,
        created_by: Optional[str] = None
    ) -> Purchase:
        """
        创建采购单

        Args:
            customer_id: 客户ID
            product_id: 商品ID
            quantity: 数量
            created_by: 操作人

        Returns:
            已完成（COMPLETED）的采购单

        Raises:
            ValidationError: 输入无效
            NotFoundError: 客户或商品不存在
            ServiceUnavailableError: 外部查询服务不可用
            InsufficientCreditError: 余额不足
            ShipmentFailedError: 发货失败（已整体回滚）
            ConcurrencyError: 余额被并发修改（已整体回滚）
        """
        cid, pid = self._validate_create(customer_id, product_id, quantity)

        with LogContext(customer_id=cid.value):
            self.logger.info("Creating purchase", product_id=pid.value, quantity=quantity)

            self.logger.debug("Fetching customer from API")
            customer = await self.customers.get_customer(cid.value)

            self.logger.debug("Fetching product from API")
            product = await self.products.get_product(pid.value)

            unit_price = Money.from_(product.price)
            total_amount = unit_price.multiply(quantity)
            self.logger.debug(
                "Purchase total calculated",
                unit_price=unit_price.to_json(),
                quantity=quantity,
                total_amount=total_amount.to_json(),
            )

            await self._precheck_balance(cid, total_amount)

            purchase = await self.execute_with_transaction(
                self._execute_purchase,
                cid,
                pid,
                quantity,
                unit_price,
                total_amount,
                customer,
                product,
                created_by,
                operation_name="create_purchase",
            )

            self.logger.info(
                "Purchase created successfully",
                purchase_id=purchase.id,
                shipment_id=purchase.shipment_id,
                total_amount=purchase.total_amount.to_json(),
            )
            return purchase

    async def _precheck_balance(self, customer_id: CustomerId, total_amount: Money) -> None:
        """事务外的预检（仅用于快速失败，事务内扣费才是权威检查）"""
        async def operation(session: AsyncSession) -> Money:
            balance = await CreditRepository.find_by_customer_id(session, customer_id)
            return balance.current_balance if balance else Money.zero()

        available = await self.execute_with_session(operation, operation_name="purchase_precheck")
        if available < total_amount:
            self.logger.warning(
                "Insufficient credit balance",
                required=total_amount.to_json(),
                available=available.to_json(),
            )
            raise InsufficientCreditError(customer_id.value, str(total_amount), str(available))

    async def _execute_purchase(
        self,
        session: AsyncSession,
        customer_id: CustomerId,
        product_id: ProductId,
        quantity: int,
        unit_price: Money,
        total_amount: Money,
        customer: Customer,
        product: Product,
        created_by: Optional[str]
    ) -> Purchase:
        """事务内步骤，任何异常都会回滚此前的全部写入"""
        self.logger.debug("Deducting credit")
        balance = await CreditRepository.get_or_create(session, customer_id)
        balance, transaction = CreditDomainService.execute_operation(
            balance,
            CreditTransactionType.DEDUCT,
            total_amount,
            f"Purchase of {product.name}",
            metadata={
                "productId": product_id.value,
                "productName": product.name,
                "quantity": quantity,
            },
            created_by=created_by or "system",
        )
        await CreditRepository.update(session, balance)
        await CreditRepository.create_transaction(session, transaction)

        self.logger.debug("Creating purchase record")
        purchase = Purchase.create(
            customer_id=customer_id,
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            product_snapshot=product.model_dump(mode="json", by_alias=True),
            customer_snapshot=customer.model_dump(mode="json", by_alias=True),
            created_by=created_by,
        )
        await PurchaseRepository.create(session, purchase)

        self.logger.debug("Creating shipment")
        try:
            shipment = await self.shipments.create_shipment(ShipmentRequest(
                shipping_address=customer.shipping_address,
                products=[ShipmentProduct(sku=product.sku, quantity=quantity)],
            ))
        except Exception as e:
            self.logger.error("Shipment creation failed", purchase_id=purchase.id, exc_info=True)
            detail = getattr(e, "detail", None) or str(e) or e.__class__.__name__
            raise ShipmentFailedError(detail) from e
        self.logger.debug("Shipment created", shipment_id=shipment.id)

        self.logger.debug("Completing purchase")
        purchase.complete(shipment.id)
        await PurchaseRepository.update(session, purchase)

        transaction.link_to_purchase(purchase.id)
        await CreditRepository.link_transaction_to_purchase(session, transaction)

        return purchase

    async def list_purchases(
        self,
        customer_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> PurchasePage:
        """分页查询采购单（客户、状态条件可组合）"""
        errors: List[str] = []
        cid = None
        if customer_id is not None:
            cid = parse_identifier(CustomerId, customer_id, "Customer ID", errors)

        parsed_status = None
        if status is not None:
            try:
                parsed_status = PurchaseStatus(status)
            except ValueError:
                errors.append(
                    "Status must be one of " + ", ".join(s.value for s in PurchaseStatus)
                )
        validate_pagination(limit, offset, errors)

        if errors:
            raise ValidationError("Invalid list purchases request", errors)

        async def operation(session: AsyncSession) -> PurchasePage:
            items = await PurchaseRepository.find_all(session, cid, parsed_status, limit, offset)
            total = await PurchaseRepository.count(session, cid, parsed_status)
            return PurchasePage(
                items=items,
                total=total,
                limit=limit,
                offset=offset,
                total_pages=total_pages(total, limit),
            )

        return await self.execute_with_session(operation, operation_name="list_purchases")

    async def get_purchase(self, purchase_id: str) -> PurchaseDetail:
        """
        采购单详情（含退款记录）

        Raises:
            NotFoundError: 采购单不存在
        """
        if not purchase_id or not purchase_id.strip():
            raise ValidationError("Invalid get purchase request", ["Purchase ID is required"])

        async def operation(session: AsyncSession) -> PurchaseDetail:
            purchase = await PurchaseRepository.find_by_id(session, purchase_id)
            if purchase is None:
                raise NotFoundError("Purchase", purchase_id)
            refunds = await PurchaseRepository.get_refunds(session, purchase_id)
            return PurchaseDetail(purchase=purchase, refunds=refunds)

        return await self.execute_with_session(operation, operation_name="get_purchase")
