"""
外部能力接口

编排器只依赖这些协议；生产环境使用 httpx 实现，测试中替换为内存实现
"""
from typing import Protocol

from .types import Customer, Product, ShipmentRequest, ShipmentResponse


class CustomerLookup(Protocol):
    async def get_customer(self, customer_id: str) -> Customer:
        """
        Raises:
            NotFoundError: 客户不存在
            ServiceUnavailableError: 服务不可用
        """
        ...


class ProductLookup(Protocol):
    async def get_product(self, product_id: str) -> Product:
        """
        Raises:
            NotFoundError: 商品不存在
            ServiceUnavailableError: 服务不可用
        """
        ...


class ShipmentGateway(Protocol):
    async def create_shipment(self, request: ShipmentRequest) -> ShipmentResponse:
        """创建发货单，任何异常均视为发货失败"""
        ...
