"""
外部服务数据结构（与外部 API 的 camelCase 字段对应）
"""
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExternalModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Address(ExternalModel):
    line1: str
    line2: Optional[str] = None
    city: str
    postal_code: str = Field(alias="postalCode")
    state: Optional[str] = None
    country: str


class Customer(ExternalModel):
    id: str
    name: str
    email: str
    shipping_address: Address = Field(alias="shippingAddress")
    billing_address: Optional[Address] = Field(default=None, alias="billingAddress")


class Product(ExternalModel):
    id: str
    sku: str
    name: str
    description: str = ""
    price: Decimal


class ShipmentProduct(ExternalModel):
    sku: str
    quantity: int


class ShipmentRequest(ExternalModel):
    shipping_address: Address = Field(alias="shippingAddress")
    products: List[ShipmentProduct]


class ShipmentResponse(ExternalModel):
    id: str
