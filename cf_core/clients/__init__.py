"""
CreditFlow 外部服务客户端
"""
from .base import CustomerLookup, ProductLookup, ShipmentGateway
from .http import HttpCustomerClient, HttpProductClient, HttpShipmentClient
from .types import Address, Customer, Product, ShipmentProduct, ShipmentRequest, ShipmentResponse

__all__ = [
    "CustomerLookup",
    "ProductLookup",
    "ShipmentGateway",
    "HttpCustomerClient",
    "HttpProductClient",
    "HttpShipmentClient",
    "Address",
    "Customer",
    "Product",
    "ShipmentProduct",
    "ShipmentRequest",
    "ShipmentResponse",
]
