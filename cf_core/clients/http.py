"""
外部服务 httpx 客户端
遵循约束：外部 API 超时、错误映射为统一异常
"""
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from cf_core.utils.errors import NotFoundError, ServiceUnavailableError
from cf_core.utils.logger import get_logger
from .types import Customer, Product, ShipmentRequest, ShipmentResponse

logger = get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    """提取外部服务错误体中的 Message 字段"""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("Message"):
        return str(body["Message"])
    return f"HTTP {response.status_code} {response.reason_phrase}".strip()


class HttpServiceClient:
    """
    httpx 客户端基类

    - 404 -> NotFoundError
    - 其他 HTTP 错误、连接失败、超时 -> ServiceUnavailableError
    - 金额按 Decimal 解析，不经过浮点
    """

    service_name = "External"
    resource_name = "Resource"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def _request(
        self,
        method: str,
        url: str,
        identifier: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.request(
                    method,
                    url,
                    json=json,
                    headers={"Content-Type": "application/json"},
                )
            except httpx.TimeoutException:
                logger.error(f"{self.service_name} API timeout", url=url)
                raise ServiceUnavailableError(detail=f"{self.service_name} API timeout")
            except httpx.HTTPError as e:
                logger.error(f"{self.service_name} API unreachable", url=url, error=str(e))
                raise ServiceUnavailableError(detail=f"{self.service_name} API unreachable: {e}")

        if response.status_code == 404 and identifier is not None:
            logger.warning(f"{self.resource_name} not found", identifier=identifier)
            raise NotFoundError(self.resource_name, identifier)

        if response.is_error:
            message = _error_message(response)
            logger.error(
                f"{self.service_name} API error",
                status_code=response.status_code,
                message=message,
            )
            raise ServiceUnavailableError(detail=f"{self.service_name} API error: {message}")

        try:
            return response.json(parse_float=Decimal)
        except ValueError:
            raise ServiceUnavailableError(detail=f"{self.service_name} API returned invalid JSON")

    def _parse(self, model, data: Dict[str, Any]):
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            logger.error(f"{self.service_name} API returned unexpected payload", errors=e.errors())
            raise ServiceUnavailableError(detail=f"{self.service_name} API returned an unexpected payload")


class HttpCustomerClient(HttpServiceClient):
    service_name = "Customer"
    resource_name = "Customer"

    async def get_customer(self, customer_id: str) -> Customer:
        data = await self._request("GET", f"{self.base_url}/{customer_id}", identifier=customer_id)
        return self._parse(Customer, data)


class HttpProductClient(HttpServiceClient):
    service_name = "Product"
    resource_name = "Product"

    async def get_product(self, product_id: str) -> Product:
        data = await self._request("GET", f"{self.base_url}/{product_id}", identifier=product_id)
        return self._parse(Product, data)


class HttpShipmentClient(HttpServiceClient):
    service_name = "Shipment"
    resource_name = "Shipment"

    async def create_shipment(self, request: ShipmentRequest) -> ShipmentResponse:
        data = await self._request(
            "POST",
            self.base_url,
            json=request.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return self._parse(ShipmentResponse, data)
