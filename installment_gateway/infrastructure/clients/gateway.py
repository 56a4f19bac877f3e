"""Payment gateway HTTP client for charging customers"""

import httpx
from installment_gateway.domain.models import ChargeResult, CustomerIdentity
from installment_gateway.domain.exceptions import GatewayError
from installment_gateway.config import settings


class HttpGatewayClient:
    """Client for the external payment gateway charge API"""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.gateway_api_base
        self.api_key = api_key or settings.gateway_api_key
        self.timeout = timeout or settings.gateway_timeout_seconds
        self.transport = transport

    async def charge(
        self, amount_cents: int, customer: CustomerIdentity, reference_id: str
    ) -> ChargeResult:
        """
        Charge a customer once for `amount_cents`.

        Declines (HTTP 402/422 with a JSON body) come back as an unsuccessful
        ChargeResult carrying the gateway message.

        Raises:
            GatewayError: On timeout, transport errors, 5xx, or invalid response
                (including a success without a transaction id)
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/payments",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "amount_cents": amount_cents,
                        "customer": {
                            "name": customer.name,
                            "email": customer.email,
                            "phone": customer.phone,
                        },
                        "reference": reference_id,
                    },
                )
                if response.status_code in (402, 422):
                    data = response.json()
                    return ChargeResult(
                        success=False,
                        transaction_id="",
                        amount_cents=amount_cents,
                        status="failed",
                        message=data.get("message") or "Charge declined",
                    )

                response.raise_for_status()
                data = response.json()

                success = bool(data.get("success", data.get("status") == "success"))
                if success and not data.get("transaction_id"):
                    raise ValueError("successful charge without transaction_id")
                return ChargeResult(
                    success=success,
                    transaction_id=data.get("transaction_id") or "",
                    amount_cents=data.get("amount_cents", amount_cents),
                    status=data.get("status") or ("success" if success else "failed"),
                    message=data.get("message"),
                )

            except httpx.TimeoutException as e:
                raise GatewayError(f"Gateway timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise GatewayError(f"Gateway error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise GatewayError(f"Gateway unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise GatewayError(f"Invalid response from gateway: {e}") from e
