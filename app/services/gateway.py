"""SSLCommerz gateway client.

Wraps the two gateway calls the storefront makes: opening a payment session
and re-validating a transaction reported by an IPN. Only connection failures
are retried; anything the gateway actually answered is returned or raised
as-is.
"""
from typing import Optional
import logging

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.config import Settings
from app.core.exceptions import ConfigurationError, GatewayError, ValidationAPIError
from app.models.payment import SessionResult, ValidationResult

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


class SSLCommerzClient:
    def __init__(
        self,
        store_id: str,
        store_password: str,
        session_url: str,
        validation_url: str,
        http_client: httpx.AsyncClient,
        max_attempts: int = 3,
        backoff: float = 0.5,
    ):
        self.store_id = store_id
        self.store_password = store_password
        self.session_url = session_url
        self.validation_url = validation_url
        self.http_client = http_client
        self.max_attempts = max(1, max_attempts)
        self.backoff = backoff

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: Optional[httpx.AsyncClient] = None
    ) -> "SSLCommerzClient":
        if http_client is None:
            http_client = httpx.AsyncClient(timeout=settings.GATEWAY_TIMEOUT_SECONDS)
        return cls(
            store_id=settings.SSLCOMMERZ_STORE_ID,
            store_password=settings.SSLCOMMERZ_STORE_PASSWORD,
            session_url=settings.session_api_url,
            validation_url=settings.validation_api_url,
            http_client=http_client,
            max_attempts=settings.GATEWAY_MAX_ATTEMPTS,
            backoff=settings.GATEWAY_RETRY_BACKOFF_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.store_id and self.store_password)

    def _require_credentials(self) -> None:
        if not self.is_configured:
            logger.error("SSLCOMMERZ_STORE_ID or SSLCOMMERZ_STORE_PASSWORD not set in environment variables.")
            raise ConfigurationError(
                "Payment gateway server configuration error. Admin check required."
            )

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request, retrying only when the connection could not be made."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff, max=5),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"Retrying {method} {url} (attempt {attempt.retry_state.attempt_number}/{self.max_attempts})"
                    )
                response = await self.http_client.request(method, url, **kwargs)
        return response

    async def create_session(self, order_context: dict) -> SessionResult:
        self._require_credentials()
        data = dict(order_context)
        data["store_id"] = self.store_id
        data["store_passwd"] = self.store_password

        try:
            response = await self._send("POST", self.session_url, data=data)
            response.raise_for_status()
            result = SessionResult.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            logger.error(f"SSLCommerz session API returned HTTP {e.response.status_code}")
            raise GatewayError(
                "Error calling SSLCommerz payment gateway.",
                reason=f"Gateway responded with HTTP {e.response.status_code}",
            )
        except httpx.HTTPError as e:
            logger.error(f"Exception during SSLCommerz session API call: {e!r}")
            raise GatewayError(
                "Error calling SSLCommerz payment gateway.",
                reason=str(e) or e.__class__.__name__,
            )
        except (ValueError, ValidationError) as e:
            logger.error(f"Undecodable SSLCommerz session response: {e}")
            raise GatewayError(
                "Error calling SSLCommerz payment gateway.",
                reason="Gateway returned an unreadable response",
            )

        logger.info(f"SSLCommerz session response for {order_context.get('tran_id')}: status={result.status}")
        return result

    async def validate(self, val_id: str) -> ValidationResult:
        self._require_credentials()
        params = {
            "val_id": val_id,
            "store_id": self.store_id,
            "store_passwd": self.store_password,
            "format": "json",
        }

        try:
            response = await self._send("GET", self.validation_url, params=params)
            response.raise_for_status()
            result = ValidationResult.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            logger.error(f"SSLCommerz validation API returned HTTP {e.response.status_code}")
            raise ValidationAPIError("Error validating transaction with SSLCommerz")
        except httpx.HTTPError as e:
            logger.error(f"Error calling SSLCommerz Validation API: {e!r}")
            raise ValidationAPIError("Error validating transaction with SSLCommerz")
        except (ValueError, ValidationError) as e:
            logger.error(f"Undecodable SSLCommerz validation response: {e}")
            raise ValidationAPIError("Error validating transaction with SSLCommerz")

        logger.info(
            f"SSLCommerz validation for val_id {val_id}: APIConnect={result.api_connect} status={result.status}"
        )
        return result

    async def aclose(self) -> None:
        await self.http_client.aclose()
