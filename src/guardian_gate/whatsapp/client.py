"""Async client for the WhatsApp Cloud API with retry and error mapping."""

from __future__ import annotations

import asyncio
import random
from typing import Any, Sequence

import httpx
from pydantic import ValidationError

from ..config import GuardianGateSettings
from ..errors import ErrorDetail, GuardianGateError, GuardianGateErrorCode
from ..logging import get_logger
from ..phones import to_whatsapp_recipient
from .models import OutboundMessage, TemplateComponent, WhatsAppMessageResponse

logger = get_logger(__name__)


class BackoffStrategy:
    def __init__(self, factor: float, maximum: float) -> None:
        self.factor = factor
        self.maximum = maximum

    async def sleep(self, attempt: int) -> None:
        delay = min(self.maximum, (2**attempt) * self.factor)
        jitter = random.random() * 0.1 * delay
        await asyncio.sleep(delay + jitter)


class WhatsAppCloudClient:
    """Sends template and text messages through the Graph API messages edge."""

    def __init__(self, settings: GuardianGateSettings) -> None:
        self.settings = settings
        self._backoff = BackoffStrategy(
            factor=settings.retry_backoff_factor,
            maximum=settings.retry_backoff_max,
        )

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.graph_api_base_url,
            timeout=httpx.Timeout(self.settings.default_timeout_seconds),
            headers={"Accept": "application/json"},
            verify=True,
        )

    async def send_template_message(
        self,
        to: str,
        template_name: str,
        language_code: str,
        components: Sequence[TemplateComponent] | None = None,
    ) -> WhatsAppMessageResponse:
        """Send a pre-approved template. Components fill its dynamic parameters."""

        template: dict[str, Any] = {"name": template_name, "language": {"code": language_code}}
        if components:
            template["components"] = [component.model_dump(exclude_none=True) for component in components]
        message = OutboundMessage(to=to_whatsapp_recipient(to), type="template", template=template)
        return await self._send(message)

    async def send_text_message(self, to: str, text: str) -> WhatsAppMessageResponse:
        message = OutboundMessage(to=to_whatsapp_recipient(to), type="text", text={"body": text})
        return await self._send(message)

    async def _send(self, message: OutboundMessage) -> WhatsAppMessageResponse:
        api_token, phone_number_id = self._credentials()
        path = f"/{self.settings.graph_api_version}/{phone_number_id}/messages"
        response = await self._post(path=path, access_token=api_token, payload=message.to_payload())
        try:
            result = WhatsAppMessageResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise GuardianGateError(
                ErrorDetail(
                    code=GuardianGateErrorCode.REMOTE_5XX,
                    message="Invalid response from WhatsApp Cloud API",
                    details={"status": response.status_code, "error": str(exc)},
                )
            ) from exc
        logger.info("whatsapp_message_sent", type=message.type, message_id=result.message_id)
        return result

    def _credentials(self) -> tuple[str, str]:
        missing = []
        if self.settings.whatsapp_api_token is None or not self.settings.whatsapp_api_token.get_secret_value():
            missing.append("whatsapp_api_token")
        if not self.settings.whatsapp_phone_number_id:
            missing.append("whatsapp_phone_number_id")
        if missing:
            raise GuardianGateError(
                ErrorDetail(
                    code=GuardianGateErrorCode.CONFIGURATION,
                    message="WhatsApp Cloud API credentials are not configured",
                    details={"missing": missing},
                )
            )
        assert self.settings.whatsapp_api_token is not None
        assert self.settings.whatsapp_phone_number_id is not None
        return self.settings.whatsapp_api_token.get_secret_value(), self.settings.whatsapp_phone_number_id

    async def _post(self, *, path: str, access_token: str, payload: dict[str, Any]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {access_token}"}

        async with self._http_client() as client:
            for attempt in range(self.settings.max_retries + 1):
                try:
                    response = await client.post(path, json=payload, headers=headers)
                except httpx.RequestError as exc:
                    if attempt == self.settings.max_retries:
                        raise GuardianGateError(
                            ErrorDetail(
                                code=GuardianGateErrorCode.REMOTE_5XX,
                                message="HTTP request failed",
                                details={"error": str(exc)},
                            )
                        ) from exc
                    logger.warning("whatsapp_request_retry", path=path, attempt=attempt, error=str(exc))
                    await self._backoff.sleep(attempt)
                    continue

                if response.status_code == 429 or response.status_code >= 500:
                    if attempt == self.settings.max_retries:
                        raise self._map_error(response)
                    logger.warning("whatsapp_request_retry", path=path, attempt=attempt, status=response.status_code)
                    await self._respect_retry_after(response)
                    await self._backoff.sleep(attempt)
                    continue

                if response.is_success:
                    return response

                raise self._map_error(response)

        raise GuardianGateError(  # pragma: no cover - loop always returns or raises
            ErrorDetail(
                code=GuardianGateErrorCode.REMOTE_5XX,
                message="Max retries exceeded",
                details={"path": path},
            )
        )

    async def _respect_retry_after(self, response: httpx.Response) -> None:
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                delay = float(retry_after)
            except ValueError:  # pragma: no cover - seconds since date format
                delay = 0.0
            await asyncio.sleep(min(delay, self.settings.retry_backoff_max))

    def _map_error(self, response: httpx.Response) -> GuardianGateError:
        retry_after = None
        if "Retry-After" in response.headers:
            try:
                retry_after = float(response.headers["Retry-After"])
            except ValueError:
                retry_after = None

        try:
            payload = response.json()
        except ValueError:
            payload = {"error": {"message": response.text}}
        if not isinstance(payload, dict):
            payload = {}

        err = payload.get("error") or {}
        if not isinstance(err, dict):
            err = {"message": str(err)}
        try:
            code = int(err["code"]) if err.get("code") is not None else None
        except (TypeError, ValueError):
            code = None
        details: dict[str, Any] = {"status": response.status_code}
        for key in ("type", "code", "error_subcode", "fbtrace_id"):
            if err.get(key) is not None:
                details[key] = err[key]
        if err.get("error_data"):
            details["error_data"] = err["error_data"]

        return GuardianGateError(
            ErrorDetail(
                code=self._classify_error(response.status_code, code),
                message=str(err.get("message") or "Unknown error"),
                details=details,
                retry_after=retry_after,
            )
        )

    def _classify_error(self, status: int, code: int | None) -> GuardianGateErrorCode:
        if status == 401 or code == 190:
            return GuardianGateErrorCode.AUTH
        if status == 403:
            return GuardianGateErrorCode.PERMISSION
        if status == 404:
            return GuardianGateErrorCode.NOT_FOUND
        if status == 429:
            return GuardianGateErrorCode.RATE_LIMIT
        if 500 <= status < 600:
            return GuardianGateErrorCode.REMOTE_5XX
        return GuardianGateErrorCode.VALIDATION


__all__ = ["BackoffStrategy", "WhatsAppCloudClient"]
