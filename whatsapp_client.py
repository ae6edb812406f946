"""WhatsApp provider client.

Thin HTTP client for the messaging provider: send a text, check which
numbers have WhatsApp, send a contact card. Calls are synchronous, use an
explicit timeout and are never retried; any failure surfaces immediately as
GatewayError carrying whatever the provider answered.
"""

import re
from typing import Dict, List, Optional

import httpx

from config import settings
from errors import GatewayError
from logger_config import setup_logger

logger = setup_logger(__name__, 'whatsapp.log')

NON_DIGITS = re.compile(r'\D')


def normalize_phone(raw: str, country_code: Optional[str] = None) -> str:
    """Strip every non-digit and prefix the country code when missing.

    >>> normalize_phone("(63) 98419-3411")
    '5563984193411'
    """
    country_code = settings.DEFAULT_COUNTRY_CODE if country_code is None else country_code
    digits = NON_DIGITS.sub('', raw or '')
    if country_code and not digits.startswith(country_code):
        digits = f"{country_code}{digits}"
    return digits


def _provider_detail(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return response.text


class WhatsAppGateway:
    """Client for the provider's REST API.

    Args:
        base_url: Provider base URL
        instance: Provider instance name, part of every path
        api_key: Provider key, sent in the ``apikey`` header
        timeout: Seconds before a call is abandoned
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str,
        instance: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.instance = instance
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _post(self, path: str, payload, action: str):
        url = f"{self.base_url}{path}/{self.instance}"
        headers = {"apikey": self.api_key, "Content-Type": "application/json"}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                return response.json() if response.content else {}
        except httpx.HTTPStatusError as e:
            detail = _provider_detail(e.response)
            logger.error(f"Provider rejected {action}. Status: {e.response.status_code}, Response: {detail}")
            raise GatewayError(f"Erro ao {action}", errors={"error": detail})
        except httpx.TimeoutException:
            logger.error(f"Timeout while trying to {action}")
            raise GatewayError(f"Erro ao {action}", errors={"error": "Tempo limite excedido"})
        except httpx.RequestError as e:
            logger.error(f"Network error while trying to {action}: {str(e)}")
            raise GatewayError(f"Erro ao {action}", errors={"error": str(e)})
        except ValueError:
            logger.error(f"Provider answered {action} with a non-JSON body")
            raise GatewayError(f"Erro ao {action}", errors={"error": "Resposta inválida do provedor"})

    def send_text(self, phone: str, message: str, delay: Optional[int] = None) -> Dict:
        """Send a text message. ``phone`` must already be normalized."""
        delay = settings.WHATSAPP_DEFAULT_DELAY_MS if delay is None else delay
        logger.info(f"Sending WhatsApp message to {phone}")
        ack = self._post(
            "/message/sendText",
            {"phone": phone, "message": message, "delay": delay},
            "enviar mensagem",
        )
        logger.info(f"WhatsApp message to {phone} accepted by provider")
        return ack

    def verify_numbers(self, numbers: List[str]) -> List[Dict]:
        """Check which numbers have WhatsApp.

        Returns:
            List[dict]: ``{numero, verificado, jid}`` per number the provider reported
        """
        logger.info(f"Verifying {len(numbers)} number(s) on WhatsApp")
        results = self._post("/chat/whatsappNumbers", {"numbers": numbers}, "verificar números")
        if not isinstance(results, list):
            raise GatewayError("Erro ao verificar números", errors={"error": results})
        return [
            {
                "numero": item.get("number"),
                "verificado": bool(item.get("exists")),
                "jid": item.get("jid") or None,
            }
            for item in results
        ]

    def send_contact(self, phone: str, contact: Dict) -> Dict:
        """Send a contact card (``fullName`` and ``phoneNumber``) to ``phone``."""
        contact_phone = NON_DIGITS.sub('', contact.get("phoneNumber", ""))
        card = {
            "fullName": contact.get("fullName", ""),
            "wuid": contact_phone,
            "phoneNumber": contact_phone,
        }
        logger.info(f"Sending contact card to {phone}")
        return self._post("/message/sendContact", {"number": phone, "contact": [card]}, "enviar contato")


def get_whatsapp_gateway() -> WhatsAppGateway:
    """FastAPI dependency: gateway configured from settings."""
    return WhatsAppGateway(
        base_url=settings.WHATSAPP_BASE_URL,
        instance=settings.WHATSAPP_INSTANCE,
        api_key=settings.WHATSAPP_API_KEY,
        timeout=settings.WHATSAPP_TIMEOUT_SECONDS,
    )
