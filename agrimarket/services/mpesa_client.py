# agrimarket/services/mpesa_client.py
import base64
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

import requests

from agrimarket.utils.retry import http_retry
from agrimarket.utils import settings
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


class MpesaClient:
    """
    Thin client for the Safaricom Daraja STK-push API.
    Only the two calls we need: OAuth token and the push request itself.
    """

    def __init__(
        self,
        base_url: str | None = None,
        consumer_key: str | None = None,
        consumer_secret: str | None = None,
        shortcode: str | None = None,
        passkey: str | None = None,
        callback_url: str | None = None,
        timeout: int | None = None,
    ):
        self.base_url = (base_url or settings.MPESA_BASE_URL).rstrip("/")
        self.consumer_key = consumer_key or settings.MPESA_CONSUMER_KEY
        self.consumer_secret = consumer_secret or settings.MPESA_CONSUMER_SECRET
        self.shortcode = shortcode or settings.MPESA_SHORTCODE
        self.passkey = passkey or settings.MPESA_PASSKEY
        self.callback_url = callback_url or settings.MPESA_CALLBACK_URL
        self.timeout = timeout or settings.MPESA_TIMEOUT_SECONDS

    @http_retry()
    def get_access_token(self) -> str:
        url = f"{self.base_url}/oauth/v1/generate"
        logger.info(f"MpesaClient GET {url}")

        resp = requests.get(
            url,
            params={"grant_type": "client_credentials"},
            auth=(self.consumer_key, self.consumer_secret),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()["access_token"]

    @http_retry()
    def _post_stk_push(self, token: str, payload: dict) -> dict:
        url = f"{self.base_url}/mpesa/stkpush/v1/processrequest"
        logger.info(f"MpesaClient POST {url} for {payload['AccountReference']}")

        resp = requests.post(
            url,
            json=payload,
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def stk_push(self, phone_number: str, amount: Decimal, account_reference: str, description: str) -> dict:
        """
        Sends the payment prompt to the buyer's phone.
        Returns the raw Daraja response, ResponseCode "0" means the push was accepted
        and the final result will arrive on the callback URL.
        """
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        password = base64.b64encode(f"{self.shortcode}{self.passkey}{timestamp}".encode()).decode()

        payload = {
            "BusinessShortCode": self.shortcode,
            "Password": password,
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            # Daraja only accepts whole shillings
            "Amount": int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
            "PartyA": phone_number,
            "PartyB": self.shortcode,
            "PhoneNumber": phone_number,
            "CallBackURL": self.callback_url,
            "AccountReference": account_reference,
            "TransactionDesc": description,
        }

        token = self.get_access_token()
        return self._post_stk_push(token, payload)

