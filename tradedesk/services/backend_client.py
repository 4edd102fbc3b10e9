"""HTTP client for the inventory backend that owns catalog and ledger data."""
from typing import Any, Dict, Optional

import requests
from flask import Flask, current_app

from tradedesk.exceptions import BackendError
from tradedesk.models import TransactionKind
from tradedesk.utils.number_format import ZERO, to_decimal

# Path segment each document type is submitted to.
SUBMIT_PATHS = {
    TransactionKind.PURCHASE: 'purchase',
    TransactionKind.SALE: 'sales',
    TransactionKind.SALE_RETURN: 'sales-return',
}


class BackendClient:
    """Client for the inventory backend REST API."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 10):
        """
        Args:
            base_url: Backend root, e.g. https://erp.example.com
            token: Optional bearer token sent on every request
            timeout: Per-request timeout in seconds
        """
        if not base_url:
            raise ValueError("BACKEND_API_URL is required")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.headers = {
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        }
        if token:
            self.headers['Authorization'] = f'Bearer {token}'

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = requests.request(method, url, headers=self.headers, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json() if response.content else {}
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            body = _error_body(e.response)
            current_app.logger.error(f"[BACKEND] {method} {path} failed with {status}: {body}")
            raise BackendError(
                body.get('message') or f"Backend rejected the request ({status})",
                backend_status=status,
                errors=body.get('errors'),
            ) from e
        except (requests.RequestException, ValueError) as e:
            current_app.logger.error(f"[BACKEND] {method} {path} unreachable: {e}")
            raise BackendError(f"Backend unavailable: {e}") from e

    def fetch_catalog(self, kind: TransactionKind) -> Dict[str, Any]:
        """Raw catalog for a form: items, accounts, salesmen, firms, message lines, next invoice no."""
        current_app.logger.info(f"[BACKEND] Fetching {kind.value} catalog")
        return self._request('GET', f"api/forms/{kind.value}/catalog")

    def fetch_invoice(self, kind: TransactionKind, invoice_id: int) -> Dict[str, Any]:
        """A stored document with its lines, for edit and return flows."""
        current_app.logger.info(f"[BACKEND] Fetching {kind.value} #{invoice_id}")
        return self._request('GET', f"api/{kind.value}/{invoice_id}")

    def fetch_last_transaction(self, item_id: int) -> Optional[Dict[str, Any]]:
        """
        Last purchase of an item. Informational only, so any failure is
        logged and reported as "no history".
        """
        try:
            data = self._request('GET', 'api/purchase/last-purchase-info', params={'item_id': item_id})
        except BackendError as e:
            current_app.logger.warning(f"[BACKEND] No purchase history for item {item_id}: {e.message}")
            return None
        return data or None

    def fetch_account_balance(self, account_id: int):
        """Outstanding balance of an account; 0 when it cannot be fetched."""
        try:
            data = self._request('GET', f"account/{account_id}/balance")
        except BackendError as e:
            current_app.logger.warning(f"[BACKEND] Balance unavailable for account {account_id}: {e.message}")
            return ZERO
        return to_decimal(data.get('balance'))

    def submit_invoice(self, kind: TransactionKind, payload: Dict[str, Any],
                       invoice_id: Optional[int] = None) -> Dict[str, Any]:
        """POST a new document, or PUT over a stored one when invoice_id is given."""
        path = SUBMIT_PATHS[kind]
        if invoice_id:
            if kind is TransactionKind.SALE_RETURN:
                raise BackendError("Sale returns cannot be edited")
            method, path = 'PUT', f"{path}/{invoice_id}"
        else:
            method = 'POST'

        current_app.logger.info(f"[BACKEND] Submitting {kind.value} ({method} {path})")
        data = self._request(method, path, json=payload)
        current_app.logger.info(f"[BACKEND] {kind.value} saved: {data.get('id', invoice_id)}")
        return data


def _error_body(response) -> Dict[str, Any]:
    if response is None:
        return {}
    try:
        body = response.json()
    except ValueError:
        return {'message': response.text[:200]} if response.text else {}
    return body if isinstance(body, dict) else {}


def init_backend(app: Flask) -> None:
    """Create the backend client from config and attach it to the app."""
    app.extensions['backend'] = BackendClient(
        app.config.get('BACKEND_API_URL', ''),
        token=app.config.get('BACKEND_API_TOKEN'),
        timeout=app.config.get('BACKEND_TIMEOUT', 10),
    )


def get_backend() -> BackendClient:
    backend = current_app.extensions.get('backend')
    if backend is None:
        raise RuntimeError("Backend client not initialized.")
    return backend
