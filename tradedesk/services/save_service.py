"""
Save flow for transaction forms.

Purchases stop when catalog trade prices drifted and wait for an explicit
"update" or "skip". Sales stop when demand exceeds stock and wait for
"override" or "cancel". Returns submit straight away. A failed submit keeps
the form untouched so the user can retry.
"""
import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tradedesk.blueprints.metrics import record_save
from tradedesk.exceptions import BackendError, BusinessLogicError
from tradedesk.models import CatalogSnapshot, DraftState, FormMode, PriceUpdateCandidate, TransactionKind
from tradedesk.services import validation_service
from tradedesk.services.backend_client import BackendClient
from tradedesk.services.form_service import derive_view, item_rows, new_draft
from tradedesk.services.payload_service import build_submit_payload

logger = logging.getLogger(__name__)

PRICE_CHOICES = ('update', 'skip')
STOCK_CHOICES = ('override', 'cancel')

_TRAILING_DIGITS = re.compile(r'(\d+)$')


class SaveStatus(str, enum.Enum):
    SUBMITTED = 'submitted'
    AWAITING_PRICE_CONFIRMATION = 'awaiting_price_confirmation'
    AWAITING_STOCK_OVERRIDE = 'awaiting_stock_override'
    CANCELLED = 'cancelled'
    FAILED = 'failed'


@dataclass(frozen=True)
class SaveOutcome:
    """Result of a save attempt and the form state to continue with."""

    status: SaveStatus
    state: DraftState
    price_updates: List[PriceUpdateCandidate] = field(default_factory=list)
    overstocked_item_ids: List[int] = field(default_factory=list)
    response: Dict[str, Any] = field(default_factory=dict)
    error: Optional[BackendError] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'status': self.status.value}
        if self.price_updates:
            data['price_updates'] = [candidate.to_dict() for candidate in self.price_updates]
        if self.overstocked_item_ids:
            data['overstocked_item_ids'] = self.overstocked_item_ids
        if self.response:
            data['response'] = self.response
        if self.error is not None:
            data['error'] = self.error.to_dict()
        return data


def next_invoice_number(current: str) -> str:
    """Bump the trailing number of an invoice number, keeping its width (INV-009 -> INV-010)."""
    match = _TRAILING_DIGITS.search(current or '')
    if not match:
        return current or ''
    digits = match.group(1)
    return current[:match.start()] + str(int(digits) + 1).zfill(len(digits))


def save_form(state: DraftState, catalog: CatalogSnapshot, backend: BackendClient,
              confirm: Optional[str] = None) -> SaveOutcome:
    """Run the save flow for the form's document type."""
    if not item_rows(state):
        raise BusinessLogicError('Add at least one item before saving.')

    if state.kind is TransactionKind.PURCHASE:
        return _save_purchase(state, catalog, backend, confirm)
    if state.kind is TransactionKind.SALE:
        return _save_sale(state, catalog, backend, confirm)
    if confirm is not None:
        raise BusinessLogicError(f'Invalid confirmation for a sale return: {confirm}')
    return _submit(state, catalog, backend)


def _save_purchase(state: DraftState, catalog: CatalogSnapshot, backend: BackendClient,
                   confirm: Optional[str]) -> SaveOutcome:
    if confirm is not None and confirm not in PRICE_CHOICES:
        raise BusinessLogicError(f'Invalid price confirmation: {confirm}')

    candidates = validation_service.detect_price_drift(
        item_rows(state), catalog, state.header.markup_percent
    )
    if candidates and confirm is None:
        return SaveOutcome(SaveStatus.AWAITING_PRICE_CONFIRMATION, state, price_updates=candidates)

    return _submit(
        state, catalog, backend,
        update_prices=bool(candidates) and confirm == 'update',
        price_updates=candidates,
    )


def _save_sale(state: DraftState, catalog: CatalogSnapshot, backend: BackendClient,
               confirm: Optional[str]) -> SaveOutcome:
    if confirm is not None and confirm not in STOCK_CHOICES:
        raise BusinessLogicError(f'Invalid stock confirmation: {confirm}')
    if confirm == 'cancel':
        record_save(state.kind.value, SaveStatus.CANCELLED.value)
        return SaveOutcome(SaveStatus.CANCELLED, state)

    overstocked = sorted(validation_service.overstocked_items(state.rows, catalog))
    if overstocked and confirm is None:
        return SaveOutcome(SaveStatus.AWAITING_STOCK_OVERRIDE, state, overstocked_item_ids=overstocked)

    return _submit(state, catalog, backend, allow_negative_stock=bool(overstocked))


def _submit(state: DraftState, catalog: CatalogSnapshot, backend: BackendClient, **flags) -> SaveOutcome:
    kind = state.kind
    payload = build_submit_payload(derive_view(state, catalog), **flags)
    invoice_id = state.header.invoice_id if state.mode is FormMode.EDIT else None

    try:
        response = backend.submit_invoice(kind, payload, invoice_id=invoice_id)
    except BackendError as e:
        logger.error(f"[SAVE] {kind.value} {state.header.invoice_number} failed: {e.message}")
        record_save(kind.value, SaveStatus.FAILED.value)
        return SaveOutcome(SaveStatus.FAILED, state, error=e)

    record_save(kind.value, SaveStatus.SUBMITTED.value)
    logger.info(f"[SAVE] {kind.value} {state.header.invoice_number} saved ({payload['no_of_items']} items)")

    next_number = (
        response.get('next_invoice_no')
        or response.get('nextInvoiceNo')
        or next_invoice_number(state.header.invoice_number)
    )
    return SaveOutcome(
        SaveStatus.SUBMITTED,
        new_draft(kind, FormMode.CREATE, str(next_number)),
        response=response,
    )
