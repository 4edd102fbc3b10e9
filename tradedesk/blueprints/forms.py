"""Transaction forms blueprint - purchase, sale and sale return entry over JSON."""
from flask import Blueprint, current_app, jsonify, request, session
from flask_wtf.csrf import generate_csrf

from tradedesk.exceptions import BackendError, NotFoundError
from tradedesk.models import CatalogSnapshot, DraftState, FormMode, TransactionKind
from tradedesk.services.backend_client import get_backend
from tradedesk.services.catalog_service import invalidate_catalog, load_catalog
from tradedesk.services.form_service import apply_action, derive_view, load_document, new_draft
from tradedesk.services.save_service import SaveStatus, save_form
from tradedesk.utils.number_format import to_optional_id

forms_bp = Blueprint('forms', __name__, url_prefix='/forms')

SESSION_KEY = 'drafts'


def _parse_kind(kind: str) -> TransactionKind:
    try:
        return TransactionKind(kind)
    except ValueError:
        raise NotFoundError(f'Unknown transaction type: {kind}')


def get_draft(kind: TransactionKind) -> DraftState:
    """Open form of this kind from the session."""
    data = (session.get(SESSION_KEY) or {}).get(kind.value)
    if not data:
        raise NotFoundError('No open form. Start a new one first.')
    return DraftState.from_dict(data)


def save_draft(state: DraftState) -> None:
    """Store the form in the session; Decimals travel as strings."""
    drafts = dict(session.get(SESSION_KEY) or {})
    drafts[state.kind.value] = state.to_dict()
    session[SESSION_KEY] = drafts
    session.modified = True


def discard_draft(kind: TransactionKind) -> None:
    drafts = dict(session.get(SESSION_KEY) or {})
    drafts.pop(kind.value, None)
    session[SESSION_KEY] = drafts
    session.modified = True


def _render(state: DraftState, catalog: CatalogSnapshot, status_code: int = 200, **extra):
    data = derive_view(state, catalog).to_dict()
    data.update(extra)
    return jsonify(data), status_code


def _follow_up(state: DraftState, action: dict, catalog: CatalogSnapshot) -> DraftState:
    """Backend lookups some actions trigger once the state has changed."""
    action_type = action.get('type')

    if action_type == 'select_item' and state.kind is TransactionKind.PURCHASE:
        item_id = to_optional_id(action.get('item_id'))
        if catalog.find_item(item_id) is None:
            return state
        info = get_backend().fetch_last_transaction(item_id)
        if info:
            state = apply_action(state, {
                'type': 'set_last_purchase_rate',
                'row_id': action.get('row_id'),
                'rate': info.get('previous_retail_price'),
            }, catalog)

    elif action_type == 'set_header' and state.kind is TransactionKind.SALE:
        values = action.get('values') or {}
        if 'account_id' in values:
            account_id = state.header.account_id
            balance = get_backend().fetch_account_balance(account_id) if account_id else 0
            state = apply_action(state, {'type': 'set_header', 'values': {'previous_balance': balance}}, catalog)

    return state


@forms_bp.route('/csrf-token')
def csrf_token():
    return jsonify({'csrf_token': generate_csrf()})


@forms_bp.route('/<kind>/new', methods=['GET', 'POST'])
def new_form(kind):
    """Start a blank form with the next invoice number from the catalog."""
    kind = _parse_kind(kind)
    catalog = load_catalog(kind)
    state = new_draft(kind, FormMode.CREATE, catalog.next_invoice_number)
    save_draft(state)
    current_app.logger.info(f"[FORM] New {kind.value} form {catalog.next_invoice_number}")
    return _render(state, catalog)


@forms_bp.route('/<kind>/<int:invoice_id>/edit', methods=['GET', 'POST'])
def edit_form(kind, invoice_id):
    """
    Open a stored document.

    For sale_return, invoice_id is the sale being returned: the form starts
    as a new return with that sale's lines and zero return quantities.
    """
    kind = _parse_kind(kind)
    catalog = load_catalog(kind)
    backend = get_backend()

    source_kind = TransactionKind.SALE if kind is TransactionKind.SALE_RETURN else kind
    try:
        document = backend.fetch_invoice(source_kind, invoice_id)
    except BackendError as e:
        if e.backend_status == 404:
            raise NotFoundError(f'{source_kind.value.capitalize()} #{invoice_id} not found')
        raise

    if kind is TransactionKind.SALE_RETURN:
        state = new_draft(kind, FormMode.CREATE, catalog.next_invoice_number)
    else:
        state = new_draft(kind, FormMode.EDIT)
    state = load_document(state, document, catalog)

    save_draft(state)
    current_app.logger.info(f"[FORM] Loaded {source_kind.value} #{invoice_id} into a {kind.value} form")
    return _render(state, catalog)


@forms_bp.route('/<kind>/view')
def view_form(kind):
    kind = _parse_kind(kind)
    return _render(get_draft(kind), load_catalog(kind))


@forms_bp.route('/<kind>/actions', methods=['POST'])
def dispatch_action(kind):
    """Apply one form action (JSON body with a "type") and return the recomputed form."""
    kind = _parse_kind(kind)
    action = request.get_json(silent=True) or {}
    catalog = load_catalog(kind)

    state = apply_action(get_draft(kind), action, catalog)
    state = _follow_up(state, action, catalog)
    save_draft(state)
    return _render(state, catalog)


@forms_bp.route('/items/<int:item_id>/last-transaction')
def last_transaction(item_id):
    """Last purchase of an item, or an empty object when there is none."""
    return jsonify(get_backend().fetch_last_transaction(item_id) or {})


@forms_bp.route('/<kind>/save', methods=['POST'])
def save(kind):
    """
    Save the open form.

    Body: {"confirm": null | "update" | "skip" | "override" | "cancel"}.
    A confirmation is only needed after the first attempt answered with an
    awaiting_* status.
    """
    kind = _parse_kind(kind)
    confirm = (request.get_json(silent=True) or {}).get('confirm')
    catalog = load_catalog(kind)

    outcome = save_form(get_draft(kind), catalog, get_backend(), confirm=confirm)

    if outcome.status is SaveStatus.SUBMITTED:
        invalidate_catalog()
        catalog = load_catalog(kind)
        current_app.logger.info(f"[SAVE] {kind.value} submitted, next invoice {outcome.state.header.invoice_number}")
    elif outcome.status is SaveStatus.FAILED:
        current_app.logger.warning(f"[SAVE] {kind.value} not saved: {outcome.error.message}")

    save_draft(outcome.state)
    status_code = 502 if outcome.status is SaveStatus.FAILED else 200
    return _render(outcome.state, catalog, status_code, save=outcome.to_dict())


@forms_bp.route('/<kind>/discard', methods=['POST'])
def discard(kind):
    kind = _parse_kind(kind)
    discard_draft(kind)
    return jsonify({'status': 'discarded'})
