"""Sales pipeline service — clients, opportunities, price offers, contracts.

Transaction policy: functions use flush(), never commit().
Caller (route handler / sync processor) is responsible for db.session.commit().

Status transitions fire the automator:
- Opportunity stage → Won        : stamps ``won_at``, OpportunityWon
- PriceOffer status → Accepted   : OfferAccepted (draft contract)
- Contract status → Active       : ContractActivated (client health +5)

Triggers fire only when the value actually changes, so replaying the same
update is idempotent with respect to derived records.
"""
import logging
import uuid

from email_validator import EmailNotValidError, validate_email

from venture_os.core.exceptions import NotFoundError, ValidationError, to_error
from venture_os.models import db
from venture_os.models.client import Client
from venture_os.models.pipeline import (
    CONTRACT_STATUSES,
    OFFER_STATUSES,
    OPPORTUNITY_STAGES,
    SERVICE_TYPES,
    Contract,
    Opportunity,
    PriceOffer,
)
from venture_os.services.automator import ContractActivated, OfferAccepted, OpportunityWon, dispatch
from venture_os.services.helpers.lookups import apply_fields, get_required
from venture_os.utils.helpers import utcnow

logger = logging.getLogger(__name__)

_CLIENT_FIELDS = (
    "name", "email", "phone", "brand_primary", "brand_secondary", "brand_accent",
    "logo_url", "brand_assets_url", "notes", "health_score", "is_active",
)


def _number(field, value, *, minimum=None, maximum=None):
    """Coerce ``value`` to int/float or raise ValidationError."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number") from None
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} must be <= {maximum}")
    return int(number) if number.is_integer() else number


def _normalize_email(email):
    if not email:
        return ""
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": str(e)}) from None


# ── Client ───────────────────────────────────────────────────────────────


def create_client(data):
    name = (data.get("name") or "").strip()
    if not name:
        return None, {"error": "Name is required", "status": 400}
    try:
        client = Client(name=name)
        apply_fields(client, data, _CLIENT_FIELDS[1:])
        client.email = _normalize_email(data.get("email"))
        if "health_score" in data:
            client.health_score = int(_number("health_score", data["health_score"], minimum=0, maximum=100))
    except ValidationError as exc:
        return None, to_error(exc)

    db.session.add(client)
    db.session.flush()
    return client, None


def update_client(client_id, data):
    try:
        client = get_required(Client, client_id)
        apply_fields(client, data, _CLIENT_FIELDS)
        if "email" in data:
            client.email = _normalize_email(data["email"])
        if "health_score" in data:
            client.health_score = int(_number("health_score", data["health_score"], minimum=0, maximum=100))
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)
    if not (client.name or "").strip():
        return None, {"error": "Name is required", "status": 400}
    db.session.flush()
    return client, None


def delete_client(client_id):
    try:
        client = get_required(Client, client_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    db.session.delete(client)
    db.session.flush()
    return True, None


# ── Opportunity ──────────────────────────────────────────────────────────


def create_opportunity(data):
    title = (data.get("title") or "").strip()
    client_id = data.get("client_id")
    if not title or not client_id:
        return None, {"error": "Title and client are required", "status": 400}
    try:
        get_required(Client, client_id)
        opp = Opportunity(
            client_id=client_id,
            title=title,
            description=data.get("description") or "",
            stage="Draft",
            won_at=None,
            lost_reason="",
        )
        apply_fields(
            opp, data, ("service_type", "expected_close"),
            choices={"service_type": SERVICE_TYPES},
            dates=("expected_close",),
        )
        opp.service_type = opp.service_type or "Web"
        opp.estimated_value = _number("estimated_value", data.get("estimated_value") or 0, minimum=0)
        opp.probability = int(_number("probability", data.get("probability", 25), minimum=0, maximum=100))
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)

    db.session.add(opp)
    db.session.flush()
    return opp, None


def update_opportunity(opp_id, data, now=None):
    """Update an opportunity; a transition into Won stamps ``won_at`` and fires the automator."""
    try:
        opp = get_required(Opportunity, opp_id)
        old_stage = opp.stage
        apply_fields(
            opp, data,
            ("title", "description", "service_type", "stage", "expected_close", "lost_reason"),
            choices={"service_type": SERVICE_TYPES, "stage": OPPORTUNITY_STAGES},
            dates=("expected_close",),
        )
        if "estimated_value" in data:
            opp.estimated_value = _number("estimated_value", data["estimated_value"], minimum=0)
        if "probability" in data:
            opp.probability = int(_number("probability", data["probability"], minimum=0, maximum=100))
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)

    won = opp.stage == "Won" and old_stage != "Won"
    if won:
        opp.won_at = now or utcnow()
    db.session.flush()

    if won:
        db.session.refresh(opp)
        dispatch(OpportunityWon(opp))
    return opp, None


def delete_opportunity(opp_id):
    try:
        opp = get_required(Opportunity, opp_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    db.session.delete(opp)
    db.session.flush()
    return True, None


# ── Price offer items ────────────────────────────────────────────────────


def normalize_item(item):
    """Return a clean line item with ``total = quantity × unit_price``."""
    if not isinstance(item, dict):
        raise ValidationError("Each item must be an object")
    quantity = _number("quantity", item.get("quantity", 1), minimum=0)
    unit_price = _number("unit_price", item.get("unit_price", 0), minimum=0)
    total = quantity * unit_price
    return {
        "id": item.get("id") or str(uuid.uuid4()),
        "name": item.get("name") or "",
        "service_type": item.get("service_type") or "Web",
        "description": item.get("description") or "",
        "quantity": quantity,
        "unit_price": unit_price,
        "total": int(total) if float(total).is_integer() else total,
    }


def normalize_items(items):
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    return [normalize_item(i) for i in items]


def offer_total(items):
    return sum(i.get("total") or 0 for i in items or [])


def _set_items(offer, items):
    offer.items = items
    offer.total_value = offer_total(items)


def add_offer_item(offer_id, item):
    try:
        offer = get_required(PriceOffer, offer_id)
        _set_items(offer, list(offer.items or []) + [normalize_item(item)])
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)
    db.session.flush()
    return offer, None


def update_offer_item(offer_id, item_id, changes):
    try:
        offer = get_required(PriceOffer, offer_id)
        items = list(offer.items or [])
        idx = next((i for i, it in enumerate(items) if it.get("id") == item_id), None)
        if idx is None:
            raise NotFoundError(resource="Offer item", resource_id=item_id)
        items[idx] = normalize_item({**items[idx], **changes, "id": item_id})
        _set_items(offer, items)
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)
    db.session.flush()
    return offer, None


def remove_offer_item(offer_id, item_id):
    try:
        offer = get_required(PriceOffer, offer_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    items = [it for it in (offer.items or []) if it.get("id") != item_id]
    if len(items) == len(offer.items or []):
        return None, {"error": f"Offer item id={item_id} not found", "status": 404}
    _set_items(offer, items)
    db.session.flush()
    return offer, None


# ── Price offer ──────────────────────────────────────────────────────────


def create_price_offer(data):
    title = (data.get("title") or "").strip()
    client_id = data.get("client_id")
    if not title or not client_id:
        return None, {"error": "Title and client are required", "status": 400}
    try:
        get_required(Client, client_id)
        if data.get("opportunity_id"):
            get_required(Opportunity, data["opportunity_id"])
        offer = PriceOffer(
            client_id=client_id,
            opportunity_id=data.get("opportunity_id") or None,
            title=title,
            status="Draft",
            notes=data.get("notes") or "",
        )
        apply_fields(offer, data, ("valid_until",), dates=("valid_until",))
        _set_items(offer, normalize_items(data.get("items")))
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)

    db.session.add(offer)
    db.session.flush()
    return offer, None


def update_price_offer(offer_id, data):
    """Update an offer; a transition into Accepted drafts a contract."""
    try:
        offer = get_required(PriceOffer, offer_id)
        old_status = offer.status
        apply_fields(
            offer, data, ("title", "status", "valid_until", "notes", "opportunity_id"),
            choices={"status": OFFER_STATUSES},
            dates=("valid_until",),
        )
        if "items" in data:
            _set_items(offer, normalize_items(data["items"]))
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)

    accepted = offer.status == "Accepted" and old_status != "Accepted"
    db.session.flush()

    if accepted:
        db.session.refresh(offer)
        dispatch(OfferAccepted(offer))
    return offer, None


def delete_price_offer(offer_id):
    try:
        offer = get_required(PriceOffer, offer_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    db.session.delete(offer)
    db.session.flush()
    return True, None


# ── Contract ─────────────────────────────────────────────────────────────


def create_contract(data):
    title = (data.get("title") or "").strip()
    client_id = data.get("client_id")
    if not title or not client_id:
        return None, {"error": "Title and client are required", "status": 400}
    try:
        get_required(Client, client_id)
        contract = Contract(
            client_id=client_id,
            opportunity_id=data.get("opportunity_id") or None,
            price_offer_id=data.get("price_offer_id") or None,
            title=title,
            status="Draft",
            pdf_url=data.get("pdf_url") or "",
            terms_md=data.get("terms_md") or "",
            total_value=_number("total_value", data.get("total_value") or 0, minimum=0),
        )
        apply_fields(contract, data, ("start_date", "end_date"), dates=("start_date", "end_date"))
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)

    db.session.add(contract)
    db.session.flush()
    return contract, None


def update_contract(contract_id, data):
    """Update a contract; a transition into Active fires ContractActivated."""
    try:
        contract = get_required(Contract, contract_id)
        old_status = contract.status
        apply_fields(
            contract, data,
            ("title", "status", "pdf_url", "start_date", "end_date", "terms_md"),
            choices={"status": CONTRACT_STATUSES},
            dates=("start_date", "end_date"),
        )
        if "total_value" in data:
            contract.total_value = _number("total_value", data["total_value"], minimum=0)
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)

    activated = contract.status == "Active" and old_status != "Active"
    db.session.flush()

    if activated:
        db.session.refresh(contract)
        dispatch(ContractActivated(contract))
    return contract, None


def delete_contract(contract_id):
    try:
        contract = get_required(Contract, contract_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    db.session.delete(contract)
    db.session.flush()
    return True, None
