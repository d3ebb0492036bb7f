"""Finance service — invoices and payments.

Transaction policy: functions use flush(), never commit().
Caller (route handler / sync processor) is responsible for db.session.commit().

An invoice moves to Paid as soon as the payments recorded against it cover
its amount. Invoices drawn from a price offer bill the offer total and fall
due thirty days out.
"""
import logging
from datetime import timedelta

from venture_os.core.exceptions import ConflictError, NotFoundError, ValidationError, to_error
from venture_os.models import db
from venture_os.models.client import Client
from venture_os.models.finance import INVOICE_STATUSES, PAYMENT_METHODS, Invoice, Payment
from venture_os.models.pipeline import Contract, PriceOffer
from venture_os.models.project import Project
from venture_os.services.helpers.lookups import apply_fields, get_required
from venture_os.services.pipeline_service import _number
from venture_os.utils.helpers import utcnow

logger = logging.getLogger(__name__)

INVOICE_DUE_DAYS = 30


# ── Invoice ──────────────────────────────────────────────────────────────


def create_invoice(data):
    client_id = data.get("client_id")
    if not client_id:
        return None, {"error": "Client is required", "status": 400}
    try:
        get_required(Client, client_id)
        if data.get("project_id"):
            get_required(Project, data["project_id"])
        invoice = Invoice(
            client_id=client_id,
            project_id=data.get("project_id") or None,
            amount=_number("amount", data.get("amount") or 0, minimum=0),
            status="Pending",
        )
        apply_fields(
            invoice, data, ("status", "due_date", "pdf_url"),
            choices={"status": INVOICE_STATUSES},
            datetimes=("due_date",),
        )
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)

    db.session.add(invoice)
    db.session.flush()
    return invoice, None


def update_invoice(invoice_id, data):
    try:
        invoice = get_required(Invoice, invoice_id)
        if data.get("project_id"):
            get_required(Project, data["project_id"])
        apply_fields(
            invoice, data, ("status", "due_date", "pdf_url", "project_id"),
            choices={"status": INVOICE_STATUSES},
            datetimes=("due_date",),
        )
        if "amount" in data:
            invoice.amount = _number("amount", data["amount"], minimum=0)
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)
    db.session.flush()
    return invoice, None


def delete_invoice(invoice_id):
    try:
        invoice = get_required(Invoice, invoice_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    db.session.delete(invoice)
    db.session.flush()
    return True, None


def _project_for_offer(offer):
    """Project delivered under the contract drafted from ``offer``, if any."""
    contract = (
        Contract.query.filter_by(price_offer_id=offer.id)
        .order_by(Contract.created_at.asc())
        .first()
    )
    if contract is None:
        return None
    return Project.query.filter_by(contract_id=contract.id).first()


def create_invoice_from_offer(offer_id, now=None):
    """Bill the total of a price offer.

    The invoice is linked to the project built from the offer's contract
    when one exists, and is due ``INVOICE_DUE_DAYS`` from ``now``.
    """
    try:
        offer = get_required(PriceOffer, offer_id)
    except NotFoundError as exc:
        return None, to_error(exc)

    project = _project_for_offer(offer)
    invoice = Invoice(
        client_id=offer.client_id,
        project_id=project.id if project else None,
        amount=offer.total_value or 0,
        status="Pending",
        due_date=(now or utcnow()) + timedelta(days=INVOICE_DUE_DAYS),
        pdf_url=None,
    )
    db.session.add(invoice)
    db.session.flush()
    logger.info("Invoice %s drawn from price offer %s (%s)", invoice.id, offer.id, invoice.amount)
    return invoice, None


# ── Payment ──────────────────────────────────────────────────────────────


def record_payment(invoice_id, data, now=None):
    """Record a payment; marks the invoice Paid once payments cover its amount.

    Returns:
        (payment, None) on success, (None, error) otherwise.
    """
    try:
        invoice = get_required(Invoice, invoice_id)
        if invoice.status == "Cancelled":
            raise ConflictError("Cannot record a payment on a cancelled invoice")
        payment = Payment(
            invoice_id=invoice.id,
            amount=_number("amount", data.get("amount"), minimum=0),
            method="Transfer",
            timestamp=now or utcnow(),
            transaction_ref=data.get("transaction_ref") or None,
        )
        if not payment.amount:
            raise ValidationError("amount must be greater than 0")
        apply_fields(
            payment, data, ("method", "timestamp"),
            choices={"method": PAYMENT_METHODS},
            datetimes=("timestamp",),
        )
        payment.timestamp = payment.timestamp or now or utcnow()
    except (NotFoundError, ValidationError, ConflictError) as exc:
        return None, to_error(exc)

    db.session.add(payment)
    db.session.flush()

    if invoice.status != "Paid" and invoice.amount_paid() >= (invoice.amount or 0):
        invoice.status = "Paid"
        db.session.flush()
        logger.info("Invoice %s paid in full", invoice.id)
    return payment, None


def list_payments(invoice_id):
    try:
        invoice = get_required(Invoice, invoice_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    return invoice.payments.all(), None
