"""
Venture OS
Finance blueprint — invoices and payments.

Endpoints:
    INVOICE   /api/v1/invoices                          GET, POST
              /api/v1/invoices/<id>                     GET, PUT, DELETE
              /api/v1/price-offers/<id>/invoice         POST

    PAYMENT   /api/v1/invoices/<id>/payments            GET, POST
"""

import logging

from flask import Blueprint, jsonify, request

from venture_os.blueprints import commit_response, fail, json_body, paginate_query
from venture_os.models.finance import Invoice
from venture_os.services import finance_service as finance_svc
from venture_os.utils.helpers import get_or_404

logger = logging.getLogger(__name__)

finance_bp = Blueprint("finance", __name__, url_prefix="/api/v1")


# ═══════════════════════════════════════════════════════════════════════════
#  INVOICE
# ═══════════════════════════════════════════════════════════════════════════

@finance_bp.route("/invoices", methods=["GET"])
def list_invoices():
    q = Invoice.query
    for arg in ("client_id", "project_id", "status"):
        value = request.args.get(arg)
        if value:
            q = q.filter(getattr(Invoice, arg) == value)
    invoices, total = paginate_query(q.order_by(Invoice.created_at.desc()))
    return jsonify({"items": [i.to_dict() for i in invoices], "total": total})


@finance_bp.route("/invoices", methods=["POST"])
def create_invoice():
    invoice, err = finance_svc.create_invoice(json_body())
    if err:
        return fail(err)
    return commit_response(invoice.to_dict(), 201)


@finance_bp.route("/invoices/<invoice_id>", methods=["GET"])
def get_invoice(invoice_id):
    invoice, err = get_or_404(Invoice, invoice_id)
    if err:
        return err
    return jsonify(invoice.to_dict(include_payments=True))


@finance_bp.route("/invoices/<invoice_id>", methods=["PUT", "PATCH"])
def update_invoice(invoice_id):
    invoice, err = finance_svc.update_invoice(invoice_id, json_body())
    if err:
        return fail(err)
    return commit_response(invoice.to_dict())


@finance_bp.route("/invoices/<invoice_id>", methods=["DELETE"])
def delete_invoice(invoice_id):
    _, err = finance_svc.delete_invoice(invoice_id)
    if err:
        return fail(err)
    return commit_response({"message": "Invoice deleted"})


@finance_bp.route("/price-offers/<offer_id>/invoice", methods=["POST"])
def invoice_from_offer(offer_id):
    invoice, err = finance_svc.create_invoice_from_offer(offer_id)
    if err:
        return fail(err)
    return commit_response(invoice.to_dict(), 201)


# ═══════════════════════════════════════════════════════════════════════════
#  PAYMENT
# ═══════════════════════════════════════════════════════════════════════════

@finance_bp.route("/invoices/<invoice_id>/payments", methods=["GET"])
def list_payments(invoice_id):
    payments, err = finance_svc.list_payments(invoice_id)
    if err:
        return fail(err)
    return jsonify({"items": [p.to_dict() for p in payments], "total": len(payments)})


@finance_bp.route("/invoices/<invoice_id>/payments", methods=["POST"])
def record_payment(invoice_id):
    payment, err = finance_svc.record_payment(invoice_id, json_body())
    if err:
        return fail(err)
    return commit_response({"payment": payment.to_dict(), "invoice": payment.invoice.to_dict()}, 201)
