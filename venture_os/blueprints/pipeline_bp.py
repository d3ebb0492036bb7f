"""
Venture OS
Sales pipeline blueprint — clients, opportunities, price offers, contracts.

Endpoints:
    CLIENT       /api/v1/clients                               GET, POST
                 /api/v1/clients/<id>                          GET, PUT, DELETE

    OPPORTUNITY  /api/v1/opportunities                         GET, POST
                 /api/v1/opportunities/<id>                    GET, PUT, DELETE

    PRICE OFFER  /api/v1/price-offers                          GET, POST
                 /api/v1/price-offers/<id>                     GET, PUT, DELETE
                 /api/v1/price-offers/<id>/items               POST
                 /api/v1/price-offers/<id>/items/<item_id>     PUT, DELETE

    CONTRACT     /api/v1/contracts                             GET, POST
                 /api/v1/contracts/<id>                        GET, PUT, DELETE

Status changes into Won / Accepted / Active run the automator inside the
same request; the derived records are committed together with the update.
"""

import logging

from flask import Blueprint, jsonify, request

from venture_os.blueprints import commit_response, fail, json_body, paginate_query
from venture_os.models.client import Client
from venture_os.models.pipeline import Contract, Opportunity, PriceOffer
from venture_os.services import pipeline_service as pipeline_svc
from venture_os.utils.helpers import get_or_404

logger = logging.getLogger(__name__)

pipeline_bp = Blueprint("pipeline", __name__, url_prefix="/api/v1")


# ═══════════════════════════════════════════════════════════════════════════
#  CLIENT
# ═══════════════════════════════════════════════════════════════════════════

@pipeline_bp.route("/clients", methods=["GET"])
def list_clients():
    q = Client.query
    active = request.args.get("is_active")
    if active is not None:
        q = q.filter(Client.is_active.is_(active.lower() in ("1", "true", "yes")))
    search = request.args.get("q")
    if search:
        q = q.filter(Client.name.ilike(f"%{search}%"))
    clients, total = paginate_query(q.order_by(Client.name.asc()))
    return jsonify({"items": [c.to_dict() for c in clients], "total": total})


@pipeline_bp.route("/clients", methods=["POST"])
def create_client():
    client, err = pipeline_svc.create_client(json_body())
    if err:
        return fail(err)
    return commit_response(client.to_dict(), 201)


@pipeline_bp.route("/clients/<client_id>", methods=["GET"])
def get_client(client_id):
    client, err = get_or_404(Client, client_id)
    if err:
        return err
    return jsonify(client.to_dict())


@pipeline_bp.route("/clients/<client_id>", methods=["PUT", "PATCH"])
def update_client(client_id):
    client, err = pipeline_svc.update_client(client_id, json_body())
    if err:
        return fail(err)
    return commit_response(client.to_dict())


@pipeline_bp.route("/clients/<client_id>", methods=["DELETE"])
def delete_client(client_id):
    _, err = pipeline_svc.delete_client(client_id)
    if err:
        return fail(err)
    return commit_response({"message": "Client deleted"})


# ═══════════════════════════════════════════════════════════════════════════
#  OPPORTUNITY
# ═══════════════════════════════════════════════════════════════════════════

@pipeline_bp.route("/opportunities", methods=["GET"])
def list_opportunities():
    q = Opportunity.query
    client_id = request.args.get("client_id")
    if client_id:
        q = q.filter(Opportunity.client_id == client_id)
    stage = request.args.get("stage")
    if stage:
        q = q.filter(Opportunity.stage == stage)
    opps, total = paginate_query(q.order_by(Opportunity.updated_at.desc()))
    return jsonify({"items": [o.to_dict() for o in opps], "total": total})


@pipeline_bp.route("/opportunities", methods=["POST"])
def create_opportunity():
    opp, err = pipeline_svc.create_opportunity(json_body())
    if err:
        return fail(err)
    return commit_response(opp.to_dict(), 201)


@pipeline_bp.route("/opportunities/<opp_id>", methods=["GET"])
def get_opportunity(opp_id):
    opp, err = get_or_404(Opportunity, opp_id)
    if err:
        return err
    return jsonify(opp.to_dict())


@pipeline_bp.route("/opportunities/<opp_id>", methods=["PUT", "PATCH"])
def update_opportunity(opp_id):
    opp, err = pipeline_svc.update_opportunity(opp_id, json_body())
    if err:
        return fail(err)
    return commit_response(opp.to_dict())


@pipeline_bp.route("/opportunities/<opp_id>", methods=["DELETE"])
def delete_opportunity(opp_id):
    _, err = pipeline_svc.delete_opportunity(opp_id)
    if err:
        return fail(err)
    return commit_response({"message": "Opportunity deleted"})


# ═══════════════════════════════════════════════════════════════════════════
#  PRICE OFFER
# ═══════════════════════════════════════════════════════════════════════════

@pipeline_bp.route("/price-offers", methods=["GET"])
def list_price_offers():
    q = PriceOffer.query
    client_id = request.args.get("client_id")
    if client_id:
        q = q.filter(PriceOffer.client_id == client_id)
    status = request.args.get("status")
    if status:
        q = q.filter(PriceOffer.status == status)
    offers, total = paginate_query(q.order_by(PriceOffer.created_at.desc()))
    return jsonify({"items": [o.to_dict() for o in offers], "total": total})


@pipeline_bp.route("/price-offers", methods=["POST"])
def create_price_offer():
    offer, err = pipeline_svc.create_price_offer(json_body())
    if err:
        return fail(err)
    return commit_response(offer.to_dict(), 201)


@pipeline_bp.route("/price-offers/<offer_id>", methods=["GET"])
def get_price_offer(offer_id):
    offer, err = get_or_404(PriceOffer, offer_id, "Price offer")
    if err:
        return err
    return jsonify(offer.to_dict())


@pipeline_bp.route("/price-offers/<offer_id>", methods=["PUT", "PATCH"])
def update_price_offer(offer_id):
    offer, err = pipeline_svc.update_price_offer(offer_id, json_body())
    if err:
        return fail(err)
    return commit_response(offer.to_dict())


@pipeline_bp.route("/price-offers/<offer_id>", methods=["DELETE"])
def delete_price_offer(offer_id):
    _, err = pipeline_svc.delete_price_offer(offer_id)
    if err:
        return fail(err)
    return commit_response({"message": "Price offer deleted"})


@pipeline_bp.route("/price-offers/<offer_id>/items", methods=["POST"])
def add_offer_item(offer_id):
    offer, err = pipeline_svc.add_offer_item(offer_id, json_body())
    if err:
        return fail(err)
    return commit_response(offer.to_dict(), 201)


@pipeline_bp.route("/price-offers/<offer_id>/items/<item_id>", methods=["PUT", "PATCH"])
def update_offer_item(offer_id, item_id):
    offer, err = pipeline_svc.update_offer_item(offer_id, item_id, json_body())
    if err:
        return fail(err)
    return commit_response(offer.to_dict())


@pipeline_bp.route("/price-offers/<offer_id>/items/<item_id>", methods=["DELETE"])
def remove_offer_item(offer_id, item_id):
    offer, err = pipeline_svc.remove_offer_item(offer_id, item_id)
    if err:
        return fail(err)
    return commit_response(offer.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  CONTRACT
# ═══════════════════════════════════════════════════════════════════════════

@pipeline_bp.route("/contracts", methods=["GET"])
def list_contracts():
    q = Contract.query
    client_id = request.args.get("client_id")
    if client_id:
        q = q.filter(Contract.client_id == client_id)
    status = request.args.get("status")
    if status:
        q = q.filter(Contract.status == status)
    contracts, total = paginate_query(q.order_by(Contract.created_at.desc()))
    return jsonify({"items": [c.to_dict() for c in contracts], "total": total})


@pipeline_bp.route("/contracts", methods=["POST"])
def create_contract():
    contract, err = pipeline_svc.create_contract(json_body())
    if err:
        return fail(err)
    return commit_response(contract.to_dict(), 201)


@pipeline_bp.route("/contracts/<contract_id>", methods=["GET"])
def get_contract(contract_id):
    contract, err = get_or_404(Contract, contract_id)
    if err:
        return err
    return jsonify(contract.to_dict())


@pipeline_bp.route("/contracts/<contract_id>", methods=["PUT", "PATCH"])
def update_contract(contract_id):
    contract, err = pipeline_svc.update_contract(contract_id, json_body())
    if err:
        return fail(err)
    return commit_response(contract.to_dict())


@pipeline_bp.route("/contracts/<contract_id>", methods=["DELETE"])
def delete_contract(contract_id):
    _, err = pipeline_svc.delete_contract(contract_id)
    if err:
        return fail(err)
    return commit_response({"message": "Contract deleted"})
