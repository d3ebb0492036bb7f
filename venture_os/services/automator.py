"""
Automator Engine — business rules that chain derived records onto status
transitions.

    OfferAccepted(offer)          → draft Contract + audit log + agent report
    OpportunityWon(opportunity)   → Project + Lifecycle + audit log + agent report
    ContractActivated(contract)   → audit log + agent report + client health +5

Invocation contract:
    The caller fires an event only after the triggering update has been
    flushed, passing the re-read entity. Each derived insert runs in its own
    SAVEPOINT; a failed insert is logged and the remaining ones continue. The
    triggering update is never rolled back by the engine.

Usage:
    from venture_os.services.automator import OfferAccepted, dispatch
    result = dispatch(OfferAccepted(offer))      # {"contract_id": "..."}

    run_automator("offer_accepted", offer)         # string-keyed entry point
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError

from venture_os.models import db
from venture_os.models.client import Client
from venture_os.models.ops import AgentReport, AuditLog
from venture_os.models.pipeline import Contract
from venture_os.models.project import Lifecycle, Project
from venture_os.utils.helpers import format_currency, utcnow

logger = logging.getLogger(__name__)

SOURCE = "automator"
REPORT_TYPE = "automator_action"
HEALTH_BONUS = 5
HEALTH_DEFAULT = 75


# ═════════════════════════════════════════════════════════════════════════════
# Events
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class OfferAccepted:
    offer: Any


@dataclass(frozen=True)
class OpportunityWon:
    opportunity: Any


@dataclass(frozen=True)
class ContractActivated:
    contract: Any


TRIGGERS: dict[str, type] = {
    "offer_accepted": OfferAccepted,
    "opportunity_won": OpportunityWon,
    "contract_activated": ContractActivated,
}

_HANDLERS: dict[type, Callable[[Any], dict]] = {}


def _handles(event_type):
    def decorator(fn):
        _HANDLERS[event_type] = fn
        return fn
    return decorator


def dispatch(event) -> dict:
    """Run the handler registered for ``type(event)``."""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"No automator handler for {type(event).__name__}")
    logger.info("Automator: %s fired", type(event).__name__)
    return handler(event)


def run_automator(trigger: str, entity) -> dict:
    """String-keyed entry point; unknown trigger names are a no-op."""
    event_type = TRIGGERS.get(trigger)
    if event_type is None:
        logger.warning("Automator: unknown trigger %r ignored", trigger)
        return {}
    return dispatch(event_type(entity))


# ═════════════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════════════

def _insert(label: str, obj):
    """Insert ``obj`` inside a SAVEPOINT. Returns the row, or None on failure."""
    try:
        with db.session.begin_nested():
            db.session.add(obj)
            db.session.flush()
    except SQLAlchemyError:
        logger.warning("Automator: failed to insert %s", label, exc_info=True)
        return None
    return obj


def _audit(message: str, project_id: str | None = None):
    return _insert("audit log", AuditLog(
        level="Info",
        message=message,
        source=SOURCE,
        project_id=project_id,
    ))


def _report(title: str, body: str, client_id=None, project_id=None):
    return _insert("agent report", AgentReport(
        client_id=client_id,
        project_id=project_id,
        report_type=REPORT_TYPE,
        title=title,
        body=body,
        severity="info",
        is_resolved=False,
    ))


CONTRACT_TERMS_TEMPLATE = """\
# Contract Terms — {title}

## Scope of Work

{scope}

## Total Value

**{total}**

## Payment Terms

- 30% upon contract signing
- 40% upon milestone delivery
- 30% upon final acceptance

## Timeline

_To be determined upon project kickoff._

## Notes

{notes}

---
_Auto-generated by Venture OS Automator Engine_
_{date}_
"""


def generate_contract_terms(offer, today=None) -> str:
    """Render the Markdown terms document for a draft contract."""
    today = today or utcnow().date()
    lines = []
    for idx, item in enumerate(offer.items or [], start=1):
        lines.append(
            f"{idx}. **{item.get('name', '')}** — {item.get('description') or ''}\n"
            f"   - Qty: {item.get('quantity', 0)} × {format_currency(item.get('unit_price'))}"
            f" = {format_currency(item.get('total'))}"
        )
    return CONTRACT_TERMS_TEMPLATE.format(
        title=offer.title,
        scope="\n\n".join(lines) or "_No line items specified._",
        total=format_currency(offer.total_value),
        notes=offer.notes or "_No additional notes._",
        date=today.isoformat(),
    )


# ═════════════════════════════════════════════════════════════════════════════
# Handlers
# ═════════════════════════════════════════════════════════════════════════════

@_handles(OfferAccepted)
def _on_offer_accepted(event: OfferAccepted) -> dict:
    offer = event.offer
    title = f"Contract — {offer.title}"
    amount = format_currency(offer.total_value)

    contract = _insert("contract", Contract(
        client_id=offer.client_id,
        opportunity_id=offer.opportunity_id,
        price_offer_id=offer.id,
        title=title,
        status="Draft",
        pdf_url="",
        total_value=offer.total_value or 0,
        start_date=None,
        end_date=None,
        terms_md=generate_contract_terms(offer),
    ))

    _audit(f'⚡ Automator: Draft contract "{title}" created from accepted offer ({amount})')
    _report(
        "Contract Auto-Drafted",
        f'Offer "{offer.title}" was accepted. A draft contract has been automatically '
        f"created with value {amount}. Review and finalize the contract terms.",
        client_id=offer.client_id,
    )
    return {"contract_id": contract.id if contract else None}


@_handles(OpportunityWon)
def _on_opportunity_won(event: OpportunityWon) -> dict:
    opp = event.opportunity
    name = f"{opp.title} — Build"
    now = utcnow()

    project = _insert("project", Project(
        name=name,
        description=f"Auto-initialized from won opportunity: {opp.title}",
        status="Understand",
        progress=0,
        is_frozen=False,
        specs_md="",
        client_id=opp.client_id,
        contract_id=None,
        service_type=opp.service_type,
    ))
    project_id = project.id if project else None

    if project is not None:
        _insert("lifecycle", Lifecycle(
            project_id=project.id,
            current_stage="Requirements",
            stage_history=[{"stage": "Requirements", "entered_at": now.isoformat()}],
            started_at=now,
        ))

    _audit(
        f'⚡ Automator: Project "{name}" initialized from won opportunity '
        f"({format_currency(opp.estimated_value)})",
        project_id=project_id,
    )
    _report(
        "Project Auto-Initialized",
        f'Opportunity "{opp.title}" was marked as Won. A new project has been created in '
        f'"Understand" phase with a Requirements lifecycle stage. Next: define specs and scope.',
        client_id=opp.client_id,
        project_id=project_id,
    )
    return {"project_id": project_id}


@_handles(ContractActivated)
def _on_contract_activated(event: ContractActivated) -> dict:
    contract = event.contract
    amount = format_currency(contract.total_value)

    _audit(f'🎉 Automator: Contract "{contract.title}" is now ACTIVE ({amount}). Revenue locked.')
    _report(
        "Contract Activated — Revenue Locked",
        f'Contract "{contract.title}" has been activated with total value {amount}. '
        f"This revenue is now reflected in active contract metrics.",
        client_id=contract.client_id,
    )
    bump_client_health(contract.client_id)
    return {}


def bump_client_health(client_id, amount=HEALTH_BONUS):
    """Best-effort ``health_score += amount`` capped at 100; failures are logged only."""
    if not client_id:
        return None
    try:
        with db.session.begin_nested():
            client = db.session.get(Client, client_id)
            if client is None:
                return None
            base = client.health_score if client.health_score is not None else HEALTH_DEFAULT
            client.health_score = min(100, base + amount)
            db.session.flush()
    except SQLAlchemyError:
        logger.debug("Automator: client health bump failed for %s", client_id, exc_info=True)
        return None
    return client.health_score
