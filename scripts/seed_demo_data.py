#!/usr/bin/env python3
"""
Venture OS — Demo Data Seed Script.

Agency: a small studio with three clients, a won deal, an accepted offer
and one project mid-sprint. Records go through the service layer, so the
automator creates its derived contracts / projects / reports exactly as in
normal use.

Usage:
    python scripts/seed_demo_data.py
    python scripts/seed_demo_data.py --append    # keep existing rows
    python scripts/seed_demo_data.py --verbose
"""

import argparse
import sys
from datetime import timedelta

sys.path.insert(0, ".")

from venture_os import create_app
from venture_os.models import db
from venture_os.models.project import Project
from venture_os.services import pipeline_service, project_service, sprint_service, task_rules
from venture_os.services.feed_service import log_event
from venture_os.services.sync_service import clear_workspace
from venture_os.utils.helpers import utcnow

CLIENTS = [
    {"name": "Northwind Coffee", "email": "ops@northwind.example", "health_score": 92},
    {"name": "Atlas Logistics", "email": "it@atlas.example", "health_score": 68},
    {"name": "Bloom Clinics", "email": "hello@bloom.example", "health_score": 45},
]

OPPORTUNITIES = [
    # (client index, title, service_type, value, final stage)
    (0, "Loyalty app rebuild", "Web", 18000, "Won"),
    (1, "Fleet dashboard", "Cloud", 24000, "Negotiating"),
    (2, "Brand refresh", "Design", 6500, "Draft"),
]

OFFER_ITEMS = [
    {"name": "Discovery workshop", "service_type": "Design", "quantity": 2, "unit_price": 500},
    {"name": "Landing page", "service_type": "Web", "quantity": 1, "unit_price": 1000},
]

TASKS = [
    ("Set up CI pipeline", "High", 3),
    ("Design loyalty card screen", "Medium", 5),
    ("Integrate payment provider", "Critical", 8),
    ("Write onboarding copy", "Low", 2),
]


def _ok(result):
    obj, err = result
    if err:
        raise SystemExit(f"Seed failed: {err['error']}")
    return obj


def seed_all(append=False, verbose=False):
    if not append:
        counts = clear_workspace()
        print(f"🧹 Cleared {sum(counts.values())} rows")

    clients = [_ok(pipeline_service.create_client(c)) for c in CLIENTS]
    print(f"   ✅ {len(clients)} clients")

    for idx, title, service_type, value, stage in OPPORTUNITIES:
        opp = _ok(pipeline_service.create_opportunity({
            "client_id": clients[idx].id,
            "title": title,
            "service_type": service_type,
            "estimated_value": value,
        }))
        if stage != "Draft":
            _ok(pipeline_service.update_opportunity(opp.id, {"stage": stage}))
        if verbose:
            print(f"      {title} → {stage}")
    print(f"   ✅ {len(OPPORTUNITIES)} opportunities")

    offer = _ok(pipeline_service.create_price_offer({
        "client_id": clients[2].id,
        "title": "Brand refresh — phase 1",
        "items": OFFER_ITEMS,
    }))
    _ok(pipeline_service.update_price_offer(offer.id, {"status": "Accepted"}))
    print(f"   ✅ offer accepted ({offer.total_value:,.0f})")

    project = Project.query.filter_by(client_id=clients[0].id).first()
    if project is None:
        project = _ok(project_service.create_project({"name": "Loyalty app rebuild"}))
    _ok(project_service.update_project(project.id, {"status": "Implement", "progress": 35}))

    now = utcnow()
    sprint = _ok(sprint_service.create_sprint(project.id, {
        "goal": "Ship the loyalty card MVP",
        "planned_end_at": (now + timedelta(days=10)).isoformat(),
    }))
    for title, priority, points in TASKS:
        _ok(task_rules.create_task({
            "project_id": project.id,
            "sprint_id": sprint.id,
            "title": title,
            "priority": priority,
            "story_points": points,
            "due_date": (now + timedelta(days=points)).isoformat(),
        }))
    _ok(sprint_service.start_sprint(sprint.id, now=now))
    print(f"   ✅ sprint #{sprint.sprint_number} with {len(TASKS)} tasks")

    _ok(log_event("Info", "Demo data loaded", "seed", project.id))
    db.session.commit()
    print("\n🎉 DEMO DATA SEED COMPLETE\n")


def main():
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument("--append", action="store_true")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    app = create_app()
    print(f"🎯 DB: {app.config['SQLALCHEMY_DATABASE_URI']}\n")
    with app.app_context():
        db.create_all()
        seed_all(append=args.append, verbose=args.verbose)


if __name__ == "__main__":
    main()
