"""Deployment service — running environments of a project.

Transaction policy: flush() only; the caller commits.
"""
from venture_os.core.exceptions import NotFoundError, ValidationError, to_error
from venture_os.models import db
from venture_os.models.ops import DEPLOY_ENVIRONMENTS, Deployment
from venture_os.models.project import Project
from venture_os.services.helpers.lookups import apply_fields, get_required
from venture_os.utils.helpers import utcnow


def create_deployment(data, now=None):
    label = (data.get("label") or "").strip()
    project_id = data.get("project_id")
    if not label or not project_id:
        return None, {"error": "Label and project are required", "status": 400}
    try:
        get_required(Project, project_id)
        deployment = Deployment(
            project_id=project_id,
            client_id=data.get("client_id") or None,
            environment="Vercel",
            label=label,
            url=data.get("url") or "",
            status="healthy",
            last_checked_at=now or utcnow(),
            meta={},
        )
        apply_fields(deployment, data, ("environment",), choices={"environment": DEPLOY_ENVIRONMENTS})
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)

    db.session.add(deployment)
    db.session.flush()
    return deployment, None


def update_deployment(deployment_id, data, now=None):
    """Update a deployment; every update counts as a health check."""
    try:
        deployment = get_required(Deployment, deployment_id)
        apply_fields(
            deployment, data,
            ("label", "url", "status", "environment", "client_id", "metadata"),
            choices={"environment": DEPLOY_ENVIRONMENTS},
            aliases={"metadata": "meta"},
        )
    except (NotFoundError, ValidationError) as exc:
        return None, to_error(exc)
    deployment.last_checked_at = now or utcnow()
    db.session.flush()
    return deployment, None


def delete_deployment(deployment_id):
    try:
        deployment = get_required(Deployment, deployment_id)
    except NotFoundError as exc:
        return None, to_error(exc)
    db.session.delete(deployment)
    db.session.flush()
    return True, None
