"""Org-scoped profile listing."""
from flask import Blueprint, jsonify, request

from schedule_admin.api.decorators import current_caller, get_services, require_caller
from schedule_admin.core.validators import validate_optional_identifier

bp = Blueprint("users", __name__)


@bp.route("/users", methods=["GET"])
@require_caller
def list_users():
    """List profiles in the caller's org, or any org for superadmins."""
    org_id = validate_optional_identifier(request.args.get("orgId") or None, "orgId")
    department_id = validate_optional_identifier(request.args.get("departmentId") or None, "departmentId")
    provisioning = get_services()["provisioning"]
    users = provisioning.list_users(current_caller(), org_id, department_id)
    return jsonify({"users": users}), 200
