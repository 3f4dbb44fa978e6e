"""Admin action dispatch: ``POST /admin`` and ``POST /admin/<action>``."""
from __future__ import annotations
import logging
from typing import Optional

from flask import Blueprint, jsonify, request

from schedule_admin.api.decorators import current_caller, get_services, require_caller
from schedule_admin.core.errors import InvalidArgument
from schedule_admin.core.models import Action

logger = logging.getLogger(__name__)

bp = Blueprint("admin", __name__)

# Password-reset aliases are synonyms for one operation
ACTION_ALIASES = {
    "createUser": Action.CREATE_USER,
    "updateUser": Action.UPDATE_USER,
    "deleteUser": Action.DELETE_USER,
    "setPassword": Action.RESET_PASSWORD,
    "resetPassword": Action.RESET_PASSWORD,
    "adminResetPassword": Action.RESET_PASSWORD,
}

_HANDLERS = {
    Action.CREATE_USER: "create_user",
    Action.UPDATE_USER: "update_user",
    Action.DELETE_USER: "delete_user",
    Action.RESET_PASSWORD: "reset_password",
}


def _read_body() -> dict:
    body = request.get_json(silent=True)
    if body is None:
        if request.get_data(cache=True):
            raise InvalidArgument("request body must be valid JSON")
        return {}
    if not isinstance(body, dict):
        raise InvalidArgument("request body must be a JSON object")
    return body


def _resolve_action_name(path_action: Optional[str], body: dict) -> str:
    """Path parameter wins over ``body.action``, which wins over ``?action=``."""
    name = path_action or body.get("action") or request.args.get("action")
    if not isinstance(name, str) or not name:
        raise InvalidArgument("missing action")
    return name


def match_action(name: str) -> Action:
    """Map an inbound action name to an ``Action``.

    Raises:
        InvalidArgument: Unknown action name
    """
    try:
        return ACTION_ALIASES[name]
    except KeyError:
        raise InvalidArgument(f"unknown action: {name}")


@bp.route("", methods=["POST"])
@bp.route("/<action_name>", methods=["POST"])
@require_caller
def dispatch(action_name: Optional[str] = None):
    """Run one admin action on behalf of the authenticated caller."""
    body = _read_body()
    name = _resolve_action_name(action_name, body)

    data = body.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidArgument("data must be a JSON object")

    caller = current_caller()
    logger.info("[admin] action=%s by=%s keys=%s", name, caller.email, sorted(data))

    action = match_action(name)
    provisioning = get_services()["provisioning"]
    result = getattr(provisioning, _HANDLERS[action])(caller, data)
    return jsonify(result.to_json()), 200
