# Overview: Flask API routes for customer/supplier ledgers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from lotpos.time_utils import parse_iso_datetime, parse_iso_end
from ..decorators import require_auth, require_permission
from ..errors import DomainError
from ..permissions import Permission
from ..services import ledger_service
from ..services.authorization import default_policy, require_branch_access

"""
Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
- end_date filtering is inclusive: transaction_date <= end_date; a bare date covers that whole day.
"""

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("/<party_type>/<int:party_id>")
@require_auth
@require_permission(Permission.LEDGER_VIEW)
def get_ledger_route(party_type: str, party_id: int):
    """
    Ledger entries for a customer or supplier with opening/closing balance.

    Callers without BRANCH_ACCESS_ALL only see entries posted at their branch.
    """
    try:
        start = parse_iso_datetime(request.args.get("start_date"))
        end = parse_iso_end(request.args.get("end_date"))
    except ValueError:
        return jsonify({"error": "start_date and end_date must be ISO-8601 datetimes"}), 400

    try:
        branch_id = None
        if not default_policy.has_unrestricted_branch_access(g.caller):
            require_branch_access(default_policy, g.caller, g.caller.branch_id)
            branch_id = g.caller.branch_id

        result = ledger_service.get_ledger(party_type, party_id, start=start, end=end, branch_id=branch_id)
        return jsonify(result), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load ledger")
        return jsonify({"error": "Internal server error"}), 500
