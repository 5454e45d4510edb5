"""
Support Ticket API Routes.

User endpoints:
- GET /api/support/tickets - List the current user's tickets
- POST /api/support/tickets - File a ticket (JSON, or multipart with files)
- GET /api/support/tickets/<id> - Ticket details with comments
- PUT /api/support/tickets/<id> - Edit title/description/priority/tags
- POST /api/support/tickets/<id>/comments - Add a comment
- GET /api/support/me/role - Effective role of the current user

Admin/reviewer endpoints:
- GET /api/support/admin/board - All tickets grouped by status, plus users
- PUT /api/support/admin/tickets/<id>/status - Change status
- PUT /api/support/admin/tickets/<id>/assign - Assign or unassign
- POST /api/support/admin/board/move - Kanban drag-and-drop
- GET /api/support/admin/stats - Ticket counts
"""

from flask import request, jsonify, g
import asyncio
import logging

from helpdesk.support import support_bp
from helpdesk.database.ticket_repository import TicketRepository
from helpdesk.database.attachment_store import AttachmentStore
from helpdesk.middleware.auth import require_auth
from helpdesk.models.ticket import Attachment, CreateTicketData, TicketPriority
from helpdesk.models.user import UserRole
from helpdesk.tickets.comments import CommentThread
from helpdesk.tickets.errors import PermissionDenied, TicketError, ValidationError
from helpdesk.tickets.roles import assignee_label, can_access_admin, load_directory, resolve_role
from helpdesk.tickets.submission import submit_ticket
from helpdesk.tickets.transitions import BoardPosition, TicketTransitions
from helpdesk.tickets.view_state import TicketBoardProjection, TicketListProjection

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync Flask context."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_repository() -> TicketRepository:
    return TicketRepository(access_token=getattr(g, "access_token", None))


def get_attachment_store() -> AttachmentStore:
    return AttachmentStore()


def error_response(error: TicketError):
    return jsonify(error.to_dict()), error.status_code


def json_body() -> dict:
    """The JSON request body when it is an object, else an empty dict."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _current_role(repository) -> UserRole:
    if "role" not in g:
        g.role = run_async(resolve_role(repository, g.user_id))
    return g.role


def _require_staff(repository) -> UserRole:
    role = _current_role(repository)
    if not can_access_admin(role):
        raise PermissionDenied("Admin or reviewer access required")
    return role


def _load_accessible_ticket(repository, ticket_id: str):
    """Fetch a ticket the current user owns, or any ticket for staff."""
    ticket = run_async(repository.get_ticket(ticket_id))
    if ticket.user_id != g.user_id and not can_access_admin(_current_role(repository)):
        raise PermissionDenied("Access denied")
    return ticket


# =============================================================================
# User Ticket Endpoints
# =============================================================================

@support_bp.route('/tickets', methods=['GET'])
@require_auth
def list_tickets():
    """
    List tickets for the current user, newest first.
    """
    projection = TicketListProjection(get_repository())
    run_async(projection.load())

    if projection.failure:
        return error_response(projection.failure)

    return jsonify({"success": True, **projection.to_dict()})


@support_bp.route('/tickets', methods=['POST'])
@require_auth
def create_ticket():
    """
    File a new ticket.

    JSON body or multipart form:
        - title: Ticket title (required)
        - description: Detailed description (optional)
        - priority: low, medium, high (default: medium)
        - tags: list of tags, or a comma separated string
        - files: attachments (multipart only, 10MB each)
    """
    attachments = []
    if request.files or request.form:
        data = request.form.to_dict()
        tags = request.form.getlist('tags')
        if len(tags) > 1:
            data['tags'] = tags
        attachments = [
            Attachment(filename=f.filename, content=f.read(), content_type=f.mimetype)
            for f in request.files.getlist('files')
        ]
    else:
        data = json_body()

    try:
        ticket_data = CreateTicketData.from_request(data)
        ticket = run_async(submit_ticket(get_repository(), get_attachment_store(), ticket_data, attachments))
    except ValueError as e:
        return jsonify({"error": f"Invalid ticket data: {e}", "code": "validation_error"}), 400
    except TicketError as e:
        logger.error(f"Error creating ticket: {e}")
        return error_response(e)

    return jsonify({
        "success": True,
        "ticket": ticket.to_dict()
    }), 201


@support_bp.route('/tickets/<ticket_id>', methods=['GET'])
@require_auth
def get_ticket(ticket_id):
    """
    Get ticket details with comments, oldest comment first.
    """
    repository = get_repository()
    try:
        ticket = _load_accessible_ticket(repository, ticket_id)
        thread = CommentThread(repository, ticket_id)
        comments = run_async(thread.load())
    except TicketError as e:
        logger.error(f"Error getting ticket {ticket_id}: {e}")
        return error_response(e)

    return jsonify({
        "success": True,
        "ticket": ticket.to_dict(),
        "comments": [c.to_dict() for c in comments]
    })


@support_bp.route('/tickets/<ticket_id>', methods=['PUT'])
@require_auth
def edit_ticket(ticket_id):
    """
    Edit ticket fields.

    Body (any of):
        - title, description, priority, tags
    """
    data = json_body()
    fields = {key: data[key] for key in ('title', 'description', 'priority', 'tags') if key in data}

    repository = get_repository()
    try:
        _load_accessible_ticket(repository, ticket_id)
        patch = run_async(TicketTransitions(repository).edit(ticket_id, **fields))
    except TicketError as e:
        return error_response(e)

    return jsonify({
        "success": True,
        "ticket_id": ticket_id,
        "updated": sorted(k for k in patch if k != 'updated_at')
    })


@support_bp.route('/tickets/<ticket_id>/comments', methods=['POST'])
@require_auth
def add_comment(ticket_id):
    """
    Add a comment to a ticket.

    Body:
        - comment: Comment text (required, non-blank)
    """
    data = json_body()
    body = data.get('comment') or data.get('content') or ''
    if not isinstance(body, str):
        return jsonify({"error": "Comment must be text", "code": "validation_error"}), 400
    body = body.strip()

    if not body:
        return jsonify({"error": "Comment is required", "code": "validation_error"}), 400

    repository = get_repository()
    try:
        _load_accessible_ticket(repository, ticket_id)
        comment = run_async(CommentThread(repository, ticket_id).add_comment(body))
    except TicketError as e:
        return error_response(e)

    return jsonify({
        "success": True,
        "comment": comment.to_dict()
    }), 201


@support_bp.route('/me/role', methods=['GET'])
@require_auth
def get_my_role():
    role = _current_role(get_repository())
    return jsonify({
        "success": True,
        "role": role.value,
        "can_access_admin": can_access_admin(role)
    })


# =============================================================================
# Admin Ticket Endpoints
# =============================================================================

@support_bp.route('/admin/board', methods=['GET'])
@require_auth
def admin_board():
    """
    All tickets grouped into open / in_progress / closed, plus the user
    directory for the assignment picker.
    """
    repository = get_repository()
    try:
        role = _require_staff(repository)
    except TicketError as e:
        return error_response(e)

    projection = TicketBoardProjection(repository)
    run_async(projection.load())
    if projection.failure:
        return error_response(projection.failure)

    directory = run_async(load_directory(repository))
    board = projection.to_dict()
    for column in board["columns"].values():
        for ticket in column:
            ticket["assignee_label"] = assignee_label(ticket.get("assigned_to"), directory)

    return jsonify({
        "success": True,
        "role": role.value,
        "board": board,
        "users": [u.to_dict() for u in directory],
        "directory_available": bool(directory)
    })


@support_bp.route('/admin/tickets/<ticket_id>/status', methods=['PUT'])
@require_auth
def update_ticket_status(ticket_id):
    """
    Change ticket status (admin/reviewer).

    Body:
        - status: open, in_progress or closed
    """
    data = json_body()
    repository = get_repository()
    try:
        _require_staff(repository)
        patch = run_async(TicketTransitions(repository).change_status(ticket_id, data.get('status')))
    except TicketError as e:
        return error_response(e)

    logger.info(f"Ticket {ticket_id} status updated to {patch['status'].value} by {g.user_id}")
    return jsonify({
        "success": True,
        "ticket_id": ticket_id,
        "status": patch['status'].value,
        "updated_at": patch['updated_at'].isoformat()
    })


@support_bp.route('/admin/tickets/<ticket_id>/assign', methods=['PUT'])
@require_auth
def assign_ticket(ticket_id):
    """
    Assign a ticket (admin/reviewer).

    Body:
        - assigned_to: User ID of the assignee, or null to unassign
    """
    data = json_body()
    if 'assigned_to' not in data:
        return jsonify({"error": "assigned_to is required (null to unassign)", "code": "validation_error"}), 400

    repository = get_repository()
    try:
        _require_staff(repository)
        patch = run_async(TicketTransitions(repository).assign(ticket_id, data.get('assigned_to')))
    except TicketError as e:
        return error_response(e)

    logger.info(f"Ticket {ticket_id} assigned to {patch['assigned_to']} by {g.user_id}")
    return jsonify({
        "success": True,
        "ticket_id": ticket_id,
        "assigned_to": patch['assigned_to']
    })


@support_bp.route('/admin/board/move', methods=['POST'])
@require_auth
def move_card():
    """
    Kanban drag-and-drop (admin/reviewer).

    Body:
        - ticket_id: dragged ticket
        - source: {"column": status, "index": n}
        - destination: {"column": status, "index": n} or null when dropped outside
    """
    data = json_body()
    ticket_id = data.get('ticket_id')
    if not ticket_id:
        return jsonify({"error": "ticket_id is required", "code": "validation_error"}), 400

    repository = get_repository()
    try:
        _require_staff(repository)
        source = BoardPosition.from_dict(data.get('source'))
        if source is None:
            raise ValidationError("source is required")
        destination = BoardPosition.from_dict(data.get('destination'))
        moved = run_async(TicketTransitions(repository).handle_drop(ticket_id, source, destination))
    except TicketError as e:
        return error_response(e)

    return jsonify({"success": True, "moved": moved})


@support_bp.route('/admin/stats', methods=['GET'])
@require_auth
def get_support_stats():
    """
    Ticket counts by status and priority (admin/reviewer).
    """
    repository = get_repository()
    try:
        _require_staff(repository)
    except TicketError as e:
        return error_response(e)

    projection = TicketBoardProjection(repository)
    run_async(projection.load())
    if projection.failure:
        return error_response(projection.failure)

    by_priority = {priority.value: 0 for priority in TicketPriority}
    unassigned = 0
    for column in projection.snapshot().values():
        for ticket in column:
            by_priority[ticket.priority.value] += 1
            if ticket.is_unassigned:
                unassigned += 1

    by_status = projection.counts()
    total = sum(by_status.values())

    return jsonify({
        "success": True,
        "stats": {
            "total_tickets": total,
            "by_status": by_status,
            "by_priority": by_priority,
            "unassigned": unassigned,
            "resolution_rate": round(by_status["closed"] / total * 100, 1) if total > 0 else 0
        }
    })
