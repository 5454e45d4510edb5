"""
Support Ticket Module.

Provides the HTTP surface of the helpdesk:
- File tickets with attachments, view and edit them
- Comment on tickets
- Admin/reviewer kanban board with status changes and assignment
"""

from flask import Blueprint

support_bp = Blueprint('support', __name__)

from helpdesk.support import routes
