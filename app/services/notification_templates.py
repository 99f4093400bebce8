"""
Notification texts, keyed by the lifecycle event that produces them.

Each entry fixes the notification type and priority and carries Jinja2
templates for the title and message. Rendering is strict: a missing
context variable raises instead of producing a half-empty message.
"""

from typing import Any, Dict

from jinja2 import Environment, StrictUndefined

_env = Environment(undefined=StrictUndefined, autoescape=False, keep_trailing_newline=False)

TEMPLATES: Dict[str, Dict[str, str]] = {
    # Assignment lifecycle
    "assignment_created": {
        "type": "project_assignment",
        "priority": "high",
        "title": "New Project Assignment",
        "message": (
            "You have been assigned to project: {{ project_name }}. "
            "Allocated Amount: {{ amount }} {{ currency }}. "
            "Please accept or reject by {{ deadline }}."
        ),
    },
    "assignment_accepted": {
        "type": "project_assignment",
        "priority": "medium",
        "title": "Assignment Accepted",
        "message": "{{ employee_name }} accepted the assignment for project: {{ project_name }}.",
    },
    "assignment_rejected": {
        "type": "project_assignment",
        "priority": "high",
        "title": "Assignment Rejected",
        "message": (
            "{{ employee_name }} rejected the assignment for project: {{ project_name }}. "
            "Reason: {{ reason }}. {{ amount }} {{ currency }} returned to the project budget."
        ),
    },
    "work_submitted": {
        "type": "project_assignment",
        "priority": "high",
        "title": "Work Submitted",
        "message": "{{ employee_name }} has submitted completed work for project: {{ project_name }}.",
    },
    "work_verified": {
        "type": "project_assignment",
        "priority": "high",
        "title": "Work Verified",
        "message": (
            "Your work for project {{ project_name }} has been verified. "
            "You can now request payment of {{ amount }} {{ currency }}."
            "{% if feedback %} Feedback: {{ feedback }}{% endif %}"
        ),
    },
    "work_rejected": {
        "type": "project_assignment",
        "priority": "high",
        "title": "Work Rejected",
        "message": "Your work for project {{ project_name }} was rejected. Reason: {{ reason }}",
    },
    "revision_requested": {
        "type": "project_assignment",
        "priority": "high",
        "title": "Revision Required",
        "message": (
            "A revision was requested for your work on project {{ project_name }}."
            "{% if notes %} Notes: {{ notes }}{% endif %}"
            "{% if deadline %} Please resubmit by {{ deadline }}.{% endif %}"
        ),
    },
    "assignment_removed": {
        "type": "project_assignment",
        "priority": "medium",
        "title": "Project Assignment Removed",
        "message": "You have been removed from project: {{ project_name }}",
    },
    # Payment lifecycle
    "payment_requested": {
        "type": "payment",
        "priority": "high",
        "title": "Payment Request",
        "message": (
            "{{ employee_name }} requested payment of {{ amount }} {{ currency }} "
            "for project: {{ project_name }}"
        ),
    },
    "payment_approved": {
        "type": "payment",
        "priority": "high",
        "title": "Payment Approved",
        "message": (
            "Your payment request of {{ amount }} {{ currency }} for project {{ project_name }} "
            "has been approved.{% if scheduled_date %} Scheduled for {{ scheduled_date }}.{% endif %}"
        ),
    },
    "payment_rejected": {
        "type": "payment",
        "priority": "high",
        "title": "Payment Rejected",
        "message": "Your payment request for project {{ project_name }} was rejected. Reason: {{ reason }}",
    },
    "payment_processed": {
        "type": "payment",
        "priority": "high",
        "title": "Payment Processed",
        "message": (
            "Your payment of {{ amount }} {{ currency }} for project {{ project_name }} "
            "has been processed. Please confirm receipt."
        ),
    },
    "payment_confirmed": {
        "type": "payment",
        "priority": "medium",
        "title": "Payment Confirmed",
        "message": "{{ employee_name }} confirmed receipt of payment for project: {{ project_name }}",
    },
}


def render(template_name: str, context: Dict[str, Any]) -> Dict[str, str]:
    entry = TEMPLATES.get(template_name)
    if entry is None:
        raise KeyError(f"Unknown notification template: {template_name}")

    return {
        "type": entry["type"],
        "priority": entry["priority"],
        "title": _env.from_string(entry["title"]).render(**context),
        "message": _env.from_string(entry["message"]).render(**context),
    }
