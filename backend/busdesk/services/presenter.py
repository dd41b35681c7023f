"""
Presenter collaborator: confirmation prompts, notifications and focus.

Workflow managers never talk to a UI directly; they call these three hooks.
The console supplies a rich-backed implementation, tests a recording one.
"""

import logging
from typing import Optional

from ..models.enums import FormKind, Severity

logger = logging.getLogger(__name__)

DELETE_CONFIRM_TITLE = "Are you sure?"
DELETE_CONFIRM_LABEL = "Yes, delete it!"


class Presenter:
    """
    Base presenter.

    The default implementation declines every confirmation and only logs
    notifications, so destructive actions never run unattended.
    """

    async def confirm(self, title: str, body: str, confirm_label: str) -> bool:
        """Ask the operator to confirm an irreversible action."""
        logger.info(f"Confirmation declined by default: {title} - {body}")
        return False

    async def notify(self, severity: Severity, title: str, message: str) -> None:
        """Report a terminal success or failure."""
        level = logging.ERROR if severity is Severity.ERROR else logging.INFO
        logger.log(level, f"[{severity.value}] {title}: {message}")

    def scroll_into_view(self, target: FormKind, field: Optional[str] = None) -> None:
        """Bring a form (and optionally one of its fields) into view."""
        logger.debug(f"Focus {target.value}{'.' + field if field else ''}")


def failure_message(generic: str, error: Exception) -> str:
    """Generic failure text, enriched with the server's message when present."""
    server_message = getattr(error, "server_message", None)
    if server_message:
        return f"{generic} ({server_message})"
    return generic
