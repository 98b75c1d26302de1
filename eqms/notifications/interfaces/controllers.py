"""
Notification Controllers (API Routes)
=====================================

Ad hoc ticket e-mail. Delivery happens in the background; the request
returns as soon as the message is queued.
"""

from fastapi import APIRouter, Depends, status

from eqms.core.policy import Actor
from eqms.dependencies import get_ticket_notifier
from eqms.notifications.application.dto import EmailAcceptedResponse, EmailRequest
from eqms.notifications.application.services import TicketNotifier
from eqms.shared.api.auth import get_actor

router = APIRouter(prefix="/api/email", tags=["Notifications"])


@router.post(
    "",
    response_model=EmailAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Send a ticket e-mail",
    description="""
    Queue an e-mail about a ticket. The HTML body is rendered from the
    template of `status` (`new`, `assigned`, `in_progress`, `escalated*`,
    `resolved`, `closed`; anything else gets a generic "Ticket Update").

    **Example Request**:
    ```json
    {
        "to": ["customer@example.com"],
        "subject": "Your ticket was resolved",
        "ticketId": "6f1c2a9e-3b7d-4e21-9a51-0c2f7d8e9b10",
        "status": "resolved"
    }
    ```

    Delivery failures are logged, never reported back to the caller.
    """,
    responses={202: {"content": {"application/json": {"example": {"success": True, "recipients": 1}}}}}
)
async def send_email(
    request: EmailRequest,
    actor: Actor = Depends(get_actor),
    notifier: TicketNotifier = Depends(get_ticket_notifier)
):
    email = notifier.send_ticket_email(actor, request)
    return EmailAcceptedResponse(success=True, recipients=len(email.to))


# Export router
email_router = router
