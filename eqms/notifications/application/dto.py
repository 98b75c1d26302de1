"""
Notification Application DTOs
=============================
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class EmailRequest(BaseModel):
    """Ad hoc ticket e-mail; the body is rendered from the status template."""
    model_config = ConfigDict(populate_by_name=True)

    to: Union[EmailStr, List[EmailStr]]
    subject: str = Field(..., min_length=1, max_length=500)
    ticket_id: str = Field(..., min_length=1, alias="ticketId")
    status: Optional[str] = Field(None, description="Template key, e.g. 'resolved' or 'escalated_tier2'")

    @field_validator("to")
    @classmethod
    def validate_to(cls, v):
        recipients = v if isinstance(v, list) else [v]
        if not recipients:
            raise ValueError("At least one recipient is required")
        return recipients

    @property
    def recipients(self) -> List[str]:
        return list(self.to)


class EmailAcceptedResponse(BaseModel):
    success: bool = True
    recipients: int
