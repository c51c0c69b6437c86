"""External ticket models returned by the ticketing client."""

from typing import List, Optional

from pydantic import BaseModel, Field


class TicketUser(BaseModel):
    display_name: str
    email: Optional[str] = None


class TicketComment(BaseModel):
    author: str
    body: str
    created: str


class Ticket(BaseModel):
    """Ticket as fetched from the ticketing service"""

    key: str = Field(description="Ticket key, e.g. OPS-123")
    summary: str
    description: Optional[str] = None
    status: str
    reporter: Optional[TicketUser] = None
    assignee: Optional[TicketUser] = None
    comments: List[TicketComment] = Field(default_factory=list)
