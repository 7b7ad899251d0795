from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class TextBody(BaseModel):
    body: str = ""


class ButtonBody(BaseModel):
    payload: str = ""
    text: Optional[str] = None


class InboundMessage(BaseModel):
    """One entry of entry[].changes[].value.messages[] in a WhatsApp webhook."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    from_: str = Field(..., alias="from", min_length=1)
    type: str = "text"
    text: Optional[TextBody] = None
    button: Optional[ButtonBody] = None
