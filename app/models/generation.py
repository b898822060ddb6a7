from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class GenerationLog(SQLModel, table=True):
    """Write-once audit record of one generation attempt."""

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: Optional[int] = Field(default=None, index=True)
    design_id: Optional[int] = None

    prompt_length: Optional[int] = None
    had_reference_image: bool = Field(default=False)
    style_preset: Optional[str] = None
    size: Optional[str] = None

    success: bool = Field(default=True)
    error_message: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
