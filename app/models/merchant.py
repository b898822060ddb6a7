from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class Merchant(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(unique=True, index=True)

    store_name: Optional[str] = None
    shop_domain: Optional[str] = Field(default=None, index=True)

    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
