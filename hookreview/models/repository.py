from typing import Optional

from sqlmodel import Field, UniqueConstraint

from hookreview.models.base_model import BaseModel
from hookreview.models.platform import Platform


class Repository(BaseModel, table=True):
    __tablename__ = "repositories"
    __table_args__ = (
        UniqueConstraint("platform", "full_name", name="uq_repository_full_name"),
    )

    id: Optional[int] = Field(default=None, primary_key=True, index=True)
    platform: Platform = Field(index=True)
    platform_repository_id: str = Field(default="", index=True)
    name: str
    full_name: str = Field(index=True)
    # Per-repository overrides of the platform settings.
    access_token: Optional[str] = None
    webhook_secret: Optional[str] = None
    api_base_url: Optional[str] = None
    is_active: bool = True

    def __repr__(self):
        return f"<Repository(platform={self.platform}, full_name={self.full_name}, active={self.is_active})>"


class PlatformSettings(BaseModel, table=True):
    __tablename__ = "platform_settings"

    id: Optional[int] = Field(default=None, primary_key=True, index=True)
    platform: Platform = Field(index=True, unique=True)
    access_token: str = ""
    webhook_secret: Optional[str] = None
    api_base_url: Optional[str] = None
