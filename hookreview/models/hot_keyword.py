from typing import Optional

from sqlmodel import Field

from hookreview.models.base_model import BaseModel


class HotKeyword(BaseModel, table=True):
    __tablename__ = "hot_keywords"

    id: Optional[int] = Field(default=None, primary_key=True, index=True)
    keyword: str
    is_regex: bool = False
    file_patterns: Optional[str] = None
    # info, warning, error or critical
    severity: str = "warning"
    category: str = "Custom"
    alert_message: str = ""
    trigger_count: int = 0
    is_active: bool = True
