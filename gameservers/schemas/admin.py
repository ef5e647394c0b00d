from typing import Dict, Optional
from pydantic import StrictBool
from .base import BaseSchema
from .listing import ServerOut


class ApproveIn(BaseSchema):
    approve: StrictBool


class FeatureIn(BaseSchema):
    featured: StrictBool


class AdminServerOut(BaseSchema):
    message: str
    server: ServerOut


class StatusOut(BaseSchema):
    is_online: bool
    current_players: int
    max_players: int
    current_map: Optional[str] = None


class RefreshOut(BaseSchema):
    refreshed: int
    online: int
    results: Dict[int, StatusOut]
