# gameservers/schemas/listing.py
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import Field
from .base import BaseSchema

Region = Literal["na", "sa", "eu", "asia", "oceania", "africa"]


class ServerCreateIn(BaseSchema):
    name: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=5000)
    game: str = Field(..., min_length=1, max_length=30)
    ip: str = Field(..., min_length=1, max_length=255)
    # range is enforced by the repository so the reason matches other domain errors
    port: int
    region: Region


class ServerOut(BaseSchema):
    id: int
    user_id: int
    name: str
    description: str
    game: str
    ip: str
    port: int
    region: str
    is_approved: bool
    is_featured: bool
    is_online: bool
    current_players: int
    max_players: int
    current_map: Optional[str] = None
    last_updated: datetime
    created_at: datetime


class ServerWithVotesOut(ServerOut):
    vote_count: int = 0
    has_voted: bool = False


class ServerCreatedOut(ServerOut):
    message: str


class PaginationOut(BaseSchema):
    total: int
    page: int
    limit: int
    total_pages: int


class ServerPageOut(BaseSchema):
    servers: List[ServerWithVotesOut]
    pagination: PaginationOut


class GameOut(BaseSchema):
    id: int
    name: str
    short_name: str
