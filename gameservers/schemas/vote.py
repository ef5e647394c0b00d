from .base import BaseSchema


class VoteToggleOut(BaseSchema):
    message: str
    voted: bool
    vote_count: int


class VoteCountOut(BaseSchema):
    vote_count: int
    has_voted: bool
