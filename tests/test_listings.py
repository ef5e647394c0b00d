from datetime import datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from gameservers.models.listing import Listing
from gameservers.models.user import User
from gameservers.models.vote import Vote
from gameservers.services import listings as listing_repo
from gameservers.services.listings import ListingValidationError


def submission(**overrides):
    fields = dict(
        name="Friendly Fire",
        description="Casual 5v5 competitive server",
        game="cs2",
        ip="192.0.2.10",
        port=27015,
        region="eu",
    )
    fields.update(overrides)
    return fields


def listing_total(db):
    return db.scalar(select(func.count(Listing.id)))


def vote_rows(db, user_id, listing_id):
    return db.scalar(
        select(func.count(Vote.id)).where(Vote.user_id == user_id, Vote.server_id == listing_id)
    )


# ---------- create ----------
def test_create_sets_moderation_and_status_defaults(db, owner):
    s = listing_repo.create_listing(db, owner.id, **submission())

    assert s.id is not None
    assert s.user_id == owner.id
    assert s.is_approved is False
    assert s.is_featured is False
    assert s.is_online is False
    assert s.current_players == 0
    assert s.max_players == 0
    assert s.current_map is None
    assert s.created_at == s.last_updated


@pytest.mark.parametrize("port", [0, -1, 65536, 99999])
def test_create_rejects_port_out_of_range(db, owner, port):
    with pytest.raises(ListingValidationError, match="Port"):
        listing_repo.create_listing(db, owner.id, **submission(port=port))
    assert listing_total(db) == 0


@pytest.mark.parametrize("port", [1, 65535])
def test_create_accepts_port_bounds(db, owner, port):
    s = listing_repo.create_listing(db, owner.id, **submission(port=port))
    assert s.port == port


def test_create_rejects_unknown_game(db, owner):
    with pytest.raises(ListingValidationError, match="Unknown game"):
        listing_repo.create_listing(db, owner.id, **submission(game="tetris"))
    assert listing_total(db) == 0


def test_create_rejects_unknown_region(db, owner):
    with pytest.raises(ListingValidationError, match="Region"):
        listing_repo.create_listing(db, owner.id, **submission(region="moon"))
    assert listing_total(db) == 0


# ---------- read / update ----------
def test_get_missing_listing_is_none(db):
    assert listing_repo.get_listing(db, 999) is None


def test_update_merges_and_stamps_last_updated(db, make_listing, mocker):
    s = make_listing(name="Before")
    stamp = datetime(2030, 1, 2, 3, 4, 5)
    mocker.patch("gameservers.services.listings._now", return_value=stamp)

    updated = listing_repo.update_listing(db, s.id, is_featured=True)

    assert updated.is_featured is True
    assert updated.name == "Before"
    assert updated.last_updated == stamp


def test_update_missing_listing_is_none(db):
    assert listing_repo.update_listing(db, 404, is_approved=True) is None


def test_update_refuses_owner_change(db, make_listing, make_user):
    s = make_listing()
    other = make_user()
    with pytest.raises(ListingValidationError):
        listing_repo.update_listing(db, s.id, user_id=other.id)


def test_update_validates_port(db, make_listing):
    s = make_listing()
    with pytest.raises(ListingValidationError):
        listing_repo.update_listing(db, s.id, port=70000)


def test_pending_and_by_user(db, make_listing, make_user, owner):
    approved = make_listing(approved=True)
    pending = make_listing(approved=False)
    someone = make_user()
    theirs = make_listing(approved=False, user_id=someone.id)

    assert [s.id for s in listing_repo.pending_listings(db)] == [theirs.id, pending.id]
    assert {s.id for s in listing_repo.listings_by_user(db, owner.id)} == {approved.id, pending.id}


# ---------- votes ----------
def test_toggle_vote_pairs_restore_state(db, make_listing, make_user):
    s = make_listing()
    voter = make_user()

    assert listing_repo.toggle_vote(db, voter.id, s.id) is True
    assert listing_repo.vote_count(db, s.id) == 1
    assert listing_repo.has_voted(db, voter.id, s.id)

    assert listing_repo.toggle_vote(db, voter.id, s.id) is False
    assert listing_repo.vote_count(db, s.id) == 0
    assert not listing_repo.has_voted(db, voter.id, s.id)


def test_toggle_twice_leaves_existing_vote_in_place(db, make_listing, make_user):
    s = make_listing()
    voter = make_user()
    listing_repo.toggle_vote(db, voter.id, s.id)

    assert listing_repo.toggle_vote(db, voter.id, s.id) is False
    assert listing_repo.toggle_vote(db, voter.id, s.id) is True
    assert listing_repo.vote_count(db, s.id) == 1


def test_vote_count_matches_distinct_voters(db, make_listing, make_user):
    s = make_listing()
    voters = [make_user() for _ in range(4)]

    for voter in voters:
        listing_repo.toggle_vote(db, voter.id, s.id)
    # voter 0 flips three more times, voter 1 twice
    for _ in range(3):
        listing_repo.toggle_vote(db, voters[0].id, s.id)
    for _ in range(2):
        listing_repo.toggle_vote(db, voters[1].id, s.id)

    assert listing_repo.vote_count(db, s.id) == 3
    for voter in voters:
        assert vote_rows(db, voter.id, s.id) <= 1


def test_duplicate_vote_rejected_by_database(db, make_listing, make_user):
    s = make_listing()
    voter = make_user()
    db.add(Vote(user_id=voter.id, server_id=s.id))
    db.commit()

    db.add(Vote(user_id=voter.id, server_id=s.id))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()
    assert vote_rows(db, voter.id, s.id) == 1


def test_vote_counts_and_voted_ids(db, make_listing, make_user):
    a, b, c = make_listing(), make_listing(), make_listing()
    u1, u2 = make_user(), make_user()
    listing_repo.toggle_vote(db, u1.id, a.id)
    listing_repo.toggle_vote(db, u2.id, a.id)
    listing_repo.toggle_vote(db, u2.id, b.id)

    assert listing_repo.vote_counts(db, [a.id, b.id, c.id]) == {a.id: 2, b.id: 1, c.id: 0}
    assert listing_repo.voted_ids(db, u1.id, [a.id, b.id, c.id]) == {a.id}
    assert listing_repo.voted_ids(db, None, [a.id]) == set()
    assert listing_repo.vote_counts(db, []) == {}


def test_deleting_listing_removes_its_votes(db, make_listing, make_user):
    s = make_listing()
    voter = make_user()
    listing_repo.toggle_vote(db, voter.id, s.id)

    assert listing_repo.delete_listing(db, s.id) is True
    assert db.scalar(select(func.count(Vote.id))) == 0
    assert listing_repo.delete_listing(db, s.id) is False


def test_toggle_loses_insert_race_and_removes_vote(db, session_factory, make_listing, make_user, mocker):
    s = make_listing()
    voter = make_user()
    real_delete = listing_repo._delete_vote
    state = {"raced": False}

    def delete_after_concurrent_insert(session, user_id, listing_id):
        # first lookup misses, then another request commits the same vote
        if not state["raced"]:
            state["raced"] = True
            other = session_factory()
            other.add(Vote(user_id=user_id, server_id=listing_id))
            other.commit()
            other.close()
            return False
        return real_delete(session, user_id, listing_id)

    mocker.patch("gameservers.services.listings._delete_vote", side_effect=delete_after_concurrent_insert)

    assert listing_repo.toggle_vote(db, voter.id, s.id) is False
    assert listing_repo.vote_count(db, s.id) == 0
    assert vote_rows(db, voter.id, s.id) == 0


# ---------- users ----------
@pytest.mark.parametrize("first,second", [
    ({"username": "Bob", "email": "one@example.com"}, {"username": "bob", "email": "two@example.com"}),
    ({"username": "one", "email": "Bob@example.com"}, {"username": "two", "email": "bob@EXAMPLE.com"}),
])
def test_user_identity_unique_ignoring_case(db, first, second):
    db.add(User(password_hash="x", **first))
    db.commit()

    db.add(User(password_hash="x", **second))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()
