"""
Unit tests for user profile and sport preference service.
"""

import pytest

from pickup.database.models import ParticipantStatus, RoomParticipant
from pickup.models.schemas import ProfileUpdate, UserCreate, UserSportSelection
from pickup.services import user_service


@pytest.mark.asyncio
async def test_ensure_user_creates_once(db_session):
    created = await user_service.ensure_user(db_session, "auth-123", "민수", region="서울")
    again = await user_service.ensure_user(db_session, "auth-123", "다른이름")

    assert created.id == "auth-123"
    assert again.nickname == "민수"
    assert again.region == "서울"
    assert again.manner_score == 0.0


@pytest.mark.asyncio
async def test_get_user_by_id_missing(db_session):
    assert await user_service.get_user_by_id(db_session, "nobody") is None


@pytest.mark.asyncio
async def test_update_profile(db_session, make_user):
    user = await make_user("user-1", "old")

    updated = await user_service.update_profile(
        db_session, user.id, nickname="new", region="부산", avatar_url="https://cdn/x.jpg"
    )

    assert updated.nickname == "new"
    assert updated.region == "부산"
    assert updated.avatar_url == "https://cdn/x.jpg"


@pytest.mark.asyncio
async def test_update_profile_missing_user(db_session):
    with pytest.raises(ValueError, match="User not found"):
        await user_service.update_profile(db_session, "ghost", nickname="x")


@pytest.mark.asyncio
async def test_set_avatar_url_returns_previous(db_session, make_user):
    user = await make_user("user-1", avatar_url="https://old")
    previous = await user_service.set_avatar_url(db_session, user.id, "https://new")
    assert previous == "https://old"


def test_nickname_is_trimmed_and_limited():
    assert UserCreate(nickname="  민수  ").nickname == "민수"
    with pytest.raises(ValueError):
        UserCreate(nickname="   ")
    with pytest.raises(ValueError):
        ProfileUpdate(nickname="x" * 21)
    assert ProfileUpdate(nickname="x" * 20, region="  ").region is None


@pytest.mark.asyncio
async def test_user_stats(db_session, host, sport, make_room, make_user):
    member = await make_user("member")
    await make_room(host, sport)
    joined = await make_room(host, sport)
    db_session.add(
        RoomParticipant(room_id=joined.id, user_id=member.id, status=ParticipantStatus.APPROVED.value)
    )
    await db_session.commit()

    host_stats = await user_service.get_user_stats(db_session, host.id)
    member_stats = await user_service.get_user_stats(db_session, member.id)

    assert host_stats == {"hosted_count": 2, "participated_count": 0}
    assert member_stats == {"hosted_count": 0, "participated_count": 1}


# ============================================================================
# Sport preferences
# ============================================================================


@pytest.mark.asyncio
async def test_save_user_sports_replaces_everything(db_session, make_user, make_sport):
    user = await make_user("user-1")
    futsal = await make_sport(name="풋살")
    tennis = await make_sport(name="테니스")
    running = await make_sport(name="러닝")

    await user_service.save_user_sports(
        db_session,
        user.id,
        [UserSportSelection(sport_id=futsal.id, skill_level=3), UserSportSelection(sport_id=tennis.id, skill_level=5)],
    )
    saved = await user_service.save_user_sports(
        db_session, user.id, [UserSportSelection(sport_id=running.id, skill_level=8)]
    )

    assert [(s.sport_id, s.skill_level) for s in saved] == [(running.id, 8)]
    assert saved[0].sport.name == "러닝"
    stored = await user_service.get_user_sports(db_session, user.id)
    assert [s.sport_id for s in stored] == [running.id]


@pytest.mark.asyncio
async def test_save_empty_selection_clears(db_session, make_user, sport):
    user = await make_user("user-1")
    await user_service.save_user_sports(
        db_session, user.id, [UserSportSelection(sport_id=sport.id, skill_level=2)]
    )

    saved = await user_service.save_user_sports(db_session, user.id, [])

    assert saved == []
    assert await user_service.get_user_sports(db_session, user.id) == []


@pytest.mark.asyncio
async def test_save_rejects_duplicates_and_unknown_sports(db_session, make_user, sport):
    user = await make_user("user-1")

    with pytest.raises(ValueError, match="only be selected once"):
        await user_service.save_user_sports(
            db_session,
            user.id,
            [UserSportSelection(sport_id=sport.id, skill_level=1), UserSportSelection(sport_id=sport.id, skill_level=2)],
        )
    with pytest.raises(ValueError, match="Unknown sport ids"):
        await user_service.save_user_sports(
            db_session, user.id, [UserSportSelection(sport_id=9999, skill_level=1)]
        )


def test_skill_level_must_be_in_range():
    with pytest.raises(ValueError):
        UserSportSelection(sport_id=1, skill_level=11)
    with pytest.raises(ValueError):
        UserSportSelection(sport_id=1, skill_level=-1)


@pytest.mark.asyncio
async def test_remove_user_sport(db_session, make_user, sport):
    user = await make_user("user-1")
    await user_service.save_user_sports(
        db_session, user.id, [UserSportSelection(sport_id=sport.id, skill_level=4)]
    )

    assert await user_service.remove_user_sport(db_session, user.id, sport.id) is True
    assert await user_service.remove_user_sport(db_session, user.id, sport.id) is False
    assert await user_service.get_user_sports(db_session, user.id) == []
