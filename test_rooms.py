"""Room board tests: publishing, dedup by room code, ages."""

from datetime import datetime, timedelta, timezone

import pytest

from arcbot.errors import (
    DuplicateRoomError,
    InvalidRoomCodeError,
    NotRoomOwnerError,
    RoomNotFoundError,
)
from arcbot.rooms import RoomBoard
from arcbot.state import RoomEntry

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class StepClock:
    def __init__(self, start=T0, step=timedelta(minutes=1)):
        self.now = start
        self.step = step

    def __call__(self):
        current = self.now
        self.now += self.step
        return current


def test_duplicate_publish_scenario(db):
    board = RoomBoard(db, clock=StepClock())

    created = board.publish("arc", "6Ec2P9", "u1", "休闲车")
    assert created.room_code == "6Ec2P9"

    with pytest.raises(DuplicateRoomError) as exc:
        board.publish("arc", "6Ec2P9", "u2", "另一个描述")
    assert exc.value.existing == created

    entries = board.list("arc")
    assert len(entries) == 1
    assert entries[0].room_code == "6Ec2P9"
    assert entries[0].description == "休闲车"
    assert entries[0].publisher_id == "u1"


@pytest.mark.parametrize("code", ["6Ec2P", "6Ec2P9X", "6Ec-P9", "", "六Ec2P9"])
def test_invalid_codes_leave_board_unchanged(db, code):
    board = RoomBoard(db)
    board.publish("arc", "AAAAAA", "u1")
    with pytest.raises(InvalidRoomCodeError):
        board.publish("arc", code, "u1")
    assert [e.room_code for e in board.list("arc")] == ["AAAAAA"]


def test_unknown_source_is_rejected(db):
    board = RoomBoard(db)
    with pytest.raises(InvalidRoomCodeError):
        board.publish("maimai", "6Ec2P9", "u1")


def test_same_code_in_different_sources(db):
    import re

    board = RoomBoard(db, formats={"arc": re.compile(r"[0-9A-Za-z]{6}"), "other": re.compile(r"\w{6}")})
    board.publish("arc", "6Ec2P9", "u1")
    board.publish("other", "6Ec2P9", "u1")
    assert len(board.list("arc")) == 1
    assert len(board.list("other")) == 1


def test_list_is_in_publication_order(db):
    board = RoomBoard(db, clock=StepClock())
    for code in ["CCCCCC", "AAAAAA", "BBBBBB"]:
        board.publish("arc", code, "u1")
    assert [e.room_code for e in board.list("arc")] == ["CCCCCC", "AAAAAA", "BBBBBB"]
    assert board.list("nothing") == []


def test_room_codes_are_case_sensitive(db):
    board = RoomBoard(db)
    board.publish("arc", "abcdef", "u1")
    board.publish("arc", "ABCDEF", "u2")
    assert len(board.list("arc")) == 2


def test_age_is_computed_at_read_time(db):
    board = RoomBoard(db, clock=lambda: T0)
    board.publish("arc", "6Ec2P9", "u1", "休闲车")
    entry = board.list("arc")[0]
    assert entry.created_at == T0
    assert entry.age_minutes(T0 + timedelta(seconds=59)) == 0
    assert entry.age_minutes(T0 + timedelta(minutes=17, seconds=30)) == 17
    assert entry.age_minutes(T0 - timedelta(minutes=1)) == 0


def test_entries_are_not_purged_by_age(db):
    board = RoomBoard(db, clock=lambda: T0 - timedelta(days=3))
    board.publish("arc", "OLD000", "u1")
    assert board.list("arc")[0].age_minutes(T0) == 3 * 24 * 60


def test_withdraw_by_publisher(db):
    board = RoomBoard(db)
    board.publish("arc", "6Ec2P9", "u1", "休闲车")
    removed = board.withdraw("arc", "6Ec2P9", "u1")
    assert isinstance(removed, RoomEntry)
    assert board.list("arc") == []
    # The code can be listed again once withdrawn
    board.publish("arc", "6Ec2P9", "u2")
    assert board.list("arc")[0].publisher_id == "u2"


def test_withdraw_by_someone_else(db):
    board = RoomBoard(db)
    board.publish("arc", "6Ec2P9", "u1")
    with pytest.raises(NotRoomOwnerError):
        board.withdraw("arc", "6Ec2P9", "u2")
    assert len(board.list("arc")) == 1


def test_withdraw_missing_room(db):
    board = RoomBoard(db)
    with pytest.raises(RoomNotFoundError):
        board.withdraw("arc", "6Ec2P9", "u1")
