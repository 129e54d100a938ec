import sqlite3
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from arcbot.storage import open_database  # noqa: E402


@pytest.fixture
def db(tmp_path) -> sqlite3.Connection:
    con = open_database(str(tmp_path / "arcbot.db"))
    yield con
    con.close()


class FakeAccounts:
    """Account resolver standing in for BotArcAPI /user/info."""

    def __init__(self, accounts=None):
        self.accounts = dict(accounts or {})
        self.calls = []

    async def __call__(self, usercode: str):
        self.calls.append(usercode)
        if usercode not in self.accounts:
            raise RuntimeError("user not found")
        return self.accounts[usercode]


@pytest.fixture
def accounts() -> FakeAccounts:
    return FakeAccounts({
        "arc-900001": {"name": "Hikari", "rating": 1250, "code": "arc-900001"},
        "arc-900002": {"name": "Tairitsu", "rating": -1, "code": "arc-900002"},
    })
