from datetime import datetime, timedelta, timezone

import pytest

from resourcehub.core.config import settings
from resourcehub.modules.posts.api.router import _edit_window_expired

NOW = datetime(2026, 3, 2, 15, 1, tzinfo=timezone.utc)
NEW_YORK = timezone(timedelta(hours=-5))
NAIROBI = timezone(timedelta(hours=3))


@pytest.fixture(autouse=True)
def five_minute_window(monkeypatch):
    monkeypatch.setattr(settings, "POST_EDIT_WINDOW_MINUTES", 5)


def test_fresh_post_in_a_western_zone_is_still_editable():
    # 10:00 in UTC-5 is one minute before NOW
    created_at = datetime(2026, 3, 2, 10, 0, tzinfo=NEW_YORK)

    assert _edit_window_expired(created_at, now=NOW) is False


def test_old_post_in_an_eastern_zone_is_locked():
    # 17:50 in UTC+3 is eleven minutes before NOW
    created_at = datetime(2026, 3, 2, 17, 50, tzinfo=NAIROBI)

    assert _edit_window_expired(created_at, now=NOW) is True


def test_naive_timestamps_are_read_as_utc():
    assert _edit_window_expired(datetime(2026, 3, 2, 15, 0), now=NOW) is False
    assert _edit_window_expired(datetime(2026, 3, 2, 14, 50), now=NOW) is True


def test_zero_disables_the_window(monkeypatch):
    monkeypatch.setattr(settings, "POST_EDIT_WINDOW_MINUTES", 0)

    assert _edit_window_expired(datetime(2020, 1, 1, tzinfo=timezone.utc), now=NOW) is False
