"""
Tests for the history charts built from stored check-ins.
"""
from pathlib import Path

import pytest

from checkin_bot.visualize import build_charts, records_frame

from conftest import seed_user


@pytest.mark.asyncio
async def test_records_frame_keeps_finished_records(records):
    await seed_user(records, "u1", "Amy", finished={"2024-05-19": 1, "2024-05-20": 2})
    await seed_user(records, "u2", "Bob")

    df = records_frame(await records.list_users())

    assert len(df) == 2
    assert set(df["display_name"]) == {"Amy"}
    assert sorted(df["rank"].tolist()) == [1, 2]
    assert sorted(df["finished_at"].dt.hour.tolist()) == [1, 2]


def test_no_records_no_charts(tmp_path):
    assert build_charts(records_frame({}), str(tmp_path)) == []


@pytest.mark.asyncio
async def test_charts_are_written(records, tmp_path):
    await seed_user(records, "u1", "Amy", finished={"2024-05-19": 1, "2024-05-20": 2})
    await seed_user(records, "u2", "Bob", finished={"2024-05-20": 1})

    files = build_charts(records_frame(await records.list_users()), str(tmp_path))

    assert [Path(f).name for f in files] == ["daily_finishers.png", "rank_trend.png", "checkins_by_hour.png"]
    assert all(Path(f).exists() for f in files)
