from __future__ import annotations

import asyncio
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from checkin_bot.clock import DEFAULT_TIMEZONE
from checkin_bot.db import open_store
from checkin_bot.records import RecordStore, User

RECORD_COLUMNS = ["user_id", "display_name", "date", "rank", "finished_at"]


def records_frame(users: dict[str, User], timezone: str = DEFAULT_TIMEZONE) -> pd.DataFrame:
    rows = [
        {
            "user_id": user.user_id,
            "display_name": user.display_name,
            "date": date,
            "rank": record.rank,
            "finished_at": record.timestamp,
        }
        for user in users.values()
        for date, record in user.records.items()
        if record.finished
    ]
    df = pd.DataFrame(rows, columns=RECORD_COLUMNS)
    if not df.empty:
        df["date"] = pd.to_datetime(df["date"])
        df["finished_at"] = pd.to_datetime(df["finished_at"], utc=True, errors="coerce").dt.tz_convert(timezone)
    return df


async def _load_users(database_url: str) -> dict[str, User]:
    store = open_store(database_url)
    try:
        return await RecordStore(store).list_users()
    finally:
        await store.close()


def build_charts(records: pd.DataFrame, out_dir: str = "charts") -> list[str]:
    if records.empty:
        return []

    Path(out_dir).mkdir(parents=True, exist_ok=True)
    sns.set_theme(style="whitegrid")
    output_files: list[str] = []

    daily_finishers = records.groupby("date", as_index=False)["user_id"].count().rename(
        columns={"user_id": "finishers"}
    )
    plt.figure(figsize=(10, 5))
    sns.lineplot(data=daily_finishers, x="date", y="finishers", marker="o")
    plt.title("Daily Finishers")
    plt.xlabel("Date")
    plt.ylabel("Users finished")
    plt.xticks(rotation=30)
    plt.tight_layout()
    finishers_file = str(Path(out_dir) / "daily_finishers.png")
    plt.savefig(finishers_file, dpi=150)
    plt.close()
    output_files.append(finishers_file)

    plt.figure(figsize=(10, 5))
    sns.lineplot(data=records.sort_values("date"), x="date", y="rank", hue="display_name", marker="o")
    plt.gca().invert_yaxis()
    plt.title("Daily Rank by User")
    plt.xlabel("Date")
    plt.ylabel("Rank")
    plt.xticks(rotation=30)
    plt.tight_layout()
    rank_file = str(Path(out_dir) / "rank_trend.png")
    plt.savefig(rank_file, dpi=150)
    plt.close()
    output_files.append(rank_file)

    hours = records.dropna(subset=["finished_at"])
    if not hours.empty:
        by_hour = (
            hours.assign(hour=hours["finished_at"].dt.hour)
            .groupby("hour", as_index=False)["user_id"]
            .count()
            .rename(columns={"user_id": "check_ins"})
        )
        plt.figure(figsize=(10, 5))
        sns.barplot(data=by_hour, x="hour", y="check_ins", color="#5c8fd1")
        plt.title("Check-ins by Hour of Day")
        plt.xlabel("Hour")
        plt.ylabel("Check-ins")
        plt.tight_layout()
        hour_file = str(Path(out_dir) / "checkins_by_hour.png")
        plt.savefig(hour_file, dpi=150)
        plt.close()
        output_files.append(hour_file)

    return output_files


def generate_charts(database_url: str, timezone: str = DEFAULT_TIMEZONE, out_dir: str = "charts") -> list[str]:
    users = asyncio.run(_load_users(database_url))
    return build_charts(records_frame(users, timezone), out_dir)
