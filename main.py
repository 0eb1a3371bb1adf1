import argparse
import logging

from checkin_bot.bot import BotConfig, CheckinBot
from checkin_bot.config import load_settings
from checkin_bot.db import open_store
from checkin_bot.visualize import generate_charts


def run_bot() -> None:
    settings = load_settings()
    bot = CheckinBot(
        token=settings.telegram_bot_token,
        store=open_store(settings.database_url),
        config=BotConfig(
            timezone=settings.timezone,
            default_language=settings.default_language,
        ),
    )
    bot.run()


def run_charts() -> None:
    settings = load_settings()
    files = generate_charts(settings.database_url, settings.timezone)
    if not files:
        print("No check-ins yet. Report some completions first.")
        return
    print("Generated charts:")
    for file in files:
        print(f"- {file}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Daily exercise check-in bot and analytics")
    parser.add_argument(
        "command",
        nargs="?",
        default="bot",
        choices=["bot", "charts"],
        help="Run mode: bot (default) or charts",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=load_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if args.command == "charts":
        run_charts()
    else:
        run_bot()
