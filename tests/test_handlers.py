"""
Tests for inbound event handling: intent routing, replies and fallbacks.
"""
from unittest.mock import MagicMock

import pytest

from checkin_bot.handlers import CheckinHandlers, Intent, classify_intent
from checkin_bot.messages import Locale
from checkin_bot.messenger import Profile
from checkin_bot.ranking import RankingEngine
from checkin_bot.reminders import ReminderDispatcher

from conftest import seed_user

TODAY = "2024-05-20"
YESTERDAY = "2024-05-19"


@pytest.fixture
def reminders():
    return MagicMock(spec=ReminderDispatcher)


@pytest.fixture
def handlers(records, clock, aggregator, reminders, messenger):
    return CheckinHandlers(
        records=records,
        ranking=RankingEngine(records, clock),
        aggregator=aggregator,
        reminders=reminders,
        messenger=messenger,
    )


def _replies(messenger):
    return [call.args[1] for call in messenger.reply.await_args_list]


class TestClassifyIntent:
    @pytest.mark.parametrize(
        "text,intent",
        [
            ("完成", Intent.COMPLETION),
            (" 完了 ", Intent.COMPLETION),
            ("/done", Intent.COMPLETION),
            ("排名", Intent.RANKING_QUERY),
            ("ランキング", Intent.RANKING_QUERY),
            ("JP", Intent.LANGUAGE_SWITCH),
            ("中文", Intent.LANGUAGE_SWITCH),
            ("完成了嗎", Intent.GENERAL_MESSAGE),
            ("", Intent.GENERAL_MESSAGE),
        ],
    )
    def test_keywords(self, text, intent):
        assert classify_intent(text) is intent


class TestCompletion:
    @pytest.mark.asyncio
    async def test_first_completion_replies_and_dispatches_reminders(self, handlers, records, messenger, reminders):
        await seed_user(records, "u1", "Amy", finished={YESTERDAY: 2})
        messenger.get_profile.return_value = Profile(display_name="Amy")
        message = MagicMock()

        result = await handlers.handle_text("u1", "完成", message)

        assert result.success is True
        assert result.message == "exercise_completed"
        assert result.extra["ranking"] == 1
        text = _replies(messenger)[0]
        assert "昨天你是第2名！" in text
        assert "今天你是第1名！" in text
        reminders.dispatch_in_background.assert_called_once_with("Amy")

    @pytest.mark.asyncio
    async def test_repeat_completion_does_not_remind_again(self, handlers, records, reminders):
        await seed_user(records, "u1", "Amy")

        await handlers.handle_text("u1", "完成", MagicMock())
        second = await handlers.handle_text("u1", "完成", MagicMock())

        assert second.extra == {"ranking": 1, "first_today": False}
        assert reminders.dispatch_in_background.call_count == 1

    @pytest.mark.asyncio
    async def test_missing_profile_uses_placeholder_name(self, handlers, records, reminders):
        await seed_user(records, "u1", "Amy")
        await handlers.handle_completion("u1", None)
        reminders.dispatch_in_background.assert_called_once_with("某位朋友")

    @pytest.mark.asyncio
    async def test_reply_uses_user_language(self, handlers, records, messenger):
        await seed_user(records, "u1", "Amy", language=Locale.JA_JP)
        await handlers.handle_text("u1", "完了", MagicMock())
        assert "今日は1位です！" in _replies(messenger)[0]

    @pytest.mark.asyncio
    async def test_store_failure_sends_generic_reply(self, handlers, records, messenger, reminders, store):
        await seed_user(records, "u1", "Amy")
        store.fail_on = {"increment"}

        result = await handlers.handle_completion("u1", MagicMock())

        assert result.success is False
        assert result.message == "exercise_complete_failed"
        assert _replies(messenger)[0].startswith("你好！！")
        reminders.dispatch_in_background.assert_not_called()
        store.fail_on = set()
        assert await records.get_daily_record("u1", TODAY) is None


class TestRankingQuery:
    @pytest.mark.asyncio
    async def test_replies_with_roster(self, handlers, records, messenger):
        await seed_user(records, "u1", "Amy", finished={TODAY: 1})
        await seed_user(records, "u2", "Bob")

        result = await handlers.handle_text("u2", "排名", MagicMock())

        assert result.success is True
        assert result.extra == {"entries": 2}
        text = _replies(messenger)[0]
        assert "🥇Amy: 第1名" in text
        assert "Bob: 今天還沒運動唷🫠" in text

    @pytest.mark.asyncio
    async def test_store_failure_is_a_generic_reply(self, handlers, records, messenger, store):
        await seed_user(records, "u1", "Amy")
        result = await handlers.handle_text("u1", "排名", None)
        assert result.success is True

        store.fail_on = {"get"}
        result = await handlers.handle_ranking_query("u1", MagicMock())
        assert result.success is False
        assert result.message == "ranking_query_failed"
        assert _replies(messenger)[-1].startswith("你好！！")


class TestLanguageAndMembership:
    @pytest.mark.asyncio
    async def test_language_switch_is_saved(self, handlers, records, messenger):
        await seed_user(records, "u1", "Amy")

        result = await handlers.handle_text("u1", "日本語", MagicMock())

        assert result.extra == {"language": "ja-JP"}
        assert await records.get_language("u1") is Locale.JA_JP
        assert _replies(messenger) == ["✅ 言語が日本語に切り替わりました"]

    @pytest.mark.asyncio
    async def test_follow_creates_active_user(self, handlers, records, messenger):
        messenger.get_profile.return_value = Profile(display_name="Amy", status_message="lifting")

        result = await handlers.handle_follow("u1", MagicMock())

        user = await records.get_user("u1")
        assert result.message == "user_joined"
        assert user.display_name == "Amy"
        assert user.is_active is True
        assert user.status_message == "lifting"
        assert _replies(messenger)[0].startswith("Amy你好！！")

    @pytest.mark.asyncio
    async def test_follow_without_profile_uses_placeholder(self, handlers, records):
        await handlers.handle_follow("u1")
        assert (await records.get_user("u1")).display_name == "未設定"

    @pytest.mark.asyncio
    async def test_unfollow_then_message_reactivates(self, handlers, records, aggregator):
        await seed_user(records, "u1", "Amy")

        await handlers.handle_unfollow("u1")
        assert await aggregator.get_today_roster() == []

        await handlers.handle_text("u1", "hello", None)
        assert [e.user_id for e in await aggregator.get_today_roster()] == ["u1"]

    @pytest.mark.asyncio
    async def test_general_message(self, handlers, records, messenger):
        await seed_user(records, "u1", "Amy")
        result = await handlers.handle_text("u1", "hello", MagicMock())
        assert result.message == "general_reply"
        assert _replies(messenger)[0].startswith("你好！！")
