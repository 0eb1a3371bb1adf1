from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from checkin_bot.roster import RosterEntry


class Locale(str, Enum):
    ZH_TW = "zh-TW"
    JA_JP = "ja-JP"

    @classmethod
    def parse(cls, value: object, default: Locale | None = None) -> Locale:
        try:
            return cls(value)
        except ValueError:
            return default or cls.ZH_TW


FINISHER_PLACEHOLDER = "某位朋友"
UNSET_PLACEHOLDER = "未設定"

RANK_ICONS = {1: "🥇", 2: "🥈", 3: "🥉"}
DEFAULT_RANK_ICON = "🔺"


def _general_zh(display_name: str) -> str:
    return (
        f"{display_name}你好！！\n\n"
        "大家一起來運動⛷️\n\n"
        "每天回報你的運動情況吧👟\n\n"
        "請輸入「完成」來記錄今日運動💪\n"
        "請輸入「排名」來看看今天大家運動了沒😏\n\n"
        "語言切換：\n"
        "輸入「日本語」或「JP」切換日文\n"
        "輸入「中文」或「TW」切換中文"
    )


def _general_ja(display_name: str) -> str:
    return (
        f"{display_name}こんにちは！！\n\n"
        "一緒に運動しましょう⛷️\n\n"
        "運動したあと、みんなに報告しましょう👟\n\n"
        "「完了」と入力して記録しましょう💪\n"
        "「ランキング」と入力してみんなの調子を確認😏\n\n"
        "言語切替：\n"
        "「日本語」または「JP」で日本語\n"
        "「中文」または「TW」で中国語"
    )


def _record_zh(yesterday_rank: int, today_rank: int) -> str:
    yesterday = f"\n\n昨天你是第{yesterday_rank}名！" if yesterday_rank > 0 else ""
    return f"運動辛苦了🎊💓{yesterday}\n\n今天你是第{today_rank}名！好棒好棒！"


def _record_ja(yesterday_rank: int, today_rank: int) -> str:
    yesterday = f"\n\n昨日は{yesterday_rank}位でした！" if yesterday_rank > 0 else ""
    return f"お疲れさまでした🎊💓{yesterday}\n\n今日は{today_rank}位です！素晴らしい！"


def _reminder_zh(display_name: str) -> str:
    return f"{display_name}已經運動完囉！！\n你今天什麼時候才要運動🥺"


def _reminder_ja(display_name: str) -> str:
    return f"{display_name}もう運動したよ！！\nきみは...?やらないの🥺"


GENERAL: dict[Locale, Callable[[str], str]] = {
    Locale.ZH_TW: _general_zh,
    Locale.JA_JP: _general_ja,
}
RECORD: dict[Locale, Callable[[int, int], str]] = {
    Locale.ZH_TW: _record_zh,
    Locale.JA_JP: _record_ja,
}
REMINDER: dict[Locale, Callable[[str], str]] = {
    Locale.ZH_TW: _reminder_zh,
    Locale.JA_JP: _reminder_ja,
}
LANGUAGE_CHANGED = {
    Locale.ZH_TW: "✅ 語言已切換為中文",
    Locale.JA_JP: "✅ 言語が日本語に切り替わりました",
}
RANKING_HEADER = {
    Locale.ZH_TW: "📊 今日運動排名：\n",
    Locale.JA_JP: "📊 今日のランキング：\n",
}
RANKING_EMPTY = {
    Locale.ZH_TW: "目前沒有其他用戶耶...🤔",
    Locale.JA_JP: "まだ他のユーザーがいないです...🤔",
}
RANK_UNIT = {Locale.ZH_TW: "名", Locale.JA_JP: "位"}
NOT_YET = {
    Locale.ZH_TW: "今天還沒運動唷🫠",
    Locale.JA_JP: "今日まだ運動していません🫠",
}


def general_message(display_name: str = "", locale: Locale = Locale.ZH_TW) -> str:
    return GENERAL[locale](display_name)


def record_reply(yesterday_rank: int, today_rank: int, locale: Locale = Locale.ZH_TW) -> str:
    """Completion reply; a yesterday rank of 0 omits the yesterday line."""
    return RECORD[locale](yesterday_rank, today_rank)


def reminder_message(display_name: str, locale: Locale = Locale.ZH_TW) -> str:
    return REMINDER[locale](display_name)


def language_changed_message(locale: Locale) -> str:
    return LANGUAGE_CHANGED[locale]


def ranking_reply(roster: Sequence[RosterEntry], locale: Locale = Locale.ZH_TW) -> str:
    if not roster:
        return RANKING_EMPTY[locale]

    finished = [entry for entry in roster if entry.has_finished]
    unfinished = [entry for entry in roster if not entry.has_finished]

    lines = [RANKING_HEADER[locale]]
    for entry in finished:
        icon = RANK_ICONS.get(entry.rank or 0, DEFAULT_RANK_ICON)
        lines.append(
            f"\n{icon}{entry.display_name}: 第{entry.rank}{RANK_UNIT[locale]} ({entry.finish_time}完成)"
        )
    if finished and unfinished:
        lines.append("\n")
    for entry in unfinished:
        lines.append(f"\n{entry.display_name}: {NOT_YET[locale]}")
    return "".join(lines)
