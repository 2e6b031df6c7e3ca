"""
Lookup Tables
=============
Read-only data shared by every match call: the OCR correction table,
the keyword stop-word set and the watermark/advertisement denylist.

Entries here were collected from real OCR runs over photographed
driving-theory questions. Every correction rule has a regression test in
tests/test_matcher.py; review those when adding or removing a rule.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CorrectionTable:
    """
    Ordered exact-string OCR corrections.

    Rules are applied top to bottom, so a longer pattern must come before
    any shorter pattern it contains (``机同`` before ``同``).
    """

    version: str
    rules: tuple[tuple[str, str], ...]

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)


DEFAULT_CORRECTIONS = CorrectionTable(
    version="1",
    rules=(
        ("抑图所示", "如图所示"),
        ("机同", "机向"),
        # Broad rule: rewrites every 同, correct or not.
        ("同", "向"),
        ("○", ""),
        ("●", ""),
        ("？", ""),
        ("?", ""),
        (" ", ""),
    ),
)

# Option/list bullets that OCR picks up from radio buttons.
BULLET_GLYPHS = "○●"

# Characters of the "学法减分" app watermark; OCR often returns them scattered.
WATERMARK_CHARS = "学法减分"

CATEGORY_LABELS = frozenset({"判断题", "单选题", "多选题"})

# Substrings that only appear in overlay ads and watermark fragments.
AD_DENYLIST = (
    "钢结构",
    "四代宅",
    "创意展示",
    "超云动",
    "天题云",
    "云动从",
    "盈多世",
    "多世好",
    "留大是",
    "名章任",
    "血天",
    "私亨",
    "私享会",
    "留久",
    "留太",
    "名草",
    "告",
)

# Stripped before edit-distance and keyword comparison.
PUNCTUATION = (
    "，。、；：！？“”‘’（）【】《》…—·"
    ",.;:!?\"'()[]<>"
)

STOP_WORDS = frozenset({
    "的", "了", "是", "在", "有", "和", "就", "不", "人", "都",
    "一", "一个", "上", "也", "很", "到", "说", "要", "去", "你",
    "会", "着", "没有", "看", "好", "自己", "这", "那", "为", "与",
    "及", "或", "等", "个", "中", "对", "能", "可", "以", "向",
    "从", "被", "由", "把", "给", "让", "使", "将",
})
