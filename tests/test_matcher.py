"""
Test Suite for the Matching Pipeline
====================================
Unit tests for normalizer, noise classifier, stem extractor, keyword
extractor, scorer and ranker.
"""

from __future__ import annotations

import logging

import pytest

from quizmatch import ranker
from quizmatch.keywords import keywords
from quizmatch.models import Candidate, QuestionRecord
from quizmatch.noise import is_noise
from quizmatch.normalizer import (
    collapse_whitespace,
    correct_ocr_errors,
    edit_form,
    normalize,
    strip_punctuation,
)
from quizmatch.ranker import rank, score_corpus, select_candidates
from quizmatch.scorer import (
    ScoringWeights,
    compare_features,
    edit_similarity,
    keyword_similarity,
    similarity,
    stem_features,
)
from quizmatch.state_machine import (
    OPTION_LABEL_PATTERN,
    STEM_MARKER_PATTERN,
    ExtractorState,
    StemExtractor,
    extract_stem,
)
from quizmatch.tables import DEFAULT_CORRECTIONS, CorrectionTable


SCENARIO_TEXT = "3、机同车驶入路口遇有下列哪种情况可以通行？\nA:有交通警察指挥\nB:对面无来车"
SCENARIO_STEM = "机向车驶入路口遇有下列哪种情况可以通行"


def _record(qid: int, stem: str, answer: str = "A") -> QuestionRecord:
    return QuestionRecord(id=qid, stem=stem, options=("A:正确", "B:错误"), answer=answer)


def _candidate(qid: int, value: float) -> Candidate:
    return Candidate.from_record(_record(qid, f"题目{qid}"), value)


# ═══════════════════════════════════════════════════════════════════════════════
# NORMALIZER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestCorrectionTable:
    """One regression test per correction rule."""

    def test_table_order_puts_longer_patterns_first(self):
        patterns = [wrong for wrong, _ in DEFAULT_CORRECTIONS]
        assert patterns.index("机同") < patterns.index("同")

    def test_figure_reference(self):
        assert correct_ocr_errors("抑图所示，这是什么标志") == "如图所示，这是什么标志"

    def test_vehicle_direction(self):
        assert correct_ocr_errors("机同车") == "机向车"

    def test_broad_tong_rule_rewrites_every_occurrence(self):
        assert correct_ocr_errors("同方向行驶") == "向方向行驶"

    def test_bullets_removed(self):
        assert correct_ocr_errors("○A:正确●") == "A:正确"

    def test_question_marks_removed(self):
        assert correct_ocr_errors("可以通行？吗?") == "可以通行吗"

    def test_spaces_removed(self):
        assert correct_ocr_errors("驾驶 机动车") == "驾驶机动车"

    def test_custom_table(self):
        table = CorrectionTable(version="test", rules=(("红灯", "绿灯"),))
        assert correct_ocr_errors("红灯 停", table) == "绿灯 停"
        assert len(table) == 1


class TestNormalize:
    """Test the full normalizer."""

    def test_whitespace_cleanup(self):
        text = "  第一行  \n\n\n\n第二行\t\t尾  "
        assert normalize(text) == "第一行\n\n第二行尾"

    def test_collapse_whitespace_keeps_single_spaces(self):
        assert collapse_whitespace(" a \t b \r\nc ") == "a b\nc"

    def test_deletion_exposes_earlier_pattern(self):
        assert normalize("抑 图所示") == "如图所示"

    def test_empty(self):
        assert normalize("") == ""
        assert normalize(" \n\t ") == ""

    @pytest.mark.parametrize("text", [
        SCENARIO_TEXT,
        "抑 图所示\t\t的标志\n\n\n\n?1、同意",
        "  A:  \n○B：\r\n\r\n\r\n\r\nC、   ",
        "Mixed  English\tand 中文　全角空格",
        "机 同车",
    ])
    def test_idempotent(self, text):
        once = normalize(text)
        assert normalize(once) == once

    def test_strip_punctuation(self):
        assert strip_punctuation("红灯，停！\n(绿灯) 行。") == "红灯停绿灯行"

    def test_edit_form(self):
        assert edit_form("机同车，ABC？") == "机向车abc"


# ═══════════════════════════════════════════════════════════════════════════════
# NOISE CLASSIFIER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestNoiseClassifier:
    """Test the noise line rules."""

    def test_documented_examples(self):
        assert is_noise("A:") is True
        assert is_noise("判断题") is True
        assert is_noise("这是一道关于交通信号灯的判断题目") is False

    def test_empty_and_short(self):
        assert is_noise("")
        assert is_noise("   ")
        assert is_noise("12")
        assert is_noise("红灯")

    def test_short_without_cjk_pair(self):
        assert is_noise("AB1")
        assert is_noise("12、")
        assert is_noise("1红2灯")

    def test_short_cjk_content_kept(self):
        assert not is_noise("机动车")
        assert not is_noise("停车等待")

    def test_structural_patterns(self):
        assert is_noise("A、")
        assert is_noise("D： ")
        assert is_noise("○●○●○")
        assert is_noise("123、")
        assert is_noise("45.")
        assert is_noise("单选题")
        assert is_noise("多选题")

    def test_watermark_characters(self):
        assert is_noise("学法减分")
        assert is_noise("分学法减分法")

    def test_ad_denylist(self):
        assert is_noise("钢结构创意展示中心")
        assert is_noise("私享会员专属福利")

    def test_denylist_single_character_fragment(self):
        # "告" blocks ad overlays but also hits real stems
        assert is_noise("警告标志表示什么意思")

    def test_option_with_payload_is_content(self):
        assert not is_noise("A:有交通警察指挥")


# ═══════════════════════════════════════════════════════════════════════════════
# STEM EXTRACTOR TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestLinePatterns:
    """Test regex patterns used by the extractor."""

    def test_stem_markers(self):
        assert STEM_MARKER_PATTERN.match("3、机动车")
        assert STEM_MARKER_PATTERN.match("12.机动车")
        assert STEM_MARKER_PATTERN.match("？机动车")
        assert STEM_MARKER_PATTERN.match("?5、机动车")
        assert not STEM_MARKER_PATTERN.match("机动车3、")

    def test_option_labels(self):
        assert OPTION_LABEL_PATTERN.match("A:正确")
        assert OPTION_LABEL_PATTERN.match("○B：错误")
        assert OPTION_LABEL_PATTERN.match("C、减速")
        assert OPTION_LABEL_PATTERN.match("D.停车")
        assert not OPTION_LABEL_PATTERN.match("E:其他")
        assert not OPTION_LABEL_PATTERN.match("驾驶A:")


class TestStemExtractor:
    """Test the stem extraction state machine."""

    def test_scenario(self):
        extraction = StemExtractor().extract(SCENARIO_TEXT)
        assert extraction.stem == SCENARIO_STEM
        assert extraction.fallback_level == 0
        assert not extraction.used_fallback

    def test_leading_furniture_skipped(self):
        text = (
            "12\n判断题\n学法减分\n"
            "5、驾驶机动车在高速公路上行驶\n"
            "遇到雾天时应当开启雾灯\n"
            "○A:正确\n○B:错误"
        )
        assert extract_stem(text) == "驾驶机动车在高速公路上行驶遇到雾天时应当开启雾灯"

    def test_category_header_with_extra_text_skipped(self):
        text = "单选题（共100题）\n2、驾驶机动车在路口右转弯\nA:正确"
        assert extract_stem(text) == "驾驶机动车在路口右转弯"

    def test_leading_question_mark(self):
        text = "？驾驶人在道路上行驶时要注意什么\nA:观察\nB:鸣笛"
        assert extract_stem(text) == "驾驶人在道路上行驶时要注意什么"

    def test_marker_alone_on_its_line(self):
        text = "3、\n驾驶机动车在路口右转弯\nA:正确"
        assert extract_stem(text) == "驾驶机动车在路口右转弯"

    def test_unnumbered_long_line_starts_stem(self):
        text = "驾驶机动车遇到校车停靠时应当\n停车等待\nA:正确"
        assert extract_stem(text) == "驾驶机动车遇到校车停靠时应当停车等待"

    def test_noise_line_ends_stem(self):
        text = "1、行车中遇到这种情况应当减速\n钢结构四代宅\n慢行通过路口"
        assert extract_stem(text) == "行车中遇到这种情况应当减速"

    def test_state_after_run(self):
        extractor = StemExtractor()
        extractor.extract(SCENARIO_TEXT)
        assert extractor.state == ExtractorState.DONE

        extractor.extract("")
        assert extractor.state == ExtractorState.SEEKING_STEM

    def test_extractor_is_reusable(self):
        extractor = StemExtractor()
        first = extractor.extract(SCENARIO_TEXT)
        second = extractor.extract(SCENARIO_TEXT)
        assert first == second

    def test_fallback_filtered_lines(self):
        extraction = StemExtractor().extract("路口让行\nA:正确")
        assert extraction.stem == "路口让行"
        assert extraction.fallback_level == 1

    def test_fallback_raw_prefix(self):
        extraction = StemExtractor().extract("交通告示\nA:正确")
        assert extraction.stem == "交通告示"
        assert extraction.fallback_level == 2

    def test_only_option_labels_is_empty(self):
        extraction = StemExtractor().extract("A:\nB:")
        assert extraction.stem == ""
        assert extraction.is_empty

    def test_whitespace_only_is_empty(self):
        extraction = StemExtractor().extract("   \n \t ")
        assert extraction.is_empty


# ═══════════════════════════════════════════════════════════════════════════════
# KEYWORD EXTRACTOR TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestKeywords:
    """Test the n-gram keyword extractor."""

    def test_all_window_lengths(self):
        result = keywords("交通信号灯")
        assert result == {
            "交通", "通信", "信号", "号灯",
            "交通信", "通信号", "信号灯",
            "交通信号", "通信号灯",
        }

    def test_returns_frozenset(self):
        assert isinstance(keywords("交通信号灯"), frozenset)

    def test_stop_words_removed(self):
        assert keywords("自己") == frozenset()
        assert "没有" not in keywords("没有灯光")

    def test_non_cjk_windows_dropped(self):
        assert keywords("ABC红灯") == {"红灯"}

    def test_punctuation_stripped_first(self):
        assert keywords("红，灯") == {"红灯"}

    def test_duplicates_collapse(self):
        assert keywords("红灯红灯") == {"红灯", "灯红", "红灯红", "灯红灯", "红灯红灯"}

    def test_empty(self):
        assert keywords("") == frozenset()


# ═══════════════════════════════════════════════════════════════════════════════
# SCORER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestSimilarity:
    """Test the composite similarity score."""

    def test_identity(self):
        assert similarity(SCENARIO_STEM, SCENARIO_STEM) == pytest.approx(1.0)

    def test_identity_without_cjk(self):
        assert similarity("Turn left", "Turn left") == pytest.approx(1.0)

    def test_empty_input(self):
        assert similarity("", SCENARIO_STEM) == 0.0
        assert similarity(SCENARIO_STEM, "   ") == 0.0
        assert similarity("？？", SCENARIO_STEM) == 0.0

    def test_range(self):
        texts = [
            SCENARIO_STEM,
            "机动车驶入路口遇有下列哪种情况可以通行？",
            "夜间会车时应当使用近光灯",
            "Turn left",
            "红灯停",
            "A",
        ]
        for a in texts:
            for b in texts:
                assert 0.0 <= similarity(a, b) <= 1.0

    def test_edit_similarity_counts_code_points(self):
        assert edit_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)
        assert edit_similarity("红灯停", "红灯行") == pytest.approx(2 / 3)
        assert edit_similarity("", "红灯") == 0.0

    def test_keyword_similarity(self):
        value = keyword_similarity(frozenset({"红灯", "绿灯"}), frozenset({"绿灯", "黄灯"}))
        # jaccard 1/3, coverage 1/2
        assert value == pytest.approx(0.6 / 3 + 0.4 * 0.5)

    def test_keyword_similarity_empty_set(self):
        assert keyword_similarity(frozenset(), frozenset({"红灯"})) == 0.0

    def test_keyword_monotonicity(self):
        k1 = frozenset({"红灯", "绿灯", "路口"})
        k2 = frozenset({"红灯", "黄灯"})
        before = keyword_similarity(k1, k2)
        after = keyword_similarity(k1 | {"停车"}, k2 | {"停车"})
        assert after >= before

    def test_composite_blend(self):
        expected_keyword = 0.6 * (1 / 5) + 0.4 * (1 / 3)
        expected = 0.4 * (2 / 3) + 0.6 * expected_keyword
        assert similarity("红灯停", "红灯行") == pytest.approx(expected)

    def test_one_side_without_keywords(self):
        assert similarity("ABCD", "交通信号") == pytest.approx(0.0)

    def test_custom_weights(self):
        weights = ScoringWeights(edit=1.0, keyword=0.0)
        assert similarity("红灯停", "红灯行", weights) == pytest.approx(2 / 3)

    def test_ocr_misread_still_scores_high(self):
        value = similarity("机动车驶入路口遇有下列哪种情况可以通行？", SCENARIO_STEM)
        assert 0.8 < value < 1.0


# ═══════════════════════════════════════════════════════════════════════════════
# RANKER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestSelectCandidates:
    """Test the threshold and confidence selection policy."""

    def test_high_confidence_cutoff(self):
        scored = [_candidate(1, 0.3), _candidate(2, 0.5), _candidate(3, 0.45)]
        result = select_candidates(scored, threshold=0.25)
        assert [c.similarity for c in result] == [0.5, 0.45]
        assert [c.id for c in result] == [2, 3]

    def test_low_confidence_fallback(self):
        scored = [_candidate(1, 0.28), _candidate(2, 0.35), _candidate(3, 0.30)]
        result = select_candidates(scored, threshold=0.25)
        assert [c.similarity for c in result] == [0.35, 0.30, 0.28]

    def test_threshold_is_exclusive(self):
        scored = [_candidate(1, 0.25), _candidate(2, 0.26)]
        assert [c.id for c in select_candidates(scored)] == [2]

    def test_high_confidence_bar_is_exclusive(self):
        scored = [_candidate(1, 0.4), _candidate(2, 0.3)]
        assert [c.id for c in select_candidates(scored)] == [1, 2]

    def test_ties_keep_corpus_order(self):
        scored = [_candidate(3, 0.5), _candidate(1, 0.5), _candidate(2, 0.6)]
        assert [c.id for c in select_candidates(scored)] == [2, 3, 1]

    def test_fallback_limit(self):
        scored = [_candidate(i, 0.3) for i in range(1, 16)]
        result = select_candidates(scored)
        assert [c.id for c in result] == list(range(1, 11))

    def test_high_confidence_is_not_capped(self):
        scored = [_candidate(i, 0.5) for i in range(1, 16)] + [_candidate(16, 0.3)]
        result = select_candidates(scored)
        assert [c.id for c in result] == list(range(1, 16))

    def test_nothing_above_threshold(self):
        scored = [_candidate(1, 0.1), _candidate(2, 0.0)]
        assert select_candidates(scored) == []


class TestRank:
    """Test ranking end to end."""

    CORPUS = (
        QuestionRecord(
            id=1,
            question=SCENARIO_STEM,
            options=["A:有交通警察指挥", "B:对面无来车"],
            answer="A",
        ),
        _record(2, "夜间会车时应当使用近光灯"),
        _record(3, "驾驶机动车在高速公路上行驶遇到雾天时应当开启雾灯"),
        _record(4, "机动车在路口右转弯时应当注意避让行人"),
    )

    def test_empty_corpus(self, caplog):
        with caplog.at_level(logging.WARNING, logger="quizmatch"):
            assert rank("任意文本", []) == []
        assert "Corpus is empty" in caplog.text

    def test_scenario_scores_one(self):
        result = rank(SCENARIO_TEXT, self.CORPUS)
        assert result[0].id == 1
        assert result[0].similarity == pytest.approx(1.0)
        assert result[0].answer == "A"
        assert result[0].options == ("A:有交通警察指挥", "B:对面无来车")

    def test_unrelated_questions_filtered(self):
        result = rank(SCENARIO_TEXT, self.CORPUS)
        assert 2 not in [c.id for c in result]

    def test_misread_corpus_entry_matches(self):
        corpus = (_record(7, "机动车驶入路口遇有下列哪种情况可以通行？"),)
        result = rank(SCENARIO_TEXT, corpus)
        assert [c.id for c in result] == [7]
        assert result[0].similarity > 0.8

    def test_empty_extraction_matches_nothing(self):
        assert rank("A:\nB:", self.CORPUS) == []

    def test_parallel_scoring_matches_sequential(self):
        sequential = score_corpus(SCENARIO_STEM, self.CORPUS, workers=1)
        parallel = score_corpus(SCENARIO_STEM, self.CORPUS, workers=4)
        assert [(c.id, c.similarity) for c in parallel] == [
            (c.id, c.similarity) for c in sequential
        ]

    def test_ocr_features_computed_once(self, monkeypatch):
        seen = []

        def recording(stem, corrections=None):
            seen.append(stem)
            return stem_features(stem, corrections)

        monkeypatch.setattr(ranker, "stem_features", recording)
        score_corpus(SCENARIO_STEM + "吗", self.CORPUS)
        assert seen.count(SCENARIO_STEM + "吗") == 1
        assert len(seen) == len(self.CORPUS) + 1

    def test_precomputed_features_match_similarity(self):
        ocr = stem_features(SCENARIO_STEM)
        for record in self.CORPUS:
            assert compare_features(stem_features(record.stem), ocr) == (
                pytest.approx(similarity(record.stem, SCENARIO_STEM))
            )

    def test_rank_with_workers(self):
        assert rank(SCENARIO_TEXT, self.CORPUS, workers=3) == rank(
            SCENARIO_TEXT, self.CORPUS
        )

    def test_deterministic(self):
        first = rank(SCENARIO_TEXT, self.CORPUS)
        second = rank(SCENARIO_TEXT, self.CORPUS)
        assert [(c.id, c.similarity) for c in first] == [
            (c.id, c.similarity) for c in second
        ]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
