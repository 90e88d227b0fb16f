from __future__ import annotations

import copy

import pytest

import wsdoc.fields as fields
from wsdoc.fields import (
    DeriveOptions,
    derive,
    harvest_word_box,
    help_label,
    mode_for_key,
    parse_word_list,
    publisher_label,
)
from wsdoc.items import Mode
from wsdoc.wordml import is_literal


@pytest.mark.parametrize(
    "value, expected",
    [
        (["go", " ", "went"], ["go", "went"]),
        ("go|went, gone", ["go", "went, gone"]),
        ("go\nwent,gone", ["go", "went,gone"]),
        ("go, went", ["go", "went"]),
        ("single", ["single"]),
        ("", []),
        (None, []),
    ],
)
def test_parse_word_list(value, expected) -> None:
    assert parse_word_list(value) == expected


@pytest.mark.parametrize(
    "key, title, mode",
    [
        ("active_task_content", None, Mode.ACTIVE),
        ("grammar_idioms_content", None, Mode.IDIOMS),
        ("vocab_Matching_content", None, Mode.MATCHING),
        ("grammar_content", None, Mode.PLAIN),
        ("interactive_content", None, Mode.PLAIN),
        ("exercise_2_content", "Idioms practice", Mode.IDIOMS),
    ],
)
def test_mode_for_key(key, title, mode) -> None:
    assert mode_for_key(key, title) is mode


def test_derive_does_not_modify_input() -> None:
    payload = {
        "grammar_content": "<p>Go home</p>",
        "article_text_paragraph1": "Hello",
        "source_link": "https://www.bbc.com/news",
        "exercise_idioms_content": "1. Q?\nyes",
        "exercise_idioms_words": ["yes", "no"],
    }
    snapshot = copy.deepcopy(payload)
    result = derive(payload)
    assert payload == snapshot
    assert result is not payload
    for key, value in snapshot.items():
        assert result[key] == value


def test_derive_passes_unknown_keys_through() -> None:
    assert derive({"foo": 5})["foo"] == 5


def test_derive_non_mapping_payload() -> None:
    assert derive(None) == {"midjourney_article_logo": "", "teacher_cloud_logo": ""}
    assert derive(["not", "a", "dict"]) == {"midjourney_article_logo": "", "teacher_cloud_logo": ""}


def test_derive_mirrors_headline_keys() -> None:
    assert derive({"headline_article": "H"})["headline_artikel"] == "H"
    assert derive({"headline_artikel": "K"})["headline_article"] == "K"
    result = derive({"headline_article": "A", "headline_artikel": "B"})
    assert (result["headline_article"], result["headline_artikel"]) == ("A", "B")


def test_plain_content_is_numbered() -> None:
    result = derive({"grammar_content": "<p>Go home</p><p>Sleep</p>"})
    assert result["grammar_content_plain"] == "1. Go home\n\n2. Sleep"
    assert is_literal(result["grammar_content_rich"])


def test_active_content_keeps_phases() -> None:
    result = derive({"active_task_content": "Phase 1: Read the text. Discuss it."})
    assert result["active_task_content_plain"] == "Phase 1:\nRead the text. Discuss it."
    assert "<w:b/>" in result["active_task_content_rich"]


def test_matching_content_plain_rows() -> None:
    result = derive({"vocab_matching_content": "1. cat\n2. dog\nA. meow\nB. woof"})
    assert result["vocab_matching_content_plain"] == "cat   |   meow\ndog   |   woof"


def test_title_selects_idioms_mode() -> None:
    result = derive({"exercise_3_content": "1. Q?\nyes\nno", "exercise_3_title": "Idioms"})
    assert result["exercise_3_content_plain"] == "1. Q?\na) yes\nb) no"


def test_idioms_harvests_word_box_from_aliases() -> None:
    result = derive({"exercise_idioms_content": "1. Q?\nyes\nno", "exercise_idioms_options": "yes|no"})
    assert result["exercise_idioms_content_plain"] == "1. Q?\na) yes\nb) no"
    assert result["exercise_idioms_word_box_content_line"] == "yes   |   no"
    assert is_literal(result["exercise_idioms_word_box_content_rich"])


def test_explicit_word_box_is_never_overwritten() -> None:
    result = derive(
        {
            "exercise_idioms_content": "1. Q?\nyes",
            "exercise_idioms_word_box_content": "alpha, beta",
            "exercise_idioms_options": "x|y",
        }
    )
    assert result["exercise_idioms_word_box_content_line"] == "alpha   |   beta"
    assert result["exercise_idioms_word_box_content"] == "alpha, beta"
    assert "exercise_idioms_word_box_content_plain" not in result


def test_empty_explicit_word_box_falls_back_to_aliases() -> None:
    result = derive(
        {
            "exercise_idioms_content": "1. Q?\nyes",
            "exercise_idioms_word_box_content": "",
            "exercise_idioms_options": "x|y",
        }
    )
    assert result["exercise_idioms_word_box_content_line"] == "x   |   y"


def test_harvest_word_box_priority() -> None:
    payload = {"b_words": "w1,w2", "b_choices": ["c1"], "b_wordbox": "  "}
    assert harvest_word_box(payload, "b") == ["c1"]
    assert harvest_word_box({}, "b") == []


def test_vocabulary_line_skips_empty_slots() -> None:
    result = derive(
        {
            "article_vocab_p1_1": "go",
            "article_vocab_p1_2": "went",
            "article_vocab_p1_3": "gone",
            "article_vocab_p2_1": "",
            "article_vocab_p2_2": "run",
            "article_vocab_p3_1": " ",
        }
    )
    assert result["article_vocab_p1_line"] == "go   |   went   |   gone"
    assert is_literal(result["article_vocab_p1_rich"])
    assert result["article_vocab_p2_line"] == "run"
    assert "article_vocab_p3_line" not in result


def test_article_paragraphs_and_combined_text() -> None:
    result = derive({"article_text_paragraph1": "<p>Hello <b>you</b></p>", "article_text_paragraph2": "Second"})
    assert result["article_text_paragraph1_plain"] == "Hello you"
    assert "<w:b/>" in result["article_text_paragraph1_rich"]
    assert result["article_text_all_plain"] == "Hello you\n\nSecond"
    assert is_literal(result["article_text_all_rich"])


def test_article_respects_max_paragraphs() -> None:
    result = derive(
        {"article_text_paragraph1": "one", "article_text_paragraph2": "two"},
        options=DeriveOptions(max_paragraphs=1),
    )
    assert "article_text_paragraph2_plain" not in result
    assert result["article_text_all_plain"] == "one"


@pytest.mark.parametrize("value", [None, {"nested": 1}, ""])
def test_malformed_values_give_empty_fields(value) -> None:
    result = derive({"grammar_content": value, "article_text_paragraph1": value})
    assert result["grammar_content_rich"] == ""
    assert result["grammar_content_plain"] == ""
    assert result["article_text_paragraph1_rich"] == ""
    assert "article_text_all_plain" not in result


def test_failing_field_does_not_abort_others(monkeypatch) -> None:
    def _boom(value, mode):
        raise RuntimeError("boom")

    monkeypatch.setattr(fields, "content_fields", _boom)
    result = derive({"grammar_content": "x", "article_text_paragraph1": "Hello"})
    assert result["grammar_content_rich"] == ""
    assert result["grammar_content_plain"] == ""
    assert result["article_text_paragraph1_plain"] == "Hello"


def test_failures_are_reported_in_debug_mode(monkeypatch, capsys) -> None:
    def _boom(value, mode):
        raise RuntimeError("boom")

    monkeypatch.setattr(fields, "content_fields", _boom)
    monkeypatch.setattr(fields, "_DEBUG_LOG", True)
    derive({"grammar_content": "x"})
    assert "failed to derive grammar_content" in capsys.readouterr().out


@pytest.mark.parametrize(
    "url, label",
    [
        ("https://www.nytimes.com/2024/01/01/world/story.html", "The New York Times"),
        ("https://www.vox.com/policy", "Vox"),
        ("theguardian.com/uk", "The Guardian"),
        ("http://news.example.org/a", "News"),
        ("", "source"),
        (None, "source"),
    ],
)
def test_publisher_label(url, label) -> None:
    assert publisher_label(url) == label


def test_source_link_never_shows_raw_url() -> None:
    result = derive({"source_link": "https://www.nytimes.com/x"})
    assert result["source_link"] == "https://www.nytimes.com/x"
    assert result["source_link_pretty"] == "The New York Times"
    raw = result["source_link_hyperlink_raw"]
    assert is_literal(raw)
    assert "HYPERLINK &quot;https://www.nytimes.com/x&quot;" in raw


def test_empty_source_link() -> None:
    result = derive({"source_link": ""})
    assert result["source_link_pretty"] == ""
    assert result["source_link_hyperlink_raw"] == ""


def test_help_label() -> None:
    assert help_label("https://ex.com/help") == "help"
    assert help_label("https://ex.com/help", include_url=True) == "help (https://ex.com/help)"
    assert help_label("  ") == ""


def test_help_links_mirror_onto_variants() -> None:
    result = derive({"help_link_grammar_1": "https://ex.com/help", "help_link_reading_2a": "https://ex.com/r"})
    assert result["help_link_grammar_1_pretty"] == "help"
    assert result["help_link_grammar_1a_pretty"] == "help"
    assert result["help_link_grammar_1b_pretty"] == "help"
    assert result["help_link_reading_2_pretty"] == "help"
    assert "https://ex.com/help" not in result["help_link_grammar_1_pretty"]
    assert is_literal(result["help_link_grammar_1_hyperlink_raw"])


def test_help_link_variant_labels_are_not_overwritten() -> None:
    result = derive(
        {"help_link_grammar_1": "https://ex.com/a", "help_link_grammar_1a": "https://ex.com/b"},
        options=DeriveOptions(help_label_with_url=True),
    )
    assert result["help_link_grammar_1_pretty"] == "help (https://ex.com/a)"
    assert result["help_link_grammar_1a_pretty"] == "help (https://ex.com/b)"
    assert result["help_link_grammar_1b_pretty"] == "help (https://ex.com/a)"


def test_empty_help_link() -> None:
    result = derive({"help_link_grammar_1": ""})
    assert result["help_link_grammar_1_pretty"] == ""
    assert result["help_link_grammar_1_hyperlink_raw"] == ""
    assert "help_link_grammar_1a_pretty" not in result


def test_combined_article_decodes_entities_once() -> None:
    result = derive(
        {
            "article_text_paragraph1": "x &lt; y and a &gt; b",
            "article_text_paragraph2": "<p>&lt;b&gt;literal&lt;/b&gt;</p>",
        }
    )
    assert result["article_text_paragraph1_plain"] == "x < y and a > b"
    assert result["article_text_paragraph2_plain"] == "<b>literal</b>"
    assert result["article_text_all_plain"] == "x < y and a > b\n\n<b>literal</b>"
    assert "x &lt; y and a &gt; b" in result["article_text_all_rich"]
    assert "&lt;b&gt;literal&lt;/b&gt;" in result["article_text_all_rich"]
