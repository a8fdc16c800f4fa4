import pytest
from bs4 import BeautifulSoup

from word_boundary import (
    NO_WORD,
    Caret,
    MonospaceLayout,
    extract_word_at_point,
    flatten_text,
    is_acceptable_word,
    sentence_around,
    strip_punctuation,
    word_at_offset,
)


@pytest.mark.parametrize("offset", range(0, 16))
def test_hyphenated_compound_is_one_word(offset):
    assert word_at_offset("state-of-the-art design", offset) == "state-of-the-art"


def test_punctuation_is_stripped_but_hyphens_kept():
    assert word_at_offset("Hello, world.", 2) == "Hello"
    assert word_at_offset("a co-founder.", 5) == "co-founder"
    assert word_at_offset('He said "yes!"', 10) == "yes"
    assert strip_punctuation("don't") == "don't"
    assert strip_punctuation("...") == ""


def test_em_dash_separates_words():
    assert word_at_offset("well—known", 1) == "well"
    assert word_at_offset("well—known", 6) == "known"


def test_offset_right_after_word():
    assert word_at_offset("cat sat", 3) == "cat"


def test_acceptable_word():
    assert is_acceptable_word("cat")
    assert is_acceptable_word("a" * 30)
    assert is_acceptable_word("state-of-the-art")
    assert is_acceptable_word("well - known")
    assert not is_acceptable_word("")
    assert not is_acceptable_word("a" * 31)
    assert not is_acceptable_word("two words")


def test_sentence_around():
    text = "First one. Second here! Third?"
    assert sentence_around(text, text.index("Second") + 2) == "Second here!"
    assert sentence_around(text, 0) == "First one."
    assert sentence_around("no punctuation", 3) == "no punctuation"


HTML = (
    '<article>'
    '<p class="article-text" data-original-text="The state-of-the-art tools, co-founder.">'
    'The <span class="hl">state-of-the-art</span> tools, <b>co</b>-founder.</p>'
    '<p class="article-text" data-original-text="Hello, world.">Hello, world.</p>'
    '</article>'
)


def _point(layout, container_index, offset):
    container = layout.soup.find_all(class_="article-text")[container_index]
    return layout.point_for_offset(container, offset)


def test_flatten_ignores_markup():
    soup = BeautifulSoup(HTML, "html.parser")
    p = soup.find(class_="article-text")
    assert flatten_text(p) == "The state-of-the-art tools, co-founder."


@pytest.mark.parametrize("offset", range(4, 20))
def test_click_inside_highlighted_compound(offset):
    layout = MonospaceLayout(HTML, columns=80)
    x, y = _point(layout, 0, offset)
    result = extract_word_at_point(layout, x, y)
    assert result.word == "state-of-the-art"
    assert result.bounding_rect is not None


def test_click_across_markup_boundary():
    layout = MonospaceLayout(HTML, columns=80)
    text = "The state-of-the-art tools, co-founder."
    x, y = _point(layout, 0, text.index("founder"))
    assert extract_word_at_point(layout, x, y).word == "co-founder"
    x, y = _point(layout, 0, text.index("tools"))
    assert extract_word_at_point(layout, x, y).word == "tools"


def test_second_container_and_sentence():
    layout = MonospaceLayout(HTML, columns=80)
    x, y = _point(layout, 1, 1)
    result = extract_word_at_point(layout, x, y)
    assert result.word == "Hello"
    assert result.sentence == "Hello, world."


def test_same_point_same_word():
    layout = MonospaceLayout(HTML, columns=80)
    x, y = _point(layout, 0, 8)
    assert extract_word_at_point(layout, x, y) == extract_word_at_point(layout, x, y)


def test_wrapped_lines():
    html = '<p class="article-text" data-original-text="x">alpha beta gamma delta</p>'
    layout = MonospaceLayout(html, columns=11)
    x, y = _point(layout, 0, 11)
    assert y > layout.line_height
    assert extract_word_at_point(layout, x, y).word == "gamma"


def test_no_caret_gives_no_word():
    layout = MonospaceLayout(HTML, columns=80)
    assert extract_word_at_point(layout, -5, -5) is NO_WORD
    assert extract_word_at_point(layout, 5000, 5) is NO_WORD
    assert not extract_word_at_point(layout, 0, 5000)


def test_missing_original_text_attribute():
    layout = MonospaceLayout('<p class="article-text">Hello</p>')
    x, y = _point(layout, 0, 1)
    assert extract_word_at_point(layout, x, y) is NO_WORD


def test_node_outside_any_container():
    soup = BeautifulSoup("<p>hello</p>", "html.parser")
    node = soup.p.string
    assert extract_word_at_point(lambda x, y: Caret(node, 1), 0, 0) is NO_WORD
