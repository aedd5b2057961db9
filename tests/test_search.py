"""Tests for the search strategies and category listings."""

import pytest

from babbler.errors import QueryError
from babbler.search import sanitize_search_string


@pytest.fixture
def corpus(make_entry):
    """Four entries across three categories; returns their ids in order."""
    return [
        make_entry(category="animals", sub_category="pets", title="The Cat Book",
                   content="cats love dogs"),
        make_entry(category="animals", sub_category="wild", title="Dog Days",
                   content="dogs chase cats and birds"),
        make_entry(category="stories", sub_category="short", title="The Fox",
                   content="The quick brown fox"),
        make_entry(category="misc", sub_category="labels", title="Cotton",
                   content="100% pure_cotton"),
    ]


def ids(entries):
    return [e.entry_id for e in entries]


class TestSanitize:
    """Tests for sanitize_search_string."""

    def test_strips_punctuation(self):
        assert sanitize_search_string("dogs, cats! (birds)") == "dogs cats birds"

    def test_keeps_word_characters_and_whitespace(self):
        assert sanitize_search_string("snake_case\tword 42") == "snake_case\tword 42"


class TestSearchExact:
    """Tests for search_exact."""

    def test_substring(self, engine, corpus):
        assert ids(engine.search.search_exact("dogs")) == corpus[:2]

    def test_partial_word(self, engine, corpus):
        assert ids(engine.search.search_exact("chase ca")) == [corpus[1]]

    def test_case_insensitive(self, engine, corpus):
        assert ids(engine.search.search_exact("DOGS")) == corpus[:2]

    def test_category_filter(self, engine, corpus):
        assert ids(engine.search.search_exact("o", category="stories")) == [corpus[2]]

    def test_star_means_all_categories(self, engine, corpus):
        assert ids(engine.search.search_exact("o", category="*")) == corpus

    def test_wildcards_are_literal(self, engine, corpus):
        assert ids(engine.search.search_exact("100%")) == [corpus[3]]
        assert ids(engine.search.search_exact("e_c")) == [corpus[3]]
        assert engine.search.search_exact("cats%dogs") == []

    def test_no_match(self, engine, corpus):
        assert engine.search.search_exact("zebra") == []


class TestSearchFuzzy:
    """Tests for search_fuzzy."""

    def test_words_in_order(self, engine, corpus):
        assert ids(engine.search.search_fuzzy("cats dogs")) == [corpus[0]]

    def test_order_matters(self, engine, corpus):
        assert ids(engine.search.search_fuzzy("dogs cats")) == [corpus[1]]

    def test_punctuation_ignored(self, engine, corpus):
        assert ids(engine.search.search_fuzzy("dogs, ... birds!")) == [corpus[1]]

    def test_anything_between_tokens(self, engine, corpus):
        assert ids(engine.search.search_fuzzy("qu fox")) == [corpus[2]]

    def test_category_filter(self, engine, corpus):
        assert engine.search.search_fuzzy("cats", category="stories") == []

    def test_empty_query_matches_everything(self, engine, corpus):
        assert ids(engine.search.search_fuzzy("!!!")) == corpus


class TestSearchThreshold:
    """Tests for search_threshold."""

    def test_binary_hit_per_word(self, engine, make_entry):
        entry_id = make_entry(content="cats love dogs")
        matches = engine.search.search_threshold("cats birds")

        assert [(m.entry.entry_id, m.threshold) for m in matches] == [(entry_id, 1)]

    def test_ranked_by_score(self, engine, corpus):
        matches = engine.search.search_threshold("cats birds")
        assert [(m.entry.entry_id, m.threshold) for m in matches] == [
            (corpus[1], 2),
            (corpus[0], 1),
        ]

    def test_ties_broken_by_id(self, engine, corpus):
        matches = engine.search.search_threshold("dogs")
        assert [m.entry.entry_id for m in matches] == corpus[:2]

    def test_zero_scores_excluded(self, engine, corpus):
        matches = engine.search.search_threshold("fox")
        assert [m.entry.entry_id for m in matches] == [corpus[2]]

    def test_whole_words_only(self, engine, corpus):
        assert engine.search.search_threshold("cat") == []

    def test_case_sensitive(self, engine, corpus):
        assert engine.search.search_threshold("Cats") == []

    def test_repeated_query_word_counts_once(self, engine, corpus):
        matches = engine.search.search_threshold("cats cats cats")
        assert {m.threshold for m in matches} == {1}

    def test_repeated_content_word_counts_once(self, engine, make_entry):
        make_entry(content="spam spam spam eggs")
        matches = engine.search.search_threshold("spam")
        assert matches[0].threshold == 1

    def test_category_filter(self, engine, corpus):
        matches = engine.search.search_threshold("cats dogs fox", category="stories")
        assert [m.entry.entry_id for m in matches] == [corpus[2]]

    def test_empty_query(self, engine, corpus):
        assert engine.search.search_threshold("  ?! ") == []

    def test_to_dict_includes_score(self, engine, corpus):
        data = engine.search.search_threshold("birds")[0].to_dict()
        assert data["threshold"] == 1
        assert data["entry_id"] == corpus[1]


class TestSearchRegex:
    """Tests for search_regex."""

    def test_anchored_pattern(self, engine, corpus):
        assert ids(engine.search.search_regex(r"^cats")) == [corpus[0]]

    def test_pattern_passed_through(self, engine, corpus):
        assert ids(engine.search.search_regex(r"\d+% pure")) == [corpus[3]]

    def test_case_sensitive_by_default(self, engine, corpus):
        assert ids(engine.search.search_regex(r"^the")) == []
        assert ids(engine.search.search_regex(r"(?i)^the")) == [corpus[2]]

    def test_category_filter(self, engine, corpus):
        assert ids(engine.search.search_regex("cats", category="animals")) == corpus[:2]

    def test_invalid_pattern_raises(self, engine, corpus):
        with pytest.raises(QueryError, match="Invalid search pattern"):
            engine.search.search_regex("(unclosed")

    def test_oversized_repeat_raises(self, engine, corpus):
        with pytest.raises(QueryError, match="Invalid search pattern"):
            engine.search.search_regex("a{4294967296}")

    def test_no_match_is_empty(self, engine, corpus):
        assert engine.search.search_regex("^zebra$") == []


class TestSearchTitle:
    """Tests for search_title."""

    def test_substring(self, engine, corpus):
        assert ids(engine.search.search_title("Cat")) == [corpus[0]]

    def test_plain_title_match(self, engine, corpus):
        assert ids(engine.search.search_title("The Fox")) == [corpus[2]]

    def test_sanitized_before_matching(self, engine, corpus):
        """The comma of a fronted title is stripped from the query, so it cannot match."""
        assert engine.search.search_title("Fox, The") == []

    def test_ordered_by_fronted_title(self, engine, corpus):
        assert ids(engine.search.search_title("The")) == [corpus[0], corpus[2]]

    def test_punctuation_stripped(self, engine, corpus):
        assert ids(engine.search.search_title("Dog!")) == [corpus[1]]


class TestCategoryListings:
    """Tests for fetch_categories and fetch_sub_categories."""

    def test_categories_counted_and_sorted(self, engine, corpus):
        categories = engine.search.fetch_categories()
        assert list(categories.items()) == [("animals", 2), ("misc", 1), ("stories", 1)]

    def test_sub_categories_all(self, engine, corpus):
        subs = engine.search.fetch_sub_categories()
        assert list(subs) == ["labels", "pets", "short", "wild"]

    def test_sub_categories_within_category(self, engine, corpus):
        assert engine.search.fetch_sub_categories("animals") == {"pets": 1, "wild": 1}

    def test_empty_store(self, engine):
        assert engine.search.fetch_categories() == {}
