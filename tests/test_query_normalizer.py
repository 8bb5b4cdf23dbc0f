from utils.query_normalizer import cache_key, extract_keywords, normalize_query, query_words


def test_equivalent_phrasings_share_a_key():
    assert cache_key("React integrate") == cache_key("integrate, react!")
    assert cache_key("  How   to INSTALL? ") == cache_key("install how to")


def test_normalize_lowercases_and_sorts_words():
    assert normalize_query("Zeta  alpha\tBeta") == "alpha beta zeta"


def test_normalize_empty():
    assert normalize_query("") == ""
    assert normalize_query(None) == ""


def test_query_words_are_distinct_and_ordered():
    assert query_words("Install the CLI, install it") == ["install", "the", "cli"]


def test_extract_keywords_takes_first_words_longer_than_two():
    assert extract_keywords("how to install the app") == ["how", "install"]
    assert extract_keywords("how to configure the router") == ["how", "configure"]


def test_extract_keywords_can_skip_stop_words():
    assert extract_keywords("how to install the app", skip_stop_words=True) == ["install", "app"]


def test_extract_keywords_skips_whole_query_word():
    assert extract_keywords("deploy") == []
