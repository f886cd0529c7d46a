from rsvp_reader.core.tokenizer import join_words, tokenize


def test_tokenize_splits_on_any_whitespace() -> None:
    assert tokenize("  one\ttwo\n\nthree four  ") == ["one", "two", "three", "four"]


def test_tokenize_keeps_punctuation_attached() -> None:
    assert tokenize("Hello, world! (Really?)") == ["Hello,", "world!", "(Really?)"]


def test_tokenize_empty_text() -> None:
    assert tokenize("") == []
    assert tokenize(" \n\t ") == []


def test_join_words_round_trips_normalised_text() -> None:
    text = "It was a bright cold day in April."

    assert join_words(tokenize(text)) == text
