from support_chatbot.service.chat.splitter import count_words, split_response


def _sentence(n, word="word"):
    return " ".join([word] * n) + "."


def test_short_text_stays_whole():
    assert split_response("Sure, we ship worldwide.") == ["Sure, we ship worldwide."]


def test_paragraph_break_splits():
    assert split_response("A\n\nB") == ["A", "B"]


def test_paragraph_split_trims_and_drops_blank_segments():
    text = "  First part. \r\n\r\n\n\n  Second part.  \n\n   "
    assert split_response(text) == ["First part.", "Second part."]


def test_single_paragraph_after_blank_removal_falls_through():
    assert split_response("Only one.\n\n   ") == ["Only one.\n\n   "]


def test_long_text_packs_sentences_under_limit():
    sentences = [_sentence(15) for _ in range(6)]
    text = " ".join(sentences)
    assert count_words(text) == 90

    parts = split_response(text)

    assert len(parts) >= 2
    assert all(count_words(part) <= 40 for part in parts)
    assert " ".join(parts) == text


def test_oversized_sentence_is_not_broken():
    long_sentence = _sentence(50)
    text = f"{long_sentence} Short one here."

    parts = split_response(text)

    assert parts == [long_sentence, "Short one here."]


def test_long_text_without_sentence_boundary_returns_whole():
    text = " ".join(["word"] * 60)
    assert split_response(text) == [text]


def test_exactly_forty_words_is_one_part():
    text = _sentence(20) + " " + _sentence(20)
    assert split_response(text) == [text]


def test_bengali_words_are_counted():
    assert count_words("আমি ভাত খাই") == 3


def test_bengali_danda_ends_a_sentence():
    first = " ".join(["আমি"] * 30) + "।"
    second = " ".join(["ভাত"] * 30) + "।"

    assert split_response(f"{first} {second}") == [first, second]


def test_apostrophes_and_hyphens_join_words():
    assert count_words("don't re-order, café") == 3


def test_punctuation_and_digits_are_not_words():
    assert count_words("123 ... !!! $5") == 0


def test_custom_max_words():
    text = "One two three. Four five six."
    assert split_response(text, max_words=3) == ["One two three.", "Four five six."]
