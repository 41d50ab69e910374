import re

MAX_WORDS_PER_PART = 40

# ASCII and accented Latin letters plus the whole Bengali block (vowel signs included)
_LETTER = "A-Za-zÀ-ÖØ-öø-ÿŒœŠšŸŽžঀ-৿"
WORD_RE = re.compile(rf"[{_LETTER}]+(?:['\-][{_LETTER}]+)*")
PARAGRAPH_BREAK_RE = re.compile(r"\r?\n\r?\n")
SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?।॥])\s+")


def count_words(text: str) -> int:
    return len(WORD_RE.findall(text or ""))


def split_paragraphs(text: str) -> list[str]:
    return [part.strip() for part in PARAGRAPH_BREAK_RE.split(text) if part.strip()]


def split_sentences(text: str) -> list[str]:
    return [s for s in SENTENCE_BOUNDARY_RE.split(text) if s.strip()]


def split_response(full_text: str, max_words: int = MAX_WORDS_PER_PART) -> list[str]:
    """
    Split one completion into the chat bubbles shown to the visitor.

    Paragraph breaks win outright. Otherwise text over max_words is packed
    sentence by sentence into parts of at most max_words; a single sentence
    longer than that stays whole. Always returns at least one part.
    """
    if PARAGRAPH_BREAK_RE.search(full_text):
        paragraphs = split_paragraphs(full_text)
        if len(paragraphs) > 1:
            return paragraphs

    if count_words(full_text) <= max_words:
        return [full_text]

    sentences = split_sentences(full_text)
    if len(sentences) < 2:
        return [full_text]

    parts: list[str] = []
    current: list[str] = []
    current_words = 0
    for sentence in sentences:
        sentence_words = count_words(sentence)
        if current and current_words + sentence_words > max_words:
            parts.append(" ".join(current).strip())
            current = [sentence]
            current_words = sentence_words
        else:
            current.append(sentence)
            current_words += sentence_words

    if current:
        parts.append(" ".join(current).strip())

    if len(parts) < 2:
        return [full_text]
    return parts
