# farsi_text.py — digit normalization, cleanup, Persian word boundaries, tokenizing

from __future__ import annotations
import re
import unicodedata
from typing import List

FA_TO_EN_DIGITS = str.maketrans("۰۱۲۳۴۵۶۷۸۹", "0123456789")

ZWNJ = "\u200c"

# decorative symbols channels put around captions
EMOJI_RX = re.compile(r"[\u2600-\u27BF\U0001F300-\U0001FAFF\uFE0F]")
TOKEN_SPLIT_RX = re.compile(r"[\s,،.؛:!؟?\-\(\)\[\]«»\"']+")

def norm_digits(s: str) -> str:
    """Persian digits → ASCII digits. Everything else untouched."""
    return (s or "").translate(FA_TO_EN_DIGITS)

def cleanup(s: str) -> str:
    if not s: return ""
    s = s.replace("\ufeff", " ")
    s = re.sub(r"[ \t]+", " ", s)
    return s.strip()

def is_persian_char(ch: str) -> bool:
    # ZWNJ glues compound words together, so it belongs to the word;
    # Arabic punctuation (، ؛ ؟) and digits in the block do not
    if ch == ZWNJ:
        return True
    if not "\u0600" <= ch <= "\u06FF":
        return False
    return ch.isalpha() or unicodedata.category(ch) == "Mn"

def contains_persian(text: str) -> bool:
    return any(is_persian_char(ch) for ch in text or "")

def is_word_boundary(text: str, index: int) -> bool:
    """True when position `index` (0..len) sits between two words, i.e. the
    characters on both sides are not both letters of the same script run."""
    if index <= 0 or index >= len(text):
        return True
    before, after = text[index - 1], text[index]
    if is_persian_char(before) and is_persian_char(after):
        return False
    if before.isalnum() and after.isalnum() and before.isascii() and after.isascii():
        return False
    return True

def find_word(text: str, word: str, start: int = 0) -> int:
    """Index of the first whole-word occurrence of `word`, or -1."""
    if not text or not word:
        return -1
    i = text.find(word, start)
    while i != -1:
        if is_word_boundary(text, i) and is_word_boundary(text, i + len(word)):
            return i
        i = text.find(word, i + 1)
    return -1

def has_word(text: str, word: str) -> bool:
    return find_word(text, word) != -1

def tokenize(text: str) -> List[str]:
    """Split a caption into words; ZWNJ stays inside tokens, '#' and emoji are dropped."""
    if not text: return []
    t = EMOJI_RX.sub(" ", text.replace("#", ""))
    return [w for w in TOKEN_SPLIT_RX.split(t) if len(w) >= 2]
