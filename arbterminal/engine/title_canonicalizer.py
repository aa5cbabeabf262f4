"""
Title Canonicalizer
===================

Transformação determinística de títulos para comparação:
"Will Donald Trump win the 2024 election?" -> "trump win 2024 election"

Usada pelo scorer (igualmente para os dois títulos) e para agrupar
mercados na exibição.
"""

import re

_LEADING_AUXILIARY = re.compile(r"^(will|does|did|is|are|was|were)\s+")
_TRAILING_PHRASE = re.compile(r"\s+(happen|occur|take place|be true|be false)\??$")

# Sinônimos de nomes/frases, aplicados em ordem
_SYNONYMS = (
    (re.compile(r"\b(donald|don)\s+trump\b"), "trump"),
    (re.compile(r"\b(joe|joseph)\s+biden\b"), "biden"),
    (re.compile(r"\bworld\s+cup\b"), "worldcup"),
    (re.compile(r"\bsuper\s+bowl\b"), "superbowl"),
)

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_STOP_WORDS = re.compile(r"\b(the|a|an|and|or|but|in|on|at|to|for|of|with|by)\b")


def _canonical_pass(title: str) -> str:
    text = title.lower()
    text = _LEADING_AUXILIARY.sub("", text)
    text = _TRAILING_PHRASE.sub("", text)
    for pattern, replacement in _SYNONYMS:
        text = pattern.sub(replacement, text)
    text = _PUNCTUATION.sub(" ", text)
    text = _WHITESPACE.sub(" ", text)
    text = _STOP_WORDS.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()


def canonicalize_title(title: str) -> str:
    """
    Forma canônica de um título.

    Aplica o passo de normalização até o texto parar de mudar, então
    canonicalize_title(canonicalize_title(s)) == canonicalize_title(s).
    Depois do primeiro passo cada passo extra só remove texto.
    """
    current = _canonical_pass(title or "")
    while True:
        following = _canonical_pass(current)
        if following == current:
            return current
        current = following
