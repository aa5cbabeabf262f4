"""
Title Similarity Scorer
=======================

Score de similaridade em [0, 1] entre dois títulos de eventos.

Combina, sobre as formas canônicas:
1. Match exato -> 1.0 (títulos que viram string vazia nunca casam)
2. Um contém o outro -> 0.7 a 0.9, conforme razão de tamanhos
3. Jaccard de palavras com mais de 2 letras (peso 0.5)
4. Containment da string inteira (0.1)
5. Números em comum (até 0.2)
6. Bônus/penalidade por keywords do domínio (-0.2 a +0.3)
7. Base fixa de 0.1

Não é estritamente simétrico em todos os casos, mas trocar os
argumentos não muda a classificação na prática.
"""

import re
from typing import Set

from .title_canonicalizer import canonicalize_title

# Comparadas contra as formas canônicas (por isso "worldcup", "superbowl")
IMPORTANT_KEYWORDS = (
    "trump", "biden", "bitcoin", "ethereum", "election", "president",
    "worldcup", "superbowl", "nfl", "nba", "nhl", "mlb",
    "inflation", "fed", "rate", "gdp", "unemployment",
)

KEYWORD_SHARED_BONUS = 0.1
KEYWORD_MISSING_PENALTY = 0.05
KEYWORD_MIN, KEYWORD_MAX = -0.2, 0.3

JACCARD_WEIGHT = 0.5
CONTAINMENT_WEIGHT = 0.1
NUMBER_WEIGHT = 0.2
BASE_SCORE = 0.1

_NUMBER = re.compile(r"\d+")


def _words(text: str) -> Set[str]:
    """Palavras com mais de 2 caracteres."""
    return {w for w in text.split(" ") if len(w) > 2}


def _jaccard(words1: Set[str], words2: Set[str]) -> float:
    if not words1 or not words2:
        return 0.0
    return len(words1 & words2) / len(words1 | words2)


def _number_match(text1: str, text2: str) -> float:
    numbers1 = _NUMBER.findall(text1)
    numbers2 = _NUMBER.findall(text2)
    if not numbers1 or not numbers2:
        return 0.0
    common = [n for n in numbers1 if n in numbers2]
    return len(common) / max(len(numbers1), len(numbers2)) * NUMBER_WEIGHT


def _keyword_bonus(text1: str, text2: str) -> float:
    bonus = 0.0
    for keyword in IMPORTANT_KEYWORDS:
        has1 = keyword in text1
        has2 = keyword in text2
        if has1 and has2:
            bonus += KEYWORD_SHARED_BONUS
        elif has1 != has2:
            bonus -= KEYWORD_MISSING_PENALTY
    return max(KEYWORD_MIN, min(KEYWORD_MAX, bonus))


def similarity_score(title1: str, title2: str) -> float:
    """
    Calcula similaridade entre dois títulos.

    Returns:
        Score entre 0.0 e 1.0
    """
    normalized1 = canonicalize_title(title1)
    normalized2 = canonicalize_title(title2)

    if normalized1 and normalized2:
        if normalized1 == normalized2:
            return 1.0
        if normalized1 in normalized2 or normalized2 in normalized1:
            shorter = min(len(normalized1), len(normalized2))
            longer = max(len(normalized1), len(normalized2))
            return 0.7 + (shorter / longer) * 0.2

    jaccard = _jaccard(_words(normalized1), _words(normalized2))

    if len(normalized1) > len(normalized2):
        longer_text, shorter_text = normalized1, normalized2
    else:
        longer_text, shorter_text = normalized2, normalized1
    containment = CONTAINMENT_WEIGHT if shorter_text in longer_text else 0.0

    score = (
        jaccard * JACCARD_WEIGHT
        + containment
        + _number_match(normalized1, normalized2)
        + _keyword_bonus(normalized1, normalized2)
        + BASE_SCORE
    )

    return max(0.0, min(1.0, score))
