"""
Recherche approximative de mots-clés par distance de Levenshtein.

Utilisée par la fusion de catalogue pour retrouver l'ancienne version d'un
mot-clé légèrement modifié et conserver sa traduction (marquée "fuzzy").
"""

from typing import Iterable, Optional


def levenshtein_distance(first: str, second: str) -> int:
    """
    Distance d'édition (insertion, suppression, substitution à coût 1)
    entre deux chaînes, sans tenir compte de la casse.

    Example:
        >>> levenshtein_distance("kitten", "sitting")
        3
        >>> levenshtein_distance("Hello", "hello")
        0
    """
    first = first.casefold()
    second = second.casefold()
    if first == second:
        return 0
    if not first:
        return len(second)
    if not second:
        return len(first)

    # Deux lignes de la matrice suffisent
    previous = list(range(len(second) + 1))
    for i, first_char in enumerate(first, start=1):
        current = [i]
        for j, second_char in enumerate(second, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (first_char != second_char),
                )
            )
        previous = current
    return previous[-1]


def max_distance_for(keyword: str, fuzzy_percent: int) -> int:
    """Distance maximale tolérée : floor(len(keyword) * pourcentage / 100)."""
    return len(keyword) * fuzzy_percent // 100


def fuzzy_lookup(
    keyword: str, candidates: Iterable[str], fuzzy_percent: int
) -> Optional[str]:
    """
    Retourne le candidat le plus proche de `keyword`, ou None.

    Les candidats dont la longueur diffère de plus de la distance maximale
    sont écartés avant le calcul. À distance égale, le premier candidat
    rencontré gagne.

    Args:
        keyword: Nouveau mot-clé
        candidates: Mots-clés existants, dans l'ordre du catalogue
        fuzzy_percent: Seuil en pourcentage de la longueur (0 = désactivé)

    Example:
        >>> fuzzy_lookup("Hello World", ["Helo World", "Goodbye"], 10)
        'Helo World'
    """
    if not keyword or fuzzy_percent <= 0:
        return None

    max_distance = max_distance_for(keyword, fuzzy_percent)
    if max_distance < 1:
        return None

    best: Optional[str] = None
    best_distance = max_distance + 1
    for candidate in candidates:
        if not candidate or abs(len(candidate) - len(keyword)) > max_distance:
            continue
        distance = levenshtein_distance(keyword, candidate)
        if distance < best_distance:
            best, best_distance = candidate, distance
            if distance == 0:
                break
    return best
