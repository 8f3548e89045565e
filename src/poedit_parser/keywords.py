"""
Agrégateur thread-safe des mots-clés trouvés pendant un scan.

Chaque mot-clé (valeur décodée du littéral) est associé à l'ensemble des
positions (fichier, ligne) où il a été vu. Plusieurs workers fusionnent leurs
résultats en parallèle ; toute la séquence lecture → création → ajout est
protégée par un verrou unique pour ne perdre aucune mise à jour quand deux
workers découvrent le même nouveau mot-clé simultanément.
"""

import threading
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

STDIN_NAME = "<stdin>"


@dataclass(frozen=True)
class Position:
    """
    Position d'une occurrence dans une source.

    Attributes:
        file: Nom du fichier source (None = flux anonyme, ex: STDIN)
        line: Numéro de ligne (commence à 1)
    """

    file: Optional[str]
    line: int

    def __post_init__(self):
        if self.line < 1:
            raise ValueError(f"line must be >= 1, got {self.line}")

    def sort_key(self) -> tuple[str, int]:
        return (self.file or "", self.line)

    def __str__(self) -> str:
        return f"{self.file or STDIN_NAME}:{self.line}"


@dataclass(frozen=True)
class KeywordOccurrence:
    """Une occurrence extraite d'une ligne : mot-clé décodé + position."""

    keyword: str
    position: Position


@dataclass
class KeywordEntry:
    """
    Mot-clé et toutes ses positions connues.

    Attributes:
        keyword: Valeur décodée du littéral (identité du mot-clé)
        positions: Positions (les doublons fusionnent)
    """

    keyword: str
    positions: set[Position] = field(default_factory=set)

    def sorted_positions(self) -> list[Position]:
        return sorted(self.positions, key=Position.sort_key)

    def __repr__(self) -> str:
        return f"KeywordEntry({self.keyword!r}, positions={len(self.positions)})"


class KeywordAggregator:
    """
    Collection thread-safe {mot-clé: KeywordEntry}.

    Example:
        >>> keywords = KeywordAggregator()
        >>> keywords.merge("Hello", Position("a.cs", 1))
        True
        >>> keywords.merge("Hello", Position("a.cs", 1))  # doublon ignoré
        False
        >>> len(keywords["Hello"].positions)
        1
    """

    def __init__(self) -> None:
        self._entries: dict[str, KeywordEntry] = {}
        self._lock = threading.Lock()

    def merge(self, keyword: str, position: Position) -> bool:
        """
        Ajoute une position à un mot-clé (créé s'il n'existe pas).

        Returns:
            True si le mot-clé vient d'être créé
        """
        with self._lock:
            entry = self._entries.get(keyword)
            created = entry is None
            if entry is None:
                entry = KeywordEntry(keyword)
                self._entries[keyword] = entry
            entry.positions.add(position)
            return created

    def merge_all(self, occurrences: Iterable[KeywordOccurrence]) -> int:
        """
        Fusionne un lot d'occurrences.

        Returns:
            Nombre de nouveaux mots-clés créés par ce lot
        """
        created = 0
        for occurrence in occurrences:
            if self.merge(occurrence.keyword, occurrence.position):
                created += 1
        return created

    def get(self, keyword: str) -> Optional[KeywordEntry]:
        with self._lock:
            return self._entries.get(keyword)

    def __getitem__(self, keyword: str) -> KeywordEntry:
        with self._lock:
            return self._entries[keyword]

    def __contains__(self, keyword: object) -> bool:
        with self._lock:
            return keyword in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keywords())

    def keywords(self) -> list[str]:
        """Mots-clés triés."""
        with self._lock:
            return sorted(self._entries)

    def entries(self) -> list[KeywordEntry]:
        """Entrées triées par mot-clé (à utiliser une fois le scan terminé)."""
        with self._lock:
            return [self._entries[keyword] for keyword in sorted(self._entries)]

    def snapshot(self) -> dict[str, frozenset[Position]]:
        """Copie immuable {mot-clé: positions}, comparable entre deux scans."""
        with self._lock:
            return {
                keyword: frozenset(entry.positions)
                for keyword, entry in self._entries.items()
            }

    def __repr__(self) -> str:
        return f"KeywordAggregator(keywords={len(self)})"
