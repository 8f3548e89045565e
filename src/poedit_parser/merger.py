"""
Fusion des mots-clés d'un scan dans un catalogue PO existant.

Pour chaque mot-clé (traité indépendamment, dans l'ordre alphabétique) :

- correspondance exacte : les références sont remplacées par les positions du
  scan, traduction et drapeaux conservés → "existing"
- correspondance approximative (fuzzy_percent > 0) : l'entrée la plus proche
  (Levenshtein, insensible à la casse) est renommée sous le nouveau mot-clé,
  sa traduction est conservée, elle est marquée "fuzzy" et l'ancien id est
  noté en commentaire "previous msgid" → "fuzzy"
- aucune correspondance : nouvelle entrée vide → "new"

Enfin, toute entrée dont l'id n'est plus dans le scan est supprimée
("obsolete") : le catalogue ne garde jamais d'id périmé plus d'un cycle.
"""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Union

import polib

from .catalog import FUZZY_FLAG, new_entry, references_for
from .fuzzy import fuzzy_lookup
from .keywords import KeywordAggregator, KeywordEntry
from .literal import to_message_literal
from .logger import get_logger

logger = get_logger(__name__)

Keywords = Union[KeywordAggregator, Mapping[str, KeywordEntry], Iterable[KeywordEntry]]


@dataclass
class MergeResult:
    """
    Compteurs d'une fusion.

    Attributes:
        new: Mots-clés ajoutés sans traduction
        existing: Mots-clés déjà présents (références mises à jour)
        fuzzy: Mots-clés repris d'une entrée proche
        obsolete: Entrées supprimées car absentes du scan
        renamed: Couples (ancien id, nouvel id) des correspondances approximatives
    """

    new: int = 0
    existing: int = 0
    fuzzy: int = 0
    obsolete: int = 0
    renamed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.new + self.existing + self.fuzzy

    def __str__(self) -> str:
        return (
            f"{self.new} new, {self.existing} existing, "
            f"{self.fuzzy} fuzzy, {self.obsolete} obsolete"
        )


def _as_entries(keywords: Keywords) -> list[KeywordEntry]:
    if isinstance(keywords, KeywordAggregator):
        return keywords.entries()
    if isinstance(keywords, Mapping):
        return [keywords[k] for k in sorted(keywords)]
    return sorted(keywords, key=lambda e: e.keyword)


class CatalogMerger:
    """
    Réconcilie un jeu de mots-clés avec un catalogue PO.

    S'exécute sur un seul thread, après la fin du scan : aucun verrou.

    Example:
        >>> merger = CatalogMerger(fuzzy_percent=10)
        >>> result = merger.merge(catalog, keywords)
        >>> print(result)
        1 new, 12 existing, 1 fuzzy, 2 obsolete
    """

    def __init__(self, fuzzy_percent: int = 0):
        """
        Args:
            fuzzy_percent: Seuil de correspondance approximative en pourcentage
                           de la longueur du mot-clé (0 = désactivé)

        Raises:
            ValueError: Si fuzzy_percent n'est pas dans [0, 100]
        """
        if not 0 <= fuzzy_percent <= 100:
            raise ValueError(f"fuzzy_percent must be within 0..100, got {fuzzy_percent}")
        self.fuzzy_percent = fuzzy_percent

    def merge(self, catalog: polib.POFile, keywords: Keywords) -> MergeResult:
        """
        Fusionne les mots-clés dans le catalogue (modifié en place).

        Args:
            catalog: Catalogue existant
            keywords: Résultat du scan (agrégateur, dict ou entrées)

        Returns:
            Compteurs new / existing / fuzzy / obsolete
        """
        entries = _as_entries(keywords)
        keyword_ids = {entry.keyword for entry in entries}
        result = MergeResult()
        index = self._index(catalog)

        for entry in entries:
            existing = index.get(entry.keyword)
            if existing is not None:
                existing.occurrences = references_for(entry.positions)
                existing.obsolete = False
                result.existing += 1
                logger.debug(f'Existing keyword "{to_message_literal(entry.keyword)}"')
                continue

            previous = self._fuzzy_candidate(catalog, entry.keyword, keyword_ids)
            if previous is not None:
                self._replace_fuzzy(catalog, previous, entry)
                result.fuzzy += 1
                result.renamed.append((previous.msgid, entry.keyword))
                logger.info(
                    f'Fuzzy keyword "{to_message_literal(entry.keyword)}" '
                    f'replaces "{to_message_literal(previous.msgid)}"'
                )
                continue

            catalog.append(new_entry(entry))
            result.new += 1
            logger.debug(f'New keyword "{to_message_literal(entry.keyword)}"')

        result.obsolete = self._prune(catalog, keyword_ids)

        logger.info(f"Catalog merged: {result}")
        return result

    @staticmethod
    def _index(catalog: polib.POFile) -> dict[str, polib.POEntry]:
        # Les entrées obsolètes (#~) sont réactivées si le mot-clé revient
        index: dict[str, polib.POEntry] = {}
        for candidate in catalog:
            index.setdefault(candidate.msgid, candidate)
        return index

    def _fuzzy_candidate(
        self, catalog: polib.POFile, keyword: str, keyword_ids: set[str]
    ) -> Optional[polib.POEntry]:
        if self.fuzzy_percent <= 0:
            return None

        # Un id encore présent dans le scan appartient à son propre mot-clé
        candidates = [
            candidate
            for candidate in catalog
            if not candidate.obsolete and candidate.msgid not in keyword_ids
        ]
        match = fuzzy_lookup(
            keyword, (candidate.msgid for candidate in candidates), self.fuzzy_percent
        )
        if match is None:
            return None
        return next(candidate for candidate in candidates if candidate.msgid == match)

    @staticmethod
    def _replace_fuzzy(
        catalog: polib.POFile, previous: polib.POEntry, entry: KeywordEntry
    ) -> None:
        flags = list(previous.flags)
        if FUZZY_FLAG not in flags:
            flags.append(FUZZY_FLAG)

        replacement = polib.POEntry(
            msgid=entry.keyword,
            msgstr=previous.msgstr,
            msgid_plural=previous.msgid_plural,
            msgstr_plural=dict(previous.msgstr_plural),
            msgctxt=previous.msgctxt,
            comment=previous.comment,
            tcomment=previous.tcomment,
            flags=flags,
            occurrences=references_for(entry.positions),
            previous_msgid=previous.msgid,
        )

        _remove_entry(catalog, previous)
        catalog.append(replacement)

    @staticmethod
    def _prune(catalog: polib.POFile, keyword_ids: set[str]) -> int:
        obsolete = [entry for entry in catalog if entry.msgid not in keyword_ids]
        for entry in obsolete:
            logger.debug(f'Obsolete keyword "{to_message_literal(entry.msgid)}" removed')
            _remove_entry(catalog, entry)
        return len(obsolete)


def _remove_entry(catalog: polib.POFile, entry: polib.POEntry) -> None:
    # Suppression par identité : deux entrées peuvent être égales au sens polib
    for index, candidate in enumerate(catalog):
        if candidate is entry:
            del catalog[index]
            return
    raise ValueError(f"Entry {entry.msgid!r} is not part of the catalog")
