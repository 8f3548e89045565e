"""
Extraction des mots-clés d'une ligne de source.

Algorithme, pour chaque ligne :

1. Tant qu'un pattern de recherche correspond à la ligne restante :
   a. prendre le premier pattern (ordre de déclaration) et sa capture
      (groupe 1, ou la correspondance complète sans groupe) ;
   b. partir de la ligne restante non réécrite et appliquer chaque pattern de
      remplacement qui correspond au candidat, dans l'ordre, jusqu'à ce
      qu'aucun ne corresponde plus (point fixe) ;
   c. décoder le candidat comme un littéral échappé ; un échec est noté et
      l'occurrence ignorée ;
   d. retirer la capture de la ligne restante et enregistrer le mot-clé.
2. Une ligne vide ou blanche ne produit rien.

La priorité est l'ordre de déclaration, pas la spécificité. Les formes
"attribut" et "appel de fonction" partagent ainsi les mêmes règles
d'extraction du littéral.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional

from .exceptions import ConfigurationError, LiteralDecodeError
from .keywords import KeywordOccurrence, Position
from .literal import decode_literal
from .logger import get_logger
from .patterns import PatternSet

logger = get_logger(__name__)

# Nombre maximum de passes de remplacement pour un candidat
MAX_REPLACE_PASSES = 100


@dataclass
class LineResult:
    """
    Résultat de l'extraction d'une ligne.

    Attributes:
        occurrences: Mots-clés décodés, dans l'ordre de découverte
        errors: Littéraux capturés mais non décodables (occurrences ignorées)
        remainder: Ligne restante après retrait de toutes les captures
    """

    occurrences: list[KeywordOccurrence] = field(default_factory=list)
    errors: list[LiteralDecodeError] = field(default_factory=list)
    remainder: str = ""

    @property
    def found(self) -> bool:
        return bool(self.occurrences) or bool(self.errors)


class LineExtractor:
    """
    Applique un PatternSet à une ligne de texte.

    Sans état entre deux lignes : une même instance est partagée par tous les
    workers du pool.

    Example:
        >>> extractor = LineExtractor(ParserConfig().compile_patterns())
        >>> result = extractor.extract('x = _("Hello world");', 1, "main.cs")
        >>> [o.keyword for o in result.occurrences]
        ['Hello world']
    """

    def __init__(self, patterns: PatternSet, max_replace_passes: int = MAX_REPLACE_PASSES):
        if max_replace_passes < 1:
            raise ValueError(f"max_replace_passes must be >= 1, got {max_replace_passes}")
        self.patterns = patterns
        self.max_replace_passes = max_replace_passes

    def extract(
        self, line: str, line_number: int, file_name: Optional[str] = None
    ) -> LineResult:
        """
        Extrait les mots-clés d'une ligne.

        Args:
            line: Contenu de la ligne (sans fin de ligne)
            line_number: Numéro de la ligne (commence à 1)
            file_name: Fichier source (None = flux anonyme)

        Returns:
            LineResult avec occurrences, erreurs de décodage et reste de ligne

        Raises:
            ConfigurationError: Capture vide ou remplacements sans point fixe
        """
        result = LineResult(remainder=line)
        if not line.strip():
            return result

        current = line
        while True:
            found = self.patterns.first_match(current)
            if found is None:
                break

            pattern, match = found
            matched = match.group(1) if pattern.expression.groups else match.group(0)
            if not matched:
                raise ConfigurationError(
                    f"Pattern {pattern.pattern!r} produced an empty match "
                    f"on line #{line_number} of {file_name or '<stdin>'}"
                )

            logger.debug(
                f"{file_name or '<stdin>'}:{line_number} pattern {pattern.pattern!r} "
                f"matched {matched!r}"
            )

            candidate = self.rewrite(current)
            current = current.replace(matched, "")

            try:
                keyword = decode_literal(candidate)
            except LiteralDecodeError as e:
                error = e.at(file_name, line_number)
                logger.debug(f"Literal decoding failed: {error}")
                result.errors.append(error)
                continue

            result.occurrences.append(
                KeywordOccurrence(keyword, Position(file_name, line_number))
            )

        result.remainder = current
        return result

    def rewrite(self, candidate: str) -> str:
        """
        Applique les patterns de remplacement jusqu'au point fixe.

        Raises:
            ConfigurationError: Toujours au moins un remplacement applicable
                                après max_replace_passes passes
        """
        for _ in range(self.max_replace_passes):
            if not self.patterns.matching_replacements(candidate):
                return candidate
            for pattern in self.patterns.replace_patterns:
                # Chaque pattern est testé sur la valeur déjà réécrite
                if pattern.matches(candidate):
                    candidate = pattern.replace(candidate)

        if not self.patterns.matching_replacements(candidate):
            return candidate
        raise ConfigurationError(
            f"Replace patterns did not settle after {self.max_replace_passes} passes "
            f"(last candidate {candidate!r})"
        )

    def extract_lines(
        self, lines: Iterable[str], file_name: Optional[str] = None
    ) -> Iterator[LineResult]:
        """Extrait les mots-clés d'un flux de lignes numérotées à partir de 1."""
        for line_number, line in enumerate(lines, start=1):
            yield self.extract(line, line_number, file_name)
