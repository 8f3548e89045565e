"""
Jeu de patterns de recherche et de remplacement.

Un pattern est défini par un tuple brut issu de la configuration :

- (expression, options) : pattern de recherche seule ("match-only"),
  qui repère une occurrence dans la ligne restante
- (expression, options, remplacement) : pattern de remplacement, qui
  réécrit le candidat jusqu'à obtenir le littéral final

L'ordre de déclaration est la priorité (index bas = prioritaire). Les options
et la syntaxe des remplacements ($1, ${name}) reprennent celles des fichiers
de configuration historiques (.NET RegexOptions).
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional, Sequence

from .exceptions import ConfigurationError

# Valeurs de l'énumération .NET RegexOptions (None : option non supportée)
_DOTNET_OPTIONS: dict[str, tuple[int, Optional[re.RegexFlag]]] = {
    "none": (0, re.NOFLAG),
    "ignorecase": (1, re.IGNORECASE),
    "multiline": (2, re.MULTILINE),
    "explicitcapture": (4, None),
    "compiled": (8, re.NOFLAG),
    "singleline": (16, re.DOTALL),
    "ignorepatternwhitespace": (32, re.VERBOSE),
    "righttoleft": (64, re.NOFLAG),
    # \w, \d et \s limités à l'ASCII, comme en ECMAScript
    "ecmascript": (256, re.ASCII),
    "cultureinvariant": (512, re.NOFLAG),
}

_KNOWN_MASK = sum(bit for bit, _ in _DOTNET_OPTIONS.values())

# (?<name>...) .NET → (?P<name>...) ; (?<= et (?<! restent des lookbehinds
_DOTNET_NAMED_GROUP = re.compile(r"\(\?<(?![=!])")

# $$, $N, ${N}, ${name}
_DOTNET_REFERENCE = re.compile(r"\$(?:(\$)|(\d+)|\{(\w+)\})")


def parse_options(options: Any) -> re.RegexFlag:
    """
    Convertit une valeur RegexOptions (.NET) en drapeaux `re`.

    Accepte None, un entier (masque de bits), un nom ou plusieurs noms séparés
    par "," ou "|". Singleline est toujours actif.

    Raises:
        ConfigurationError: Nom ou bit inconnu, ou option ExplicitCapture

    Example:
        >>> parse_options("IgnoreCase, Multiline") & re.IGNORECASE
        re.IGNORECASE
    """
    flags = re.DOTALL

    if options is None:
        return flags

    if isinstance(options, bool):
        raise ConfigurationError(f"Invalid regular expression options {options!r}")

    if isinstance(options, int):
        if options < 0 or options & ~_KNOWN_MASK:
            raise ConfigurationError(f"Unknown regular expression options {options}")
        for name, (bit, flag) in _DOTNET_OPTIONS.items():
            if options & bit:
                flags |= _supported_flag(name, flag)
        return flags

    if isinstance(options, str):
        text = options.strip()
        if text.isdigit():
            return parse_options(int(text))
        for name in re.split(r"[,|]", text):
            key = name.strip().lower()
            if not key:
                continue
            if key not in _DOTNET_OPTIONS:
                raise ConfigurationError(
                    f"Unknown regular expression option {name.strip()!r}"
                )
            flags |= _supported_flag(key, _DOTNET_OPTIONS[key][1])
        return flags

    raise ConfigurationError(f"Invalid regular expression options {options!r}")


def _supported_flag(name: str, flag: Optional[re.RegexFlag]) -> re.RegexFlag:
    # ExplicitCapture renumérote les groupes : aucun équivalent dans `re`
    if flag is None:
        raise ConfigurationError(f"Unsupported regular expression option {name!r}")
    return flag


def convert_replacement(template: str) -> str:
    """
    Traduit un modèle de remplacement ($1, ${name}, $$) en modèle `re`.

    Tout le reste est du texte littéral (les antislashs sont protégés).

    Example:
        >>> convert_replacement("$3")
        '\\\\g<3>'
    """
    parts: list[str] = []
    position = 0
    for match in _DOTNET_REFERENCE.finditer(template):
        parts.append(template[position : match.start()].replace("\\", "\\\\"))
        dollar, number, name = match.groups()
        if dollar:
            parts.append("$")
        else:
            parts.append(f"\\g<{number if number is not None else name}>")
        position = match.end()
    parts.append(template[position:].replace("\\", "\\\\"))
    return "".join(parts)


@dataclass(frozen=True)
class ParserPattern:
    """
    Pattern compilé, immuable.

    Attributes:
        pattern: Expression source (telle que configurée)
        expression: Expression compilée
        replacement: Modèle de remplacement d'origine (None = recherche seule)
        template: Modèle converti pour re (None = recherche seule)
    """

    pattern: str
    expression: re.Pattern
    replacement: Optional[str] = None
    template: Optional[str] = None

    @property
    def is_match_only(self) -> bool:
        return self.replacement is None

    @classmethod
    def compile(cls, definition: Sequence[Any]) -> "ParserPattern":
        """
        Compile un tuple (expression, options[, remplacement]).

        Raises:
            ConfigurationError: Tuple mal formé ou expression invalide
        """
        if isinstance(definition, (str, bytes)) or len(definition) not in (2, 3):
            raise ConfigurationError(
                f"Invalid pattern definition {definition!r}: "
                f"expected (expression, options[, replacement])"
            )

        expression, options = definition[0], definition[1]
        replacement = definition[2] if len(definition) == 3 else None

        if not isinstance(expression, str) or not expression:
            raise ConfigurationError(f"Invalid pattern expression {expression!r}")
        if replacement is not None and not isinstance(replacement, str):
            raise ConfigurationError(f"Invalid replacement {replacement!r}")

        flags = parse_options(options)
        source = _DOTNET_NAMED_GROUP.sub("(?P<", expression)
        try:
            compiled = re.compile(source, flags)
        except re.error as e:
            raise ConfigurationError(
                f"Invalid regular expression {expression!r}: {e}"
            ) from e

        template = convert_replacement(replacement) if replacement is not None else None
        if template is not None:
            # Les références à un groupe inexistant échouent dès maintenant
            try:
                _check_references(compiled, replacement)  # type: ignore[arg-type]
            except IndexError as e:
                raise ConfigurationError(
                    f"Invalid replacement {replacement!r} for {expression!r}: {e}"
                ) from e

        return cls(
            pattern=expression,
            expression=compiled,
            replacement=replacement,
            template=template,
        )

    def search(self, text: str) -> Optional[re.Match]:
        return self.expression.search(text)

    def matches(self, text: str) -> bool:
        return self.expression.search(text) is not None

    def replace(self, text: str) -> str:
        """Remplace toutes les occurrences dans `text` par le modèle."""
        if self.template is None:
            raise ValueError(f"Pattern {self.pattern!r} has no replacement")
        return self.expression.sub(self.template, text)

    def __repr__(self) -> str:
        kind = "match" if self.is_match_only else f"replace={self.replacement!r}"
        return f"ParserPattern({self.pattern!r}, {kind})"


def _check_references(compiled: re.Pattern, replacement: str) -> None:
    for match in _DOTNET_REFERENCE.finditer(replacement):
        _, number, name = match.groups()
        if number is not None and int(number) > compiled.groups:
            raise IndexError(f"unknown group {number}")
        if name is not None:
            if name.isdigit():
                if int(name) > compiled.groups:
                    raise IndexError(f"unknown group {name}")
            elif name not in compiled.groupindex:
                raise IndexError(f"unknown group name {name!r}")


class PatternSet:
    """
    Collection ordonnée de patterns compilée une seule fois au démarrage.

    Les deux sous-listes (recherche seule, remplacement) conservent l'ordre
    de déclaration global.

    Example:
        >>> patterns = PatternSet.from_config([
        ...     (r'^.*(_\\(\\s*(".*[^\\\\]")\\s*\\))', "None"),
        ...     (r'^.*(_\\(\\s*(".*[^\\\\]")\\s*\\)).*$', "None", "$2"),
        ... ])
        >>> len(patterns.match_patterns), len(patterns.replace_patterns)
        (1, 1)
    """

    def __init__(self, patterns: Iterable[ParserPattern]):
        self.patterns: tuple[ParserPattern, ...] = tuple(patterns)
        self.match_patterns = tuple(p for p in self.patterns if p.is_match_only)
        self.replace_patterns = tuple(p for p in self.patterns if not p.is_match_only)

    @classmethod
    def from_config(cls, definitions: Iterable[Sequence[Any]]) -> "PatternSet":
        return cls(ParserPattern.compile(definition) for definition in definitions)

    def first_match(self, line: str) -> Optional[tuple[ParserPattern, re.Match]]:
        """Premier pattern de recherche (par priorité) qui correspond à `line`."""
        for pattern in self.match_patterns:
            match = pattern.search(line)
            if match is not None:
                return pattern, match
        return None

    def matching_replacements(self, candidate: str) -> list[ParserPattern]:
        """Patterns de remplacement qui correspondent au candidat, dans l'ordre."""
        return [p for p in self.replace_patterns if p.matches(candidate)]

    def __len__(self) -> int:
        return len(self.patterns)

    def __iter__(self) -> Iterator[ParserPattern]:
        return iter(self.patterns)

    def __repr__(self) -> str:
        return (
            f"PatternSet(match={len(self.match_patterns)}, "
            f"replace={len(self.replace_patterns)})"
        )
