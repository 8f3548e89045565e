"""
Exceptions spécifiques au parser Poedit.

Toutes les erreurs dérivent de ParserError, ce qui permet à la CLI de
distinguer les erreurs connues (message lisible, code de sortie 1) des bugs.

Taxonomie :
- ConfigurationError : pattern ou fichier de configuration invalide (fatal)
- LiteralDecodeError : littéral mal échappé (récupérable, occurrence ignorée)
- SourceReadError : fichier source illisible (récupérable par fichier)
- CatalogParseError : catalogue PO existant illisible (fatal en mode merge)
- CatalogWriteError : catalogue impossible à encoder ou à écrire (fichier existant intact)
- ScanAbortedError : premier échec d'un scan en mode fail_on_error
- BundleFormatError : fichier i8n invalide
"""

from typing import Optional


class ParserError(Exception):
    """Classe de base de toutes les erreurs du parser."""


class ConfigurationError(ParserError, ValueError):
    """
    Configuration invalide (tuple de pattern mal formé, regex invalide,
    options inconnues, encodage inconnu, boucle de remplacement infinie).

    Jamais récupérée : le programme s'arrête au démarrage.
    """


class LiteralDecodeError(ParserError, ValueError):
    """
    Exception levée quand le texte capturé n'est pas un littéral chaîne
    correctement échappé.

    Attributes:
        literal: Le texte qui n'a pas pu être décodé
        reason: Raison courte de l'échec
        file_name: Fichier source (None = flux anonyme)
        line_number: Numéro de ligne (None si inconnu)
    """

    def __init__(
        self,
        literal: str,
        reason: str,
        file_name: Optional[str] = None,
        line_number: Optional[int] = None,
    ):
        self.literal = literal
        self.reason = reason
        self.file_name = file_name
        self.line_number = line_number

        location = ""
        if line_number is not None:
            location = f" ({file_name or '<stdin>'}:{line_number})"
        super().__init__(f"Failed to decode keyword {literal!r}: {reason}{location}")

    def at(self, file_name: Optional[str], line_number: int) -> "LiteralDecodeError":
        """Retourne une copie de l'erreur localisée dans la source."""
        return LiteralDecodeError(self.literal, self.reason, file_name, line_number)

    def __repr__(self) -> str:
        return (
            f"LiteralDecodeError(literal={self.literal!r}, "
            f"line={self.line_number})"
        )


class SourceReadError(ParserError, OSError):
    """
    Fichier source impossible à ouvrir ou à décoder.

    Attributes:
        file_name: Chemin du fichier
        cause: Exception d'origine (OSError, UnicodeDecodeError)
    """

    def __init__(self, file_name: str, cause: Exception):
        self.file_name = file_name
        self.cause = cause
        super().__init__(f"Failed to read source file {file_name!r}: {cause}")


class CatalogParseError(ParserError):
    """
    Catalogue PO existant illisible.

    Fusionner dans des données illisibles n'est pas sûr : le mode merge
    s'arrête sur cette erreur.
    """

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to parse catalog {path!r}: {cause}")


class CatalogWriteError(ParserError):
    """
    Catalogue PO impossible à encoder ou à écrire.

    L'écriture passe par un fichier temporaire : en cas d'échec, le fichier
    de sortie existant n'est pas modifié.
    """

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write catalog {path!r}: {cause}")


class ScanAbortedError(ParserError):
    """
    Scan interrompu par la politique fail_on_error.

    L'erreur d'origine est disponible via __cause__ et first_error.
    """

    def __init__(self, first_error: BaseException):
        self.first_error = first_error
        super().__init__(f"Scan aborted: {first_error}")


class BundleFormatError(ParserError, ValueError):
    """Fichier d'internationalisation (i8n) invalide ou clé dupliquée."""
