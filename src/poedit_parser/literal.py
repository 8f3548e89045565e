"""
Décodage et encodage des littéraux chaîne.

decode_literal() transforme un littéral entre guillemets doubles, échappé à la
manière du C (\\n, \\t, \\", \\\\, \\uXXXX...), en sa valeur.
to_message_literal() fait l'opération inverse pour l'affichage des mots-clés
dans les logs.
"""

import re
from typing import Optional

from .exceptions import LiteralDecodeError

_SIMPLE_ESCAPES = {
    '"': '"',
    "'": "'",
    "\\": "\\",
    "/": "/",
    "0": "\0",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}

# Longueur des séquences hexadécimales (\xHH, \uHHHH, \UHHHHHHHH)
_HEX_ESCAPES = {"x": 2, "u": 4, "U": 8}

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")

# Plages de substituts UTF-16 (interdits seuls dans une chaîne encodable)
_HIGH_SURROGATE = 0xD800
_LOW_SURROGATE = 0xDC00
_SURROGATE_END = 0xDFFF

_LITERAL_REPLACEMENTS = {
    "\\": "\\\\",
    '"': '\\"',
    "\0": "\\0",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


def decode_literal(token: str) -> str:
    """
    Décode un littéral chaîne entre guillemets doubles.

    Args:
        token: Littéral complet, guillemets compris (ex: '"Hello\\\\n"')

    Returns:
        La valeur décodée

    Raises:
        LiteralDecodeError: Guillemets manquants, guillemet non échappé à
                            l'intérieur, séquence d'échappement invalide

    Example:
        >>> decode_literal('"Hello\\\\tworld"')
        'Hello\\tworld'
    """
    if len(token) < 2 or token[0] != '"' or token[-1] != '"':
        raise LiteralDecodeError(token, "not a double quoted string literal")

    body = token[1:-1]
    result: list[str] = []
    index = 0
    length = len(body)

    while index < length:
        char = body[index]

        if char == '"':
            raise LiteralDecodeError(token, f"unescaped quote at offset {index + 1}")

        if char != "\\":
            result.append(char)
            index += 1
            continue

        if index + 1 >= length:
            raise LiteralDecodeError(token, "dangling escape character")

        escape = body[index + 1]
        if escape in _SIMPLE_ESCAPES:
            result.append(_SIMPLE_ESCAPES[escape])
            index += 2
            continue

        if escape in _HEX_ESCAPES:
            size = _HEX_ESCAPES[escape]
            digits = body[index + 2 : index + 2 + size]
            if len(digits) != size or not _HEX_DIGITS.fullmatch(digits):
                raise LiteralDecodeError(token, f"invalid \\{escape} escape sequence")
            code = int(digits, 16)
            if code > 0x10FFFF:
                raise LiteralDecodeError(token, f"code point out of range: {digits}")
            index += 2 + size

            if _HIGH_SURROGATE <= code < _LOW_SURROGATE:
                # Paire UTF-16 : \uD83D\uDE00 devient U+1F600
                low = _read_low_surrogate(body, index)
                if low is None:
                    raise LiteralDecodeError(token, f"unpaired high surrogate \\{escape}{digits}")
                code = 0x10000 + ((code - _HIGH_SURROGATE) << 10) + (low - _LOW_SURROGATE)
                index += 6
            elif _LOW_SURROGATE <= code <= _SURROGATE_END:
                raise LiteralDecodeError(token, f"unpaired low surrogate \\{escape}{digits}")

            result.append(chr(code))
            continue

        raise LiteralDecodeError(token, f"unknown escape sequence \\{escape}")

    return "".join(result)


def _read_low_surrogate(body: str, index: int) -> Optional[int]:
    """Substitut bas \\uXXXX à la position `index`, ou None."""
    if body[index : index + 2] != "\\u":
        return None
    digits = body[index + 2 : index + 6]
    if len(digits) != 4 or not _HEX_DIGITS.fullmatch(digits):
        return None
    code = int(digits, 16)
    if _LOW_SURROGATE <= code <= _SURROGATE_END:
        return code
    return None


def to_message_literal(text: str) -> str:
    """Échappe une valeur pour l'afficher comme un littéral (sans guillemets)."""
    return "".join(_LITERAL_REPLACEMENTS.get(char, char) for char in text)
