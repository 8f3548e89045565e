"""
Tests pour le décodage des littéraux chaîne.
"""

import pytest

from poedit_parser.exceptions import LiteralDecodeError
from poedit_parser.literal import decode_literal, to_message_literal

# Substituts UTF-16 de U+1F600, tels qu'écrits dans une source C#
HIGH = r"\uD83D"
LOW = r"\uDE00"


class TestDecodeLiteral:
    """Tests pour decode_literal()."""

    def test_plain(self):
        assert decode_literal('"Hello world"') == "Hello world"

    def test_empty_string(self):
        assert decode_literal('""') == ""

    @pytest.mark.parametrize(
        "token, expected",
        [
            (r'"a\nb"', "a\nb"),
            (r'"tab\there"', "tab\there"),
            (r'"quote \"x\""', 'quote "x"'),
            (r'"back\\slash"', "back\\slash"),
            (r'"\x41é\U0001F600"', "Aé\U0001F600"),
            (r'"nul\0"', "nul\0"),
        ],
    )
    def test_escapes(self, token, expected):
        assert decode_literal(token) == expected

    @pytest.mark.parametrize(
        "token",
        [
            "Hello",
            '"unterminated',
            '"',
            '"a"b"',
            r'"bad \q escape"',
            r'"short \u12"',
            r'"dangling \"',
            r'"range \UFFFFFFFF"',
        ],
    )
    def test_invalid(self, token):
        with pytest.raises(LiteralDecodeError) as exc_info:
            decode_literal(token)
        assert exc_info.value.literal == token
        assert exc_info.value.line_number is None

    def test_surrogate_pair(self):
        """Une paire UTF-16 (substitut haut puis bas) donne un seul caractère."""
        assert decode_literal(f'"smile {HIGH}{LOW}"') == "smile \U0001F600"
        assert decode_literal(f'"{HIGH}{LOW}!"') == "\U0001F600!"

    @pytest.mark.parametrize(
        "token",
        [
            f'"{HIGH}"',
            f'"{HIGH} tail"',
            f'"{HIGH}A"',
            f'"{HIGH}{HIGH}"',
            f'"{LOW}"',
            f'"{LOW}{HIGH}"',
        ],
    )
    def test_unpaired_surrogate(self, token):
        with pytest.raises(LiteralDecodeError) as exc_info:
            decode_literal(token)
        assert "surrogate" in exc_info.value.reason

    def test_error_position(self):
        """at() localise l'erreur dans la source."""
        with pytest.raises(LiteralDecodeError) as exc_info:
            decode_literal("nope")
        error = exc_info.value.at("main.cs", 12)
        assert error.file_name == "main.cs"
        assert error.line_number == 12
        assert "main.cs:12" in str(error)
        assert isinstance(error, ValueError)


class TestToMessageLiteral:
    """Tests pour to_message_literal()."""

    def test_escapes_control_characters(self):
        assert to_message_literal('a\n"b"\\') == 'a\\n\\"b\\"\\\\'

    def test_reverses_decode(self):
        text = "line\tone\r\n\"two\""
        assert decode_literal(f'"{to_message_literal(text)}"') == text
