"""
Point d'entrée en ligne de commande.

Commandes :
- parse (défaut) : extrait les mots-clés des sources vers un catalogue PO
- build : construit un fichier i8n depuis des sources JSON / PO / MO
- buildmany : un fichier i8n par source JSON / PO / MO d'un dossier
- extract : convertit un fichier i8n en JSON ou PO

Codes de sortie : 0 succès, 1 erreur fatale ou scan interrompu, 2 usage.
"""

import argparse
import logging
import os
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from . import __version__
from .bundle import (
    DEFAULT_INPUT_PATTERNS,
    DEFAULT_PLURAL_FORMS,
    build_many,
    build_terms,
    read_bundle,
    terms_to_catalog,
    terms_to_json,
    write_bundle,
)
from .catalog import write_catalog
from .config import DEFAULT_CONFIG, ParserConfig, load_config_file, lock_config
from .exceptions import ConfigurationError, ParserError
from .logger import get_logger, get_session_log_path, set_console_level
from .scanner import run_parse

logger = get_logger(__name__)

CONFIG_ENV = "POEDIT_PARSER_CONFIG"
ENCODING_ENV = "POEDIT_PARSER_ENCODING"
FUZZY_ENV = "POEDIT_PARSER_FUZZY"

COMMANDS = ("parse", "build", "buildmany", "extract")

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    """Construit le parseur d'arguments."""
    parser = argparse.ArgumentParser(
        prog="poedit-parser",
        description="Extract translatable keywords from source files into PO catalogs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan a source folder into a new catalog
  python -m poedit_parser --input src --output messages.po

  # Merge into an existing catalog, keeping close translations as fuzzy
  python -m poedit_parser --input src --output messages.po --merge --fuzzy 10

  # Read a single source from STDIN
  cat main.cs | python -m poedit_parser > messages.po

  # Build and extract i8n files
  python -m poedit_parser build --po messages.po --output messages.i8n --compress
  python -m poedit_parser buildmany --po-input locales --compress
  python -m poedit_parser extract --input messages.i8n --json-output messages.json
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Command")

    # === parse ===
    p_parse = subparsers.add_parser("parse", help="Parse sources into a PO catalog (default)")
    p_parse.add_argument("--config", help=f"JSON configuration file (env: {CONFIG_ENV})")
    p_parse.add_argument("--single-thread", action="store_true",
                         help="Process one source file at a time")
    p_parse.add_argument("--verbose", "-v", action="store_true",
                         help="Log every keyword found to STDERR (single worker)")
    p_parse.add_argument("--no-recursive", action="store_true",
                         help="Do not descend into sub-folders")
    p_parse.add_argument("--ext", nargs="+", metavar="EXT",
                         help="File extensions to look for (default: .cs)")
    p_parse.add_argument("--encoding", help=f"Source encoding (env: {ENCODING_ENV})")
    p_parse.add_argument("--input", "-i", nargs="+", metavar="PATH", default=[],
                         help="Source files and folders (default: STDIN)")
    p_parse.add_argument("--exclude", nargs="+", metavar="PATTERN", default=[],
                         help="Absolute paths, names or glob patterns to skip")
    p_parse.add_argument("--output", "-o",
                         help="PO output file (default: STDOUT; overwritten)")
    p_parse.add_argument("--no-header", action="store_true",
                         help="Do not write the PO header of a new catalog")
    p_parse.add_argument("--merge", action="store_true",
                         help="Merge into the existing output catalog")
    p_parse.add_argument("--fuzzy", type=int, metavar="PERCENT",
                         help=f"Fuzzy match threshold in percent (env: {FUZZY_ENV})")
    p_parse.add_argument("--fail-on-error", action="store_true",
                         help="Abort the whole scan on the first error")
    p_parse.add_argument("--progress", action="store_true",
                         help="Show a progress bar on STDERR")

    # === build ===
    p_build = subparsers.add_parser("build", help="Build an i8n file")
    p_build.add_argument("--json", nargs="+", metavar="FILE", default=[],
                         help="JSON (UTF-8) input files")
    p_build.add_argument("--po", nargs="+", metavar="FILE", default=[],
                         help="PO input files")
    p_build.add_argument("--mo", nargs="+", metavar="FILE", default=[],
                         help="MO input files")
    p_build.add_argument("--stdin", choices=("json", "po", "mo"),
                         help="Format of an input read from STDIN")
    p_build.add_argument("--output", "-o", help="i8n output file (default: STDOUT)")
    p_build.add_argument("--compress", action="store_true", help="Compress the body")
    p_build.add_argument("--no-header", action="store_true",
                         help="Do not write the version / compression header byte")
    p_build.add_argument("--fail-on-existing-key", action="store_true",
                         help="Fail when a later source redefines a term")
    p_build.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    # === buildmany ===
    p_many = subparsers.add_parser("buildmany", help="Build one i8n file per source file of a folder")
    for kind in ("json", "po", "mo"):
        p_many.add_argument(f"--{kind}-input", default=".", metavar="FOLDER",
                            help=f"{kind.upper()} source folder, not recursive (default: working folder)")
        p_many.add_argument(f"--{kind}-pattern", default=DEFAULT_INPUT_PATTERNS[kind], metavar="GLOB",
                            help=f"{kind.upper()} input pattern (default: {DEFAULT_INPUT_PATTERNS[kind]})")
    p_many.add_argument("--compress", action="store_true", help="Compress the bodies")
    p_many.add_argument("--no-header", action="store_true",
                        help="Do not write the version / compression header byte")
    p_many.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    # === extract ===
    p_extract = subparsers.add_parser("extract", help="Extract an i8n file")
    p_extract.add_argument("--input", "-i", help="i8n input file (default: STDIN)")
    p_extract.add_argument("--uncompress", action="store_true",
                           help="The body is compressed (only used with --no-header)")
    p_extract.add_argument("--no-header", action="store_true",
                           help="The file has no header byte")
    p_extract.add_argument("--json-output", help="JSON output file")
    p_extract.add_argument("--po-output", help="PO output file")
    p_extract.add_argument("--format", choices=("json", "po"),
                           help="Format written to STDOUT (default: json without output files)")
    p_extract.add_argument("--plural-forms", default=DEFAULT_PLURAL_FORMS,
                           help="Plural-Forms header of the PO output")
    p_extract.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    return parser


# ============================================================
# 🔹 Commandes
# ============================================================


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def resolve_config(args: argparse.Namespace) -> ParserConfig:
    """
    Configuration effective : défauts, fichier JSON, environnement, options.

    Raises:
        ConfigurationError: Fichier ou valeur invalide
    """
    config = DEFAULT_CONFIG
    config_path = args.config or os.getenv(CONFIG_ENV)
    if config_path:
        config = load_config_file(config_path, config)

    fuzzy = args.fuzzy if args.fuzzy is not None else _env_int(FUZZY_ENV)

    return config.with_overrides(
        single_thread=True if args.single_thread else None,
        recursive=False if args.no_recursive else None,
        file_extensions=tuple(args.ext) if args.ext else None,
        encoding=args.encoding or os.getenv(ENCODING_ENV) or None,
        merge_output=True if args.merge else None,
        fail_on_error=True if args.fail_on_error else None,
        fuzzy_percent=fuzzy,
    )


def cmd_parse(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    logger.debug(f"Effective configuration: {config}")

    summary = run_parse(
        args.input,
        config,
        output=args.output,
        exclude=args.exclude,
        verbose=args.verbose,
        with_header=not args.no_header,
        show_progress=args.progress,
    )

    print(f"poedit-parser: {summary}", file=sys.stderr)
    return EXIT_OK


def cmd_build(args: argparse.Namespace) -> int:
    json_inputs: list = list(args.json)
    po_inputs: list = list(args.po)
    mo_inputs: list = list(args.mo)
    if args.stdin == "json":
        json_inputs.append(sys.stdin)
    elif args.stdin == "po":
        po_inputs.append(sys.stdin)
    elif args.stdin == "mo":
        mo_inputs.append(sys.stdin.buffer)

    terms = build_terms(json_inputs, po_inputs, mo_inputs, args.fail_on_existing_key)

    if args.output:
        with open(args.output, "wb") as f:
            write_bundle(terms, f, compress=args.compress, header=not args.no_header)
        logger.info(f"Wrote i8n file {args.output!r}")
    else:
        write_bundle(terms, sys.stdout.buffer, compress=args.compress, header=not args.no_header)

    print(f"poedit-parser: {len(terms)} term(s)", file=sys.stderr)
    return EXIT_OK


def cmd_build_many(args: argparse.Namespace) -> int:
    written = build_many(
        json_input=args.json_input,
        json_pattern=args.json_pattern,
        po_input=args.po_input,
        po_pattern=args.po_pattern,
        mo_input=args.mo_input,
        mo_pattern=args.mo_pattern,
        compress=args.compress,
        header=not args.no_header,
    )

    print(f"poedit-parser: {len(written)} i8n file(s)", file=sys.stderr)
    return EXIT_OK


def cmd_extract(args: argparse.Namespace) -> int:
    if args.input:
        with open(args.input, "rb") as f:
            _, _, terms = read_bundle(f, header=not args.no_header, uncompress=args.uncompress)
    else:
        _, _, terms = read_bundle(
            sys.stdin.buffer, header=not args.no_header, uncompress=args.uncompress
        )

    stdout_format = args.format
    if stdout_format is None and not args.json_output and not args.po_output:
        stdout_format = "json"

    if args.json_output:
        with open(args.json_output, "w", encoding="utf-8") as f:
            f.write(terms_to_json(terms))
        logger.info(f"Wrote JSON to {args.json_output!r}")
    if args.po_output:
        write_catalog(terms_to_catalog(terms, args.plural_forms), path=args.po_output)
    if stdout_format == "json":
        sys.stdout.write(terms_to_json(terms))
        sys.stdout.flush()
    elif stdout_format == "po":
        write_catalog(terms_to_catalog(terms, args.plural_forms))

    print(f"poedit-parser: {len(terms)} term(s)", file=sys.stderr)
    return EXIT_OK


COMMAND_HANDLERS = {
    "parse": cmd_parse,
    "build": cmd_build,
    "buildmany": cmd_build_many,
    "extract": cmd_extract,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Point d'entrée CLI.

    Sans commande explicite, "parse" est utilisée.

    Returns:
        Code de sortie (les erreurs d'usage sortent en 2 via argparse)
    """
    load_dotenv()
    lock_config()

    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or (argv[0] not in COMMANDS and argv[0] not in ("-h", "--help", "--version")):
        argv.insert(0, "parse")

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        set_console_level(logging.INFO)

    try:
        return COMMAND_HANDLERS[args.command](args)
    except (ParserError, OSError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"poedit-parser: error: {e}", file=sys.stderr)
        print(f"poedit-parser: see {get_session_log_path()}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
