from __future__ import annotations

import argparse

from text_extraction.types import OcrStrategy


def _common_options(*, subcommand: bool) -> argparse.ArgumentParser:
    # Subcommand copies suppress the default so they don't clobber a value given before the subcommand
    p = argparse.ArgumentParser(add_help=False)
    p.add_argument(
        "--log-level",
        default=argparse.SUPPRESS if subcommand else "INFO",
        help="Python logging level (INFO, DEBUG, ...)",
    )
    return p


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="text-extract",
        description="Extract text from documents via the extraction backend",
        parents=[_common_options(subcommand=False)],
    )
    common = _common_options(subcommand=True)

    sub = p.add_subparsers(dest="command", required=True)

    ex = sub.add_parser("extract", parents=[common], help="Extract text from a file path or http(s) URL")
    ex.add_argument("source", help="Local file path or http(s) URL")
    ex.add_argument(
        "--ocr-strategy",
        choices=[s.value for s in OcrStrategy],
        default=None,
        help="OCR engine the backend should use",
    )
    ex.add_argument("--no-cache", action="store_true", help="Bypass the local and backend cache")
    ex.add_argument("--json", action="store_true", help="Print content and metadata as JSON")

    sub.add_parser("clear-cache", parents=[common], help="Clear the local and backend extraction caches")
    return p
