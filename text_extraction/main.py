from __future__ import annotations

import asyncio
import json
import logging
import sys

from text_extraction.cli import build_parser
from text_extraction.config import ExtractionConfig
from text_extraction.errors import CacheError, ExtractionError
from text_extraction.logging_config import setup_logging
from text_extraction.service import TextExtractionService
from text_extraction.types import ExtractionRequest

logger = logging.getLogger("text_extraction")


def _build_request(source: str, *, ocr_strategy: str | None, no_cache: bool) -> ExtractionRequest:
    options = {"ocr_strategy": ocr_strategy, "use_cache": False if no_cache else None}
    if source.startswith(("http://", "https://")):
        return ExtractionRequest.from_url(source, **options)
    return ExtractionRequest.from_path(source, **options)


async def _amain(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = ExtractionConfig.from_env()
        cfg.validate()
    except ValueError as e:
        setup_logging(level=args.log_level)
        logger.error("Invalid configuration: %s", e)
        return 1

    setup_logging(level=args.log_level, json=cfg.log_json)

    try:
        service = TextExtractionService.from_config(cfg)
    except CacheError as e:
        logger.error("Invalid cache configuration: %s", e)
        return 1

    async with service:
        try:
            if args.command == "clear-cache":
                await service.clear_cache()
                return 0

            request = _build_request(args.source, ocr_strategy=args.ocr_strategy, no_cache=args.no_cache)
            result = await service.extract_text(request)
        except ExtractionError as e:
            logger.error("%s: %s", type(e).__name__, e)
            return 2

    if args.json:
        sys.stdout.write(json.dumps(result.to_dict(), ensure_ascii=False, indent=2) + "\n")
    else:
        sys.stdout.write(result.content + "\n")
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(_amain()))


if __name__ == "__main__":
    main()
