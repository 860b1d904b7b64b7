"""CLI command that turns text, a URL or a PDF into OJT documents."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from ojtgen.config import EngineSettings, PipelineSettings
from ojtgen.errors import ExtractionFailure, InputValidationError
from ojtgen.generation.engines import GenerationEngine, select_engine
from ojtgen.generation.generator import AiContentGenerator
from ojtgen.ingestion.models import RawSource
from ojtgen.ingestor import IngestionResult, SourceIngestor

load_dotenv()

logger = logging.getLogger(__name__)


def _build_source(args: argparse.Namespace) -> RawSource:
    if args.text is not None:
        return RawSource.from_text(args.text, title=args.title)
    if args.text_file is not None:
        return RawSource.from_text(Path(args.text_file).read_text(encoding="utf-8"), title=args.title)
    if args.url is not None:
        return RawSource.from_url(args.url, title=args.title)

    pdf_path = Path(args.pdf)
    return RawSource.from_pdf(pdf_path.read_bytes(), filename=pdf_path.name, title=args.title)


async def run_generation(
    source: RawSource,
    *,
    settings: PipelineSettings,
    engine: GenerationEngine,
    team: str | None = None,
    num_steps: int | None = None,
) -> IngestionResult:
    generator = AiContentGenerator.from_settings(engine, settings)
    try:
        async with SourceIngestor.from_settings(settings, generator) as ingestor:
            return await ingestor.ingest(
                source,
                team=team,
                num_steps=num_steps,
                on_progress=lambda message: logger.info("%s", message),
            )
    finally:
        await engine.aclose()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate OJT documents from text, a URL or a PDF")
    source_group = parser.add_mutually_exclusive_group(required=True)
    source_group.add_argument("--text", help="Source text")
    source_group.add_argument("--text-file", help="Path to a UTF-8 text file")
    source_group.add_argument("--url", help="Web page to fetch")
    source_group.add_argument("--pdf", help="Path to a PDF file")
    parser.add_argument("--title", default=None, help="Document title")
    parser.add_argument("--team", default=None, help="Team name to set on every document")
    parser.add_argument("--steps", type=int, default=None, help="Number of steps (default: by reading time)")
    parser.add_argument("--verbose", action="store_true", help="Log progress to stderr")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        settings = PipelineSettings.from_env()
        engine_settings = EngineSettings.from_env()
    except ValueError as exc:
        print(json.dumps({"error": str(exc), "stage": "config"}, ensure_ascii=False, indent=2))
        return 2

    try:
        source = _build_source(args)
    except OSError as exc:
        print(json.dumps({"error": str(exc), "stage": "input"}, ensure_ascii=False, indent=2))
        return 1

    async def _run() -> IngestionResult:
        engine = await select_engine(engine_settings, timeout_seconds=settings.generation_timeout_seconds)
        return await run_generation(
            source,
            settings=settings,
            engine=engine,
            team=args.team,
            num_steps=args.steps,
        )

    try:
        result = asyncio.run(_run())
    except (InputValidationError, ExtractionFailure) as exc:
        print(json.dumps({"error": str(exc), "stage": "extraction"}, ensure_ascii=False, indent=2))
        return 1

    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
