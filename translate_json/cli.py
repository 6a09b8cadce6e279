"""Command line entry point: ``translate-json [options] input-file output-file``."""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from translate_json.app_config import (
    ENV_LANGUAGE,
    ENV_MODEL_NAME,
    ENV_OPENAI_API_KEY,
    ENV_TRANSLATOR,
    load_app_config,
)
from translate_json.engine import Engine, TranslateConfig
from translate_json.errors import TranslateJsonError
from translate_json.logging_config import LOGGER_NAME
from translate_json.translators import TRANSLATOR_IDENTITY, TRANSLATOR_OPENAI, build_translator

logger = logging.getLogger(LOGGER_NAME)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="translate-json",
        description="Text diffable machine translation of JSON files.",
    )
    parser.add_argument("input_file", help="Pretty-printed JSON file to translate")
    parser.add_argument("output_file", help="Where to write the translated file")
    parser.add_argument(
        "--translator",
        help=f'Translator to use ("{TRANSLATOR_OPENAI}" or "{TRANSLATOR_IDENTITY}") [env: {ENV_TRANSLATOR}]',
    )
    parser.add_argument("--language", help=f"Language to translate to [env: {ENV_LANGUAGE}]")
    parser.add_argument("--model", dest="model_name", help=f"OpenAI model name [env: {ENV_MODEL_NAME}]")
    parser.add_argument(
        "--openai-api-key",
        help=f'API key for OpenAI (required for "{TRANSLATOR_OPENAI}" translator) [env: {ENV_OPENAI_API_KEY}]',
    )
    parser.add_argument("--config", dest="config_file", help="Path to the YAML configuration file")
    parser.add_argument("--max-line-length", type=int, help="Maximum input line length in bytes")
    parser.add_argument(
        "--concurrency",
        dest="max_concurrent_translations",
        type=int,
        help="Number of lines translated concurrently (output order is preserved)",
    )
    parser.add_argument("--progress", dest="show_progress", action="store_true", default=None,
                        help="Show a progress bar")
    parser.add_argument("--log-level", help="Logging level (e.g. DEBUG, INFO)")
    return parser


async def run(args: argparse.Namespace) -> None:
    if not args.input_file:
        raise TranslateJsonError('invalid input file: ""')
    if not args.output_file:
        raise TranslateJsonError('invalid output file: ""')

    app_config = load_app_config(
        config_file=args.config_file,
        overrides={
            'translator': args.translator,
            'language': args.language,
            'model_name': args.model_name,
            'openai_api_key': args.openai_api_key,
            'max_line_length': args.max_line_length,
            'max_concurrent_translations': args.max_concurrent_translations,
            'show_progress': args.show_progress,
            'log_level': args.log_level,
        },
    )

    translator = build_translator(app_config)

    logger.info("Translating '%s' to '%s' (language: %s).", args.input_file, args.output_file, app_config.language)
    await Engine().translate(TranslateConfig(
        translator=translator,
        input_path=args.input_file,
        output_path=args.output_file,
        max_line_length=app_config.max_line_length,
        max_concurrent_translations=app_config.max_concurrent_translations,
        show_progress=app_config.show_progress,
    ))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(run(args))
    except TranslateJsonError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
