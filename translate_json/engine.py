"""
The translation engine.

Streams a pretty-printed JSON document line by line, translating the single
string value found on a line (if any) and writing every other byte back
unchanged, so that a diff between input and output only shows the values
that changed.
"""
import asyncio
import contextlib
import json
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import BinaryIO, Deque, Iterable, Optional, Sequence, Tuple, Union

from tqdm import tqdm

from translate_json.cache import TranslationCache
from translate_json.errors import (
    InputError,
    InputRequiredError,
    InvalidOptionError,
    OutputError,
    OutputRequiredError,
    TranslationError,
    TranslatorRequiredError,
)
from translate_json.extractor import Candidate, extract_candidate
from translate_json.line_source import Line, LineSource
from translate_json.translators import Translator

logger = logging.getLogger(__name__)

LINE_SEPARATOR = b"\n"


@dataclass
class TranslateConfig:
    """
    Options for a single :meth:`Engine.translate` run.

    Exactly one input (``input_path`` or ``input_lines``) and exactly one
    output (``output_path`` or ``output_writer``) must be given, together
    with a translator. ``max_line_length`` only applies to ``input_path``.
    """
    translator: Optional[Translator] = None
    input_path: Optional[str] = None
    input_lines: Optional[Iterable[Union[bytes, str]]] = None
    max_line_length: Optional[int] = None
    output_path: Optional[str] = None
    output_writer: Optional[BinaryIO] = None
    max_concurrent_translations: int = 1
    show_progress: bool = False

    def validate(self) -> None:
        """
        Check the options, before any file is opened.

        Raises:
            ConfigurationError: On a missing or incompatible option.
        """
        if self.translator is None:
            raise TranslatorRequiredError()

        if self.input_path is None and self.input_lines is None:
            raise InputRequiredError()
        if self.input_path is not None and self.input_lines is not None:
            raise InvalidOptionError("input path and input lines are mutually exclusive")

        if self.output_path is None and self.output_writer is None:
            raise OutputRequiredError()
        if self.output_path is not None and self.output_writer is not None:
            raise InvalidOptionError("output path and output writer are mutually exclusive")

        if self.max_line_length is not None:
            if self.max_line_length <= 0:
                raise InvalidOptionError("max line length must be > 0")
            if self.input_lines is not None:
                raise InvalidOptionError("custom line reader incompatible with max line length option")

        if self.max_concurrent_translations < 1:
            raise InvalidOptionError("max concurrent translations must be >= 1")


@dataclass
class TranslateStats:
    lines: int = 0
    candidates: int = 0
    translator_calls: int = 0
    cache_hits: int = 0


@dataclass
class _Run:
    """State owned by one run: the cache, the sink and the counters."""
    translator: Translator
    writer: BinaryIO
    cache: TranslationCache = field(default_factory=TranslationCache)
    stats: TranslateStats = field(default_factory=TranslateStats)


class Engine:
    """
    Translates line-oriented JSON documents.

    Each call to :meth:`translate` uses its own translation cache, so a
    single engine may run several translations, even concurrently.
    """

    async def translate(self, config: TranslateConfig) -> TranslateStats:
        """
        Translate every string value of the input into the output.

        Cancelling the task running this coroutine cancels the in-flight
        translator call(s). Files opened here are closed on every exit path,
        in reverse order of opening.

        Returns:
            TranslateStats: Counters for the completed run.

        Raises:
            ConfigurationError: Before any I/O, on invalid options.
            InputError: On an unreadable line or an undecodable literal.
            TranslationError: When the translator fails.
            OutputError: When writing the output fails.
        """
        config.validate()

        with contextlib.ExitStack() as stack:
            source = self._open_source(config, stack)
            writer = self._open_sink(config, stack)
            run = _Run(translator=config.translator, writer=writer)

            lines = iter(source)
            if config.show_progress:
                lines = stack.enter_context(tqdm(lines, unit="line", desc="Translating", leave=False))

            await self._stream(run, lines, config.max_concurrent_translations)
            _flush(writer)

        logger.info(
            "Translated %d line(s): %d value(s), %d translator call(s), %d cache hit(s).",
            run.stats.lines, run.stats.candidates, run.stats.translator_calls, run.stats.cache_hits
        )
        return run.stats

    @staticmethod
    def _open_source(config: TranslateConfig, stack: contextlib.ExitStack) -> LineSource:
        if config.input_lines is not None:
            return LineSource.from_lines(config.input_lines)
        try:
            stream = stack.enter_context(open(config.input_path, "rb"))
        except OSError as exc:
            raise InputError(f"could not open '{config.input_path}': {exc}") from exc
        logger.debug("Opened input file '%s'.", config.input_path)
        return LineSource.from_stream(stream, config.max_line_length)

    @staticmethod
    def _open_sink(config: TranslateConfig, stack: contextlib.ExitStack) -> BinaryIO:
        if config.output_writer is not None:
            return config.output_writer
        try:
            writer = stack.enter_context(open(config.output_path, "wb"))
        except OSError as exc:
            raise OutputError(f"could not open '{config.output_path}': {exc}") from exc
        logger.debug("Opened output file '%s'.", config.output_path)
        return writer

    async def _stream(self, run: _Run, lines: Iterable[Line], max_in_flight: int) -> None:
        if max_in_flight == 1:
            for line in lines:
                run.stats.lines += 1
                _write(run.writer, line, await self._resolve(run, line))
            return

        # Lines are resolved concurrently but written strictly in order.
        pending: Deque[asyncio.Task] = deque()
        try:
            for line in lines:
                run.stats.lines += 1
                pending.append(asyncio.ensure_future(self._resolve_line(run, line)))
                if len(pending) >= max_in_flight:
                    await _write_next(run.writer, pending)
            while pending:
                await _write_next(run.writer, pending)
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    async def _resolve_line(self, run: _Run, line: Line) -> Tuple[Line, Sequence[bytes]]:
        return line, await self._resolve(run, line)

    async def _resolve(self, run: _Run, line: Line) -> Sequence[bytes]:
        """Return the chunks to write for ``line``, terminator included."""
        candidate = extract_candidate(line.data, line.number)
        if candidate is None:
            return line.data, LINE_SEPARATOR
        run.stats.candidates += 1

        translated = run.cache.get(candidate.value)
        if translated is not None:
            run.stats.cache_hits += 1
        else:
            run.stats.translator_calls += 1
            logger.debug("Translating line %d (offset %d, length %d).",
                         line.number, candidate.offset, candidate.length)
            translated = await run.translator.translate(
                line.number, candidate.offset, candidate.length, candidate.value)
            if not isinstance(translated, str):
                raise TranslationError(
                    f"translator returned {type(translated).__name__}, expected str", line.number)
            run.cache.put(candidate.value, translated)

        return (
            line.data[:candidate.offset],
            encode_literal(line, candidate, translated),
            line.data[candidate.end:],
            LINE_SEPARATOR,
        )


def encode_literal(line: Line, candidate: Candidate, translated: str) -> bytes:
    """
    Encode ``translated`` as a JSON string literal.

    An unchanged value keeps its original encoding, so escapes such as
    ``\\u00e9`` in the input survive a run byte for byte.
    """
    if translated == candidate.value:
        return line.data[candidate.offset:candidate.end]
    try:
        return json.dumps(translated, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError, UnicodeEncodeError) as exc:
        raise OutputError(f"could not encode translated value: {exc}", line.number) from exc


async def _write_next(writer: BinaryIO, pending: Deque[asyncio.Task]) -> None:
    line, chunks = await pending[0]
    pending.popleft()
    _write(writer, line, chunks)


def _write(writer: BinaryIO, line: Line, chunks: Sequence[bytes]) -> None:
    try:
        for chunk in chunks:
            writer.write(chunk)
    except OSError as exc:
        raise OutputError(str(exc), line.number) from exc


def _flush(writer: BinaryIO) -> None:
    flush = getattr(writer, "flush", None)
    if flush is None:
        return
    try:
        flush()
    except OSError as exc:
        raise OutputError(str(exc)) from exc
