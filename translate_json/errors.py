"""Exceptions raised while configuring or running a translation."""
from typing import Optional

COMMAND_NAME = "translate-json"


class TranslateJsonError(Exception):
    """Base class for every error raised by translate-json."""

    def __init__(self, message: str):
        super().__init__(f"{COMMAND_NAME}: {message}")


class ConfigurationError(TranslateJsonError):
    """Missing or incompatible options, detected before any line is read."""


class TranslatorRequiredError(ConfigurationError):
    def __init__(self):
        super().__init__("translator required")


class InputRequiredError(ConfigurationError):
    def __init__(self):
        super().__init__("input required")


class OutputRequiredError(ConfigurationError):
    def __init__(self):
        super().__init__("output required")


class InvalidOptionError(ConfigurationError):
    def __init__(self, detail: str):
        super().__init__(f"invalid option: {detail}")


class InputError(TranslateJsonError):
    """
    A line could not be read or its string literal could not be decoded.

    The underlying decoder error, if any, is chained as ``__cause__``.
    """

    def __init__(self, detail: str, line_number: Optional[int] = None):
        self.line_number = line_number
        location = f" (line {line_number})" if line_number is not None else ""
        super().__init__(f"input error{location}: {detail}")


class LineTooLongError(InputError):
    def __init__(self, max_line_length: int, line_number: Optional[int] = None):
        self.max_line_length = max_line_length
        super().__init__(f"line exceeds maximum length of {max_line_length} bytes", line_number)


class TranslationError(TranslateJsonError):
    """The translator failed, or returned something that is not a string."""

    def __init__(self, detail: str, line_number: Optional[int] = None):
        self.line_number = line_number
        location = f" (line {line_number})" if line_number is not None else ""
        super().__init__(f"translation error{location}: {detail}")


class OutputError(TranslateJsonError):
    """Writing to the output sink, or encoding a value for it, failed."""

    def __init__(self, detail: str, line_number: Optional[int] = None):
        self.line_number = line_number
        location = f" (line {line_number})" if line_number is not None else ""
        super().__init__(f"output error{location}: {detail}")
