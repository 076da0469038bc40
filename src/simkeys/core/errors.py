"""
Error types for keyword input parsing and expression evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass


class SimKeysError(Exception):
    """Base exception for all simkeys errors."""

    def __init__(self, message: str, context: ParseContext | None = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


@dataclass(frozen=True)
class ParseContext:
    """
    Where a keyword record came from.

    Attributes:
        source: Name of the file or stream holding the record
        line: Line number (1-indexed)
    """

    source: str
    line: int | None = None

    def format(self) -> str:
        if self.line is None:
            return self.source
        return f"{self.source}:{self.line}"


class ExpError(SimKeysError):
    """
    Raised when an expression cannot be parsed or evaluated.

    Carries the expression source text and a zero-based offset into it,
    rendered as the source line followed by a caret line.
    """

    def __init__(self, message: str, source: str | None = None, pos: int = 0):
        self.source = source
        self.pos = pos
        super().__init__(message)

    def _format_message(self) -> str:
        if self.source is None:
            return self.message
        return f"{self.message}\n{self.format()}"

    def format(self) -> str:
        """Two-line diagnostic: the source text and a caret under the error."""
        source = self.source or ""
        pos = max(0, min(self.pos, len(source)))
        return f"{source}\n{' ' * pos}^"

    def with_source(self, source: str) -> ExpError:
        """Return this error anchored to ``source`` if it has none yet."""
        if self.source is not None:
            return self
        return ExpError(self.message, source, self.pos)


class InputError(SimKeysError):
    """
    Raised when a keyword's arguments fail validation.

    Examples:
    - Wrong number of values
    - Number outside its allowed range
    - Unknown entity name or choice
    - Missing or incompatible unit
    - An invalid expression (``exp_error`` holds the underlying ExpError)
    """

    def __init__(
        self,
        message: str,
        context: ParseContext | None = None,
        exp_error: ExpError | None = None,
    ):
        self.exp_error = exp_error
        super().__init__(message, context)


# Message templates shared by the input parsers.
INP_ERR_COUNT = "Expected an input with {0} value(s), received: {1}"
INP_ERR_RANGECOUNT = "Expected an input with {0} to {1} values, received: {2}"
INP_ERR_RANGECOUNTMIN = "Expected an input with at least {0} values, received: {1}"
INP_ERR_EVENCOUNT = "Expected an input with an even number of values, received: {0}"
INP_ERR_ODDCOUNT = "Expected an input with an odd number of values, received: {0}"
INP_ERR_BOOLEAN = "Expected a boolean value, received: {0}"
INP_ERR_INTEGER = "Expected an integer value, received: {0}"
INP_ERR_DOUBLE = "Expected a numeric value, received: {0}"
INP_ERR_INTEGERRANGE = "Expected an integer between {0} and {1}, received: {2}"
INP_ERR_DOUBLERANGE = "Expected a number between {0} and {1}, received: {2}"
INP_ERR_SUMTOLERANCE = "Expected the values to sum to {0} within {1}, received: {2}"
INP_ERR_MONOTONIC = "Expected an input that is monotonically increasing, received: {0}"
INP_ERR_BADCHOICE = "Expected one of {0}, received: {1}"
INP_ERR_ELEMENT = "Error parsing element {0}: {1}"
INP_ERR_ENTNAME = "Could not find an Entity named: {0}"
INP_ERR_ENTCLASS = "Expected a {0}, {1} is a {2}"
INP_ERR_INTERFACE = "Expected an object implementing {0}, {1} does not"
INP_ERR_NOTUNIQUE = "List must contain unique entries, repeated entry: {0}"
INP_ERR_NOUNITFOUND = "A unit is required, could not parse '{0}' as a {1}"
INP_ERR_UNITNOTFOUND = "Could not find a unit named: {0}"
INP_ERR_UNITS = "Unit types do not match, expected {0}, received: {1}"
INP_ERR_BADDATE = "Expected a valid RFC8601 datetime, received: {0}"
INP_ERR_BADCOLOUR = "Expected a colour name or RGB values, received: {0}"
INP_ERR_APOSTROPHE = "A string can not contain an apostrophe, received: {0}"
INP_ERR_REQUIRED = "An input must be provided for the keyword '{0}'"
INP_ERR_CIRCULAR = "Circular reference: {0} would contain itself"
INP_ERR_BRACES = "Braces do not match: {0}"


def make_input_error(template: str, *args: object, context: ParseContext | None = None) -> InputError:
    """Create an InputError from one of the INP_ERR_* templates."""
    return InputError(template.format(*args), context)


def wrap_exp_error(err: ExpError, context: ParseContext | None = None) -> InputError:
    """Convert an expression error into an input error, keeping the diagnostic."""
    if err.source is not None:
        message = f"{err.message}\n{err.format()}"
    else:
        message = err.message
    return InputError(message, context, exp_error=err)
