"""
Record tokenizer and keyword argument grouping.

A record such as ``Position { 1 2 3 m }  Colour { 'light blue' }`` is split
into tokens by ``tokenize``:

- whitespace separates tokens,
- ``{`` and ``}`` are always tokens of their own,
- single quotes group text (including whitespace) into one token,
- a double quote starts a comment that runs to the end of the record.

``KeywordIndex`` holds the arguments of one keyword and splits them into
brace-delimited groups on demand.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from simkeys.core.errors import INP_ERR_BRACES, InputError, ParseContext

TokenTree = list["str | TokenTree"]


def tokenize(record: str) -> list[str]:
    """Split a record into tokens, dropping any trailing comment."""
    tokens: list[str] = []
    tok_start = -1
    quote_start = -1
    end = len(record)

    for i, c in enumerate(record):
        if c == "'":
            if tok_start != -1:
                tokens.append(record[tok_start:i])
                tok_start = -1
            if quote_start != -1:
                tokens.append(record[quote_start + 1 : i])
                quote_start = -1
            else:
                quote_start = i
            continue

        if quote_start != -1:
            continue

        if c in "{} \t\r\n":
            if tok_start != -1:
                tokens.append(record[tok_start:i])
                tok_start = -1
            if c in "{}":
                tokens.append(c)
            continue

        if c == '"':
            end = i
            break

        if tok_start == -1:
            tok_start = i

    if tok_start != -1:
        tokens.append(record[tok_start:end])
    if quote_start != -1:
        tokens.append(record[quote_start + 1 : end])
    return tokens


def needs_quoting(token: str) -> bool:
    """True if the token would not survive tokenizing without quotes."""
    if token == "":
        return True
    return any(c in " \t{}\"" for c in token)


def is_quoted(token: str) -> bool:
    return len(token) >= 2 and token[0] == "'" and token[-1] == "'"


def add_quotes(token: str) -> str:
    if is_quoted(token):
        return token
    return f"'{token}'"


def format_tokens(tokens: Sequence[str]) -> str:
    """Join tokens into text that ``tokenize`` splits back into the same tokens."""
    parts = []
    for tok in tokens:
        if tok in ("{", "}"):
            parts.append(tok)
        elif needs_quoting(tok):
            parts.append(add_quotes(tok))
        else:
            parts.append(tok)
    return " ".join(parts)


def check_braces(tokens: Sequence[str]) -> None:
    """Raise InputError unless every ``{`` has a matching ``}``."""
    depth = 0
    for tok in tokens:
        if tok == "{":
            depth += 1
        elif tok == "}":
            depth -= 1
            if depth < 0:
                break
    if depth != 0:
        raise InputError(INP_ERR_BRACES.format(format_tokens(tokens)))


def group_tokens(tokens: Sequence[str]) -> TokenTree:
    """Build a tree of nested brace groups.

    ``a { b { c } } d`` becomes ``["a", ["b", ["c"]], "d"]``.
    """
    check_braces(tokens)
    root: TokenTree = []
    stack: list[TokenTree] = [root]
    for tok in tokens:
        if tok == "{":
            group: TokenTree = []
            stack[-1].append(group)
            stack.append(group)
        elif tok == "}":
            stack.pop()
        else:
            stack[-1].append(tok)
    return root


def flatten_group(group: TokenTree) -> list[str]:
    """Inverse of ``group_tokens`` for one group's contents."""
    tokens: list[str] = []
    for item in group:
        if isinstance(item, list):
            tokens.append("{")
            tokens.extend(flatten_group(item))
            tokens.append("}")
        else:
            tokens.append(item)
    return tokens


class KeywordIndex:
    """
    The arguments given to one keyword.

    Attributes:
        keyword: The keyword the arguments belong to
        args: The argument tokens, braces included
        context: Where the record came from, if known
    """

    def __init__(
        self,
        keyword: str,
        args: Sequence[str],
        context: ParseContext | None = None,
    ) -> None:
        self.keyword = keyword
        self.args: tuple[str, ...] = tuple(args)
        self.context = context
        self._sub_args: list[KeywordIndex] | None = None
        check_braces(self.args)

    @classmethod
    def from_string(
        cls, keyword: str, text: str, context: ParseContext | None = None
    ) -> KeywordIndex:
        return cls(keyword, tokenize(text), context)

    def num_args(self) -> int:
        return len(self.args)

    def get_arg(self, index: int) -> str:
        return self.args[index]

    def arg_string(self) -> str:
        return format_tokens(self.args)

    def slice(self, start: int, end: int | None = None) -> KeywordIndex:
        """A KeywordIndex over a subset of the arguments."""
        return KeywordIndex(self.keyword, self.args[start:end], self.context)

    def sub_args(self) -> list[KeywordIndex]:
        """One KeywordIndex per top-level brace group.

        Without any braces the whole argument list forms a single group.
        Tokens outside braces are not allowed once braces are present.
        """
        if self._sub_args is None:
            self._sub_args = self._build_sub_args()
        return self._sub_args

    def _build_sub_args(self) -> list[KeywordIndex]:
        if "{" not in self.args:
            return [self] if self.args else []

        groups: list[KeywordIndex] = []
        for item in group_tokens(self.args):
            if not isinstance(item, list):
                raise InputError(
                    f"Expected values enclosed in braces, received: {self.arg_string()}",
                    self.context,
                )
            groups.append(KeywordIndex(self.keyword, flatten_group(item), self.context))
        return groups

    def __iter__(self) -> Iterator[str]:
        return iter(self.args)

    def __len__(self) -> int:
        return len(self.args)

    def __repr__(self) -> str:
        return f"KeywordIndex({self.keyword!r}, {list(self.args)!r})"
