"""
Applying keyword records to entities.

A record lists keywords with their arguments in braces:

    Position { 1 2 0 m }  Colour { red }  Description { 'A queue' }

A keyword with a single argument may omit the braces. Each keyword is parsed
by the entity's Input of that name; on failure the input keeps its previous
value and the error names the entity and keyword.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from simkeys.core.errors import InputError, ParseContext
from simkeys.core.inputs.base import Input
from simkeys.core.keyword_index import KeywordIndex, check_braces, tokenize

if TYPE_CHECKING:
    from simkeys.core.entity import Entity

logger = logging.getLogger(__name__)


def apply_input(ent: Entity, kw: KeywordIndex) -> Input:
    """Parse ``kw`` into the entity's input of the same name.

    Returns:
        The input that received the value.

    Raises:
        InputError: If the keyword does not exist or its arguments are invalid.
    """
    inp = ent.get_input(kw.keyword)
    if inp is None:
        raise InputError(
            f"Keyword {kw.keyword} could not be found for Entity {ent.name}", kw.context
        )

    try:
        inp.parse(ent, kw)
    except InputError as err:
        raise InputError(
            f"{ent.name} keyword {kw.keyword}: {err.message}",
            err.context or kw.context,
            err.exp_error,
        ) from err

    target = getattr(inp, "target", inp) if inp.is_synonym() else inp
    target.set_tokens(kw)
    if ent.namespace is not None and ent.namespace.record_edits:
        target.edited = True
    logger.debug("%s %s { %s }", ent.name, kw.keyword, kw.arg_string())
    return target


def apply_args(ent: Entity, keyword: str, *args: str) -> Input:
    """Apply already separated arguments: ``apply_args(ent, "Position", "1", "2", "0", "m")``."""
    return apply_input(ent, KeywordIndex(keyword, args))


def split_record(tokens: list[str], context: ParseContext | None = None) -> list[KeywordIndex]:
    """Split ``Key1 { ... } Key2 value ...`` into one KeywordIndex per keyword."""
    check_braces(tokens)
    keywords: list[KeywordIndex] = []
    i = 0
    while i < len(tokens):
        keyword = tokens[i]
        if keyword in ("{", "}"):
            raise InputError(f"Expected a keyword, received: {keyword}", context)
        i += 1
        if i >= len(tokens):
            raise InputError(f"No value given for keyword {keyword}", context)
        if tokens[i] != "{":
            keywords.append(KeywordIndex(keyword, [tokens[i]], context))
            i += 1
            continue
        depth = 0
        start = i + 1
        while i < len(tokens):
            if tokens[i] == "{":
                depth += 1
            elif tokens[i] == "}":
                depth -= 1
                if depth == 0:
                    break
            i += 1
        keywords.append(KeywordIndex(keyword, tokens[start:i], context))
        i += 1
    return keywords


def apply_record(ent: Entity, record: str, context: ParseContext | None = None) -> list[Input]:
    """Tokenize a record and apply each of its keywords in order.

    Keywords before a failing one stay applied.
    """
    applied = []
    for kw in split_record(tokenize(record), context):
        applied.append(apply_input(ent, kw))
    return applied
