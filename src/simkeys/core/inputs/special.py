"""
Keyword aliases and retired keywords.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from simkeys.core.errors import InputError
from simkeys.core.inputs.base import Input
from simkeys.core.keyword_index import KeywordIndex

if TYPE_CHECKING:
    from simkeys.core.entity import Entity

logger = logging.getLogger(__name__)


class SynonymInput(Input[Any]):
    """An alternative keyword that sets ``target``."""

    def __init__(self, keyword: str, target: Input) -> None:
        super().__init__(keyword, target.category, None)
        self.target = target
        self.hidden = True

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        self.target.parse(this_ent, kw)

    def get_value(self) -> Any:
        return self.target.get_value()

    def get_valid_input_desc(self) -> str:
        return self.target.get_valid_input_desc()

    def is_synonym(self) -> bool:
        return True


class DeprecatedInput(Input[None]):
    """
    A keyword that is no longer used.

    With ``fatal`` set any value is rejected; otherwise the value is ignored
    and a warning is logged.
    """

    def __init__(self, keyword: str, message: str, fatal: bool = False) -> None:
        super().__init__(keyword, "Deprecated", None)
        self.message = message
        self.fatal = fatal
        self.hidden = True

    def parse(self, this_ent: Entity | None, kw: KeywordIndex) -> None:
        owner = getattr(this_ent, "name", "")
        if self.fatal:
            raise InputError(f"Keyword {self.keyword} is no longer supported. {self.message}")
        logger.warning("%s keyword %s is deprecated and ignored. %s", owner, self.keyword, self.message)
