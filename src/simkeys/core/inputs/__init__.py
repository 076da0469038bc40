"""
Typed keyword inputs.

Every input kind parses the tokens given to one keyword and stores a typed
value, or raises InputError and keeps the value it had.
"""

from simkeys.core.inputs.agent import apply_args, apply_input, apply_record, split_record
from simkeys.core.inputs.attributes import AttributeDefinitionListInput, NamedExpressionListInput
from simkeys.core.inputs.base import (
    BRACE_SEPARATOR,
    NEGATIVE_INFINITY,
    POSITIVE_INFINITY,
    SEPARATOR,
    Input,
    assert_count,
    assert_count_even,
    assert_count_odd,
    assert_count_range,
    assert_monotonic,
    assert_sum_tolerance,
)
from simkeys.core.inputs.entities import (
    EntityInput,
    InterfaceEntityInput,
    KeywordInput,
    KeywordRef,
    OutputInput,
    RelativeEntityInput,
)
from simkeys.core.inputs.lists import (
    ColourListInput,
    EntityListInput,
    EntityListListInput,
    IntegerListInput,
    InterfaceEntityListInput,
    KeyListInput,
    ListInput,
    StringListInput,
    ValueListInput,
    Vec3dListInput,
)
from simkeys.core.inputs.parsing import (
    Colour,
    parse_boolean,
    parse_colour,
    parse_date,
    parse_double,
    parse_doubles,
    parse_entity,
    parse_entity_list,
    parse_integer,
    parse_output_chain,
    parse_unit,
    parse_unit_type,
)
from simkeys.core.inputs.samples import (
    EntityProvider,
    EntityProvInput,
    SampleConstant,
    SampleInput,
    SampleProvider,
)
from simkeys.core.inputs.scalars import (
    BooleanInput,
    ColourInput,
    DateInput,
    EnumInput,
    IntegerInput,
    StringChoiceInput,
    StringInput,
    ValueInput,
    Vec3d,
    Vec3dInput,
)
from simkeys.core.inputs.special import DeprecatedInput, SynonymInput

__all__ = [
    "BRACE_SEPARATOR",
    "NEGATIVE_INFINITY",
    "POSITIVE_INFINITY",
    "SEPARATOR",
    "AttributeDefinitionListInput",
    "BooleanInput",
    "Colour",
    "ColourInput",
    "ColourListInput",
    "DateInput",
    "DeprecatedInput",
    "EntityInput",
    "EntityListInput",
    "EntityListListInput",
    "EntityProvInput",
    "EntityProvider",
    "EnumInput",
    "Input",
    "IntegerInput",
    "IntegerListInput",
    "InterfaceEntityInput",
    "InterfaceEntityListInput",
    "KeyListInput",
    "KeywordInput",
    "KeywordRef",
    "ListInput",
    "NamedExpressionListInput",
    "OutputInput",
    "RelativeEntityInput",
    "SampleConstant",
    "SampleInput",
    "SampleProvider",
    "StringChoiceInput",
    "StringInput",
    "StringListInput",
    "SynonymInput",
    "ValueInput",
    "ValueListInput",
    "Vec3d",
    "Vec3dInput",
    "Vec3dListInput",
    "apply_args",
    "apply_input",
    "apply_record",
    "assert_count",
    "assert_count_even",
    "assert_count_odd",
    "assert_count_range",
    "assert_monotonic",
    "assert_sum_tolerance",
    "parse_boolean",
    "parse_colour",
    "parse_date",
    "parse_double",
    "parse_doubles",
    "parse_entity",
    "parse_entity_list",
    "parse_integer",
    "parse_output_chain",
    "parse_unit",
    "parse_unit_type",
    "split_record",
]
