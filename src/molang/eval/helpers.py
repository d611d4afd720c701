from __future__ import annotations

import math
from typing import Callable, Union

from ..runtime import Frame
from ..tree import Expression
from ..types import MISSING, Value, _Missing

EvalFunc = Callable[[Expression, Frame], Value]

def is_truthy(val: Union[Value, _Missing]) -> bool:
    match val:
        case bool():
            return val
        case int() | float():
            return val != 0
        case str():
            return bool(val)
        case _Missing():
            return False
        case _:
            return True

def is_invalid(val: Union[Value, _Missing]) -> bool:
    """Left operand test for `??`: an unresolved binding or a NaN result."""
    if val is MISSING:
        return True

    return isinstance(val, float) and math.isnan(val)
