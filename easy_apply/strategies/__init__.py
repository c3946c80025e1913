"""
Field strategies in their fixed priority order.

The first strategy whose ``can_handle`` accepts a form group fills it. Date
comes before dropdown so month/year select pairs are treated as one date, and
typeahead comes before free text because both are plain inputs.
"""
from typing import List

from easy_apply.strategies.base import Answerer, FieldStrategy, StrategyContext
from easy_apply.strategies.checkbox import CheckboxStrategy
from easy_apply.strategies.date import DateStrategy
from easy_apply.strategies.dropdown import DropdownStrategy
from easy_apply.strategies.file_upload import FileUploadStrategy
from easy_apply.strategies.radio import RadioStrategy
from easy_apply.strategies.text import TextInputStrategy
from easy_apply.strategies.textarea import TextareaStrategy
from easy_apply.strategies.typeahead import TypeaheadStrategy

STRATEGY_ORDER = (
    FileUploadStrategy,
    RadioStrategy,
    DateStrategy,
    DropdownStrategy,
    CheckboxStrategy,
    TypeaheadStrategy,
    TextareaStrategy,
    TextInputStrategy,
)


def build_strategies(ctx: StrategyContext) -> List[FieldStrategy]:
    return [strategy_cls(ctx) for strategy_cls in STRATEGY_ORDER]


__all__ = [
    "Answerer",
    "FieldStrategy",
    "StrategyContext",
    "STRATEGY_ORDER",
    "build_strategies",
]
