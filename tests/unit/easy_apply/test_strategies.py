from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from easy_apply.exceptions import AnswerUnavailableError, FieldValidationError
from easy_apply.models import FieldCategory
from easy_apply.strategies import STRATEGY_ORDER, build_strategies
from easy_apply.strategies.checkbox import CheckboxStrategy, is_consent
from easy_apply.strategies.date import DateParts, format_date_for_input, parse_date_answer
from easy_apply.strategies.dropdown import DropdownStrategy, is_phone_prefix_question, is_school_question
from easy_apply.strategies.file_upload import FileUploadStrategy
from easy_apply.strategies.text import TextInputStrategy, format_number

PHONE_INPUT_ID = "single-line-text-form-component-formElement-urn-li-jobs-applyformcommon-easyApplyFormElement-4-phoneNumber-nationalNumber"
PHONE_ERROR = "Enter a valid phone number"


def text_group(make_locator, attributes):
    """Form group holding one text input with the given attributes."""
    control = make_locator(count=1, input_value="")
    control.get_attribute = AsyncMock(side_effect=lambda name: attributes.get(name))
    control.click = AsyncMock()
    control.fill = AsyncMock()
    group = MagicMock()
    group.locator = MagicMock(return_value=control)
    return group, control


def select_group(make_locator, labels):
    """Form group holding a <select> with a placeholder followed by ``labels``."""
    options = [("Select an option", "")] + [(label, label) for label in labels]
    option_mocks = []
    for text, value in options:
        option = MagicMock()
        option.text_content = AsyncMock(return_value=text)
        option.get_attribute = AsyncMock(return_value=value)
        option_mocks.append(option)
    option_list = make_locator(count=len(option_mocks))
    option_list.nth = MagicMock(side_effect=lambda i: option_mocks[i])

    select = make_locator(count=1)
    select.locator = MagicMock(return_value=option_list)
    select.select_option = AsyncMock()
    group = MagicMock()
    group.locator = MagicMock(return_value=select)
    return group, select


@pytest.fixture
def field_errors():
    with patch("easy_apply.strategies.base.extract_field_error", new_callable=AsyncMock) as mock:
        mock.return_value = None
        yield mock


def question(text):
    return patch("easy_apply.strategies.base.extract_question_text", new=AsyncMock(return_value=text))


class TestTextInputStrategy:
    @pytest.mark.asyncio
    async def test_phone_validation_error_is_retried_exactly_once(self, strategy_ctx, make_locator, field_errors):
        group, control = text_group(make_locator, {"type": "text", "id": PHONE_INPUT_ID})
        field_errors.side_effect = [None, PHONE_ERROR, None]
        strategy_ctx.answerer.answer_textual_with_retry.return_value = "617-555-0100"
        strategy = TextInputStrategy(strategy_ctx)

        with question("Mobile phone number"):
            assert await strategy.handle(group) is True

        strategy_ctx.answerer.answer_textual_with_retry.assert_awaited_once_with(
            "Mobile phone number", "6175550100", PHONE_ERROR
        )
        strategy_ctx.answerer.answer_textual.assert_not_awaited()
        assert control.fill.await_args.args == ("617-555-0100",)
        assert strategy_ctx.memory.lookup("text", "Mobile phone number") == "617-555-0100"

    @pytest.mark.asyncio
    async def test_persisting_error_fails_without_second_retry(self, strategy_ctx, make_locator, field_errors):
        group, _ = text_group(make_locator, {"type": "text", "id": PHONE_INPUT_ID})
        field_errors.side_effect = [None, PHONE_ERROR, PHONE_ERROR]
        strategy = TextInputStrategy(strategy_ctx)

        with question("Mobile phone number"), pytest.raises(FieldValidationError) as exc_info:
            await strategy.handle(group)

        assert exc_info.value.error_text == PHONE_ERROR
        assert strategy_ctx.answerer.answer_textual_with_retry.await_count == 1
        assert strategy_ctx.memory.lookup("text", "Mobile phone number") is None

    @pytest.mark.asyncio
    async def test_existing_error_triggers_retry_before_refilling(self, strategy_ctx, make_locator, field_errors):
        group, control = text_group(make_locator, {"type": "text", "id": "headline"})
        field_errors.side_effect = ["Answer is too long", None]
        strategy = TextInputStrategy(strategy_ctx)

        with question("Headline"):
            assert await strategy.handle(group, retry_mode=True) is True

        control.fill.assert_any_await("AI corrected answer")
        assert ("AI answer",) not in [c.args for c in control.fill.await_args_list]

    @pytest.mark.asyncio
    async def test_fuzzy_memory_hit_skips_ai(self, strategy_ctx, make_locator, field_errors):
        strategy_ctx.memory.remember("text", "How many years of experience do you have with Python?", "6")
        group, control = text_group(make_locator, {"type": "text", "id": "experience-field"})
        strategy = TextInputStrategy(strategy_ctx)

        with question("How many years of Python experience do you have?"):
            assert await strategy.handle(group) is True

        strategy_ctx.answerer.answer_textual.assert_not_awaited()
        strategy_ctx.answerer.answer_numeric.assert_not_awaited()
        assert control.fill.await_args.args == ("6",)

    @pytest.mark.asyncio
    async def test_numeric_field_asks_numeric_ai(self, strategy_ctx, make_locator, field_errors):
        group, control = text_group(make_locator, {"type": "text", "id": "numeric-years"})
        strategy_ctx.answerer.answer_numeric.return_value = 4.0
        strategy = TextInputStrategy(strategy_ctx)

        with question("Years of Rust experience"):
            assert await strategy.handle(group) is True

        assert control.fill.await_args.args == ("4",)
        assert strategy_ctx.memory.lookup(FieldCategory.NUMERIC.value, "Years of Rust experience") == "4"

    @pytest.mark.asyncio
    async def test_answer_unavailable_propagates(self, strategy_ctx, make_locator, field_errors):
        group, _ = text_group(make_locator, {"type": "text", "id": "motivation"})
        strategy_ctx.answerer.answer_textual.side_effect = AnswerUnavailableError("Why us?", "circuit open")
        strategy = TextInputStrategy(strategy_ctx)

        with question("Why us?"), pytest.raises(AnswerUnavailableError):
            await strategy.handle(group)

    @pytest.mark.asyncio
    async def test_phone_input_is_not_numeric(self, strategy_ctx, make_locator):
        _, control = text_group(make_locator, {"type": "text", "id": PHONE_INPUT_ID})

        assert await TextInputStrategy(strategy_ctx).is_numeric(control) is False


class TestDropdownStrategy:
    @pytest.mark.asyncio
    async def test_school_alias_is_picked_without_ai(self, strategy_ctx, make_locator, field_errors):
        group, select = select_group(make_locator, ["Harvard University", "MIT", "Stanford University"])
        strategy = DropdownStrategy(strategy_ctx)

        with question("School"):
            assert await strategy.handle(group) is True

        select.select_option.assert_awaited_once_with(label="MIT")
        strategy_ctx.answerer.answer_from_options.assert_not_awaited()
        assert strategy_ctx.memory.lookup("dropdown", "School") == "MIT"

    @pytest.mark.asyncio
    async def test_placeholder_option_is_never_offered(self, strategy_ctx, make_locator, field_errors):
        group, select = select_group(make_locator, ["Yes", "No"])
        strategy = DropdownStrategy(strategy_ctx)

        with question("Do you have a driver's license?"):
            assert await strategy.handle(group) is True

        offered = strategy_ctx.answerer.answer_from_options.await_args.args[1]
        assert offered == ["Yes", "No"]
        select.select_option.assert_awaited_once_with(label="Yes")

    @pytest.mark.asyncio
    async def test_large_dropdown_is_truncated_for_ai(self, strategy_ctx, make_locator, field_errors, configure):
        strategy_ctx.app_config = configure(strategy_ctx.app_config, "easy_apply", max_dropdown_options=3)
        group, _ = select_group(make_locator, [f"Option {i}" for i in range(10)])
        strategy_ctx.answerer.answer_from_options.return_value = "Option 1"
        strategy = DropdownStrategy(strategy_ctx)

        with question("Preferred office"):
            assert await strategy.handle(group) is True

        assert strategy_ctx.answerer.answer_from_options.await_args.args[1] == ["Option 0", "Option 1", "Option 2"]

    def test_pick_prefers_exact_then_containment(self, strategy_ctx):
        strategy = DropdownStrategy(strategy_ctx)
        options = ["United States (+1)", "Canada (+1)", "France (+33)"]

        assert strategy.pick("france (+33)", options) == "France (+33)"
        assert strategy.pick("Canada", options) == "Canada (+1)"
        assert strategy.pick("Germany", options) is None


@pytest.mark.parametrize(
    "text, school, phone",
    [
        ("School", True, False),
        ("Which university did you attend?", True, False),
        ("Phone country code", False, True),
        ("Years of experience", False, False),
    ],
)
def test_dropdown_question_kinds(text, school, phone):
    assert is_school_question(text) is school
    assert is_phone_prefix_question(text) is phone


class TestDateParsing:
    @pytest.mark.parametrize(
        "answer, expected",
        [
            ("2024-05-17", DateParts(2024, 5, 17)),
            ("05/17/2024", DateParts(2024, 5, 17)),
            ("Starting March 2025", DateParts(2025, 3, None)),
            ("2023", DateParts(2023, None, None)),
            ("Immediately", DateParts()),
        ],
    )
    def test_parse_date_answer(self, answer, expected):
        assert parse_date_answer(answer) == expected

    def test_format_for_native_input_defaults_missing_parts(self):
        assert format_date_for_input("September 2024") == "2024-09-01"
        assert format_date_for_input("2024-1-5") == "2024-01-05"
        assert format_date_for_input("as soon as possible") is None


def test_format_number_drops_integral_fraction():
    assert format_number(3.0) == "3"
    assert format_number(2.5) == "2.5"
    assert format_number(7) == "7"


@pytest.mark.parametrize(
    "label, expected",
    [
        ("I agree to the terms and conditions", True),
        ("I consent to the processing of my data", True),
        ("Remote", False),
    ],
)
def test_is_consent(label, expected):
    assert is_consent(label) is expected


def test_strategies_are_built_in_priority_order(strategy_ctx):
    strategies = build_strategies(strategy_ctx)

    assert [type(s) for s in strategies] == list(STRATEGY_ORDER)
    assert isinstance(strategies[0], FileUploadStrategy)
    assert isinstance(strategies[-1], TextInputStrategy)


@pytest.mark.asyncio
async def test_checkbox_selection_ignores_out_of_range_indices(strategy_ctx):
    strategy = CheckboxStrategy(strategy_ctx)
    strategy._options = AsyncMock(return_value=[("Python", MagicMock()), ("Go", MagicMock())])
    strategy.apply_with_validation = AsyncMock(return_value=True)
    strategy_ctx.answerer.answer_checkbox_selection.return_value = [0, 2, 5]

    assert await strategy._handle_multiple(MagicMock(), MagicMock(), 2, "Which languages do you use?") is True

    assert strategy.apply_with_validation.await_args.args[2] == "Go"
