from unittest.mock import AsyncMock, patch

import pytest

from easy_apply.exceptions import AnswerUnavailableError, BrowserDisconnectedError, FieldValidationError
from easy_apply.page_filler import MAX_PASSES, FormPageFiller
from easy_apply.strategies.base import FieldStrategy


class FakeGroup:
    def __init__(self, key, outcome=True):
        self.key = key
        self.outcome = outcome


class FakeStrategy(FieldStrategy):
    """Handles every FakeGroup; its outcome decides success or the raised error."""

    def __init__(self):
        self.handled = []
        self.retry_modes = []

    async def can_handle(self, group):
        return True

    async def handle(self, group, retry_mode=False):
        self.handled.append(group.key)
        self.retry_modes.append(retry_mode)
        if isinstance(group.outcome, Exception):
            raise group.outcome
        return group.outcome


async def _key(group):
    return group.key


@pytest.fixture
def page_helpers():
    with patch("easy_apply.page_filler.stable_key", new=AsyncMock(side_effect=_key)), patch(
        "easy_apply.page_filler.is_visible", new=AsyncMock(return_value=True)
    ):
        yield


def make_filler(mock_page, app_config, groups, strategy=None):
    strategy = strategy or FakeStrategy()
    filler = FormPageFiller(mock_page, [strategy], app_config)
    filler.find_groups = AsyncMock(return_value=groups)
    filler._scroll_form = AsyncMock()
    filler._fill_document_blocks = AsyncMock(return_value=0)
    return filler, strategy


@pytest.mark.asyncio
async def test_each_group_is_filled_once_across_passes(mock_page, app_config, page_helpers):
    groups = [FakeGroup("id:a"), FakeGroup("id:b")]
    filler, strategy = make_filler(mock_page, app_config, groups)

    result = await filler.fill_current_page()

    assert strategy.handled == ["id:a", "id:b"]
    assert filler.find_groups.await_count == 2
    assert result.fields_processed == 2
    assert result.fields_failed == 0
    assert result.success is True


@pytest.mark.asyncio
async def test_refilling_a_page_handles_groups_again(mock_page, app_config, page_helpers):
    filler, strategy = make_filler(mock_page, app_config, [FakeGroup("id:a")])

    await filler.fill_current_page()
    await filler.fill_current_page(retry_mode=True)

    assert strategy.handled == ["id:a", "id:a"]
    assert strategy.retry_modes == [False, True]


@pytest.mark.asyncio
async def test_groups_rendered_after_scrolling_are_picked_up(mock_page, app_config, page_helpers):
    first = [FakeGroup("id:a")]
    second = [FakeGroup("id:a"), FakeGroup("id:b")]
    filler, strategy = make_filler(mock_page, app_config, first)
    filler.find_groups = AsyncMock(side_effect=[first, second, second])

    result = await filler.fill_current_page()

    assert strategy.handled == ["id:a", "id:b"]
    assert result.fields_processed == 2
    assert filler._scroll_form.await_count == 2


@pytest.mark.asyncio
async def test_unkeyed_groups_stop_after_max_passes(mock_page, app_config):
    counter = iter(range(1000))

    async def fresh_key(group):
        return f"unkeyed:{next(counter)}"

    filler, strategy = make_filler(mock_page, app_config, [FakeGroup("ignored")])
    with patch("easy_apply.page_filler.stable_key", new=AsyncMock(side_effect=fresh_key)), patch(
        "easy_apply.page_filler.is_visible", new=AsyncMock(return_value=True)
    ):
        result = await filler.fill_current_page()

    assert len(strategy.handled) == MAX_PASSES
    assert result.fields_processed == MAX_PASSES


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "outcomes, threshold, expected",
    [
        ([True, True, True, False], 0.5, True),
        ([True, True, False, False], 0.5, False),
        ([True, True, False, False], 0.75, True),
        ([True, False], 1.0, True),
        ([False], 1.0, False),
        ([], 0.5, True),
    ],
)
async def test_success_derivation(mock_page, app_config, configure, page_helpers, outcomes, threshold, expected):
    cfg = configure(app_config, "easy_apply", fail_threshold=threshold)
    groups = [FakeGroup(f"id:{i}", outcome) for i, outcome in enumerate(outcomes)]
    filler, _ = make_filler(mock_page, cfg, groups)

    result = await filler.fill_current_page()

    assert result.fields_processed == len(outcomes)
    assert result.fields_failed == outcomes.count(False)
    assert result.success is expected


@pytest.mark.asyncio
async def test_exceptions_count_as_failed_fields(mock_page, app_config, page_helpers):
    groups = [
        FakeGroup("id:a", AnswerUnavailableError("Why us?", "breaker open")),
        FakeGroup("id:b", FieldValidationError("Phone", "Enter a valid phone number")),
        FakeGroup("id:c", RuntimeError("unexpected")),
        FakeGroup("id:d"),
    ]
    filler, strategy = make_filler(mock_page, app_config, groups)

    result = await filler.fill_current_page()

    assert strategy.handled == ["id:a", "id:b", "id:c", "id:d"]
    assert result.fields_processed == 4
    assert result.fields_failed == 3
    assert len(result.errors) == 3
    assert result.success is False


@pytest.mark.asyncio
async def test_browser_disconnect_propagates(mock_page, app_config, page_helpers):
    groups = [FakeGroup("id:a", BrowserDisconnectedError("Target closed")), FakeGroup("id:b")]
    filler, strategy = make_filler(mock_page, app_config, groups)

    with pytest.raises(BrowserDisconnectedError):
        await filler.fill_current_page()

    assert strategy.handled == ["id:a"]


@pytest.mark.asyncio
async def test_groups_without_strategy_are_not_counted(mock_page, app_config, page_helpers):
    strategy = FakeStrategy()
    strategy.can_handle = AsyncMock(return_value=False)
    filler, _ = make_filler(mock_page, app_config, [FakeGroup("id:a")], strategy)

    result = await filler.fill_current_page()

    assert result.fields_processed == 0
    assert result.success is True
