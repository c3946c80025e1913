from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.selectors import catalog
from easy_apply.models import ModalState
from easy_apply.navigation import NavigationStateMachine, is_success_text


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Your application was sent to Acme!", True),
        ("APPLICATION SUBMITTED", True),
        ("Submit application", False),
        ("Review your application", False),
        (None, False),
    ],
)
def test_is_success_text(text, expected):
    assert is_success_text(text) is expected


def visible_roles(mapping):
    """Stand-in for ``_first_visible`` returning the element mapped to a role."""
    return AsyncMock(side_effect=lambda role, scope=None, enabled=False: mapping.get(role))


@pytest.fixture
def modal(mock_page, make_locator):
    locator = make_locator(count=1, text_content="Contact info", is_visible=True)
    mock_page.locator = MagicMock(return_value=locator)
    return locator


@pytest.fixture
def nav(mock_page, app_config, modal):
    machine = NavigationStateMachine(mock_page, app_config)
    machine.wait_for_modal_ready = AsyncMock()
    machine.uncheck_follow_company = AsyncMock()
    return machine


def button(attributes=None, text="Next"):
    attributes = attributes or {}
    element = MagicMock()
    element.get_attribute = AsyncMock(side_effect=lambda name: attributes.get(name))
    element.text_content = AsyncMock(return_value=text)
    element.wait_for = AsyncMock()
    return element


class TestModalState:
    @pytest.mark.asyncio
    async def test_closed_when_modal_missing(self, nav, modal):
        modal.count.return_value = 0

        assert await nav.get_modal_state() == ModalState.CLOSED

    @pytest.mark.asyncio
    async def test_success_from_confirmation_text(self, nav, modal):
        modal.text_content.return_value = "Your application was sent to Acme"

        assert await nav.get_modal_state() == ModalState.SUCCESS

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "role, state",
        [
            ("submit_button", ModalState.SUBMIT),
            ("review_button", ModalState.REVIEW),
            ("next_button", ModalState.FORM),
        ],
    )
    async def test_state_from_visible_button(self, nav, role, state):
        nav._first_visible = visible_roles({role: button()})

        assert await nav.get_modal_state() == state

    @pytest.mark.asyncio
    async def test_error_when_only_validation_errors(self, nav):
        nav._first_visible = visible_roles({})
        nav.get_validation_errors = AsyncMock(return_value=["Please enter a valid answer"])

        assert await nav.get_modal_state() == ModalState.ERROR

    @pytest.mark.asyncio
    async def test_unknown_when_nothing_recognized(self, nav):
        nav._first_visible = visible_roles({})
        nav.get_validation_errors = AsyncMock(return_value=[])

        assert await nav.get_modal_state() == ModalState.UNKNOWN


class TestClickPrimaryButton:
    @pytest.mark.asyncio
    async def test_dry_run_stops_before_submit(self, mock_page, app_config, configure, modal):
        nav = NavigationStateMachine(mock_page, configure(app_config, "easy_apply", dry_run=True))
        nav.wait_for_modal_ready = AsyncMock()
        nav.uncheck_follow_company = AsyncMock()
        submit = button({"data-live-test-easy-apply-submit-button": ""}, text="Submit application")
        nav._first_visible = visible_roles({"primary_button": submit})

        with patch("easy_apply.navigation.resilient_click", new_callable=AsyncMock) as click:
            result = await nav.click_primary_button()

        assert result.success is True
        assert result.dry_run_stop is True
        assert result.submitted is False
        click.assert_not_awaited()
        nav.uncheck_follow_company.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_validation_errors_are_reported(self, nav):
        nav._first_visible = visible_roles({"primary_button": button(text="Next")})
        nav.get_validation_errors = AsyncMock(return_value=["Enter a valid phone number"])

        with patch("easy_apply.navigation.resilient_click", new_callable=AsyncMock):
            result = await nav.click_primary_button()

        assert result.success is False
        assert result.state == ModalState.ERROR
        assert result.validation_errors == ["Enter a valid phone number"]
        nav.uncheck_follow_company.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_submit_that_closes_the_form_counts_as_submitted(self, nav):
        nav._first_visible = visible_roles({"primary_button": button(text="Submit application")})
        nav.get_validation_errors = AsyncMock(return_value=[])
        nav._handle_save_dialog = AsyncMock(return_value=False)
        nav.get_modal_state = AsyncMock(return_value=ModalState.CLOSED)

        with patch("easy_apply.navigation.resilient_click", new_callable=AsyncMock) as click:
            result = await nav.click_primary_button()

        assert result.submitted is True
        assert click.await_args.kwargs["name"] == "submit"

    @pytest.mark.asyncio
    async def test_next_moves_to_following_step(self, nav):
        nav._first_visible = visible_roles({"primary_button": button(text="Next")})
        nav.get_validation_errors = AsyncMock(return_value=[])
        nav._handle_save_dialog = AsyncMock(return_value=False)
        nav.get_modal_state = AsyncMock(return_value=ModalState.REVIEW)

        with patch("easy_apply.navigation.resilient_click", new_callable=AsyncMock):
            result = await nav.click_primary_button()

        assert result.success is True
        assert result.submitted is False
        assert result.state == ModalState.REVIEW

    @pytest.mark.asyncio
    async def test_save_dialog_keeps_application_and_waits_for_form(self, nav, mock_page):
        primary = button(text="Next")
        dialog = MagicMock()
        dialog.text_content = AsyncMock(return_value="Save this application?")
        keep = button(text="Save")
        nav._first_visible = visible_roles(
            {"primary_button": primary, "save_dialog": dialog, "save_dialog_primary": keep}
        )
        nav.get_validation_errors = AsyncMock(return_value=[])
        nav.get_modal_state = AsyncMock(return_value=ModalState.FORM)

        with patch("easy_apply.navigation.resilient_click", new_callable=AsyncMock) as click:
            result = await nav.click_primary_button()

        assert [c.args[0] for c in click.await_args_list] == [primary, keep]
        assert click.await_args.kwargs["name"] == "save_dialog_primary"
        mock_page.wait_for_selector.assert_awaited_once()
        assert mock_page.wait_for_selector.await_args.args == (catalog.css("modal_container"),)
        assert mock_page.wait_for_selector.await_args.kwargs["state"] == "visible"
        assert result.success is True
        assert result.submitted is False
        assert result.state == ModalState.FORM

    @pytest.mark.asyncio
    async def test_unrelated_dialog_is_left_alone(self, nav, mock_page):
        dialog = MagicMock()
        dialog.text_content = AsyncMock(return_value="Share your profile?")
        nav._first_visible = visible_roles({"save_dialog": dialog, "save_dialog_primary": button(text="Share")})

        with patch("easy_apply.navigation.resilient_click", new_callable=AsyncMock) as click:
            assert await nav._handle_save_dialog() is False

        click.assert_not_awaited()
        mock_page.wait_for_selector.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_button_on_confirmation_is_submitted(self, nav):
        nav._first_visible = visible_roles({})
        nav.get_modal_state = AsyncMock(return_value=ModalState.SUCCESS)

        result = await nav.click_primary_button()

        assert result.submitted is True

    @pytest.mark.asyncio
    async def test_missing_button_is_an_error(self, nav):
        nav._first_visible = visible_roles({})
        nav.get_modal_state = AsyncMock(return_value=ModalState.UNKNOWN)

        result = await nav.click_primary_button()

        assert result.success is False
        assert result.error == "No primary button found"


@pytest.mark.asyncio
async def test_close_modal_falls_back_to_escape(nav, mock_page):
    nav._first_visible = visible_roles({})

    assert await nav.close_modal() is True

    mock_page.keyboard.press.assert_awaited_once_with("Escape")
