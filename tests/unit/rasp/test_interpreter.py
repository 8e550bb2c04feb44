"""Unit tests for RaspInterpreter."""

from unittest.mock import AsyncMock, call, patch

import pytest

from roku_deeplink.exceptions import CommandError, ScriptError
from roku_deeplink.rasp import MappingSecretProvider, RaspInterpreter, parse_script


@pytest.fixture
def mock_sleep():
    with patch("roku_deeplink.rasp.interpreter.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


class TestExecute:
    """Tests for step execution"""

    @pytest.mark.asyncio
    async def test_steps_dispatched_in_order(self, mock_dispatcher, mock_sleep):
        """Test each step kind maps to the right dispatcher call"""
        script = parse_script(
            {
                "params": {"channels": {"MyChannel": "dev"}},
                "steps": [
                    {"launch": "MyChannel"},
                    {"press": "ok"},
                    {"text": "abc"},
                    {"pause": 5},
                ],
            }
        )
        interpreter = RaspInterpreter(mock_dispatcher, MappingSecretProvider({}))

        await interpreter.execute(script)

        mock_dispatcher.launch.assert_awaited_once_with("dev")
        mock_dispatcher.keypress.assert_awaited_once_with("Select")
        mock_dispatcher.enter_text.assert_awaited_once_with("abc", char_delay=0.05)
        # 1s between steps (3 gaps) plus the 5s pause, never after the last step
        assert mock_sleep.await_args_list == [call(1.0), call(1.0), call(1.0), call(5.0)]

    @pytest.mark.asyncio
    async def test_unmapped_channel_used_literally(self, mock_dispatcher, mock_sleep):
        """Test a launch reference missing from the channel map is the app id"""
        script = parse_script({"steps": [{"launch": "151908"}]})

        await RaspInterpreter(mock_dispatcher).execute(script)

        mock_dispatcher.launch.assert_awaited_once_with("151908")
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unquoted_channel_id_launched(self, mock_dispatcher, mock_sleep, tmp_path):
        """Test a bare numeric channel id in the script file is launched"""
        path = tmp_path / "signin.rasp"
        path.write_text("steps:\n  - launch: 151908\n")

        await RaspInterpreter(mock_dispatcher).run_file(path)

        mock_dispatcher.launch.assert_awaited_once_with("151908")

    @pytest.mark.asyncio
    async def test_raw_key_passes_through(self, mock_dispatcher, mock_sleep):
        """Test unknown key tokens are sent unchanged"""
        script = parse_script({"steps": [{"press": "VolumeMute"}]})

        await RaspInterpreter(mock_dispatcher).execute(script)

        mock_dispatcher.keypress.assert_awaited_once_with("VolumeMute")

    @pytest.mark.asyncio
    async def test_custom_step_delay(self, mock_dispatcher, mock_sleep):
        """Test default_keypress_wait controls the gap between steps"""
        script = parse_script(
            {"params": {"default_keypress_wait": 0.5}, "steps": [{"press": "up"}, {"press": "down"}]}
        )

        await RaspInterpreter(mock_dispatcher).execute(script)

        assert mock_sleep.await_args_list == [call(0.5)]

    @pytest.mark.asyncio
    async def test_failure_aborts_remaining_steps(self, mock_dispatcher, mock_sleep):
        """Test a failing step stops the script with its original error"""
        error = CommandError("keypress", "http://192.168.1.114:8060/keypress/Select", "rejected", status=500)
        mock_dispatcher.keypress.side_effect = error
        script = parse_script({"steps": [{"press": "ok"}, {"text": "never"}]})

        with pytest.raises(CommandError) as exc_info:
            await RaspInterpreter(mock_dispatcher).execute(script)

        assert exc_info.value is error
        mock_dispatcher.enter_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_run_file(self, mock_dispatcher, mock_sleep, tmp_path):
        """Test scripts can be executed straight from a file"""
        path = tmp_path / "signin.rasp"
        path.write_text("steps:\n  - press: home\n")

        duration = await RaspInterpreter(mock_dispatcher).run_file(path)

        assert duration >= 0
        mock_dispatcher.keypress.assert_awaited_once_with("Home")


class TestSecrets:
    """Tests for secret placeholders in text steps"""

    @pytest.mark.asyncio
    async def test_login_placeholder_resolved(self, mock_dispatcher, mock_sleep):
        """Test script-login types the RASP_LOGIN value"""
        script = parse_script({"steps": [{"text": "script-login"}]})
        interpreter = RaspInterpreter(mock_dispatcher, MappingSecretProvider({"RASP_LOGIN": "u@e.com"}))

        await interpreter.execute(script)

        mock_dispatcher.enter_text.assert_awaited_once_with("u@e.com", char_delay=0.05)

    @pytest.mark.asyncio
    async def test_missing_login_raises(self, mock_dispatcher, mock_sleep):
        """Test script-login without RASP_LOGIN fails before typing"""
        script = parse_script({"steps": [{"text": "script-login"}]})

        with pytest.raises(ScriptError, match="RASP_LOGIN"):
            await RaspInterpreter(mock_dispatcher, MappingSecretProvider({})).execute(script)

        mock_dispatcher.enter_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_characters_dispatched_in_order(self, mock_sleep):
        """Test the resolved secret reaches the device one character at a time"""
        from roku_deeplink.ecp import CommandDispatcher  # noqa: PLC0415

        dispatcher = CommandDispatcher("192.168.1.114", session=AsyncMock())
        sent: list[str] = []

        async def record(char: str) -> bool:
            sent.append(char)
            return True

        script = parse_script({"steps": [{"text": "script-login"}]})
        with (
            patch.object(dispatcher, "enter_character", side_effect=record),
            patch("roku_deeplink.ecp.dispatcher.asyncio.sleep", new_callable=AsyncMock),
        ):
            await RaspInterpreter(dispatcher, MappingSecretProvider({"RASP_LOGIN": "u@e.com"})).execute(script)

        assert sent == list("u@e.com")

    @pytest.mark.asyncio
    async def test_secret_not_logged(self, mock_dispatcher, mock_sleep, caplog):
        """Test secret values never appear in log output"""
        script = parse_script({"steps": [{"text": "script-password"}]})
        interpreter = RaspInterpreter(mock_dispatcher, MappingSecretProvider({"RASP_PASSWORD": "hunter2"}))

        with caplog.at_level("DEBUG", logger="roku_deeplink"):
            await interpreter.execute(script)

        assert "hunter2" not in caplog.text
        assert "*******" in caplog.text
