"""Tests for the update checker, its state file and the release manifest."""

import json
from unittest.mock import Mock, patch

import httpx
import pytest

from redirect_canonical.models.config import UpdateConfig
from redirect_canonical.updates.checker import (
    VERSION,
    UpdateChecker,
    UpdateStatus,
    compare_versions,
    host_branch,
    start_background_check,
)
from redirect_canonical.updates.manifest import UpdateManifest, build_manifest
from redirect_canonical.updates.state import NEW_VERSION_TTL_SECONDS, UpdateState, UpdateStateManager


def _response(payload) -> Mock:
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


@pytest.fixture
def state_manager(tmp_path) -> UpdateStateManager:
    return UpdateStateManager(tmp_path / "state" / "update_state.json")


def make_checker(state_manager, host_version="5.1.2", version=VERSION) -> UpdateChecker:
    config = UpdateConfig(host_version=host_version, timeout_seconds=2)
    return UpdateChecker(config, state_manager, version=version)


class TestVersionHelpers:
    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ("5.1", "5.2", -1),
            ("5.10", "5.9", 1),
            ("1.0", "1.0.0", 0),
            ("1.0.1", "1.0.0", 1),
            ("5.2-RC1", "5.2", 0),
        ],
    )
    def test_compare_versions(self, a, b, expected):
        assert compare_versions(a, b) == expected

    @pytest.mark.parametrize(
        "version,branch",
        [("5.1.3", "5.1"), ("5.2-beta1", "5.2"), ("6", "6")],
    )
    def test_host_branch(self, version, branch):
        assert host_branch(version) == branch


class TestManifest:
    def test_default_manifest(self):
        manifest = build_manifest()
        assert json.loads(manifest.to_json()) == {"version": {"5.1": VERSION}, "disable": {}}

    def test_disable_entry(self):
        manifest = build_manifest({"5.1": "1.0.1"}, disable_from="5.2")
        assert manifest.disable_from == "5.2"
        assert manifest.version == {"5.1": "1.0.1"}

    def test_empty_list_is_accepted(self):
        manifest = UpdateManifest.model_validate({"version": {"5.1": "1.0.0"}, "disable": []})
        assert manifest.disable == {}
        assert manifest.disable_from is None


class TestUpdateState:
    def test_load_missing_file(self, state_manager):
        assert state_manager.load() == UpdateState()

    def test_load_corrupt_file(self, state_manager):
        state_manager.path.parent.mkdir(parents=True)
        state_manager.path.write_text("{not json")
        assert state_manager.load() == UpdateState()

    def test_new_version_expires(self):
        state = UpdateState()
        UpdateStateManager.mark_new_version(state, "1.0.1", now=1000.0)
        assert state.has_new_version(now=1000.0 + NEW_VERSION_TTL_SECONDS - 1)
        assert not state.has_new_version(now=1000.0 + NEW_VERSION_TTL_SECONDS)

    def test_save_round_trip(self, state_manager):
        state = UpdateState(branch="5.1", disabled=True)
        state_manager.save(state)
        loaded = state_manager.load()
        assert loaded.branch == "5.1"
        assert loaded.disabled is True
        assert loaded.last_checked


class TestUpdateChecker:
    @patch("redirect_canonical.updates.checker.httpx.get")
    def test_new_version(self, mock_get, state_manager):
        mock_get.return_value = _response({"version": {"5.1": "1.0.1"}, "disable": []})
        result = make_checker(state_manager).check()

        assert result.status == UpdateStatus.NEW_VERSION
        assert result.branch == "5.1"
        assert result.recommended_version == "1.0.1"
        assert state_manager.load().has_new_version()
        mock_get.assert_called_once()
        assert mock_get.call_args.kwargs["timeout"] == 2

    @patch("redirect_canonical.updates.checker.httpx.get")
    def test_current_clears_flag(self, mock_get, state_manager):
        stale = UpdateState()
        UpdateStateManager.mark_new_version(stale, "1.0.1")
        state_manager.save(stale)

        mock_get.return_value = _response({"version": {"5.1": VERSION}})
        result = make_checker(state_manager).check()

        assert result.status == UpdateStatus.CURRENT
        assert not state_manager.load().has_new_version()

    @patch("redirect_canonical.updates.checker.httpx.get")
    def test_disable(self, mock_get, state_manager):
        mock_get.return_value = _response({"version": {"5.2": "2.0.0"}, "disable": {"wp_version": "5.2"}})
        result = make_checker(state_manager, host_version="5.2.1").check()

        assert result.status == UpdateStatus.DISABLE
        assert result.disable_from == "5.2"
        assert state_manager.load().disabled is True

    @patch("redirect_canonical.updates.checker.httpx.get")
    def test_pending_disable_skips_version_check(self, mock_get, state_manager):
        mock_get.return_value = _response({"version": {"5.1": "2.0.0"}, "disable": {"wp_version": "5.2"}})
        result = make_checker(state_manager).check()

        assert result.status == UpdateStatus.CURRENT
        assert result.recommended_version is None
        assert result.disable_from == "5.2"
        state = state_manager.load()
        assert not state.has_new_version()
        assert state.disabled is False

    @patch("redirect_canonical.updates.checker.httpx.get")
    def test_pending_disable_keeps_new_version_flag(self, mock_get, state_manager):
        pending = UpdateState()
        UpdateStateManager.mark_new_version(pending, "1.0.1")
        state_manager.save(pending)

        mock_get.return_value = _response({"version": {"5.1": VERSION}, "disable": {"wp_version": "5.2"}})
        make_checker(state_manager).check()

        state = state_manager.load()
        assert state.has_new_version()
        assert state.recommended_version == "1.0.1"

    @patch("redirect_canonical.updates.checker.httpx.get")
    def test_unknown_branch(self, mock_get, state_manager):
        mock_get.return_value = _response({"version": {"4.9": "0.9.0"}})
        assert make_checker(state_manager).check().status == UpdateStatus.CURRENT

    @patch("redirect_canonical.updates.checker.httpx.get")
    def test_network_error(self, mock_get, state_manager):
        mock_get.side_effect = httpx.ConnectError("connection refused")
        result = make_checker(state_manager).check()
        assert result.status == UpdateStatus.UNKNOWN
        assert not state_manager.path.exists()

    @patch("redirect_canonical.updates.checker.httpx.get")
    def test_http_status_error(self, mock_get, state_manager):
        response = _response({})
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "404 Not Found", request=Mock(), response=Mock(),
        )
        mock_get.return_value = response
        assert make_checker(state_manager).check().status == UpdateStatus.UNKNOWN

    @patch("redirect_canonical.updates.checker.httpx.get")
    def test_invalid_json(self, mock_get, state_manager):
        response = _response(None)
        response.json.side_effect = json.JSONDecodeError("Expecting value", "", 0)
        mock_get.return_value = response
        assert make_checker(state_manager).check().status == UpdateStatus.UNKNOWN

    @patch("redirect_canonical.updates.checker.httpx.get")
    def test_invalid_manifest_shape(self, mock_get, state_manager):
        mock_get.return_value = _response({"version": "1.0.0"})
        assert make_checker(state_manager).check().status == UpdateStatus.UNKNOWN


class TestBackgroundCheck:
    def test_runs_in_daemon_thread(self):
        checker = Mock()
        checker.config.manifest_url = "https://example.com/latest.json"
        thread = start_background_check(checker)
        thread.join(timeout=5)

        assert thread.daemon
        checker.check.assert_called_once()
