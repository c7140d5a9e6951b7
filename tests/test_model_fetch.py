#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import subprocess
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from provisioning.bootstrap_config import BootstrapConfig
from provisioning.model_fetch import (
    base_model_name,
    fetch_models,
    is_model_listed,
    parse_model_listing,
    pull_model,
    warm_up_model,
)
from provisioning.utils import BootstrapError

LISTING = """NAME                ID              SIZE      MODIFIED
qwen2.5-coder:7b    2b0496514337    4.7 GB    2 minutes ago
llama3.2:3b         a80c4f17acd5    2.0 GB    3 days ago
"""


def listing(stdout):
    return subprocess.CompletedProcess(["ollama", "list"], 0, stdout=stdout, stderr="")


class TestListing:
    @pytest.mark.parametrize(
        "model,expected",
        [
            ("qwen2.5-coder:7b", "qwen2.5-coder"),
            ("llama3", "llama3"),
            ("registry/name:tag", "registry/name"),
        ],
    )
    def test_base_model_name(self, model, expected):
        assert base_model_name(model) == expected

    def test_parse_model_listing_skips_header(self):
        assert parse_model_listing(LISTING) == ["qwen2.5-coder:7b", "llama3.2:3b"]

    def test_parse_empty_listing(self):
        assert parse_model_listing("NAME ID SIZE MODIFIED\n") == []

    def test_listed_by_base_name(self):
        installed = ["qwen2.5-coder:7b"]
        assert is_model_listed("qwen2.5-coder:7b", installed)
        # a different tag of the same base name still counts
        assert is_model_listed("qwen2.5-coder:14b", installed)
        assert not is_model_listed("qwen2.5", installed)


class TestPullModel:
    def test_pull_then_verify(self):
        with patch("provisioning.model_fetch.run_command") as mock_run, patch(
            "provisioning.model_fetch.capture_command", return_value=listing(LISTING)
        ):
            pull_model("llama3.2:3b")
        assert mock_run.call_args.args[0] == ["ollama", "pull", "llama3.2:3b"]
        assert mock_run.call_args.kwargs["check"] is True

    def test_missing_after_pull_raises(self):
        with patch("provisioning.model_fetch.run_command"), patch(
            "provisioning.model_fetch.capture_command", return_value=listing(LISTING)
        ):
            with pytest.raises(BootstrapError, match="Model pull failed: mistral"):
                pull_model("mistral:7b")

    def test_pull_command_failure_propagates(self):
        with patch(
            "provisioning.model_fetch.run_command",
            side_effect=BootstrapError("command failed with return code 1"),
        ), patch("provisioning.model_fetch.capture_command") as mock_capture:
            with pytest.raises(BootstrapError):
                pull_model("llama3.2:3b")
        mock_capture.assert_not_called()


class TestFetchModels:
    def test_stops_at_first_missing_model(self):
        config = BootstrapConfig(
            models=["mistral:7b", "qwen2.5-coder:7b"], use_sudo=False
        )
        with patch("provisioning.model_fetch.run_command") as mock_run, patch(
            "provisioning.model_fetch.capture_command", return_value=listing(LISTING)
        ), patch("provisioning.model_fetch.warm_up_model") as mock_warm:
            with pytest.raises(BootstrapError):
                fetch_models(config)
        pulled = [c.args[0][2] for c in mock_run.call_args_list]
        assert pulled == ["mistral:7b"]
        mock_warm.assert_not_called()

    def test_pulls_in_order_then_warms_first(self):
        config = BootstrapConfig(
            models=["qwen2.5-coder:7b", "llama3.2:3b"], use_sudo=False
        )
        with patch("provisioning.model_fetch.run_command") as mock_run, patch(
            "provisioning.model_fetch.capture_command", return_value=listing(LISTING)
        ), patch("provisioning.model_fetch.warm_up_model") as mock_warm:
            fetch_models(config)
        pulled = [c.args[0][2] for c in mock_run.call_args_list]
        assert pulled == ["qwen2.5-coder:7b", "llama3.2:3b"]
        mock_warm.assert_called_once_with("qwen2.5-coder:7b", config.warmup_prompt)

    def test_warmup_can_be_disabled(self):
        config = BootstrapConfig(warmup=False, use_sudo=False)
        with patch("provisioning.model_fetch.run_command"), patch(
            "provisioning.model_fetch.capture_command", return_value=listing(LISTING)
        ), patch("provisioning.model_fetch.warm_up_model") as mock_warm:
            fetch_models(config)
        mock_warm.assert_not_called()


class TestWarmUp:
    def test_detached_and_not_awaited(self):
        with patch("provisioning.model_fetch.subprocess.Popen") as mock_popen:
            process = warm_up_model("qwen2.5-coder:7b", "hello")
        assert process is mock_popen.return_value
        args, kwargs = mock_popen.call_args
        assert args[0] == ["ollama", "run", "qwen2.5-coder:7b", "hello"]
        assert kwargs["stdout"] == subprocess.DEVNULL
        assert kwargs["start_new_session"] is True
        mock_popen.return_value.wait.assert_not_called()
        mock_popen.return_value.communicate.assert_not_called()

    def test_spawn_failure_is_not_fatal(self):
        with patch(
            "provisioning.model_fetch.subprocess.Popen",
            side_effect=FileNotFoundError("ollama"),
        ):
            assert warm_up_model("qwen2.5-coder:7b", "hello") is None
