# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import logging
import subprocess
from typing import List, Optional

from provisioning.bootstrap_config import BootstrapConfig
from provisioning.model_runtime import RUNTIME_CLI
from provisioning.utils import BootstrapError, capture_command, run_command

logger = logging.getLogger("run_log")

TAG_SEPARATOR = ":"


def base_model_name(model: str) -> str:
    """Model identifier without its tag, e.g. qwen2.5-coder:7b -> qwen2.5-coder."""
    return model.split(TAG_SEPARATOR, 1)[0]


def parse_model_listing(output: str) -> List[str]:
    """Model names from `ollama list` output, the header row is skipped."""
    names = []
    for line in output.splitlines():
        parts = line.split()
        if not parts or parts[0] == "NAME":
            continue
        names.append(parts[0])
    return names


def list_installed_models() -> List[str]:
    result = capture_command([RUNTIME_CLI, "list"], logger=logger)
    return parse_model_listing(result.stdout)


def is_model_listed(model: str, installed: List[str]) -> bool:
    base = base_model_name(model)
    return any(base_model_name(name) == base for name in installed)


def pull_model(model: str):
    logger.info(f"Pulling model: {model} (this may take 5-15 minutes) ...")
    run_command([RUNTIME_CLI, "pull", model], logger=logger, check=True)

    logger.info(f"Verifying model: {model} ...")
    installed = list_installed_models()
    if not is_model_listed(model, installed):
        raise BootstrapError(
            f"Model pull failed: {base_model_name(model)} not found in "
            f"`{RUNTIME_CLI} list` ({', '.join(installed) or 'no models'})"
        )
    logger.info(f"✅ Model available: {model}")


def warm_up_model(model: str, prompt: str) -> Optional[subprocess.Popen]:
    """
    Load a model into memory with one throwaway prompt.

    Best effort: the process is detached and never awaited, its output is
    discarded and a failure to spawn it is only logged.
    """
    logger.info(f"Pre-loading model {model} in the background ...")
    try:
        return subprocess.Popen(
            [RUNTIME_CLI, "run", model, prompt],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        logger.warning(f"Could not start warm-up for {model}: {e}")
        return None


def fetch_models(config: BootstrapConfig):
    for model in config.models:
        pull_model(model)

    if config.warmup:
        warm_up_model(config.primary_model, config.warmup_prompt)
