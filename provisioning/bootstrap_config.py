# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

import yaml

from provisioning.host_types import AcceleratorPolicy, Architecture

logger = logging.getLogger("run_log")

DEFAULT_MODELS = ["qwen2.5-coder:7b"]
DEFAULT_ALLOW_FROM = "192.168.0.0/16"
DEFAULT_WARMUP_PROMPT = "Model loaded - ready for code completion."


@dataclass
class BootstrapConfig:
    architecture: Optional[Architecture] = None
    accelerator_policy: AcceleratorPolicy = AcceleratorPolicy.AUTO
    models: List[str] = field(default_factory=lambda: list(DEFAULT_MODELS))
    allow_from: str = DEFAULT_ALLOW_FROM
    runtime_host: str = "0.0.0.0"
    runtime_port: int = 11434
    webui_port: int = 8080
    prerequisite_packages: List[str] = field(
        default_factory=lambda: ["curl", "git", "ufw"]
    )
    runtime_install_url: str = "https://ollama.com/install.sh"
    docker_install_url: str = "https://get.docker.com"
    runtime_service: str = "ollama"
    runtime_origins: str = "*"
    max_loaded_models: Optional[int] = None
    webui_image: str = "ghcr.io/open-webui/open-webui:main"
    bundled_runtime: bool = False
    bundled_image: str = "ghcr.io/open-webui/open-webui:ollama"
    webui_container_name: str = "open-webui"
    webui_data_volume: str = "open-webui"
    runtime_volume: str = "ollama"
    runtime_settle_seconds: float = 6
    webui_settle_seconds: float = 8
    warmup: bool = True
    warmup_prompt: str = DEFAULT_WARMUP_PROMPT
    use_sudo: bool = True

    def __post_init__(self):
        self.validate()

    def validate(self):
        if isinstance(self.architecture, str):
            self.architecture = Architecture.from_string(self.architecture)
        elif self.architecture is not None and not isinstance(
            self.architecture, Architecture
        ):
            raise ValueError(
                f"architecture must be one of arm64, x86_64, got: {self.architecture!r}"
            )
        if isinstance(self.accelerator_policy, str):
            self.accelerator_policy = AcceleratorPolicy.from_string(
                self.accelerator_policy
            )
        elif not isinstance(self.accelerator_policy, AcceleratorPolicy):
            # YAML reads bare on/off/yes/no as booleans
            raise ValueError(
                "accelerator_policy must be one of auto, enabled, disabled, "
                f"got: {self.accelerator_policy!r}"
            )
        if isinstance(self.models, str):
            self.models = _split_models(self.models)
        if not isinstance(self.models, list):
            raise ValueError(f"models must be a list of names, got: {self.models!r}")
        if not self.models:
            raise ValueError("At least one model must be configured.")
        for model in self.models:
            if not isinstance(model, str) or not model.strip():
                raise ValueError(f"Invalid model name: {model!r}")
        for name in ("runtime_port", "webui_port"):
            port = getattr(self, name)
            if isinstance(port, bool) or not isinstance(port, int):
                raise ValueError(f"{name} must be an integer, got: {port!r}")
            if not 1 <= port <= 65535:
                raise ValueError(f"{name} out of range: {port}")
        if self.runtime_port == self.webui_port:
            raise ValueError("runtime_port and webui_port must differ.")

    @property
    def primary_model(self) -> str:
        return self.models[0]

    @property
    def webui_container_image(self) -> str:
        return self.bundled_image if self.bundled_runtime else self.webui_image

    @classmethod
    def from_dict(cls, data: dict):
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path):
        path = Path(path)
        if not path.exists():
            raise ValueError(f"Config file not found: {path}")
        with path.open("r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        logger.info(f"Loaded config file: {path}")
        return cls.from_dict(data)


def _split_models(value: str) -> List[str]:
    return [m.strip() for m in value.split(",") if m.strip()]


def load_bootstrap_config(path=None, environ=None) -> BootstrapConfig:
    """Defaults, then the optional YAML file, then the MODEL / ALLOW_FROM env vars."""
    environ = os.environ if environ is None else environ
    config = BootstrapConfig.from_yaml(path) if path else BootstrapConfig()

    env_models = environ.get("MODEL")
    if env_models:
        config.models = _split_models(env_models)
        logger.info(f"Using models from MODEL env var: {config.models}")
    env_allow_from = environ.get("ALLOW_FROM")
    if env_allow_from:
        config.allow_from = env_allow_from
        logger.info(f"Using ALLOW_FROM env var: {config.allow_from}")

    config.validate()
    return config


def apply_cli_overrides(config: BootstrapConfig, args) -> BootstrapConfig:
    if getattr(args, "architecture", None):
        config.architecture = Architecture.from_string(args.architecture)
    if getattr(args, "accelerator", None):
        config.accelerator_policy = AcceleratorPolicy.from_string(args.accelerator)
    if getattr(args, "model", None):
        config.models = list(args.model)
    if getattr(args, "allow_from", None):
        config.allow_from = args.allow_from
    config.validate()
    return config


def format_config_summary(config: BootstrapConfig) -> str:
    """Format the resolved configuration in a clean, readable format."""
    architecture = config.architecture.value if config.architecture else "auto"
    lines = [
        "",
        "=" * 60,
        "llm-host-bootstrap configuration summary",
        "=" * 60,
        "",
        f"  architecture:           {architecture}",
        f"  accelerator_policy:     {config.accelerator_policy.value}",
        f"  models:                 {', '.join(config.models)}",
        f"  allow_from:             {config.allow_from}",
        f"  runtime:                {config.runtime_host}:{config.runtime_port}",
        f"  webui_port:             {config.webui_port}",
        f"  webui_image:            {config.webui_container_image}",
        f"  webui_container_name:   {config.webui_container_name}",
        f"  warmup:                 {config.warmup}",
        "",
        "=" * 60,
    ]
    return "\n".join(lines)
