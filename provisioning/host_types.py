# SPDX-License-Identifier: Apache-2.0
#
# SPDX-FileCopyrightText: © 2025 Tenstorrent AI ULC

from enum import Enum


class Architecture(Enum):
    ARM64 = "arm64"
    X86_64 = "x86_64"

    @classmethod
    def from_string(cls, name: str):
        for arch in cls:
            if name.lower() in (arch.value, arch.name.lower()):
                return arch
        raise ValueError(f"Invalid Architecture: {name}")

    @classmethod
    def from_machine(cls, machine: str):
        """Map a `uname -m` style machine string onto a supported architecture."""
        mapping = {
            "aarch64": Architecture.ARM64,
            "arm64": Architecture.ARM64,
            "x86_64": Architecture.X86_64,
        }
        if machine not in mapping:
            raise ValueError(f"Unsupported architecture: {machine}")
        return mapping[machine]


class AcceleratorPolicy(Enum):
    AUTO = "auto"
    ENABLED = "enabled"
    DISABLED = "disabled"

    @classmethod
    def from_string(cls, name: str):
        try:
            return cls(name.lower())
        except ValueError:
            raise ValueError(f"Invalid AcceleratorPolicy: {name}")
