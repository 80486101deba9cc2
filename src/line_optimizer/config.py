"""Application configuration loaded from config.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


@dataclass(frozen=True)
class LLMConfig:
    model: str = "claude-haiku-4-5-20251001"
    timeout: int = 60
    max_tokens: int = 2048
    temperature: float = 0.7

    def __post_init__(self) -> None:
        _check_range("timeout", self.timeout, 1, 600)
        _check_range("max_tokens", self.max_tokens, 256, 8192)
        _check_range("temperature", self.temperature, 0.0, 1.0)


@dataclass(frozen=True)
class LimitsConfig:
    """Bounds for the target character count of a message."""

    min_limit: int = 30
    max_limit: int = 500
    default_limit: int = 500

    def __post_init__(self) -> None:
        if self.min_limit < 1:
            raise ValueError(f"min_limit must be at least 1, got {self.min_limit}")
        if not self.min_limit <= self.default_limit <= self.max_limit:
            raise ValueError(
                "default_limit must lie between min_limit and max_limit, got "
                f"{self.min_limit} <= {self.default_limit} <= {self.max_limit}"
            )

    def contains(self, value: int) -> bool:
        return self.min_limit <= value <= self.max_limit


@dataclass(frozen=True)
class PolicyConfig:
    max_symbols: int = 5  # punctuation + common symbols across the whole message

    def __post_init__(self) -> None:
        _check_range("max_symbols", self.max_symbols, 0, 50)


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        # Look for config.yaml relative to the project root
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}

    return AppConfig(
        llm=LLMConfig(**raw.get("llm", {})),
        limits=LimitsConfig(**raw.get("limits", {})),
        policy=PolicyConfig(**raw.get("policy", {})),
    )
