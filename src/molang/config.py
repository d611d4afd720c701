from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class EngineConfig:
    """Evaluation policy chosen by the host.

    strict:          unbound identifiers, unresolved properties and invalid
                     indexes raise ExpressionError instead of evaluating to
                     `missing_value`.
    missing_value:   what a missing binding evaluates to in lenient mode.
    strict_division: dividing by 0.0 raises ExpressionError instead of
                     yielding 0.0.
    cache_size:      parsed trees kept by Engine.parse; 0 disables the cache.
    """

    strict: bool = False
    missing_value: float = 0.0
    strict_division: bool = False
    cache_size: int = 128

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
        """Build a config from MOLANG_* environment variables."""
        env = os.environ if environ is None else environ
        base = cls()

        missing = env.get("MOLANG_MISSING_VALUE")
        cache = env.get("MOLANG_CACHE_SIZE")

        try:
            return cls(
                strict=_env_flag(env, "MOLANG_STRICT", base.strict),
                missing_value=float(missing) if missing is not None else base.missing_value,
                strict_division=_env_flag(env, "MOLANG_STRICT_DIVISION", base.strict_division),
                cache_size=int(cache) if cache is not None else base.cache_size,
            )
        except ValueError as exc:
            raise ValueError(f"Invalid MOLANG_* environment setting: {exc}") from exc

    def evolve(self, **changes: object) -> EngineConfig:
        return replace(self, **changes)


DEFAULT_CONFIG = EngineConfig()


def debug_py_trace_enabled() -> bool:
    """Whether the CLI and REPL should print Python tracebacks on errors."""
    return _env_flag(os.environ, "MOLANG_DEBUG_PY_TRACE", False)
