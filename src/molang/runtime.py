from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .config import DEFAULT_CONFIG, EngineConfig
from .types import (
    MISSING,
    ErrorKind,
    ExpressionError,
    HostFn,
    MolangFunction,
    Namespace,
    Value,
    _Missing,
    ensure_value,
)

__all__ = ["Context", "Frame", "Resolver"]

Resolver = Callable[[str], Any]

TEMP = "temp"
VARIABLE = "variable"
QUERY = "query"


class Context:
    """Host-owned bindings consulted while evaluating.

    Lookup order for a bare identifier: root bindings, namespaces (`temp`,
    `variable` and any host namespace, with the short aliases `t` and `v`),
    the receiver as `query`/`q`, then the fallback resolver.

    A context is not safe for concurrent evaluation: assignments write into
    it. Give each thread its own context or lock around evaluation.
    """

    ALIASES = {"t": TEMP, "v": VARIABLE, "q": QUERY}

    def __init__(
        self,
        bindings: Optional[Mapping[str, Any]] = None,
        *,
        receiver: Any = None,
        resolver: Optional[Resolver] = None,
    ):
        self.vars: Dict[str, Value] = {}
        self.namespaces: Dict[str, Namespace] = {
            TEMP: Namespace(TEMP),
            VARIABLE: Namespace(VARIABLE),
        }
        self.receiver = receiver
        self.resolver = resolver

        if bindings:
            for name, val in bindings.items():
                self.define(name, val)

    # ---------------- host registration ----------------

    def define(self, name: str, val: Any) -> None:
        """Bind `name`. A dotted name such as `math.pi` binds inside a namespace."""
        head, _, member = name.partition(".")

        if not member:
            self.vars[name] = ensure_value(val)
            return

        if "." in member:
            raise ValueError(f"Binding names nest one level only: {name!r}")

        self.namespace(head, create=True)[member] = val

    def register_function(self, name: str, fn: HostFn, arity: Optional[int] = None) -> MolangFunction:
        """Register a host function taking the ordered argument list."""
        wrapped = MolangFunction(fn=fn, arity=arity, name=name)
        self.define(name, wrapped)
        return wrapped

    def namespace(self, name: str, *, create: bool = False) -> Namespace:
        canonical = self.ALIASES.get(name, name)
        ns = self.namespaces.get(canonical)

        if ns is None:
            if not create:
                raise KeyError(name)
            # Host namespaces are fixed: scripts may update members, not add them.
            ns = Namespace(canonical, creatable=False)
            self.namespaces[canonical] = ns

        return ns

    # ---------------- evaluator access ----------------

    def lookup(self, name: str) -> Union[Value, _Missing]:
        if name in self.vars:
            return self.vars[name]

        canonical = self.ALIASES.get(name, name)

        ns = self.namespaces.get(canonical)
        if ns is not None:
            return ns

        if canonical == QUERY and self.receiver is not None:
            return self.receiver

        if self.resolver is not None:
            found = self.resolver(name)
            if found is not None:
                return ensure_value(found)

        return MISSING

    def assign(self, name: str, val: Value) -> None:
        self.vars[name] = val

    def begin_evaluation(self) -> None:
        """Reset per-evaluation scratch state (the `temp` namespace)."""
        self.namespaces[TEMP].clear()

    # ---------------- convenience ----------------

    def get(self, name: str, default: Any = None) -> Any:
        """Read a binding by plain or dotted name, e.g. `x` or `variable.x`."""
        head, _, member = name.partition(".")
        found = self.lookup(head)

        if member and isinstance(found, Namespace):
            return found.get(member, default)

        if member or found is MISSING:
            return default

        return found

    def __contains__(self, name: str) -> bool:
        return self.get(name, MISSING) is not MISSING

    def __repr__(self) -> str:
        return f"Context(vars={self.vars!r}, namespaces={list(self.namespaces)!r})"


@dataclass
class Frame:
    """State for one evaluation call: the host context plus the policy in force."""

    context: Context
    config: EngineConfig = DEFAULT_CONFIG

    def missing(self, kind: ErrorKind, message: str, offset: Optional[int] = None) -> Value:
        """Apply the missing-binding policy."""
        if self.config.strict:
            raise ExpressionError(kind, message, offset)

        return self.config.missing_value
