"""Compiler collaborator.

A `Compiler` turns a parsed tree into a named, reusable artifact. Names are
drawn from a `NameAllocator` the caller owns, so two engines (or two test
runs) never share a counter.

`ClosureCompiler` is the in-process implementation: it resolves the
evaluator handler for every node once, up front, and returns a
`CompiledExpression` that evaluates without re-dispatching on node kind.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from typing_extensions import Protocol

from .config import DEFAULT_CONFIG, EngineConfig
from .evaluator import Handler, attach_location, handler_for, run_guarded
from .runtime import Context, Frame
from .tree import Expression, walk
from .types import MolangError, Value

__all__ = ["Compiler", "NameAllocator", "CompiledExpression", "ClosureCompiler"]


@dataclass
class NameAllocator:
    """Hands out unique artifact names: `name`, then `name$1`, `name$2`, ..."""
    taken: Dict[str, int] = field(default_factory=dict)

    def allocate(self, name: str) -> str:
        count = self.taken.get(name)

        if count is None:
            self.taken[name] = 0
            return name

        while True:
            count += 1
            candidate = f"{name}${count}"
            if candidate not in self.taken:
                break

        self.taken[name] = count
        self.taken[candidate] = 0
        return candidate

    def __contains__(self, name: str) -> bool:
        return name in self.taken


class Compiler(Protocol):
    def compile(self, tree: Expression, name: str, names: NameAllocator) -> Any:
        ...


@dataclass(frozen=True)
class CompiledExpression:
    name: str
    tree: Expression
    entry: Callable[[Expression, Frame], Value] = field(repr=False)
    config: EngineConfig = DEFAULT_CONFIG

    def __call__(self, context: Optional[Context] = None, config: Optional[EngineConfig] = None) -> Value:
        if context is None:
            context = Context()

        frame = Frame(context, config or self.config)
        context.begin_evaluation()

        return run_guarded(self.entry, self.tree, frame)


class ClosureCompiler:
    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config

    def compile(self, tree: Expression, name: str, names: NameAllocator) -> CompiledExpression:
        table: Dict[int, Handler] = {id(node): handler_for(node) for node in walk(tree)}

        def run(node: Expression, frame: Frame) -> Value:
            try:
                return table[id(node)](node, frame, run)
            except MolangError as e:
                attach_location(e, node)
                raise

        return CompiledExpression(names.allocate(name), tree, run, self.config)
