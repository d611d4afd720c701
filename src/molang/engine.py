from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Optional

from .compiler import ClosureCompiler, Compiler, NameAllocator
from .config import EngineConfig
from .evaluator import eval_expr
from .parser_rd import parse_source
from .runtime import Context
from .tree import Expression
from .types import Value

logger = logging.getLogger(__name__)

__all__ = ["Engine"]


class Engine:
    """Parse, cache and evaluate MoLang source under one configuration.

    Parsed trees are immutable, so the cache hands the same tree to every
    caller. The cache is guarded by a lock and an engine may be shared across
    threads; contexts may not.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.names = NameAllocator()
        self._cache: OrderedDict[str, Expression] = OrderedDict()
        self._lock = threading.Lock()

    def parse(self, source: str) -> Expression:
        size = self.config.cache_size

        if size <= 0:
            return parse_source(source)

        with self._lock:
            tree = self._cache.get(source)
            if tree is not None:
                self._cache.move_to_end(source)
                return tree

        # Parse outside the lock; a concurrent miss on the same source
        # parses twice and stores equal trees.
        tree = parse_source(source)
        logger.debug(f"Parsed and cached {source!r}")

        with self._lock:
            self._cache[source] = tree
            self._cache.move_to_end(source)
            while len(self._cache) > size:
                evicted, _ = self._cache.popitem(last=False)
                logger.debug(f"Evicted {evicted!r} from parse cache")

        return tree

    def evaluate(self, tree: Expression, context: Optional[Context] = None) -> Value:
        return eval_expr(tree, context, self.config)

    def eval(self, source: str, context: Optional[Context] = None) -> Value:
        """Parse (through the cache) and evaluate `source`."""
        return eval_expr(self.parse(source), context, self.config)

    def compile(
        self,
        tree: Expression,
        name: str,
        compiler: Optional[Compiler] = None,
        names: Optional[NameAllocator] = None,
    ):
        compiler = compiler or ClosureCompiler(self.config)
        return compiler.compile(tree, name, names or self.names)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def cached(self, source: str) -> bool:
        with self._lock:
            return source in self._cache
