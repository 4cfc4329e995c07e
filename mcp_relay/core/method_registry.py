"""Method Registry — explicit, closed-at-init mapping from method name to handler.

Invariants:
    - Every name maps to exactly one MethodSpec; duplicates are rejected, never overwritten
    - After freeze() the mapping is read-only and no entry is added, removed, or mutated
    - lookup() never invokes a handler, it only resolves one

Design Decisions:
    - Explicit register() calls over decorators/auto-discovery: every mapping visible in
      method_catalog.py (ADR: ExMA no convention-over-config)
    - MappingProxyType after freeze: concurrent requests share it without locks
    - Upstream methods carry no handler, only the outbound method name; the Dispatcher owns the relay
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from mcp_relay.core.domain_types import ContentResult, MethodCategory, MethodKind
from mcp_relay.core.errors import (
    DuplicateMethodError, MethodNotFoundError, RegistryFrozenError,
)

LocalHandler = Callable[[dict[str, Any]], Awaitable[ContentResult]]
ParamsBuilder = Callable[[dict[str, Any]], dict[str, Any]]


@dataclass(frozen=True)
class MethodSpec:
    """One registry entry."""
    name: str
    kind: MethodKind
    category: MethodCategory = MethodCategory.TOOL
    description: str = ""
    handler: LocalHandler | None = None
    upstream_method: str | None = None
    # Validates and reshapes inbound params into the upstream params object.
    build_params: ParamsBuilder | None = None

    def __post_init__(self):
        if self.kind is MethodKind.LOCAL and self.handler is None:
            raise ValueError(f"Local method '{self.name}' needs a handler")
        if self.kind is MethodKind.UPSTREAM and not self.upstream_method:
            raise ValueError(f"Upstream method '{self.name}' needs upstream_method")

    @property
    def is_upstream(self) -> bool:
        return self.kind is MethodKind.UPSTREAM

    def describe(self) -> dict:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "category": self.category.value,
            "description": self.description,
        }


class MethodRegistry:
    """Routes method name -> MethodSpec. Built once at startup, then frozen."""

    def __init__(self):
        self._pending: dict[str, MethodSpec] = {}
        self._methods: Mapping[str, MethodSpec] = self._pending
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, spec: MethodSpec) -> None:
        if self._frozen:
            raise RegistryFrozenError(spec.name)
        if spec.name in self._methods:
            raise DuplicateMethodError(spec.name)
        self._pending[spec.name] = spec

    def freeze(self) -> "MethodRegistry":
        if not self._frozen:
            self._methods = MappingProxyType(dict(self._pending))
            self._frozen = True
        return self

    def lookup(self, name: str) -> MethodSpec:
        spec = self._methods.get(name)
        if spec is None:
            raise MethodNotFoundError(name)
        return spec

    def list_methods(self) -> list[MethodSpec]:
        return list(self._methods.values())

    def __contains__(self, name: object) -> bool:
        return name in self._methods

    def __len__(self) -> int:
        return len(self._methods)
