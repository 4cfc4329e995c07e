"""Method Catalog — explicit registration of every exposed MCP method.

Invariants:
    - Every method->handler mapping is visible here — no decorators, no auto-discovery
    - The returned registry is frozen: nothing is registered after startup
    - A duplicate name aborts startup (DuplicateMethodError), it never overwrites

Design Decisions:
    - Explicit list over getattr: adding a method requires editing this file
      (ADR: ExMA no convention-over-config)
    - Upstream methods declare their outbound method name (deepwiki -> query)
"""

import logging

from mcp_relay.config import Settings
from mcp_relay.core.domain_types import MethodCategory, MethodKind
from mcp_relay.core.method_registry import MethodRegistry, MethodSpec
from mcp_relay.services.local_methods import DemoHandlers, deepwiki_params

logger = logging.getLogger(__name__)


def build_method_specs(settings: Settings) -> list[MethodSpec]:
    """All method specs, in registration (and discovery) order."""
    demo = DemoHandlers(settings.flowgram_base_url)
    return [
        # Tools — local
        MethodSpec(
            "add", MethodKind.LOCAL, MethodCategory.TOOL,
            "Calculate the sum of two numbers", handler=demo.add,
        ),
        MethodSpec(
            "flowgram", MethodKind.LOCAL, MethodCategory.TOOL,
            "Retrieve flowgram knowledge", handler=demo.flowgram,
        ),

        # Prompts
        MethodSpec(
            "review-code", MethodKind.LOCAL, MethodCategory.PROMPT,
            "Ask for a review of a code snippet", handler=demo.review_code,
        ),

        # Resources
        MethodSpec(
            "filename", MethodKind.LOCAL, MethodCategory.RESOURCE,
            "Read the demo filename resource", handler=demo.filename,
        ),

        # Tools — relayed to the upstream MCP
        MethodSpec(
            "deepwiki", MethodKind.UPSTREAM, MethodCategory.TOOL,
            "Query DeepWiki through the upstream MCP server",
            upstream_method="query", build_params=deepwiki_params,
        ),
    ]


def build_registry(settings: Settings) -> MethodRegistry:
    """Register every spec and freeze. Called once from the app lifespan."""
    registry = MethodRegistry()
    for spec in build_method_specs(settings):
        registry.register(spec)
    registry.freeze()
    logger.info("Method registry built with %d methods", len(registry))
    return registry
