"""Tool-call dispatch.

Every tool call, whether it arrives over HTTP or MCP stdio, goes through
ToolDispatcher.dispatch:

1. Look the tool up in the registry
2. Validate arguments against its input model
3. Check the caller's permission set
4. Resolve the target brand
5. Run the handler under a timeout
6. Wrap the result (or the error) in the tool-call envelope
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from mcp.types import Tool
from pydantic import ValidationError

from colater_mcp.errors import (
    BrandNotSpecifiedError,
    ColaterError,
    InsufficientPermissionsError,
    InternalError,
    UpstreamUnavailableError,
    ValidationFailedError,
)
from colater_mcp.services.auth import AuthenticatedIdentity
from colater_mcp.tool_defs import TOOL_SPECS, ToolInput, ToolSpec

logger = structlog.get_logger()


@dataclass(frozen=True)
class ToolContext:
    """Per-call state handed to a handler."""

    tool: str
    brand_id: str | None
    identity: AuthenticatedIdentity | None = None


ToolHandler = Callable[[ToolContext, ToolInput], Awaitable[Any]]


def success_envelope(result: Any) -> dict[str, Any]:
    return {
        "content": [
            {"type": "text", "text": json.dumps(result, ensure_ascii=False, default=str)}
        ]
    }


def error_envelope(error: ColaterError) -> dict[str, Any]:
    return {
        "content": [
            {"type": "text", "text": json.dumps(error.to_dict(), ensure_ascii=False, default=str)}
        ],
        "isError": True,
    }


class ToolDispatcher:
    """Validates, authorizes and runs tool calls."""

    def __init__(
        self,
        handlers: Mapping[str, ToolHandler],
        *,
        default_brand_id: str | None = None,
        timeout: float = 10.0,
        specs: Mapping[str, ToolSpec] = TOOL_SPECS,
    ) -> None:
        self._handlers = dict(handlers)
        self._default_brand_id = default_brand_id
        self._timeout = timeout
        self._specs = specs
        self._log = logger.bind(component="dispatcher")

    def list_tools(self) -> list[Tool]:
        return [spec.to_tool() for spec in self._specs.values()]

    async def dispatch(
        self,
        name: str,
        arguments: dict[str, Any] | None,
        identity: AuthenticatedIdentity | None = None,
    ) -> dict[str, Any]:
        """Run one tool call and return its envelope. Never raises."""
        spec = self._specs.get(name)
        handler = self._handlers.get(name)
        if spec is None or handler is None:
            self._log.error("tool.unknown", tool=name)
            return error_envelope(InternalError(f"Unknown tool: {name}"))

        try:
            params = spec.input_model.model_validate(arguments or {})
            context = self._authorize(spec, params, identity)
        except ValidationError as e:
            error = ValidationFailedError(
                f"Invalid arguments for {name}",
                details={"errors": e.errors(include_url=False, include_context=False)},
            )
            self._log.info("tool.invalid", tool=name, errors=e.error_count())
            return error_envelope(error)
        except ColaterError as e:
            self._log.info("tool.rejected", tool=name, code=e.code)
            return error_envelope(e)

        self._log.info("tool.call", tool=name, brand_id=context.brand_id)
        try:
            async with asyncio.timeout(self._timeout):
                result = await handler(context, params)
        except TimeoutError:
            self._log.warning("tool.timeout", tool=name, timeout=self._timeout)
            return error_envelope(
                UpstreamUnavailableError(
                    f"Upstream call timed out after {self._timeout:g}s",
                    details={"timeout": self._timeout},
                )
            )
        except ColaterError as e:
            self._log.info("tool.error", tool=name, code=e.code, message=e.message)
            return error_envelope(e)
        except Exception:
            self._log.exception("tool.unexpected_error", tool=name)
            return error_envelope(InternalError())

        return success_envelope(result)

    def _authorize(
        self,
        spec: ToolSpec,
        params: ToolInput,
        identity: AuthenticatedIdentity | None,
    ) -> ToolContext:
        if identity is not None and not identity.allows(spec.permission):
            raise InsufficientPermissionsError(
                f"API key lacks '{spec.permission}' permission",
                details={"required": spec.permission},
            )

        if not spec.brand_scoped:
            return ToolContext(tool=spec.name, brand_id=None, identity=identity)

        brand_id = (
            getattr(params, "brand_id", None)
            or (identity.brand_id if identity is not None else None)
            or self._default_brand_id
        )
        if not brand_id:
            raise BrandNotSpecifiedError()
        if identity is not None and identity.is_brand_scoped and brand_id != identity.brand_id:
            raise InsufficientPermissionsError(
                "API key is not valid for this brand",
                details={"brand_id": brand_id},
            )
        return ToolContext(tool=spec.name, brand_id=brand_id, identity=identity)
