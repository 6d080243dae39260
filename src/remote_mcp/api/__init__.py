# HTTP surface for the authorization server.
# Created: 2026-10-18
#
# mount_routers(app) registers the OAuth, DCR, client management, metadata
# and MCP routers at the application root.

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

_ROUTERS: list[tuple[str, str, str]] = [
    # (module_path, attr_name, tag)
    ("remote_mcp.api.oauth2", "router", "OAuth2"),
    ("remote_mcp.api.dcr", "router", "Registration"),
    ("remote_mcp.api.clients", "router", "Clients"),
    ("remote_mcp.api.well_known", "router", "Metadata"),
    ("remote_mcp.api.mcp", "router", "MCP"),
]


def mount_routers(app: FastAPI) -> None:
    """Mount every domain router on *app*."""
    for module_path, attr_name, tag in _ROUTERS:
        mod = importlib.import_module(module_path)
        app.include_router(getattr(mod, attr_name))
        logger.debug("Mounted router: %s (%s)", module_path, tag)
