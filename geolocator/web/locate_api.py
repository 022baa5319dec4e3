"""
Locate API - CherryPy endpoints for location scoring
====================================================

Provides REST endpoints for:
    - Most Likely Cell estimation for a token list
    - Loaded table information

All endpoints return JSON responses with standardized error handling.

Endpoints
---------
    GET /api/locate?tokens=eiffel,louvre[&window=0.3]
    GET /api/info

Success Response Format
-----------------------
    {
        "success": True,
        "data": {"cell": ..., "latitude": ..., "confidence": ...}
    }

A query whose tokens are all unknown succeeds with "data": null.
"""

import logging
from typing import Any, Dict, Optional

import cherrypy

from geolocator.model.errors import (
    ErrorCode,
    api_error,
    api_error_from_exception,
    api_success,
    missing_param,
)
from geolocator.model.scorer import score
from geolocator.model.settings import Config
from geolocator.model.table import TableBundle
from geolocator.model.validation import (
    ValidationError,
    validate_tokens,
    validate_window,
)

logger = logging.getLogger("LocateAPI")


class LocateAPI:
    """
    CherryPy-mounted API over one loaded TableBundle.

    The bundle is immutable, so CherryPy's worker threads share it
    without locking.
    """

    def __init__(self, bundle: Optional[TableBundle]):
        self.bundle = bundle

    def _require_bundle(self) -> Optional[Dict[str, Any]]:
        """None if a table is loaded, error response dict if not."""
        if self.bundle is None:
            return api_error(ErrorCode.TABLE_NOT_LOADED)
        return None

    @cherrypy.expose
    @cherrypy.tools.json_out()
    def locate(self, tokens=None, window=None):
        """
        GET /api/locate

        Query params:
            tokens: Comma or space separated tokens (may be repeated)
            window: Confidence half-width in degrees (default 0.3)

        Returns:
            CellEstimate dict, or null when no token is known
        """
        error = self._require_bundle()
        if error:
            return error

        if tokens is None or tokens == "":
            return missing_param("tokens")

        try:
            token_list = validate_tokens(tokens)
            window_val = validate_window(window)

            estimate = score(token_list, self.bundle, window_val)
            return api_success(
                estimate.to_dict() if estimate else None,
                tokens=len(token_list),
            )

        except ValidationError as e:
            return e.to_response()
        except Exception as e:
            logger.error(f"Error locating tokens: {e}")
            return api_error_from_exception(e)

    @cherrypy.expose
    @cherrypy.tools.json_out()
    def info(self):
        """
        GET /api/info

        Returns:
            Table summary as data, effective tunables as settings
        """
        error = self._require_bundle()
        if error:
            return error

        try:
            return api_success(self.bundle.to_dict(), settings=Config.to_dict())
        except Exception as e:
            logger.error(f"Error getting table info: {e}")
            return api_error_from_exception(e)


def start_server(bundle: TableBundle, host: str = "127.0.0.1", port: int = 8000) -> None:
    """Mount LocateAPI at /api and block serving requests."""
    cherrypy.config.update({
        "server.socket_host": host,
        "server.socket_port": int(port),
        "engine.autoreload.on": False,
        "log.screen": False,
    })
    cherrypy.tree.mount(LocateAPI(bundle), "/api")

    logger.info(f"Serving locate API on http://{host}:{port}/api")
    cherrypy.engine.start()
    cherrypy.engine.block()
