"""Maps domain exceptions to HTTP responses."""

import falcon
import falcon.asgi
import structlog

from pharmaguard.domain.exceptions import (
    CyclicHierarchy,
    NotFound,
    PermissionDenied,
    PermissionResolutionError,
    UpstreamUnavailable,
    ValidationError,
)

log = structlog.get_logger(__name__)


async def _permission_denied(req, resp, ex, params) -> None:
    resp.status = falcon.HTTP_403
    resp.media = {"error": "Permission denied", "detail": str(ex)}


async def _not_found(req, resp, ex, params) -> None:
    resp.status = falcon.HTTP_404
    resp.media = {"error": " ".join(str(a) for a in ex.args) + " not found"}


async def _validation_error(req, resp, ex, params) -> None:
    resp.status = falcon.HTTP_400
    resp.media = {"error": str(ex)}


async def _cyclic_hierarchy(req, resp, ex, params) -> None:
    resp.status = falcon.HTTP_409
    resp.media = {"error": str(ex)}


async def _resolution_error(req, resp, ex, params) -> None:
    log.error("permission_resolution_error", path=req.path, user_id=ex.user_id, action=ex.action)
    resp.status = falcon.HTTP_500
    resp.media = {"error": "Permission could not be resolved"}


async def _upstream_unavailable(req, resp, ex, params) -> None:
    log.warning("upstream_unavailable", path=req.path, error=str(ex))
    resp.status = falcon.HTTP_503
    resp.media = {"error": "Service temporarily unavailable"}


async def _unexpected(req, resp, ex, params) -> None:
    log.error("unhandled_exception", path=req.path, method=req.method, exc_info=ex)
    resp.status = falcon.HTTP_500
    resp.media = {"title": "500 Internal Server Error"}


def register_error_handlers(app: falcon.asgi.App) -> None:
    """Falcon picks the most specific handler along the exception's MRO."""
    app.add_error_handler(Exception, _unexpected)
    app.add_error_handler(PermissionDenied, _permission_denied)
    app.add_error_handler(NotFound, _not_found)
    app.add_error_handler(ValidationError, _validation_error)
    app.add_error_handler(CyclicHierarchy, _cyclic_hierarchy)
    app.add_error_handler(PermissionResolutionError, _resolution_error)
    app.add_error_handler(UpstreamUnavailable, _upstream_unavailable)
