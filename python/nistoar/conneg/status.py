"""
Helpers for setting the HTTP status of a response together with the entity to return.

Each helper function returns a :py:class:`StatusResponse` which can be applied to a
:py:class:`~nistoar.conneg.pipeline.RequestContext` (via :py:meth:`StatusResponse.apply`); the
entity is then serialized into the response body by the serialize step of the pipeline.  The
:py:class:`StatusHelpers` mixin provides the same helpers as methods of a request handler,
applying the result to the handler's current request.

The helpers check their arguments strictly: a missing or ill-typed argument is a programming
error and results in an immediate :py:class:`~nistoar.conneg.exceptions.ArgumentShapeError`.

Error helpers (e.g. :py:func:`bad_request`) set the entity to an error object of the form,
``{"error": message}``.
"""
from collections.abc import Mapping
from typing import List, Tuple

from .exceptions import ArgumentShapeError

__all__ = [ "StatusResponse", "StatusHelpers", "ok", "created", "accepted", "no_content",
            "multiple_choices", "bad_request", "not_found", "gone", "error_entity" ]

class _NotSet(object):
    def __repr__(self):
        return "(not set)"
_NOTSET = _NotSet()

def error_entity(message: str) -> dict:
    """
    return an entity describing an error to the client
    """
    return {"error": message}

class StatusResponse(object):
    """
    an HTTP status to respond with, along with any extra response headers and the entity to
    serialize as the response body (None, if there should be no body).
    """

    def __init__(self, code: int, entity=None, headers: List[Tuple[str, str]]=None):
        self.code = code
        self.entity = entity
        self.headers = list(headers) if headers else []

    def header(self, name, default=None):
        """
        return the value of the named header attached to this response
        """
        name = name.lower()
        for h in self.headers:
            if h[0].lower() == name:
                return h[1]
        return default

    def apply(self, ctx):
        """
        set the status, headers, and entity of this response onto the given request context
        :param RequestContext ctx:  the context of the request being responded to
        """
        ctx.status = self.code
        for name, value in self.headers:
            ctx.set_header(name, value)
        ctx.set_entity(self.entity)
        return ctx

    def __eq__(self, other):
        return isinstance(other, StatusResponse) and self.code == other.code and \
               self.entity == other.entity and self.headers == other.headers

    def __repr__(self):
        return "StatusResponse(%d, %r, %r)" % (self.code, self.entity, self.headers)

def _require(helper, **args):
    missing = [k for k, v in args.items() if v is _NOTSET]
    if missing:
        raise ArgumentShapeError("%s(): missing required argument(s): %s" %
                                 (helper, ", ".join(missing)))

def _message(helper, message):
    _require(helper, message=message)
    if not isinstance(message, str):
        raise ArgumentShapeError("%s(): message must be a str, not %s" %
                                 (helper, type(message).__name__))
    return message

def _location(helper, location):
    # a location can be a string or an object representing a URI
    if isinstance(location, str):
        return location
    if location is None or isinstance(location, (Mapping, list, tuple, set, bytes, int, float)):
        raise ArgumentShapeError("%s(): location must be a str or URI object, not %s" %
                                 (helper, type(location).__name__))
    if hasattr(location, 'geturl'):
        return location.geturl()
    return str(location)

def ok(entity=_NOTSET) -> StatusResponse:
    """
    return a 200 (OK) response with the given entity
    """
    _require("ok", entity=entity)
    return StatusResponse(200, entity)

def created(location=_NOTSET, entity=None) -> StatusResponse:
    """
    return a 201 (Created) response.  The location of the created resource is returned via the
    Location header.
    :param location:  the URL of the new resource, given as a str or a URI object (e.g. the
                      result of ``urllib.parse.urlparse()``).
    :param entity:    the optional entity to return
    """
    _require("created", location=location)
    return StatusResponse(201, entity, [("Location", _location("created", location))])

def accepted(entity=_NOTSET) -> StatusResponse:
    """
    return a 202 (Accepted) response with the given entity
    """
    _require("accepted", entity=entity)
    return StatusResponse(202, entity)

def no_content() -> StatusResponse:
    """
    return a 204 (No Content) response; any entity previously set will be cleared.
    """
    return StatusResponse(204, None)

def multiple_choices(entity=_NOTSET, location=_NOTSET) -> StatusResponse:
    """
    return a 300 (Multiple Choices) response.  The entity should list the possible choices;
    the optional location gives the preferred one; if it is None, no Location header is set.
    """
    _require("multiple_choices", entity=entity)
    hdrs = []
    if location is not _NOTSET and location is not None:
        hdrs.append(("Location", _location("multiple_choices", location)))
    return StatusResponse(300, entity, hdrs)

def bad_request(message=_NOTSET) -> StatusResponse:
    """
    return a 400 (Bad Request) response with an error entity containing the given message
    """
    return StatusResponse(400, error_entity(_message("bad_request", message)))

def not_found(message=_NOTSET) -> StatusResponse:
    """
    return a 404 (Not Found) response with an error entity containing the given message
    """
    return StatusResponse(404, error_entity(_message("not_found", message)))

def gone(message=_NOTSET) -> StatusResponse:
    """
    return a 410 (Gone) response with an error entity containing the given message
    """
    return StatusResponse(410, error_entity(_message("gone", message)))

class StatusHelpers(object):
    """
    a request handler mixin that provides the status helper functions as methods.  Each applies
    the response to the handler's current request context, given by its ``context`` attribute.
    """

    def _apply_status(self, resp: StatusResponse) -> StatusResponse:
        ctx = getattr(self, 'context', None)
        if ctx is None:
            raise RuntimeError("StatusHelpers: no request context available")
        log = getattr(self, 'log', None)
        if log and resp.code >= 400 and isinstance(resp.entity, Mapping):
            log.debug("Status %d: %s", resp.code, resp.entity.get('error'))
        resp.apply(ctx)
        return resp

    def status_ok(self, entity=_NOTSET):
        return self._apply_status(ok(entity))

    def status_created(self, location=_NOTSET, entity=None):
        return self._apply_status(created(location, entity))

    def status_accepted(self, entity=_NOTSET):
        return self._apply_status(accepted(entity))

    def status_no_content(self):
        return self._apply_status(no_content())

    def status_multiple_choices(self, entity=_NOTSET, location=_NOTSET):
        return self._apply_status(multiple_choices(entity, location))

    def status_bad_request(self, message=_NOTSET):
        return self._apply_status(bad_request(message))

    def status_not_found(self, message=_NOTSET):
        return self._apply_status(not_found(message))

    def status_gone(self, message=_NOTSET):
        return self._apply_status(gone(message))
