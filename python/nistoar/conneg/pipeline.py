"""
The deserialize/serialize pipeline that runs around an application's request handler.

A :py:class:`SerializationCore` is created once at start-up from a configuration (see
:py:class:`RESTConfig`).  For each request, a :py:class:`RequestContext` is created to hold the
request's inputs and the response being built up.  A :py:class:`Pipeline` then runs an ordered
list of "before" stages, the handler, and an ordered list of "after" stages over the context.
The default pipeline provided by :py:meth:`SerializationCore.pipeline` has one stage on each
side:

:py:meth:`~SerializationCore.deserialize`
    decodes the request body (for methods like POST and PUT) according to its Content-Type and
    attaches the result to the context as ``data``.  If the body cannot be decoded, the
    response status is set to an error (400 or 415) and the handler is skipped.
:py:meth:`~SerializationCore.serialize`
    encodes the entity stashed by the handler (under the configured ``stash_key``) into the
    response body using the format selected by content negotiation.

A host framework that does not use the pipeline can instead call :py:meth:`~SerializationCore.begin_request`
and :py:meth:`~SerializationCore.end_request` directly.
"""
import logging
from collections import namedtuple
from collections.abc import Mapping
from types import MappingProxyType
from typing import Callable, Iterable, List, Tuple

from .config import ConfigurationException, merge_config
from .registry import FormatRegistry, CodecRef
from .negotiate import Negotiator, NegotiationResult
from .codecs import DEFAULT_MAP
from .exceptions import (RESTError, UnsupportedMediaType, NotAcceptable, BadRequestBody,
                         DecodeError, EncodeError)
from .status import StatusResponse, error_entity
from .utils import get_header
from . import system

deflog = system.getSysLogger().getChild("pipeline")

DEF_STASH_KEY = "rest"
DEF_CONTENT_TYPE_PARAM = "content-type"
DEF_DESERIALIZE_METHODS = ["POST", "PUT", "PATCH", "OPTIONS", "DELETE"]
DEF_OVERRIDE_METHODS = ["GET", "HEAD"]

DEFAULT_CONFIG = {
    "stash_key": DEF_STASH_KEY,
    "map": DEFAULT_MAP,
    "default": None,
    "content_type_stash_key": None,
    "content_type_param": DEF_CONTENT_TYPE_PARAM,
    "deserialize_methods": DEF_DESERIALIZE_METHODS,
    "override_methods": DEF_OVERRIDE_METHODS
}

_RESTConfig = namedtuple("_RESTConfig", ["stash_key", "map", "default", "content_type_stash_key",
                                         "content_type_param", "deserialize_methods",
                                         "override_methods"])

class RESTConfig(_RESTConfig):
    """
    the immutable configuration of a :py:class:`SerializationCore`.  Instances are normally
    created via :py:meth:`from_config`, which layers a configuration dictionary over
    :py:data:`DEFAULT_CONFIG`.  The following parameters are supported:

    ``stash_key``
        the key in the request stash where the response entity is stored (default: "rest")
    ``map``
        a mapping of content types to codec references; a reference is either a codec name
        (e.g. "JSON") or a list giving the name followed by constructor arguments (e.g.
        ``["Serializer", "pprint"]``).  This map is merged with the default map; a type can be
        removed from the default map by setting its value to null.
    ``default``
        the content type to use when one cannot be determined from the request (default: none)
    ``content_type_stash_key``
        if set, the stash key where an application may set a content type that overrides
        content negotiation for the response
    ``content_type_param``
        the name of the query parameter a client can use to request a response content type
        (default: "content-type"); set to null to disable.
    ``deserialize_methods``
        the HTTP methods whose request bodies should be deserialized
    ``override_methods``
        the HTTP methods for which a content type override is honored (default: GET, HEAD)
    """
    __slots__ = ()

    @classmethod
    def from_config(cls, config: Mapping=None):
        """
        create an instance by merging the given configuration over the defaults
        :raises ConfigurationException:  if the configuration contains illegal values
        """
        if config is None:
            config = {}
        if not isinstance(config, Mapping):
            raise ConfigurationException("REST configuration is not a dictionary")
        if 'map' in config and not isinstance(config['map'], Mapping):
            raise ConfigurationException("map: not a dictionary", "map")
        cfg = merge_config(config, DEFAULT_CONFIG)

        ctmap = {}
        for ct, ref in cfg['map'].items():
            if ref is None:
                continue
            try:
                ctmap[ct.lower()] = CodecRef.from_config(ref)
            except ValueError as ex:
                raise ConfigurationException("map: %s: %s" % (ct, str(ex)), "map", ex)

        stash_key = cfg.get('stash_key')
        if not stash_key or not isinstance(stash_key, str):
            raise ConfigurationException("stash_key: must be a non-empty str", "stash_key")

        default = cfg.get('default')
        if default:
            default = default.lower()
            if default not in ctmap:
                raise ConfigurationException("default: content type not in map: "+default, "default")

        return cls(stash_key, MappingProxyType(ctmap), default or None,
                   cfg.get('content_type_stash_key') or None,
                   cfg.get('content_type_param') or None,
                   cls._methods(cfg, 'deserialize_methods'),
                   cls._methods(cfg, 'override_methods'))

    @staticmethod
    def _methods(cfg, param):
        meths = cfg.get(param) or []
        if isinstance(meths, str):
            meths = meths.split()
        if not all([isinstance(m, str) for m in meths]):
            raise ConfigurationException(param+": must be a list of HTTP method names", param)
        return frozenset([m.upper() for m in meths])

class RequestContext(object):
    """
    the state of a request being handled: the inputs from the request, the decoded request
    body (``data``), the request ``stash`` for passing data between the handler and pipeline
    stages, and the response being built up.
    """

    def __init__(self, method: str="GET", headers=None, params: Mapping=None, body: bytes=b"",
                 stash_key: str=DEF_STASH_KEY):
        """
        :param str method:   the HTTP request method
        :param headers:      the request headers as a dict or list of name-value pairs
        :param dict params:  the request's query parameters; each value may be a str or a list
                             of str (as returned by ``urllib.parse.parse_qs()``).
        :param bytes body:   the raw request body
        :param str stash_key:  the stash key where the response entity is stored
        """
        self.method = (method or "GET").upper()
        self.headers = headers or {}
        self.params = params or {}
        self.body = body or b""
        self.stash_key = stash_key
        self.stash = {}

        self.data = None
        self.request_format = None     # NegotiationResult for the request body
        self.response_format = None    # NegotiationResult for the response body
        self.content_type_override = None

        self.status = 200
        self.response_headers = []
        self.output = b""
        self.error = None
        self.short_circuit = False

    def header(self, name: str, default=None):
        """
        return the value of a request header (matched case-insensitively)
        """
        return get_header(self.headers, name, default)

    def param(self, name: str, default=None):
        """
        return the value of a query parameter.  If the parameter was given multiple times,
        the last value is returned.
        """
        val = self.params.get(name, default)
        if isinstance(val, (list, tuple)):
            val = val[-1] if val else default
        return val

    def set_header(self, name: str, value: str):
        """
        set a response header, replacing any previous value set for it
        """
        lname = name.lower()
        self.response_headers = [h for h in self.response_headers if h[0].lower() != lname]
        self.response_headers.append((name, value))

    def add_header(self, name: str, value: str):
        """
        add a response header, retaining any previous values set for it
        """
        self.response_headers.append((name, value))

    def response_header(self, name: str, default=None):
        return get_header(self.response_headers, name, default)

    def set_entity(self, entity):
        """
        set the entity to be serialized into the response body.  If None, the response will
        have no body.
        """
        self.stash[self.stash_key] = entity

    def get_entity(self):
        """
        return the entity to be serialized into the response, or None if there isn't one
        """
        return self.stash.get(self.stash_key)

    def fail(self, err: RESTError):
        """
        set the response to an error, and skip the rest of the request handling
        """
        self.error = err
        self.status = err.code
        self.set_entity(error_entity(err.message))
        self.short_circuit = True

Stage = Callable[[RequestContext], None]

class Pipeline(object):
    """
    an ordered set of stages run before and after a request handler.  A "before" stage may
    prevent the handler (and any remaining "before" stages) from running by setting the
    context's ``short_circuit`` flag; the "after" stages always run.
    """

    def __init__(self, before: Iterable[Stage]=None, after: Iterable[Stage]=None):
        self.before = list(before or [])
        self.after = list(after or [])

    def add_before(self, stage: Stage, first=False):
        """
        add a stage to run before the handler.  If first is True, it will run before all the
        other stages; otherwise, it will run after.
        """
        if first:
            self.before.insert(0, stage)
        else:
            self.before.append(stage)

    def add_after(self, stage: Stage, first=False):
        """
        add a stage to run after the handler.  If first is True, it will run before all the
        other stages; otherwise, it will run after.
        """
        if first:
            self.after.insert(0, stage)
        else:
            self.after.append(stage)

    def run(self, ctx: RequestContext, handler: Stage) -> RequestContext:
        """
        run the stages and the handler over the given request context
        """
        for stage in self.before:
            stage(ctx)
            if ctx.short_circuit:
                break
        if not ctx.short_circuit:
            handler(ctx)
        for stage in self.after:
            stage(ctx)
        return ctx

class SerializationCore(object):
    """
    the engine that deserializes request bodies and serializes response entities according to
    the formats selected via content negotiation.  An instance is configured once and can then be
    shared by all requests.
    """

    def __init__(self, config=None, log: logging.Logger=None):
        """
        :param config:  the configuration, given either as a :py:class:`RESTConfig` or as a
                        dictionary to be merged with the defaults.
        :param Logger log:  the Logger to send messages to
        :raises ConfigurationException:  if the configuration is illegal
        :raises CodecUnavailable:  if a codec named in the content type map cannot be loaded
        """
        if not isinstance(config, RESTConfig):
            config = RESTConfig.from_config(config)
        self.cfg = config
        self.log = log or deflog

        try:
            self.registry = FormatRegistry.from_map(config.map, config.default,
                                                    self.log.getChild("registry"))
        except ValueError as ex:
            raise ConfigurationException("map: "+str(ex), "map", ex)
        self.negotiator = Negotiator(self.registry, config.override_methods,
                                     self.log.getChild("negotiate"))

    @property
    def stash_key(self) -> str:
        return self.cfg.stash_key

    def new_context(self, method: str="GET", headers=None, params: Mapping=None,
                    body: bytes=b"") -> RequestContext:
        """
        create a context for a new request
        """
        return RequestContext(method, headers, params, body, self.cfg.stash_key)

    def pipeline(self, before: Iterable[Stage]=None, after: Iterable[Stage]=None) -> Pipeline:
        """
        return a new Pipeline that deserializes and serializes around a handler.
        :param before:  extra stages to run after deserialization but before the handler
        :param after:   extra stages to run after the handler but before serialization
        """
        return Pipeline([self.deserialize] + list(before or []),
                        list(after or []) + [self.serialize])

    def deserialize(self, ctx: RequestContext):
        """
        decode the request body and attach the result to the context as ``data``.  If the body
        cannot be decoded (or its type is not supported), the context is set to fail with an
        error response.  Nothing is done if the request method is not one configured for
        deserialization, or if the request includes neither a body nor a Content-Type.
        """
        if ctx.method not in self.cfg.deserialize_methods:
            return
        ctype = ctx.header("Content-Type")
        if not ctx.body and not ctype:
            return

        try:
            fmt = self.negotiator.select_deserializer(ctype)
        except UnsupportedMediaType as ex:
            self.log.info("Rejecting %s request: %s", ctx.method, str(ex))
            ctx.fail(ex)
            return
        ctx.request_format = fmt

        if not ctx.body:
            self.log.debug("Nothing to deserialize: request body is empty")
            return

        try:
            ctx.data = fmt.codec.decode(ctx.body)
        except DecodeError as ex:
            self.log.info("Failed to decode %s request body: %s", fmt.ctype, str(ex))
            ctx.fail(BadRequestBody("Content-Type %s had a problem with your request: %s" %
                                    (fmt.ctype, str(ex)), ex.code))
        except Exception as ex:
            self.log.warning("Unexpected error decoding %s request body: %s", fmt.ctype, str(ex))
            ctx.fail(BadRequestBody("Content-Type %s had a problem with your request" % fmt.ctype))

    def _override_type(self, ctx: RequestContext):
        if ctx.content_type_override:
            return ctx.content_type_override
        if self.cfg.content_type_stash_key and ctx.stash.get(self.cfg.content_type_stash_key):
            return ctx.stash.get(self.cfg.content_type_stash_key)
        if self.cfg.content_type_param:
            return ctx.param(self.cfg.content_type_param)
        return None

    def select_response_format(self, ctx: RequestContext) -> NegotiationResult:
        """
        select the format for the response to the given request
        :raises NotAcceptable:  if no format can be selected
        """
        return self.negotiator.select_serializer(ctx.method, ctx.header("Content-Type"),
                                                 ctx.header("Accept"), self._override_type(ctx))

    def encode_entity(self, ctx: RequestContext):
        """
        encode the stashed entity into the context's ``output``, setting the Content-Type
        response header accordingly.  If no entity is stashed, the output is set to empty.
        :raises NotAcceptable:  if no format can be selected for the response
        :raises EncodeError:    if the entity cannot be encoded into the selected format
        """
        entity = ctx.get_entity()
        if entity is None:
            ctx.output = b""
            return

        fmt = self.select_response_format(ctx)
        ctx.output = fmt.codec.encode(entity)
        ctx.response_format = fmt
        ctx.set_header("Content-Type", fmt.ctype)

    def _send_text_error(self, ctx: RequestContext, code: int, message: str):
        ctx.status = code
        ctx.set_header("Content-Type", "text/plain")
        ctx.output = (message + "\r\n").encode('utf-8')

    def _error_text(self, ctx: RequestContext) -> str:
        if ctx.error:
            return ctx.error.message
        entity = ctx.get_entity()
        if isinstance(entity, Mapping) and entity.get('error'):
            return str(entity['error'])
        return "Request failed with status %d" % ctx.status

    def serialize(self, ctx: RequestContext):
        """
        encode the entity stashed for the response into the response body.  The response
        status set by the handler is retained unless the entity cannot be serialized, in which
        case a short plain-text error response is set.
        """
        try:
            self.encode_entity(ctx)
        except NotAcceptable as ex:
            if ctx.status >= 400:
                # the request already failed; keep its status
                self._send_text_error(ctx, ctx.status, self._error_text(ctx))
            else:
                self.log.info("Unable to serialize response: %s", str(ex))
                self._send_text_error(ctx, ex.code, str(ex))
        except EncodeError as ex:
            self.log.error("Failed to serialize response entity: %s", str(ex))
            self._send_text_error(ctx, 500, "An error occurred while serializing the response")
        except Exception as ex:
            self.log.exception("Unexpected error serializing response entity: %s", str(ex))
            self._send_text_error(ctx, 500, "An error occurred while serializing the response")

    def begin_request(self, method: str, headers=None, params: Mapping=None,
                      body: bytes=b"") -> RequestContext:
        """
        start handling a request by deserializing its body.
        :return:  the context for the request, with the decoded body available as ``data``
                  (None if there was no body)
        :raises UnsupportedMediaType:  if the body's content type is not supported
        :raises BadRequestBody:        if the body could not be decoded
        """
        ctx = self.new_context(method, headers, params, body)
        self.deserialize(ctx)
        if ctx.error:
            raise ctx.error
        return ctx

    def end_request(self, status: int, entity, request_headers=None, params: Mapping=None,
                    override_type: str=None, method: str="GET") -> Tuple[int, List[Tuple[str,str]], bytes]:
        """
        finish handling a request by serializing the entity to return.
        :param int status:  the response status set by the application
        :param entity:      the entity to return; this can either be the data itself, None (for
                            no body), or a :py:class:`~nistoar.conneg.status.StatusResponse`
                            (whose status and headers will override the ``status`` argument).
        :param request_headers:  the headers from the request being responded to
        :param dict params: the request's query parameters
        :param str override_type:  a content type to use for the response (if the method allows it)
        :param str method:  the HTTP method of the request
        :return:  a 3-tuple giving the response status, the list of response headers, and the
                  response body
        :raises NotAcceptable:  if no format can be selected for the response
        """
        ctx = self.new_context(method, request_headers, params)
        ctx.status = status
        ctx.content_type_override = override_type
        if isinstance(entity, StatusResponse):
            entity.apply(ctx)
        else:
            ctx.set_entity(entity)

        try:
            self.encode_entity(ctx)
        except EncodeError as ex:
            self.log.error("Failed to serialize response entity: %s", str(ex))
            self._send_text_error(ctx, 500, "An error occurred while serializing the response")
        return (ctx.status, ctx.response_headers, ctx.output)

def configure(mapping: Mapping=None, default_type: str=None, stash_key: str=DEF_STASH_KEY,
              log: logging.Logger=None, **params) -> SerializationCore:
    """
    create a SerializationCore from the given settings
    :param dict mapping:     the content type map (merged with the default map)
    :param str default_type: the default content type
    :param str stash_key:    the stash key where response entities are stored
    :param Logger log:       the Logger to use
    :param params:           other configuration parameters (see :py:class:`RESTConfig`)
    """
    cfg = dict(params)
    if mapping is not None:
        cfg['map'] = mapping
    if default_type:
        cfg['default'] = default_type
    cfg['stash_key'] = stash_key
    return SerializationCore(cfg, log)
