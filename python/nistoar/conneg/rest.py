"""
Framework classes for creating REST web interfaces via WSGI with automatic content negotiation.

The framework follows a resource-based model for handling requests: a :py:class:`Handler` handles
requests on a single resource (given by a path) with one function per supported HTTP method
(e.g. ``do_GET()``, ``do_PUT()``).  A :py:class:`ServiceApp` is a WSGI application that creates
a Handler for each request.

The :py:class:`RESTHandler` subclass adds transparent (de)serialization:
  *  before the method function is called, the request body is decoded according to its
     Content-Type and made available as :py:attr:`RESTHandler.data`;
  *  the method function sets the response status and entity, typically via one of the status
     helper methods (e.g. :py:meth:`~nistoar.conneg.status.StatusHelpers.status_ok`);
  *  after the method function returns, the entity is encoded into the response body in the
     format chosen via content negotiation.

For example::

    class ThingHandler(RESTHandler):

        def do_GET(self, path):
            return self.status_ok(entity={"some": "data"})

        def do_PUT(self, path):
            thing = self.svc.save(self.data)
            return self.status_created(location=self.svc.url_for(thing), entity=thing)

Requests for methods without a ``do_`` function result in a 405 response with an ``Allow``
header listing the supported methods; an OPTIONS request is answered automatically (with the
``Allow`` header) if there is no ``do_OPTIONS()`` function.
"""
import re
from abc import ABCMeta, abstractmethod
from functools import reduce
from http import HTTPStatus
from logging import Logger
from typing import Callable, List, Mapping
from urllib.parse import parse_qs

from wsgiref.headers import Headers

from .pipeline import SerializationCore, RequestContext, Pipeline
from .status import StatusHelpers, error_entity
from .exceptions import RESTError
from . import system

__all__ = ["Handler", "RESTHandler", "NotFoundHandler", "ServiceApp", "status_message",
           "request_headers"]

deflog = system.getSysLogger().getChild("rest")

def status_message(code: int) -> str:
    """
    return the standard reason phrase for an HTTP status code
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Unknown Status"

def request_headers(wsgienv: Mapping) -> List[tuple]:
    """
    extract the HTTP request headers from a WSGI environment as a list of name-value pairs
    """
    out = []
    for key, val in wsgienv.items():
        if key.startswith('HTTP_'):
            out.append(('-'.join([p.capitalize() for p in key[5:].split('_')]), val))
        elif key in ('CONTENT_TYPE', 'CONTENT_LENGTH') and val:
            out.append(('-'.join([p.capitalize() for p in key.split('_')]), val))
    return out

class Handler(object):
    """
    a default web request handler that also serves as a base class for the handlers specialized
    for particular resources.
    """

    def __init__(self, path: str, wsgienv: dict, start_resp: Callable, config: dict={},
                 log: Logger=None, app=None):
        self._path = path
        self._env = wsgienv
        self._start = start_resp
        self._hdr = Headers([])
        self._code = 0
        self._msg = "unknown status"
        self.cfg = config
        self.log = log or deflog
        self._app = app

        self._meth = self._env.get('REQUEST_METHOD', 'GET')

    @property
    def app(self):
        """
        the ServiceApp instance that created this handler
        """
        return self._app

    def send_error(self, code, message, content=None, contenttype=None, ashead=None, encoding='utf-8'):
        """
        respond to the client with an error of a given code and reason

        :param int code:        the HTTP response code to assign
        :param str message:     the briefly-stated reason to give for the error; this text
                                is sent as the message that accompanies the code in the HTTP
                                response header
        :param content:         Content to return as the body.
                                :type content: str or byte or a list of either
        :param str contenttype: the MIME type to associate with the returned content.
        :param bool ashead:     True if this is being sent as if in response to a HEAD request; if so,
                                the size and type of the content will be included in the headers, but
                                the actual content will be withheld.  If not provided, it will be set
                                to True if the originally requested method is "HEAD"; otherwise it is
                                False
        :param str encoding:    The encoding required to turn the content--when given as str--into bytes.
                                The default is 'utf-8'.
        """
        return self._send(code, message, content, contenttype, ashead, encoding)

    def send_ok(self, content=None, contenttype=None, message="OK", code=200, ashead=None, encoding='utf-8'):
        """
        respond to the client a response of success.  See :py:meth:`send_error` for a
        description of the parameters.
        """
        return self._send(code, message, content, contenttype, ashead, encoding)

    def _send(self, code, message, content, contenttype, ashead, encoding):
        if ashead is None:
            ashead = self._meth.upper() == "HEAD"
        self.set_response(code, message)

        if content:
            if not isinstance(content, list):
                content = [ content ]
            badtype = [type(c) for c in content if not isinstance(c, (str, bytes))]
            if badtype:
                raise TypeError("send_*: non-str/bytes found in content")
            if not contenttype:
                contenttype = (isinstance(content[0], str) and "text/plain") or "application/octet-stream"
        elif content is None or content == b"" or content == "":
            content = []
        # convert to bytes
        content = [(isinstance(c, str) and c.encode(encoding)) or c for c in content]

        if contenttype:
            self._hdr['Content-Type'] = contenttype
        if len(content) > 0:
            self._hdr['Content-Length'] = str(reduce(lambda x, t: x+len(t), content, 0))

        self.end_headers()
        return (not ashead and content) or []

    def add_header(self, name, value):
        """
        record a name-value pair to be sent as part of the response header.

        :param str name:  the name of the header field to cache
        :param str value: the value to give to the header field
        :raises UnicodeEncodeError:  if name or value includes Unicode characters (see PEP 333)
        """
        # HTTP does not support Unicode characters (see PEP 3333)
        e = "ISO-8859-1"
        (name.encode(e), value.encode(e))

        self._hdr.add_header(name, value)

    def set_response(self, code, message):
        """
        record the response code and message to be sent when the response is triggered to push out.
        """
        self._code = code
        self._msg = message

    def end_headers(self):
        """
        trigger the delivery of response's header to the web client.

        This method should be preceded with a call to :py:meth:`set_response`; afterward, the
        handler should return the body content (as an iterable).
        """
        status = "{0} {1}".format(str(self._code), self._msg)
        self._start(status, self._hdr.items(), None)

    def requested_method(self):
        """
        return the HTTP method requested by the client, taking into account an
        ``X-HTTP-Method-Override`` header
        """
        meth = self._meth
        if self._env.get('HTTP_X_HTTP_METHOD_OVERRIDE'):
            meth = self._env.get('HTTP_X_HTTP_METHOD_OVERRIDE')
        return meth.upper()

    def handle(self):
        """
        handle the request encapsulated in this Handler (at construction time).

        The default implementation looks for a Handler method of the form, `do_`METH(), where METH is
        is the HTTP method requested (e.g. GET, HEAD, etc.) and calls it with the requested URL path
        (as set at construction).  If the requested method is HEAD and there is no HEAD, `do_GET()`
        is called with a second argument set to True which should prevent the content from the
        path to be excluded.
        """
        meth = self.requested_method()
        meth_handler = 'do_'+meth

        try:
            if hasattr(self, meth_handler):
                return getattr(self, meth_handler)(self._path)
            elif meth == "HEAD" and hasattr(self, 'do_GET'):
                return self.do_GET(self._path, ashead=True)
            else:
                return self.send_error(405, meth + " not supported on this resource")
        except Exception as ex:
            self.log.exception("Unexpected failure: "+str(ex))
            return self.send_error(500, "Server failure")

class RESTHandler(Handler, StatusHelpers):
    """
    a Handler that automatically deserializes the request body and serializes the response
    entity using the formats selected via content negotiation.

    Subclasses implement a ``do_`` function for each supported HTTP method (e.g. ``do_GET()``);
    each takes the requested path as its argument and sets the response using the status helper
    methods (or, more directly, by setting :py:attr:`context`'s ``status`` and calling its
    ``set_entity()``).  The return value of these functions is ignored.  A :py:class:`RESTError`
    raised by a ``do_`` function is turned into an error response with the exception's status
    code.
    """

    def __init__(self, core: SerializationCore, path: str, wsgienv: dict, start_resp: Callable,
                 config: dict={}, log: Logger=None, app=None):
        """
        :param SerializationCore core:  the engine that will (de)serialize content
        :param str path:         the path to the requested resource
        :param dict wsgienv:     the WSGI request environment
        :param Callable start_resp:  the WSGI start_response function
        :param dict config:      handler-specific configuration
        :param Logger log:       the Logger to use
        :param ServiceApp app:   the app that created this handler
        """
        super(RESTHandler, self).__init__(path, wsgienv, start_resp, config, log, app)
        self.core = core
        self.context = core.new_context(self.requested_method(), request_headers(wsgienv),
                                        parse_qs(wsgienv.get('QUERY_STRING', '')),
                                        self._read_body())

    def _read_body(self) -> bytes:
        bodyin = self._env.get('wsgi.input')
        if bodyin is None:
            return b""
        clen = self._env.get('CONTENT_LENGTH')
        if clen:
            try:
                body = bodyin.read(int(clen))
            except ValueError:
                self.log.warning("Ignoring illegal Content-Length: %s", str(clen))
                body = b""
        elif clen is None:
            body = bodyin.read()
        else:
            body = b""
        if isinstance(body, str):
            body = body.encode('utf-8')
        return body

    @property
    def data(self):
        """
        the decoded request body, or None if the request did not include one
        """
        return self.context.data

    @property
    def stash(self) -> dict:
        """
        the data stash for the current request
        """
        return self.context.stash

    def allowed_methods(self) -> List[str]:
        """
        return the HTTP methods supported by this handler
        """
        meths = set([m[3:] for m in dir(self) if m.startswith('do_') and m[3:].isupper()])
        if 'GET' in meths:
            meths.add('HEAD')
        meths.add('OPTIONS')
        return sorted(meths)

    def before_stages(self) -> List[Callable]:
        """
        return extra pipeline stages to run after the request body is deserialized but before
        the method function is called.  This implementation returns an empty list.
        """
        return []

    def after_stages(self) -> List[Callable]:
        """
        return extra pipeline stages to run after the method function is called but before the
        response entity is serialized.  This implementation returns an empty list.
        """
        return []

    def get_pipeline(self) -> Pipeline:
        return self.core.pipeline(self.before_stages(), self.after_stages())

    def handle(self):
        """
        handle the request by running the (de)serialization pipeline around the ``do_``
        function for the requested method, and return the response body.
        """
        ctx = self.context
        try:
            self.get_pipeline().run(ctx, self._dispatch)
            for name, value in ctx.response_headers:
                if name.lower() != "content-type":
                    self.add_header(name, value)
        except Exception as ex:
            self.log.exception("Unexpected failure: "+str(ex))
            self._hdr = Headers([])
            return self.send_error(500, "Server failure")

        return self.send_ok(ctx.output, ctx.response_header("Content-Type"),
                            status_message(ctx.status), ctx.status, ctx.method == "HEAD")

    def _dispatch(self, ctx: RequestContext):
        meth = ctx.method
        meth_handler = 'do_'+meth
        try:
            if hasattr(self, meth_handler):
                getattr(self, meth_handler)(self._path)
            elif meth == "HEAD" and hasattr(self, 'do_GET'):
                self.do_GET(self._path)
            elif meth == "OPTIONS":
                ctx.status = 200
                ctx.set_header("Allow", ", ".join(self.allowed_methods()))
                ctx.set_entity(None)
            else:
                self.not_implemented(meth)
        except RESTError as ex:
            self.log.info("%s %s: %d %s", meth, self._path, ex.code, ex.message)
            ctx.fail(ex)
        except Exception as ex:
            self.log.exception("Unexpected failure handling %s %s: %s", meth, self._path, str(ex))
            ctx.status = 500
            ctx.set_entity(error_entity("Server failure"))

    def not_implemented(self, meth: str):
        """
        set the response for a request on an unsupported method: 405 with an ``Allow`` header.
        Subclasses may override this to provide different behavior.
        """
        ctx = self.context
        ctx.status = 405
        ctx.set_header("Allow", ", ".join(self.allowed_methods()))
        ctx.set_entity(error_entity(meth + " not supported on this resource"))

class NotFoundHandler(RESTHandler):
    """
    a request Handler that always returns 404 Not Found.  This can be used in :py:class:`ServiceApp`
    implementations that create a handler (via :py:meth:`~ServiceApp.create_handler`) based on the
    requested path.  If the path is not recognized, an instance of this class can be returned.
    """
    def do_GET(self, path):
        return self.status_not_found(message="Not Found: "+(path or '/'))

    def not_implemented(self, meth: str):
        return self.do_GET(self._path)

class ServiceApp(metaclass=ABCMeta):
    """
    a base class WSGI implementation that creates a :py:class:`RESTHandler` for each request.
    The app's configuration provides the content negotiation parameters (see
    :py:class:`~nistoar.conneg.pipeline.RESTConfig`) as well as the following:

    ``base_ep``
        the base URL path for the service's resources; requests on paths outside of this base
        will result in a 404 response.
    """

    def __init__(self, appname: str, log: Logger=None, config: Mapping=None):
        """
        :param str appname:  a name for the service
        :param Logger  log:  the Logger this app should use to record log messages
        :param dict config:  the app configuration
        :raises ConfigurationException:  if the configuration is illegal
        """
        if config is None:
            config = {}
        self.cfg = config
        self._name = appname
        self.log = log or deflog.getChild(appname)

        self.core = SerializationCore(config, self.log)

        self.base_ep = None
        base_ep = (self.cfg.get("base_ep") or "").strip('/')
        if base_ep:
            self.base_ep = '/%s/' % base_ep

    @property
    def name(self):
        """
        a name for the service provided by this ServiceApp instance (set at construction time).
        """
        return self._name

    @abstractmethod
    def create_handler(self, env: dict, start_resp: Callable, path: str) -> Handler:
        """
        return a handler instance to handle a particular request to a path
        :param Mapping env:  the WSGI environment containing the request
        :param Callable start_resp:  the start_resp function to use initiate the response
        :param str path:     the path to the resource being requested, relative to the base
                             endpoint
        """
        raise NotImplementedError()

    def handle_path_request(self, env: dict, start_resp: Callable, path: str=None):
        """
        respond to a request on a particular (relative) URL path.
        """
        if path is None:
            path = re.sub(r'/+', '/', env.get('PATH_INFO', '/'))
            if self.base_ep:
                if path.startswith(self.base_ep):
                    path = path[len(self.base_ep):]
                elif self.base_ep == path+'/':
                    path = ''
                else:
                    return NotFoundHandler(self.core, path, env, start_resp, log=self.log,
                                           app=self).handle()
            path = path.strip('/')
        return self.create_handler(env, start_resp, path).handle()

    def __call__(self, env, start_resp):
        return self.handle_path_request(env, start_resp)
