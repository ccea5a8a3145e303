"""
Selection of the format for reading a request body and for writing a response.

For reading a request body (see :py:meth:`Negotiator.select_deserializer`), the format is
determined solely by the request's Content-Type header, falling back to the configured default
type.

For writing a response (see :py:meth:`Negotiator.select_serializer`), the format is chosen from
the following sources, in order of precedence:

  1.  an explicit override value (e.g. from the ``content-type`` query parameter), honored only
      for safe, read-only methods (GET and HEAD by default)
  2.  the request's Content-Type header (i.e. respond in the format the client sent)
  3.  the Accept header, ranked by q-value
  4.  the default type

The first of these that names a supported format wins.
"""
import logging
from collections import namedtuple
from typing import Iterable

from .registry import FormatRegistry
from .utils import media_type, order_accepts, acceptable
from .exceptions import UnsupportedMediaType, NotAcceptable
from . import system

deflog = system.getSysLogger().getChild("negotiate")

DEF_OVERRIDE_METHODS = ("GET", "HEAD")

NegotiationResult = namedtuple("NegotiationResult", ["ctype", "ref", "codec"])
NegotiationResult.__doc__ = "the content type selected, its codec reference, and the loaded codec"

class Negotiator(object):
    """
    a class that selects the format to use to deserialize a request body or to serialize a
    response entity based on a :py:class:`~nistoar.conneg.registry.FormatRegistry`.
    """

    def __init__(self, registry: FormatRegistry, override_methods: Iterable[str]=DEF_OVERRIDE_METHODS,
                 log: logging.Logger=None):
        """
        :param FormatRegistry registry:  the (frozen) registry of supported types
        :param override_methods:  the HTTP methods for which an explicit format override will be
                                  honored when selecting the response format.
        :param Logger log:  the Logger to send debug messages to
        """
        if not registry.frozen:
            registry.freeze()
        self.registry = registry
        self.override_methods = frozenset([m.upper() for m in override_methods])
        self.log = log or deflog

    def _decodable(self, ctype: str) -> NegotiationResult:
        codec = self.registry.codec(ctype)
        if codec and codec.can_decode:
            return NegotiationResult(media_type(ctype), self.registry.resolve(ctype), codec)
        return None

    def _encodable(self, ctype: str) -> NegotiationResult:
        codec = self.registry.codec(ctype)
        if codec and codec.can_encode:
            return NegotiationResult(media_type(ctype), self.registry.resolve(ctype), codec)
        return None

    def _match_wildcard(self, wildcard: str) -> NegotiationResult:
        # wildcard has the form, "type/*"; the default type is preferred
        cands = self.registry.types()
        deftype = self.registry.default_type
        if deftype:
            cands.remove(deftype)
            cands.insert(0, deftype)

        while cands:
            ct = acceptable(wildcard, cands)
            if not ct:
                break
            out = self._encodable(ct)
            if out:
                return out
            cands = cands[cands.index(ct)+1:]
        return None

    def select_deserializer(self, ctype: str=None) -> NegotiationResult:
        """
        select the codec for decoding a request body with the given content type.
        :param str ctype:  the value of the request's Content-Type header (may be None)
        :raises UnsupportedMediaType:  if the type is not supported and no default is configured
        """
        out = None
        if ctype:
            out = self._decodable(ctype)
        if not out and self.registry.default_type:
            out = self._decodable(self.registry.default_type)
            if out and self.log.isEnabledFor(logging.DEBUG):
                self.log.debug("Reading request as default type, %s (Content-Type: %s)",
                               out.ctype, str(ctype))

        if not out:
            if ctype:
                raise UnsupportedMediaType("Content-Type %s is not supported" % media_type(ctype))
            raise UnsupportedMediaType("Content-Type must be specified")
        return out

    def select_serializer(self, method: str="GET", request_ctype: str=None, accept=None,
                          override: str=None) -> NegotiationResult:
        """
        select the codec for encoding a response entity.
        :param str method:   the HTTP method of the request being responded to
        :param str request_ctype:  the value of the request's Content-Type header, if given
        :param accept:       the value(s) of the request's Accept header, if given
                             :type accept: str or list of str
        :param str override: a content type explicitly requested (e.g. via a query parameter)
                             or set by the application; this is ignored for methods other than
                             those configured as ``override_methods``.
        :raises NotAcceptable:  if none of the sources name a supported type and no default is
                             configured
        """
        if override:
            if method.upper() in self.override_methods:
                out = self._encodable(override)
                if out:
                    self.log.debug("Response type set via override: %s", out.ctype)
                    return out
            else:
                self.log.debug("Ignoring content type override for %s request", method)

        if request_ctype:
            out = self._encodable(request_ctype)
            if out:
                return out

        if accept:
            for mt in order_accepts(accept):
                if mt in ('*', '*/*'):
                    continue
                if mt.endswith('/*'):
                    out = self._match_wildcard(mt)
                else:
                    out = self._encodable(mt)
                if out:
                    self.log.debug("Response type selected via Accept: %s", out.ctype)
                    return out

        if self.registry.default_type:
            out = self._encodable(self.registry.default_type)
            if out:
                return out

        raise NotAcceptable("No supported response format is acceptable")
