"""
Content negotiation and serialization support for RESTful web services.

This package adds to a WSGI web service the ability to transparently deserialize request bodies
and serialize response entities in a format chosen via content negotiation.  It is organized into
the following modules:

``registry``
    the :py:class:`~nistoar.conneg.registry.FormatRegistry` that maps MIME content types to the
    codecs that handle them.
``negotiate``
    the :py:class:`~nistoar.conneg.negotiate.Negotiator` which selects a format for reading a
    request body or for writing a response based on the request's headers and parameters.
``codecs``
    the encoders/decoders for the supported wire formats (JSON, YAML, XML, etc.)
``pipeline``
    the :py:class:`~nistoar.conneg.pipeline.SerializationCore` which ties the above together into
    a deserialize step and a serialize step run around an application's request handler.
``status``
    helper functions that set an HTTP status and response entity in one call
``rest``
    a small WSGI framework (:py:class:`~nistoar.conneg.rest.RESTHandler`,
    :py:class:`~nistoar.conneg.rest.ServiceApp`) that applies the pipeline automatically.
``config``
    configuration loading and merging and logging set-up
"""
import logging

try:
    from .version import __version__
except ImportError:
    __version__ = "(unset)"

_CONNEGSYSNAME = "Content Negotiation Framework"
_CONNEGSYSABBREV = "conneg"

class ConnegSystem(object):
    """
    a description of this system that can be used to identify it in log messages and
    service responses.
    """
    def __init__(self, subsysname="", subsysabbrev=""):
        self.system_name = _CONNEGSYSNAME
        self.system_abbrev = _CONNEGSYSABBREV
        self.subsystem_name = subsysname
        self.subsystem_abbrev = subsysabbrev
        self.system_version = __version__

    def getSysLogger(self):
        """
        return the default Logger for this system
        """
        out = logging.getLogger(self.system_abbrev)
        if self.subsystem_abbrev:
            out = out.getChild(self.subsystem_abbrev)
        return out

system = ConnegSystem()

class ConnegException(Exception):
    """
    a general base class for exceptions raised by the content negotiation framework
    """
    pass

from .exceptions import *
from .registry import FormatRegistry, CodecRef
from .negotiate import Negotiator, NegotiationResult
from .pipeline import SerializationCore, RequestContext, Pipeline, configure
from .status import StatusResponse, StatusHelpers
