"""
Codecs for converting structured data to and from the supported wire formats.

A codec is referred to in the content type map by name, optionally with arguments for its
constructor (see :py:class:`~nistoar.conneg.registry.CodecRef`).  The built-in codecs are
registered under the following names:

``JSON``
    JSON (:py:class:`~nistoar.conneg.codecs.jsonfmt.JSONCodec`)
``YAML``
    YAML (:py:class:`~nistoar.conneg.codecs.yamlfmt.YAMLCodec`)
``YAMLHTML``
    YAML rendered within an HTML page; output only
    (:py:class:`~nistoar.conneg.codecs.yamlfmt.YAMLHTMLCodec`)
``XML``
    a simple element mapping (:py:class:`~nistoar.conneg.codecs.xmlfmt.XMLCodec`)
``Serializer``
    a pluggable set of backends (:py:class:`~nistoar.conneg.codecs.serializer.SerializerCodec`)

Other codecs can be made available either via :py:func:`register_codec` or by referring to the
codec class by its fully-qualified (dotted) name.
"""
import importlib, inspect

from .base import Codec, EncodeOnlyCodec
from .jsonfmt import JSONCodec
from .yamlfmt import YAMLCodec, YAMLHTMLCodec
from .xmlfmt import XMLCodec
from .serializer import SerializerCodec
from ..exceptions import CodecUnavailable
from .. import system

log = system.getSysLogger().getChild("codecs")

_codecs = {}

def register_codec(name: str, codeccls):
    """
    make a Codec class available under a given name.  A previous registration with the same name
    is replaced.
    """
    if not inspect.isclass(codeccls) or not issubclass(codeccls, Codec):
        raise TypeError("register_codec(): not a Codec class: "+repr(codeccls))
    _codecs[name] = codeccls

for _cls in (JSONCodec, YAMLCodec, YAMLHTMLCodec, XMLCodec, SerializerCodec):
    register_codec(_cls.name, _cls)

def _import_codec_class(name: str):
    if '.' not in name:
        raise CodecUnavailable(name, "Codec not recognized: "+name)
    modname, clsname = name.rsplit('.', 1)
    try:
        mod = importlib.import_module(modname)
    except ImportError as ex:
        raise CodecUnavailable(name, cause=ex)
    cls = getattr(mod, clsname, None)
    if not inspect.isclass(cls) or not issubclass(cls, Codec):
        raise CodecUnavailable(name, "Not a Codec class: "+name)
    return cls

def load_codec(ref) -> Codec:
    """
    instantiate the codec referred to by the given codec reference.
    :param CodecRef ref:  the reference naming the codec and its constructor arguments
    :raises CodecUnavailable:  if the codec is not recognized, cannot be imported, or rejects
                               the given arguments
    """
    cls = _codecs.get(ref.name)
    if not cls:
        cls = _import_codec_class(ref.name)

    try:
        out = cls(*ref.args)
    except (TypeError, ValueError) as ex:
        raise CodecUnavailable(ref.name, cause=ex)
    log.debug("Loaded codec %r", out)
    return out

DEFAULT_MAP = {
    'text/html':          'YAMLHTML',
    'text/xml':           'XML',
    'application/xml':    'XML',
    'text/x-yaml':        'YAML',
    'application/x-yaml': 'YAML',
    'application/json':   'JSON',
    'text/x-json':        'JSON',
    'text/x-python':      ['Serializer', 'pprint'],
}
