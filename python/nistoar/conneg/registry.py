"""
The registry of content types supported by a service and the codecs that handle them
"""
import logging
from collections import namedtuple, OrderedDict
from collections.abc import Mapping
from typing import List

from .utils import media_type
from .codecs import load_codec, Codec
from . import system

deflog = system.getSysLogger().getChild("registry")

class CodecRef(namedtuple("CodecRef", ["name", "args"])):
    """
    a reference to a codec: its registered name and the arguments to construct it with
    """
    __slots__ = ()

    def __new__(cls, name: str, args=()):
        return super(CodecRef, cls).__new__(cls, name, tuple(args))

    @classmethod
    def from_config(cls, value):
        """
        create a CodecRef from its configuration form: either a codec name or a list whose first
        element is the codec name and the rest are its constructor arguments.
        :raises ValueError:  if the value is not in one of these forms
        """
        if isinstance(value, CodecRef):
            return value
        if isinstance(value, str) and value:
            return cls(value)
        if isinstance(value, (list, tuple)) and len(value) > 0 and \
           isinstance(value[0], str) and value[0]:
            return cls(value[0], value[1:])
        raise ValueError("Not a recognized codec reference: "+repr(value))

class FormatRegistry(object):
    """
    a mapping of MIME content types to the codecs that read and write them.

    Content types are matched case-insensitively and without regard to parameters (e.g.
    "; charset=utf-8").  No wildcard matching is done at this level; that is the job of the
    :py:class:`~nistoar.conneg.negotiate.Negotiator`.

    A registry is built up at start-up via :py:meth:`register` and :py:meth:`set_default` and
    then frozen via :py:meth:`freeze`, which loads all the codecs.  Afterward, it can be safely
    shared by concurrently handled requests.
    """

    def __init__(self, log: logging.Logger=None):
        """
        create an instance with no content types registered as supported
        """
        self._lu = OrderedDict()
        self._codecs = {}
        self._deftype = None
        self._frozen = False
        self.log = log or deflog

    @classmethod
    def from_map(cls, ctmap: Mapping, default: str=None, log: logging.Logger=None):
        """
        create a frozen registry from a content type map
        :param dict ctmap:    a mapping of content types to codec references (in either the
                              form of :py:class:`CodecRef` or its configuration form)
        :param str  default:  the content type to use as the default, or None for no default
        :raises ValueError:   if the map contains an illegal codec reference or the default is
                              not among the registered types.
        :raises CodecUnavailable:  if one of the referenced codecs cannot be loaded
        """
        out = cls(log)
        for ct, ref in ctmap.items():
            out.register(ct, CodecRef.from_config(ref))
        if default:
            out.set_default(default)
        out.freeze()
        return out

    def _check_frozen(self):
        if self._frozen:
            raise RuntimeError("FormatRegistry: attempt to alter frozen registry")

    def register(self, ctype: str, codecref: CodecRef, asdefault: bool=False,
                 raiseonconflict: bool=False):
        """
        add support for a content type.
        :param str ctype:  the MIME content type to support
        :param CodecRef codecref:  the codec that should handle content of this type
        :param bool asdefault:  if True, make this type the default one
        :param bool raiseonconflict:  if False (default), a previous registration of the content
                     type will be silently replaced.  If True, a ValueError will be raised instead.
        """
        self._check_frozen()
        key = media_type(ctype)
        if not key or '/' not in key:
            raise ValueError("Not a legal content type: "+repr(ctype))
        if raiseonconflict and key in self._lu:
            raise ValueError("Content type already registered: "+key)
        if not isinstance(codecref, CodecRef):
            codecref = CodecRef.from_config(codecref)

        self._lu[key] = codecref
        if asdefault:
            self._deftype = key

    def set_default(self, ctype: str):
        """
        set the content type to fall back on when one cannot be determined from a request
        :raises ValueError:  if the given type is not registered
        """
        self._check_frozen()
        key = media_type(ctype)
        if key not in self._lu:
            raise ValueError("Default content type is not registered: "+str(ctype))
        self._deftype = key

    @property
    def default_type(self) -> str:
        """
        the default content type or None if no default was set
        """
        return self._deftype

    @property
    def frozen(self) -> bool:
        return self._frozen

    def types(self) -> List[str]:
        """
        return the registered content types in the order they were registered
        """
        return list(self._lu.keys())

    def resolve(self, ctype: str) -> CodecRef:
        """
        return the reference to the codec registered for the given content type, or None if the
        type is not registered.
        """
        if not ctype:
            return None
        return self._lu.get(media_type(ctype))

    def codec(self, ctype: str) -> Codec:
        """
        return the (loaded) codec instance for the given content type or None if the type is not
        registered.  This is only available after the registry is frozen.
        """
        if not self._frozen:
            raise RuntimeError("FormatRegistry: codecs not loaded until frozen")
        if not ctype:
            return None
        return self._codecs.get(media_type(ctype))

    def freeze(self):
        """
        load all of the registered codecs and disallow further changes to the registry.
        :raises CodecUnavailable:  if one of the referenced codecs cannot be loaded
        """
        if self._frozen:
            return
        loaded = {}
        for ct, ref in self._lu.items():
            key = (ref.name, repr(ref.args))
            if key not in loaded:
                loaded[key] = load_codec(ref)
            self._codecs[ct] = loaded[key]
        self._frozen = True
        self.log.debug("Registered content types: %s", ", ".join(self._lu.keys()))

    def __contains__(self, ctype):
        return self.resolve(ctype) is not None

    def __len__(self):
        return len(self._lu)
