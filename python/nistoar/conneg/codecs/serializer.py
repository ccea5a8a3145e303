"""
A codec that delegates to one of several named serialization backends.  This allows a single
codec name ("Serializer") to be mapped to different content types, each with a different backend
given as the codec argument, e.g.::

    map:
      text/x-python:  [ Serializer, pprint ]
"""
import ast, json, pprint
from collections.abc import Mapping

import yaml

from .base import Codec
from ..exceptions import DecodeError, EncodeError

def _plain(data):
    # convert mapping and sequence subclasses (e.g. OrderedDict) to their builtin types
    if isinstance(data, Mapping):
        return dict((k, _plain(v)) for k, v in data.items())
    if isinstance(data, (list, tuple)):
        return [_plain(v) for v in data]
    return data

def _pprint_dump(data):
    return pprint.pformat(_plain(data), sort_dicts=False)

def _json_dump(data):
    return json.dumps(data, separators=(',', ':'))

def _yaml_dump(data):
    return yaml.safe_dump(_plain(data), default_flow_style=True, sort_keys=False)

BACKENDS = {
    "pprint": (_pprint_dump, ast.literal_eval),
    "json":   (_json_dump, json.loads),
    "yaml":   (_yaml_dump, yaml.safe_load)
}

class SerializerCodec(Codec):
    """
    a codec that serializes data using a backend named by its first argument.  Supported backends
    are ``pprint`` (Python literal syntax; the default), ``json``, and ``yaml``.
    """
    name = "Serializer"

    def __init__(self, *args):
        super(SerializerCodec, self).__init__(*args)
        self.backend = args[0] if args else "pprint"
        if self.backend not in BACKENDS:
            raise ValueError("Serializer: unsupported backend: "+str(self.backend))
        self._dump, self._load = BACKENDS[self.backend]

    def encode(self, entity) -> bytes:
        try:
            return self._dump(entity).encode('utf-8')
        except (TypeError, ValueError, yaml.YAMLError) as ex:
            raise EncodeError("Unable to serialize data via %s: %s" % (self.backend, str(ex)),
                              cause=ex)

    def decode(self, body: bytes):
        text = self._text(body)
        try:
            return self._load(text)
        except (SyntaxError, TypeError, ValueError, MemoryError, RecursionError,
                yaml.YAMLError) as ex:
            raise DecodeError("Input not parseable via %s: %s" % (self.backend, str(ex)), cause=ex)
