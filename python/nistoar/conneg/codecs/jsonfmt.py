"""
JSON support
"""
import json
from collections import OrderedDict

from .base import Codec
from ..exceptions import DecodeError, EncodeError

class JSONCodec(Codec):
    """
    encode and decode JSON.  Objects are decoded into OrderedDicts to preserve the order of
    properties as given by the client.

    An optional integer argument sets the indentation of the output; with ``None`` the output
    is compact.  The default is 2.
    """
    name = "JSON"

    def __init__(self, *args):
        super(JSONCodec, self).__init__(*args)
        self.indent = 2
        if args:
            if args[0] is not None and not isinstance(args[0], int):
                raise ValueError("JSON: indent argument not an integer: "+repr(args[0]))
            self.indent = args[0]

    def encode(self, entity) -> bytes:
        try:
            return json.dumps(entity, indent=self.indent).encode('utf-8')
        except (TypeError, ValueError) as ex:
            raise EncodeError("Unable to encode data as JSON: "+str(ex), cause=ex)

    def decode(self, body: bytes):
        try:
            return json.loads(self._text(body), object_pairs_hook=OrderedDict)
        except ValueError as ex:
            if isinstance(ex, DecodeError):
                raise
            raise DecodeError("Input not parseable as JSON: "+str(ex), cause=ex)
