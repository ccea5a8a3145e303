"""
The base class for codecs that convert structured data to and from a wire format.
"""
from abc import ABCMeta, abstractmethod

from ..exceptions import DecodeError

class Codec(metaclass=ABCMeta):
    """
    an encoder/decoder pair for a particular wire format.

    A codec instance is created once, when the service is configured, and is then shared by all
    requests; thus, implementations must not hold per-request state.  Subclasses that only support
    one direction should set :py:attr:`can_decode` or :py:attr:`can_encode` to False.
    """

    #: the name that this codec is registered under
    name = None

    #: True if this codec can turn an entity into bytes
    can_encode = True

    #: True if this codec can turn bytes into an entity
    can_decode = True

    def __init__(self, *args):
        """
        instantiate the codec.  The arguments come from the codec reference in the content type
        map; their meaning is specific to each codec implementation.
        """
        self.args = args

    @abstractmethod
    def encode(self, entity) -> bytes:
        """
        serialize the given data into bytes.
        :raises EncodeError:  if the data cannot be represented in this format
        """
        raise NotImplementedError()

    @abstractmethod
    def decode(self, body: bytes):
        """
        deserialize the given bytes into structured data.
        :raises DecodeError:  if the bytes are not legal for this format
        """
        raise NotImplementedError()

    def _text(self, body, encoding='utf-8') -> str:
        if isinstance(body, str):
            return body
        try:
            return body.decode(encoding)
        except UnicodeDecodeError as ex:
            raise DecodeError("Input is not %s-encoded text: %s" % (encoding, str(ex)), cause=ex)

    def __repr__(self):
        args = ", ".join([repr(a) for a in self.args])
        return "%s(%s)" % (type(self).__name__, args)

class EncodeOnlyCodec(Codec):
    """
    a Codec for a format that is only supported for output (e.g. HTML)
    """
    can_decode = False

    def decode(self, body: bytes):
        raise DecodeError("%s format is not supported as input" % (self.name or "this"), code=415)
