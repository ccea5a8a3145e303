"""
Exceptions raised while negotiating formats and (de)serializing content.

The exceptions derived from :py:class:`RESTError` represent failures that are expected to be
returned to the web client as an HTTP error response; each carries the HTTP status ``code`` and
``reason`` to respond with.  :py:class:`CodecUnavailable` and :py:class:`ArgumentShapeError`,
in contrast, indicate mistakes in the service's set-up or code and are not meant to be caught
per-request.
"""
from . import ConnegException
from .config import ConfigurationException

__all__ = [ "RESTError", "UnsupportedMediaType", "NotAcceptable", "BadRequestBody",
            "CodecUnavailable", "ArgumentShapeError", "CodecError", "DecodeError", "EncodeError",
            "ConfigurationException" ]

class RESTError(ConnegException):
    """
    an error that should result in an HTTP error response to the client
    """
    code = 500
    reason = "Internal Server Error"

    def __init__(self, message=None, code=None, reason=None):
        if code is not None:
            self.code = code
        if reason:
            self.reason = reason
        if not message:
            message = self.reason
        super(RESTError, self).__init__(message)

    @property
    def message(self):
        return self.args[0] if self.args else self.reason

class UnsupportedMediaType(RESTError):
    """
    the content type of the request body is not supported (and no default is configured).
    This results in a 415 response.
    """
    code = 415
    reason = "Unsupported Media Type"

class NotAcceptable(RESTError):
    """
    no format for the response could be found that is both supported and acceptable to the
    client.  This results in a 406 response.
    """
    code = 406
    reason = "Not Acceptable"

class BadRequestBody(RESTError):
    """
    the request body could not be decoded according to its content type.  This results in a
    400 response unless the codec indicated a more specific code.
    """
    code = 400
    reason = "Bad Request"

class CodecUnavailable(ConfigurationException):
    """
    the codec named for a content type cannot be loaded or instantiated
    """
    def __init__(self, codecname, message=None, cause=None):
        if not message:
            message = "Codec unavailable: " + str(codecname)
            if cause:
                message += ": " + str(cause)
        super(CodecUnavailable, self).__init__(message, cause=cause)
        self.codec = codecname

class ArgumentShapeError(TypeError):
    """
    a status helper was called with missing or ill-typed arguments
    """
    pass

class CodecError(ValueError):
    """
    a base class for failures encoding or decoding content.  A codec may set ``code`` to
    a specific HTTP status to respond with.
    """
    def __init__(self, message, code=None, cause=None):
        super(CodecError, self).__init__(message)
        self.code = code
        self.cause = cause

class DecodeError(CodecError):
    """
    the input could not be decoded into structured data
    """
    pass

class EncodeError(CodecError):
    """
    the given data could not be encoded into the target format
    """
    pass
