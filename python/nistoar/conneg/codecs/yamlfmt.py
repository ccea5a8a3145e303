"""
YAML support, including the rendering of YAML as an HTML page
"""
import re, html
from collections import OrderedDict

import yaml

from .base import Codec, EncodeOnlyCodec
from ..exceptions import DecodeError, EncodeError

class _EntityYAMLDumper(yaml.SafeDumper):
    """
    a safe dumper that writes OrderedDicts as plain mappings in their given order
    """
    def represent_ordered_dict(self, data):
        return self.represent_mapping("tag:yaml.org,2002:map", data.items())

_EntityYAMLDumper.add_representer(OrderedDict, _EntityYAMLDumper.represent_ordered_dict)

def dump_yaml(entity) -> str:
    """
    serialize the given data into a YAML document
    """
    try:
        return yaml.dump(entity, Dumper=_EntityYAMLDumper, default_flow_style=False,
                         allow_unicode=True, sort_keys=False)
    except yaml.YAMLError as ex:
        raise EncodeError("Unable to encode data as YAML: "+str(ex), cause=ex)

class YAMLCodec(Codec):
    """
    encode and decode YAML.  Only plain data types are supported; decoding uses the safe loader.
    """
    name = "YAML"

    def encode(self, entity) -> bytes:
        return dump_yaml(entity).encode('utf-8')

    def decode(self, body: bytes):
        try:
            return yaml.safe_load(self._text(body))
        except yaml.YAMLError as ex:
            raise DecodeError("Input not parseable as YAML: "+str(ex), cause=ex)

_url_re = re.compile(r'(https?://[^\s<>"\']+)')

class YAMLHTMLCodec(EncodeOnlyCodec):
    """
    render data as YAML within a simple HTML page, suitable for viewing responses from a web
    browser.  URLs appearing in the data are turned into links.  An optional argument gives
    the page title.
    """
    name = "YAMLHTML"

    _page = """<!DOCTYPE html>
<html>
  <head>
    <title>{title}</title>
  </head>
  <body>
<pre>{content}</pre>
  </body>
</html>
"""

    def __init__(self, *args):
        super(YAMLHTMLCodec, self).__init__(*args)
        self.title = str(args[0]) if args else "Response"

    def encode(self, entity) -> bytes:
        content = _url_re.sub(r'<a href="\1">\1</a>', html.escape(dump_yaml(entity), quote=False))
        return self._page.format(title=html.escape(self.title), content=content).encode('utf-8')
