"""
a simple mapping between structured data and XML.

Data is mapped to XML in the following way:
  *  the whole entity is wrapped in a root element (``opt`` by default)
  *  each key in a dictionary becomes a child element with that name
  *  a list becomes an element with a ``type="list"`` attribute whose ``item`` children hold
     the list's values
  *  a string becomes the text content of its element; other scalars are marked with a ``type``
     attribute (``int``, ``float``, ``bool``, or ``null`` for None) so that they decode back
     into the same values.  An empty dictionary is marked with ``type="map"``.

Documents produced by other clients need not carry ``type`` attributes.  When decoding an
unmarked element, repeated child elements become lists, attributes become keys, and elements
without children or attributes become their text.
"""
import re
import xml.etree.ElementTree as ET
from collections import OrderedDict
from collections.abc import Mapping

from .base import Codec
from ..exceptions import DecodeError, EncodeError

_name_re = re.compile(r'^[A-Za-z_][\w\.\-]*$')
LIST_ITEM_TAG = "item"
TYPE_ATTR = "type"

def _to_bool(text):
    if text == "true":
        return True
    if text == "false":
        return False
    raise ValueError("not a boolean value: "+text)

_scalar_types = {
    "int":   int,
    "float": float,
    "bool":  _to_bool
}
_types = ("map", "list", "null") + tuple(_scalar_types.keys())

class XMLCodec(Codec):
    """
    encode and decode XML.  An optional argument sets the name of the root element.
    """
    name = "XML"

    def __init__(self, *args):
        super(XMLCodec, self).__init__(*args)
        self.root = "opt"
        if args:
            if not isinstance(args[0], str) or not _name_re.match(args[0]):
                raise ValueError("XML: root argument is not a legal element name: "+repr(args[0]))
            self.root = args[0]

    def encode(self, entity) -> bytes:
        root = ET.Element(self.root)
        self._fill(root, entity)
        return ET.tostring(root, encoding='utf-8', xml_declaration=True)

    def _fill(self, elem, value):
        if isinstance(value, Mapping):
            if not value:
                elem.set(TYPE_ATTR, "map")
            for key, val in value.items():
                key = str(key)
                if not _name_re.match(key):
                    raise EncodeError("XML: key is not a legal element name: "+key)
                self._fill(ET.SubElement(elem, key), val)
        elif isinstance(value, (list, tuple)):
            elem.set(TYPE_ATTR, "list")
            for item in value:
                self._fill(ET.SubElement(elem, LIST_ITEM_TAG), item)
        elif value is None:
            elem.set(TYPE_ATTR, "null")
        elif isinstance(value, bool):
            elem.set(TYPE_ATTR, "bool")
            elem.text = "true" if value else "false"
        elif isinstance(value, int):
            elem.set(TYPE_ATTR, "int")
            elem.text = str(value)
        elif isinstance(value, float):
            elem.set(TYPE_ATTR, "float")
            elem.text = repr(value)
        else:
            elem.text = str(value)

    def decode(self, body: bytes):
        try:
            root = ET.fromstring(body)
        except ET.ParseError as ex:
            raise DecodeError("Input not parseable as XML: "+str(ex), cause=ex)
        return self._extract(root)

    def _extract(self, elem):
        attrs = OrderedDict(elem.attrib.items())
        typ = attrs.get(TYPE_ATTR)
        if typ in _types:
            del attrs[TYPE_ATTR]
        else:
            typ = None

        if typ == "null":
            return None
        if typ == "list":
            return [self._extract(child) for child in elem]
        if typ in _scalar_types:
            text = (elem.text or '').strip()
            try:
                return _scalar_types[typ](text)
            except ValueError as ex:
                raise DecodeError("XML: %s: bad %s value: %s" % (elem.tag, typ, text), cause=ex)

        if typ is None and len(elem) == 0 and not attrs:
            return elem.text or ''

        out = attrs
        for child in elem:
            val = self._extract(child)
            if child.tag in out:
                if not isinstance(out[child.tag], list):
                    out[child.tag] = [ out[child.tag] ]
                out[child.tag].append(val)
            else:
                out[child.tag] = val
        return out
