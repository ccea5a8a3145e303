import os, sys, pdb, json, logging
import unittest as test

from nistoar.conneg import negotiate as neg
from nistoar.conneg.registry import FormatRegistry, CodecRef
from nistoar.conneg.codecs import JSONCodec, YAMLCodec, YAMLHTMLCodec, register_codec
from nistoar.conneg.exceptions import UnsupportedMediaType, NotAcceptable

class ReadOnlyJSONCodec(JSONCodec):
    name = "ReadOnlyJSON"
    can_encode = False

register_codec(ReadOnlyJSONCodec.name, ReadOnlyJSONCodec)

ctmap = {
    "application/json": "JSON",
    "text/x-yaml":      "YAML",
    "text/html":        "YAMLHTML",
    "text/xml":         "XML"
}

class TestNegotiator(test.TestCase):

    def setUp(self):
        self.reg = FormatRegistry.from_map(ctmap)
        self.neg = neg.Negotiator(self.reg)

    def test_ctor(self):
        self.assertIs(self.neg.registry, self.reg)
        self.assertEqual(self.neg.override_methods, frozenset(["GET", "HEAD"]))

        r = FormatRegistry()
        r.register("application/json", "JSON")
        n = neg.Negotiator(r, ["get"])
        self.assertTrue(r.frozen)
        self.assertEqual(n.override_methods, frozenset(["GET"]))

    def test_select_deserializer(self):
        fmt = self.neg.select_deserializer("application/json")
        self.assertEqual(fmt.ctype, "application/json")
        self.assertEqual(fmt.ref, CodecRef("JSON"))
        self.assertIsInstance(fmt.codec, JSONCodec)

        fmt = self.neg.select_deserializer("Text/X-YAML; charset=utf-8")
        self.assertEqual(fmt.ctype, "text/x-yaml")
        self.assertIsInstance(fmt.codec, YAMLCodec)

    def test_select_deserializer_unsupported(self):
        with self.assertRaises(UnsupportedMediaType) as cm:
            self.neg.select_deserializer("application/x-goober")
        self.assertEqual(cm.exception.code, 415)
        self.assertIn("application/x-goober", cm.exception.message)

        with self.assertRaises(UnsupportedMediaType):
            self.neg.select_deserializer(None)

        # an output-only format cannot be used to read a request
        with self.assertRaises(UnsupportedMediaType):
            self.neg.select_deserializer("text/html")

    def test_select_deserializer_default(self):
        self.neg = neg.Negotiator(FormatRegistry.from_map(ctmap, "application/json"))
        fmt = self.neg.select_deserializer("application/x-goober")
        self.assertEqual(fmt.ctype, "application/json")
        fmt = self.neg.select_deserializer(None)
        self.assertEqual(fmt.ctype, "application/json")
        fmt = self.neg.select_deserializer("text/html")
        self.assertEqual(fmt.ctype, "application/json")
        fmt = self.neg.select_deserializer("text/x-yaml")
        self.assertEqual(fmt.ctype, "text/x-yaml")

    def test_select_serializer_accept(self):
        fmt = self.neg.select_serializer("GET", accept="application/json;q=0.5, text/x-yaml;q=0.9")
        self.assertEqual(fmt.ctype, "text/x-yaml")
        self.assertIsInstance(fmt.codec, YAMLCodec)

        fmt = self.neg.select_serializer("GET", accept="application/x-goober, application/json;q=0.1")
        self.assertEqual(fmt.ctype, "application/json")

        fmt = self.neg.select_serializer("GET", accept=["text/html", "application/json"])
        self.assertEqual(fmt.ctype, "text/html")
        self.assertIsInstance(fmt.codec, YAMLHTMLCodec)

        # refused types are not selected
        with self.assertRaises(NotAcceptable):
            self.neg.select_serializer("GET", accept="application/json;q=0, image/png")

    def test_select_serializer_wildcard(self):
        fmt = self.neg.select_serializer("GET", accept="image/png, text/*")
        self.assertEqual(fmt.ctype, "text/x-yaml")

        # full wildcards fall through to the default
        with self.assertRaises(NotAcceptable):
            self.neg.select_serializer("GET", accept="*/*")

        self.neg = neg.Negotiator(FormatRegistry.from_map(ctmap, "text/xml"))
        fmt = self.neg.select_serializer("GET", accept="text/*")
        self.assertEqual(fmt.ctype, "text/xml")
        fmt = self.neg.select_serializer("GET", accept="*/*")
        self.assertEqual(fmt.ctype, "text/xml")

    def test_select_serializer_wildcard_skips_decode_only(self):
        self.neg = neg.Negotiator(FormatRegistry.from_map({"text/x-json-in": "ReadOnlyJSON",
                                                           "text/x-yaml": "YAML"},
                                                          "text/x-json-in"))
        fmt = self.neg.select_serializer("GET", accept="text/*")
        self.assertEqual(fmt.ctype, "text/x-yaml")
        with self.assertRaises(NotAcceptable):
            self.neg.select_serializer("GET", accept="application/*")

    def test_select_serializer_nan_q(self):
        fmt = self.neg.select_serializer("GET", accept="text/x-yaml;q=nan, application/json;q=0.5")
        self.assertEqual(fmt.ctype, "text/x-yaml")

    def test_select_serializer_request_type(self):
        # the request's content type beats Accept
        fmt = self.neg.select_serializer("POST", "text/x-yaml", "application/json")
        self.assertEqual(fmt.ctype, "text/x-yaml")

        fmt = self.neg.select_serializer("POST", "application/x-goober", "application/json")
        self.assertEqual(fmt.ctype, "application/json")

    def test_select_serializer_override(self):
        fmt = self.neg.select_serializer("GET", None, "application/json", "text/xml")
        self.assertEqual(fmt.ctype, "text/xml")
        fmt = self.neg.select_serializer("HEAD", None, "application/json", "text/xml")
        self.assertEqual(fmt.ctype, "text/xml")

        # override is ignored for unsafe methods
        fmt = self.neg.select_serializer("POST", None, "application/json", "text/xml")
        self.assertEqual(fmt.ctype, "application/json")
        fmt = self.neg.select_serializer("PUT", "text/x-yaml", "application/json", "text/xml")
        self.assertEqual(fmt.ctype, "text/x-yaml")

        # an unsupported override falls through
        fmt = self.neg.select_serializer("GET", None, "application/json", "image/png")
        self.assertEqual(fmt.ctype, "application/json")

    def test_select_serializer_default(self):
        with self.assertRaises(NotAcceptable) as cm:
            self.neg.select_serializer("GET")
        self.assertEqual(cm.exception.code, 406)

        self.neg = neg.Negotiator(FormatRegistry.from_map(ctmap, "application/json"))
        fmt = self.neg.select_serializer("GET")
        self.assertEqual(fmt.ctype, "application/json")
        fmt = self.neg.select_serializer("GET", accept="image/png")
        self.assertEqual(fmt.ctype, "application/json")


if __name__ == '__main__':
    test.main()
