import os, sys, pdb, json, logging, re, tempfile
import unittest as test
from io import BytesIO

import yaml

from nistoar.conneg import rest
from nistoar.conneg.pipeline import SerializationCore
from nistoar.conneg.exceptions import RESTError, ConfigurationException

tmpdir = tempfile.TemporaryDirectory(prefix="_test_conneg.")
loghdlr = None
rootlog = None
def setUpModule():
    global loghdlr
    global rootlog
    rootlog = logging.getLogger()
    rootlog.setLevel(logging.DEBUG)
    loghdlr = logging.FileHandler(os.path.join(tmpdir.name,"test_rest.log"))
    loghdlr.setLevel(logging.DEBUG)
    loghdlr.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    rootlog.addHandler(loghdlr)

def tearDownModule():
    global loghdlr
    if loghdlr:
        if rootlog:
            rootlog.removeHandler(loghdlr)
            loghdlr.flush()
            loghdlr.close()
        loghdlr = None
    tmpdir.cleanup()

class ThingHandler(rest.RESTHandler):

    def do_GET(self, path):
        if path == "gone":
            return self.status_gone("That thing is gone")
        if path == "broken":
            raise RuntimeError("oops")
        if path == "locked":
            raise RESTError("That thing is locked", 423, "Locked")
        return self.status_ok(entity={"id": path, "name": "widget"})

    def do_PUT(self, path):
        thing = dict(self.data)
        thing['id'] = path
        return self.status_created(location="/things/"+path, entity=thing)

    def do_DELETE(self, path):
        return self.status_no_content()

class EuroHandler(ThingHandler):

    def do_POST(self, path):
        return self.status_created(location="http://example.com/things/\u20ac", entity={"a": 1})

class ThingApp(rest.ServiceApp):

    def __init__(self, config=None):
        super(ThingApp, self).__init__("things", rootlog, config)

    def create_handler(self, env, start_resp, path):
        return ThingHandler(self.core, path, env, start_resp, log=self.log, app=self)

class TestFunctions(test.TestCase):

    def test_status_message(self):
        self.assertEqual(rest.status_message(200), "OK")
        self.assertEqual(rest.status_message(201), "Created")
        self.assertEqual(rest.status_message(415), "Unsupported Media Type")
        self.assertEqual(rest.status_message(599), "Unknown Status")

    def test_request_headers(self):
        hdrs = rest.request_headers({
            'REQUEST_METHOD': "POST",
            'CONTENT_TYPE': "application/json",
            'CONTENT_LENGTH': "2",
            'HTTP_ACCEPT': "text/x-yaml",
            'HTTP_X_HTTP_METHOD_OVERRIDE': "PUT"
        })
        self.assertIn(("Content-Type", "application/json"), hdrs)
        self.assertIn(("Content-Length", "2"), hdrs)
        self.assertIn(("Accept", "text/x-yaml"), hdrs)
        self.assertIn(("X-Http-Method-Override", "PUT"), hdrs)
        self.assertEqual(len(hdrs), 4)

class TestHandler(test.TestCase):

    def start(self, status, headers=None, extup=None):
        self.resp.append(status)
        for head in headers:
            self.resp.append("{0}: {1}".format(head[0], head[1]))

    def setUp(self):
        self.resp = []

    def test_send_ok(self):
        hdlr = rest.Handler('', {'REQUEST_METHOD': "GET", 'PATH_INFO': '/'}, self.start)
        body = hdlr.send_ok("hello")
        self.assertEqual(body, [b"hello"])
        self.assertEqual(self.resp[0], "200 OK")
        self.assertIn("Content-Type: text/plain", self.resp)
        self.assertIn("Content-Length: 5", self.resp)

    def test_send_error_head(self):
        hdlr = rest.Handler('', {'REQUEST_METHOD': "HEAD", 'PATH_INFO': '/'}, self.start)
        body = hdlr.send_error(404, "Not Found", b"gone", "text/plain")
        self.assertEqual(body, [])
        self.assertEqual(self.resp[0], "404 Not Found")
        self.assertIn("Content-Length: 4", self.resp)

    def test_unsupported(self):
        hdlr = rest.Handler('', {'REQUEST_METHOD': "GET", 'PATH_INFO': '/'}, self.start)
        self.assertEqual(hdlr.handle(), [])
        self.assertEqual(self.resp[0], "405 GET not supported on this resource")

    def test_requested_method(self):
        hdlr = rest.Handler('', {'REQUEST_METHOD': "post",
                                 'HTTP_X_HTTP_METHOD_OVERRIDE': "put"}, self.start)
        self.assertEqual(hdlr.requested_method(), "PUT")

class TestRESTHandler(test.TestCase):

    def start(self, status, headers=None, extup=None):
        self.resp.append(status)
        for head in headers:
            self.resp.append("{0}: {1}".format(head[0], head[1]))

    def tostr(self, resplist):
        return [e.decode() for e in resplist]

    def setUp(self):
        self.resp = []
        self.core = SerializationCore({"default": "application/json"})

    def gethandler(self, path, env):
        return ThingHandler(self.core, path, env, self.start)

    def header(self, name):
        name = name.lower() + ": "
        for h in self.resp[1:]:
            if h.lower().startswith(name):
                return h[len(name):]
        return None

    def test_get(self):
        req = {
            'REQUEST_METHOD': "GET",
            'PATH_INFO': '/things/goob',
            'HTTP_ACCEPT': "application/json;q=0.5, text/x-yaml;q=0.9"
        }
        hdlr = self.gethandler('goob', req)
        body = self.tostr(hdlr.handle())
        self.assertEqual(self.resp[0], "200 OK")
        self.assertEqual(self.header("Content-Type"), "text/x-yaml")
        self.assertEqual(yaml.safe_load("".join(body)), {"id": "goob", "name": "widget"})
        self.assertEqual(int(self.header("Content-Length")), len("".join(body)))

    def test_get_default(self):
        hdlr = self.gethandler('goob', {'REQUEST_METHOD': "GET"})
        body = self.tostr(hdlr.handle())
        self.assertEqual(self.resp[0], "200 OK")
        self.assertEqual(self.header("Content-Type"), "application/json")
        self.assertEqual(json.loads("".join(body)), {"id": "goob", "name": "widget"})

    def test_get_override(self):
        req = {
            'REQUEST_METHOD': "GET",
            'QUERY_STRING': "content-type=text/xml",
            'HTTP_ACCEPT': "application/json"
        }
        hdlr = self.gethandler('goob', req)
        body = self.tostr(hdlr.handle())
        self.assertEqual(self.header("Content-Type"), "text/xml")
        self.assertIn("<id>goob</id>", body[0])

    def test_head(self):
        hdlr = self.gethandler('goob', {'REQUEST_METHOD': "HEAD"})
        body = hdlr.handle()
        self.assertEqual(body, [])
        self.assertEqual(self.resp[0], "200 OK")
        self.assertEqual(self.header("Content-Type"), "application/json")
        self.assertGreater(int(self.header("Content-Length")), 0)

    def test_put(self):
        req = {
            'REQUEST_METHOD': "PUT",
            'CONTENT_TYPE': "application/json",
            'CONTENT_LENGTH': "18",
            'wsgi.input': BytesIO(b'{"name": "gurney"}')
        }
        hdlr = self.gethandler('gurn', req)
        body = self.tostr(hdlr.handle())
        self.assertEqual(self.resp[0], "201 Created")
        self.assertEqual(self.header("Location"), "/things/gurn")
        self.assertEqual(self.header("Content-Type"), "application/json")
        self.assertEqual(json.loads("".join(body)), {"name": "gurney", "id": "gurn"})
        self.assertEqual(hdlr.data, {"name": "gurney"})

    def test_put_bad_body(self):
        req = {
            'REQUEST_METHOD': "PUT",
            'CONTENT_TYPE': "application/json",
            'wsgi.input': BytesIO(b'{"name": "gur')
        }
        hdlr = self.gethandler('gurn', req)
        body = self.tostr(hdlr.handle())
        self.assertEqual(self.resp[0], "400 Bad Request")
        self.assertIn("had a problem with your request", json.loads("".join(body))["error"])

    def test_put_unsupported(self):
        req = {
            'REQUEST_METHOD': "PUT",
            'CONTENT_TYPE': "application/x-goober",
            'HTTP_ACCEPT': "text/x-yaml",
            'wsgi.input': BytesIO(b'goober')
        }
        hdlr = ThingHandler(SerializationCore(), 'gurn', req, self.start)
        body = self.tostr(hdlr.handle())
        self.assertEqual(self.resp[0], "415 Unsupported Media Type")
        self.assertEqual(self.header("Content-Type"), "text/x-yaml")
        self.assertIn("error", yaml.safe_load("".join(body)))

    def test_delete(self):
        hdlr = self.gethandler('gurn', {'REQUEST_METHOD': "DELETE"})
        body = hdlr.handle()
        self.assertEqual(body, [])
        self.assertEqual(self.resp[0], "204 No Content")
        self.assertIsNone(self.header("Content-Type"))

    def test_method_override(self):
        req = {
            'REQUEST_METHOD': "POST",
            'HTTP_X_HTTP_METHOD_OVERRIDE': "DELETE"
        }
        hdlr = self.gethandler('gurn', req)
        hdlr.handle()
        self.assertEqual(self.resp[0], "204 No Content")

    def test_not_allowed(self):
        req = {
            'REQUEST_METHOD': "POST",
            'CONTENT_TYPE': "application/json",
            'wsgi.input': BytesIO(b'{}')
        }
        hdlr = self.gethandler('gurn', req)
        body = self.tostr(hdlr.handle())
        self.assertEqual(self.resp[0], "405 Method Not Allowed")
        self.assertEqual(self.header("Allow"), "DELETE, GET, HEAD, OPTIONS, PUT")
        self.assertEqual(json.loads("".join(body)),
                         {"error": "POST not supported on this resource"})

    def test_options(self):
        hdlr = self.gethandler('gurn', {'REQUEST_METHOD': "OPTIONS"})
        self.assertEqual(hdlr.allowed_methods(), ["DELETE", "GET", "HEAD", "OPTIONS", "PUT"])
        body = hdlr.handle()
        self.assertEqual(body, [])
        self.assertEqual(self.resp[0], "200 OK")
        self.assertEqual(self.header("Allow"), "DELETE, GET, HEAD, OPTIONS, PUT")

    def test_error_status(self):
        hdlr = self.gethandler('gone', {'REQUEST_METHOD': "GET"})
        body = self.tostr(hdlr.handle())
        self.assertEqual(self.resp[0], "410 Gone")
        self.assertEqual(json.loads("".join(body)), {"error": "That thing is gone"})

    def test_rest_error(self):
        hdlr = self.gethandler('locked', {'REQUEST_METHOD': "GET"})
        body = self.tostr(hdlr.handle())
        self.assertEqual(self.resp[0], "423 Locked")
        self.assertEqual(json.loads("".join(body)), {"error": "That thing is locked"})

    def test_unexpected_error(self):
        hdlr = self.gethandler('broken', {'REQUEST_METHOD': "GET"})
        body = self.tostr(hdlr.handle())
        self.assertEqual(self.resp[0], "500 Internal Server Error")
        self.assertEqual(json.loads("".join(body)), {"error": "Server failure"})

    def test_unencodable_header(self):
        hdlr = EuroHandler(self.core, "euro", {'REQUEST_METHOD': "POST"}, self.start)
        body = hdlr.handle()
        self.assertEqual(body, [])
        self.assertEqual(self.resp[0], "500 Server failure")
        self.assertIsNone(self.header("Location"))

    def test_not_found_handler(self):
        hdlr = rest.NotFoundHandler(self.core, 'goob', {'REQUEST_METHOD': "PUT"}, self.start)
        body = self.tostr(hdlr.handle())
        self.assertEqual(self.resp[0], "404 Not Found")
        self.assertEqual(json.loads("".join(body)), {"error": "Not Found: goob"})

class TestServiceApp(test.TestCase):

    def start(self, status, headers=None, extup=None):
        self.resp.append(status)
        for head in headers:
            self.resp.append("{0}: {1}".format(head[0], head[1]))

    def setUp(self):
        self.resp = []
        self.app = ThingApp({"base_ep": "/od/things", "default": "application/json"})

    def test_ctor(self):
        self.assertEqual(self.app.name, "things")
        self.assertEqual(self.app.base_ep, "/od/things/")
        self.assertEqual(self.app.core.registry.default_type, "application/json")

        with self.assertRaises(ConfigurationException):
            ThingApp({"default": "image/png"})

    def test_call(self):
        body = self.app({'REQUEST_METHOD': "GET", 'PATH_INFO': "/od/things/goob"}, self.start)
        self.assertEqual(self.resp[0], "200 OK")
        self.assertEqual(json.loads(b"".join(body)), {"id": "goob", "name": "widget"})

    def test_outside_base(self):
        body = self.app({'REQUEST_METHOD': "GET", 'PATH_INFO': "/od/widgets/goob"}, self.start)
        self.assertEqual(self.resp[0], "404 Not Found")


if __name__ == '__main__':
    test.main()
