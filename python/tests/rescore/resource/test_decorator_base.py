import os, sys, pdb, json, logging, tempfile
import unittest as test
from collections import OrderedDict

from rescore.resource import (Resource, ResourceInterface, Request, Account, InMemoryDataProvider,
                              ResourceDecoratorInterface, ResourceDecoratorBase,
                              CacheDecoratedResource, RateLimitDecoratedResource)
from rescore.resource.exceptions import NotFound, Forbidden, BadRequest, Unprocessable

tmpdir = tempfile.TemporaryDirectory(prefix="_test_decorator_base.")
loghdlr = None
rootlog = None
def setUpModule():
    global loghdlr
    global rootlog
    rootlog = logging.getLogger()
    rootlog.setLevel(logging.DEBUG)
    loghdlr = logging.FileHandler(os.path.join(tmpdir.name,"test_decorator_base.log"))
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

articles_def = {
    "resource": "articles",
    "name": "articles:1.0",
    "major_version": 1,
    "minor_version": 0
}

class Articles(Resource):

    def __init__(self, plugin_definition=articles_def, configuration=None, log=None):
        self.viewed = []
        super(Articles, self).__init__(plugin_definition, configuration, log)

    def public_fields(self):
        return OrderedDict([
            ("id",    {"property": "id"}),
            ("label", {"property": "title", "required": True}),
            ("body",  {"property": "body"})
        ])

    def data_provider_factory(self):
        return InMemoryDataProvider([
            {"id": "1", "title": "First", "body": "The first article"},
            {"id": "5", "title": "Fifth", "body": "The fifth article"}
        ])

    def view(self, path):
        self.viewed.append(path)
        return super(Articles, self).view(path)

class ReadOnlyDecorator(ResourceDecoratorBase):
    """
    allows only GET and HEAD requests through controller resolution
    """
    def get_controllers(self):
        out = OrderedDict()
        for pattern, ctlrs in self.subject.get_controllers().items():
            out[pattern] = dict((m, c) for m, c in ctlrs.items() if m in ("GET", "HEAD"))
        return out

class BrokenResource(Articles):
    def access(self):
        raise Forbidden("nope")

    def index(self, path):
        raise Unprocessable("bad payload", {"field": "label"})

class TestResourceDecoratorBase(test.TestCase):

    def setUp(self):
        self.res = Articles()
        self.dec = ResourceDecoratorBase(self.res)

    def test_ctor(self):
        self.assertIs(self.dec.subject, self.res)
        self.assertIs(self.dec.get_decorated_resource(), self.res)
        self.assertTrue(isinstance(self.dec, ResourceInterface))
        self.assertTrue(isinstance(self.dec, ResourceDecoratorInterface))
        self.assertFalse(isinstance(self.res, ResourceDecoratorInterface))

        with self.assertRaises(TypeError):
            ResourceDecoratorBase({"resource": "articles"})
        with self.assertRaises(AttributeError):
            self.dec.subject = Articles()

    def test_interface_is_abstract(self):
        with self.assertRaises(TypeError):
            ResourceInterface()
        with self.assertRaises(TypeError):
            ResourceDecoratorInterface()

    def test_identity_passthrough(self):
        chain = self.res
        for i in range(6):
            chain = ResourceDecoratorBase(chain)
            self.assertEqual(chain.get_resource_name(), "articles:1.0")
            self.assertEqual(chain.get_resource_machine_name(), "articles")
            self.assertEqual(chain.get_version(), (1, 0))
            self.assertIs(chain.get_plugin_definition(), articles_def)
            self.assertIs(chain.get_field_definitions(), self.res.get_field_definitions())
            self.assertIs(chain.get_data_provider(), self.res.get_data_provider())

    def test_primary_resource(self):
        self.assertIs(self.dec.get_primary_resource(), self.res)

        chain = self.res
        for i in range(10):
            chain = ResourceDecoratorBase(chain)
        self.assertIs(chain.get_primary_resource(), self.res)
        self.assertIsNot(chain.get_decorated_resource(), self.res)

        # unwrapping is iterative, so very deep chains are fine
        for i in range(5000):
            chain = ResourceDecoratorBase(chain)
        self.assertIs(chain.get_primary_resource(), self.res)

    def test_request_and_path(self):
        req = Request("/articles/5", "GET")
        self.dec.set_request(req)
        self.assertIs(self.dec.get_request(), req)
        self.assertIs(self.res.get_request(), req)

        self.dec.set_path("/5/")
        self.assertEqual(self.dec.get_path(), "5")
        self.assertEqual(self.res.get_path(), "5")

    def test_configuration(self):
        self.assertEqual(self.dec.get_configuration(), self.res.get_configuration())
        self.assertEqual(self.dec.default_configuration(), self.res.default_configuration())

        self.dec.set_configuration({"range": 1})
        self.assertEqual(self.res.get_configuration(), {"range": 1})
        self.assertIs(self.dec.get_configuration(), self.res.get_configuration())
        self.assertEqual(self.dec.default_configuration()['range'], 50)
        self.assertEqual(self.dec.calculate_dependencies(), set())

    def test_enable(self):
        self.assertTrue(self.dec.is_enabled())
        self.dec.disable()
        self.assertFalse(self.res.is_enabled())
        self.assertFalse(self.dec.is_enabled())
        self.dec.enable()
        self.assertTrue(self.res.is_enabled())

    def test_controllers(self):
        self.assertEqual(self.dec.controllers_info(), self.res.controllers_info())
        self.assertIs(self.dec.get_controllers(), self.res.get_controllers())

    def test_versioned_url(self):
        self.assertEqual(self.dec.versioned_url("5"), self.res.versioned_url("5"))
        self.assertEqual(self.dec.versioned_url("5", {"absolute": False}, False),
                         self.res.versioned_url("5", {"absolute": False}, False))
        self.assertEqual(self.dec.versioned_url(), "/api/v1.0/articles")

    def test_data_provider_factory(self):
        dp = self.dec.data_provider_factory()
        self.assertIsNot(dp, self.res.get_data_provider())
        self.assertEqual(dp.count(), 2)

    def test_crud_transparency(self):
        self.assertEqual(self.dec.index(""), self.res.index(""))
        self.assertEqual(self.dec.view("1,5"), self.res.view("1,5"))
        self.assertEqual(self.res.viewed, ["1,5", "1,5"])

        self.dec.set_request(Request("", "POST", body={"label": "New"}))
        out = self.dec.create("")
        self.assertEqual(out[0]['label'], "New")
        self.assertEqual(self.res.view(out[0]['id']), out)

        self.dec.set_request(Request("1", "PATCH", body={"body": "Changed"}))
        self.assertEqual(self.dec.update("1")[0]['body'], "Changed")

        self.dec.set_request(Request("1", "PUT", body={"label": "Replaced"}))
        self.assertEqual(self.dec.replace("1"),
                         [{"id": "1", "label": "Replaced", "body": None}])

    def test_remove(self):
        self.assertIsNone(self.dec.remove("5"))
        with self.assertRaises(NotFound):
            self.res.view("5")

        # errors are propagated unchanged
        with self.assertRaises(NotFound):
            self.dec.remove("5")

    def test_errors_propagate(self):
        dec = ResourceDecoratorBase(ResourceDecoratorBase(BrokenResource()))
        with self.assertRaises(Forbidden):
            dec.access()
        try:
            dec.index("")
            self.fail("Unprocessable not raised")
        except Unprocessable as ex:
            self.assertEqual(ex.code, 422)
            self.assertEqual(ex.explain, "bad payload")
            self.assertEqual(ex.data, {"field": "label"})

    def test_access(self):
        res = Articles(configuration={"authentication_optional": False})
        res.set_request(Request("articles", "GET"))
        self.assertFalse(res.access())
        dec = ResourceDecoratorBase(res)
        self.assertFalse(dec.access())

        dec.set_request(Request("articles", "GET", account=Account("gurn")))
        self.assertTrue(res.access())
        self.assertTrue(dec.access())

    def test_get_account_ignores_cache(self):
        self.res.set_request(Request("", account=Account("gurn")))
        self.assertEqual(self.dec.get_account().actor, "gurn")

        # swap the request without resetting the resource's cached account
        self.res._request = Request("", account=Account("goob"))
        self.assertEqual(self.res.get_account().actor, "gurn")
        self.assertEqual(self.res.get_account(False).actor, "goob")

        self.res._request = Request("", account=Account("hank"))
        self.assertEqual(self.dec.get_account().actor, "hank")
        self.assertEqual(self.dec.get_account(True).actor, "hank")

    def test_process(self):
        self.dec.set_request(Request("articles/5", "GET"))
        self.dec.set_path("5")
        self.assertEqual(self.dec.process(), [
            {"id": "5", "label": "Fifth", "body": "The fifth article"}
        ])
        self.assertEqual(self.res.viewed, ["5"])

        self.dec.set_path("9")
        with self.assertRaises(NotFound):
            self.dec.process()


class TestControllerSelfReference(test.TestCase):

    def setUp(self):
        self.res = Articles()
        self.ro = ReadOnlyDecorator(self.res)
        self.head = ResourceDecoratorBase(self.ro)

    def test_defaults_to_invoked_node(self):
        self.head.set_request(Request("5", "GET"))
        ctlr = self.head.get_controller_from_path("5")
        self.assertEqual(ctlr, self.head.view)
        self.assertIs(ctlr.__self__, self.head)
        self.assertEqual(ctlr, self.head.get_controller_from_path("5", self.head))

        ctlr = self.ro.get_controller_from_path("5")
        self.assertIs(ctlr.__self__, self.ro)

        ctlr = self.head.get_controller_from_path("5", self.res)
        self.assertIs(ctlr.__self__, self.res)

    def test_path_defaults_to_current_path(self):
        self.head.set_request(Request("", "GET"))
        self.head.set_path("")
        self.assertEqual(self.head.get_controller_from_path(), self.head.index)

    def test_outer_controllers_apply(self):
        self.head.set_request(Request("5", "DELETE"))

        # resolution against the outer nodes sees the read-only controllers
        with self.assertRaises(BadRequest):
            self.head.get_controller_from_path("5")
        with self.assertRaises(BadRequest):
            self.head.get_controller_from_path("5", self.head)
        with self.assertRaises(BadRequest):
            self.ro.get_controller_from_path("5")

        # ...while resolution against the raw subject does not
        self.assertEqual(self.head.get_controller_from_path("5", self.res), self.res.remove)
        self.assertEqual(self.res.get_controller_from_path("5"), self.res.remove)


class TestChainScenario(test.TestCase):

    def setUp(self):
        self.res = Articles()
        self.rl = RateLimitDecoratedResource(self.res)
        self.head = CacheDecoratedResource(self.rl)

    def test_identity(self):
        self.assertEqual(self.head.get_version(), (1, 0))
        self.assertEqual(str(self.head.get_version()), "v1.0")
        self.assertIs(self.head.get_primary_resource(), self.res)
        self.assertIs(self.rl.get_primary_resource(), self.res)
        self.assertIs(self.head.get_decorated_resource(), self.rl)
        self.assertIs(self.head.get_plugin_definition(), self.res.get_plugin_definition())

    def test_process(self):
        self.head.set_request(Request("/articles/5", "GET"))
        self.head.set_path("5")
        out = self.head.process()
        self.assertEqual(self.res.viewed, ["5"])
        self.assertEqual(out, [{"id": "5", "label": "Fifth", "body": "The fifth article"}])

    def test_process_not_found(self):
        self.head.set_request(Request("/articles/7", "GET"))
        self.head.set_path("7")
        with self.assertRaises(NotFound):
            self.head.process()

    def test_remove(self):
        self.head.set_request(Request("/articles/5", "DELETE"))
        self.head.set_path("5")
        self.assertIsNone(self.head.process())
        with self.assertRaises(NotFound):
            self.head.process()


if __name__ == '__main__':
    test.main()
