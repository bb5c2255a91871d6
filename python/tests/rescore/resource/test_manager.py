import os, sys, pdb, json, logging, tempfile
import unittest as test
from collections import OrderedDict

import yaml

from rescore.resource import manager, Resource, Request, Account, InMemoryDataProvider
from rescore.resource.decorators import (ResourceDecoratorBase, CacheDecoratedResource,
                                         RateLimitDecoratedResource)
from rescore.resource.exceptions import NotFound, Forbidden, BadRequest, TooManyRequests
from rescore.base.config import ConfigurationException

tmpdir = tempfile.TemporaryDirectory(prefix="_test_manager.")
loghdlr = None
rootlog = None
def setUpModule():
    global loghdlr
    global rootlog
    rootlog = logging.getLogger()
    rootlog.setLevel(logging.DEBUG)
    loghdlr = logging.FileHandler(os.path.join(tmpdir.name,"test_manager.log"))
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

class Articles(Resource):
    definition = { "resource": "articles", "major_version": 1, "minor_version": 0 }

    def public_fields(self):
        return OrderedDict([("id", None), ("label", {"property": "title"})])

    def data_provider_factory(self):
        return InMemoryDataProvider([{"id": "5", "title": "Fifth"}, {"id": "6", "title": "Sixth"}])

class Articles11(Articles):
    definition = { "resource": "articles", "major_version": 1, "minor_version": 1 }

    def public_fields(self):
        out = super(Articles11, self).public_fields()
        out['title'] = {"property": "title"}
        return out

class Articles20(Articles):
    definition = { "resource": "articles", "major_version": 2, "minor_version": 0 }

class Users(Resource):
    definition = { "resource": "users" }

class Marker(ResourceDecoratorBase):
    def __init__(self, subject, mgr):
        super(Marker, self).__init__(subject)
        self.mgr = mgr

class TestResourceManager(test.TestCase):

    def setUp(self):
        self.cfg = {
            "base_url": "https://data.example.com",
            "resources": {
                "articles": {
                    "range": 1,
                    "decorators": [ "rate_limit", "render_cache" ]
                },
                "users": {
                    "authentication_optional": False
                }
            },
            "rate_limit": { "limits": { "anonymous": 2 } },
            "render_cache": { "ttl": 60 }
        }
        self.mgr = manager.ResourceManager(self.cfg)
        self.mgr.register(Articles)
        self.mgr.register(Users)

    def test_register(self):
        self.assertEqual([d['resource'] for d in self.mgr.list_resources()], ["articles", "users"])
        self.assertEqual(self.mgr.get_versions("articles"), [(1, 0)])
        self.mgr.register(Articles20)
        self.mgr.register(Articles11)
        self.assertEqual(self.mgr.get_versions("articles"), [(1, 0), (1, 1), (2, 0)])
        self.assertEqual(self.mgr.get_versions("goob"), [])
        self.assertEqual(len(self.mgr.list_resources()), 4)

        self.mgr.register(Articles, {"resource": "news", "name": "News"})
        self.assertEqual(self.mgr.get_resource("news").get_resource_name(), "News")

        with self.assertRaises(TypeError):
            self.mgr.register(dict)
        with self.assertRaises(TypeError):
            self.mgr.register(Users({"resource": "users"}))
        with self.assertRaises(ConfigurationException):
            self.mgr.register(Resource)

    def test_get_resource(self):
        res = self.mgr.get_resource("articles")
        self.assertTrue(isinstance(res, CacheDecoratedResource))
        self.assertTrue(isinstance(res.get_decorated_resource(), RateLimitDecoratedResource))
        primary = res.get_primary_resource()
        self.assertTrue(isinstance(primary, Articles))
        self.assertIs(res.get_decorated_resource().get_decorated_resource(), primary)

        self.assertIs(res.cache, self.mgr.cache)
        self.assertEqual(res.cfg, {"ttl": 60})
        self.assertIs(res.get_decorated_resource().limiter, self.mgr.limiter)

        cfg = res.get_configuration()
        self.assertEqual(cfg['range'], 1)
        self.assertEqual(cfg['base_url'], "https://data.example.com")
        self.assertNotIn('decorators', cfg)
        self.assertEqual(res.versioned_url("5"), "https://data.example.com/api/v1.0/articles/5")

        # a new chain is built each time
        self.assertIsNot(self.mgr.get_resource("articles").get_primary_resource(), primary)

        res = self.mgr.get_resource("users")
        self.assertTrue(isinstance(res, Users))
        self.assertFalse(res.get_configuration()['authentication_optional'])

        req = Request("users", account=Account("gurn"))
        self.assertIs(self.mgr.get_resource("users", request=req).get_request(), req)

        with self.assertRaises(NotFound):
            self.mgr.get_resource("goob")

    def test_get_resource_version(self):
        self.mgr.register(Articles20)
        self.mgr.register(Articles11)
        self.assertEqual(self.mgr.get_resource("articles").get_version(), (2, 0))
        self.assertEqual(self.mgr.get_resource("articles", "v1.0").get_version(), (1, 0))
        self.assertEqual(self.mgr.get_resource("articles", "1.1").get_version(), (1, 1))
        self.assertEqual(self.mgr.get_resource("articles", "v1").get_version(), (1, 1))
        self.assertEqual(self.mgr.get_resource("articles", (2, 0)).get_version(), (2, 0))

        with self.assertRaises(NotFound):
            self.mgr.get_resource("articles", "v3")
        with self.assertRaises(NotFound):
            self.mgr.get_resource("articles", "1.5")
        with self.assertRaises(BadRequest):
            self.mgr.get_resource("articles", "goob")

    def test_decorators(self):
        self.cfg['resources']['users']['decorators'] = ["marker", "render_cache"]
        with self.assertRaises(ConfigurationException):
            self.mgr.get_resource("users")

        self.mgr.register_decorator("marker", Marker)
        res = self.mgr.get_resource("users")
        self.assertTrue(isinstance(res, CacheDecoratedResource))
        self.assertTrue(isinstance(res.get_decorated_resource(), Marker))
        self.assertIs(res.get_decorated_resource().mgr, self.mgr)

        with self.assertRaises(ValueError):
            self.mgr.register_decorator("rate_limit", Marker)

    def test_parse_path(self):
        self.assertEqual(self.mgr.parse_path("/api/v1.0/articles/5"), ("articles", "v1.0", "5"))
        self.assertEqual(self.mgr.parse_path("api/articles"), ("articles", None, ""))
        self.assertEqual(self.mgr.parse_path("/articles/5/comments/"),
                         ("articles", None, "5/comments"))
        self.assertEqual(self.mgr.parse_path("v2/articles"), ("articles", "v2", ""))
        self.assertEqual(self.mgr.parse_path("/api/V1.1/articles/5"), ("articles", "V1.1", "5"))

        with self.assertRaises(NotFound):
            self.mgr.parse_path("/api/v1.0/")
        with self.assertRaises(NotFound):
            self.mgr.parse_path("")

        mgr = manager.ResourceManager({"base_path": "/rest/data"})
        self.assertEqual(mgr.parse_path("/rest/data/users/gurn"), ("users", None, "gurn"))

    def test_process_request(self):
        out = self.mgr.process_request(Request("/api/v1.0/articles/5"))
        self.assertEqual(out, [{"id": "5", "label": "Fifth"}])

        out = self.mgr.process_request(Request("/api/articles", query={"page": "2"}))
        self.assertEqual(out, [{"id": "6", "label": "Sixth"}])

        with self.assertRaises(NotFound):
            self.mgr.process_request(Request("/api/goob/5"))

    def test_process_request_version_header(self):
        self.mgr.register(Articles11)
        out = self.mgr.process_request(Request("/api/articles/5"))
        self.assertEqual(out, [{"id": "5", "label": "Fifth", "title": "Fifth"}])
        out = self.mgr.process_request(Request("/api/articles/5", headers={"X-API-Version": "v1.0"}))
        self.assertEqual(out, [{"id": "5", "label": "Fifth"}])
        out = self.mgr.process_request(Request("/api/V1.0/articles/5"))
        self.assertEqual(out, [{"id": "5", "label": "Fifth"}])

    def test_process_request_access(self):
        with self.assertRaises(Forbidden):
            self.mgr.process_request(Request("/api/users"))
        self.assertEqual(self.mgr.process_request(Request("/api/users", account=Account("gurn"))), [])

    def test_process_request_shared_state(self):
        self.mgr.process_request(Request("/api/articles/5"))
        self.assertEqual(len(self.mgr.cache), 1)
        self.mgr.process_request(Request("/api/articles/5"))   # cache hit: not rate-limited
        self.mgr.process_request(Request("/api/articles/6"))
        with self.assertRaises(TooManyRequests):
            self.mgr.process_request(Request("/api/articles", query={"page": "2"}))

class TestCreateResourceManager(test.TestCase):

    def test_from_dict(self):
        mgr = manager.create_resource_manager({"base_path": "rest"})
        self.assertEqual(mgr.cfg, {"base_path": "rest"})
        self.assertEqual(mgr.list_resources(), [])

        with self.assertRaises(ConfigurationException):
            manager.create_resource_manager(["goob"])
        with self.assertRaises(ConfigurationException):
            manager.create_resource_manager({"resources": {"articles": "goob"}})

    def test_from_file(self):
        cfgfile = os.path.join(tmpdir.name, "manager.yml")
        with open(cfgfile, 'w') as fd:
            yaml.safe_dump({
                "base_path": "rest",
                "resources": { "articles": { "decorators": ["render_cache"] } }
            }, fd)

        mgr = manager.create_resource_manager(cfgfile)
        mgr.register(Articles)
        res = mgr.get_resource("articles")
        self.assertTrue(isinstance(res, CacheDecoratedResource))
        self.assertEqual(res.versioned_url("5", {"absolute": False}), "rest/v1.0/articles/5")

        self.assertEqual(mgr.process_request(Request("/rest/articles/6")),
                         [{"id": "6", "label": "Sixth"}])


if __name__ == '__main__':
    test.main()
