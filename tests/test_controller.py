"""
Tests for the controller loop and the command-line settings.
"""

import os
import unittest
from unittest.mock import MagicMock, patch

from nodeport_router.cli import parse_args
from nodeport_router.controller import Controller
from nodeport_router.errors import NotFoundError, WatchError
from nodeport_router.models import ADDED, DELETED, Service, ServiceEvent


def _event(kind, name):
    return ServiceEvent(kind, Service(namespace="default", name=name))


class TestController(unittest.TestCase):
    def test_failed_event_is_reported_and_loop_continues(self):
        events = [_event(DELETED, "gone"), _event(ADDED, "next")]
        watcher = MagicMock()
        watcher.events.return_value = iter(events)
        reconciler = MagicMock()
        reconciler.handle.side_effect = [NotFoundError("not on router"), None]

        with self.assertLogs("nodeport-router", level="ERROR") as logs:
            Controller(reconciler, watcher).run()

        self.assertEqual(reconciler.handle.call_count, 2)
        self.assertIn("default/gone", logs.output[0])
        self.assertIn("not on router", logs.output[0])

    def test_process_returns_outcome(self):
        reconciler = MagicMock()
        controller = Controller(reconciler, MagicMock())
        self.assertTrue(controller.process(_event(ADDED, "ok")))
        reconciler.handle.side_effect = NotFoundError("x")
        with self.assertLogs("nodeport-router", level="ERROR"):
            self.assertFalse(controller.process(_event(DELETED, "bad")))

    def test_watch_error_propagates(self):
        watcher = MagicMock()
        watcher.events.side_effect = WatchError("cannot list services")
        with self.assertRaises(WatchError):
            Controller(MagicMock(), watcher).run()


ENV = {
    "K8S_HOST": "k8s-node",
    "ROUTER_BASE": "http://192.168.1.254",
    "ROUTER_ADMIN": "admin",
    "ROUTER_PASS": "secret",
}


class TestParseArgs(unittest.TestCase):
    def test_settings_from_environment(self):
        with patch.dict(os.environ, ENV, clear=True):
            args = parse_args([])
        self.assertEqual(args.device_name, "k8s-node")
        self.assertEqual(args.router_base, "http://192.168.1.254")
        self.assertEqual(args.timeout, 15.0)
        self.assertFalse(args.delete_missing_ok)
        self.assertIsNone(args.namespace)

    def test_flags_override_environment(self):
        env = dict(ENV, ROUTER_DELETE_MISSING_OK="true", ROUTER_TIMEOUT="5")
        with patch.dict(os.environ, env, clear=True):
            args = parse_args(["--device-name", "other", "--namespace", "apps"])
        self.assertEqual(args.device_name, "other")
        self.assertEqual(args.namespace, "apps")
        self.assertEqual(args.timeout, 5.0)
        self.assertTrue(args.delete_missing_ok)

    def test_non_numeric_timeout_is_usage_error(self):
        env = dict(ENV, ROUTER_TIMEOUT="soon")
        with patch.dict(os.environ, env, clear=True):
            with patch("sys.stderr"):
                with self.assertRaises(SystemExit) as ctx:
                    parse_args([])
        self.assertEqual(ctx.exception.code, 2)

    def test_missing_required_setting_exits(self):
        env = {k: v for k, v in ENV.items() if k != "ROUTER_PASS"}
        with patch.dict(os.environ, env, clear=True):
            with self.assertRaises(SystemExit):
                with patch("sys.stderr"):
                    parse_args([])


if __name__ == "__main__":
    unittest.main()
