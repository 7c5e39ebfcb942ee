"""
Tests for the Kubernetes event source – object conversion, NodePort
filtering, relist diffing and the watch loop.
"""

import threading
import unittest
from unittest.mock import MagicMock, patch

from kubernetes import client
from kubernetes.client.exceptions import ApiException

from nodeport_router.errors import WatchError
from nodeport_router.models import ADDED, DELETED, MODIFIED, Service, ServicePort
from nodeport_router.watcher import ServiceWatcher, service_from_object


def v1_service(name="myapp", namespace="default", type="NodePort", ports=None, rv="1"):
    if ports is None:
        ports = [client.V1ServicePort(port=8080, target_port=8080, node_port=30080, name="http")]
    return client.V1Service(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace, resource_version=rv),
        spec=client.V1ServiceSpec(type=type, ports=ports),
    )


def service_list(*items, rv="100"):
    return client.V1ServiceList(
        items=list(items), metadata=client.V1ListMeta(resource_version=rv)
    )


HTTP = ServicePort(port=8080, node_port=30080, target_port=8080, name="http", protocol="TCP")


def svc(name="myapp", type="NodePort", ports=(HTTP,)):
    return Service(namespace="default", name=name, type=type, ports=ports)


class TestServiceFromObject(unittest.TestCase):
    def test_conversion(self):
        service = service_from_object(v1_service())
        self.assertEqual(service, Service(
            namespace="default", name="myapp", type="NodePort",
            ports=(ServicePort(port=8080, node_port=30080, target_port=8080,
                               name="http", protocol="TCP"),),
        ))

    def test_named_target_port_is_unset(self):
        obj = v1_service(ports=[client.V1ServicePort(port=80, target_port="web", node_port=30001)])
        port = service_from_object(obj).ports[0]
        self.assertEqual(port.target_port, 0)
        self.assertEqual(port.forwarded_port, 80)

    def test_numeric_string_target_port(self):
        obj = v1_service(ports=[client.V1ServicePort(port=80, target_port="8080", node_port=30001)])
        self.assertEqual(service_from_object(obj).ports[0].target_port, 8080)

    def test_missing_node_port_and_ports(self):
        obj = v1_service(type="ClusterIP", ports=None)
        obj.spec.ports = None
        self.assertEqual(service_from_object(obj).ports, ())


class TestTranslate(unittest.TestCase):
    def setUp(self):
        self.watcher = ServiceWatcher(api=MagicMock())

    def test_added_then_modified_carries_old_spec(self):
        first = self.watcher.translate(ADDED, svc())
        self.assertEqual(first.kind, ADDED)

        changed = svc(ports=(ServicePort(port=9090, node_port=30090, name="http"),))
        second = self.watcher.translate(MODIFIED, changed)
        self.assertEqual(second.kind, MODIFIED)
        self.assertEqual(second.old, svc())
        self.assertEqual(second.service, changed)

    def test_non_node_port_ignored(self):
        self.assertIsNone(self.watcher.translate(ADDED, svc(type="ClusterIP")))
        self.assertEqual(self.watcher.known, {})

    def test_type_change_away_from_node_port_deletes(self):
        self.watcher.translate(ADDED, svc())
        event = self.watcher.translate(MODIFIED, svc(type="ClusterIP"))
        self.assertEqual(event.kind, DELETED)
        self.assertEqual(event.service, svc())

    def test_delete_uses_last_known_spec(self):
        self.watcher.translate(ADDED, svc())
        event = self.watcher.translate(DELETED, svc(ports=()))
        self.assertEqual(event.service, svc())
        self.assertEqual(self.watcher.known, {})


class TestResync(unittest.TestCase):
    def test_diff_against_known(self):
        watcher = ServiceWatcher(api=MagicMock())
        watcher.known = {"default/kept": svc("kept"), "default/gone": svc("gone"),
                         "default/changed": svc("changed")}
        changed = svc("changed", ports=(ServicePort(port=1, node_port=30001),))

        events = watcher.resync([svc("kept"), changed, svc("new"), svc("plain", type="ClusterIP")])

        summary = sorted((e.kind, e.service.name) for e in events)
        self.assertEqual(summary, [
            (ADDED, "new"), (DELETED, "gone"), (MODIFIED, "changed"),
        ])
        self.assertEqual(set(watcher.known), {"default/kept", "default/changed", "default/new"})


class TestEvents(unittest.TestCase):
    def test_initial_listing_then_watch(self):
        api = MagicMock()
        api.list_service_for_all_namespaces.return_value = service_list(v1_service("a"))
        watcher = ServiceWatcher(api=api)
        stop = threading.Event()

        stream = [
            {"type": "ADDED", "object": v1_service("b", rv="101")},
            {"type": "ADDED", "object": v1_service("c", type="ClusterIP", rv="102")},
            {"type": "DELETED", "object": v1_service("a", rv="103")},
        ]

        def fake_stream(func, **kwargs):
            self.assertEqual(kwargs["resource_version"], "100")
            for raw in stream:
                yield raw
            stop.set()

        with patch("nodeport_router.watcher.watch.Watch") as watch_cls:
            watch_cls.return_value.stream.side_effect = fake_stream
            events = list(watcher.events(stop))

        self.assertEqual([(e.kind, e.service.name) for e in events], [
            (ADDED, "a"), (ADDED, "b"), (DELETED, "a"),
        ])

    def test_namespaced_listing(self):
        api = MagicMock()
        api.list_namespaced_service.return_value = service_list()
        stop = threading.Event()
        stop.set()
        list(ServiceWatcher(api=api, namespace="apps").events(stop))
        api.list_namespaced_service.assert_called_once_with(namespace="apps")

    def test_listing_failure_is_fatal(self):
        api = MagicMock()
        api.list_service_for_all_namespaces.side_effect = ApiException(status=403, reason="Forbidden")
        with self.assertRaises(WatchError):
            list(ServiceWatcher(api=api).events())

    def test_stop_on_quiet_cluster_ends_after_one_short_watch(self):
        api = MagicMock()
        api.list_service_for_all_namespaces.return_value = service_list()
        stop = threading.Event()
        timeouts = []

        def idle_stream(func, **kwargs):
            # the stop request arrives while no service changes
            timeouts.append(kwargs["timeout_seconds"])
            stop.set()
            return iter(())

        with patch("nodeport_router.watcher.watch.Watch") as watch_cls:
            watch_cls.return_value.stream.side_effect = idle_stream
            events = list(ServiceWatcher(api=api).events(stop))

        self.assertEqual(events, [])
        self.assertEqual(len(timeouts), 1)
        self.assertLessEqual(timeouts[0], 10)

    def test_expired_watch_relists(self):
        api = MagicMock()
        api.list_service_for_all_namespaces.side_effect = [
            service_list(v1_service("a")),
            service_list(v1_service("b"), rv="200"),
        ]
        stop = threading.Event()
        calls = []

        def fake_stream(func, **kwargs):
            calls.append(kwargs["resource_version"])
            if len(calls) == 1:
                raise ApiException(status=410, reason="Gone")
            stop.set()
            return iter(())

        with patch("nodeport_router.watcher.watch.Watch") as watch_cls:
            watch_cls.return_value.stream.side_effect = fake_stream
            events = list(ServiceWatcher(api=api).events(stop))

        self.assertEqual(calls, ["100", "200"])
        self.assertEqual(sorted((e.kind, e.service.name) for e in events), [
            (ADDED, "a"), (ADDED, "b"), (DELETED, "a"),
        ])

    def test_other_watch_errors_are_fatal(self):
        api = MagicMock()
        api.list_service_for_all_namespaces.return_value = service_list()

        with patch("nodeport_router.watcher.watch.Watch") as watch_cls:
            watch_cls.return_value.stream.side_effect = ApiException(status=401, reason="Unauthorized")
            with self.assertRaises(WatchError):
                list(ServiceWatcher(api=api).events())


if __name__ == "__main__":
    unittest.main()
