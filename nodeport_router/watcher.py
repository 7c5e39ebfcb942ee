"""
nodeport_router.watcher
=======================
Kubernetes service events, as ``ServiceEvent`` values.

Lists services once, then watches from the listing's resource version.
Only NodePort services pass through; the last seen spec of each is kept
so that updates carry the previous ports and deletes carry the spec the
forwards were derived from.  When the watch reports ``410 Gone`` the
services are listed again and the listing is diffed against what was
last seen.
"""

import threading

from kubernetes import client, config, watch
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError

from .config import WATCH_TIMEOUT
from .errors import WatchError
from .logging_setup import log
from .models import ADDED, DELETED, MODIFIED, Service, ServiceEvent, ServicePort


def load_kube_config(kubeconfig: "str | None" = None) -> None:
    """In-cluster service account first, kubeconfig file otherwise."""
    try:
        config.load_incluster_config()
        log.info("Loaded in-cluster Kubernetes config")
    except config.ConfigException:
        try:
            config.load_kube_config(config_file=kubeconfig)
        except (config.ConfigException, OSError) as exc:
            raise WatchError(f"no Kubernetes configuration available: {exc}") from exc
        log.info("Loaded kubeconfig")


def _target_port(value) -> int:
    # IntOrString: a named target port cannot be resolved here
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return 0


def service_from_object(obj) -> Service:
    """Convert a ``V1Service`` into a ``Service``."""
    spec = obj.spec
    ports = tuple(
        ServicePort(
            port=p.port,
            node_port=p.node_port or 0,
            target_port=_target_port(p.target_port),
            name=p.name or "",
            protocol=p.protocol or "TCP",
        )
        for p in (spec.ports or [])
    )
    return Service(
        namespace=obj.metadata.namespace,
        name=obj.metadata.name,
        type=spec.type or "",
        ports=ports,
    )


class ServiceWatcher:
    def __init__(
        self,
        api: "client.CoreV1Api | None" = None,
        namespace: "str | None" = None,
        timeout_seconds: int = WATCH_TIMEOUT,
    ) -> None:
        self.api = api if api is not None else client.CoreV1Api()
        self.namespace = namespace
        self.timeout_seconds = timeout_seconds
        # namespace/name -> last seen NodePort spec
        self.known: "dict[str, Service]" = {}

    def _list_func(self):
        if self.namespace:
            return self.api.list_namespaced_service, {"namespace": self.namespace}
        return self.api.list_service_for_all_namespaces, {}

    def list_services(self) -> "tuple[list[Service], str]":
        func, kwargs = self._list_func()
        try:
            result = func(**kwargs)
        except (ApiException, HTTPError) as exc:
            raise WatchError(f"could not list services: {exc}") from exc
        services = [service_from_object(item) for item in result.items]
        return services, result.metadata.resource_version

    def resync(self, services: "list[Service]") -> "list[ServiceEvent]":
        """Events that bring the known specs in line with a fresh listing."""
        current = {s.key: s for s in services if s.is_node_port}
        events = []
        for key, service in current.items():
            old = self.known.get(key)
            if old is None:
                events.append(ServiceEvent(ADDED, service))
            elif old != service:
                events.append(ServiceEvent(MODIFIED, service, old))
        for key, old in self.known.items():
            if key not in current:
                events.append(ServiceEvent(DELETED, old))
        self.known = current
        return events

    def translate(self, kind: str, service: Service) -> "ServiceEvent | None":
        """Map one raw watch event onto the NodePort-only view."""
        old = self.known.get(service.key)

        if kind == DELETED:
            self.known.pop(service.key, None)
            if old is not None:
                return ServiceEvent(DELETED, old)
            return ServiceEvent(DELETED, service) if service.is_node_port else None

        if not service.is_node_port:
            if old is None:
                return None
            # No longer a NodePort service: its forwards have to go
            self.known.pop(service.key)
            return ServiceEvent(DELETED, old)

        self.known[service.key] = service
        if old is None:
            return ServiceEvent(ADDED, service)
        return ServiceEvent(MODIFIED, service, old)

    def events(self, stop: "threading.Event | None" = None):
        """
        Yield ``ServiceEvent`` values until *stop* is set.

        Raises ``WatchError`` when services cannot be listed, or when the
        API server rejects the watch for any reason other than an expired
        resource version.
        """
        stop = stop or threading.Event()
        services, resource_version = self.list_services()
        yield from self.resync(services)
        log.info("Started watching Services for NodePort changes...")

        func, kwargs = self._list_func()
        while not stop.is_set():
            w = watch.Watch()
            try:
                for raw in w.stream(
                    func,
                    resource_version=resource_version,
                    timeout_seconds=self.timeout_seconds,
                    **kwargs,
                ):
                    if raw["type"] not in (ADDED, MODIFIED, DELETED):
                        continue
                    obj = raw["object"]
                    resource_version = obj.metadata.resource_version
                    event = self.translate(raw["type"], service_from_object(obj))
                    if event is not None:
                        yield event
                    if stop.is_set():
                        w.stop()
                        break
            except ApiException as exc:
                if exc.status != 410:
                    raise WatchError(f"service watch failed: {exc}") from exc
                log.info("Service watch expired, listing services again")
                services, resource_version = self.list_services()
                yield from self.resync(services)
            except HTTPError as exc:
                # Dropped connection; a failing relist ends the process
                log.warning("Service watch interrupted (%s), listing services again", exc)
                services, resource_version = self.list_services()
                yield from self.resync(services)
