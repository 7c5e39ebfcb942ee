"""
nodeport_router
===============
Keeps the port-forwarding table of an Arris NVG443B router in sync with
the NodePort services of a Kubernetes cluster.  The router has no API:
every read and write goes through its HTML administration console.

Package structure
-----------------
nodeport_router/
├── __init__.py       – package init and public API
├── config.py         – router paths, form values, timeouts, env var names
├── logging_setup.py  – colorlog console logging
├── errors.py         – exception hierarchy
├── models.py         – Forward, Service, ServicePort, ServiceEvent, SessionState
├── scraping.py       – BeautifulSoup tree helpers and the nonce extractor
├── session.py        – requests.Session factory with transport retries
├── backend.py        – RouterBackend capability interface
├── client.py         – RouterClient: login / list / add / delete on the console
├── reconcile.py      – Reconciler: service events → forward changes
├── watcher.py        – Kubernetes list + watch → ServiceEvent stream
├── controller.py     – event loop
└── cli.py            – argparse / environment CLI (``python -m nodeport_router``)

Quick start
-----------
    from nodeport_router import Reconciler, RouterClient, Service, ServicePort

    router = RouterClient("http://192.168.1.254", "admin", "secret")
    router.login()
    reconciler = Reconciler(router, device_name="k8s-node")
    reconciler.handle_add(Service(
        namespace="default",
        name="myapp",
        ports=(ServicePort(port=8080, target_port=8080, node_port=30080),),
    ))
"""

from .backend    import RouterBackend
from .client     import RouterClient
from .controller import Controller
from .errors     import (
    AuthError, NotFoundError, ParseError, RemoteRejection, RouterError,
    TransportError, WatchError,
)
from .models     import Forward, Service, ServiceEvent, ServicePort, SessionState
from .reconcile  import Reconciler
from .watcher    import ServiceWatcher

__all__ = [
    "RouterBackend",
    "RouterClient",
    "Controller",
    "Reconciler",
    "ServiceWatcher",
    "Forward",
    "Service",
    "ServiceEvent",
    "ServicePort",
    "SessionState",
    "RouterError",
    "AuthError",
    "ParseError",
    "NotFoundError",
    "RemoteRejection",
    "TransportError",
    "WatchError",
]
