"""
Command-line interface for the NodePort router controller.

Settings come from flags, falling back to environment variables (a ``.env``
file in the working directory is loaded first).
"""

import argparse
import logging
import os
import signal
import sys
import threading

from dotenv import load_dotenv

from nodeport_router.client import RouterClient
from nodeport_router.config import (
    ENV_DEVICE_NAME,
    ENV_KUBECONFIG,
    ENV_MISSING_OK,
    ENV_NAMESPACE,
    ENV_ROUTER_ADMIN,
    ENV_ROUTER_BASE,
    ENV_ROUTER_PASS,
    ENV_TIMEOUT,
    REQUEST_TIMEOUT,
)
from nodeport_router.controller import Controller
from nodeport_router.errors import RouterError, WatchError
from nodeport_router.logging_setup import log, setup_logging
from nodeport_router.reconcile import Reconciler
from nodeport_router.watcher import ServiceWatcher, load_kube_config

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUE_VALUES


def parse_args(argv: "list[str] | None" = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Required values missing from both the command line and the environment
    end the process with a usage error.
    """
    parser = argparse.ArgumentParser(
        description="Mirror Kubernetes NodePort services as port forwards "
                    "on an Arris NVG443B router.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            f"Every option can also be set through the environment:\n"
            f"  {ENV_DEVICE_NAME}, {ENV_ROUTER_BASE}, {ENV_ROUTER_ADMIN}, "
            f"{ENV_ROUTER_PASS},\n"
            f"  {ENV_TIMEOUT}, {ENV_MISSING_OK}, {ENV_NAMESPACE}, {ENV_KUBECONFIG}"
        ),
    )
    parser.add_argument(
        "--device-name", default=os.environ.get(ENV_DEVICE_NAME),
        help="Router device name of the cluster entrypoint host",
    )
    parser.add_argument(
        "--router-base", default=os.environ.get(ENV_ROUTER_BASE),
        help="Router base URL, e.g. http://192.168.1.254",
    )
    parser.add_argument(
        "--router-admin", default=os.environ.get(ENV_ROUTER_ADMIN),
        help="Router admin username",
    )
    parser.add_argument(
        "--router-pass", default=os.environ.get(ENV_ROUTER_PASS),
        help="Router admin password",
    )
    parser.add_argument(
        "--timeout", type=float,
        default=os.environ.get(ENV_TIMEOUT, str(REQUEST_TIMEOUT)),
        help=f"Seconds per router request (default: {REQUEST_TIMEOUT})",
    )
    parser.add_argument(
        "--delete-missing-ok", action="store_true", default=_env_flag(ENV_MISSING_OK),
        help="Treat deleting a forward the router does not list as success",
    )
    parser.add_argument(
        "--namespace", default=os.environ.get(ENV_NAMESPACE),
        help="Only watch services in this namespace (default: all)",
    )
    parser.add_argument(
        "--kubeconfig", default=os.environ.get(ENV_KUBECONFIG),
        help="kubeconfig file used outside the cluster",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Enable verbose debug logging",
    )
    args = parser.parse_args(argv)

    missing = [
        f"--{name.replace('_', '-')} / {env}"
        for name, env in (
            ("device_name", ENV_DEVICE_NAME),
            ("router_base", ENV_ROUTER_BASE),
            ("router_admin", ENV_ROUTER_ADMIN),
            ("router_pass", ENV_ROUTER_PASS),
        )
        if not getattr(args, name)
    ]
    if missing:
        parser.error("missing required settings: " + ", ".join(missing))
    return args


def main(argv: "list[str] | None" = None) -> None:
    load_dotenv()
    args = parse_args(argv)

    setup_logging(debug=args.debug)
    if args.debug:
        logging.getLogger("urllib3").setLevel(logging.DEBUG)

    stop = threading.Event()

    def _shutdown(signum, _frame):
        log.info("Received signal %d, stopping", signum)
        stop.set()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    router = RouterClient(
        args.router_base, args.router_admin, args.router_pass,
        timeout=args.timeout, cancel=stop,
    )
    log.info("Authenticating to %s", args.router_base)
    try:
        router.login()
    except RouterError as exc:
        log.critical("Error logging in to router: %s", exc)
        sys.exit(1)

    try:
        load_kube_config(args.kubeconfig)
        controller = Controller(
            Reconciler(router, args.device_name, missing_ok=args.delete_missing_ok),
            ServiceWatcher(namespace=args.namespace),
        )
        controller.run(stop)
    except WatchError as exc:
        log.critical("Error running controller: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
