"""
nodeport_router.reconcile
=========================
Turns service lifecycle events into router mutations.

* ADDED    – add one forward per port with a node port; the first failure
             aborts the event, forwards already added stay in place.
* MODIFIED – nothing to do when the node port assignments are unchanged.
             Otherwise delete every forward of the old spec (failures are
             logged only: an orphaned rule is recoverable, a missing one is
             not) and add every forward of the new spec (failures abort).
* DELETED  – delete every forward of the last known spec; the first
             failure aborts the event.

This is the only caller of the backend's mutating operations.
"""

from .backend import RouterBackend
from .errors import NotFoundError, RouterError
from .logging_setup import log
from .models import ADDED, DELETED, MODIFIED, Forward, Service, ServiceEvent, forward_name


class Reconciler:
    def __init__(self, backend: RouterBackend, device_name: str, missing_ok: bool = False) -> None:
        self.backend = backend
        self.device_name = device_name
        # Treat a delete of a rule the router no longer lists as done
        self.missing_ok = missing_ok

    def affected_forwards(self, service: Service) -> "list[Forward]":
        forwards = []
        for port in service.ports:
            if not port.node_port:
                continue
            ports = str(port.forwarded_port)
            device_port = str(port.node_port)
            forwards.append(Forward(
                device_name=self.device_name,
                service_name=forward_name(service.namespace, service.name, ports, device_port),
                ports=ports,
                device_port=device_port,
            ))
        return forwards

    @staticmethod
    def node_ports_changed(old: Service, new: Service) -> bool:
        def assignments(service: Service) -> dict:
            return {
                p.name: (p.node_port, p.port, p.forwarded_port)
                for p in service.ports
                if p.node_port
            }
        return assignments(old) != assignments(new)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def handle(self, event: ServiceEvent) -> None:
        if not event.service.is_node_port:
            return
        if event.kind == ADDED:
            self.handle_add(event.service)
        elif event.kind == MODIFIED:
            if event.old is None:
                self.handle_add(event.service)
            else:
                self.handle_update(event.old, event.service)
        elif event.kind == DELETED:
            self.handle_delete(event.service)
        else:
            raise ValueError(f"unknown event kind {event.kind!r}")

    def handle_add(self, service: Service) -> None:
        forwards = self.affected_forwards(service)
        if not forwards:
            log.debug("Service %s has no node ports, nothing to add", service.key)
            return
        self.backend.ensure_logged_in()
        for forward in forwards:
            try:
                added = self.backend.add_forward(forward)
            except RouterError as exc:
                raise type(exc)(f"error adding forward {forward.service_name}: {exc}") from exc
            if added:
                log.info("Added NodePort %s -> %s for service %s",
                         forward.device_port, forward.ports, service.key)

    def handle_update(self, old: Service, new: Service) -> None:
        if not self.node_ports_changed(old, new):
            log.info("NodePort values did not change for service %s", new.key)
            return
        log.info("NodePort changed for service %s", new.key)

        old_forwards = self.affected_forwards(old)
        new_forwards = self.affected_forwards(new)
        if not old_forwards and not new_forwards:
            return
        self.backend.ensure_logged_in()

        for forward in old_forwards:
            try:
                self.backend.delete_forward(forward)
            except RouterError as exc:
                log.warning("Could not delete old forward %s for service %s: %s",
                            forward.service_name, old.key, exc)

        for forward in new_forwards:
            try:
                self.backend.add_forward(forward)
            except RouterError as exc:
                raise type(exc)(f"error adding forward {forward.service_name}: {exc}") from exc
            log.info("Updated NodePort %s -> %s for service %s",
                     forward.device_port, forward.ports, new.key)

    def handle_delete(self, service: Service) -> None:
        forwards = self.affected_forwards(service)
        if not forwards:
            return
        log.info("Service %s deleted, removing port forwards", service.key)
        self.backend.ensure_logged_in()
        for forward in forwards:
            try:
                self.backend.delete_forward(forward)
            except NotFoundError as exc:
                if not self.missing_ok:
                    raise NotFoundError(f"error deleting forward {forward.service_name}: {exc}") from exc
                log.warning("Forward %s already absent from router", forward.service_name)
                continue
            except RouterError as exc:
                raise type(exc)(f"error deleting forward {forward.service_name}: {exc}") from exc
            log.info("Removed NodePort %s -> %s for service %s",
                     forward.device_port, forward.ports, service.key)
