"""Event loop: one service event at a time, in delivery order."""

import threading

from .errors import RouterError
from .logging_setup import log
from .models import ServiceEvent
from .reconcile import Reconciler
from .watcher import ServiceWatcher


class Controller:
    def __init__(self, reconciler: Reconciler, watcher: ServiceWatcher) -> None:
        self.reconciler = reconciler
        self.watcher = watcher

    def process(self, event: ServiceEvent) -> bool:
        """Apply one event; a failure is reported and does not stop the loop."""
        try:
            self.reconciler.handle(event)
        except RouterError as exc:
            log.error("Error syncing service %s (%s): %s",
                      event.service.key, event.kind.lower(), exc)
            return False
        return True

    def run(self, stop: "threading.Event | None" = None) -> None:
        """Consume watcher events until *stop* is set.  ``WatchError`` propagates."""
        stop = stop or threading.Event()
        for event in self.watcher.events(stop):
            self.process(event)
            if stop.is_set():
                break
        log.info("Controller stopped")
