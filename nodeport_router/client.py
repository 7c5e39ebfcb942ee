"""
nodeport_router.client
======================
Router console client for the Arris NVG443B.

Responsibilities
----------------
* Log in through ``/cgi-bin/login.ha`` using the page nonce, and keep the
  session fresh (re-login after ``SESSION_MAX_AGE`` seconds).
* Scrape the forwards table of ``/cgi-bin/apphosting.ha`` into ``Forward``
  values.  The router is the only store of forward state; nothing is cached
  between calls.
* Add and delete forwards.  Every submission needs the nonce of a fresh
  render of the same page, so each mutation lists first.
* Follow up every POST with a GET: the POST only answers with a
  meta-refresh placeholder, the real outcome (error banner or not) is on
  the page rendered afterwards.
"""

import re
import threading
import time

import requests

from .backend import RouterBackend
from .config import (
    APPHOSTING_PATH,
    DELETE_VALUE,
    ERROR_ICON_ID,
    ERROR_ICON_SRC,
    ERROR_TEXT_ID,
    FORWARDS_TABLE_CLASS,
    LOGIN_PATH,
    PROTOCOL,
    REQUEST_TIMEOUT,
    SERVICE_TYPE,
    SESSION_MAX_AGE,
)
from .errors import AuthError, NotFoundError, ParseError, RemoteRejection, TransportError
from .logging_setup import log
from .models import Forward, SessionState
from .scraping import (
    extract_nonce,
    find_element_by_attr,
    find_element_by_id,
    find_elements,
    find_table_by_class,
    get_text_content,
    parse_html,
)
from .session import build_session

# Positional columns of the forwards table
_COL_DEVICE, _COL_PUBLIC_IP, _COL_SERVICE, _COL_PORTS, _COL_DELETE = range(5)

# "8080", "8080-8090", "8080 -> 30080", "8080-8090 → 30080"
_PORTS_RE = re.compile(r"(\d+)(?:\s*-\s*\d+)?(?:\s*(?:->|→|=>|>|:)\s*(\d+))?")


def parse_ports_cell(text: str) -> "tuple[str, str]":
    """
    Split the listing's ports cell into ``(external, internal)``.

    The internal port is ``""`` when the console does not show one.
    """
    m = _PORTS_RE.search(text)
    if not m:
        return text.strip(), ""
    return m.group(1), m.group(2) or ""


class RouterClient(RouterBackend):
    """
    One authenticated session against the router's admin console.

    Only login and the freshness check are serialised by the session lock;
    list/add/delete rely on the caller processing events one at a time.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        *,
        timeout: float = REQUEST_TIMEOUT,
        max_age: float = SESSION_MAX_AGE,
        session: "requests.Session | None" = None,
        cancel: "threading.Event | None" = None,
        clock=time.monotonic,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.timeout = timeout
        self.max_age = max_age
        self.session = session if session is not None else build_session()
        self.cancel = cancel
        self._clock = clock
        self._lock = threading.Lock()
        self.state = SessionState()

    @property
    def login_url(self) -> str:
        return self.base_url + LOGIN_PATH

    @property
    def apphosting_url(self) -> str:
        return self.base_url + APPHOSTING_PATH

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        if self.cancel is not None and self.cancel.is_set():
            raise TransportError(f"{method} {url} cancelled")
        try:
            return self.session.request(
                method, url, timeout=self.timeout, allow_redirects=False, **kwargs
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

    def _form_headers(self, referer: str) -> dict:
        return {
            "Content-Type": "application/x-www-form-urlencoded",
            "Origin": self.base_url,
            "Referer": referer,
        }

    def _submit(self, url: str, data: dict) -> None:
        """POST a form, then GET the same page and check it for the error banner."""
        self._request("POST", url, data=data, headers=self._form_headers(url))
        resp = self._request("GET", url)
        error = self._error_message(resp.text)
        if error is not None:
            raise RemoteRejection(error)

    @staticmethod
    def _error_message(html: str) -> "str | None":
        soup = parse_html(html)
        icon = find_element_by_id(soup, ERROR_ICON_ID) or find_element_by_attr(
            soup, "src", ERROR_ICON_SRC
        )
        if icon is None:
            return None
        text_el = find_element_by_id(soup, ERROR_TEXT_ID)
        text = " ".join(get_text_content(text_el).split()) if text_el is not None else ""
        return text or "router reported an error"

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def _login(self) -> None:
        try:
            resp = self._request("GET", self.login_url)
        except TransportError as exc:
            raise AuthError(f"could not fetch login page: {exc}") from exc

        nonce = extract_nonce(resp.text)
        if not nonce:
            raise AuthError("could not find nonce in login page")

        data = {
            "username": self.username,
            "password": self.password,
            "nonce": nonce,
        }
        try:
            self._request(
                "POST", self.login_url, data=data, headers=self._form_headers(self.login_url)
            )
        except TransportError as exc:
            raise AuthError(f"login request failed: {exc}") from exc

        # The answer is not inspected; a rejected login shows up as a
        # ParseError on the next protected page.
        self.state = SessionState(authenticated_since=self._clock())
        log.info("Logged in to %s as %s", self.base_url, self.username)

    def login(self) -> None:
        with self._lock:
            self._login()

    def ensure_logged_in(self) -> None:
        with self._lock:
            if self.state.is_fresh(self.max_age, self._clock()):
                return
            log.debug("Router session missing or stale, logging in again")
            self._login()

    def invalidate(self) -> None:
        with self._lock:
            self.state = SessionState()

    # ------------------------------------------------------------------
    # Forwards
    # ------------------------------------------------------------------

    def list_forwards(self) -> "tuple[list[Forward], str]":
        resp = self._request("GET", self.apphosting_url)
        html = resp.text

        table = find_table_by_class(parse_html(html), FORWARDS_TABLE_CLASS)
        if table is None:
            self.invalidate()
            raise ParseError(f"could not find table with class '{FORWARDS_TABLE_CLASS}'")

        forwards = []
        for i, row in enumerate(find_elements(table, "tr")):
            if i == 0:
                continue  # header
            cells = [get_text_content(td).strip() for td in find_elements(row, "td")]
            if len(cells) <= _COL_DELETE:
                log.debug("Skipping forwards row with %d cells: %r", len(cells), cells)
                continue
            ports, device_port = parse_ports_cell(cells[_COL_PORTS])
            forwards.append(Forward(
                device_name=cells[_COL_DEVICE],
                public_ip=cells[_COL_PUBLIC_IP],
                service_name=cells[_COL_SERVICE],
                ports=ports,
                device_port=device_port,
                delete_id=cells[_COL_DELETE],
            ))

        nonce = extract_nonce(html)
        if not nonce:
            self.invalidate()
            raise ParseError("could not find nonce in apphosting page")

        log.debug("Router lists %d forward(s)", len(forwards))
        return forwards, nonce

    def add_forward(self, forward: Forward) -> bool:
        forwards, nonce = self.list_forwards()

        existing = _find_by_name(forwards, forward.service_name)
        if existing is not None:
            if _already_satisfied(existing, forward):
                log.info("Forward %s already present, skipping", forward.service_name)
                return False
            log.info("Replacing forward %s (router has %s)", forward, existing)
            self._delete_row(existing, nonce)
            _, nonce = self.list_forwards()

        data = {
            "nonce": nonce,
            "device_select": forward.device_name,
            "device_manual": forward.device_name,
            "serviceName": forward.service_name,
            "service": SERVICE_TYPE,
            "protocol": PROTOCOL,
            "extMinPort": forward.ports,
            "extMaxPort": "",
            "intStartPort": forward.device_port,
            "publicip": "",
            "Add": "Add",
        }
        self._submit(self.apphosting_url, data)
        return True

    def delete_forward(self, forward: Forward) -> None:
        forwards, nonce = self.list_forwards()
        existing = _find_by_name(forwards, forward.service_name)
        if existing is None:
            raise NotFoundError(f"forward {forward.service_name} not found on router")
        self._delete_row(existing, nonce)

    def _delete_row(self, observed: Forward, nonce: str) -> None:
        if not observed.delete_id:
            raise ParseError(f"row for {observed.service_name} has no delete control")
        self._submit(self.apphosting_url, {"nonce": nonce, observed.delete_id: DELETE_VALUE})


def _find_by_name(forwards: "list[Forward]", service_name: str) -> "Forward | None":
    return next((f for f in forwards if f.service_name == service_name), None)


def _already_satisfied(observed: Forward, desired: Forward) -> bool:
    """
    True when the listed row already implements *desired*.

    A row without a visible internal port is judged on its external port;
    the rule name carries the node port.
    """
    if observed.device_port:
        return observed.same_rule(desired)
    return observed.service_name == desired.service_name and observed.ports == desired.ports
