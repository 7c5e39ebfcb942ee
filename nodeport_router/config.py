"""Configuration constants for the NodePort router controller."""

import re

# Router console endpoints (Arris NVG443B firmware)
LOGIN_PATH      = "/cgi-bin/login.ha"
APPHOSTING_PATH = "/cgi-bin/apphosting.ha"

REQUEST_TIMEOUT     = 15        # seconds per HTTP request
SESSION_MAX_AGE     = 5 * 60    # re-login when the session is older than this
WATCH_TIMEOUT       = 10        # server-side timeout of one watch call; bounds shutdown latency

# Transport retries (connection failures only for POST)
MAX_RETRIES         = 3
RETRY_BACKOFF       = 0.5
RETRY_JITTER        = 0.3

# The one table on apphosting.ha that lists the existing forwards
FORWARDS_TABLE_CLASS = "grid table100"

# Hidden form field carrying the single-use page nonce
NONCE_RE = re.compile(r'name="nonce"[^>]*value="([^"]+)"')

# Error banner rendered on the result page after a rejected submission
ERROR_ICON_ID  = "error-message-icon"
ERROR_ICON_SRC = "/images/icon_error.png"
ERROR_TEXT_ID  = "error-message-text"

# Fixed add-form values: custom service, TCP and UDP
SERVICE_TYPE   = "custom"
PROTOCOL       = "both"
DELETE_VALUE   = "Delete"

SERVICE_TYPE_NODE_PORT = "NodePort"

# Environment variable names (also read from .env)
ENV_DEVICE_NAME   = "K8S_HOST"
ENV_ROUTER_BASE   = "ROUTER_BASE"
ENV_ROUTER_ADMIN  = "ROUTER_ADMIN"
ENV_ROUTER_PASS   = "ROUTER_PASS"
ENV_TIMEOUT       = "ROUTER_TIMEOUT"
ENV_MISSING_OK    = "ROUTER_DELETE_MISSING_OK"
ENV_NAMESPACE     = "WATCH_NAMESPACE"
ENV_KUBECONFIG    = "KUBECONFIG"
