"""Internal constants shared across the library."""

VERSION_URL = "https://raw.githubusercontent.com/WhiskeySockets/Baileys/master/src/Defaults/baileys-version.json"

#: Last-known-good protocol version, used when the remote lookup fails.
FALLBACK_VERSION: tuple[int, int, int] = (2, 2204, 13)

DEFAULT_LISTEN_PORT = 3000
DEFAULT_AUTH_PATH = "./auth_info"
DEFAULT_LOG_LEVEL = "info"

DEFAULT_VERSION_TIMEOUT: float = 10.0
SHORT_RESTART_DELAY: float = 2.0
LONG_RESTART_DELAY: float = 5.0

DEFAULT_BROKER_HOST = "localhost"
DEFAULT_BROKER_PORT = 1883
DEFAULT_TOPIC_PREFIX = "kaya/link"
DEFAULT_BROWSER = ("pyKaya", "Chrome", "1.0")

# ------------------------------------------------------------------
# Connection status labels
# ------------------------------------------------------------------

STATUS_STARTING = "starting"
STATUS_FETCHING_VERSION = "fetching-version"
STATUS_STARTING_SOCKET = "starting-socket"
STATUS_PAIRING_CODE_ISSUED = "pairing-code-issued"
STATUS_CLOSED = "closed"

#: Network-reported state meaning the session is fully established.
CONNECTION_OPEN = "open"
CONNECTION_CLOSE = "close"
CONNECTION_CONNECTING = "connecting"
