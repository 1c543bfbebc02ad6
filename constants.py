import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8080))
SSL_CERTFILE = os.getenv("SSL_CERTFILE", None)
SSL_KEYFILE = os.getenv("SSL_KEYFILE", None)
RELOAD = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes")

# Directory holding the browser client, served at "/" when set
STATIC_DIR = os.getenv("STATIC_DIR", None)

# Seconds between pings; a peer silent for twice this long is evicted
KEEPALIVE_INTERVAL = float(os.getenv("KEEPALIVE_INTERVAL", 30))

SIGNALING_PREFIX = "/server"
RTC_PATH_MARKER = "webrtc"

PEER_ID_COOKIE = "peerid"
PEER_ID_HEADER = "peerid"
FORWARDED_FOR_HEADER = "x-forwarded-for"
