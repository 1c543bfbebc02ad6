import argparse
import os

import uvicorn

from logging_config import setup_logging

# Setup logging before importing app
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)

from constants import HOST, PORT, RELOAD, SSL_CERTFILE, SSL_KEYFILE
from logging_config import get_logger

logger = get_logger(__name__)


def parse_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep:
        return address, PORT
    return host.strip("[]") or HOST, int(port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="LAN peer signaling relay")
    parser.add_argument("-a", "--address", default=f"{HOST}:{PORT}", help="http service address (host:port)")
    parser.add_argument("-c", "--cert", default=SSL_CERTFILE, help="SSL certificate file")
    parser.add_argument("-k", "--key", default=SSL_KEYFILE, help="SSL key file")
    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    host, port = parse_address(args.address)

    ssl_options = {}
    if args.cert and args.key:
        ssl_options = {"ssl_certfile": args.cert, "ssl_keyfile": args.key}
        logger.info(f"Starting signaling relay on {host}:{port} with TLS")
    else:
        logger.info(f"Starting signaling relay on {host}:{port}")

    uvicorn.run("app:app", host=host, port=port, reload=RELOAD, log_config=None, **ssl_options)


if __name__ == "__main__":
    main()
