"""Command-line entry point for the UniFi exporter"""

import argparse
import logging
import sys
from typing import List, Optional

import uvicorn
from prometheus_client import disable_created_metrics

from unifi_exporter.config import Config
from unifi_exporter.main import create_app
from unifi_exporter.metrics import MetricsStore
from unifi_exporter.poller import Poller
from unifi_exporter.unifi.client import UniFiAPIClient
from unifi_exporter.version import get_version

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unifi-exporter",
        description="Prometheus exporter for UniFi Network Controller",
        epilog="Every option can also be set through the environment variable shown.",
    )
    parser.add_argument("--config", help="YAML file with settings (keys as in the env vars, lower-case)")
    parser.add_argument("--controller-url", dest="unifi_controller_url",
                        help="UniFi Controller URL, e.g. https://192.168.1.1:8443 [UNIFI_CONTROLLER_URL]")
    parser.add_argument("--api-key", dest="unifi_api_key",
                        help="UniFi API key; use either this or username/password [UNIFI_API_KEY]")
    parser.add_argument("--username", dest="unifi_username", help="Controller username [UNIFI_USERNAME]")
    parser.add_argument("--password", dest="unifi_password", help="Controller password [UNIFI_PASSWORD]")
    parser.add_argument("--site", dest="unifi_site", help="UniFi site name (default: default) [UNIFI_SITE]")
    parser.add_argument("-p", "--port", dest="metrics_port", type=int,
                        help="Port to expose metrics on (default: 9897) [METRICS_PORT]")
    parser.add_argument("--host", dest="metrics_host", help="Address to listen on (default: 0.0.0.0) [METRICS_HOST]")
    parser.add_argument("--poll-interval", type=int, help="Poll interval in seconds (default: 30) [POLL_INTERVAL]")
    parser.add_argument("--http-timeout", type=int, help="HTTP timeout in seconds (default: 10) [HTTP_TIMEOUT]")
    parser.add_argument("--log-level", help="trace, debug, info, warn or error (default: info) [LOG_LEVEL]")
    parser.add_argument("--verify-ssl", dest="verify_ssl", metavar="BOOL", nargs="?", const="true",
                        help="Verify TLS certificates: true or false (default: true) [VERIFY_SSL]")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    return parser


def load_config(args: argparse.Namespace) -> Config:
    """Merge YAML (if any), environment and command-line settings; CLI wins"""
    overrides = {k: v for k, v in vars(args).items() if k != "config" and v is not None}
    if args.config:
        return Config.from_yaml(args.config, **overrides)
    return Config(**overrides)


def configure_logging(config: Config) -> None:
    logging.basicConfig(
        level=config.logging_level(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    if config.log_level != "trace":
        # Request-level chatter from the HTTP client only at trace
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config)
    # Counters are rebuilt every poll, so a *_created series would only show the last reset
    disable_created_metrics()
    logger.info(f"Starting UniFi Network Exporter {get_version()}")

    if not config.verify_ssl:
        logger.warning(
            "SSL certificate verification is disabled. This is not recommended for production use."
        )

    client = UniFiAPIClient(
        controller_url=config.unifi_controller_url,
        credentials=config.credentials(),
        site=config.unifi_site,
        timeout=config.http_timeout,
        verify_ssl=config.verify_ssl,
    )
    store = MetricsStore()
    poller = Poller(client, store, config.poll_interval)
    app = create_app(store, poller)

    logger.info(f"Metrics server listening on {config.metrics_host}:{config.metrics_port}")
    uvicorn.run(
        app,
        host=config.metrics_host,
        port=config.metrics_port,
        log_level=logging.getLevelName(config.logging_level()).lower(),
    )


if __name__ == "__main__":
    main()
