import argparse
import logging
import sys

from gawa.constants import (
    DEBUG_MODE,
    DISABLE_CHUNKED,
    LISTEN_ADDR,
    MAX_CLIENTS,
    POST_TEMPLATE,
    TARGET_URL,
    VERSION_STRING,
)
from gawa.controller import create_app
from gawa.errors import ConfigError, TemplateLoadError

logger = logging.getLogger("gawa")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Relay de webhooks do Alertmanager via template")
    parser.add_argument("--addr", default=LISTEN_ADDR, help="host:port to listen to")
    parser.add_argument("--target-url", default=TARGET_URL, help="HTTP URL to post to")
    parser.add_argument("--post-template", default=POST_TEMPLATE, help="Template for the post content")
    parser.add_argument("--max-clients", type=int, default=MAX_CLIENTS,
                        help="maximum concurrent clients for /webhook")
    parser.add_argument("--disable-chunked", action="store_true", default=DISABLE_CHUNKED,
                        help="Disable chunked encoding")
    parser.add_argument("--version", action="store_true", help="Print version number and exit")
    return parser, parser.parse_args(argv)


def split_addr(addr):
    host, _, port = addr.rpartition(":")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host or "0.0.0.0", int(port)


def main(argv=None):
    parser, args = parse_args(argv)

    if args.version:
        print(VERSION_STRING)
        return 0

    logging.basicConfig(
        level=logging.DEBUG if DEBUG_MODE else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        app = create_app(
            target_url=args.target_url,
            template_path=args.post_template,
            max_clients=args.max_clients,
            disable_chunked=args.disable_chunked,
        )
    except TemplateLoadError as exc:
        print(exc, file=sys.stderr)
        return 1
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 2

    host, port = split_addr(args.addr)
    logger.info(VERSION_STRING)
    logger.info("Listening on %s", args.addr)
    # threaded: uma thread por requisição; o AdmissionController limita o /webhook
    app.run(host=host, port=port, threaded=True, debug=False, use_reloader=False)
    return 0


if __name__ == '__main__':
    sys.exit(main())
