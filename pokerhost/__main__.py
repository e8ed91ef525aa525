import argparse
import logging
import time

from threecard.models import ServerConfig, TableConfig

from .server import PokerServer

LOGGER = logging.getLogger("threecard_host")


def main() -> None:
    parser = argparse.ArgumentParser(description="Three Card Poker host server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=5555)
    parser.add_argument("--max-clients", type=int, default=8)
    parser.add_argument("--min-bet", type=int, default=5)
    parser.add_argument("--max-bet", type=int, default=25)
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Root logging level",
    )
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level))

    config = ServerConfig(
        host=args.host,
        port=args.port,
        max_clients=args.max_clients,
        table=TableConfig(min_bet=args.min_bet, max_bet=args.max_bet),
    )

    server = PokerServer(config)
    server.start()
    try:
        while server.running:
            time.sleep(0.5)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted; shutting down")
    finally:
        server.stop()


if __name__ == "__main__":
    main()
