"""Run the café operations service: python -m cafe_ops

Every option falls back to an environment variable, so the same image can
be configured either way.
"""

import argparse
import os
import sys

import uvicorn

from cafe_ops.config import DEFAULT_CONFIG_PATH, Config, ConfigurationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() in ("1", "true", "yes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cafe-ops",
        description="Front-desk sales, QR redemption and check-in timing for a cyber café",
    )
    server = parser.add_argument_group("server")
    server.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"), help="Bind address [HOST]")
    server.add_argument("--port", type=int, default=int(os.getenv("PORT", "8080")), help="Bind port [PORT]")
    server.add_argument(
        "--reload",
        action="store_true",
        default=_env_flag("RELOAD"),
        help="Restart on code changes [RELOAD]",
    )
    server.add_argument(
        "--cors-origins",
        default=os.getenv("CORS_ORIGINS", "*"),
        help="Comma separated origins allowed to call the API [CORS_ORIGINS]",
    )

    logs = parser.add_argument_group("logging")
    logs.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=os.getenv("LOG_LEVEL", "INFO").upper(),
        help="Minimum level [LOG_LEVEL]",
    )
    logs.add_argument(
        "--log-format",
        choices=("json", "console"),
        default=os.getenv("LOG_FORMAT", "json"),
        help="json lines or colored console output [LOG_FORMAT]",
    )

    parser.add_argument(
        "--config",
        default=os.getenv("CONFIG_PATH"),
        help=f"Café configuration file [CONFIG_PATH] (default: {DEFAULT_CONFIG_PATH.name})",
    )
    return parser


def main() -> None:
    args = build_parser().parse_args()

    # Fail before binding the port if the catalog cannot be loaded
    try:
        config = Config(args.config)
    except ConfigurationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    # Read by create_app() when uvicorn imports cafe_ops.main
    os.environ.update(
        LOG_LEVEL=args.log_level,
        LOG_FORMAT=args.log_format,
        CORS_ORIGINS=args.cors_origins,
        CONFIG_PATH=str(config.config_path),
    )

    if args.log_format == "console":
        print(f"{config.company.name}: {len(config.services)} services from {config.config_path}")
        print(f"Listening on http://{args.host}:{args.port} (log level {args.log_level})")

    try:
        uvicorn.run(
            "cafe_ops.main:app",
            host=args.host,
            port=args.port,
            log_level=args.log_level.lower(),
            reload=args.reload,
            access_log=False,
        )
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
