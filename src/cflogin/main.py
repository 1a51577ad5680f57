#!/usr/bin/env python3
"""CLI entry point for cflogin."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable, Sequence

from loguru import logger
from omegaconf.errors import OmegaConfBaseException

from .config import ConfigStore, Settings, load_settings
from .errors import LoginError
from .logging_setup import configure_logging
from .login import Connector, LoginFlow, http_connector
from .models import LoginOptions
from .session_store import find_instance
from .terminal import UI, Terminal
from .version import __version__

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INTERRUPTED = 130

ConnectorFactory = Callable[[ConfigStore, Settings], Connector]

PASSWORD_WARNING = (
    "WARNING:\n"
    "   Providing your password as a command line option is highly discouraged\n"
    "   Your password may be visible to others and may be recorded in your shell history"
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cflogin",
        description="Log in to a Cloud Foundry style API and target an org and space.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config-dir",
        default=None,
        help="Directory holding config.json and settings.yml (default: $CFLOGIN_HOME or ~/.cflogin).",
    )
    parser.add_argument("--verbose", action="store_true", help="Log debug output to stderr.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    login = subparsers.add_parser(
        "login",
        aliases=["l"],
        help="Log user in",
        description="Log user in.",
        epilog=PASSWORD_WARNING,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    login.add_argument("-a", dest="endpoint", help="API endpoint (e.g. https://api.example.com)")
    login.add_argument("-u", dest="username", help="Username")
    login.add_argument("-p", dest="password", help="Password")
    login.add_argument("-o", dest="organization", help="Org")
    login.add_argument("-s", dest="space", help="Space")
    login.add_argument(
        "--sso", action="store_true", help="Prompt for a one-time passcode to login"
    )
    login.add_argument("--sso-passcode", default=None, help="One-time passcode")
    login.add_argument(
        "--skip-ssl-validation",
        action="store_true",
        help="Skip verification of the API endpoint. Not recommended!",
    )
    login.set_defaults(handler=_login_command)

    endpoint = subparsers.add_parser(
        "endpoint",
        aliases=["e"],
        help="Find a remembered API endpoint",
        description="Report a remembered endpoint whose login server matches a pattern.",
    )
    endpoint.add_argument(
        "-a", dest="pattern", required=True, help="api endpoint pattern"
    )
    endpoint.set_defaults(handler=_endpoint_command)

    return parser


def _login_command(
    args: argparse.Namespace,
    config: ConfigStore,
    settings: Settings,
    ui: UI,
    connect: Connector,
) -> int:
    options = LoginOptions(
        endpoint=args.endpoint,
        skip_ssl_validation=args.skip_ssl_validation,
        username=args.username,
        password=args.password,
        organization=args.organization,
        space=args.space,
        sso=args.sso,
        sso_passcode=args.sso_passcode,
    )
    flow = LoginFlow(
        config,
        ui,
        connect,
        min_api_version=settings.min_api_version,
    )
    flow.perform_login(options)
    return EXIT_OK


def _endpoint_command(
    args: argparse.Namespace,
    config: ConfigStore,
    settings: Settings,
    ui: UI,
    connect: Connector,
) -> int:
    instance = find_instance(config.instances, args.pattern)
    if instance is not None:
        ui.say(f"Found existed endpoint {instance.auth_endpoint}")
        return EXIT_OK

    ui.show_configuration(config)
    if not config.is_logged_in():
        logger.debug(f"No remembered endpoint matches {args.pattern!r} and nobody is logged in")
        return EXIT_FAILED
    return EXIT_OK


def run_cli(
    argv: Sequence[str] | None = None,
    *,
    ui: UI | None = None,
    connector_factory: ConnectorFactory = http_connector,
) -> int:
    """Parse arguments, configure logging and dispatch the chosen command.

    ``connector_factory`` builds the remote collaborators from the loaded config
    and settings.
    """
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    ui = ui or Terminal()

    try:
        settings = load_settings(args.config_dir)
    except (ValueError, OmegaConfBaseException) as exc:
        # pydantic's ValidationError is a ValueError
        ui.say("FAILED")
        ui.say(f"Invalid settings: {exc}")
        return EXIT_FAILED
    configure_logging("DEBUG" if args.verbose else settings.log_level)

    config = ConfigStore(args.config_dir)
    connect = connector_factory(config, settings)
    logger.debug(f"Running {args.command} with config at {config.config_file}")

    try:
        return int(args.handler(args, config, settings, ui, connect))
    except LoginError as exc:
        logger.debug(f"{args.command} failed ({exc.kind.value}): {exc.message}")
        ui.say("FAILED")
        ui.say(exc.message)
        return EXIT_FAILED
    except EOFError:
        logger.debug(f"{args.command} stopped: input closed")
        ui.say("")
        ui.say("FAILED")
        ui.say("Input closed before the command finished.")
        return EXIT_FAILED
    except KeyboardInterrupt:
        ui.say("")
        return EXIT_INTERRUPTED


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
