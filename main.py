# main.py
import argparse
import logging
import os
import sys
import time

from pyfiglet import Figlet, FontNotFound

from typing import Optional

from relay_config import ConfigurationError, RelayConfig, load_relay_config
from config_validation import validate_relay_config
from backend_registry import LOGGING_BACKENDS, RADIO_CONTROL_BACKENDS
from relay_server import RelayServer, RelayError
from utils import pretty_duration

# On Windows terminals, force UTF-8 so icons and accents render OK.
if os.name == "nt":
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")
    except (AttributeError, OSError):
        pass

PROGRAM_NAME = "POTA-Relay"
CURRENT_VERSION = "1.0.0"

# ANSI colors for terminal output
COLOR_CYAN = "\033[96m"
COLOR_YELLOW = "\033[93m"
COLOR_MAGENTA = "\033[95m"
COLOR_RESET = "\033[0m"

CONFIG_POLL_SECONDS = 2.0

logger = None
debug_mode = False


def print_banner_safe(title: str = "POTA RELAY"):
    """Print a nice banner, but never crash on a missing figlet font."""
    if os.getenv("NO_FIGLET") == "1":
        print("\n" + title + "\n")
        return
    for font in ("slant", "standard"):
        try:
            fig = Figlet(font=font, width=120)
            print(fig.renderText(title))
            return
        except FontNotFound:
            continue
    print("\n" + title + "\n")


def graceful_exit(relay: Optional[RelayServer] = None, exit_code: int = 0, show_banner: bool = True) -> None:
    """
    Cleanly shut down and exit.

    - Stop the HTTP listener if it is still up.
    - Close backend sockets.
    - Print a farewell banner.
    """
    try:
        if relay is not None:
            relay.close()
    except RelayError as e:
        logger and logger.debug(f"Relay shutdown raised: {e}")

    if show_banner:
        print("\n" + "=" * 80)
        print(f"{COLOR_YELLOW}📡  POTA-RELAY session completed.{COLOR_RESET}")
        print(f"{COLOR_CYAN}🏞️  Thanks for activating, may your pileups be polite!{COLOR_RESET}")
        print(f"{COLOR_MAGENTA}🎙️  73 de POTA-RELAY ✨{COLOR_RESET}")
        print("=" * 80 + "\n")

    sys.exit(exit_code)


def describe_config(config: RelayConfig) -> str:
    """One block of human-readable routing info for the startup log."""
    radio = RADIO_CONTROL_BACKENDS[config.radio_control]
    logbook = LOGGING_BACKENDS[config.logging_mode]

    lines = [f"  HTTP:          {config.http_host}:{config.http_port}"]
    if config.radio_control == "hrd":
        where = f" @ {config.hrd_host}:{config.hrd_port}"
    elif config.radio_control == "flrig":
        where = f" @ {config.flrig_host}:{config.flrig_port}"
    else:
        where = ""
    lines.append(f"  Radio control: {radio['label']}{where} ({radio['description']})")

    if config.logging_mode == "hrd":
        where = f" @ {config.hrd_log_host}:{config.hrd_logbook_port}"
    elif config.logging_mode == "n1mm":
        where = f" @ {config.n1mm_host}:{config.n1mm_port}"
    else:
        where = ""
    lines.append(f"  Logging:       {logbook['label']}{where} ({logbook['description']})")
    return "\n".join(lines)


def load_validated_config(path: str, port_override: Optional[int] = None) -> RelayConfig:
    config = load_relay_config(path)
    if port_override is not None:
        config = config.replace(http_port=port_override)
    validate_relay_config(config, logger)
    return config


def relay_event_printer(event: str, data: dict) -> None:
    """Console echo of relay activity (the log file already has the details)."""
    if event == "log" and data.get("type") == "error":
        print(f"{COLOR_YELLOW}⚠️  {data.get('message')}{COLOR_RESET}")
    elif event == "started":
        print(f"{COLOR_CYAN}▶  Listening on port {data.get('port')}{COLOR_RESET}")
    elif event == "stopped":
        print(f"{COLOR_MAGENTA}■  Listener stopped{COLOR_RESET}")


def serve_forever(relay: RelayServer, config_path: str, port_override: Optional[int], watch: bool) -> None:
    """Block until Ctrl-C. With watch, re-apply settings.yml whenever it changes."""
    last_mtime = os.path.getmtime(config_path) if watch and os.path.exists(config_path) else None
    started = time.monotonic()

    while True:
        time.sleep(CONFIG_POLL_SECONDS)
        if not watch:
            continue

        try:
            mtime = os.path.getmtime(config_path)
        except OSError:
            continue
        if mtime == last_mtime:
            continue
        last_mtime = mtime

        logger.info(f"[CONFIG] {config_path} changed, reloading")
        try:
            new_config = load_validated_config(config_path, port_override)
        except (ConfigurationError, FileNotFoundError) as e:
            logger.error(f"[CONFIG] Keeping previous configuration: {e}")
            continue

        if new_config == relay.config:
            logger.debug("[CONFIG] No effective change")
            continue

        relay.update_config(new_config)
        logger.info("Active routing:\n" + describe_config(new_config))
        logger.debug(f"[CONFIG] Uptime before reload: {pretty_duration(time.monotonic() - started)}")


def main() -> None:
    global logger, debug_mode

    parser = argparse.ArgumentParser(
        description=f"{PROGRAM_NAME}: relay POTA app tune/log requests to HRD, FLRIG or N1MM Logger+"
    )
    parser.add_argument("--config", default="settings.yml", help="Path to settings.yml")
    parser.add_argument("--port", type=int, default=None, help="Override the HTTP port from settings.yml")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging (includes frame hex dumps)")
    parser.add_argument("--clear-logs", action="store_true", help="Delete old log files before starting")
    parser.add_argument("--watch", action="store_true", help="Reload settings.yml when it changes")
    parser.add_argument("--no-banner", action="store_true", help="Skip the startup banner")
    args = parser.parse_args()

    debug_mode = args.debug
    if not args.no_banner:
        print_banner_safe("POTA RELAY")

    from loghandler import setup_logging
    logger_local, contact_record_file = setup_logging(log_dir="logs", clear_old=args.clear_logs, debug=debug_mode)
    logger = logger_local
    if not debug_mode:
        # One access line per request is noise at INFO level.
        logging.getLogger("werkzeug").setLevel(logging.WARNING)

    config = load_validated_config(args.config, args.port)

    logger.info(f"""
    =================================================================
    {PROGRAM_NAME} - v{CURRENT_VERSION}
    HTTP bridge from the POTA mobile app to desktop radio software
    =================================================================
    """)
    logger.info("Active routing:\n" + describe_config(config))
    logger.info(f"Sent contacts are recorded in {contact_record_file}")

    relay = RelayServer(config, debug=debug_mode)
    relay.on_event(relay_event_printer)

    exit_code = 0
    try:
        relay.start()
        serve_forever(relay, args.config, args.port, args.watch)
    except KeyboardInterrupt:
        logger.info("Ctrl-C received, shutting down")
    except RelayError as e:
        logger.error(f"[FATAL] {e}")
        exit_code = 1
    finally:
        graceful_exit(relay=relay, exit_code=exit_code, show_banner=not args.no_banner)


def run() -> None:
    """Console-script entry point: map fatal errors to exit code 1."""
    try:
        main()
    except ConfigurationError as e:
        if logger:
            logger.error(f"[CONFIG ERROR] {e}")
        else:
            print(f"[CONFIG ERROR] {e}")
        sys.exit(1)
    except FileNotFoundError as e:
        if logger:
            logger.error(f"[CONFIG ERROR] {e}")
        else:
            print(f"[CONFIG ERROR] {e}")
        sys.exit(1)
    except Exception as e:
        if logger:
            logger.exception("[FATAL] Unexpected error occurred")
        else:
            print(f"[FATAL] Unexpected error occurred: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
