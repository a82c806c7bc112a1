"""
Main entry point for the Blind Alarm Dashboard (console front end)
"""
import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger

# Add project directory to path
sys.path.insert(0, str(Path(__file__).parent))

from src.core.config import config, ensure_directories
from src.Modules.Device_module import (
    ConfigSyncClient,
    DuplicateAlarm,
    InvalidTimeFormat,
    SaveInProgressError,
    SyncError,
    create_api_client,
)
from src.Modules.Device_module.device_models import (
    format_log_timestamp,
    format_updated_at,
    parse_threshold_input,
)


def setup_logging(verbose: bool = False) -> None:
    """Configure application logging"""
    # Remove default logger
    logger.remove()

    # Console logger
    logger.add(
        sys.stderr,
        format=config.LOG_FORMAT,
        level="DEBUG" if verbose else config.LOG_LEVEL,
        colorize=True,
    )

    # File logger
    log_file = config.LOGS_DIR / "blind_dashboard.log"
    logger.add(
        log_file,
        format=config.LOG_FORMAT,
        level=config.LOG_LEVEL,
        rotation=config.LOG_ROTATION,
        retention=config.LOG_RETENTION,
        encoding="utf-8",
    )

    logger.info(f"Starting {config.APP_NAME} v{config.APP_VERSION}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="blind-dashboard", description=config.APP_NAME)
    parser.add_argument("--device", default=config.DEVICE_ID, help="Device id")
    parser.add_argument("--url", default=config.API_BASE_URL, help="Server base URL")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on console")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("status", help="Next alarm, threshold and last update")

    alarms = commands.add_parser("alarms", help="Manage alarms")
    alarm_actions = alarms.add_subparsers(dest="action", required=True)
    alarm_actions.add_parser("list", help="List configured alarms")
    add = alarm_actions.add_parser("add", help="Add an alarm (HH:MM)")
    add.add_argument("time")
    remove = alarm_actions.add_parser("remove", help="Remove an alarm (HH:MM)")
    remove.add_argument("time")

    threshold = commands.add_parser("threshold", help="Set the light threshold (0-4095)")
    threshold.add_argument("value")

    history = commands.add_parser("history", help="Recent device logs")
    history.add_argument("--limit", type=int, default=config.HISTORY_LIMIT)

    return parser


def print_status(client: ConfigSyncClient) -> None:
    device_config = client.config
    print(f"Device:          {device_config.device_id}")
    print(f"Next alarm:      {client.next_alarm_description(datetime.now())}")
    print(f"Alarms:          {len(device_config.alarms)}")
    print(f"Light threshold: {device_config.light_threshold}")
    print(f"Updated:         {format_updated_at(device_config.updated_at)}")


def run_command(args: argparse.Namespace, client: ConfigSyncClient) -> None:
    if args.command == "history":
        entries = client.load_history(limit=args.limit)
        if not entries:
            print("Nenhum registro encontrado")
        for entry in entries:
            light = entry.light if entry.light is not None else '-'
            alarm = "Disparou" if entry.alarm_triggered else "Inativo"
            blind = "Aberta" if entry.blind_open else "Fechada"
            print(f"{format_log_timestamp(entry.timestamp)}  luz={light}  alarme={alarm}  persiana={blind}")
        return

    client.load()

    if args.command == "status":
        print_status(client)
    elif args.command == "alarms":
        if args.action == "add":
            client.add_alarm(args.time.strip())
        elif args.action == "remove":
            client.remove_alarm(args.time.strip())
        alarms = client.alarms
        if not len(alarms):
            print("Nenhum alarme configurado")
        for alarm in alarms:
            print(alarm)
    elif args.command == "threshold":
        client.stage_threshold(parse_threshold_input(args.value))
        if client.has_changes:
            client.save_threshold()
        print(f"Light threshold: {client.config.light_threshold}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point"""
    args = build_parser().parse_args(argv)

    ensure_directories()
    setup_logging(args.verbose)

    api_client = create_api_client(base_url=args.url)
    client = ConfigSyncClient(api_client, args.device)
    try:
        run_command(args, client)
        return 0
    except (InvalidTimeFormat, DuplicateAlarm) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except SaveInProgressError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except SyncError as e:
        print(f"Error ({e.kind.value}): {e}", file=sys.stderr)
        return 1
    finally:
        api_client.close()


if __name__ == "__main__":
    sys.exit(main())
