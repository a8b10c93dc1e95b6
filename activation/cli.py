# activation/cli.py
# Local CLI to check, apply and clear the device activation (uses the store directly)
import argparse
import logging
import sys

from activation.database import make_engine
from activation.device import DeviceIdentityProvider
from activation.engine import ActivationEngine
from activation.errors import StoreIOError, TokenValidationError
from activation.logger import setup_logging
from activation.store import SqlAlchemyActivationStore

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_STORE_ERROR = 2


def build_engine(db_url: str | None, device_id: str | None) -> ActivationEngine:
    store = SqlAlchemyActivationStore(make_engine(db_url))
    return ActivationEngine(store, device_provider=DeviceIdentityProvider(device_id=device_id))


def validate(engine: ActivationEngine, token: str) -> int:
    try:
        record = engine.validate_current_device(token)
    except TokenValidationError as e:
        print(f"Activation failed ({e.code}): {e}")
        return EXIT_REJECTED
    print("Activation successful")
    print(record.describe())
    return EXIT_OK


def debug(engine: ActivationEngine, token: str) -> int:
    report = engine.debug_current_device(token)
    print(report.render())
    return EXIT_OK if report.ok else EXIT_REJECTED


def show_status(engine: ActivationEngine) -> int:
    record = engine.record()
    print(record.describe())
    return EXIT_OK if record.is_active else EXIT_REJECTED


def deactivate(engine: ActivationEngine) -> int:
    engine.deactivate()
    print("Activation cleared")
    return EXIT_OK


def show_device(engine: ActivationEngine) -> int:
    device_id = engine.device_provider.get_id()
    if not device_id:
        print("Device identifier unavailable")
        return EXIT_REJECTED
    print(device_id)
    return EXIT_OK


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="activation-cli")
    parser.add_argument("action", choices=["validate", "debug", "status", "deactivate", "device"])
    parser.add_argument("--token", help="Activation token (for validate/debug)")
    parser.add_argument("--device-id", help="Override the detected device identifier")
    parser.add_argument("--db", help="Database URL (default: ACTIVATION_DATABASE_URL or sqlite:///activation.db)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every check")

    args = parser.parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.action in ("validate", "debug") and not args.token:
        print(f"--token required for {args.action}")
        return EXIT_REJECTED

    try:
        engine = build_engine(args.db, args.device_id)
        if args.action == "validate":
            return validate(engine, args.token)
        if args.action == "debug":
            return debug(engine, args.token)
        if args.action == "status":
            return show_status(engine)
        if args.action == "deactivate":
            return deactivate(engine)
        return show_device(engine)
    except StoreIOError as e:
        print(f"Activation store error: {e}")
        return EXIT_STORE_ERROR


if __name__ == "__main__":
    sys.exit(main())
