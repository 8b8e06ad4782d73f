#!/usr/bin/env python3
from __future__ import annotations

import importlib
import socket
import sys
from pathlib import Path
from urllib import error, request

REQUIRED_PYTHON = (3, 10)


def _check_url(url: str) -> tuple[bool, str]:
    req = request.Request(url, method="GET")
    try:
        with request.urlopen(req, timeout=1.0) as resp:  # nosec B310
            if 200 <= resp.status < 500:
                return True, f"reachable via GET {url}"
    except error.URLError as exc:
        return False, f"{exc}"
    return False, "unexpected status"


def _check_kafka(address: str) -> tuple[bool, str]:
    host, _, port = address.rpartition(":")
    try:
        with socket.create_connection((host or address, int(port or 9092)), timeout=1.0):
            return True, "tcp connect ok"
    except (OSError, ValueError) as exc:
        return False, f"{exc}"


def main() -> int:
    errors: list[str] = []

    if sys.version_info >= REQUIRED_PYTHON:
        print(f"OK: Python {sys.version.split()[0]} (>= 3.10)")
    else:
        errors.append("Python 3.10+ is required. Fix: install Python 3.10+ and recreate your virtual environment.")

    try:
        importlib.import_module("toolrelay.core.runtime")
        print("OK: import toolrelay")
    except Exception as exc:
        errors.append(f"Could not import toolrelay ({exc}). Fix: run `python -m pip install -e .[test]` from repo root.")
        for message in errors:
            print(f"ERROR: {message}")
        return 1

    from toolrelay.core.config import load_settings

    try:
        settings = load_settings()
    except Exception as exc:
        print(f"ERROR: Could not load settings ({exc}). Fix: check TOOLRELAY_CONFIG and TOOLRELAY_* variables.")
        return 1
    print(f"OK: settings loaded (broker={settings.broker})")

    state_dir = settings.state_path
    try:
        state_dir.mkdir(parents=True, exist_ok=True)
        probe = state_dir / ".write-check"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink(missing_ok=True)
        print(f"OK: TOOLRELAY_STATE_DIR writable at {state_dir}")
    except OSError as exc:
        errors.append(
            f"TOOLRELAY_STATE_DIR is not writable ({state_dir}): {exc}. "
            "Fix: set TOOLRELAY_STATE_DIR to a writable directory."
        )

    if settings.broker == "kafka":
        for address in settings.kafka.brokers:
            reachable, detail = _check_kafka(address)
            if reachable:
                print(f"OK: Kafka broker {address} is reachable ({detail})")
            else:
                errors.append(
                    f"Kafka broker {address} is unreachable: {detail}. "
                    "Fix: start Kafka or set TOOLRELAY_KAFKA_BROKERS / TOOLRELAY_BROKER=memory."
                )
    else:
        print("OK: in-memory broker (single process)")

    if settings.registry.path:
        if Path(settings.registry.path).expanduser().exists():
            print(f"OK: registry file found at {settings.registry.path}")
        else:
            errors.append(f"Registry file is missing at {settings.registry.path}. Fix: set TOOLRELAY_REGISTRY_PATH.")
    elif settings.registry.url:
        reachable, detail = _check_url(f"{settings.registry.url.rstrip('/')}/servers")
        if reachable:
            print(f"OK: registry reachable ({detail})")
        else:
            errors.append(f"Registry is unreachable: {detail}. Fix: verify TOOLRELAY_REGISTRY_URL.")
    else:
        print("WARN: no registry configured; only keyword rules can match and every match is dropped")

    if settings.invocation.url:
        print(f"OK: tool invocation via {settings.invocation.url}")
    else:
        print("WARN: tool invocation not configured; every tool signal resolves as failed")

    if errors:
        for message in errors:
            print(f"ERROR: {message}")
        return 1

    print("OK: environment check passed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
