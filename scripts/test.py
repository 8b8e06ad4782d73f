#!/usr/bin/env python3
"""Install toolrelay with its test extra and run the suite."""

from __future__ import annotations

import argparse
import subprocess
import sys


def run(command: list[str]) -> None:
    print(f"+ {' '.join(command)}", flush=True)
    subprocess.run(command, check=True)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the toolrelay test suite")
    parser.add_argument("--no-install", action="store_true", help="Skip the editable install step")
    args, pytest_args = parser.parse_known_args(argv)

    print(f"Python interpreter: {sys.executable}", flush=True)
    try:
        if not args.no_install:
            run([sys.executable, "-m", "pip", "install", "-e", ".[test]"])
        run([sys.executable, "-m", "pytest", "-q", *pytest_args])
    except subprocess.CalledProcessError as exc:
        return exc.returncode or 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
