#!/usr/bin/env python3
"""Run the Entrepot quality gates: format check, lint, typecheck, tests.

Stops at the first failing gate and exits with its return code.

Usage:
    python scripts/run_gates.py            # all gates
    python scripts/run_gates.py lint test  # selected gates, in order
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent

GATES: dict[str, list[str]] = {
    "format": ["ruff", "format", "--check", "."],
    "lint": ["ruff", "check", "."],
    "typecheck": [sys.executable, "-m", "mypy"],
    "test": [sys.executable, "-m", "pytest"],
}


def run_gate(name: str) -> None:
    """Run one gate; raises CalledProcessError on failure."""
    cmd = GATES[name]
    print(f"==> {name}: {' '.join(cmd)}")
    subprocess.run(cmd, cwd=REPO_ROOT, check=True)


def main(argv: list[str]) -> int:
    selected = argv or list(GATES)
    unknown = [name for name in selected if name not in GATES]
    if unknown:
        print(f"Unknown gate(s): {', '.join(unknown)}. Available: {', '.join(GATES)}")
        return 2

    try:
        for name in selected:
            run_gate(name)
    except subprocess.CalledProcessError as e:
        print(f"Gate failed (exit code {e.returncode})")
        return e.returncode

    print("All gates passed")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
