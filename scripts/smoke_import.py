"""
Lightweight import smoke test for container_harness.

Usage (from repository root, after `pip install -e .`):
  python scripts/smoke_import.py
Expected output: lines indicating successful imports.
"""

EXPECTED_IMPORTS = [
    "container_harness",
    "container_harness.exceptions",
    "container_harness.config",
    "container_harness.settings",
    "container_harness.binding",
    "container_harness.notifications",
    "container_harness.engine",
    "container_harness.client",
    "container_harness.caller",
    "container_harness.runner",
    "container_harness.scenario",
    "container_harness.reporting",
    "container_harness.utils",
    "container_harness.utils.asyncio_compat",
]


def main() -> None:
    failures = []

    def try_import(mod):
        try:
            __import__(mod)
            print(f"[OK] import {mod}")
        except Exception as e:
            print(f"[FAIL] import {mod}: {e}")
            return False
        return True

    for t in EXPECTED_IMPORTS:
        if not try_import(t):
            failures.append(t)

    if failures:
        raise SystemExit(f"Smoke import failures: {failures}")
    print("All harness smoke imports succeeded.")


if __name__ == "__main__":
    main()
