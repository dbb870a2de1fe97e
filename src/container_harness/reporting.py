"""
Test-reporting facility used by Scenario.run_tape.

Any callable ``tape(description, case)`` that calls ``case(t)`` with a
TestCase-like object can be registered with ``Scenario.set_tape``. TapReporter
is the bundled implementation; it emits TAP version 13.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Callable, List, Optional, Protocol, TextIO

from .exceptions import HarnessMisuseError

logger = logging.getLogger(__name__)


class TestCase(Protocol):
    __test__ = False

    def ok(self, value: Any, msg: Optional[str] = None) -> None: ...

    def equal(self, actual: Any, expected: Any, msg: Optional[str] = None) -> None: ...

    def fail(self, reason: Any) -> None: ...

    def end(self) -> None: ...


class Tape(Protocol):
    def __call__(self, description: str, case: Callable[[TestCase], Any]) -> Any: ...


class TapTestCase:
    """Assertions for one test case; every assertion becomes one TAP line."""

    __test__ = False

    def __init__(self, reporter: "TapReporter", description: str) -> None:
        self._reporter = reporter
        self.description = description
        self.failures: List[str] = []
        self.ended = False

    @property
    def passed(self) -> bool:
        return not self.failures

    def ok(self, value: Any, msg: Optional[str] = None) -> None:
        self._reporter.assertion(self, bool(value), msg or "should be truthy")

    def equal(self, actual: Any, expected: Any, msg: Optional[str] = None) -> None:
        passed = actual == expected
        self._reporter.assertion(self, passed, msg or "should be equal")
        if not passed:
            self._reporter.write(f"  ---\n    expected: {expected!r}\n    actual:   {actual!r}\n  ...")

    def fail(self, reason: Any) -> None:
        self._reporter.assertion(self, False, str(reason) or "failed")

    def end(self) -> None:
        if self.ended:
            raise HarnessMisuseError(f"test case '{self.description}' ended more than once")
        self.ended = True
        self._reporter.finish(self)


class TapReporter:
    """
    Minimal TAP producer.

    Usage:
        tape = TapReporter()
        Scenario.set_tape(tape)
        ...
        tape.summary()
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.cases: List[TapTestCase] = []
        self.count = 0
        self.passes = 0
        self.fails = 0
        self.write("TAP version 13")

    def __call__(self, description: str, case: Callable[[TestCase], Any]) -> Any:
        test_case = TapTestCase(self, description)
        self.cases.append(test_case)
        self.write(f"# {description}")
        return case(test_case)

    def write(self, line: str) -> None:
        self.stream.write(line + "\n")

    def assertion(self, test_case: TapTestCase, passed: bool, msg: str) -> None:
        self.count += 1
        if passed:
            self.passes += 1
            self.write(f"ok {self.count} {msg}")
        else:
            self.fails += 1
            test_case.failures.append(msg)
            self.write(f"not ok {self.count} {msg}")
            logger.warning(f"Test case '{test_case.description}' failed: {msg}")

    def finish(self, test_case: TapTestCase) -> None:
        logger.debug(f"Test case '{test_case.description}' ended (passed={test_case.passed})")

    def summary(self) -> bool:
        """Write the plan and totals; return True when nothing failed."""
        self.write(f"\n1..{self.count}")
        self.write(f"# tests {self.count}")
        self.write(f"# pass  {self.passes}")
        if self.fails:
            self.write(f"# fail  {self.fails}")
        else:
            self.write("\n# ok")
        return self.fails == 0


__all__ = ["TestCase", "Tape", "TapTestCase", "TapReporter"]
