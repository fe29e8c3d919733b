"""Run unittest tests and stream results to the engine over a socket.

Usage: python unittest_launcher.py --port PORT [--host HOST] [--start-dir DIR]
       [--pattern PAT] [--top-level-dir DIR] [--failfast] [--test-id ID ...]

Every event is one UTF-8 JSON object followed by a newline::

    {"event": "started"|"passed"|"failed"|"skipped"|"error"|"end",
     "id": "<dotted id>", "duration": 0.01, "message": "...", "traceback": "..."}
"""

import argparse
import json
import os
import re
import socket
import sys
import time
import unittest


class SocketWriter:
    def __init__(self, host, port):
        self._sock = socket.create_connection((host, port))

    def send(self, event, test_id=None, **fields):
        payload = {"event": event}
        if test_id is not None:
            payload["id"] = test_id
        payload.update({k: v for k, v in fields.items() if v is not None})
        data = (json.dumps(payload) + "\n").encode("utf-8")
        self._sock.sendall(data)

    def close(self):
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._sock.close()


def _first_line(err):
    value = err[1]
    text = str(value) if value is not None else ""
    name = err[0].__name__ if err[0] is not None else "Error"
    first = text.splitlines()[0] if text else ""
    return f"{name}: {first}" if first else name


# "setUpClass (pkg.mod.Class)", "setUpModule (pkg.mod)"
FIXTURE_DESCRIPTION = re.compile(r"^\w+ \((?P<parent>[\w.]+)\)$")


def result_id(test):
    """Return the dotted id a result for ``test`` is reported under.

    Class and module fixture errors arrive as ``_ErrorHolder`` objects and are
    reported against the class or module they belong to. Import failures are
    reported against the module name the loader could not import.
    """
    if isinstance(test, unittest.suite._ErrorHolder):
        match = FIXTURE_DESCRIPTION.match(test.description)
        if match:
            return match.group("parent")
    elif isinstance(test, unittest.loader._FailedTest):
        return test._testMethodName
    return test.id()


class StreamingResult(unittest.TestResult):
    """TestResult that reports each lifecycle event as it happens."""

    def __init__(self, writer, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.writer = writer
        self._started = {}
        self._reported = set()

    def _duration(self, test):
        start = self._started.get(result_id(test))
        return None if start is None else round(time.perf_counter() - start, 6)

    def _report(self, test, event, err=None, message=None):
        test_id = result_id(test)
        if test_id in self._reported:
            return
        self._reported.add(test_id)
        traceback = self._exc_info_to_string(err, test) if err else None
        if err and message is None:
            message = _first_line(err)
        self.writer.send(
            event,
            test_id,
            duration=self._duration(test),
            message=message,
            traceback=traceback,
        )

    def startTest(self, test):
        super().startTest(test)
        self._started[result_id(test)] = time.perf_counter()
        self.writer.send("started", result_id(test))

    def addSuccess(self, test):
        super().addSuccess(test)
        self._report(test, "passed")

    def addFailure(self, test, err):
        super().addFailure(test, err)
        self._report(test, "failed", err)

    def addError(self, test, err):
        super().addError(test, err)
        self._report(test, "error", err)

    def addSkip(self, test, reason):
        super().addSkip(test, reason)
        self._report(test, "skipped", message=reason)

    def addExpectedFailure(self, test, err):
        super().addExpectedFailure(test, err)
        self._report(test, "passed", message="expected failure")

    def addUnexpectedSuccess(self, test):
        super().addUnexpectedSuccess(test)
        self._report(test, "failed", message="unexpected success")

    def addSubTest(self, test, subtest, err):
        super().addSubTest(test, subtest, err)
        if err is not None:
            failed = issubclass(err[0], test.failureException)
            self._report(test, "failed" if failed else "error", err)


def build_suite(options):
    loader = unittest.TestLoader()
    top = options.top_level_dir or options.start_dir
    if options.test_ids:
        sys.path.insert(0, os.path.abspath(top))
        return loader.loadTestsFromNames(options.test_ids)
    return loader.discover(options.start_dir, options.pattern, options.top_level_dir)


def main(argv):
    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, required=True)
    parser.add_argument("--start-dir", default=".")
    parser.add_argument("--pattern", default="test*.py")
    parser.add_argument("--top-level-dir", default=None)
    parser.add_argument("--failfast", action="store_true")
    parser.add_argument("--test-id", dest="test_ids", action="append", default=[])
    options = parser.parse_args(argv)

    writer = SocketWriter(options.host, options.port)
    try:
        suite = build_suite(options)
        result = StreamingResult(writer)
        result.failfast = options.failfast
        suite.run(result)
        writer.send("end")
    finally:
        writer.close()
    return 0 if result.wasSuccessful() else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
