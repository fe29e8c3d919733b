"""List unittest tests, one per line, after a ``start`` marker.

Usage: python unittest_discovery.py --start-dir DIR --pattern PAT [--top-level-dir DIR]

Each line is ``<dotted id>\\t<relative file>\\t<line>\\t<module>``. Modules
that fail to import are reported on stderr and the exit code is 1.
"""

import argparse
import inspect
import os
import sys
import unittest


def iter_tests(suite):
    for test in suite:
        if isinstance(test, unittest.TestSuite):
            yield from iter_tests(test)
        else:
            yield test


def describe(test, cwd):
    cls = type(test)
    method = getattr(test, getattr(test, "_testMethodName", ""), None)
    relfile = ""
    line = ""
    try:
        source = inspect.getsourcefile(cls)
        if source:
            relfile = os.path.relpath(source, cwd).replace(os.sep, "/")
        if method is not None:
            line = str(inspect.getsourcelines(method)[1])
    except (OSError, TypeError):
        pass
    return "\t".join([test.id(), relfile, line, cls.__module__])


def main(argv):
    parser = argparse.ArgumentParser()
    parser.add_argument("--start-dir", default=".")
    parser.add_argument("--pattern", default="test*.py")
    parser.add_argument("--top-level-dir", default=None)
    options = parser.parse_args(argv)

    cwd = os.getcwd()
    loader = unittest.TestLoader()
    suite = loader.discover(options.start_dir, options.pattern, options.top_level_dir)

    failures = list(loader.errors)
    lines = []
    for test in iter_tests(suite):
        if type(test).__name__ == "_FailedTest":
            failures.append(f"{test.id()}: {getattr(test, '_exception', '')}")
            continue
        lines.append(describe(test, cwd))

    print("start")
    for line in lines:
        print(line)
    sys.stdout.flush()

    if failures:
        for failure in failures:
            sys.stderr.write(str(failure).rstrip() + "\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
