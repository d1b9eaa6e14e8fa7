import os
import re
import sys
from contextlib import redirect_stdout
from io import StringIO

import pytest

if __name__ == "__main__":
    root_dir = os.path.abspath(os.path.dirname(__file__))
    test_dir = os.path.join(root_dir, "tests")

    args = [
        "-q",
        "--disable-warnings",
        f"--cov={root_dir}/artifacts_server",
        "--cov-report=term",
        test_dir,
    ]

    buf = StringIO()
    with redirect_stdout(buf):
        exit_code = pytest.main(args)

    output = buf.getvalue()

    # Summary line looks like "42 passed, 1 failed in 0.12s"
    passed = failed = 0
    for line in output.splitlines():
        for n, word in re.findall(r"(\d+) (passed|failed|errors?)", line):
            if word == "passed":
                passed = int(n)
            else:
                failed += int(n)

    # Coverage total is the last "TOTAL ... NN%" line
    coverage = "N/A"
    for line in output.splitlines():
        if line.startswith("TOTAL") and re.search(r"\d+%$", line.strip()):
            coverage = line.strip().split()[-1]

    print(f"{passed}/{passed + failed} test cases passed. "
          f"{coverage} line coverage achieved.")

    sys.exit(exit_code)
