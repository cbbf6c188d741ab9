from __future__ import annotations

import os
import unittest


LIVE_TEST_ENV_VAR = "SHARDBENCH_RUN_LIVE_TESTS"

LIVE_TESTS_ENABLED = os.getenv(LIVE_TEST_ENV_VAR, "").strip() == "1"
LIVE_TEST_SKIP_MESSAGE = (
    f"Live tests are disabled. Set {LIVE_TEST_ENV_VAR}=1 and PGHOST/PGUSER/PGPASSWORD/PGDATABASE to enable."
)


def require_live_tests():
    if not LIVE_TESTS_ENABLED:
        raise unittest.SkipTest(LIVE_TEST_SKIP_MESSAGE)
