from __future__ import annotations

import unittest

from sqlalchemy.exc import IntegrityError, OperationalError

from app.services.commit_retry import CommitRetryExhaustedError, is_transient_db_error, run_with_retry


def operational_error() -> OperationalError:
    return OperationalError("INSERT INTO staged_policies", {}, Exception("server closed the connection"))


class TestRunWithRetry(unittest.TestCase):
    def test_returns_first_success(self) -> None:
        self.assertEqual(run_with_retry(lambda: 5, max_retries=2), 5)

    def test_retries_transient_errors_and_runs_the_hook(self) -> None:
        calls: list[str] = []

        def operation() -> str:
            calls.append("attempt")
            if len(calls) < 3:
                raise operational_error()
            return "done"

        rollbacks: list[bool] = []
        result = run_with_retry(operation, max_retries=2, on_retry=lambda: rollbacks.append(True))

        self.assertEqual(result, "done")
        self.assertEqual(len(calls), 3)
        self.assertEqual(len(rollbacks), 2)

    def test_exhausted_retries_raise_with_history(self) -> None:
        def operation() -> None:
            raise operational_error()

        with self.assertRaises(CommitRetryExhaustedError) as ctx:
            run_with_retry(operation, max_retries=1)

        self.assertEqual(ctx.exception.attempts, 2)
        self.assertEqual(len(ctx.exception.history), 2)
        self.assertIsInstance(ctx.exception.last_error, OperationalError)

    def test_integrity_errors_are_not_retried(self) -> None:
        calls: list[int] = []

        def operation() -> None:
            calls.append(1)
            raise IntegrityError("INSERT", {}, Exception("duplicate key"))

        with self.assertRaises(IntegrityError):
            run_with_retry(operation, max_retries=3)
        self.assertEqual(len(calls), 1)

    def test_non_database_errors_propagate(self) -> None:
        def operation() -> None:
            raise ValueError("bad row")

        with self.assertRaises(ValueError):
            run_with_retry(operation, max_retries=3)


class TestTransientClassification(unittest.TestCase):
    def test_operational_errors_are_transient(self) -> None:
        self.assertTrue(is_transient_db_error(operational_error()))

    def test_integrity_errors_are_permanent(self) -> None:
        self.assertFalse(is_transient_db_error(IntegrityError("INSERT", {}, Exception("duplicate"))))

    def test_plain_exceptions_are_permanent(self) -> None:
        self.assertFalse(is_transient_db_error(RuntimeError("boom")))


if __name__ == "__main__":
    unittest.main()
