import unittest

from casework.saga import Saga, SagaAborted


class SagaTests(unittest.TestCase):
    def test_runs_steps_in_order(self):
        seen = []
        result = (
            Saga("ordered")
            .required("first", lambda: seen.append("first"))
            .best_effort("second", lambda: seen.append("second"))
            .required("third", lambda: seen.append("third"))
            .run()
        )
        self.assertEqual(seen, ["first", "second", "third"])
        self.assertEqual(result.completed, ["first", "second", "third"])
        self.assertEqual(result.skipped, [])

    def test_best_effort_failure_is_skipped(self):
        seen = []

        def broken():
            raise RuntimeError("nope")

        with self.assertLogs("casework.saga", level="ERROR"):
            result = (
                Saga("lenient")
                .best_effort("broken", broken)
                .required("after", lambda: seen.append("after"))
                .run()
            )
        self.assertEqual(seen, ["after"])
        self.assertEqual(result.completed, ["after"])
        self.assertEqual(result.skipped, ["broken"])

    def test_required_failure_aborts(self):
        seen = []
        cause = ValueError("bad write")

        def broken():
            raise cause

        saga = (
            Saga("strict")
            .required("first", lambda: seen.append("first"))
            .required("broken", broken)
            .required("never", lambda: seen.append("never"))
        )
        with self.assertLogs("casework.saga", level="ERROR"):
            with self.assertRaises(SagaAborted) as ctx:
                saga.run()
        self.assertEqual(seen, ["first"])
        self.assertEqual(ctx.exception.step, "broken")
        self.assertIs(ctx.exception.cause, cause)
        self.assertEqual(ctx.exception.completed, ["first"])


if __name__ == "__main__":
    unittest.main()
